from http import HTTPMethod

import pytest

from reqchain.history import History
from reqchain.models import ResolvedRequest, Response


def make_request(url: str = "https://api.test/items") -> ResolvedRequest:
    return ResolvedRequest(method=HTTPMethod.GET, url=url)


class TestHistoryEntry:
    def test_new_entry_is_pending(self):
        entry = History().record(make_request())
        assert entry.pending
        assert not entry.failed

    def test_complete(self):
        entry = History().record(make_request())
        entry.complete(Response(status_code=204))
        assert not entry.pending
        assert entry.response.status_code == 204

    def test_fail(self):
        entry = History().record(make_request())
        entry.fail("HTTP connection error: refused")
        assert entry.failed
        assert entry.response is None

    def test_cannot_settle_twice(self):
        entry = History().record(make_request())
        entry.fail("boom")
        with pytest.raises(RuntimeError):
            entry.complete(Response(status_code=200))


class TestHistory:
    def test_send_order(self):
        history = History()
        history.record(make_request("https://api.test/1"))
        history.record(make_request("https://api.test/2"))

        assert len(history) == 2
        assert [entry.request.url for entry in history] == ["https://api.test/1", "https://api.test/2"]
        assert history[-1].request.url == "https://api.test/2"

    def test_filter_by_chain(self):
        history = History()
        history.record(make_request(), chain="login", step=1)
        history.record(make_request())
        history.record(make_request(), chain="login", step=2)

        assert [entry.step for entry in history.entries("login")] == [1, 2]
        assert len(history.entries()) == 3

    def test_last_response_skips_failed_entries(self):
        history = History()
        history.record(make_request()).complete(Response(status_code=200, body="first"))
        history.record(make_request()).fail("timed out")

        assert history.last_response().body == "first"

    def test_last_response_empty(self):
        assert History().last_response() is None

    def test_clear(self):
        history = History()
        history.record(make_request())
        history.clear()
        assert len(history) == 0
