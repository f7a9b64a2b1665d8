import json
from typing import Any

import pytest

from reqchain.engine import ChainEngine
from reqchain.models import ResolvedRequest, Response
from reqchain.registry import ChainRegistry
from reqchain.settings import Settings


class FakeTransport:
    """Transport that records requests and replays queued responses or errors."""

    def __init__(self):
        self.sent: list[ResolvedRequest] = []
        self._queue: list[Response | Exception] = []

    def queue(self, *items: Response | Exception) -> None:
        self._queue.extend(items)

    async def send(self, request: ResolvedRequest) -> Response:
        self.sent.append(request)
        if not self._queue:
            return Response(status_code=200, headers={"Content-Type": "application/json"}, body="{}")
        item = self._queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def make_json_response(data: Any, status: int = 200) -> Response:
    return Response(status_code=status, headers={"Content-Type": "application/json"}, body=json.dumps(data))


@pytest.fixture
def json_response():
    """Factory for JSON responses."""
    return make_json_response


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def settings() -> Settings:
    return Settings(timeout=5.0, default_headers={"Accept": "application/json"})


@pytest.fixture
def registry() -> ChainRegistry:
    return ChainRegistry()


@pytest.fixture
def engine(registry: ChainRegistry, transport: FakeTransport, settings: Settings) -> ChainEngine:
    return ChainEngine(registry=registry, transport=transport, settings=settings)
