import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime

from reqchain.models import ResolvedRequest, Response

logger = logging.getLogger(__name__)


@dataclass
class HistoryEntry:
    """A sent request and, once known, its response or transport failure."""

    request: ResolvedRequest
    chain: str | None = None
    step: int | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    response: Response | None = None
    error: str | None = None

    @property
    def pending(self) -> bool:
        return self.response is None and self.error is None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def complete(self, response: Response) -> None:
        if not self.pending:
            raise RuntimeError("History entry is already settled")
        self.response = response

    def fail(self, error: str) -> None:
        if not self.pending:
            raise RuntimeError("History entry is already settled")
        self.error = error


class History:
    """Append-only log of sent requests in send order."""

    def __init__(self):
        self._entries: list[HistoryEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))

    def __getitem__(self, index: int) -> HistoryEntry:
        return self._entries[index]

    def record(self, request: ResolvedRequest, chain: str | None = None, step: int | None = None) -> HistoryEntry:
        """Append a pending entry for a request about to be sent."""
        entry = HistoryEntry(request=request, chain=chain, step=step)
        self._entries.append(entry)
        return entry

    def entries(self, chain: str | None = None) -> list[HistoryEntry]:
        """Return entries in send order, optionally only those of one chain."""
        if chain is None:
            return list(self._entries)
        return [entry for entry in self._entries if entry.chain == chain]

    def last_response(self) -> Response | None:
        """Return the most recently received response."""
        for entry in reversed(self._entries):
            if entry.response is not None:
                return entry.response
        return None

    def clear(self) -> None:
        self._entries.clear()
        logger.info("History cleared")
