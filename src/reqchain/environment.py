import logging
import threading
from collections.abc import Iterator, Mapping
from typing import Any

logger = logging.getLogger(__name__)


class VariableEnvironment(Mapping[str, Any]):
    """Variables shared by substitution and extraction.

    Later writes overwrite earlier ones. There is no rollback: a chain that
    aborts midway keeps whatever it already extracted, which is left visible
    on purpose for debugging.

    Writes are serialized with a lock so one environment can back several
    chains running at once.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None):
        self._context: dict[str, Any] = dict(initial or {})
        self._lock = threading.Lock()

    def __getitem__(self, key: str) -> Any:
        return self._context[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._context)

    def __len__(self) -> int:
        return len(self._context)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._context!r})"

    def get(self, key: str, default: Any = None) -> Any:
        """Get a variable value, or ``default`` if it is not bound."""
        return self._context.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Bind a variable, overwriting any previous value."""
        with self._lock:
            self._context[key] = value

    def update(self, updates: Mapping[str, Any]) -> None:
        """Bind several variables at once."""
        with self._lock:
            self._context.update(updates)

    def remove(self, key: str) -> None:
        """Unbind a variable if it is bound."""
        with self._lock:
            self._context.pop(key, None)

    def clear(self) -> None:
        """Remove all variables."""
        with self._lock:
            self._context.clear()
        logger.info("Variable environment cleared")

    def snapshot(self) -> dict[str, Any]:
        """Return a shallow copy of the current bindings."""
        with self._lock:
            return dict(self._context)
