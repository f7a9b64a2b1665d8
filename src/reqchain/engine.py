"""Chain execution.

A run walks a chain's steps strictly in order. For each step:

1. Resolve the template against the variable environment.
2. Record the resolved request in history, then send it.
3. On transport failure abort; the cursor stays on the failed step.
4. On success store the response and, if the step declares an extraction
   path, bind the extracted value. A failed extraction aborts the run.
5. Advance the cursor; past the last step the run is complete.

Only the transport call suspends. Everything else runs synchronously inside
``advance``, so a step's extraction is visible to the next step's resolution
without any extra coordination.

Each run owns a ``ChainExecution`` keyed by chain name. A chain never has two
active runs; whether different chains may run at the same time is decided by
``Settings.allow_concurrent_runs``.

Aborting is cooperative: ``abort`` only marks the run, and the mark is
honoured at the next step boundary. A request already on the wire is not
interrupted. Cancelling the task that drives a run is different: the run ends
ABORTED with reason "Cancelled", the in-flight history entry is marked failed,
and the cancellation propagates to the caller.

Variables extracted before an abort stay in the environment.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from reqchain.constants import EventType
from reqchain.environment import VariableEnvironment
from reqchain.exceptions import ChainBusyError, ExtractionError, NotFoundError, ReqChainError, TransportError, ValidationError
from reqchain.extractor import bind
from reqchain.history import History, HistoryEntry
from reqchain.models import RequestTemplate, ResolvedRequest, validate_template
from reqchain.registry import ChainRegistry, TemplateLike
from reqchain.settings import Settings
from reqchain.transport import HttpxTransport, Transport

logger = logging.getLogger(__name__)


class ChainState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset({ChainState.COMPLETED, ChainState.ABORTED})

CANCELLED_REASON = "Cancelled"


@dataclass(frozen=True)
class ChainOutcome:
    """How a run ended."""

    name: str
    state: ChainState
    steps_completed: int
    reason: str | None = None
    error: ReqChainError | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == ChainState.COMPLETED

    def raise_for_error(self) -> None:
        """Re-raise the error that aborted the run, if there was one."""
        if self.error is not None:
            raise self.error


@dataclass
class ChainExecution:
    """Progress of one run. ``cursor`` is the 1-based index of the next step."""

    name: str
    steps: list[RequestTemplate]
    cursor: int = 1
    state: ChainState = ChainState.IDLE
    reason: str | None = None
    error: ReqChainError | None = None
    abort_reason: str | None = field(default=None, repr=False)

    @property
    def terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def current_step(self) -> RequestTemplate | None:
        if 1 <= self.cursor <= len(self.steps):
            return self.steps[self.cursor - 1]
        return None

    def outcome(self) -> ChainOutcome:
        return ChainOutcome(
            name=self.name,
            state=self.state,
            steps_completed=self.cursor - 1,
            reason=self.reason,
            error=self.error,
        )


Subscriber = Callable[..., Any]


class ChainEngine:
    """Runs chains from a registry against a shared variable environment."""

    def __init__(
        self,
        registry: ChainRegistry | None = None,
        environment: VariableEnvironment | None = None,
        transport: Transport | None = None,
        settings: Settings | None = None,
        history: History | None = None,
    ):
        self.settings = settings or Settings()
        self.registry = registry if registry is not None else ChainRegistry()
        self.environment = environment if environment is not None else VariableEnvironment()
        self.history = history if history is not None else History()
        self.transport = transport if transport is not None else HttpxTransport(self.settings)
        self._executions: dict[str, ChainExecution] = {}
        self._subscribers: dict[EventType, list[Subscriber]] = defaultdict(list)

    # events

    def subscribe(self, event: EventType, callback: Subscriber) -> None:
        """Register a plain or async callable for an event.

        Callbacks receive ``(ResolvedRequest)`` for ``REQUEST_SENT``,
        ``(HistoryEntry)`` for ``RESPONSE_RECEIVED`` and
        ``(name, ChainOutcome)`` for ``CHAIN_FINISHED``.
        """
        self._subscribers[EventType(event)].append(callback)

    def unsubscribe(self, event: EventType, callback: Subscriber) -> None:
        callbacks = self._subscribers[EventType(event)]
        if callback in callbacks:
            callbacks.remove(callback)

    async def _emit(self, event: EventType, *args: Any) -> None:
        for callback in list(self._subscribers[event]):
            try:
                result = callback(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"Subscriber error on '{event}': {e}")

    # run control

    def start(self, name: str) -> ChainExecution:
        """Create a running execution for chain ``name``.

        Raises:
            NotFoundError: If the chain does not exist
            ChainBusyError: If the run is not allowed to start now
        """
        chain = self.registry.get(name)

        if self.is_running(name):
            raise ChainBusyError(f"Chain '{name}' is already running")
        if not self.settings.allow_concurrent_runs and self.is_running():
            running = ", ".join(self.running())
            raise ChainBusyError(f"Cannot start chain '{name}' while another chain is running: {running}")

        execution = ChainExecution(name=name, steps=list(chain.steps), state=ChainState.RUNNING)
        self._executions[name] = execution
        logger.info(f"Running chain '{name}' ({len(execution.steps)} steps)")
        return execution

    async def advance(self, execution: ChainExecution) -> ChainState:
        """Execute the step at the cursor and return the resulting state."""
        if execution.state != ChainState.RUNNING:
            return execution.state

        if execution.abort_reason is not None:
            return await self._finish(execution, ChainState.ABORTED, reason=execution.abort_reason)

        step = execution.current_step
        if step is None:
            return await self._finish(execution, ChainState.COMPLETED, reason=f"Chain '{execution.name}' completed")

        try:
            resolved = step.resolve(self.environment, self.settings.default_headers)
        except ValidationError as e:
            return await self._finish(execution, ChainState.ABORTED, error=e)

        entry = self.history.record(resolved, chain=execution.name, step=execution.cursor)

        try:
            await self._send(entry)
        except TransportError as e:
            return await self._finish(execution, ChainState.ABORTED, error=e)
        except asyncio.CancelledError:
            # state is settled before the first await in _finish
            await self._finish(execution, ChainState.ABORTED, reason=CANCELLED_REASON)
            raise

        if resolved.extract is not None:
            try:
                bind(self.environment, entry.response.body, resolved.extract.path, resolved.extract.var)
            except ExtractionError as e:
                return await self._finish(execution, ChainState.ABORTED, error=e)

        execution.cursor += 1
        if execution.cursor > len(execution.steps):
            return await self._finish(execution, ChainState.COMPLETED, reason=f"Chain '{execution.name}' completed")

        return ChainState.RUNNING

    async def run(self, name: str) -> ChainOutcome:
        """Run chain ``name`` to completion or abort.

        Raises:
            NotFoundError: If the chain does not exist
            ChainBusyError: If the run is not allowed to start now
        """
        execution = self.start(name)
        while not execution.terminal:
            await self.advance(execution)
        return execution.outcome()

    def abort(self, name: str, reason: str = "Aborted by user") -> bool:
        """Ask a running chain to stop at the next step boundary.

        Returns False when the chain has no active run.
        """
        execution = self._executions.get(name)
        if execution is None or execution.terminal:
            return False
        execution.abort_reason = reason
        logger.info(f"Abort requested for chain '{name}': {reason}")
        return True

    def get_execution(self, name: str) -> ChainExecution:
        """Return the current or most recent execution of chain ``name``."""
        try:
            return self._executions[name]
        except KeyError:
            raise NotFoundError(f"Chain '{name}' has not been run") from None

    def chain_state(self, name: str) -> ChainState:
        """State of the latest run of ``name``; IDLE if it was never started."""
        execution = self._executions.get(name)
        return execution.state if execution is not None else ChainState.IDLE

    def running(self) -> list[str]:
        return [name for name, execution in self._executions.items() if execution.state == ChainState.RUNNING]

    def is_running(self, name: str | None = None) -> bool:
        if name is None:
            return bool(self.running())
        execution = self._executions.get(name)
        return execution is not None and execution.state == ChainState.RUNNING

    def reset(self) -> None:
        """Forget variables, history and finished runs.

        Raises:
            ChainBusyError: If a chain is running
        """
        if self.is_running():
            raise ChainBusyError("Cannot reset while a chain is running")
        self.environment.clear()
        self.history.clear()
        self._executions.clear()

    # single requests

    async def submit(self, template: TemplateLike) -> HistoryEntry:
        """Send one request outside of any chain.

        The template goes through the same resolve, record, send and extract
        steps as a chain step, but failures are raised instead of ending a run.
        """
        template = validate_template(template)
        resolved = template.resolve(self.environment, self.settings.default_headers)
        entry = self.history.record(resolved)
        await self._send(entry)

        if resolved.extract is not None:
            bind(self.environment, entry.response.body, resolved.extract.path, resolved.extract.var)
        return entry

    def extract_last(self, path: str, var_name: str) -> Any:
        """Extract a value from the most recent response into ``var_name``.

        Raises:
            NotFoundError: If there is no response yet or the path does not resolve
            ParseError: If the response is not JSON
        """
        response = self.history.last_response()
        if response is None:
            raise NotFoundError("No response to extract from")
        return bind(self.environment, response.body, path, var_name)

    # internals

    async def _send(self, entry: HistoryEntry) -> None:
        request: ResolvedRequest = entry.request

        try:
            await self._emit(EventType.REQUEST_SENT, request)
            response = await self.transport.send(request)
        except asyncio.CancelledError:
            entry.fail(CANCELLED_REASON)
            raise
        except TransportError as e:
            entry.fail(e.message)
            raise
        except Exception as e:
            entry.fail(f"Unexpected error: {str(e)}")
            raise TransportError(f"Unexpected error: {str(e)}") from e

        entry.complete(response)
        await self._emit(EventType.RESPONSE_RECEIVED, entry)

    async def _finish(
        self,
        execution: ChainExecution,
        state: ChainState,
        reason: str | None = None,
        error: ReqChainError | None = None,
    ) -> ChainState:
        execution.state = state
        execution.error = error
        execution.reason = reason if reason is not None else (error.message if error else None)

        if state == ChainState.COMPLETED:
            logger.info(execution.reason)
        else:
            logger.error(f"Chain '{execution.name}' aborted at step {execution.cursor}: {execution.reason}")

        await self._emit(EventType.CHAIN_FINISHED, execution.name, execution.outcome())
        return state
