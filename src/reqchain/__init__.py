from reqchain.constants import EventType
from reqchain.engine import ChainEngine, ChainExecution, ChainOutcome, ChainState
from reqchain.environment import VariableEnvironment
from reqchain.exceptions import (
    AlreadyExistsError,
    ChainBusyError,
    ExtractionError,
    IndexOutOfRangeError,
    NotFoundError,
    ParseError,
    PathNotFoundError,
    ReqChainError,
    TransportError,
    ValidationError,
)
from reqchain.history import History, HistoryEntry
from reqchain.models import Extraction, RequestTemplate, ResolvedRequest, Response
from reqchain.registry import Chain, ChainRegistry
from reqchain.settings import Settings
from reqchain.transport import HttpxTransport, Transport

__all__ = [
    "AlreadyExistsError",
    "Chain",
    "ChainBusyError",
    "ChainEngine",
    "ChainExecution",
    "ChainOutcome",
    "ChainRegistry",
    "ChainState",
    "EventType",
    "Extraction",
    "ExtractionError",
    "History",
    "HistoryEntry",
    "HttpxTransport",
    "IndexOutOfRangeError",
    "NotFoundError",
    "ParseError",
    "PathNotFoundError",
    "ReqChainError",
    "RequestTemplate",
    "ResolvedRequest",
    "Response",
    "Settings",
    "Transport",
    "TransportError",
    "ValidationError",
    "VariableEnvironment",
]
