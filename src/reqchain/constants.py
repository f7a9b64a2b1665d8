from enum import StrEnum

ENV_PREFIX = "REQCHAIN_"
DEFAULT_TIMEOUT = 30.0


class EventType(StrEnum):
    """Events the engine emits for presentation layers."""

    REQUEST_SENT = "request_sent"
    RESPONSE_RECEIVED = "response_received"
    CHAIN_FINISHED = "chain_finished"
