"""Exception classes for reqchain."""


class ReqChainError(Exception):
    """Base exception for all reqchain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReqChainError):
    """A malformed request template or chain definition."""


class TransportError(ReqChainError):
    """An error making HTTP call."""


class ExtractionError(ReqChainError):
    """An error extracting a value from response body."""


class ParseError(ExtractionError):
    """Response body is not valid JSON."""


class NotFoundError(ReqChainError):
    """A path expression, chain, variable or step cannot be resolved."""


class IndexOutOfRangeError(ReqChainError):
    """Step index outside of chain bounds."""


class AlreadyExistsError(ReqChainError):
    """Chain name is already taken."""


class ChainBusyError(ReqChainError):
    """A chain run was refused because another run is active."""


class PathNotFoundError(NotFoundError, ExtractionError):
    """Path expression does not resolve against response body."""
