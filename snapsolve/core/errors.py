"""Error taxonomy for the processing pipeline."""
from typing import Optional


class ProcessingError(Exception):
    """Base class for failures surfaced by the pipeline."""


class ConfigurationError(ProcessingError):
    """No LLM credential is configured."""


class RequestCancelledError(ProcessingError):
    """The request was cancelled by the user or superseded by a newer one."""

    def __init__(self, message: str = "Processing was canceled by the user."):
        super().__init__(message)


class GatewayError(ProcessingError):
    """A failure reported by the LLM transport, with upstream diagnostics."""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body


class AuthError(GatewayError):
    """The credential was rejected."""


class RateLimitError(GatewayError):
    pass


class TransportError(GatewayError):
    """Any other HTTP or network failure."""


class MissingSolutionError(ProcessingError):
    def __init__(self, message: str = "No existing solution found to debug"):
        super().__init__(message)


class MissingProblemInfoError(ProcessingError):
    def __init__(self, message: str = "No problem info available"):
        super().__init__(message)
