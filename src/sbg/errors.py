"""Error types shared by services, ingestion and the pipeline."""

from typing import Any, Optional

AUTH_MARKERS = ("PERMISSION_DENIED", "API key not valid", "authentication_error")

AUTH_MESSAGE = (
    "Authentication failed. Please ensure your API key is correct and has the "
    "necessary permissions. The server returned a PERMISSION_DENIED error."
)


class GenerationError(Exception):
    """Base class for all storyboard generation errors."""


class AuthenticationFailure(GenerationError):
    """Credentials were rejected. Never retried, always propagated."""

    def __init__(self, message: str = AUTH_MESSAGE) -> None:
        super().__init__(message)


class ServiceFailure(GenerationError):
    """A generative call failed or returned unusable output."""


class SafetyRejection(ServiceFailure):
    """An image request was blocked or rewritten by content-safety filtering."""


class IngestionFailure(GenerationError):
    """A file or archive entry could not be read."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"{name}: {reason}")
        self.name = name
        self.reason = reason


class PipelineError(GenerationError):
    """A fatal stage failed and the run was aborted.

    Carries the partial run result so callers still get the report.
    """

    def __init__(self, stage: str, message: str, result: Optional[Any] = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.result = result


def is_auth_error(error: BaseException) -> bool:
    """Return True if an error message looks like a credentials problem."""
    message = str(error)
    return any(marker in message for marker in AUTH_MARKERS)
