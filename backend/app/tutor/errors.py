"""Error taxonomy shared by the stores, the agents and the HTTP layer.

Every raised error carries the HTTP status the controllers answer with.
``CompactionWarning`` is a plain value object: it is returned, never raised.
"""

from dataclasses import dataclass


class TutorError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, detail: str) -> None:
        """Keep a human readable detail next to the exception."""
        super().__init__(detail)
        self.detail = detail


class ValidationError(TutorError):
    """Missing or malformed required fields."""

    status_code = 400


class AuthorizationError(TutorError):
    """The requesting principal does not own the target conversation."""

    status_code = 403


class NotFoundError(TutorError):
    """The conversation handle could not be resolved."""

    status_code = 404


class CompletionFailedError(TutorError):
    """The completion service errored or timed out."""

    status_code = 502


class StoreUnavailableError(TutorError):
    """A read or write against the message or summary store failed."""

    status_code = 503

    def __init__(self, operation: str, detail: str) -> None:
        """Record which store operation failed."""
        super().__init__(f"{operation}: {detail}")
        self.operation = operation


@dataclass(frozen=True)
class CompactionWarning:
    """Summary was stored but the folded messages could not be removed."""

    operation: str
    detail: str
