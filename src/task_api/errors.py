from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .models import TaskStatus


# PUBLIC_INTERFACE
class TaskError(Exception):
    """
    Base class for every error the task core raises.

    Subclasses set:
    - code: stable machine-readable name, used as the "error" field in responses
    - status_code: HTTP status the API layer maps the error to
    """

    code: str = "TaskError"
    status_code: int = 500

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        """Render the error as a JSON-serialisable body."""
        body: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


# PUBLIC_INTERFACE
class ValidationError(TaskError):
    """Malformed or missing input. Carries every field violation, not just the first."""

    code = "ValidationError"
    status_code = 422

    def __init__(self, violations: Sequence[Dict[str, str]], message: str = "Request validation failed") -> None:
        super().__init__(message, detail=list(violations))
        self.violations: List[Dict[str, str]] = list(violations)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])


# PUBLIC_INTERFACE
class NotFound(TaskError):
    """Task absent or owned by someone else. The two cases are indistinguishable."""

    code = "NotFound"
    status_code = 404

    def __init__(self, message: str = "Task not found") -> None:
        super().__init__(message)


# PUBLIC_INTERFACE
class InvalidTransitionError(TaskError):
    """Requested status is not reachable from the current status."""

    code = "InvalidTransitionError"
    status_code = 400

    def __init__(
        self,
        current: TaskStatus,
        requested: TaskStatus,
        allowed: Sequence[TaskStatus],
    ) -> None:
        super().__init__(f"Invalid status transition from {current.value} to {requested.value}")
        self.current = current
        self.requested = requested
        self.allowed = list(allowed)

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["currentStatus"] = self.current.value
        body["requestedStatus"] = self.requested.value
        body["allowedTransitions"] = [s.value for s in self.allowed]
        return body


# PUBLIC_INTERFACE
class PersistenceError(TaskError):
    """Storage unavailable or failed. Rendered without internal detail."""

    code = "PersistenceError"
    status_code = 500

    def __init__(self, message: str = "Storage operation failed") -> None:
        super().__init__(message)


# PUBLIC_INTERFACE
class SummarizationError(TaskError):
    """The external summarization capability failed, timed out, or returned nothing usable."""

    code = "SummarizationError"
    status_code = 502

    def __init__(self, detail: str, message: str = "Error generating task summary") -> None:
        super().__init__(message, detail=detail)


# PUBLIC_INTERFACE
class RateLimitExceeded(TaskError):
    """A request guard rejected the request before it reached the core."""

    code = "RateLimitExceeded"
    status_code = 429

    def __init__(self, message: str, retry_after: Optional[int] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.retry_after is not None:
            body["retryAfter"] = self.retry_after
        return body


# PUBLIC_INTERFACE
class Unauthorized(TaskError):
    """No authenticated owner could be resolved for the request."""

    code = "Unauthorized"
    status_code = 401

    def __init__(self, message: str = "Not authenticated", www_authenticate: Optional[str] = None) -> None:
        super().__init__(message)
        self.www_authenticate = www_authenticate
