"""reviewbot exception classes."""

from collections.abc import Callable
from typing import Any


class ReviewBotError(Exception):
    """Base exception for all reviewbot errors."""

    def __init__(
        self, code: str, message: str, request_id: str | None = None
    ) -> None:
        self.code = code
        self.message = message
        self.request_id = request_id
        super().__init__(f"[{code}] {message}")


class ConfigurationError(ReviewBotError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str) -> None:
        super().__init__("CONFIGURATION_ERROR", message)


class AuthenticationError(ReviewBotError):
    """Raised when the access token is rejected."""

    pass


class AuthorizationError(ReviewBotError):
    """Raised when access is denied."""

    pass


class NotFoundError(ReviewBotError):
    """Raised when a resource is not found."""

    pass


class ConflictError(ReviewBotError):
    """Raised on conflicts (label already exists, merge conflicts, etc.)."""

    pass


class RateLimitedError(ReviewBotError):
    """Raised when rate limited."""

    def __init__(
        self,
        code: str,
        message: str,
        retry_after: int,
        request_id: str | None = None,
    ) -> None:
        super().__init__(code, message, request_id)
        self.retry_after = retry_after


class ValidationError(ReviewBotError):
    """Raised on validation errors."""

    pass


class ServerError(ReviewBotError):
    """Raised on server errors (5xx) and connection failures."""

    pass


class MultiError(ReviewBotError):
    """Raised when one or more independent handlers failed."""

    def __init__(self, errors: list[Exception]) -> None:
        self.errors = list(errors)
        message = "; ".join(str(e) for e in self.errors)
        super().__init__("MULTIPLE_ERRORS", message)


class ErrorCollector:
    """
    Collects failures of independent handlers.

    Every handler passed to run() is executed even if an earlier one failed.

    Example:
        ```python
        errors = ErrorCollector()
        errors.run(clear_labels, event)
        errors.run(check_reviewer, event)
        errors.raise_if_any()
        ```
    """

    def __init__(self) -> None:
        self.errors: list[Exception] = []

    def run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        try:
            fn(*args, **kwargs)
        except Exception as e:
            self.errors.append(e)

    def raise_if_any(self) -> None:
        """Raise MultiError if any handler failed."""
        if self.errors:
            raise MultiError(self.errors)
