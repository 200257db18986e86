"""
Dog Spotter Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for the error scenarios services raise.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers in main.py translate them into JSON error
       responses with the right HTTP status code.

Exception Hierarchy:
    DogSpotterError (base)
    ├── ValidationError            → 400 Bad Request
    ├── AuthenticationError        → 401 Unauthorized
    ├── NotFoundError              → 404 Not Found
    ├── NotFoundOrForbiddenError   → 404 Not Found (ownership failures)
    ├── DuplicateResourceError     → 409 Conflict
    ├── FileStorageError           → 500 Internal Server Error
    └── UpstreamUnavailableError   → 503 Service Unavailable
        └── CircuitBreakerOpenError

Storage failures (SQLAlchemyError) are NOT wrapped here: services let them
propagate unchanged and main.py maps them to a generic 500.
"""

from typing import Any, Dict, Optional


class DogSpotterError(Exception):
    """
    Base exception for all Dog Spotter application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DogSpotterError):
    """
    Raised when client input fails a business rule.

    Schema-level problems (missing fields, wrong types) are already answered
    with 422 by FastAPI; this covers checks that need service knowledge, such
    as upload content types or a wrong current password.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(DogSpotterError):
    """Missing, malformed, expired or unknown-user credentials."""

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(DogSpotterError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that None into
    this exception so the route layer never checks for it.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class NotFoundOrForbiddenError(DogSpotterError):
    """
    Raised when an update/delete matches no record owned by the requester.

    A record that does not exist and a record owned by someone else produce
    the same exception and the same message, so a non-owner cannot probe for
    the existence of other users' records.
    """

    MESSAGE = "record not found or not permitted"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=self.MESSAGE, context=context)


class DuplicateResourceError(DogSpotterError):
    """Raised when a unique value (e.g. an account email) is already taken."""

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(DogSpotterError):
    """
    Raised when file system operations fail (disk full, permission denied).

    The client gets a generic message; the OS error goes to the log only.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamUnavailableError(DogSpotterError):
    """
    Raised by the breed-prediction client when the ML service fails.

    DogService.create() catches it and carries on without a prediction; it
    only reaches a client if some future route calls the predictor directly.
    """

    def __init__(
        self,
        message: str = "Breed prediction service is unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CircuitBreakerOpenError(UpstreamUnavailableError):
    """
    Raised when the ML circuit breaker is OPEN.

    CLOSED → (threshold consecutive failures) → OPEN → (recovery timeout)
    → HALF_OPEN → one trial call → CLOSED on success, OPEN on failure.
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "Breed prediction is paused after repeated failures. "
            f"It will be retried in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
