"""
DevCamper Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions raised by services and the list
       pipeline, translated into HTTP responses by the handlers in main.py.
How:   Each exception carries a user-facing message and a context dict.
       The context is logged and, for client errors, returned as "details".

Exception Hierarchy:
    DevCamperError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── DuplicateError           → 400 Bad Request (unique value taken)
    ├── NotFoundError            → 404 Not Found
    ├── DatabaseError            → 500 Internal Server Error
    ├── GeocoderError            → 503 Service Unavailable (retry later)
    └── CircuitBreakerOpenError  → 503 Service Unavailable (circuit open)
"""

from typing import Any, Dict, Optional


class DevCamperError(Exception):
    """
    Base exception for all DevCamper application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DevCamperError):
    """
    Raised when client input cannot be used as given.

    When:    Malformed filter value, unknown filter/select/sort field,
             unsupported comparison operator, address that cannot be geocoded.
    HTTP:    400 Bad Request

    Example response:
        {
            "success": false,
            "error": "validation_error",
            "message": "Invalid value 'abc' for field 'tuition'",
            "details": {"field": "tuition", "value": "abc"}
        }
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


class DuplicateError(DevCamperError):
    """
    Raised when an insert or update violates a unique constraint
    (e.g. two bootcamps with the same name).

    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Duplicate field value entered",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(DevCamperError):
    """
    Raised when a requested record does not exist.

    Ids that are not valid UUIDs are reported the same way: from the
    client's point of view there is simply no record with that id.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource.capitalize()} not found with id of {resource_id}"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(DevCamperError):
    """
    Raised when the store fails unexpectedly (connection lost, timeout, ...).

    HTTP:    500 Internal Server Error
    The response message is always generic; details stay in the server log.
    Not retried by the application.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class GeocoderError(DevCamperError):
    """
    Raised when the geocoding provider fails after all retries.

    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "The geocoding service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(DevCamperError):
    """
    Raised when the geocoder circuit breaker is OPEN.

    After cb_failure_threshold consecutive failures, geocoding calls fail
    immediately until cb_recovery_timeout seconds have passed.
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "The geocoding service is temporarily unavailable due to repeated failures. "
            f"It will be retried in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
