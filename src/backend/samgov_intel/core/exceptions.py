"""
Custom exception classes for the application.

Provides structured error handling with consistent error codes
and HTTP status mappings.
"""

from typing import Any


class AppException(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for client handling
        status_code: HTTP status code to return
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str = "APP_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }


class EntityNotFoundException(AppException):
    """Raised when a requested entity is not found."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = f"{entity_type} not found"
        if entity_id:
            message = f"{entity_type} with id '{entity_id}' not found"
        super().__init__(message, "ENTITY_NOT_FOUND", 404, details)


# Validation / access
class ValidationException(AppException):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: dict[str, list[str]] | None = None,
    ) -> None:
        super().__init__(message, "VALIDATION_ERROR", 400, {"field_errors": field_errors or {}})


class AuthenticationException(AppException):
    """Raised when a caller presents a missing or wrong API key."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, "UNAUTHORIZED", 401)


class ForbiddenException(AppException):
    """Raised when a caller is not allowed to trigger an operation."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message, "FORBIDDEN", 403)


class ServiceNotConfiguredException(AppException):
    """Raised when an operation needs a setting that is not configured."""

    def __init__(self, setting: str, message: str | None = None) -> None:
        super().__init__(
            message or f"{setting} is not configured",
            "SERVICE_NOT_CONFIGURED",
            503,
            {"setting": setting},
        )


# Parsing
class RecordParseError(AppException):
    """Raised when a single upstream record cannot be normalized."""

    def __init__(self, record_type: str, reason: str, record_key: str | None = None) -> None:
        details: dict[str, Any] = {"record_type": record_type}
        if record_key:
            details["record_key"] = record_key
        super().__init__(f"Malformed {record_type} record: {reason}", "RECORD_PARSE_ERROR", 502, details)


# External Service Exceptions
class ExternalServiceException(AppException):
    """Raised when an external service call fails."""

    def __init__(
        self,
        service_name: str,
        message: str = "External service call failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"{service_name}: {message}",
            "EXTERNAL_SERVICE_ERROR",
            503,
            {"service": service_name, **(details or {})},
        )


class SamGovApiException(ExternalServiceException):
    """Raised when the SAM.gov API answers with a non-success status."""

    def __init__(self, endpoint: str, upstream_status: int, body: str = "") -> None:
        self.upstream_status = upstream_status
        super().__init__(
            "SAM.gov",
            f"{endpoint} API error: {upstream_status} - {body[:500]}",
            {"endpoint": endpoint, "upstream_status": upstream_status},
        )

    @property
    def retryable(self) -> bool:
        """Client errors (4xx) mean the request itself is wrong and are not retried."""
        return not 400 <= self.upstream_status < 500


class NotificationException(ExternalServiceException):
    """Raised when a notification e-mail cannot be delivered."""

    def __init__(
        self,
        message: str = "Notification delivery failed",
        upstream_status: int | None = None,
        hint: str | None = None,
    ) -> None:
        self.upstream_status = upstream_status
        details: dict[str, Any] = {"upstream_status": upstream_status}
        if hint:
            details["hint"] = hint
        super().__init__("MicrosoftGraph", message, details)
