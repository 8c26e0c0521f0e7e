"""
Custom Exception Classes for the VideoHub API.

This module defines the exception hierarchy used throughout the service. Every
error that can reach a caller is one of these classes, so the response layer
can turn it into the standard envelope with a predictable status code.

Key Components:
- `VideoHubException`: The base exception class. It carries a human-readable
  message, a stable `error_code`, an optional `details` dictionary, and a
  class-level `status_code`.
- Specific Exception Classes: `ValidationError` (400), `AuthenticationError`
  (401), `AuthorizationError` (403), `NotFoundError` (404), `ConflictError`
  (409), `DependencyError` (500) and `IntegrityError` (500).

Architectural Design:
- The status code lives on the class, not in a lookup table, so adding a new
  error kind is a single class definition.
- `details` is for logs only. The envelope sent to clients contains the
  message alone, so internal identifiers never leak.
"""

from typing import Optional, Dict, Any


class VideoHubException(Exception):
    """Base exception class for VideoHub API"""

    status_code = 500
    default_code = "VIDEOHUB_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(VideoHubException):
    """Raised when input is malformed or missing"""

    status_code = 400
    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = {}
        if field is not None:
            details = {"field": field, "value": str(value)}
        super().__init__(message, details=details)


class AuthenticationError(VideoHubException):
    """Raised when the caller is not authenticated"""

    status_code = 401
    default_code = "AUTHENTICATION_ERROR"

    def __init__(self, reason: str = "Unauthorized request"):
        super().__init__(reason, details={"reason": reason})


class AuthorizationError(VideoHubException):
    """Raised when the caller does not own the target entity"""

    status_code = 403
    default_code = "AUTHORIZATION_ERROR"


class NotFoundError(VideoHubException):
    """Raised when a referenced entity does not exist"""

    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any = None):
        super().__init__(
            f"{resource} not found.",
            details={"resource": resource, "identifier": str(identifier)},
        )


class ConflictError(VideoHubException):
    """Raised when a write violates a uniqueness rule"""

    status_code = 409
    default_code = "CONFLICT"


class DependencyError(VideoHubException):
    """Raised when an external collaborator (media store, token issuer) fails"""

    status_code = 500
    default_code = "DEPENDENCY_ERROR"

    def __init__(self, service: str, reason: str, message: Optional[str] = None):
        super().__init__(
            message or f"Service '{service}' failed: {reason}",
            details={"service": service, "reason": reason},
        )


class IntegrityError(VideoHubException):
    """Raised when a write could not be confirmed by a read-back"""

    status_code = 500
    default_code = "INTEGRITY_ERROR"
