"""
Shared error handling for the StudyMate gateway.
"""

from enum import Enum
from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class StudyMateError(Exception):
    """Base exception for gateway errors."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(StudyMateError):
    """Startup-time configuration errors. Fatal."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None,
                 code: str = "CONFIGURATION_ERROR"):
        super().__init__(code, message, details)


class UnknownServiceError(ConfigurationError):
    """Raised when a logical service name is not registered."""

    def __init__(self, service_name: str):
        self.service_name = service_name
        super().__init__(
            f"Unknown service: {service_name}",
            details={"service": service_name},
            code="UNKNOWN_SERVICE"
        )


class MissingCredentialError(ConfigurationError):
    """Raised when neither an override nor a default API key is configured."""

    def __init__(self, service_name: str):
        self.service_name = service_name
        super().__init__(
            f"No API key configured for service: {service_name}",
            details={"service": service_name},
            code="MISSING_CREDENTIAL"
        )


class RoutingError(StudyMateError):
    """Client-caused request errors: unknown operation or malformed payload."""

    status_code = 400

    def __init__(self, message: str = "Request could not be routed", details: Optional[Dict[str, Any]] = None,
                 status_code: Optional[int] = None):
        super().__init__("ROUTING_ERROR", message, details)
        if status_code is not None:
            self.status_code = status_code


class AuthenticationError(StudyMateError):
    """Authentication-related errors."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class UpstreamErrorKind(str, Enum):
    """Transport failure categories."""
    TIMEOUT = "TIMEOUT"
    REFUSED = "REFUSED"
    HTTP_STATUS = "HTTP"
    MALFORMED_BODY = "MALFORMED_BODY"


class UpstreamError(StudyMateError):
    """Infrastructure-caused failure talking to an upstream service.

    Never rendered to callers: the router absorbs it into a fallback response.
    """

    status_code = 502

    def __init__(self, service: str, kind: UpstreamErrorKind, message: str = "Upstream call failed",
                 status: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        self.service = service
        self.kind = kind
        self.status = status
        details = dict(details or {})
        details.update({"service": service, "kind": self.label})
        super().__init__("UPSTREAM_ERROR", f"{service}: {message}", details)

    @property
    def label(self) -> str:
        """Kind label, e.g. ``TIMEOUT`` or ``HTTP_503``."""
        if self.kind == UpstreamErrorKind.HTTP_STATUS:
            return f"HTTP_{self.status}"
        return self.kind.value

    @property
    def retryable(self) -> bool:
        """Whether repeating an idempotent request could succeed."""
        if self.kind in (UpstreamErrorKind.TIMEOUT, UpstreamErrorKind.REFUSED):
            return True
        if self.kind == UpstreamErrorKind.HTTP_STATUS:
            return self.status is not None and (self.status >= 500 or self.status == 429)
        return False
