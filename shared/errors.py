"""
Shared error handling for the HQ Trucking Widget Gateway.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class GatewayException(Exception):
    """Base exception for gateway components."""

    error_code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(GatewayException):
    """Validation-related errors."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(self.error_code, message, details)


class UnknownWidgetError(GatewayException):
    """Widget id is not present in the registry."""

    error_code = "UNKNOWN_WIDGET"
    status_code = 404

    def __init__(self, widget_id: str, details: Optional[Dict[str, Any]] = None):
        self.widget_id = widget_id
        super().__init__(
            self.error_code,
            f"Widget '{widget_id}' not registered in gateway",
            details or {"widget_id": widget_id},
        )


class UnknownEndpointError(GatewayException):
    """The service router has no handler for the requested endpoint."""

    error_code = "UNKNOWN_ENDPOINT"
    status_code = 404

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(self.error_code, message, details)


class UpstreamFailureError(GatewayException):
    """A backend service failed while handling a dispatched request."""

    error_code = "UPSTREAM_FAILURE"
    status_code = 502

    def __init__(self, message: str = "Upstream service error", details: Optional[Dict[str, Any]] = None):
        super().__init__(self.error_code, message, details)


def status_code_for(code: Optional[str]) -> int:
    """HTTP status declared by the exception class that owns an error code."""
    pending = list(GatewayException.__subclasses__())
    while pending:
        cls = pending.pop()
        if cls.error_code == code:
            return cls.status_code
        pending.extend(cls.__subclasses__())
    return GatewayException.status_code
