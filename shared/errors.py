"""
Shared error handling for the Catalog Cache-Aside Service.
"""

from typing import Dict, Any, Optional

from opentelemetry import trace
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class CatalogException(Exception):
    """Base exception for catalog services."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(CatalogException):
    """Invalid caller input."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(CatalogException):
    """Key absent in the backing store. Not an infrastructure failure."""

    status_code = 404

    def __init__(self, key: str, details: Optional[Dict[str, Any]] = None):
        self.key = key
        super().__init__("NOT_FOUND", f"No product found for key {key!r}", details or {"key": key})


class TransportError(CatalogException):
    """Cache or backing store connection/timeout failure."""

    def __init__(self, store: str, message: str = "Store unavailable", details: Optional[Dict[str, Any]] = None):
        self.store = store
        super().__init__("TRANSPORT_ERROR", f"{store}: {message}", details)


class RequestCancelledError(CatalogException):
    """The caller's deadline expired or the request was aborted."""

    status_code = 504

    def __init__(self, message: str = "Request cancelled", details: Optional[Dict[str, Any]] = None):
        super().__init__("REQUEST_CANCELLED", message, details)


class LoadGenerationError(CatalogException):
    """The concurrent request fan-out could not be scheduled."""

    def __init__(self, message: str = "Load generation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("LOAD_SCHEDULING_FAILED", message, details)


class PartialResetError(CatalogException):
    """Cache was flushed but the metric counters could not be reset."""

    def __init__(self, message: str = "Reset partially applied", details: Optional[Dict[str, Any]] = None):
        super().__init__("PARTIAL_RESET", message, details)
