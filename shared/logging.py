"""
Shared logging configuration for the Catalog Cache-Aside Service.

Log lines are structlog events rendered as JSON on stdout. Per-request
correlation (request id, matched route) lives in structlog's contextvars so
it follows the request across awaits and into child tasks.
"""

import sys
import logging
import uuid
from typing import Any, Callable, Dict, Optional

import structlog
from opentelemetry import trace

REQUEST_ID_KEY = "request_id"
ROUTE_KEY = "route"

Processor = Callable[[Any, str, Dict[str, Any]], Dict[str, Any]]


def configure_logging(service_name: str, log_level: str = "info", json_logs: bool = True) -> None:
    """Configure structured logging for a service."""
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            service_context(service_name),
            add_trace_context,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def service_context(service_name: str) -> Processor:
    """Processor stamping every event with the owning service."""

    def add_service(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return add_service


def add_trace_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add the active OpenTelemetry trace/span ids, if any."""
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        span_context = current_span.get_span_context()
        if span_context.trace_id != 0:
            event_dict["trace_id"] = f"{span_context.trace_id:032x}"
        if span_context.span_id != 0:
            event_dict["span_id"] = f"{span_context.span_id:016x}"

    return event_dict


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind a request id (generated when absent) to the current context."""
    if not request_id:
        request_id = str(uuid.uuid4())
    structlog.contextvars.bind_contextvars(**{REQUEST_ID_KEY: request_id})
    return request_id


def get_request_id() -> Optional[str]:
    return structlog.contextvars.get_contextvars().get(REQUEST_ID_KEY)


def set_route(route: Optional[str]) -> None:
    """Bind the matched route template, e.g. ``/cache/{sku}``."""
    if route:
        structlog.contextvars.bind_contextvars(**{ROUTE_KEY: route})
    else:
        structlog.contextvars.unbind_contextvars(ROUTE_KEY)


def clear_context():
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, conventionally named ``<service>.<component>``."""
    return structlog.get_logger(name)
