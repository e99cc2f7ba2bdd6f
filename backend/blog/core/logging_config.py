"""
Security-focused logging configuration with JSON formatting and correlation IDs.
"""

import logging
import sys
import uuid
from typing import Optional
from datetime import datetime, timezone
from pythonjsonlogger import jsonlogger
from contextvars import ContextVar
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# Context variable for correlation ID (thread-safe)
correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)

AUDIT_LOGGER_NAME = "security.audit"
CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to log records."""

    def filter(self, record):
        record.correlation_id = correlation_id_var.get() or "none"
        return True


class SecurityJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding the fields the audit pipeline indexes on.

    Extra attributes passed through ``extra=`` (event_type, user_id, ...) are
    emitted by the base formatter as top-level keys.
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = (
            datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        )
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["correlation_id"] = getattr(record, "correlation_id", "none")
        log_record["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        # Group request context under a single key
        if "request_method" in log_record:
            log_record["request"] = {
                "method": log_record.pop("request_method"),
                "path": log_record.pop("request_path", "unknown"),
            }


def setup_security_logging(level: int = logging.INFO):
    """Configure structured JSON logging for security events."""

    formatter = SecurityJsonFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    # Route uvicorn output through the same JSON handler
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(console_handler)
        uvicorn_logger.propagate = False

    security_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    security_logger.setLevel(logging.INFO)

    return security_logger


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation IDs to requests."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())

        correlation_id_var.set(correlation_id)
        request.state.correlation_id = correlation_id

        response = await call_next(request)

        response.headers[CORRELATION_HEADER] = correlation_id

        return response


def log_security_event(
    event_type: str,
    message: str,
    level: int = logging.INFO,
    user_id: Optional[str] = None,
    username: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    request_method: Optional[str] = None,
    request_path: Optional[str] = None,
    event_category: str = "security",
    **extra_fields,
):
    """
    Write one structured event to the audit logger.

    ``event_type`` is a dotted name such as ``auth.login.failure`` or
    ``post.forbidden``. Context arguments left as None are omitted from the
    record; ``extra_fields`` (post_id, ...) are emitted as-is.
    """
    context = {
        "user_id": user_id,
        "username": username,
        "ip_address": ip_address,
        "user_agent": user_agent,
        "request_method": request_method,
        "request_path": request_path,
    }

    extra = {"event_type": event_type, "event_category": event_category}
    extra.update({key: value for key, value in context.items() if value})
    extra.update(extra_fields)

    logging.getLogger(AUDIT_LOGGER_NAME).log(level, message, extra=extra)


def log_request_event(request: Request, event_type: str, message: str, **kwargs):
    """Shortcut for :func:`log_security_event` filled from the current request."""
    log_security_event(
        event_type=event_type,
        message=message,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        request_method=request.method,
        request_path=request.url.path,
        **kwargs,
    )


def get_client_ip(request: Request) -> str:
    """Extract client IP address from request, considering proxies."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP (original client)
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"
