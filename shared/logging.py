"""
Structured JSON logging for the FeedBacks services.

Request and principal identifiers are bound through structlog's
contextvars, so every log line emitted while serving a request carries
them without threading a logger through the call stack.
"""

import logging
import sys
import uuid
from typing import Any, Dict, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, get_contextvars, merge_contextvars


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Route structlog through stdlib logging and render JSON lines on stdout."""

    def stamp_service(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            merge_contextvars,
            stamp_service,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False)
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind a request ID, generating one when the caller sent none."""
    request_id = request_id or uuid.uuid4().hex
    bind_contextvars(request_id=request_id)
    return request_id


def get_request_id() -> Optional[str]:
    return get_contextvars().get("request_id")


def set_principal_context(user_id: Optional[str] = None, is_anonymous: Optional[bool] = None):
    """Bind the requesting principal; unauthenticated callers log as ``user_id=None``."""
    bind_contextvars(user_id=user_id, is_anonymous=is_anonymous)


def clear_context():
    clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
