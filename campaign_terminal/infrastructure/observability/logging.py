"""
Structured logging for the campaign terminal.

Every line is one JSON object on stdout. Per-request fields (request_id, the
resolved command) ride along through structlog contextvars, so handler and
provider logs can be joined back to the HTTP request that caused them.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory

SERVICE_NAME = "campaign-terminal"

QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structlog and the stdlib root handler.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL; unknown values fall back to INFO
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _stamp_service,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Request lines come from log_request; the client libraries are chatty at INFO
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _stamp_service(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def bind_request_context(**fields: Any) -> None:
    """Attach fields (request_id, command, ...) to every later line in this context."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """One line per HTTP request; 4xx/5xx at WARNING."""
    logger = get_logger("campaign_terminal.http")
    level = logger.warning if status_code >= 400 else logger.info
    level(
        "HTTP request finished",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
    )
