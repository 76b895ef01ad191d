from __future__ import annotations

import logging
import sys

import structlog

from .context import get_request_id


def _add_request_id(_: logging.Logger, __: str, event_dict: dict) -> dict:
    rid = get_request_id()
    if rid:
        event_dict["request_id"] = rid
    return event_dict


_CONFIGURED = False


def configure_logging(*, level: str | int = "INFO") -> None:
    """
    Configure stdlib logging + structlog to output structured JSON to stdout.

    Idempotent: create_app() is called once per test, so only the first call
    installs handlers.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    if isinstance(level, str):
        level = level.strip().upper() or "INFO"

    pre_chain = [
        _add_request_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=pre_chain,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # Make uvicorn loggers flow through root so formatting is consistent.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        log = logging.getLogger(name)
        log.handlers = []
        log.propagate = True

    structlog.configure(
        processors=[
            _add_request_id,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: str | None = None):
    return structlog.get_logger(name)
