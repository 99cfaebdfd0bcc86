"""
pg_provisioner.observability.logging

Structured logging configuration.

Responsibilities:
- Configure `structlog` for JSON logs (or console output during development).
- Provide a small wrapper for obtaining bound loggers.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def configure_logging(*, service_name: str, level: str, json_logs: bool = True) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Logs go to stderr so that stdout stays free for rendered artifacts when the
# builders are driven from scripts.
