"""
camunda8_sdk.tier0_core.logging
────────────────────────────────
Structured logs with levels, contextvars injection (worker, job_key, ...),
and redaction of credentials and tokens before output.

Minimal stack: structlog (stdout JSON or console)
Configure via: CAMUNDA_LOG_LEVEL=error|warn|info|debug|trace,
               CAMUNDA_LOG_FORMAT=json|console
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog


_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}


# ── Configuration ─────────────────────────────────────────────────────────────

def _configure_structlog() -> None:
    log_level = _LEVELS.get(os.getenv("CAMUNDA_LOG_LEVEL", "info").lower(), logging.INFO)
    log_format = os.getenv("CAMUNDA_LOG_FORMAT", "json").lower()

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _redact_processor,
    ]

    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    sdk_logger = logging.getLogger("camunda8_sdk")
    sdk_logger.addHandler(handler)
    sdk_logger.setLevel(log_level)
    sdk_logger.propagate = False


# ── Redaction processor ───────────────────────────────────────────────────────

_REDACT_KEYS = frozenset({
    "password", "secret", "token", "authorization", "access_token",
    "client_secret", "private_key", "basic_auth_password",
})

_REDACTED = "[REDACTED]"


def _redact_processor(
    logger: Any, method: str, event_dict: dict
) -> dict:
    """Strip credentials and bearer tokens from log records before output."""
    for key in list(event_dict.keys()):
        if key.lower() in _REDACT_KEYS:
            event_dict[key] = _REDACTED
    return event_dict


def truncate_secret(value: str | None, keep: int = 15) -> str | None:
    """Shorten a header value so only its prefix reaches debug logs."""
    if not value or len(value) <= keep:
        return value
    return f"{value[:keep]}..."


# ── Public API ────────────────────────────────────────────────────────────────

_configured = False


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Return a structured logger bound to the given name.

    Usage:
        log = get_logger(__name__)
        log.info("worker.started", worker="payments", job_type="charge")
        log.error("job.failed", job_key="2251799813685249", error="boom")
    """
    global _configured
    if not _configured:
        _configure_structlog()
        _configured = True
    return structlog.get_logger(name or "camunda8_sdk")


def bind_context(**kwargs: Any) -> None:
    """Bind key-value pairs to every log call in the current async context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


__all__ = ["get_logger", "bind_context", "clear_context", "truncate_secret"]
