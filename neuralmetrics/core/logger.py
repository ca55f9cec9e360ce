"""Structured logging.

Log calls pass a snake_case event name as the message and context through
``extra=``. In JSON mode each record is rendered as one object per line with
that context flattened beside the event; keys that look like credentials are
masked at any depth. Development and testing environments get plain text.
"""

from __future__ import annotations

import json
import logging
import os
import socket
import traceback
from datetime import datetime, timezone
from typing import Any, Iterable

from .config import Environment, settings

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
REDACTED = "[REDACTED]"

# Standard LogRecord attributes left out of the JSON object.
_SKIPPED_ATTRS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


def redact(value: Any, patterns: Iterable[str]) -> Any:
    """Mask every mapping entry whose key contains one of ``patterns``."""
    patterns = tuple(patterns)
    if not isinstance(value, dict):
        return value
    return {
        key: (
            REDACTED
            if any(p in str(key).lower() for p in patterns)
            else redact(item, patterns)
        )
        for key, item in value.items()
    }


def _describe_exception(exc_info) -> dict:
    exc_type, exc, tb = exc_info
    return {
        "type": exc_type.__name__,
        "message": str(exc),
        "stack": traceback.format_tb(tb),
    }


class JsonFormatter(logging.Formatter):
    def __init__(
        self, service: str, environment: str, redaction_patterns: Iterable[str]
    ):
        super().__init__()
        self.redaction_patterns = tuple(p.lower() for p in redaction_patterns)
        self.static_fields = {
            "service": service,
            "environment": environment,
            "hostname": socket.gethostname(),
            "pid": os.getpid(),
        }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        context = {k: v for k, v in vars(record).items() if k not in _SKIPPED_ATTRS}
        level = context.pop("levelname", record.levelname)
        name = context.pop("name", record.name)
        payload = {
            **context,
            **self.static_fields,
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc
            ).isoformat(),
            "level": level,
            "logger": name,
            "event": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = _describe_exception(record.exc_info)
        return json.dumps(redact(payload, self.redaction_patterns), default=str)


class RedactingFilter(logging.Filter):
    """Blanks out a whole record whose rendered message mentions a secret."""

    def __init__(self, patterns: Iterable[str]):
        super().__init__()
        self.patterns = tuple(p.lower() for p in patterns)

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if any(p in record.getMessage().lower() for p in self.patterns):
            record.msg = "[REDACTED SENSITIVE LOG CONTENT]"
            record.args = ()
        return True


_configured = False


def configure_logging(
    level: str | None = None,
    json_output: bool | None = None,
    force: bool = False,
) -> logging.Logger:
    """Install a single stream handler on the root logger.

    Runs once per process unless ``force`` is set; later calls return the
    already configured root logger.
    """
    global _configured
    root = logging.getLogger()
    if _configured and not force:
        return root

    if json_output is None:
        json_output = not Environment.wants_text_logs(settings.app_environment)
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(
            JsonFormatter(
                settings.service_name,
                settings.app_environment,
                settings.app_log_redaction_patterns,
            )
        )
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler.addFilter(RedactingFilter(settings.app_log_redaction_patterns))

    root.handlers = [handler]
    root.setLevel(
        getattr(logging, (level or settings.app_log_level).upper(), logging.INFO)
    )
    _configured = True
    return root


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
