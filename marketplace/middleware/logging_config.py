"""
Logging setup for the marketplace API.

One stderr handler on the root logger:
  production   → one JSON object per line
  development  → short coloured lines
  testing      → same as development, no start-up banner

``LOG_LEVEL`` overrides the level. Every record emitted while a request is
active carries that request's id and caller, so service-level lines
(``Specialist published id=…``) can be joined with the timing line.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

_CONTEXT_FIELDS = ("request_id", "user_id", "role")
_REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr")

_QUIET_LOGGERS = (
    "werkzeug", "sqlalchemy.engine", "urllib3", "botocore", "boto3", "s3transfer",
)


class RequestContextFilter(logging.Filter):
    """Attach request id / caller to records logged inside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            user = getattr(g, "current_user", None)
            if getattr(record, "request_id", None) is None:
                record.request_id = getattr(g, "request_id", None)
            if getattr(record, "user_id", None) is None:
                record.user_id = getattr(user, "id", None)
            if getattr(record, "role", None) is None:
                record.role = getattr(user, "role", None)
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key in _CONTEXT_FIELDS + _REQUEST_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"
        request_id = getattr(record, "request_id", None)
        if request_id:
            line += f" [{request_id}]"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install the root handler according to the app's config."""
    testing = app.config.get("TESTING", False)
    production = not testing and not app.config.get("DEBUG", False)

    level_name = os.getenv("LOG_LEVEL", "INFO" if production else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if production else ReadableFormatter())
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    # Re-running the factory (tests, reloader) must not stack handlers
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    app.logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if not testing:
        app.logger.info("Logging ready (level=%s, %s)", level_name,
                        "json" if production else "readable")
