"""
Structured logging for the costing engines.

Engines log through named loggers (``jewelcost-bom``, ``jewelcost-costing``,
``jewelcost-catalog``, ...) and attach catalog context via ``extra``:

    sku          product the message is about
    skipped      products/lines left out of a batch run
    duration_ms  wall time of a @timed batch operation

Both formatters render that context: JSON output nests it under
``"context"``, text output appends it as ``key=value`` pairs.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

CONTEXT_FIELDS = ("sku", "skipped", "duration_ms")


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, catalog context under ``context``."""
    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        context = record_context(record)
        if context:
            log_entry["context"] = context
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


class ContextTextFormatter(logging.Formatter):
    """Human-readable lines for local runs: ``... message | sku=XR2020``."""
    def __init__(self):
        super().__init__("%(asctime)s [%(name)s] %(levelname)s: %(message)s")

    def format(self, record):
        line = super().format(record)
        context = record_context(record)
        if context:
            line += " | " + " ".join(f"{key}={value}" for key, value in context.items())
        return line


def setup_logging(level: str = "INFO", json_output: bool = True, stream: Optional[TextIO] = None):
    """Configure application logging: one handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter() if json_output else ContextTextFormatter())
    root.handlers = [handler]


def configure_from_env():
    """Apply LOG_LEVEL / LOG_FORMAT (json|text) from the environment."""
    level = os.getenv("LOG_LEVEL", "INFO")
    json_output = os.getenv("LOG_FORMAT", "json").lower() != "text"
    setup_logging(level=level, json_output=json_output)
