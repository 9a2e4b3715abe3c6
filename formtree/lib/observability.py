"""Logging utilities for formtree.

Every record is tagged with the form it belongs to. The CLI binds the form
name once after loading a definition; engine modules keep using plain
``logging.getLogger(__name__)`` loggers and still get the tag, because the
handlers installed by setup_logging() carry a FormContextFilter.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

__all__ = [
    "FormContextFilter",
    "JSONFormatter",
    "bind_form",
    "current_form",
    "setup_logging",
]

NO_FORM = "-"

_current_form: ContextVar[Optional[str]] = ContextVar("formtree_form", default=None)

CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(form)s): %(message)s"


def bind_form(name: Optional[str]) -> None:
    """Tag subsequent log records with a form name (None clears it)."""
    _current_form.set(name)


def current_form() -> Optional[str]:
    return _current_form.get()


class FormContextFilter(logging.Filter):
    """Sets ``record.form`` from the bound form unless the call passed one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "form", None):
            record.form = current_form() or NO_FORM
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    ``form`` and, when a FormError was logged with ``extra={"error": ...}``,
    its ``to_dict()`` payload are top-level keys so log queries can filter
    on them directly.

    Example output:
        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "DEBUG",
         "logger": "formtree.lib.structure", "form": "contact",
         "message": "Resolved 3 visible field(s) from 2 root node(s)"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "form": getattr(record, "form", None) or current_form() or NO_FORM,
            "message": record.getMessage(),
        }

        error = getattr(record, "error", None)
        if error is not None:
            log_data["error"] = error

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
    log_file: Optional[str] = None,
    level: Optional[str] = None,
) -> None:
    """Configure the root logger.

    Logs go to stderr so command output on stdout stays machine-readable.

    Args:
        verbose: Enable debug-level logging (overrides level)
        json_format: Use JSON output format (for log aggregation)
        log_file: Optional file path to write logs to
        level: Level name to use when not verbose (default WARNING)
    """
    if verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.getLevelName((level or "WARNING").upper())
        if not isinstance(log_level, int):
            log_level = logging.WARNING

    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    context = FormContextFilter()
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        handler.addFilter(context)
        root_logger.addHandler(handler)
