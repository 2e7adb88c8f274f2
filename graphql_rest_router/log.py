"""
Logging setup for graphql_rest_router services.

Library code only creates loggers; handlers and formatters are installed by
applications, usually through :func:`setup_logging`.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO, Union

from .models import LogLevel

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

ROUTE_LOGGER_PREFIX = "graphql_rest_router.route."

_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


class StructuredFormatter(logging.Formatter):
    """
    Render records as one JSON object per line.

    Records from route loggers carry the operation name, taken from the
    logger name. Values passed through ``extra=`` are grouped under
    ``context``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        if record.name.startswith(ROUTE_LOGGER_PREFIX):
            entry["operation"] = record.name[len(ROUTE_LOGGER_PREFIX):]

        context = {key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRIBUTES}
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(
    level: Union[LogLevel, str] = LogLevel.INFO,
    structured: bool = False,
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """
    Configure the root logger with a single console handler.

    Calling it again replaces the handler installed by the previous call.

    Args:
        level: Root log level; ``SILENT`` disables output
        structured: Emit one JSON object per record
        stream: Output stream, stdout by default

    Returns:
        The installed handler
    """
    log_level = LogLevel(level.upper() if isinstance(level, str) else level).to_logging_level()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredFormatter() if structured else logging.Formatter(DEFAULT_FORMAT))
    handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    return handler


__all__ = ["StructuredFormatter", "setup_logging", "DEFAULT_FORMAT", "ROUTE_LOGGER_PREFIX"]
