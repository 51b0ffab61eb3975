"""JSON log output for the CLI and the REST server.

Every record becomes a single JSON line on stdout. Workflow code attaches
request ids, domains and actors through `extra=`; those land in an "extra"
object instead of being formatted into the message.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; anything else on a record came from `extra=`.
_STANDARD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        name: value
        for name, value in vars(record).items()
        if name not in _STANDARD_ATTRS and not name.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per record: time, level, logger, message, extras, traceback."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = _extra_fields(record)
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)

        # Extras may hold paths, enums or exceptions.
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(level: str) -> None:
    """Send all logging to stdout as JSON at `level` (e.g. "INFO", "debug")."""

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)

    stdout = logging.StreamHandler(stream=sys.stdout)
    stdout.setFormatter(JsonFormatter())
    root.addHandler(stdout)
    root.setLevel(level.upper())

    # urllib3 logs every connection the network backend opens.
    logging.getLogger("urllib3").setLevel(max(root.level, logging.INFO))
