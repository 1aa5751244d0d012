"""JSON log output for mkv2dv8.

Records are flattened into one JSON object per line. Conversion failures
are reported with the stage, tool and exit status of the tool that failed,
taken either from the record's exception or from an ``error`` extra.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from mkv2dv8.errors import StageError

# Attributes every LogRecord has, plus the ones our own filters add
_RESERVED: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", None, None))
) | {"message", "asctime", "taskName", "job_name", "job_id", "job_tag", "error"}


def _stage_error(record: logging.LogRecord) -> StageError | None:
    error = getattr(record, "error", None)
    if isinstance(error, StageError):
        return error
    if record.exc_info and isinstance(record.exc_info[1], StageError):
        return record.exc_info[1]
    return None


class JSONFormatter(logging.Formatter):
    """Format log records as JSON objects.

    Keys, when present:
    - timestamp, level, logger, message
    - job: name and id of the conversion in progress
    - failure: stage, tool, returncode and error type of a failed tool
    - context: any other ``extra`` values
    - exception: formatted traceback
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        record_time = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": record_time.isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.name and record.name != "root":
            entry["logger"] = record.name

        job_name = getattr(record, "job_name", None)
        if job_name:
            entry["job"] = {"name": job_name, "id": getattr(record, "job_id", None)}

        error = _stage_error(record)
        if error is not None:
            entry["failure"] = {
                "stage": error.stage,
                "tool": error.tool,
                "returncode": error.returncode,
                "type": type(error).__name__,
            }

        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED and not key.startswith("_")
        }
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
