"""Entry formatter: turns log events into newline-delimited JSON lines.

The dispatcher concatenates entries verbatim, so every line produced here must
carry its own trailing newline.
"""

import datetime
import json
import logging


def format_ndjson(entry: dict) -> str:
    """Serialize a dict to compact JSON followed by a newline."""
    return json.dumps(entry, separators=(",", ":"), default=str) + "\n"


def record_to_dict(record: logging.LogRecord) -> dict:
    """Flatten a LogRecord into the fields OpenObserve indexes.

    ``_timestamp`` is in microseconds since the epoch, which is what the
    ingestion API expects for that column.
    """
    data = {
        "_timestamp": int(record.created * 1_000_000),
        "time": datetime.datetime.fromtimestamp(
            record.created, tz=datetime.timezone.utc
        ).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    if record.exc_info:
        data["exception"] = logging.Formatter().formatException(record.exc_info)
    extra = getattr(record, "metadata", None)
    if isinstance(extra, dict):
        data.update(extra)
    return data


def format_record(record: logging.LogRecord) -> str:
    """Format a LogRecord as a single NDJSON line."""
    return format_ndjson(record_to_dict(record))
