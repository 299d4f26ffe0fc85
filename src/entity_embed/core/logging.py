"""
Logging utilities for the entity embedding trainer.

Worker threads attach their context (run id and shard rank) through the
``extra`` argument so that interleaved log lines from the pool can be
attributed to a shard.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional


CONTEXT_FIELDS = ("run_id", "worker_rank", "records_read", "records_written")


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs JSON-structured log lines.

    Each log line includes:
    - Standard log fields (timestamp, level, message, logger, thread)
    - Worker context fields if present (run_id, worker_rank, counters)
    """

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_entry = {
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        if self.include_timestamp:
            log_entry["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter that outputs human-readable log lines with worker context.

    Format: TIMESTAMP [LEVEL] LOGGER - MESSAGE [run_id=X worker_rank=Y]
    """

    def __init__(self, include_timestamp: bool = True):
        if include_timestamp:
            fmt = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
        else:
            fmt = "[%(levelname)s] %(name)s - %(message)s"
        super().__init__(fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)

        context_parts = []
        for field in ("run_id", "worker_rank"):
            value = getattr(record, field, None)
            if value is not None:
                context_parts.append(f"{field}={value}")

        if context_parts:
            return f"{base} [{' '.join(context_parts)}]"
        return base


def configure_logging(
    level: int = logging.INFO,
    structured: bool = False,
    include_timestamp: bool = True,
) -> None:
    """
    Configure logging for the entity_embed package.

    Args:
        level: Logging level (default: INFO)
        structured: If True, output JSON-structured logs; if False, human-readable
        include_timestamp: Whether to include timestamp in log messages
    """
    package_logger = logging.getLogger("entity_embed")
    package_logger.setLevel(level)

    # Only add handler if none exist (avoid duplicate handlers)
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        package_logger.addHandler(handler)

    for handler in package_logger.handlers:
        handler.setLevel(level)
        if structured:
            handler.setFormatter(StructuredFormatter(include_timestamp=include_timestamp))
        else:
            handler.setFormatter(HumanReadableFormatter(include_timestamp=include_timestamp))


def worker_context(run_id: Optional[str], rank: int, **extra) -> dict:
    """Build the ``extra`` mapping used by worker log calls."""
    context = {"run_id": run_id, "worker_rank": rank}
    context.update(extra)
    return context
