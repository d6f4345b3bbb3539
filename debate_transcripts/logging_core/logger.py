# debate_transcripts/logging_core/logger.py
"""
Centralized structured logging for the transcript acquisition pipeline.

Every log line is a JSON object with mandatory fields:
- timestamp (ISO, UTC)
- level
- message
- run_id (one per acquisition request)
- stage_name (optional, filled by caller)
- event_type (start/success/failure/degraded/pipeline_*)
- metadata (dict)

All modules MUST log through get_logger() + log_event().
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Tuple
from uuid import UUID


BASE_LOGGER_NAME = "debate_transcripts"


class JSONFormatter(logging.Formatter):
    """Custom formatter that outputs structured JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
        }

        if hasattr(record, "run_id"):
            log_record["run_id"] = str(record.run_id)

        for field in ("stage_name", "event_type", "metadata"):
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class RunLoggerAdapter(logging.LoggerAdapter):
    """Binds run_id to every record while keeping per-call extra fields."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def configure_logging(level: int = logging.INFO, stream=None) -> logging.Logger:
    """
    Attach the JSON handler to the package logger.

    Idempotent: calling it again only updates the level.
    """
    base = logging.getLogger(BASE_LOGGER_NAME)
    base.setLevel(level)
    base.propagate = False

    if not base.handlers:
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(JSONFormatter())
        base.addHandler(handler)

    return base


def get_logger(run_id: UUID | str) -> RunLoggerAdapter:
    """
    Return a logger bound to one acquisition run.

    Adapters are cheap and not cached; the underlying handler is configured once.
    """
    base = logging.getLogger(BASE_LOGGER_NAME)
    if not base.handlers:
        configure_logging()
    return RunLoggerAdapter(base, {"run_id": str(run_id)})


def log_event(
    logger: logging.Logger | logging.LoggerAdapter,
    level: int,
    message: str,
    *,
    stage_name: str | None = None,
    event_type: str,
    metadata: Dict[str, Any] | None = None,
) -> None:
    """
    Convenience wrapper for structured logging.

    Use this inside stages and strategies for consistency.
    """
    extra: Dict[str, Any] = {"event_type": event_type}
    if stage_name:
        extra["stage_name"] = stage_name
    if metadata:
        extra["metadata"] = metadata

    logger.log(level, message, extra=extra)


# High-Level Intent
# One structured logging facility for the whole acquisition pipeline.
# Logs are JSON lines so an external-API outage can be traced per run_id
# without attaching a debugger.

# Data Flow
# runner.acquire_transcript() creates a run_id → get_logger(run_id)
# → the adapter is passed down through the StrategyContext
# → strategies and stages call log_event(logger, level, msg, stage_name=..., event_type=...)

# Edge Cases
# Credentials are never placed in metadata.
# Metadata values that are not JSON-serializable are stringified (default=str).
