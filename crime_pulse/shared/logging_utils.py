"""
Crime Pulse - Logging Utilities

Process-wide logging setup driven by the ``logging`` config section, plus a
helper for compact JSON event lines.

Usage:
    from crime_pulse.shared.logging_utils import configure_logging, log_event

    configure_logging(get_config())
    log_event(logger, logging.INFO, "view_loaded", dataset="austin")
"""

from __future__ import annotations

import json
import logging
from typing import Any

from crime_pulse.shared.config import Settings

TEXT_FORMAT = "%(name)s - %(levelname)s - %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per record, including any ``extra`` context."""

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp
        self._reserved = set(vars(logging.makeLogRecord({})))

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if self.include_timestamp:
            payload["time"] = self.formatTime(record)
        for key, value in vars(record).items():
            if key not in self._reserved and key not in payload:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, sort_keys=True)


def configure_logging(config: Settings) -> None:
    """Apply the configured level and format to the root logger."""
    settings = config.logging
    handler = logging.StreamHandler()
    if settings.format == "json":
        handler.setFormatter(JsonFormatter(settings.include_timestamp))
    else:
        fmt = f"%(asctime)s - {TEXT_FORMAT}" if settings.include_timestamp else TEXT_FORMAT
        handler.setFormatter(logging.Formatter(fmt))

    logging.basicConfig(level=settings.level.upper(), handlers=[handler], force=True)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
