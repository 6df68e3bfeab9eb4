"""Structured logging helpers shared across getter components."""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from .settings import LoggingSettings

__all__ = ["JSONFormatter", "mask_sensitive_data", "redact_url", "setup_logging"]

LOGGER_NAME = "ArtifactGet"

_SENSITIVE_KEYS = {"authorization", "api_key", "apikey", "token", "secret", "password"}
_USERINFO_PATTERN = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)[^/@\s]+@")
_RECORD_FIELDS = (
    "stage",
    "url",
    "method",
    "status",
    "elapsed_ms",
    "destination",
    "source",
    "subdir",
    "channel",
    "range",
    "bytes",
    "format",
    "files",
    "error",
)


def redact_url(url: str) -> str:
    """Return ``url`` with any user info replaced by ``***``."""

    parts = urlsplit(url)
    if "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit(parts._replace(netloc=f"***@{host}"))


def mask_sensitive_data(payload: Dict[str, object]) -> Dict[str, object]:
    """Return a copy of ``payload`` with common secret fields masked."""

    masked: Dict[str, object] = {}
    for key, value in payload.items():
        if key.lower() in _SENSITIVE_KEYS:
            masked[key] = "***masked***"
        elif isinstance(value, str):
            masked[key] = _USERINFO_PATTERN.sub(r"\g<scheme>***@", value)
        else:
            masked[key] = value
    return masked


class JSONFormatter(logging.Formatter):
    """Formatter emitting masked JSON log entries.

    Examples:
        >>> formatter = JSONFormatter()
        >>> isinstance(formatter.format(logging.makeLogRecord({'msg': 'test'})), str)
        True
    """

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a JSON string with getter-specific fields."""

        now = datetime.now(timezone.utc)
        payload: Dict[str, object] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _RECORD_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value if isinstance(value, (int, float, bool)) else str(value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(payload))


def setup_logging(
    settings: Optional[LoggingSettings] = None,
    *,
    log_dir: Optional[Path] = None,
    propagate: bool = False,
) -> logging.Logger:
    """Configure the ``ArtifactGet`` logger with console and optional JSON output.

    Args:
        settings: Logging configuration; defaults are used when omitted.
        log_dir: Overrides ``settings.log_dir`` for the JSON file handler.
        propagate: Whether records also reach the root logger.

    Returns:
        The configured package logger.
    """

    config = settings or LoggingSettings()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.level_int())

    for handler in list(logger.handlers):
        if getattr(handler, "_artifactget_managed", False):
            logger.removeHandler(handler)
            stream = getattr(handler, "stream", None)
            if stream not in (sys.stdout, sys.stderr):
                handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler._artifactget_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    resolved_dir = log_dir or config.log_dir
    if resolved_dir is not None and config.emit_json_logs:
        resolved_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_handler = RotatingFileHandler(
            resolved_dir / f"artifact-get-{today}.jsonl",
            maxBytes=int(config.max_log_size_mb * 1024 * 1024),
            backupCount=5,
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._artifactget_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = propagate
    return logger
