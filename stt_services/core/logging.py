"""
Logging configuration for the transcription service

Records go through a redaction filter before formatting, so provider keys
and bearer tokens that end up in exception messages are masked.
"""

import datetime
import json
import logging
import re
import sys
from typing import IO, Optional

NOISY_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")

_SECRET_PATTERNS = (
    re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+", re.IGNORECASE),
    re.compile(r"\b(sk-|gsk_|sk-ant-)[A-Za-z0-9_\-]{4,}"),
)


def redact(text: str) -> str:
    """Mask anything that looks like an API key or bearer token"""
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(lambda m: f"{m.group(1)}***", text)
    return text


class SecretRedactionFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record"""

    def __init__(self, service_name: Optional[str] = None):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if self.service_name:
            log_entry["service"] = self.service_name

        if record.exc_info:
            log_entry["exception"] = redact(self.formatException(record.exc_info))

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        return json.dumps(log_entry, default=str)


def configure_logging(
    level: str = "INFO",
    format_type: str = "json",
    service_name: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """
    Configure root logging

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format_type: Format type ("json" or "text")
        service_name: Service name to include in logs
        stream: Output stream, stdout if None
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)

    if format_type == "json":
        formatter = JsonFormatter(service_name)
    else:
        prefix = f"{service_name}." if service_name else ""
        formatter = logging.Formatter(f"%(asctime)s [%(levelname)s] {prefix}%(name)s: %(message)s")

    handler.setFormatter(formatter)
    handler.setLevel(log_level)
    handler.addFilter(SecretRedactionFilter())

    root.setLevel(log_level)
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class ExtraFieldsAdapter(logging.LoggerAdapter):
    """Attaches a fixed set of structured fields to every record"""

    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        extra["extra_fields"] = {**self.extra, **extra.get("extra_fields", {})}
        return msg, kwargs


def get_logger(name: str, extra_fields: Optional[dict] = None) -> logging.Logger:
    """
    Get a logger with optional extra fields for structured logging

    Args:
        name: Logger name
        extra_fields: Extra fields to include in all log messages

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if extra_fields:
        return ExtraFieldsAdapter(logger, extra_fields)

    return logger
