# feeflow/core/logging_config.py - Logging setup driven by settings
import json
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from feeflow.core.config import Settings, settings as default_settings

FORMATS = {
    "simple": "%(levelname)s - %(message)s",
    "detailed": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shippers"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter()
    return logging.Formatter(FORMATS.get(log_format, FORMATS["detailed"]))


def configure_logging(config: Optional[Settings] = None) -> None:
    """Configure the root logger from LOG_* settings. Safe to call more than once."""
    config = config or default_settings
    formatter = _build_formatter(config.LOG_FORMAT)

    root = logging.getLogger()
    root.setLevel(config.LOG_LEVEL)

    for handler in list(root.handlers):
        if getattr(handler, "_feeflow", False):
            root.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler._feeflow = True
    root.addHandler(stream_handler)

    if config.LOG_FILE_PATH:
        file_handler = RotatingFileHandler(
            config.LOG_FILE_PATH,
            maxBytes=config.LOG_MAX_SIZE,
            backupCount=config.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler._feeflow = True
        root.addHandler(file_handler)

    # SQL echo is controlled by DATABASE_ECHO, keep the engine logger quiet otherwise
    if not config.DATABASE_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def mask_contact(value: Optional[str], visible_chars: int = 4) -> str:
    """
    Mask an email address or phone number for log output.

    Emails keep the first character of the local part and the domain;
    anything else keeps only its last few characters.
    """
    if not value:
        return ""
    if "@" in value:
        local, _, domain = value.partition("@")
        return f"{local[:1]}***@{domain}"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return "*" * (len(value) - visible_chars) + value[-visible_chars:]
