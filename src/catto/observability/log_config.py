"""
Logging setup driven by LOG_LEVEL / LOG_FORMAT.
"""

import json
import logging

from catto.config import LoggingSettings, get_settings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure the root logger. Safe to call more than once."""
    settings = settings or get_settings().logging

    handler = logging.StreamHandler()
    if settings.log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logging.basicConfig(level=settings.log_level, handlers=[handler], force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
