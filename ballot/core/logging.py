"""
Logging setup.
Configures the standard library root logger from settings once at startup.
"""
import json
import logging
import sys

from ballot.config import settings


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name (defaults to settings.log_level)
        log_format: "json" or "text" (defaults to settings.log_format)
    """
    level = (level or settings.log_level).upper()
    log_format = (log_format or settings.log_format).lower()

    handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"
        ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # SQL echo is controlled by settings.debug, not the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
