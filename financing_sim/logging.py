"""Logging configuration for the financing simulator."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

PROJECT_LOGGERS = ("financing_sim", "financing_sim_web")

# SQLAlchemy echoes every statement at INFO, werkzeug every request
QUIET_LOGGERS = ("sqlalchemy", "werkzeug")


def setup_logging(level: str = "INFO", format_type: str = "standard") -> None:
    """Install one stdout handler on the root logger.

    ``format_type`` is ``"standard"`` for pipe-separated text or ``"json"``
    for one JSON object per line. Unknown levels fall back to INFO.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers[:] = [handler]

    for name in PROJECT_LOGGERS:
        logging.getLogger(name).setLevel(log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class JsonFormatter(logging.Formatter):
    """Render a record as a JSON object with timestamp, level, logger and message."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
