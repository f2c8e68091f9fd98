# logging_config.py
import json
import logging
import traceback
from datetime import datetime

from .settings import settings

_RESERVED = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "exc_info", "exc_text",
    "stack_info", "taskName", "message",
}


class StructuredFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }
        extra = {k: v for k, v in record.__dict__.items() if k not in _RESERVED}
        if extra:
            log_data["extra"] = extra
        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(level: str | None = None, debug: bool | None = None) -> logging.Logger:
    """Attach a console handler to the package logger and return it."""
    level = (level or settings.LOG_LEVEL).upper()
    debug = settings.DEBUG if debug is None else debug

    logger = logging.getLogger("svcportal")
    logger.setLevel(getattr(logging, level, logging.INFO))
    logger.handlers.clear()

    handler = logging.StreamHandler()
    if debug:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s [%(filename)s:%(lineno)d]"
        ))
    else:
        handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)
    return logger
