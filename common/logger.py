"""Unified logger with request_id tracing."""
import logging
import uuid
from contextvars import ContextVar

from config.settings import LOG_LEVEL

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIdFilter(logging.Filter):
    """Stamps every record with the request id of the current task context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter(
            "[%(asctime)s] [%(request_id)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(fmt)
        handler.addFilter(RequestIdFilter())
        logger.addHandler(handler)
        logger.setLevel(LOG_LEVEL.upper())
    return logger


def new_request_id() -> str:
    """Start a new request context; asyncio tasks spawned afterwards inherit it."""
    rid = str(uuid.uuid4())[:8]
    request_id_var.set(rid)
    return rid
