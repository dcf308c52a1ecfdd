from __future__ import annotations

import logging

from chat_hub.api.middleware.correlation_id import correlation_id_ctx

LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the id of the request or socket being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_ctx.get() or "-"
        return True


def _parse_level(value: str | int, default: int) -> int:
    if isinstance(value, int):
        return value
    text = value.strip().upper()
    if not text:
        return default
    level = logging.getLevelName(text)
    return level if isinstance(level, int) else default


def configure_logging(level: str | int = "INFO") -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once; previous handlers are replaced.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CorrelationIdFilter())

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(_parse_level(level, logging.INFO))

    logging.captureWarnings(True)
