import logging
import os
from typing import Optional


DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | game=%(game)s session=%(session)s | %(message)s"

# Libraries that log every request/statement at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "google_genai")


class ContextFilter(logging.Filter):
    """Fills ``game`` and ``session`` so the format never raises KeyError."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "game"):
            record.game = "-"
        if not hasattr(record, "session"):
            record.session = "-"
        return True


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Configure the root logger once per process (idempotent across reloads)."""
    resolved_level = getattr(logging, (level or DEFAULT_LEVEL), logging.INFO)

    root = logging.getLogger()
    root.setLevel(resolved_level)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    handler.addFilter(ContextFilter())
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)
