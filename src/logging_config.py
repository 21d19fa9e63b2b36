"""Process-wide logging setup."""

import logging

from src.config import settings

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s — %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger from ``LOG_LEVEL``.

    Safe to call more than once; ``basicConfig`` is a no-op after the first
    handler is installed.
    """
    resolved = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt="%H:%M:%S")
    logging.getLogger("src").setLevel(resolved)

    # Quieten noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
