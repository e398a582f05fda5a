# backend/app/core/logging.py
import logging

from backend.app.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str | None = None) -> None:
    """
    Configure root logging once for the process.

    Never pass plaintext passwords or full hash digests to a logger;
    log record ids and hash prefixes only.
    """
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
