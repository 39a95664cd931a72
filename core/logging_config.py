"""Logging configuration"""

import logging
import sys

from core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# httpx logs every analytics webhook call at INFO
NOISY_LOGGERS = ("httpx", "httpcore")

_configured = False


def setup_logging() -> None:
    """Configure stdout logging once; safe to call again to re-apply the level"""
    global _configured
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
        _configured = True

    for name in ("uvicorn", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if settings.debug else logging.WARNING)
