"""
utils/logger.py
───────────────
Loguru logger shared by the scorers, the comparison engine and the services.

Every record carries a `request_id` extra ("-" outside a request); the
services bind it from their RequestContext so one discovery call can be
followed through the JSON log.
"""

import sys
from typing import Optional

from loguru import logger

from config.settings import Settings, get_settings

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[request_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> — "
    "<level>{message}</level>"
)


def setup_logger(settings: Optional[Settings] = None) -> None:
    """(Re)configure sinks from settings; safe to call more than once."""
    settings = settings or get_settings()
    production = settings.app_env.lower() == "production"

    logger.remove()
    logger.configure(extra={"request_id": "-"})

    logger.add(
        sys.stderr,
        level=settings.log_level.upper(),
        format=_CONSOLE_FORMAT,
        colorize=not production,
        diagnose=not production,
    )

    # Scoring audit trail, one JSON object per line
    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(settings.log_file),
            level="DEBUG",
            rotation="10 MB",
            retention="14 days",
            serialize=True,
            diagnose=False,
        )


setup_logger()

__all__ = ["logger", "setup_logger"]
