"""loguru setup for agents, sources, the pipeline, the API and the CLI.

Messages stay static; anything variable goes in keyword fields, which
loguru stores under ``extra`` and serializes in JSON mode.
"""

import sys

from loguru import logger

from indicator_system.config.settings import settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | <level>{message}</level> | {extra}"
)


def configure_logging(level: str | None = None) -> None:
    """
    Replace loguru's default sink.

    Colorized console lines go to stderr when attached to a terminal and
    LOG_FORMAT is "console". Otherwise one JSON object per line goes to
    stdout, which is what the container log collector reads.

    Args:
        level: Minimum level. Defaults to LOG_LEVEL.
    """
    logger.remove()
    logger.configure(extra={"component": "indicator_system"})

    log_level = (level or settings.log_level).upper()

    if sys.stderr.isatty() and settings.log_format.lower() == "console":
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=log_level, colorize=True)
    else:
        logger.add(sys.stdout, level=log_level, serialize=True, diagnose=False)


def get_logger(component: str):
    """Logger whose records carry ``extra.component``, e.g. ``get_logger("api")``."""
    return logger.bind(component=component)


configure_logging()

__all__ = ["logger", "get_logger", "configure_logging"]
