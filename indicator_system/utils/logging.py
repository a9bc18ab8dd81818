"""structlog setup for the cache, retry, coordination and validation layers.

Events are snake_case names with data as keyword fields. Inside
``extraction_scope`` every event also carries the correlation id of the
dual extraction it belongs to, including events emitted by the retry
orchestrator and the validator, which never see the id themselves.
"""

import sys
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from structlog.contextvars import bound_contextvars, merge_contextvars

from indicator_system.config.settings import settings


def configure_structured_logging(
    level: Optional[str] = None,
    json_output: Optional[bool] = None,
) -> None:
    """Install the structlog processor chain.

    Args:
        level: Minimum level name. Defaults to LOG_LEVEL.
        json_output: Force JSON (True) or console (False) rendering.
            Defaults to console on a TTY when LOG_FORMAT is "console".
    """
    if json_output is None:
        json_output = not (
            sys.stderr.isatty() and settings.log_format.lower() == "console"
        )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            (level or settings.log_level).upper()
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_structured_logger(component: str, **context: Any) -> structlog.BoundLogger:
    """Logger bound to ``component`` plus any fixed context (e.g. ``source``)."""
    return structlog.get_logger(component).bind(component=component, **context)


def get_correlation_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def extraction_scope(correlation_id: str) -> Iterator[str]:
    """Tag every structured event in this task with ``correlation_id``.

    asyncio.gather copies the context into its child tasks, so both source
    operations started inside the scope inherit the id.
    """
    with bound_contextvars(correlation_id=correlation_id):
        yield correlation_id


configure_structured_logging()


__all__ = [
    "configure_structured_logging",
    "extraction_scope",
    "get_correlation_id",
    "get_structured_logger",
]
