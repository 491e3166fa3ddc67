"""structlog setup shared by the CLI, the pipeline and the collaborators.

Every upload gets a short run id that is bound into structlog's context
variables, so all events emitted while processing it carry ``run_id``.
"""

from __future__ import annotations

import logging
import sys
import uuid
from typing import Any, Optional

import structlog

_CONFIGURED = False


def new_run_id() -> str:
    """Create a run id and bind it for the current context."""
    rid = uuid.uuid4().hex[:12]
    set_run_id(rid)
    return rid


def set_run_id(rid: str) -> None:
    structlog.contextvars.bind_contextvars(run_id=rid)


def get_run_id() -> str:
    """Run id bound in the current context, or ``""``."""
    return structlog.contextvars.get_contextvars().get("run_id", "")


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structlog once; later calls are ignored.

    Events render with the console renderer on a TTY and as JSON lines
    otherwise, always on stderr so stdout stays free for command output.

    Args:
        log_level: ``DEBUG``, ``INFO``, ``WARNING`` or ``ERROR``.
    """
    global _CONFIGURED  # noqa: PLW0603
    if _CONFIGURED:
        return
    _CONFIGURED = True

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    renderer: Any = (
        structlog.dev.ConsoleRenderer()
        if sys.stderr.isatty()
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> Any:
    """Logger bound to the component *name* (``logger=`` key)."""
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger().bind(logger=name)
