"""Console messages and structured logging.

Warnings meant for the user are printed with Rich markup on
stderr. Diagnostic events go through structlog and are only shown at the
configured level.
"""

from __future__ import annotations

import logging
import sys

import structlog
from rich.console import Console
from rich.markup import escape

_console = Console(stderr=True, highlight=False, soft_wrap=True)


def warn(msg: object) -> None:
    """Print a warning message."""
    _console.print(f"[yellow]WARNING[/]: {escape(str(msg))}")


def configure(verbose: bool = False) -> None:
    """Configure structlog to render key/value lines on stderr.

    Args:
        verbose: Show debug events instead of warnings only.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(**initial: object) -> structlog.typing.FilteringBoundLogger:
    """Get a structlog logger, optionally bound to initial context."""
    return structlog.get_logger(**initial)
