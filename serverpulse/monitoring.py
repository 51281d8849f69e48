"""Console logging setup.

Coloured, timestamped console output through rich.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOG_TIME_FORMAT = "[%Y-%m-%d %H:%M:%S]"

# Chatty third-party loggers kept at WARNING
QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str | int = "INFO", console: Console | None = None) -> None:
    """Install a RichHandler on the root logger.

    Safe to call more than once; previously installed handlers are replaced.

    Args:
        level: Root log level (name or number)
        console: Optional rich console (stderr by default)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        log_time_format=LOG_TIME_FORMAT,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
