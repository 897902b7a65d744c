from __future__ import annotations
import logging

from rich.console import Console
from rich.logging import RichHandler


def init_logging(level: int | str = logging.INFO, *, console: Console | None = None) -> None:
    """Route stdlib logging through rich on stderr."""
    h = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        log_time_format="[%X]",
    )
    logging.basicConfig(level=level, format="%(message)s", handlers=[h], force=True)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
