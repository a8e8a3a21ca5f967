"""Logging setup for the server process.

Modules log through ``logging.getLogger(__name__)``; this only installs the
handlers.  Console output goes to stderr because stdout carries protocol
frames when serving over stdio.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from toolwire.config import LoggingSettings

_FILE_FORMAT = "%(asctime)s [%(threadName)s] %(levelname)-5s %(name)s - %(message)s"


def configure_logging(settings: LoggingSettings, *, verbose: bool = False) -> None:
    """Install a rich stderr handler, plus a file handler if configured.

    *verbose* forces ``DEBUG`` regardless of ``settings.level``.
    """
    level = logging.DEBUG if verbose else getattr(logging, settings.level)

    handlers: list[logging.Handler] = [
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True),
    ]
    if settings.file:
        file_handler = logging.FileHandler(settings.file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=True)
    # websockets logs every handshake at INFO.
    logging.getLogger("websockets").setLevel(max(level, logging.WARNING))
