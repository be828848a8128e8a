"""Logging for vaultsync.

Everything goes to a rotating ``vaultsync.log``; the console gets a rich
handler on stderr at the requested level so command output on stdout stays
readable. Sync passes run on the coordinator's threads, so the thread name is
part of every file record.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

LOG_FILENAME = "vaultsync.log"
FILE_FORMAT = "%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s"

_QUIET_LOGGERS = ("watchdog", "urllib3")


class _VaultSyncHandler:
    """Marks handlers installed by setup_logging."""


class _FileHandler(RotatingFileHandler, _VaultSyncHandler):
    pass


class _ConsoleHandler(RichHandler, _VaultSyncHandler):
    pass


def _installed(root: logging.Logger) -> bool:
    return any(isinstance(h, _VaultSyncHandler) for h in root.handlers)


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None) -> None:
    """Attach the file and console handlers to the root logger once.

    ``log_dir`` defaults to the data directory. Later calls are no-ops.
    """
    root = logging.getLogger()
    if _installed(root):
        return

    if log_dir is None:
        from .config import DATA_DIR

        log_dir = DATA_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = _FileHandler(
        log_dir / LOG_FILENAME,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    console_handler = _ConsoleHandler(
        console=Console(stderr=True, theme=Theme({"logging.level.info": "bold cyan"})),
        rich_tracebacks=True,
        show_path=False,
    )
    console_handler.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    root.setLevel(logging.DEBUG)
    root.addHandler(file_handler)
    root.addHandler(console_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
