"""Root logger setup for the launcher process.

:func:`setup_logging` is called once from the console entry-point.  Every
component logs through ``logging.getLogger(<ClassName>)`` so the format
below shows which part of the trigger path produced a line:

    2024-05-01 12:00:00 | INFO     | Coordinator | Helper app launched successfully

Records go to a size-rotated file (``logs/launcher.log`` by default) and to
the console.  Repeated calls are ignored so tests and embedding hosts can
call it freely.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

_CONFIGURED: bool = False


def setup_logging(
    *,
    log_file: str | os.PathLike[str] = "logs/launcher.log",
    max_bytes: int = 2 * 1024 * 1024,
    backup_count: int = 3,
    level: int | str = logging.INFO,
) -> None:
    """Attach a rotating file handler and a console handler to the root logger.

    *level* accepts either a :mod:`logging` constant or a case-insensitive
    name such as ``"debug"`` (the ``log_level`` config value and the
    ``--log-level`` flag both pass strings).
    """
    global _CONFIGURED  # noqa: PLW0603 – module-level singleton guard

    if _CONFIGURED:
        return

    if isinstance(level, str):
        level = level.upper()

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers = [
        RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"),
        logging.StreamHandler(),
    ]

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    _CONFIGURED = True
