"""Logger setup for the ctxfile CLI.

Library modules log through ``get_logger("<module>")`` and never configure
handlers themselves; only the CLI calls ``configure_logging``.
Console output is warnings only unless ``--verbose`` is passed.
"""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "ctxfile"
CONSOLE_FORMAT = "ctxfile: %(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """``get_logger("model")`` -> the ``ctxfile.model`` logger."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def _drop_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def configure_logging(*, verbose: bool = False, log_file: Path | None = None) -> logging.Logger:
    """Install a stderr handler, plus a full-detail file handler if asked.

    Safe to call once per command: previous handlers are closed first.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    level = logging.DEBUG if verbose else logging.WARNING
    logger.setLevel(level)
    logger.propagate = False
    _drop_handlers(logger)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(logging.DEBUG)
        sink.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(sink)

    return logger
