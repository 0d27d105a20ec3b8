"""Path checks that treat unreadable locations as absent.

``Path.exists`` and friends raise ``PermissionError`` when a parent
directory cannot be searched. Signal checks only care whether a file is
there, so any ``OSError`` reads as "not present".
"""

from __future__ import annotations

from pathlib import Path

from .logging import get_logger

logger = get_logger("paths")


def path_exists(path: Path) -> bool:
    try:
        return path.exists()
    except OSError as e:
        logger.debug(f"Cannot stat {path}: {e}")
        return False


def is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError as e:
        logger.debug(f"Cannot stat {path}: {e}")
        return False


def is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError as e:
        logger.debug(f"Cannot stat {path}: {e}")
        return False


def any_match(root: Path, pattern: str) -> bool:
    """True if ``root.glob(pattern)`` yields anything readable."""
    try:
        return any(root.glob(pattern))
    except OSError as e:
        logger.debug(f"Cannot search {root} for {pattern}: {e}")
        return False
