"""File existence checks and touch-like file creation."""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Union

StrPath = Union[str, "os.PathLike[str]"]


def _exists(path: StrPath, statter: Callable[[StrPath], os.stat_result]) -> bool:
    try:
        statter(path)
    except FileNotFoundError:
        return False
    return True


def exists(path: StrPath) -> bool:
    """Whether ``path`` exists, following symlinks. Other stat errors are raised."""
    return _exists(path, os.stat)


def exists_no_link_follow(path: StrPath) -> bool:
    """Whether ``path`` exists, without following a final symlink."""
    return _exists(path, os.lstat)


def create_empty_file(path: StrPath) -> None:
    """Create ``path`` as an empty file, truncating it if it already exists."""
    with open(path, "wb"):
        pass