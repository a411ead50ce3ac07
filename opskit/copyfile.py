"""Copying and moving files while preserving their metadata."""

from __future__ import annotations

import os
import shutil
import stat
import sys
from typing import Union

from opskit.atomicfile import (
    WriteFileOption,
    _write_file_times_ns,
    write_file_atomic,
    write_file_chown_ignore_errors,
    write_file_mode,
)

StrPath = Union[str, "os.PathLike[str]"]


def copy_file(source_path: StrPath, destination_path: StrPath) -> None:
    """Copy a file atomically, preserving permissions, timestamps and (on Linux) ownership."""
    with open(source_path, "rb") as source:
        metadata = os.fstat(source.fileno())

        options: list[WriteFileOption] = [write_file_mode(stat.S_IMODE(metadata.st_mode) & 0o777)]

        if sys.platform.startswith("linux"):
            options.append(write_file_chown_ignore_errors(metadata.st_uid, metadata.st_gid))
            options.append(_write_file_times_ns(metadata.st_atime_ns, metadata.st_mtime_ns))
        else:
            # all that is portably available is the modification time
            options.append(_write_file_times_ns(metadata.st_mtime_ns, metadata.st_mtime_ns))

        write_file_atomic(
            destination_path,
            lambda sink: shutil.copyfileobj(source, sink),
            *options,
        )


def move_file(source_path: StrPath, destination_path: StrPath) -> None:
    """Move a file by renaming, falling back to copy-and-delete (e.g. across filesystems)."""
    try:
        os.rename(source_path, destination_path)
        return
    except OSError:
        # most likely the rename crossed filesystems; try copying instead
        pass

    copy_file(source_path, destination_path)
    os.remove(source_path)