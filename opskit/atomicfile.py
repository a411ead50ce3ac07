"""Atomic file writes: content is written to ``<name>.part`` and renamed into place."""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import IO, Any, Union

StrPath = Union[str, "os.PathLike[str]"]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class WriteFileOptions:
    """Metadata to apply to an atomically written file."""

    mode: int | None = None
    uid: int | None = None
    gid: int | None = None
    ignore_chown_errors: bool = False
    atime_ns: int | None = None
    mtime_ns: int | None = None
    xattrs: list[tuple[str, bytes]] = field(default_factory=list)


WriteFileOption = Callable[[WriteFileOptions], None]


class _NoCloseWriter:
    """Writer whose ``close`` does nothing, so producers cannot close our file."""

    def __init__(self, file: IO[bytes]) -> None:
        self._file = file

    def write(self, data: bytes) -> int:
        return self._file.write(data)

    def writelines(self, lines: Any) -> None:
        self._file.writelines(lines)

    def flush(self) -> None:
        self._file.flush()

    def writable(self) -> bool:
        return True

    def close(self) -> None:
        pass


def file_atomic_operation_by_rename(path: StrPath, operations: Callable[[str], Any]) -> None:
    """Let ``operations`` produce ``<path>.part``, then rename it to ``path``.

    The temporary file is removed if the operations or the rename fail.
    """
    path_temp = os.fspath(path) + ".part"

    def cleanup_and_raise(err: BaseException) -> None:
        try:
            os.remove(path_temp)
        except FileNotFoundError:
            pass  # the operations never got as far as creating the temp file
        except OSError as cleanup_err:
            raise OSError(
                f"{err}; additionally file_atomic_operation_by_rename failed cleaning up: {cleanup_err}"
            ) from err
        raise err

    try:
        operations(path_temp)
    except BaseException as err:
        cleanup_and_raise(err)

    try:
        os.replace(path_temp, path)
    except OSError as err:
        cleanup_and_raise(err)


def write_file_atomic(
    filename: StrPath,
    produce: Callable[[Any], Any],
    *options: WriteFileOption,
) -> None:
    """Write ``filename`` with content from ``produce(writer)``, appearing only when complete."""
    opts = WriteFileOptions()
    for option in options:
        option(opts)

    def operations(path_temp: str) -> None:
        # O_EXCL: another writer's in-progress .part file must not be clobbered
        fd = os.open(path_temp, os.O_RDWR | os.O_CREAT | os.O_EXCL, 0o666)
        with os.fdopen(fd, "wb") as file:
            produce(_NoCloseWriter(file))
            file.flush()
            fileno = file.fileno()

            if opts.mode is not None:
                os.fchmod(fileno, opts.mode)

            if opts.uid is not None:
                gid = opts.gid if opts.gid is not None else -1
                try:
                    os.fchown(fileno, opts.uid, gid)
                except OSError:
                    if not opts.ignore_chown_errors:
                        raise

            for key, value in opts.xattrs:
                os.setxattr(fileno, key, value)

            os.fsync(fileno)

        if opts.atime_ns is not None and opts.mtime_ns is not None:
            os.utime(path_temp, ns=(opts.atime_ns, opts.mtime_ns))

    file_atomic_operation_by_rename(filename, operations)


def write_file_atomic_from_reader(
    filename: StrPath,
    content: IO[bytes],
    *options: WriteFileOption,
) -> None:
    """Atomically write everything read from ``content`` to ``filename``."""
    write_file_atomic(filename, lambda sink: shutil.copyfileobj(content, sink), *options)


def write_file_mode(mode: int) -> WriteFileOption:
    """Set the permission bits of the written file."""

    def apply(opts: WriteFileOptions) -> None:
        opts.mode = mode

    return apply


def write_file_chown(uid: int, gid: int) -> WriteFileOption:
    """Set the owner and group of the written file."""

    def apply(opts: WriteFileOptions) -> None:
        opts.uid = uid
        opts.gid = gid

    return apply


def write_file_chown_ignore_errors(uid: int, gid: int) -> WriteFileOption:
    """Like :func:`write_file_chown`, but a failing chown is ignored."""

    def apply(opts: WriteFileOptions) -> None:
        opts.uid = uid
        opts.gid = gid
        opts.ignore_chown_errors = True

    return apply


def _datetime_to_ns(moment: datetime) -> int:
    aware = moment if moment.tzinfo is not None else moment.astimezone()
    micros = (aware - _EPOCH) // _MICROSECOND
    return micros * 1000


_MICROSECOND = datetime(1970, 1, 1, 0, 0, 0, 1) - datetime(1970, 1, 1)


def _write_file_times_ns(atime_ns: int, mtime_ns: int) -> WriteFileOption:
    def apply(opts: WriteFileOptions) -> None:
        opts.atime_ns = atime_ns
        opts.mtime_ns = mtime_ns

    return apply


def write_file_times(atime: datetime, mtime: datetime, ctime: datetime) -> WriteFileOption:
    """Set access and modification times of the written file; ``ctime`` is ignored."""
    return _write_file_times_ns(_datetime_to_ns(atime), _datetime_to_ns(mtime))


def _invoking_user_uid_and_gid() -> tuple[int, int]:
    standard = (os.getuid(), os.getgid())

    if os.environ.get("SUDO_UID", "") == "":
        return standard

    try:
        uid = int(os.environ.get("SUDO_UID", ""))
        gid = int(os.environ.get("SUDO_GID", ""))
    except ValueError:
        return standard

    return uid, gid


def write_file_if_sudo_preserve_invoking_user() -> WriteFileOption:
    """Own the file by the user who ran ``sudo``, or by the current user otherwise."""
    uid, gid = _invoking_user_uid_and_gid()

    def apply(opts: WriteFileOptions) -> None:
        opts.uid = uid
        opts.gid = gid

    return apply


def write_file_xattr_user(key: str, value: bytes) -> WriteFileOption:
    """Write an extended attribute in the ``user.`` namespace."""

    def apply(opts: WriteFileOptions) -> None:
        opts.xattrs.append(("user." + key, value))

    return apply