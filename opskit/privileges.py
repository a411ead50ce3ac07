"""Running as root, dropping back to the sudo-invoking user, and temporarily regaining root."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

T = TypeVar("T")

_GROUP_FILE = "/etc/group"


@dataclass(frozen=True)
class UserAndGroup:
    """A user's uid, primary gid and supplementary gids."""

    uid: int
    gid: int
    gids_supplementary: tuple[int, ...] = ()


@dataclass(frozen=True)
class ProofOfRunningAsRoot:
    """Token showing that the current execution context is privileged."""


class PrivilegedWork(ABC):
    """Temporarily elevating to root is possible."""

    @abstractmethod
    def as_root(self, work: Callable[[ProofOfRunningAsRoot], T]) -> T:
        """Run ``work`` as root; the proof is only valid until ``work`` returns."""


class RunningAsRoot(PrivilegedWork):
    """Running as root already, without a user to drop back to."""

    def as_root(self, work: Callable[[ProofOfRunningAsRoot], T]) -> T:
        return work(ProofOfRunningAsRoot())


class RunningUnderSudo(PrivilegedWork):
    """Running as the sudo-invoking user, able to regain root for short periods."""

    def __init__(self, unprivileged: UserAndGroup) -> None:
        self._unprivileged = unprivileged

    @property
    def unprivileged_user(self) -> UserAndGroup:
        """The user who ran ``sudo``."""
        return self._unprivileged

    def as_root(self, work: Callable[[ProofOfRunningAsRoot], T]) -> T:
        try:
            _regain_root()
        except OSError as err:
            raise OSError(f"as_root: {err}") from err

        try:
            result = work(ProofOfRunningAsRoot())
        except BaseException as work_err:
            try:
                _set_effective_uid_and_gid(self._unprivileged)
            except OSError as drop_err:
                raise OSError(f"{work_err}; additionally privilege drop failed: {drop_err}") from work_err
            raise

        try:
            _set_effective_uid_and_gid(self._unprivileged)
        except OSError as drop_err:
            raise OSError(f"as_root: work succeeded but privilege drop failed: {drop_err}") from drop_err

        return result


def _is_root() -> bool:
    return os.geteuid() == 0


def require_root() -> ProofOfRunningAsRoot:
    """Proof of running as root; raises :class:`PermissionError` otherwise."""
    if not _is_root():
        raise PermissionError('need root (tip: run with "$ sudo ...")')
    return ProofOfRunningAsRoot()


def _set_effective_uid_and_gid(user: UserAndGroup) -> None:
    # gid first: after dropping the uid we would no longer be allowed to change it
    try:
        os.setegid(user.gid)
    except OSError as err:
        raise OSError(f"set_effective_uid_and_gid: setegid: {err}") from err
    try:
        os.setgroups(list(user.gids_supplementary))
    except OSError as err:
        raise OSError(f"set_effective_uid_and_gid: setgroups: {err}") from err
    try:
        os.seteuid(user.uid)
    except OSError as err:
        raise OSError(f"set_effective_uid_and_gid: seteuid: {err}") from err


def _regain_root() -> None:
    # uid first: only root may change the gid back
    try:
        os.seteuid(0)
    except OSError as err:
        raise OSError(f"regain_root: seteuid root: {err}") from err
    try:
        os.setegid(0)
    except OSError as err:
        raise OSError(f"regain_root: setegid root: {err}") from err


def resolve_supplementary_gids(username: str, group_file: str | None = None) -> list[int]:
    """Gids of the groups in the group file that list ``username`` as a member."""
    if username == "":
        raise ValueError("username is required")

    path = _GROUP_FILE if group_file is None else group_file
    groups: list[int] = []

    with open(path, encoding="utf-8") as file:
        for raw_line in file:
            # e.g. "docker:x:129:alice,bob"
            parts = raw_line.rstrip("\n").rstrip("\r").split(":")
            if len(parts) < 4:
                raise ValueError(f"{path} invalid parts number: {len(parts)}")
            if username in parts[3].split(","):
                groups.append(int(parts[2]))

    return groups


def _invoking_user_if_running_in_sudo() -> UserAndGroup | None:
    if os.environ.get("SUDO_UID", "") == "":
        return None

    try:
        uid = int(os.environ.get("SUDO_UID", ""))
        gid = int(os.environ.get("SUDO_GID", ""))
    except ValueError as err:
        raise ValueError(f"invoking user from sudo environment: {err}") from err

    supplementary = resolve_supplementary_gids(os.environ.get("SUDO_USER", ""))
    return UserAndGroup(uid, gid, tuple(supplementary))


def drop_to_unprivileged_user_if_possible() -> PrivilegedWork:
    """Require root; if run via sudo, switch the effective user back to the invoking user.

    This changes process-wide state, so nothing concurrent should depend on it.
    """
    require_root()

    user = _invoking_user_if_running_in_sudo()
    if user is None:
        return RunningAsRoot()

    try:
        _set_effective_uid_and_gid(user)
    except OSError as err:
        raise OSError(f"drop privileges: {err}") from err

    return RunningUnderSudo(user)


def drop_to_unprivileged_user() -> RunningUnderSudo:
    """Like :func:`drop_to_unprivileged_user_if_possible`, but running under sudo is required."""
    result: Any = drop_to_unprivileged_user_if_possible()
    if isinstance(result, RunningUnderSudo):
        return result
    raise PermissionError("need to be ran from '$ sudo ...' (just root will not do)")