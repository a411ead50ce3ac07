"""Human-readable, type-checked construction of permission bits."""

from __future__ import annotations

from enum import IntEnum

# combinations that make no sense (execute or write without read) are left out


class Owner(IntEnum):
    """Permission bits for the owning user."""

    NONE = 0o000
    R = 0o400
    RX = 0o500
    RW = 0o600
    RWX = 0o700


class Group(IntEnum):
    """Permission bits for the owning group."""

    NONE = 0o000
    R = 0o040
    RX = 0o050
    RW = 0o060
    RWX = 0o070


class Other(IntEnum):
    """Permission bits for everyone else."""

    NONE = 0o000
    R = 0o004
    RX = 0o005
    RW = 0o006
    RWX = 0o007


def file_mode(owner: Owner, group: Group, other: Other) -> int:
    """Combine owner, group and other bits into a mode usable with ``os.chmod``."""
    for value, expected in ((owner, Owner), (group, Group), (other, Other)):
        if not isinstance(value, expected):
            raise TypeError(f"expected {expected.__name__}, got {type(value).__name__}")
    return int(owner) | int(group) | int(other)