"""Small helpers for working with sequences."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

T = TypeVar("T")


def contains(items: Iterable[T], item: T) -> bool:
    """Return True if ``item`` is among ``items``."""
    return item in items


def filter_by(items: Iterable[T], predicate: Callable[[T], bool]) -> list[T]:
    """Return a new list holding the items for which ``predicate`` is true."""
    return [item for item in items if predicate(item)]