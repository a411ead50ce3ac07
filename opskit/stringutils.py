"""String helpers that work on characters rather than bytes."""

from __future__ import annotations

_TRUNCATION_INDICATOR = ".."


def substr(text: str, start: int, length: int) -> str:
    """Return up to ``length`` characters of ``text`` starting at ``start``.

    Out-of-range requests are clamped instead of raising.
    """
    if start >= len(text):
        return ""
    length = min(length, len(text) - start)
    return text[start : start + length]


def truncate(text: str, to: int) -> str:
    """Shorten ``text`` to at most ``to`` characters, marking truncation with ".."."""
    truncated = substr(text, 0, to)
    if truncated != text:
        keep = max(to - len(_TRUNCATION_INDICATOR), 0)
        return substr(truncated, 0, keep) + _TRUNCATION_INDICATOR
    return text