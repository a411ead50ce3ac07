"""Time-related helpers."""

from __future__ import annotations

import math
from datetime import timedelta


def _round_half_away_from_zero(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _whole_milliseconds(duration: timedelta) -> int:
    micros = duration // timedelta(microseconds=1)
    return micros // 1000 if micros >= 0 else -((-micros) // 1000)


def _pluralize(num: int, singular: str) -> str:
    return f"{num} {singular}" if num == 1 else f"{num} {singular}s"


def humanize_duration(duration: timedelta) -> str:
    """Describe ``duration`` in its largest sensible unit, e.g. "2 weeks"."""
    milliseconds = float(_whole_milliseconds(duration))
    seconds = _round_half_away_from_zero(milliseconds / 1000.0)
    minutes = _round_half_away_from_zero(milliseconds / (60.0 * 1000.0))
    hours = _round_half_away_from_zero(milliseconds / (3600.0 * 1000.0))
    days = int(milliseconds / (86400.0 * 1000.0))
    weeks = int(days / 7.0)
    months = int(days / (365 / 12.0))
    years = int(days / 365.0)
    decades = int(days / 3652.0)

    for amount, unit in (
        (decades, "decade"),
        (years, "year"),
        (months, "month"),
        (weeks, "week"),
        (days, "day"),
        (hours, "hour"),
        (minutes, "minute"),
        (seconds, "second"),
    ):
        if amount > 0:
            return _pluralize(amount, unit)

    return _pluralize(int(milliseconds), "millisecond")