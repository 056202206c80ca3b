"""
Broiler feed schedule and bag conversion.

The schedule gives grams of feed per bird for each day of a cycle. It is
built once at import time and exposed read-only; nothing mutates it at
runtime.

Rules:
- Days 1..34 come from the table.
- Days past 34 use the day-34 rate (plateau), they are not extrapolated.
- Day < 1 or a missing entry is a zero-feed day.
"""
from __future__ import annotations

from types import MappingProxyType

GRAMS_PER_BAG = 50_000  # 50 kg bag

PLATEAU_DAY = 34

FEED_SCHEDULE = MappingProxyType({
    1: 16, 2: 20, 3: 24, 4: 28, 5: 32,
    6: 36, 7: 40, 8: 44, 9: 48, 10: 52,
    11: 56, 12: 60, 13: 64, 14: 68, 15: 72,
    16: 76, 17: 80, 18: 84, 19: 88, 20: 92,
    21: 96, 22: 100, 23: 104, 24: 108, 25: 112,
    26: 116, 27: 120, 28: 124, 29: 128, 30: 132,
    31: 140, 32: 150, 33: 165, 34: 175,
})


def feed_for_day(day: int) -> int:
    """Grams of feed per bird on the given cycle day."""
    if day > PLATEAU_DAY:
        return FEED_SCHEDULE[PLATEAU_DAY]
    return FEED_SCHEDULE.get(day, 0)


def _build_cumulative() -> tuple[int, ...]:
    totals = [0]
    for day in range(1, PLATEAU_DAY + 1):
        totals.append(totals[-1] + feed_for_day(day))
    return tuple(totals)


# index = day, value = grams per bird consumed over days 1..day
_CUMULATIVE = _build_cumulative()


def cumulative_feed_for_day(day: int) -> int:
    """Total grams per bird consumed from day 1 through `day` inclusive."""
    if day < 1:
        return 0
    if day <= PLATEAU_DAY:
        return _CUMULATIVE[day]
    return _CUMULATIVE[PLATEAU_DAY] + (day - PLATEAU_DAY) * feed_for_day(PLATEAU_DAY)


def grams_to_bags(grams: float) -> float:
    return grams / GRAMS_PER_BAG


def bags_to_grams(bags: float) -> float:
    return bags * GRAMS_PER_BAG


def schedule_rows() -> list[dict]:
    """Schedule as a list of rows for the API and CLI."""
    return [
        {
            "day": day,
            "grams_per_bird": feed_for_day(day),
            "cumulative_grams_per_bird": cumulative_feed_for_day(day),
        }
        for day in range(1, PLATEAU_DAY + 1)
    ]
