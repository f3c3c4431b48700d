"""
Date Stepping
=============

Lazy calendar iteration used by the weekly / monthly series queries.

GUARANTEES:
- The start date is always yielded first
- With an end date, the last yielded date is exactly the end date,
  yielded once, even when the stride does not divide the span
- Without an end date the sequence is unbounded
- Stepping past date.max ends the sequence at date.max
"""

from __future__ import annotations
from datetime import date, timedelta
from enum import Enum
from typing import Iterator, Optional


class Cadence(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def first_of_next_month(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def add_days(d: date, days: int) -> date:
    """d + days, clamped to the calendar bounds."""
    try:
        return d + timedelta(days=days)
    except OverflowError:
        return date.max if days > 0 else date.min


def next_date(d: date, cadence: Cadence) -> Optional[date]:
    """Next candidate after `d`, or None if the calendar is exhausted."""
    if d == date.max:
        return None
    if cadence is Cadence.DAILY:
        return add_days(d, 1)
    if cadence is Cadence.WEEKLY:
        return add_days(d, 7)
    if d.year == date.max.year and d.month == 12:
        return date.max
    return first_of_next_month(d)


def date_range(
    start: date,
    end: Optional[date] = None,
    cadence: Cadence = Cadence.WEEKLY,
) -> Iterator[date]:
    """
    Yield dates from `start` stepping by `cadence`, finishing on `end`.

    Monthly steps go to the first of the following month, so
    date_range(2024-01-15, 2025-01-15, MONTHLY) yields 2024-01-15,
    2024-02-01, ..., 2025-01-01, 2025-01-15.
    """
    if end is not None and end < start:
        return
    current = start
    yield current
    while True:
        candidate = next_date(current, cadence)
        if candidate is None:
            return
        if end is not None and candidate >= end:
            if current != end:
                yield end
            return
        yield candidate
        current = candidate
