"""
Spam-Entry Timeline
===================

Per-user, date-ordered sequence of SpamEntry records.

INVARIANTS:
===========
1. Never empty once constructed
2. Sorted by date (ties keep insertion order)
3. At most one SCORE per date; the same (date, score) may be present more
   than once when it was asserted by different source commits
4. No exact duplicates (same date, score and source)

CONFLICT RESOLUTION (add_spam_entry):
=====================================
- Same date, same score, already present (or new entry has no source):
  no-op
- Same date, same score, new source: kept as a corroborating record
- Same date, different score: CollisionError, timeline unchanged
"""

from __future__ import annotations
import bisect
from datetime import date
from typing import Iterable, Iterator, List, Optional

from ..contracts.base import CollisionError, EmptySetError, SpamScore
from ..contracts.values import SpamEntry


class SpamEntries:
    """Date-ordered, collision-checked spam label history for one user."""

    def __init__(self, first: SpamEntry):
        self._entries: List[SpamEntry] = [first]
        # Parallel index of dates for bisection
        self._dates: List[date] = [first.date]

    @staticmethod
    def from_entries(entries: Iterable[SpamEntry]) -> SpamEntries:
        """
        Build a timeline from entries in any order.

        Raises EmptySetError for no entries and CollisionError on the first
        same-date disagreement.
        """
        ordered = sorted(entries, key=lambda e: e.date)
        if not ordered:
            raise EmptySetError("spam entries cannot be empty")
        timeline = SpamEntries(ordered[0])
        for entry in ordered[1:]:
            timeline.add_spam_entry(entry)
        return timeline

    # =========================================================================
    # MUTATION
    # =========================================================================

    def add_spam_entry(self, new: SpamEntry) -> bool:
        """
        Insert `new` preserving the invariants above.

        Returns True if the timeline changed, False for a no-op.
        """
        index = bisect.bisect_left(self._dates, new.date)

        if index == len(self._entries):
            self._insert(index, new)
            return True

        found = self._entries[index]
        if found.date != new.date:
            self._insert(index, new)
            return True

        if found.score != new.score:
            raise CollisionError(new.date, found.score, new.score)

        # Run of records on this date; all share one score.
        end = bisect.bisect_right(self._dates, new.date)
        same_day = self._entries[index:end]
        if new in same_day or new.source is None:
            return False

        self._insert(end, new)
        return True

    def _insert(self, index: int, entry: SpamEntry) -> None:
        self._entries.insert(index, entry)
        self._dates.insert(index, entry.date)

    # =========================================================================
    # POINT-IN-TIME QUERIES
    # =========================================================================

    def spam_score_at_date(self, at: date) -> Optional[SpamScore]:
        """Score in effect on `at`, or None if `at` precedes the first entry."""
        index = bisect.bisect_right(self._dates, at)
        if index == 0:
            return None
        return self._entries[index - 1].score

    def earliest(self) -> SpamEntry:
        return self._entries[0]

    def latest(self) -> SpamEntry:
        return self._entries[-1]

    def dates(self) -> List[date]:
        return list(self._dates)

    def __iter__(self) -> Iterator[SpamEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SpamEntries):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"SpamEntries({self._entries!r})"
