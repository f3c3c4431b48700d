"""
Spam Aggregation Engine
=======================

SetWithSpamEntries is a users view refined with the guarantee that every
member has at least one spam entry. All time-based aggregation runs over it.

INVARIANTS:
===========
1. Never empty: construction from zero spam-bearing users raises
   EmptySetError and filter() refuses to empty the set
2. earliest_date / latest_date are the min / max spam entry dates across
   members and are recomputed on every filter

FAILURE SEMANTICS:
==================
- "No data at this date" is an absent result (None), never an exception
- A member without a score at a shift end date it was filtered to have is
  a logic error (RuntimeError), never reported as user error
"""

from __future__ import annotations
from collections import Counter
from datetime import date
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from ..contracts.base import EmptySetError, Fid, SpamScore
from ..contracts.results import (
    FidScoreShift, ShiftSource, ShiftTarget,
    SpamScoreCount, SpamScoreDistribution,
)
from ..contracts.values import Dated, SpamEntry
from ..core.store import UserCollection, UserStore
from ..core.subset import UsersSubset
from ..temporal.spam_entries import SpamEntries
from ..temporal.time_iterator import Cadence, add_days, date_range


class UserWithSpamData:
    """A user store paired with its materialized spam timeline."""

    def __init__(self, store: UserStore, entries: SpamEntries):
        self.store = store
        self.entries = entries

    @staticmethod
    def from_store(store: UserStore) -> Optional[UserWithSpamData]:
        entries = store.spam_entries()
        if entries is None:
            return None
        return UserWithSpamData(store, entries)

    @property
    def fid(self) -> Fid:
        return self.store.fid

    def spam_score_at_date(self, at: date) -> Optional[SpamScore]:
        return self.entries.spam_score_at_date(at)

    def dated_spam_updates(self) -> List[SpamEntry]:
        return list(self.entries)

    def earliest_spam_update(self) -> SpamEntry:
        return self.entries.earliest()

    def latest_spam_update(self) -> SpamEntry:
        return self.entries.latest()


# Row-major tally order: New sources last, Removed never tallied.
_SHIFT_ORDER: Tuple[Tuple[ShiftSource, ShiftTarget], ...] = tuple(
    (source, target)
    for source in (ShiftSource.ZERO, ShiftSource.ONE, ShiftSource.TWO, ShiftSource.NEW)
    for target in (ShiftTarget.ZERO, ShiftTarget.ONE, ShiftTarget.TWO)
)


class SetWithSpamEntries:
    """Non-empty set of users that all carry spam data."""

    def __init__(self, members: Iterable[UserWithSpamData]):
        self._map: Dict[Fid, UserWithSpamData] = {m.fid: m for m in members}
        if not self._map:
            raise EmptySetError()
        self._recompute_bounds()

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @staticmethod
    def from_stores(stores: Iterable[UserStore]) -> SetWithSpamEntries:
        members = []
        for store in stores:
            member = UserWithSpamData.from_store(store)
            if member is not None:
                members.append(member)
        return SetWithSpamEntries(members)

    @staticmethod
    def from_collection(collection: UserCollection) -> SetWithSpamEntries:
        return SetWithSpamEntries.from_stores(collection)

    @staticmethod
    def from_subset(subset: UsersSubset) -> SetWithSpamEntries:
        return SetWithSpamEntries.from_stores(subset)

    @staticmethod
    def try_from_collection(collection: UserCollection) -> Optional[SetWithSpamEntries]:
        try:
            return SetWithSpamEntries.from_collection(collection)
        except EmptySetError:
            return None

    def _recompute_bounds(self) -> None:
        self.earliest_date: date = min(
            m.earliest_spam_update().date for m in self._map.values()
        )
        self.latest_date: date = max(
            m.latest_spam_update().date for m in self._map.values()
        )

    # =========================================================================
    # FILTERING
    # =========================================================================

    def filtered(self, predicate: Callable[[UserWithSpamData], bool]) -> Optional[SetWithSpamEntries]:
        """New set of matching members, or None if nothing matches."""
        members = [m for m in self._map.values() if predicate(m)]
        if not members:
            return None
        return SetWithSpamEntries(members)

    def filter(self, predicate: Callable[[UserWithSpamData], bool]) -> bool:
        """
        Keep only matching members, in place.

        If nothing would match the set is left untouched and False is
        returned.
        """
        kept = {fid: m for fid, m in self._map.items() if predicate(m)}
        if not kept:
            return False
        self._map = kept
        self._recompute_bounds()
        return True

    def fid_range(self, from_fid: Optional[int] = None, to_fid: Optional[int] = None) -> bool:
        def in_range(member: UserWithSpamData) -> bool:
            if from_fid is not None and member.fid.value < from_fid:
                return False
            if to_fid is not None and member.fid.value > to_fid:
                return False
            return True
        return self.filter(in_range)

    # =========================================================================
    # MEMBERSHIP
    # =========================================================================

    def fid(self, fid: Fid) -> Optional[UserWithSpamData]:
        return self._map.get(fid)

    def user_count(self) -> int:
        return len(self._map)

    def user_count_at_date(self, at: date) -> int:
        """Members whose first spam entry is on or before `at`."""
        return sum(1 for m in self._map.values() if m.earliest_spam_update().date <= at)

    def fids(self) -> List[Fid]:
        return sorted(self._map)

    def __iter__(self) -> Iterator[UserWithSpamData]:
        return iter(self._map.values())

    def __len__(self) -> int:
        return len(self._map)

    # =========================================================================
    # DISTRIBUTIONS
    # =========================================================================

    def current_spam_score_count(self) -> SpamScoreCount:
        return SpamScoreCount.from_scores(
            m.latest_spam_update().score for m in self._map.values()
        )

    def current_spam_score_distribution(self) -> Optional[SpamScoreDistribution]:
        return SpamScoreDistribution.from_count(self.current_spam_score_count())

    def spam_score_count_at_date(self, at: date) -> Optional[SpamScoreCount]:
        """
        Scores in effect on `at`.

        None if `at` precedes every spam entry in the set. Members with no
        score yet on `at` are left out of the count.
        """
        if at < self.earliest_date:
            return None
        count = SpamScoreCount()
        for member in self._map.values():
            score = member.spam_score_at_date(at)
            if score is not None:
                count.add(score)
        return count

    def spam_score_distribution_at_date(self, at: date) -> Optional[SpamScoreDistribution]:
        count = self.spam_score_count_at_date(at)
        if count is None:
            return None
        return SpamScoreDistribution.from_count(count)

    def count_updates(self) -> Dict[date, int]:
        """Number of spam entries recorded on each date, date ordered."""
        counter = Counter(
            entry.date for member in self._map.values() for entry in member.entries
        )
        return dict(sorted(counter.items()))

    # =========================================================================
    # TIME SERIES
    # =========================================================================

    def _sample_dates(self, cadence: Cadence) -> Iterator[date]:
        return date_range(self.earliest_date, self.latest_date, cadence)

    def weekly_spam_score_counts(self) -> List[Dated[SpamScoreCount]]:
        """
        Counts every 7 days from the earliest date, always ending with a
        sample on the latest date.
        """
        return [
            Dated(self.spam_score_count_at_date(d), d)
            for d in self._sample_dates(Cadence.WEEKLY)
        ]

    def weekly_spam_score_distributions(self) -> List[Dated[SpamScoreDistribution]]:
        return [
            Dated(self.spam_score_distribution_at_date(d), d)
            for d in self._sample_dates(Cadence.WEEKLY)
        ]

    def monthly_spam_score_distributions(self) -> List[Dated[SpamScoreDistribution]]:
        """Earliest date, the first of each following month, then the latest date."""
        return [
            Dated(self.spam_score_distribution_at_date(d), d)
            for d in self._sample_dates(Cadence.MONTHLY)
        ]

    # =========================================================================
    # SHIFT MATRIX
    # =========================================================================

    def spam_changes_with_fid_score_shift(self, initial: date, days: int) -> List[FidScoreShift]:
        """
        Transition counts between the score on `initial` and `days` later.

        Members whose first entry is after the end date are skipped.
        Members without a score on `initial` count as NEW. Zero counts are
        dropped; the output follows (source, target) order.
        """
        end = add_days(initial, days)
        tally: Dict[Tuple[ShiftSource, ShiftTarget], int] = {}

        for member in self._map.values():
            if member.earliest_spam_update().date > end:
                continue
            target_score = member.spam_score_at_date(end)
            if target_score is None:
                raise RuntimeError(
                    f"fid {member.fid} has no spam score at {end} despite an earlier entry"
                )
            key = (
                ShiftSource.from_score(member.spam_score_at_date(initial)),
                ShiftTarget.from_score(target_score),
            )
            tally[key] = tally.get(key, 0) + 1

        return [
            FidScoreShift(source=source, target=target, count=tally[(source, target)])
            for source, target in _SHIFT_ORDER
            if tally.get((source, target), 0) > 0
        ]
