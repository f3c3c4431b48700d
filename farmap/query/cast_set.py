"""
Cast Activity Aggregation

SetWithCastData is the non-empty set of users that carry dated cast records.
"""

from __future__ import annotations
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional

from ..contracts.base import EmptySetError, Fid
from ..contracts.values import DatedCastType, ValueKind
from ..core.store import UserStore


class SetWithCastData:
    def __init__(self, stores: Iterable[UserStore]):
        self._map: Dict[Fid, UserStore] = {
            s.fid: s for s in stores if s.has(ValueKind.DATED_CAST_TYPE)
        }
        if not self._map:
            raise EmptySetError()

    @staticmethod
    def try_from_stores(stores: Iterable[UserStore]) -> Optional[SetWithCastData]:
        try:
            return SetWithCastData(stores)
        except EmptySetError:
            return None

    @staticmethod
    def from_spam_set(spam_set) -> SetWithCastData:
        """Cast-bearing members of a SetWithSpamEntries."""
        return SetWithCastData(member.store for member in spam_set)

    def casts(self, fid: Fid) -> List[DatedCastType]:
        store = self._map.get(fid)
        if store is None:
            return []
        return store.values_of_kind(ValueKind.DATED_CAST_TYPE)

    def total_casts(self) -> int:
        return sum(len(self.casts(fid)) for fid in self._map)

    def average_total_casts(self) -> float:
        return self.total_casts() / len(self._map)

    def casts_between(self, start: date, end: date) -> int:
        """Number of cast records dated start <= d <= end."""
        return sum(
            1
            for fid in self._map
            for cast in self.casts(fid)
            if start <= cast.date <= end
        )

    def user_count(self) -> int:
        return len(self._map)

    def __iter__(self) -> Iterator[UserStore]:
        return iter(self._map.values())
