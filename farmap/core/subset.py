"""
Users Subset
============

Read-only, non-owning projection over a UserCollection (or another subset).
Filtering builds a new index of references; user data is never copied and
the source is never mutated.

The collection must not be mutated while a subset built from it is in use.
"""

from __future__ import annotations
from typing import Callable, Dict, Iterator, List, Optional

from ..contracts.base import Fid
from ..contracts.results import SpamScoreCount, SpamScoreDistribution
from ..contracts.values import ValueKind
from .store import UserCollection, UserStore


class UsersSubset:
    def __init__(self, members: Dict[Fid, UserStore]):
        self._map = members

    @staticmethod
    def from_collection(collection: UserCollection) -> UsersSubset:
        return UsersSubset({store.fid: store for store in collection})

    def filtered(self, predicate: Callable[[UserStore], bool]) -> UsersSubset:
        return UsersSubset({
            fid: store for fid, store in self._map.items() if predicate(store)
        })

    def with_kind(self, kind: ValueKind) -> UsersSubset:
        return self.filtered(lambda store: store.has(kind))

    def fid_range(self, from_fid: Optional[int] = None, to_fid: Optional[int] = None) -> UsersSubset:
        """Members with from_fid <= fid <= to_fid; either bound may be omitted."""
        def in_range(store: UserStore) -> bool:
            if from_fid is not None and store.fid.value < from_fid:
                return False
            if to_fid is not None and store.fid.value > to_fid:
                return False
            return True
        return self.filtered(in_range)

    def spam_score_count(self) -> SpamScoreCount:
        """Latest score of every member with spam data, one increment each."""
        count = SpamScoreCount()
        for store in self._map.values():
            score = store.latest_spam_score()
            if score is not None:
                count.add(score)
        return count

    def spam_score_distribution(self) -> Optional[SpamScoreDistribution]:
        return SpamScoreDistribution.from_count(self.spam_score_count())

    def user(self, fid: Fid) -> Optional[UserStore]:
        return self._map.get(fid)

    def user_count(self) -> int:
        return len(self._map)

    def fids(self) -> List[Fid]:
        return sorted(self._map)

    def __contains__(self, fid: Fid) -> bool:
        return fid in self._map

    def __iter__(self) -> Iterator[UserStore]:
        return iter(self._map.values())

    def __len__(self) -> int:
        return len(self._map)
