"""
Per-User Store and Collection
=============================

UserStore holds the ordered facts known about one fid.
UserCollection is the fid-keyed registry of stores and the unit of import
and persistence.

INVARIANTS:
===========
1. One UserStore per fid in a collection
2. try_add_user_value never stores a value colliding with an existing one
3. merge() never aborts on a single bad value; collisions are returned
"""

from __future__ import annotations
import logging
from datetime import date
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from ..contracts.base import (
    CollisionError, DuplicateUserError, Fid, SpamScore,
)
from ..contracts.values import AnyUserValue, SpamEntry, ValueKind
from ..temporal.spam_entries import SpamEntries


logger = logging.getLogger(__name__)


class UserStore:
    """Ordered list of typed facts for one fid."""

    def __init__(self, fid: Fid, values: Optional[Iterable[AnyUserValue]] = None):
        self.fid = fid
        self._values: List[AnyUserValue] = [AnyUserValue.erase(v) for v in values or ()]

    # =========================================================================
    # WRITES
    # =========================================================================

    def try_add_user_value(self, value) -> None:
        """
        Append `value` unless it collides with a stored value of its kind.

        For collidable kinds an exact duplicate of a stored value is a
        no-op. Raises CollisionError carrying the date, stored score and
        rejected score.
        """
        erased = AnyUserValue.erase(value)
        if erased.collidable and erased in self._values:
            return
        for existing in self._values:
            if existing.collides_with(erased):
                raise CollisionError(
                    erased.payload.date,
                    existing.payload.score,
                    erased.payload.score,
                    fid=self.fid,
                )
        self._values.append(erased)

    def add_user_value(self, value) -> None:
        """Append without collision checking. Callers reconcile first."""
        self._values.append(AnyUserValue.erase(value))

    # =========================================================================
    # READS
    # =========================================================================

    def has(self, kind: ValueKind) -> bool:
        return any(v.kind is kind for v in self._values)

    def values_of_kind(self, kind: ValueKind) -> List[object]:
        return [v.payload for v in self._values if v.kind is kind]

    def all_user_values(self) -> List[AnyUserValue]:
        return list(self._values)

    def spam_entries(self) -> Optional[SpamEntries]:
        """Date-sorted spam timeline, or None if the user has no spam updates."""
        updates: List[SpamEntry] = self.values_of_kind(ValueKind.DATED_SPAM_UPDATE)
        if not updates:
            return None
        return SpamEntries.from_entries(updates)

    def latest_spam_score(self) -> Optional[SpamScore]:
        updates: List[SpamEntry] = self.values_of_kind(ValueKind.DATED_SPAM_UPDATE)
        if not updates:
            return None
        return max(updates, key=lambda e: e.date).score

    def spam_score_at_date(self, at: date) -> Optional[SpamScore]:
        entries = self.spam_entries()
        if entries is None:
            return None
        return entries.spam_score_at_date(at)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other) -> bool:
        if not isinstance(other, UserStore):
            return NotImplemented
        return self.fid == other.fid and self._values == other._values

    def __repr__(self) -> str:
        return f"UserStore(fid={self.fid}, values={len(self._values)})"


class UserCollection:
    """Registry of UserStore keyed by Fid."""

    def __init__(self):
        self._map: Dict[Fid, UserStore] = {}

    # =========================================================================
    # WRITES
    # =========================================================================

    def add_user(self, store: UserStore) -> None:
        if store.fid in self._map:
            raise DuplicateUserError(store.fid)
        self._map[store.fid] = store

    def merge(self, incoming: UserStore) -> List[CollisionError]:
        """
        Fold `incoming` into the collection.

        A new fid is inserted wholesale. For a known fid every incoming value
        is added individually; collisions are collected and returned, the
        remaining values still land.
        """
        existing = self._map.get(incoming.fid)
        if existing is None:
            self._map[incoming.fid] = incoming
            return []

        errors: List[CollisionError] = []
        for value in incoming.all_user_values():
            try:
                existing.try_add_user_value(value)
            except CollisionError as exc:
                errors.append(exc)
        return errors

    def add_user_value_iter(self, values: Iterable[Tuple[Fid, object]]) -> List[CollisionError]:
        """Add (fid, value) pairs, creating users as needed."""
        errors: List[CollisionError] = []
        for fid, value in values:
            store = self._map.get(fid)
            if store is None:
                store = UserStore(fid)
                self._map[fid] = store
            try:
                store.try_add_user_value(value)
            except CollisionError as exc:
                logger.debug("rejected value for fid %s: %s", fid, exc)
                errors.append(exc)
        return errors

    # =========================================================================
    # READS
    # =========================================================================

    def user(self, fid: Fid) -> Optional[UserStore]:
        return self._map.get(fid)

    def user_count(self) -> int:
        return len(self._map)

    def fids(self) -> List[Fid]:
        return sorted(self._map)

    def spam_score_by_fid(self, fid: Fid) -> Optional[SpamScore]:
        store = self._map.get(fid)
        if store is None:
            return None
        return store.latest_spam_score()

    def apply_filter(self, predicate: Callable[[UserStore], bool]):
        """Subset of users matching `predicate`."""
        return self.subset().filtered(predicate)

    def subset(self):
        from .subset import UsersSubset
        return UsersSubset.from_collection(self)

    def __contains__(self, fid: Fid) -> bool:
        return fid in self._map

    def __iter__(self) -> Iterator[UserStore]:
        return iter(self._map.values())

    def __len__(self) -> int:
        return len(self._map)

    def __eq__(self, other) -> bool:
        if not isinstance(other, UserCollection):
            return NotImplemented
        return self._map == other._map
