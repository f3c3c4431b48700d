"""
User Value Contracts
====================

The closed vocabulary of facts a user can hold, and the tagged union
(AnyUserValue) that lets one store keep all of them in a single ordered list.

INVARIANTS:
- A value is narrowed back to its concrete kind only by declared ValueKind
- recover() on a mismatched kind returns None, never raises
- Two facts collide only when they are of the same kind and that kind
  declares a collision relation (currently: dated spam updates)
- ValueKind values double as the serialized tag names; adding a kind must
  never rename an existing one
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Generic, Optional, TypeVar

from .base import CommitHash, ErrorCode, InvalidInputError, SpamScore


T = TypeVar("T")


@dataclass(frozen=True)
class Dated(Generic[T]):
    """A value paired with a calendar date. Equality is by (inner, date)."""
    inner: T
    date: date


# =============================================================================
# FACT KINDS
# =============================================================================

@dataclass(frozen=True)
class SpamEntry:
    """
    One dated spam label, optionally tagged with the commit it came from.

    Equality covers score, date and source. Ordering between entries is by
    date only and is handled by SpamEntries.
    """
    score: SpamScore
    date: date
    source: Optional[CommitHash] = None

    def collides_with(self, other: SpamEntry) -> bool:
        return self.date == other.date and self.score != other.score

    def without_source(self) -> SpamEntry:
        return SpamEntry(score=self.score, date=self.date)


class CastType(Enum):
    CAST = "CAST"

    @classmethod
    def parse(cls, raw: str) -> CastType:
        try:
            return cls(raw)
        except ValueError:
            raise InvalidInputError(
                f"invalid cast type: {raw!r}", ErrorCode.INVALID_CAST_TYPE
            ) from None


# A dated cast record (one cast published on a date).
DatedCastType = Dated[CastType]


@dataclass(frozen=True)
class FollowCount:
    count: int

    def __post_init__(self):
        if isinstance(self.count, bool) or not isinstance(self.count, int) or self.count < 0:
            raise InvalidInputError(f"follow count must be a non-negative integer, got {self.count!r}")


# =============================================================================
# TAGGED UNION
# =============================================================================

class ValueKind(Enum):
    """Closed set of fact kinds. Values are the persisted tag names."""
    DATED_SPAM_UPDATE = "DatedSpamUpdate"
    SPAM_SCORE = "SpamScore"
    DATED_CAST_TYPE = "DatedCastType"
    FOLLOW_COUNT = "FollowCount"


def _kind_of(value) -> ValueKind:
    if isinstance(value, SpamEntry):
        return ValueKind.DATED_SPAM_UPDATE
    if isinstance(value, SpamScore):
        return ValueKind.SPAM_SCORE
    if isinstance(value, Dated) and isinstance(value.inner, CastType):
        return ValueKind.DATED_CAST_TYPE
    if isinstance(value, FollowCount):
        return ValueKind.FOLLOW_COUNT
    raise TypeError(f"{type(value).__name__} is not a user value kind")


@dataclass(frozen=True)
class AnyUserValue:
    """
    Type-erased user fact.

    Construct with AnyUserValue.erase(value); narrow with recover(kind).
    """
    kind: ValueKind
    payload: object

    @staticmethod
    def erase(value) -> AnyUserValue:
        if isinstance(value, AnyUserValue):
            return value
        return AnyUserValue(kind=_kind_of(value), payload=value)

    def recover(self, kind: ValueKind):
        """Return the payload if this value is of `kind`, else None."""
        if self.kind is kind:
            return self.payload
        return None

    @property
    def collidable(self) -> bool:
        """True for kinds that declare a collision relation."""
        return self.kind is ValueKind.DATED_SPAM_UPDATE

    def collides_with(self, other: AnyUserValue) -> bool:
        if self.kind is not other.kind or not self.collidable:
            return False
        return self.payload.collides_with(other.payload)
