"""
Query Result Contracts
======================

Immutable (or append-only) result shapes produced by the aggregation engine
and consumed by the API and CLI layers.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .base import InvalidInputError, SpamScore
from .values import Dated


# =============================================================================
# COUNTS AND DISTRIBUTIONS
# =============================================================================

@dataclass
class SpamScoreCount:
    """
    Per-bucket tally of spam scores.

    add() increments exactly one bucket: ZERO -> spam, ONE -> maybe,
    TWO -> nonspam.
    """
    spam: int = 0
    maybe: int = 0
    nonspam: int = 0

    def add(self, score: SpamScore) -> None:
        if score is SpamScore.ZERO:
            self.spam += 1
        elif score is SpamScore.ONE:
            self.maybe += 1
        else:
            self.nonspam += 1

    def total(self) -> int:
        return self.spam + self.maybe + self.nonspam

    def as_list(self) -> List[int]:
        return [self.spam, self.maybe, self.nonspam]

    def to_dict(self) -> Dict[str, int]:
        return {"spam": self.spam, "maybe": self.maybe, "nonspam": self.nonspam}

    @staticmethod
    def from_scores(scores) -> SpamScoreCount:
        count = SpamScoreCount()
        for score in scores:
            count.add(score)
        return count


@dataclass(frozen=True)
class SpamScoreDistribution:
    """Fractions per bucket. Sums to 1.0 within float tolerance."""
    spam: float
    maybe: float
    nonspam: float

    @staticmethod
    def from_count(count: SpamScoreCount) -> Optional[SpamScoreDistribution]:
        total = count.total()
        if total == 0:
            return None
        return SpamScoreDistribution(
            spam=count.spam / total,
            maybe=count.maybe / total,
            nonspam=count.nonspam / total,
        )

    def as_list(self) -> List[float]:
        return [self.spam, self.maybe, self.nonspam]

    def to_dict(self) -> Dict[str, float]:
        return {"spam": self.spam, "maybe": self.maybe, "nonspam": self.nonspam}


DatedSpamScoreCount = Dated[SpamScoreCount]
DatedSpamScoreDistribution = Dated[SpamScoreDistribution]


def dated_to_dict(dated: Dated) -> Dict[str, object]:
    """Flatten a dated count or distribution: its buckets plus a "date" key."""
    result = dict(dated.inner.to_dict())
    result["date"] = dated.date.isoformat()
    return result


# =============================================================================
# SCORE SHIFTS
# =============================================================================

class ShiftSource(Enum):
    """Score at the start of a shift window. NEW: no score yet at that date."""
    ZERO = 0
    ONE = 1
    TWO = 2
    NEW = 3

    @classmethod
    def from_int(cls, value: int) -> ShiftSource:
        try:
            return cls(value)
        except ValueError:
            raise InvalidInputError(f"shift source must be 0..3, got {value!r}") from None

    @classmethod
    def from_score(cls, score: Optional[SpamScore]) -> ShiftSource:
        if score is None:
            return cls.NEW
        return cls(score.value)


class ShiftTarget(Enum):
    """
    Score at the end of a shift window.

    REMOVED is reserved for members that leave the label set; nothing derived
    from spam timelines alone produces it.
    """
    ZERO = 0
    ONE = 1
    TWO = 2
    REMOVED = 3

    @classmethod
    def from_int(cls, value: int) -> ShiftTarget:
        try:
            return cls(value)
        except ValueError:
            raise InvalidInputError(f"shift target must be 0..3, got {value!r}") from None

    @classmethod
    def from_score(cls, score: SpamScore) -> ShiftTarget:
        return cls(score.value)


@dataclass(frozen=True)
class FidScoreShift:
    source: ShiftSource
    target: ShiftTarget
    count: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "source": self.source.name.title(),
            "target": self.target.name.title(),
            "count": self.count,
        }

