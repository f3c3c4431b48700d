"""
Contracts Layer
===============

Pure data shared by every other layer: identifiers, scores, fact kinds,
query results and the error taxonomy.
"""

from .base import (
    ErrorCode, Error, FarmapError, InvalidInputError, CollisionError,
    DuplicateUserError, EmptySetError, InvalidDataPathError,
    SnapshotFormatError, SourceUnreachableError, MalformedResponseError,
    Fid, SpamScore, CommitHash,
)
from .values import (
    Dated, SpamEntry, CastType, DatedCastType, FollowCount,
    ValueKind, AnyUserValue,
)
from .results import (
    SpamScoreCount, SpamScoreDistribution, DatedSpamScoreCount,
    DatedSpamScoreDistribution, ShiftSource, ShiftTarget, FidScoreShift,
    dated_to_dict,
)

__all__ = [
    "ErrorCode", "Error", "FarmapError", "InvalidInputError", "CollisionError",
    "DuplicateUserError", "EmptySetError", "InvalidDataPathError",
    "SnapshotFormatError", "SourceUnreachableError", "MalformedResponseError",
    "Fid", "SpamScore", "CommitHash",
    "Dated", "SpamEntry", "CastType", "DatedCastType", "FollowCount",
    "ValueKind", "AnyUserValue",
    "SpamScoreCount", "SpamScoreDistribution", "DatedSpamScoreCount",
    "DatedSpamScoreDistribution", "ShiftSource", "ShiftTarget", "FidScoreShift",
    "dated_to_dict",
]
