"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.
No I/O, no side effects, no dependencies on other layers.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- Identifier and score types are frozen for hashability
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum, auto
from typing import Optional, Tuple


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    Every rejected record or failed operation maps to exactly one code.
    """
    # Input validation
    INVALID_SPAM_SCORE = auto()
    INVALID_TIMESTAMP = auto()
    INVALID_COMMIT_HASH = auto()
    INVALID_CAST_TYPE = auto()
    MALFORMED_RECORD = auto()

    # Store errors
    VALUE_COLLISION = auto()
    DUPLICATE_USER = auto()

    # Query errors
    EMPTY_SET = auto()

    # Import / storage errors
    INVALID_DATA_PATH = auto()
    SOURCE_UNREACHABLE = auto()
    MALFORMED_RESPONSE = auto()
    SNAPSHOT_FORMAT = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and reported.
    """
    code: ErrorCode
    message: str
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            context=self.context + ((key, value),)
        )

    def context_value(self, key: str) -> Optional[str]:
        for k, v in self.context:
            if k == key:
                return v
        return None


class FarmapError(Exception):
    """Base class for every error raised by farmap."""

    code: ErrorCode = ErrorCode.MALFORMED_RECORD

    def to_error(self) -> Error:
        return Error(code=self.code, message=str(self))


class InvalidInputError(FarmapError, ValueError):
    """A value read from outside the process failed validation."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.MALFORMED_RECORD):
        super().__init__(message)
        self.code = code


class CollisionError(FarmapError):
    """
    A dated fact disagrees with one already stored for the same date.

    Carries the date, the stored value and the rejected value.
    """

    code = ErrorCode.VALUE_COLLISION

    def __init__(self, on_date: date, old, new, fid: Optional[Fid] = None):
        self.date = on_date
        self.old = old
        self.new = new
        self.fid = fid
        super().__init__(
            f"collision on {on_date.isoformat()}: stored {old}, rejected {new}"
        )

    def to_error(self) -> Error:
        error = Error(code=self.code, message=str(self))
        if self.fid is not None:
            error = error.with_context("fid", str(self.fid))
        return (
            error.with_context("date", self.date.isoformat())
            .with_context("old", str(self.old))
            .with_context("new", str(self.new))
        )


class DuplicateUserError(FarmapError):
    code = ErrorCode.DUPLICATE_USER

    def __init__(self, fid: Fid):
        self.fid = fid
        super().__init__(f"user with fid {fid} already exists")


class EmptySetError(FarmapError):
    code = ErrorCode.EMPTY_SET

    def __init__(self, message: str = "empty set is not allowed"):
        super().__init__(message)


class InvalidDataPathError(FarmapError):
    code = ErrorCode.INVALID_DATA_PATH

    def __init__(self, path):
        self.path = path
        super().__init__(f"invalid data path: {path}")


class SnapshotFormatError(FarmapError):
    code = ErrorCode.SNAPSHOT_FORMAT


class SourceUnreachableError(FarmapError):
    code = ErrorCode.SOURCE_UNREACHABLE


class MalformedResponseError(FarmapError):
    code = ErrorCode.MALFORMED_RESPONSE


# =============================================================================
# IDENTITY TYPES
# =============================================================================

@dataclass(frozen=True, order=True)
class Fid:
    """
    Farcaster user identifier.

    Opaque non-negative integer. Totally ordered and hashable so it can key
    collections and sort query output.
    """
    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise InvalidInputError(f"fid must be an integer, got {self.value!r}")
        if self.value < 0:
            raise InvalidInputError(f"fid must be non-negative, got {self.value}")

    def __str__(self) -> str:
        return str(self.value)

    @staticmethod
    def parse(raw) -> Fid:
        """Build a Fid from an int or a decimal string."""
        if isinstance(raw, Fid):
            return raw
        if isinstance(raw, str):
            if not raw.strip().isdigit():
                raise InvalidInputError(f"fid must be numeric, got {raw!r}")
            return Fid(int(raw))
        return Fid(raw)


# =============================================================================
# SPAM SCORE
# =============================================================================

class SpamScore(Enum):
    """
    Spam label assigned to a user.

    ZERO is spam, ONE is maybe-spam, TWO is non-spam.
    """
    ZERO = 0
    ONE = 1
    TWO = 2

    @classmethod
    def from_int(cls, label) -> SpamScore:
        if isinstance(label, bool) or not isinstance(label, int):
            raise InvalidInputError(
                f"SpamScore was {label!r}, not zero, one or two.",
                ErrorCode.INVALID_SPAM_SCORE,
            )
        try:
            return cls(label)
        except ValueError:
            raise InvalidInputError(
                f"SpamScore was {label}, not zero, one or two.",
                ErrorCode.INVALID_SPAM_SCORE,
            ) from None

    @classmethod
    def from_name(cls, name: str) -> SpamScore:
        """Parse the serialized form ("Zero", "One", "Two")."""
        try:
            return cls[name.upper()]
        except (KeyError, AttributeError):
            raise InvalidInputError(
                f"unknown spam score {name!r}", ErrorCode.INVALID_SPAM_SCORE
            ) from None

    @property
    def serialized_name(self) -> str:
        return self.name.title()

    def __str__(self) -> str:
        return self.serialized_name


# =============================================================================
# SOURCE PROVENANCE
# =============================================================================

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


@dataclass(frozen=True, order=True)
class CommitHash:
    """
    Shortened identity of the label-feed commit an update came from.

    Keeps the integer value of the first four hex digits of a full
    40 character commit id.
    """
    value: int

    @staticmethod
    def from_hex(full_commit: str) -> CommitHash:
        if not isinstance(full_commit, str) or len(full_commit) != 40:
            raise InvalidInputError(
                f"invalid hash: {full_commit}", ErrorCode.INVALID_COMMIT_HASH
            )
        prefix = full_commit[:4]
        if not all(c in _HEX_DIGITS for c in prefix):
            raise InvalidInputError(
                f"invalid hash: {full_commit}", ErrorCode.INVALID_COMMIT_HASH
            )
        return CommitHash(int(prefix, 16))

    def __str__(self) -> str:
        return f"{self.value:04x}"
