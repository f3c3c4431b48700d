"""
Label Records
=============

Adapter boundary between raw label-feed lines and the core.

A raw line looks like:
    {"provider": 1, "type": {"fid": 12, "target": "user"},
     "label_type": "spam", "label_value": 2, "timestamp": 1704067200}

Only validated (Fid, SpamEntry) pairs cross into the core. Anything that
fails validation becomes an Error record for the batch report.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional, Tuple, Union

from ..contracts.base import (
    CollisionError, CommitHash, Error, ErrorCode, FarmapError, Fid,
    InvalidInputError, SpamScore,
)
from ..contracts.values import SpamEntry
from ..core.store import UserCollection


logger = logging.getLogger(__name__)


def _require_uint(raw: dict, key: str, container: str = "record") -> int:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidInputError(f"{container} field {key!r} must be a non-negative integer, got {value!r}")
    return value


@dataclass(frozen=True)
class LabelRecord:
    """One validated label-feed line."""
    provider: int
    fid: Fid
    target: str
    label_type: str
    label_value: int
    timestamp: int

    @staticmethod
    def from_dict(raw) -> LabelRecord:
        if not isinstance(raw, dict):
            raise InvalidInputError(f"label record must be an object, got {type(raw).__name__}")
        user_type = raw.get("type")
        if not isinstance(user_type, dict):
            raise InvalidInputError("label record is missing its 'type' object")
        target = user_type.get("target")
        label_type = raw.get("label_type")
        if not isinstance(target, str) or not isinstance(label_type, str):
            raise InvalidInputError("label record 'target' and 'label_type' must be strings")
        return LabelRecord(
            provider=_require_uint(raw, "provider"),
            fid=Fid(_require_uint(user_type, "fid", "type")),
            target=target,
            label_type=label_type,
            label_value=_require_uint(raw, "label_value"),
            timestamp=_require_uint(raw, "timestamp"),
        )

    @staticmethod
    def from_json(line: str) -> LabelRecord:
        try:
            raw = json.loads(line)
        except json.JSONDecodeError as exc:
            raise InvalidInputError(f"invalid JSON line: {exc.msg}") from None
        return LabelRecord.from_dict(raw)

    def date(self) -> date:
        """UTC calendar date of the unix timestamp."""
        try:
            return datetime.fromtimestamp(self.timestamp, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            raise InvalidInputError(
                f"timestamp {self.timestamp} is out of range", ErrorCode.INVALID_TIMESTAMP
            ) from None

    def to_spam_entry(self, source: Optional[CommitHash] = None) -> Tuple[Fid, SpamEntry]:
        score = SpamScore.from_int(self.label_value)
        return self.fid, SpamEntry(score=score, date=self.date(), source=source)


# =============================================================================
# BATCH PARSING
# =============================================================================

def _decode_line(raw: Union[str, bytes]) -> str:
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidInputError(f"line is not valid UTF-8: {exc.reason}") from None


def parse_label_lines(
    lines: Iterable[Union[str, bytes]],
    origin: str,
    source: Optional[CommitHash] = None,
) -> Tuple[List[Tuple[Fid, SpamEntry]], List[Error]]:
    """
    Parse JSON Lines into fid-tagged spam entries.

    Lines may be str or undecoded bytes. Blank lines are skipped. Every
    rejected line, undecodable ones included, yields an Error with the
    origin and 1-based line number in its context.
    """
    entries: List[Tuple[Fid, SpamEntry]] = []
    errors: List[Error] = []
    for number, raw in enumerate(lines, start=1):
        try:
            line = _decode_line(raw)
            if not line.strip():
                continue
            entries.append(LabelRecord.from_json(line).to_spam_entry(source))
        except FarmapError as exc:
            logger.debug("%s:%d rejected: %s", origin, number, exc)
            errors.append(
                exc.to_error().with_context("origin", origin).with_context("line", str(number))
            )
    return entries, errors


@dataclass
class ImportReport:
    """Outcome of one import batch: the collection plus every skipped record."""
    collection: UserCollection
    errors: List[Error] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def errors_with_code(self, code: ErrorCode) -> List[Error]:
        return [e for e in self.errors if e.code is code]


def collision_errors_to_records(collisions: Iterable[CollisionError]) -> List[Error]:
    return [c.to_error() for c in collisions]
