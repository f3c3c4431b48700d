"""
Snapshot Codec
==============

Versioned JSON representation of a UserCollection.

FORMAT (version 1):
    {"version": 1,
     "map": {"<fid>": {"fid": <fid>, "user_values": [<tagged value>, ...]}}}

Tagged values:
    {"DatedSpamUpdate": {"WithoutSourceCommit": "One", "date": "2024-01-01"}}
    {"DatedSpamUpdate": {"WithSourceCommit": ["One", 4660], "date": "2024-01-01"}}
    {"SpamScore": "Two"}
    {"DatedCastType": {"cast_type": "CAST", "date": "2024-01-01"}}
    {"FollowCount": 12}

READ COMPATIBILITY:
- A missing "version" key is version 0
- Older versions load, with a warning to re-save
- Each user value may be bare or a legacy [value, timestamp] pair
- Newer versions, unknown tags and same-date score conflicts are
  rejected (SnapshotFormatError)
"""

import json
import logging
from datetime import date
from enum import Enum
from typing import Any, Dict, List

from ..contracts.base import (
    CollisionError, CommitHash, FarmapError, Fid, SnapshotFormatError, SpamScore,
)
from ..contracts.values import (
    AnyUserValue, CastType, Dated, FollowCount, SpamEntry, ValueKind,
)
from ..core.store import UserCollection, UserStore


logger = logging.getLogger(__name__)

LATEST_SNAPSHOT_VERSION = 1
OUTDATED_VERSION_WARNING = "Data is not latest version. Please overwrite your database."


class SnapshotEncoder(json.JSONEncoder):
    """
    JSON encoder for snapshot and report output.

    RULES:
    1. Dates are ISO 8601 calendar dates.
    2. Enums use their serialized name when they have one, else .value.
    3. Objects with to_dict() are encoded through it.
    4. Sets become sorted lists.
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, SpamScore):
            return obj.serialized_name
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (Fid, CommitHash)):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        return super().default(obj)


# =============================================================================
# VALUE CODEC
# =============================================================================

def encode_value(value: AnyUserValue) -> Dict[str, Any]:
    """Tagged form of one user value; leaf values are left to SnapshotEncoder."""
    payload = value.payload
    if value.kind is ValueKind.DATED_SPAM_UPDATE:
        if payload.source is None:
            update = {"WithoutSourceCommit": payload.score}
        else:
            update = {"WithSourceCommit": [payload.score, payload.source]}
        update["date"] = payload.date
        return {value.kind.value: update}
    if value.kind is ValueKind.SPAM_SCORE:
        return {value.kind.value: payload}
    if value.kind is ValueKind.DATED_CAST_TYPE:
        return {value.kind.value: {"cast_type": payload.inner, "date": payload.date}}
    return {value.kind.value: payload.count}


def _parse_date(raw) -> date:
    try:
        return date.fromisoformat(raw)
    except (TypeError, ValueError):
        raise SnapshotFormatError(f"invalid date {raw!r}") from None


def _decode_spam_update(body: Dict[str, Any]) -> SpamEntry:
    on_date = _parse_date(body.get("date"))
    if "WithoutSourceCommit" in body:
        return SpamEntry(SpamScore.from_name(body["WithoutSourceCommit"]), on_date)
    if "WithSourceCommit" in body:
        score_name, commit = body["WithSourceCommit"]
        return SpamEntry(SpamScore.from_name(score_name), on_date, CommitHash(int(commit)))
    raise SnapshotFormatError(f"spam update without score: {body!r}")


def decode_value(raw: Any) -> AnyUserValue:
    # Legacy entries are [value, naive timestamp] pairs.
    if isinstance(raw, list) and len(raw) == 2 and isinstance(raw[0], dict):
        raw = raw[0]
    if not isinstance(raw, dict) or len(raw) != 1:
        raise SnapshotFormatError(f"user value must be a single-key object: {raw!r}")

    tag, body = next(iter(raw.items()))
    try:
        kind = ValueKind(tag)
    except ValueError:
        raise SnapshotFormatError(f"unknown user value tag {tag!r}") from None

    try:
        if kind is ValueKind.DATED_SPAM_UPDATE:
            return AnyUserValue.erase(_decode_spam_update(body))
        if kind is ValueKind.SPAM_SCORE:
            return AnyUserValue.erase(SpamScore.from_name(body))
        if kind is ValueKind.DATED_CAST_TYPE:
            return AnyUserValue.erase(
                Dated(CastType.parse(body["cast_type"]), _parse_date(body["date"]))
            )
        return AnyUserValue.erase(FollowCount(body))
    except SnapshotFormatError:
        raise
    except (FarmapError, AttributeError, KeyError, TypeError, ValueError) as exc:
        raise SnapshotFormatError(f"invalid {tag} value {body!r}: {exc}") from exc


# =============================================================================
# COLLECTION CODEC
# =============================================================================

def collection_to_dict(collection: UserCollection) -> Dict[str, Any]:
    """
    Snapshot document at the latest version, users in fid order.

    Leaves are domain objects; serialize with SnapshotEncoder.
    """
    users: Dict[str, Any] = {}
    for fid in collection.fids():
        store = collection.user(fid)
        users[str(fid.value)] = {
            "fid": fid,
            "user_values": [encode_value(v) for v in store.all_user_values()],
        }
    return {"version": LATEST_SNAPSHOT_VERSION, "map": users}


def collection_from_dict(document: Dict[str, Any]) -> UserCollection:
    if not isinstance(document, dict):
        raise SnapshotFormatError("snapshot must be a JSON object")

    version = document.get("version", 0)
    if not isinstance(version, int) or version > LATEST_SNAPSHOT_VERSION:
        raise SnapshotFormatError(f"unsupported snapshot version {version!r}")
    if version < LATEST_SNAPSHOT_VERSION:
        logger.warning(OUTDATED_VERSION_WARNING)

    collection = UserCollection()
    for key, user in document.get("map", {}).items():
        try:
            fid = Fid.parse(user.get("fid", key))
        except (FarmapError, AttributeError) as exc:
            raise SnapshotFormatError(f"invalid user entry under key {key!r}") from exc
        if str(fid.value) != str(key):
            raise SnapshotFormatError(f"fid {fid} stored under key {key!r}")
        values: List[AnyUserValue] = [decode_value(v) for v in user.get("user_values", [])]
        collection.add_user(_rebuild_store(fid, values))
    return collection


def _rebuild_store(fid: Fid, values: List[AnyUserValue]) -> UserStore:
    """Re-add every value through the collision check; a conflict is a corrupt snapshot."""
    store = UserStore(fid)
    for value in values:
        try:
            store.try_add_user_value(value)
        except CollisionError as exc:
            raise SnapshotFormatError(
                f"fid {fid} has conflicting spam scores on {exc.date.isoformat()}: "
                f"{exc.old} and {exc.new}"
            ) from exc
    return store


def dumps_collection(collection: UserCollection) -> str:
    return json.dumps(collection_to_dict(collection), cls=SnapshotEncoder)


def loads_collection(text: str) -> UserCollection:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotFormatError(f"snapshot is not valid JSON: {exc}") from exc
    return collection_from_dict(document)
