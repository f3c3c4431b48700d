"""
Shared Test Fixtures

Deterministic builders for users, collections and label lines.
All fixtures are explicit - no random generation.
"""

import json
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from farmap.contracts.base import CommitHash, Fid, SpamScore
from farmap.contracts.values import SpamEntry
from farmap.core.store import UserCollection, UserStore


# =============================================================================
# FIXED DATES (deterministic)
# =============================================================================

D_2019_12_19 = date(2019, 12, 19)
D_2020_01_01 = date(2020, 1, 1)
D_2020_01_02 = date(2020, 1, 2)
D_2024_01_01 = date(2024, 1, 1)
D_2025_01_23 = date(2025, 1, 23)

SHA_A = "1234" + "a" * 36
SHA_B = "abcd" + "b" * 36


# =============================================================================
# BUILDERS
# =============================================================================

def make_entry(score: int, on: date, sha: Optional[str] = None) -> SpamEntry:
    source = CommitHash.from_hex(sha) if sha else None
    return SpamEntry(score=SpamScore(score), date=on, source=source)


def make_user(fid: int, *entries: SpamEntry) -> UserStore:
    store = UserStore(Fid(fid))
    for entry in entries:
        store.try_add_user_value(entry)
    return store


def make_user_with_m_spam_scores(fid: int, m: int, start: date) -> UserStore:
    """User with m updates on consecutive days, scores cycling 0, 1, 2."""
    return make_user(
        fid, *(make_entry(i % 3, start + timedelta(days=i)) for i in range(m))
    )


def make_collection_with_n_users(n: int, m: int, start: date = D_2020_01_01) -> UserCollection:
    """User i starts i days after `start` and has m cycling updates."""
    collection = UserCollection()
    for i in range(n):
        collection.add_user(make_user_with_m_spam_scores(i, m, start + timedelta(days=i)))
    return collection


def make_dummy_collection() -> UserCollection:
    """fid 1: One on 2024-01-01 then Zero on 2025-01-23; fid 2: Two on 2025-01-23."""
    collection = UserCollection()
    collection.add_user(make_user(1, make_entry(1, D_2024_01_01), make_entry(0, D_2025_01_23)))
    collection.add_user(make_user(2, make_entry(2, D_2025_01_23)))
    return collection


def unix_seconds(on: date) -> int:
    return int(datetime(on.year, on.month, on.day, 12, tzinfo=timezone.utc).timestamp())


def make_label_line(fid: int, value: int, on: date, **overrides) -> str:
    record = {
        "provider": 1,
        "type": {"fid": fid, "target": "user"},
        "label_type": "spam",
        "label_value": value,
        "timestamp": unix_seconds(on),
    }
    record.update(overrides)
    return json.dumps(record)


def make_label_lines(rows: List[tuple]) -> str:
    return "\n".join(make_label_line(*row) for row in rows) + "\n"
