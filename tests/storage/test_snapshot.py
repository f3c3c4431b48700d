"""
Snapshot Storage Tests

INVARIANTS:
===========
1. save() then load() reproduces the collection exactly
2. Legacy [value, timestamp] pairs and version 0 documents still load
3. Newer versions and unknown tags are rejected, never half-loaded
"""

import json
import logging
from datetime import date

import pytest

from farmap.contracts.base import Fid, InvalidDataPathError, SnapshotFormatError, SpamScore
from farmap.contracts.values import AnyUserValue, CastType, Dated, FollowCount, ValueKind
from farmap.core.store import UserCollection
from farmap.query.spam_set import SetWithSpamEntries
from farmap.storage import (
    FileCollectionStorage, InMemoryCollectionStorage, StorageConfig, create_storage,
)
from farmap.storage.serialization import (
    OUTDATED_VERSION_WARNING, SnapshotEncoder, collection_to_dict, decode_value,
    dumps_collection, encode_value, loads_collection,
)
from tests.fixtures import SHA_A, make_dummy_collection, make_entry


LEGACY_V1_DOCUMENT = {
    "map": {
        "1": {
            "fid": 1,
            "user_values": [
                [{"DatedSpamUpdate": {"WithoutSourceCommit": "One", "date": "2024-01-01"}},
                 "2025-11-15T13:52:49.282499716"],
                [{"DatedSpamUpdate": {"WithoutSourceCommit": "Zero", "date": "2025-01-23"}},
                 "2025-11-15T13:52:49.282499716"],
            ],
        },
        "2": {
            "fid": 2,
            "user_values": [
                [{"DatedSpamUpdate": {"WithoutSourceCommit": "Two", "date": "2025-01-23"}},
                 "2025-11-15T13:52:49.282499716"],
            ],
        },
    },
    "version": 1,
}


def make_rich_collection() -> UserCollection:
    collection = make_dummy_collection()
    store = collection.user(Fid(2))
    store.try_add_user_value(make_entry(2, date(2025, 2, 1), SHA_A))
    store.try_add_user_value(SpamScore.ONE)
    store.try_add_user_value(Dated(CastType.CAST, date(2025, 2, 2)))
    store.try_add_user_value(FollowCount(17))
    return collection


class TestSnapshotCodec:
    def test_legacy_pairs_load(self):
        collection = loads_collection(json.dumps(LEGACY_V1_DOCUMENT))
        assert collection == make_dummy_collection()

    def test_document_shape(self):
        document = json.loads(dumps_collection(make_dummy_collection()))
        assert document["version"] == 1
        assert document["map"]["2"] == {
            "fid": 2,
            "user_values": [{"DatedSpamUpdate": {"WithoutSourceCommit": "Two", "date": "2025-01-23"}}],
        }

    def test_document_leaves_are_domain_objects(self):
        document = collection_to_dict(make_dummy_collection())
        user = document["map"]["2"]
        assert user["fid"] == Fid(2)
        assert user["user_values"][0]["DatedSpamUpdate"]["WithoutSourceCommit"] is SpamScore.TWO

    def test_conflicting_updates_rejected_on_load(self):
        document = {
            "version": 1,
            "map": {"7": {"fid": 7, "user_values": [
                {"DatedSpamUpdate": {"WithoutSourceCommit": "One", "date": "2024-01-01"}},
                {"DatedSpamUpdate": {"WithoutSourceCommit": "Two", "date": "2024-01-01"}},
            ]}},
        }
        with pytest.raises(SnapshotFormatError) as excinfo:
            loads_collection(json.dumps(document))
        assert "fid 7" in str(excinfo.value)
        assert "2024-01-01" in str(excinfo.value)

    def test_corroborating_sources_still_load(self):
        collection = make_dummy_collection()
        collection.user(Fid(2)).try_add_user_value(make_entry(2, date(2025, 1, 23), SHA_A))
        loaded = loads_collection(dumps_collection(collection))
        assert loaded == collection
        assert SetWithSpamEntries.try_from_collection(loaded) is not None

    def test_every_kind_survives_save_and_load(self):
        storage = InMemoryCollectionStorage()
        collection = make_rich_collection()
        storage.save(collection)
        assert storage.load() == collection

    def test_sourced_update_encoding(self):
        value = encode_value(AnyUserValue.erase(make_entry(1, date(2024, 1, 1), SHA_A)))
        encoded = json.loads(json.dumps(value, cls=SnapshotEncoder))
        assert encoded == {"DatedSpamUpdate": {"WithSourceCommit": ["One", 0x1234], "date": "2024-01-01"}}
        assert decode_value(encoded).recover(ValueKind.DATED_SPAM_UPDATE).source.value == 0x1234

    def test_version_zero_loads_with_warning(self, caplog):
        document = dict(LEGACY_V1_DOCUMENT)
        del document["version"]
        with caplog.at_level(logging.WARNING, logger="farmap"):
            collection = loads_collection(json.dumps(document))
        assert collection.user_count() == 2
        assert OUTDATED_VERSION_WARNING in caplog.text

    def test_newer_version_rejected(self):
        with pytest.raises(SnapshotFormatError):
            loads_collection(json.dumps({"version": 2, "map": {}}))

    @pytest.mark.parametrize("raw", [
        {"Unknown": 1},
        {"SpamScore": "Three"},
        {"DatedSpamUpdate": {"date": "2024-01-01"}},
        {"DatedCastType": {"cast_type": "CAST", "date": "not a date"}},
        {"FollowCount": -3},
        {"SpamScore": "One", "FollowCount": 1},
    ])
    def test_bad_values_rejected(self, raw):
        with pytest.raises(SnapshotFormatError):
            decode_value(raw)

    def test_fid_must_match_key(self):
        document = {"version": 1, "map": {"5": {"fid": 6, "user_values": []}}}
        with pytest.raises(SnapshotFormatError):
            loads_collection(json.dumps(document))

    def test_invalid_json_rejected(self):
        with pytest.raises(SnapshotFormatError):
            loads_collection("{not json")

    def test_encoder_handles_domain_types(self):
        text = json.dumps({"d": date(2024, 1, 1), "s": SpamScore.TWO, "f": Fid(3)}, cls=SnapshotEncoder)
        assert json.loads(text) == {"d": "2024-01-01", "s": "Two", "f": 3}


class TestFileStorage:
    def test_missing_file_loads_as_none(self, tmp_path):
        assert FileCollectionStorage(tmp_path / "user-db.json").load() is None

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "nested" / "user-db.json"
        storage = FileCollectionStorage(path)
        storage.save(make_rich_collection())
        assert storage.exists()
        assert storage.load() == make_rich_collection()
        assert [p.name for p in path.parent.iterdir()] == ["user-db.json"]

    def test_save_replaces_previous_snapshot(self, tmp_path):
        storage = FileCollectionStorage(tmp_path / "user-db.json")
        storage.save(make_rich_collection())
        storage.save(make_dummy_collection())
        assert storage.load() == make_dummy_collection()

    def test_directory_path_rejected(self, tmp_path):
        with pytest.raises(InvalidDataPathError):
            FileCollectionStorage(tmp_path).load()


class TestStorageConfig:
    def test_create_storage(self, tmp_path):
        assert isinstance(create_storage(), InMemoryCollectionStorage)
        storage = create_storage(StorageConfig(backend_type="file", path=str(tmp_path / "db.json")))
        assert isinstance(storage, FileCollectionStorage)

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            create_storage(StorageConfig(backend_type="file"))
        with pytest.raises(ValueError):
            create_storage(StorageConfig(backend_type="redis"))
