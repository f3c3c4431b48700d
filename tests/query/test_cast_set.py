"""Cast activity aggregation tests."""

from datetime import date

import pytest

from farmap.contracts.base import EmptySetError, Fid
from farmap.contracts.values import CastType, Dated
from farmap.core.store import UserStore
from farmap.query.cast_set import SetWithCastData
from farmap.query.spam_set import SetWithSpamEntries
from tests.fixtures import D_2024_01_01, make_dummy_collection, make_entry


def make_caster(fid: int, *days: date) -> UserStore:
    return UserStore(Fid(fid), [make_entry(1, D_2024_01_01)] + [Dated(CastType.CAST, d) for d in days])


class TestSetWithCastData:
    def test_requires_cast_data(self):
        with pytest.raises(EmptySetError):
            SetWithCastData([UserStore(Fid(1), [make_entry(1, D_2024_01_01)])])
        assert SetWithCastData.try_from_stores([]) is None

    def test_totals_and_average(self):
        cast_set = SetWithCastData([
            make_caster(1, date(2024, 1, 2), date(2024, 1, 3), date(2024, 2, 1)),
            make_caster(2, date(2024, 1, 5)),
            UserStore(Fid(3), [make_entry(0, D_2024_01_01)]),
        ])
        assert cast_set.user_count() == 2
        assert cast_set.total_casts() == 4
        assert cast_set.average_total_casts() == 2.0
        assert cast_set.casts_between(date(2024, 1, 1), date(2024, 1, 31)) == 3
        assert cast_set.casts(Fid(3)) == []

    def test_from_spam_set(self):
        collection = make_dummy_collection()
        collection.user(Fid(2)).add_user_value(Dated(CastType.CAST, D_2024_01_01))
        cast_set = SetWithCastData.from_spam_set(SetWithSpamEntries.from_collection(collection))
        assert [store.fid for store in cast_set] == [Fid(2)]
