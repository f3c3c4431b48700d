"""
Spam Timeline Tests

INVARIANTS:
===========
1. Entries stay date sorted whatever the insertion order
2. One score per date; a disagreeing entry raises and changes nothing
3. Re-adding an entry is a no-op
4. The same score from a different commit is kept as corroboration
5. spam_score_at_date returns the latest entry on or before the date
"""

from datetime import date, timedelta

import pytest
from hypothesis import given, strategies as st
from hypothesis.strategies import composite

from farmap.contracts.base import CollisionError, EmptySetError, SpamScore
from farmap.contracts.values import SpamEntry
from farmap.temporal.spam_entries import SpamEntries
from tests.fixtures import D_2020_01_01, D_2020_01_02, SHA_A, SHA_B, make_entry


# =============================================================================
# STRATEGIES
# =============================================================================

@composite
def consistent_entries(draw):
    """Entries with distinct dates, in shuffled order."""
    dates = draw(st.lists(
        st.dates(min_value=date(2021, 1, 1), max_value=date(2025, 12, 31)),
        min_size=1, max_size=30, unique=True,
    ))
    entries = [SpamEntry(draw(st.sampled_from(SpamScore)), d) for d in dates]
    return draw(st.permutations(entries))


# =============================================================================
# ORDERING
# =============================================================================

class TestOrdering:
    @given(consistent_entries())
    def test_any_insertion_order_yields_sorted_timeline(self, entries):
        timeline = SpamEntries(entries[0])
        for entry in entries[1:]:
            assert timeline.add_spam_entry(entry) is True
        assert timeline.dates() == sorted(e.date for e in entries)
        assert len(timeline) == len(entries)

    @given(consistent_entries(), st.dates(min_value=date(2020, 6, 1), max_value=date(2026, 6, 1)))
    def test_score_at_date_is_latest_on_or_before(self, entries, at):
        timeline = SpamEntries.from_entries(entries)
        applicable = [e for e in entries if e.date <= at]
        expected = max(applicable, key=lambda e: e.date).score if applicable else None
        assert timeline.spam_score_at_date(at) is expected

    def test_from_entries_rejects_empty(self):
        with pytest.raises(EmptySetError):
            SpamEntries.from_entries([])

    def test_earliest_and_latest(self):
        timeline = SpamEntries.from_entries([make_entry(1, D_2020_01_02), make_entry(0, D_2020_01_01)])
        assert timeline.earliest() == make_entry(0, D_2020_01_01)
        assert timeline.latest() == make_entry(1, D_2020_01_02)


# =============================================================================
# CONFLICT RESOLUTION
# =============================================================================

class TestConflicts:
    def test_readding_is_noop(self):
        timeline = SpamEntries(make_entry(1, D_2020_01_01))
        assert timeline.add_spam_entry(make_entry(1, D_2020_01_01)) is False
        assert len(timeline) == 1

    def test_collision_raises_and_leaves_timeline_unchanged(self):
        timeline = SpamEntries.from_entries([make_entry(0, D_2020_01_01), make_entry(1, D_2020_01_02)])
        before = list(timeline)
        with pytest.raises(CollisionError) as excinfo:
            timeline.add_spam_entry(make_entry(2, D_2020_01_01))
        assert excinfo.value.date == D_2020_01_01
        assert excinfo.value.old is SpamScore.ZERO
        assert excinfo.value.new is SpamScore.TWO
        assert list(timeline) == before

    def test_from_entries_raises_on_disagreement(self):
        with pytest.raises(CollisionError):
            SpamEntries.from_entries([make_entry(0, D_2020_01_01), make_entry(1, D_2020_01_01)])

    def test_same_score_from_new_commit_is_kept(self):
        timeline = SpamEntries(make_entry(1, D_2020_01_01, SHA_A))
        assert timeline.add_spam_entry(make_entry(1, D_2020_01_01, SHA_B)) is True
        assert timeline.add_spam_entry(make_entry(1, D_2020_01_01, SHA_B)) is False
        assert len(timeline) == 2
        assert timeline.spam_score_at_date(D_2020_01_01) is SpamScore.ONE

    def test_sourceless_repeat_of_sourced_entry_is_noop(self):
        timeline = SpamEntries(make_entry(1, D_2020_01_01, SHA_A))
        assert timeline.add_spam_entry(make_entry(1, D_2020_01_01)) is False
        assert len(timeline) == 1


# =============================================================================
# POINT QUERIES
# =============================================================================

class TestPointQueries:
    def test_zero_then_one(self):
        timeline = SpamEntries.from_entries([make_entry(0, D_2020_01_01), make_entry(1, D_2020_01_02)])
        assert timeline.spam_score_at_date(D_2020_01_01 - timedelta(days=1)) is None
        assert timeline.spam_score_at_date(D_2020_01_01) is SpamScore.ZERO
        assert timeline.spam_score_at_date(D_2020_01_02) is SpamScore.ONE
        assert timeline.spam_score_at_date(date(2030, 1, 1)) is SpamScore.ONE

    def test_equality_by_entries(self):
        a = SpamEntries.from_entries([make_entry(0, D_2020_01_01), make_entry(1, D_2020_01_02)])
        b = SpamEntries.from_entries([make_entry(1, D_2020_01_02), make_entry(0, D_2020_01_01)])
        assert a == b
