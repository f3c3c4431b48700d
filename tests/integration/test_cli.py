"""
Reporter CLI Tests

Runs main() on JSON Lines fixtures and snapshots written to tmp_path and
checks the printed report.
"""

import logging

import pytest

from farmap.cli import main
from farmap.observability import FARMAP_LOGGER
from farmap.storage import FileCollectionStorage
from tests.fixtures import (
    D_2024_01_01, D_2025_01_23, make_collection_with_n_users, make_dummy_collection,
    make_label_lines,
)


@pytest.fixture(autouse=True)
def detach_cli_log_handler():
    yield
    logger = logging.getLogger(FARMAP_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_farmap_handler", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def labels_path(tmp_path):
    path = tmp_path / "spam.jsonl"
    path.write_text(make_label_lines([(1, 1, D_2024_01_01), (1, 0, D_2025_01_23), (2, 2, D_2025_01_23)]))
    return path


class TestSpamDistribution:
    def test_distribution_at_date(self, labels_path, capsys):
        assert main(["-p", str(labels_path), "spam-distribution", "-d", "2025-01-23"]) == 0
        out = capsys.readouterr().out
        assert "Spam score distribution at date 2025-01-23:" in out
        assert " 0: 50.00%" in out
        assert " 2: 50.00%" in out
        assert "User count in set is 2" in out

    def test_users_after_date_left_out(self, labels_path, capsys):
        assert main(["-p", str(labels_path), "spam-distribution", "-d", "2024-06-01"]) == 0
        out = capsys.readouterr().out
        assert " 1: 100.00%" in out
        assert "User count in set is 1" in out

    def test_reads_snapshot(self, tmp_path, capsys):
        path = tmp_path / "user-db.json"
        FileCollectionStorage(path).save(make_dummy_collection())
        assert main(["-p", str(path), "spam-distribution", "-d", "2025-02-01"]) == 0
        assert " 0: 50.00%" in capsys.readouterr().out

    def test_no_labels_before_date(self, labels_path, capsys):
        assert main(["-p", str(labels_path), "spam-distribution", "-d", "2020-01-01"]) == 1
        assert "No spam labels" in capsys.readouterr().out


class TestFilters:
    def test_current_score_filter(self, labels_path, capsys):
        assert main(["-p", str(labels_path), "-c", "2", "all-fids"]) == 0
        assert capsys.readouterr().out.split() == ["2"]

    def test_score_at_date_filter(self, labels_path, capsys):
        assert main(["-p", str(labels_path), "-s", "2024-06-01", "1", "all-fids"]) == 0
        assert capsys.readouterr().out.split() == ["1"]

    def test_after_date_filter_can_empty_the_set(self, labels_path, capsys):
        assert main(["-p", str(labels_path), "-a", "2026-01-01", "all-fids"]) == 1
        assert "No users left" in capsys.readouterr().out

    def test_invalid_score_is_usage_error(self, labels_path):
        with pytest.raises(SystemExit):
            main(["-p", str(labels_path), "-c", "7", "all-fids"])


class TestCommands:
    def test_fid_history(self, labels_path, capsys):
        assert main(["-p", str(labels_path), "fid", "-f", "1"]) == 0
        out = capsys.readouterr().out
        assert "Spam record history for 1" in out
        assert "2024-01-01: 1" in out
        assert "2025-01-23: 0" in out

    def test_unknown_fid(self, labels_path, capsys):
        assert main(["-p", str(labels_path), "fid", "-f", "42"]) == 1

    def test_change_matrix(self, tmp_path, capsys):
        path = tmp_path / "user-db.json"
        FileCollectionStorage(path).save(make_collection_with_n_users(6, 3))
        assert main(["-p", str(path), "change-matrix", "-f", "2020-01-01", "-t", "2020-04-10"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[1].split() == ["Zero", "0", "0", "1"]
        assert lines[4].split() == ["New", "0", "0", "5"]

    def test_change_matrix_requires_forward_window(self, labels_path, capsys):
        assert main(["-p", str(labels_path), "change-matrix", "-f", "2025-01-01", "-t", "2025-01-01"]) == 1

    def test_missing_path(self, tmp_path, capsys):
        assert main(["-p", str(tmp_path / "missing"), "all-fids"]) == 1
        assert "invalid data path" in capsys.readouterr().out
