"""Tests for JSON backup export and restore."""

import sys
import os
import json
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from export.backup_exporter import BackupExporter, from_json, load_backup, to_json
from journal.errors import BackupFormatError
from builders import make_running, make_skipped, make_executed


def _journal():
    return [
        make_running(checked=6, id="3", created_at="2024-05-03T09:00:00+00:00"),
        make_skipped("SL", checked=4, id="2", created_at="2024-05-02T09:00:00+00:00"),
        make_executed(55.0, checked=13, id="1", notes="clean retest",
                      created_at="2024-05-01T09:00:00+00:00"),
    ]


class TestBackupDocument:
    def test_round_trip_gives_equal_setups(self):
        setups = _journal()
        assert from_json(to_json(setups)) == setups

    def test_is_json_array_with_stored_fields(self):
        documents = json.loads(to_json(_journal()))
        assert isinstance(documents, list)
        assert len(documents) == 3
        assert documents[0]["status"] == "Running"
        assert documents[0]["score"] == 6
        assert documents[2]["rrRatio"] == 2.0
        assert documents[2]["pnl"] == 55.0

    def test_empty_journal(self):
        assert to_json([]) == "[]"
        assert from_json("[]") == []

    def test_not_json(self):
        with pytest.raises(BackupFormatError):
            from_json("{not json")

    def test_not_an_array(self):
        with pytest.raises(BackupFormatError):
            from_json('{"status": "Running"}')

    def test_invalid_record_reports_index(self):
        documents = json.loads(to_json(_journal()))
        documents[1]["direction"] = "Sideways"
        with pytest.raises(BackupFormatError, match="Record 1"):
            from_json(json.dumps(documents))

    @pytest.mark.parametrize("key,value", [
        ("status", ["Running"]),
        ("status", {"name": "Running"}),
        ("screenshotUrls", 5),
        ("screenshotUrls", "https://img/1.png"),
        ("screenshotUrls", [1, 2]),
        ("slUsd", "nan"),
        ("tpAmount", "inf"),
        ("pnl", "-Infinity"),
        ("name", ["EURUSD"]),
    ])
    def test_malformed_field_is_a_format_error(self, key, value):
        documents = json.loads(to_json(_journal()))
        documents[2][key] = value
        with pytest.raises(BackupFormatError, match="Record 2"):
            from_json(json.dumps(documents))


class TestBackupExporter:
    def test_export_and_load(self, tmp_path):
        setups = _journal()
        path = BackupExporter(setups).export(str(tmp_path / "out" / "backup.json"))
        assert os.path.exists(path)
        assert load_backup(path) == setups

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(BackupFormatError):
            load_backup(str(tmp_path / "missing.json"))

    def test_load_non_utf8_file(self, tmp_path):
        path = tmp_path / "binary.json"
        path.write_bytes(b"[\xff\xfe]")
        with pytest.raises(BackupFormatError):
            load_backup(str(path))

    def test_load_directory(self, tmp_path):
        with pytest.raises(BackupFormatError):
            load_backup(str(tmp_path))
