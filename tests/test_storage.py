"""Test key/value storage media"""

import sqlite3

import pytest

from anisong_playlist.core.exceptions import StorageError
from anisong_playlist.core.storage import MemoryMedium, SqliteMedium


class TestMemoryMedium:
    """Test the in-process medium and notification contract"""

    def test_get_set_remove(self):
        medium = MemoryMedium({"k": "v"})

        assert medium.get("k") == "v"
        medium.set("k", "w")
        assert medium.get("k") == "w"
        medium.remove("k")
        assert medium.get("k") is None

    def test_remove_missing_key(self):
        medium = MemoryMedium()
        medium.remove("missing")
        assert medium.get("missing") is None

    def test_subscribers_are_notified(self):
        medium = MemoryMedium()
        first, second = [], []
        medium.subscribe(first.append)
        medium.subscribe(second.append)

        medium.set("a", "1")
        medium.remove("a")

        assert first == ["a", "a"]
        assert second == ["a", "a"]

    def test_value_is_stored_before_notification(self):
        medium = MemoryMedium()
        seen = []
        medium.subscribe(lambda key: seen.append(medium.get(key)))

        medium.set("a", "1")

        assert seen == ["1"]

    def test_late_subscriber_sees_only_later_changes(self):
        medium = MemoryMedium()
        medium.set("a", "1")
        seen = []
        medium.subscribe(seen.append)

        medium.set("b", "2")

        assert seen == ["b"]

    def test_unsubscribe(self):
        medium = MemoryMedium()
        seen = []
        unsubscribe = medium.subscribe(seen.append)

        unsubscribe()
        unsubscribe()
        medium.set("a", "1")

        assert seen == []

    def test_failing_listener_does_not_block_others(self):
        medium = MemoryMedium()
        seen = []

        def broken(key):
            raise RuntimeError("listener bug")

        medium.subscribe(broken)
        medium.subscribe(seen.append)
        medium.set("a", "1")

        assert seen == ["a"]
        assert medium.get("a") == "1"


class TestSqliteMedium:
    """Test the SQLite medium"""

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "storage.db"
        first = SqliteMedium(path)
        first.set("k", "値")
        first.close()

        second = SqliteMedium(path)
        try:
            assert second.get("k") == "値"
        finally:
            second.close()

    def test_creates_parent_directory(self, tmp_path):
        medium = SqliteMedium(tmp_path / "nested" / "dir" / "storage.db")
        try:
            medium.set("k", "v")
            assert (tmp_path / "nested" / "dir" / "storage.db").exists()
        finally:
            medium.close()

    def test_overwrite_and_remove(self, tmp_path):
        medium = SqliteMedium(tmp_path / "storage.db")
        try:
            medium.set("k", "1")
            medium.set("k", "2")
            assert medium.get("k") == "2"
            medium.remove("k")
            assert medium.get("k") is None
        finally:
            medium.close()

    def test_local_writes_notify(self, tmp_path):
        medium = SqliteMedium(tmp_path / "storage.db")
        seen = []
        medium.subscribe(seen.append)
        try:
            medium.set("k", "v")
            assert seen == ["k"]
        finally:
            medium.close()

    def test_poll_detects_other_connection(self, tmp_path):
        path = tmp_path / "storage.db"
        reader = SqliteMedium(path)
        writer = SqliteMedium(path)
        seen = []
        reader.subscribe(seen.append)
        try:
            assert reader.poll() == []

            writer.set("b", "2")
            writer.set("a", "1")

            assert reader.poll() == ["a", "b"]
            assert seen == ["a", "b"]
            assert reader.get("a") == "1"
            assert reader.poll() == []
        finally:
            reader.close()
            writer.close()

    def test_poll_reports_removed_keys(self, tmp_path):
        path = tmp_path / "storage.db"
        writer = SqliteMedium(path)
        writer.set("k", "v")
        reader = SqliteMedium(path)
        try:
            writer.remove("k")
            assert reader.poll() == ["k"]
        finally:
            reader.close()
            writer.close()

    def test_schema_version_mismatch(self, tmp_path):
        path = tmp_path / "storage.db"
        SqliteMedium(path).close()
        with sqlite3.connect(path) as conn:
            conn.execute("UPDATE schema_version SET version = 99")

        with pytest.raises(StorageError):
            SqliteMedium(path)

    def test_unopenable_path(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(StorageError):
            SqliteMedium(blocker / "storage.db")
