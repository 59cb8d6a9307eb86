"""Test the draft store"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from anisong_playlist.core.drafts import DRAFTS_STORAGE_KEY, Draft, DraftStore, format_timestamp
from anisong_playlist.core.storage import MemoryMedium, SqliteMedium
from anisong_playlist.matching.models import MatchDecision, MatchStatus, SongFilterMode

from conftest import make_candidate, make_entry


class FakeClock:
    """Clock advancing one minute per call"""

    def __init__(self):
        self.current = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        moment = self.current
        self.current += timedelta(minutes=1)
        return moment


@pytest.fixture
def decisions():
    candidate = make_candidate("c1", "Sample Song")
    return [
        MatchDecision.for_entry(make_entry("Sample Song"), MatchStatus.MANUAL, candidate, [candidate]),
        MatchDecision.for_entry(make_entry("Other Song"), MatchStatus.SKIPPED),
        None,
    ]


@pytest.fixture
def store(memory_medium):
    return DraftStore(memory_medium, clock=FakeClock())


class TestFormatTimestamp:
    """Test timestamp formatting"""

    def test_utc_with_milliseconds(self):
        moment = datetime(2024, 1, 10, 12, 0, 0, 123456, tzinfo=timezone.utc)
        assert format_timestamp(moment) == "2024-01-10T12:00:00.123Z"

    def test_other_timezone_is_converted(self):
        tokyo = timezone(timedelta(hours=9))
        assert format_timestamp(datetime(2024, 1, 10, 21, 0, tzinfo=tokyo)) == "2024-01-10T12:00:00.000Z"

    def test_naive_is_treated_as_utc(self):
        assert format_timestamp(datetime(2024, 1, 10, 12, 0)) == "2024-01-10T12:00:00.000Z"


class TestDraft:
    """Test the draft model"""

    def test_new(self, decisions):
        draft = Draft.new("2024q1", decisions, SongFilterMode.ALL, "2024-01-10T12:00:00.000Z")

        assert draft.created_at == draft.updated_at == "2024-01-10T12:00:00.000Z"
        assert isinstance(draft.tracks, tuple)
        assert draft.decided_count == 2
        assert draft.matched_count == 1

    def test_to_dict(self, decisions):
        draft = Draft.new("2024q1", decisions, SongFilterMode.OPED, "2024-01-10T12:00:00.000Z")

        data = draft.to_dict()

        assert data["quarter"] == "2024q1"
        assert data["createdAt"] == "2024-01-10T12:00:00.000Z"
        assert data["songFilter"] == "oped"
        assert data["tracks"][2] is None
        assert data["tracks"][0]["selectedTrack"]["id"] == "c1"

    def test_missing_song_filter_reads_as_oped(self):
        draft = Draft.from_dict({
            "quarter": "2024q1",
            "createdAt": "2024-01-10T12:00:00.000Z",
            "updatedAt": "2024-01-10T12:00:00.000Z",
            "tracks": [],
        })
        assert draft.song_filter is SongFilterMode.OPED

    def test_with_tracks(self, decisions):
        draft = Draft.new("2024q1", decisions, SongFilterMode.OPED, "t")
        assert draft.with_tracks([None]).tracks == (None,)


class TestDraftStore:
    """Test save/get/delete and notification"""

    def test_save_then_get(self, store, decisions):
        draft = Draft.new("2024q1", decisions, SongFilterMode.OPED, "2024-01-01T00:00:00.000Z")

        saved = store.save("2024q1", draft)
        loaded = store.get("2024q1")

        assert loaded == saved
        assert loaded.created_at == "2024-01-01T00:00:00.000Z"
        assert loaded.updated_at == "2024-01-10T12:00:00.000Z"
        assert loaded.tracks == draft.tracks

    def test_save_refreshes_updated_at_only(self, store, decisions):
        draft = Draft.new("2024q1", decisions, SongFilterMode.OPED, store.now())
        first = store.save("2024q1", draft)

        second = store.save("2024q1", first.with_tracks(decisions[:1]))

        assert second.created_at == first.created_at
        assert second.updated_at > first.updated_at
        assert len(store.get("2024q1").tracks) == 1

    def test_get_missing(self, store):
        assert store.get("2024q1") is None
        assert store.get_all() == {}

    def test_get_all(self, store, decisions):
        store.save("2024q1", Draft.new("2024q1", decisions, SongFilterMode.OPED, "t"))
        store.save("2023q4", Draft.new("2023q4", [], SongFilterMode.ALL, "t"))

        drafts = store.get_all()

        assert set(drafts) == {"2024q1", "2023q4"}
        assert drafts["2023q4"].song_filter is SongFilterMode.ALL

    def test_stored_format(self, memory_medium, store, decisions):
        store.save("2024q1", Draft.new("2024q1", decisions, SongFilterMode.OPED, "t"))

        data = json.loads(memory_medium.get(DRAFTS_STORAGE_KEY))

        assert list(data) == ["2024q1"]
        assert set(data["2024q1"]) == {"quarter", "createdAt", "updatedAt", "tracks", "songFilter"}

    def test_delete(self, store, decisions):
        store.save("2024q1", Draft.new("2024q1", decisions, SongFilterMode.OPED, "t"))

        assert store.delete("2024q1") is True
        assert store.get("2024q1") is None
        assert store.delete("2024q1") is False

    def test_delete_missing_does_not_notify(self, store):
        calls = []
        store.subscribe(lambda: calls.append(True))

        store.delete("2024q1")

        assert calls == []

    def test_save_keeps_other_seasons(self, memory_medium, decisions):
        """Each write starts from the latest stored value"""
        first = DraftStore(memory_medium)
        second = DraftStore(memory_medium)

        first.save("2024q1", Draft.new("2024q1", decisions, SongFilterMode.OPED, "t"))
        second.save("2023q4", Draft.new("2023q4", [], SongFilterMode.OPED, "t"))

        assert set(first.get_all()) == {"2024q1", "2023q4"}

    def test_last_write_wins(self, memory_medium, decisions):
        first = DraftStore(memory_medium)
        second = DraftStore(memory_medium)

        first.save("2024q1", Draft.new("2024q1", decisions, SongFilterMode.OPED, "t"))
        second.save("2024q1", Draft.new("2024q1", [], SongFilterMode.ALL, "t"))

        assert first.get("2024q1").tracks == ()
        assert first.get("2024q1").song_filter is SongFilterMode.ALL

    def test_subscribers_notified_on_every_mutation(self, memory_medium, decisions):
        store = DraftStore(memory_medium)
        other = DraftStore(memory_medium)
        calls = []
        unsubscribe = store.subscribe(lambda: calls.append(True))

        other.save("2024q1", Draft.new("2024q1", decisions, SongFilterMode.OPED, "t"))
        other.delete("2024q1")
        memory_medium.set("animeStatuses", "{}")

        assert len(calls) == 2
        unsubscribe()
        other.save("2024q1", Draft.new("2024q1", decisions, SongFilterMode.OPED, "t"))
        assert len(calls) == 2

    def test_corrupt_json_reads_as_empty(self):
        store = DraftStore(MemoryMedium({DRAFTS_STORAGE_KEY: "{not json"}))

        assert store.get_all() == {}
        assert store.get("2024q1") is None

    def test_non_object_reads_as_empty(self):
        store = DraftStore(MemoryMedium({DRAFTS_STORAGE_KEY: "[1, 2]"}))
        assert store.get_all() == {}

    def test_corrupt_store_is_replaced_on_save(self, decisions):
        medium = MemoryMedium({DRAFTS_STORAGE_KEY: "{not json"})
        store = DraftStore(medium)

        store.save("2024q1", Draft.new("2024q1", decisions, SongFilterMode.OPED, "t"))

        assert set(store.get_all()) == {"2024q1"}

    def test_unreadable_draft_is_skipped(self, decisions):
        good = Draft.new("2024q1", decisions, SongFilterMode.OPED, "t").to_dict()
        raw = json.dumps({"2024q1": good, "2023q4": {"tracks": "broken"}, "2023q3": "nope"})
        store = DraftStore(MemoryMedium({DRAFTS_STORAGE_KEY: raw}))

        assert set(store.get_all()) == {"2024q1"}

    def test_cache_follows_stored_value(self, memory_medium, decisions):
        store = DraftStore(memory_medium)
        other = DraftStore(memory_medium)
        store.save("2024q1", Draft.new("2024q1", decisions, SongFilterMode.OPED, "t"))
        assert set(store.get_all()) == {"2024q1"}

        other.delete("2024q1")

        assert store.get_all() == {}

    def test_sqlite_medium(self, tmp_path, decisions):
        path = tmp_path / "storage.db"
        medium = SqliteMedium(path)
        try:
            DraftStore(medium).save("2024q1", Draft.new("2024q1", decisions, SongFilterMode.OPED, "t"))
        finally:
            medium.close()

        reopened = SqliteMedium(path)
        try:
            assert DraftStore(reopened).get("2024q1").tracks[0].selected_candidate.id == "c1"
        finally:
            reopened.close()
