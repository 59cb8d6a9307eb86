"""Test configuration and fixtures"""

import json
from pathlib import Path

import pytest

from anisong_playlist.core.logger import shutdown_logging
from anisong_playlist.core.storage import MemoryMedium
from anisong_playlist.matching.models import SongEntry
from anisong_playlist.music.base import MusicService
from anisong_playlist.music.models import (
    Confidence,
    CreatedPlaylist,
    SearchCandidate,
    SearchQuery,
    Song,
)


def make_song(track_name: str, artist: str | None = "Sample Artist", song_type: str = "OP") -> Song:
    return Song(type=song_type, track_name=track_name, artist=artist)


def make_entry(
    track_name: str,
    artist: str | None = "Sample Artist",
    anime_id: str = "a1",
    anime_name: str = "Sample Anime",
    song_type: str = "OP"
) -> SongEntry:
    return SongEntry(anime_id=anime_id, anime_name=anime_name, song=make_song(track_name, artist, song_type))


def make_candidate(
    candidate_id: str,
    name: str,
    artist: str = "Sample Artist",
    confidence: Confidence = Confidence.PARTIAL
) -> SearchCandidate:
    return SearchCandidate(
        id=candidate_id,
        name=name,
        artist=artist,
        uri=f"spotify:track:{candidate_id}",
        confidence=confidence,
    )


class FakeSearchService(MusicService):
    """
    Music service with canned results, keyed by the searched track name.

    Failures queued with fail_next() are raised before any result is
    returned for that track name.
    """

    name = "fake"

    def __init__(self, results: dict[str, list[SearchCandidate]] | None = None) -> None:
        self.results = dict(results or {})
        self.failures: dict[str, list[Exception]] = {}
        self.queries: list[SearchQuery] = []
        self.created: list[tuple[str, str, list[str]]] = []

    def fail_next(self, track_name: str, error: Exception) -> None:
        self.failures.setdefault(track_name, []).append(error)

    def searched_names(self) -> list[str]:
        return [query.track_name for query in self.queries]

    def search_track(self, query: SearchQuery) -> list[SearchCandidate]:
        self.queries.append(query)
        pending = self.failures.get(query.track_name)
        if pending:
            raise pending.pop(0)
        return list(self.results.get(query.track_name, []))

    def create_playlist(self, name: str, description: str, track_uris: list[str]) -> CreatedPlaylist:
        self.created.append((name, description, list(track_uris)))
        playlist_id = f"fake-{len(self.created)}"
        return CreatedPlaylist(
            id=playlist_id,
            name=name,
            url=f"https://example.com/playlist/{playlist_id}",
            track_count=len(track_uris),
        )


@pytest.fixture(autouse=True)
def reset_logging():
    """Remove handlers installed by a test (e.g. through the CLI)"""
    yield
    shutdown_logging()


@pytest.fixture(autouse=True)
def clear_provider_env(monkeypatch):
    monkeypatch.delenv("ANISONG_MUSIC_SERVICE", raising=False)


@pytest.fixture
def fake_service():
    return FakeSearchService()


@pytest.fixture
def memory_medium():
    return MemoryMedium()


@pytest.fixture
def sample_anime_data():
    """Anime data file content covering two quarters"""
    return [
        {
            "id": "a1",
            "name": "Sample Anime",
            "quarter": "2024q1",
            "url": "https://example.com/a1",
            "songs": [
                {"type": "OP", "trackName": "Sample Song", "artist": "Sample Artist"},
                {"type": "ED", "trackName": "エンディングテーマ「Ending Song」", "artist": "Other Artist"},
                {"type": "挿入歌", "trackName": "Insert Song", "artist": "Sample Artist"},
            ],
        },
        {
            "id": "a2",
            "name": "Second Anime",
            "quarter": "2024q1",
            "url": "https://example.com/a2",
            "songs": [
                {"type": "OP1", "trackName": "Second Opening"},
            ],
        },
        {
            "id": "b1",
            "name": "Autumn Anime",
            "quarter": "2023q4",
            "url": "https://example.com/b1",
            "songs": [
                {"type": "ED1", "trackName": "Autumn Ending", "artist": "Autumn Artist"},
            ],
        },
    ]


@pytest.fixture
def anime_file(tmp_path, sample_anime_data) -> Path:
    path = tmp_path / "anime.json"
    path.write_text(json.dumps(sample_anime_data, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def config_file(tmp_path, anime_file) -> Path:
    """config.yaml using the mock provider and storage inside tmp_path"""
    path = tmp_path / "config.yaml"
    path.write_text(
        "music_service:\n"
        "  provider: mock\n"
        "storage:\n"
        "  path: storage.db\n"
        "data:\n"
        f"  anime_file: {anime_file.name}\n",
        encoding="utf-8",
    )
    return path
