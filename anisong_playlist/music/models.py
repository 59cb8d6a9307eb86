"""
Data models for anime theme songs and music catalog search results.

This module defines the immutable dataclasses exchanged between the
matching engine and the music services:

    Song            - One theme song entry belonging to an anime
    Anime           - One anime of a broadcast quarter with its songs
    SearchQuery     - Query sent to a music service
    SearchCandidate - One search result returned by a music service
    CreatedPlaylist - Playlist created on a music service

Serialization:
    to_dict()/from_dict() use the camelCase keys of the persisted JSON
    format (the same keys the anime data file and the draft storage use).
    Optional fields that are None are omitted from the output.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class Confidence(str, Enum):
    """
    Confidence that a search candidate is the queried song.

    Values:
        EXACT: Normalized title (and artist, when queried) are identical.
        PARTIAL: Returned by the catalog for the query, not verified.
        LOW: Weak result (only produced by some services).
    """

    EXACT = "exact"
    PARTIAL = "partial"
    LOW = "low"


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@dataclass(frozen=True)
class Song:
    """
    Immutable theme song entry.

    Attributes:
        type: Free-text category as found in the source data.
              Examples: "OP", "ED1", "挿入歌"
        track_name: Song title as listed in the source data. May carry
                    descriptive prefixes and quotation brackets.
                    Example: "オープニングテーマ「Title」"
        artist: Performing artist, if known.
        lyrics: Lyricist, if known.
        composer: Composer, if known.
        arranger: Arranger, if known.
    """

    type: str
    track_name: str
    artist: str | None = None
    lyrics: str | None = None
    composer: str | None = None
    arranger: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "type": self.type,
            "trackName": self.track_name,
            "artist": self.artist,
            "lyrics": self.lyrics,
            "composer": self.composer,
            "arranger": self.arranger,
        })

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Song":
        return cls(
            type=data.get("type", ""),
            track_name=data.get("trackName", ""),
            artist=data.get("artist") or None,
            lyrics=data.get("lyrics"),
            composer=data.get("composer"),
            arranger=data.get("arranger"),
        )


@dataclass(frozen=True)
class Anime:
    """
    Immutable anime entry of the source data file.

    Attributes:
        id: Unique anime identifier (used as key of the status store).
        name: Display name.
        quarter: Broadcast quarter in "YYYYqN" format. Example: "2024q1"
        url: Reference page URL.
        songs: Theme songs in source order.
        image_url: Optional key visual URL.
    """

    id: str
    name: str
    quarter: str
    url: str = ""
    songs: tuple[Song, ...] = ()
    image_url: str | None = None

    def with_songs(self, songs: list[Song] | tuple[Song, ...]) -> "Anime":
        """Return a copy of this anime carrying only the given songs."""
        return replace(self, songs=tuple(songs))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Anime":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            quarter=data.get("quarter", ""),
            url=data.get("url", ""),
            songs=tuple(Song.from_dict(song) for song in data.get("songs", [])),
            image_url=data.get("imageUrl"),
        )


@dataclass(frozen=True)
class SearchQuery:
    """
    Query sent to a music service.

    Attributes:
        track_name: Title to search for.
        artist: Artist to search for. When None, only the title is used
                by the search and by exact-match comparison.
    """

    track_name: str
    artist: str | None = None

    @classmethod
    def for_song(cls, song: Song) -> "SearchQuery":
        """Build the comparison query for a song (title as listed)."""
        return cls(track_name=song.track_name, artist=song.artist)


@dataclass(frozen=True)
class SearchCandidate:
    """
    Immutable representation of a music catalog search result.

    Attributes:
        id: Catalog-unique track ID. Example: "4cOdK2wGLETKBW3PvgPWqT"
        name: Track title as it appears in the catalog.
        artist: Comma-joined artist names.
        uri: Catalog URI used to add the track to a playlist.
             Example: "spotify:track:4cOdK2wGLETKBW3PvgPWqT"
        confidence: Confidence as reported by the service. Services report
                    PARTIAL by default; the classifier upgrades to EXACT.
        album: Album name, if known.
        duration_ms: Track duration in milliseconds, if known.
        release_date: "YYYY-MM-DD", "YYYY-MM" or "YYYY", if known.
        preview_url: URL of a short audio preview, if any.
    """

    id: str
    name: str
    artist: str
    uri: str = ""
    confidence: Confidence = Confidence.PARTIAL
    album: str | None = None
    duration_ms: int | None = None
    release_date: str | None = None
    preview_url: str | None = None

    def with_confidence(self, confidence: Confidence) -> "SearchCandidate":
        """Return a copy of this candidate with another confidence."""
        if confidence == self.confidence:
            return self
        return replace(self, confidence=confidence)

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "name": self.name,
            "artist": self.artist,
            "album": self.album,
            "uri": self.uri,
            "confidence": self.confidence.value,
            "durationMs": self.duration_ms,
            "releaseDate": self.release_date,
            "previewUrl": self.preview_url,
        })

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchCandidate":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            artist=data.get("artist", ""),
            uri=data.get("uri", ""),
            confidence=Confidence(data.get("confidence", Confidence.PARTIAL.value)),
            album=data.get("album"),
            duration_ms=data.get("durationMs"),
            release_date=data.get("releaseDate"),
            preview_url=data.get("previewUrl"),
        )


@dataclass(frozen=True)
class CreatedPlaylist:
    """
    Playlist created on a music service.

    Attributes:
        id: Service playlist ID.
        name: Playlist name.
        url: Public URL to open the playlist.
        track_count: Number of tracks added.
        quarters: Quarters whose drafts contributed tracks.
    """

    id: str
    name: str
    url: str
    track_count: int = 0
    quarters: tuple[str, ...] = field(default_factory=tuple)
