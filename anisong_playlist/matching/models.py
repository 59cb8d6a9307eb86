"""
Data models of the matching engine.

    MatchStatus    - How a song's decision was reached
    SongFilterMode - Which songs of an anime enter a matching session
    SessionState   - Observable state of a MatchingSession
    SongEntry      - One song of a session with its owning anime
    MatchDecision  - The recorded outcome for one song

MatchDecision serializes to the camelCase JSON stored in drafts:
    {animeId, animeName, song, matchStatus, selectedTrack?, candidates}
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from anisong_playlist.music.models import SearchCandidate, SearchQuery, Song


class MatchStatus(str, Enum):
    """
    How a decision was reached.

    Values:
        AUTO: Exactly one exact candidate (chosen by the session, or by the
              user when that candidate was the unambiguous exact one).
        MANUAL: Chosen by the user among ambiguous or inexact candidates.
        PENDING: Placeholder for a song not decided yet.
        SKIPPED: No track selected.
    """

    AUTO = "auto"
    MANUAL = "manual"
    PENDING = "pending"
    SKIPPED = "skipped"


class SongFilterMode(str, Enum):
    """Songs kept when building a session: OP/ED themes only, or all."""

    OPED = "oped"
    ALL = "all"


class SessionState(str, Enum):
    """
    Observable state of a matching session.

    Values:
        AWAITING_SEARCH: Candidates for the current song are not available
                         (before start() or after a failed search).
        AWAITING_DECISION: Candidates are shown and the user must choose.
        COMPLETED: Every transition is finished; the result is available.
    """

    AWAITING_SEARCH = "awaiting_search"
    AWAITING_DECISION = "awaiting_decision"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SongEntry:
    """
    One song of a matching session.

    Attributes:
        anime_id: Identifier of the anime the song belongs to.
        anime_name: Display name of that anime.
        song: The song itself.
    """

    anime_id: str
    anime_name: str
    song: Song

    @property
    def query(self) -> SearchQuery:
        """Comparison query: the title as listed and the artist."""
        return SearchQuery.for_song(self.song)


@dataclass(frozen=True)
class MatchDecision:
    """
    Immutable decision recorded for one song.

    Attributes:
        anime_id: Owning anime identifier.
        anime_name: Owning anime name.
        song: The decided song.
        match_status: How the decision was reached.
        selected_candidate: Chosen track, None when skipped.
        candidates: Every candidate considered, kept for later re-editing.

    Raises:
        ValueError: If selected_candidate is not one of candidates.
    """

    anime_id: str
    anime_name: str
    song: Song
    match_status: MatchStatus
    selected_candidate: SearchCandidate | None = None
    candidates: tuple[SearchCandidate, ...] = ()

    def __post_init__(self) -> None:
        # Lists passed by callers are stored as tuples
        if not isinstance(self.candidates, tuple):
            object.__setattr__(self, "candidates", tuple(self.candidates))
        if self.selected_candidate is not None and self.selected_candidate not in self.candidates:
            raise ValueError(
                f"Selected candidate '{self.selected_candidate.id}' is not among the decision's candidates"
            )

    @classmethod
    def for_entry(
        cls,
        entry: SongEntry,
        match_status: MatchStatus,
        selected_candidate: SearchCandidate | None = None,
        candidates: list[SearchCandidate] | tuple[SearchCandidate, ...] = ()
    ) -> "MatchDecision":
        return cls(
            anime_id=entry.anime_id,
            anime_name=entry.anime_name,
            song=entry.song,
            match_status=match_status,
            selected_candidate=selected_candidate,
            candidates=tuple(candidates),
        )

    @property
    def is_matched(self) -> bool:
        return self.selected_candidate is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "animeId": self.anime_id,
            "animeName": self.anime_name,
            "song": self.song.to_dict(),
            "matchStatus": self.match_status.value,
            "candidates": [candidate.to_dict() for candidate in self.candidates],
        }
        if self.selected_candidate is not None:
            data["selectedTrack"] = self.selected_candidate.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MatchDecision":
        """
        Build a decision from its persisted form.

        Raises:
            KeyError, TypeError, ValueError: If the data is malformed.
        """
        selected = data.get("selectedTrack")
        return cls(
            anime_id=str(data["animeId"]),
            anime_name=data.get("animeName", ""),
            song=Song.from_dict(data["song"]),
            match_status=MatchStatus(data["matchStatus"]),
            selected_candidate=SearchCandidate.from_dict(selected) if selected else None,
            candidates=tuple(SearchCandidate.from_dict(c) for c in data.get("candidates", [])),
        )
