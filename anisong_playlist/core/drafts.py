"""
Draft storage: one in-progress matching result per quarter.

All drafts are stored as a single JSON object under the "playlistDrafts"
key of a StorageMedium:

    {
      "2024q1": {
        "quarter": "2024q1",
        "createdAt": "2024-01-10T12:00:00.000Z",
        "updatedAt": "2024-01-11T08:30:00.000Z",
        "tracks": [MatchDecision | null, ...],
        "songFilter": "oped"
      }
    }

Semantics:
    - save() replaces the quarter's draft wholesale and stamps updatedAt.
    - Every mutation re-reads the stored object right before writing;
      concurrent writers are last-write-wins.
    - A stored value that is not valid JSON is logged and read as an empty
      store. A single unreadable draft is logged and skipped.
    - Subscribers are notified after every mutation, including mutations
      made through another DraftStore on the same medium.

Usage:
    store = DraftStore(SqliteMedium(config.storage.path))
    draft = Draft.new("2024q1", session.result, SongFilterMode.OPED, store.now())
    store.save("2024q1", draft)
"""

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from anisong_playlist.core.logger import get_logger
from anisong_playlist.core.storage import StorageMedium
from anisong_playlist.matching.models import MatchDecision, SongFilterMode


logger = get_logger(__name__)


DRAFTS_STORAGE_KEY = "playlistDrafts"

Clock = Callable[[], datetime]


def format_timestamp(moment: datetime) -> str:
    """
    Format a datetime as a UTC ISO-8601 string with milliseconds.

    Example:
        format_timestamp(datetime(2024, 1, 10, 12, tzinfo=timezone.utc))
        # "2024-01-10T12:00:00.000Z"
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Draft:
    """
    Saved matching result for one quarter.

    Attributes:
        quarter: Season key, e.g. "2024q1".
        created_at: ISO timestamp of the first save.
        updated_at: ISO timestamp of the last save.
        tracks: One slot per song of the session; None for songs that were
                never decided.
        song_filter: Filter used to build the song list. Reusing it keeps
                     tracks[i] aligned with the same song on re-edit.
    """

    quarter: str
    created_at: str
    updated_at: str
    tracks: tuple[MatchDecision | None, ...] = ()
    song_filter: SongFilterMode = SongFilterMode.OPED

    def __post_init__(self) -> None:
        if not isinstance(self.tracks, tuple):
            object.__setattr__(self, "tracks", tuple(self.tracks))

    @classmethod
    def new(
        cls,
        quarter: str,
        tracks: Sequence[MatchDecision | None],
        song_filter: SongFilterMode,
        timestamp: str
    ) -> "Draft":
        """Create a draft whose creation and update times are both timestamp."""
        return cls(
            quarter=quarter,
            created_at=timestamp,
            updated_at=timestamp,
            tracks=tuple(tracks),
            song_filter=song_filter,
        )

    def with_tracks(self, tracks: Sequence[MatchDecision | None]) -> "Draft":
        return replace(self, tracks=tuple(tracks))

    @property
    def decided_count(self) -> int:
        return sum(1 for track in self.tracks if track is not None)

    @property
    def matched_count(self) -> int:
        return sum(1 for track in self.tracks if track is not None and track.is_matched)

    def to_dict(self) -> dict[str, Any]:
        return {
            "quarter": self.quarter,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "tracks": [track.to_dict() if track is not None else None for track in self.tracks],
            "songFilter": self.song_filter.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Draft":
        """
        Build a draft from its stored form.

        Drafts written without a songFilter are read as OPED.

        Raises:
            KeyError, TypeError, ValueError: If the data is malformed.
        """
        return cls(
            quarter=data["quarter"],
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
            tracks=tuple(
                MatchDecision.from_dict(track) if track is not None else None
                for track in data.get("tracks", [])
            ),
            song_filter=SongFilterMode(data.get("songFilter", SongFilterMode.OPED.value)),
        )


class DraftStore:
    """
    Keyed store of drafts on top of a StorageMedium.

    Attributes:
        medium: Where the drafts object is persisted.
        clock: Returns the current time. Injected for tests.

    Example:
        store = DraftStore(MemoryMedium())
        unsubscribe = store.subscribe(lambda: print("drafts changed"))
        store.save("2024q1", draft)
        unsubscribe()
    """

    def __init__(self, medium: StorageMedium, clock: Clock | None = None) -> None:
        self.medium = medium
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        # Parsed drafts for the last raw value seen
        self._cached_raw: str | None = None
        self._cached_drafts: dict[str, Draft] = {}

    def now(self) -> str:
        return format_timestamp(self.clock())

    # =========================================================================
    # Raw access
    # =========================================================================

    def _read_raw(self) -> dict[str, Any]:
        """
        Read the stored drafts object.

        Returns:
            The parsed object, or {} when nothing is stored or the stored
            value is corrupt.
        """
        raw = self.medium.get(DRAFTS_STORAGE_KEY)
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Stored drafts are not valid JSON, ignoring them: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Stored drafts must be a JSON object, got {type(data).__name__}; ignoring them")
            return {}
        return data

    def _write_raw(self, data: dict[str, Any]) -> None:
        self.medium.set(DRAFTS_STORAGE_KEY, json.dumps(data, ensure_ascii=False))

    # =========================================================================
    # Public API
    # =========================================================================

    def get_all(self) -> dict[str, Draft]:
        """
        Return every readable draft, keyed by season.

        The parsed result is cached until the stored value changes.
        """
        raw = self.medium.get(DRAFTS_STORAGE_KEY)
        if raw is not None and raw == self._cached_raw:
            return dict(self._cached_drafts)

        drafts: dict[str, Draft] = {}
        for season_key, value in self._read_raw().items():
            try:
                drafts[season_key] = Draft.from_dict(value)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Ignoring unreadable draft '{season_key}': {e}")

        self._cached_raw = raw
        self._cached_drafts = drafts
        return dict(drafts)

    def get(self, season_key: str) -> Draft | None:
        return self.get_all().get(season_key)

    def save(self, season_key: str, draft: Draft) -> Draft:
        """
        Store a draft, replacing any previous draft of the season.

        Args:
            season_key: Season the draft is stored under.
            draft: The draft. Its created_at is kept as given.

        Returns:
            The stored draft, with updated_at set to the current time.
        """
        stamped = replace(draft, updated_at=self.now())

        data = self._read_raw()
        data[season_key] = stamped.to_dict()
        self._write_raw(data)

        logger.debug(f"Saved draft '{season_key}' ({len(stamped.tracks)} tracks)")
        return stamped

    def delete(self, season_key: str) -> bool:
        """
        Delete a season's draft.

        Returns:
            True if a draft was deleted, False if none was stored (nothing
            is written and no subscriber is notified).
        """
        data = self._read_raw()
        if season_key not in data:
            return False
        del data[season_key]
        self._write_raw(data)
        logger.debug(f"Deleted draft '{season_key}'")
        return True

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Call callback after every change to the stored drafts.

        Returns:
            A function that cancels the subscription.
        """
        def on_change(key: str) -> None:
            if key == DRAFTS_STORAGE_KEY:
                callback()

        return self.medium.subscribe(on_change)
