"""
Watched/unwatched status of each anime.

Statuses are stored as one JSON object under the "animeStatuses" key of a
StorageMedium, mapping anime id to "watched" or "unwatched". An anime with
no entry has not been classified yet.

Corrupt stored values are handled like the draft store does: logged, then
read as an empty mapping.
"""

import json
from collections.abc import Callable
from enum import Enum

from anisong_playlist.core.logger import get_logger
from anisong_playlist.core.storage import StorageMedium


logger = get_logger(__name__)


STATUSES_STORAGE_KEY = "animeStatuses"


class AnimeStatus(str, Enum):
    WATCHED = "watched"
    UNWATCHED = "unwatched"


class AnimeStatusStore:
    """
    Keyed store of anime statuses on top of a StorageMedium.

    Example:
        store = AnimeStatusStore(medium)
        store.set_status("a1", AnimeStatus.WATCHED)
        store.set_status("a1", None)  # back to unclassified
    """

    def __init__(self, medium: StorageMedium) -> None:
        self.medium = medium

    def statuses(self) -> dict[str, AnimeStatus]:
        """Return every valid stored status, keyed by anime id."""
        raw = self.medium.get(STATUSES_STORAGE_KEY)
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Stored anime statuses are not valid JSON, ignoring them: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error("Stored anime statuses must be a JSON object; ignoring them")
            return {}

        result: dict[str, AnimeStatus] = {}
        for anime_id, value in data.items():
            try:
                result[anime_id] = AnimeStatus(value)
            except ValueError:
                logger.warning(f"Ignoring unknown status '{value}' for anime '{anime_id}'")
        return result

    def get_status(self, anime_id: str) -> AnimeStatus | None:
        return self.statuses().get(anime_id)

    def watched_ids(self) -> set[str]:
        return {anime_id for anime_id, status in self.statuses().items() if status is AnimeStatus.WATCHED}

    def set_status(self, anime_id: str, status: AnimeStatus | None) -> None:
        """
        Set or clear the status of an anime.

        Args:
            anime_id: Anime identifier.
            status: New status, or None to remove the entry.
        """
        current = {key: value.value for key, value in self.statuses().items()}
        if status is None:
            current.pop(anime_id, None)
        else:
            current[anime_id] = AnimeStatus(status).value

        self.medium.set(STATUSES_STORAGE_KEY, json.dumps(current, ensure_ascii=False))
        logger.debug(f"Anime '{anime_id}' status: {status.value if status else 'cleared'}")

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call callback after every change to the stored statuses."""
        def on_change(key: str) -> None:
            if key == STATUSES_STORAGE_KEY:
                callback()

        return self.medium.subscribe(on_change)
