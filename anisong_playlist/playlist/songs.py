"""
Building the song list of a matching session from the anime data file.

The anime data file is a JSON array of anime objects:

    [
      {
        "id": "a1",
        "name": "Anime Name",
        "quarter": "2024q1",
        "url": "https://...",
        "imageUrl": "https://...",
        "songs": [
          {"type": "OP", "trackName": "Title", "artist": "Artist"},
          {"type": "ED1", "trackName": "エンディングテーマ「Title」"}
        ]
      }
    ]

A session covers the watched anime of one quarter, with songs filtered by
SongFilterMode. The order of the resulting SongEntry list is the order of
the data file, which keeps draft decisions aligned with their songs.
"""

import json
import re
from pathlib import Path
from typing import Iterable

from anisong_playlist.core.exceptions import ConfigError
from anisong_playlist.core.logger import get_logger
from anisong_playlist.matching.models import SongEntry, SongFilterMode
from anisong_playlist.music.models import Anime, Song
from anisong_playlist.playlist.quarters import parse_quarter, sort_quarters


logger = get_logger(__name__)


_OP_ED_PATTERN = re.compile(r"^(op|ed)", re.IGNORECASE)


def is_op_or_ed(song: Song) -> bool:
    """
    Check whether a song is an opening or ending theme.

    Example:
        is_op_or_ed(Song(type=" ED2", track_name="..."))  # True
        is_op_or_ed(Song(type="挿入歌", track_name="..."))  # False
    """
    return bool(_OP_ED_PATTERN.match(song.type.strip()))


def filter_songs(songs: Iterable[Song], mode: SongFilterMode) -> list[Song]:
    if mode is SongFilterMode.ALL:
        return list(songs)
    return [song for song in songs if is_op_or_ed(song)]


def load_anime_list(path: Path) -> list[Anime]:
    """
    Load the anime data file.

    Args:
        path: JSON file as described in the module docstring.

    Returns:
        Anime objects in file order.

    Raises:
        ConfigError: If the file is missing, is not valid JSON, or an entry
                     cannot be read. The data file is part of the setup, so
                     a broken one stops the program.
    """
    if not path.exists():
        raise ConfigError(
            f"Anime data file not found: {path}",
            details={"file_path": str(path)}
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(
            f"Failed to read anime data file: {e}",
            details={"file_path": str(path), "original_error": str(e)}
        ) from e

    if not isinstance(data, list):
        raise ConfigError(
            "Anime data file must contain a JSON array",
            details={"file_path": str(path)}
        )

    anime_list = []
    for position, item in enumerate(data):
        try:
            anime = Anime.from_dict(item)
            parse_quarter(anime.quarter)
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise ConfigError(
                f"Invalid anime entry #{position + 1} in data file: {e}",
                details={"file_path": str(path), "position": position}
            ) from e
        anime_list.append(anime)

    logger.debug(f"Loaded {len(anime_list)} anime from {path}")
    return anime_list


def watched_anime_for_quarter(
    anime_list: Iterable[Anime],
    quarter: str,
    watched_ids: set[str],
    mode: SongFilterMode
) -> list[Anime]:
    """
    Select the watched anime of a quarter, with filtered songs.

    Anime left without any song after filtering are dropped.
    """
    selected = []
    for anime in anime_list:
        if anime.quarter != quarter or anime.id not in watched_ids:
            continue
        songs = filter_songs(anime.songs, mode)
        if songs:
            selected.append(anime.with_songs(songs))
    return selected


def watched_quarters(anime_list: Iterable[Anime], watched_ids: set[str]) -> list[str]:
    """Quarters with at least one watched anime that has songs, newest first."""
    quarters = {
        anime.quarter
        for anime in anime_list
        if anime.id in watched_ids and anime.songs
    }
    return sort_quarters(quarters, newest_first=True)


def build_song_entries(anime_list: Iterable[Anime]) -> list[SongEntry]:
    """Flatten anime into one SongEntry per song, in order."""
    return [
        SongEntry(anime_id=anime.id, anime_name=anime.name, song=song)
        for anime in anime_list
        for song in anime.songs
    ]
