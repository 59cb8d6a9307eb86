"""
From anime data to playlists.

Components:
    - songs: Anime data loading, song filtering, session song lists
    - quarters: Quarter parsing, ordering and naming
    - creator: Playlist creation from drafts
"""

from anisong_playlist.playlist.creator import (
    create_merged_playlist,
    create_quarter_playlist,
    matched_decisions,
)
from anisong_playlist.playlist.quarters import (
    compare_quarters,
    generate_merged_playlist_name,
    parse_quarter,
    quarter_to_japanese_name,
    sort_quarters,
)
from anisong_playlist.playlist.songs import (
    build_song_entries,
    filter_songs,
    is_op_or_ed,
    load_anime_list,
    watched_anime_for_quarter,
    watched_quarters,
)

__all__ = [
    "build_song_entries",
    "compare_quarters",
    "create_merged_playlist",
    "create_quarter_playlist",
    "filter_songs",
    "generate_merged_playlist_name",
    "is_op_or_ed",
    "load_anime_list",
    "matched_decisions",
    "parse_quarter",
    "quarter_to_japanese_name",
    "sort_quarters",
    "watched_anime_for_quarter",
    "watched_quarters",
]
