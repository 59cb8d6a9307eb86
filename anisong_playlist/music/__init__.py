"""
Music service integration for anisong-playlist.

Components:
    - models: Song, Anime, SearchQuery, SearchCandidate, CreatedPlaylist
    - MusicService: Common interface (search + playlist creation)
    - MockMusicService: Offline service with randomized candidates
    - SpotifyMusicService: Spotify Web API through spotipy
    - create_music_service: Build the service selected by configuration

Usage:
    from anisong_playlist.music import create_music_service

    service = create_music_service(config)
    session = MatchingSession(entries, service)
"""

from anisong_playlist.core.config import Config
from anisong_playlist.core.logger import get_logger
from anisong_playlist.music.base import MusicService
from anisong_playlist.music.mock import MockMusicService
from anisong_playlist.music.models import (
    Anime,
    Confidence,
    CreatedPlaylist,
    SearchCandidate,
    SearchQuery,
    Song,
)

logger = get_logger(__name__)


def create_music_service(config: Config) -> MusicService:
    """
    Build the music service selected by config.music_service.provider.

    Args:
        config: Loaded application configuration.

    Returns:
        A new MusicService instance. The caller owns it and passes it to
        whatever needs it; there is no shared global instance.

    Behavior:
        - "mock": MockMusicService
        - "spotify": SpotifyMusicService built from config.spotify
        - anything else: warning, then MockMusicService
    """
    provider = config.music_service.provider

    if provider == "spotify":
        # Imported lazily so the mock provider works without Spotify settings
        from anisong_playlist.music.spotify import SpotifyMusicService

        return SpotifyMusicService.from_config(
            config.spotify,
            search_limit=config.matching.search_limit,
        )
    if provider != "mock":
        logger.warning(f"Unknown music service provider: {provider}. Falling back to mock.")
    return MockMusicService()


__all__ = [
    # Models
    "Anime",
    "Confidence",
    "CreatedPlaylist",
    "SearchCandidate",
    "SearchQuery",
    "Song",
    # Services
    "MusicService",
    "MockMusicService",
    "create_music_service",
]
