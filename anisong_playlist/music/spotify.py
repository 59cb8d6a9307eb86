"""
Spotify music service for anisong-playlist.

This module wraps the spotipy library to provide track search and
playlist creation against the Spotify Web API.

Authentication:
    The Authorization Code flow with PKCE is used (spotipy.SpotifyPKCE),
    so only a client_id and a registered redirect URI are needed; no
    client secret is stored. The token is cached on disk and refreshed by
    spotipy automatically.

Search:
    Queries use Spotify field filters:
        track:<name> artist:<artist>   (artist omitted when unknown)
    Every result is returned with PARTIAL confidence; deciding which
    candidates are exact is the classifier's job.

Usage:
    from anisong_playlist.music.spotify import SpotifyMusicService

    service = SpotifyMusicService.from_config(config.spotify, search_limit=10)
    candidates = service.search_track(SearchQuery("Title", "Artist"))
"""

from typing import Any

import spotipy
from spotipy.cache_handler import CacheFileHandler
from spotipy.oauth2 import SpotifyOauthError, SpotifyPKCE

from anisong_playlist.core.config import SpotifyConfig
from anisong_playlist.core.exceptions import MusicServiceError
from anisong_playlist.core.logger import get_logger
from anisong_playlist.music.base import MusicService
from anisong_playlist.music.models import (
    Confidence,
    CreatedPlaylist,
    SearchCandidate,
    SearchQuery,
)


logger = get_logger(__name__)


SPOTIFY_SCOPES = (
    "playlist-modify-public",
    "playlist-modify-private",
    "user-read-private",
)

DEFAULT_SEARCH_LIMIT = 10

# Spotify accepts at most 100 URIs per "add items" request
PLAYLIST_ADD_BATCH_SIZE = 100

# Token refresh failures raise SpotifyOauthError, which is not a SpotifyException
SPOTIFY_ERRORS = (spotipy.SpotifyException, SpotifyOauthError)


def _wrap_spotify_error(action: str, error: Exception, details: dict) -> MusicServiceError:
    """
    Convert a spotipy exception into a MusicServiceError.

    Args:
        action: Short description of the failed operation ("Track search").
        error: The exception raised by spotipy (API or OAuth error).
        details: Context to attach to the error.

    Returns:
        MusicServiceError flagged as auth error (401/403 or a failed token
        request) or rate limit (429).
    """
    if isinstance(error, SpotifyOauthError):
        return MusicServiceError(
            f"{action} failed: Spotify authorization error: {error}",
            details={**details, "oauth_error": error.error, "original_error": str(error)},
            is_auth_error=True,
        )

    status = getattr(error, "http_status", None)
    return MusicServiceError(
        f"{action} failed: {getattr(error, 'msg', None) or error}",
        details={**details, "status_code": status, "original_error": str(error)},
        is_auth_error=status in (401, 403),
        is_rate_limit=status == 429,
    )


class SpotifyMusicService(MusicService):
    """
    Music service backed by the Spotify Web API.

    Attributes:
        _spotify: The underlying spotipy.Spotify instance.
        search_limit: Maximum number of candidates per search (1-50).

    Example:
        service = SpotifyMusicService(spotipy.Spotify(auth_manager=...))
        playlist = service.create_playlist("2024q1 アニメ主題歌", "", uris)
    """

    name = "spotify"

    def __init__(self, spotify_instance: spotipy.Spotify, search_limit: int = DEFAULT_SEARCH_LIMIT) -> None:
        self._spotify = spotify_instance
        self.search_limit = search_limit

    @classmethod
    def from_config(
        cls,
        spotify_config: SpotifyConfig,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
        open_browser: bool = True
    ) -> "SpotifyMusicService":
        """
        Build the service with a PKCE auth manager.

        Args:
            spotify_config: Validated Spotify section of the configuration.
            search_limit: Maximum number of candidates per search.
            open_browser: Whether spotipy may open a browser for login.

        Returns:
            A ready-to-use SpotifyMusicService. No network request is made
            until the first search or an explicit authenticate().
        """
        cache_handler = None
        if spotify_config.cache_path is not None:
            spotify_config.cache_path.parent.mkdir(parents=True, exist_ok=True)
            cache_handler = CacheFileHandler(cache_path=str(spotify_config.cache_path))

        auth_manager = SpotifyPKCE(
            client_id=spotify_config.client_id,
            redirect_uri=spotify_config.redirect_uri,
            scope=" ".join(SPOTIFY_SCOPES),
            cache_handler=cache_handler,
            open_browser=open_browser,
        )
        return cls(spotipy.Spotify(auth_manager=auth_manager), search_limit=search_limit)

    # =========================================================================
    # Authentication
    # =========================================================================

    def authenticate(self) -> bool:
        """
        Run the login flow (if needed) by calling the current-user endpoint.

        Returns:
            True if the user is authenticated afterwards.

        Raises:
            MusicServiceError: If authentication fails.
        """
        try:
            user = self._spotify.current_user()
        except SPOTIFY_ERRORS as e:
            raise _wrap_spotify_error("Spotify authentication", e, {}) from e
        logger.info(f"Authenticated on Spotify as {user.get('display_name') or user.get('id')}")
        return True

    def is_authenticated(self) -> bool:
        auth_manager = getattr(self._spotify, "auth_manager", None)
        if auth_manager is None:
            return False
        return auth_manager.get_cached_token() is not None

    # =========================================================================
    # Search
    # =========================================================================

    @staticmethod
    def build_query(query: SearchQuery) -> str:
        """
        Build the Spotify search string for a query.

        Example:
            build_query(SearchQuery("Title", "Artist"))  # "track:Title artist:Artist"
        """
        if query.artist:
            return f"track:{query.track_name} artist:{query.artist}"
        return f"track:{query.track_name}"

    @staticmethod
    def _to_candidate(item: dict[str, Any]) -> SearchCandidate:
        album = item.get("album") or {}
        return SearchCandidate(
            id=item["id"],
            name=item.get("name", ""),
            artist=", ".join(artist["name"] for artist in item.get("artists", [])),
            uri=item.get("uri", f"spotify:track:{item['id']}"),
            confidence=Confidence.PARTIAL,
            album=album.get("name"),
            duration_ms=item.get("duration_ms"),
            release_date=album.get("release_date"),
            preview_url=item.get("preview_url"),
        )

    def search_track(self, query: SearchQuery) -> list[SearchCandidate]:
        q = self.build_query(query)
        try:
            response = self._spotify.search(q=q, type="track", limit=self.search_limit)
        except SPOTIFY_ERRORS as e:
            logger.error(f"Track search failed for '{q}': {e}")
            raise _wrap_spotify_error("Track search", e, {"query": q}) from e

        items = (response or {}).get("tracks", {}).get("items", [])
        candidates = [self._to_candidate(item) for item in items if item and item.get("id")]
        logger.debug(f"Spotify search '{q}' returned {len(candidates)} candidates")
        return candidates

    # =========================================================================
    # Playlists
    # =========================================================================

    def create_playlist(
        self,
        name: str,
        description: str,
        track_uris: list[str]
    ) -> CreatedPlaylist:
        """
        Create a private playlist for the current user and add the tracks.

        Tracks are added in batches of PLAYLIST_ADD_BATCH_SIZE, in order.

        Raises:
            MusicServiceError: If any Spotify request fails. A playlist that
                               was created before the failure is left as is.
        """
        try:
            user_id = self._spotify.current_user()["id"]
            playlist = self._spotify.user_playlist_create(
                user_id,
                name,
                public=False,
                description=description or "",
            )
            for start in range(0, len(track_uris), PLAYLIST_ADD_BATCH_SIZE):
                self._spotify.playlist_add_items(
                    playlist["id"],
                    track_uris[start:start + PLAYLIST_ADD_BATCH_SIZE],
                )
        except SPOTIFY_ERRORS as e:
            logger.error(f"Playlist creation failed for '{name}': {e}")
            raise _wrap_spotify_error(
                "Playlist creation", e, {"playlist_name": name, "track_count": len(track_uris)}
            ) from e

        logger.info(f"Created Spotify playlist '{name}' with {len(track_uris)} tracks")
        return CreatedPlaylist(
            id=playlist["id"],
            name=playlist.get("name", name),
            url=playlist.get("external_urls", {}).get(
                "spotify", f"https://open.spotify.com/playlist/{playlist['id']}"
            ),
            track_count=len(track_uris),
        )
