"""
Common interface implemented by every music service.

The matching session only needs search_track(); the CLI additionally
uses create_playlist() and the authentication helpers. Services are
passed explicitly to the code that needs them, never looked up from a
global instance.
"""

from abc import ABC, abstractmethod

from anisong_playlist.music.models import CreatedPlaylist, SearchCandidate, SearchQuery


class MusicService(ABC):
    """
    Abstract music service.

    Implementations:
        MockMusicService: Offline service with randomized results.
        SpotifyMusicService: Spotify Web API through spotipy.
    """

    name: str = "music service"

    @abstractmethod
    def search_track(self, query: SearchQuery) -> list[SearchCandidate]:
        """
        Search the catalog for a song.

        Args:
            query: Track name and optional artist.

        Returns:
            Zero or more candidates in unspecified order. Confidence is
            advisory; the classifier decides which ones are exact.

        Raises:
            MusicServiceError: If the request fails (network, auth, rate limit).
        """

    @abstractmethod
    def create_playlist(
        self,
        name: str,
        description: str,
        track_uris: list[str]
    ) -> CreatedPlaylist:
        """
        Create a playlist for the current user and add the given tracks.

        Raises:
            MusicServiceError: If the playlist cannot be created or filled.
        """

    def authenticate(self) -> bool:
        """Run the service's authentication flow. Returns True on success."""
        return True

    def is_authenticated(self) -> bool:
        return True
