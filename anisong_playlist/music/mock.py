"""
Offline mock music service.

Used for development and tests without a Spotify account. Each search
returns, with a 30% chance, one candidate carrying the queried title and
artist (already marked exact) plus one to three partial variants such as
"(Instrumental)" or "- TV Size".

The random source is injectable so tests can make results deterministic.
"""

import random
import time
import uuid

from anisong_playlist.core.logger import get_logger
from anisong_playlist.music.base import MusicService
from anisong_playlist.music.models import (
    Confidence,
    CreatedPlaylist,
    SearchCandidate,
    SearchQuery,
)


logger = get_logger(__name__)


# Probability that a search contains an exact candidate
EXACT_MATCH_PROBABILITY = 0.3

# Suffixes used to build partial candidates
PARTIAL_VARIANTS = (
    " (Instrumental)",
    " - TV Size",
    " (Cover)",
    " - Remix",
)

MAX_PARTIAL_MATCHES = 3


class MockMusicService(MusicService):
    """
    Music service returning synthetic candidates.

    Attributes:
        rng: Random source. Pass random.Random(seed) for reproducible results.
        latency: Optional (min, max) seconds to sleep per request, to mimic
                 a real network call. None disables the delay.
        created_playlists: Playlists created during this process, newest last.

    Example:
        service = MockMusicService(rng=random.Random(42))
        candidates = service.search_track(SearchQuery("Title", "Artist"))
    """

    name = "mock"

    def __init__(
        self,
        rng: random.Random | None = None,
        latency: tuple[float, float] | None = None
    ) -> None:
        self.rng = rng or random.Random()
        self.latency = latency
        self.created_playlists: list[CreatedPlaylist] = []

    def _simulate_latency(self) -> None:
        if self.latency is not None:
            low, high = self.latency
            time.sleep(self.rng.uniform(low, high))

    def _token(self) -> str:
        return uuid.UUID(int=self.rng.getrandbits(128)).hex[:8]

    def search_track(self, query: SearchQuery) -> list[SearchCandidate]:
        self._simulate_latency()

        artist = query.artist or "Unknown Artist"
        results: list[SearchCandidate] = []

        if self.rng.random() < EXACT_MATCH_PROBABILITY:
            track_id = f"mock-exact-{self._token()}"
            results.append(SearchCandidate(
                id=track_id,
                name=query.track_name,
                artist=artist,
                album="Mock Album",
                uri=f"spotify:track:{track_id}",
                confidence=Confidence.EXACT,
            ))

        partial_count = self.rng.randint(1, MAX_PARTIAL_MATCHES)
        for i in range(partial_count):
            track_id = f"mock-partial-{i}-{self._token()}"
            results.append(SearchCandidate(
                id=track_id,
                name=f"{query.track_name}{PARTIAL_VARIANTS[i % len(PARTIAL_VARIANTS)]}",
                artist=artist,
                album=f"Mock Album {i + 1}",
                uri=f"spotify:track:{track_id}",
                confidence=Confidence.PARTIAL,
            ))

        logger.debug(f"Mock search '{query.track_name}' returned {len(results)} candidates")
        return results

    def create_playlist(
        self,
        name: str,
        description: str,
        track_uris: list[str]
    ) -> CreatedPlaylist:
        self._simulate_latency()

        playlist_id = f"mock-playlist-{int(time.time() * 1000)}-{self._token()}"
        playlist = CreatedPlaylist(
            id=playlist_id,
            name=name,
            url=f"https://open.spotify.com/playlist/{playlist_id}",
            track_count=len(track_uris),
        )
        self.created_playlists.append(playlist)
        logger.info(f"Mock playlist created: {name} ({len(track_uris)} tracks)")
        return playlist
