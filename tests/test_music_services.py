"""Test music service implementations"""

import random
from unittest.mock import MagicMock

import pytest
import spotipy
from spotipy.oauth2 import SpotifyOauthError

from anisong_playlist.core.config import parse_config
from anisong_playlist.core.exceptions import MusicServiceError
from anisong_playlist.music import create_music_service
from anisong_playlist.music.mock import MockMusicService
from anisong_playlist.music.models import Confidence, SearchQuery
from anisong_playlist.music.spotify import PLAYLIST_ADD_BATCH_SIZE, SpotifyMusicService


@pytest.fixture
def spotify_track_item():
    """Sample track item of a Spotify search response"""
    return {
        "id": "track123",
        "name": "Sample Song",
        "uri": "spotify:track:track123",
        "duration_ms": 215000,
        "preview_url": None,
        "artists": [{"id": "ar1", "name": "Sample Artist"}, {"id": "ar2", "name": "Guest"}],
        "album": {"id": "al1", "name": "Sample Album", "release_date": "2024-01-10"},
    }


class TestMockMusicService:
    """Test the offline mock service"""

    def test_results_are_reproducible(self):
        query = SearchQuery("Sample Song", "Sample Artist")

        first = MockMusicService(rng=random.Random(7)).search_track(query)
        second = MockMusicService(rng=random.Random(7)).search_track(query)

        assert first == second

    def test_result_shape(self):
        service = MockMusicService(rng=random.Random(1))

        for _ in range(20):
            results = service.search_track(SearchQuery("Sample Song", "Sample Artist"))
            exact = [c for c in results if c.confidence == Confidence.EXACT]
            partial = [c for c in results if c.confidence == Confidence.PARTIAL]

            assert len(exact) <= 1
            assert 1 <= len(partial) <= 3
            assert all(c.uri.startswith("spotify:track:") for c in results)
            if exact:
                assert exact[0].name == "Sample Song"
                assert exact[0].artist == "Sample Artist"

    def test_unknown_artist(self):
        results = MockMusicService(rng=random.Random(3)).search_track(SearchQuery("Sample Song"))
        assert all(c.artist == "Unknown Artist" for c in results)

    def test_create_playlist(self):
        service = MockMusicService(rng=random.Random(1))

        playlist = service.create_playlist("Name", "Description", ["spotify:track:a", "spotify:track:b"])

        assert playlist.name == "Name"
        assert playlist.track_count == 2
        assert playlist.url.endswith(playlist.id)
        assert service.created_playlists == [playlist]

    def test_always_authenticated(self):
        service = MockMusicService()
        assert service.is_authenticated() is True
        assert service.authenticate() is True


class TestSpotifyMusicService:
    """Test the spotipy wrapper"""

    def test_build_query(self):
        assert SpotifyMusicService.build_query(SearchQuery("Title", "Artist")) == "track:Title artist:Artist"
        assert SpotifyMusicService.build_query(SearchQuery("Title")) == "track:Title"

    def test_search_track(self, spotify_track_item):
        spotify = MagicMock()
        spotify.search.return_value = {"tracks": {"items": [spotify_track_item, None]}}
        service = SpotifyMusicService(spotify, search_limit=5)

        results = service.search_track(SearchQuery("Sample Song", "Sample Artist"))

        spotify.search.assert_called_once_with(q="track:Sample Song artist:Sample Artist", type="track", limit=5)
        assert len(results) == 1
        candidate = results[0]
        assert candidate.id == "track123"
        assert candidate.artist == "Sample Artist, Guest"
        assert candidate.album == "Sample Album"
        assert candidate.release_date == "2024-01-10"
        assert candidate.duration_ms == 215000
        assert candidate.confidence == Confidence.PARTIAL

    def test_search_empty_response(self):
        spotify = MagicMock()
        spotify.search.return_value = {"tracks": {"items": []}}

        assert SpotifyMusicService(spotify).search_track(SearchQuery("Nothing")) == []

    def test_search_error_is_wrapped(self):
        spotify = MagicMock()
        spotify.search.side_effect = spotipy.SpotifyException(503, -1, "Service unavailable")

        with pytest.raises(MusicServiceError) as exc_info:
            SpotifyMusicService(spotify).search_track(SearchQuery("Title"))

        assert exc_info.value.details["status_code"] == 503
        assert exc_info.value.is_auth_error is False

    @pytest.mark.parametrize("status, auth, rate_limit", [(401, True, False), (403, True, False), (429, False, True)])
    def test_error_flags(self, status, auth, rate_limit):
        spotify = MagicMock()
        spotify.search.side_effect = spotipy.SpotifyException(status, -1, "error")

        with pytest.raises(MusicServiceError) as exc_info:
            SpotifyMusicService(spotify).search_track(SearchQuery("Title"))

        assert exc_info.value.is_auth_error is auth
        assert exc_info.value.is_rate_limit is rate_limit

    def test_token_refresh_error_is_wrapped(self):
        spotify = MagicMock()
        spotify.search.side_effect = SpotifyOauthError(
            "error: invalid_grant, error_description: Refresh token revoked",
            error="invalid_grant",
            error_description="Refresh token revoked",
        )

        with pytest.raises(MusicServiceError) as exc_info:
            SpotifyMusicService(spotify).search_track(SearchQuery("Title"))

        assert exc_info.value.is_auth_error is True
        assert exc_info.value.is_rate_limit is False
        assert exc_info.value.details["oauth_error"] == "invalid_grant"
        assert isinstance(exc_info.value.__cause__, SpotifyOauthError)

    def test_token_refresh_error_on_playlist_creation(self):
        spotify = MagicMock()
        spotify.current_user.side_effect = SpotifyOauthError("expired", error="invalid_grant")

        with pytest.raises(MusicServiceError) as exc_info:
            SpotifyMusicService(spotify).create_playlist("Name", "", ["spotify:track:a"])

        assert exc_info.value.is_auth_error is True

    def test_create_playlist_in_batches(self):
        spotify = MagicMock()
        spotify.current_user.return_value = {"id": "user1"}
        spotify.user_playlist_create.return_value = {
            "id": "pl1",
            "name": "2024q1 アニメ主題歌",
            "external_urls": {"spotify": "https://open.spotify.com/playlist/pl1"},
        }
        uris = [f"spotify:track:{i}" for i in range(PLAYLIST_ADD_BATCH_SIZE + 5)]

        playlist = SpotifyMusicService(spotify).create_playlist("2024q1 アニメ主題歌", "desc", uris)

        spotify.user_playlist_create.assert_called_once_with("user1", "2024q1 アニメ主題歌", public=False, description="desc")
        batches = [call.args[1] for call in spotify.playlist_add_items.call_args_list]
        assert [len(batch) for batch in batches] == [PLAYLIST_ADD_BATCH_SIZE, 5]
        assert batches[0][0] == "spotify:track:0"
        assert playlist.url == "https://open.spotify.com/playlist/pl1"
        assert playlist.track_count == len(uris)

    def test_create_playlist_error(self):
        spotify = MagicMock()
        spotify.current_user.side_effect = spotipy.SpotifyException(401, -1, "expired")

        with pytest.raises(MusicServiceError) as exc_info:
            SpotifyMusicService(spotify).create_playlist("Name", "", ["spotify:track:a"])

        assert exc_info.value.is_auth_error is True

    def test_authenticate(self):
        spotify = MagicMock()
        spotify.current_user.return_value = {"id": "user1", "display_name": "User"}

        assert SpotifyMusicService(spotify).authenticate() is True

    def test_is_authenticated_uses_cached_token(self):
        spotify = MagicMock()
        spotify.auth_manager.get_cached_token.return_value = None
        service = SpotifyMusicService(spotify)
        assert service.is_authenticated() is False

        spotify.auth_manager.get_cached_token.return_value = {"access_token": "x"}
        assert service.is_authenticated() is True


class TestCreateMusicService:
    """Test the provider factory"""

    def test_mock_provider(self, tmp_path):
        config = parse_config({}, tmp_path)
        assert isinstance(create_music_service(config), MockMusicService)

    def test_spotify_provider(self, tmp_path):
        config = parse_config({
            "music_service": {"provider": "spotify"},
            "spotify": {"client_id": "abc", "cache_path": "cache/token"},
            "matching": {"search_limit": 15},
        }, tmp_path)

        service = create_music_service(config)

        assert isinstance(service, SpotifyMusicService)
        assert service.search_limit == 15
        assert (tmp_path / "cache").is_dir()
