"""Test configuration loading"""

from pathlib import Path

import pytest

from anisong_playlist.core.config import (
    DEFAULT_SEARCH_LIMIT,
    load_config,
    parse_config,
)
from anisong_playlist.core.exceptions import ConfigError


def write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    """Test reading config.yaml"""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / "missing.yaml")
        assert "not found" in exc_info.value.message

    def test_empty_file_uses_defaults(self, tmp_path):
        config = load_config(write_config(tmp_path, ""))

        assert config.music_service.provider == "mock"
        assert config.spotify is None
        assert config.storage.path == Path("~/.anisong/storage.db").expanduser().resolve()
        assert config.data.anime_file == (tmp_path / "anime.json").resolve()
        assert config.matching.song_filter == "oped"
        assert config.matching.search_limit == DEFAULT_SEARCH_LIMIT
        assert config.logging.directory is None

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(write_config(tmp_path, "music_service: [unclosed"))

    def test_not_a_dictionary(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(write_config(tmp_path, "- a\n- b\n"))

    def test_full_config(self, tmp_path):
        config = load_config(write_config(tmp_path, (
            "music_service:\n"
            "  provider: Spotify\n"
            "spotify:\n"
            "  client_id: abc123\n"
            "  cache_path: tokens/spotify\n"
            "storage:\n"
            "  path: data/storage.db\n"
            "data:\n"
            "  anime_file: data/anime.json\n"
            "matching:\n"
            "  song_filter: all\n"
            "  search_limit: 20\n"
            "logging:\n"
            "  directory: logs\n"
        )))

        assert config.music_service.provider == "spotify"
        assert config.spotify.client_id == "abc123"
        assert config.spotify.redirect_uri == "http://127.0.0.1:8888/callback"
        assert config.spotify.cache_path == (tmp_path / "tokens" / "spotify").resolve()
        assert config.storage.path == (tmp_path / "data" / "storage.db").resolve()
        assert config.data.anime_file == (tmp_path / "data" / "anime.json").resolve()
        assert config.matching.song_filter == "all"
        assert config.matching.search_limit == 20
        assert config.logging.directory == (tmp_path / "logs").resolve()

    def test_config_is_frozen(self, tmp_path):
        config = load_config(write_config(tmp_path, ""))
        with pytest.raises(AttributeError):
            config.matching = None


class TestParseConfig:
    """Test validation rules"""

    def test_unknown_provider(self, tmp_path):
        with pytest.raises(ConfigError):
            parse_config({"music_service": {"provider": "tidal"}}, tmp_path)

    def test_spotify_requires_section(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            parse_config({"music_service": {"provider": "spotify"}}, tmp_path)
        assert exc_info.value.details["missing_section"] == "spotify"

    def test_spotify_requires_client_id(self, tmp_path):
        with pytest.raises(ConfigError):
            parse_config({"music_service": {"provider": "spotify"}, "spotify": {"client_id": " "}}, tmp_path)

    def test_provider_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ANISONG_MUSIC_SERVICE", "mock")
        config = parse_config({
            "music_service": {"provider": "spotify"},
            "spotify": {"client_id": "abc"},
        }, tmp_path)

        assert config.music_service.provider == "mock"
        assert config.spotify.client_id == "abc"

    def test_section_must_be_dictionary(self, tmp_path):
        with pytest.raises(ConfigError):
            parse_config({"matching": "all"}, tmp_path)

    def test_unknown_song_filter(self, tmp_path):
        with pytest.raises(ConfigError):
            parse_config({"matching": {"song_filter": "insert"}}, tmp_path)

    @pytest.mark.parametrize("limit", [0, 51, "10", True, 2.5])
    def test_invalid_search_limit(self, tmp_path, limit):
        with pytest.raises(ConfigError):
            parse_config({"matching": {"search_limit": limit}}, tmp_path)

    def test_home_is_expanded(self, tmp_path):
        config = parse_config({"logging": {"directory": "~/anisong-logs"}}, tmp_path)
        assert config.logging.directory == (Path.home() / "anisong-logs").resolve()

    def test_empty_path_rejected(self, tmp_path):
        with pytest.raises(ConfigError):
            parse_config({"storage": {"path": ""}}, tmp_path)
