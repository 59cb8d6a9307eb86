"""
Configuration management for anisong-playlist.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - The music service provider (mock or spotify)
    - Spotify application settings (client_id, redirect URI, token cache)
    - Location of the storage database (drafts and watched statuses)
    - Location of the anime data file
    - Matching defaults (song filter, search result limit)
    - Optional log directory

Configuration File Location:
    config.yaml in the current working directory, unless an explicit
    path is given (CLI: --config).

Environment Override:
    ANISONG_MUSIC_SERVICE replaces music_service.provider when set.

Example config.yaml:
    music_service:
      provider: spotify

    spotify:
      client_id: "your_client_id_here"
      redirect_uri: "http://127.0.0.1:8888/callback"
      cache_path: "~/.anisong/spotify_token"

    storage:
      path: "~/.anisong/storage.db"

    data:
      anime_file: "anime.json"

    matching:
      song_filter: oped   # or: all
      search_limit: 10

    logging:
      directory: "~/.anisong/logs"
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from anisong_playlist.core.exceptions import ConfigError


# Default configuration file name (in current working directory)
CONFIG_FILENAME = "config.yaml"

# Environment variable overriding music_service.provider
PROVIDER_ENV_VAR = "ANISONG_MUSIC_SERVICE"

MUSIC_SERVICE_PROVIDERS = ("mock", "spotify")
SONG_FILTER_MODES = ("oped", "all")

DEFAULT_PROVIDER = "mock"
DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"
DEFAULT_STORAGE_PATH = "~/.anisong/storage.db"
DEFAULT_ANIME_FILE = "anime.json"
DEFAULT_SONG_FILTER = "oped"
DEFAULT_SEARCH_LIMIT = 10

# Spotify search API accepts 1..50 results per page
MAX_SEARCH_LIMIT = 50


@dataclass(frozen=True)
class MusicServiceConfig:
    """
    Music service selection.

    Attributes:
        provider: "mock" (offline, random results) or "spotify".
    """
    provider: str


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify application settings.

    These values come from the Spotify Developer Dashboard:
    https://developer.spotify.com/dashboard

    Attributes:
        client_id: The Spotify application client ID.
        redirect_uri: Redirect URI registered for the application.
                      Used by the PKCE login flow.
        cache_path: File where the access/refresh token is cached.
                    None lets spotipy use its default (.cache in CWD).
    """
    client_id: str
    redirect_uri: str
    cache_path: Path | None = None


@dataclass(frozen=True)
class StorageConfig:
    """
    Persistent storage settings.

    Attributes:
        path: SQLite file holding drafts and watched statuses.
              Shared by every process that uses the same path.
    """
    path: Path


@dataclass(frozen=True)
class DataConfig:
    """
    Source data settings.

    Attributes:
        anime_file: JSON file listing the anime of every quarter with
                    their theme songs.
    """
    anime_file: Path


@dataclass(frozen=True)
class MatchingConfig:
    """
    Matching defaults.

    Attributes:
        song_filter: Song filter used for new drafts: "oped" keeps only
                     opening/ending themes, "all" keeps every song.
        search_limit: Maximum number of candidates requested per search.
    """
    song_filter: str = DEFAULT_SONG_FILTER
    search_limit: int = DEFAULT_SEARCH_LIMIT


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging settings.

    Attributes:
        directory: Directory for log files. None disables file logging.
    """
    directory: Path | None = None


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable (frozen dataclass).

    Attributes:
        music_service: Provider selection.
        spotify: Spotify settings, or None when the section is absent.
                 Always present when the provider is "spotify".
        storage: Storage database location.
        data: Anime data file location.
        matching: Matching defaults.
        logging: Log directory.

    Example:
        config = load_config()
        print(f"Provider: {config.music_service.provider}")
        print(f"Drafts stored in: {config.storage.path}")
    """
    music_service: MusicServiceConfig
    spotify: SpotifyConfig | None
    storage: StorageConfig
    data: DataConfig
    matching: MatchingConfig
    logging: LoggingConfig


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is not found, has invalid YAML syntax,
                     or contains invalid values. The error message indicates
                     the specific problem.

    Behavior:
        1. Locate config file (explicit path or CWD/config.yaml)
        2. Read and parse YAML content
        3. Apply the ANISONG_MUSIC_SERVICE override
        4. Validate each section, applying defaults for optional ones
        5. Require the spotify section when the provider is "spotify"

    Example:
        try:
            config = load_config()
        except ConfigError as e:
            print(f"Configuration error: {e.message}")
            sys.exit(1)
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file is a valid "all defaults" configuration
    if raw_config is None:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return parse_config(raw_config, base_dir=config_path.parent)


def parse_config(raw_config: dict[str, Any], base_dir: Path | None = None) -> Config:
    """
    Validate an already-parsed configuration dictionary.

    Args:
        raw_config: Dictionary parsed from config.yaml.
        base_dir: Directory relative paths are resolved against.
                  Defaults to the current working directory.

    Returns:
        Config built from the dictionary.

    Raises:
        ConfigError: If validation fails.
    """
    base_dir = base_dir or Path.cwd()

    for section in ("music_service", "spotify", "storage", "data", "matching", "logging"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )

    music_service = _parse_music_service_config(raw_config.get("music_service"))

    spotify_section = raw_config.get("spotify")
    spotify = _parse_spotify_config(spotify_section, base_dir) if spotify_section else None
    if music_service.provider == "spotify" and spotify is None:
        raise ConfigError(
            "Missing required section: 'spotify' (provider is 'spotify')",
            details={"missing_section": "spotify"}
        )

    return Config(
        music_service=music_service,
        spotify=spotify,
        storage=_parse_storage_config(raw_config.get("storage"), base_dir),
        data=_parse_data_config(raw_config.get("data"), base_dir),
        matching=_parse_matching_config(raw_config.get("matching")),
        logging=_parse_logging_config(raw_config.get("logging"), base_dir),
    )


def _resolve_path(raw: str, base_dir: Path) -> Path:
    """Expand ~ and resolve relative paths against base_dir."""
    path = Path(raw.strip()).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def _require_string(section: dict[str, Any], key: str, field_name: str, default: str | None = None) -> str:
    value = section.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{field_name}' must be a non-empty string",
            details={"field": field_name}
        )
    return value.strip()


def _parse_music_service_config(section: dict[str, Any] | None) -> MusicServiceConfig:
    """
    Parse the music_service section, applying the environment override.

    Raises:
        ConfigError: If the provider is not one of MUSIC_SERVICE_PROVIDERS.
    """
    provider = os.environ.get(PROVIDER_ENV_VAR) or (section or {}).get("provider", DEFAULT_PROVIDER)

    if not isinstance(provider, str) or provider.strip().lower() not in MUSIC_SERVICE_PROVIDERS:
        raise ConfigError(
            f"'music_service.provider' must be one of: {', '.join(MUSIC_SERVICE_PROVIDERS)}",
            details={"field": "music_service.provider", "value": provider}
        )

    return MusicServiceConfig(provider=provider.strip().lower())


def _parse_spotify_config(section: dict[str, Any], base_dir: Path) -> SpotifyConfig:
    """
    Parse and validate the Spotify configuration section.

    Raises:
        ConfigError: If client_id is missing or empty.
    """
    client_id = _require_string(section, "client_id", "spotify.client_id")
    redirect_uri = _require_string(
        section, "redirect_uri", "spotify.redirect_uri", default=DEFAULT_REDIRECT_URI
    )

    cache_path = None
    raw_cache = section.get("cache_path")
    if raw_cache is not None:
        if not isinstance(raw_cache, str) or not raw_cache.strip():
            raise ConfigError(
                "'spotify.cache_path' must be a non-empty string or null",
                details={"field": "spotify.cache_path"}
            )
        cache_path = _resolve_path(raw_cache, base_dir)

    return SpotifyConfig(client_id=client_id, redirect_uri=redirect_uri, cache_path=cache_path)


def _parse_storage_config(section: dict[str, Any] | None, base_dir: Path) -> StorageConfig:
    raw_path = _require_string(section or {}, "path", "storage.path", default=DEFAULT_STORAGE_PATH)
    return StorageConfig(path=_resolve_path(raw_path, base_dir))


def _parse_data_config(section: dict[str, Any] | None, base_dir: Path) -> DataConfig:
    raw_path = _require_string(section or {}, "anime_file", "data.anime_file", default=DEFAULT_ANIME_FILE)
    return DataConfig(anime_file=_resolve_path(raw_path, base_dir))


def _parse_matching_config(section: dict[str, Any] | None) -> MatchingConfig:
    """
    Parse and validate the matching section.

    Returns:
        MatchingConfig with defaults applied:
            song_filter: "oped"
            search_limit: 10

    Raises:
        ConfigError: If song_filter is unknown or search_limit is not an
                     integer between 1 and MAX_SEARCH_LIMIT.
    """
    section = section or {}

    song_filter = section.get("song_filter", DEFAULT_SONG_FILTER)
    if song_filter not in SONG_FILTER_MODES:
        raise ConfigError(
            f"'matching.song_filter' must be one of: {', '.join(SONG_FILTER_MODES)}",
            details={"field": "matching.song_filter", "value": song_filter}
        )

    search_limit = section.get("search_limit", DEFAULT_SEARCH_LIMIT)
    if (
        not isinstance(search_limit, int)
        or isinstance(search_limit, bool)
        or not 1 <= search_limit <= MAX_SEARCH_LIMIT
    ):
        raise ConfigError(
            f"'matching.search_limit' must be an integer between 1 and {MAX_SEARCH_LIMIT}",
            details={"field": "matching.search_limit", "value": search_limit}
        )

    return MatchingConfig(song_filter=song_filter, search_limit=search_limit)


def _parse_logging_config(section: dict[str, Any] | None, base_dir: Path) -> LoggingConfig:
    raw_dir = (section or {}).get("directory")
    if raw_dir is None:
        return LoggingConfig(directory=None)
    if not isinstance(raw_dir, str) or not raw_dir.strip():
        raise ConfigError(
            "'logging.directory' must be a non-empty string or null",
            details={"field": "logging.directory"}
        )
    return LoggingConfig(directory=_resolve_path(raw_dir, base_dir))
