"""
Core module for anisong-playlist.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with console and file outputs
    - storage: Key/value media (memory, SQLite) with change notification
    - statuses: Watched/unwatched status store

The draft store lives in anisong_playlist.core.drafts (it depends on the
matching models).

Usage:
    from anisong_playlist.core import (
        Config, load_config,
        SqliteMedium, AnimeStatusStore,
        setup_logging, get_logger,
        AnisongError, ConfigError,
    )
"""

from anisong_playlist.core.config import (
    Config,
    DataConfig,
    LoggingConfig,
    MatchingConfig,
    MusicServiceConfig,
    SpotifyConfig,
    StorageConfig,
    load_config,
)
from anisong_playlist.core.exceptions import (
    AnisongError,
    ConfigError,
    EmptySongListError,
    MusicServiceError,
    PlaylistError,
    SearchFailure,
    SessionError,
    StorageError,
)
from anisong_playlist.core.logger import (
    get_logger,
    log_unmatched_song,
    setup_logging,
    shutdown_logging,
)
from anisong_playlist.core.statuses import AnimeStatus, AnimeStatusStore
from anisong_playlist.core.storage import MemoryMedium, SqliteMedium, StorageMedium

__all__ = [
    # Config
    "Config",
    "MusicServiceConfig",
    "SpotifyConfig",
    "StorageConfig",
    "DataConfig",
    "MatchingConfig",
    "LoggingConfig",
    "load_config",
    # Exceptions
    "AnisongError",
    "ConfigError",
    "StorageError",
    "MusicServiceError",
    "SearchFailure",
    "SessionError",
    "EmptySongListError",
    "PlaylistError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_unmatched_song",
    "shutdown_logging",
    # Storage
    "StorageMedium",
    "MemoryMedium",
    "SqliteMedium",
    "AnimeStatus",
    "AnimeStatusStore",
]
