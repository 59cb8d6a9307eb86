"""
Exception classes for anisong-playlist.

This module defines all custom exceptions used throughout the application.
Each exception is designed to provide clear, actionable error messages
and to distinguish between different failure modes.

Exception Hierarchy:
    AnisongError (base)
        ConfigError - Configuration file issues
        StorageError - Persistence medium issues
        MusicServiceError - Music service (search/playlist) issues
        SearchFailure - Retryable search failure inside a matching session
        SessionError - Invalid matching session transition
            EmptySongListError - Session constructed without songs
        PlaylistError - Playlist cannot be created from a draft

Not every failure mode is an exception:
    - Selecting a candidate id that is not in the current list is recorded
      as a skipped decision by the session.
    - A persisted value that fails to parse is logged and treated as an
      empty store.
"""


class AnisongError(Exception):
    """
    Base exception for all anisong-playlist errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all application errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., quarter, song index).

    Example:
        try:
            # some operation
        except AnisongError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'quarter': Season key involved in the error
                     - 'index': Song index inside a matching session
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(AnisongError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml not found
        - config.yaml has invalid YAML syntax
        - Unknown music service provider value
        - Spotify section missing while provider is 'spotify'

    Example:
        raise ConfigError(
            "'spotify.client_id' must be a non-empty string",
            details={'field': 'spotify.client_id'}
        )
    """
    pass


class StorageError(AnisongError):
    """
    Raised when the persistence medium cannot be opened or written.

    This is a CRITICAL error that should stop program execution.

    A medium that opens fine but holds an unparsable value is NOT a
    StorageError: the stores log it and continue with an empty state.

    Example:
        raise StorageError(
            "Failed to open storage database",
            details={'path': '/home/user/.anisong/storage.db'}
        )
    """
    pass


class MusicServiceError(AnisongError):
    """
    Raised when a music service request fails.

    Can be CRITICAL (auth failure) or NON-CRITICAL (single search failure).

    Attributes:
        is_auth_error: True if this is an authentication error (CRITICAL).
        is_rate_limit: True if this is a rate limit error (may retry).

    Example:
        raise MusicServiceError(
            "Track search failed: 503 Service Unavailable",
            details={'query': 'track:Title artist:Artist', 'status_code': 503}
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_auth_error: bool = False,
        is_rate_limit: bool = False
    ) -> None:
        """
        Initialize music service error with additional flags.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            is_auth_error: Set to True if this is an authentication failure.
            is_rate_limit: Set to True if this is a rate limit error.
        """
        super().__init__(message, details)
        self.is_auth_error = is_auth_error
        self.is_rate_limit = is_rate_limit


class SearchFailure(AnisongError):
    """
    Raised by a matching session when the search for the current song failed.

    This is a NON-CRITICAL, retryable error. The session keeps its cursor on
    the failing song and every previously recorded decision is left intact.
    The caller may call session.retry() or session.skip().

    Attributes:
        index: Index of the song whose search failed.

    Example:
        try:
            session.start()
        except SearchFailure as e:
            print(f"Search failed for song {e.index + 1}: {e.message}")
            session.retry()
    """

    def __init__(self, message: str, index: int, details: dict | None = None) -> None:
        super().__init__(message, details)
        self.index = index


class SessionError(AnisongError):
    """
    Raised when a matching session is driven through an invalid transition.

    This indicates a programming error in the caller, e.g. selecting a
    candidate while the session is still waiting for search results, or
    driving a session that has already completed.
    """
    pass


class EmptySongListError(SessionError):
    """
    Raised when a matching session is constructed without any songs.

    A session needs at least one song; callers must check the filtered
    song list before starting a session.
    """
    pass


class PlaylistError(AnisongError):
    """
    Raised when a playlist cannot be created from one or more drafts.

    Common causes:
        - No draft exists for the requested quarter
        - The draft(s) contain no decision with a selected track

    Example:
        raise PlaylistError(
            "No matched tracks to add to the playlist",
            details={'quarter': '2024q1'}
        )
    """
    pass
