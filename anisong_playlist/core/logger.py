"""
Logging configuration for anisong-playlist.

This module sets up the logging system with multiple outputs:
    - Console: Colored messages written through tqdm.write()
    - log_full_<timestamp>.log: Complete log of all events (DEBUG and above)
    - log_errors_<timestamp>.log: Only ERROR and CRITICAL level messages
    - unmatched_songs_<timestamp>.log: Songs skipped during matching

File outputs are optional: they are only created when a log directory is
configured (logging.directory in config.yaml).

Usage:
    from anisong_playlist.core.logger import setup_logging, get_logger

    setup_logging(log_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Session started")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


# Every module logger lives below this name
APP_LOGGER_NAME = "anisong_playlist"

# Log file name prefixes (a timestamp is appended per run)
LOG_FULL_PREFIX = "log_full"
LOG_ERRORS_PREFIX = "log_errors"
UNMATCHED_SONGS_PREFIX = "unmatched_songs"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that prefixes each console line with a colored level name.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        return f"{color}{record.levelname}{Colors.RESET}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to the console without breaking progress bars.

    Progress bars redraw their line in place; plain writes to stderr would
    tear them. tqdm.write() prints the message above any active bar.

    Attributes:
        stream: The output stream (defaults to sys.stderr).

    Example:
        handler = TqdmLoggingHandler()
        handler.setFormatter(ColoredConsoleFormatter())
        logger.addHandler(handler)
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream or sys.stderr)
        except Exception:
            self.handleError(record)


class UnmatchedSongHandler(logging.Handler):
    """
    Handler that collects skipped songs into a report file.

    The report lists every song the user (or --auto mode) left without a
    track, so they can be searched by hand later:

        [2024q1] Anime Name
        OP: Song Title / Artist Name

        [2024q1] Other Anime
        ED: Another Song / Unknown

    The handler looks for specific extra fields in log records:
        - 'unmatched_quarter': Season key of the session
        - 'unmatched_anime': Anime name
        - 'unmatched_type': Song type ("OP", "ED", ...)
        - 'unmatched_track': Song title as listed
        - 'unmatched_artist': Artist, or None

    Records without these fields are ignored. Use log_unmatched_song()
    instead of filling the fields by hand.

    Attributes:
        report_path: Path to the report file.
        report_file: Open file handle, None until open() is called.
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "unmatched_track"):
            return

        if self.report_file is None:
            return

        try:
            quarter = getattr(record, "unmatched_quarter", "?")
            anime = getattr(record, "unmatched_anime", "Unknown")
            song_type = getattr(record, "unmatched_type", "")
            track = getattr(record, "unmatched_track", "")
            artist = getattr(record, "unmatched_artist", None) or "Unknown"

            self.report_file.write(f"[{quarter}] {anime}\n")
            self.report_file.write(f"{song_type}: {track} / {artist}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self.report_file is not None:
            self.report_file.close()
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """
    Filter that only allows ERROR and CRITICAL level records.

    Used by the error log file handler to exclude DEBUG, INFO, and WARNING.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path | None = None, verbose: bool = False) -> None:
    """
    Configure the logging system for the application.

    Call this ONCE at application startup, after the configuration is
    loaded. Calling it again replaces the previously installed handlers.

    Args:
        log_dir: Directory where log files are created. None disables
                 file logging (console only).
        verbose: Show DEBUG messages on the console.

    Behavior:
        1. Set the application logger (APP_LOGGER_NAME) level to DEBUG
        2. Remove handlers installed by a previous call
        3. Console handler (TqdmLoggingHandler), INFO or DEBUG
        4. If log_dir is given:
           - log_full_<timestamp>.log at DEBUG
           - log_errors_<timestamp>.log filtered by ErrorOnlyFilter
           - unmatched_songs_<timestamp>.log via UnmatchedSongHandler

    Note:
        Only the application logger is configured, so messages from
        third-party libraries (spotipy, urllib3) keep their own defaults.
    """
    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(logging.DEBUG)

    for handler in app_logger.handlers[:]:
        handler.close()
        app_logger.removeHandler(handler)

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    app_logger.addHandler(console_handler)

    if log_dir is None:
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    file_formatter = logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT)

    full_handler = logging.FileHandler(
        log_dir / f"{LOG_FULL_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(file_formatter)
    app_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(
        log_dir / f"{LOG_ERRORS_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(file_formatter)
    error_handler.addFilter(ErrorOnlyFilter())
    app_logger.addHandler(error_handler)

    unmatched_handler = UnmatchedSongHandler(log_dir / f"{UNMATCHED_SONGS_PREFIX}_{timestamp}.log")
    unmatched_handler.open()
    app_logger.addHandler(unmatched_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.
              This creates a hierarchy like 'anisong_playlist.core.drafts'.

    Returns:
        logging.Logger: A logger instance configured by setup_logging().

    Note:
        Loggers obtained before setup_logging() is called propagate to
        the root logger only. Always call setup_logging() first during
        application startup.
    """
    return logging.getLogger(name)


# =============================================================================
# Message helpers
# =============================================================================

def format_auto_matched_message(track_name: str, artist: str) -> str:
    """Format an 'Auto-matched' line: green label, candidate title and artist."""
    return f"{Colors.GREEN}Auto-matched{Colors.RESET}: {artist} - {track_name}"


def format_selected_message(track_name: str, artist: str) -> str:
    return f"{Colors.CYAN}Selected{Colors.RESET}: {artist} - {track_name}"


def format_skipped_message(track_name: str, artist: str | None) -> str:
    return f"{Colors.YELLOW}Skipped{Colors.RESET}: {artist or 'Unknown'} - {track_name}"


def format_progress_message(completed: int, total: int, matched: int, skipped: int) -> str:
    """
    Format a progress summary line.

    Args:
        completed: Number of songs with a decision.
        total: Total number of songs in the session.
        matched: Decisions with a selected track.
        skipped: Skipped decisions.
    """
    return (
        f"Progress: {completed}/{total} "
        f"(matched: {Colors.GREEN}{matched}{Colors.RESET}, "
        f"skipped: {Colors.RED}{skipped}{Colors.RESET})"
    )


def log_unmatched_song(
    logger: logging.Logger,
    quarter: str,
    anime_name: str,
    song_type: str,
    track_name: str,
    artist: str | None
) -> None:
    """
    Log a song left without a track.

    Logs a DEBUG record (the console already shows the skip) and attaches
    the extra fields UnmatchedSongHandler writes to the unmatched songs
    report.

    Example:
        log_unmatched_song(logger, "2024q1", "Anime", "OP", "Title", "Artist")
    """
    logger.debug(
        f"No track selected: {anime_name} {song_type} {track_name}",
        extra={
            "unmatched_quarter": quarter,
            "unmatched_anime": anime_name,
            "unmatched_type": song_type,
            "unmatched_track": track_name,
            "unmatched_artist": artist,
        }
    )


def shutdown_logging() -> None:
    """
    Flush and close every handler installed by setup_logging().

    Typically called in a finally block at application exit.
    """
    app_logger = logging.getLogger(APP_LOGGER_NAME)
    for handler in app_logger.handlers[:]:
        handler.flush()
        handler.close()
        app_logger.removeHandler(handler)
