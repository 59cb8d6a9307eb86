"""
Display helpers for anisong-playlist.

Usage:
    from anisong_playlist.utils import format_duration, format_release_date

    format_duration(215000)         # "3:35"
    format_release_date("2024-01")  # "2024/01"
"""


def format_duration(duration_ms: int) -> str:
    """
    Format a duration in milliseconds as minutes:seconds.

    Example:
        format_duration(61000)  # "1:01"
    """
    total_seconds = max(duration_ms, 0) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


def format_release_date(release_date: str) -> str:
    """
    Format a catalog release date for display.

    The catalog returns "YYYY-MM-DD", "YYYY-MM" or "YYYY"; the parts are
    joined with slashes.

    Example:
        format_release_date("2024-01-10")  # "2024/01/10"
        format_release_date("2024")        # "2024"
    """
    return "/".join(release_date.split("-")[:3])
