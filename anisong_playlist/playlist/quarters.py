"""
Broadcast quarter helpers.

A quarter is written "YYYYqN", where N is 1 (winter) to 4 (autumn):
    "2024q1" -> 2024年冬アニメ楽曲
"""

import re
from functools import cmp_to_key
from typing import Iterable, NamedTuple


# Season name per quarter number
SEASON_NAMES = {
    1: "冬",
    2: "春",
    3: "夏",
    4: "秋",
}

UNKNOWN_SEASON = "不明"

# Name used for merged playlists spanning several quarters
COLLECTION_NAME = "アニメ楽曲コレクション"

_QUARTER_PATTERN = re.compile(r"^(\d+)q(\d+)$", re.IGNORECASE)


class Quarter(NamedTuple):
    year: int
    q: int


def parse_quarter(quarter: str) -> Quarter:
    """
    Parse a quarter key.

    Raises:
        ValueError: If the key is not in "YYYYqN" format.

    Example:
        parse_quarter("2024q3")  # Quarter(year=2024, q=3)
    """
    match = _QUARTER_PATTERN.match(quarter.strip())
    if not match:
        raise ValueError(f"Invalid quarter '{quarter}', expected format YYYYqN (e.g. 2024q1)")
    return Quarter(year=int(match.group(1)), q=int(match.group(2)))


def compare_quarters(a: str, b: str) -> int:
    """Negative if a is earlier than b, zero if equal, positive if later."""
    parsed_a = parse_quarter(a)
    parsed_b = parse_quarter(b)
    if parsed_a.year != parsed_b.year:
        return parsed_a.year - parsed_b.year
    return parsed_a.q - parsed_b.q


def sort_quarters(quarters: Iterable[str], newest_first: bool = False) -> list[str]:
    return sorted(quarters, key=cmp_to_key(compare_quarters), reverse=newest_first)


def quarter_to_japanese_name(quarter: str) -> str:
    """
    Convert a quarter key to its Japanese season name.

    Unknown quarter numbers are named 不明 instead of raising.

    Example:
        quarter_to_japanese_name("2024q1")  # "2024年冬アニメ楽曲"
        quarter_to_japanese_name("2024q9")  # "2024年不明アニメ楽曲"
    """
    year, _, q = quarter.partition("q")
    season = SEASON_NAMES.get(int(q), UNKNOWN_SEASON) if q.isdigit() else UNKNOWN_SEASON
    return f"{year}年{season}アニメ楽曲"


def generate_merged_playlist_name(quarters: list[str]) -> str:
    """
    Name a playlist built from several quarters.

    Behavior:
        - No quarter: the collection name alone
        - One quarter: that quarter's Japanese name
        - Several: collection name with the first and last quarter

    Example:
        generate_merged_playlist_name(["2024q3", "2024q1"])
        # "アニメ楽曲コレクション 2024Q1-2024Q3"
    """
    if not quarters:
        return COLLECTION_NAME

    if len(quarters) == 1:
        return quarter_to_japanese_name(quarters[0])

    ordered = sort_quarters(quarters)
    return f"{COLLECTION_NAME} {ordered[0].upper()}-{ordered[-1].upper()}"
