"""
Text normalization for comparing song titles and artist names.

Two separate steps live here:

    normalize()        - Canonical form used for equality comparison.
    clean_track_name() - Recovers the bare song title from a listing such
                         as "オープニングテーマ「Title」". Used to build search
                         queries only; comparison always runs on the title
                         as listed.

Both functions are pure and never raise for str input.
"""

import re
import unicodedata


# Whitespace, hyphen and underscore are removed before comparison
_SEPARATOR_PATTERN = re.compile(r"[\s\-_]")

# Corner, double corner and lenticular brackets (contents are kept)
_BRACKET_PATTERN = re.compile(r"[「」『』【】]")

# Descriptive prefixes: opening theme, ending theme, insert song, theme song,
# image song, character song, in-drama song
TRACK_NAME_PREFIXES = (
    "オープニングテーマ",
    "エンディングテーマ",
    "挿入歌",
    "主題歌",
    "イメージソング",
    "キャラクターソング",
    "劇中歌",
)

_PREFIX_PATTERN = re.compile("^(" + "|".join(map(re.escape, TRACK_NAME_PREFIXES)) + ")")

# First (shortest) quotation in any of the three bracket styles
_QUOTED_PATTERN = re.compile(r"[「『【](.+?)[」』】]")


def normalize(text: str) -> str:
    """
    Return the comparison form of a title or artist name.

    Steps, in order:
        1. Lower-case
        2. NFKC compatibility normalization (full-width/half-width folding)
        3. Remove whitespace, "-" and "_"
        4. Remove 「」『』【】 (the text between them is kept)

    Two strings are equivalent iff their normalized forms are equal.
    The function is idempotent: normalize(normalize(s)) == normalize(s).

    Example:
        normalize("ＳＡＭＰＬＥ Song")  # "samplesong"
        normalize("『Title』")          # "title"
    """
    # NFKC can fold some symbols to capitals (e.g. "ℌ" -> "H")
    folded = unicodedata.normalize("NFKC", text.lower()).lower()
    stripped = _BRACKET_PATTERN.sub("", _SEPARATOR_PATTERN.sub("", folded))
    # Removing separators can put a combining mark right after a new base
    return unicodedata.normalize("NFKC", stripped)


def clean_track_name(track_name: str) -> str:
    """
    Strip descriptive prefixes and quotation brackets from a song title.

    Behavior:
        1. Remove one leading prefix from TRACK_NAME_PREFIXES, if present
        2. If a 「…」, 『…』 or 【…】 quotation remains, keep only the
           interior of the first one
        3. Trim surrounding whitespace

    Example:
        clean_track_name("オープニングテーマ「Title」")  # "Title"
        clean_track_name("主題歌『A』 feat. B")           # "A"
        clean_track_name("  Plain Title ")               # "Plain Title"
    """
    cleaned = _PREFIX_PATTERN.sub("", track_name, count=1)

    quoted = _QUOTED_PATTERN.search(cleaned)
    if quoted:
        cleaned = quoted.group(1)

    return cleaned.strip()
