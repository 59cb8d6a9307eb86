"""
Match classification for search candidates.

Decides which catalog candidates are exact matches for a song and whether
a candidate set is unambiguous enough to be resolved without the user.

Rules:
    - A candidate is EXACT when its normalized title equals the normalized
      queried title and, if the query names an artist, its normalized
      artist equals the normalized queried artist. Without a queried
      artist only the title is compared.
    - Classification only upgrades to EXACT. A candidate the service
      already reported as EXACT stays EXACT.
    - A set auto-matches iff it contains exactly one EXACT candidate.
      Zero and several exact candidates both need a human decision.

similarity() is a separate display helper: a fuzzy score shown next to
candidates in the CLI. It never influences classification.
"""

from rapidfuzz import fuzz

from anisong_playlist.matching.normalize import normalize
from anisong_playlist.music.models import Confidence, SearchCandidate, SearchQuery


# Weights of the display similarity score
TITLE_WEIGHT = 0.65
ARTIST_WEIGHT = 0.35


def is_exact_match(query: SearchQuery, candidate: SearchCandidate) -> bool:
    """
    Check whether a candidate is an exact match for a query.

    Example:
        is_exact_match(SearchQuery("Title"), SearchCandidate("c1", "title", "Anyone"))
        # True: the artist is ignored when the query has none
    """
    if normalize(query.track_name) != normalize(candidate.name):
        return False
    if query.artist:
        return normalize(query.artist) == normalize(candidate.artist)
    return True


def classify(query: SearchQuery, candidates: list[SearchCandidate]) -> list[SearchCandidate]:
    """
    Return the candidates with confidence upgraded to EXACT where they match.

    Args:
        query: The comparison query (song title as listed, and artist).
        candidates: Candidates in the order the service returned them.

    Returns:
        A new list in the same order. Candidates that are not exact keep
        the confidence the service reported. Applying classify() to its own
        output returns an equal list.
    """
    return [
        candidate.with_confidence(Confidence.EXACT) if is_exact_match(query, candidate) else candidate
        for candidate in candidates
    ]


def _exact_candidates(candidates: list[SearchCandidate]) -> list[SearchCandidate]:
    return [candidate for candidate in candidates if candidate.confidence == Confidence.EXACT]


def can_auto_match(candidates: list[SearchCandidate]) -> bool:
    """True iff exactly one candidate is EXACT."""
    return len(_exact_candidates(candidates)) == 1


def get_auto_match_result(candidates: list[SearchCandidate]) -> SearchCandidate | None:
    """Return the single EXACT candidate, or None when can_auto_match() is False."""
    exact = _exact_candidates(candidates)
    return exact[0] if len(exact) == 1 else None


def similarity(query: SearchQuery, candidate: SearchCandidate) -> float:
    """
    Calculate a 0-100 display score between a query and a candidate.

    Uses rapidfuzz ratio over normalized strings, weighting the title by
    TITLE_WEIGHT and the artist by ARTIST_WEIGHT. Without a queried
    artist the score is the title ratio alone.

    Example:
        similarity(SearchQuery("Title", "Artist"), candidate)  # 87.5
    """
    title_score = fuzz.ratio(normalize(query.track_name), normalize(candidate.name))
    if not query.artist:
        return title_score

    artist_score = fuzz.ratio(normalize(query.artist), normalize(candidate.artist))
    return (title_score * TITLE_WEIGHT) + (artist_score * ARTIST_WEIGHT)
