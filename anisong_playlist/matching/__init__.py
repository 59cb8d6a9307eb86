"""
Track-matching engine for anisong-playlist.

Components:
    - normalize / clean_track_name: Text normalization
    - Classifier: exact-match detection and the auto-match rule
    - MatchingSession: Song-by-song state machine
    - Models: MatchStatus, SongFilterMode, SessionState, SongEntry, MatchDecision
"""

from anisong_playlist.matching.classifier import (
    can_auto_match,
    classify,
    get_auto_match_result,
    is_exact_match,
    similarity,
)
from anisong_playlist.matching.models import (
    MatchDecision,
    MatchStatus,
    SessionState,
    SongEntry,
    SongFilterMode,
)
from anisong_playlist.matching.normalize import clean_track_name, normalize
from anisong_playlist.matching.session import MatchingSession

__all__ = [
    # Normalizer
    "normalize",
    "clean_track_name",
    # Classifier
    "is_exact_match",
    "classify",
    "can_auto_match",
    "get_auto_match_result",
    "similarity",
    # Models
    "MatchDecision",
    "MatchStatus",
    "SessionState",
    "SongEntry",
    "SongFilterMode",
    # Session
    "MatchingSession",
]
