"""Test match classification"""

import pytest

from anisong_playlist.matching.classifier import (
    can_auto_match,
    classify,
    get_auto_match_result,
    is_exact_match,
    similarity,
)
from anisong_playlist.music.models import Confidence, SearchCandidate, SearchQuery

from conftest import make_candidate


class TestIsExactMatch:
    """Test the exact-match rule"""

    def test_artist_ignored_without_query_artist(self):
        candidate = SearchCandidate(id="c1", name="Title", artist="Anyone")
        assert is_exact_match(SearchQuery("Title"), candidate) is True

    def test_artist_mismatch(self):
        candidate = SearchCandidate(id="c1", name="Title", artist="Y")
        assert is_exact_match(SearchQuery("Title", "X"), candidate) is False

    def test_normalized_comparison(self):
        candidate = SearchCandidate(id="c1", name="ｓａｍｐｌｅ song", artist="SAMPLE-ARTIST")
        assert is_exact_match(SearchQuery("『Sample Song』", "Sample Artist"), candidate) is True

    def test_title_mismatch(self):
        candidate = SearchCandidate(id="c1", name="Sample Song (Instrumental)", artist="Sample Artist")
        assert is_exact_match(SearchQuery("Sample Song", "Sample Artist"), candidate) is False

    def test_empty_artist_is_not_compared(self):
        candidate = SearchCandidate(id="c1", name="Title", artist="Anyone")
        assert is_exact_match(SearchQuery("Title", ""), candidate) is True


class TestClassify:
    """Test confidence upgrades"""

    def test_upgrades_exact_candidates(self):
        query = SearchQuery("Sample Song", "Sample Artist")
        candidates = [
            make_candidate("c1", "Sample Song"),
            make_candidate("c2", "Sample Song - TV Size"),
        ]

        result = classify(query, candidates)

        assert [c.confidence for c in result] == [Confidence.EXACT, Confidence.PARTIAL]
        assert [c.id for c in result] == ["c1", "c2"]

    def test_does_not_modify_input(self):
        candidates = [make_candidate("c1", "Sample Song")]
        classify(SearchQuery("Sample Song", "Sample Artist"), candidates)
        assert candidates[0].confidence == Confidence.PARTIAL

    def test_never_demotes_service_exact(self):
        candidates = [make_candidate("c1", "Something Else", confidence=Confidence.EXACT)]
        result = classify(SearchQuery("Sample Song", "Sample Artist"), candidates)
        assert result[0].confidence == Confidence.EXACT

    def test_keeps_low_confidence(self):
        candidates = [make_candidate("c1", "Other", confidence=Confidence.LOW)]
        result = classify(SearchQuery("Sample Song"), candidates)
        assert result[0].confidence == Confidence.LOW

    def test_idempotent(self):
        query = SearchQuery("Sample Song", "Sample Artist")
        candidates = [
            make_candidate("c1", "SAMPLE SONG"),
            make_candidate("c2", "Sample Song (Cover)"),
            make_candidate("c3", "Other", confidence=Confidence.LOW),
        ]
        once = classify(query, candidates)
        assert classify(query, once) == once

    def test_empty(self):
        assert classify(SearchQuery("Sample Song"), []) == []


class TestAutoMatch:
    """Test the auto-match rule"""

    def test_no_candidates(self):
        assert can_auto_match([]) is False
        assert get_auto_match_result([]) is None

    def test_single_exact(self):
        exact = make_candidate("c1", "A", confidence=Confidence.EXACT)
        candidates = [make_candidate("c0", "B"), exact]
        assert can_auto_match(candidates) is True
        assert get_auto_match_result(candidates) == exact

    def test_two_exact_is_ambiguous(self):
        candidates = [
            make_candidate("c1", "A", confidence=Confidence.EXACT),
            make_candidate("c2", "A", confidence=Confidence.EXACT),
        ]
        assert can_auto_match(candidates) is False
        assert get_auto_match_result(candidates) is None

    def test_only_partial(self):
        candidates = [make_candidate("c1", "A"), make_candidate("c2", "B")]
        assert can_auto_match(candidates) is False


class TestSimilarity:
    """Test the display similarity score"""

    def test_identical(self):
        candidate = make_candidate("c1", "Sample Song", "Sample Artist")
        assert similarity(SearchQuery("Sample Song", "Sample Artist"), candidate) == pytest.approx(100)

    def test_title_only_without_artist(self):
        candidate = make_candidate("c1", "Sample Song", "Completely Different")
        assert similarity(SearchQuery("Sample Song"), candidate) == 100

    def test_artist_lowers_score(self):
        query = SearchQuery("Sample Song", "Sample Artist")
        same_artist = make_candidate("c1", "Sample Song", "Sample Artist")
        other_artist = make_candidate("c2", "Sample Song", "zzzz")
        assert similarity(query, other_artist) < similarity(query, same_artist)

    def test_range(self):
        candidate = make_candidate("c1", "abc", "def")
        score = similarity(SearchQuery("xyz", "uvw"), candidate)
        assert 0 <= score <= 100
