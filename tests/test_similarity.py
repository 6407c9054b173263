"""
Tests for snapshot similarity and the validity verdict.
"""

import pytest

from ai_bookmarks.similarity import (
    SIMILARITY_THRESHOLD,
    ValidityResult,
    ValidityStatus,
    calculate_similarity,
    evaluate_snapshot,
)


class TestCalculateSimilarity:
    def test_identical(self):
        assert calculate_similarity("def foo(x):", "def foo(x):") == 1.0

    def test_whitespace_does_not_matter(self):
        assert calculate_similarity("a  b\n\tc", "c b a") == 1.0

    def test_disjoint(self):
        assert calculate_similarity("a b", "c d") == 0.0

    def test_both_empty(self):
        assert calculate_similarity("", "   \n") == 1.0

    def test_one_empty(self):
        assert calculate_similarity("", "a") == 0.0

    def test_jaccard(self):
        # {a, b, c} vs {b, c, d}: 2 shared out of 4
        assert calculate_similarity("a b c", "b c d") == 0.5

    def test_duplicates_are_ignored(self):
        assert calculate_similarity("a a a b", "a b") == 1.0

    def test_symmetric(self):
        assert calculate_similarity("x y z", "x q") == calculate_similarity("x q", "x y z")


class TestEvaluateSnapshot:
    def test_no_snapshot(self):
        result = evaluate_snapshot(None, "anything")
        assert result.status == ValidityStatus.VALID
        assert result.reason == "No snapshot to compare"
        assert result.similarity is None

    def test_empty_snapshot_counts_as_none(self):
        assert evaluate_snapshot("", "x").reason == "No snapshot to compare"

    def test_exact_match(self):
        result = evaluate_snapshot("return x", "return x")
        assert result.status == ValidityStatus.VALID
        assert result.similarity == 1.0
        assert result.reason is None

    def test_reformatted_code_is_caveat(self):
        """Same tokens, different layout: similar but not identical."""
        result = evaluate_snapshot("return x", "return   x")
        assert result.status == ValidityStatus.VALID_WITH_CAVEAT
        assert result.similarity == 1.0
        assert result.reason == "Code slightly changed (100% similar)"

    def test_threshold_is_inclusive(self):
        result = evaluate_snapshot("a b c", "b c d")
        assert result.similarity == SIMILARITY_THRESHOLD
        assert result.status == ValidityStatus.VALID_WITH_CAVEAT
        assert result.valid
        assert result.reason == "Code slightly changed (50% similar)"

    def test_just_below_threshold(self):
        # {a, b, c} vs {c, d, e}: 1/5
        result = evaluate_snapshot("a b c", "c d e")
        assert result.status == ValidityStatus.INVALID
        assert not result.valid
        assert result.reason == "Code changed significantly (20% similar)"

    @pytest.mark.parametrize(
        "snapshot, current, valid",
        [
            ("a b c d", "a b c e", True),  # 3/5
            ("a b c d", "a b e f", False),  # 2/6
            ("a", "b", False),
        ],
    )
    def test_verdicts(self, snapshot, current, valid):
        assert evaluate_snapshot(snapshot, current).valid is valid


class TestValidityResult:
    def test_to_dict_valid(self):
        assert ValidityResult(ValidityStatus.VALID, similarity=1.0).to_dict() == {
            "valid": True,
            "status": "valid",
            "similarity": 1.0,
        }

    def test_to_dict_invalid(self):
        assert ValidityResult.invalid("File not found").to_dict() == {
            "valid": False,
            "status": "invalid",
            "reason": "File not found",
        }
