"""Cheap drift detection for bookmarked code.

Compares the code snapshot stored with a bookmark against the text currently
at its location. This is token-set overlap, not a diff: reformatting alone can
move the score.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

SIMILARITY_THRESHOLD = 0.5


class ValidityStatus(str, Enum):
    """Verdict of a drift check."""

    VALID = "valid"
    VALID_WITH_CAVEAT = "valid-with-caveat"
    INVALID = "invalid"


@dataclass
class ValidityResult:
    """Outcome of comparing a snapshot with the current code."""

    status: ValidityStatus
    similarity: Optional[float] = None
    reason: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.status != ValidityStatus.INVALID

    def to_dict(self) -> dict:
        result = {"valid": self.valid, "status": self.status.value}
        if self.similarity is not None:
            result["similarity"] = self.similarity
        if self.reason is not None:
            result["reason"] = self.reason
        return result

    @classmethod
    def invalid(cls, reason: str) -> "ValidityResult":
        return cls(status=ValidityStatus.INVALID, reason=reason)


def calculate_similarity(text1: str, text2: str) -> float:
    """Jaccard index of the whitespace-delimited token sets of two texts.

    Two texts without any tokens are considered identical (1.0).
    """
    tokens1 = set(text1.split())
    tokens2 = set(text2.split())

    union = tokens1 | tokens2
    if not union:
        return 1.0
    return len(tokens1 & tokens2) / len(union)


def evaluate_snapshot(snapshot: Optional[str], current: str) -> ValidityResult:
    """Classify the current code against a stored snapshot."""
    if not snapshot:
        return ValidityResult(ValidityStatus.VALID, reason="No snapshot to compare")

    if current == snapshot:
        return ValidityResult(ValidityStatus.VALID, similarity=1.0)

    similarity = calculate_similarity(snapshot, current)
    percent = round(similarity * 100)
    if similarity < SIMILARITY_THRESHOLD:
        return ValidityResult(
            ValidityStatus.INVALID,
            similarity=similarity,
            reason=f"Code changed significantly ({percent}% similar)",
        )
    return ValidityResult(
        ValidityStatus.VALID_WITH_CAVEAT,
        similarity=similarity,
        reason=f"Code slightly changed ({percent}% similar)",
    )
