"""
Match result types for BatchMatch.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..ingestion.batch_record import BatchRecord


MATCH_TYPE_EXACT = "exact"
MATCH_TYPE_NEAREST = "nearest"
MATCH_TYPE_NONE = "none"


@dataclass
class MatchResult:
    """
    One candidate batch scored against an OCR capture.

    Attributes:
        batch: The candidate batch record (not copied).
        similarity: Identifier similarity in [0, 1].
        expiry_valid: Whether the expiry date was verified in the text.
    """
    batch: BatchRecord
    similarity: float
    expiry_valid: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.batch.identifier,
            "expiry_date": self.batch.expiry_date,
            "product_name": self.batch.product_name,
            "similarity": self.similarity,
            "expiry_valid": self.expiry_valid
        }


@dataclass
class ClassificationResult:
    """
    Outcome of classifying candidate batches against one capture.

    At most one of the two tiers is non-empty: exact matches are safe for
    automatic confirmation, nearest matches need a human decision.
    """
    exact_matches: List[MatchResult] = field(default_factory=list)
    nearest_matches: List[MatchResult] = field(default_factory=list)

    @property
    def match_type(self) -> str:
        if self.exact_matches:
            return MATCH_TYPE_EXACT
        if self.nearest_matches:
            return MATCH_TYPE_NEAREST
        return MATCH_TYPE_NONE

    @property
    def matches(self) -> List[MatchResult]:
        """The non-empty tier (empty list when nothing matched)."""
        return self.exact_matches or self.nearest_matches

    @property
    def best_match(self) -> Optional[MatchResult]:
        matches = self.matches
        return matches[0] if matches else None

    @property
    def is_empty(self) -> bool:
        return not self.exact_matches and not self.nearest_matches

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match_type": self.match_type,
            "exact_matches": [m.to_dict() for m in self.exact_matches],
            "nearest_matches": [m.to_dict() for m in self.nearest_matches]
        }
