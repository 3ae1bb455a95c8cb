"""
Match classification for BatchMatch.

Combines identifier similarity and expiry verification for every candidate
batch into two mutually exclusive tiers: exact matches, safe for automatic
confirmation, and nearest matches, which need a human decision.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..ingestion.batch_record import BatchRecord
from ..normalize.text_normalizer import TextNormalizer, normalize_identifier
from .expiry_matcher import ExpiryMatcher
from .identifier_matcher import IdentifierMatcher
from .results import ClassificationResult, MatchResult

logger = logging.getLogger(__name__)


def _validate_threshold(name: str, value: float) -> float:
    if not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be a number between 0 and 1, got {value!r}")
    return float(value)


class MatchClassifier:
    """
    Classifies candidate batches against one OCR capture.

    Safety policy: a batch is only an exact match when its identifier clears
    the identifier threshold AND its expiry date is found verbatim in the
    text (or none is declared). Once any exact match exists, no probabilistic
    alternatives are returned.
    """

    def __init__(self, identifier_matcher: IdentifierMatcher,
                 expiry_matcher: ExpiryMatcher,
                 config: Optional[Dict] = None,
                 normalizer: Optional[TextNormalizer] = None):
        """
        Initialize classifier with its matchers and configuration.

        Args:
            identifier_matcher: Identifier similarity search
            expiry_matcher: Expiry date verification
            config: Matching configuration (thresholds, result limits)
            normalizer: Text normalizer (default instance if omitted)
        """
        config = config or {}
        self.identifier_matcher = identifier_matcher
        self.expiry_matcher = expiry_matcher
        self.normalizer = normalizer or TextNormalizer()

        self.identifier_threshold = _validate_threshold(
            "identifier_threshold", config.get("identifier_threshold", 0.75))
        self.nearest_match_floor = _validate_threshold(
            "nearest_match_floor", config.get("nearest_match_floor", 0.60))
        self.max_nearest_matches = int(config.get("max_nearest_matches", 2))

        if self.nearest_match_floor > self.identifier_threshold:
            logger.warning(f"nearest_match_floor {self.nearest_match_floor} is above "
                           f"identifier_threshold {self.identifier_threshold}; "
                           f"below-threshold fallbacks will never be produced")

        logger.info(f"Initialized MatchClassifier (threshold={self.identifier_threshold}, "
                   f"floor={self.nearest_match_floor})")

    def classify(self, batches: Sequence[BatchRecord], extracted_text: Optional[str],
                 identifier_threshold: Optional[float] = None) -> ClassificationResult:
        """
        Classify candidate batches against extracted label text.

        Args:
            batches: Candidate batch records, in the caller's order
            extracted_text: Raw OCR text
            identifier_threshold: Per-call override of the configured threshold

        Returns:
            ClassificationResult with either exact or nearest matches
        """
        threshold = self.identifier_threshold
        if identifier_threshold is not None:
            threshold = _validate_threshold("identifier_threshold", identifier_threshold)

        raw_text = extracted_text or ""
        normalized = self.normalizer.normalize(raw_text)

        exact_matches: List[MatchResult] = []
        nearest_matches: List[MatchResult] = []

        for batch in batches:
            identifier = normalize_identifier(batch.identifier)
            if not identifier:
                logger.debug("Skipping batch with empty identifier")
                continue

            similarity = self.identifier_matcher.similarity(
                identifier, normalized.normalized_text, normalized.words, normalized.word_set
            )

            if similarity >= threshold:
                expiry_valid = self.expiry_matcher.is_present(batch.expiry_date, raw_text)
                if expiry_valid:
                    exact_matches.append(MatchResult(batch, similarity, True))
                else:
                    nearest_matches.append(MatchResult(batch, similarity, False))
                logger.debug(f"Batch '{identifier}': similarity {similarity:.3f}, "
                             f"expiry valid: {expiry_valid}")
            elif similarity >= self.nearest_match_floor:
                nearest_matches.append(MatchResult(batch, similarity, False))
                logger.debug(f"Batch '{identifier}': similarity {similarity:.3f} below "
                             f"threshold, kept as nearest candidate")
            else:
                logger.debug(f"Batch '{identifier}': similarity {similarity:.3f} rejected")

        if exact_matches:
            exact_matches.sort(key=lambda m: m.similarity, reverse=True)
            result = ClassificationResult(exact_matches=exact_matches)
        else:
            nearest_matches.sort(key=lambda m: m.similarity, reverse=True)
            result = ClassificationResult(nearest_matches=nearest_matches[:self.max_nearest_matches])

        logger.info(f"Classified {len(batches)} batches: {result.match_type} "
                   f"({len(result.matches)} results)")
        return result


def get_classification_statistics(result: ClassificationResult) -> Dict[str, Any]:
    """
    Summarise a classification for logging and reports.

    Args:
        result: Classification outcome

    Returns:
        Dictionary with tier, counts and similarity range
    """
    similarities = [m.similarity for m in result.matches]

    return {
        "match_type": result.match_type,
        "exact_count": len(result.exact_matches),
        "nearest_count": len(result.nearest_matches),
        "best_similarity": max(similarities) if similarities else 0.0,
        "worst_similarity": min(similarities) if similarities else 0.0,
        "best_identifier": result.best_match.batch.identifier if result.best_match else None,
        "auto_confirmable": result.match_type == "exact"
    }
