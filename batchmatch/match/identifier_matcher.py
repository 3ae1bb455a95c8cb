"""
Identifier similarity search for BatchMatch.

Scores how well a batch identifier is represented in normalized OCR text
using tiered strategies: exact substring, word-level fuzzy scan and a
bounded sliding window, each stopping early once a near-certain match is
found.
"""

import logging
from typing import Dict, Iterable, Optional, Set

from Levenshtein import distance as levenshtein_distance

from .similarity_cache import SimilarityCache

logger = logging.getLogger(__name__)


DEFAULT_QUICK_REJECT_RATIO = 0.5


def levenshtein_similarity(a: str, b: str,
                           quick_reject_ratio: float = DEFAULT_QUICK_REJECT_RATIO) -> float:
    """
    Calculate 1 - normalized Levenshtein distance between two strings.

    Pairs whose lengths differ by more than ``quick_reject_ratio`` of the
    longer string score 0.0 without computing the distance.

    Args:
        a: First string
        b: Second string
        quick_reject_ratio: Maximum relative length difference

    Returns:
        Similarity in [0, 1]
    """
    if not a or not b:
        return 0.0

    if a == b:
        return 1.0

    max_len = max(len(a), len(b))
    if abs(len(a) - len(b)) / max_len > quick_reject_ratio:
        return 0.0

    similarity = 1.0 - levenshtein_distance(a, b) / max_len
    return min(1.0, max(0.0, similarity))


class IdentifierMatcher:
    """
    Finds the best approximate occurrence of a batch identifier in OCR text.

    Results are memoized in the injected SimilarityCache keyed by
    (identifier, normalized_text).
    """

    def __init__(self, config: Optional[Dict] = None, cache: Optional[SimilarityCache] = None):
        """
        Initialize identifier matcher with configuration.

        Args:
            config: Identifier matching configuration dictionary
            cache: Shared cache (a private one is created if omitted)
        """
        config = config or {}
        self.early_exit_similarity = config.get("early_exit_similarity", 0.95)
        self.max_length_difference = config.get("max_length_difference", 3)
        self.window_max_identifier_length = config.get("window_max_identifier_length", 6)
        self.window_stride = max(1, int(config.get("window_stride", 2)))
        self.quick_reject_ratio = config.get("quick_reject_ratio", DEFAULT_QUICK_REJECT_RATIO)

        self.cache = cache if cache is not None else SimilarityCache()

        logger.info(f"Initialized IdentifierMatcher (early_exit={self.early_exit_similarity}, "
                   f"window<= {self.window_max_identifier_length} chars, stride={self.window_stride})")

    def similarity(self, identifier: str, normalized_text: str,
                   words: Optional[Iterable[str]] = None,
                   word_set: Optional[Set[str]] = None) -> float:
        """
        Calculate the best-effort similarity of an identifier against text.

        Args:
            identifier: Normalized (trimmed, uppercased) batch identifier
            normalized_text: Normalized OCR text
            words: Tokens of normalized_text (split on demand if omitted)
            word_set: Distinct tokens of normalized_text

        Returns:
            Similarity in [0, 1]
        """
        if not identifier or not normalized_text:
            return 0.0

        cached = self.cache.get_similarity(identifier, normalized_text)
        if cached is not None:
            return cached

        if words is None:
            words = normalized_text.split()
        if word_set is None:
            word_set = set(words)

        score = self._compute_similarity(identifier, normalized_text, words, word_set)
        self.cache.put_similarity(identifier, normalized_text, score)
        return score

    def _compute_similarity(self, identifier: str, normalized_text: str,
                            words: Iterable[str], word_set: Set[str]) -> float:
        """Run the tiered strategies; first conclusive strategy wins."""
        # Exact substring
        if identifier in word_set or identifier in normalized_text:
            logger.debug(f"Exact occurrence of '{identifier}' in text")
            return 1.0

        best = self._scan_words(identifier, words)
        if best >= self.early_exit_similarity:
            return best

        if len(identifier) <= self.window_max_identifier_length:
            best = max(best, self._scan_windows(identifier, normalized_text))

        logger.debug(f"Best fuzzy similarity for '{identifier}': {best:.3f}")
        return best

    def _scan_words(self, identifier: str, words: Iterable[str]) -> float:
        """
        Compare the identifier with each token of similar length.

        Args:
            identifier: Normalized identifier
            words: Normalized tokens

        Returns:
            Best token similarity
        """
        best = 0.0
        id_len = len(identifier)

        for token in words:
            if abs(len(token) - id_len) > self.max_length_difference:
                continue

            score = levenshtein_similarity(identifier, token, self.quick_reject_ratio)
            if score > best:
                best = score
                if best >= self.early_exit_similarity:
                    break

        return best

    def _scan_windows(self, identifier: str, normalized_text: str) -> float:
        """
        Slide an identifier-sized window over the text at a fixed stride.

        Catches identifiers glued to neighbouring characters by the OCR
        step (e.g. "LOTAB1234").

        Args:
            identifier: Normalized identifier
            normalized_text: Normalized OCR text

        Returns:
            Best window similarity
        """
        best = 0.0
        window = len(identifier)

        for start in range(0, len(normalized_text) - window + 1, self.window_stride):
            score = levenshtein_similarity(identifier, normalized_text[start:start + window],
                                           self.quick_reject_ratio)
            if score > best:
                best = score
                if best >= self.early_exit_similarity:
                    break

        return best
