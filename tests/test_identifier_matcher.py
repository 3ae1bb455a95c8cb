"""
Unit tests for identifier similarity search.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from batchmatch.match.identifier_matcher import IdentifierMatcher, levenshtein_similarity
from batchmatch.match.similarity_cache import SimilarityCache


class TestLevenshteinSimilarity:
    """Test cases for normalized edit-distance similarity."""

    def test_identity(self):
        """Test identical strings."""
        assert levenshtein_similarity("AB1234", "AB1234") == 1.0
        assert levenshtein_similarity("X", "X") == 1.0

    def test_empty(self):
        """Test empty inputs."""
        assert levenshtein_similarity("AB1234", "") == 0.0
        assert levenshtein_similarity("", "AB1234") == 0.0
        assert levenshtein_similarity("", "") == 0.0

    def test_symmetry(self):
        """Test similarity is symmetric."""
        pairs = [("AB1234", "AB1239"), ("XY12", "XY123"), ("LOT7", "L0T7")]
        for a, b in pairs:
            assert levenshtein_similarity(a, b) == levenshtein_similarity(b, a)

    def test_single_substitution(self):
        """Test one substitution in six characters."""
        assert levenshtein_similarity("AB1234", "AB1239") == pytest.approx(5 / 6)

    def test_quick_reject(self):
        """Test very different lengths score zero."""
        assert levenshtein_similarity("AB", "ABCDEFGH") == 0.0
        # Within the ratio the distance is computed
        assert levenshtein_similarity("ABCD", "ABCDEF") == pytest.approx(4 / 6)


class TestIdentifierMatcher:
    """Test cases for identifier search in OCR text."""

    def setup_method(self):
        """Setup test fixtures."""
        self.config = {
            "early_exit_similarity": 0.95,
            "max_length_difference": 3,
            "window_max_identifier_length": 6,
            "window_stride": 2,
            "quick_reject_ratio": 0.5
        }
        self.cache = SimilarityCache()
        self.matcher = IdentifierMatcher(self.config, self.cache)

    def test_exact_word(self):
        """Test identifier present as a word."""
        assert self.matcher.similarity("AB1234", "BATCH AB1234 EXP 03/31/2026") == 1.0

    def test_exact_substring(self):
        """Test identifier glued to neighbouring text."""
        assert self.matcher.similarity("AB1234", "LOTAB1234X") == 1.0

    def test_word_scan(self):
        """Test fuzzy word match."""
        score = self.matcher.similarity("AB1234", "AB1239 RANDOM TEXT")
        assert score == pytest.approx(5 / 6)

    def test_window_scan_short_identifier(self):
        """Test sliding window catches a split short identifier."""
        # The only token is too long for the word scan; window at offset 4 is "AB12-3"
        score = self.matcher.similarity("AB1234", "LOT:AB12-34")
        assert score == pytest.approx(4 / 6)

    def test_no_window_scan_long_identifier(self):
        """Test identifiers longer than the window limit skip the window scan."""
        assert self.matcher.similarity("AB123456", "LOTXAB12-3456Y") == 0.0

    def test_empty_inputs(self):
        """Test empty identifier or text."""
        assert self.matcher.similarity("", "AB1234") == 0.0
        assert self.matcher.similarity("AB1234", "") == 0.0

    def test_unrelated_text(self):
        """Test unrelated text scores low."""
        assert self.matcher.similarity("AB1234", "PARACETAMOL 500MG TABLETS") < 0.6

    def test_result_is_memoized(self):
        """Test repeated lookups hit the cache."""
        first = self.matcher.similarity("AB1234", "AB1239 RANDOM TEXT")
        second = self.matcher.similarity("AB1234", "AB1239 RANDOM TEXT")
        assert first == second

        stats = self.cache.stats()
        assert stats["similarity_entries"] == 1
        assert stats["hits"] == 1

    def test_disabled_cache_same_result(self):
        """Test caching does not change scores."""
        uncached = IdentifierMatcher(self.config, SimilarityCache(enabled=False))
        texts = ["AB1239 RANDOM TEXT", "LOT:AB12-34", "NOTHING HERE", "AB1234"]
        for text in texts:
            assert uncached.similarity("AB1234", text) == self.matcher.similarity("AB1234", text)

    def test_precomputed_words(self):
        """Test supplying words and word set gives the same result."""
        text = "EXP 2026 AB1239"
        words = text.split()
        assert self.matcher.similarity("AB1234", text, words, set(words)) == pytest.approx(5 / 6)


if __name__ == "__main__":
    pytest.main([__file__])
