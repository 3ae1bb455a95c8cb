"""
Memoization cache for BatchMatch.

Holds identifier similarity scores and generated expiry-date format sets
for the lifetime of a matching session. Entries are pure derived data and
can be dropped at any time without changing match results.
"""

import logging
import re
import threading
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class SimilarityCache:
    """
    Session-scoped cache owned by a matching engine.

    Keys:
        (identifier, normalized_text) -> similarity
        expiry_string -> generated format strings
        expiry_string -> compiled search pattern over those formats

    All access goes through a lock so a single cache can be shared by
    matchers running on different threads.
    """

    def __init__(self, enabled: bool = True):
        """
        Initialize an empty cache.

        Args:
            enabled: When False, lookups always miss and nothing is stored
        """
        self.enabled = enabled
        self._similarities: Dict[Tuple[str, str], float] = {}
        self._formats: Dict[str, Tuple[str, ...]] = {}
        self._patterns: Dict[str, re.Pattern] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

        logger.info(f"Initialized SimilarityCache (enabled={enabled})")

    def get_similarity(self, identifier: str, normalized_text: str) -> Optional[float]:
        """Return the cached similarity for a pair, or None on a miss."""
        if not self.enabled:
            return None

        with self._lock:
            value = self._similarities.get((identifier, normalized_text))
            if value is None:
                self._misses += 1
            else:
                self._hits += 1
            return value

    def put_similarity(self, identifier: str, normalized_text: str, similarity: float):
        """Store the similarity for a pair."""
        if not self.enabled:
            return

        with self._lock:
            self._similarities[(identifier, normalized_text)] = similarity

    def get_formats(self, expiry: str) -> Optional[Tuple[str, ...]]:
        """Return the generated formats for an expiry string, or None on a miss."""
        if not self.enabled:
            return None

        with self._lock:
            value = self._formats.get(expiry)
            if value is None:
                self._misses += 1
            else:
                self._hits += 1
            return value

    def put_formats(self, expiry: str, formats: Tuple[str, ...]):
        """Store the generated formats for an expiry string."""
        if not self.enabled:
            return

        with self._lock:
            self._formats[expiry] = tuple(formats)

    def get_pattern(self, expiry: str) -> Optional[re.Pattern]:
        """Return the compiled search pattern for an expiry string, or None on a miss."""
        if not self.enabled:
            return None

        with self._lock:
            value = self._patterns.get(expiry)
            if value is None:
                self._misses += 1
            else:
                self._hits += 1
            return value

    def put_pattern(self, expiry: str, pattern: re.Pattern):
        """Store the compiled search pattern for an expiry string."""
        if not self.enabled:
            return

        with self._lock:
            self._patterns[expiry] = pattern

    def clear(self):
        """Drop all entries and reset counters."""
        with self._lock:
            similarity_count = len(self._similarities)
            format_count = len(self._formats)
            self._similarities.clear()
            self._formats.clear()
            self._patterns.clear()
            self._hits = 0
            self._misses = 0

        logger.info(f"Cleared SimilarityCache ({similarity_count} similarity entries, "
                   f"{format_count} format entries)")

    def stats(self) -> Dict[str, int]:
        """
        Get cache statistics.

        Returns:
            Dictionary with entry counts, hits and misses
        """
        with self._lock:
            return {
                "similarity_entries": len(self._similarities),
                "format_entries": len(self._formats),
                "pattern_entries": len(self._patterns),
                "hits": self._hits,
                "misses": self._misses
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._similarities) + len(self._formats) + len(self._patterns)
