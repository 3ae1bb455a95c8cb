"""
OCR text normalization for BatchMatch.

Trims and uppercases extracted label text and tokenizes it into an ordered
word list and a word set for constant-time membership checks.
"""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedText:
    """
    Normalized form of one OCR capture.

    Attributes:
        normalized_text: Trimmed, uppercased text.
        words: Whitespace-separated tokens in reading order.
        word_set: Distinct tokens for fast membership tests.
    """
    normalized_text: str = ""
    words: List[str] = field(default_factory=list)
    word_set: FrozenSet[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.normalized_text


class TextNormalizer:
    """
    Normalizes raw OCR text for identifier matching.

    Pure transformation: no state is kept between calls.
    """

    def normalize(self, raw_text: Optional[str]) -> NormalizedText:
        """
        Normalize raw OCR text.

        Args:
            raw_text: Text produced by the OCR step (may be multi-line)

        Returns:
            NormalizedText with uppercased text, words and word set
        """
        if not raw_text:
            return NormalizedText()

        normalized_text = str(raw_text).strip().upper()
        words = normalized_text.split()

        return NormalizedText(
            normalized_text=normalized_text,
            words=words,
            word_set=frozenset(words)
        )


def normalize_identifier(identifier: Optional[str]) -> str:
    """Trim and uppercase a batch identifier so it compares with normalized text."""
    if identifier is None:
        return ""
    return str(identifier).strip().upper()


def normalize_text(raw_text: Optional[str]) -> NormalizedText:
    """
    Convenience function to normalize a single OCR capture.

    Args:
        raw_text: Raw OCR text

    Returns:
        NormalizedText
    """
    return TextNormalizer().normalize(raw_text)
