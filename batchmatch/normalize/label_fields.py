"""
Labelled field extraction for BatchMatch.

Pulls the values printed after common label keywords (BATCH, LOT, EXP,
MFG) out of OCR text. Keywords are recognized fuzzily because the OCR step
routinely misreads them ("8ATCH", "EXP1RY"). The extracted fields are
diagnostic only and never feed the confirmation decision.
"""

import logging
import re
from typing import Dict, List, Optional

from thefuzz import fuzz, process

from .text_normalizer import TextNormalizer

logger = logging.getLogger(__name__)


FIELD_NAMES = ["batch_number", "lot_number", "expiry_date", "manufacturing_date"]

LABEL_KEYWORDS = {
    "BATCH": "batch_number",
    "BATCHNO": "batch_number",
    "B.NO": "batch_number",
    "BNO": "batch_number",
    "LOT": "lot_number",
    "LOTNO": "lot_number",
    "EXP": "expiry_date",
    "EXPIRY": "expiry_date",
    "EXPIRES": "expiry_date",
    "EXPDATE": "expiry_date",
    "MFG": "manufacturing_date",
    "MFD": "manufacturing_date",
    "MANUFACTURED": "manufacturing_date",
}

# Words that may sit between a keyword and its value ("BATCH NO. X", "EXP DATE: Y")
FILLER_WORDS = {"NO", "NUMBER", "DATE", "#", ""}

MONTH_PREFIXES = {"JAN", "FEB", "MAR", "APR", "MAY", "JUN",
                  "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"}

# Short keywords are only accepted verbatim; one misread letter in three is too loose
MIN_FUZZY_KEYWORD_LENGTH = 4

VALUE_LOOKAHEAD = 4


class LabelFieldExtractor:
    """
    Extracts batch, lot, expiry and manufacturing values from label text.
    """

    def __init__(self, config: Optional[Dict] = None, normalizer: Optional[TextNormalizer] = None):
        """
        Initialize extractor with configuration.

        Args:
            config: Label field configuration dictionary
            normalizer: Text normalizer (default instance if omitted)
        """
        config = config or {}
        self.keyword_min_ratio = config.get("keyword_min_ratio", 80)
        self.normalizer = normalizer or TextNormalizer()

        self.keyword_clean_pattern = re.compile(r'[^A-Z.]')
        self.value_strip_chars = ":#,;"

        logger.info("Initialized LabelFieldExtractor")

    def match_keyword(self, word: str) -> Optional[str]:
        """
        Map a (possibly misread) label keyword to the field it introduces.

        Args:
            word: Uppercased token

        Returns:
            Field name, or None if the token is not a label keyword
        """
        cleaned = self.keyword_clean_pattern.sub('', word).strip('.')
        if not cleaned:
            return None

        if cleaned in LABEL_KEYWORDS:
            return LABEL_KEYWORDS[cleaned]

        if len(cleaned) < MIN_FUZZY_KEYWORD_LENGTH:
            return None

        match = process.extractOne(cleaned, list(LABEL_KEYWORDS), scorer=fuzz.ratio,
                                   score_cutoff=self.keyword_min_ratio)
        if match:
            logger.debug(f"Recognized label keyword '{word}' as '{match[0]}' (ratio {match[1]})")
            return LABEL_KEYWORDS[match[0]]

        return None

    def _is_filler(self, token: str) -> bool:
        return self.keyword_clean_pattern.sub('', token).strip('.') in FILLER_WORDS

    def _value_after(self, words: List[str], index: int, inline_value: Optional[str]) -> Optional[str]:
        """Read the value following the keyword at words[index]."""
        tokens = words[index + 1:index + 1 + VALUE_LOOKAHEAD]
        if inline_value:
            tokens = [inline_value] + tokens

        cleaned_tokens = []
        for token in tokens:
            # "NO:AB123" -> "AB123"
            if ":" in token:
                prefix, rest = token.split(":", 1)
                if self._is_filler(prefix):
                    token = rest
            token = token.strip(self.value_strip_chars)
            if cleaned_tokens or not self._is_filler(token):
                cleaned_tokens.append(token)

        if not cleaned_tokens:
            return None

        value = cleaned_tokens[0]
        if not any(c.isalnum() for c in value):
            return None

        if self.keyword_clean_pattern.sub('', value).strip('.') in LABEL_KEYWORDS:
            return None

        # "MAR 2026" spans two tokens
        if (value.isalpha() and value[:3] in MONTH_PREFIXES and len(cleaned_tokens) > 1
                and any(c.isdigit() for c in cleaned_tokens[1])):
            return f"{value} {cleaned_tokens[1]}"

        return value

    def extract_fields(self, text: Optional[str]) -> Dict[str, Optional[str]]:
        """
        Extract labelled fields from OCR text.

        Args:
            text: Raw OCR text

        Returns:
            Dictionary with batch_number, lot_number, expiry_date and
            manufacturing_date (None where not found); the first
            occurrence of each label wins
        """
        fields: Dict[str, Optional[str]] = {name: None for name in FIELD_NAMES}
        words = self.normalizer.normalize(text).words

        for index, word in enumerate(words):
            keyword_part, inline_value = word, None
            if ":" in word:
                keyword_part, inline_value = word.split(":", 1)

            field_name = self.match_keyword(keyword_part)
            if field_name is None or fields[field_name] is not None:
                continue

            value = self._value_after(words, index, inline_value)
            if value:
                fields[field_name] = value

        found = {k: v for k, v in fields.items() if v}
        logger.debug(f"Extracted label fields: {found}")
        return fields


def extract_label_fields(text: Optional[str], config: Optional[Dict] = None) -> Dict[str, Optional[str]]:
    """
    Convenience function to extract labelled fields from OCR text.

    Args:
        text: Raw OCR text
        config: Label field configuration

    Returns:
        Dictionary of extracted fields
    """
    return LabelFieldExtractor(config).extract_fields(text)
