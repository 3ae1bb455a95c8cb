"""
Unit tests for normalization modules.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from batchmatch.normalize.text_normalizer import TextNormalizer, normalize_identifier, normalize_text
from batchmatch.normalize.label_fields import LabelFieldExtractor, extract_label_fields


class TestTextNormalizer:
    """Test cases for OCR text normalization."""

    def setup_method(self):
        """Setup test fixtures."""
        self.normalizer = TextNormalizer()

    def test_normalize_basic(self):
        """Test trimming, uppercasing and tokenization."""
        result = self.normalizer.normalize("  batch ab1234\nexp 03/2026 ")
        assert result.normalized_text == "BATCH AB1234\nEXP 03/2026"
        assert result.words == ["BATCH", "AB1234", "EXP", "03/2026"]
        assert result.word_set == frozenset({"BATCH", "AB1234", "EXP", "03/2026"})
        assert not result.is_empty

    def test_normalize_empty(self):
        """Test empty and missing text."""
        for raw in [None, "", "   "]:
            result = self.normalizer.normalize(raw)
            assert result.normalized_text == ""
            assert result.words == []
            assert result.word_set == frozenset()
            assert result.is_empty

    def test_repeated_words(self):
        """Test word list keeps order and duplicates, word set does not."""
        result = normalize_text("lot A lot B")
        assert result.words == ["LOT", "A", "LOT", "B"]
        assert len(result.word_set) == 3

    def test_normalize_identifier(self):
        """Test identifier normalization."""
        assert normalize_identifier(" ab12-34 ") == "AB12-34"
        assert normalize_identifier("") == ""
        assert normalize_identifier(None) == ""


class TestLabelFieldExtractor:
    """Test cases for labelled field extraction."""

    def setup_method(self):
        """Setup test fixtures."""
        self.extractor = LabelFieldExtractor({"keyword_min_ratio": 80})

    def test_extract_basic_fields(self):
        """Test batch and expiry extraction from a clean label."""
        fields = self.extractor.extract_fields("BATCH AB1234 EXP 03/31/2026")
        assert fields["batch_number"] == "AB1234"
        assert fields["expiry_date"] == "03/31/2026"
        assert fields["lot_number"] is None
        assert fields["manufacturing_date"] is None

    def test_extract_noisy_fields(self):
        """Test misread keywords, filler words, inline values and month names."""
        fields = self.extractor.extract_fields("8ATCH NO: XY-99 LOT L7 EXP: MAR 2026 MFG:01/2024")
        assert fields["batch_number"] == "XY-99"
        assert fields["lot_number"] == "L7"
        assert fields["expiry_date"] == "MAR 2026"
        assert fields["manufacturing_date"] == "01/2024"

    def test_first_occurrence_wins(self):
        """Test the first labelled value is kept."""
        fields = self.extractor.extract_fields("LOT A1 LOT B2")
        assert fields["lot_number"] == "A1"

    def test_no_labels(self):
        """Test text without label keywords."""
        fields = self.extractor.extract_fields("No label here")
        assert all(value is None for value in fields.values())

        fields = self.extractor.extract_fields(None)
        assert set(fields) == {"batch_number", "lot_number", "expiry_date", "manufacturing_date"}
        assert all(value is None for value in fields.values())

    def test_match_keyword(self):
        """Test keyword recognition."""
        assert self.extractor.match_keyword("BATCH") == "batch_number"
        assert self.extractor.match_keyword("B.NO") == "batch_number"
        assert self.extractor.match_keyword("EXPIRY") == "expiry_date"
        assert self.extractor.match_keyword("8ATCH") == "batch_number"
        assert self.extractor.match_keyword("MFD") == "manufacturing_date"
        # Short tokens are never fuzzy matched
        assert self.extractor.match_keyword("EXO") is None
        assert self.extractor.match_keyword("AB1234") is None
        assert self.extractor.match_keyword("") is None

    def test_keyword_without_value(self):
        """Test a keyword at the end of the text."""
        fields = extract_label_fields("AB1234 EXP")
        assert fields["expiry_date"] is None


if __name__ == "__main__":
    pytest.main([__file__])
