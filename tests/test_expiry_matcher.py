"""
Unit tests for expiry-date parsing, format generation and matching.
"""

import pytest
import sys
from datetime import date
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from batchmatch.match.expiry_matcher import (ExpiryMatcher, generate_date_formats, generate_labeled_formats,
                                             parse_expiry_date)
from batchmatch.match.similarity_cache import SimilarityCache


class TestParseExpiryDate:
    """Test cases for expiry date parsing."""

    def test_iso(self):
        """Test ISO dates and timestamps."""
        parsed = parse_expiry_date("2026-03-31")
        assert parsed.value == date(2026, 3, 31)
        assert parsed.has_day

        assert parse_expiry_date("2026-03-31T00:00:00").value == date(2026, 3, 31)
        assert parse_expiry_date("2026-03-31T00:00:00Z").value == date(2026, 3, 31)

    def test_us_before_eu(self):
        """Test ambiguous numeric dates read as US, impossible US dates as EU."""
        assert parse_expiry_date("03/04/2026").value == date(2026, 3, 4)
        assert parse_expiry_date("31/03/2026").value == date(2026, 3, 31)

    def test_named_month(self):
        """Test named month patterns, case-insensitive."""
        assert parse_expiry_date("31 Mar 2026").value == date(2026, 3, 31)
        assert parse_expiry_date("March 31, 2026").value == date(2026, 3, 31)
        assert parse_expiry_date("31-MAR-26").value == date(2026, 3, 31)

    def test_month_only(self):
        """Test month-year dates carry no day."""
        for value in ["03/2026", "MAR 2026", "March 2026", "2026-03"]:
            parsed = parse_expiry_date(value)
            assert parsed is not None, value
            assert parsed.value.year == 2026
            assert parsed.value.month == 3
            assert not parsed.has_day

    def test_unparseable(self):
        """Test values that are not dates."""
        assert parse_expiry_date("LOT-END") is None
        assert parse_expiry_date("") is None
        assert parse_expiry_date("   ") is None
        assert parse_expiry_date(None) is None


class TestFormatGeneration:
    """Test cases for date rendering."""

    def test_full_date_formats(self):
        """Test renderings of a full date."""
        formats = generate_date_formats(date(2026, 3, 31))

        assert 40 <= len(formats) <= 60
        assert len(formats) == len(set(formats))
        assert all(fmt == fmt.upper() for fmt in formats)

        for expected in ["2026-03-31", "03/31/2026", "31/03/2026", "31.03.2026", "20260331",
                         "31 MAR 2026", "31-MAR-26", "MARCH 31, 2026", "MAR 2026", "03/2026"]:
            assert expected in formats, expected

    def test_no_ambiguous_two_digit_month_year(self):
        """Test "MAR 26" is never generated."""
        assert "MAR 26" not in generate_date_formats(date(2026, 3, 31))
        assert "MAR 26" not in generate_date_formats(date(2026, 3, 1), has_day=False)

    def test_month_only_formats(self):
        """Test a month-year date renders month-level formats only."""
        formats = generate_date_formats(date(2026, 3, 1), has_day=False)

        assert "MAR 2026" in formats
        assert "03/2026" in formats
        assert "MARCH 2026" in formats
        assert "2026-03-01" not in formats
        assert "01/03/2026" not in formats

    def test_labeled_formats(self):
        """Test labelled renderings."""
        formats = generate_labeled_formats(date(2026, 3, 31))

        assert "EXP: MAR 2026" in formats
        assert "EXP 03/2026" in formats
        assert "USE BY MAR 2026" in formats
        assert "BEST BEFORE: 03/2026" in formats
        assert "EXP 2026-03-31" not in formats
        # 12 prefixes x 2 separators x 2 renderings
        assert len(formats) == 48

    def test_labeled_formats_custom_prefixes(self):
        """Test custom label prefixes."""
        formats = generate_labeled_formats(date(2026, 3, 1),
                                           prefixes=["exp"], separators=[" "])
        assert formats == ["EXP MAR 2026", "EXP 03/2026"]


class TestExpiryMatcher:
    """Test cases for expiry verification in OCR text."""

    def setup_method(self):
        """Setup test fixtures."""
        self.cache = SimilarityCache()
        self.matcher = ExpiryMatcher({}, self.cache)

    def test_cross_format_match(self):
        """Test a declared date is found in another convention."""
        assert self.matcher.is_present("2026-03-31", "BATCH AB1234 EXP 03/31/2026")
        assert self.matcher.is_present("2026-03-31", "Exp: 31/03/2026")
        assert self.matcher.is_present("03/31/2026", "use by 2026-03-31")

    def test_case_insensitive(self):
        """Test matching ignores case in the raw text."""
        assert self.matcher.is_present("2026-03-31", "exp mar 2026")

    def test_different_date_not_found(self):
        """Test another date is rejected."""
        assert not self.matcher.is_present("2026-03-31", "EXP 2027-03-31")
        assert not self.matcher.is_present("2026-03-31", "AB1239 random text")

    def test_month_level_rendering_inside_other_date(self):
        """Test month-level renderings do not match inside a different full date."""
        assert not self.matcher.is_present("2026-03-31", "BATCH AB1234 EXP 12/03/2026")
        assert self.matcher.find_format("2026-03-31", "BATCH AB1234 EXP 12/03/2026") is None
        assert not self.matcher.is_present("2026-03-05", "EXP 2026-03-25")
        assert not self.matcher.is_present("2026-03-05", "EXP 25 MAR 2026")
        assert not self.matcher.is_present("2026-03-05", "EXP 31.03.2026")

    def test_two_digit_year_inside_four_digit_year(self):
        """Test two-digit-year renderings do not match a longer year."""
        assert not self.matcher.is_present("2020-03-04", "EXP 03/04/2027")
        assert not self.matcher.is_present("2020-03-04", "EXP 04.03.2029")
        assert self.matcher.is_present("2020-03-04", "EXP 03/04/20")

    def test_month_level_rendering_standalone(self):
        """Test month-level renderings still match on their own."""
        assert self.matcher.is_present("2026-03-31", "EXP 03/2026")
        assert self.matcher.is_present("2026-03-31", "EXP:03/2026.")
        assert self.matcher.is_present("2026-03-31", "USE BY MAR 2026 LOT 7")
        assert self.matcher.is_present("2026-03-31", "EXP 2026-03\nMFG 2024-01")

    def test_no_declared_expiry(self):
        """Test batches without an expiry pass vacuously."""
        assert self.matcher.is_present(None, "anything")
        assert self.matcher.is_present("  ", "anything")
        assert self.matcher.is_present(None, "")

    def test_missing_text(self):
        """Test a declared expiry against empty text."""
        assert not self.matcher.is_present("2026-03-31", "")
        assert not self.matcher.is_present("2026-03-31", None)

    def test_unparseable_is_sole_candidate(self):
        """Test unparseable expiry strings are matched verbatim."""
        assert self.matcher.candidate_formats("lot-end") == ("LOT-END",)
        assert self.matcher.is_present("lot-end", "PACK LOT-END 7")
        assert not self.matcher.is_present("lot-end", "PACK 2026-03-31")

    def test_candidate_formats_include_original(self):
        """Test the declared string and labelled variants are candidates."""
        formats = self.matcher.candidate_formats("2026-03-31")
        assert formats[0] == "2026-03-31"
        assert "EXP DATE: MAR 2026" in formats
        assert len(formats) == len(set(formats))
        assert len(formats) < 110

    def test_find_format(self):
        """Test the matching rendering is reported."""
        assert self.matcher.find_format("2026-03-31", "EXP 20260331") == "20260331"
        assert self.matcher.find_format("2026-03-31", "nothing") is None

    def test_formats_memoized(self):
        """Test format sets are generated once per expiry string."""
        first = self.matcher.candidate_formats("2026-03-31")
        second = self.matcher.candidate_formats("2026-03-31")
        assert first == second

        stats = self.cache.stats()
        assert stats["format_entries"] == 1
        assert stats["hits"] == 1


if __name__ == "__main__":
    pytest.main([__file__])
