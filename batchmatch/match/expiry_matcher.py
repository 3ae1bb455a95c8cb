"""
Expiry-date matching for BatchMatch.

Parses a batch's declared expiry date, renders it in every common label
convention (ISO, US, EU, compact, two-digit year, month names, labelled
contexts such as "EXP" or "USE BY") and checks whether any rendering
appears verbatim, as a whole date, in the raw OCR text. Dates are never
fuzzy matched.
"""

import logging
import re
from datetime import date, datetime
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from .similarity_cache import SimilarityCache

logger = logging.getLogger(__name__)


MONTH_ABBREVIATIONS = ["JAN", "FEB", "MAR", "APR", "MAY", "JUN",
                       "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"]
MONTH_NAMES = ["JANUARY", "FEBRUARY", "MARCH", "APRIL", "MAY", "JUNE",
               "JULY", "AUGUST", "SEPTEMBER", "OCTOBER", "NOVEMBER", "DECEMBER"]

# (strptime pattern, pattern carries a day component); first match wins
INPUT_DATE_PATTERNS: List[Tuple[str, bool]] = [
    # ISO and ISO timestamps
    ("%Y-%m-%d", True),
    ("%Y-%m-%dT%H:%M:%S", True),
    ("%Y-%m-%dT%H:%M:%S.%f", True),
    ("%Y-%m-%d %H:%M:%S", True),
    ("%Y/%m/%d", True),
    ("%Y.%m.%d", True),
    # US before EU
    ("%m/%d/%Y", True),
    ("%d/%m/%Y", True),
    ("%m-%d-%Y", True),
    ("%d-%m-%Y", True),
    ("%d.%m.%Y", True),
    # Compact
    ("%Y%m%d", True),
    # Named month
    ("%d %b %Y", True),
    ("%d %B %Y", True),
    ("%d-%b-%Y", True),
    ("%b %d, %Y", True),
    ("%B %d, %Y", True),
    ("%b %d %Y", True),
    # Two-digit year
    ("%m/%d/%y", True),
    ("%d/%m/%y", True),
    ("%d-%b-%y", True),
    # Month and year only
    ("%b %Y", False),
    ("%B %Y", False),
    ("%b-%Y", False),
    ("%m/%Y", False),
    ("%m-%Y", False),
    ("%Y-%m", False),
]

DEFAULT_LABEL_PREFIXES = [
    "EXP", "EXPIRY", "EXPIRES", "EXP DATE", "USE BY", "BEST BY", "BEST BEFORE",
    "MFG", "LOT", "BATCH", "VALID UNTIL", "DO NOT USE AFTER"
]
DEFAULT_LABEL_SEPARATORS = [" ", ": "]

_whitespace_pattern = re.compile(r'\s+')

_left_date_boundary = r'(?<!\d)(?<!\d[/.\- ])'
_right_date_boundary = r'(?!\d)(?![/.\-]\d)'


class ParsedExpiry(NamedTuple):
    """Result of parsing a declared expiry string."""
    value: date
    has_day: bool
    pattern: str


def parse_expiry_date(expiry: Optional[str]) -> Optional[ParsedExpiry]:
    """
    Parse a free-form expiry string against the known input patterns.

    Args:
        expiry: Declared expiry date as supplied with the batch

    Returns:
        ParsedExpiry, or None if no pattern matches
    """
    if expiry is None:
        return None

    cleaned = _whitespace_pattern.sub(' ', str(expiry)).strip()
    if not cleaned:
        return None

    # API timestamps sometimes carry a UTC designator
    if "T" in cleaned and cleaned.endswith("Z"):
        cleaned = cleaned[:-1]

    for pattern, has_day in INPUT_DATE_PATTERNS:
        try:
            parsed = datetime.strptime(cleaned, pattern)
        except ValueError:
            continue
        return ParsedExpiry(parsed.date(), has_day, pattern)

    return None


def _dedupe(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(v for v in values if v))


def generate_date_formats(value: date, has_day: bool = True) -> List[str]:
    """
    Render a date in the textual conventions used on medicine labels.

    Args:
        value: Calendar date to render
        has_day: False when only month and year are known

    Returns:
        Deduplicated, uppercased renderings
    """
    Y = f"{value.year:04d}"
    y = Y[-2:]
    M = f"{value.month:02d}"
    m = str(value.month)
    D = f"{value.day:02d}"
    d = str(value.day)
    MON = MONTH_ABBREVIATIONS[value.month - 1]
    MONTH = MONTH_NAMES[value.month - 1]

    formats = []

    if has_day:
        for sep in ("/", "-", ".", " "):
            formats += [f"{Y}{sep}{M}{sep}{D}", f"{M}{sep}{D}{sep}{Y}", f"{D}{sep}{M}{sep}{Y}"]
        formats += [f"{m}/{d}/{Y}", f"{d}/{m}/{Y}"]
        formats += [f"{Y}{M}{D}", f"{D}{M}{Y}", f"{M}{D}{Y}"]
        for sep in ("/", "-", "."):
            formats += [f"{M}{sep}{D}{sep}{y}", f"{D}{sep}{M}{sep}{y}"]
        formats += [f"{D}{M}{y}", f"{y}{M}{D}"]
        formats += [
            f"{D} {MON} {Y}", f"{D}-{MON}-{Y}", f"{D}/{MON}/{Y}", f"{D}.{MON}.{Y}", f"{D}{MON}{Y}",
            f"{MON} {D} {Y}", f"{MON} {D}, {Y}",
            f"{D} {MONTH} {Y}", f"{MONTH} {D}, {Y}", f"{MONTH} {D} {Y}",
            f"{D}-{MON}-{y}", f"{D} {MON} {y}", f"{D}{MON}{y}",
        ]

    # Month-level renderings; labels often omit the day
    for sep in ("/", "-", ".", " "):
        formats.append(f"{M}{sep}{Y}")
    for sep in (" ", "-", ".", "/", ""):
        formats.append(f"{MON}{sep}{Y}")
    formats.append(f"{MONTH} {Y}")
    # "MAR 26" is left out: it also reads as the 26th of March
    for sep in ("-", ".", ""):
        formats.append(f"{MON}{sep}{y}")
    formats += [f"{Y}-{M}", f"{Y}/{M}"]

    return _dedupe(formats)


def generate_labeled_formats(value: date,
                             prefixes: Optional[List[str]] = None,
                             separators: Optional[List[str]] = None) -> List[str]:
    """
    Prefix the month-level short renderings ("MAR 2026", "03/2026") with
    label phrases.

    Args:
        value: Calendar date to render
        prefixes: Label phrases such as "EXP" or "USE BY"
        separators: Strings placed between label and date

    Returns:
        Deduplicated, uppercased labelled renderings
    """
    prefixes = prefixes if prefixes is not None else DEFAULT_LABEL_PREFIXES
    separators = separators if separators is not None else DEFAULT_LABEL_SEPARATORS

    Y = f"{value.year:04d}"
    M = f"{value.month:02d}"
    MON = MONTH_ABBREVIATIONS[value.month - 1]

    short_formats = [f"{MON} {Y}", f"{M}/{Y}"]

    return _dedupe(
        f"{prefix.strip().upper()}{sep}{fmt}"
        for prefix in prefixes
        for sep in separators
        for fmt in short_formats
    )


def build_search_pattern(formats: Iterable[str]) -> re.Pattern:
    """
    Compile one pattern finding any rendering as a whole date.

    A rendering only counts when it is not part of a longer date: no digit
    may touch it, and no digit may be joined to it by a date separator
    ("03/2026" does not match inside "12/03/2026", "03/04/20" does not
    match inside "03/04/2027").

    Args:
        formats: Uppercased renderings

    Returns:
        Compiled pattern; longer renderings are tried first
    """
    alternatives = sorted(formats, key=len, reverse=True)
    return re.compile(
        _left_date_boundary
        + '(?:' + '|'.join(re.escape(fmt) for fmt in alternatives) + ')'
        + _right_date_boundary
    )


class ExpiryMatcher:
    """
    Verifies that a batch's expiry date is printed in the OCR text.

    Generated format sets are memoized per declared expiry string, so one
    batch list can be matched against many captures cheaply.
    """

    def __init__(self, config: Optional[Dict] = None, cache: Optional[SimilarityCache] = None):
        """
        Initialize expiry matcher with configuration.

        Args:
            config: Expiry matching configuration dictionary
            cache: Shared cache (a private one is created if omitted)
        """
        config = config or {}
        self.label_prefixes = config.get("label_prefixes", DEFAULT_LABEL_PREFIXES)
        self.label_separators = config.get("label_separators", DEFAULT_LABEL_SEPARATORS)

        self.cache = cache if cache is not None else SimilarityCache()

        logger.info(f"Initialized ExpiryMatcher with {len(self.label_prefixes)} label prefixes")

    def candidate_formats(self, batch_expiry: str) -> Tuple[str, ...]:
        """
        Get every rendering of a declared expiry date to search for.

        Args:
            batch_expiry: Declared expiry string

        Returns:
            Tuple of uppercased candidate strings; just the original
            string when it cannot be parsed
        """
        cached = self.cache.get_formats(batch_expiry)
        if cached is not None:
            return cached

        original = str(batch_expiry).strip().upper()
        parsed = parse_expiry_date(batch_expiry)

        if parsed is None:
            logger.warning(f"Could not parse expiry date '{batch_expiry}', matching it verbatim")
            formats = (original,)
        else:
            logger.debug(f"Parsed expiry '{batch_expiry}' as {parsed.value.isoformat()} "
                         f"using '{parsed.pattern}'")
            formats = tuple(_dedupe(
                [original]
                + generate_date_formats(parsed.value, parsed.has_day)
                + generate_labeled_formats(parsed.value, self.label_prefixes, self.label_separators)
            ))

        self.cache.put_formats(batch_expiry, formats)
        return formats

    def search_pattern(self, batch_expiry: str) -> re.Pattern:
        """Get the compiled whole-date pattern over the candidate formats."""
        cached = self.cache.get_pattern(batch_expiry)
        if cached is not None:
            return cached

        pattern = build_search_pattern(self.candidate_formats(batch_expiry))
        self.cache.put_pattern(batch_expiry, pattern)
        return pattern

    def find_format(self, batch_expiry: Optional[str], raw_text: Optional[str]) -> Optional[str]:
        """
        Find the leftmost rendering of the expiry date present in the text.

        Args:
            batch_expiry: Declared expiry string
            raw_text: Un-normalized OCR text

        Returns:
            The matching rendering, or None
        """
        if not batch_expiry or not str(batch_expiry).strip() or not raw_text:
            return None

        match = self.search_pattern(batch_expiry).search(raw_text.upper())
        return match.group(0) if match else None

    def is_present(self, batch_expiry: Optional[str], raw_text: Optional[str]) -> bool:
        """
        Check whether the declared expiry date appears in the OCR text.

        Args:
            batch_expiry: Declared expiry string (None when not declared)
            raw_text: Un-normalized OCR text

        Returns:
            True if any rendering is present, or if no expiry is declared
        """
        if batch_expiry is None or not str(batch_expiry).strip():
            return True

        found = self.find_format(batch_expiry, raw_text)
        if found is not None:
            logger.debug(f"Expiry '{batch_expiry}' found in text as '{found}'")
            return True

        logger.debug(f"Expiry '{batch_expiry}' not found in text")
        return False
