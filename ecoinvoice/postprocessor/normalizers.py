"""
Data Normalizers Module.

This module provides normalization functions for:
    - Raw OCR text (whitespace, unicode quirks, line splitting)
    - Locale-ambiguous numeric tokens ("9.969,00", "9969.00", "9 969,00")
    - Calendar dates (numeric, ISO and month-name forms)

Author: ML Engineering Team
"""

import math
import re
import unicodedata
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from dateutil import parser as date_parser

from config import get_config
from ecoinvoice.utils.logger import get_logger
from .validators import DateValidator

# Initialize module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class NormalizedText:
    """
    Canonical form of one OCR document.

    Attributes:
        lines: Trimmed, non-empty lines in document order.
        text: The lines re-joined with newlines.
    """
    lines: Tuple[str, ...]
    text: str


class TextNormalizer:
    """
    Canonicalizes raw OCR text.

    Non-breaking and other exotic spaces become ordinary spaces, carriage
    returns are dropped, runs of spaces collapse, and empty lines vanish.

    Example:
        >>> TextNormalizer().normalize("ACME AS\\r\\n\\n  Total:\\u00a0100 ").lines
        ('ACME AS', 'Total: 100')
    """

    SPACE_CHARS = "    \t"

    def __init__(self) -> None:
        self._space_table = str.maketrans({c: " " for c in self.SPACE_CHARS})

    def normalize(self, raw: Optional[str]) -> NormalizedText:
        """
        Normalize raw text into lines.

        Args:
            raw: OCR output for one document (may be empty or None).

        Returns:
            NormalizedText; empty input yields no lines.
        """
        if not raw:
            return NormalizedText(lines=(), text="")

        text = unicodedata.normalize("NFC", raw)
        text = text.translate(self._space_table).replace("\r", "")

        lines = []
        for line in text.split("\n"):
            line = re.sub(r" {2,}", " ", line).strip()
            if line:
                lines.append(line)

        return NormalizedText(lines=tuple(lines), text="\n".join(lines))


@dataclass(frozen=True)
class NumericToken:
    """
    A number found inside a line of text.

    Attributes:
        text: The matched substring.
        value: Parsed value, or None when unparseable.
        digits: Count of digits in the substring (separators excluded).
        is_percentage: True when the token is directly followed by '%'.
    """
    text: str
    value: Optional[float]
    digits: int
    is_percentage: bool = False


class AmountNormalizer:
    """
    Parses locale-ambiguous numeric substrings.

    Decimal separator rule: when both a comma and a dot occur, whichever
    comes last is the decimal point and the other is a thousands separator.
    A lone comma or a lone dot is the decimal point (the rightmost one when
    repeated). Whitespace inside a number is removed. The same rule is used
    for every monetary amount and quantity, so comma-decimal and
    dot-decimal invoices need no locale setting.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.parse_number("9.969,00")
        9969.0
        >>> normalizer.parse_number("9 969,00")
        9969.0
        >>> normalizer.parse_number("kr") is None
        True
    """

    # Ordered alternatives: bank-account shape, thousands-grouped, plain.
    # A number never starts inside a word, so "m3 400" or "CO2 450" stay apart.
    NUMBER_PATTERN = (
        r"(?<![^\W_])"
        r"(?:\d{4}[ .]\d{2}[ .]\d{5}"
        r"|\d{1,3}(?:[ .,]\d{3})+(?:[.,]\d{1,2})?"
        r"|\d+(?:[.,]\d+)?)"
        r"(?!\d)"
    )
    NUMBER_REGEX = re.compile(NUMBER_PATTERN)

    # Dates are blanked out before numbers are scanned.
    DATE_REGEX = re.compile(
        r"\b\d{1,2}[.\-/]\d{1,2}[.\-/]\d{2,4}\b|\b\d{4}-\d{1,2}-\d{1,2}\b"
    )

    def parse_number(self, token: Optional[str]) -> Optional[float]:
        """
        Convert a numeric-looking substring to a float.

        Args:
            token: Substring such as "12 450,00" or "1,234.56".

        Returns:
            Parsed value, or None if unparseable.
        """
        if token is None:
            return None

        s = re.sub(r"\s+", "", str(token))
        s = re.sub(r"[^\d,.\-]", "", s)
        if not re.search(r"\d", s):
            return None

        comma = s.rfind(",")
        dot = s.rfind(".")

        if comma >= 0 and dot >= 0:
            if comma > dot:
                s = s.replace(".", "").replace(",", ".")
            else:
                s = s.replace(",", "")
        elif comma >= 0:
            head, _, tail = s.rpartition(",")
            s = head.replace(",", "") + "." + tail
        elif dot >= 0:
            head, _, tail = s.rpartition(".")
            s = head.replace(".", "") + "." + tail

        try:
            value = float(s)
        except ValueError:
            logger.debug(f"Could not parse number: '{token}'")
            return None

        if not math.isfinite(value):
            return None
        return value

    def scrub_dates(self, line: str) -> str:
        """Blank out date substrings, keeping character positions."""
        return self.DATE_REGEX.sub(lambda m: " " * len(m.group(0)), line)

    def tokens(self, line: str) -> List[NumericToken]:
        """
        Find every number in a line, left to right.

        Date substrings are ignored so that "12.03.2024" never turns
        into the amounts 12.03 and 2024.

        Args:
            line: One normalized line.

        Returns:
            List of NumericToken.
        """
        scrubbed = self.scrub_dates(line)
        found = []
        for match in self.NUMBER_REGEX.finditer(scrubbed):
            text = match.group(0)
            rest = scrubbed[match.end():].lstrip()
            found.append(NumericToken(
                text=text,
                value=self.parse_number(text),
                digits=sum(ch.isdigit() for ch in text),
                is_percentage=rest.startswith("%"),
            ))
        return found

    def to_float(self, amount_str: str) -> Optional[float]:
        """
        Parse the first number found in a free-form string.

        Example:
            >>> AmountNormalizer().to_float("kr 12 450,00")
            12450.0
        """
        if not amount_str:
            return None
        for token in self.tokens(amount_str):
            if token.value is not None:
                return token.value
        return None


class NordicParserInfo(date_parser.parserinfo):
    """dateutil parser vocabulary with Norwegian month names added."""

    MONTHS = [
        ("Jan", "January", "Januar"),
        ("Feb", "February", "Februar"),
        ("Mar", "March", "Mars"),
        ("Apr", "April"),
        ("May", "Mai"),
        ("Jun", "June", "Juni"),
        ("Jul", "July", "Juli"),
        ("Aug", "August"),
        ("Sep", "Sept", "September"),
        ("Oct", "October", "Okt", "Oktober"),
        ("Nov", "November"),
        ("Dec", "December", "Des", "Desember"),
    ]


class DateNormalizer:
    """
    Converts date tokens to calendar dates.

    Two-digit years are expanded with a pivot: years at or above the
    pivot land in the 1900s, the rest in the 2000s. Out-of-range parts
    reject the token instead of producing a mangled date.

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.parse_day_first("15.03.24")
        datetime.date(2024, 3, 15)
        >>> normalizer.parse_day_first("45.13.2024") is None
        True
    """

    DAY_FIRST_PATTERN = r"\b(\d{1,2})[.\-/](\d{1,2})[.\-/](\d{2,4})\b"
    ISO_PATTERN = r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b"
    TEXTUAL_DAY_FIRST_PATTERN = (
        r"\b(\d{1,2})\.?\s+([A-Za-zÆØÅæøå]{3,9})\.?,?\s+(\d{4})\b"
    )
    TEXTUAL_MONTH_FIRST_PATTERN = (
        r"\b([A-Za-z]{3,9})\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})\b"
    )

    def __init__(self, two_digit_year_pivot: Optional[int] = None) -> None:
        """
        Initialize the date normalizer.

        Args:
            two_digit_year_pivot: Pivot for two-digit years. Defaults to
                configuration (70).
        """
        if two_digit_year_pivot is None:
            two_digit_year_pivot = get_config("extraction.date.two_digit_year_pivot", 70)
        self.pivot = int(two_digit_year_pivot)
        self.validator = DateValidator()
        self.parser_info = NordicParserInfo(dayfirst=True)

        logger.debug(f"DateNormalizer initialized (pivot: {self.pivot})")

    def expand_year(self, year_text: str) -> Optional[int]:
        """Expand a two- or four-digit year; other lengths are invalid."""
        if len(year_text) == 4:
            return int(year_text)
        if len(year_text) == 2:
            two = int(year_text)
            return (1900 if two >= self.pivot else 2000) + two
        return None

    def build(self, day: int, month: int, year: Optional[int]) -> Optional[date]:
        """
        Build a date from parts, or None if any part is invalid.

        Args:
            day: Day of month.
            month: Month number.
            year: Full year.
        """
        if year is None:
            return None
        valid, message = self.validator.validate(day, month, year)
        if not valid:
            logger.debug(f"Rejected date candidate {day}.{month}.{year}: {message}")
            return None
        try:
            return date(year, month, day)
        except ValueError as e:
            logger.debug(f"Rejected date candidate {day}.{month}.{year}: {e}")
            return None

    def parse_day_first(self, token: str) -> Optional[date]:
        """Parse a D.M.Y / D-M-Y / D/M/Y token."""
        match = re.search(self.DAY_FIRST_PATTERN, token or "")
        if not match:
            return None
        dd, mm, yy = match.groups()
        return self.build(int(dd), int(mm), self.expand_year(yy))

    def parse_iso(self, token: str) -> Optional[date]:
        """Parse a YYYY-MM-DD token."""
        match = re.search(self.ISO_PATTERN, token or "")
        if not match:
            return None
        yy, mm, dd = match.groups()
        return self.build(int(dd), int(mm), int(yy))

    def month_number(self, name: str) -> Optional[int]:
        """Look up an English or Norwegian month name (or abbreviation)."""
        return self.parser_info.month(name)

    def find_textual(self, text: str) -> Optional[date]:
        """
        Find the first date written with a month name.

        Handles "15. mars 2024", "15 March 2024" and "March 15th, 2024".

        Args:
            text: Text to search.

        Returns:
            First valid date, or None.
        """
        candidates = []
        for match in re.finditer(self.TEXTUAL_DAY_FIRST_PATTERN, text):
            candidates.append((match.start(), match.group(1), match.group(2), match.group(3)))
        for match in re.finditer(self.TEXTUAL_MONTH_FIRST_PATTERN, text):
            candidates.append((match.start(), match.group(2), match.group(1), match.group(3)))

        for _, day, month_name, year in sorted(candidates):
            month = self.month_number(month_name)
            if month is None:
                continue
            return self.build(int(day), month, int(year))
        return None


# Shared stateless instances
_text_normalizer = TextNormalizer()
_amount_normalizer = AmountNormalizer()


def normalize_text(raw: Optional[str]) -> NormalizedText:
    """Normalize raw OCR text with the default TextNormalizer."""
    return _text_normalizer.normalize(raw)


def parse_number(token: Optional[str]) -> Optional[float]:
    """Parse a numeric substring with the default AmountNormalizer."""
    return _amount_normalizer.parse_number(token)


def numeric_tokens(line: str) -> List[NumericToken]:
    """Scan a line for numbers with the default AmountNormalizer."""
    return _amount_normalizer.tokens(line)
