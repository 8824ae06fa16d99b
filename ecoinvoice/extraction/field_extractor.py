"""
Field Extractor Module.

Recovers invoice header fields from normalized OCR lines with ordered
heuristic strategies. Each field has its own chain; the first strategy
that yields a valid value wins and results are never merged across
strategies.

Fields:
    - vendor: label -> line above organization number -> head window
    - invoice number: labeled token with at least one digit
    - organization id: labeled number -> bare nine-digit group
    - issue date: labeled D.M.Y -> any D.M.Y -> ISO -> month name
    - currency: ISO code -> currency word -> configured default
    - activity hints: first kWh / liter / m3 quantity, stated CO2 mass

Author: ML Engineering Team
"""

import re
from datetime import date
from typing import Dict, Iterable, List, Optional, Pattern, Sequence

from config import get_config
from ecoinvoice.utils.logger import get_logger
from ecoinvoice.postprocessor.normalizers import AmountNormalizer, DateNormalizer
from ecoinvoice.postprocessor.validators import OrgNumberValidator
from .extraction_result import ActivityHints

# Initialize module logger
logger = get_logger(__name__)

NUMBER = AmountNormalizer.NUMBER_PATTERN


def compile_any(patterns: Iterable[str], flags: int = re.IGNORECASE) -> Optional[Pattern]:
    """Join regex fragments into one alternation, or None if empty."""
    patterns = [p for p in patterns if p]
    if not patterns:
        return None
    return re.compile("|".join(f"(?:{p})" for p in patterns), flags)


def compile_words(words: Iterable[str]) -> Optional[Pattern]:
    """Compile literal words into a whole-word, case-insensitive pattern."""
    words = sorted({w.strip() for w in words if w and w.strip()}, key=len, reverse=True)
    if not words:
        return None
    return re.compile(r"(?<!\w)(?:" + "|".join(re.escape(w) for w in words) + r")(?!\w)", re.IGNORECASE)


class FieldExtractor:
    """
    Heuristic header field extraction.

    All tunables (labels, noise words, address patterns, currency tables)
    come from the extraction section of the configuration unless passed
    explicitly.

    Example:
        >>> extractor = FieldExtractor()
        >>> lines = ["Fjordkraft AS", "Org.nr: 987 654 321", "Fakturanr: 10023"]
        >>> extractor.vendor(lines)
        'Fjordkraft AS'
        >>> extractor.organization_id(lines)
        '987654321'
    """

    INVOICE_NUMBER_PATTERN = re.compile(
        r"\b(?:invoice|faktura)\s*-?\s*(?:no\.?|nr\.?|number|nummer|#)?\s*[:\-]?\s*"
        r"([A-Za-z0-9][A-Za-z0-9\-/]{3,})",
        re.IGNORECASE
    )

    ORG_LABEL_PATTERN = re.compile(
        r"\borg(?:anisasjons)?\.?\s*-?\s*(?:nr|no|nummer|number|id)?\.?\s*[:\-]?\s*"
        r"(?:NO\s*)?(\d[\d ]{6,}\d)",
        re.IGNORECASE
    )
    BARE_ORG_PATTERN = re.compile(r"(?<!\d)(?<!\d )(\d{3}\s?\d{3}\s?\d{3})(?!\d)(?! \d)(?![.,]\d)")

    DATE_LABEL_PATTERN = re.compile(
        r"\b(?:fakturadato|invoice\s*date|issue\s*date|date\s*of\s*issue|utstedt|dato|date)"
        r"\s*[:\-]?\s*(\d{1,2}[.\-/]\d{1,2}[.\-/]\d{2,4})\b",
        re.IGNORECASE
    )
    DUE_DATE_PATTERN = re.compile(r"forfall|\bdue\b|betalingsfrist", re.IGNORECASE)

    HINT_PATTERNS = {
        'energy_kwh': [
            (re.compile(rf"({NUMBER})\s*kwh(?!\w)", re.IGNORECASE), 1.0),
            (re.compile(rf"({NUMBER})\s*mwh(?!\w)", re.IGNORECASE), 1000.0),
        ],
        'fuel_liters': [
            (re.compile(rf"({NUMBER})\s*(?:l|ltr|liter|litre|liters|litres)(?!\w)", re.IGNORECASE), 1.0),
        ],
        'gas_m3': [
            (re.compile(rf"({NUMBER})\s*(?:m3|m³)(?!\w)", re.IGNORECASE), 1.0),
        ],
        'co2_kg': [
            (re.compile(rf"({NUMBER})\s*kg\s*co2(?:e|-?ekv\w*)?(?!\w)", re.IGNORECASE), 1.0),
            (re.compile(rf"({NUMBER})\s*(?:tonn|tonnes?|t)\s*co2(?:e|-?ekv\w*)?(?!\w)", re.IGNORECASE), 1000.0),
        ],
    }

    def __init__(
        self,
        default_currency: Optional[str] = None,
        currency_codes: Optional[Sequence[str]] = None,
        currency_words: Optional[Dict[str, str]] = None,
        vendor_labels: Optional[Sequence[str]] = None,
        noise_words: Optional[Sequence[str]] = None,
        address_patterns: Optional[Sequence[str]] = None,
        head_lines: Optional[int] = None,
        max_digit_ratio: Optional[float] = None,
        item_line_patterns: Optional[Sequence[str]] = None,
        bank_noise_patterns: Optional[Sequence[str]] = None,
        date_normalizer: Optional[DateNormalizer] = None
    ) -> None:
        """
        Initialize the field extractor.

        Args:
            default_currency: Home currency used when none is found.
            currency_codes: Recognized ISO 4217 codes.
            currency_words: Currency words/symbols mapped to codes.
            vendor_labels: Labels that introduce the vendor name.
            noise_words: Whole words disqualifying a vendor candidate.
            address_patterns: Regexes identifying address lines.
            head_lines: Size of the head window for the vendor fallback.
            max_digit_ratio: Vendor candidates above this digit share are noise.
            item_line_patterns: Regexes for head lines that look like items.
            bank_noise_patterns: Lines skipped by the bare org-number search.
            date_normalizer: Date parser (pivot from configuration).
        """
        cfg = lambda key, default: get_config(f"extraction.{key}", default)

        self.default_currency = default_currency or cfg("currency.default", "NOK")
        codes = currency_codes if currency_codes is not None else cfg("currency.codes", [])
        words = currency_words if currency_words is not None else cfg("currency.words", {})
        labels = vendor_labels if vendor_labels is not None else cfg("vendor.labels", [])
        noise = noise_words if noise_words is not None else cfg("vendor.noise_words", [])
        addresses = address_patterns if address_patterns is not None else cfg("vendor.address_patterns", [])
        bank_noise = bank_noise_patterns if bank_noise_patterns is not None else cfg("total.bank_noise_patterns", [])
        item_lines = item_line_patterns if item_line_patterns is not None else cfg("vendor.item_line_patterns", [])

        self.head_lines = int(head_lines if head_lines is not None else cfg("vendor.head_lines", 12))
        self.max_digit_ratio = float(
            max_digit_ratio if max_digit_ratio is not None else cfg("vendor.max_digit_ratio", 0.5)
        )

        self.currency_code_pattern = (
            re.compile(r"\b(" + "|".join(re.escape(c) for c in codes) + r")\b") if codes else None
        )
        self.currency_words = {w.lower(): code for w, code in words.items()}
        self.currency_word_pattern = self._compile_currency_words(self.currency_words)

        self.vendor_label_pattern = (
            re.compile(
                r"^\s*(?:" + "|".join(re.escape(l) for l in labels) + r")\s*[:\-]\s*(.+)$",
                re.IGNORECASE
            ) if labels else None
        )
        self.noise_pattern = compile_words(noise)
        self.address_pattern = compile_any(addresses)
        self.item_line_pattern = compile_any(item_lines)
        self.bank_noise_pattern = compile_any(bank_noise)

        self.date_normalizer = date_normalizer or DateNormalizer()
        self.amounts = AmountNormalizer()
        self.org_validator = OrgNumberValidator()

        logger.debug("FieldExtractor initialized")

    @staticmethod
    def _compile_currency_words(words: Dict[str, str]) -> Optional[Pattern]:
        if not words:
            return None
        parts = []
        for word in sorted(words, key=len, reverse=True):
            escaped = re.escape(word)
            # Symbols have no word boundaries.
            if re.match(r"\w", word):
                parts.append(rf"(?<!\w){escaped}(?!\w)")
            else:
                parts.append(escaped)
        return re.compile("|".join(parts), re.IGNORECASE)

    # -------------------------------------------------------------------------
    # Vendor
    # -------------------------------------------------------------------------

    def is_noise(self, value: str) -> bool:
        """
        Check if a vendor candidate is noise.

        Noise is a candidate without letters, containing a noise keyword,
        or consisting mostly of digits.
        """
        compact = re.sub(r"\s", "", value)
        if not compact or not re.search(r"[^\W\d_]", compact):
            return True
        if self.noise_pattern and self.noise_pattern.search(value):
            return True
        digits = sum(ch.isdigit() for ch in compact)
        return digits / len(compact) > self.max_digit_ratio

    def is_address(self, value: str) -> bool:
        """Check if a line looks like a postal address."""
        return bool(self.address_pattern and self.address_pattern.search(value))

    def vendor_from_label(self, lines: Sequence[str]) -> Optional[str]:
        """Strategy (a): an explicit vendor label followed by a clean value."""
        if self.vendor_label_pattern is None:
            return None
        for line in lines:
            match = self.vendor_label_pattern.match(line)
            if match:
                value = match.group(1).strip()
                if not self.is_noise(value):
                    return value
                logger.debug(f"Vendor label value rejected as noise: '{value}'")
        return None

    def vendor_before_org_line(self, lines: Sequence[str]) -> Optional[str]:
        """Strategy (b): the line directly above the organization number."""
        for index, line in enumerate(lines):
            if self.ORG_LABEL_PATTERN.search(line):
                if index > 0:
                    candidate = lines[index - 1]
                    if not self.is_noise(candidate) and not self.is_address(candidate):
                        return candidate
                return None
        return None

    def is_item_line(self, value: str) -> bool:
        """Check if a line carries an amount or a quantity with unit."""
        return bool(self.item_line_pattern and self.item_line_pattern.search(value))

    def vendor_from_head(self, lines: Sequence[str]) -> Optional[str]:
        """Strategy (c): first clean line of the document head."""
        for line in lines[:self.head_lines]:
            if self.is_noise(line) or self.is_address(line) or self.is_item_line(line):
                continue
            return line
        return None

    def vendor(self, lines: Sequence[str]) -> Optional[str]:
        """
        Extract the vendor name.

        Args:
            lines: Normalized document lines.

        Returns:
            Vendor name, or None.
        """
        for strategy in (self.vendor_from_label, self.vendor_before_org_line, self.vendor_from_head):
            value = strategy(lines)
            if value:
                logger.debug(f"Vendor found by {strategy.__name__}: '{value}'")
                return value
        return None

    # -------------------------------------------------------------------------
    # Invoice number / organization id
    # -------------------------------------------------------------------------

    def invoice_number(self, lines: Sequence[str]) -> Optional[str]:
        """
        Extract the invoice number.

        The token after an invoice label must be at least four characters
        and contain a digit, so labels like "Fakturadato" are skipped.
        """
        for line in lines:
            for match in self.INVOICE_NUMBER_PATTERN.finditer(line):
                token = match.group(1).strip("-/")
                if len(token) >= 4 and re.search(r"\d", token):
                    return token
        return None

    def organization_id(self, lines: Sequence[str]) -> Optional[str]:
        """
        Extract the nine-digit organization number.

        A labeled candidate is tried first; if it fails validation the
        bare nine-digit search runs over lines without bank details.
        """
        for line in lines:
            match = self.ORG_LABEL_PATTERN.search(line)
            if match:
                org = self.org_validator.normalize(match.group(1))
                if org:
                    return org
                break

        for line in lines:
            if self.bank_noise_pattern and self.bank_noise_pattern.search(line):
                continue
            scrubbed = self.amounts.scrub_dates(line)
            for match in self.BARE_ORG_PATTERN.finditer(scrubbed):
                org = self.org_validator.normalize(match.group(1))
                if org:
                    return org
        return None

    # -------------------------------------------------------------------------
    # Date
    # -------------------------------------------------------------------------

    def date_from_label(self, lines: Sequence[str]) -> Optional[date]:
        for line in lines:
            if self.DUE_DATE_PATTERN.search(line):
                continue
            match = self.DATE_LABEL_PATTERN.search(line)
            if match:
                return self.date_normalizer.parse_day_first(match.group(1))
        return None

    def date_day_first(self, lines: Sequence[str]) -> Optional[date]:
        for line in lines:
            match = re.search(DateNormalizer.DAY_FIRST_PATTERN, line)
            if match:
                return self.date_normalizer.parse_day_first(match.group(0))
        return None

    def date_iso(self, lines: Sequence[str]) -> Optional[date]:
        for line in lines:
            match = re.search(DateNormalizer.ISO_PATTERN, line)
            if match:
                return self.date_normalizer.parse_iso(match.group(0))
        return None

    def date_textual(self, lines: Sequence[str]) -> Optional[date]:
        for line in lines:
            value = self.date_normalizer.find_textual(line)
            if value:
                return value
        return None

    def issue_date(self, lines: Sequence[str]) -> Optional[date]:
        """
        Extract the issue date.

        Each strategy looks at its first candidate only; an invalid
        candidate (e.g. 45.13.2024) makes that strategy fail.
        """
        for strategy in (self.date_from_label, self.date_day_first, self.date_iso, self.date_textual):
            value = strategy(lines)
            if value:
                return value
        return None

    # -------------------------------------------------------------------------
    # Currency
    # -------------------------------------------------------------------------

    def currency(self, text: str) -> str:
        """
        Detect the document currency.

        Example:
            >>> FieldExtractor().currency("Total 100 EUR")
            'EUR'
        """
        if self.currency_code_pattern:
            match = self.currency_code_pattern.search(text)
            if match:
                return match.group(1)
        if self.currency_word_pattern:
            match = self.currency_word_pattern.search(text)
            if match:
                return self.currency_words[match.group(0).lower()]
        return self.default_currency

    # -------------------------------------------------------------------------
    # Activity hints
    # -------------------------------------------------------------------------

    def activity_hints(self, lines: Sequence[str]) -> ActivityHints:
        """
        Find the first kWh, liter and m3 quantities and any stated CO2 mass.

        Args:
            lines: Normalized document lines.

        Returns:
            ActivityHints with the values found.
        """
        found = {}
        for name, patterns in self.HINT_PATTERNS.items():
            found[name] = self._first_quantity(lines, patterns)
        return ActivityHints(**found)

    def _first_quantity(self, lines: Sequence[str], patterns: List) -> Optional[float]:
        for line in lines:
            scrubbed = self.amounts.scrub_dates(line)
            for pattern, scale in patterns:
                match = pattern.search(scrubbed)
                if match:
                    value = self.amounts.parse_number(match.group(1))
                    if value is not None and value > 0:
                        return value * scale
        return None
