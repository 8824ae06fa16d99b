"""
Total-Amount Resolver Module.

Finds the authoritative invoice total with a strict four-tier chain.
A tier runs only when every earlier tier found nothing:

    1. Strong label ("Total", "Beløp å betale", "Amount due") on the line
    2. Strong label alone on a line, amount on the next line
    3. Lines with a currency marker, excluding tax lines
    4. Every line, excluding bank, ID and phone lines

Within a tier the largest plausible value wins. Every tier ignores bank
detail lines, percentages and numbers with too many digits to be money
(account, KID and phone numbers). Each tier is a separate method so it
can be tested on its own.

Author: ML Engineering Team
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from config import get_config
from ecoinvoice.utils.logger import get_logger
from ecoinvoice.postprocessor.normalizers import AmountNormalizer
from ecoinvoice.postprocessor.validators import AmountValidator
from .field_extractor import compile_any

# Initialize module logger
logger = get_logger(__name__)


class TotalResolver:
    """
    Four-tier total amount resolution.

    Example:
        >>> resolver = TotalResolver()
        >>> resolver.resolve(["Diesel 200 liter", "Total beløp å betale: kr 12 450,00"])
        (12450.0, 1)
        >>> resolver.resolve(["Konto 1234 56 78901"])
        (None, None)
    """

    def __init__(
        self,
        strong_labels: Optional[Sequence[str]] = None,
        tax_patterns: Optional[Sequence[str]] = None,
        bank_noise_patterns: Optional[Sequence[str]] = None,
        id_noise_patterns: Optional[Sequence[str]] = None,
        currency_markers: Optional[Sequence[str]] = None,
        max_token_digits: Optional[int] = None,
        amount_validator: Optional[AmountValidator] = None
    ) -> None:
        """
        Initialize the resolver.

        Args:
            strong_labels: Regexes for labels that introduce the total.
            tax_patterns: Regexes marking tax/VAT lines (skipped in tier 3).
            bank_noise_patterns: Regexes for bank detail lines (always skipped).
            id_noise_patterns: Regexes for ID/phone lines (skipped in tier 4).
            currency_markers: Regexes for currency markers (tier 3).
            max_token_digits: Tokens with this many digits or more are ignored.
            amount_validator: Plausibility check for values.
        """
        def cfg(key, value):
            return value if value is not None else get_config(f"extraction.total.{key}", [])

        self.strong_pattern = compile_any(cfg("strong_labels", strong_labels))
        self.tax_pattern = compile_any(cfg("tax_patterns", tax_patterns))
        self.bank_noise_pattern = compile_any(cfg("bank_noise_patterns", bank_noise_patterns))
        self.id_noise_pattern = compile_any(cfg("id_noise_patterns", id_noise_patterns))
        self.currency_pattern = compile_any(cfg("currency_markers", currency_markers))

        if max_token_digits is None:
            max_token_digits = get_config("extraction.total.max_token_digits", 11)
        self.max_token_digits = int(max_token_digits)

        self.validator = amount_validator or AmountValidator()
        self.amounts = AmountNormalizer()

    @staticmethod
    def _matches(pattern, line: str) -> bool:
        return bool(pattern and pattern.search(line))

    def is_bank_noise(self, line: str) -> bool:
        return self._matches(self.bank_noise_pattern, line)

    def candidates(self, line: str) -> List[float]:
        """
        Plausible money values on a line.

        Args:
            line: One normalized line.

        Returns:
            Values that are not percentages, not too long and plausible.
        """
        values = []
        for token in self.amounts.tokens(line):
            if token.is_percentage or token.digits >= self.max_token_digits:
                continue
            if self.validator.is_plausible(token.value):
                values.append(token.value)
        return values

    @staticmethod
    def _largest(values: Iterable[float]) -> Optional[float]:
        values = list(values)
        return max(values) if values else None

    def tier_strong_label(self, lines: Sequence[str]) -> Optional[float]:
        """Tier 1: amounts on the same line as a strong label."""
        values = []
        for line in lines:
            if self._matches(self.strong_pattern, line) and not self.is_bank_noise(line):
                values.extend(self.candidates(line))
        return self._largest(values)

    def tier_label_next_line(self, lines: Sequence[str]) -> Optional[float]:
        """Tier 2: a strong label without amount, amount on the next line."""
        values = []
        for index, line in enumerate(lines[:-1]):
            if not self._matches(self.strong_pattern, line) or self.is_bank_noise(line):
                continue
            if self.candidates(line):
                continue
            following = lines[index + 1]
            if not self.is_bank_noise(following):
                values.extend(self.candidates(following))
        return self._largest(values)

    def tier_currency_marker(self, lines: Sequence[str]) -> Optional[float]:
        """Tier 3: lines with a currency marker, tax lines excluded."""
        values = []
        for line in lines:
            if not self._matches(self.currency_pattern, line):
                continue
            if self._matches(self.tax_pattern, line) or self.is_bank_noise(line):
                continue
            values.extend(self.candidates(line))
        return self._largest(values)

    def tier_full_scan(self, lines: Sequence[str]) -> Optional[float]:
        """Tier 4: every line except bank, ID and phone lines."""
        values = []
        for line in lines:
            if self.is_bank_noise(line) or self._matches(self.id_noise_pattern, line):
                continue
            values.extend(self.candidates(line))
        return self._largest(values)

    def resolve(self, lines: Sequence[str]) -> Tuple[Optional[float], Optional[int]]:
        """
        Run the tiers in order.

        Args:
            lines: Normalized document lines.

        Returns:
            Tuple of (total rounded to 2 decimals, tier number), or
            (None, None) when every tier fails.
        """
        tiers = (
            self.tier_strong_label,
            self.tier_label_next_line,
            self.tier_currency_marker,
            self.tier_full_scan,
        )
        for number, tier in enumerate(tiers, start=1):
            value = tier(lines)
            if value is not None:
                logger.debug(f"Total {value} resolved by tier {number}")
                return round(value, 2), number

        logger.debug("No total amount found")
        return None, None
