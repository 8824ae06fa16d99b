"""
Data Validators Module.

This module provides the validity checks that turn a syntactic match
into an accepted value:
    - Calendar date parts
    - Monetary amount plausibility
    - Organization numbers

A rejected candidate is never repaired or clamped: callers fall through
to their next strategy or report the field as absent.

Author: ML Engineering Team
"""

import re
from typing import Optional, Tuple

from config import get_config
from ecoinvoice.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


class DateValidator:
    """
    Validates day/month/year parts before a calendar date is built.

    Example:
        >>> validator = DateValidator()
        >>> validator.validate(45, 13, 2024)
        (False, 'Day 45 out of range')
        >>> validator.is_valid(15, 3, 2024)
        True
    """

    # Reasonable year range for invoices
    MIN_YEAR = 1900
    MAX_YEAR = 2100

    def is_valid(self, day: int, month: int, year: int) -> bool:
        """Check if the date parts are in range."""
        valid, _ = self.validate(day, month, year)
        return valid

    def validate(self, day: int, month: int, year: int) -> Tuple[bool, str]:
        """
        Validate date parts with detailed feedback.

        Args:
            day: Day of month.
            month: Month number.
            year: Four-digit year.

        Returns:
            Tuple of (is_valid, message).
        """
        if not 1 <= day <= 31:
            return False, f"Day {day} out of range"
        if not 1 <= month <= 12:
            return False, f"Month {month} out of range"
        if not self.MIN_YEAR <= year <= self.MAX_YEAR:
            return False, f"Year {year} out of range"
        return True, "Valid date"


class AmountValidator:
    """
    Validates monetary amounts.

    An amount read from OCR text is plausible when it is positive and
    below the configured ceiling; larger values are almost always
    account or reference numbers misread as money.

    Example:
        >>> validator = AmountValidator()
        >>> validator.is_plausible(12450.0)
        True
        >>> validator.validate(12345678901.0)
        (False, 'Amount 12345678901.0 exceeds maximum')
    """

    def __init__(self, max_amount: Optional[float] = None) -> None:
        """
        Initialize the amount validator.

        Args:
            max_amount: Exclusive upper bound. Defaults to configuration.
        """
        if max_amount is None:
            max_amount = get_config("extraction.total.max_amount", 1_000_000_000)
        self.max_amount = float(max_amount)

    def is_plausible(self, value: Optional[float]) -> bool:
        """Check if value is a plausible invoice amount."""
        valid, _ = self.validate(value)
        return valid

    def validate(self, value: Optional[float]) -> Tuple[bool, str]:
        """
        Validate an amount with detailed feedback.

        Args:
            value: Parsed amount.

        Returns:
            Tuple of (is_valid, message).
        """
        if value is None:
            return False, "Amount is empty"
        if value <= 0:
            return False, "Amount must be positive"
        if value >= self.max_amount:
            return False, f"Amount {value} exceeds maximum"
        return True, "Valid amount"


class OrgNumberValidator:
    """
    Validates organization numbers (nine digits, internal spaces allowed).

    Example:
        >>> OrgNumberValidator().normalize("987 654 321")
        '987654321'
        >>> OrgNumberValidator().normalize("98765432") is None
        True
    """

    LENGTH = 9

    def normalize(self, candidate: Optional[str]) -> Optional[str]:
        """
        Return the digit-only organization number, or None if invalid.

        Args:
            candidate: Raw matched text.
        """
        if not candidate:
            return None
        digits = re.sub(r"\s", "", candidate)
        if re.fullmatch(r"[0-9]{%d}" % self.LENGTH, digits):
            return digits
        logger.debug(f"Rejected organization number candidate: '{candidate}'")
        return None

    def is_valid(self, candidate: Optional[str]) -> bool:
        """Check if candidate is a valid organization number."""
        return self.normalize(candidate) is not None
