"""
Post-Processing Module for the Invoice Emissions System.

This module provides functionality for:
    - Raw OCR text canonicalization
    - Locale-ambiguous number parsing
    - Date normalization and validation
    - Amount and organization number validation

Author: ML Engineering Team
"""

from .normalizers import (
    TextNormalizer,
    AmountNormalizer,
    DateNormalizer,
    NormalizedText,
    NumericToken,
    normalize_text,
    parse_number,
    numeric_tokens,
)
from .validators import DateValidator, AmountValidator, OrgNumberValidator

__all__ = [
    'TextNormalizer',
    'AmountNormalizer',
    'DateNormalizer',
    'NormalizedText',
    'NumericToken',
    'normalize_text',
    'parse_number',
    'numeric_tokens',
    'DateValidator',
    'AmountValidator',
    'OrgNumberValidator'
]
