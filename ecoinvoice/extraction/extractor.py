"""
Invoice Extractor Module.

This module provides the InvoiceExtractor class that turns raw OCR text
into a ParsedHeader and a list of classified line items. Header fields,
the total and the line items are resolved independently of each other.

Usage:
    from ecoinvoice.extraction import InvoiceExtractor

    extractor = InvoiceExtractor()
    result = extractor.extract(raw_text)
    print(result.header.total_amount)

Author: ML Engineering Team
"""

from typing import Optional

from ecoinvoice.utils.logger import get_logger
from ecoinvoice.postprocessor.normalizers import NormalizedText, TextNormalizer
from .extraction_result import ExtractionResult, ParsedHeader
from .field_extractor import FieldExtractor
from .line_segmenter import LineSegmenter
from .total_resolver import TotalResolver

# Initialize module logger
logger = get_logger(__name__)


class InvoiceExtractor:
    """
    Header and line-item extraction for one document.

    Attributes:
        normalizer: Text canonicalization.
        fields: Header field strategies.
        totals: Total-amount tiers.
        segmenter: Line-item detection and classification.

    Example:
        >>> extractor = InvoiceExtractor()
        >>> result = extractor.extract("Total beløp å betale: kr 12 450,00\\nDiesel 200 liter")
        >>> result.header.total_amount
        12450.0
        >>> [line.rule.category for line in result.lines]
        ['fuel_diesel']
    """

    def __init__(
        self,
        field_extractor: Optional[FieldExtractor] = None,
        total_resolver: Optional[TotalResolver] = None,
        segmenter: Optional[LineSegmenter] = None,
        normalizer: Optional[TextNormalizer] = None
    ) -> None:
        self.normalizer = normalizer or TextNormalizer()
        self.fields = field_extractor or FieldExtractor()
        self.totals = total_resolver or TotalResolver()
        self.segmenter = segmenter or LineSegmenter()

    def parse_header(self, normalized: NormalizedText) -> ParsedHeader:
        """
        Extract header fields from normalized text.

        Args:
            normalized: Output of the text normalizer.

        Returns:
            ParsedHeader with absent fields set to None.
        """
        lines = normalized.lines
        total, tier = self.totals.resolve(lines)
        hints = self.fields.activity_hints(lines)

        header = ParsedHeader(
            currency=self.fields.currency(normalized.text),
            vendor=self.fields.vendor(lines),
            invoice_number=self.fields.invoice_number(lines),
            organization_id=self.fields.organization_id(lines),
            issue_date=self.fields.issue_date(lines),
            total_amount=total,
            energy_kwh=hints.energy_kwh,
            fuel_liters=hints.fuel_liters,
            gas_m3=hints.gas_m3,
            co2_kg=hints.co2_kg,
            total_tier=tier,
        )

        if header.missing_fields:
            logger.debug(f"Header fields not found: {', '.join(header.missing_fields)}")
        return header

    def extract(self, raw_text: Optional[str]) -> ExtractionResult:
        """
        Extract header and line items from raw OCR text.

        Args:
            raw_text: OCR output for one document.

        Returns:
            ExtractionResult.
        """
        normalized = self.normalizer.normalize(raw_text)
        header = self.parse_header(normalized)
        lines = self.segmenter.segment(normalized.lines)

        logger.debug(
            f"Extracted header (vendor={header.vendor!r}, total={header.total_amount}) "
            f"and {len(lines)} line items"
        )
        return ExtractionResult(header=header, lines=tuple(lines), text=normalized.text)
