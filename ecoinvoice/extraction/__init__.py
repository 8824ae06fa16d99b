"""
Extraction Module for the Invoice Emissions System.

This module turns normalized OCR text into structured invoice data:
    - Header fields (vendor, invoice number, organization id, date, currency)
    - Four-tier total amount resolution
    - Line-item segmentation and classification

Author: ML Engineering Team
"""

from .extraction_result import (
    ActivityHints,
    ParsedHeader,
    LineItem,
    EnrichedLine,
    SegmentedLine,
    EmissionEstimate,
    ExtractionResult,
)
from .field_extractor import FieldExtractor
from .total_resolver import TotalResolver
from .line_segmenter import LineSegmenter
from .extractor import InvoiceExtractor

__all__ = [
    'ActivityHints',
    'ParsedHeader',
    'LineItem',
    'EnrichedLine',
    'SegmentedLine',
    'EmissionEstimate',
    'ExtractionResult',
    'FieldExtractor',
    'TotalResolver',
    'LineSegmenter',
    'InvoiceExtractor'
]
