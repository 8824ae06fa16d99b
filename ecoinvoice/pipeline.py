"""
Invoice Pipeline Module.

Connects the stages for one document:

    raw text -> InvoiceExtractor (header + classified lines)
             -> EmissionCalculator (enriched lines + document estimate)
             -> InvoiceAnalysis

The pipeline keeps no per-document state, so one instance can process
any number of documents, also from several threads.

Usage:
    from ecoinvoice.pipeline import InvoicePipeline

    pipeline = InvoicePipeline()
    analysis = pipeline.process_text(raw_text)
    print(analysis.to_json())

Author: ML Engineering Team
"""

import json
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ecoinvoice.utils.logger import get_logger
from ecoinvoice.extraction import ActivityHints, EmissionEstimate, EnrichedLine, InvoiceExtractor, ParsedHeader
from ecoinvoice.emissions import EmissionCalculator
from ecoinvoice.ocr_engine import OCREngine

# Initialize module logger
logger = get_logger(__name__)


@dataclass
class InvoiceAnalysis:
    """
    Complete result for one document.

    Attributes:
        header: Extracted header fields.
        lines: Enriched line items.
        emissions: Document-level emission estimate.
        source: Source file or identifier.
        processing_time: Seconds spent in the pipeline.
        timestamp: When the document was processed.
    """
    header: ParsedHeader
    lines: List[EnrichedLine] = field(default_factory=list)
    emissions: EmissionEstimate = field(default_factory=EmissionEstimate)
    source: Optional[str] = None
    processing_time: float = 0.0
    timestamp: Optional[str] = None

    def __post_init__(self):
        """Initialize timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = datetime.now().isoformat()

    @property
    def lines_co2_kg(self) -> Optional[float]:
        """Sum of line emissions, None when no line has a value."""
        values = [line.co2_kg for line in self.lines if line.co2_kg is not None]
        return round(sum(values), 1) if values else None

    @property
    def co2_kg(self) -> Optional[float]:
        """Document CO2: the document estimate, else the line sum."""
        if self.emissions.co2_kg is not None:
            return self.emissions.co2_kg
        return self.lines_co2_kg

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'timestamp': self.timestamp,
            'processing_time': self.processing_time,
            'header': self.header.to_dict(),
            'missing_fields': self.header.missing_fields,
            'lines': [line.to_dict() for line in self.lines],
            'emissions': self.emissions.to_dict(),
            'lines_co2_kg': self.lines_co2_kg,
            'co2_kg': self.co2_kg,
        }

    def to_json(self, indent: int = 2) -> str:
        """
        Convert to JSON string.

        Args:
            indent: JSON indentation level.

        Returns:
            JSON string representation.
        """
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


class InvoicePipeline:
    """
    End-to-end processing of invoice text.

    Example:
        >>> pipeline = InvoicePipeline()
        >>> analysis = pipeline.process_text(
        ...     "Total beløp å betale: kr 12 450,00\\nDiesel 200 liter")
        >>> analysis.lines[0].co2_kg
        536.0
    """

    def __init__(
        self,
        extractor: Optional[InvoiceExtractor] = None,
        calculator: Optional[EmissionCalculator] = None,
        ocr_engine: Optional[OCREngine] = None
    ) -> None:
        self.extractor = extractor or InvoiceExtractor()
        self.calculator = calculator or EmissionCalculator()
        self._ocr_engine = ocr_engine

    @property
    def ocr_engine(self) -> OCREngine:
        """OCR engine, created on first use."""
        if self._ocr_engine is None:
            self._ocr_engine = OCREngine()
        return self._ocr_engine

    def process_text(
        self,
        raw_text: Optional[str],
        hints: Optional[ActivityHints] = None,
        source: Optional[str] = None
    ) -> InvoiceAnalysis:
        """
        Process the OCR text of one document.

        Args:
            raw_text: OCR output.
            hints: Quantities already known upstream; they take precedence
                over quantities found in the text.
            source: Identifier stored on the result.

        Returns:
            InvoiceAnalysis.
        """
        start = time.time()

        extraction = self.extractor.extract(raw_text)
        lines = self.calculator.enrich_all(extraction.lines)
        emissions = self.calculator.estimate_document(
            extraction.header.hints, extraction.text, external_hints=hints
        )

        analysis = InvoiceAnalysis(
            header=extraction.header,
            lines=lines,
            emissions=emissions,
            source=source,
            processing_time=time.time() - start,
        )

        logger.info(
            f"Processed {source or 'document'}: vendor={analysis.header.vendor!r}, "
            f"total={analysis.header.total_amount}, lines={len(lines)}, co2={analysis.co2_kg}"
        )
        return analysis

    def process_file(
        self,
        path: Union[str, Path],
        hints: Optional[ActivityHints] = None
    ) -> InvoiceAnalysis:
        """
        Recognize and process one document file.

        Raises:
            InputError: If the file is missing or unsupported.
            OCRError: If recognition fails.
        """
        result = self.ocr_engine.extract(path)
        return self.process_text(result.text, hints=hints, source=result.source)
