"""
Baseline Aggregation Module.

Builds the consumption baseline a reduction project is measured against.
Enriched lines of the chosen category are preferred; when no such line
carries a quantity, the document totals are used instead.

Documents are any objects exposing `header` (ParsedHeader), `lines`
(EnrichedLine sequence) and `co2_kg` (document CO2 or None), such as
the pipeline's InvoiceAnalysis.

Author: ML Engineering Team
"""

from typing import Any, Optional, Sequence

from ecoinvoice.utils.logger import get_logger
from ecoinvoice.utils.exceptions import InvalidAssumptionError
from .models import BaselineSummary

# Initialize module logger
logger = get_logger(__name__)

SOURCE_LINES = "invoice_lines"
SOURCE_DOCUMENTS = "documents"
SOURCE_NONE = "none"


def _same_vendor(vendor: Optional[str], wanted: Optional[str]) -> bool:
    if not wanted:
        return True
    return (vendor or "").strip().lower() == wanted.strip().lower()


def build_baseline(
    documents: Sequence[Any],
    category: Optional[str] = None,
    months: int = 12,
    vendor: Optional[str] = None,
    unit: Optional[str] = None
) -> BaselineSummary:
    """
    Aggregate a baseline over documents.

    Args:
        documents: Processed documents of the baseline period.
        category: Category tag whose lines are summed.
        months: Length of the baseline period.
        vendor: Only documents of this vendor (case-insensitive).
        unit: Only lines in this canonical unit; defaults to the unit of
            the first matching line.

    Returns:
        BaselineSummary with data_source "invoice_lines", "documents"
        or "none".

    Raises:
        InvalidAssumptionError: If months is not positive.
    """
    if months is None or months <= 0:
        raise InvalidAssumptionError("baseline_months", months, "must be positive")

    in_scope = [doc for doc in documents if _same_vendor(doc.header.vendor, vendor)]
    wanted = category.strip().lower() if category else None

    quantity = 0.0
    spend = 0.0
    co2 = 0.0
    count = 0

    if wanted:
        for doc in in_scope:
            for line in doc.lines:
                if line.category != wanted or line.quantity is None or line.quantity <= 0:
                    continue
                line_unit = line.unit_normalized.value if line.unit_normalized else None
                if unit is None:
                    unit = line_unit
                if line_unit != unit:
                    continue
                quantity += line.quantity
                spend += line.amount or 0.0
                co2 += line.co2_kg or 0.0
                count += 1

    if count:
        logger.debug(f"Baseline for {wanted}: {quantity} {unit} from {count} lines")
        return BaselineSummary(
            category=wanted,
            unit=unit,
            quantity=quantity,
            spend=spend,
            co2_kg=co2,
            months=int(months),
            line_count=count,
            document_count=len(in_scope),
            data_source=SOURCE_LINES,
        )

    spend = sum(doc.header.total_amount for doc in in_scope if doc.header.total_amount is not None)
    co2 = sum(doc.co2_kg for doc in in_scope if doc.co2_kg is not None)
    source = SOURCE_DOCUMENTS if (spend > 0 or co2 > 0) else SOURCE_NONE

    logger.debug(f"Baseline for {wanted} from {source}: spend={spend}, co2={co2}")
    return BaselineSummary(
        category=wanted,
        unit=None,
        quantity=None,
        spend=float(spend),
        co2_kg=float(co2),
        months=int(months),
        line_count=0,
        document_count=len(in_scope),
        data_source=source,
    )
