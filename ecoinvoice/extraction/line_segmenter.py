"""
Line-Item Segmenter Module.

Splits normalized document lines into candidate purchase lines, keeps
those that match a category rule, and pulls quantity, unit, description
and amount out of each.

Author: ML Engineering Team
"""

import re
from typing import List, Optional, Sequence

from config import get_config
from ecoinvoice.utils.logger import get_logger
from ecoinvoice.postprocessor.normalizers import AmountNormalizer
from ecoinvoice.postprocessor.validators import AmountValidator
from ecoinvoice.emissions.classifier import Classifier
from ecoinvoice.emissions.units import UnitConverter
from .extraction_result import LineItem, SegmentedLine
from .field_extractor import compile_any

# Initialize module logger
logger = get_logger(__name__)

CO2_STATEMENT = re.compile(
    AmountNormalizer.NUMBER_PATTERN + r"\s*(?:kg|t|tonn)\s*co2\w*",
    re.IGNORECASE
)


class LineSegmenter:
    """
    Detects and parses line items.

    A line becomes an item when it is long enough, is not a header, total
    or organization-number line, and matches a category keyword. The first
    "<number> <unit>" on the line gives quantity and unit; the text before
    it is the description.

    Example:
        >>> segmenter = LineSegmenter()
        >>> line = segmenter.segment(["Diesel 200 liter"])[0]
        >>> line.rule.category, line.item.quantity, line.item.unit_normalized.value
        ('fuel_diesel', 200.0, 'liter')
    """

    def __init__(
        self,
        classifier: Optional[Classifier] = None,
        converter: Optional[UnitConverter] = None,
        min_line_length: Optional[int] = None,
        non_item_patterns: Optional[Sequence[str]] = None
    ) -> None:
        """
        Initialize the segmenter.

        Args:
            classifier: Category classifier. Defaults to the configured rules.
            converter: Unit normalizer. Defaults to the configured unit table.
            min_line_length: Shorter lines are discarded.
            non_item_patterns: Regexes for lines that are never items.
        """
        self.classifier = classifier or Classifier()
        self.converter = converter or UnitConverter()

        if min_line_length is None:
            min_line_length = get_config("extraction.min_line_length", 3)
        if non_item_patterns is None:
            non_item_patterns = get_config("extraction.line_items.non_item_patterns", [])

        self.min_line_length = int(min_line_length)
        self.non_item_pattern = compile_any(non_item_patterns)
        self.quantity_pattern = re.compile(
            r"(?P<qty>" + AmountNormalizer.NUMBER_PATTERN + r")\s*"
            r"(?P<unit>" + self.converter.unit_table.token_pattern + r")",
            re.IGNORECASE
        )

        self.amounts = AmountNormalizer()
        self.amount_validator = AmountValidator()

    def is_candidate(self, line: str) -> bool:
        """Check length and non-item patterns."""
        if len(line) < self.min_line_length:
            return False
        return not (self.non_item_pattern and self.non_item_pattern.search(line))

    def last_amount(self, text: str) -> Optional[float]:
        """Last plausible money token in text, ignoring CO2 statements."""
        text = CO2_STATEMENT.sub(" ", text)
        for token in reversed(self.amounts.tokens(text)):
            if not token.is_percentage and self.amount_validator.is_plausible(token.value):
                return token.value
        return None

    def parse_line(self, line: str) -> LineItem:
        """
        Parse one line into a LineItem.

        Args:
            line: A candidate line.

        Returns:
            LineItem; description falls back to the whole line.
        """
        scrubbed = self.amounts.scrub_dates(line)
        match = self.quantity_pattern.search(scrubbed)
        if match is None:
            return LineItem(description=line, amount=self.last_amount(line))

        description = line[:match.start()].strip(" \t:-–") or line
        quantity = self.amounts.parse_number(match.group("qty"))
        unit_raw = match.group("unit")
        normalized = self.converter.normalize(unit_raw, quantity)

        return LineItem(
            description=description,
            quantity=normalized.quantity,
            unit_raw=unit_raw,
            unit_normalized=normalized.unit,
            amount=self.last_amount(line[match.end():]),
        )

    def segment(self, lines: Sequence[str]) -> List[SegmentedLine]:
        """
        Detect, classify and parse line items.

        Args:
            lines: Normalized document lines.

        Returns:
            SegmentedLine list in document order.
        """
        found = []
        for line in lines:
            if not self.is_candidate(line):
                continue
            rule = self.classifier.classify(line)
            if rule is None:
                continue
            found.append(SegmentedLine(item=self.parse_line(line), rule=rule, raw_line=line))

        logger.debug(f"Segmented {len(found)} line items from {len(lines)} lines")
        return found
