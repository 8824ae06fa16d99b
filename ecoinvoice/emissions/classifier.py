"""
Line-Item Classifier Module.

Maps a line description to an emission category using the ordered
keyword rules of a RuleTable. The first rule with a matching keyword
wins, so a line never belongs to more than one category.

Author: ML Engineering Team
"""

from typing import Optional

from ecoinvoice.utils.logger import get_logger
from .rules import CategoryRule, RuleTable

# Initialize module logger
logger = get_logger(__name__)


class Classifier:
    """
    Keyword-based category classifier.

    Example:
        >>> classifier = Classifier()
        >>> classifier.classify("Diesel 200 liter").category
        'fuel_diesel'
        >>> classifier.classify("Frakt og håndtering").scope
        3
    """

    def __init__(self, rule_table: Optional[RuleTable] = None) -> None:
        """
        Initialize the classifier.

        Args:
            rule_table: Category rules. Defaults to the configured table.
        """
        self.rule_table = rule_table or RuleTable.default()

    def classify(self, text: str) -> Optional[CategoryRule]:
        """
        Find the first rule whose keywords occur in text.

        Args:
            text: Line description or full line.

        Returns:
            Matching CategoryRule, or None.
        """
        if not text:
            return None

        for rule in self.rule_table:
            if rule.matches(text):
                logger.debug(f"Classified '{text}' as {rule.category}")
                return rule

        return None

    def category_of(self, text: str) -> Optional[str]:
        """Return only the category tag of the first matching rule."""
        rule = self.classify(text)
        return rule.category if rule else None

    def scope_for(self, category: Optional[str]) -> Optional[int]:
        """Return the ESG scope of a category tag."""
        rule = self.rule_table.get(category)
        return rule.scope if rule else None
