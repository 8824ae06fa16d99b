"""
Unit Normalizer & Converter Module.

Maps raw unit tokens ("stk", "Ltr", "m³") onto the canonical unit set and
converts quantities between units. Conversions that have no defined rule
return None instead of a guessed value.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from config import get_config
from ecoinvoice.utils.logger import get_logger
from .rules import Unit, UnitTable

# Initialize module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class NormalizedQuantity:
    """
    A quantity after unit normalization.

    Attributes:
        quantity: Quantity in `unit` (or the raw quantity if unit is None).
        unit: Canonical unit, or None when the raw token is unknown.
        raw_unit: Unit token as written.
    """
    quantity: Optional[float]
    unit: Optional[Unit]
    raw_unit: Optional[str]


class UnitConverter:
    """
    Normalizes unit tokens and converts quantities.

    Example:
        >>> converter = UnitConverter()
        >>> converter.normalize("g", 2500).quantity
        2.5
        >>> converter.convert(4, Unit.PIECE, Unit.KILOGRAM, "packaged_goods")
        10.0
        >>> converter.convert(4, Unit.PIECE, Unit.KILOGRAM, "office") is None
        True
    """

    def __init__(
        self,
        unit_table: Optional[UnitTable] = None,
        piece_mass_kg: Optional[float] = None,
        piece_mass_categories: Optional[Iterable[str]] = None
    ) -> None:
        """
        Initialize the converter.

        Args:
            unit_table: Unit alias table. Defaults to the configured table.
            piece_mass_kg: Assumed mass of one piece, used for
                piece -> kilogram conversion.
            piece_mass_categories: Categories where that conversion applies.
        """
        self.unit_table = unit_table or UnitTable.default()

        if piece_mass_kg is None:
            piece_mass_kg = get_config("units.piece_mass_kg", 2.5)
        if piece_mass_categories is None:
            piece_mass_categories = get_config("units.piece_mass_categories", [])

        self.piece_mass_kg = float(piece_mass_kg)
        self.piece_mass_categories = frozenset(c.lower() for c in piece_mass_categories)

    def normalize(self, raw_unit: Optional[str], quantity: Optional[float]) -> NormalizedQuantity:
        """
        Map a raw token to a canonical unit, scaling the quantity.

        Unknown tokens pass the quantity through unchanged with unit None.

        Args:
            raw_unit: Unit token as written on the invoice.
            quantity: Parsed quantity.
        """
        entry = self.unit_table.lookup(raw_unit)
        if entry is None:
            if raw_unit:
                logger.debug(f"Unknown unit token '{raw_unit}'")
            return NormalizedQuantity(quantity=quantity, unit=None, raw_unit=raw_unit)

        unit, scale = entry
        if quantity is not None and scale != 1.0:
            quantity = quantity * scale
        return NormalizedQuantity(quantity=quantity, unit=unit, raw_unit=raw_unit)

    def convert(
        self,
        quantity: Optional[float],
        from_unit: Optional[Unit],
        to_unit: Unit,
        category: Optional[str] = None
    ) -> Optional[float]:
        """
        Convert a normalized quantity into another canonical unit.

        Args:
            quantity: Quantity in from_unit.
            from_unit: Source unit.
            to_unit: Target unit.
            category: Category of the line (gates piece -> kilogram).

        Returns:
            Converted quantity, or None when no rule applies.
        """
        if quantity is None or from_unit is None:
            return None
        if from_unit == to_unit:
            return quantity

        if (
            from_unit == Unit.PIECE
            and to_unit == Unit.KILOGRAM
            and category is not None
            and category.lower() in self.piece_mass_categories
        ):
            return quantity * self.piece_mass_kg

        logger.debug(f"No conversion from {from_unit.value} to {to_unit.value} for {category}")
        return None
