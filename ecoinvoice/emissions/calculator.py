"""
Emission Calculator Module.

Turns activity quantities into CO2-equivalent masses. Methods are tried
in a fixed priority order and the first applicable one wins:

    1. direct        CO2 mass already stated upstream
    2. energy_grid   kWh x grid factor
    3. fuel_volume   liters x diesel or petrol factor
    4. gas_volume    m3 x natural gas factor
    5. category_factor  quantity in the factor's unit x category factor

The calculator never assumes a quantity of 1 and never reports "no data"
as 0: when nothing applies the CO2 value is None.

Author: ML Engineering Team
"""

import re
from typing import Iterable, List, Optional, Sequence

from config import get_config
from ecoinvoice.utils.logger import get_logger
from ecoinvoice.utils.helpers import round_or_none
from ecoinvoice.extraction.extraction_result import (
    ActivityHints,
    EmissionEstimate,
    EnrichedLine,
    SegmentedLine,
)
from .rules import CategoryRule, Unit
from .units import UnitConverter

# Initialize module logger
logger = get_logger(__name__)

DIESEL_PATTERN = re.compile(r"diesel", re.IGNORECASE)


class EmissionCalculator:
    """
    CO2 estimation for documents and line items.

    Example:
        >>> calculator = EmissionCalculator()
        >>> calculator.estimate(ActivityHints(energy_kwh=1000)).co2_kg
        170.0
        >>> calculator.estimate(ActivityHints(fuel_liters=100), "Diesel").method
        'fuel_volume'
    """

    METHOD_DIRECT = "direct"
    METHOD_ENERGY = "energy_grid"
    METHOD_FUEL = "fuel_volume"
    METHOD_GAS = "gas_volume"
    METHOD_CATEGORY = "category_factor"
    METHOD_ASSUMED_UNIT = "category_factor_assumed_unit"

    def __init__(
        self,
        converter: Optional[UnitConverter] = None,
        grid_kg_per_kwh: Optional[float] = None,
        diesel_kg_per_liter: Optional[float] = None,
        petrol_kg_per_liter: Optional[float] = None,
        natural_gas_kg_per_m3: Optional[float] = None,
        energy_categories: Optional[Iterable[str]] = None,
        fuel_categories: Optional[Iterable[str]] = None,
        gas_categories: Optional[Iterable[str]] = None,
        assume_factor_unit: Optional[bool] = None,
        line_decimals: Optional[int] = None,
        document_decimals: Optional[int] = None
    ) -> None:
        """
        Initialize the calculator.

        Args:
            converter: Unit converter for the category-factor method.
            grid_kg_per_kwh: Grid electricity factor.
            diesel_kg_per_liter: Diesel factor.
            petrol_kg_per_liter: Petrol (generic fuel) factor.
            natural_gas_kg_per_m3: Natural gas factor.
            energy_categories: Categories whose kWh lines use the grid factor.
            fuel_categories: Categories whose liter lines use fuel factors.
            gas_categories: Categories whose m3 lines use the gas factor.
            assume_factor_unit: Treat an unknown unit as the factor's unit.
            line_decimals: Rounding for line masses.
            document_decimals: Rounding for document masses.
        """
        def cfg(key, value, default):
            return value if value is not None else get_config(f"emissions.{key}", default)

        self.converter = converter or UnitConverter()
        self.grid_factor = float(cfg("grid_kg_per_kwh", grid_kg_per_kwh, 0.17))
        self.diesel_factor = float(cfg("diesel_kg_per_liter", diesel_kg_per_liter, 2.68))
        self.petrol_factor = float(cfg("petrol_kg_per_liter", petrol_kg_per_liter, 2.31))
        self.gas_factor = float(cfg("natural_gas_kg_per_m3", natural_gas_kg_per_m3, 2.0))

        self.energy_categories = frozenset(cfg("energy_categories", energy_categories, ["electricity"]))
        self.fuel_categories = frozenset(cfg("fuel_categories", fuel_categories, []))
        self.gas_categories = frozenset(cfg("gas_categories", gas_categories, []))

        self.assume_factor_unit = bool(cfg("assume_factor_unit_when_unknown", assume_factor_unit, True))
        self.line_decimals = int(cfg("line_decimals", line_decimals, 1))
        self.document_decimals = int(cfg("document_decimals", document_decimals, 2))

        logger.debug(
            f"EmissionCalculator initialized (grid={self.grid_factor}, "
            f"diesel={self.diesel_factor}, petrol={self.petrol_factor}, gas={self.gas_factor})"
        )

    @staticmethod
    def _positive(value: Optional[float]) -> bool:
        return value is not None and value > 0

    def estimate(
        self,
        hints: ActivityHints,
        context_text: str = "",
        decimals: Optional[int] = None
    ) -> EmissionEstimate:
        """
        Estimate CO2 from activity hints.

        Args:
            hints: Known quantities (stated CO2, kWh, liters, m3).
            context_text: Surrounding text; "diesel" selects the diesel factor.
            decimals: Rounding; defaults to document rounding.

        Returns:
            EmissionEstimate with co2_kg None when no method applies.
        """
        if decimals is None:
            decimals = self.document_decimals

        if self._positive(hints.co2_kg):
            return EmissionEstimate(
                co2_kg=round(hints.co2_kg, decimals),
                method=self.METHOD_DIRECT,
            )

        if self._positive(hints.energy_kwh):
            return EmissionEstimate(
                co2_kg=round(hints.energy_kwh * self.grid_factor, decimals),
                method=self.METHOD_ENERGY,
                energy_kwh=round(hints.energy_kwh, decimals),
                notes=f"grid factor {self.grid_factor} kg/kWh",
            )

        if self._positive(hints.fuel_liters):
            is_diesel = bool(DIESEL_PATTERN.search(context_text or ""))
            factor = self.diesel_factor if is_diesel else self.petrol_factor
            return EmissionEstimate(
                co2_kg=round(hints.fuel_liters * factor, decimals),
                method=self.METHOD_FUEL,
                fuel_liters=round(hints.fuel_liters, decimals),
                notes=f"{'diesel' if is_diesel else 'petrol'} factor {factor} kg/l",
            )

        if self._positive(hints.gas_m3):
            return EmissionEstimate(
                co2_kg=round(hints.gas_m3 * self.gas_factor, decimals),
                method=self.METHOD_GAS,
                gas_m3=round(hints.gas_m3, decimals),
                notes=f"natural gas factor {self.gas_factor} kg/m3",
            )

        return EmissionEstimate()

    def estimate_document(
        self,
        header_hints: ActivityHints,
        text: str = "",
        external_hints: Optional[ActivityHints] = None
    ) -> EmissionEstimate:
        """
        Estimate document emissions, preferring externally supplied hints.

        Args:
            header_hints: Hints recovered from the document text.
            text: Normalized document text.
            external_hints: Quantities known upstream; they win per field.
        """
        hints = header_hints.prefer(external_hints)
        result = self.estimate(hints, text, self.document_decimals)
        logger.debug(f"Document emissions: {result.co2_kg} kg via {result.method}")
        return result

    def line_hints(self, line: SegmentedLine) -> ActivityHints:
        """
        Activity hints implied by a line's category and unit.

        A kWh quantity on an electricity line becomes an energy hint, a
        liter quantity on a fuel line a fuel hint, and so on.
        """
        item = line.item
        category = line.rule.category
        if item.quantity is None or item.unit_normalized is None:
            return ActivityHints()

        if item.unit_normalized == Unit.KILOWATT_HOUR and category in self.energy_categories:
            return ActivityHints(energy_kwh=item.quantity)
        if item.unit_normalized == Unit.LITER and category in self.fuel_categories:
            return ActivityHints(fuel_liters=item.quantity)
        if item.unit_normalized == Unit.CUBIC_METER and category in self.gas_categories:
            return ActivityHints(gas_m3=item.quantity)
        return ActivityHints()

    def enrich(
        self,
        line: SegmentedLine,
        stated_co2_kg: Optional[float] = None
    ) -> EnrichedLine:
        """
        Compute emissions for one classified line.

        Args:
            line: Segmented line with its category rule.
            stated_co2_kg: CO2 already known for this line.

        Returns:
            EnrichedLine; co2_kg is None when quantity or factor is missing
            or the quantity cannot be converted into the factor's unit.
        """
        rule: CategoryRule = line.rule
        item = line.item
        factor = rule.factor

        hints = self.line_hints(line)
        if stated_co2_kg is not None:
            hints = hints.prefer(ActivityHints(co2_kg=stated_co2_kg))

        co2 = None
        source = None
        estimate = self.estimate(hints, line.raw_line or item.description, self.line_decimals)
        if estimate.co2_kg is not None:
            co2, source = estimate.co2_kg, estimate.method
        elif factor is not None and item.quantity is not None:
            quantity = None
            if item.unit_normalized is not None:
                quantity = self.converter.convert(item.quantity, item.unit_normalized, factor.unit, rule.category)
                source = self.METHOD_CATEGORY
            elif self.assume_factor_unit:
                quantity = item.quantity
                source = self.METHOD_ASSUMED_UNIT
                logger.debug(f"Assuming '{item.unit_raw}' is {factor.unit.value} for '{item.description}'")

            if quantity is None:
                source = None
                logger.debug(
                    f"Cannot convert {item.unit_normalized} to {factor.unit.value} "
                    f"for '{item.description}'"
                )
            else:
                co2 = round(quantity * factor.co2_per_unit_kg, self.line_decimals)

        return EnrichedLine.from_item(
            item,
            category=rule.category,
            scope=rule.scope,
            emission_factor_ref=factor.id if factor else None,
            co2_kg=co2,
            co2_source=source,
        )

    def enrich_all(self, lines: Sequence[SegmentedLine]) -> List[EnrichedLine]:
        """Enrich every line, keeping order."""
        return [self.enrich(line) for line in lines]

    def total_co2(self, lines: Sequence[EnrichedLine]) -> Optional[float]:
        """
        Sum line emissions, or None when no line has a value.

        Example:
            >>> EmissionCalculator().total_co2([]) is None
            True
        """
        values = [line.co2_kg for line in lines if line.co2_kg is not None]
        if not values:
            return None
        return round_or_none(sum(values), self.line_decimals)
