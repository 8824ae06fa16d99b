"""
Extraction Result Data Classes.

This module defines the value objects produced by the extraction and
emission stages. Every field a heuristic may fail to find is Optional:
a missing value is None, never 0 or an empty string.

Author: ML Engineering Team
"""

import json
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from ecoinvoice.emissions.rules import CategoryRule, Unit


@dataclass(frozen=True)
class ActivityHints:
    """
    Activity quantities known for a document before emission estimation.

    Attributes:
        energy_kwh: Electricity consumption.
        fuel_liters: Fuel volume.
        gas_m3: Gas volume.
        co2_kg: CO2 mass stated directly on the document.
    """
    energy_kwh: Optional[float] = None
    fuel_liters: Optional[float] = None
    gas_m3: Optional[float] = None
    co2_kg: Optional[float] = None

    def prefer(self, other: Optional['ActivityHints']) -> 'ActivityHints':
        """
        Combine with another set of hints, letting `other` win per field.

        Example:
            >>> ActivityHints(energy_kwh=10).prefer(ActivityHints(fuel_liters=5))
            ActivityHints(energy_kwh=10, fuel_liters=5, gas_m3=None, co2_kg=None)
        """
        if other is None:
            return self
        return ActivityHints(
            energy_kwh=_first(other.energy_kwh, self.energy_kwh),
            fuel_liters=_first(other.fuel_liters, self.fuel_liters),
            gas_m3=_first(other.gas_m3, self.gas_m3),
            co2_kg=_first(other.co2_kg, self.co2_kg),
        )

    @property
    def is_empty(self) -> bool:
        return all(v is None for v in (self.energy_kwh, self.fuel_liters, self.gas_m3, self.co2_kg))


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


@dataclass(frozen=True)
class ParsedHeader:
    """
    Document-level fields recovered from invoice text.

    Attributes:
        vendor: Seller name.
        invoice_number: Invoice / document number.
        organization_id: Nine-digit organization number.
        issue_date: Invoice date.
        total_amount: Authoritative total, 0 <= value < 10^9.
        currency: ISO currency code (always set; defaults to home currency).
        energy_kwh: First kWh quantity in the text.
        fuel_liters: First liter quantity in the text.
        gas_m3: First cubic-meter quantity in the text.
        co2_kg: CO2 mass stated on the document.
        total_tier: Which resolver tier produced the total (1-4).
    """
    currency: str
    vendor: Optional[str] = None
    invoice_number: Optional[str] = None
    organization_id: Optional[str] = None
    issue_date: Optional[date] = None
    total_amount: Optional[float] = None
    energy_kwh: Optional[float] = None
    fuel_liters: Optional[float] = None
    gas_m3: Optional[float] = None
    co2_kg: Optional[float] = None
    total_tier: Optional[int] = None

    FIELD_NAMES = ('vendor', 'invoice_number', 'organization_id', 'issue_date', 'total_amount')

    @property
    def hints(self) -> ActivityHints:
        """Activity hints recovered from the header."""
        return ActivityHints(
            energy_kwh=self.energy_kwh,
            fuel_liters=self.fuel_liters,
            gas_m3=self.gas_m3,
            co2_kg=self.co2_kg,
        )

    @property
    def missing_fields(self) -> List[str]:
        """
        Get list of header fields that were not extracted.

        Returns:
            List of missing field names.
        """
        return [name for name in self.FIELD_NAMES if getattr(self, name) is None]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vendor': self.vendor,
            'invoice_number': self.invoice_number,
            'organization_id': self.organization_id,
            'issue_date': self.issue_date.isoformat() if self.issue_date else None,
            'total_amount': self.total_amount,
            'currency': self.currency,
            'energy_kwh': self.energy_kwh,
            'fuel_liters': self.fuel_liters,
            'gas_m3': self.gas_m3,
            'co2_kg': self.co2_kg,
            'total_tier': self.total_tier,
        }


@dataclass(frozen=True)
class LineItem:
    """
    One detected purchase line.

    Attributes:
        description: Text before the quantity/unit, or the whole line.
        quantity: Quantity in unit_normalized (raw value if unit unknown).
        unit_raw: Unit token as written.
        unit_normalized: Canonical unit, or None.
        amount: Monetary amount of the line.
    """
    description: str
    quantity: Optional[float] = None
    unit_raw: Optional[str] = None
    unit_normalized: Optional['Unit'] = None
    amount: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'description': self.description,
            'quantity': self.quantity,
            'unit_raw': self.unit_raw,
            'unit_normalized': self.unit_normalized.value if self.unit_normalized else None,
            'amount': self.amount,
        }


@dataclass(frozen=True)
class EnrichedLine(LineItem):
    """
    A line item with its category and computed emissions.

    co2_kg is set only when both a quantity and a matching emission
    factor were available.
    """
    category: Optional[str] = None
    scope: Optional[int] = None
    emission_factor_ref: Optional[str] = None
    co2_kg: Optional[float] = None
    co2_source: Optional[str] = None

    @classmethod
    def from_item(cls, item: LineItem, **extra) -> 'EnrichedLine':
        return cls(
            description=item.description,
            quantity=item.quantity,
            unit_raw=item.unit_raw,
            unit_normalized=item.unit_normalized,
            amount=item.amount,
            **extra
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            'category': self.category,
            'scope': self.scope,
            'emission_factor_ref': self.emission_factor_ref,
            'co2_kg': self.co2_kg,
            'co2_source': self.co2_source,
        })
        return data


@dataclass(frozen=True)
class SegmentedLine:
    """A line item together with the category rule it matched."""
    item: LineItem
    rule: 'CategoryRule'
    raw_line: str = ""


@dataclass(frozen=True)
class EmissionEstimate:
    """
    Document-level emission estimate.

    Attributes:
        co2_kg: Estimated CO2 mass, None when no safe estimate exists.
        method: "direct", "energy_grid", "fuel_volume", "gas_volume" or None.
        energy_kwh: Energy quantity used.
        fuel_liters: Fuel volume used.
        gas_m3: Gas volume used.
        notes: Free-text note about the factor applied.
    """
    co2_kg: Optional[float] = None
    method: Optional[str] = None
    energy_kwh: Optional[float] = None
    fuel_liters: Optional[float] = None
    gas_m3: Optional[float] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'co2_kg': self.co2_kg,
            'method': self.method,
            'energy_kwh': self.energy_kwh,
            'fuel_liters': self.fuel_liters,
            'gas_m3': self.gas_m3,
            'notes': self.notes,
        }


@dataclass(frozen=True)
class ExtractionResult:
    """
    Output of the extraction stage for one document.

    Attributes:
        header: Document-level fields.
        lines: Classified line items in document order.
        text: Normalized document text.
    """
    header: ParsedHeader
    lines: Tuple[SegmentedLine, ...] = field(default_factory=tuple)
    text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'header': self.header.to_dict(),
            'lines': [
                dict(line.item.to_dict(), category=line.rule.category)
                for line in self.lines
            ],
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
