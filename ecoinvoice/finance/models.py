"""
Finance Data Classes.

Inputs and outputs of the financial metrics engine. Inputs are immutable
per calculation; outputs are recomputed on every call and never stored
by the engine.

Author: ML Engineering Team
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Tuple

from ecoinvoice.utils.exceptions import InvalidAssumptionError


def _require_non_negative(name: str, value: Optional[float]) -> None:
    if value is not None and value < 0:
        raise InvalidAssumptionError(name, value, "must not be negative")


def _require_fraction(name: str, value: Optional[float]) -> None:
    if value is not None and not 0 <= value <= 1:
        raise InvalidAssumptionError(name, value, "must be within [0, 1]")


@dataclass(frozen=True)
class IRRResult:
    """
    Outcome of the IRR root search.

    Attributes:
        rate: Last estimate, None when the cash flows have no sign change.
        converged: True when the Newton step fell below the tolerance.
        iterations: Iterations performed.
    """
    rate: Optional[float]
    converged: bool
    iterations: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AmortizationRow:
    """One year of an annuity loan."""
    year: int
    opening: float
    interest: float
    principal_paid: float
    payment: float
    closing: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DSCRRow:
    """Debt-service coverage for one loan year."""
    year: int
    dscr: Optional[float]
    debt_service: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BaselineSummary:
    """
    Aggregated baseline for one category over a period.

    Attributes:
        category: Category tag the baseline was built for.
        unit: Unit of `quantity` (canonical unit value), if known.
        quantity: Summed quantity, None without matching lines.
        spend: Summed spend in the period.
        co2_kg: Summed CO2 in the period.
        months: Length of the period.
        line_count: Lines that contributed.
        document_count: Documents in scope.
        data_source: "invoice_lines", "documents" or "none".
    """
    category: Optional[str]
    unit: Optional[str]
    quantity: Optional[float]
    spend: float
    co2_kg: float
    months: int
    line_count: int
    document_count: int
    data_source: str

    @property
    def scale(self) -> float:
        """Factor turning period values into annual values."""
        return 12.0 / self.months

    @property
    def annual_spend(self) -> float:
        return self.spend * self.scale

    @property
    def annual_co2_kg(self) -> float:
        return self.co2_kg * self.scale

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['annual_spend'] = self.annual_spend
        data['annual_co2_kg'] = self.annual_co2_kg
        return data


@dataclass(frozen=True)
class ProjectAssumptions:
    """
    Inputs of a reduction project evaluation.

    Attributes:
        capex: Up-front investment.
        expected_reduction_rate: Share of baseline removed, in [0, 1].
        lifetime_years: Years the savings last.
        opex_annual: Yearly running cost of the measure.
        discount_rate: Rate for NPV, in [0, 1]; configuration when None.
        carbon_price_per_ton: Shadow carbon price; configuration when None.
        baseline_spend: Spend in the baseline period.
        baseline_co2_kg: CO2 in the baseline period.
        baseline_quantity: Activity quantity in the baseline period.
        baseline_months: Length of the baseline period.
        annual_cost_savings_override: Replaces derived cost savings.
        annual_co2_savings_override_kg: Replaces derived CO2 savings.
        loan_amount: Optional loan financing the capex.
        loan_rate: Annual loan rate, in [0, 1].
        name: Project name.
        category: Category the baseline refers to.
    """
    capex: float
    expected_reduction_rate: float
    lifetime_years: int
    opex_annual: float = 0.0
    discount_rate: Optional[float] = None
    carbon_price_per_ton: Optional[float] = None
    baseline_spend: float = 0.0
    baseline_co2_kg: float = 0.0
    baseline_quantity: Optional[float] = None
    baseline_months: int = 12
    annual_cost_savings_override: Optional[float] = None
    annual_co2_savings_override_kg: Optional[float] = None
    loan_amount: float = 0.0
    loan_rate: float = 0.0
    name: Optional[str] = None
    category: Optional[str] = None

    @property
    def uses_overrides(self) -> bool:
        return (
            self.annual_cost_savings_override is not None
            or self.annual_co2_savings_override_kg is not None
        )

    def validate(self) -> None:
        """
        Check the call-time contract.

        Raises:
            InvalidAssumptionError: On negative amounts or years, rates
                outside [0, 1], or a non-positive baseline period.
        """
        for name in ('capex', 'opex_annual', 'lifetime_years', 'baseline_spend',
                     'baseline_co2_kg', 'baseline_quantity', 'carbon_price_per_ton',
                     'loan_amount', 'annual_cost_savings_override',
                     'annual_co2_savings_override_kg'):
            _require_non_negative(name, getattr(self, name))
        for name in ('expected_reduction_rate', 'discount_rate', 'loan_rate'):
            _require_fraction(name, getattr(self, name))
        if self.baseline_months is None or self.baseline_months <= 0:
            raise InvalidAssumptionError("baseline_months", self.baseline_months, "must be positive")

    def with_baseline(self, baseline: BaselineSummary) -> 'ProjectAssumptions':
        """Return a copy whose baseline fields come from an aggregated baseline."""
        values = asdict(self)
        values.update(
            baseline_spend=baseline.spend,
            baseline_co2_kg=baseline.co2_kg,
            baseline_quantity=baseline.quantity,
            baseline_months=baseline.months,
        )
        return ProjectAssumptions(**values)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectAssumptions':
        """
        Build assumptions from a mapping (e.g. a parsed YAML file).

        Unknown keys raise InvalidAssumptionError.
        """
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidAssumptionError(unknown[0], data[unknown[0]], "unknown field")
        for required in ('capex', 'expected_reduction_rate', 'lifetime_years'):
            if data.get(required) is None:
                raise InvalidAssumptionError(required, None, "is required")
        return cls(**data)


@dataclass(frozen=True)
class ProjectMetrics:
    """
    Derived metrics of a reduction project.

    Attributes:
        annual_baseline_spend: Annualized baseline spend.
        annual_baseline_co2_kg: Annualized baseline CO2.
        annual_cost_savings: Cost saved per year.
        annual_co2_savings_kg: CO2 saved per year.
        annual_shadow_savings: CO2 savings valued at the carbon price.
        annual_net_benefit: Cost + shadow savings - opex.
        npv: Net present value of the project cash flows.
        irr: IRR search outcome.
        payback_years: capex / net benefit, None if the benefit is not positive.
        payback_year: First year with non-negative cumulative cash flow.
        esg_score: 0-100 intensity score of the baseline, None without spend.
        cashflows: Year 0..N cash flows.
        amortization: Loan schedule when a loan is part of the project.
        data_source: "baseline" or "override".
    """
    annual_baseline_spend: float
    annual_baseline_co2_kg: float
    annual_cost_savings: float
    annual_co2_savings_kg: float
    annual_shadow_savings: float
    annual_net_benefit: float
    npv: float
    irr: IRRResult
    payback_years: Optional[float]
    payback_year: Optional[int]
    esg_score: Optional[int]
    cashflows: Tuple[float, ...]
    amortization: Tuple[AmortizationRow, ...] = field(default_factory=tuple)
    data_source: str = "baseline"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['cashflows'] = list(self.cashflows)
        data['amortization'] = [row.to_dict() for row in self.amortization]
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


@dataclass(frozen=True)
class InvestmentInputs:
    """
    Inputs of a loan-financed energy efficiency investment.

    Rates are fractions (0.22 for 22 %).
    """
    energy_spend: float
    reduction_rate: float
    capex: float
    tax_rate: float = 0.0
    grant: float = 0.0
    loan_amount: float = 0.0
    loan_rate: float = 0.0
    consultant_fees: float = 0.0

    def validate(self) -> None:
        """Raise InvalidAssumptionError on negative amounts or bad rates."""
        for name in ('energy_spend', 'capex', 'grant', 'loan_amount', 'consultant_fees'):
            _require_non_negative(name, getattr(self, name))
        for name in ('reduction_rate', 'tax_rate', 'loan_rate'):
            _require_fraction(name, getattr(self, name))


@dataclass(frozen=True)
class InvestmentCase:
    """Lender-style evaluation of an InvestmentInputs record."""
    savings_gross: float
    savings_after_tax: float
    depreciation: float
    tax_shield: float
    upfront: float
    annual_debt_service: float
    amortization: Tuple[AmortizationRow, ...]
    unlevered_cashflows: Tuple[float, ...]
    levered_cashflows: Tuple[float, ...]
    npv_unlevered: float
    irr_unlevered: IRRResult
    npv_levered: float
    irr_levered: IRRResult
    payback_year: Optional[int]
    dscr: Tuple[DSCRRow, ...]
    baseline_kwh: float
    saved_kwh: float
    co2_saved_kg: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['amortization'] = [row.to_dict() for row in self.amortization]
        data['dscr'] = [row.to_dict() for row in self.dscr]
        data['unlevered_cashflows'] = list(self.unlevered_cashflows)
        data['levered_cashflows'] = list(self.levered_cashflows)
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


@dataclass(frozen=True)
class CarbonMetrics:
    """
    Carbon intensity of a set of documents.

    Attributes:
        total_spend: Summed spend.
        total_co2_kg: Summed CO2.
        intensity_g_per_currency: Grams CO2 per currency unit.
        tonnes_per_million: Tonnes CO2 per million currency units.
        shadow_cost: CO2 valued at the carbon price.
    """
    total_spend: float
    total_co2_kg: float
    intensity_g_per_currency: Optional[float]
    tonnes_per_million: Optional[float]
    shadow_cost: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ShadowScenario:
    """Shadow savings of one reduction rate at one carbon price."""
    label: str
    reduction_rate: float
    carbon_price_per_ton: float
    co2_reduced_kg: float
    shadow_savings: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    'IRRResult',
    'AmortizationRow',
    'DSCRRow',
    'BaselineSummary',
    'ProjectAssumptions',
    'ProjectMetrics',
    'InvestmentInputs',
    'InvestmentCase',
    'CarbonMetrics',
    'ShadowScenario'
]
