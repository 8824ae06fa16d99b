"""
Financial Metrics Engine Module.

This module provides the FinancialMetricsEngine class that evaluates
emission reduction projects and loan-financed efficiency investments.

Usage:
    from ecoinvoice.finance import FinancialMetricsEngine, ProjectAssumptions

    engine = FinancialMetricsEngine()
    metrics = engine.project_metrics(ProjectAssumptions(
        capex=100_000, expected_reduction_rate=0.2, lifetime_years=10,
        baseline_spend=250_000, baseline_co2_kg=40_000))
    print(metrics.npv, metrics.irr.rate)

Author: ML Engineering Team
"""

from typing import Optional

from config import get_config
from ecoinvoice.utils.logger import get_logger
from ecoinvoice.utils.exceptions import InvalidAssumptionError
from . import cashflows as cf
from .models import (
    DSCRRow,
    InvestmentCase,
    InvestmentInputs,
    ProjectAssumptions,
    ProjectMetrics,
)

# Initialize module logger
logger = get_logger(__name__)


class FinancialMetricsEngine:
    """
    Project-finance metrics.

    Horizon, loan tenor, depreciation period, discount rate, energy price
    and grid factor are configuration constants; a ProjectAssumptions
    record may override the discount rate and carbon price per call.

    Attributes:
        discount_rate: Default NPV discount rate.
        analysis_years: Horizon of the investment case.
        loan_years: Loan tenor.
        depreciation_years: Straight-line depreciation period.
        energy_price_per_kwh: Price used to turn spend into kWh.
        grid_kg_per_kwh: Grid emission factor.
        carbon_price_per_ton: Default shadow carbon price.

    Example:
        >>> engine = FinancialMetricsEngine()
        >>> case = engine.investment_case(InvestmentInputs(
        ...     energy_spend=500_000, reduction_rate=0.3, capex=400_000,
        ...     tax_rate=0.22, loan_amount=300_000, loan_rate=0.05))
        >>> len(case.amortization)
        5
    """

    def __init__(
        self,
        discount_rate: Optional[float] = None,
        analysis_years: Optional[int] = None,
        loan_years: Optional[int] = None,
        depreciation_years: Optional[int] = None,
        energy_price_per_kwh: Optional[float] = None,
        grid_kg_per_kwh: Optional[float] = None,
        carbon_price_per_ton: Optional[float] = None
    ) -> None:
        def cfg(key, value, default):
            return value if value is not None else get_config(key, default)

        self.discount_rate = float(cfg("finance.discount_rate", discount_rate, 0.08))
        self.analysis_years = int(cfg("finance.analysis_years", analysis_years, 7))
        self.loan_years = int(cfg("finance.loan_years", loan_years, 5))
        self.depreciation_years = int(cfg("finance.depreciation_years", depreciation_years, 5))
        self.energy_price_per_kwh = float(cfg("finance.energy_price_per_kwh", energy_price_per_kwh, 1.2))
        self.grid_kg_per_kwh = float(cfg("emissions.grid_kg_per_kwh", grid_kg_per_kwh, 0.17))
        self.carbon_price_per_ton = float(cfg("finance.carbon_price_per_ton", carbon_price_per_ton, 2000))

        for name in ('analysis_years', 'loan_years', 'depreciation_years'):
            if getattr(self, name) <= 0:
                raise InvalidAssumptionError(name, getattr(self, name), "must be positive")
        if self.energy_price_per_kwh <= 0:
            raise InvalidAssumptionError("energy_price_per_kwh", self.energy_price_per_kwh, "must be positive")

        logger.debug(
            f"FinancialMetricsEngine initialized (rate={self.discount_rate}, "
            f"horizon={self.analysis_years}, loan={self.loan_years})"
        )

    def project_metrics(self, assumptions: ProjectAssumptions) -> ProjectMetrics:
        """
        Evaluate a reduction project against its baseline.

        Annual savings are the annualized baseline times the expected
        reduction, unless overrides are given. Shadow savings value the
        CO2 reduction at the carbon price; the net benefit subtracts opex.

        Args:
            assumptions: Project inputs.

        Returns:
            ProjectMetrics.

        Raises:
            InvalidAssumptionError: If the inputs violate their contract.
        """
        assumptions.validate()

        rate = assumptions.discount_rate if assumptions.discount_rate is not None else self.discount_rate
        price = (
            assumptions.carbon_price_per_ton
            if assumptions.carbon_price_per_ton is not None
            else self.carbon_price_per_ton
        )

        scale = 12.0 / assumptions.baseline_months
        annual_spend = assumptions.baseline_spend * scale
        annual_co2 = assumptions.baseline_co2_kg * scale

        if assumptions.uses_overrides:
            cost_savings = assumptions.annual_cost_savings_override or 0.0
            co2_savings = assumptions.annual_co2_savings_override_kg or 0.0
            source = "override"
        else:
            cost_savings = annual_spend * assumptions.expected_reduction_rate
            co2_savings = annual_co2 * assumptions.expected_reduction_rate
            source = "baseline"

        shadow = co2_savings / 1000 * price
        net = cost_savings + shadow - assumptions.opex_annual

        years = max(1, int(assumptions.lifetime_years))
        flows = [-max(0.0, assumptions.capex)] + [net] * years

        amortization = ()
        if assumptions.loan_amount > 0:
            amortization = tuple(cf.amortization_schedule(
                assumptions.loan_amount, assumptions.loan_rate, self.loan_years
            ))

        metrics = ProjectMetrics(
            annual_baseline_spend=annual_spend,
            annual_baseline_co2_kg=annual_co2,
            annual_cost_savings=cost_savings,
            annual_co2_savings_kg=co2_savings,
            annual_shadow_savings=shadow,
            annual_net_benefit=net,
            npv=cf.npv(rate, flows),
            irr=cf.irr(flows),
            payback_years=cf.simple_payback_years(assumptions.capex, net),
            payback_year=cf.payback_year(flows),
            esg_score=cf.esg_score(annual_co2, annual_spend),
            cashflows=tuple(flows),
            amortization=amortization,
            data_source=source,
        )

        logger.info(
            f"Project '{assumptions.name or 'unnamed'}': NPV={metrics.npv:.2f}, "
            f"net benefit={net:.2f}/year, payback={metrics.payback_years}"
        )
        return metrics

    def investment_case(self, inputs: InvestmentInputs) -> InvestmentCase:
        """
        Evaluate a loan-financed energy efficiency investment.

        Unlevered cash flows are after-tax savings plus the depreciation
        tax shield; levered cash flows also pay the annuity while the loan
        runs. Payback is measured on the levered series.

        Args:
            inputs: Investment inputs (rates as fractions).

        Returns:
            InvestmentCase.
        """
        inputs.validate()

        savings_gross = inputs.energy_spend * inputs.reduction_rate
        savings_after_tax = savings_gross * (1 - inputs.tax_rate)

        depreciation = cf.straight_line_depreciation(
            inputs.capex + inputs.consultant_fees, self.depreciation_years
        )
        tax_shield = depreciation * inputs.tax_rate
        upfront = inputs.capex + inputs.consultant_fees - inputs.grant

        amortization = []
        if inputs.loan_amount > 0:
            amortization = cf.amortization_schedule(inputs.loan_amount, inputs.loan_rate, self.loan_years)
        debt_service = amortization[0].payment if amortization else 0.0

        operating = savings_after_tax + tax_shield
        unlevered = [-upfront] + [operating] * self.analysis_years
        levered = [-upfront] + [
            operating - (debt_service if year <= self.loan_years else 0.0)
            for year in range(1, self.analysis_years + 1)
        ]

        coverage = tuple(
            DSCRRow(year=row.year, dscr=cf.dscr(operating, row.payment), debt_service=row.payment)
            for row in amortization
        )

        baseline_kwh = inputs.energy_spend / self.energy_price_per_kwh
        saved_kwh = baseline_kwh * inputs.reduction_rate

        return InvestmentCase(
            savings_gross=savings_gross,
            savings_after_tax=savings_after_tax,
            depreciation=depreciation,
            tax_shield=tax_shield,
            upfront=upfront,
            annual_debt_service=debt_service,
            amortization=tuple(amortization),
            unlevered_cashflows=tuple(unlevered),
            levered_cashflows=tuple(levered),
            npv_unlevered=cf.npv(self.discount_rate, unlevered),
            irr_unlevered=cf.irr(unlevered),
            npv_levered=cf.npv(self.discount_rate, levered),
            irr_levered=cf.irr(levered),
            payback_year=cf.payback_year(levered),
            dscr=coverage,
            baseline_kwh=baseline_kwh,
            saved_kwh=saved_kwh,
            co2_saved_kg=saved_kwh * self.grid_kg_per_kwh,
        )
