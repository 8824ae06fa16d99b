"""
Tests for cash-flow math, the financial metrics engine, baselines and
carbon metrics.
"""

from dataclasses import replace
from types import SimpleNamespace

import pytest

from ecoinvoice.emissions import Unit
from ecoinvoice.extraction import EnrichedLine, ParsedHeader
from ecoinvoice.finance import (
    FinancialMetricsEngine,
    InvestmentInputs,
    ProjectAssumptions,
    amortization_schedule,
    annuity_payment,
    build_baseline,
    carbon_metrics,
    esg_score,
    irr,
    npv,
    payback_year,
    shadow_scenarios,
)
from ecoinvoice.utils.exceptions import InvalidAssumptionError


class TestCashflows:
    """NPV, IRR, annuities and scores."""

    def test_npv(self):
        """Discounting at the exact return gives zero"""
        assert npv(0.1, [-100, 110]) == pytest.approx(0.0, abs=1e-9)
        assert npv(0.0, [-100, 60, 60]) == pytest.approx(20.0)

    def test_npv_rejects_rate_at_minus_one(self):
        """A rate of -100 % is undefined"""
        with pytest.raises(InvalidAssumptionError):
            npv(-1.0, [-100, 110])

    @pytest.mark.parametrize("flows", [
        [-1000, 300, 400, 500],
        [-100_000, 66_000, 66_000, 66_000],
        [-500, 100, 100, 100, 100, 100, 100],
    ])
    def test_npv_at_irr_is_zero(self, flows):
        """NPV evaluated at the IRR vanishes"""
        result = irr(flows)
        assert result.converged
        assert npv(result.rate, flows) == pytest.approx(0.0, abs=1e-6)

    def test_irr_without_sign_change(self):
        """All-positive cash flows have no IRR"""
        result = irr([100, 50, 50])
        assert result.rate is None
        assert not result.converged

    def test_irr_non_convergence_is_reported(self):
        """Hitting the iteration cap is flagged"""
        result = irr([-100, 110], guess=0.5, max_iterations=1)
        assert not result.converged
        assert result.iterations == 1
        assert result.rate is not None

    @pytest.mark.parametrize("flows", [
        [-100_000] + [2_000] * 10,
        [-1000] + [10] * 5,
    ])
    def test_negative_irr_stays_above_minus_one(self, flows):
        """Loss-making flows converge to a rate between -100% and 0"""
        result = irr(flows)
        assert result.converged
        assert -1.0 < result.rate < 0.0
        assert npv(result.rate, flows) == pytest.approx(0.0, abs=1e-3)

    def test_irr_guess_must_be_above_minus_one(self):
        """A starting rate of -100% or below is rejected"""
        with pytest.raises(InvalidAssumptionError):
            irr([-100, 110], guess=-1.0)

    def test_annuity_payment(self):
        """Level payments, with the zero-rate special case"""
        assert annuity_payment(1000, 0.0, 4) == 250.0
        assert annuity_payment(100_000, 0.05, 5) == pytest.approx(23097.48, abs=0.01)

    @pytest.mark.parametrize("years", [0, -1])
    def test_annuity_requires_positive_term(self, years):
        """A non-positive term is rejected"""
        with pytest.raises(InvalidAssumptionError):
            annuity_payment(1000, 0.05, years)

    @pytest.mark.parametrize("principal, rate, years", [
        (300_000, 0.05, 5),
        (1000, 0.0, 4),
        (250_000, 0.073, 12),
    ])
    def test_amortization_conservation(self, principal, rate, years):
        """Balances chain from year to year and end at zero"""
        rows = amortization_schedule(principal, rate, years)
        assert len(rows) == years
        assert rows[0].opening == principal
        for current, following in zip(rows, rows[1:]):
            assert current.closing == pytest.approx(following.opening)
        assert rows[-1].closing == pytest.approx(0.0, abs=1e-6)
        assert sum(r.principal_paid for r in rows) == pytest.approx(principal)

    def test_payback_year(self):
        """First year with non-negative cumulative cash flow"""
        assert payback_year([-100, 40, 40, 40]) == 3
        assert payback_year([-100, 100]) == 1
        assert payback_year([-100, 10, 10]) is None

    def test_esg_score(self):
        """Score is linear between best and worst intensity"""
        assert esg_score(150, 1_000_000) == 100
        assert esg_score(575, 1_000_000) == 50
        assert esg_score(5000, 1_000_000) == 0
        assert esg_score(100, 0) is None


class TestProjectMetrics:
    """Reduction project evaluation."""

    @pytest.fixture
    def assumptions(self):
        return ProjectAssumptions(
            capex=100_000,
            expected_reduction_rate=0.2,
            lifetime_years=10,
            discount_rate=0.08,
            carbon_price_per_ton=2000,
            baseline_spend=250_000,
            baseline_co2_kg=40_000,
        )

    def test_savings_from_baseline(self, assumptions):
        """Savings are the baseline times the reduction rate"""
        metrics = FinancialMetricsEngine().project_metrics(assumptions)
        assert metrics.annual_cost_savings == pytest.approx(50_000)
        assert metrics.annual_co2_savings_kg == pytest.approx(8_000)
        assert metrics.annual_shadow_savings == pytest.approx(16_000)
        assert metrics.annual_net_benefit == pytest.approx(66_000)
        assert metrics.cashflows == (-100_000,) + (pytest.approx(66_000),) * 10
        assert metrics.payback_year == 2
        assert metrics.payback_years == pytest.approx(100_000 / 66_000)
        assert metrics.data_source == "baseline"

    def test_npv_and_irr_agree(self, assumptions):
        """The project NPV at its IRR is zero"""
        metrics = FinancialMetricsEngine().project_metrics(assumptions)
        assert metrics.npv > 0
        assert metrics.irr.converged
        assert npv(metrics.irr.rate, metrics.cashflows) == pytest.approx(0.0, abs=1e-6)

    def test_loss_making_project_has_negative_irr(self, assumptions):
        """Small savings on a large investment give a converged negative IRR"""
        weak = replace(assumptions, baseline_spend=10_000, baseline_co2_kg=0)
        metrics = FinancialMetricsEngine().project_metrics(weak)
        assert metrics.npv < 0
        assert metrics.irr.converged
        assert -1.0 < metrics.irr.rate < 0.0

    def test_partial_year_baseline_is_annualized(self, assumptions):
        """A six-month baseline is doubled"""
        half = replace(assumptions, baseline_months=6)
        metrics = FinancialMetricsEngine().project_metrics(half)
        assert metrics.annual_baseline_spend == pytest.approx(500_000)
        assert metrics.annual_cost_savings == pytest.approx(100_000)

    def test_overrides(self, assumptions):
        """Explicit savings replace the derived ones"""
        overridden = replace(
            assumptions,
            annual_cost_savings_override=10_000,
            annual_co2_savings_override_kg=1_000,
        )
        metrics = FinancialMetricsEngine().project_metrics(overridden)
        assert metrics.annual_cost_savings == 10_000
        assert metrics.annual_shadow_savings == pytest.approx(2_000)
        assert metrics.data_source == "override"

    def test_opex_reduces_benefit(self, assumptions):
        """Running cost is subtracted from the yearly benefit"""
        with_opex = replace(assumptions, opex_annual=6_000)
        metrics = FinancialMetricsEngine().project_metrics(with_opex)
        assert metrics.annual_net_benefit == pytest.approx(60_000)

    def test_loan_schedule(self, assumptions):
        """A loan adds an amortization schedule over the loan tenor"""
        financed = replace(assumptions, loan_amount=80_000, loan_rate=0.05)
        metrics = FinancialMetricsEngine(loan_years=4).project_metrics(financed)
        assert len(metrics.amortization) == 4
        assert metrics.amortization[-1].closing == pytest.approx(0.0, abs=1e-6)

    @pytest.mark.parametrize("changes", [
        {"capex": -1},
        {"expected_reduction_rate": 1.5},
        {"discount_rate": -0.1},
        {"lifetime_years": -2},
        {"baseline_months": 0},
    ])
    def test_invalid_assumptions(self, assumptions, changes):
        """Contract violations raise InvalidAssumptionError"""
        bad = replace(assumptions, **changes)
        with pytest.raises(InvalidAssumptionError):
            FinancialMetricsEngine().project_metrics(bad)

    def test_from_dict(self):
        """Mappings are validated for unknown and required keys"""
        parsed = ProjectAssumptions.from_dict(
            {"capex": 1000, "expected_reduction_rate": 0.1, "lifetime_years": 5, "name": "LED"}
        )
        assert parsed.name == "LED"
        with pytest.raises(InvalidAssumptionError):
            ProjectAssumptions.from_dict({"capex": 1000, "expected_reduction_rate": 0.1})
        with pytest.raises(InvalidAssumptionError):
            ProjectAssumptions.from_dict(
                {"capex": 1000, "expected_reduction_rate": 0.1, "lifetime_years": 5, "colour": "red"}
            )

    def test_json(self, assumptions):
        """Metrics serialize to JSON"""
        assert '"data_source": "baseline"' in FinancialMetricsEngine().project_metrics(assumptions).to_json()


class TestInvestmentCase:
    """Loan-financed energy efficiency investment."""

    @pytest.fixture
    def case(self):
        engine = FinancialMetricsEngine(
            discount_rate=0.08, analysis_years=7, loan_years=5, depreciation_years=5,
            energy_price_per_kwh=1.2, grid_kg_per_kwh=0.17,
        )
        return engine.investment_case(InvestmentInputs(
            energy_spend=500_000, reduction_rate=0.3, capex=400_000,
            tax_rate=0.22, loan_amount=300_000, loan_rate=0.05,
        ))

    def test_savings_and_tax(self, case):
        """After-tax savings plus depreciation tax shield"""
        assert case.savings_gross == pytest.approx(150_000)
        assert case.savings_after_tax == pytest.approx(117_000)
        assert case.depreciation == pytest.approx(80_000)
        assert case.tax_shield == pytest.approx(17_600)
        assert case.upfront == pytest.approx(400_000)

    def test_levered_cashflows(self, case):
        """Debt service is paid only while the loan runs"""
        operating = 117_000 + 17_600
        assert len(case.levered_cashflows) == 8
        assert case.levered_cashflows[1] == pytest.approx(operating - case.annual_debt_service)
        assert case.levered_cashflows[6] == pytest.approx(operating)
        assert case.unlevered_cashflows[1] == pytest.approx(operating)

    def test_dscr(self, case):
        """Coverage is operating cash over the annuity"""
        assert len(case.dscr) == 5
        assert case.dscr[0].dscr == pytest.approx((117_000 + 17_600) / case.annual_debt_service)

    def test_energy_and_co2(self, case):
        """Saved kWh follow from spend and the energy price"""
        assert case.saved_kwh == pytest.approx(125_000)
        assert case.co2_saved_kg == pytest.approx(21_250)

    def test_without_loan(self):
        """An unfinanced investment has no schedule and no coverage rows"""
        case = FinancialMetricsEngine().investment_case(InvestmentInputs(
            energy_spend=500_000, reduction_rate=0.3, capex=400_000, tax_rate=0.22,
        ))
        assert case.amortization == ()
        assert case.dscr == ()
        assert case.annual_debt_service == 0.0
        assert case.levered_cashflows == case.unlevered_cashflows

    def test_invalid_inputs(self):
        """Rates are fractions"""
        with pytest.raises(InvalidAssumptionError):
            FinancialMetricsEngine().investment_case(
                InvestmentInputs(energy_spend=1000, reduction_rate=30, capex=100)
            )


def document(total, co2, lines=(), vendor="Fjordkraft AS"):
    """Minimal processed document."""
    header = ParsedHeader(currency="NOK", vendor=vendor, total_amount=total)
    return SimpleNamespace(header=header, lines=list(lines), co2_kg=co2)


def kwh_line(quantity, amount, co2):
    return EnrichedLine(
        description="Strøm", quantity=quantity, unit_raw="kWh",
        unit_normalized=Unit.KILOWATT_HOUR, amount=amount,
        category="electricity", scope=2, co2_kg=co2,
    )


class TestBaseline:
    """Baseline aggregation from processed documents."""

    def test_from_lines(self):
        """Matching lines are summed"""
        docs = [
            document(1875.0, 170.0, [kwh_line(1000, 1500.0, 170.0)]),
            document(940.0, 85.0, [kwh_line(500, 750.0, 85.0)]),
        ]
        baseline = build_baseline(docs, "electricity", months=6)
        assert baseline.data_source == "invoice_lines"
        assert baseline.quantity == 1500
        assert baseline.unit == "kilowatt_hour"
        assert baseline.spend == 2250.0
        assert baseline.co2_kg == 255.0
        assert baseline.annual_spend == 4500.0
        assert baseline.line_count == 2

    def test_document_fallback(self):
        """Without matching lines the document totals are used"""
        docs = [document(1000.0, 50.0), document(None, None), document(500.0, 25.0)]
        baseline = build_baseline(docs, "fuel_diesel")
        assert baseline.data_source == "documents"
        assert baseline.quantity is None
        assert baseline.spend == 1500.0
        assert baseline.co2_kg == 75.0

    def test_no_data(self):
        """No documents give an explicit empty baseline"""
        baseline = build_baseline([], "electricity")
        assert baseline.data_source == "none"
        assert baseline.spend == 0.0

    def test_vendor_filter(self):
        """Only the chosen vendor's documents count"""
        docs = [document(1000.0, 50.0, vendor="Fjordkraft AS"), document(9000.0, 10.0, vendor="Other AS")]
        baseline = build_baseline(docs, vendor="fjordkraft as")
        assert baseline.spend == 1000.0
        assert baseline.document_count == 1

    def test_period_must_be_positive(self):
        """A zero-month period is rejected"""
        with pytest.raises(InvalidAssumptionError):
            build_baseline([], "electricity", months=0)

    def test_feeds_project(self):
        """A baseline plugs into project assumptions"""
        baseline = build_baseline([document(1000.0, 50.0)], months=3)
        assumptions = ProjectAssumptions(capex=0, expected_reduction_rate=0.5, lifetime_years=1).with_baseline(baseline)
        metrics = FinancialMetricsEngine().project_metrics(assumptions)
        assert metrics.annual_baseline_spend == pytest.approx(4000.0)
        assert metrics.annual_cost_savings == pytest.approx(2000.0)


class TestCarbon:
    """Carbon intensity and shadow price scenarios."""

    def test_carbon_metrics(self):
        """Intensity, tonnes per million and shadow cost"""
        metrics = carbon_metrics([(1000.0, 50.0), (None, 10.0)], carbon_price_per_ton=2000)
        assert metrics.total_spend == 1000.0
        assert metrics.total_co2_kg == 60.0
        assert metrics.intensity_g_per_currency == pytest.approx(60.0)
        assert metrics.tonnes_per_million == pytest.approx(60.0)
        assert metrics.shadow_cost == pytest.approx(120.0)

    def test_no_spend(self):
        """Intensities are absent without spend"""
        metrics = carbon_metrics([(None, 10.0)], carbon_price_per_ton=2000)
        assert metrics.intensity_g_per_currency is None
        assert metrics.tonnes_per_million is None

    def test_scenarios_sorted(self):
        """Scenarios cover every rate and price, largest savings first"""
        scenarios = shadow_scenarios(10_000, {"Low": 0.1, "High": 0.5}, [1000, 2000])
        assert len(scenarios) == 4
        assert (scenarios[0].label, scenarios[0].carbon_price_per_ton) == ("High", 2000)
        assert scenarios[0].shadow_savings == pytest.approx(10_000)
        assert scenarios[-1].shadow_savings == pytest.approx(1_000)

    def test_configured_scenarios(self):
        """Rates and prices default to configuration"""
        assert len(shadow_scenarios(1000)) == 9
