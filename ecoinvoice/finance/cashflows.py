"""
Cash-Flow Primitives Module.

Classical corporate-finance formulas used by the metrics engine:
    - Net present value and Newton-Raphson internal rate of return
    - Annuity payment and amortization schedule
    - Payback (simple and cumulative) and debt-service coverage
    - Straight-line depreciation and a 0-100 ESG intensity score

All functions are pure; invalid call-time inputs raise
InvalidAssumptionError.

Author: ML Engineering Team
"""

import math
from typing import List, Optional, Sequence

import numpy as np

from config import get_config
from ecoinvoice.utils.logger import get_logger
from ecoinvoice.utils.exceptions import InvalidAssumptionError
from .models import AmortizationRow, IRRResult

# Initialize module logger
logger = get_logger(__name__)

MAX_STEP_HALVINGS = 60


def _as_array(cashflows: Sequence[float]) -> np.ndarray:
    values = np.asarray(cashflows, dtype=float)
    if values.ndim != 1 or values.size == 0:
        raise InvalidAssumptionError("cashflows", list(cashflows), "must be a non-empty series")
    return values


def npv(rate: float, cashflows: Sequence[float]) -> float:
    """
    Net present value of year 0..N cash flows.

    Args:
        rate: Discount rate per period.
        cashflows: Cash flow at t = 0, 1, ..., N.

    Returns:
        Sum of cashflows[t] / (1 + rate) ** t.

    Example:
        >>> round(npv(0.1, [-100, 110]), 6)
        0.0
    """
    if rate <= -1:
        raise InvalidAssumptionError("rate", rate, "must be greater than -1")
    values = _as_array(cashflows)
    periods = np.arange(values.size)
    return float(np.sum(values / np.power(1.0 + rate, periods)))


def irr(
    cashflows: Sequence[float],
    guess: Optional[float] = None,
    max_iterations: Optional[int] = None,
    tolerance: Optional[float] = None
) -> IRRResult:
    """
    Internal rate of return by Newton-Raphson iteration.

    Each iteration evaluates NPV and its derivative at the current rate
    and subtracts NPV / derivative; a step that would cross -100% is
    halved until the rate stays above it. The search stops when the step is
    below the tolerance or the iteration cap is reached. A search that
    stops at the cap is reported with converged=False and its last
    estimate; callers should check the sign of NPV before relying on it.

    Args:
        cashflows: Cash flow at t = 0, 1, ..., N.
        guess: Starting rate (configuration: 0.1).
        max_iterations: Iteration cap (configuration: 100).
        tolerance: Step size that counts as converged (configuration: 1e-7).

    Returns:
        IRRResult; rate is None when the series has no sign change.

    Example:
        >>> result = irr([-100, 110])
        >>> round(result.rate, 6), result.converged
        (0.1, True)
    """
    if guess is None:
        guess = get_config("finance.irr.guess", 0.1)
    if max_iterations is None:
        max_iterations = get_config("finance.irr.max_iterations", 100)
    if tolerance is None:
        tolerance = get_config("finance.irr.tolerance", 1e-7)

    values = _as_array(cashflows)
    if not (np.any(values > 0) and np.any(values < 0)):
        return IRRResult(rate=None, converged=False, iterations=0)

    periods = np.arange(values.size)
    rate = float(guess)
    if rate <= -1.0:
        raise InvalidAssumptionError("irr_guess", guess, "must be above -1")

    for iteration in range(1, int(max_iterations) + 1):
        base = 1.0 + rate
        f = float(np.sum(values / np.power(base, periods)))
        df = float(np.sum(-periods * values / np.power(base, periods + 1)))
        if df == 0 or not math.isfinite(df) or not math.isfinite(f):
            logger.warning(f"IRR derivative vanished at rate {rate:.6f}")
            return IRRResult(rate=rate, converged=False, iterations=iteration)

        # Rates at or below -100% are undefined: halve the step until valid
        step = f / df
        halvings = 0
        while 1.0 + rate - step <= 0:
            step /= 2.0
            halvings += 1
            if halvings > MAX_STEP_HALVINGS:
                logger.warning(f"IRR step could not stay above -100% at rate {rate:.6f}")
                return IRRResult(rate=rate, converged=False, iterations=iteration)

        rate -= step
        if halvings == 0 and abs(step) < tolerance:
            return IRRResult(rate=rate, converged=True, iterations=iteration)

    logger.warning(f"IRR did not converge after {max_iterations} iterations (last estimate {rate:.6f})")
    return IRRResult(rate=rate, converged=False, iterations=int(max_iterations))


def annuity_payment(principal: float, annual_rate: float, years: int) -> float:
    """
    Level yearly payment that repays principal over the term.

    Example:
        >>> annuity_payment(1000, 0.0, 4)
        250.0
    """
    if years is None or years <= 0:
        raise InvalidAssumptionError("years", years, "loan term must be positive")
    if principal < 0:
        raise InvalidAssumptionError("principal", principal, "must not be negative")
    if annual_rate == 0:
        return principal / years
    growth = (1.0 + annual_rate) ** years
    return principal * annual_rate * growth / (growth - 1.0)


def amortization_schedule(principal: float, annual_rate: float, years: int) -> List[AmortizationRow]:
    """
    Yearly annuity amortization.

    Interest is charged on the opening balance; the principal part of the
    payment is capped at the remaining balance, so the final closing
    balance is zero.

    Args:
        principal: Loan amount.
        annual_rate: Yearly interest rate.
        years: Term in years.

    Returns:
        One AmortizationRow per year.
    """
    payment = annuity_payment(principal, annual_rate, years)
    rows = []
    balance = float(principal)
    for year in range(1, years + 1):
        interest = balance * annual_rate
        principal_paid = min(payment - interest, balance)
        closing = max(0.0, balance - principal_paid)
        rows.append(AmortizationRow(
            year=year,
            opening=balance,
            interest=interest,
            principal_paid=principal_paid,
            payment=payment,
            closing=closing,
        ))
        balance = closing
    return rows


def payback_year(cashflows: Sequence[float]) -> Optional[int]:
    """
    First year whose cumulative cash flow is non-negative.

    Year 0 (the investment) is never a payback year.

    Example:
        >>> payback_year([-100, 40, 40, 40])
        3
        >>> payback_year([-100, 10, 10]) is None
        True
    """
    cumulative = np.cumsum(_as_array(cashflows))
    for year in range(1, cumulative.size):
        if cumulative[year] >= 0:
            return year
    return None


def simple_payback_years(capex: float, annual_net_benefit: float) -> Optional[float]:
    """capex / annual net benefit, None when the benefit is not positive."""
    if annual_net_benefit <= 0:
        return None
    return capex / annual_net_benefit


def dscr(net_operating_income: float, debt_service: float) -> Optional[float]:
    """Debt-service coverage ratio, None without debt service."""
    if debt_service <= 0:
        return None
    return net_operating_income / debt_service


def straight_line_depreciation(cost: float, years: int) -> float:
    """Equal yearly depreciation of cost over the period."""
    if years is None or years <= 0:
        raise InvalidAssumptionError("depreciation_years", years, "must be positive")
    return cost / years


def esg_score(
    co2_kg: float,
    spend: float,
    best_intensity: Optional[float] = None,
    worst_intensity: Optional[float] = None
) -> Optional[int]:
    """
    Bounded 0-100 score of CO2 intensity per currency unit.

    Intensities at or below `best_intensity` score 100, at or above
    `worst_intensity` score 0, linear in between.

    Args:
        co2_kg: Emissions in the period.
        spend: Spend in the same period.
        best_intensity: kg CO2 per currency unit scoring 100.
        worst_intensity: kg CO2 per currency unit scoring 0.

    Returns:
        Rounded score, or None when spend is not positive.

    Example:
        >>> esg_score(150, 1_000_000)
        100
        >>> esg_score(2000, 1_000_000)
        0
    """
    if best_intensity is None:
        best_intensity = get_config("finance.esg.best_intensity", 0.00015)
    if worst_intensity is None:
        worst_intensity = get_config("finance.esg.worst_intensity", 0.001)
    if worst_intensity <= best_intensity:
        raise InvalidAssumptionError("worst_intensity", worst_intensity, "must exceed best_intensity")

    if spend is None or spend <= 0:
        return None

    intensity = co2_kg / spend
    clamped = min(max(intensity, best_intensity), worst_intensity)
    score = (worst_intensity - clamped) / (worst_intensity - best_intensity) * 100
    return int(round(score))
