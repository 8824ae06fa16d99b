"""
Finance Module for the Invoice Emissions System.

This module provides:
    - NPV, IRR, annuity amortization, payback, DSCR and ESG score
    - Baseline aggregation from processed invoices
    - Carbon intensity metrics and shadow price scenarios
    - The FinancialMetricsEngine for projects and investment cases

Author: ML Engineering Team
"""

from .models import (
    IRRResult,
    AmortizationRow,
    DSCRRow,
    BaselineSummary,
    ProjectAssumptions,
    ProjectMetrics,
    InvestmentInputs,
    InvestmentCase,
    CarbonMetrics,
    ShadowScenario,
)
from .cashflows import (
    npv,
    irr,
    annuity_payment,
    amortization_schedule,
    payback_year,
    simple_payback_years,
    dscr,
    straight_line_depreciation,
    esg_score,
)
from .baseline import build_baseline
from .carbon import carbon_metrics, shadow_scenarios
from .engine import FinancialMetricsEngine

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
    'ShadowScenario',
    'npv',
    'irr',
    'annuity_payment',
    'amortization_schedule',
    'payback_year',
    'simple_payback_years',
    'dscr',
    'straight_line_depreciation',
    'esg_score',
    'build_baseline',
    'carbon_metrics',
    'shadow_scenarios',
    'FinancialMetricsEngine'
]
