"""
Carbon Metrics Module.

Portfolio-level carbon figures: intensity per currency unit, tonnes per
million, shadow carbon cost and a reduction x carbon price scenario grid.

Author: ML Engineering Team
"""

from typing import Dict, Iterable, List, Optional, Tuple

from config import get_config
from .models import CarbonMetrics, ShadowScenario


def carbon_metrics(
    rows: Iterable[Tuple[Optional[float], Optional[float]]],
    carbon_price_per_ton: Optional[float] = None
) -> CarbonMetrics:
    """
    Aggregate spend and CO2 pairs.

    Args:
        rows: (spend, co2_kg) per document; None values are skipped.
        carbon_price_per_ton: Shadow price (configuration when None).

    Returns:
        CarbonMetrics; intensities are None without positive spend.

    Example:
        >>> carbon_metrics([(1000.0, 50.0)], 2000).intensity_g_per_currency
        50.0
    """
    if carbon_price_per_ton is None:
        carbon_price_per_ton = get_config("finance.carbon_price_per_ton", 2000)

    total_spend = 0.0
    total_co2 = 0.0
    for spend, co2 in rows:
        total_spend += spend or 0.0
        total_co2 += co2 or 0.0

    intensity = None
    per_million = None
    if total_spend > 0:
        intensity = total_co2 * 1000 / total_spend
        per_million = (total_co2 / 1000) / (total_spend / 1_000_000)

    return CarbonMetrics(
        total_spend=total_spend,
        total_co2_kg=total_co2,
        intensity_g_per_currency=intensity,
        tonnes_per_million=per_million,
        shadow_cost=total_co2 / 1000 * carbon_price_per_ton,
    )


def shadow_scenarios(
    total_co2_kg: float,
    reduction_rates: Optional[Dict[str, float]] = None,
    carbon_prices: Optional[Iterable[float]] = None
) -> List[ShadowScenario]:
    """
    Shadow savings for every reduction rate at every carbon price.

    Args:
        total_co2_kg: Emissions the reductions apply to.
        reduction_rates: Label -> rate (configuration when None).
        carbon_prices: Prices per tonne (configuration when None).

    Returns:
        Scenarios sorted by shadow savings, largest first.
    """
    if reduction_rates is None:
        reduction_rates = get_config("finance.scenarios.reduction_rates", {})
    if carbon_prices is None:
        carbon_prices = get_config("finance.scenarios.carbon_prices", [])
    carbon_prices = list(carbon_prices)

    scenarios = []
    for label, rate in reduction_rates.items():
        for price in carbon_prices:
            reduced = total_co2_kg * rate
            scenarios.append(ShadowScenario(
                label=label,
                reduction_rate=rate,
                carbon_price_per_ton=price,
                co2_reduced_kg=reduced,
                shadow_savings=reduced / 1000 * price,
            ))

    scenarios.sort(key=lambda s: s.shadow_savings, reverse=True)
    return scenarios
