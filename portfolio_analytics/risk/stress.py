"""
Stress Testing Module

Applies a catalogue of named historical market shocks to the current holdings.
Each holding's shock is scaled by its beta to the market and by the scenario's
assumed correlation:

    holding_shock = market_drop * beta * correlation

Cash is not shocked.
"""

import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from ..models import (
    HoldingImpact,
    MarketData,
    PortfolioSnapshot,
    StressResult,
    StressScenario,
    StressTestReport,
)
from ._guard import DEGRADABLE_ERRORS
from .performance import beta as regression_beta
from .returns import check_alignment, compute_returns, trim_to_window

logger = structlog.get_logger(__name__)

DEFAULT_BETA = 1.0
BETA_CAP = 5.0  # Cap beta to avoid extreme leverage from noisy history


def estimate_beta(
    asset_prices: Sequence[float],
    benchmark_values: Sequence[float],
    window: Optional[int] = None,
) -> float:
    """Beta of one asset to the benchmark from equal-length price histories.

    Raises:
        AlignmentError: If the histories differ in length
        InsufficientDataError / DivisionByZeroError: From the regression
    """
    check_alignment(asset_prices, benchmark_values, "asset", "benchmark")

    if window is not None:
        asset_prices = trim_to_window(asset_prices, window)
        benchmark_values = trim_to_window(benchmark_values, window)

    raw = regression_beta(compute_returns(asset_prices), compute_returns(benchmark_values))
    return float(np.clip(raw, -BETA_CAP, BETA_CAP))


def holding_betas(
    snapshot: PortfolioSnapshot,
    market_data: Optional[MarketData] = None,
    benchmark_values: Optional[Sequence[float]] = None,
    window: Optional[int] = None,
) -> Tuple[Dict[str, float], Dict[str, str]]:
    """Beta-to-market for every holding, with where each value came from.

    Order of preference: the holding's own ``beta`` ("provided"), a regression
    on market data against the benchmark ("estimated"), else 1.0 ("default").

    Returns:
        Tuple of ({symbol: beta}, {symbol: source})
    """
    prices = market_data.prices if market_data is not None else {}
    betas: Dict[str, float] = {}
    sources: Dict[str, str] = {}

    for h in snapshot.holdings:
        if h.beta is not None:
            betas[h.symbol] = h.beta
            sources[h.symbol] = "provided"
            continue

        if benchmark_values is not None and h.symbol in prices:
            try:
                betas[h.symbol] = estimate_beta(prices[h.symbol], benchmark_values, window)
                sources[h.symbol] = "estimated"
                continue
            except DEGRADABLE_ERRORS as exc:
                logger.warning(
                    "holding_betas: beta estimation failed, using default",
                    symbol=h.symbol,
                    reason=exc.code,
                    detail=str(exc),
                )

        betas[h.symbol] = DEFAULT_BETA
        sources[h.symbol] = "default"

    return betas, sources


def recovery_months(loss_fraction: float, annual_growth: float = 0.07) -> Optional[int]:
    """Months to recover a fractional loss at a constant annual growth rate.

    months = ceil(12 * ln(1 / (1 - L)) / ln(1 + g))

    Returns 0 for no loss and None for a total loss (no recovery).
    """
    if loss_fraction <= 0:
        return 0
    if loss_fraction >= 1:
        return None
    if annual_growth <= 0:
        raise ValueError(f"Annual growth must be positive, got {annual_growth}")

    years = math.log(1.0 / (1.0 - loss_fraction)) / math.log(1.0 + annual_growth)
    return int(math.ceil(round(12.0 * years, 9)))


def stress_test_scenario(
    snapshot: PortfolioSnapshot,
    scenario: StressScenario,
    betas: Dict[str, float],
    annual_growth: float = 0.07,
) -> StressResult:
    """Estimate the portfolio impact of one stress scenario."""
    impacts: List[HoldingImpact] = []
    for h in snapshot.holdings:
        b = betas.get(h.symbol, DEFAULT_BETA)
        shock = scenario.market_drop * b * scenario.correlation
        impacts.append(
            HoldingImpact(
                symbol=h.symbol,
                beta=b,
                impact_percent=shock * 100.0,
                impact_value=h.market_value * shock,
            )
        )

    portfolio_loss = float(sum(i.impact_value for i in impacts))
    loss_percent = (
        portfolio_loss / snapshot.total_value * 100.0 if snapshot.total_value > 0 else 0.0
    )

    worst = min(impacts, key=lambda i: i.impact_value) if impacts else None
    best = max(impacts, key=lambda i: i.impact_value) if impacts else None

    return StressResult(
        scenario=scenario.name,
        market_drop=scenario.market_drop,
        correlation=scenario.correlation,
        portfolio_loss=portfolio_loss,
        portfolio_loss_percent=loss_percent,
        worst_holding=worst,
        best_holding=best,
        recovery_months=recovery_months(-loss_percent / 100.0, annual_growth),
    )


def run_stress_tests(
    snapshot: PortfolioSnapshot,
    scenarios: Sequence[StressScenario],
    market_data: Optional[MarketData] = None,
    benchmark_values: Optional[Sequence[float]] = None,
    window: Optional[int] = None,
    annual_growth: float = 0.07,
    betas: Optional[Tuple[Dict[str, float], Dict[str, str]]] = None,
) -> StressTestReport:
    """Run every stress scenario in the catalogue.

    ``betas`` is a precomputed (betas, sources) pair from ``holding_betas``;
    when omitted it is estimated here from the market data.

    Returns:
        StressTestReport with per-scenario results, the average loss percent,
        the worst case and the betas used
    """
    logger.info("run_stress_tests: starting all scenarios", num_scenarios=len(scenarios))

    if betas is None:
        betas = holding_betas(snapshot, market_data, benchmark_values, window)
    beta_map, sources = betas
    results = [
        stress_test_scenario(snapshot, scenario, beta_map, annual_growth)
        for scenario in scenarios
    ]

    average = (
        float(np.mean([r.portfolio_loss_percent for r in results])) if results else None
    )
    worst_case = min(results, key=lambda r: r.portfolio_loss_percent) if results else None

    logger.info(
        "run_stress_tests: complete",
        num_scenarios=len(results),
        average_loss_percent=average,
        worst_case=worst_case.scenario if worst_case else None,
    )

    return StressTestReport(
        scenarios=results,
        average_loss_percent=average,
        worst_case=worst_case,
        holding_betas=beta_map,
        beta_sources=sources,
    )
