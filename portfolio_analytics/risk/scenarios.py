"""Forward-looking scenario analysis.

Projects the portfolio under macro states (bull, bear, recession, ...) each
defined by an assumed market return and volatility. The portfolio moves with
its value-weighted beta; cash earns nothing.
"""

from __future__ import annotations

import math
from typing import Sequence

import structlog

from ..errors import ValidationError
from ..models import MacroScenario, PortfolioSnapshot, ScenarioAnalysis, ScenarioResult

logger = structlog.get_logger(__name__)


def portfolio_beta(snapshot: PortfolioSnapshot, betas: dict[str, float]) -> float:
    """Value-weighted beta over total value (cash has beta 0)."""
    if snapshot.total_value <= 0:
        return 0.0
    exposure = sum(h.market_value * betas.get(h.symbol, 1.0) for h in snapshot.holdings)
    return exposure / snapshot.total_value


def scenario_probabilities(
    scenarios: Sequence[MacroScenario],
    probabilities: Sequence[float] | None = None,
) -> list[float]:
    """Equal weights unless an explicit probability vector is supplied.

    Raises:
        ValidationError: If the vector has the wrong length, negative entries,
            or does not sum to 1
    """
    n = len(scenarios)
    if probabilities is None:
        return [1.0 / n] * n if n else []

    probabilities = list(probabilities)
    if len(probabilities) != n:
        raise ValidationError(
            f"Got {len(probabilities)} scenario probabilities for {n} scenarios"
        )
    if any(p < 0 for p in probabilities):
        raise ValidationError("Scenario probabilities must be non-negative")
    if not math.isclose(sum(probabilities), 1.0, abs_tol=1e-6):
        raise ValidationError(
            f"Scenario probabilities must sum to 1, got {sum(probabilities):.6f}"
        )
    return probabilities


def run_scenario_analysis(
    snapshot: PortfolioSnapshot,
    scenarios: Sequence[MacroScenario],
    betas: dict[str, float],
    probabilities: Sequence[float] | None = None,
) -> ScenarioAnalysis:
    """Project expected return, volatility and value under each macro state."""
    weights = scenario_probabilities(scenarios, probabilities)
    beta_p = portfolio_beta(snapshot, betas)

    results = []
    for scenario, probability in zip(scenarios, weights):
        expected_return = beta_p * scenario.market_return
        holding_returns = {
            h.symbol: betas.get(h.symbol, 1.0) * scenario.market_return
            for h in snapshot.holdings
        }
        results.append(
            ScenarioResult(
                scenario=scenario.name,
                market_return=scenario.market_return,
                expected_return=expected_return,
                expected_volatility=abs(beta_p) * scenario.volatility,
                expected_value=snapshot.total_value * (1.0 + expected_return),
                probability=probability,
                probability_weighted_return=probability * expected_return,
                best_performer=max(holding_returns, key=holding_returns.get) if holding_returns else None,
                worst_performer=min(holding_returns, key=holding_returns.get) if holding_returns else None,
            )
        )

    expected = sum(r.probability_weighted_return for r in results)
    best = max(results, key=lambda r: r.expected_return) if results else None
    worst = min(results, key=lambda r: r.expected_return) if results else None

    logger.info(
        "run_scenario_analysis: complete",
        num_scenarios=len(results),
        portfolio_beta=beta_p,
        expected_return=expected,
    )

    return ScenarioAnalysis(
        portfolio_beta=beta_p,
        scenarios=results,
        expected_return=expected,
        expected_value=snapshot.total_value * (1.0 + expected),
        best_case=best.scenario if best else None,
        worst_case=worst.scenario if worst else None,
    )
