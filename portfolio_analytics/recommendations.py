"""Recommendations and optimisation suggestions.

Recommendations are derived from cross-section thresholds held in
``AnalyticsSettings``. Metrics that are unavailable never trigger a
recommendation.
"""

from __future__ import annotations

import structlog

from .config import AnalyticsSettings
from .models import (
    DiversificationAnalysis,
    OptimizationSuggestions,
    PerformanceMetrics,
    PortfolioSnapshot,
    RebalanceAction,
    Recommendation,
    RiskMetrics,
    TaxLossOpportunity,
)

logger = structlog.get_logger(__name__)


def _performance_recommendations(
    performance: PerformanceMetrics, settings: AnalyticsSettings
) -> list[Recommendation]:
    sharpe = performance.sharpe_ratio
    if sharpe.available and sharpe.value < settings.sharpe_threshold:
        return [
            Recommendation(
                category="Performance",
                priority="Medium",
                title="Improve Risk-Adjusted Returns",
                description=(
                    f"Sharpe ratio of {sharpe.value:.2f} is below the target of "
                    f"{settings.sharpe_threshold:.2f}."
                ),
                action="Review asset allocation and consider adding uncorrelated assets.",
                metric="sharpe_ratio",
                value=sharpe.value,
                threshold=settings.sharpe_threshold,
            )
        ]
    return []


def _risk_recommendations(risk: RiskMetrics, settings: AnalyticsSettings) -> list[Recommendation]:
    recommendations = []

    var = risk.var
    if var.available and var.value > settings.var_threshold:
        recommendations.append(
            Recommendation(
                category="Risk Management",
                priority="High",
                title="Reduce Portfolio Risk",
                description=(
                    f"One-period VaR at {risk.confidence_level:.0%} confidence is "
                    f"{var.value:.1%} of portfolio value, above the "
                    f"{settings.var_threshold:.1%} limit."
                ),
                action=(
                    "Consider reducing position sizes in high-risk assets or adding "
                    "hedging instruments."
                ),
                metric="var",
                value=var.value,
                threshold=settings.var_threshold,
            )
        )

    score = risk.risk_score
    if score.available and score.value >= settings.high_risk_score:
        recommendations.append(
            Recommendation(
                category="Risk Management",
                priority="High",
                title="Lower Composite Risk",
                description=f"Composite risk score is {score.value:.1f} out of 10.",
                action="Reduce volatility and concentration, or broaden diversification.",
                metric="risk_score",
                value=score.value,
                threshold=settings.high_risk_score,
            )
        )

    return recommendations


def _diversification_recommendations(
    diversification: DiversificationAnalysis, settings: AnalyticsSettings
) -> list[Recommendation]:
    recommendations = []

    if diversification.score < settings.diversification_threshold:
        n_sectors = len(diversification.sector_distribution)
        recommendations.append(
            Recommendation(
                category="Diversification",
                priority="Medium",
                title="Improve Diversification",
                description=(
                    f"Diversification score of {diversification.score:.2f} with "
                    f"{n_sectors} of {settings.max_sectors_ceiling} sectors represented."
                ),
                action=(
                    "Add positions in underrepresented sectors or consider broad "
                    "market ETFs."
                ),
                metric="diversification_score",
                value=diversification.score,
                threshold=settings.diversification_threshold,
            )
        )

    concentration = diversification.concentration
    largest = concentration.largest_holding_percent
    if largest is not None and largest > settings.max_position_pct:
        recommendations.append(
            Recommendation(
                category="Concentration",
                priority="High",
                title=f"Reduce Exposure to {concentration.largest_holding}",
                description=(
                    f"{concentration.largest_holding} is {largest:.1f}% of the portfolio, "
                    f"above the {settings.max_position_pct:.1f}% position limit."
                ),
                action="Trim the position and redistribute across other holdings.",
                metric="largest_holding_percent",
                value=largest,
                threshold=settings.max_position_pct,
            )
        )

    return recommendations


def generate_recommendations(
    settings: AnalyticsSettings,
    performance: PerformanceMetrics | None = None,
    risk: RiskMetrics | None = None,
    diversification: DiversificationAnalysis | None = None,
) -> list[Recommendation]:
    """Recommendations from whichever sections were computed."""
    recommendations: list[Recommendation] = []

    if performance is not None:
        recommendations.extend(_performance_recommendations(performance, settings))
    if risk is not None:
        recommendations.extend(_risk_recommendations(risk, settings))
    if diversification is not None:
        recommendations.extend(_diversification_recommendations(diversification, settings))

    logger.info(
        "generate_recommendations: complete",
        num_recommendations=len(recommendations),
        categories=sorted({r.category for r in recommendations}),
    )

    return recommendations


def rebalancing_actions(
    snapshot: PortfolioSnapshot, drift_threshold_pct: float = 5.0
) -> list[RebalanceAction]:
    """Trades for holdings drifting from their target allocation.

    Only holdings with ``target_allocation_percent`` are considered.
    """
    actions = []
    for h in snapshot.holdings:
        if h.target_allocation_percent is None or h.allocation_percent is None:
            continue

        drift = h.allocation_percent - h.target_allocation_percent
        if abs(drift) <= drift_threshold_pct:
            continue

        actions.append(
            RebalanceAction(
                symbol=h.symbol,
                current_percent=h.allocation_percent,
                target_percent=h.target_allocation_percent,
                drift_percent=drift,
                action="sell" if drift > 0 else "buy",
                trade_value=abs(drift) / 100.0 * snapshot.total_value,
            )
        )

    actions.sort(key=lambda a: abs(a.drift_percent), reverse=True)
    return actions


def tax_loss_opportunities(
    snapshot: PortfolioSnapshot,
    loss_threshold_pct: float = 10.0,
    tax_rate: float = 0.15,
) -> list[TaxLossOpportunity]:
    """Holdings whose unrealised loss exceeds the threshold."""
    opportunities = []
    for h in snapshot.holdings:
        cost = h.cost_basis
        if cost <= 0:
            continue

        unrealized = h.market_value - cost
        loss_pct = -unrealized / cost * 100.0
        if unrealized >= 0 or loss_pct < loss_threshold_pct:
            continue

        opportunities.append(
            TaxLossOpportunity(
                symbol=h.symbol,
                unrealized_loss=unrealized,
                loss_percent=loss_pct,
                potential_savings=-unrealized * tax_rate,
            )
        )

    opportunities.sort(key=lambda o: o.unrealized_loss)
    return opportunities


def build_optimization_suggestions(
    snapshot: PortfolioSnapshot, settings: AnalyticsSettings
) -> OptimizationSuggestions:
    """Rebalancing trades and tax-loss harvesting candidates."""
    harvest = tax_loss_opportunities(
        snapshot, settings.tax_loss_threshold_pct, settings.tax_rate
    )
    return OptimizationSuggestions(
        rebalancing=rebalancing_actions(snapshot, settings.rebalance_drift_pct),
        tax_loss_harvesting=harvest,
        potential_tax_savings=float(sum(o.potential_savings for o in harvest)),
    )
