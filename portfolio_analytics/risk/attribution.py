"""
Performance Attribution Module

Decomposes the reporting-period portfolio return into per-holding and
per-group (sector, asset class, geography) contributions.

contribution_i = (market_value_i / total_value) * period_return_i

Cash contributes nothing, so the contributions sum to the portfolio return.
"""

from collections import defaultdict
from typing import Callable, Dict, List, Optional

import structlog

from ..errors import DivisionByZeroError
from ..models import (
    GroupContribution,
    Holding,
    HoldingContribution,
    PerformanceAttribution,
    PortfolioSnapshot,
)

logger = structlog.get_logger(__name__)


def holding_contributions(snapshot: PortfolioSnapshot) -> List[HoldingContribution]:
    """Per-holding weight, period return and weighted contribution.

    Raises:
        DivisionByZeroError: If total portfolio value is zero
    """
    if snapshot.total_value == 0:
        raise DivisionByZeroError("Attribution undefined: total portfolio value is zero")

    contributions = []
    for h in snapshot.holdings:
        weight = h.market_value / snapshot.total_value
        period_return = h.holding_return
        contributions.append(
            HoldingContribution(
                symbol=h.symbol,
                weight=weight,
                period_return=period_return,
                contribution=weight * period_return,
            )
        )

    return contributions


def group_contributions(
    snapshot: PortfolioSnapshot,
    key: Callable[[Holding], Optional[str]],
) -> List[GroupContribution]:
    """Aggregate contributions for holdings sharing a label.

    Group return = group contribution / group weight (None for zero weight).
    Sorted by absolute contribution, largest first.
    """
    by_holding = {c.symbol: c for c in holding_contributions(snapshot)}

    weights: Dict[str, float] = defaultdict(float)
    contribs: Dict[str, float] = defaultdict(float)
    for h in snapshot.holdings:
        label = key(h) or "Unknown"
        c = by_holding[h.symbol]
        weights[label] += c.weight
        contribs[label] += c.contribution

    groups = [
        GroupContribution(
            name=label,
            weight=weights[label],
            period_return=(contribs[label] / weights[label]) if weights[label] != 0 else None,
            contribution=contribs[label],
        )
        for label in weights
    ]
    groups.sort(key=lambda g: abs(g.contribution), reverse=True)
    return groups


def calculate_attribution(snapshot: PortfolioSnapshot) -> PerformanceAttribution:
    """Build the attribution section of the analysis report."""
    by_holding = holding_contributions(snapshot)
    portfolio_return = float(sum(c.contribution for c in by_holding))

    attribution = PerformanceAttribution(
        portfolio_return=portfolio_return,
        by_holding=by_holding,
        by_sector=group_contributions(snapshot, lambda h: h.sector),
        by_asset_class=group_contributions(snapshot, lambda h: h.asset_type),
        by_geography=group_contributions(snapshot, lambda h: h.geography),
    )

    logger.info(
        "calculate_attribution: attribution built",
        portfolio_return=portfolio_return,
        num_holdings=len(by_holding),
        num_sectors=len(attribution.by_sector),
    )

    return attribution
