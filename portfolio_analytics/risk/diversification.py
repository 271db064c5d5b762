"""Diversification and concentration analysis.

Groups holdings by sector, asset class and geography, and computes the
Herfindahl index, effective number of holdings, top-N concentration and the
0-1 diversification score.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable

import numpy as np
import structlog

from ..config import AnalyticsSettings
from ..errors import DivisionByZeroError, InsufficientDataError
from ..models import (
    ConcentrationMetrics,
    DiversificationAnalysis,
    Holding,
    PortfolioSnapshot,
)
from ._guard import guarded

logger = structlog.get_logger(__name__)


def holding_weights(snapshot: PortfolioSnapshot) -> np.ndarray:
    """Holding weights as fractions of invested (non-cash) value."""
    if not snapshot.holdings:
        raise InsufficientDataError("Portfolio has no holdings")

    values = np.array([h.market_value for h in snapshot.holdings], dtype=float)
    invested = values.sum()
    if invested <= 0:
        raise DivisionByZeroError("Invested value is zero")

    return values / invested


def herfindahl_index(snapshot: PortfolioSnapshot) -> float:
    """HHI = sum(w_i^2) over holding weights; in [1/n, 1]."""
    weights = holding_weights(snapshot)
    return float(np.sum(weights ** 2))


def effective_number_of_holdings(snapshot: PortfolioSnapshot) -> float:
    """1 / HHI: the number of equal-weight holdings with the same concentration."""
    return 1.0 / herfindahl_index(snapshot)


def distribution(
    snapshot: PortfolioSnapshot,
    key: Callable[[Holding], str | None],
) -> dict[str, float]:
    """Sum of allocation_percent per bucket, largest bucket first."""
    buckets: dict[str, float] = defaultdict(float)

    for h in snapshot.holdings:
        bucket = key(h) or "Unknown"
        buckets[bucket] += h.allocation_percent or 0.0

    return dict(sorted(buckets.items(), key=lambda item: item[1], reverse=True))


def sector_distribution(snapshot: PortfolioSnapshot) -> dict[str, float]:
    return distribution(snapshot, lambda h: h.sector)


def asset_class_distribution(snapshot: PortfolioSnapshot) -> dict[str, float]:
    return distribution(snapshot, lambda h: h.asset_type)


def geographic_distribution(snapshot: PortfolioSnapshot) -> dict[str, float]:
    return distribution(snapshot, lambda h: h.geography)


def score_components(
    snapshot: PortfolioSnapshot,
    holdings_ceiling: int = 20,
    sectors_ceiling: int = 11,
) -> tuple[float, float]:
    """Saturating holding-count and sector-count scores, each in [0, 1].

    holding_score = min(n_holdings / holdings_ceiling, 1)
    sector_score  = min(n_sectors / sectors_ceiling, 1)
    """
    n_holdings = len(snapshot.holdings)
    n_sectors = len({h.sector for h in snapshot.holdings})

    holding_score = min(n_holdings / holdings_ceiling, 1.0)
    sector_score = min(n_sectors / sectors_ceiling, 1.0)
    return holding_score, sector_score


def blend_scores(holding_score: float, sector_score: float, holding_weight: float = 0.5) -> float:
    """score = holding_weight * holding_score + (1 - holding_weight) * sector_score"""
    return holding_weight * holding_score + (1.0 - holding_weight) * sector_score


def diversification_score(
    snapshot: PortfolioSnapshot,
    holdings_ceiling: int = 20,
    sectors_ceiling: int = 11,
    holding_weight: float = 0.5,
) -> float:
    """Blend of the saturating holding and sector scores."""
    holding_score, sector_score = score_components(snapshot, holdings_ceiling, sectors_ceiling)
    return blend_scores(holding_score, sector_score, holding_weight)


def concentration_metrics(snapshot: PortfolioSnapshot) -> ConcentrationMetrics:
    """Top-5/top-10 allocation and the largest holding and sector."""
    ranked = sorted(
        snapshot.holdings,
        key=lambda h: h.allocation_percent or 0.0,
        reverse=True,
    )
    allocations = [h.allocation_percent or 0.0 for h in ranked]

    sectors = sector_distribution(snapshot)
    largest_sector = next(iter(sectors.items()), (None, None))

    return ConcentrationMetrics(
        top_5_percent=float(sum(allocations[:5])),
        top_10_percent=float(sum(allocations[:10])),
        largest_holding=ranked[0].symbol if ranked else None,
        largest_holding_percent=allocations[0] if ranked else None,
        largest_sector=largest_sector[0],
        largest_sector_percent=largest_sector[1],
    )


def analyze_diversification(
    snapshot: PortfolioSnapshot,
    settings: AnalyticsSettings,
) -> DiversificationAnalysis:
    """Build the diversification section of the analysis report."""
    strict = settings.strict_mode
    holding_score, sector_score = score_components(
        snapshot,
        holdings_ceiling=settings.max_holdings_ceiling,
        sectors_ceiling=settings.max_sectors_ceiling,
    )
    score = blend_scores(holding_score, sector_score, settings.holding_count_weight)

    analysis = DiversificationAnalysis(
        score=score,
        holding_score=holding_score,
        sector_score=sector_score,
        sector_distribution=sector_distribution(snapshot),
        asset_class_distribution=asset_class_distribution(snapshot),
        geographic_distribution=geographic_distribution(snapshot),
        cash_allocation_percent=snapshot.cash_allocation_percent,
        herfindahl_index=guarded("herfindahl_index", herfindahl_index, snapshot, strict=strict),
        effective_number_of_holdings=guarded(
            "effective_number_of_holdings", effective_number_of_holdings, snapshot, strict=strict
        ),
        concentration=concentration_metrics(snapshot),
    )

    logger.info(
        "analyze_diversification: analysis built",
        score=score,
        num_holdings=len(snapshot.holdings),
        num_sectors=len(analysis.sector_distribution),
        hhi=analysis.herfindahl_index.value,
    )

    return analysis
