"""Pluggable ESG data.

The engine never invents ESG numbers. A provider returns per-symbol scores;
the default provider has no data, which yields an "unavailable" ESG section.
"""

from __future__ import annotations

from typing import Mapping, Protocol, runtime_checkable

import structlog

from .models import ESGAnalysis, ESGScores, PortfolioSnapshot, ReasonCode

logger = structlog.get_logger(__name__)


@runtime_checkable
class ESGDataProvider(Protocol):
    """Source of ESG scores keyed by symbol."""

    name: str

    def get_scores(self, symbols: list[str]) -> Mapping[str, ESGScores]:
        """Return scores for the symbols it covers; omit the rest."""
        ...


class UnavailableESGProvider:
    """Default provider: no ESG data is available."""

    name = "unavailable"

    def get_scores(self, symbols: list[str]) -> Mapping[str, ESGScores]:
        return {}


class StaticESGProvider:
    """Serves scores from an in-memory mapping (fixtures, cached vendor pulls)."""

    name = "static"

    def __init__(self, scores: Mapping[str, ESGScores | dict]):
        self._scores = {
            symbol: s if isinstance(s, ESGScores) else ESGScores.model_validate(s)
            for symbol, s in scores.items()
        }

    def get_scores(self, symbols: list[str]) -> Mapping[str, ESGScores]:
        return {s: self._scores[s] for s in symbols if s in self._scores}


def _weighted(values: list[tuple[float, float | None]]) -> float | None:
    pairs = [(w, v) for w, v in values if v is not None]
    total = sum(w for w, _ in pairs)
    if not pairs or total <= 0:
        return None
    return sum(w * v for w, v in pairs) / total


def analyze_esg(snapshot: PortfolioSnapshot, provider: ESGDataProvider | None = None) -> ESGAnalysis:
    """Market-value weighted ESG scores over the holdings the provider covers.

    ``carbon_footprint`` is the weighted carbon intensity. ``coverage_percent``
    is the share of invested value with any scores.
    """
    provider = provider or UnavailableESGProvider()
    scores = provider.get_scores(snapshot.symbols)

    if not scores:
        return ESGAnalysis(
            reason=ReasonCode.NOT_PROVIDED,
            detail="no ESG data available",
            provider=provider.name,
        )

    covered = [h for h in snapshot.holdings if h.symbol in scores]
    invested = snapshot.invested_value

    def field(attr: str) -> float | None:
        return _weighted([(h.market_value, getattr(scores[h.symbol], attr)) for h in covered])

    coverage = (
        sum(h.market_value for h in covered) / invested * 100.0 if invested > 0 else 0.0
    )

    analysis = ESGAnalysis(
        provider=provider.name,
        overall_score=field("overall"),
        environmental_score=field("environmental"),
        social_score=field("social"),
        governance_score=field("governance"),
        carbon_footprint=field("carbon_intensity"),
        controversies={
            h.symbol: tuple(scores[h.symbol].controversies)
            for h in covered
            if scores[h.symbol].controversies
        },
        coverage_percent=coverage,
    )

    logger.info(
        "analyze_esg: analysis built",
        provider=provider.name,
        coverage_percent=coverage,
        overall_score=analysis.overall_score,
    )

    return analysis
