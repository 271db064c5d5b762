"""Pydantic models for analytics inputs and the analysis report.

Inputs (``Holding``, ``PortfolioSnapshot``, ``MarketData``, ``BenchmarkData``)
are frozen so the engine cannot mutate caller data, and sequences are stored
as tuples.  Report sections are plain nested models; every metric that can be
undefined is a ``MetricResult``.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import AnalyticsError


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)


def _number(value: Any, name: str) -> float:
    """Lax numeric coercion for before-validators; failures become ValidationError."""
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None


# ---------------------------------------------------------------------------
# Metric values
# ---------------------------------------------------------------------------


class ReasonCode(str, Enum):
    """Why a metric has no value."""

    INSUFFICIENT_DATA = "insufficient_data"
    DIVISION_BY_ZERO = "division_by_zero"
    ALIGNMENT_ERROR = "alignment_error"
    NO_DOWNSIDE_RISK = "no_downside_risk"
    NOT_PROVIDED = "not_provided"


class MetricResult(_Frozen):
    """Either a finite value or an explanation of why there is none."""

    value: float | None = None
    reason: ReasonCode | None = None
    detail: str | None = None

    @classmethod
    def of(cls, value: float) -> "MetricResult":
        value = float(value)
        if not math.isfinite(value):
            # Non-finite numbers never reach the report
            return cls(reason=ReasonCode.DIVISION_BY_ZERO, detail=f"non-finite result {value}")
        return cls(value=value)

    @classmethod
    def unavailable(cls, reason: ReasonCode, detail: str | None = None) -> "MetricResult":
        return cls(reason=reason, detail=detail)

    @classmethod
    def from_error(cls, exc: AnalyticsError) -> "MetricResult":
        return cls(reason=ReasonCode(exc.code), detail=str(exc))

    @property
    def available(self) -> bool:
        return self.value is not None


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class Holding(_Frozen):
    """A single position in the portfolio snapshot.

    ``market_value`` is derived from ``shares * current_price`` when omitted.
    ``allocation_percent`` is filled in by ``PortfolioSnapshot`` when omitted.
    """

    symbol: str = Field(min_length=1)
    company_name: str | None = None
    shares: float = Field(ge=0)
    average_cost: float = 0.0
    current_price: float = Field(ge=0)
    market_value: float
    day_change: float = 0.0
    day_change_percent: float = 0.0
    allocation_percent: float | None = None
    sector: str = "Unknown"
    asset_type: str = "Equity"
    geography: str | None = None
    beta: float | None = None
    period_return: float | None = None
    target_allocation_percent: float | None = Field(default=None, ge=0, le=100)

    @model_validator(mode="before")
    @classmethod
    def _derive_market_value(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("market_value") is None:
            shares = data.get("shares")
            price = data.get("current_price")
            if shares is not None and price is not None:
                data = {
                    **data,
                    "market_value": _number(shares, "shares") * _number(price, "current_price"),
                }
        return data

    @property
    def cost_basis(self) -> float:
        return self.shares * self.average_cost

    @property
    def holding_return(self) -> float:
        """Reporting-period return as a fraction."""
        if self.period_return is not None:
            return self.period_return
        return self.day_change_percent / 100.0


class PortfolioSnapshot(_Frozen):
    """Holdings, cash and the chronological history of total portfolio value."""

    holdings: tuple[Holding, ...] = Field(default_factory=tuple)
    cash_balance: float = 0.0
    total_value: float
    historical_values: tuple[float, ...] = Field(default_factory=tuple)

    @model_validator(mode="before")
    @classmethod
    def _derive_totals(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        raw_holdings = data.get("holdings") or []
        if not isinstance(raw_holdings, (list, tuple)):
            # Field validation reports the bad type
            return data

        holdings = [
            h if isinstance(h, Holding) else Holding.model_validate(h) for h in raw_holdings
        ]
        cash = _number(data.get("cash_balance") or 0.0, "cash_balance")
        total = data.get("total_value")
        if total is None:
            total = sum(h.market_value for h in holdings) + cash
        else:
            total = _number(total, "total_value")

        filled = []
        for h in holdings:
            if h.allocation_percent is None and total > 0:
                h = h.model_copy(update={"allocation_percent": h.market_value / total * 100.0})
            filled.append(h)

        return {**data, "holdings": filled, "cash_balance": cash, "total_value": total}

    @property
    def invested_value(self) -> float:
        return sum(h.market_value for h in self.holdings)

    @property
    def cash_allocation_percent(self) -> float:
        if self.total_value <= 0:
            return 0.0
        return self.cash_balance / self.total_value * 100.0

    @property
    def symbols(self) -> list[str]:
        return [h.symbol for h in self.holdings]


class MarketData(_Frozen):
    """Per-symbol historical price series, chronological, one per period."""

    prices: dict[str, tuple[float, ...]] = Field(default_factory=dict)


class BenchmarkData(_Frozen):
    """Reference index values aligned by period index with the portfolio."""

    symbol: str | None = None
    historical_values: tuple[float, ...] = Field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Scenario catalogues
# ---------------------------------------------------------------------------


class StressScenario(_Frozen):
    name: str
    market_drop: float = Field(le=0, ge=-1)
    correlation: float = Field(ge=0, le=1)


class MacroScenario(_Frozen):
    name: str
    market_return: float
    volatility: float = Field(ge=0)


# ---------------------------------------------------------------------------
# Report sections
# ---------------------------------------------------------------------------


class PortfolioSummary(_Frozen):
    total_value: float
    total_cost: float
    total_gain_loss: float
    total_gain_loss_percent: float | None
    day_gain_loss: float
    day_gain_loss_percent: float | None
    cash_balance: float
    number_of_holdings: int
    average_holding_size: float | None
    largest_holding: float | None
    smallest_holding: float | None


class PerformanceMetrics(_Frozen):
    num_periods: int
    total_return: MetricResult
    annualized_return: MetricResult
    volatility: MetricResult
    downside_volatility: MetricResult
    sharpe_ratio: MetricResult
    sortino_ratio: MetricResult
    calmar_ratio: MetricResult
    max_drawdown: MetricResult
    current_drawdown: MetricResult
    average_drawdown: MetricResult
    alpha: MetricResult
    beta: MetricResult
    benchmark_correlation: MetricResult
    tracking_error: MetricResult
    information_ratio: MetricResult
    benchmark_total_return: MetricResult
    benchmark_annualized_return: MetricResult
    period_returns: dict[str, float | None]
    win_rate: MetricResult
    average_win: MetricResult
    average_loss: MetricResult
    win_loss_ratio: MetricResult


class RiskMetrics(_Frozen):
    confidence_level: float
    volatility: MetricResult
    annualized_volatility: MetricResult
    var: MetricResult
    var_99: MetricResult
    var_amount: MetricResult
    var_99_amount: MetricResult
    expected_shortfall: MetricResult
    expected_shortfall_99: MetricResult
    skewness: MetricResult
    kurtosis: MetricResult
    excess_kurtosis: MetricResult
    herfindahl_index: MetricResult
    risk_score: MetricResult


class HoldingContribution(_Frozen):
    symbol: str
    weight: float
    period_return: float
    contribution: float


class GroupContribution(_Frozen):
    name: str
    weight: float
    period_return: float | None
    contribution: float


class PerformanceAttribution(_Frozen):
    portfolio_return: float
    by_holding: tuple[HoldingContribution, ...]
    by_sector: tuple[GroupContribution, ...]
    by_asset_class: tuple[GroupContribution, ...]
    by_geography: tuple[GroupContribution, ...]


class ConcentrationMetrics(_Frozen):
    top_5_percent: float
    top_10_percent: float
    largest_holding: str | None
    largest_holding_percent: float | None
    largest_sector: str | None
    largest_sector_percent: float | None


class DiversificationAnalysis(_Frozen):
    score: float
    holding_score: float
    sector_score: float
    sector_distribution: dict[str, float]
    asset_class_distribution: dict[str, float]
    geographic_distribution: dict[str, float]
    cash_allocation_percent: float
    herfindahl_index: MetricResult
    effective_number_of_holdings: MetricResult
    concentration: ConcentrationMetrics


class CorrelationPair(_Frozen):
    symbol_a: str
    symbol_b: str
    correlation: float


class CorrelationAnalysis(_Frozen):
    reason: ReasonCode | None = None
    detail: str | None = None
    symbols: tuple[str, ...] = Field(default_factory=tuple)
    matrix: dict[str, dict[str, float]] = Field(default_factory=dict)
    average_correlation: float | None = None
    highest: CorrelationPair | None = None
    lowest: CorrelationPair | None = None

    @property
    def available(self) -> bool:
        return self.reason is None


class HoldingImpact(_Frozen):
    symbol: str
    beta: float
    impact_percent: float
    impact_value: float


class StressResult(_Frozen):
    scenario: str
    market_drop: float
    correlation: float
    portfolio_loss: float
    portfolio_loss_percent: float
    worst_holding: HoldingImpact | None
    best_holding: HoldingImpact | None
    recovery_months: int | None


class StressTestReport(_Frozen):
    scenarios: tuple[StressResult, ...]
    average_loss_percent: float | None
    worst_case: StressResult | None
    holding_betas: dict[str, float]
    beta_sources: dict[str, str]


class ScenarioResult(_Frozen):
    scenario: str
    market_return: float
    expected_return: float
    expected_volatility: float
    expected_value: float
    probability: float
    probability_weighted_return: float
    best_performer: str | None
    worst_performer: str | None


class ScenarioAnalysis(_Frozen):
    portfolio_beta: float
    scenarios: tuple[ScenarioResult, ...]
    expected_return: float
    expected_value: float
    best_case: str | None
    worst_case: str | None


class ESGScores(_Frozen):
    """Scores for one symbol as returned by an ``ESGDataProvider``."""

    environmental: float | None = None
    social: float | None = None
    governance: float | None = None
    overall: float | None = None
    carbon_intensity: float | None = None
    controversies: tuple[str, ...] = Field(default_factory=tuple)


class ESGAnalysis(_Frozen):
    reason: ReasonCode | None = None
    detail: str | None = None
    provider: str | None = None
    overall_score: float | None = None
    environmental_score: float | None = None
    social_score: float | None = None
    governance_score: float | None = None
    carbon_footprint: float | None = None
    controversies: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    coverage_percent: float = 0.0

    @property
    def available(self) -> bool:
        return self.reason is None


class Recommendation(_Frozen):
    category: str
    priority: str
    title: str
    description: str
    action: str
    metric: str | None = None
    value: float | None = None
    threshold: float | None = None


class RebalanceAction(_Frozen):
    symbol: str
    current_percent: float
    target_percent: float
    drift_percent: float
    action: str
    trade_value: float


class TaxLossOpportunity(_Frozen):
    symbol: str
    unrealized_loss: float
    loss_percent: float
    potential_savings: float


class OptimizationSuggestions(_Frozen):
    rebalancing: tuple[RebalanceAction, ...]
    tax_loss_harvesting: tuple[TaxLossOpportunity, ...]
    potential_tax_savings: float


class AnalysisReport(_Frozen):
    """Everything one ``analyze_portfolio`` call produced.

    Sections disabled through ``enabled_sections`` are ``None``.
    """

    generated_at: datetime
    benchmark_symbol: str | None = None
    summary: PortfolioSummary | None = None
    performance: PerformanceMetrics | None = None
    risk: RiskMetrics | None = None
    attribution: PerformanceAttribution | None = None
    diversification: DiversificationAnalysis | None = None
    correlation: CorrelationAnalysis | None = None
    stress: StressTestReport | None = None
    scenarios: ScenarioAnalysis | None = None
    esg: ESGAnalysis | None = None
    recommendations: tuple[Recommendation, ...] = Field(default_factory=tuple)
    optimization: OptimizationSuggestions | None = None
