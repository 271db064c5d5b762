"""
Risk Metrics Module

Volatility, historical Value-at-Risk, Expected Shortfall, higher moments and
the composite 1-10 risk score. Pure computation functions over a return series.
"""

import math
from typing import Dict, Optional

import numpy as np
import structlog
from scipy import stats

from ..config import AnalyticsSettings
from ..errors import DivisionByZeroError, InsufficientDataError
from ..models import MetricResult, PortfolioSnapshot, RiskMetrics
from ._guard import guarded
from .diversification import diversification_score, herfindahl_index
from .returns import compute_returns

logger = structlog.get_logger(__name__)


def _as_array(returns) -> np.ndarray:
    return np.asarray(returns, dtype=float).flatten()


def volatility(
    returns,
    annualize: bool = False,
    periods_per_year: int = 252,
) -> float:
    """Population standard deviation of period returns.

    Annualized vol = period vol * sqrt(periods_per_year)

    Raises:
        InsufficientDataError: With fewer than 2 returns
    """
    r = _as_array(returns)

    if r.size < 2:
        raise InsufficientDataError(f"Need at least 2 returns for volatility, got {r.size}")

    vol = float(np.std(r, ddof=0))
    if annualize:
        vol *= math.sqrt(periods_per_year)
    return vol


def downside_deviation(
    returns,
    annualize: bool = True,
    periods_per_year: int = 252,
) -> float:
    """Root mean square of the negative returns only.

    downside = sqrt(mean(r^2 for r < 0)) * sqrt(periods_per_year)

    Returns 0.0 when no negative return was observed.
    """
    r = _as_array(returns)

    if r.size < 2:
        raise InsufficientDataError(
            f"Need at least 2 returns for downside deviation, got {r.size}"
        )

    negative = r[r < 0]
    if negative.size == 0:
        return 0.0

    dd = float(np.sqrt(np.mean(negative ** 2)))
    if annualize:
        dd *= math.sqrt(periods_per_year)
    return dd


def min_observations(confidence: float) -> int:
    """Smallest sample for which the empirical (1 - confidence) quantile is meaningful."""
    if not 0 < confidence < 1:
        raise ValueError(f"Confidence must be between 0 and 1, got {confidence}")
    # Round first: 1 / (1 - 0.99) is 100.00000000000009 in floating point
    return math.ceil(round(1.0 / (1.0 - confidence), 9))


def _cutoff_index(n: int, confidence: float) -> int:
    idx = int(math.floor((1.0 - confidence) * n + 1e-9))
    return min(idx, n - 1)


def _check_sample(r: np.ndarray, confidence: float, metric: str) -> None:
    required = min_observations(confidence)
    if r.size < required:
        raise InsufficientDataError(
            f"insufficient sample: {metric} at {confidence:.0%} needs "
            f"{required} returns, got {r.size}",
            required=required,
            available=int(r.size),
        )


def historical_var(returns, confidence: float = 0.95) -> float:
    """Empirical Value-at-Risk as a positive loss fraction.

    Sort returns ascending and take the return at floor((1 - c) * n).
    The loss magnitude is reported; a non-negative cutoff return means no
    loss at that confidence and yields 0.

    Raises:
        InsufficientDataError: With fewer than 1 / (1 - c) observations
    """
    r = _as_array(returns)
    _check_sample(r, confidence, "VaR")

    sorted_returns = np.sort(r)
    cutoff = sorted_returns[_cutoff_index(r.size, confidence)]

    return float(max(-cutoff, 0.0))


def expected_shortfall(returns, confidence: float = 0.95) -> float:
    """Historical Expected Shortfall as a positive loss fraction.

    Mean of the sorted returns at or below the VaR cutoff index.
    """
    r = _as_array(returns)
    _check_sample(r, confidence, "Expected Shortfall")

    sorted_returns = np.sort(r)
    tail = sorted_returns[: _cutoff_index(r.size, confidence) + 1]

    return float(max(-tail.mean(), 0.0))


def _check_moments(r: np.ndarray, minimum: int, metric: str) -> None:
    if r.size < minimum:
        raise InsufficientDataError(f"Need at least {minimum} returns for {metric}, got {r.size}")
    if np.ptp(r) == 0:
        raise DivisionByZeroError(f"{metric} undefined for a constant return series")


def skewness(returns) -> float:
    """Third standardized moment of the return distribution."""
    r = _as_array(returns)
    _check_moments(r, 3, "skewness")
    return float(stats.skew(r, bias=True))


def kurtosis(returns) -> float:
    """Fourth standardized moment (3.0 for a normal distribution)."""
    r = _as_array(returns)
    _check_moments(r, 4, "kurtosis")
    return float(stats.kurtosis(r, fisher=False, bias=True))


def excess_kurtosis(returns) -> float:
    """Kurtosis minus 3."""
    return kurtosis(returns) - 3.0


def composite_risk_score(
    volatility: Optional[float],
    herfindahl: Optional[float],
    diversification: Optional[float],
    weights: Optional[Dict[str, float]] = None,
    volatility_cap: float = 0.10,
) -> float:
    """Composite risk score on a 1-10 scale (10 = riskiest).

    Components, each normalised to [0, 1]:
        volatility      -> min(vol / volatility_cap, 1)
        concentration   -> Herfindahl index
        diversification -> 1 - diversification score

    score = clamp(10 * weighted_mean(components), 1, 10)

    Unavailable (None) components are dropped and the remaining weights
    renormalised.

    Raises:
        InsufficientDataError: If no component is available
    """
    if weights is None:
        weights = {"volatility": 1 / 3, "concentration": 1 / 3, "diversification": 1 / 3}

    components = {}
    if volatility is not None:
        components["volatility"] = min(volatility / volatility_cap, 1.0)
    if herfindahl is not None:
        components["concentration"] = min(max(herfindahl, 0.0), 1.0)
    if diversification is not None:
        components["diversification"] = 1.0 - min(max(diversification, 0.0), 1.0)

    total_weight = sum(weights.get(k, 0.0) for k in components)
    if not components or total_weight <= 0:
        raise InsufficientDataError("No risk score component is available")

    raw = sum(weights.get(k, 0.0) * v for k, v in components.items()) / total_weight
    return float(min(max(raw * 10.0, 1.0), 10.0))


def _scaled(metric: MetricResult, factor: float) -> MetricResult:
    if not metric.available:
        return metric
    return MetricResult.of(metric.value * factor)


def build_risk_metrics(
    values,
    snapshot: PortfolioSnapshot,
    settings: AnalyticsSettings,
) -> RiskMetrics:
    """Build the risk section of the analysis report.

    Args:
        values: Portfolio value history, already trimmed to the lookback window
        snapshot: Portfolio snapshot (for currency VaR and concentration)
        settings: Engine configuration

    Returns:
        RiskMetrics with every metric as a MetricResult
    """
    strict = settings.strict_mode
    confidence = settings.confidence_level

    returns_issue = None
    r = np.array([], dtype=float)
    try:
        r = compute_returns(values)
    except DivisionByZeroError as exc:
        # A zero value at a period boundary leaves no return series at all
        if strict:
            raise
        returns_issue = MetricResult.from_error(exc)

    def metric(name, fn, *args, **kwargs) -> MetricResult:
        if returns_issue is not None:
            return returns_issue
        return guarded(name, fn, r, *args, strict=strict, **kwargs)

    vol = metric("volatility", volatility)
    var = metric("var", historical_var, confidence)
    var_99 = metric("var_99", historical_var, 0.99)

    hhi = guarded("herfindahl_index", herfindahl_index, snapshot, strict=strict)
    div = diversification_score(
        snapshot,
        holdings_ceiling=settings.max_holdings_ceiling,
        sectors_ceiling=settings.max_sectors_ceiling,
        holding_weight=settings.holding_count_weight,
    )
    score = guarded(
        "risk_score",
        composite_risk_score,
        vol.value,
        hhi.value,
        div,
        weights=settings.risk_score_weights,
        volatility_cap=settings.risk_score_volatility_cap,
        strict=strict,
    )

    metrics = RiskMetrics(
        confidence_level=confidence,
        volatility=vol,
        annualized_volatility=metric(
            "annualized_volatility", volatility,
            annualize=True, periods_per_year=settings.periods_per_year,
        ),
        var=var,
        var_99=var_99,
        var_amount=_scaled(var, snapshot.total_value),
        var_99_amount=_scaled(var_99, snapshot.total_value),
        expected_shortfall=metric("expected_shortfall", expected_shortfall, confidence),
        expected_shortfall_99=metric("expected_shortfall_99", expected_shortfall, 0.99),
        skewness=metric("skewness", skewness),
        kurtosis=metric("kurtosis", kurtosis),
        excess_kurtosis=metric("excess_kurtosis", excess_kurtosis),
        herfindahl_index=hhi,
        risk_score=score,
    )

    logger.info(
        "build_risk_metrics: metrics built",
        num_returns=int(r.size),
        volatility=vol.value,
        var=var.value,
        risk_score=score.value,
    )

    return metrics
