"""
Performance Metrics Module

Total and annualized return, risk-adjusted ratios (Sharpe, Sortino, Calmar),
benchmark-relative statistics (alpha, beta, tracking error, information ratio)
and win/loss statistics. Ratios with a zero denominator raise
DivisionByZeroError instead of returning inf/nan.
"""

import math
from typing import Optional, Sequence, Union

import numpy as np
import structlog

from ..config import AnalyticsSettings
from ..errors import AlignmentError, AnalyticsError, DivisionByZeroError, InsufficientDataError
from ..models import MetricResult, PerformanceMetrics, ReasonCode
from ._guard import guarded
from .metrics import downside_deviation, volatility
from .returns import (
    average_drawdown,
    check_alignment,
    compute_returns,
    current_drawdown,
    max_drawdown,
    total_return,
    trailing_returns,
    trim_to_window,
)

logger = structlog.get_logger(__name__)


def _as_array(returns) -> np.ndarray:
    return np.asarray(returns, dtype=float).flatten()


def annualized_return(returns, periods_per_year: int = 252) -> float:
    """Geometric annualized return.

    factor = prod(1 + r); annualized = factor ** (periods_per_year / n) - 1
    """
    r = _as_array(returns)

    if r.size == 0:
        raise InsufficientDataError("Need at least 1 return for annualized return")

    factor = float(np.prod(1.0 + r))
    if factor <= 0:
        # Total loss: nothing left to compound
        return -1.0

    return factor ** (periods_per_year / r.size) - 1.0


def sharpe_ratio(
    returns,
    risk_free_rate: float = 0.02,
    periods_per_year: int = 252,
) -> float:
    """(annualized return - risk free) / annualized volatility"""
    ann_vol = volatility(returns, annualize=True, periods_per_year=periods_per_year)
    if ann_vol == 0:
        raise DivisionByZeroError("Sharpe ratio undefined: zero volatility")

    ann_ret = annualized_return(returns, periods_per_year)
    return (ann_ret - risk_free_rate) / ann_vol


def has_downside(returns) -> bool:
    return bool((_as_array(returns) < 0).any())


def sortino_ratio(
    returns,
    risk_free_rate: float = 0.02,
    periods_per_year: int = 252,
) -> float:
    """(annualized return - risk free) / annualized downside deviation

    Callers should check ``has_downside`` first; a series without negative
    returns raises DivisionByZeroError here.
    """
    dd = downside_deviation(returns, annualize=True, periods_per_year=periods_per_year)
    if dd == 0:
        raise DivisionByZeroError("Sortino ratio undefined: no downside deviation")

    ann_ret = annualized_return(returns, periods_per_year)
    return (ann_ret - risk_free_rate) / dd


def calmar_ratio(values: Sequence[float], periods_per_year: int = 252) -> float:
    """annualized return / max drawdown, both from the same value series."""
    mdd = max_drawdown(values)
    if mdd == 0:
        raise DivisionByZeroError("Calmar ratio undefined: zero max drawdown")

    ann_ret = annualized_return(compute_returns(values), periods_per_year)
    return ann_ret / mdd


def _paired(portfolio_returns, benchmark_returns):
    p = _as_array(portfolio_returns)
    b = _as_array(benchmark_returns)
    check_alignment(p, b)
    if p.size < 2:
        raise InsufficientDataError(
            f"Need at least 2 aligned returns for benchmark statistics, got {p.size}"
        )
    return p, b


def beta(portfolio_returns, benchmark_returns) -> float:
    """OLS slope: cov(portfolio, benchmark) / var(benchmark), population moments.

    Raises:
        AlignmentError: If the series lengths differ
        DivisionByZeroError: If the benchmark has zero variance
    """
    p, b = _paired(portfolio_returns, benchmark_returns)

    bench_var = float(np.var(b))
    if bench_var == 0:
        raise DivisionByZeroError("Beta undefined: zero benchmark variance")

    covariance = float(np.mean((p - p.mean()) * (b - b.mean())))
    return covariance / bench_var


def alpha(
    portfolio_returns,
    benchmark_returns,
    risk_free_rate: float = 0.02,
    periods_per_year: int = 252,
) -> float:
    """Jensen's alpha on annualized returns.

    alpha = R_p - (R_f + beta * (R_b - R_f))
    """
    b = beta(portfolio_returns, benchmark_returns)
    ann_p = annualized_return(portfolio_returns, periods_per_year)
    ann_b = annualized_return(benchmark_returns, periods_per_year)
    return ann_p - (risk_free_rate + b * (ann_b - risk_free_rate))


def benchmark_correlation(portfolio_returns, benchmark_returns) -> float:
    """Pearson correlation between portfolio and benchmark returns."""
    p, b = _paired(portfolio_returns, benchmark_returns)

    if np.std(p) == 0 or np.std(b) == 0:
        raise DivisionByZeroError("Correlation undefined: constant return series")

    return float(np.corrcoef(p, b)[0, 1])


def tracking_error(
    portfolio_returns,
    benchmark_returns,
    periods_per_year: int = 252,
) -> float:
    """Annualized standard deviation of active returns (portfolio - benchmark)."""
    p, b = _paired(portfolio_returns, benchmark_returns)
    return float(np.std(p - b, ddof=0) * math.sqrt(periods_per_year))


def information_ratio(
    portfolio_returns,
    benchmark_returns,
    periods_per_year: int = 252,
) -> float:
    """(annualized portfolio return - annualized benchmark return) / tracking error"""
    te = tracking_error(portfolio_returns, benchmark_returns, periods_per_year)
    if te == 0:
        raise DivisionByZeroError("Information ratio undefined: zero tracking error")

    ann_p = annualized_return(portfolio_returns, periods_per_year)
    ann_b = annualized_return(benchmark_returns, periods_per_year)
    return (ann_p - ann_b) / te


def win_rate(returns) -> float:
    """Fraction of periods with a positive return."""
    r = _as_array(returns)
    if r.size == 0:
        raise InsufficientDataError("Need at least 1 return for win rate")
    return float(np.count_nonzero(r > 0) / r.size)


def average_win(returns) -> float:
    """Mean of the positive returns."""
    r = _as_array(returns)
    wins = r[r > 0]
    if wins.size == 0:
        raise DivisionByZeroError("Average win undefined: no winning periods")
    return float(wins.mean())


def average_loss(returns) -> float:
    """Mean absolute value of the negative returns."""
    r = _as_array(returns)
    losses = r[r < 0]
    if losses.size == 0:
        raise DivisionByZeroError("Average loss undefined: no losing periods")
    return float(np.abs(losses).mean())


def win_loss_ratio(returns) -> float:
    """average win / average loss"""
    return average_win(returns) / average_loss(returns)


def build_performance_metrics(
    values: Sequence[float],
    settings: AnalyticsSettings,
    benchmark_values: Optional[Sequence[float]] = None,
) -> PerformanceMetrics:
    """Build the performance section of the analysis report.

    Args:
        values: Full chronological portfolio value history
        settings: Engine configuration
        benchmark_values: Optional benchmark history, same length as ``values``

    Alignment is checked on the full histories before the lookback window is
    applied, so a length mismatch is never hidden by trimming. Total return
    spans the full history; every other metric uses the lookback window.

    In strict mode a zero value at a period boundary fails the call, since no
    return-based metric can be computed. Other zero denominators stay per
    metric.
    """
    strict = settings.strict_mode
    ppy = settings.periods_per_year
    rf = settings.risk_free_rate

    # Benchmark availability: None (usable), a MetricResult, or an error
    bench_issue: Union[None, MetricResult, AnalyticsError] = None
    bench_values = None
    if benchmark_values is None:
        bench_issue = MetricResult.unavailable(ReasonCode.NOT_PROVIDED, "no benchmark supplied")
    else:
        try:
            check_alignment(values, benchmark_values)
            bench_values = trim_to_window(benchmark_values, settings.lookback_period)
        except AlignmentError as exc:
            if strict:
                raise
            bench_issue = exc

    window = trim_to_window(values, settings.lookback_period)

    returns_issue: Optional[AnalyticsError] = None
    returns = np.array([], dtype=float)
    try:
        returns = compute_returns(window)
    except DivisionByZeroError as exc:
        if strict:
            raise
        returns_issue = exc

    bench_returns = None
    if bench_issue is None:
        try:
            bench_returns = compute_returns(bench_values)
        except DivisionByZeroError as exc:
            if strict:
                raise
            bench_issue = exc

    def metric(name, fn, *args, needs_benchmark=False, **kwargs) -> MetricResult:
        issues = [returns_issue] + ([bench_issue] if needs_benchmark else [])
        for issue in issues:
            if isinstance(issue, MetricResult):
                return issue
            if issue is not None:
                return MetricResult.from_error(issue)
        return guarded(name, fn, *args, strict=strict, **kwargs)

    if returns_issue is None and not has_downside(returns) and returns.size >= 2:
        sortino = MetricResult.unavailable(
            ReasonCode.NO_DOWNSIDE_RISK, "no downside risk observed"
        )
    else:
        sortino = metric("sortino_ratio", sortino_ratio, returns, rf, ppy)

    if bench_issue is None:
        bench_total = guarded(
            "benchmark_total_return", total_return, benchmark_values, strict=strict
        )
    elif isinstance(bench_issue, MetricResult):
        bench_total = bench_issue
    else:
        bench_total = MetricResult.from_error(bench_issue)

    metrics = PerformanceMetrics(
        num_periods=int(returns.size),
        total_return=guarded("total_return", total_return, values, strict=strict),
        annualized_return=metric("annualized_return", annualized_return, returns, ppy),
        volatility=metric(
            "volatility", volatility, returns, annualize=True, periods_per_year=ppy
        ),
        downside_volatility=metric(
            "downside_volatility", downside_deviation, returns, annualize=True, periods_per_year=ppy
        ),
        sharpe_ratio=metric("sharpe_ratio", sharpe_ratio, returns, rf, ppy),
        sortino_ratio=sortino,
        calmar_ratio=metric("calmar_ratio", calmar_ratio, window, ppy),
        max_drawdown=guarded("max_drawdown", max_drawdown, window, strict=strict),
        current_drawdown=guarded("current_drawdown", current_drawdown, window, strict=strict),
        average_drawdown=guarded("average_drawdown", average_drawdown, window, strict=strict),
        alpha=metric("alpha", alpha, returns, bench_returns, rf, ppy, needs_benchmark=True),
        beta=metric("beta", beta, returns, bench_returns, needs_benchmark=True),
        benchmark_correlation=metric(
            "benchmark_correlation", benchmark_correlation, returns, bench_returns,
            needs_benchmark=True,
        ),
        tracking_error=metric(
            "tracking_error", tracking_error, returns, bench_returns, ppy, needs_benchmark=True
        ),
        information_ratio=metric(
            "information_ratio", information_ratio, returns, bench_returns, ppy,
            needs_benchmark=True,
        ),
        benchmark_total_return=bench_total,
        benchmark_annualized_return=metric(
            "benchmark_annualized_return", annualized_return, bench_returns, ppy,
            needs_benchmark=True,
        ),
        period_returns=trailing_returns(window),
        win_rate=metric("win_rate", win_rate, returns),
        average_win=metric("average_win", average_win, returns),
        average_loss=metric("average_loss", average_loss, returns),
        win_loss_ratio=metric("win_loss_ratio", win_loss_ratio, returns),
    )

    logger.info(
        "build_performance_metrics: metrics built",
        num_periods=metrics.num_periods,
        total_return=metrics.total_return.value,
        sharpe_ratio=metrics.sharpe_ratio.value,
        benchmark=bench_issue is None,
    )

    return metrics
