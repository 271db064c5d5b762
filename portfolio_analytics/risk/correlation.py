"""
Correlation Analysis Module

Pairwise Pearson correlation between holdings' historical return series.
When per-holding price history is missing or unusable the analysis reports
why instead of fabricating values.
"""

from typing import Dict, List, Optional

import numpy as np
import pandas as pd
import structlog

from ..errors import DivisionByZeroError, InsufficientDataError
from ..models import CorrelationAnalysis, CorrelationPair, MarketData, ReasonCode
from ._guard import DEGRADABLE_ERRORS, escalates
from .returns import build_price_matrix, compute_simple_returns

logger = structlog.get_logger(__name__)


def correlation_matrix(returns: pd.DataFrame) -> pd.DataFrame:
    """Compute correlation matrix from returns DataFrame.

    Args:
        returns: DataFrame of returns (T x N)

    Returns:
        DataFrame with symbol labels on both axes (N x N correlation matrix)

    Raises:
        InsufficientDataError: With fewer than 2 observations
        DivisionByZeroError: If a series is constant (zero variance)
    """
    if returns.empty or len(returns) < 2:
        raise InsufficientDataError(
            f"Need at least 2 return observations, got {len(returns)}"
        )

    flat = [col for col in returns.columns if returns[col].max() == returns[col].min()]
    if flat:
        logger.warning("correlation_matrix: constant return series", affected_symbols=flat)
        raise DivisionByZeroError(f"Correlation undefined for constant series: {flat}")

    corr = returns.corr()
    # Guard against floating noise on the diagonal and just outside [-1, 1]
    values = np.clip(corr.values, -1.0, 1.0)
    np.fill_diagonal(values, 1.0)
    corr = pd.DataFrame(values, index=corr.index, columns=corr.columns)

    logger.debug("correlation_matrix: correlation computed", num_assets=len(corr))

    return corr


def ranked_pairs(corr: pd.DataFrame) -> List[CorrelationPair]:
    """Off-diagonal pairs (upper triangle) sorted by correlation, highest first."""
    rows, cols = np.triu_indices_from(corr.values, k=1)

    pairs = [
        CorrelationPair(
            symbol_a=str(corr.index[i]),
            symbol_b=str(corr.columns[j]),
            correlation=float(corr.iloc[i, j]),
        )
        for i, j in zip(rows, cols)
    ]
    pairs.sort(key=lambda p: p.correlation, reverse=True)
    return pairs


def analyze_correlation(
    symbols: List[str],
    market_data: Optional[MarketData],
    window: Optional[int] = None,
    strict: bool = False,
) -> CorrelationAnalysis:
    """Build the correlation section of the analysis report.

    Args:
        symbols: Holding symbols, in portfolio order
        market_data: Per-symbol price history, or None
        window: Optional lookback (number of return periods to keep)
        strict: Re-raise insufficient-data and alignment errors instead of
            reporting them
    """
    if market_data is None or not market_data.prices:
        return CorrelationAnalysis(
            reason=ReasonCode.NOT_PROVIDED,
            detail="no per-holding price history supplied",
            symbols=list(symbols),
        )

    if len(symbols) < 2:
        return CorrelationAnalysis(
            reason=ReasonCode.INSUFFICIENT_DATA,
            detail="need at least 2 holdings for pairwise correlation",
            symbols=list(symbols),
        )

    try:
        price_matrix = build_price_matrix(market_data.prices, symbols)
        if window is not None:
            price_matrix = price_matrix.iloc[-(window + 1):]
        corr = correlation_matrix(compute_simple_returns(price_matrix))
    except DEGRADABLE_ERRORS as exc:
        if escalates(exc, strict):
            raise
        logger.info("analyze_correlation: unavailable", reason=exc.code, detail=str(exc))
        return CorrelationAnalysis(
            reason=ReasonCode(exc.code), detail=str(exc), symbols=list(symbols)
        )

    pairs = ranked_pairs(corr)
    avg_corr = float(np.mean([p.correlation for p in pairs]))
    matrix: Dict[str, Dict[str, float]] = {
        str(a): {str(b): float(corr.loc[a, b]) for b in corr.columns} for a in corr.index
    }

    logger.info(
        "analyze_correlation: correlation computed",
        num_assets=len(corr),
        avg_correlation=avg_corr,
    )

    return CorrelationAnalysis(
        symbols=list(symbols),
        matrix=matrix,
        average_correlation=avg_corr,
        highest=pairs[0],
        lowest=pairs[-1],
    )
