"""
Return Construction Module

Pure functions turning chronological value/price series into period returns,
drawdowns and trailing-window returns. Series are never reordered and never
silently truncated to make lengths agree.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import structlog

from ..errors import AlignmentError, DivisionByZeroError, InsufficientDataError

logger = structlog.get_logger(__name__)

TRAILING_WINDOWS = (1, 5, 21, 63, 126, 252)


def compute_returns(values: Sequence[float]) -> np.ndarray:
    """Compute simple period returns: (v[i+1] - v[i]) / v[i]

    Args:
        values: Chronological sequence of portfolio (or asset) values

    Returns:
        Array of length n-1; empty when fewer than 2 values

    Raises:
        DivisionByZeroError: If any value used as a denominator is zero
    """
    arr = np.asarray(values, dtype=float)

    if arr.size < 2:
        return np.array([], dtype=float)

    denominators = arr[:-1]
    zero_idx = np.flatnonzero(denominators == 0)
    if zero_idx.size:
        index = int(zero_idx[0])
        logger.error("compute_returns: zero value at period boundary", index=index)
        raise DivisionByZeroError(
            f"Return undefined: value at index {index} is zero", index=index
        )

    return (arr[1:] - denominators) / denominators


def total_return(values: Sequence[float]) -> float:
    """Total return over the raw value series: (last - first) / first"""
    arr = np.asarray(values, dtype=float)

    if arr.size < 2:
        raise InsufficientDataError(
            f"Need at least 2 values for total return, got {arr.size}"
        )

    if arr[0] == 0:
        raise DivisionByZeroError("Total return undefined: first value is zero", index=0)

    return float((arr[-1] - arr[0]) / arr[0])


def trim_to_window(values: Sequence[float], window: int) -> np.ndarray:
    """Keep the last ``window`` periods, i.e. the last window + 1 values.

    Shorter series are returned whole.
    """
    if window < 1:
        raise ValueError(f"Window must be >= 1, got {window}")

    arr = np.asarray(values, dtype=float)
    if arr.size > window + 1:
        logger.debug(
            "trim_to_window: series trimmed",
            original_length=int(arr.size),
            window=window,
        )
        arr = arr[-(window + 1):]
    return arr


def check_alignment(
    left: Sequence[float],
    right: Sequence[float],
    left_name: str = "portfolio",
    right_name: str = "benchmark",
) -> None:
    """Raise AlignmentError unless both series have the same length."""
    if len(left) != len(right):
        logger.warning(
            "check_alignment: series lengths differ",
            **{f"{left_name}_length": len(left), f"{right_name}_length": len(right)},
        )
        raise AlignmentError(
            f"{left_name} series has {len(left)} observations but "
            f"{right_name} series has {len(right)}",
            left=len(left),
            right=len(right),
        )


def drawdown_series(values: Sequence[float]) -> np.ndarray:
    """Fractional decline from the running peak at each observation."""
    arr = np.asarray(values, dtype=float)

    if arr.size == 0:
        raise InsufficientDataError("Cannot compute drawdown of an empty series")

    peaks = np.maximum.accumulate(arr)
    if (peaks <= 0).any():
        raise DivisionByZeroError("Drawdown undefined: running peak is not positive")

    return (peaks - arr) / peaks


def max_drawdown(values: Sequence[float]) -> float:
    """Largest peak-to-trough decline as a positive fraction."""
    if len(values) < 2:
        raise InsufficientDataError(
            f"Need at least 2 values for drawdown, got {len(values)}"
        )
    return float(drawdown_series(values).max())


def current_drawdown(values: Sequence[float]) -> float:
    """Decline of the latest value from the running peak."""
    if len(values) < 2:
        raise InsufficientDataError(
            f"Need at least 2 values for drawdown, got {len(values)}"
        )
    return float(drawdown_series(values)[-1])


def average_drawdown(values: Sequence[float]) -> float:
    """Mean of the drawdown series over all observations."""
    if len(values) < 2:
        raise InsufficientDataError(
            f"Need at least 2 values for drawdown, got {len(values)}"
        )
    return float(drawdown_series(values).mean())


def trailing_returns(
    values: Sequence[float],
    windows: Sequence[int] = TRAILING_WINDOWS,
) -> Dict[str, Optional[float]]:
    """Simple return over each trailing window ending at the latest value.

    A k-period return needs k + 1 values; windows without enough history map
    to None.

    Example:
        values = [100, 110, 121] with windows (1, 2, 5):
        {'1D': 0.10, '2D': 0.21, '5D': None}
    """
    arr = np.asarray(values, dtype=float)
    result: Dict[str, Optional[float]] = {}

    for window in windows:
        key = f"{window}D"
        if arr.size < window + 1:
            result[key] = None
            continue

        past = arr[-1 - window]
        if past == 0:
            result[key] = None
            continue

        result[key] = float(arr[-1] / past - 1)

    return result


def build_price_matrix(
    prices: Dict[str, Sequence[float]],
    symbols: Optional[List[str]] = None,
) -> pd.DataFrame:
    """Build a period-indexed price matrix from per-symbol series.

    Args:
        prices: Dictionary mapping symbol to chronological price list
        symbols: Optional subset/ordering of symbols to include

    Returns:
        DataFrame with a RangeIndex of periods and one column per symbol

    Raises:
        InsufficientDataError: If a requested symbol has no series
        AlignmentError: If series lengths differ (no truncation, no forward fill)
    """
    symbols = list(prices) if symbols is None else list(symbols)

    missing = [s for s in symbols if s not in prices]
    if missing:
        logger.warning("build_price_matrix: symbols missing from price data", missing=missing)
        raise InsufficientDataError(
            f"No price history for symbols: {missing}", missing=missing
        )

    lengths = {s: len(prices[s]) for s in symbols}
    if len(set(lengths.values())) > 1:
        logger.warning("build_price_matrix: price series lengths differ", lengths=lengths)
        raise AlignmentError(
            f"Price series lengths differ: {lengths}", lengths=lengths
        )

    price_matrix = pd.DataFrame(
        {s: np.asarray(prices[s], dtype=float) for s in symbols},
        columns=symbols,
    )

    logger.debug(
        "build_price_matrix: matrix built",
        num_symbols=len(price_matrix.columns),
        num_periods=len(price_matrix),
    )

    return price_matrix


def compute_simple_returns(price_matrix: pd.DataFrame) -> pd.DataFrame:
    """Compute simple returns: (P_t - P_{t-1}) / P_{t-1}

    Args:
        price_matrix: DataFrame of prices with one column per symbol

    Returns:
        DataFrame with simple returns (first row dropped)

    Raises:
        DivisionByZeroError: If a zero price is used as a denominator
    """
    if price_matrix.empty:
        return pd.DataFrame(columns=price_matrix.columns, dtype=float)

    if (price_matrix.iloc[:-1] == 0).any().any():
        zero_prices = (price_matrix.iloc[:-1] == 0).sum()
        affected = zero_prices[zero_prices > 0].to_dict()
        logger.error("compute_simple_returns: zero prices detected", affected_symbols=affected)
        raise DivisionByZeroError(
            f"Zero prices detected for symbols: {sorted(affected)}"
        )

    simple_returns = (price_matrix.diff() / price_matrix.shift(1)).iloc[1:]

    return simple_returns
