"""
Unit tests for returns.py - Return Construction Module

Tests cover:
- Period returns and total return
- Window trimming and alignment checks
- Drawdowns and trailing returns
- Price matrix construction and simple returns
"""

import pytest
import numpy as np
import pandas as pd
from numpy.testing import assert_allclose

from portfolio_analytics.errors import AlignmentError, DivisionByZeroError, InsufficientDataError
from portfolio_analytics.risk.returns import (
    average_drawdown,
    build_price_matrix,
    check_alignment,
    compute_returns,
    compute_simple_returns,
    current_drawdown,
    drawdown_series,
    max_drawdown,
    total_return,
    trailing_returns,
    trim_to_window,
)


class TestComputeReturns:
    """Tests for compute_returns function."""

    def test_simple_returns(self):
        """[100, 110, 99] gives +10% then -10%."""
        returns = compute_returns([100, 110, 99])

        assert_allclose(returns, [0.10, -0.10], rtol=1e-12)

    def test_length_is_n_minus_one(self, benchmark_values):
        returns = compute_returns(benchmark_values)
        assert len(returns) == len(benchmark_values) - 1

    def test_fewer_than_two_values_is_empty(self):
        """A single value is not an error, just no returns."""
        assert compute_returns([100.0]).size == 0
        assert compute_returns([]).size == 0

    def test_zero_denominator_raises_with_index(self):
        """A zero value used as a denominator names its index."""
        with pytest.raises(DivisionByZeroError) as exc_info:
            compute_returns([100, 0, 50])

        assert exc_info.value.context["index"] == 1
        assert exc_info.value.code == "division_by_zero"

    def test_zero_last_value_is_fine(self):
        """The last value is never a denominator."""
        assert_allclose(compute_returns([100, 0]), [-1.0])


class TestTotalReturn:
    """Tests for total_return function."""

    def test_total_return(self):
        values = [95000, 97000, 100000, 99000, 100000]
        assert total_return(values) == pytest.approx(5000 / 95000)

    def test_single_value_raises(self):
        with pytest.raises(InsufficientDataError):
            total_return([100])

    def test_zero_first_value_raises(self):
        with pytest.raises(DivisionByZeroError):
            total_return([0, 100])


class TestTrimToWindow:
    """Tests for trim_to_window function."""

    def test_keeps_window_plus_one_values(self):
        """A 3-period window needs 4 values."""
        trimmed = trim_to_window(list(range(10)), 3)
        assert_allclose(trimmed, [6, 7, 8, 9])

    def test_short_series_returned_whole(self):
        trimmed = trim_to_window([1, 2, 3], 10)
        assert_allclose(trimmed, [1, 2, 3])

    def test_invalid_window_raises(self):
        with pytest.raises(ValueError):
            trim_to_window([1, 2, 3], 0)


class TestCheckAlignment:
    """Tests for check_alignment function."""

    def test_equal_lengths_pass(self):
        check_alignment([1, 2, 3], [4, 5, 6])

    def test_mismatch_raises(self):
        """50 portfolio values against 40 benchmark values."""
        with pytest.raises(AlignmentError) as exc_info:
            check_alignment([1.0] * 50, [1.0] * 40)

        assert exc_info.value.context == {"left": 50, "right": 40}


class TestDrawdowns:
    """Tests for drawdown functions."""

    VALUES = [95000, 97000, 100000, 99000, 100000]

    def test_drawdown_series(self):
        assert_allclose(drawdown_series(self.VALUES), [0, 0, 0, 0.01, 0], atol=1e-12)

    def test_max_drawdown(self):
        assert max_drawdown(self.VALUES) == pytest.approx(0.01)

    def test_current_drawdown_recovered(self):
        assert current_drawdown(self.VALUES) == pytest.approx(0.0)

    def test_current_drawdown_underwater(self):
        assert current_drawdown([100, 120, 90]) == pytest.approx(0.25)

    def test_average_drawdown_over_all_observations(self):
        assert average_drawdown(self.VALUES) == pytest.approx(0.002)

    def test_monotonic_rise_has_no_drawdown(self):
        assert max_drawdown([1, 2, 3, 4]) == 0.0

    def test_too_short_raises(self):
        with pytest.raises(InsufficientDataError):
            max_drawdown([100])


class TestTrailingReturns:
    """Tests for trailing_returns function."""

    def test_windows(self):
        result = trailing_returns([100, 110, 121], windows=(1, 2, 5))

        assert result["1D"] == pytest.approx(0.10)
        assert result["2D"] == pytest.approx(0.21)
        assert result["5D"] is None

    def test_default_windows(self, benchmark_values):
        result = trailing_returns(benchmark_values)

        assert list(result) == ["1D", "5D", "21D", "63D", "126D", "252D"]
        assert all(v is not None for v in result.values())


class TestBuildPriceMatrix:
    """Tests for build_price_matrix function."""

    def test_build_price_matrix(self, market_data):
        matrix = build_price_matrix(market_data.prices, ["MSFT", "AAPL"])

        assert list(matrix.columns) == ["MSFT", "AAPL"]
        assert len(matrix) == len(market_data.prices["AAPL"])
        assert matrix.isna().sum().sum() == 0

    def test_unequal_lengths_raise(self):
        """Series are never truncated to a common length."""
        with pytest.raises(AlignmentError):
            build_price_matrix({"A": [1, 2, 3], "B": [1, 2]})

    def test_missing_symbol_raises(self):
        with pytest.raises(InsufficientDataError):
            build_price_matrix({"A": [1, 2, 3]}, ["A", "B"])


class TestComputeSimpleReturns:
    """Tests for compute_simple_returns function."""

    def test_simple_returns(self):
        matrix = pd.DataFrame({"A": [100.0, 110.0, 99.0], "B": [50.0, 50.0, 55.0]})
        returns = compute_simple_returns(matrix)

        assert len(returns) == 2
        assert_allclose(returns["A"].values, [0.10, -0.10], rtol=1e-12)
        assert_allclose(returns["B"].values, [0.0, 0.10], rtol=1e-12)

    def test_zero_price_raises(self):
        matrix = pd.DataFrame({"A": [100.0, 0.0, 99.0]})
        with pytest.raises(DivisionByZeroError):
            compute_simple_returns(matrix)

    def test_empty_matrix(self):
        returns = compute_simple_returns(pd.DataFrame(columns=["A"], dtype=float))
        assert returns.empty
        assert list(returns.columns) == ["A"]
