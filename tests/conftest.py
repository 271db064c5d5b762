"""
Shared test fixtures for the portfolio analytics test suite.

Provides consistent test data across all test modules:
- Engine settings isolated from the environment
- Small hand-checkable portfolio snapshots
- Seeded random return, price and benchmark series
"""

import pytest
import numpy as np

from portfolio_analytics.config import AnalyticsSettings
from portfolio_analytics.models import MarketData, PortfolioSnapshot


@pytest.fixture
def settings():
    """Default settings, ignoring any .env file in the working directory."""
    return AnalyticsSettings(_env_file=None)


@pytest.fixture
def two_holding_data():
    """Plain-dict portfolio: AAPL and MSFT at 50% each, 100,000 total.

    History: [95000, 97000, 100000, 99000, 100000]
        total return = 5000 / 95000, 4 returns, max drawdown = 1%
    """
    return {
        "holdings": [
            {
                "symbol": "AAPL",
                "company_name": "Apple Inc.",
                "shares": 250,
                "average_cost": 150.0,
                "current_price": 200.0,
                "market_value": 50000.0,
                "day_change": 2.0,
                "day_change_percent": 1.0,
                "allocation_percent": 50.0,
                "sector": "Technology",
                "asset_type": "Equity",
                "geography": "US",
            },
            {
                "symbol": "MSFT",
                "company_name": "Microsoft Corp.",
                "shares": 125,
                "average_cost": 320.0,
                "current_price": 400.0,
                "market_value": 50000.0,
                "day_change": -4.0,
                "day_change_percent": -1.0,
                "allocation_percent": 50.0,
                "sector": "Technology",
                "asset_type": "Equity",
                "geography": "US",
            },
        ],
        "cash_balance": 0.0,
        "total_value": 100000.0,
        "historical_values": [95000.0, 97000.0, 100000.0, 99000.0, 100000.0],
    }


@pytest.fixture
def two_holding_snapshot(two_holding_data):
    return PortfolioSnapshot.model_validate(two_holding_data)


@pytest.fixture
def four_equal_snapshot():
    """Four equal holdings of 25,000 in four different sectors, no cash."""
    sectors = ["Technology", "Healthcare", "Energy", "Financials"]
    holdings = [
        {
            "symbol": sym,
            "shares": 250,
            "current_price": 100.0,
            "sector": sector,
        }
        for sym, sector in zip(["AAA", "BBB", "CCC", "DDD"], sectors)
    ]
    return PortfolioSnapshot.model_validate({"holdings": holdings})


@pytest.fixture
def sample_returns():
    """252 seeded daily returns, N(0.0005, 0.01).

    Returns:
        np.ndarray: Return series
    """
    np.random.seed(42)
    return np.random.normal(0.0005, 0.01, 252)


@pytest.fixture
def benchmark_values():
    """253 seeded benchmark index levels starting at 400."""
    np.random.seed(7)
    returns = np.random.normal(0.0004, 0.01, 252)
    return list(400.0 * np.cumprod(np.concatenate([[1.0], 1.0 + returns])))


@pytest.fixture
def market_data(benchmark_values):
    """Per-symbol price history aligned with ``benchmark_values``.

    AAPL moves with 1.5x the benchmark return plus noise, MSFT with 0.8x.
    """
    np.random.seed(11)
    bench = np.asarray(benchmark_values)
    bench_returns = bench[1:] / bench[:-1] - 1.0

    prices = {}
    for sym, start, loading in [("AAPL", 200.0, 1.5), ("MSFT", 400.0, 0.8)]:
        noise = np.random.normal(0.0, 0.005, bench_returns.size)
        path = np.cumprod(np.concatenate([[1.0], 1.0 + loading * bench_returns + noise]))
        prices[sym] = list(start * path)

    return MarketData(prices=prices)


@pytest.fixture
def portfolio_history(benchmark_values):
    """253 portfolio values aligned with ``benchmark_values``."""
    np.random.seed(3)
    returns = np.random.normal(0.0006, 0.012, len(benchmark_values) - 1)
    return list(95000.0 * np.cumprod(np.concatenate([[1.0], 1.0 + returns])))
