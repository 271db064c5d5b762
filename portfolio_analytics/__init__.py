"""
Portfolio Analytics

Turns a portfolio snapshot plus historical value and price series into a
structured analysis report: summary, performance, risk, attribution,
diversification, correlation, stress tests, scenarios, ESG and
recommendations.
"""

from .config import AnalyticsSettings, get_settings
from .engine import PortfolioAnalyticsEngine, analyze_portfolio
from .errors import (
    AlignmentError,
    AnalyticsError,
    DivisionByZeroError,
    InsufficientDataError,
    ValidationError,
)
from .esg import ESGDataProvider, StaticESGProvider, UnavailableESGProvider
from .logs import configure_logging
from .models import (
    AnalysisReport,
    BenchmarkData,
    Holding,
    MacroScenario,
    MarketData,
    MetricResult,
    PortfolioSnapshot,
    ReasonCode,
    StressScenario,
)

__version__ = "0.1.0"

__all__ = [
    # Entry points
    'analyze_portfolio',
    'PortfolioAnalyticsEngine',
    # Configuration
    'AnalyticsSettings',
    'get_settings',
    'configure_logging',
    # Errors
    'AnalyticsError',
    'AlignmentError',
    'DivisionByZeroError',
    'InsufficientDataError',
    'ValidationError',
    # ESG providers
    'ESGDataProvider',
    'StaticESGProvider',
    'UnavailableESGProvider',
    # Models
    'AnalysisReport',
    'BenchmarkData',
    'Holding',
    'MacroScenario',
    'MarketData',
    'MetricResult',
    'PortfolioSnapshot',
    'ReasonCode',
    'StressScenario',
]
