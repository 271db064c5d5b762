"""
Portfolio Risk Analytics

Pure computation modules operating on numpy arrays and pandas DataFrames.

Modules:
- returns: Period returns, drawdowns, price matrices
- performance: Return, risk-adjusted and benchmark-relative statistics
- metrics: Volatility, historical VaR/ES, higher moments, risk score
- attribution: Per-holding and per-group return contributions
- diversification: Distributions, Herfindahl index, diversification score
- correlation: Pairwise correlation of holding returns
- stress: Historical stress scenarios and holding betas
- scenarios: Forward-looking macro scenario analysis
"""

# Returns module
from .returns import (
    build_price_matrix,
    compute_returns,
    compute_simple_returns,
    current_drawdown,
    max_drawdown,
    total_return,
    trailing_returns,
    trim_to_window,
)

# Performance module
from .performance import (
    alpha,
    annualized_return,
    beta,
    build_performance_metrics,
    calmar_ratio,
    information_ratio,
    sharpe_ratio,
    sortino_ratio,
    tracking_error,
    win_rate,
)

# Metrics module
from .metrics import (
    build_risk_metrics,
    composite_risk_score,
    downside_deviation,
    expected_shortfall,
    historical_var,
    kurtosis,
    skewness,
    volatility,
)

# Attribution module
from .attribution import calculate_attribution, holding_contributions

# Diversification module
from .diversification import (
    analyze_diversification,
    diversification_score,
    effective_number_of_holdings,
    herfindahl_index,
)

# Correlation module
from .correlation import analyze_correlation, correlation_matrix

# Stress testing module
from .stress import holding_betas, recovery_months, run_stress_tests

# Scenario module
from .scenarios import run_scenario_analysis

__all__ = [
    # Returns
    'build_price_matrix',
    'compute_returns',
    'compute_simple_returns',
    'current_drawdown',
    'max_drawdown',
    'total_return',
    'trailing_returns',
    'trim_to_window',
    # Performance
    'alpha',
    'annualized_return',
    'beta',
    'build_performance_metrics',
    'calmar_ratio',
    'information_ratio',
    'sharpe_ratio',
    'sortino_ratio',
    'tracking_error',
    'win_rate',
    # Metrics
    'build_risk_metrics',
    'composite_risk_score',
    'downside_deviation',
    'expected_shortfall',
    'historical_var',
    'kurtosis',
    'skewness',
    'volatility',
    # Attribution
    'calculate_attribution',
    'holding_contributions',
    # Diversification
    'analyze_diversification',
    'diversification_score',
    'effective_number_of_holdings',
    'herfindahl_index',
    # Correlation
    'analyze_correlation',
    'correlation_matrix',
    # Stress testing
    'holding_betas',
    'recovery_months',
    'run_stress_tests',
    # Scenarios
    'run_scenario_analysis',
]
