"""
Unit tests for scenarios.py - Forward-Looking Scenario Analysis
"""

import pytest

from portfolio_analytics.config import DEFAULT_MACRO_SCENARIOS
from portfolio_analytics.errors import ValidationError
from portfolio_analytics.models import MacroScenario, PortfolioSnapshot
from portfolio_analytics.risk.scenarios import (
    portfolio_beta,
    run_scenario_analysis,
    scenario_probabilities,
)


class TestPortfolioBeta:
    """Tests for portfolio_beta function."""

    def test_value_weighted(self, two_holding_snapshot):
        assert portfolio_beta(two_holding_snapshot, {"AAPL": 1.2, "MSFT": 0.8}) == pytest.approx(1.0)

    def test_cash_has_zero_beta(self):
        snapshot = PortfolioSnapshot.model_validate({
            "holdings": [{"symbol": "A", "shares": 400, "current_price": 100.0}],
            "cash_balance": 60000.0,
        })
        assert portfolio_beta(snapshot, {"A": 1.5}) == pytest.approx(0.6)

    def test_missing_beta_defaults_to_one(self, two_holding_snapshot):
        assert portfolio_beta(two_holding_snapshot, {}) == pytest.approx(1.0)


class TestScenarioProbabilities:
    """Tests for scenario_probabilities function."""

    def test_equal_by_default(self):
        assert scenario_probabilities(DEFAULT_MACRO_SCENARIOS) == [pytest.approx(0.2)] * 5

    def test_explicit_vector(self):
        probs = [0.4, 0.1, 0.1, 0.2, 0.2]
        assert scenario_probabilities(DEFAULT_MACRO_SCENARIOS, probs) == probs

    def test_wrong_length(self):
        with pytest.raises(ValidationError):
            scenario_probabilities(DEFAULT_MACRO_SCENARIOS, [0.5, 0.5])

    def test_not_summing_to_one(self):
        with pytest.raises(ValidationError):
            scenario_probabilities(DEFAULT_MACRO_SCENARIOS, [0.3] * 5)

    def test_negative(self):
        with pytest.raises(ValidationError):
            scenario_probabilities(DEFAULT_MACRO_SCENARIOS, [1.2, -0.2, 0.0, 0.0, 0.0])


class TestRunScenarioAnalysis:
    """Tests for run_scenario_analysis function."""

    def test_market_beta(self, two_holding_snapshot):
        analysis = run_scenario_analysis(
            two_holding_snapshot, DEFAULT_MACRO_SCENARIOS, {"AAPL": 1.0, "MSFT": 1.0}
        )
        bull = analysis.scenarios[0]

        assert analysis.portfolio_beta == pytest.approx(1.0)
        assert bull.scenario == "Bull Market"
        assert bull.expected_return == pytest.approx(0.25)
        assert bull.expected_volatility == pytest.approx(0.15)
        assert bull.expected_value == pytest.approx(125000.0)
        assert analysis.expected_return == pytest.approx(-0.02)
        assert analysis.expected_value == pytest.approx(98000.0)
        assert analysis.best_case == "Bull Market"
        assert analysis.worst_case == "Bear Market"

    def test_best_and_worst_performers(self, two_holding_snapshot):
        analysis = run_scenario_analysis(
            two_holding_snapshot, DEFAULT_MACRO_SCENARIOS, {"AAPL": 1.5, "MSFT": 0.5}
        )
        by_name = {s.scenario: s for s in analysis.scenarios}

        assert by_name["Bull Market"].best_performer == "AAPL"
        assert by_name["Bear Market"].best_performer == "MSFT"
        assert by_name["Bear Market"].worst_performer == "AAPL"

    def test_probability_weighting(self, two_holding_snapshot):
        scenarios = [
            MacroScenario(name="Up", market_return=0.10, volatility=0.1),
            MacroScenario(name="Down", market_return=-0.10, volatility=0.2),
        ]
        analysis = run_scenario_analysis(
            two_holding_snapshot, scenarios, {"AAPL": 1.0, "MSFT": 1.0}, [0.75, 0.25]
        )

        assert analysis.scenarios[0].probability_weighted_return == pytest.approx(0.075)
        assert analysis.expected_return == pytest.approx(0.05)
