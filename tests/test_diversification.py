"""
Unit tests for diversification.py - Diversification and Concentration

Tests cover:
- Herfindahl index and effective number of holdings
- Sector, asset class and geographic distributions
- Diversification score
- Concentration metrics
"""

import pytest

from portfolio_analytics.errors import DivisionByZeroError
from portfolio_analytics.models import PortfolioSnapshot
from portfolio_analytics.risk.diversification import (
    analyze_diversification,
    blend_scores,
    concentration_metrics,
    diversification_score,
    effective_number_of_holdings,
    geographic_distribution,
    herfindahl_index,
    score_components,
    sector_distribution,
)


class TestHerfindahlIndex:
    """Tests for herfindahl_index and effective_number_of_holdings."""

    def test_equal_weights(self, four_equal_snapshot):
        """Four equal holdings: HHI = 4 * 0.25^2 = 0.25, effective N = 4."""
        assert herfindahl_index(four_equal_snapshot) == pytest.approx(0.25)
        assert effective_number_of_holdings(four_equal_snapshot) == pytest.approx(4.0)

    def test_single_holding(self):
        snapshot = PortfolioSnapshot.model_validate({
            "holdings": [{"symbol": "A", "shares": 1, "current_price": 100.0}],
        })
        assert herfindahl_index(snapshot) == pytest.approx(1.0)

    def test_cash_excluded(self):
        """Cash does not change concentration among invested holdings."""
        snapshot = PortfolioSnapshot.model_validate({
            "holdings": [
                {"symbol": "A", "shares": 1, "current_price": 100.0},
                {"symbol": "B", "shares": 1, "current_price": 100.0},
            ],
            "cash_balance": 800.0,
        })
        assert herfindahl_index(snapshot) == pytest.approx(0.5)

    def test_bounds(self, two_holding_snapshot):
        hhi = herfindahl_index(two_holding_snapshot)
        assert 1 / len(two_holding_snapshot.holdings) <= hhi <= 1.0

    def test_zero_invested_value(self):
        snapshot = PortfolioSnapshot.model_validate({
            "holdings": [{"symbol": "A", "shares": 0, "current_price": 100.0}],
            "cash_balance": 100.0,
        })
        with pytest.raises(DivisionByZeroError):
            herfindahl_index(snapshot)


class TestDistributions:
    """Tests for distribution helpers."""

    def test_sector_distribution(self, four_equal_snapshot):
        sectors = sector_distribution(four_equal_snapshot)

        assert len(sectors) == 4
        assert all(v == pytest.approx(25.0) for v in sectors.values())
        assert sum(sectors.values()) == pytest.approx(100.0)

    def test_grouped_and_sorted(self, two_holding_snapshot):
        assert sector_distribution(two_holding_snapshot) == {"Technology": pytest.approx(100.0)}

    def test_distribution_with_cash_sums_to_100(self):
        snapshot = PortfolioSnapshot.model_validate({
            "holdings": [
                {"symbol": "A", "shares": 3, "current_price": 100.0, "sector": "Energy"},
                {"symbol": "B", "shares": 5, "current_price": 100.0, "sector": "Utilities"},
            ],
            "cash_balance": 200.0,
        })
        sectors = sector_distribution(snapshot)

        assert list(sectors) == ["Utilities", "Energy"]
        assert sum(sectors.values()) + snapshot.cash_allocation_percent == pytest.approx(100.0)

    def test_missing_geography(self, four_equal_snapshot):
        assert geographic_distribution(four_equal_snapshot) == {"Unknown": pytest.approx(100.0)}


class TestDiversificationScore:
    """Tests for diversification_score and score_components."""

    def test_components(self, four_equal_snapshot):
        holding_score, sector_score = score_components(four_equal_snapshot)

        assert holding_score == pytest.approx(4 / 20)
        assert sector_score == pytest.approx(4 / 11)

    def test_blended_score(self, four_equal_snapshot):
        expected = 0.5 * 4 / 20 + 0.5 * 4 / 11
        assert diversification_score(four_equal_snapshot) == pytest.approx(expected)

    def test_blend_scores(self):
        assert blend_scores(1.0, 0.0, holding_weight=0.25) == pytest.approx(0.25)
        assert blend_scores(0.4, 0.4) == pytest.approx(0.4)

    def test_saturates_at_one(self):
        holdings = [
            {"symbol": f"S{i}", "shares": 1, "current_price": 10.0, "sector": f"Sector{i % 12}"}
            for i in range(30)
        ]
        snapshot = PortfolioSnapshot.model_validate({"holdings": holdings})
        assert diversification_score(snapshot) == pytest.approx(1.0)


class TestConcentrationMetrics:
    """Tests for concentration_metrics function."""

    def test_largest_holding(self):
        snapshot = PortfolioSnapshot.model_validate({
            "holdings": [
                {"symbol": "SMALL", "shares": 1, "current_price": 100.0, "sector": "Energy"},
                {"symbol": "BIG", "shares": 7, "current_price": 100.0, "sector": "Technology"},
                {"symbol": "MID", "shares": 2, "current_price": 100.0, "sector": "Technology"},
            ],
        })
        concentration = concentration_metrics(snapshot)

        assert concentration.largest_holding == "BIG"
        assert concentration.largest_holding_percent == pytest.approx(70.0)
        assert concentration.largest_sector == "Technology"
        assert concentration.largest_sector_percent == pytest.approx(90.0)
        assert concentration.top_5_percent == pytest.approx(100.0)

    def test_does_not_reorder_holdings(self, four_equal_snapshot):
        before = four_equal_snapshot.symbols
        concentration_metrics(four_equal_snapshot)
        assert four_equal_snapshot.symbols == before


class TestAnalyzeDiversification:
    """Tests for analyze_diversification function."""

    def test_section(self, four_equal_snapshot, settings):
        analysis = analyze_diversification(four_equal_snapshot, settings)

        assert analysis.herfindahl_index.value == pytest.approx(0.25)
        assert analysis.effective_number_of_holdings.value == pytest.approx(4.0)
        assert analysis.score == pytest.approx(0.5 * 4 / 20 + 0.5 * 4 / 11)
        assert analysis.cash_allocation_percent == 0.0
        assert analysis.asset_class_distribution == {"Equity": pytest.approx(100.0)}

    def test_configurable_ceilings(self, four_equal_snapshot, settings):
        custom = settings.model_copy(
            update={"max_holdings_ceiling": 4, "max_sectors_ceiling": 4, "holding_count_weight": 0.25}
        )
        analysis = analyze_diversification(four_equal_snapshot, custom)
        assert analysis.score == pytest.approx(1.0)

    def test_score_matches_diversification_score(self, two_holding_snapshot, settings):
        custom = settings.model_copy(update={"holding_count_weight": 0.8})
        analysis = analyze_diversification(two_holding_snapshot, custom)

        assert analysis.score == pytest.approx(
            diversification_score(two_holding_snapshot, holding_weight=0.8)
        )
        assert analysis.score == pytest.approx(
            blend_scores(analysis.holding_score, analysis.sector_score, 0.8)
        )
