"""
Unit tests for esg.py - ESG providers and analysis
"""

import pytest

from portfolio_analytics.esg import (
    ESGDataProvider,
    StaticESGProvider,
    UnavailableESGProvider,
    analyze_esg,
)
from portfolio_analytics.models import ESGScores, ReasonCode


class TestProviders:
    """Tests for the bundled ESG providers."""

    def test_providers_satisfy_protocol(self):
        assert isinstance(UnavailableESGProvider(), ESGDataProvider)
        assert isinstance(StaticESGProvider({}), ESGDataProvider)

    def test_static_provider_accepts_dicts(self):
        provider = StaticESGProvider({"AAPL": {"overall": 70.0}})
        scores = provider.get_scores(["AAPL", "MSFT"])

        assert list(scores) == ["AAPL"]
        assert isinstance(scores["AAPL"], ESGScores)


class TestAnalyzeESG:
    """Tests for analyze_esg function."""

    def test_default_is_unavailable(self, two_holding_snapshot):
        analysis = analyze_esg(two_holding_snapshot)

        assert not analysis.available
        assert analysis.reason == ReasonCode.NOT_PROVIDED
        assert analysis.overall_score is None
        assert analysis.provider == "unavailable"

    def test_value_weighted_scores(self, two_holding_snapshot):
        provider = StaticESGProvider({
            "AAPL": {"overall": 80.0, "environmental": 90.0, "carbon_intensity": 10.0},
            "MSFT": {"overall": 60.0, "environmental": 70.0, "carbon_intensity": 30.0,
                     "controversies": ["antitrust"]},
        })
        analysis = analyze_esg(two_holding_snapshot, provider)

        assert analysis.available
        assert analysis.overall_score == pytest.approx(70.0)
        assert analysis.environmental_score == pytest.approx(80.0)
        assert analysis.carbon_footprint == pytest.approx(20.0)
        assert analysis.social_score is None
        assert analysis.controversies == {"MSFT": ("antitrust",)}
        assert analysis.coverage_percent == pytest.approx(100.0)

    def test_partial_coverage(self, two_holding_snapshot):
        provider = StaticESGProvider({"AAPL": {"overall": 80.0}})
        analysis = analyze_esg(two_holding_snapshot, provider)

        assert analysis.overall_score == pytest.approx(80.0)
        assert analysis.coverage_percent == pytest.approx(50.0)
