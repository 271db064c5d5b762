"""Configuration for the analytics engine loaded from environment variables.

Every field can be overridden with a ``PORTFOLIO_ANALYTICS_`` prefixed
environment variable (complex fields as JSON) or passed directly when
constructing ``AnalyticsSettings``.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import MacroScenario, StressScenario

ALL_SECTIONS = (
    "summary",
    "performance",
    "risk",
    "attribution",
    "diversification",
    "correlation",
    "stress",
    "scenarios",
    "esg",
    "recommendations",
)

DEFAULT_STRESS_SCENARIOS = [
    StressScenario(name="2008 Financial Crisis", market_drop=-0.37, correlation=0.8),
    StressScenario(name="COVID-19 Pandemic", market_drop=-0.34, correlation=0.75),
    StressScenario(name="Dot-com Bubble", market_drop=-0.49, correlation=0.7),
    StressScenario(name="Black Monday 1987", market_drop=-0.22, correlation=0.9),
    StressScenario(name="Interest Rate Shock", market_drop=-0.15, correlation=0.6),
]

DEFAULT_MACRO_SCENARIOS = [
    MacroScenario(name="Bull Market", market_return=0.25, volatility=0.15),
    MacroScenario(name="Bear Market", market_return=-0.20, volatility=0.25),
    MacroScenario(name="Recession", market_return=-0.15, volatility=0.30),
    MacroScenario(name="High Inflation", market_return=0.05, volatility=0.20),
    MacroScenario(name="Rising Rates", market_return=-0.05, volatility=0.18),
]


class AnalyticsSettings(BaseSettings):
    """Analytics engine configuration.

    Defaults match the conventional analytics settings; thresholds
    that drive recommendations live here rather than in the code.
    """

    risk_free_rate: float = 0.02
    benchmark_symbol: str = "SPY"  # informational only
    confidence_level: float = Field(default=0.95, gt=0, lt=1)
    periods_per_year: int = Field(default=252, gt=0)
    lookback_period: int = Field(default=252, gt=0)

    # Diversification score: h * min(n / holdings_ceiling, 1) + (1 - h) * min(sectors / sectors_ceiling, 1)
    max_holdings_ceiling: int = Field(default=20, gt=0)
    max_sectors_ceiling: int = Field(default=11, gt=0)
    holding_count_weight: float = Field(default=0.5, ge=0, le=1)

    risk_score_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "volatility": 1 / 3,
            "concentration": 1 / 3,
            "diversification": 1 / 3,
        }
    )
    risk_score_volatility_cap: float = Field(default=0.10, gt=0)

    stress_scenarios: list[StressScenario] = Field(
        default_factory=lambda: list(DEFAULT_STRESS_SCENARIOS)
    )
    macro_scenarios: list[MacroScenario] = Field(
        default_factory=lambda: list(DEFAULT_MACRO_SCENARIOS)
    )
    scenario_probabilities: list[float] | None = None
    recovery_annual_growth: float = Field(default=0.07, gt=0)

    # Recommendation thresholds
    sharpe_threshold: float = 1.0
    var_threshold: float = 0.05
    diversification_threshold: float = 0.7
    high_risk_score: float = 7.0
    max_position_pct: float = 25.0
    rebalance_drift_pct: float = 5.0
    tax_loss_threshold_pct: float = 10.0
    tax_rate: float = Field(default=0.15, ge=0, le=1)

    # Input validation tolerances
    allocation_tolerance_pct: float = 0.5
    value_tolerance: float = 0.01

    strict_mode: bool = False
    parallel: bool = False
    max_workers: int = Field(default=4, gt=0)
    enabled_sections: list[str] = Field(default_factory=lambda: list(ALL_SECTIONS))

    model_config = SettingsConfigDict(
        env_prefix="PORTFOLIO_ANALYTICS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("enabled_sections")
    @classmethod
    def _known_sections(cls, value: list[str]) -> list[str]:
        unknown = sorted(set(value) - set(ALL_SECTIONS))
        if unknown:
            raise ValueError(f"Unknown sections: {unknown}")
        return value

    @field_validator("risk_score_weights")
    @classmethod
    def _known_weights(cls, value: dict[str, float]) -> dict[str, float]:
        allowed = {"volatility", "concentration", "diversification"}
        unknown = sorted(set(value) - allowed)
        if unknown:
            raise ValueError(f"Unknown risk score components: {unknown}")
        if any(w < 0 for w in value.values()) or sum(value.values()) <= 0:
            raise ValueError("Risk score weights must be non-negative and not all zero")
        return value

    def section_enabled(self, name: str) -> bool:
        return name in self.enabled_sections


@lru_cache
def get_settings() -> AnalyticsSettings:
    """Return a cached AnalyticsSettings instance."""
    return AnalyticsSettings()
