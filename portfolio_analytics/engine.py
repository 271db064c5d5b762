"""Analytics orchestration.

Validates the inputs, computes holding betas once, runs every enabled report
section (optionally on a thread pool) and assembles the ``AnalysisReport``.
Per-metric data problems are already folded into the sections as unavailable
metrics; anything that escapes a section aborts the whole call.
"""

from __future__ import annotations

import math
import uuid
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, TypeVar

import pydantic
import structlog

from .config import AnalyticsSettings, get_settings
from .errors import ValidationError
from .esg import ESGDataProvider, UnavailableESGProvider, analyze_esg
from .models import (
    AnalysisReport,
    BenchmarkData,
    MarketData,
    PortfolioSnapshot,
    PortfolioSummary,
)
from .recommendations import build_optimization_suggestions, generate_recommendations
from .risk.attribution import calculate_attribution
from .risk.correlation import analyze_correlation
from .risk.diversification import analyze_diversification
from .risk.metrics import build_risk_metrics
from .risk.performance import build_performance_metrics
from .risk.returns import trim_to_window
from .risk.scenarios import run_scenario_analysis
from .risk.stress import holding_betas, run_stress_tests

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _coerce(model: type[ModelT], data: Any, name: str) -> ModelT | None:
    """Accept a model instance or a plain mapping; re-raise pydantic errors as ours."""
    if data is None or isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        errors = [
            {"loc": ".".join(str(p) for p in e["loc"]), "msg": e["msg"]}
            for e in exc.errors()
        ]
        raise ValidationError(
            f"Invalid {name}: {exc.error_count()} validation error(s)", errors=errors
        ) from exc


def validate_snapshot(snapshot: PortfolioSnapshot, settings: AnalyticsSettings) -> None:
    """Structural checks that abort the call before any metric is computed.

    Raises:
        ValidationError: On a non-positive total value, empty or duplicate
            holdings, or broken value/allocation invariants
    """
    if snapshot.total_value <= 0:
        raise ValidationError(
            f"Total portfolio value must be positive, got {snapshot.total_value}"
        )

    if not snapshot.holdings:
        raise ValidationError("Portfolio has no holdings but a positive total value")

    counts = Counter(h.symbol for h in snapshot.holdings)
    duplicates = sorted(symbol for symbol, n in counts.items() if n > 1)
    if duplicates:
        raise ValidationError(f"Duplicate holdings: {duplicates}", symbols=duplicates)

    tol = settings.value_tolerance
    for h in snapshot.holdings:
        expected = h.shares * h.current_price
        if not math.isclose(h.market_value, expected, abs_tol=tol):
            raise ValidationError(
                f"{h.symbol}: market value {h.market_value} does not equal "
                f"shares * price = {expected}",
                symbol=h.symbol,
            )

    # Per-holding tolerance accumulates across the sum
    expected_total = snapshot.invested_value + snapshot.cash_balance
    if not math.isclose(
        snapshot.total_value, expected_total, abs_tol=tol * (len(snapshot.holdings) + 1)
    ):
        raise ValidationError(
            f"Total value {snapshot.total_value} does not equal holdings plus cash "
            f"= {expected_total}"
        )

    allocated = sum(h.allocation_percent or 0.0 for h in snapshot.holdings)
    allocated += snapshot.cash_allocation_percent
    if abs(allocated - 100.0) > settings.allocation_tolerance_pct:
        raise ValidationError(
            f"Allocations plus cash sum to {allocated:.4f}%, expected 100%",
            allocated=allocated,
        )

    for h in snapshot.holdings:
        expected_pct = h.market_value / snapshot.total_value * 100.0
        if abs(h.allocation_percent - expected_pct) > settings.allocation_tolerance_pct:
            raise ValidationError(
                f"{h.symbol}: allocation {h.allocation_percent:.4f}% does not match "
                f"its market value share {expected_pct:.4f}%",
                symbol=h.symbol,
            )


def summarize_portfolio(snapshot: PortfolioSnapshot) -> PortfolioSummary:
    """Value, cost and gain/loss totals. Percentages are None on a zero base."""
    holdings = snapshot.holdings
    invested = snapshot.invested_value
    total_cost = sum(h.cost_basis for h in holdings)
    gain_loss = invested - total_cost
    day_gain = sum(h.shares * h.day_change for h in holdings)
    values = [h.market_value for h in holdings]

    return PortfolioSummary(
        total_value=snapshot.total_value,
        total_cost=total_cost,
        total_gain_loss=gain_loss,
        total_gain_loss_percent=gain_loss / total_cost * 100.0 if total_cost > 0 else None,
        day_gain_loss=day_gain,
        day_gain_loss_percent=(
            day_gain / snapshot.total_value * 100.0 if snapshot.total_value > 0 else None
        ),
        cash_balance=snapshot.cash_balance,
        number_of_holdings=len(holdings),
        average_holding_size=invested / len(holdings) if holdings else None,
        largest_holding=max(values) if values else None,
        smallest_holding=min(values) if values else None,
    )


class PortfolioAnalyticsEngine:
    """Runs the full analysis for one portfolio per ``analyze`` call.

    The engine holds configuration only; no state is shared between calls.
    """

    def __init__(
        self,
        settings: AnalyticsSettings | None = None,
        esg_provider: ESGDataProvider | None = None,
        logger: Any = None,
    ):
        self.settings = settings or get_settings()
        self.esg_provider = esg_provider or UnavailableESGProvider()
        self._logger = logger or structlog.get_logger(__name__)

    def analyze(
        self,
        portfolio_data: PortfolioSnapshot | Mapping[str, Any],
        market_data: MarketData | Mapping[str, Any] | None = None,
        benchmark_data: BenchmarkData | Mapping[str, Any] | None = None,
    ) -> AnalysisReport:
        """Validate inputs and build the analysis report.

        Raises:
            ValidationError: Malformed input (always)
            InsufficientDataError / AlignmentError: Only in strict mode
            DivisionByZeroError: Only in strict mode, for a zero portfolio
                value at a period boundary
        """
        settings = self.settings
        log = self._logger.bind(run_id=uuid.uuid4().hex[:12])

        try:
            snapshot = _coerce(PortfolioSnapshot, portfolio_data, "portfolio data")
            if snapshot is None:
                raise ValidationError("Portfolio data is required")
            market = _coerce(MarketData, market_data, "market data")
            benchmark = _coerce(BenchmarkData, benchmark_data, "benchmark data")

            log.info(
                "analyze_portfolio: started",
                num_holdings=len(snapshot.holdings),
                num_values=len(snapshot.historical_values),
                has_market_data=market is not None,
                has_benchmark=benchmark is not None,
                parallel=settings.parallel,
                strict=settings.strict_mode,
            )

            validate_snapshot(snapshot, settings)
            report = self._run(snapshot, market, benchmark, log)
        except Exception as exc:
            log.error(
                "analyze_portfolio: failed",
                error_code=getattr(exc, "code", type(exc).__name__),
                error=str(exc),
            )
            raise

        log.info(
            "analyze_portfolio: completed",
            sections=[s for s in settings.enabled_sections if getattr(report, s, None) is not None],
            num_recommendations=len(report.recommendations),
        )
        return report

    def _sections(
        self,
        snapshot: PortfolioSnapshot,
        market: MarketData | None,
        benchmark: BenchmarkData | None,
    ) -> dict[str, Callable[[], Any]]:
        settings = self.settings
        strict = settings.strict_mode
        lookback = settings.lookback_period
        bench_values = benchmark.historical_values if benchmark is not None else None

        needs_betas = settings.section_enabled("stress") or settings.section_enabled("scenarios")
        betas = (
            holding_betas(snapshot, market, bench_values, window=lookback)
            if needs_betas
            else None
        )

        sections: dict[str, Callable[[], Any]] = {
            "summary": lambda: summarize_portfolio(snapshot),
            "performance": lambda: build_performance_metrics(
                snapshot.historical_values, settings, bench_values
            ),
            "risk": lambda: build_risk_metrics(
                trim_to_window(snapshot.historical_values, lookback), snapshot, settings
            ),
            "attribution": lambda: calculate_attribution(snapshot),
            "diversification": lambda: analyze_diversification(snapshot, settings),
            "correlation": lambda: analyze_correlation(
                snapshot.symbols, market, window=lookback, strict=strict
            ),
            "stress": lambda: run_stress_tests(
                snapshot,
                settings.stress_scenarios,
                annual_growth=settings.recovery_annual_growth,
                betas=betas,
            ),
            "scenarios": lambda: run_scenario_analysis(
                snapshot,
                settings.macro_scenarios,
                betas[0],
                settings.scenario_probabilities,
            ),
            "esg": lambda: analyze_esg(snapshot, self.esg_provider),
        }
        return {name: fn for name, fn in sections.items() if settings.section_enabled(name)}

    def _run(
        self,
        snapshot: PortfolioSnapshot,
        market: MarketData | None,
        benchmark: BenchmarkData | None,
        log: Any,
    ) -> AnalysisReport:
        settings = self.settings
        sections = self._sections(snapshot, market, benchmark)

        if settings.parallel and len(sections) > 1:
            with ThreadPoolExecutor(max_workers=settings.max_workers) as pool:
                futures = {name: pool.submit(fn) for name, fn in sections.items()}
                # result() re-raises the first section failure
                results = {name: future.result() for name, future in futures.items()}
        else:
            results = {name: fn() for name, fn in sections.items()}

        log.debug("analyze_portfolio: sections computed", sections=list(results))

        recommendations = []
        optimization = None
        if settings.section_enabled("recommendations"):
            recommendations = generate_recommendations(
                settings,
                performance=results.get("performance"),
                risk=results.get("risk"),
                diversification=results.get("diversification"),
            )
            optimization = build_optimization_suggestions(snapshot, settings)

        return AnalysisReport(
            generated_at=datetime.now(timezone.utc),
            benchmark_symbol=(
                benchmark.symbol if benchmark is not None and benchmark.symbol
                else settings.benchmark_symbol
            ),
            recommendations=recommendations,
            optimization=optimization,
            **results,
        )


def analyze_portfolio(
    portfolio_data: PortfolioSnapshot | Mapping[str, Any],
    market_data: MarketData | Mapping[str, Any] | None = None,
    benchmark_data: BenchmarkData | Mapping[str, Any] | None = None,
    settings: AnalyticsSettings | None = None,
    esg_provider: ESGDataProvider | None = None,
    logger: Any = None,
) -> AnalysisReport:
    """Analyse one portfolio snapshot and return the full report.

    Example:
        report = analyze_portfolio(
            {"holdings": [...], "cash_balance": 0, "historical_values": [...]},
            benchmark_data={"symbol": "SPY", "historical_values": [...]},
        )
        report.performance.sharpe_ratio.value
    """
    engine = PortfolioAnalyticsEngine(settings, esg_provider, logger)
    return engine.analyze(portfolio_data, market_data, benchmark_data)
