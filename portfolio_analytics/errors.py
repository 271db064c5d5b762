"""Error taxonomy for the analytics engine.

Data-sparsity problems (``InsufficientDataError``, ``DivisionByZeroError``,
``AlignmentError``) are raised by the computation modules and degrade to an
unavailable metric inside the report. Strict mode turns insufficient data and
misalignment into whole-call failures; zero denominators stay per metric.
``ValidationError`` always aborts the whole call.
"""

from __future__ import annotations


class AnalyticsError(Exception):
    """Base class for analytics failures. ``code`` is machine readable."""

    code = "analytics_error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.context = context


class InsufficientDataError(AnalyticsError):
    """Fewer observations than a metric needs."""

    code = "insufficient_data"


class DivisionByZeroError(AnalyticsError):
    """A denominator (value, variance, drawdown) was zero."""

    code = "division_by_zero"


class AlignmentError(AnalyticsError):
    """Series that must be period-aligned have different lengths."""

    code = "alignment_error"


class ValidationError(AnalyticsError):
    """Malformed input. Indicates a caller or data-pipeline bug."""

    code = "validation_error"
