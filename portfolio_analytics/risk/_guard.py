"""Turn per-metric data errors into unavailable MetricResults."""

from typing import Callable

import structlog

from ..errors import AlignmentError, DivisionByZeroError, InsufficientDataError
from ..models import MetricResult

logger = structlog.get_logger(__name__)

DEGRADABLE_ERRORS = (InsufficientDataError, DivisionByZeroError, AlignmentError)

# Only these abort the call in strict mode; a zero denominator stays per-metric
STRICT_ERRORS = (InsufficientDataError, AlignmentError)


def escalates(exc: Exception, strict: bool) -> bool:
    """True when ``exc`` must fail the whole call rather than one metric."""
    return strict and isinstance(exc, STRICT_ERRORS)


def guarded(name: str, fn: Callable[..., float], *args, strict: bool = False, **kwargs) -> MetricResult:
    """Run ``fn`` and wrap its value, or its data error, in a MetricResult.

    In strict mode insufficient-data and alignment errors propagate and fail
    the whole call. Zero denominators (Calmar, Sharpe, beta...) are always
    reported per metric.
    """
    try:
        return MetricResult.of(fn(*args, **kwargs))
    except DEGRADABLE_ERRORS as exc:
        if escalates(exc, strict):
            raise
        logger.info("metric unavailable", metric=name, reason=exc.code, detail=str(exc))
        return MetricResult.from_error(exc)
