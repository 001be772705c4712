"""Finite-number guards shared by the engine.

Every derived quantity passes through these helpers so that missing
optional fields, division by zero and NaN never reach a result.
"""

import math
import statistics
from typing import Iterable, List, Optional


def is_finite(value) -> bool:
    """True for int/float values that are neither NaN nor infinite."""
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def num(value, default: float = 0.0) -> float:
    """Coerce a possibly-missing value to a finite float (default otherwise)."""
    return float(value) if is_finite(value) else default


def safe_div(numerator, denominator, default: float = 0.0) -> float:
    """Divide, returning default when either side is unusable or the divisor is 0."""
    if not is_finite(numerator) or not is_finite(denominator) or denominator == 0:
        return default
    result = numerator / denominator
    return result if math.isfinite(result) else default


def finite_values(values: Iterable) -> List[float]:
    return [float(v) for v in values if is_finite(v)]


def mean_or_none(values: Iterable) -> Optional[float]:
    """Arithmetic mean of the finite values, or None when there are none."""
    vals = finite_values(values)
    if not vals:
        return None
    return math.fsum(vals) / len(vals)


def median_or_none(values: Iterable) -> Optional[float]:
    vals = finite_values(values)
    if not vals:
        return None
    return float(statistics.median(vals))
