"""Percentile interpolation over sparse four-point benchmark tables.

Market surveys publish values only at the 25th, 50th, 75th and 90th
percentiles. Between those points values are linear; outside them the
slope of the nearest known segment is extended. Fewer than two usable
points, or points that decrease with percentile, make a curve unavailable.
"""

import logging
from typing import List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict

from .numeric import is_finite
from .schemas import PercentilePoints

logger = logging.getLogger(__name__)

PointsLike = Union[PercentilePoints, Sequence[Tuple[float, Optional[float]]], "BenchmarkCurve"]

MIN_PERCENTILE = 0.0
MAX_PERCENTILE = 100.0


class PercentileResult(BaseModel):
    """Result of mapping a raw value onto the percentile scale."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    percentile: float = 0.0
    below_range: bool = False
    above_range: bool = False
    available: bool = True

    @classmethod
    def unavailable(cls) -> "PercentileResult":
        """Sentinel for missing market data."""
        return cls(percentile=0.0, available=False)

    @property
    def off_scale(self) -> bool:
        return self.below_range or self.above_range

    def display(self) -> str:
        """Short label such as '<25', '>90' or '47.5'."""
        if not self.available:
            return "n/a"
        if self.below_range:
            return "<25"
        if self.above_range:
            return ">90"
        return f"{self.percentile:.1f}"


class BenchmarkCurve:
    """Piecewise-linear curve through the usable benchmark points."""

    def __init__(self, points: List[Tuple[float, float]]):
        self.points = points

    @classmethod
    def from_points(cls, points: PointsLike) -> Optional["BenchmarkCurve"]:
        """Build a curve, or return None when the table is not usable."""
        if isinstance(points, BenchmarkCurve):
            return points
        pairs = points.as_pairs() if isinstance(points, PercentilePoints) else list(points)
        usable = [(float(p), float(v)) for p, v in pairs if is_finite(p) and is_finite(v)]
        usable.sort(key=lambda pair: pair[0])
        if len(usable) < 2:
            return None
        for (_, lower), (_, upper) in zip(usable, usable[1:]):
            if upper < lower:
                logger.debug(f"Rejecting non-monotone benchmark points: {usable}")
                return None
        return cls(usable)

    @property
    def low(self) -> Tuple[float, float]:
        return self.points[0]

    @property
    def high(self) -> Tuple[float, float]:
        return self.points[-1]

    def value_at(self, p: float) -> float:
        pts = self.points
        if p <= pts[0][0]:
            (p0, v0), (p1, v1) = pts[0], pts[1]
        elif p >= pts[-1][0]:
            (p0, v0), (p1, v1) = pts[-2], pts[-1]
        else:
            for (p0, v0), (p1, v1) in zip(pts, pts[1:]):
                if p0 <= p <= p1:
                    break
        if p1 == p0:
            return v0
        return v0 + (p - p0) * (v1 - v0) / (p1 - p0)

    def percentile_of(self, v: float) -> PercentileResult:
        pts = self.points
        low_p, low_v = pts[0]
        high_p, high_v = pts[-1]

        if v < low_v:
            (p0, v0), (p1, v1) = pts[0], pts[1]
            pct = low_p if v1 == v0 else p0 + (v - v0) * (p1 - p0) / (v1 - v0)
            return PercentileResult(percentile=_clamp(pct), below_range=True)

        if v > high_v:
            (p0, v0), (p1, v1) = pts[-2], pts[-1]
            pct = high_p if v1 == v0 else p1 + (v - v1) * (p1 - p0) / (v1 - v0)
            return PercentileResult(percentile=_clamp(pct), above_range=True)

        for (p0, v0), (p1, v1) in zip(pts, pts[1:]):
            if v0 <= v <= v1:
                # Flat segment: the lower percentile of the plateau
                if v1 == v0:
                    return PercentileResult(percentile=p0)
                return PercentileResult(percentile=p0 + (v - v0) * (p1 - p0) / (v1 - v0))
        return PercentileResult(percentile=high_p)


def _clamp(pct: float) -> float:
    return max(MIN_PERCENTILE, min(MAX_PERCENTILE, pct))


def value_at_percentile(points: PointsLike, p: float) -> Optional[float]:
    """Value at percentile p, or None when the curve is unavailable.

    Percentiles outside [25, 90] are extrapolated, never clamped.
    """
    if not is_finite(p):
        return None
    curve = BenchmarkCurve.from_points(points)
    if curve is None:
        return None
    return curve.value_at(float(p))


def percentile_of_value(points: PointsLike, v: float) -> PercentileResult:
    """Percentile of value v with below/above-range flags.

    The percentile is always finite and clamped to [0, 100] so results
    stay orderable even far outside the published range.
    """
    if not is_finite(v):
        return PercentileResult.unavailable()
    curve = BenchmarkCurve.from_points(points)
    if curve is None:
        return PercentileResult.unavailable()
    return curve.percentile_of(float(v))
