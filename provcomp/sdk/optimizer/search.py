"""Bounded one-dimensional conversion factor search.

Modeled pay is non-decreasing in CF for a fixed cohort, so the aggregate
error is unimodal over the candidate domain. The search brackets the
minimum on a coarse grid, then narrows the bracket by golden-section until
the CF tolerance or the iteration cap is reached.

State per specialty: not_started -> evaluating -> converged | infeasible.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Literal, Optional, Tuple

from ..numeric import is_finite
from .settings import CFBounds, SearchSettings

logger = logging.getLogger(__name__)


SearchState = Literal["not_started", "evaluating", "converged", "infeasible"]

_INV_PHI = (math.sqrt(5.0) - 1.0) / 2.0
# Objective values closer than this are ties, resolved toward the current CF.
_TIE_EPSILON = 1e-12
_DOMAIN_EPSILON = 1e-9


def candidate_domain(
    current_cf: Optional[float],
    bounds: CFBounds,
    cap_cf: Optional[float] = None,
) -> Optional[Tuple[float, float]]:
    """Searchable CF interval, or None when it is empty.

    [current x (1 - min%), current x (1 + max%)] intersected with
    [max(0, absolute_min), min(absolute_max, cap_cf)].
    """
    if not is_finite(current_cf) or current_cf <= 0:
        return None
    lo = current_cf * (1.0 - bounds.min_change_pct / 100.0)
    hi = current_cf * (1.0 + bounds.max_change_pct / 100.0)
    lo = max(lo, 0.0, bounds.absolute_min or 0.0)
    if bounds.absolute_max is not None:
        hi = min(hi, bounds.absolute_max)
    if is_finite(cap_cf):
        hi = min(hi, cap_cf)
    if hi < lo - _DOMAIN_EPSILON:
        return None
    return (lo, max(lo, hi))


@dataclass
class SearchOutcome:
    """Result of one bounded search."""

    state: SearchState
    best_cf: Optional[float] = None
    best_objective: Optional[float] = None
    iterations: int = 0
    reached_tolerance: bool = False
    evaluations: Dict[float, float] = field(default_factory=dict)

    @classmethod
    def infeasible(cls) -> "SearchOutcome":
        return cls(state="infeasible")


class _MemoObjective:
    def __init__(self, fn: Callable[[float], float]):
        self.fn = fn
        self.cache: Dict[float, float] = {}

    def __call__(self, cf: float) -> float:
        if cf not in self.cache:
            value = self.fn(cf)
            self.cache[cf] = value if is_finite(value) else math.inf
        return self.cache[cf]


def _grid(lo: float, hi: float, n: int):
    step = (hi - lo) / (n - 1)
    return [lo + step * i for i in range(n - 1)] + [hi]


def _better(candidate: Tuple[float, float], best: Tuple[float, float], anchor: float) -> bool:
    cf, value = candidate
    best_cf, best_value = best
    if value < best_value - _TIE_EPSILON:
        return True
    if value > best_value + _TIE_EPSILON:
        return False
    dist, best_dist = abs(cf - anchor), abs(best_cf - anchor)
    if dist != best_dist:
        return dist < best_dist
    return cf < best_cf


def bounded_search(
    objective: Callable[[float], float],
    domain: Optional[Tuple[float, float]],
    anchor: float,
    settings: Optional[SearchSettings] = None,
) -> SearchOutcome:
    """Minimize objective over domain.

    Args:
        objective: CF -> aggregate error (lower is better)
        domain: (lo, hi) from candidate_domain, or None if empty
        anchor: Current CF; ties resolve to the candidate closest to it
        settings: Grid size, tolerance and iteration cap

    Returns:
        SearchOutcome with the best CF found
    """
    if domain is None:
        return SearchOutcome.infeasible()
    settings = settings or SearchSettings()
    lo, hi = domain
    f = _MemoObjective(objective)
    clamped_anchor = min(max(anchor, lo), hi)

    if hi - lo <= settings.tolerance:
        f(clamped_anchor)
        return SearchOutcome(
            state="converged",
            best_cf=clamped_anchor,
            best_objective=f.cache[clamped_anchor],
            reached_tolerance=True,
            evaluations=dict(f.cache),
        )

    grid = _grid(lo, hi, settings.grid_points)
    values = [f(cf) for cf in grid]
    k = 0
    for i in range(1, len(grid)):
        if _better((grid[i], values[i]), (grid[k], values[k]), anchor):
            k = i

    # Golden-section on the bracket around the best grid point
    a, b = grid[max(0, k - 1)], grid[min(len(grid) - 1, k + 1)]
    c = b - _INV_PHI * (b - a)
    d = a + _INV_PHI * (b - a)
    iterations = 0
    while b - a > settings.tolerance and iterations < settings.max_iterations:
        iterations += 1
        if f(c) <= f(d):
            b, d = d, c
            c = b - _INV_PHI * (b - a)
        else:
            a, c = c, d
            d = a + _INV_PHI * (b - a)
    f((a + b) / 2.0)
    f(clamped_anchor)

    best = None
    for cf in sorted(f.cache):
        candidate = (cf, f.cache[cf])
        if best is None or _better(candidate, best, anchor):
            best = candidate

    reached = b - a <= settings.tolerance
    if not reached:
        logger.debug(f"Search hit iteration cap ({iterations}) with bracket width {b - a:.6f}")
    return SearchOutcome(
        state="converged",
        best_cf=best[0],
        best_objective=best[1],
        iterations=iterations,
        reached_tolerance=reached,
        evaluations=dict(f.cache),
    )
