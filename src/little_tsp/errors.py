"""Error taxonomy for the Little branch-and-bound solver.

Input problems (:class:`InsufficientCities`, :class:`InvalidMatrix`) are
raised before any search starts and subclass :class:`ValueError`.
Run-level failures (:class:`Infeasible`, :class:`SearchCancelled`)
subclass :class:`RuntimeError`.

:class:`NoBranchCandidate` and :class:`PrematureCycle` are per-branch
signals.  The engine catches them, discards the branch in question and
keeps searching; they never reach the caller of
:func:`~little_tsp.engine.solve_tsp`.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

__all__ = [
    "LittleError",
    "InsufficientCities",
    "InvalidMatrix",
    "NoBranchCandidate",
    "PrematureCycle",
    "Infeasible",
    "SearchCancelled",
]


class LittleError(Exception):
    """Base class for every error raised by :mod:`little_tsp`."""


class InsufficientCities(LittleError, ValueError):
    """Fewer than three cities — no run is attempted."""

    def __init__(self, n_cities: int):
        self.n_cities = n_cities
        super().__init__(
            f"Insufficient cities: need at least 3, got {n_cities}")


class InvalidMatrix(LittleError, ValueError):
    """Malformed cost matrix (shape, label count, or a bad cost)."""

    def __init__(self, message: str, cell: Optional[Tuple[int, int]] = None):
        self.cell = cell
        super().__init__(message)


class NoBranchCandidate(LittleError):
    """The reduced matrix has no zero cell left to branch on."""


class PrematureCycle(LittleError):
    """Including an arc would close a cycle over fewer than n cities."""

    def __init__(self, arc: Tuple[int, int], cycle: Sequence[int]):
        self.arc = arc
        self.cycle = tuple(cycle)
        super().__init__(
            f"Arc {arc} closes a subtour over {len(self.cycle)} cities")


class Infeasible(LittleError, RuntimeError):
    """The frontier was exhausted without reaching a feasible leaf."""


class SearchCancelled(LittleError, RuntimeError):
    """A cooperative cancellation check stopped the search."""

    def __init__(self, message: str, nodes_expanded: int = 0):
        self.nodes_expanded = nodes_expanded
        super().__init__(message)
