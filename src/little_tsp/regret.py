"""Regret evaluation — which zero arc is the costliest to give up.

For every zero cell ``(i, j)`` of a reduced matrix the regret is the
cheapest alternative in row *i* (other than column *j*) plus the
cheapest alternative in column *j* (other than row *i*).  A missing
alternative counts as zero.  Branching on the zero with the largest
regret makes the exclude branch's bound rise as fast as possible.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .errors import NoBranchCandidate

__all__ = [
    "RegretChoice",
    "compute_regrets",
    "select_arc",
]


@dataclass(frozen=True)
class RegretChoice:
    """The arc chosen for branching and its regret."""

    row: int
    col: int
    regret: float

    @property
    def arc(self) -> Tuple[int, int]:
        return (self.row, self.col)


def _min_excluding(values: np.ndarray, skip: int) -> float:
    finite = np.isfinite(values)
    finite[skip] = False
    if not finite.any():
        return 0.0
    return float(values[finite].min())


def compute_regrets(matrix: np.ndarray) -> np.ndarray:
    """Return an ``(n, n)`` array of regrets (0 outside zero cells)."""
    n = matrix.shape[0]
    regrets = np.zeros((n, n), dtype=np.float64)
    for i, j in zip(*np.nonzero(matrix == 0)):
        regrets[i, j] = (_min_excluding(matrix[i, :], j)
                         + _min_excluding(matrix[:, j], i))
    return regrets


def select_arc(
    matrix: np.ndarray,
    regrets: Optional[np.ndarray] = None,
) -> RegretChoice:
    """Pick the zero cell with the strictly greatest regret.

    Cells are scanned in row-major order and the first maximum wins,
    so the choice is reproducible.

    Raises
    ------
    NoBranchCandidate
        If *matrix* contains no zero cell.
    """
    if regrets is None:
        regrets = compute_regrets(matrix)
    best: Optional[RegretChoice] = None
    # np.nonzero returns indices in row-major (C) order
    for i, j in zip(*np.nonzero(matrix == 0)):
        r = float(regrets[i, j])
        if best is None or r > best.regret:
            best = RegretChoice(int(i), int(j), r)
    if best is None:
        raise NoBranchCandidate("Reduced matrix has no zero cell")
    return best
