"""Cost matrices and row/column reduction.

A working matrix is an ``(n, n)`` float64 numpy array.  Two sentinels
mark cells that are not real costs:

* :data:`FORBIDDEN` (``+inf``) — the diagonal; self loops never exist.
* :data:`EXCLUDED` (``-inf``) — arcs ruled out during the search
  (exclude branches, rows/columns eliminated by an include branch,
  reverse arcs, blocked subtour closers).

Only finite cells take part in minima and subtraction, so sentinels
survive every reduction untouched.

Usage
-----
>>> work = build_working_matrix(costs)
>>> red = reduce_matrix(work)
>>> red.total              # lower-bound contribution
>>> red.matrix             # new array, ``work`` is unchanged
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from .errors import InsufficientCities, InvalidMatrix
from .settings import DEFAULT_SETTINGS, SolverSettings

__all__ = [
    "FORBIDDEN",
    "EXCLUDED",
    "Reduction",
    "validate_costs",
    "default_labels",
    "build_working_matrix",
    "finite_mask",
    "reduce_matrix",
    "exclude_arc",
    "eliminate_line",
    "matrix_snapshot",
]

FORBIDDEN = float("inf")
EXCLUDED = float("-inf")

MIN_CITIES = 3


# ═══════════════════════════════════════════════════════════════════
# Validation & construction
# ═══════════════════════════════════════════════════════════════════

def validate_costs(
    costs,
    labels: Optional[Sequence[str]] = None,
    settings: SolverSettings = DEFAULT_SETTINGS,
) -> np.ndarray:
    """Check an input cost matrix and return it as a float64 array.

    The diagonal is ignored.  Off-diagonal costs must be finite and
    strictly positive (or non-negative when ``input.allow_zero_costs``
    is set).

    Raises
    ------
    InsufficientCities
        If fewer than three cities are given.
    InvalidMatrix
        On a non-square matrix, a bad cost, or a label count mismatch.
    """
    try:
        arr = np.array(costs, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidMatrix(f"Cost matrix is not numeric: {exc}") from exc

    if arr.size == 0:
        raise InsufficientCities(0)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise InvalidMatrix(
            f"Cost matrix must be square, got shape {arr.shape}")
    n = arr.shape[0]
    if n < MIN_CITIES:
        raise InsufficientCities(n)

    allow_zero = settings.flag("input.allow_zero_costs")
    for i in range(n):
        for j in range(n):
            if i == j:
                continue
            c = arr[i, j]
            if not np.isfinite(c):
                raise InvalidMatrix(
                    f"Cost ({i},{j}) is not finite: {c}", cell=(i, j))
            if c < 0 or (c == 0 and not allow_zero):
                raise InvalidMatrix(
                    f"Cost ({i},{j}) must be positive, got {c}", cell=(i, j))

    if labels is not None and len(labels) != n:
        raise InvalidMatrix(
            f"Expected {n} city labels, got {len(labels)}")
    return arr


def default_labels(n: int) -> Tuple[str, ...]:
    """``("City 1", "City 2", …)``."""
    return tuple(f"City {i + 1}" for i in range(n))


def build_working_matrix(costs: np.ndarray) -> np.ndarray:
    """Copy *costs* and set the diagonal to :data:`FORBIDDEN`."""
    work = np.array(costs, dtype=np.float64, copy=True)
    np.fill_diagonal(work, FORBIDDEN)
    return work


def finite_mask(matrix: np.ndarray) -> np.ndarray:
    """Boolean mask of cells holding a real (non-sentinel) cost."""
    return np.isfinite(matrix)


# ═══════════════════════════════════════════════════════════════════
# Reduction
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Reduction:
    """Result of :func:`reduce_matrix`.

    Attributes
    ----------
    matrix : np.ndarray
        The reduced matrix (a new array).
    total : float
        Sum of every row and column minimum subtracted.
    row_minima, col_minima : tuple[float, ...]
        Amount subtracted from each row / column (0 where skipped).
    """

    matrix: np.ndarray
    total: float
    row_minima: Tuple[float, ...]
    col_minima: Tuple[float, ...]


def _line_minima(work: np.ndarray, axis: int) -> np.ndarray:
    masked = np.where(np.isfinite(work), work, np.inf)
    minima = masked.min(axis=axis)
    # all-sentinel lines and lines already holding a zero contribute nothing
    return np.where(np.isfinite(minima) & (minima > 0), minima, 0.0)


def reduce_matrix(matrix: np.ndarray) -> Reduction:
    """Subtract row minima, then column minima, from the finite cells.

    Pure: *matrix* is never modified.
    """
    work = np.array(matrix, dtype=np.float64, copy=True)
    mask = np.isfinite(work)

    row_min = _line_minima(work, axis=1)
    work = np.where(mask, work - row_min[:, None], work)

    col_min = _line_minima(work, axis=0)
    work = np.where(mask, work - col_min[None, :], work)

    total = float(row_min.sum() + col_min.sum())
    return Reduction(
        matrix=work,
        total=total,
        row_minima=tuple(float(v) for v in row_min),
        col_minima=tuple(float(v) for v in col_min),
    )


# ═══════════════════════════════════════════════════════════════════
# Functional cell updates
# ═══════════════════════════════════════════════════════════════════

def exclude_arc(matrix: np.ndarray, arc: Tuple[int, int]) -> np.ndarray:
    """Return a copy of *matrix* with *arc* set to :data:`EXCLUDED`."""
    out = matrix.copy()
    out[arc[0], arc[1]] = EXCLUDED
    return out


def eliminate_line(matrix: np.ndarray, arc: Tuple[int, int]) -> np.ndarray:
    """Return a copy with row ``arc[0]`` and column ``arc[1]`` excluded.

    The reverse arc ``(arc[1], arc[0])`` is excluded as well.
    """
    i, j = arc
    out = matrix.copy()
    out[i, :] = EXCLUDED
    out[:, j] = EXCLUDED
    out[j, i] = EXCLUDED
    return out


def matrix_snapshot(matrix: np.ndarray) -> np.ndarray:
    """Read-only copy suitable for storing in a trace record."""
    snap = np.array(matrix, dtype=np.float64, copy=True)
    snap.setflags(write=False)
    return snap
