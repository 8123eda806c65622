"""Tour assembly — turn a leaf's included arcs into an ordered cycle."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

__all__ = [
    "assemble_tour",
    "tour_cost",
    "tour_arcs",
]


def assemble_tour(
    arcs: Sequence[Tuple[int, int]],
    n: int,
    start: int = 0,
) -> Optional[Tuple[int, ...]]:
    """Follow successors from *start* and return the visiting order.

    Returns None unless the arcs form exactly one cycle through all
    *n* cities: every city has a single successor, no city repeats,
    and the last city leads back to *start*.
    """
    if len(arcs) != n:
        return None
    successor: Dict[int, int] = {}
    for u, v in arcs:
        if u in successor:
            return None
        successor[u] = v

    order: List[int] = [start]
    seen = {start}
    current = start
    while len(order) < n:
        nxt = successor.get(current)
        if nxt is None or nxt in seen:
            return None
        order.append(nxt)
        seen.add(nxt)
        current = nxt
    if successor.get(current) != start:
        return None
    return tuple(order)


def tour_arcs(tour: Sequence[int]) -> List[Tuple[int, int]]:
    """Directed arcs of a cyclic tour, including the closing arc."""
    return [(tour[k], tour[(k + 1) % len(tour)]) for k in range(len(tour))]


def tour_cost(tour: Sequence[int], costs: np.ndarray) -> float:
    """Sum of original costs along the tour, closing edge included."""
    return float(sum(costs[u, v] for u, v in tour_arcs(tour)))
