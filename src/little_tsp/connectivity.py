"""Connectivity guard — keep included arcs free of premature subtours.

Every include branch adds one directed arc to the node's set.  Before
the branch is accepted the guard checks that the tentative set still
forms vertex-disjoint paths (or, with exactly *n* arcs, one
Hamiltonian cycle) and blocks the single arc that would close the
newly grown path into a loop.

All state here is rebuilt from the arc list for every attempt;
nothing is shared between branch nodes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .errors import PrematureCycle
from .matrix import EXCLUDED

logger = logging.getLogger(__name__)

Arc = Tuple[int, int]

__all__ = [
    "UnionFind",
    "find_cycle",
    "has_cycle",
    "ConnectivityState",
    "GuardResult",
    "guard_inclusion",
]

_WHITE, _GREY, _BLACK = 0, 1, 2


# ═══════════════════════════════════════════════════════════════════
# UnionFind
# ═══════════════════════════════════════════════════════════════════

class UnionFind:
    """Array-based disjoint sets with path compression and union by rank."""

    def __init__(self, size: int):
        self.parent: List[int] = list(range(size))
        self.rank: List[int] = [0] * size

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, x: int, y: int) -> bool:
        """Merge the sets of *x* and *y*.  False if already connected."""
        rx, ry = self.find(x), self.find(y)
        if rx == ry:
            return False
        if self.rank[rx] < self.rank[ry]:
            rx, ry = ry, rx
        self.parent[ry] = rx
        if self.rank[rx] == self.rank[ry]:
            self.rank[rx] += 1
        return True

    def connected(self, x: int, y: int) -> bool:
        return self.find(x) == self.find(y)


# ═══════════════════════════════════════════════════════════════════
# Three-colour cycle test
# ═══════════════════════════════════════════════════════════════════

def find_cycle(arcs: Sequence[Arc], n: int) -> Optional[List[int]]:
    """Return the nodes of the first directed cycle in *arcs*, or None.

    Iterative depth-first search with a white / grey / black colour
    table of size *n*; a grey neighbour is a back edge.
    """
    adjacency: List[List[int]] = [[] for _ in range(n)]
    for u, v in arcs:
        adjacency[u].append(v)

    colour = [_WHITE] * n
    for root in range(n):
        if colour[root] != _WHITE or not adjacency[root]:
            continue
        path: List[int] = [root]
        cursor: List[int] = [0]
        colour[root] = _GREY
        while path:
            node = path[-1]
            if cursor[-1] < len(adjacency[node]):
                nxt = adjacency[node][cursor[-1]]
                cursor[-1] += 1
                if colour[nxt] == _GREY:
                    return path[path.index(nxt):]
                if colour[nxt] == _WHITE:
                    colour[nxt] = _GREY
                    path.append(nxt)
                    cursor.append(0)
            else:
                colour[node] = _BLACK
                path.pop()
                cursor.pop()
    return None


def has_cycle(arcs: Sequence[Arc], n: int) -> bool:
    return find_cycle(arcs, n) is not None


# ═══════════════════════════════════════════════════════════════════
# ConnectivityState — chains built from included arcs
# ═══════════════════════════════════════════════════════════════════

class ConnectivityState:
    """Union-find partition plus successor / predecessor links.

    Built with :meth:`from_arcs`.  Raises :class:`PrematureCycle` during
    construction if an arc joins two cities already in the same
    component while fewer than *n* arcs are present.
    """

    def __init__(self, n: int):
        self.n = n
        self.sets = UnionFind(n)
        self.successor: Dict[int, int] = {}
        self.predecessor: Dict[int, int] = {}

    @classmethod
    def from_arcs(cls, arcs: Sequence[Arc], n: int) -> "ConnectivityState":
        state = cls(n)
        for u, v in arcs:
            if not state.sets.union(u, v) and len(arcs) < n:
                raise PrematureCycle((u, v), state._walk_back(u))
            state.successor[u] = v
            state.predecessor[v] = u
        return state

    def _walk_back(self, u: int) -> List[int]:
        nodes = [u]
        while nodes[-1] in self.predecessor and len(nodes) <= self.n:
            nodes.append(self.predecessor[nodes[-1]])
        return nodes[::-1]

    def chain_start(self, city: int) -> int:
        """First city of the path through *city* (follows predecessors)."""
        steps = 0
        while city in self.predecessor and steps < self.n:
            city = self.predecessor[city]
            steps += 1
        return city

    def chain_end(self, city: int) -> int:
        """Last city of the path through *city* (follows successors)."""
        steps = 0
        while city in self.successor and steps < self.n:
            city = self.successor[city]
            steps += 1
        return city

    def chain_length(self, city: int) -> int:
        """Number of cities on the path through *city*."""
        start = self.chain_start(city)
        count = 1
        while start in self.successor and count <= self.n:
            start = self.successor[start]
            count += 1
        return count

    def endpoints(self) -> List[Tuple[int, int]]:
        """``(start, end)`` of every chain with at least one arc."""
        starts = sorted(u for u in self.successor if u not in self.predecessor)
        return [(s, self.chain_end(s)) for s in starts]


# ═══════════════════════════════════════════════════════════════════
# guard_inclusion — the include-branch check
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class GuardResult:
    """Outcome of a successful :func:`guard_inclusion`.

    Attributes
    ----------
    matrix : np.ndarray
        Candidate matrix with the subtour-closing arc excluded.
    included : tuple[Arc, ...]
        The parent's included arcs followed by the new arc.
    blocked_arcs : tuple[Arc, ...]
        Arcs set to EXCLUDED by the guard (empty when none was needed).
    """

    matrix: np.ndarray
    included: Tuple[Arc, ...]
    blocked_arcs: Tuple[Arc, ...]


def guard_inclusion(
    matrix: np.ndarray,
    included: Sequence[Arc],
    arc: Arc,
) -> GuardResult:
    """Validate adding *arc* to *included* and block the closing arc.

    *matrix* is the include candidate (row and column already
    eliminated); it is not modified.

    Raises
    ------
    PrematureCycle
        If the tentative arc set closes a cycle over fewer than n cities.
    """
    n = matrix.shape[0]
    tentative = tuple(included) + (tuple(arc),)

    cycle = find_cycle(tentative, n)
    if cycle is not None and len(cycle) < n:
        raise PrematureCycle(arc, cycle)
    state = ConnectivityState.from_arcs(tentative, n)

    out = matrix.copy()
    blocked: List[Arc] = []
    u, v = arc
    start = state.chain_start(u)
    end = state.chain_end(v)
    if cycle is None and state.chain_length(u) < n:
        if np.isfinite(out[end, start]):
            out[end, start] = EXCLUDED
            blocked.append((end, start))
            logger.debug(f"blocked subtour closer {(end, start)} "
                         f"after including {arc}")
    return GuardResult(out, tentative, tuple(blocked))
