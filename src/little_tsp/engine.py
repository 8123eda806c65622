"""Little's branch-and-bound search engine.

The search runs best-first over include/exclude branches:

1. **Initialize** — diagonal set to FORBIDDEN, matrix reduced, root
   node pushed with the reduction total as its bound.
2. **Pop** — cooperative cancellation check, then the node with the
   lowest ``(bound, insertion order)``.
3. **Terminal check** — nodes whose bound reaches the incumbent cost
   are pruned; nodes with *n* included arcs are assembled into a tour.
4. **Branch** — the zero with the largest regret is chosen; an exclude
   child and (unless it closes a premature subtour) an include child
   are reduced and pushed when their bound beats the incumbent.
5. **Done** — a ``final`` record carries the optimal tour.

:meth:`LittleSolver.steps` is a generator yielding one
:class:`~little_tsp.trace.StepRecord` at a time, so playback can be
paused, resumed or abandoned between records.  :func:`solve_tsp` runs
the whole search and returns a :class:`TSPResult`.

Usage
-----
>>> from little_tsp import solve_tsp
>>> costs = [[0, 10, 15, 20], [10, 0, 35, 25],
...          [15, 35, 0, 30], [20, 25, 30, 0]]
>>> result = solve_tsp(costs, labels=["A", "B", "C", "D"])
>>> result.cost
80.0
>>> result.tour                    # or its reverse, (0, 2, 3, 1)
(0, 1, 3, 2)

>>> solver = LittleSolver(costs)
>>> for record in solver.steps():      # interactive playback
...     print(record.summary())
>>> solver.result.cost
80.0
"""

from __future__ import annotations

import heapq
import itertools
import logging
import math
from dataclasses import dataclass
from typing import (
    Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple,
)

import numpy as np

from .connectivity import guard_inclusion
from .errors import Infeasible, NoBranchCandidate, PrematureCycle, SearchCancelled
from .matrix import (
    EXCLUDED, FORBIDDEN, build_working_matrix, default_labels,
    eliminate_line, exclude_arc, reduce_matrix, validate_costs,
)
from .regret import compute_regrets, select_arc
from .settings import DEFAULT_SETTINGS, SolverSettings
from .tour import assemble_tour, tour_arcs, tour_cost
from .trace import SearchTrace, StepKind, StepRecord, format_arc, format_tour

logger = logging.getLogger(__name__)

Arc = Tuple[int, int]

__all__ = [
    "BranchNode",
    "SearchFrontier",
    "TSPResult",
    "LittleSolver",
    "solve_tsp",
]


# ═══════════════════════════════════════════════════════════════════
# BranchNode & SearchFrontier
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class BranchNode:
    """One node of the search tree.

    The node owns its matrix; children always receive fresh copies.
    """

    matrix: np.ndarray
    bound: float
    level: int
    included: Tuple[Arc, ...]
    excluded: Tuple[Arc, ...]
    node_id: int
    parent_id: Optional[int] = None

    def __repr__(self) -> str:
        return (f"BranchNode(#{self.node_id}, bound={self.bound:g}, "
                f"level={self.level})")


class SearchFrontier:
    """Binary heap of :class:`BranchNode` keyed by ``(bound, seq)``.

    Equal bounds come out in insertion order.
    """

    def __init__(self):
        self._heap: List[Tuple[float, int, BranchNode]] = []
        self._counter = itertools.count()

    def push(self, node: BranchNode) -> None:
        heapq.heappush(self._heap, (node.bound, next(self._counter), node))

    def pop(self) -> BranchNode:
        return heapq.heappop(self._heap)[2]

    def peek_bound(self) -> float:
        return self._heap[0][0] if self._heap else math.inf

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)


# ═══════════════════════════════════════════════════════════════════
# TSPResult
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class TSPResult:
    """Optimal tour, its cost, and the full trace of the run."""

    tour: Tuple[int, ...]
    cost: float
    trace: SearchTrace
    labels: Tuple[str, ...]
    root_bound: float
    nodes_expanded: int = 0

    @property
    def route(self) -> List[str]:
        """City labels in visiting order."""
        return [self.labels[c] for c in self.tour]

    @property
    def arcs(self) -> List[Arc]:
        return tour_arcs(self.tour)

    def to_dict(self, precision: Optional[int] = None) -> Dict[str, Any]:
        """Return a JSON-safe dict: ``{tour, cost, labels, trace, …}``."""
        if precision is None:
            precision = self.trace.precision
        return {
            "tour": list(self.tour),
            "cost": round(self.cost, precision),
            "labels": list(self.labels),
            "root_bound": round(self.root_bound, precision),
            "nodes_expanded": self.nodes_expanded,
            "trace": self.trace.to_dict(precision),
        }

    def summary(self) -> str:
        return (f"{format_tour(self.tour, self.labels)} "
                f"(cost={self.cost:g}, root bound={self.root_bound:g}, "
                f"steps={len(self.trace)})")


# ═══════════════════════════════════════════════════════════════════
# LittleSolver
# ═══════════════════════════════════════════════════════════════════

class LittleSolver:
    """Resumable best-first branch-and-bound over one cost matrix.

    Parameters
    ----------
    costs : array-like, shape (n, n)
        Finite positive off-diagonal costs; the diagonal is ignored.
    labels : sequence of str, optional
        One display name per city.  Defaults to ``"City 1"``, ….
    settings : SolverSettings, optional
        Defaults to :data:`~little_tsp.settings.DEFAULT_SETTINGS`.
    cancel : callable, optional
        Zero-argument predicate checked before every pop; returning
        True stops the search with :class:`SearchCancelled`.

    Raises
    ------
    InsufficientCities, InvalidMatrix
        From input validation, before any state is built.
    """

    def __init__(
        self,
        costs,
        labels: Optional[Sequence[str]] = None,
        settings: Optional[SolverSettings] = None,
        cancel: Optional[Callable[[], bool]] = None,
    ):
        self.settings = settings if settings is not None else DEFAULT_SETTINGS
        self.costs = validate_costs(costs, labels, self.settings)
        self.n = self.costs.shape[0]
        self.labels = (tuple(str(label) for label in labels) if labels is not None
                       else default_labels(self.n))
        self.cancel = cancel
        self.max_expansions = self.settings.integer("search.max_expansions")

        self.trace = SearchTrace(
            self.labels,
            record_matrices=self.settings.flag("trace.record_matrices"),
            precision=self.settings.integer("trace.precision"))
        self.frontier = SearchFrontier()
        self.best_cost = math.inf
        self.best_tour: Optional[Tuple[int, ...]] = None
        self.root_bound: Optional[float] = None
        self.nodes_expanded = 0
        self.incumbent_updates: List[Tuple[int, float]] = []
        self.pruned_nodes: List[int] = []

        self._ids = itertools.count()
        self._started = False
        self._result: Optional[TSPResult] = None

    # ── public API ──────────────────────────────────────────────

    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> TSPResult:
        """The finished result.  Raises RuntimeError before completion."""
        if self._result is None:
            raise RuntimeError("Search has not finished yet")
        return self._result

    def run(self) -> TSPResult:
        """Drain :meth:`steps` and return the result."""
        for _ in self.steps():
            pass
        return self.result

    def steps(self) -> Iterator[StepRecord]:
        """Yield each trace record as soon as it is produced.

        A solver can be stepped through only once.

        Raises
        ------
        Infeasible
            If the frontier empties before any tour is found.
        SearchCancelled
            If ``cancel()`` returns True or the expansion cap is hit.
        """
        if self._started:
            raise RuntimeError("LittleSolver.steps() can only run once")
        self._started = True
        logger.info(f"Little branch and bound: {self.n} cities")

        yield self._initialize()

        while self.frontier:
            self._check_cancel()
            node = self.frontier.pop()

            if node.bound >= self.best_cost:
                logger.debug(f"pruned {node!r} (incumbent {self.best_cost:g})")
                self.pruned_nodes.append(node.node_id)
                continue
            if node.level == self.n:
                self._consider_leaf(node)
                continue
            yield from self._branch(node)

        if self.best_tour is None:
            raise Infeasible(
                f"No feasible tour found after {self.nodes_expanded} expansions")
        yield self._finish()

    # ── states ──────────────────────────────────────────────────

    def _initialize(self) -> StepRecord:
        reduced = reduce_matrix(build_working_matrix(self.costs))
        self.root_bound = reduced.total
        root = BranchNode(
            matrix=reduced.matrix, bound=reduced.total, level=0,
            included=(), excluded=(), node_id=next(self._ids))
        self.frontier.push(root)
        return self.trace.emit(
            StepKind.REDUCTION,
            "Initial matrix reduction",
            (f"Row minima {_fmt_values(reduced.row_minima)}, "
             f"column minima {_fmt_values(reduced.col_minima)}.\n"
             f"Initial lower bound: {reduced.total:g}"),
            reduced.total,
            matrix=reduced.matrix,
            node_id=root.node_id,
        )

    def _check_cancel(self) -> None:
        if self.cancel is not None and self.cancel():
            logger.info(f"search cancelled after {self.nodes_expanded} expansions")
            raise SearchCancelled("Search cancelled", self.nodes_expanded)
        if self.max_expansions and self.nodes_expanded >= self.max_expansions:
            raise SearchCancelled(
                f"Expansion limit of {self.max_expansions} reached",
                self.nodes_expanded)

    def _consider_leaf(self, node: BranchNode) -> None:
        tour = assemble_tour(node.included, self.n)
        if tour is None:
            logger.warning(
                f"rejected leaf #{node.node_id}: arcs {list(node.included)} "
                f"do not form a Hamiltonian cycle")
            return
        cost = tour_cost(tour, self.costs)
        if cost < self.best_cost:
            self.best_cost = cost
            self.best_tour = tour
            self.incumbent_updates.append((node.node_id, cost))
            logger.info(f"new incumbent {format_tour(tour, self.labels)} "
                        f"cost={cost:g} (node #{node.node_id})")

    def _branch(self, node: BranchNode) -> Iterator[StepRecord]:
        regrets = compute_regrets(node.matrix)
        try:
            choice = select_arc(node.matrix, regrets)
        except NoBranchCandidate:
            logger.debug(f"discarded {node!r}: no zero cell to branch on")
            return
        self.nodes_expanded += 1
        arc = choice.arc
        arc_name = format_arc(arc, self.labels)
        common = dict(node_id=node.node_id, parent_id=node.parent_id,
                      level=node.level, selected_arc=arc)

        yield self.trace.emit(
            StepKind.REGRET,
            f"Regret evaluation, level {node.level}",
            f"Selected arc {arc_name} with maximum regret {choice.regret:g}",
            node.bound,
            matrix=node.matrix,
            regrets=regrets,
            **common,
        )

        # exclude child
        excl = reduce_matrix(exclude_arc(node.matrix, arc))
        exclude_bound = node.bound + excl.total
        exclude_id = next(self._ids)
        exclude_pushed = exclude_bound < self.best_cost
        if exclude_pushed:
            self.frontier.push(BranchNode(
                matrix=excl.matrix, bound=exclude_bound, level=node.level,
                included=node.included, excluded=node.excluded + (arc,),
                node_id=exclude_id, parent_id=node.node_id))
        exclude_text = (f"Exclude {arc_name}: {exclude_bound:g} = "
                        f"{node.bound:g} + {excl.total:g} (reduction)")

        # include child
        arc_cost = float(node.matrix[arc])
        candidate = eliminate_line(node.matrix, arc)
        try:
            guarded = guard_inclusion(candidate, node.included, arc)
        except PrematureCycle as exc:
            logger.debug(f"include {arc} pruned: {exc}")
            yield self.trace.emit(
                StepKind.BRANCH,
                "Premature cycle, include branch pruned",
                (f"{exclude_text}\n"
                 f"Include {arc_name} would close the subtour "
                 f"{format_tour(exc.cycle, self.labels)}; branch pruned."),
                node.bound + arc_cost,
                matrix=candidate,
                exclude_bound=exclude_bound,
                exclude_node_id=exclude_id,
                exclude_pushed=exclude_pushed,
                pruned=True,
                **common,
            )
            return

        incl = reduce_matrix(guarded.matrix)
        include_bound = node.bound + arc_cost + incl.total
        include_id = next(self._ids)
        include_pushed = include_bound < self.best_cost
        if include_pushed:
            self.frontier.push(BranchNode(
                matrix=incl.matrix, bound=include_bound, level=node.level + 1,
                included=guarded.included, excluded=node.excluded,
                node_id=include_id, parent_id=node.node_id))

        i, j = arc
        lines = [
            exclude_text,
            (f"Include {arc_name}: {include_bound:g} = {node.bound:g} + "
             f"{arc_cost:g} (arc cost) + {incl.total:g} (reduction)"),
            (f"  row {self.labels[i]} and column {self.labels[j]} removed, "
             f"reverse arc {format_arc((j, i), self.labels)} blocked"),
        ]
        for blocked in guarded.blocked_arcs:
            lines.append(f"  arc {format_arc(blocked, self.labels)} blocked "
                         f"to prevent a subtour")

        yield self.trace.emit(
            StepKind.BRANCH,
            "Branch evaluation",
            "\n".join(lines),
            include_bound,
            matrix=incl.matrix,
            include_bound=include_bound,
            exclude_bound=exclude_bound,
            include_node_id=include_id,
            exclude_node_id=exclude_id,
            include_pushed=include_pushed,
            exclude_pushed=exclude_pushed,
            blocked_arcs=guarded.blocked_arcs,
            **common,
        )

    def _finish(self) -> StepRecord:
        tour = self.best_tour
        cleaned = np.full((self.n, self.n), EXCLUDED)
        for u, v in tour_arcs(tour):
            cleaned[u, v] = self.costs[u, v]
        np.fill_diagonal(cleaned, FORBIDDEN)

        record = self.trace.emit(
            StepKind.FINAL,
            "Optimal tour found",
            (f"Optimal tour: {format_tour(tour, self.labels)}\n"
             f"Total cost: {self.best_cost:g}"),
            self.best_cost,
            matrix=cleaned,
            tour=tour,
            level=self.n,
        )
        self._result = TSPResult(
            tour=tour,
            cost=self.best_cost,
            trace=self.trace,
            labels=self.labels,
            root_bound=self.root_bound,
            nodes_expanded=self.nodes_expanded,
        )
        logger.info(f"optimal cost {self.best_cost:g} after "
                    f"{self.nodes_expanded} expansions, {len(self.trace)} steps")
        return record


def _fmt_values(values: Sequence[float]) -> str:
    return "[" + ", ".join(f"{v:g}" for v in values) + "]"


def solve_tsp(
    costs,
    labels: Optional[Sequence[str]] = None,
    settings: Optional[SolverSettings] = None,
    cancel: Optional[Callable[[], bool]] = None,
) -> TSPResult:
    """Solve a TSP instance optimally and return tour, cost and trace."""
    return LittleSolver(costs, labels, settings=settings, cancel=cancel).run()
