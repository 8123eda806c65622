"""DecisionTree — the include/exclude search tree rebuilt from a trace.

Visualisers draw the branch-and-bound tree progressively while the
trace is replayed.  :meth:`DecisionTree.from_trace` rebuilds it from
any prefix of a :class:`~little_tsp.trace.SearchTrace` using the
structured ``node_id`` / ``parent_id`` fields of each ``branch``
record, so no description text ever has to be parsed.

Usage
-----
>>> result = solve_tsp(costs)
>>> tree = DecisionTree.from_trace(result.trace)
>>> leaf = tree.optimal_path()[-1]
>>> tree.included_arcs(leaf.node_id)       # the optimal tour's arcs
>>> partial = DecisionTree.from_trace(result.trace, upto=5)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from .tour import tour_arcs
from .trace import SearchTrace, StepKind, StepRecord

Arc = Tuple[int, int]

__all__ = [
    "TreeNode",
    "DecisionTree",
]


@dataclass
class TreeNode:
    """One vertex of the decision tree.

    ``kind`` is ``"root"``, ``"include"`` or ``"exclude"``; ``arc`` is
    the arc the branch decided on.  ``pushed`` is False when the
    child's bound already reached the incumbent.  ``pruned_include``
    holds the arc whose include child closed a premature subtour.
    """

    node_id: int
    kind: str
    bound: float
    level: int
    arc: Optional[Arc] = None
    parent_id: Optional[int] = None
    children: List[int] = field(default_factory=list)
    pushed: bool = True
    expanded: bool = False
    pruned_include: Optional[Arc] = None
    optimal: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "kind": self.kind,
            "bound": self.bound,
            "level": self.level,
            "arc": list(self.arc) if self.arc is not None else None,
            "parent_id": self.parent_id,
            "children": list(self.children),
            "pushed": self.pushed,
            "expanded": self.expanded,
            "pruned_include": (list(self.pruned_include)
                               if self.pruned_include is not None else None),
            "optimal": self.optimal,
        }


class DecisionTree:
    """Search tree keyed by node id."""

    def __init__(self, nodes: Dict[int, TreeNode], root_id: int):
        self.nodes = nodes
        self.root_id = root_id

    # ── construction ────────────────────────────────────────────

    @classmethod
    def from_trace(
        cls,
        trace: Union[SearchTrace, Sequence[StepRecord]],
        upto: Optional[int] = None,
    ) -> "DecisionTree":
        """Build the tree from the first *upto* records (all by default).

        Raises
        ------
        ValueError
            If the prefix does not start with the root reduction record.
        """
        records = list(trace)[:upto] if upto is not None else list(trace)
        if not records or records[0].kind is not StepKind.REDUCTION:
            raise ValueError("Trace must start with the root reduction record")

        root = records[0]
        root_id = root.node_id if root.node_id is not None else 0
        nodes: Dict[int, TreeNode] = {
            root_id: TreeNode(root_id, "root", root.bound, 0),
        }
        tree = cls(nodes, root_id)
        for record in records[1:]:
            if record.kind is StepKind.BRANCH:
                tree._add_branch(record)
            elif record.kind is StepKind.FINAL and record.tour is not None:
                tree._mark_optimal(record.tour)
        return tree

    def _add_branch(self, record: StepRecord) -> None:
        parent = self.nodes[record.node_id]
        parent.expanded = True
        arc = record.selected_arc
        if record.exclude_node_id is not None:
            self.nodes[record.exclude_node_id] = TreeNode(
                record.exclude_node_id, "exclude", record.exclude_bound,
                record.level, arc, parent.node_id,
                pushed=record.exclude_pushed)
            parent.children.append(record.exclude_node_id)
        if record.pruned:
            parent.pruned_include = arc
        elif record.include_node_id is not None:
            self.nodes[record.include_node_id] = TreeNode(
                record.include_node_id, "include", record.include_bound,
                record.level + 1, arc, parent.node_id,
                pushed=record.include_pushed)
            parent.children.append(record.include_node_id)

    def _mark_optimal(self, tour: Sequence[int]) -> None:
        target = set(tour_arcs(tour))
        for node in self.nodes.values():
            if node.kind == "include" and self.included_arcs(node.node_id) == target:
                for step in self.path_to(node.node_id):
                    step.optimal = True
                return

    # ── queries ─────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, node_id: int) -> TreeNode:
        return self.nodes[node_id]

    @property
    def root(self) -> TreeNode:
        return self.nodes[self.root_id]

    def path_to(self, node_id: int) -> List[TreeNode]:
        """Nodes from the root down to *node_id*."""
        path = []
        current: Optional[int] = node_id
        while current is not None:
            node = self.nodes[current]
            path.append(node)
            current = node.parent_id
        return path[::-1]

    def included_arcs(self, node_id: int) -> Set[Arc]:
        """Arcs committed by include branches on the way to *node_id*."""
        return {n.arc for n in self.path_to(node_id) if n.kind == "include"}

    def optimal_path(self) -> List[TreeNode]:
        """Root-to-leaf path of the optimal tour (empty if unfinished)."""
        leaves = [n for n in self.nodes.values()
                  if n.optimal and not any(self.nodes[c].optimal
                                           for c in n.children)]
        if not leaves:
            return []
        return self.path_to(leaves[0].node_id)

    @property
    def depth(self) -> int:
        return max(len(self.path_to(i)) for i in self.nodes) - 1

    def leaves(self) -> List[TreeNode]:
        return [n for n in self.nodes.values() if not n.children]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root_id": self.root_id,
            "nodes": [self.nodes[k].to_dict() for k in sorted(self.nodes)],
        }

    def __repr__(self) -> str:
        return f"DecisionTree({len(self.nodes)} nodes, depth={self.depth})"
