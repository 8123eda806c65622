"""SearchTrace — the step-by-step audit trail of one solver run.

Every decision the engine makes is captured as a frozen
:class:`StepRecord`: the initial reduction, each regret evaluation,
each include/exclude branching, and the final tour.  The records are
appended in order to a :class:`SearchTrace`, which is the only thing a
visualiser needs to replay a run — any prefix of it is a valid
playback state.

Usage
-----
>>> result = solve_tsp(costs, labels=["A", "B", "C", "D"])
>>> trace = result.trace
>>> trace[0].kind                  # StepKind.REDUCTION
>>> trace.of_kind("branch")        # [StepRecord(…), …]
>>> trace.final.tour               # (0, 1, 3, 2)
>>> trace.to_dict()                # JSON-safe list of records
>>> print(trace.explain())

Serialisation
-------------
Matrix cells holding a sentinel become the strings ``"forbidden"``
(diagonal) and ``"excluded"`` (ruled out during the search) in
:meth:`StepRecord.to_dict`; finite cells are rounded floats.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from .matrix import FORBIDDEN, matrix_snapshot

Arc = Tuple[int, int]

__all__ = [
    "StepKind",
    "StepRecord",
    "SearchTrace",
    "format_arc",
    "format_tour",
]


class StepKind(str, enum.Enum):
    REDUCTION = "reduction"
    REGRET = "regret"
    BRANCH = "branch"
    FINAL = "final"


# ═══════════════════════════════════════════════════════════════════
# Formatting helpers
# ═══════════════════════════════════════════════════════════════════

def _label(labels: Optional[Sequence[str]], city: int) -> str:
    if labels is not None and 0 <= city < len(labels):
        return str(labels[city])
    return f"City {city + 1}"


def format_arc(arc: Arc, labels: Optional[Sequence[str]] = None) -> str:
    """``(Paris, Lyon)``."""
    return f"({_label(labels, arc[0])}, {_label(labels, arc[1])})"


def format_tour(
    tour: Sequence[int], labels: Optional[Sequence[str]] = None,
) -> str:
    """``A → B → C → A``."""
    if not tour:
        return ""
    names = [_label(labels, c) for c in tour]
    return " → ".join(names + [names[0]])


def _encode_cell(value: float, precision: int) -> Union[float, str]:
    if np.isfinite(value):
        return round(float(value), precision)
    return "forbidden" if value == FORBIDDEN else "excluded"


def _encode_matrix(
    matrix: Optional[np.ndarray], precision: int,
) -> Optional[List[List[Union[float, str]]]]:
    if matrix is None:
        return None
    return [[_encode_cell(v, precision) for v in row] for row in matrix]


def _round(value: Optional[float], precision: int) -> Optional[float]:
    return None if value is None else round(float(value), precision)


# ═══════════════════════════════════════════════════════════════════
# StepRecord
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class StepRecord:
    """One immutable snapshot of an algorithm decision.

    Core fields
    -----------
    seq : int
        1-based position in the trace.
    kind : StepKind
        ``reduction``, ``regret``, ``branch`` or ``final``.
    title, description : str
        Human-readable text (labels already substituted).
    bound : float
        Lower bound of the node concerned (tour cost for ``final``).
    matrix : np.ndarray or None
        Read-only matrix snapshot; None when
        ``trace.record_matrices`` is off.
    selected_arc : (int, int) or None
        Arc chosen by maximum regret (``regret`` / ``branch``).
    regrets : np.ndarray or None
        Regret matrix (``regret`` records).

    Branching detail
    ----------------
    node_id, parent_id : int or None
        Search-tree node the record is about and its parent.
    level : int
        Number of included arcs at that node.
    include_bound, exclude_bound : float or None
        Bounds of the two children (``branch`` records).
    include_node_id, exclude_node_id : int or None
        Ids given to the children; ``include_node_id`` is None when
        the include child closed a premature cycle.
    include_pushed, exclude_pushed : bool
        Whether each child entered the frontier.
    blocked_arcs : tuple of arcs
        Subtour-closing arcs excluded by the include child.
    pruned : bool
        True when the include child was dropped for closing a subtour.
    tour : tuple[int, ...] or None
        Optimal tour (``final`` records).
    """

    seq: int
    kind: StepKind
    title: str
    description: str
    bound: float
    matrix: Optional[np.ndarray] = None
    selected_arc: Optional[Arc] = None
    regrets: Optional[np.ndarray] = None
    node_id: Optional[int] = None
    parent_id: Optional[int] = None
    level: int = 0
    include_bound: Optional[float] = None
    exclude_bound: Optional[float] = None
    include_node_id: Optional[int] = None
    exclude_node_id: Optional[int] = None
    include_pushed: bool = False
    exclude_pushed: bool = False
    blocked_arcs: Tuple[Arc, ...] = ()
    pruned: bool = False
    tour: Optional[Tuple[int, ...]] = None

    def to_dict(self, precision: int = 6) -> Dict[str, Any]:
        """Return a JSON-safe dict of the record."""
        return {
            "seq": self.seq,
            "kind": self.kind.value,
            "title": self.title,
            "description": self.description,
            "bound": _round(self.bound, precision),
            "matrix": _encode_matrix(self.matrix, precision),
            "selected_arc": (list(self.selected_arc)
                             if self.selected_arc is not None else None),
            "regrets": _encode_matrix(self.regrets, precision),
            "node_id": self.node_id,
            "parent_id": self.parent_id,
            "level": self.level,
            "include_bound": _round(self.include_bound, precision),
            "exclude_bound": _round(self.exclude_bound, precision),
            "include_node_id": self.include_node_id,
            "exclude_node_id": self.exclude_node_id,
            "include_pushed": self.include_pushed,
            "exclude_pushed": self.exclude_pushed,
            "blocked_arcs": [list(a) for a in self.blocked_arcs],
            "pruned": self.pruned,
            "tour": list(self.tour) if self.tour is not None else None,
        }

    def summary(self) -> str:
        """One-line human-readable summary."""
        return f"#{self.seq} [{self.kind.value}] {self.title} (bound={self.bound:g})"

    def __repr__(self) -> str:
        return (f"StepRecord({self.seq}, {self.kind.value!r}, "
                f"bound={self.bound:g})")


# ═══════════════════════════════════════════════════════════════════
# SearchTrace — append-only record list
# ═══════════════════════════════════════════════════════════════════

class SearchTrace:
    """Ordered, append-only sequence of :class:`StepRecord`.

    Only the engine calls :meth:`emit`; consumers read the records by
    index, iteration, or :meth:`of_kind`.

    Parameters
    ----------
    labels : sequence of str, optional
        City labels, used by :meth:`explain`.
    record_matrices : bool
        When False, matrix and regret snapshots are dropped.
    precision : int
        Default rounding digits for :meth:`to_dict`.
    """

    def __init__(
        self,
        labels: Optional[Sequence[str]] = None,
        *,
        record_matrices: bool = True,
        precision: int = 6,
    ):
        self._records: List[StepRecord] = []
        self.labels: Tuple[str, ...] = tuple(labels) if labels else ()
        self.record_matrices = record_matrices
        self.precision = precision

    def emit(
        self,
        kind: StepKind,
        title: str,
        description: str,
        bound: float,
        *,
        matrix: Optional[np.ndarray] = None,
        regrets: Optional[np.ndarray] = None,
        **details: Any,
    ) -> StepRecord:
        """Append a new record and return it.  Sequence numbers start at 1."""
        if not self.record_matrices:
            matrix = regrets = None
        record = StepRecord(
            seq=len(self._records) + 1,
            kind=StepKind(kind),
            title=title,
            description=description,
            bound=float(bound),
            matrix=matrix_snapshot(matrix) if matrix is not None else None,
            regrets=matrix_snapshot(regrets) if regrets is not None else None,
            **details,
        )
        self._records.append(record)
        return record

    # ── read ────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[StepRecord]:
        return iter(tuple(self._records))

    def __getitem__(self, index):
        if isinstance(index, slice):
            return tuple(self._records[index])
        return self._records[index]

    @property
    def records(self) -> Tuple[StepRecord, ...]:
        return tuple(self._records)

    def of_kind(self, kind: Union[StepKind, str]) -> List[StepRecord]:
        """All records of one kind, in order."""
        kind = StepKind(kind)
        return [r for r in self._records if r.kind is kind]

    @property
    def root(self) -> Optional[StepRecord]:
        """The initial reduction record."""
        return self._records[0] if self._records else None

    @property
    def final(self) -> Optional[StepRecord]:
        """The ``final`` record, if the run finished."""
        finals = self.of_kind(StepKind.FINAL)
        return finals[-1] if finals else None

    @property
    def n_pruned(self) -> int:
        """Include branches dropped for closing a premature subtour."""
        return sum(1 for r in self._records if r.pruned)

    # ── serialisation ───────────────────────────────────────────

    def to_dict(self, precision: Optional[int] = None) -> List[Dict[str, Any]]:
        if precision is None:
            precision = self.precision
        return [r.to_dict(precision) for r in self._records]

    def to_json(
        self, precision: Optional[int] = None, indent: Optional[int] = 2,
    ) -> str:
        return json.dumps(self.to_dict(precision), indent=indent,
                          ensure_ascii=False)

    def explain(self, limit: Optional[int] = None) -> str:
        """Multi-line replay of the run, one block per record."""
        lines: List[str] = []
        records = self._records if limit is None else self._records[:limit]
        for r in records:
            lines.append(r.summary())
            for line in r.description.splitlines():
                lines.append(f"    {line}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"SearchTrace({len(self._records)} records)"
