"""little-tsp: exact Traveling Salesman solving with Little's method.

Solves asymmetric TSP instances optimally with Little's branch and
bound: row/column matrix reduction, regret-based arc selection, and a
best-first search over include/exclude branches with subtour
elimination.  Every decision is recorded in an immutable, ordered
:class:`SearchTrace` that visualisers can replay step by step.
"""
from .errors import (
    LittleError, InsufficientCities, InvalidMatrix,
    NoBranchCandidate, PrematureCycle, Infeasible, SearchCancelled,
)
from .settings import SolverSettings, DEFAULT_SETTINGS

# Matrix reduction & regret
from .matrix import (
    FORBIDDEN, EXCLUDED, Reduction,
    validate_costs, build_working_matrix, reduce_matrix,
)
from .regret import RegretChoice, compute_regrets, select_arc

# Subtour elimination & tours
from .connectivity import (
    UnionFind, ConnectivityState, GuardResult,
    find_cycle, has_cycle, guard_inclusion,
)
from .tour import assemble_tour, tour_cost, tour_arcs

# Trace & search
from .trace import StepKind, StepRecord, SearchTrace, format_arc, format_tour
from .engine import BranchNode, SearchFrontier, TSPResult, LittleSolver, solve_tsp
from .tree import TreeNode, DecisionTree

__version__ = "0.1.0"

__all__ = [
    # Errors
    "LittleError", "InsufficientCities", "InvalidMatrix",
    "NoBranchCandidate", "PrematureCycle", "Infeasible", "SearchCancelled",
    # Settings
    "SolverSettings", "DEFAULT_SETTINGS",
    # Matrix reduction & regret
    "FORBIDDEN", "EXCLUDED", "Reduction",
    "validate_costs", "build_working_matrix", "reduce_matrix",
    "RegretChoice", "compute_regrets", "select_arc",
    # Subtour elimination & tours
    "UnionFind", "ConnectivityState", "GuardResult",
    "find_cycle", "has_cycle", "guard_inclusion",
    "assemble_tour", "tour_cost", "tour_arcs",
    # Trace & search
    "StepKind", "StepRecord", "SearchTrace", "format_arc", "format_tour",
    "BranchNode", "SearchFrontier", "TSPResult", "LittleSolver", "solve_tsp",
    "TreeNode", "DecisionTree",
]
