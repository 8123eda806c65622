"""Tests for subtour elimination (little_tsp.connectivity).

Covers:
1. UnionFind
2. find_cycle / has_cycle — iterative three-colour search
3. ConnectivityState — chain endpoints and lengths
4. guard_inclusion — premature cycles and blocked closing arcs
"""

import numpy as np
import pytest

from little_tsp.connectivity import (
    ConnectivityState,
    UnionFind,
    find_cycle,
    guard_inclusion,
    has_cycle,
)
from little_tsp.errors import PrematureCycle
from little_tsp.matrix import EXCLUDED, build_working_matrix, eliminate_line


def _uniform(n):
    return build_working_matrix(np.ones((n, n)))


# ═══════════════════════════════════════════════════════════════════
# 1. UnionFind
# ═══════════════════════════════════════════════════════════════════

class TestUnionFind:

    def test_singletons(self):
        uf = UnionFind(4)
        assert not uf.connected(0, 1)
        assert uf.find(3) == 3

    def test_union_connects(self):
        uf = UnionFind(4)
        assert uf.union(0, 1)
        assert uf.union(1, 2)
        assert uf.connected(0, 2)
        assert not uf.connected(0, 3)

    def test_union_of_connected_returns_false(self):
        uf = UnionFind(3)
        uf.union(0, 1)
        uf.union(1, 2)
        assert uf.union(2, 0) is False

    def test_long_chain_compresses(self):
        uf = UnionFind(50)
        for i in range(49):
            uf.union(i, i + 1)
        root = uf.find(0)
        assert all(uf.find(i) == root for i in range(50))


# ═══════════════════════════════════════════════════════════════════
# 2. Cycle detection
# ═══════════════════════════════════════════════════════════════════

class TestFindCycle:

    def test_empty(self):
        assert find_cycle([], 3) is None
        assert not has_cycle([], 3)

    def test_path_has_no_cycle(self):
        assert find_cycle([(0, 1), (1, 2), (2, 3)], 4) is None

    def test_triangle(self):
        assert find_cycle([(0, 1), (1, 2), (2, 0)], 3) == [0, 1, 2]

    def test_cycle_reported_from_entry_point(self):
        cycle = find_cycle([(0, 1), (1, 2), (2, 1)], 3)
        assert sorted(cycle) == [1, 2]

    def test_subtour_among_paths(self):
        arcs = [(0, 1), (2, 3), (3, 4), (4, 2)]
        assert sorted(find_cycle(arcs, 5)) == [2, 3, 4]

    def test_converging_paths_are_not_cycles(self):
        assert not has_cycle([(0, 2), (1, 2), (2, 3)], 4)

    def test_long_path_no_recursion_limit(self):
        n = 5000
        arcs = [(i, i + 1) for i in range(n - 1)]
        assert not has_cycle(arcs, n)
        assert len(find_cycle(arcs + [(n - 1, 0)], n)) == n


# ═══════════════════════════════════════════════════════════════════
# 3. ConnectivityState
# ═══════════════════════════════════════════════════════════════════

class TestConnectivityState:

    def test_chain_endpoints(self):
        state = ConnectivityState.from_arcs([(2, 0), (0, 3)], 5)
        assert state.chain_start(3) == 2
        assert state.chain_end(2) == 3
        assert state.chain_length(0) == 3

    def test_isolated_city(self):
        state = ConnectivityState.from_arcs([(0, 1)], 4)
        assert state.chain_start(3) == 3
        assert state.chain_end(3) == 3
        assert state.chain_length(3) == 1

    def test_endpoints_listing(self):
        state = ConnectivityState.from_arcs([(0, 1), (3, 4), (4, 2)], 6)
        assert state.endpoints() == [(0, 1), (3, 2)]

    def test_premature_union_raises(self):
        with pytest.raises(PrematureCycle):
            ConnectivityState.from_arcs([(0, 1), (1, 0)], 4)

    def test_full_cycle_allowed(self):
        state = ConnectivityState.from_arcs([(0, 1), (1, 2), (2, 0)], 3)
        assert state.successor == {0: 1, 1: 2, 2: 0}


# ═══════════════════════════════════════════════════════════════════
# 4. guard_inclusion
# ═══════════════════════════════════════════════════════════════════

class TestGuardInclusion:

    def test_blocks_closing_arc(self):
        m = eliminate_line(_uniform(4), (1, 2))
        result = guard_inclusion(m, [(0, 1)], (1, 2))
        assert result.blocked_arcs == ((2, 0),)
        assert result.matrix[2, 0] == EXCLUDED
        assert result.included == ((0, 1), (1, 2))

    def test_input_matrix_untouched(self):
        m = eliminate_line(_uniform(4), (1, 2))
        guard_inclusion(m, [(0, 1)], (1, 2))
        assert m[2, 0] == 1.0

    def test_merging_two_chains(self):
        m = eliminate_line(_uniform(5), (1, 2))
        result = guard_inclusion(m, [(0, 1), (2, 3)], (1, 2))
        assert result.blocked_arcs == ((3, 0),)

    def test_prepending_to_chain(self):
        m = eliminate_line(_uniform(5), (4, 0))
        result = guard_inclusion(m, [(0, 1), (1, 2)], (4, 0))
        assert result.blocked_arcs == ((2, 4),)

    def test_reverse_arc_not_reported_twice(self):
        # for a lone arc the closing arc is the reverse arc, already excluded
        m = eliminate_line(_uniform(4), (0, 1))
        result = guard_inclusion(m, [], (0, 1))
        assert result.blocked_arcs == ()
        assert result.matrix[1, 0] == EXCLUDED

    def test_premature_cycle_rejected(self):
        m = eliminate_line(_uniform(4), (2, 0))
        with pytest.raises(PrematureCycle) as info:
            guard_inclusion(m, [(0, 1), (1, 2)], (2, 0))
        assert info.value.arc == (2, 0)
        assert len(info.value.cycle) == 3

    def test_hamiltonian_cycle_accepted(self):
        m = eliminate_line(_uniform(3), (2, 0))
        result = guard_inclusion(m, [(0, 1), (1, 2)], (2, 0))
        assert result.blocked_arcs == ()
        assert len(result.included) == 3

    def test_spanning_path_keeps_last_arc(self):
        m = eliminate_line(_uniform(3), (1, 2))
        result = guard_inclusion(m, [(0, 1)], (1, 2))
        assert result.blocked_arcs == ()
        assert result.matrix[2, 0] == 1.0
