"""Tests for cost-matrix validation and reduction (little_tsp.matrix).

Covers:
1. validate_costs — accepted and rejected inputs
2. build_working_matrix — diagonal sentinel
3. reduce_matrix — totals, minima, purity, sentinel handling
4. exclude_arc / eliminate_line / matrix_snapshot
"""

import numpy as np
import pytest

from little_tsp.errors import InsufficientCities, InvalidMatrix
from little_tsp.matrix import (
    EXCLUDED,
    FORBIDDEN,
    build_working_matrix,
    default_labels,
    eliminate_line,
    exclude_arc,
    finite_mask,
    matrix_snapshot,
    reduce_matrix,
    validate_costs,
)
from little_tsp.settings import DEFAULT_SETTINGS


FOUR_CITIES = [
    [0, 10, 15, 20],
    [10, 0, 35, 25],
    [15, 35, 0, 30],
    [20, 25, 30, 0],
]


@pytest.fixture
def working():
    return build_working_matrix(np.array(FOUR_CITIES, dtype=float))


# ═══════════════════════════════════════════════════════════════════
# 1. validate_costs
# ═══════════════════════════════════════════════════════════════════

class TestValidateCosts:

    def test_valid_matrix_returns_float_array(self):
        arr = validate_costs(FOUR_CITIES)
        assert arr.dtype == np.float64
        assert arr.shape == (4, 4)

    def test_two_cities_rejected(self):
        with pytest.raises(InsufficientCities) as info:
            validate_costs([[0, 1], [1, 0]])
        assert info.value.n_cities == 2

    def test_insufficient_cities_is_value_error(self):
        with pytest.raises(ValueError):
            validate_costs([[0]])

    def test_non_square_rejected(self):
        with pytest.raises(InvalidMatrix):
            validate_costs([[0, 1, 2, 3], [1, 0, 2, 3], [1, 2, 0, 3]])

    @pytest.mark.parametrize("costs", [[], [[]], np.zeros((0, 0))])
    def test_empty_reports_zero_cities(self, costs):
        with pytest.raises(InsufficientCities) as info:
            validate_costs(costs)
        assert info.value.n_cities == 0

    @pytest.mark.parametrize("shape", [(2, 5), (5, 2), (3, 4), (3, 3, 3), (9,)])
    def test_non_square_shapes_are_invalid(self, shape):
        with pytest.raises(InvalidMatrix, match="square"):
            validate_costs(np.ones(shape))

    def test_ragged_rejected(self):
        with pytest.raises(InvalidMatrix):
            validate_costs([[0, 1, 2], [1, 0], [1, 2, 0]])

    def test_negative_cost_rejected_with_cell(self):
        costs = [[0, 1, 2], [1, 0, -3], [1, 2, 0]]
        with pytest.raises(InvalidMatrix) as info:
            validate_costs(costs)
        assert info.value.cell == (1, 2)

    def test_non_finite_cost_rejected(self):
        costs = [[0, 1, float("nan")], [1, 0, 3], [1, 2, 0]]
        with pytest.raises(InvalidMatrix):
            validate_costs(costs)

    def test_zero_cost_rejected_by_default(self):
        costs = [[0, 0, 2], [1, 0, 3], [1, 2, 0]]
        with pytest.raises(InvalidMatrix):
            validate_costs(costs)

    def test_zero_cost_allowed_by_setting(self):
        costs = [[0, 0, 2], [1, 0, 3], [1, 2, 0]]
        settings = DEFAULT_SETTINGS.replace({"input.allow_zero_costs": 1})
        arr = validate_costs(costs, settings=settings)
        assert arr[0, 1] == 0.0

    def test_diagonal_is_ignored(self):
        costs = [[99, 1, 2], [1, -5, 3], [1, 2, float("inf")]]
        arr = validate_costs(costs)
        assert arr[0, 1] == 1.0

    def test_label_count_mismatch(self):
        with pytest.raises(InvalidMatrix):
            validate_costs(FOUR_CITIES, labels=["A", "B"])

    def test_default_labels(self):
        assert default_labels(3) == ("City 1", "City 2", "City 3")


# ═══════════════════════════════════════════════════════════════════
# 2. build_working_matrix
# ═══════════════════════════════════════════════════════════════════

class TestWorkingMatrix:

    def test_diagonal_forbidden(self, working):
        assert all(working[i, i] == FORBIDDEN for i in range(4))

    def test_input_not_modified(self):
        costs = np.array(FOUR_CITIES, dtype=float)
        build_working_matrix(costs)
        assert costs[0, 0] == 0.0

    def test_finite_mask_excludes_sentinels(self, working):
        working[0, 1] = EXCLUDED
        mask = finite_mask(working)
        assert not mask[0, 0]
        assert not mask[0, 1]
        assert mask[0, 2]


# ═══════════════════════════════════════════════════════════════════
# 3. reduce_matrix
# ═══════════════════════════════════════════════════════════════════

class TestReduceMatrix:

    def test_total(self, working):
        assert reduce_matrix(working).total == pytest.approx(70.0)

    def test_row_and_column_minima(self, working):
        red = reduce_matrix(working)
        assert red.row_minima == (10.0, 10.0, 15.0, 20.0)
        assert red.col_minima == (0.0, 0.0, 5.0, 10.0)

    def test_reduced_values(self, working):
        red = reduce_matrix(working)
        expected = np.array([
            [FORBIDDEN, 0, 0, 0],
            [0, FORBIDDEN, 20, 5],
            [0, 20, FORBIDDEN, 5],
            [0, 5, 5, FORBIDDEN],
        ])
        np.testing.assert_array_equal(red.matrix, expected)

    def test_every_line_has_a_zero(self, working):
        m = reduce_matrix(working).matrix
        assert all((m[i, :] == 0).any() for i in range(4))
        assert all((m[:, j] == 0).any() for j in range(4))

    def test_pure(self, working):
        before = working.copy()
        reduce_matrix(working)
        np.testing.assert_array_equal(working, before)

    def test_sentinels_untouched(self, working):
        working[1, 3] = EXCLUDED
        red = reduce_matrix(working)
        assert red.matrix[1, 3] == EXCLUDED
        assert red.matrix[2, 2] == FORBIDDEN

    def test_excluded_cell_ignored_for_minimum(self, working):
        # row 0 minimum is 10 at column 1; excluding it makes 15 the minimum
        working[0, 1] = EXCLUDED
        red = reduce_matrix(working)
        assert red.row_minima[0] == 15.0

    def test_all_sentinel_row_contributes_zero(self, working):
        working[2, :] = EXCLUDED
        red = reduce_matrix(working)
        assert red.row_minima[2] == 0.0
        assert np.all(red.matrix[2, :] == EXCLUDED)

    def test_already_reduced_matrix_adds_nothing(self, working):
        once = reduce_matrix(working)
        twice = reduce_matrix(once.matrix)
        assert twice.total == 0.0
        np.testing.assert_array_equal(twice.matrix, once.matrix)


# ═══════════════════════════════════════════════════════════════════
# 4. Functional cell updates
# ═══════════════════════════════════════════════════════════════════

class TestCellUpdates:

    def test_exclude_arc_copies(self, working):
        out = exclude_arc(working, (0, 2))
        assert out[0, 2] == EXCLUDED
        assert working[0, 2] == 15.0

    def test_eliminate_line(self, working):
        out = eliminate_line(working, (1, 3))
        assert np.all(out[1, :] == EXCLUDED)
        assert np.all(out[:, 3] == EXCLUDED)
        assert out[3, 1] == EXCLUDED
        assert out[0, 1] == 10.0
        assert working[1, 0] == 10.0

    def test_snapshot_is_read_only(self, working):
        snap = matrix_snapshot(working)
        with pytest.raises(ValueError):
            snap[0, 1] = 1.0

    def test_snapshot_is_independent(self, working):
        snap = matrix_snapshot(working)
        working[0, 1] = 999.0
        assert snap[0, 1] == 10.0
