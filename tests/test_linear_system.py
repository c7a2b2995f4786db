# tests/test_linear_system.py

from fractions import Fraction

import pytest

from mineprob.solver.linear_system import LinearSystem, DimensionMismatch
from mineprob.solver.probability_engine import select_free_variables
from mineprob.solver.constraint_builder import build_constraint_system
from mineprob.solver.game_state import MinesweeperBoard


def make_system(equations, num_vars):
    system = LinearSystem(num_vars, len(equations))
    for equation in equations:
        system.add_equation(equation)
    return system


def assert_rref(system):
    """Leading ones move right and are the only non-zero entry in their column."""
    last_lead = -1
    seen_zero_row = False
    for r in range(system.rows):
        coefficients = system.row(r)[:system.num_vars]
        lead = next((c for c, v in enumerate(coefficients) if v != 0), None)
        if lead is None:
            seen_zero_row = True
            continue
        assert not seen_zero_row
        assert lead > last_lead
        assert coefficients[lead] == 1
        for other in range(system.rows):
            if other != r:
                assert system.get(other, lead) == 0
        last_lead = lead


def test_rref_solves_square_system():
    """x0 + x1 = 1 and x0 - x1 = 0 reduce to x0 = x1 = 1/2."""
    system = make_system([[1, 1, 1], [1, -1, 0]], num_vars=2)

    assert system.rref() == [0, 1]
    assert system.row(0) == (1, 0, Fraction(1, 2))
    assert system.row(1) == (0, 1, Fraction(1, 2))
    assert system.is_reduced


def test_rref_skips_zero_columns_and_keeps_fractions_exact():
    """Zero columns are not pivots; thirds stay exact."""
    system = make_system([[0, 3, 1, 1], [0, 0, 3, 2]], num_vars=3)

    assert system.rref() == [1, 2]
    assert system.row(0) == (0, 1, 0, Fraction(1, 9))
    assert system.row(1) == (0, 0, 1, Fraction(2, 3))
    assert_rref(system)


def test_rref_of_minesweeper_system():
    """A real constraint system ends up in reduced row-echelon form."""
    board = MinesweeperBoard.from_rows(["1#1", "###", "###", "###"], total_mines=2)
    system = build_constraint_system(board).system
    system.rref()

    assert_rref(system)


def test_pivot_columns_lead_their_rows_and_drive_selection():
    """Pivot i is the leading column of row i; the rest are free variables."""
    board = MinesweeperBoard.from_rows(["..1#", ".12#", "12##", "####"], total_mines=4)
    system = build_constraint_system(board).system

    selected, free = select_free_variables(system)
    assert system.is_reduced
    assert selected == system.pivot_columns
    for row, col in enumerate(selected):
        coefficients = system.row(row)[:system.num_vars]
        assert next(c for c, v in enumerate(coefficients) if v != 0) == col
    for row in range(len(selected), system.rows):
        assert not any(system.row(row)[:system.num_vars])
    assert sorted(selected + free) == list(range(system.num_vars))


def test_wrong_equation_length_raises():
    """An equation must carry num_vars coefficients plus the RHS."""
    system = LinearSystem(2, 1)

    with pytest.raises(DimensionMismatch):
        system.add_equation([1, 1])


def test_too_many_equations_raises():
    """Capacity is fixed at construction."""
    system = LinearSystem(1, 1)
    system.add_equation([1, 0])

    with pytest.raises(DimensionMismatch):
        system.add_equation([1, 1])


def test_dimensions_are_clamped():
    """A system always has at least one unknown and one equation."""
    system = LinearSystem(0, -2)

    assert system.num_vars == 1
    assert system.rows == 1
    assert system.cols == 2


def test_inconsistent_rows_are_reported():
    """x0 + x1 = 1 and x0 + x1 = 2 leave a 0 = c row."""
    system = make_system([[1, 1, 1], [1, 1, 2]], num_vars=2)
    system.rref()

    assert system.inconsistent_rows() == [1]


def test_consistent_system_has_no_inconsistent_rows():
    """Dependent equations reduce to 0 = 0."""
    system = make_system([[1, 1, 1], [2, 2, 2]], num_vars=2)
    system.rref()

    assert system.inconsistent_rows() == []


def test_solve_for_back_substitutes_free_values():
    """Pivots follow from the values of the free variables."""
    system = make_system([[1, 1, 1]], num_vars=2)
    system.rref()

    assert system.solve_for(0, {1: 1}) == 0
    assert system.solve_for(0, {1: 0}) == 1
    assert system.solve_for(1, {1: 1}) == 1


def test_solve_for_free_variable_without_value_raises():
    """A free variable cannot be derived from the system."""
    system = make_system([[1, 1, 1]], num_vars=2)
    system.rref()

    with pytest.raises(KeyError):
        system.solve_for(1, {})


def test_scaled_integer_matrix_uses_common_denominator():
    """Halves scale to integers with denominator 2."""
    system = make_system([[1, 1, 1], [1, -1, 0]], num_vars=2)
    system.rref()

    matrix, denominator = system.scaled_integer_matrix()
    assert denominator == 2
    assert matrix.tolist() == [[2, 0, 1], [0, 2, 1]]


def test_row_operations():
    """Swap, scale and add act on whole rows."""
    system = make_system([[1, 2, 3], [4, 5, 6]], num_vars=2)

    system.swap_rows(0, 1)
    assert system.row(0) == (4, 5, 6)

    system.scale_row(0, Fraction(1, 2))
    assert system.row(0) == (2, Fraction(5, 2), 3)

    system.add_rows(1, 0, -1)
    assert system.row(1) == (-1, Fraction(-1, 2), 0)
