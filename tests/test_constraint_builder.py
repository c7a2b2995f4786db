# tests/test_constraint_builder.py

from mineprob.solver.constraint_builder import (
    ConstraintBuilder, build_constraint_system, BACKGROUND_VARIABLE, NO_VARIABLE
)
from mineprob.solver.game_state import MinesweeperBoard


def test_variables_are_numbered_row_major():
    """Frontier cells get 1..n in scan order; revealed cells get none."""
    board = MinesweeperBoard.from_rows(["###", "#1#", "###"], total_mines=1)
    constraints = build_constraint_system(board)

    assert constraints.variable_grid.tolist() == [
        [1, 2, 3],
        [4, NO_VARIABLE, 5],
        [6, 7, 8],
    ]
    assert constraints.num_vars == 9
    assert constraints.frontier_size == 8
    assert constraints.variable_cells[1] == (0, 0)
    assert constraints.variable_cells[8] == (2, 2)


def test_background_equation_comes_first():
    """Row 0 is N * x0 + sum(frontier) = mines remaining."""
    board = MinesweeperBoard.from_rows(["1##", "###", "##F"], total_mines=2)
    constraints = build_constraint_system(board)

    assert constraints.background_cells == 4
    assert constraints.mines_remaining == 1
    assert constraints.system.row(0) == (4, 1, 1, 1, 1)
    assert constraints.constraints[0].source_cell is None


def test_cells_away_from_numbers_share_the_background_variable():
    """Flags are neither frontier nor background cells."""
    board = MinesweeperBoard.from_rows(["1##", "###", "##F"], total_mines=2)
    grid = build_constraint_system(board).variable_grid

    assert grid[0, 2] == BACKGROUND_VARIABLE
    assert grid[2, 0] == BACKGROUND_VARIABLE
    assert grid[2, 2] == NO_VARIABLE
    assert grid[0, 0] == NO_VARIABLE


def test_flags_offset_the_right_hand_side():
    """Adjacent flags are subtracted from the number shown."""
    board = MinesweeperBoard.from_rows(["2F", "##"], total_mines=2)
    constraints = build_constraint_system(board)

    assert constraints.num_equations == 2
    assert constraints.system.row(1) == (0, 1, 1, 1)
    assert constraints.constraints[1].rhs == 1
    assert constraints.constraints[1].source_cell == (0, 0)


def test_revealed_mines_offset_like_flags():
    """A revealed mine next to a number counts as a known mine."""
    board = MinesweeperBoard.from_rows(["1*", "##"], total_mines=1)
    constraints = build_constraint_system(board)

    assert constraints.system.row(1) == (0, 1, 1, 0)


def test_numbers_without_covered_neighbors_add_no_equation():
    """Only revealed cells touching unrevealed cells are equation sources."""
    board = MinesweeperBoard.from_rows(["1F#", "11#"], total_mines=1)
    builder = ConstraintBuilder(board)
    _, variable_cells, background_cells, sources = builder.assign_variables()

    assert sources == [(1, 1)]
    assert variable_cells == [None, (0, 2), (1, 2)]
    assert background_cells == 0


def test_fully_covered_board_is_one_background_equation():
    """Without numbers there is only variable 0."""
    board = MinesweeperBoard(3, 3, 2)
    constraints = build_constraint_system(board)

    assert constraints.num_vars == 1
    assert constraints.num_equations == 1
    assert constraints.system.row(0) == (9, 2)
