# tests/test_brute_force.py
"""Compare the engine against direct enumeration of every mine layout."""

from itertools import combinations

import numpy as np
import pytest

from mineprob.solver.game_state import MinesweeperBoard
from mineprob.solver.probability_engine import EngineConfig, ProbabilityEngine


def brute_force_probabilities(board: MinesweeperBoard) -> np.ndarray:
    """Average over every placement of the unflagged mines that fits the numbers."""
    covered = [(cell.row, cell.col) for cell in board.iter_cells() if cell.is_unrevealed]
    known = {(cell.row, cell.col) for cell in board.iter_cells() if cell.is_known_mine}
    numbers = [cell for cell in board.iter_cells() if cell.is_revealed]

    hits = np.zeros((board.rows, board.cols))
    layouts = 0
    for mines in combinations(covered, board.mines_remaining()):
        placed = known | set(mines)
        if all(sum(1 for n in board.get_neighbor_coords(cell.row, cell.col) if n in placed)
               == cell.number for cell in numbers):
            layouts += 1
            for r, c in mines:
                hits[r, c] += 1

    assert layouts > 0
    grid = hits / layouts
    for r, c in known:
        grid[r, c] = 1.0
    return grid


BOARDS = [
    (["1##", "###", "###"], 2),
    (["1#1", "###", "###", "###"], 2),
    (["1#1", "###", "###", "###"], 3),
    (["..1#", ".12#", "12##", "####"], 4),
    (["..1#", ".12#", "12##", "F###"], 4),
    (["#2#", "#3#", "###", "###"], 4),
    (["1F##", "12##", "####"], 4),
    (["#1##", "#11#", "####", "####"], 3),
]


@pytest.mark.parametrize("rows,mines", BOARDS)
def test_exact_weighting_matches_brute_force(rows, mines):
    """Exact weighting gives the true marginal of every cell."""
    board = MinesweeperBoard.from_rows(rows, total_mines=mines)
    grid = ProbabilityEngine(board, EngineConfig(weighting="exact")).calculate().grid

    assert np.allclose(grid, brute_force_probabilities(board))


@pytest.mark.parametrize("rows,mines", [
    (["###", "#1#", "###"], 1),
    (["2#", "##"], 2),
    (["#1#", "###"], 1),
])
def test_uniform_weighting_matches_brute_force_without_background(rows, mines):
    """With no background cells every layout is one assignment."""
    board = MinesweeperBoard.from_rows(rows, total_mines=mines)
    grid = ProbabilityEngine(board).calculate().grid

    assert np.allclose(grid, brute_force_probabilities(board))
