"""
Constraint Builder - Board State to Linear System

Every covered, unflagged cell becomes an unknown of a linear system:

- cells next to at least one revealed number ("frontier" cells) each get
  their own variable, numbered from 1 in row-major order;
- all other covered cells are interchangeable and share variable 0, the
  background variable.

Each revealed number with covered neighbours contributes one equation (its
covered neighbours sum to the number minus the adjacent flags) and a single
background equation ties everything to the count of mines still unflagged.
"""

from typing import List, Optional, Tuple
import logging
from dataclasses import dataclass, field

import numpy as np

from .game_state import MinesweeperBoard, CellState
from .linear_system import LinearSystem

BACKGROUND_VARIABLE = 0
NO_VARIABLE = -1


@dataclass
class Constraint:
    """One equation of the system, kept for inspection and logging"""
    variables: List[int]             # Variable indices with coefficient 1
    rhs: int                         # Mines needed among them
    source_cell: Optional[Tuple[int, int]]  # Revealed cell, None for the background


@dataclass
class ConstraintSystem:
    """Everything the probability engine needs about one board position"""
    num_vars: int
    num_equations: int
    variable_grid: np.ndarray        # Variable index per cell, -1 if none
    system: LinearSystem
    background_cells: int
    mines_remaining: int
    variable_cells: List[Optional[Tuple[int, int]]] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)

    @property
    def frontier_size(self) -> int:
        return self.num_vars - 1


class ConstraintBuilder:
    """Translates a board position into a LinearSystem"""

    def __init__(self, board: MinesweeperBoard):
        self.board = board
        self.logger = logging.getLogger(__name__)

    def assign_variables(self) -> Tuple[np.ndarray, List[Optional[Tuple[int, int]]], int, List[Tuple[int, int]]]:
        """
        Scan the board once and number the unknowns

        Returns:
            (variable grid, cells of variables 1..n in order,
             number of background cells, revealed cells that yield equations)
        """
        board = self.board
        variable_grid = np.full((board.rows, board.cols), NO_VARIABLE, dtype=int)
        variable_cells: List[Optional[Tuple[int, int]]] = [None]  # Variable 0 has no single cell
        background_cells = 0
        sources: List[Tuple[int, int]] = []

        for r in range(board.rows):
            for c in range(board.cols):
                state = board.cell_state(r, c)

                if state == CellState.UNREVEALED:
                    if board.has_revealed_neighbor(r, c):
                        variable_grid[r, c] = len(variable_cells)
                        variable_cells.append((r, c))
                    else:
                        variable_grid[r, c] = BACKGROUND_VARIABLE
                        background_cells += 1

                elif state == CellState.REVEALED and board.has_covered_neighbor(r, c):
                    sources.append((r, c))

        return variable_grid, variable_cells, background_cells, sources

    def build(self) -> ConstraintSystem:
        """Build the linear system for the current board"""
        variable_grid, variable_cells, background_cells, sources = self.assign_variables()
        num_vars = len(variable_cells)
        num_equations = 1 + len(sources)
        mines_remaining = self.board.mines_remaining()

        system = LinearSystem(num_vars, num_equations)

        # Background equation: every covered cell together holds the
        # unflagged mines
        background = [background_cells] + [1] * (num_vars - 1) + [mines_remaining]
        system.add_equation(background)

        constraints = [Constraint(list(range(num_vars)), mines_remaining, None)]
        for r, c in sources:
            equation, constraint = self._frontier_equation(r, c, variable_grid, num_vars)
            system.add_equation(equation)
            constraints.append(constraint)

        self.logger.info(
            f"Constraint system: {num_vars} variables ({num_vars - 1} frontier, "
            f"{background_cells} background cells), {num_equations} equations")

        return ConstraintSystem(
            num_vars=num_vars,
            num_equations=num_equations,
            variable_grid=variable_grid,
            system=system,
            background_cells=background_cells,
            mines_remaining=mines_remaining,
            variable_cells=variable_cells,
            constraints=constraints,
        )

    def _frontier_equation(self, row: int, col: int, variable_grid: np.ndarray,
                           num_vars: int) -> Tuple[List[int], Constraint]:
        """Equation contributed by the revealed number at (row, col)"""
        equation = [0] * (num_vars + 1)
        variables = []
        flags = 0

        for nr, nc in self.board.get_neighbor_coords(row, col):
            state = self.board.cell_state(nr, nc)
            if state == CellState.UNREVEALED:
                var = int(variable_grid[nr, nc])
                equation[var] = 1
                variables.append(var)
            elif state in (CellState.FLAGGED, CellState.MINE):
                flags += 1

        rhs = self.board.get_cell(row, col).number - flags
        equation[num_vars] = rhs
        return equation, Constraint(variables, rhs, (row, col))


def build_constraint_system(board: MinesweeperBoard) -> ConstraintSystem:
    """Convenience wrapper around ConstraintBuilder"""
    return ConstraintBuilder(board).build()
