"""
Dense Linear System with Exact Gauss-Jordan Reduction

The system holds the constraint equations of a minesweeper position as an
augmented matrix: one row per equation, one column per unknown and a final
right-hand-side column. Entries are fractions.Fraction values stored in a
numpy object array, so reduction never loses precision and the 0/1 tests
made by the probability engine can compare exactly.
"""

from fractions import Fraction
from math import lcm
from typing import List, Sequence, Tuple
import logging

import numpy as np


logger = logging.getLogger(__name__)


class DimensionMismatch(ValueError):
    """An equation does not fit the dimensions of the system"""


class LinearSystem:
    """
    Fixed-size system of linear equations

    The matrix is allocated once with `num_equations` rows and
    `num_vars + 1` columns; equations fill it top-down. Rows that are never
    filled stay zero, which does not change the solution set.
    """

    def __init__(self, num_vars: int, num_equations: int):
        self.num_vars = max(1, num_vars)
        self.num_equations = max(1, num_equations)

        self._matrix = np.full((self.num_equations, self.num_vars + 1),
                               Fraction(0), dtype=object)
        self._filled = 0

        # Pivot column of each successive pivot row, recorded by rref()
        self.pivot_columns: List[int] = []
        self._reduced = False

    @property
    def rows(self) -> int:
        """Number of equations"""
        return self.num_equations

    @property
    def cols(self) -> int:
        """Number of columns (unknowns + 1 for the right-hand side)"""
        return self.num_vars + 1

    @property
    def is_reduced(self) -> bool:
        return self._reduced

    def get(self, row: int, col: int) -> Fraction:
        """Coefficient of unknown `col` in equation `row` (col == num_vars is the RHS)"""
        return self._matrix[row, col]

    def row(self, row: int) -> Tuple[Fraction, ...]:
        return tuple(self._matrix[row])

    def add_equation(self, values: Sequence) -> None:
        """
        Append an equation

        Args:
            values: num_vars coefficients followed by the right-hand side

        Raises:
            DimensionMismatch: If the length is not num_vars + 1 or the
                system already holds num_equations equations
        """
        if len(values) != self.cols:
            raise DimensionMismatch(
                f"Equation has {len(values)} entries, system expects {self.cols}")
        if self._filled >= self.num_equations:
            raise DimensionMismatch(
                f"System already holds {self.num_equations} equations")

        self._matrix[self._filled] = [Fraction(v) for v in values]
        self._filled += 1
        self._reduced = False

    # ------------------------------------------------------------------
    # Elementary row operations
    # ------------------------------------------------------------------

    def swap_rows(self, a: int, b: int) -> None:
        if a != b:
            self._matrix[[a, b]] = self._matrix[[b, a]]

    def scale_row(self, row: int, k) -> None:
        """row *= k"""
        self._matrix[row] = self._matrix[row] * Fraction(k)

    def add_rows(self, target: int, source: int, k=1) -> None:
        """target += k * source"""
        self._matrix[target] = self._matrix[target] + self._matrix[source] * Fraction(k)

    def _column_all_zeros(self, col: int, from_row: int) -> bool:
        return not any(self._matrix[from_row:, col])

    def rref(self) -> List[int]:
        """
        Convert the matrix to reduced row-echelon form (Gauss-Jordan)

        Only coefficient columns are used as pivots; a row left with zero
        coefficients and a non-zero right-hand side marks an inconsistent
        system (see inconsistent_rows).

        Returns:
            The pivot column of each pivot row, top-down
        """
        pivot_row = 0
        self.pivot_columns = []

        for col in range(self.num_vars):
            if pivot_row >= self.num_equations:
                break

            # Skip columns of all zeros
            if self._column_all_zeros(col, pivot_row):
                continue

            # First non-zero entry at or below the pivot row
            for r in range(pivot_row, self.num_equations):
                if self._matrix[r, col] != 0:
                    self.swap_rows(r, pivot_row)
                    break

            # Pivot becomes exactly 1
            self.scale_row(pivot_row, 1 / self._matrix[pivot_row, col])

            # Eliminate the column everywhere else
            for r in range(self.num_equations):
                if r != pivot_row and self._matrix[r, col] != 0:
                    self.add_rows(r, pivot_row, -self._matrix[r, col])

            self.pivot_columns.append(col)
            pivot_row += 1

        self._reduced = True
        logger.debug(f"RREF: rank {len(self.pivot_columns)} of "
                     f"{self.num_equations}x{self.num_vars} system")
        return self.pivot_columns

    def inconsistent_rows(self) -> List[int]:
        """Rows reading 0 = c with c != 0"""
        return [r for r in range(self.num_equations)
                if not any(self._matrix[r, :self.num_vars])
                and self._matrix[r, self.num_vars] != 0]

    def solve_for(self, unknown: int, values: dict) -> Fraction:
        """
        Value of one unknown in the reduced system

        Args:
            unknown: Index of the unknown
            values: Values already known for other unknowns (the free
                variables at least). A pivot unknown is solved from its row;
                any other unknown is looked up in `values`.
        """
        if unknown in values:
            return Fraction(values[unknown])
        if unknown not in self.pivot_columns:
            raise KeyError(f"Unknown {unknown} is free and has no value")

        row = self.pivot_columns.index(unknown)
        answer = self._matrix[row, self.num_vars]
        for col in range(self.num_vars):
            coefficient = self._matrix[row, col]
            if col != unknown and coefficient != 0:
                answer -= coefficient * self.solve_for(col, values)
        return answer

    def scaled_integer_matrix(self) -> Tuple[np.ndarray, int]:
        """
        Integer copy of the matrix and the factor it was scaled by

        Every entry is multiplied by the least common multiple of all
        denominators, so integer arithmetic on the copy stays exact. The
        copy holds Python ints (object dtype); callers narrow it to int64
        when they know their sums cannot overflow.
        """
        denominator = lcm(*(f.denominator for f in self._matrix.flat))
        scaled = np.empty(self._matrix.shape, dtype=object)
        for index, value in np.ndenumerate(self._matrix):
            scaled[index] = int(value * denominator)
        return scaled, denominator

    def __str__(self) -> str:
        return '\n'.join(' '.join(f"{str(v):>6}" for v in row) for row in self._matrix)
