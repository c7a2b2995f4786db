"""
Minefield Generation

Mines are placed uniformly at random once the first click is known. The
clicked cell and its neighbours never hold a mine, so the first click always
opens an empty region.
"""

from typing import List, Optional, Set, Tuple
import logging
import random


class Minefield:
    """Hidden mine layout of one game"""

    def __init__(self, rows: int, cols: int, mines: int, first_row: int, first_col: int,
                 rng: Optional[random.Random] = None):
        self.rows = max(1, rows)
        self.cols = max(1, cols)
        self.rng = rng or random.Random()
        self.logger = logging.getLogger(__name__)

        excluded = {(first_row + dr, first_col + dc)
                    for dr in (-1, 0, 1) for dc in (-1, 0, 1)}
        candidates = [(r, c) for r in range(self.rows) for c in range(self.cols)
                      if (r, c) not in excluded]

        # Mines must fit outside the first click's neighbourhood
        self.mines = min(max(0, mines), len(candidates))
        if self.mines != mines:
            self.logger.warning(f"Mine count {mines} clamped to {self.mines}")

        self._mines: Set[Tuple[int, int]] = set(self.rng.sample(candidates, self.mines))

    def is_mine(self, row: int, col: int) -> bool:
        """False for out-of-bounds coordinates"""
        return (row, col) in self._mines

    def mines_surrounding(self, row: int, col: int) -> int:
        """Number of mines among the 8 neighbours of (row, col)"""
        return sum(1 for dr in (-1, 0, 1) for dc in (-1, 0, 1)
                   if (dr or dc) and self.is_mine(row + dr, col + dc))

    def mine_positions(self) -> List[Tuple[int, int]]:
        return sorted(self._mines)
