"""
Game Controller

Runs a game of minesweeper on top of a hidden Minefield and the player's
MinesweeperBoard, and hands the board to the probability engine on demand.
"""

from enum import Enum
from typing import List, Optional, Tuple
import logging
import random

from ..solver.game_state import MinesweeperBoard
from ..solver.probability_engine import (
    EngineConfig, EnumerationAborted, ProbabilityCalculator, ProbabilityEngine
)
from .minefield import Minefield


class GameStatus(Enum):
    """Lifecycle of one game"""
    NOT_STARTED = "not_started"
    PLAYING = "playing"
    WON = "won"
    LOST = "lost"


class MinesweeperGame:
    """
    One game of minesweeper

    The minefield is generated on the first click so that the clicked cell
    and its neighbours are always safe.
    """

    def __init__(self, rows: int, cols: int, mines: int,
                 rng: Optional[random.Random] = None,
                 config: Optional[EngineConfig] = None):
        self.rows = max(1, rows)
        self.cols = max(1, cols)
        # The first click keeps up to nine cells free of mines
        self.mines = min(max(0, mines), max(0, self.rows * self.cols - 9))
        self.rng = rng or random.Random()
        self.config = config or EngineConfig()
        self.logger = logging.getLogger(__name__)

        self.board: MinesweeperBoard
        self.minefield: Optional[Minefield] = None
        self.status = GameStatus.NOT_STARTED
        self.new_game()

    @property
    def started(self) -> bool:
        return self.status != GameStatus.NOT_STARTED

    @property
    def game_over(self) -> bool:
        return self.status in (GameStatus.WON, GameStatus.LOST)

    def new_game(self) -> None:
        """Fresh board; the minefield waits for the first click"""
        self.board = MinesweeperBoard(self.rows, self.cols, self.mines)
        self.minefield = None
        self.status = GameStatus.NOT_STARTED
        self.logger.info(f"New game: {self.rows}x{self.cols} with {self.mines} mines")

    def start(self, row: int, col: int) -> None:
        """Generate the minefield around the first click"""
        self.minefield = Minefield(self.rows, self.cols, self.mines, row, col, rng=self.rng)
        self.status = GameStatus.PLAYING

    def click(self, row: int, col: int) -> bool:
        """
        Reveal a cell

        Returns:
            True if the board changed
        """
        if not self.board.in_bounds(row, col) or self.game_over:
            return False

        if not self.started:
            self.start(row, col)

        cell = self.board.get_cell(row, col)
        if not cell.is_unrevealed:
            return False

        if self.minefield.is_mine(row, col):
            self._lose()
            return True

        self._reveal_region(row, col)

        if self._all_safe_cells_revealed():
            self.status = GameStatus.WON
            self.logger.info("Game won")
        return True

    def _reveal_region(self, start_row: int, start_col: int) -> None:
        """Reveal a cell, flood-filling outwards from cells with no adjacent mines"""
        stack: List[Tuple[int, int]] = [(start_row, start_col)]

        while stack:
            row, col = stack.pop()
            if not self.board.get_cell(row, col).is_unrevealed:
                continue

            count = self.minefield.mines_surrounding(row, col)
            self.board.reveal_cell(row, col, count)

            if count == 0:
                for nr, nc in self.board.get_neighbor_coords(row, col):
                    if self.board.get_cell(nr, nc).is_unrevealed:
                        stack.append((nr, nc))

    def toggle_flag(self, row: int, col: int) -> bool:
        """Flag or unflag a covered cell; True if the board changed"""
        if self.game_over:
            return False
        return self.board.toggle_flag(row, col)

    def chord(self, row: int, col: int) -> bool:
        """
        Reveal every neighbour of a revealed number whose flags are complete

        Nothing happens unless the adjacent flags equal the number shown.
        """
        cell = self.board.get_cell(row, col)
        if cell is None or not cell.is_revealed or self.game_over:
            return False

        neighbors = self.board.get_neighbor_coords(row, col)
        flags = sum(1 for nr, nc in neighbors if self.board.get_cell(nr, nc).is_flagged)
        if flags != cell.number:
            return False

        changed = False
        for nr, nc in neighbors:
            changed = self.click(nr, nc) or changed
        return changed

    def _all_safe_cells_revealed(self) -> bool:
        for cell in self.board.iter_cells():
            if not self.minefield.is_mine(cell.row, cell.col) and not cell.is_revealed:
                return False
        return True

    def _lose(self) -> None:
        """Expose the whole minefield"""
        self.status = GameStatus.LOST
        self.logger.info("Game lost")

        for cell in self.board.iter_cells():
            mine = self.minefield.is_mine(cell.row, cell.col)
            if mine and cell.is_covered:
                self.board.mark_mine(cell.row, cell.col)
            elif cell.is_flagged:
                self.board.mark_wrong_flag(cell.row, cell.col)
            elif cell.is_unrevealed:
                count = self.minefield.mines_surrounding(cell.row, cell.col)
                self.board.reveal_cell(cell.row, cell.col, count)

    def status_text(self) -> str:
        if self.status == GameStatus.LOST:
            return "You lose."
        if self.status == GameStatus.WON:
            return "VICTORY!"
        return f"Mines Remaining: {self.board.mines_remaining()}"

    def calculator(self) -> ProbabilityCalculator:
        """
        Mine probabilities for the current board

        Before the first click every cell is safe; after a loss the layout
        is known. Otherwise the probability engine runs.

        Raises:
            NoConsistentConfiguration: Flags contradict the revealed numbers
            EnumerationAborted: The frontier is too large to enumerate
        """
        if not self.started or self.status == GameStatus.LOST:
            return ProbabilityCalculator(self.board)

        engine = ProbabilityEngine(self.board, self.config)
        try:
            return engine.calculator()
        except EnumerationAborted as e:
            self.logger.error(f"Probability calculation aborted: {e}")
            raise
