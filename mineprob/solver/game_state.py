"""
Minesweeper Game State and Board Representation

This module provides the player's view of a minesweeper board: which cells
are still covered, which are flagged and which have been revealed together
with the number of adjacent mines they show. The probability engine only
ever reads this view; the game controller is the only writer.
"""

from enum import Enum
from typing import Set, Tuple, List, Optional, Dict, Any, Iterable
from dataclasses import dataclass


class CellState(Enum):
    """Represents the state of a minesweeper cell"""
    UNREVEALED = "unrevealed"
    REVEALED = "revealed"
    FLAGGED = "flagged"
    MINE = "mine"              # Revealed mine, only after a lost game
    WRONG_FLAG = "wrong_flag"  # Flag on a safe cell, only after a lost game


class CellContent(Enum):
    """Represents the content of a minesweeper cell"""
    EMPTY = 0
    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    MINE = -1
    UNKNOWN = -2


@dataclass
class Cell:
    """Represents a single minesweeper cell"""
    row: int
    col: int
    state: CellState = CellState.UNREVEALED
    content: CellContent = CellContent.UNKNOWN

    @property
    def is_revealed(self) -> bool:
        return self.state == CellState.REVEALED

    @property
    def is_flagged(self) -> bool:
        return self.state == CellState.FLAGGED

    @property
    def is_unrevealed(self) -> bool:
        return self.state == CellState.UNREVEALED

    @property
    def is_covered(self) -> bool:
        """Covered cells are unrevealed or flagged"""
        return self.state in (CellState.UNREVEALED, CellState.FLAGGED)

    @property
    def is_known_mine(self) -> bool:
        return self.state in (CellState.FLAGGED, CellState.MINE)

    @property
    def is_numbered(self) -> bool:
        return self.content.value > 0 and self.content.value <= 8

    @property
    def number(self) -> int:
        """Get the number on this cell (0 if empty, -1 if not a number)"""
        if self.content.value >= 0 and self.content.value <= 8:
            return self.content.value
        return -1


# Characters used by __str__ and from_rows
_SYMBOLS = {
    '#': CellState.UNREVEALED,
    'F': CellState.FLAGGED,
    '*': CellState.MINE,
    'X': CellState.WRONG_FLAG,
}


class MinesweeperBoard:
    """
    Player-side minesweeper board

    Features:
    - Precomputed 8-neighbourhoods
    - Flag, covered and revealed counters kept in sync by every mutator
    - Out-of-bounds queries answer as covered, inert cells and never raise
    """

    def __init__(self, rows: int, cols: int, total_mines: int):
        self.rows = max(1, rows)
        self.cols = max(1, cols)
        self.total_mines = min(max(0, total_mines), self.rows * self.cols)

        # Initialize board with unrevealed cells
        self.board: List[List[Cell]] = []
        for r in range(self.rows):
            row = []
            for c in range(self.cols):
                row.append(Cell(r, c))
            self.board.append(row)

        # Game state tracking
        self.revealed_count = 0
        self.flagged_count = 0
        self.covered_count = self.rows * self.cols

        # Unrevealed cells adjacent to revealed
        self.frontier_cells: Set[Tuple[int, int]] = set()

        # Precompute neighbor mappings for efficiency
        self._neighbor_cache: Dict[Tuple[int, int], List[Tuple[int, int]]] = {}
        self._precompute_neighbors()

    @classmethod
    def from_rows(cls, lines: Iterable[str], total_mines: int) -> "MinesweeperBoard":
        """
        Build a board from its text rendering

        Args:
            lines: One string per row. '#' covered, 'F' flag, '.' or '0'
                empty, '1'-'8' revealed count, '*' mine, 'X' wrong flag.
                Spaces are ignored.
            total_mines: Number of mines declared for the board

        Raises:
            ValueError: If the rows are ragged or contain an unknown symbol
        """
        grid = [line.replace(' ', '') for line in lines]
        if not grid or any(len(line) != len(grid[0]) for line in grid):
            raise ValueError("Board rows must be non-empty and of equal length")

        board = cls(len(grid), len(grid[0]), total_mines)
        for r, line in enumerate(grid):
            for c, symbol in enumerate(line):
                if symbol == '.':
                    board.reveal_cell(r, c, 0)
                elif symbol.isdigit() and int(symbol) <= 8:
                    board.reveal_cell(r, c, int(symbol))
                elif symbol in _SYMBOLS:
                    board.set_state(r, c, _SYMBOLS[symbol])
                else:
                    raise ValueError(f"Unknown board symbol {symbol!r} at ({r}, {c})")
        board.update_frontier()
        return board

    def _precompute_neighbors(self) -> None:
        """Precompute neighbor coordinates for all cells"""
        directions = [(-1, -1), (-1, 0), (-1, 1), (0, -1),
                      (0, 1), (1, -1), (1, 0), (1, 1)]

        for r in range(self.rows):
            for c in range(self.cols):
                neighbors = []
                for dr, dc in directions:
                    nr, nc = r + dr, c + dc
                    if 0 <= nr < self.rows and 0 <= nc < self.cols:
                        neighbors.append((nr, nc))
                self._neighbor_cache[(r, c)] = neighbors

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def get_cell(self, row: int, col: int) -> Optional[Cell]:
        """Get cell at specified coordinates"""
        if self.in_bounds(row, col):
            return self.board[row][col]
        return None

    def get_neighbors(self, row: int, col: int) -> List[Cell]:
        """Get all neighboring cells"""
        neighbors = []
        for nr, nc in self._neighbor_cache.get((row, col), []):
            neighbors.append(self.board[nr][nc])
        return neighbors

    def get_neighbor_coords(self, row: int, col: int) -> List[Tuple[int, int]]:
        """Get coordinates of all neighboring cells"""
        return self._neighbor_cache.get((row, col), [])

    # ------------------------------------------------------------------
    # Query surface read by the probability engine
    # ------------------------------------------------------------------

    def cell_state(self, row: int, col: int) -> CellState:
        """State of a cell; out-of-bounds coordinates read as unrevealed"""
        cell = self.get_cell(row, col)
        if cell is None:
            return CellState.UNREVEALED
        return cell.state

    def has_covered_neighbor(self, row: int, col: int) -> bool:
        """True if any neighbor is unrevealed (flags do not count)"""
        return any(n.is_unrevealed for n in self.get_neighbors(row, col))

    def has_revealed_neighbor(self, row: int, col: int) -> bool:
        """True if any neighbor has been revealed (flags do not count)"""
        return any(n.is_revealed for n in self.get_neighbors(row, col))

    def mines_remaining(self) -> int:
        """Declared mines minus flags placed; may be negative"""
        return self.total_mines - self.flagged_count

    def total_covered_count(self) -> int:
        """Cells not yet revealed, flags included"""
        return self.covered_count

    def unrevealed_count(self) -> int:
        """Covered cells that carry no flag"""
        return self.covered_count - self.flagged_count

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def set_state(self, row: int, col: int, state: CellState,
                  content: CellContent = CellContent.UNKNOWN) -> bool:
        """
        Set the visible state of a cell and keep the counters in sync

        Returns:
            False if the coordinates are out of bounds, True otherwise
        """
        cell = self.get_cell(row, col)
        if cell is None:
            return False

        if cell.is_flagged:
            self.flagged_count -= 1
        if cell.is_covered:
            self.covered_count -= 1

        cell.state = state
        cell.content = content

        if cell.is_flagged:
            self.flagged_count += 1
        if cell.is_covered:
            self.covered_count += 1

        self.revealed_count = self.rows * self.cols - self.covered_count
        return True

    def reveal_cell(self, row: int, col: int, count: int) -> bool:
        """Reveal a safe cell showing `count` adjacent mines"""
        if not 0 <= count <= 8:
            raise ValueError(f"Adjacent mine count must be 0-8, got {count}")
        return self.set_state(row, col, CellState.REVEALED, CellContent(count))

    def flag_cell(self, row: int, col: int) -> bool:
        """Flag an unrevealed cell"""
        cell = self.get_cell(row, col)
        if cell is None or not cell.is_unrevealed:
            return False
        return self.set_state(row, col, CellState.FLAGGED)

    def unflag_cell(self, row: int, col: int) -> bool:
        """Remove a flag"""
        cell = self.get_cell(row, col)
        if cell is None or not cell.is_flagged:
            return False
        return self.set_state(row, col, CellState.UNREVEALED)

    def toggle_flag(self, row: int, col: int) -> bool:
        """Flag an unrevealed cell or unflag a flagged one"""
        cell = self.get_cell(row, col)
        if cell is None:
            return False
        if cell.is_flagged:
            return self.unflag_cell(row, col)
        return self.flag_cell(row, col)

    def mark_mine(self, row: int, col: int) -> bool:
        return self.set_state(row, col, CellState.MINE, CellContent.MINE)

    def mark_wrong_flag(self, row: int, col: int) -> bool:
        return self.set_state(row, col, CellState.WRONG_FLAG)

    def update_frontier(self) -> None:
        """Update frontier cells (unrevealed cells adjacent to revealed cells)"""
        self.frontier_cells.clear()

        for r in range(self.rows):
            for c in range(self.cols):
                cell = self.board[r][c]
                if cell.is_unrevealed and self.has_revealed_neighbor(r, c):
                    self.frontier_cells.add((r, c))

    def iter_cells(self) -> Iterable[Cell]:
        for row in self.board:
            yield from row

    def get_statistics(self) -> Dict[str, Any]:
        """Get current board statistics"""
        total_cells = self.rows * self.cols
        safe_cells = total_cells - self.total_mines

        return {
            'total_cells': total_cells,
            'revealed_cells': self.revealed_count,
            'flagged_cells': self.flagged_count,
            'covered_cells': self.covered_count,
            'total_mines': self.total_mines,
            'remaining_mines': self.mines_remaining(),
            'frontier_size': len(self.frontier_cells),
            'completion_percentage': (self.revealed_count / safe_cells) * 100 if safe_cells else 100.0
        }

    def __str__(self) -> str:
        """String representation of the board"""
        symbols = {state: symbol for symbol, state in _SYMBOLS.items()}
        lines = []
        for row in self.board:
            line = []
            for cell in row:
                if cell.is_revealed:
                    line.append('.' if cell.number == 0 else str(cell.number))
                else:
                    line.append(symbols[cell.state])
            lines.append(' '.join(line))
        return '\n'.join(lines)
