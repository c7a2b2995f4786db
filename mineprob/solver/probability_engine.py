"""
Exact Mine Probability Engine

Pipeline run on every invocation:
1. Build the linear system of the position (constraint_builder)
2. Reduce it to RREF (linear_system)
3. Split the variables into pivot and free variables
4. Enumerate every 0/1 assignment of the free variables, back-substitute
   the pivots and keep the assignments where every frontier variable is
   exactly 0 or 1
5. Average the kept assignments into one probability per variable and
   map the variables back onto the board

Enumeration is exponential in the number of free variables. It is split
into independent blocks of assignments which can run on a joblib worker
pool; each block returns partial sums that are merged afterwards.
"""

from typing import Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_DOWN
from fractions import Fraction
from math import comb
import logging
import time

import numpy as np
from joblib import Parallel, delayed, effective_n_jobs

from .game_state import MinesweeperBoard
from .constraint_builder import ConstraintSystem, build_constraint_system
from .linear_system import LinearSystem

WEIGHTINGS = ("uniform", "exact")

# Sentinel returned for out-of-bounds probability queries
OUT_OF_BOUNDS = -1.0

_INT64_LIMIT = 2 ** 62

logger = logging.getLogger(__name__)


class NoConsistentConfiguration(RuntimeError):
    """No mine arrangement agrees with the visible board"""


class EnumerationAborted(RuntimeError):
    """Enumeration was refused or stopped before completion"""


class EnumerationLimitExceeded(EnumerationAborted):
    """Too many free variables to enumerate"""


class EnumerationTimeout(EnumerationAborted):
    """The enumeration deadline passed"""


@dataclass
class EngineConfig:
    """Tuning knobs for one engine invocation"""
    max_free_variables: Optional[int] = 24  # None disables the ceiling
    deadline: Optional[float] = None        # Seconds allowed for enumeration
    n_jobs: int = 1                         # joblib workers, 1 runs in-process
    block_size: int = 4096                  # Assignments per block
    weighting: str = "uniform"

    def __post_init__(self):
        if self.weighting not in WEIGHTINGS:
            raise ValueError(f"weighting must be one of {WEIGHTINGS}, got {self.weighting!r}")
        if self.block_size < 1:
            raise ValueError("block_size must be positive")
        if self.max_free_variables is not None and self.max_free_variables < 0:
            raise ValueError("max_free_variables must be non-negative")
        if self.deadline is not None and self.deadline <= 0:
            raise ValueError("deadline must be positive")


@dataclass
class EnumerationResult:
    """
    Merged outcome of the enumeration

    Kept assignments are grouped by the number of frontier mines they
    place. For each group, `sums` holds the per-variable sum of values
    scaled by `denominator` and `counts` the number of assignments.
    """
    pivot_variables: List[int]
    free_variables: List[int]
    denominator: int
    assignments: int
    sums: Dict[int, np.ndarray] = field(default_factory=dict)
    counts: Dict[int, int] = field(default_factory=dict)

    @property
    def total_valid(self) -> int:
        return sum(self.counts.values())

    def merge(self, block: Tuple[Dict[int, np.ndarray], Dict[int, int]]) -> None:
        sums, counts = block
        for mines, count in counts.items():
            self.counts[mines] = self.counts.get(mines, 0) + count
            self.sums[mines] = self.sums.get(mines, 0) + sums[mines]


@dataclass
class ProbabilityResult:
    """Probabilities of one board position"""
    probabilities: np.ndarray    # One value per variable
    grid: np.ndarray             # One value per cell
    total_valid: int
    free_variables: List[int]
    num_vars: int
    num_equations: int
    weighting: str
    analysis_time: float
    clipped: bool = False        # Background probability was forced into [0, 1]

    def statistics(self) -> Dict[str, float]:
        return {
            'variables': self.num_vars,
            'equations': self.num_equations,
            'free_variables': len(self.free_variables),
            'valid_assignments': self.total_valid,
            'analysis_time': self.analysis_time,
            'clipped': self.clipped,
        }


def select_free_variables(system: LinearSystem) -> Tuple[List[int], List[int]]:
    """
    Split the variables of a system into pivot and free variables

    The pivot columns are the ones recorded by rref(); every other column
    is free. An unreduced system is reduced first.

    Returns:
        (pivot variables, free variables), both ascending
    """
    if not system.is_reduced:
        system.rref()

    pivots = list(system.pivot_columns)
    free = [col for col in range(system.num_vars) if col not in pivots]
    return pivots, free


def _evaluate_block(matrix: np.ndarray, denominator: int, pivot_variables: List[int],
                    free_variables: List[int], start: int,
                    stop: int) -> Tuple[Dict[int, np.ndarray], Dict[int, int]]:
    """
    Evaluate the assignments start..stop-1 of the free variables

    Bit j of the assignment number is the value of the j-th free variable.
    All values are scaled by `denominator`, so a frontier variable is
    consistent when its scaled value is exactly 0 or `denominator`.
    """
    num_vars = matrix.shape[1] - 1
    rank = len(pivot_variables)
    k = len(free_variables)

    numbers = np.arange(start, stop, dtype=np.int64)
    bits = ((numbers[:, None] >> np.arange(k, dtype=np.int64)) & 1).astype(matrix.dtype)

    values = np.zeros((len(numbers), num_vars), dtype=matrix.dtype)
    if k:
        values[:, free_variables] = bits * denominator
    if rank:
        rows = matrix[:rank]
        pivot_values = np.broadcast_to(rows[:, num_vars], (len(numbers), rank))
        if k:
            pivot_values = pivot_values - bits @ rows[:, free_variables].T
        values[:, pivot_variables] = pivot_values

    # Variable 0 averages over interchangeable cells and is exempt
    frontier = values[:, 1:]
    valid = np.all((frontier == 0) | (frontier == denominator), axis=1)

    kept = values[valid]
    mines = (kept[:, 1:].sum(axis=1) // denominator).astype(np.int64)

    sums: Dict[int, np.ndarray] = {}
    counts: Dict[int, int] = {}
    for m in np.unique(mines):
        group = kept[mines == m]
        sums[int(m)] = group.sum(axis=0).astype(object)
        counts[int(m)] = len(group)
    return sums, counts


def enumerate_assignments(system: LinearSystem, config: Optional[EngineConfig] = None,
                          progress: Optional[Callable[[float], None]] = None) -> EnumerationResult:
    """
    Enumerate every assignment of the free variables of a reduced system

    Raises:
        EnumerationLimitExceeded: More free variables than allowed
        EnumerationTimeout: The configured deadline passed
    """
    config = config or EngineConfig()
    if not system.is_reduced:
        system.rref()

    pivot_variables, free_variables = select_free_variables(system)
    k = len(free_variables)
    if config.max_free_variables is not None and k > config.max_free_variables:
        raise EnumerationLimitExceeded(
            f"{k} free variables exceed the limit of {config.max_free_variables}")

    matrix, denominator = system.scaled_integer_matrix()
    result = EnumerationResult(pivot_variables, free_variables, denominator, 2 ** k)

    # 0 = c rows admit no assignment at all
    if system.inconsistent_rows():
        logger.debug("Reduced system contains an inconsistent row")
        return result

    largest = max((abs(v) for v in matrix.flat), default=0)
    if max(largest, denominator) * (system.num_vars + 1) * config.block_size < _INT64_LIMIT:
        matrix = matrix.astype(np.int64)

    blocks = [(start, min(start + config.block_size, result.assignments))
              for start in range(0, result.assignments, config.block_size)]
    deadline = time.monotonic() + config.deadline if config.deadline else None

    def after_block(done: int) -> None:
        if progress:
            progress(done / len(blocks))
        if deadline is not None and time.monotonic() > deadline:
            raise EnumerationTimeout(
                f"Enumeration stopped after {done} of {len(blocks)} blocks")

    if config.n_jobs == 1:
        for done, (start, stop) in enumerate(blocks, 1):
            result.merge(_evaluate_block(matrix, denominator, pivot_variables,
                                         free_variables, start, stop))
            after_block(done)
    else:
        wave = effective_n_jobs(config.n_jobs) * 4
        with Parallel(n_jobs=config.n_jobs) as parallel:
            for first in range(0, len(blocks), wave):
                partials = parallel(
                    delayed(_evaluate_block)(matrix, denominator, pivot_variables,
                                             free_variables, start, stop)
                    for start, stop in blocks[first:first + wave])
                for partial in partials:
                    result.merge(partial)
                after_block(min(first + wave, len(blocks)))

    logger.debug(f"Enumerated {result.assignments} assignments of {k} free variables, "
                 f"{result.total_valid} consistent")
    return result


def aggregate(constraints: ConstraintSystem, enumeration: EnumerationResult,
              weighting: str = "uniform") -> np.ndarray:
    """
    Turn the kept assignments into one probability per variable

    "uniform" averages the kept assignments. "exact" weights an assignment
    placing m frontier mines by the number of ways to put the remaining
    mines on the background cells.

    Raises:
        NoConsistentConfiguration: No assignment survived (or every
            weight is zero)
    """
    if weighting == "exact":
        background = constraints.background_cells
        weights = {}
        for mines in enumeration.counts:
            remaining = constraints.mines_remaining - mines
            weights[mines] = comb(background, remaining) if 0 <= remaining <= background else 0
    else:
        weights = {mines: 1 for mines in enumeration.counts}

    total = sum(weights[m] * enumeration.counts[m] for m in enumeration.counts)
    if total == 0:
        raise NoConsistentConfiguration(
            f"No consistent configuration among {enumeration.assignments} assignments "
            f"of {len(enumeration.free_variables)} free variables")

    probabilities = np.zeros(constraints.num_vars, dtype=float)
    for var in range(constraints.num_vars):
        numerator = sum(weights[m] * enumeration.sums[m][var] for m in enumeration.counts)
        probabilities[var] = float(Fraction(int(numerator), total * enumeration.denominator))
    return probabilities


def probability_grid(board: MinesweeperBoard, constraints: ConstraintSystem,
                     probabilities: np.ndarray) -> np.ndarray:
    """Map variable probabilities onto the cells of the board"""
    variable_grid = constraints.variable_grid
    grid = np.where(variable_grid >= 0, probabilities[np.maximum(variable_grid, 0)], 0.0)

    for cell in board.iter_cells():
        if cell.is_known_mine:
            grid[cell.row, cell.col] = 1.0
    return grid


class ProbabilityEngine:
    """
    Computes exact mine probabilities for a board position

    Features:
    - Exact rational row reduction
    - Block-wise enumeration, optionally on a joblib worker pool
    - Free-variable ceiling and deadline for oversized frontiers
    - Progress callbacks for UI updates
    """

    def __init__(self, board: MinesweeperBoard, config: Optional[EngineConfig] = None):
        self.board = board
        self.config = config or EngineConfig()
        self.logger = logging.getLogger(__name__)

        # Analysis callbacks for UI updates
        self.progress_callbacks: List[Callable[[str, float], None]] = []

    def add_progress_callback(self, callback: Callable[[str, float], None]) -> None:
        """Add callback for progress updates"""
        self.progress_callbacks.append(callback)

    def _notify_progress(self, message: str, progress: float) -> None:
        """Notify all progress callbacks"""
        for callback in self.progress_callbacks:
            try:
                callback(message, progress)
            except Exception as e:
                self.logger.warning(f"Progress callback failed: {e}")

    def calculate(self) -> ProbabilityResult:
        """
        Run the full pipeline on the current board

        Raises:
            NoConsistentConfiguration: The board contradicts itself
            EnumerationAborted: The enumeration was refused or timed out
        """
        start_time = time.time()
        self._notify_progress("Building constraint system...", 0.0)
        constraints = build_constraint_system(self.board)

        self._notify_progress("Reducing system...", 0.1)
        constraints.system.rref()

        def enumeration_progress(fraction: float) -> None:
            self._notify_progress("Enumerating assignments...", 0.2 + 0.7 * fraction)

        enumeration = enumerate_assignments(constraints.system, self.config, enumeration_progress)

        try:
            probabilities = aggregate(constraints, enumeration, self.config.weighting)
        except NoConsistentConfiguration:
            self.logger.warning("Board admits no consistent mine configuration")
            raise

        # Uniform weighting can leave variable 0 outside [0, 1]; the cells
        # then no longer sum to the mines remaining
        background = probabilities[0]
        clipped = bool(constraints.background_cells) and not 0.0 <= background <= 1.0
        if clipped:
            self.logger.warning(
                f"Background probability {background:.3f} outside [0, 1]; clipped "
                f"({self.config.weighting} weighting)")
            probabilities[0] = min(1.0, max(0.0, background))

        grid = probability_grid(self.board, constraints, probabilities)
        result = ProbabilityResult(
            probabilities=probabilities,
            grid=grid,
            total_valid=enumeration.total_valid,
            free_variables=enumeration.free_variables,
            num_vars=constraints.num_vars,
            num_equations=constraints.num_equations,
            weighting=self.config.weighting,
            analysis_time=time.time() - start_time,
            clipped=clipped,
        )

        self.logger.info(
            f"Probabilities: {constraints.num_vars} variables, "
            f"{len(enumeration.free_variables)} free, {enumeration.total_valid} of "
            f"{enumeration.assignments} assignments consistent "
            f"({result.analysis_time:.3f}s)")
        self._notify_progress("Analysis complete", 1.0)
        return result

    def calculator(self) -> "ProbabilityCalculator":
        return ProbabilityCalculator(self.board, self.calculate())


class ProbabilityCalculator:
    """Read-only probability view of one board position"""

    def __init__(self, board: MinesweeperBoard, result: Optional[ProbabilityResult] = None):
        self.board = board
        self.result = result
        if result is None:
            # No inference: only flags and revealed mines are known
            self.grid = np.zeros((board.rows, board.cols), dtype=float)
            for cell in board.iter_cells():
                if cell.is_known_mine:
                    self.grid[cell.row, cell.col] = 1.0
        else:
            self.grid = result.grid

    def probability(self, row: int, col: int) -> float:
        """Probability that (row, col) is a mine, -1.0 if out of bounds"""
        if not self.board.in_bounds(row, col):
            return OUT_OF_BOUNDS
        return float(self.grid[row, col])

    def formatted_probability(self, row: int, col: int) -> str:
        """
        Probability as one digit, a point and three truncated decimals
        ("0.125", "1.000"); empty string if out of bounds
        """
        if not self.board.in_bounds(row, col):
            return ""
        value = Decimal(repr(self.probability(row, col)))
        return str(value.quantize(Decimal("0.001"), rounding=ROUND_DOWN))

    def safest_cells(self) -> List[Tuple[Tuple[int, int], float]]:
        """Unrevealed cells with the lowest mine probability"""
        candidates = [((cell.row, cell.col), float(self.grid[cell.row, cell.col]))
                      for cell in self.board.iter_cells() if cell.is_unrevealed]
        if not candidates:
            return []
        lowest = min(p for _, p in candidates)
        return [(coords, p) for coords, p in candidates if p == lowest]
