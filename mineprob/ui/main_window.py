"""
Main Application Window - PyQt6 User Interface

This module implements a playable minesweeper board that shows, on every
covered cell, the exact probability that it hides a mine:
1. Board display with probability overlay
2. Mouse input (reveal, flag, chord)
3. Background probability calculation
4. Control panel and analysis log
"""

from typing import Optional
import copy
import logging

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
    QTextEdit, QSpinBox, QGroupBox, QSplitter, QScrollArea, QProgressBar,
    QStatusBar, QComboBox
)
from PyQt6.QtCore import Qt, QThread, pyqtSignal, QRect, pyqtSlot
from PyQt6.QtGui import QPainter, QColor, QFont, QPen, QAction, QKeySequence

from ..game.controller import MinesweeperGame
from ..solver.game_state import MinesweeperBoard, Cell, CellState
from ..solver.probability_engine import (
    EngineConfig, ProbabilityCalculator, ProbabilityEngine, WEIGHTINGS
)

DEFAULT_ROWS = 16
DEFAULT_COLS = 30
DEFAULT_MINES = 99


class BoardWidget(QWidget):
    """Custom widget for displaying the board and its probabilities"""

    cell_clicked = pyqtSignal(int, int)
    cell_right_clicked = pyqtSignal(int, int)
    cell_double_clicked = pyqtSignal(int, int)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.board: Optional[MinesweeperBoard] = None
        self.calculator: Optional[ProbabilityCalculator] = None
        self.cell_size = 36
        self.grid_color = QColor(128, 128, 128)
        self.setMinimumSize(400, 400)

        # Colors for different cell types
        self.colors = {
            'unrevealed': QColor(30, 60, 200),
            'revealed': QColor(160, 160, 160),
            'flagged': QColor(255, 100, 100),
            'mine': QColor(0, 0, 0),
            'wrong_flag': QColor(255, 255, 0),
        }

        # Probability text colors, by upper bound
        self.probability_colors = [
            (0.001, QColor(255, 255, 255)),
            (0.25, QColor(0, 220, 0)),
            (0.5, QColor(255, 165, 0)),
            (1.01, QColor(255, 0, 0)),
        ]

        # Text colors for numbers
        self.number_colors = {
            1: QColor(0, 0, 255),
            2: QColor(0, 128, 0),
            3: QColor(255, 0, 0),
            4: QColor(128, 0, 128),
            5: QColor(128, 0, 0),
            6: QColor(0, 128, 128),
            7: QColor(0, 0, 0),
            8: QColor(80, 80, 80)
        }

    def set_board(self, board: MinesweeperBoard,
                  calculator: Optional[ProbabilityCalculator] = None) -> None:
        """Set the board to display"""
        self.board = board
        self.calculator = calculator
        width = board.cols * self.cell_size + 1
        height = board.rows * self.cell_size + 1
        self.setMinimumSize(width, height)
        self.update()

    def set_calculator(self, calculator: Optional[ProbabilityCalculator]) -> None:
        self.calculator = calculator
        self.update()

    def _cell_at(self, x: float, y: float):
        if not self.board:
            return None
        row, col = int(y) // self.cell_size, int(x) // self.cell_size
        if self.board.in_bounds(row, col):
            return row, col
        return None

    def mousePressEvent(self, event):
        cell = self._cell_at(event.position().x(), event.position().y())
        if cell is None:
            return
        if event.button() == Qt.MouseButton.RightButton:
            self.cell_right_clicked.emit(*cell)
        elif event.button() == Qt.MouseButton.LeftButton:
            self.cell_clicked.emit(*cell)

    def mouseDoubleClickEvent(self, event):
        cell = self._cell_at(event.position().x(), event.position().y())
        if cell is not None and event.button() == Qt.MouseButton.LeftButton:
            self.cell_double_clicked.emit(*cell)

    def paintEvent(self, event):
        """Custom paint event to draw the board"""
        if not self.board:
            return

        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        for cell in self.board.iter_cells():
            rect = QRect(cell.col * self.cell_size, cell.row * self.cell_size,
                         self.cell_size, self.cell_size)
            painter.fillRect(rect, self._get_cell_color(cell))
            self._draw_cell_content(painter, rect, cell)

            # Draw grid lines
            painter.setPen(QPen(self.grid_color, 1))
            painter.drawRect(rect)

        painter.end()

    def _get_cell_color(self, cell: Cell) -> QColor:
        """Determine the background color for a cell"""
        if cell.state == CellState.UNREVEALED:
            return self.colors['unrevealed']
        if cell.state == CellState.FLAGGED:
            return self.colors['flagged']
        if cell.state == CellState.MINE:
            return self.colors['mine']
        if cell.state == CellState.WRONG_FLAG:
            return self.colors['wrong_flag']
        return self.colors['revealed']

    def _probability_color(self, probability: float) -> QColor:
        for bound, color in self.probability_colors:
            if probability < bound:
                return color
        return self.probability_colors[-1][1]

    def _draw_cell_content(self, painter: QPainter, rect: QRect, cell: Cell) -> None:
        """Draw the content of a cell (probabilities, numbers, flags, etc.)"""
        if cell.state == CellState.UNREVEALED:
            text = "0.000"
            probability = 0.0
            if self.calculator is not None:
                probability = self.calculator.probability(cell.row, cell.col)
                text = self.calculator.formatted_probability(cell.row, cell.col)
            painter.setPen(QPen(self._probability_color(probability), 1))
            painter.setFont(QFont("Arial", max(6, rect.height() // 4), QFont.Weight.Bold))
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, text)

        elif cell.state == CellState.FLAGGED:
            painter.setPen(QPen(QColor(255, 255, 255), 2))
            painter.setFont(QFont("Arial", max(8, rect.height() // 3)))
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, "F")

        elif cell.state == CellState.MINE:
            painter.setBrush(QColor(200, 0, 0))
            painter.setPen(QPen(QColor(200, 0, 0), 1))
            painter.drawEllipse(rect.adjusted(8, 8, -8, -8))
            painter.setBrush(Qt.BrushStyle.NoBrush)

        elif cell.state == CellState.WRONG_FLAG:
            painter.setPen(QPen(QColor(0, 0, 0), 2))
            painter.drawLine(rect.topLeft(), rect.bottomRight())
            painter.drawLine(rect.bottomLeft(), rect.topRight())

        elif cell.is_numbered:
            number = cell.number
            painter.setPen(QPen(self.number_colors.get(number, QColor(0, 0, 0)), 2))
            painter.setFont(QFont("Arial", max(8, rect.height() // 2), QFont.Weight.Bold))
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, str(number))


class ProbabilityWorker(QThread):
    """Worker thread computing probabilities for a snapshot of the board"""

    progress = pyqtSignal(str, float)
    finished_calculation = pyqtSignal(int, object)  # generation, ProbabilityCalculator
    error = pyqtSignal(int, str)

    def __init__(self, board: MinesweeperBoard, config: EngineConfig, generation: int):
        super().__init__()
        self.board = copy.deepcopy(board)
        self.config = config
        self.generation = generation

    def run(self):
        """Run the calculation in background thread"""
        try:
            engine = ProbabilityEngine(self.board, self.config)
            engine.add_progress_callback(self._progress_callback)
            self.finished_calculation.emit(self.generation, engine.calculator())

        except Exception as e:
            self.error.emit(self.generation, f"{type(e).__name__}: {e}")

    def _progress_callback(self, message: str, progress: float):
        self.progress.emit(message, progress)


class MainWindow(QMainWindow):
    """Main application window"""

    def __init__(self):
        super().__init__()
        self.setWindowTitle("MineProb - Minesweeper Probability Calculator")
        self.setGeometry(100, 100, 1500, 800)
        self.logger = logging.getLogger(__name__)

        self.game: Optional[MinesweeperGame] = None
        self.worker: Optional[ProbabilityWorker] = None
        self._workers = set()
        self._generation = 0

        self.setup_ui()
        self.new_game()

    def setup_ui(self):
        """Setup the user interface"""
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QHBoxLayout(central_widget)

        # Create splitter for resizable panels
        splitter = QSplitter(Qt.Orientation.Horizontal)
        main_layout.addWidget(splitter)
        splitter.addWidget(self.create_control_panel())
        splitter.addWidget(self.create_board_panel())
        splitter.addWidget(self.create_analysis_panel())
        splitter.setSizes([220, 1080, 300])

        # Status bar
        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)

        # Progress bar
        self.progress_bar = QProgressBar()
        self.progress_bar.setVisible(False)
        self.status_bar.addPermanentWidget(self.progress_bar)

        self.create_menu_bar()

    def create_control_panel(self) -> QWidget:
        """Create the control panel"""
        panel = QWidget()
        layout = QVBoxLayout(panel)

        # Board configuration group
        config_group = QGroupBox("Board Configuration")
        config_layout = QVBoxLayout(config_group)

        self.rows_spinbox = self._spinbox(config_layout, "Rows:", 1, 50, DEFAULT_ROWS)
        self.cols_spinbox = self._spinbox(config_layout, "Cols:", 1, 60, DEFAULT_COLS)
        self.mines_spinbox = self._spinbox(config_layout, "Mines:", 0, 2991, DEFAULT_MINES)

        self.new_game_button = QPushButton("New Game")
        self.new_game_button.clicked.connect(self.new_game)
        config_layout.addWidget(self.new_game_button)
        layout.addWidget(config_group)

        # Engine group
        engine_group = QGroupBox("Probability Engine")
        engine_layout = QVBoxLayout(engine_group)

        weighting_layout = QHBoxLayout()
        weighting_layout.addWidget(QLabel("Weighting:"))
        self.weighting_combo = QComboBox()
        self.weighting_combo.addItems(list(WEIGHTINGS))
        self.weighting_combo.setCurrentText("exact")
        self.weighting_combo.currentTextChanged.connect(self.recalculate)
        weighting_layout.addWidget(self.weighting_combo)
        engine_layout.addLayout(weighting_layout)

        self.free_limit_spinbox = self._spinbox(engine_layout, "Max free variables:", 1, 30, 24)

        self.recalculate_button = QPushButton("Recalculate")
        self.recalculate_button.clicked.connect(self.recalculate)
        engine_layout.addWidget(self.recalculate_button)
        layout.addWidget(engine_group)

        # Statistics group
        stats_group = QGroupBox("Statistics")
        stats_layout = QVBoxLayout(stats_group)
        self.stats_label = QLabel("No game")
        stats_layout.addWidget(self.stats_label)
        layout.addWidget(stats_group)

        # Add stretch to push everything to top
        layout.addStretch()
        return panel

    def _spinbox(self, layout, label: str, low: int, high: int, value: int) -> QSpinBox:
        row = QHBoxLayout()
        row.addWidget(QLabel(label))
        spinbox = QSpinBox()
        spinbox.setRange(low, high)
        spinbox.setValue(value)
        row.addWidget(spinbox)
        layout.addLayout(row)
        return spinbox

    def create_board_panel(self) -> QWidget:
        """Create the board display panel"""
        panel = QWidget()
        layout = QVBoxLayout(panel)

        scroll_area = QScrollArea()
        scroll_area.setWidgetResizable(True)

        self.board_widget = BoardWidget()
        self.board_widget.cell_clicked.connect(self.on_cell_clicked)
        self.board_widget.cell_right_clicked.connect(self.on_cell_right_clicked)
        self.board_widget.cell_double_clicked.connect(self.on_cell_double_clicked)
        scroll_area.setWidget(self.board_widget)

        layout.addWidget(scroll_area)
        return panel

    def create_analysis_panel(self) -> QWidget:
        """Create the analysis and logging panel"""
        panel = QWidget()
        layout = QVBoxLayout(panel)

        logs_group = QGroupBox("Analysis Log")
        logs_layout = QVBoxLayout(logs_group)
        self.log_text = QTextEdit()
        self.log_text.setReadOnly(True)
        logs_layout.addWidget(self.log_text)
        layout.addWidget(logs_group)

        results_group = QGroupBox("Safest Cells")
        results_layout = QVBoxLayout(results_group)
        self.results_text = QTextEdit()
        self.results_text.setReadOnly(True)
        results_layout.addWidget(self.results_text)
        layout.addWidget(results_group)

        return panel

    def create_menu_bar(self):
        """Create the menu bar"""
        menubar = self.menuBar()

        game_menu = menubar.addMenu('Game')

        new_action = QAction('New Game', self)
        new_action.setShortcut(QKeySequence('F2'))
        new_action.triggered.connect(self.new_game)
        game_menu.addAction(new_action)

        game_menu.addSeparator()

        exit_action = QAction('Exit', self)
        exit_action.setShortcut(QKeySequence.StandardKey.Quit)
        exit_action.triggered.connect(self.close)
        game_menu.addAction(exit_action)

        analysis_menu = menubar.addMenu('Analysis')

        recalculate_action = QAction('Recalculate', self)
        recalculate_action.setShortcut(QKeySequence('F5'))
        recalculate_action.triggered.connect(self.recalculate)
        analysis_menu.addAction(recalculate_action)

    def engine_config(self) -> EngineConfig:
        return EngineConfig(
            max_free_variables=self.free_limit_spinbox.value(),
            weighting=self.weighting_combo.currentText(),
        )

    def new_game(self):
        """Start a new game with the configured dimensions"""
        self.game = MinesweeperGame(
            self.rows_spinbox.value(),
            self.cols_spinbox.value(),
            self.mines_spinbox.value(),
            config=self.engine_config(),
        )
        self.board_widget.set_board(self.game.board, self.game.calculator())
        self.results_text.clear()
        self.log_message(
            f"New game: {self.game.rows}x{self.game.cols} with {self.game.mines} mines")
        self.refresh()

    def on_cell_clicked(self, row: int, col: int):
        if self.game.game_over:
            self.new_game()
            return
        if self.game.click(row, col):
            self.board_changed()

    def on_cell_right_clicked(self, row: int, col: int):
        if self.game.game_over:
            self.new_game()
            return
        if self.game.toggle_flag(row, col):
            self.board_changed()

    def on_cell_double_clicked(self, row: int, col: int):
        if self.game.chord(row, col):
            self.board_changed()

    def board_changed(self):
        self.board_widget.set_board(self.game.board, self.board_widget.calculator)
        self.refresh()
        self.recalculate()

    def recalculate(self):
        """Recompute probabilities in the background"""
        if self.game is None:
            return

        self.game.config = self.engine_config()
        if not self.game.started or self.game.game_over:
            self.board_widget.set_calculator(self.game.calculator())
            return

        self._generation += 1
        self.progress_bar.setVisible(True)
        self.progress_bar.setValue(0)

        worker = ProbabilityWorker(self.game.board, self.game.config, self._generation)
        worker.progress.connect(self.update_progress)
        worker.finished_calculation.connect(self.calculation_finished)
        worker.error.connect(self.calculation_error)
        worker.finished.connect(lambda: self._workers.discard(worker))
        self._workers.add(worker)
        self.worker = worker
        worker.start()

    @pyqtSlot(str, float)
    def update_progress(self, message: str, progress: float):
        self.progress_bar.setValue(int(progress * 100))

    @pyqtSlot(int, object)
    def calculation_finished(self, generation: int, calculator: ProbabilityCalculator):
        """Show a finished calculation unless the board moved on meanwhile"""
        if generation != self._generation:
            return

        self.progress_bar.setVisible(False)
        self.board_widget.set_calculator(calculator)

        result = calculator.result
        self.log_message(
            f"{result.num_vars} variables, {len(result.free_variables)} free, "
            f"{result.total_valid} consistent assignments "
            f"({result.analysis_time:.3f}s)")
        if result.clipped:
            self.log_error("Background probability clipped; switch to exact weighting "
                           "for probabilities that add up to the mines remaining")

        lines = [f"({row}, {col}): {probability:.3f}"
                 for (row, col), probability in calculator.safest_cells()[:10]]
        self.results_text.setPlainText('\n'.join(lines))

    @pyqtSlot(int, str)
    def calculation_error(self, generation: int, error_message: str):
        if generation != self._generation:
            return

        self.progress_bar.setVisible(False)
        self.board_widget.set_calculator(None)
        self.log_error(f"Probability calculation failed: {error_message}")
        self.status_bar.showMessage(f"{self.game.status_text()} - {error_message}")

    def refresh(self):
        """Update the status bar and statistics display"""
        self.status_bar.showMessage(self.game.status_text())

        stats = self.game.board.get_statistics()
        stats_text = [
            f"Size: {self.game.rows}×{self.game.cols}",
            f"Total mines: {stats['total_mines']}",
            f"Remaining: {stats['remaining_mines']}",
            f"Revealed: {stats['revealed_cells']}",
            f"Flagged: {stats['flagged_cells']}",
            f"Progress: {stats['completion_percentage']:.1f}%"
        ]
        self.stats_label.setText('\n'.join(stats_text))

    def log_message(self, message: str):
        """Add message to log"""
        self.log_text.append(f"[INFO] {message}")
        self.logger.info(message)

    def log_error(self, message: str):
        """Add error message to log"""
        self.log_text.append(f"[ERROR] {message}")
        self.logger.error(message)
