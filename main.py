#!/usr/bin/env python3
"""
MineProb - Minesweeper Mine Probability Calculator

Main application entry point. This launches the PyQt6 GUI: a playable
minesweeper board showing, on every covered cell, the exact probability
that it hides a mine.

Usage:
    python main.py
"""

import sys
import logging
from pathlib import Path

from PyQt6.QtWidgets import QApplication, QMessageBox

from mineprob.ui.main_window import MainWindow


def setup_logging():
    """Setup application logging"""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_dir / "mineprob.log"),
            logging.StreamHandler(sys.stdout)
        ]
    )


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler"""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = logging.getLogger(__name__)
    logger.critical(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback)
    )

    # Show error dialog if GUI is available
    app = QApplication.instance()
    if app:
        error_msg = f"An unexpected error occurred:\n\n{exc_type.__name__}: {exc_value}"
        QMessageBox.critical(None, "Critical Error", error_msg)


def main():
    """Main application entry point"""
    setup_logging()
    logger = logging.getLogger(__name__)

    # Install global exception handler
    sys.excepthook = handle_exception

    logger.info("Starting MineProb...")

    app = QApplication(sys.argv)
    app.setApplicationName("MineProb")
    app.setApplicationVersion("1.0")

    # Start-up failures reach handle_exception
    window = MainWindow()
    window.show()

    exit_code = app.exec()
    logger.info(f"Application exited with code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
