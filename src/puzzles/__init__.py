"""Backtracking solvers for mini sudoku, region queens, tango and zip grid puzzles."""

from .model import Outcome, SearchBudget, Status
from .parser import parse_puzzle
from .queens import QueensPuzzle
from .sudoku import SudokuPuzzle
from .tango import TangoPuzzle
from .zip_path import ZipPuzzle

__all__ = [
    "Outcome",
    "SearchBudget",
    "Status",
    "SudokuPuzzle",
    "QueensPuzzle",
    "TangoPuzzle",
    "ZipPuzzle",
    "parse_puzzle",
]
