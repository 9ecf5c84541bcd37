"""Top-level solve interface.

Expose `solve_puzzle(puzzle)` that accepts either a puzzle instance or a raw
puzzle dictionary compatible with `src.puzzles.parser.parse_puzzle`.
"""

from typing import Any, Optional

from src.puzzles import queens, sudoku, tango, zip_path
from src.puzzles.model import Outcome, SearchBudget
from src.puzzles.parser import parse_puzzle
from src.utils.trace import Tracer

_SOLVERS = {
    sudoku.SudokuPuzzle: sudoku.solve,
    queens.QueensPuzzle: queens.solve,
    tango.TangoPuzzle: tango.solve,
    zip_path.ZipPuzzle: zip_path.solve,
}


def solve_puzzle(puzzle: Any, budget: Optional[SearchBudget] = None,
                 tracer: Optional[Tracer] = None) -> Outcome:
    """
    Solve a puzzle and return its Outcome.
    Accepts:
      - SudokuPuzzle / QueensPuzzle / TangoPuzzle / ZipPuzzle instances
      - Raw puzzle dictionaries (parsed via `parse_puzzle`)
    `budget` replaces the solver's default search budget.
    """
    if isinstance(puzzle, dict):
        puzzle = parse_puzzle(puzzle)

    solve = _SOLVERS.get(type(puzzle))
    if solve is None:
        raise TypeError("solve_puzzle expects a puzzle instance or puzzle dictionary")
    return solve(puzzle, budget=budget, tracer=tracer)


__all__ = ["solve_puzzle"]
