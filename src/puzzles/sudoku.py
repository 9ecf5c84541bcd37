"""Mini sudoku: backtracking over a 6x6 grid with 2x3 blocks."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .model import (
    UNBOUNDED,
    BudgetMeter,
    Cell,
    Grid,
    Outcome,
    SearchBudget,
    SearchTimeout,
    cell_label,
    check_square,
    copy_grid,
)
from src.utils.trace import Tracer, get_tracer

PUZZLE_TYPE = "sudoku"
SUDOKU_SIZE = 6
REGION_ROWS = 2
REGION_COLS = 3
EMPTY = 0


@dataclass
class SudokuPuzzle:
    grid: List[List[int]]
    region_rows: int = REGION_ROWS
    region_cols: int = REGION_COLS

    def __post_init__(self) -> None:
        self.size = check_square(self.grid, "Sudoku")
        if self.size % self.region_rows or self.size % self.region_cols:
            raise ValueError(
                f"{self.region_rows}x{self.region_cols} regions do not tile a {self.size}x{self.size} grid"
            )
        if self.region_rows * self.region_cols != self.size:
            raise ValueError("Region area must equal the grid size")
        for row in self.grid:
            for value in row:
                if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= self.size:
                    raise ValueError(f"Sudoku cells must be integers 0..{self.size}, got {value!r}")


@dataclass
class _SearchState:
    grid: Grid
    size: int
    region_rows: int
    region_cols: int
    meter: BudgetMeter
    tracer: Tracer


def find_conflicts(grid: Sequence[Sequence[int]], region_rows: int = REGION_ROWS,
                   region_cols: int = REGION_COLS) -> List[Tuple[Cell, Cell]]:
    """
    Return every pair of cells holding the same non-zero value in a row,
    column or block. Each duplicate is paired with the first occurrence.
    """
    size = len(grid)
    pairs: Set[Tuple[Cell, Cell]] = set()

    def _scan(cells: List[Cell]) -> None:
        seen: Dict[int, Cell] = {}
        for cell in cells:
            value = grid[cell[0]][cell[1]]
            if value == EMPTY:
                continue
            if value in seen:
                pairs.add(tuple(sorted((seen[value], cell))))
            else:
                seen[value] = cell

    for row in range(size):
        _scan([(row, col) for col in range(size)])
    for col in range(size):
        _scan([(row, col) for row in range(size)])
    for start_row in range(0, size, region_rows):
        for start_col in range(0, size, region_cols):
            _scan([
                (start_row + r, start_col + c)
                for r in range(region_rows)
                for c in range(region_cols)
            ])
    return sorted(pairs)


def is_safe(grid: Sequence[Sequence[int]], row: int, col: int, value: int,
            region_rows: int = REGION_ROWS, region_cols: int = REGION_COLS) -> bool:
    size = len(grid)
    if any(grid[row][c] == value for c in range(size)):
        return False
    if any(grid[r][col] == value for r in range(size)):
        return False
    start_row = row - row % region_rows
    start_col = col - col % region_cols
    for r in range(start_row, start_row + region_rows):
        for c in range(start_col, start_col + region_cols):
            if grid[r][c] == value:
                return False
    return True


def solve(puzzle: SudokuPuzzle, budget: Optional[SearchBudget] = None,
          tracer: Optional[Tracer] = None) -> Outcome:
    """
    Fill every empty cell so each row, column and block holds 1..N once.
    Pre-filled duplicates are reported as Invalid without searching.
    """
    tracer = tracer or get_tracer()
    conflicts = find_conflicts(puzzle.grid, puzzle.region_rows, puzzle.region_cols)
    if conflicts:
        return Outcome.invalid("duplicate values in row, column or region", conflicts)

    state = _SearchState(
        grid=copy_grid(puzzle.grid),
        size=puzzle.size,
        region_rows=puzzle.region_rows,
        region_cols=puzzle.region_cols,
        meter=(budget or UNBOUNDED).start(),
        tracer=tracer,
    )
    try:
        found = _backtrack(state)
    except SearchTimeout as exc:
        tracer.log_timeout(PUZZLE_TYPE, exc.iterations)
        return Outcome.timeout(steps=exc.iterations)

    if found:
        return Outcome.solved(state.grid, steps=state.meter.iterations)
    return Outcome.no_solution(steps=state.meter.iterations)


def _find_empty_cell(grid: Grid) -> Optional[Cell]:
    for row, values in enumerate(grid):
        for col, value in enumerate(values):
            if value == EMPTY:
                return (row, col)
    return None


def _backtrack(state: _SearchState, depth: int = 0) -> bool:
    state.meter.tick()
    cell = _find_empty_cell(state.grid)
    if cell is None:
        state.tracer.log_solution_found(PUZZLE_TYPE, depth=depth)
        return True

    row, col = cell
    for value in range(1, state.size + 1):
        if not is_safe(state.grid, row, col, value, state.region_rows, state.region_cols):
            continue
        state.grid[row][col] = value
        state.tracer.log_assign(PUZZLE_TYPE, cell_label(cell), value, depth=depth + 1)
        if _backtrack(state, depth + 1):
            return True
        state.grid[row][col] = EMPTY

    state.tracer.log_backtrack(PUZZLE_TYPE, cell_label(cell))
    return False
