"""Tests for the mini sudoku solver."""

from src.puzzles.model import SearchBudget, Status
from src.puzzles.sudoku import SudokuPuzzle, find_conflicts, is_safe, solve
from src.utils.trace import Tracer

SOLVED_GRID = [
    [1, 2, 3, 4, 5, 6],
    [4, 5, 6, 1, 2, 3],
    [2, 3, 1, 5, 6, 4],
    [5, 6, 4, 2, 3, 1],
    [3, 1, 2, 6, 4, 5],
    [6, 4, 5, 3, 1, 2],
]


def _empty_grid():
    return [[0] * 6 for _ in range(6)]


def _assert_valid_solution(grid):
    expected = set(range(1, 7))
    for row in grid:
        assert set(row) == expected
    for col in range(6):
        assert {grid[row][col] for row in range(6)} == expected
    for start_row in range(0, 6, 2):
        for start_col in range(0, 6, 3):
            block = {
                grid[r][c]
                for r in range(start_row, start_row + 2)
                for c in range(start_col, start_col + 3)
            }
            assert block == expected


def test_solves_empty_grid():
    outcome = solve(SudokuPuzzle(_empty_grid()), tracer=Tracer())
    assert outcome.status is Status.SOLVED
    _assert_valid_solution(outcome.solution)


def test_keeps_prefilled_values():
    grid = _empty_grid()
    grid[0][0] = 6
    grid[3][4] = 2
    grid[5][5] = 1
    outcome = solve(SudokuPuzzle(grid), tracer=Tracer())
    assert outcome.is_solved
    _assert_valid_solution(outcome.solution)
    assert outcome.solution[0][0] == 6
    assert outcome.solution[3][4] == 2
    assert outcome.solution[5][5] == 1


def test_complete_grid_is_returned_unchanged():
    grid = [row[:] for row in SOLVED_GRID]
    outcome = solve(SudokuPuzzle(grid), tracer=Tracer())
    assert outcome.is_solved
    assert outcome.solution == SOLVED_GRID


def test_unique_completion_is_found():
    grid = [row[:] for row in SOLVED_GRID]
    grid[2][2] = 0
    grid[4][5] = 0
    outcome = solve(SudokuPuzzle(grid), tracer=Tracer())
    assert outcome.solution == SOLVED_GRID


def test_does_not_mutate_input_grid():
    grid = _empty_grid()
    solve(SudokuPuzzle(grid), tracer=Tracer())
    assert grid == _empty_grid()


def test_row_duplicate_is_invalid_before_search():
    grid = _empty_grid()
    grid[0][0] = 3
    grid[0][4] = 3
    outcome = solve(SudokuPuzzle(grid), tracer=Tracer())
    assert outcome.status is Status.INVALID
    assert ((0, 0), (0, 4)) in outcome.conflicts
    assert outcome.steps == 0


def test_find_conflicts_reports_column_and_block_duplicates():
    grid = _empty_grid()
    grid[0][1] = 5
    grid[4][1] = 5  # same column
    grid[2][3] = 4
    grid[3][5] = 4  # same block
    conflicts = find_conflicts(grid)
    assert ((0, 1), (4, 1)) in conflicts
    assert ((2, 3), (3, 5)) in conflicts


def test_is_safe_checks_row_column_and_block():
    grid = _empty_grid()
    grid[0][0] = 1
    assert not is_safe(grid, 0, 5, 1)
    assert not is_safe(grid, 5, 0, 1)
    assert not is_safe(grid, 1, 2, 1)
    assert is_safe(grid, 2, 2, 1)


def test_unsolvable_grid_reports_no_solution():
    # Row 0 needs a 6 at (0,5) but column 5 already holds one further down.
    grid = _empty_grid()
    grid[0] = [1, 2, 3, 4, 5, 0]
    grid[3][5] = 6
    assert find_conflicts(grid) == []
    outcome = solve(SudokuPuzzle(grid), tracer=Tracer())
    assert outcome.status is Status.NO_SOLUTION
    assert outcome.solution is None


def test_low_iteration_budget_times_out():
    outcome = solve(SudokuPuzzle(_empty_grid()), budget=SearchBudget(max_iterations=3), tracer=Tracer())
    assert outcome.status is Status.TIMEOUT
    assert outcome.solution is None
