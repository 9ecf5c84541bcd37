"""Tango: fill a sun/moon grid under run-length, balance and edge constraints."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .model import (
    BudgetMeter,
    Cell,
    Grid,
    Outcome,
    SearchBudget,
    SearchTimeout,
    are_orthogonal_neighbors,
    cell_label,
    check_square,
    copy_grid,
    in_bounds,
    normalize_edge,
    to_cell,
)
from src.utils.trace import Tracer, get_tracer

logger = logging.getLogger(__name__)

PUZZLE_TYPE = "tango"
TANGO_SIZE = 6
TANGO_TIMEOUT_SECONDS = 5.0

SUN = "sun"
MOON = "moon"
SYMBOLS = (SUN, MOON)

EQUAL = "equal"
OPPOSITE = "opposite"
RELATIONS = (EQUAL, OPPOSITE)

Edge = Tuple[Cell, Cell]
Constraints = Dict[Edge, str]


@dataclass
class TangoPuzzle:
    grid: List[List[Optional[str]]]
    constraints: Constraints = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.size = check_square(self.grid, "Tango")
        if self.size % 2:
            raise ValueError(f"Tango grid size must be even, got {self.size}")
        for row in self.grid:
            for value in row:
                if value is not None and value not in SYMBOLS:
                    raise ValueError(f"Tango cells must be {SUN!r}, {MOON!r} or None, got {value!r}")

        normalized: Constraints = {}
        for (a, b), relation in self.constraints.items():
            a, b = to_cell(a), to_cell(b)
            if relation not in RELATIONS:
                raise ValueError(f"Unknown edge relation {relation!r}")
            if not (in_bounds(a, self.size) and in_bounds(b, self.size)):
                raise ValueError(f"Constraint {a}-{b} is outside the grid")
            if not are_orthogonal_neighbors(a, b):
                raise ValueError(f"Constraint {a}-{b} does not join adjacent cells")
            normalized[normalize_edge(a, b)] = relation
        self.constraints = normalized


def _relation_holds(relation: str, first: str, second: str) -> bool:
    if relation == EQUAL:
        return first == second
    return first != second


def _constraints_by_cell(constraints: Constraints) -> Dict[Cell, List[Tuple[Cell, str]]]:
    by_cell: Dict[Cell, List[Tuple[Cell, str]]] = {}
    for (a, b), relation in constraints.items():
        by_cell.setdefault(a, []).append((b, relation))
        by_cell.setdefault(b, []).append((a, relation))
    return by_cell


def find_setup_problems(grid: Sequence[Sequence[Optional[str]]],
                        constraints: Constraints) -> List[Tuple[str, Tuple[Cell, ...]]]:
    """
    Contradictions already present before solving: filled constrained pairs
    breaking their relation, runs of three, and lines over the N/2 quota.
    """
    size = len(grid)
    half = size // 2
    problems: List[Tuple[str, Tuple[Cell, ...]]] = []

    for (a, b), relation in sorted(constraints.items()):
        first, second = grid[a[0]][a[1]], grid[b[0]][b[1]]
        if first is not None and second is not None and not _relation_holds(relation, first, second):
            problems.append((f"{relation} constraint broken", (a, b)))

    for r in range(size):
        for c in range(size):
            value = grid[r][c]
            if value is None:
                continue
            if c <= size - 3 and grid[r][c + 1] == value and grid[r][c + 2] == value:
                problems.append(("three in a row", ((r, c), (r, c + 1), (r, c + 2))))
            if r <= size - 3 and grid[r + 1][c] == value and grid[r + 2][c] == value:
                problems.append(("three in a column", ((r, c), (r + 1, c), (r + 2, c))))

    for i in range(size):
        row_cells = [(i, j) for j in range(size)]
        col_cells = [(j, i) for j in range(size)]
        for kind, cells in (("row", row_cells), ("column", col_cells)):
            for symbol in SYMBOLS:
                matching = tuple(cell for cell in cells if grid[cell[0]][cell[1]] == symbol)
                if len(matching) > half:
                    problems.append((f"{kind} {i} has more than {half} {symbol}s", matching))
    return problems


def is_setup_consistent(grid: Sequence[Sequence[Optional[str]]], constraints: Constraints) -> bool:
    return not find_setup_problems(grid, constraints)


def is_valid_placement(grid: Sequence[Sequence[Optional[str]]], row: int, col: int,
                       constraints_by_cell: Dict[Cell, List[Tuple[Cell, str]]]) -> bool:
    """Check the symbol just written at (row, col) against its neighbourhood."""
    size = len(grid)
    value = grid[row][col]

    # Runs of three: two to the left/above, two to the right/below, straddling.
    if col >= 2 and grid[row][col - 1] == value and grid[row][col - 2] == value:
        return False
    if col <= size - 3 and grid[row][col + 1] == value and grid[row][col + 2] == value:
        return False
    if 1 <= col < size - 1 and grid[row][col - 1] == value and grid[row][col + 1] == value:
        return False
    if row >= 2 and grid[row - 1][col] == value and grid[row - 2][col] == value:
        return False
    if row <= size - 3 and grid[row + 1][col] == value and grid[row + 2][col] == value:
        return False
    if 1 <= row < size - 1 and grid[row - 1][col] == value and grid[row + 1][col] == value:
        return False

    for (other_row, other_col), relation in constraints_by_cell.get((row, col), ()):
        other = grid[other_row][other_col]
        if other is not None and not _relation_holds(relation, value, other):
            return False

    half = size // 2
    if sum(1 for v in grid[row] if v == value) > half:
        return False
    if sum(1 for r in range(size) if grid[r][col] == value) > half:
        return False
    return True


def validate_solution(grid: Sequence[Sequence[Optional[str]]], constraints: Constraints) -> List[str]:
    """
    Full-grid check of a finished board. Returns a list of problems; an empty
    list means the board is a valid solution.
    """
    size = len(grid)
    problems: List[str] = []
    for r in range(size):
        for c in range(size):
            if grid[r][c] is None:
                problems.append(f"Cell at {r},{c} is empty")
    if problems:
        return problems

    for i in range(size):
        row = [grid[i][j] for j in range(size)]
        col = [grid[j][i] for j in range(size)]
        for kind, line in (("Row", row), ("Column", col)):
            for j in range(size - 2):
                if line[j] == line[j + 1] == line[j + 2]:
                    problems.append(f"{kind} {i} has 3 consecutive {line[j]}")
            suns = line.count(SUN)
            moons = line.count(MOON)
            if suns != moons:
                problems.append(f"{kind} {i} has {suns} suns and {moons} moons")

    for (a, b), relation in sorted(constraints.items()):
        first, second = grid[a[0]][a[1]], grid[b[0]][b[1]]
        if not _relation_holds(relation, first, second):
            problems.append(f"{relation} constraint between {a} and {b} violated by {first}/{second}")
    return problems


@dataclass
class _SearchState:
    grid: Grid
    empty_cells: List[Cell]
    constraints: Constraints
    constraints_by_cell: Dict[Cell, List[Tuple[Cell, str]]]
    meter: BudgetMeter
    tracer: Tracer


def solve(puzzle: TangoPuzzle, budget: Optional[SearchBudget] = None,
          tracer: Optional[Tracer] = None) -> Outcome:
    """
    Backtracking fill, sun before moon, row-major. The default budget is a
    wall-clock timeout of TANGO_TIMEOUT_SECONDS.
    """
    tracer = tracer or get_tracer()
    problems = find_setup_problems(puzzle.grid, puzzle.constraints)
    if problems:
        reason = "; ".join(sorted({description for description, _ in problems}))
        return Outcome.invalid(reason, [cells for _, cells in problems])

    grid = copy_grid(puzzle.grid)
    state = _SearchState(
        grid=grid,
        empty_cells=[(r, c) for r in range(puzzle.size) for c in range(puzzle.size) if grid[r][c] is None],
        constraints=puzzle.constraints,
        constraints_by_cell=_constraints_by_cell(puzzle.constraints),
        meter=(budget or SearchBudget(timeout_seconds=TANGO_TIMEOUT_SECONDS)).start(),
        tracer=tracer,
    )
    try:
        found = _backtrack(state, 0)
    except SearchTimeout as exc:
        tracer.log_timeout(PUZZLE_TYPE, exc.iterations)
        return Outcome.timeout(steps=exc.iterations)

    if found:
        return Outcome.solved(state.grid, steps=state.meter.iterations)
    return Outcome.no_solution(steps=state.meter.iterations)


def _backtrack(state: _SearchState, index: int) -> bool:
    state.meter.tick()
    if index >= len(state.empty_cells):
        problems = validate_solution(state.grid, state.constraints)
        state.tracer.log_constraint_check(PUZZLE_TYPE, "full grid validation", is_valid=not problems)
        if problems:
            logger.error("Tango board passed every placement check but failed validation: %s", problems)
            state.tracer.log_consistency_fault(PUZZLE_TYPE, "; ".join(problems))
            return False
        state.tracer.log_solution_found(PUZZLE_TYPE, depth=index)
        return True

    row, col = state.empty_cells[index]
    for symbol in SYMBOLS:
        state.grid[row][col] = symbol
        if not is_valid_placement(state.grid, row, col, state.constraints_by_cell):
            continue
        state.tracer.log_assign(PUZZLE_TYPE, cell_label((row, col)), symbol, depth=index + 1)
        if _backtrack(state, index + 1):
            return True

    state.grid[row][col] = None
    state.tracer.log_backtrack(PUZZLE_TYPE, cell_label((row, col)))
    return False
