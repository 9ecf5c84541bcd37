"""Shared primitives for the grid puzzle solvers: cells, outcomes and search budgets."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

Cell = Tuple[int, int]
Grid = List[List[Any]]

# Up, down, left, right.
DIRECTIONS: Tuple[Cell, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


class Status(str, Enum):
    SOLVED = "solved"
    INVALID = "invalid"
    NO_SOLUTION = "no_solution"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class Outcome:
    """
    Result of a single solve call. Exactly one status; `solution` is only set
    when solved, `conflicts`/`reason` explain an invalid instance.
    """

    status: Status
    solution: Any = None
    conflicts: Tuple[Any, ...] = ()
    reason: Optional[str] = None
    steps: int = 0

    @classmethod
    def solved(cls, solution: Any, steps: int = 0) -> "Outcome":
        return cls(status=Status.SOLVED, solution=solution, steps=steps)

    @classmethod
    def invalid(cls, reason: str, conflicts: Sequence[Any] = ()) -> "Outcome":
        return cls(status=Status.INVALID, reason=reason, conflicts=tuple(conflicts))

    @classmethod
    def no_solution(cls, steps: int = 0) -> "Outcome":
        return cls(status=Status.NO_SOLUTION, reason="search space exhausted", steps=steps)

    @classmethod
    def timeout(cls, steps: int = 0) -> "Outcome":
        return cls(status=Status.TIMEOUT, reason="search budget exhausted", steps=steps)

    @property
    def is_solved(self) -> bool:
        return self.status is Status.SOLVED


class SearchTimeout(Exception):
    """Raised inside a search when its budget runs out; never escapes `solve`."""

    def __init__(self, iterations: int):
        super().__init__(f"search budget exhausted after {iterations} expansions")
        self.iterations = iterations


@dataclass(frozen=True)
class SearchBudget:
    """
    Limits for one search. Either limit may be None (unbounded). The clock is
    injectable so tests can drive wall-clock timeouts deterministically.
    """

    max_iterations: Optional[int] = None
    timeout_seconds: Optional[float] = None
    clock: Callable[[], float] = field(default=time.perf_counter, compare=False)

    def start(self) -> "BudgetMeter":
        return BudgetMeter(self)


class BudgetMeter:
    """Per-call expansion counter; `tick()` once per recursive expansion."""

    def __init__(self, budget: SearchBudget):
        self.budget = budget
        self.iterations = 0
        self.started_at = budget.clock()

    def tick(self) -> None:
        self.iterations += 1
        limit = self.budget.max_iterations
        if limit is not None and self.iterations >= limit:
            raise SearchTimeout(self.iterations)
        timeout = self.budget.timeout_seconds
        if timeout is not None and self.budget.clock() - self.started_at > timeout:
            raise SearchTimeout(self.iterations)


UNBOUNDED = SearchBudget()


def cell_label(cell: Cell) -> str:
    return f"r{cell[0]}c{cell[1]}"


def in_bounds(cell: Cell, size: int) -> bool:
    return 0 <= cell[0] < size and 0 <= cell[1] < size


def orthogonal_neighbors(cell: Cell, size: int) -> Iterator[Cell]:
    """Yield in-bounds neighbors in up/down/left/right order."""
    row, col = cell
    for dr, dc in DIRECTIONS:
        neighbor = (row + dr, col + dc)
        if in_bounds(neighbor, size):
            yield neighbor


def are_orthogonal_neighbors(a: Cell, b: Cell) -> bool:
    return abs(a[0] - b[0]) + abs(a[1] - b[1]) == 1


def is_king_adjacent(a: Cell, b: Cell) -> bool:
    """True when two distinct cells touch, diagonals included."""
    return a != b and abs(a[0] - b[0]) <= 1 and abs(a[1] - b[1]) <= 1


def normalize_edge(a: Cell, b: Cell) -> Tuple[Cell, Cell]:
    return (a, b) if a <= b else (b, a)


def copy_grid(grid: Sequence[Sequence[Any]]) -> Grid:
    return [list(row) for row in grid]


def check_square(grid: Sequence[Sequence[Any]], what: str) -> int:
    """Return the side length of a square grid, raising ValueError otherwise."""
    size = len(grid)
    if size == 0:
        raise ValueError(f"{what} grid must not be empty")
    for idx, row in enumerate(grid):
        if len(row) != size:
            raise ValueError(f"{what} grid must be square: row {idx} has {len(row)} cells, expected {size}")
    return size


def to_cell(value: Any) -> Cell:
    """Coerce a 2-item sequence (e.g. a JSON list) into a Cell tuple."""
    try:
        row, col = value
        return (int(row), int(col))
    except (TypeError, ValueError):
        raise ValueError(f"Expected a (row, col) pair, got {value!r}") from None
