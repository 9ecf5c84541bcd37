"""Region queens: one queen per row, column and region, no two queens touching."""

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Optional, Sequence, Set, Tuple

from .model import (
    UNBOUNDED,
    BudgetMeter,
    Cell,
    Outcome,
    SearchBudget,
    SearchTimeout,
    cell_label,
    check_square,
    in_bounds,
    is_king_adjacent,
    to_cell,
)
from src.utils.trace import Tracer, get_tracer

PUZZLE_TYPE = "queens"

RegionId = Hashable


@dataclass
class QueensPuzzle:
    """
    `regions[r][c]` is the region id of a cell, or None when the cell was never
    painted into a region (such cells cannot hold a queen).
    `fixed` are queens the user already placed.
    """

    regions: List[List[Optional[RegionId]]]
    fixed: Tuple[Cell, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self.size = check_square(self.regions, "Queens")
        self.fixed = tuple(to_cell(c) for c in self.fixed)
        for cell in self.fixed:
            if not in_bounds(cell, self.size):
                raise ValueError(f"Fixed queen {cell} is outside the {self.size}x{self.size} grid")

    @classmethod
    def from_zone_matrix(cls, matrix: Sequence[Sequence[Any]], fixed: Iterable[Any] = ()) -> "QueensPuzzle":
        """Build a puzzle from a zone matrix; None and '' mark unpainted cells."""
        regions: List[List[Optional[RegionId]]] = []
        for row in matrix:
            regions.append([None if zone is None or zone == "" else str(zone) for zone in row])
        return cls(regions=regions, fixed=tuple(fixed))

    def region_of(self, cell: Cell) -> Optional[RegionId]:
        return self.regions[cell[0]][cell[1]]

    def region_ids(self) -> Set[RegionId]:
        return {rid for row in self.regions for rid in row if rid is not None}


@dataclass
class _SearchState:
    puzzle: QueensPuzzle
    row_used: List[bool]
    col_used: List[bool]
    region_used: Set[RegionId]
    placements: List[Cell]
    meter: BudgetMeter
    tracer: Tracer


def can_place(state: _SearchState, cell: Cell) -> bool:
    row, col = cell
    if state.row_used[row] or state.col_used[col]:
        return False
    region = state.puzzle.region_of(cell)
    if region is None or region in state.region_used:
        return False
    return not any(is_king_adjacent(cell, other) for other in state.placements)


def find_fixed_conflicts(puzzle: QueensPuzzle) -> List[Tuple[Cell, Cell]]:
    """Pairs of fixed queens sharing a row, column or region, or touching."""
    conflicts: List[Tuple[Cell, Cell]] = []
    fixed = sorted(set(puzzle.fixed))
    for i, a in enumerate(fixed):
        for b in fixed[i + 1:]:
            same_line = a[0] == b[0] or a[1] == b[1]
            same_region = puzzle.region_of(a) == puzzle.region_of(b)
            if same_line or same_region or is_king_adjacent(a, b):
                conflicts.append((a, b))
    return conflicts


def solve(puzzle: QueensPuzzle, budget: Optional[SearchBudget] = None,
          tracer: Optional[Tracer] = None) -> Outcome:
    tracer = tracer or get_tracer()
    n = puzzle.size

    region_count = len(puzzle.region_ids())
    if region_count != n:
        return Outcome.invalid(f"region count mismatch: expected {n} regions, found {region_count}")

    unpainted = [c for c in puzzle.fixed if puzzle.region_of(c) is None]
    if unpainted:
        return Outcome.invalid("fixed queen outside any region", [(c,) for c in unpainted])
    conflicts = find_fixed_conflicts(puzzle)
    if conflicts:
        return Outcome.invalid("fixed queens conflict", conflicts)

    state = _SearchState(
        puzzle=puzzle,
        row_used=[False] * n,
        col_used=[False] * n,
        region_used=set(),
        placements=[],
        meter=(budget or UNBOUNDED).start(),
        tracer=tracer,
    )
    for cell in sorted(set(puzzle.fixed)):
        _place(state, cell)

    try:
        found = _backtrack(state, 0)
    except SearchTimeout as exc:
        tracer.log_timeout(PUZZLE_TYPE, exc.iterations)
        return Outcome.timeout(steps=exc.iterations)

    if found:
        return Outcome.solved(tuple(sorted(state.placements)), steps=state.meter.iterations)
    return Outcome.no_solution(steps=state.meter.iterations)


def _place(state: _SearchState, cell: Cell) -> None:
    state.row_used[cell[0]] = True
    state.col_used[cell[1]] = True
    state.region_used.add(state.puzzle.region_of(cell))
    state.placements.append(cell)


def _remove(state: _SearchState, cell: Cell) -> None:
    state.placements.pop()
    state.row_used[cell[0]] = False
    state.col_used[cell[1]] = False
    state.region_used.discard(state.puzzle.region_of(cell))


def _backtrack(state: _SearchState, row: int) -> bool:
    state.meter.tick()
    n = state.puzzle.size
    # Rows already holding a fixed queen are pre-assigned.
    while row < n and state.row_used[row]:
        row += 1
    if row >= n:
        state.tracer.log_solution_found(PUZZLE_TYPE, depth=len(state.placements))
        return True

    for col in range(n):
        cell = (row, col)
        if not can_place(state, cell):
            continue
        _place(state, cell)
        state.tracer.log_assign(PUZZLE_TYPE, cell_label(cell), "queen", depth=len(state.placements))
        if _backtrack(state, row + 1):
            return True
        _remove(state, cell)

    state.tracer.log_backtrack(PUZZLE_TYPE, f"row{row}", reason="No column fits this row")
    return False


def placements_by_row(placements: Iterable[Cell]) -> Dict[int, int]:
    """Map row -> column for a set of placements."""
    return {row: col for row, col in placements}
