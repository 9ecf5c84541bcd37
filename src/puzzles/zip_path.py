"""Zip: a path through every cell that hits the numbered waypoints in order.

The search is plain depth-first backtracking from the first waypoint, kept
tractable by two look-ahead checks run before every expansion (the unvisited
cells must stay connected, and the next waypoint must stay reachable) and by
trying forced moves first.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from .model import (
    BudgetMeter,
    Cell,
    Outcome,
    SearchBudget,
    SearchTimeout,
    are_orthogonal_neighbors,
    cell_label,
    in_bounds,
    normalize_edge,
    orthogonal_neighbors,
    to_cell,
)
from src.utils.trace import Tracer, get_tracer

PUZZLE_TYPE = "zip"
ZIP_MAX_ITERATIONS = 5_000_000
# The path search recurses once per cell.
ZIP_MAX_SIZE = 11

Edge = Tuple[Cell, Cell]


def block_id(edge: Edge) -> str:
    """
    Identifier used by the drawing tool for a wall between two cells:
    `h_{row}_{col}` is the wall under (row, col), `v_{row}_{col}` the wall to
    its right.
    """
    a, b = normalize_edge(*edge)
    if a[1] == b[1]:
        return f"h_{a[0]}_{a[1]}"
    return f"v_{a[0]}_{a[1]}"


def parse_block_id(value: str) -> Edge:
    try:
        kind, row, col = value.split("_")
        row, col = int(row), int(col)
    except ValueError:
        raise ValueError(f"Malformed block id {value!r}") from None
    if kind == "h":
        return ((row, col), (row + 1, col))
    if kind == "v":
        return ((row, col), (row, col + 1))
    raise ValueError(f"Malformed block id {value!r}")


@dataclass
class ZipPuzzle:
    size: int
    waypoints: List[Cell]
    blocked: FrozenSet[Edge] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not 1 <= self.size <= ZIP_MAX_SIZE:
            raise ValueError(f"Zip grid size must be between 1 and {ZIP_MAX_SIZE}, got {self.size}")
        self.waypoints = [to_cell(c) for c in self.waypoints]
        for cell in self.waypoints:
            if not in_bounds(cell, self.size):
                raise ValueError(f"Waypoint {cell} is outside the {self.size}x{self.size} grid")

        edges: Set[Edge] = set()
        for edge in self.blocked:
            a, b = (to_cell(c) for c in edge)
            if not (in_bounds(a, self.size) and in_bounds(b, self.size)):
                raise ValueError(f"Blocked edge {a}-{b} is outside the grid")
            if not are_orthogonal_neighbors(a, b):
                raise ValueError(f"Blocked edge {a}-{b} does not join adjacent cells")
            edges.add(normalize_edge(a, b))
        self.blocked = frozenset(edges)

    def is_blocked(self, a: Cell, b: Cell) -> bool:
        return normalize_edge(a, b) in self.blocked


@dataclass
class _SearchState:
    puzzle: ZipPuzzle
    visited: List[List[bool]]
    path: List[Cell]
    waypoint_index: Dict[Cell, int]
    meter: BudgetMeter
    tracer: Tracer
    unvisited: int

    def open_moves(self, cell: Cell) -> Iterable[Cell]:
        """In-bounds, unvisited neighbours not behind a wall."""
        for neighbor in orthogonal_neighbors(cell, self.puzzle.size):
            if not self.visited[neighbor[0]][neighbor[1]] and not self.puzzle.is_blocked(cell, neighbor):
                yield neighbor


def solve(puzzle: ZipPuzzle, budget: Optional[SearchBudget] = None,
          tracer: Optional[Tracer] = None) -> Outcome:
    tracer = tracer or get_tracer()
    if not puzzle.waypoints:
        return Outcome.invalid("at least one waypoint is required to mark the start")
    duplicates = sorted({c for c in puzzle.waypoints if puzzle.waypoints.count(c) > 1})
    if duplicates:
        return Outcome.invalid("waypoints must be distinct", [(c,) for c in duplicates])

    size = puzzle.size
    state = _SearchState(
        puzzle=puzzle,
        visited=[[False] * size for _ in range(size)],
        path=[],
        waypoint_index={cell: idx for idx, cell in enumerate(puzzle.waypoints)},
        meter=(budget or SearchBudget(max_iterations=ZIP_MAX_ITERATIONS)).start(),
        tracer=tracer,
        unvisited=size * size,
    )
    try:
        found = _step(state, puzzle.waypoints[0], 0)
    except SearchTimeout as exc:
        tracer.log_timeout(PUZZLE_TYPE, exc.iterations)
        return Outcome.timeout(steps=exc.iterations)

    if found:
        return Outcome.solved(list(state.path), steps=state.meter.iterations)
    return Outcome.no_solution(steps=state.meter.iterations)


def _enter(state: _SearchState, cell: Cell) -> None:
    state.visited[cell[0]][cell[1]] = True
    state.path.append(cell)
    state.unvisited -= 1


def _leave(state: _SearchState, cell: Cell) -> None:
    state.path.pop()
    state.visited[cell[0]][cell[1]] = False
    state.unvisited += 1


def _step(state: _SearchState, cell: Cell, target: int) -> bool:
    """Extend the path onto `cell`; `target` indexes the next waypoint still owed."""
    state.meter.tick()
    waypoints = state.puzzle.waypoints
    _enter(state, cell)
    state.tracer.log_assign(PUZZLE_TYPE, cell_label(cell), len(state.path), depth=len(state.path))

    if target < len(waypoints) and cell == waypoints[target]:
        target += 1
    elif cell in state.waypoint_index:
        state.tracer.log_prune(PUZZLE_TYPE, cell_label(cell), "waypoint reached out of order")
        _leave(state, cell)
        return False

    if state.unvisited == 0:
        if target == len(waypoints):
            state.tracer.log_solution_found(PUZZLE_TYPE, depth=len(state.path))
            return True
        _leave(state, cell)
        return False

    if not _remaining_cells_connected(state, cell):
        state.tracer.log_prune(PUZZLE_TYPE, cell_label(cell), "unvisited cells split apart")
        _leave(state, cell)
        return False
    if target < len(waypoints) and not _waypoint_reachable(state, cell, target):
        state.tracer.log_prune(PUZZLE_TYPE, cell_label(cell), f"waypoint {target + 1} unreachable")
        _leave(state, cell)
        return False

    for move in _ordered_moves(state, cell, target):
        if _step(state, move, target):
            return True

    state.tracer.log_backtrack(PUZZLE_TYPE, cell_label(cell), reason="No extension completes the path")
    _leave(state, cell)
    return False


def _remaining_cells_connected(state: _SearchState, head: Cell) -> bool:
    """
    Flood the unvisited cells from an open neighbour of the head. Every
    unvisited cell has to be reached, otherwise a Hamiltonian continuation
    is impossible.
    """
    seed = next(iter(state.open_moves(head)), None)
    if seed is None:
        return False

    seen = {seed}
    queue = deque([seed])
    while queue:
        current = queue.popleft()
        for neighbor in state.open_moves(current):
            if neighbor not in seen:
                seen.add(neighbor)
                queue.append(neighbor)
    return len(seen) == state.unvisited


def _waypoint_reachable(state: _SearchState, head: Cell, target: int) -> bool:
    """BFS from the head to the pending waypoint, never passing through a later waypoint."""
    goal = state.puzzle.waypoints[target]
    seen = {head}
    queue = deque([head])
    while queue:
        current = queue.popleft()
        for neighbor in orthogonal_neighbors(current, state.puzzle.size):
            if neighbor in seen or state.puzzle.is_blocked(current, neighbor):
                continue
            if neighbor == goal:
                return True
            if state.visited[neighbor[0]][neighbor[1]]:
                continue
            if state.waypoint_index.get(neighbor, -1) > target:
                continue
            seen.add(neighbor)
            queue.append(neighbor)
    return False


def _ordered_moves(state: _SearchState, cell: Cell, target: int) -> List[Cell]:
    """
    Forced moves (onward degree 1) first, nearest to the pending waypoint
    first; then the rest by onward degree, then distance.
    """
    waypoints = state.puzzle.waypoints
    goal: Optional[Cell] = waypoints[target] if target < len(waypoints) else None

    forced: List[Tuple[int, int, Cell]] = []
    others: List[Tuple[int, int, int, Cell]] = []
    for order, move in enumerate(state.open_moves(cell)):
        degree = sum(1 for _ in state.open_moves(move))
        distance = abs(move[0] - goal[0]) + abs(move[1] - goal[1]) if goal else 0
        if degree == 1:
            forced.append((distance, order, move))
        else:
            others.append((degree, distance, order, move))

    forced.sort()
    others.sort()
    return [move for *_, move in forced] + [move for *_, move in others]


def is_valid_path(puzzle: ZipPuzzle, path: List[Cell]) -> bool:
    """Whole-answer check: covers every cell once, legal steps, waypoints in order."""
    size = puzzle.size
    if len(path) != size * size or len(set(path)) != len(path):
        return False
    if any(not in_bounds(cell, size) for cell in path):
        return False
    for a, b in zip(path, path[1:]):
        if not are_orthogonal_neighbors(a, b) or puzzle.is_blocked(a, b):
            return False
    if not puzzle.waypoints or path[0] != puzzle.waypoints[0]:
        return False
    positions = [path.index(w) for w in puzzle.waypoints]
    return positions == sorted(positions)
