"""Puzzle parser: convert raw puzzle records into solver instances.

Supports:
- sudoku: {"grid": 6x6 of 0..6 (0, None or "" for empty)}
- queens: {"regions": NxN zone ids, "queens": [[r, c], ...]}
- tango:  {"grid": 6x6 symbols, "constraints": [{"cells": [[r, c], [r, c]], "relation": "="}]}
          or {"display": 11x11 board mixing symbol cells and constraint slots}
- zip:    {"size": N, "waypoints": [[r, c], ...], "blocks": ["h_0_1", [[r, c], [r, c]], ...]}
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .model import Cell, check_square, to_cell
from .queens import QueensPuzzle
from .sudoku import SudokuPuzzle
from .tango import EQUAL, MOON, OPPOSITE, SUN, Constraints, TangoPuzzle
from .zip_path import Edge, ZipPuzzle, parse_block_id

Puzzle = Union[SudokuPuzzle, QueensPuzzle, TangoPuzzle, ZipPuzzle]

_SYMBOL_TOKENS = {
    "sun": SUN,
    "s": SUN,
    "☀️": SUN,
    "☀": SUN,
    "moon": MOON,
    "m": MOON,
    "🌙": MOON,
}

_RELATION_TOKENS = {
    "equal": EQUAL,
    "=": EQUAL,
    "opposite": OPPOSITE,
    "x": OPPOSITE,
    "×": OPPOSITE,
}

_TYPE_ALIASES = {
    "sudoku": "sudoku",
    "mini_sudoku": "sudoku",
    "mini-sudoku": "sudoku",
    "queens": "queens",
    "tango": "tango",
    "zip": "zip",
}


def puzzle_type_of(record: Dict[str, Any]) -> str:
    raw = str(record.get("type") or record.get("puzzle_type") or "").strip().lower()
    kind = _TYPE_ALIASES.get(raw)
    if kind is None:
        raise ValueError(f"Unknown puzzle type {raw!r}; expected one of sudoku, queens, tango, zip")
    return kind


def parse_puzzle(record: Dict[str, Any]) -> Puzzle:
    kind = puzzle_type_of(record)
    if kind == "sudoku":
        return _parse_sudoku(record)
    if kind == "queens":
        return _parse_queens(record)
    if kind == "tango":
        return _parse_tango(record)
    return _parse_zip(record)


def _require(record: Dict[str, Any], key: str) -> Any:
    value = record.get(key)
    if value is None:
        raise ValueError(f"{puzzle_type_of(record)} puzzle is missing {key!r}")
    return value


def _parse_sudoku(record: Dict[str, Any]) -> SudokuPuzzle:
    def _digit(value: Any) -> int:
        if value is None or value == "" or value == ".":
            return 0
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Sudoku cell {value!r} is not a digit") from None

    grid = [[_digit(v) for v in row] for row in _require(record, "grid")]
    kwargs = {}
    if record.get("region_rows"):
        kwargs["region_rows"] = int(record["region_rows"])
    if record.get("region_cols"):
        kwargs["region_cols"] = int(record["region_cols"])
    return SudokuPuzzle(grid=grid, **kwargs)


def _parse_queens(record: Dict[str, Any]) -> QueensPuzzle:
    regions = _require(record, "regions")
    queens = record.get("queens") or record.get("fixed") or []
    return QueensPuzzle.from_zone_matrix(regions, fixed=[to_cell(q) for q in queens])


def _symbol(value: Any) -> Optional[str]:
    if value is None:
        return None
    token = str(value).strip().lower()
    if token == "":
        return None
    if token not in _SYMBOL_TOKENS:
        raise ValueError(f"Unknown tango symbol {value!r}")
    return _SYMBOL_TOKENS[token]


def _relation(value: Any) -> Optional[str]:
    if value is None:
        return None
    token = str(value).strip().lower()
    if token == "":
        return None
    if token not in _RELATION_TOKENS:
        raise ValueError(f"Unknown tango relation {value!r}")
    return _RELATION_TOKENS[token]


def _parse_tango(record: Dict[str, Any]) -> TangoPuzzle:
    if record.get("display") is not None:
        grid, constraints = decode_tango_display(record["display"])
        return TangoPuzzle(grid=grid, constraints=constraints)

    grid = [[_symbol(v) for v in row] for row in _require(record, "grid")]
    constraints: Constraints = {}
    for item in record.get("constraints") or []:
        cells = item.get("cells") if isinstance(item, dict) else None
        relation = _relation(item.get("relation")) if isinstance(item, dict) else None
        if not cells or len(cells) != 2 or relation is None:
            raise ValueError(f"Malformed tango constraint {item!r}")
        constraints[(to_cell(cells[0]), to_cell(cells[1]))] = relation
    return TangoPuzzle(grid=grid, constraints=constraints)


def decode_tango_display(display: Sequence[Sequence[Any]]) -> Tuple[List[List[Optional[str]]], Constraints]:
    """
    Split the (2N-1)x(2N-1) display board into the NxN symbol grid and the
    edge-constraint map. Even/even slots are symbols, even/odd slots join
    horizontal neighbours, odd/even slots join vertical neighbours, odd/odd
    slots are unused.
    """
    display_size = check_square(display, "Tango display")
    if display_size % 2 == 0:
        raise ValueError(f"Tango display grid must have an odd side, got {display_size}")
    size = (display_size + 1) // 2

    grid: List[List[Optional[str]]] = [[None] * size for _ in range(size)]
    constraints: Constraints = {}
    for r in range(display_size):
        for c in range(display_size):
            value = display[r][c]
            if r % 2 == 0 and c % 2 == 0:
                grid[r // 2][c // 2] = _symbol(value)
                continue
            if r % 2 == 1 and c % 2 == 1:
                continue
            relation = _relation(value)
            if relation is None:
                continue
            if r % 2 == 0:
                edge = ((r // 2, c // 2), (r // 2, c // 2 + 1))
            else:
                edge = ((r // 2, c // 2), (r // 2 + 1, c // 2))
            constraints[edge] = relation
    return grid, constraints


def encode_tango_display(puzzle: TangoPuzzle) -> List[List[Optional[str]]]:
    display_size = puzzle.size * 2 - 1
    display: List[List[Optional[str]]] = [[None] * display_size for _ in range(display_size)]
    for r in range(puzzle.size):
        for c in range(puzzle.size):
            display[r * 2][c * 2] = puzzle.grid[r][c]
    for (a, b), relation in puzzle.constraints.items():
        display[a[0] + b[0]][a[1] + b[1]] = relation
    return display


def _parse_zip(record: Dict[str, Any]) -> ZipPuzzle:
    size = int(_require(record, "size"))
    waypoints: List[Cell] = [to_cell(w) for w in record.get("waypoints") or []]
    blocked: List[Edge] = []
    for block in record.get("blocks") or []:
        if isinstance(block, str):
            blocked.append(parse_block_id(block))
        elif isinstance(block, dict) and "id" in block:
            blocked.append(parse_block_id(block["id"]))
        else:
            try:
                a, b = block
            except (TypeError, ValueError):
                raise ValueError(f"Malformed zip block {block!r}") from None
            blocked.append((to_cell(a), to_cell(b)))
    return ZipPuzzle(size=size, waypoints=waypoints, blocked=frozenset(blocked))
