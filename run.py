"""CLI entrypoint: load puzzle(s), run the matching solver, and report outcomes."""

import argparse
import csv
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from solver import solve_puzzle
from src.puzzles.loader import SUPPORTED_SUFFIXES, coerce_jsonable, load_puzzles
from src.puzzles.model import Outcome, SearchBudget
from src.puzzles.parser import parse_puzzle, puzzle_type_of
from src.puzzles.queens import QueensPuzzle, placements_by_row
from src.puzzles.sudoku import SudokuPuzzle
from src.puzzles.tango import SUN, TangoPuzzle
from src.puzzles.zip_path import ZipPuzzle
from src.utils.io import save_json
from src.utils.trace import get_tracer, reset_tracer


def _env_number(name: str, cast):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return cast(raw)
    except ValueError:
        raise SystemExit(f"Environment variable {name} must be a number, got {raw!r}")


def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Solve sudoku, queens, tango and zip grid puzzles")
    parser.add_argument("input", type=Path, help="Path to a puzzle file (.json/.jsonl/.parquet) or a directory of them")
    parser.add_argument("--output", type=Path, default=None, help="Optional .csv or .json path to write results")
    parser.add_argument("--type", dest="puzzle_type", default=None, help="Only solve puzzles of this type")
    parser.add_argument(
        "--timeout",
        type=float,
        default=_env_number("PUZZLE_TIMEOUT_SECONDS", float),
        help="Wall-clock budget per puzzle in seconds (default: solver specific, env PUZZLE_TIMEOUT_SECONDS)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=_env_number("PUZZLE_MAX_ITERATIONS", int),
        help="Search expansion budget per puzzle (default: solver specific, env PUZZLE_MAX_ITERATIONS)",
    )
    parser.add_argument("--trace-dir", type=Path, default=None, help="Write one trace CSV per puzzle here")
    return parser.parse_args(argv)


def budget_from_args(args) -> Optional[SearchBudget]:
    """None keeps each solver's own default budget."""
    if args.timeout is None and args.max_iterations is None:
        return None
    return SearchBudget(max_iterations=args.max_iterations, timeout_seconds=args.timeout)


def format_outcome(outcome: Outcome) -> Dict[str, Any]:
    formatted = {
        "status": outcome.status.value,
        "solution": coerce_jsonable(outcome.solution),
        "steps": outcome.steps,
    }
    if outcome.reason:
        formatted["reason"] = outcome.reason
    if outcome.conflicts:
        formatted["conflicts"] = coerce_jsonable(outcome.conflicts)
    return formatted


def render_solution(puzzle: Any, outcome: Outcome) -> str:
    """Plain-text board for console output."""
    if not outcome.is_solved:
        return f"{outcome.status.value}: {outcome.reason}"

    if isinstance(puzzle, SudokuPuzzle):
        rows = [" ".join(str(v) for v in row) for row in outcome.solution]
    elif isinstance(puzzle, QueensPuzzle):
        queen_cols = placements_by_row(outcome.solution)
        rows = [
            " ".join("Q" if queen_cols.get(r) == c else "." for c in range(puzzle.size))
            for r in range(puzzle.size)
        ]
    elif isinstance(puzzle, TangoPuzzle):
        rows = [" ".join("S" if v == SUN else "M" for v in row) for row in outcome.solution]
    elif isinstance(puzzle, ZipPuzzle):
        order = {cell: idx + 1 for idx, cell in enumerate(outcome.solution)}
        width = len(str(puzzle.size * puzzle.size))
        rows = [
            " ".join(str(order[(r, c)]).rjust(width) for c in range(puzzle.size))
            for r in range(puzzle.size)
        ]
    else:
        raise TypeError(f"Cannot render {type(puzzle).__name__}")
    return "\n".join(rows)


def write_results_csv(results, output_path: Path):
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["id", "type", "status", "solution", "steps"])

        for r in results:
            writer.writerow([
                r["id"],
                r["type"],
                r["status"],
                json.dumps(r["solution"], ensure_ascii=False, separators=(",", ":")),
                r["steps"],
            ])


def collect_puzzles(input_path: Path) -> List[Dict[str, Any]]:
    if input_path.is_file():
        return load_puzzles(str(input_path))
    if input_path.is_dir():
        puzzles = []
        for file_path in sorted(input_path.iterdir()):
            if file_path.suffix in SUPPORTED_SUFFIXES:
                puzzles.extend(load_puzzles(str(file_path)))
        return puzzles
    raise ValueError(f"Input path {input_path} is neither file nor directory")


def _record_type(record: Dict[str, Any]) -> Optional[str]:
    """Canonical puzzle type of a raw record, or None when it is unknown."""
    try:
        return puzzle_type_of(record)
    except ValueError:
        return None


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    budget = budget_from_args(args)
    puzzles = collect_puzzles(args.input)
    results = []

    if args.puzzle_type:
        try:
            wanted = puzzle_type_of({"type": args.puzzle_type})
        except ValueError as e:
            raise SystemExit(f"--type: {e}")
        puzzles = [p for p in puzzles if _record_type(p) == wanted]

    for record in tqdm(puzzles, desc="Solving", unit="puzzle"):
        puzzle_id = record.get("id", "unknown")
        reset_tracer()
        tracer = get_tracer()

        try:
            puzzle_type = puzzle_type_of(record)
            puzzle = parse_puzzle(record)
            outcome = solve_puzzle(puzzle, budget=budget, tracer=tracer)
        except Exception as e:
            print(f"ERROR: Failed to solve puzzle {puzzle_id}: {e}")
            results.append({
                "id": puzzle_id,
                "type": _record_type(record) or record.get("type") or record.get("puzzle_type") or "unknown",
                "status": "error",
                "solution": None,
                "steps": -1,
            })
            continue

        formatted = format_outcome(outcome)
        results.append({
            "id": puzzle_id,
            "type": puzzle_type,
            "status": formatted["status"],
            "solution": formatted["solution"],
            "steps": outcome.steps,
        })
        if args.trace_dir:
            tracer.to_csv(args.trace_dir / f"{puzzle_id}.csv")
        if not args.output:
            print(f"[{puzzle_id}] {puzzle_type}")
            print(render_solution(puzzle, outcome))

    if args.output:
        if args.output.suffix == ".json":
            save_json(args.output, results)
        else:
            write_results_csv(results, args.output)
    return results


if __name__ == "__main__":
    main()
