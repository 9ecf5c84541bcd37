import csv
import json

from run import budget_from_args, format_outcome, main, parse_args, render_solution
from src.puzzles.model import Outcome, SearchBudget, Status
from src.puzzles.queens import QueensPuzzle
from src.puzzles.tango import MOON, SUN, TangoPuzzle
from src.puzzles.zip_path import ZipPuzzle

BATCH = [
    {"id": "sudoku1", "type": "sudoku", "grid": [[0] * 6 for _ in range(6)]},
    {"id": "queens1", "type": "queens", "regions": [[r] * 4 for r in range(4)]},
    {"id": "zip1", "type": "zip", "size": 2, "waypoints": [[0, 0]]},
    {"id": "broken", "type": "kakuro"},
]


def _write_batch(tmp_path, name="batch.json"):
    path = tmp_path / name
    path.write_text(json.dumps(BATCH))
    return path


def test_format_outcome_solved():
    formatted = format_outcome(Outcome.solved(((0, 1), (1, 3)), steps=7))
    assert formatted == {"status": "solved", "solution": [[0, 1], [1, 3]], "steps": 7}


def test_format_outcome_invalid_keeps_conflicts():
    formatted = format_outcome(Outcome.invalid("fixed queens conflict", [((0, 0), (1, 1))]))
    assert formatted["status"] == "invalid"
    assert formatted["solution"] is None
    assert formatted["reason"] == "fixed queens conflict"
    assert formatted["conflicts"] == [[[0, 0], [1, 1]]]


def test_render_queens_and_zip():
    queens = QueensPuzzle([[r] * 4 for r in range(4)])
    text = render_solution(queens, Outcome.solved(((0, 1), (1, 3), (2, 0), (3, 2))))
    assert text.splitlines() == [". Q . .", ". . . Q", "Q . . .", ". . Q ."]

    path = ZipPuzzle(size=2, waypoints=[(0, 0)])
    text = render_solution(path, Outcome.solved([(0, 0), (0, 1), (1, 1), (1, 0)]))
    assert text.splitlines() == ["1 2", "4 3"]


def test_render_tango_and_failures():
    grid = [[SUN, MOON], [MOON, SUN]]
    puzzle = TangoPuzzle([[None] * 2 for _ in range(2)], {})
    assert render_solution(puzzle, Outcome.solved(grid)) == "S M\nM S"
    assert render_solution(puzzle, Outcome.timeout()) == "timeout: search budget exhausted"


def test_budget_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("PUZZLE_MAX_ITERATIONS", "250")
    monkeypatch.delenv("PUZZLE_TIMEOUT_SECONDS", raising=False)
    budget = budget_from_args(parse_args([str(tmp_path)]))
    assert budget == SearchBudget(max_iterations=250)

    monkeypatch.delenv("PUZZLE_MAX_ITERATIONS")
    assert budget_from_args(parse_args([str(tmp_path)])) is None
    assert budget_from_args(parse_args([str(tmp_path), "--timeout", "0.5"])).timeout_seconds == 0.5


def test_main_csv_output(tmp_path, capsys):
    input_path = _write_batch(tmp_path)
    output_path = tmp_path / "results.csv"
    main([str(input_path), "--output", str(output_path)])

    with open(output_path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["id"] for r in rows] == ["sudoku1", "queens1", "zip1", "broken"]
    assert [r["status"] for r in rows] == ["solved", "solved", "solved", "error"]
    assert json.loads(rows[1]["solution"]) == [[0, 1], [1, 3], [2, 0], [3, 2]]
    assert rows[3]["steps"] == "-1"
    assert "ERROR: Failed to solve puzzle broken" in capsys.readouterr().out


def test_main_json_output_and_type_filter(tmp_path):
    input_path = _write_batch(tmp_path)
    output_path = tmp_path / "out" / "results.json"
    results = main([str(input_path), "--output", str(output_path), "--type", "zip"])

    saved = json.loads(output_path.read_text(encoding="utf-8"))
    assert saved == results
    assert len(saved) == 1
    assert saved[0]["type"] == "zip"
    assert saved[0]["solution"][0] == [0, 0]


def test_main_directory_input_prints_boards(tmp_path, capsys):
    (tmp_path / "a.json").write_text(json.dumps(BATCH[:1]))
    (tmp_path / "b.jsonl").write_text(json.dumps(BATCH[2]) + "\n")
    (tmp_path / "notes.txt").write_text("ignored")
    results = main([str(tmp_path)])

    assert [r["id"] for r in results] == ["sudoku1", "zip1"]
    out = capsys.readouterr().out
    assert "[sudoku1] sudoku" in out
    assert "[zip1] zip" in out


def test_main_writes_trace_per_puzzle(tmp_path):
    input_path = _write_batch(tmp_path)
    trace_dir = tmp_path / "traces"
    main([str(input_path), "--output", str(tmp_path / "r.csv"), "--trace-dir", str(trace_dir)])
    assert sorted(p.name for p in trace_dir.iterdir()) == ["queens1.csv", "sudoku1.csv", "zip1.csv"]


def test_main_reports_timeouts(tmp_path):
    input_path = _write_batch(tmp_path)
    results = main([str(input_path), "--output", str(tmp_path / "r.json"), "--max-iterations", "1"])
    statuses = {r["id"]: r["status"] for r in results}
    assert statuses == {
        "sudoku1": Status.TIMEOUT.value,
        "queens1": Status.TIMEOUT.value,
        "zip1": Status.TIMEOUT.value,
        "broken": "error",
    }


def test_type_filter_accepts_aliases_and_puzzle_type_key(tmp_path):
    empty = [[0] * 6 for _ in range(6)]
    input_path = tmp_path / "aliases.json"
    input_path.write_text(json.dumps([
        {"id": "alias", "type": "mini_sudoku", "grid": empty},
        {"id": "keyed", "puzzle_type": "sudoku", "grid": empty},
        {"id": "other", "type": "zip", "size": 2, "waypoints": [[0, 0]]},
    ]))
    results = main([str(input_path), "--output", str(tmp_path / "r.json"), "--type", "mini-sudoku"])
    assert [(r["id"], r["type"], r["status"]) for r in results] == [
        ("alias", "sudoku", "solved"),
        ("keyed", "sudoku", "solved"),
    ]


def test_unexpected_solver_failure_does_not_stop_batch(tmp_path, monkeypatch, capsys):
    def explode(puzzle, budget=None, tracer=None):
        if isinstance(puzzle, ZipPuzzle):
            raise RecursionError("maximum recursion depth exceeded")
        return Outcome.no_solution()

    monkeypatch.setattr("run.solve_puzzle", explode)
    input_path = _write_batch(tmp_path)
    results = main([str(input_path), "--output", str(tmp_path / "r.json")])

    statuses = {r["id"]: (r["type"], r["status"]) for r in results}
    assert statuses["zip1"] == ("zip", "error")
    assert statuses["sudoku1"] == ("sudoku", "no_solution")
    assert statuses["broken"] == ("kakuro", "error")
    assert "ERROR: Failed to solve puzzle zip1: maximum recursion depth exceeded" in capsys.readouterr().out


def test_oversized_zip_record_is_reported_as_error(tmp_path):
    input_path = tmp_path / "big.json"
    input_path.write_text(json.dumps([{"id": "huge", "type": "zip", "size": 35, "waypoints": [[0, 0]]}]))
    results = main([str(input_path), "--output", str(tmp_path / "r.json")])
    assert results == [{"id": "huge", "type": "zip", "status": "error", "solution": None, "steps": -1}]
