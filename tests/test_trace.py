"""Test to verify trace.py captures solver steps."""

from src.puzzles.sudoku import SudokuPuzzle, solve
from src.utils.trace import Tracer, enable_tracing, get_tracer, reset_tracer


def test_tracer_captures_steps(tmp_path):
    tracer = Tracer()
    tracer.log_assign("sudoku", "r0c0", 1, depth=1)
    tracer.log_prune("zip", "r1c1", reason="unvisited cells split apart")
    tracer.log_constraint_check("tango", "full grid validation", is_valid=True)
    tracer.log_backtrack("queens", "row2")
    tracer.log_timeout("zip", iterations=10)
    tracer.log_solution_found("sudoku", depth=36)

    summary = tracer.summary()
    assert summary["total_steps"] == 6
    assert summary["num_assignments"] == 1
    assert summary["num_backtracks"] == 1
    assert summary["num_prunes"] == 1
    assert summary["action_counts"]["timeout"] == 1

    output_path = tmp_path / "traces" / "trace.csv"
    tracer.to_csv(output_path)
    lines = output_path.read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith("timestamp,step_number,action_type,puzzle_type")
    assert len(lines) == 7


def test_recorded_steps_are_capped_but_counted():
    tracer = Tracer(max_recorded_steps=5)
    for i in range(20):
        tracer.log_assign("zip", f"r0c{i}", i, depth=i)
    assert len(tracer.steps) == 5
    assert tracer.summary()["num_assignments"] == 20


def test_disabled_tracer_records_nothing():
    tracer = Tracer(enabled=False)
    tracer.log_assign("zip", "r0c0", 1, depth=1)
    assert tracer.summary()["total_steps"] == 0


def test_solver_uses_global_tracer_by_default():
    reset_tracer()
    grid = [[0] * 6 for _ in range(6)]
    solve(SudokuPuzzle(grid))
    summary = get_tracer().summary()
    assert summary["num_assignments"] >= 36
    assert summary["action_counts"]["solution_found"] == 1

    enable_tracing(False)
    assert get_tracer().enabled is False
    solve(SudokuPuzzle(grid))
    assert get_tracer().summary()["total_steps"] == summary["total_steps"]
    reset_tracer()
