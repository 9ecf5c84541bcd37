"""Tracing module: logs solver search steps and writes them to CSV."""

import csv
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

DEFAULT_MAX_RECORDED_STEPS = 10_000


@dataclass
class TraceStep:
    """A single step in the solving process."""

    timestamp: float
    step_number: int
    action_type: str  # 'assign', 'backtrack', 'prune', 'constraint_check', 'timeout', etc.
    puzzle_type: Optional[str] = None
    variable: Optional[str] = None  # cell label such as 'r2c3'
    value: Optional[Any] = None
    depth: Optional[int] = None  # recursion depth / path length
    constraint_checked: Optional[str] = None
    is_valid: Optional[bool] = None
    reason: Optional[str] = None


class Tracer:
    """Records solver steps for logging and analysis.

    Every event is counted, but only the first ``max_recorded_steps`` are kept
    as rows; path searches can expand millions of nodes.
    """

    def __init__(self, enabled: bool = True, max_recorded_steps: int = DEFAULT_MAX_RECORDED_STEPS):
        self.enabled = enabled
        self.max_recorded_steps = max_recorded_steps
        self.steps: List[TraceStep] = []
        self.action_counts: Dict[str, int] = {}
        self.start_time = datetime.now().timestamp()
        self.step_counter = 0

    def _get_timestamp(self) -> float:
        """Get elapsed time in seconds since tracer creation."""
        return datetime.now().timestamp() - self.start_time

    def _record(self, action_type: str, **fields: Any) -> None:
        self.step_counter += 1
        self.action_counts[action_type] = self.action_counts.get(action_type, 0) + 1
        if len(self.steps) >= self.max_recorded_steps:
            return
        self.steps.append(TraceStep(
            timestamp=self._get_timestamp(),
            step_number=self.step_counter,
            action_type=action_type,
            **fields,
        ))

    def log_assign(self, puzzle_type: str, variable: str, value: Any, depth: int):
        """Log a tentative placement (digit, queen, symbol or path step)."""
        if not self.enabled:
            return
        self._record('assign', puzzle_type=puzzle_type, variable=variable, value=str(value), depth=depth)

    def log_backtrack(self, puzzle_type: str, variable: str, reason: str = "No valid values"):
        """Log a backtrack event."""
        if not self.enabled:
            return
        self._record('backtrack', puzzle_type=puzzle_type, variable=variable, reason=reason)

    def log_prune(self, puzzle_type: str, variable: str, reason: str):
        """Log a branch cut by a look-ahead check before expanding it."""
        if not self.enabled:
            return
        self._record('prune', puzzle_type=puzzle_type, variable=variable, reason=reason)

    def log_constraint_check(self, puzzle_type: str, constraint_desc: str, is_valid: bool,
                             variable: Optional[str] = None):
        """Log a constraint check."""
        if not self.enabled:
            return
        self._record(
            'constraint_check',
            puzzle_type=puzzle_type,
            constraint_checked=constraint_desc,
            is_valid=is_valid,
            variable=variable,
        )

    def log_timeout(self, puzzle_type: str, iterations: int):
        """Log that the search budget ran out."""
        if not self.enabled:
            return
        self._record('timeout', puzzle_type=puzzle_type, reason=f"Budget exhausted after {iterations} expansions")

    def log_consistency_fault(self, puzzle_type: str, reason: str):
        """Log a full-grid validation failure after every placement check passed."""
        if not self.enabled:
            return
        self._record('consistency_fault', puzzle_type=puzzle_type, reason=reason, is_valid=False)

    def log_solution_found(self, puzzle_type: str, depth: int):
        """Log when a solution is found."""
        if not self.enabled:
            return
        self._record('solution_found', puzzle_type=puzzle_type, depth=depth)

    def to_csv(self, filepath: Path) -> None:
        """Write trace to CSV file."""
        if not self.steps:
            print("No trace steps to write")
            return

        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        fieldnames = [
            'timestamp', 'step_number', 'action_type', 'puzzle_type', 'variable', 'value',
            'depth', 'constraint_checked', 'is_valid', 'reason'
        ]

        with open(filepath, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for step in self.steps:
                writer.writerow(asdict(step))

        print(f"Trace written to {filepath} ({len(self.steps)} steps)")

    def summary(self) -> Dict[str, Any]:
        """Get a summary of the trace."""
        return {
            'total_steps': self.step_counter,
            'recorded_steps': len(self.steps),
            'elapsed_time_seconds': self._get_timestamp(),
            'action_counts': dict(self.action_counts),
            'num_assignments': self.action_counts.get('assign', 0),
            'num_backtracks': self.action_counts.get('backtrack', 0),
            'num_prunes': self.action_counts.get('prune', 0),
        }


# Global tracer instance
_global_tracer: Optional[Tracer] = None


def get_tracer() -> Tracer:
    """Get or create the global tracer."""
    global _global_tracer
    if _global_tracer is None:
        _global_tracer = Tracer(enabled=True)
    return _global_tracer


def reset_tracer() -> None:
    """Reset the global tracer."""
    global _global_tracer
    _global_tracer = None


def enable_tracing(enabled: bool = True) -> None:
    """Enable or disable tracing."""
    get_tracer().enabled = enabled
