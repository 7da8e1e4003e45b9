"""ConstraintEngine-Implementierung auf Basis von Google OR-Tools CP-SAT."""

import logging
import time
from typing import Any, Iterable

from ortools.sat.python import cp_model

from solver.backend import EngineOutcome, SolverStatus

logger = logging.getLogger(__name__)

_STATUS_MAP = {
    cp_model.OPTIMAL: SolverStatus.OPTIMAL,
    cp_model.FEASIBLE: SolverStatus.FEASIBLE,
    cp_model.INFEASIBLE: SolverStatus.INFEASIBLE,
    cp_model.UNKNOWN: SolverStatus.UNKNOWN,
    cp_model.MODEL_INVALID: SolverStatus.MODEL_INVALID,
}


# ─── Progress-Callback ────────────────────────────────────────────────────────

class SolveProgressCallback(cp_model.CpSolverSolutionCallback):
    """Loggt jede gefundene Lösung während der Suche."""

    def __init__(self) -> None:
        super().__init__()
        self._solution_count = 0
        self._start_time = time.time()

    def on_solution_callback(self) -> None:
        self._solution_count += 1
        elapsed = time.time() - self._start_time
        logger.info(f"  Lösung #{self._solution_count} | Zeit: {elapsed:.1f}s")

    @property
    def solution_count(self) -> int:
        return self._solution_count


# ─── Modell / Engine ──────────────────────────────────────────────────────────

class OrToolsModel:
    """Dünne Hülle um ``cp_model.CpModel``."""

    def __init__(self) -> None:
        self.model = cp_model.CpModel()

    def new_bool_var(self, name: str) -> Any:
        return self.model.new_bool_var(name)

    def new_optional_interval(self, start: int, duration: int, presence: Any, name: str) -> Any:
        return self.model.new_optional_fixed_size_interval_var(start, duration, presence, name)

    def add_exactly_one(self, literals: Iterable[Any]) -> None:
        self.model.add_exactly_one(list(literals))

    def add_no_overlap(self, intervals: Iterable[Any]) -> None:
        self.model.add_no_overlap(list(intervals))

    def add_linear_at_most(self, terms: Iterable[tuple[int, Any]], limit: int) -> None:
        terms = list(terms)
        if terms:
            self.model.add(sum(coef * lit for coef, lit in terms) <= limit)

    @property
    def num_variables(self) -> int:
        return len(self.model.proto.variables)

    @property
    def num_constraints(self) -> int:
        return len(self.model.proto.constraints)


class OrToolsEngine:
    name = "ortools-cpsat"

    def new_model(self) -> OrToolsModel:
        return OrToolsModel()

    def solve(self, model: OrToolsModel, time_limit_s: float, num_workers: int) -> EngineOutcome:
        cp_solver = cp_model.CpSolver()
        cp_solver.parameters.max_time_in_seconds = time_limit_s
        cp_solver.parameters.num_workers = num_workers
        cp_solver.parameters.log_search_progress = False

        callback = SolveProgressCallback()
        status = cp_solver.solve(model.model, callback)

        return EngineOutcome(
            status=_STATUS_MAP.get(status, SolverStatus.UNKNOWN),
            status_name=cp_solver.status_name(status),
            wall_time=cp_solver.wall_time,
            value=cp_solver.value,
            solution_count=callback.solution_count,
        )
