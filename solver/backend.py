"""Schnittstelle zwischen ExactSolver und der Constraint-Engine.

Der ExactSolver kennt nur ``ConstraintModel`` und ``ConstraintEngine``.
Die konkrete Implementierung auf Basis von OR-Tools CP-SAT liegt in
``solver.ortools_engine`` und wird erst in ``load_engine()`` importiert,
damit ein fehlendes OR-Tools als eigener Fehlerfall gemeldet werden kann.
"""

import importlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Protocol

logger = logging.getLogger(__name__)


# ─── Fehler ───────────────────────────────────────────────────────────────────

class EngineError(Exception):
    """Basisklasse: Constraint-Engine nicht nutzbar."""


class EngineUnavailableError(EngineError):
    """Engine-Paket ist nicht installiert."""


class EngineIncompatibleError(EngineError):
    """Engine ist installiert, bietet aber die benötigte API nicht."""


# ─── Status / Ergebnis ────────────────────────────────────────────────────────

class SolverStatus(str, Enum):
    OPTIMAL = "OPTIMAL"
    FEASIBLE = "FEASIBLE"
    INFEASIBLE = "INFEASIBLE"
    UNKNOWN = "UNKNOWN"
    MODEL_INVALID = "MODEL_INVALID"

    @property
    def has_solution(self) -> bool:
        return self in (SolverStatus.OPTIMAL, SolverStatus.FEASIBLE)


@dataclass
class EngineOutcome:
    """Antwort der Engine auf einen Solve-Aufruf."""

    status: SolverStatus
    status_name: str
    wall_time: float
    value: Callable[[Any], int]   # 0/1-Wert einer Bool-Variable (nur bei Lösung)
    solution_count: int = 0


# ─── Capability-Interface ────────────────────────────────────────────────────

class ConstraintModel(Protocol):
    def new_bool_var(self, name: str) -> Any: ...

    def new_optional_interval(self, start: int, duration: int, presence: Any, name: str) -> Any: ...

    def add_exactly_one(self, literals: Iterable[Any]) -> None: ...

    def add_no_overlap(self, intervals: Iterable[Any]) -> None: ...

    def add_linear_at_most(self, terms: Iterable[tuple[int, Any]], limit: int) -> None: ...

    @property
    def num_variables(self) -> int: ...

    @property
    def num_constraints(self) -> int: ...


class ConstraintEngine(Protocol):
    name: str

    def new_model(self) -> ConstraintModel: ...

    def solve(self, model: ConstraintModel, time_limit_s: float, num_workers: int) -> EngineOutcome: ...


# ─── Laden ────────────────────────────────────────────────────────────────────

# Methoden, die die OR-Tools-Version mindestens anbieten muss
REQUIRED_MODEL_API = (
    "new_bool_var",
    "new_optional_fixed_size_interval_var",
    "add_exactly_one",
    "add_no_overlap",
    "add",
)
REQUIRED_SOLVER_API = ("solve", "value", "status_name")


def load_engine() -> ConstraintEngine:
    """Importiert OR-Tools erst bei Bedarf und prüft die API."""
    try:
        cp_model = importlib.import_module("ortools.sat.python.cp_model")
    except ImportError as e:
        raise EngineUnavailableError(
            "OR-Tools ist nicht installiert (pip install ortools)."
        ) from e

    missing = [n for n in REQUIRED_MODEL_API if not hasattr(cp_model.CpModel, n)]
    missing += [n for n in REQUIRED_SOLVER_API if not hasattr(cp_model.CpSolver, n)]
    if missing:
        raise EngineIncompatibleError(
            f"OR-Tools-Version ohne benötigte API: {', '.join(missing)}"
        )

    from solver.ortools_engine import OrToolsEngine

    logger.debug(f"Constraint-Engine geladen: OR-Tools CP-SAT ({cp_model.__name__})")
    return OrToolsEngine()
