"""Ergebnis-Modelle beider Solver-Backends (Pydantic v2).

Erwartbare Fehlschläge (leere Domain, Budget erschöpft, INFEASIBLE, ...)
sind normale Rückgabewerte mit ``success=False`` und gesetztem ``failure``.
Nur fehlerhafte Eingaben führen zu Exceptions.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from models.grid import Timetable


class FailureKind(str, Enum):
    INFEASIBLE_DOMAIN = "infeasible_domain"      # Lesson ohne zulässigen Start
    CAPACITY_EXCEEDED = "capacity_exceeded"      # Vorab-Check: Bedarf > Kapazität
    BUDGET_EXHAUSTED = "budget_exhausted"        # Backtracks oder Zeit aufgebraucht
    SEARCH_EXHAUSTED = "search_exhausted"        # Suchbaum vollständig, keine Lösung
    ENGINE_UNAVAILABLE = "engine_unavailable"    # OR-Tools nicht installiert
    ENGINE_INCOMPATIBLE = "engine_incompatible"  # OR-Tools-API passt nicht
    SOLVER_INFEASIBLE = "solver_infeasible"      # CP-SAT: beweisbar unlösbar
    SOLVER_TIMEOUT = "solver_timeout"            # CP-SAT: UNKNOWN nach Zeitlimit
    MODEL_INVALID = "model_invalid"              # CP-SAT: Modell ungültig


class SolveFailure(BaseModel):
    kind: FailureKind
    message: str
    lesson_id: Optional[str] = None


class MeetingAssignment(BaseModel):
    """Besprechungen stehen in keinem Klassenraster, daher separat."""

    lesson_id: str
    slot: int


class SolveStats(BaseModel):
    lessons_total: int
    assigned: int = 0          # platzierte Lessons
    assigned_slots: int = 0    # belegte Rasterzellen
    backtracks: int = 0
    elapsed_ms: float = 0.0
    max_depth: int = 0         # tiefste erreichte Suchtiefe (nur Backtracking)


class SolveResult(BaseModel):
    """Ergebnis eines Solver-Laufs."""

    backend: str
    success: bool
    timetable: Timetable
    starts: dict[str, int] = {}                    # lesson_id → Start-Slot
    unplaced: list[str] = []
    skipped: list[str] = []                        # vom Backend nicht unterstützte Lessons
    meeting_assignments: list[MeetingAssignment] = []
    stats: SolveStats
    failure: Optional[SolveFailure] = None
    solver_status: Optional[str] = None
    num_variables: int = 0
    num_constraints: int = 0

    def save_json(self, path: Path) -> None:
        """Speichert das Ergebnis als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "SolveResult":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Lösung nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())
