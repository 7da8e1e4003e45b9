from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SolverBackend(str, Enum):
    HEURISTIC = "heuristic"
    CPSAT = "cpsat"


# ─── HEURISTIK (Backtracking) ───

class HeuristicConfig(BaseModel):
    """Budget und Regeln für den Backtracking-Solver."""
    # Maximale Anzahl Backtracks, danach Abbruch ohne Lösung
    max_backtracks: int = Field(600_000, ge=0,
        description="Maximale Anzahl Backtracks")
    # Zeitbudget in Millisekunden
    time_limit_ms: int = Field(120_000, ge=1,
        description="Zeitlimit Suche (Millisekunden)")
    # Max. Slots pro Tag für dieselbe (Klasse, Fach, Lehrer)-Kombination.
    # None = keine Obergrenze (reine Struktur-Constraints).
    subject_max_daily_slots: Optional[int] = Field(None, ge=1,
        description="Max. Slots pro Tag je Klasse/Fach/Lehrer (None = aus)")


# ─── EXAKT (CP-SAT) ───

class ExactSolverConfig(BaseModel):
    """Konfiguration des CP-SAT-Backends."""
    # Zeitlimit für den Solver in Millisekunden
    time_limit_ms: int = Field(120_000, ge=1,
        description="Zeitlimit Solver (Millisekunden)")
    # Anzahl Such-Worker (0 = automatisch alle Kerne)
    num_workers: int = Field(8, ge=0,
        description="Such-Worker (0=automatisch)")
    # Max. Slots pro Tag je (Klasse, Fach, Lehrer), gewichtet mit der Dauer
    subject_max_daily_slots: Optional[int] = Field(2, ge=1,
        description="Max. Slots pro Tag je Klasse/Fach/Lehrer (None = aus)")
    # Max. Besprechungen pro Tag (schulweit)
    meeting_max_per_day: Optional[int] = Field(None, ge=0,
        description="Max. Besprechungen pro Tag (None = unbegrenzt)")
    # Max. Besprechungen pro Lehrkraft und Tag
    teacher_meeting_max_per_day: Optional[int] = Field(None, ge=0,
        description="Max. Besprechungen pro Lehrkraft und Tag (None = unbegrenzt)")


# ─── GESAMT-CONFIG ───

class EngineConfig(BaseModel):
    """Gesamtkonfiguration der Stundenplan-Engine."""
    # Welches Backend `solve` standardmäßig verwendet
    backend: SolverBackend = Field(SolverBackend.HEURISTIC)
    # Backtracking-Solver
    heuristic: HeuristicConfig = Field(default_factory=HeuristicConfig)
    # CP-SAT-Solver
    exact: ExactSolverConfig = Field(default_factory=ExactSolverConfig)
