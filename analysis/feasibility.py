"""Machbarkeits-Check vor dem Solver-Lauf.

Reine Kapazitätsrechnung, keine Suche:
  1. Pro Klasse: benötigte Slots ≤ Slots im Raster
  2. Pro Lehrkraft: benötigte Slots ≤ nicht gesperrte Slots
  3. Pro (Klasse, Fach, Lehrer): Bedarf ≤ Tage × Tages-Obergrenze
  4. Pro (Klasse, Fach, Lehrer): mehr Sitzungen als Tage → Warnung
"""

from collections import defaultdict
from typing import Optional

from pydantic import BaseModel

from models.lesson import MeetingLesson, RegularLesson
from models.problem import SchedulingProblem


class FeasibilityReport(BaseModel):
    """Ergebnis des Machbarkeits-Checks."""

    is_feasible: bool
    errors: list[str]      # Kritische Probleme (Lösung unmöglich)
    warnings: list[str]    # Hinweise (Lösung schwierig aber möglich)

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel

        console = Console()
        if self.is_feasible:
            status = "[bold green]✓ LÖSBAR (Kapazität)[/bold green]"
        else:
            status = "[bold red]✗ NICHT LÖSBAR[/bold red]"

        lines = [status]
        if self.errors:
            lines.append("\n[red bold]Fehler (kritisch):[/red bold]")
            for e in self.errors:
                lines.append(f"  [red]• {e}[/red]")
        if self.warnings:
            lines.append("\n[yellow bold]Warnungen:[/yellow bold]")
            for w in self.warnings:
                lines.append(f"  [yellow]• {w}[/yellow]")
        if not self.errors and not self.warnings:
            lines.append("[dim]Keine Probleme gefunden.[/dim]")

        console.print(Panel("\n".join(lines), title="Machbarkeits-Check", border_style="cyan"))


def check_feasibility(
    problem: SchedulingProblem,
    subject_max_daily_slots: Optional[int] = None,
    include_meetings: bool = True,
) -> FeasibilityReport:
    """Prüft ob der Datensatz rein kapazitätsmäßig lösbar ist.

    ``include_meetings=False`` für Backends, die Besprechungen nicht planen;
    deren Lehrer-Bedarf zählt dann nicht mit.
    """
    errors: list[str] = []
    warnings: list[str] = []
    total = problem.total_slots

    # ── 1. Klassen ────────────────────────────────────────────────────────
    class_need: dict[str, int] = defaultdict(int)
    for lesson in problem.regular_lessons:
        class_need[lesson.class_id] += lesson.duration
    for class_id, need in class_need.items():
        if need > total:
            errors.append(
                f"Klasse {class_id}: {need} Slots benötigt, Raster hat nur {total}."
            )
        elif need == total:
            warnings.append(f"Klasse {class_id}: Raster vollständig ausgelastet ({need}/{total}).")

    # ── 2. Lehrkräfte ─────────────────────────────────────────────────────
    teacher_need: dict[str, int] = defaultdict(int)
    for lesson in problem.lessons:
        if isinstance(lesson, MeetingLesson) and not include_meetings:
            continue
        for tid in lesson.teachers():
            teacher_need[tid] += lesson.duration
    blocked = problem.blocked_slots()
    for tid, need in teacher_need.items():
        available = total - len({s for s in blocked.get(tid, ()) if 0 <= s < total})
        if need > available:
            errors.append(
                f"Lehrkraft {tid}: {need} Slots benötigt, nur {available} verfügbar "
                f"(Sperrzeiten reduzieren)."
            )

    # ── 3./4. Fach pro Tag ────────────────────────────────────────────────
    key_need: dict[tuple, int] = defaultdict(int)
    key_sessions: dict[tuple, int] = defaultdict(int)
    for lesson in problem.regular_lessons:
        key_need[lesson.subject_key] += lesson.duration
        key_sessions[lesson.subject_key] += 1
    for key, need in key_need.items():
        class_id, subject_id, teacher_id = key
        if subject_max_daily_slots is not None and need > subject_max_daily_slots * problem.days:
            errors.append(
                f"Klasse {class_id}, Fach {subject_id} ({teacher_id}): {need} Slots, "
                f"aber max. {subject_max_daily_slots} pro Tag × {problem.days} Tage."
            )
        elif key_sessions[key] > problem.days:
            warnings.append(
                f"Klasse {class_id}, Fach {subject_id}: {key_sessions[key]} Sitzungen "
                f"bei {problem.days} Tagen – mehrere Sitzungen am selben Tag nötig."
            )

    meetings = [l for l in problem.lessons if isinstance(l, MeetingLesson)]
    if meetings and not any(isinstance(l, RegularLesson) for l in problem.lessons):
        warnings.append("Nur Besprechungen im Datensatz – reguläres Raster bleibt leer.")

    return FeasibilityReport(
        is_feasible=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )
