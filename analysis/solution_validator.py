"""Validierung eines fertigen oder bearbeiteten Rasters.

Prüft das Raster auf Invarianten-Verletzungen als Sicherheitsnetz
unabhängig von Solver und Edit-Validator.
"""

from collections import defaultdict
from typing import Iterable, Literal, Optional

from pydantic import BaseModel

from models.grid import Timetable
from models.problem import SchedulingProblem
from solver.result import MeetingAssignment


class ValidationViolation(BaseModel):
    """Eine einzelne Invarianten-Verletzung."""

    severity: Literal["error", "warning"]
    constraint: str      # z.B. "teacher_double_booking"
    description: str
    entity: str          # teacher_id / class_id / lesson_id


class ValidationReport(BaseModel):
    """Ergebnis der Validierung."""

    violations: list[ValidationViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)

    def errors(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.severity == "error"]

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        errors = self.errors()
        warnings = [v for v in self.violations if v.severity == "warning"]

        status = (
            "[bold green]✓ VALIDE[/bold green]"
            if self.is_valid
            else "[bold red]✗ VERLETZUNGEN GEFUNDEN[/bold red]"
        )
        lines = [status, f"Fehler: {len(errors)} | Warnungen: {len(warnings)}"]
        console.print(Panel("\n".join(lines), title="Raster-Validierung", border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Verletzungen gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Constraint", width=24)
        table.add_column("Entität", width=12)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.constraint,
                v.entity,
                v.description,
            )
        console.print(table)


class SolutionValidator:
    """Prüft ein Raster (optional gegen den zugehörigen Datensatz)."""

    def validate(
        self,
        timetable: Timetable,
        problem: Optional[SchedulingProblem] = None,
        meeting_assignments: Iterable[MeetingAssignment] = (),
        subject_max_daily_slots: Optional[int] = None,
    ) -> ValidationReport:
        """Führt alle Prüfungen durch und gibt einen ValidationReport zurück."""
        meetings = list(meeting_assignments)
        violations: list[ValidationViolation] = []

        violations.extend(self._check_blocks(timetable))
        violations.extend(self._check_teacher_double_booking(timetable, problem, meetings))
        if problem is not None:
            violations.extend(self._check_exactly_one(timetable, problem))
            violations.extend(self._check_blocked_slots(timetable, problem))
        if subject_max_daily_slots is not None:
            violations.extend(self._check_subject_daily_cap(timetable, subject_max_daily_slots))

        has_errors = any(v.severity == "error" for v in violations)
        return ValidationReport(violations=violations, is_valid=not has_errors)

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_blocks(self, timetable: Timetable) -> list[ValidationViolation]:
        """Blocklänge = Dauer (kein Block über die Tagesgrenze), Klasse passt zur Zeile."""
        violations: list[ValidationViolation] = []
        for class_id, start, length, cell in timetable.iter_blocks():
            if length != cell.duration:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="block_length",
                    entity=class_id,
                    description=(
                        f"Slot {start}: Block {cell.load_id} hat {length} Slots, "
                        f"Dauer ist {cell.duration} (Tagesgrenze oder abgeschnitten)."
                    ),
                ))
            if cell.class_id != class_id:
                violations.append(ValidationViolation(
                    severity="warning",
                    constraint="class_mismatch",
                    entity=class_id,
                    description=f"Slot {start}: Zelle trägt Klasse {cell.class_id}.",
                ))
        return violations

    def _check_teacher_double_booking(
        self,
        timetable: Timetable,
        problem: Optional[SchedulingProblem],
        meetings: list[MeetingAssignment],
    ) -> list[ValidationViolation]:
        """Keine Lehrkraft zur selben Zeit in zwei Vorkommen."""
        # (teacher_id, slot) → Vorkommen
        seen: dict[tuple[str, int], list[str]] = defaultdict(list)
        for class_id, start, length, cell in timetable.iter_blocks():
            if not cell.teacher_id:
                continue
            for idx in range(start, start + length):
                seen[(cell.teacher_id, idx)].append(f"{class_id}/{cell.load_id}")

        if problem is not None and meetings:
            lookup = {m.id: m for m in problem.meeting_lessons}
            for assignment in meetings:
                meeting = lookup.get(assignment.lesson_id)
                if meeting is None:
                    continue
                for tid in meeting.teachers():
                    for idx in range(assignment.slot, assignment.slot + meeting.duration):
                        seen[(tid, idx)].append(f"Besprechung {meeting.id}")

        violations: list[ValidationViolation] = []
        for (teacher_id, slot), occurrences in sorted(seen.items()):
            if len(occurrences) > 1:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="teacher_double_booking",
                    entity=teacher_id,
                    description=f"Slot {slot}: gleichzeitig in {', '.join(occurrences)}",
                ))
        return violations

    def _check_exactly_one(
        self, timetable: Timetable, problem: SchedulingProblem
    ) -> list[ValidationViolation]:
        """Jede reguläre Lesson genau einmal; fehlende Lessons sind nur Warnungen."""
        blocks: dict[str, int] = defaultdict(int)
        load_blocks: dict[str, int] = defaultdict(int)
        for _, _, _, cell in timetable.iter_blocks():
            if cell.lesson_id:
                blocks[cell.lesson_id] += 1
            else:
                load_blocks[cell.load_id] += 1

        violations: list[ValidationViolation] = []
        for lesson in problem.regular_lessons:
            count = blocks.get(lesson.id, 0)
            if count == 0 and load_blocks.get(lesson.load_id, 0) > 0:
                # Zelle ohne lesson_id: einem Vorkommen desselben Auftrags zurechnen
                load_blocks[lesson.load_id] -= 1
                count = 1
            if count == 0:
                violations.append(ValidationViolation(
                    severity="warning",
                    constraint="unplaced",
                    entity=lesson.id,
                    description=f"Lesson {lesson.id} ({lesson.subject_id}, {lesson.class_id}) ist nicht platziert.",
                ))
            elif count > 1:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="duplicate_placement",
                    entity=lesson.id,
                    description=f"Lesson {lesson.id} steht {count}× im Raster.",
                ))
        for load_id, rest in load_blocks.items():
            if rest > 0:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="duplicate_placement",
                    entity=load_id,
                    description=f"Lehrauftrag {load_id}: {rest} Block/Blöcke mehr als Sitzungen.",
                ))
        return violations

    def _check_blocked_slots(
        self, timetable: Timetable, problem: SchedulingProblem
    ) -> list[ValidationViolation]:
        """Gesperrte Slots einer Lehrkraft bleiben frei."""
        blocked = problem.blocked_slots()
        violations: list[ValidationViolation] = []
        for class_id, row in timetable.cells.items():
            for idx, cell in enumerate(row):
                if cell is not None and cell.teacher_id and idx in blocked.get(cell.teacher_id, ()):
                    violations.append(ValidationViolation(
                        severity="error",
                        constraint="blocked_slot",
                        entity=cell.teacher_id,
                        description=f"Slot {idx}: gesperrt, aber in {class_id} eingeplant.",
                    ))
        return violations

    def _check_subject_daily_cap(
        self, timetable: Timetable, cap: int
    ) -> list[ValidationViolation]:
        """Max. Slots pro Tag je (Klasse, Fach, Lehrer)."""
        load: dict[tuple, int] = defaultdict(int)
        for class_id, row in timetable.cells.items():
            for idx, cell in enumerate(row):
                if cell is not None:
                    key = (class_id, cell.subject_id, cell.teacher_id or "-", timetable.day_of(idx))
                    load[key] += 1

        violations: list[ValidationViolation] = []
        for (class_id, subject_id, teacher_id, day), slots in sorted(load.items()):
            if slots > cap:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="subject_daily_cap",
                    entity=class_id,
                    description=(
                        f"Tag {day + 1}: {subject_id} ({teacher_id}) {slots} Slots, "
                        f"erlaubt {cap}."
                    ),
                ))
        return violations
