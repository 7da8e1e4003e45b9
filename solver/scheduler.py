"""CP-SAT Stundenplan-Solver (exaktes Backend).

Architektur:
  - Eine Bool-Variable pro (Lesson, zulässiger Start) plus optionales
    Intervall [Start, Start + Dauer), aktiv genau dann wenn die Variable 1 ist
  - Genau ein Start pro Lesson
  - NoOverlap pro Klasse (reguläre Lessons) und pro Lehrkraft
    (Lehrer einer regulären Stunde bzw. alle Lehrer einer Besprechung)
  - Lineare Obergrenzen pro Tag: Fach-Slots je (Klasse, Fach, Lehrer),
    Besprechungen schulweit und je Lehrkraft
  - Pins und Sperrzeiten verkleinern die Domains vor dem Modellaufbau

Die Engine wird über ``solver.backend`` angesprochen; dieses Modul
importiert OR-Tools nie direkt.
"""

import os
import time
import logging
from collections import defaultdict
from typing import Any, Optional

from config.schema import ExactSolverConfig
from models.grid import TimetableCell
from models.lesson import MeetingLesson, RegularLesson
from models.problem import SchedulingProblem
from solver.backend import (
    ConstraintEngine,
    ConstraintModel,
    EngineIncompatibleError,
    EngineUnavailableError,
    SolverStatus,
    load_engine,
)
from solver.domain import DomainTable, build_domains
from solver.pinning import PinnedLesson, forced_labels, forced_starts
from solver.result import (
    FailureKind,
    MeetingAssignment,
    SolveFailure,
    SolveResult,
    SolveStats,
)

logger = logging.getLogger(__name__)

BACKEND_NAME = "cpsat"

_STATUS_FAILURES = {
    SolverStatus.INFEASIBLE: FailureKind.SOLVER_INFEASIBLE,
    SolverStatus.UNKNOWN: FailureKind.SOLVER_TIMEOUT,
    SolverStatus.MODEL_INVALID: FailureKind.MODEL_INVALID,
}


class ExactSolver:
    """CP-SAT basierter Solver für reguläre Stunden und Besprechungen.

    Verwendung:
        solver = ExactSolver(problem, ExactSolverConfig(time_limit_ms=10_000))
        result = solver.solve(pins=[...])

    ``engine`` ersetzt die per ``load_engine()`` geladene OR-Tools-Engine
    (z.B. in Tests).
    """

    def __init__(
        self,
        problem: SchedulingProblem,
        config: Optional[ExactSolverConfig] = None,
        engine: Optional[ConstraintEngine] = None,
    ) -> None:
        self.problem = problem
        self.config = config or ExactSolverConfig()
        self._engine = engine

        # Entscheidungsvariablen (werden in _create_variables befüllt)
        self._x: dict[str, dict[int, Any]] = {}   # lesson_id → {start: BoolVar}
        self._intervals: dict[str, list[Any]] = {}  # lesson_id → Intervalle

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def solve(self, pins: list[PinnedLesson] = []) -> SolveResult:
        """Baut das Modell, löst es und extrahiert das Raster."""
        t0 = time.time()
        problem = self.problem
        stats = SolveStats(lessons_total=len(problem.lessons))

        # ── Engine ────────────────────────────────────────────────────────────
        try:
            engine = self._engine or load_engine()
        except EngineUnavailableError as e:
            logger.error(f"CP-SAT nicht verfügbar: {e}")
            return self._failure(FailureKind.ENGINE_UNAVAILABLE, str(e), stats, t0)
        except EngineIncompatibleError as e:
            logger.error(f"CP-SAT inkompatibel: {e}")
            return self._failure(FailureKind.ENGINE_INCOMPATIBLE, str(e), stats, t0)

        # ── Domains ───────────────────────────────────────────────────────────
        starts_forced = forced_starts(pins, problem.slots_per_day)
        known = {l.id for l in problem.lessons}
        for lesson_id in starts_forced:
            if lesson_id not in known:
                logger.warning(f"Pin ignoriert (Lesson nicht vorhanden): {lesson_id}")
        domains = build_domains(
            problem.lessons,
            problem.days,
            problem.slots_per_day,
            problem.blocked_slots(),
            starts_forced,
        )
        empty = domains.first_empty()
        if empty is not None:
            logger.error(f"Lesson {empty} hat keinen zulässigen Start – Modell wird nicht gebaut")
            return self._failure(
                FailureKind.INFEASIBLE_DOMAIN,
                f"Lesson {empty} hat keinen zulässigen Start-Slot "
                f"(Dauer, Sperrzeiten oder Pin passen nicht ins Raster).",
                stats,
                t0,
                lesson_id=empty,
            )

        # ── Modell ────────────────────────────────────────────────────────────
        try:
            model = engine.new_model()
            self._create_variables(model, domains)
            self._add_constraints(model)
        except AttributeError as e:
            logger.error(f"Engine-API unvollständig: {e}")
            return self._failure(FailureKind.ENGINE_INCOMPATIBLE, str(e), stats, t0)

        num_variables = model.num_variables
        num_constraints = model.num_constraints
        time_limit_s = self.config.time_limit_ms / 1000.0
        num_workers = self.config.num_workers or os.cpu_count() or 4
        logger.info(
            f"CP-SAT-Modell: {num_variables} Variablen, {num_constraints} Constraints | "
            f"Zeitlimit: {time_limit_s:.1f}s | Worker: {num_workers}"
        )

        outcome = engine.solve(model, time_limit_s, num_workers)
        stats.elapsed_ms = (time.time() - t0) * 1000.0
        logger.info(
            f"Solver beendet: {outcome.status_name} | "
            f"Zeit: {outcome.wall_time:.1f}s | "
            f"Lösungen: {outcome.solution_count}"
        )

        if not outcome.status.has_solution:
            kind = _STATUS_FAILURES[outcome.status]
            result = self._failure(
                kind,
                f"CP-SAT-Status {outcome.status_name}: "
                + {
                    FailureKind.SOLVER_INFEASIBLE: "Problem ist beweisbar unlösbar.",
                    FailureKind.SOLVER_TIMEOUT: "keine Lösung innerhalb des Zeitlimits.",
                    FailureKind.MODEL_INVALID: "Modell ungültig.",
                }[kind],
                stats,
                t0,
            )
            result.solver_status = outcome.status_name
            result.num_variables = num_variables
            result.num_constraints = num_constraints
            return result

        return self._extract_solution(
            outcome, pins, stats, t0, num_variables, num_constraints
        )

    # ─── Variablen ────────────────────────────────────────────────────────────

    def _create_variables(self, model: ConstraintModel, domains: DomainTable) -> None:
        self._x = {}
        self._intervals = {}
        for lesson in self.problem.lessons:
            by_start: dict[int, Any] = {}
            intervals: list[Any] = []
            for start in domains[lesson.id]:
                var = model.new_bool_var(f"x_{lesson.id}_{start}")
                by_start[start] = var
                intervals.append(
                    model.new_optional_interval(
                        start, lesson.duration, var, f"iv_{lesson.id}_{start}"
                    )
                )
            self._x[lesson.id] = by_start
            self._intervals[lesson.id] = intervals

    # ─── Constraints ──────────────────────────────────────────────────────────

    def _add_constraints(self, model: ConstraintModel) -> None:
        self._c1_exactly_one(model)
        self._c2_no_class_overlap(model)
        self._c3_no_teacher_overlap(model)
        self._c4_subject_daily_cap(model)
        self._c5_meeting_daily_cap(model)

    def _c1_exactly_one(self, model: ConstraintModel) -> None:
        """Jede Lesson bekommt genau einen Start."""
        for lesson in self.problem.lessons:
            model.add_exactly_one(self._x[lesson.id].values())

    def _c2_no_class_overlap(self, model: ConstraintModel) -> None:
        """Keine Klasse doppelt belegt."""
        by_class: dict[str, list[Any]] = defaultdict(list)
        for lesson in self.problem.regular_lessons:
            by_class[lesson.class_id].extend(self._intervals[lesson.id])
        for intervals in by_class.values():
            if len(intervals) > 1:
                model.add_no_overlap(intervals)

    def _c3_no_teacher_overlap(self, model: ConstraintModel) -> None:
        """Kein Lehrer doppelt belegt (Unterricht und Besprechungen gemeinsam)."""
        by_teacher: dict[str, list[Any]] = defaultdict(list)
        for lesson in self.problem.lessons:
            for tid in lesson.teachers():
                by_teacher[tid].extend(self._intervals[lesson.id])
        for intervals in by_teacher.values():
            if len(intervals) > 1:
                model.add_no_overlap(intervals)

    def _c4_subject_daily_cap(self, model: ConstraintModel) -> None:
        """Max. Slots pro Tag je (Klasse, Fach, Lehrer), gewichtet mit der Dauer."""
        cap = self.config.subject_max_daily_slots
        if cap is None:
            return
        spd = self.problem.slots_per_day
        terms: dict[tuple, list[tuple[int, Any]]] = defaultdict(list)
        for lesson in self.problem.regular_lessons:
            for start, var in self._x[lesson.id].items():
                terms[(lesson.subject_key, start // spd)].append((lesson.duration, var))
        for day_terms in terms.values():
            # Nur Tage, an denen die Obergrenze überschritten werden könnte
            if sum(coef for coef, _ in day_terms) > cap:
                model.add_linear_at_most(day_terms, cap)

    def _c5_meeting_daily_cap(self, model: ConstraintModel) -> None:
        """Max. Besprechungen pro Tag, schulweit und je Lehrkraft."""
        global_cap = self.config.meeting_max_per_day
        teacher_cap = self.config.teacher_meeting_max_per_day
        if global_cap is None and teacher_cap is None:
            return
        spd = self.problem.slots_per_day
        per_day: dict[int, list[tuple[int, Any]]] = defaultdict(list)
        per_teacher_day: dict[tuple[str, int], list[tuple[int, Any]]] = defaultdict(list)
        for meeting in self.problem.meeting_lessons:
            for start, var in self._x[meeting.id].items():
                day = start // spd
                per_day[day].append((1, var))
                for tid in meeting.teachers():
                    per_teacher_day[(tid, day)].append((1, var))
        if global_cap is not None:
            for day_terms in per_day.values():
                model.add_linear_at_most(day_terms, global_cap)
        if teacher_cap is not None:
            for day_terms in per_teacher_day.values():
                model.add_linear_at_most(day_terms, teacher_cap)

    # ─── Ergebnis-Extraktion ──────────────────────────────────────────────────

    def _extract_solution(
        self,
        outcome,
        pins: list[PinnedLesson],
        stats: SolveStats,
        t0: float,
        num_variables: int,
        num_constraints: int,
    ) -> SolveResult:
        labels = forced_labels(pins)
        pinned = {p.lesson_id for p in pins}
        timetable = self.problem.empty_timetable()
        starts: dict[str, int] = {}
        meetings: list[MeetingAssignment] = []
        unplaced: list[str] = []

        for lesson in self.problem.lessons:
            chosen = next(
                (s for s, var in self._x[lesson.id].items() if outcome.value(var) == 1),
                None,
            )
            if chosen is None:
                unplaced.append(lesson.id)
                continue
            starts[lesson.id] = chosen
            if isinstance(lesson, MeetingLesson):
                meetings.append(MeetingAssignment(lesson_id=lesson.id, slot=chosen))
            elif isinstance(lesson, RegularLesson):
                cell = TimetableCell.for_lesson(
                    lesson,
                    fixed=lesson.id in pinned,
                    fixed_label=labels.get(lesson.id),
                )
                timetable.write_block(lesson.class_id, chosen, cell)

        stats.assigned = len(starts)
        stats.assigned_slots = timetable.assigned_slots()
        stats.elapsed_ms = (time.time() - t0) * 1000.0

        failure = None
        if unplaced:
            # Darf bei exactly-one nicht vorkommen; nie als Erfolg mit Lücken melden
            logger.error(f"Lösung unvollständig: {len(unplaced)} Lessons ohne Start")
            failure = SolveFailure(
                kind=FailureKind.SOLVER_INFEASIBLE,
                message=f"{len(unplaced)} Lessons ohne gewählten Start.",
                lesson_id=unplaced[0],
            )

        return SolveResult(
            backend=BACKEND_NAME,
            success=not unplaced,
            timetable=timetable if not unplaced else self.problem.empty_timetable(),
            starts=starts,
            unplaced=unplaced,
            meeting_assignments=meetings,
            stats=stats,
            failure=failure,
            solver_status=outcome.status_name,
            num_variables=num_variables,
            num_constraints=num_constraints,
        )

    def _failure(
        self,
        kind: FailureKind,
        message: str,
        stats: SolveStats,
        t0: float,
        lesson_id: Optional[str] = None,
    ) -> SolveResult:
        stats.elapsed_ms = (time.time() - t0) * 1000.0
        return SolveResult(
            backend=BACKEND_NAME,
            success=False,
            timetable=self.problem.empty_timetable(),
            unplaced=[l.id for l in self.problem.lessons],
            stats=stats,
            failure=SolveFailure(kind=kind, message=message, lesson_id=lesson_id),
        )
