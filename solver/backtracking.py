"""Heuristischer Backtracking-Solver mit Forward Checking.

Ablauf:
  1. Domains aufbauen (inkl. Pins und Sperrzeiten), leere Domain → Abbruch
  2. Kapazitäts-Vorabcheck (analysis.feasibility)
  3. Statische Reihenfolge: kleinste Domain zuerst, bei Gleichstand längster Block
  4. Iterative Tiefensuche über einen expliziten Auswahl-Stack; Kandidaten
     in Rasterreihenfolge (früher Tag, frühe Stunde zuerst)
  5. Nach jeder Platzierung: jede noch offene Lesson braucht mindestens
     einen zulässigen Start, sonst wird der Kandidat sofort verworfen

Besprechungen plant dieses Backend nicht; sie landen in ``result.skipped``.
Ein Fehlschlag liefert immer ein leeres Raster, keine Teil-Lösung.
"""

import logging
import time
from collections import defaultdict
from typing import Optional

from analysis.feasibility import check_feasibility
from config.schema import HeuristicConfig
from models.grid import TeacherOccupancyIndex, Timetable, TimetableCell
from models.lesson import RegularLesson
from models.problem import SchedulingProblem
from solver.domain import build_domains
from solver.pinning import PinnedLesson, forced_labels, forced_starts
from solver.result import FailureKind, SolveFailure, SolveResult, SolveStats

logger = logging.getLogger(__name__)

BACKEND_NAME = "heuristic"


class BacktrackingSolver:
    """Backtracking-Solver für reguläre Wochenstunden.

    Verwendung:
        solver = BacktrackingSolver(problem, HeuristicConfig(max_backtracks=10_000))
        result = solver.solve(pins=[...])
    """

    def __init__(
        self,
        problem: SchedulingProblem,
        config: Optional[HeuristicConfig] = None,
    ) -> None:
        self.problem = problem
        self.config = config or HeuristicConfig()

        # Suchzustand (wird in solve() zurückgesetzt)
        self._timetable: Timetable = problem.empty_timetable()
        self._teachers = TeacherOccupancyIndex(problem.total_slots)
        self._subject_load: dict[tuple, int] = defaultdict(int)  # (subject_key, Tag) → Slots
        self._starts: dict[str, int] = {}
        self._fixed: dict[str, str] = {}       # lesson_id → Label ("" = ohne Label)
        self._t0 = 0.0

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def solve(self, pins: list[PinnedLesson] = []) -> SolveResult:
        """Platziert alle regulären Lessons oder meldet einen Fehlschlag."""
        self._t0 = time.monotonic()
        problem = self.problem
        spd = problem.slots_per_day

        lessons = problem.regular_lessons
        skipped = [m.id for m in problem.meeting_lessons]
        if skipped:
            logger.warning(
                f"Backtracking plant keine Besprechungen – {len(skipped)} übersprungen "
                f"(CP-SAT-Backend verwenden)"
            )

        known = {l.id for l in lessons}
        for pin in pins:
            if pin.lesson_id not in known:
                logger.warning(f"Pin ignoriert (Lesson nicht vorhanden): {pin.lesson_id}")
        starts_forced = forced_starts(pins, spd)
        labels = forced_labels(pins)
        self._fixed = {
            lid: labels.get(lid, "") for lid in starts_forced if lid in known
        }

        self._reset()
        stats = SolveStats(lessons_total=len(problem.lessons))

        # ── 1. Domains ────────────────────────────────────────────────────────
        domains = build_domains(
            lessons, problem.days, spd, problem.blocked_slots(), starts_forced
        )
        empty = domains.first_empty()
        if empty is not None:
            logger.error(f"Lesson {empty} hat keinen zulässigen Start – Abbruch")
            return self._failure(
                FailureKind.INFEASIBLE_DOMAIN,
                f"Lesson {empty} hat keinen zulässigen Start-Slot "
                f"(Dauer, Sperrzeiten oder Pin passen nicht ins Raster).",
                stats,
                skipped,
                lesson_id=empty,
            )

        # ── 2. Kapazität ──────────────────────────────────────────────────────
        report = check_feasibility(
            problem, self.config.subject_max_daily_slots, include_meetings=False
        )
        if not report.is_feasible:
            logger.error(f"Kapazitäts-Check fehlgeschlagen: {report.errors[0]}")
            return self._failure(
                FailureKind.CAPACITY_EXCEEDED,
                "; ".join(report.errors),
                stats,
                skipped,
            )

        # ── 3. Reihenfolge ────────────────────────────────────────────────────
        order = sorted(lessons, key=lambda l: (domains.size(l.id), -l.duration))
        order_domains = [domains[l.id] for l in order]

        logger.info(
            f"Backtracking: {len(order)} Lessons, {problem.total_slots} Slots | "
            f"Budget: {self.config.max_backtracks} Backtracks, "
            f"{self.config.time_limit_ms} ms"
        )

        # ── 4. Suche ──────────────────────────────────────────────────────────
        kind = self._search(order, order_domains, stats)
        stats.elapsed_ms = self._elapsed_ms()

        if kind is not None:
            if kind == FailureKind.BUDGET_EXHAUSTED:
                message = (
                    f"Suchbudget erschöpft nach {stats.backtracks} Backtracks "
                    f"und {stats.elapsed_ms:.0f} ms (tiefste Ebene {stats.max_depth}/{len(order)})."
                )
                logger.warning(message)
            else:
                message = (
                    f"Suchbaum vollständig durchlaufen, keine zulässige Belegung "
                    f"({stats.backtracks} Backtracks)."
                )
                logger.error(message)
            return self._failure(kind, message, stats, skipped)

        starts = dict(self._starts)
        stats.assigned = len(starts)
        stats.assigned_slots = self._timetable.assigned_slots()
        logger.info(
            f"Backtracking beendet: {stats.assigned}/{len(order)} platziert | "
            f"Backtracks: {stats.backtracks} | Zeit: {stats.elapsed_ms:.0f} ms"
        )
        return SolveResult(
            backend=BACKEND_NAME,
            success=True,
            timetable=self._timetable,
            starts=starts,
            skipped=skipped,
            stats=stats,
        )

    # ─── Suche ────────────────────────────────────────────────────────────────

    def _search(
        self,
        order: list[RegularLesson],
        domains: list[list[int]],
        stats: SolveStats,
    ) -> Optional[FailureKind]:
        """Iterative Tiefensuche. Gibt None bei Erfolg, sonst die Fehlerart zurück.

        ``cursor[d]`` zeigt auf den nächsten Kandidaten der Lesson auf Ebene d,
        ``chosen[d]`` auf den aktuell gesetzten Start (None = nichts gesetzt).
        """
        n = len(order)
        cursor = [0] * n
        chosen: list[Optional[int]] = [None] * n
        depth = 0
        limit_ms = self.config.time_limit_ms

        while depth < n:
            if self._elapsed_ms() > limit_ms:
                self._unwind(order, chosen, depth)
                return FailureKind.BUDGET_EXHAUSTED

            lesson = order[depth]
            candidates = domains[depth]
            while cursor[depth] < len(candidates):
                start = candidates[cursor[depth]]
                cursor[depth] += 1
                if not self._fits(lesson, start):
                    continue
                self._place(lesson, start)
                if self._forward_check(order, domains, depth + 1):
                    chosen[depth] = start
                    break
                self._unplace(lesson, start)

            if chosen[depth] is not None:
                depth += 1
                stats.max_depth = max(stats.max_depth, depth)
                continue

            # Alle Kandidaten dieser Ebene verbraucht → eine Ebene zurück
            if depth == 0:
                return FailureKind.SEARCH_EXHAUSTED
            if stats.backtracks >= self.config.max_backtracks:
                self._unwind(order, chosen, depth)
                return FailureKind.BUDGET_EXHAUSTED
            stats.backtracks += 1
            cursor[depth] = 0
            depth -= 1
            self._unplace(order[depth], chosen[depth])
            chosen[depth] = None

        return None

    def _forward_check(
        self,
        order: list[RegularLesson],
        domains: list[list[int]],
        first_open: int,
    ) -> bool:
        """Jede noch offene Lesson muss mindestens einen zulässigen Start behalten."""
        for d in range(first_open, len(order)):
            lesson = order[d]
            if not any(self._fits(lesson, s) for s in domains[d]):
                return False
        return True

    def _fits(self, lesson: RegularLesson, start: int) -> bool:
        if not self._timetable.can_place(lesson.class_id, start, lesson.duration):
            return False
        if not self._teachers.is_free(lesson.teachers(), start, lesson.duration):
            return False
        cap = self.config.subject_max_daily_slots
        if cap is not None:
            day = start // self.problem.slots_per_day
            if self._subject_load[(lesson.subject_key, day)] + lesson.duration > cap:
                return False
        return True

    # ─── Zustand ──────────────────────────────────────────────────────────────

    def _reset(self) -> None:
        self._timetable = self.problem.empty_timetable()
        self._teachers = TeacherOccupancyIndex(self.problem.total_slots)
        self._subject_load = defaultdict(int)
        self._starts = {}

    def _place(self, lesson: RegularLesson, start: int) -> None:
        label = self._fixed.get(lesson.id)
        cell = TimetableCell.for_lesson(
            lesson, fixed=label is not None, fixed_label=label or None
        )
        self._timetable.write_block(lesson.class_id, start, cell)
        self._teachers.add(lesson.teachers(), start, lesson.duration)
        self._subject_load[(lesson.subject_key, start // self.problem.slots_per_day)] += lesson.duration
        self._starts[lesson.id] = start

    def _unplace(self, lesson: RegularLesson, start: int) -> None:
        self._timetable.clear_block(lesson.class_id, start, lesson.duration)
        self._teachers.remove(lesson.teachers(), start, lesson.duration)
        self._subject_load[(lesson.subject_key, start // self.problem.slots_per_day)] -= lesson.duration
        self._starts.pop(lesson.id, None)

    def _unwind(
        self,
        order: list[RegularLesson],
        chosen: list[Optional[int]],
        depth: int,
    ) -> None:
        """Nimmt alle Platzierungen bis einschließlich Ebene ``depth`` zurück."""
        for d in range(min(depth, len(order) - 1), -1, -1):
            if chosen[d] is not None:
                self._unplace(order[d], chosen[d])
                chosen[d] = None

    def _elapsed_ms(self) -> float:
        return (time.monotonic() - self._t0) * 1000.0

    def _failure(
        self,
        kind: FailureKind,
        message: str,
        stats: SolveStats,
        skipped: list[str],
        lesson_id: Optional[str] = None,
    ) -> SolveResult:
        stats.assigned = 0
        stats.assigned_slots = 0
        stats.elapsed_ms = self._elapsed_ms()
        return SolveResult(
            backend=BACKEND_NAME,
            success=False,
            timetable=self.problem.empty_timetable(),
            unplaced=[l.id for l in self.problem.regular_lessons],
            skipped=skipped,
            stats=stats,
            failure=SolveFailure(kind=kind, message=message, lesson_id=lesson_id),
        )
