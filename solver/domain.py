"""Domain-Aufbau: zulässige Start-Slots pro Lesson.

Die Domain einer Lesson ist die Menge aller Slot-Indizes ``start`` mit
  - ``period(start) + duration <= slots_per_day`` (kein Block über Tagesgrenze)
  - keiner der ``duration`` Slots ab ``start`` ist für einen der Lehrer gesperrt
  - ``start`` liegt in ``allowed_starts`` (falls von außen vorgegeben)
  - ``start == forced_start`` (falls die Lesson gepinnt ist)

Reihenfolge: Rasterreihenfolge (früherer Tag, frühere Stunde zuerst).
Beide Solver nutzen genau diese Funktionen.
"""

from typing import Iterable, Mapping, Optional

from models.lesson import Lesson


class DomainTable(dict):
    """lesson_id → Liste der zulässigen Starts (Rasterreihenfolge)."""

    def first_empty(self) -> Optional[str]:
        """Erste Lesson (Eingabereihenfolge) ohne einen einzigen Start."""
        for lesson_id, starts in self.items():
            if not starts:
                return lesson_id
        return None

    def size(self, lesson_id: str) -> int:
        return len(self[lesson_id])


def build_domain(
    lesson: Lesson,
    days: int,
    slots_per_day: int,
    blocked: Optional[Mapping[str, Iterable[int]]] = None,
    forced_start: Optional[int] = None,
) -> list[int]:
    blocked_slots: set[int] = set()
    for tid in lesson.teachers():
        blocked_slots.update((blocked or {}).get(tid, ()))
    allowed = set(lesson.allowed_starts) if lesson.allowed_starts is not None else None

    domain: list[int] = []
    for day in range(days):
        for period in range(slots_per_day):
            if period + lesson.duration > slots_per_day:
                break
            start = day * slots_per_day + period
            if forced_start is not None and start != forced_start:
                continue
            if allowed is not None and start not in allowed:
                continue
            if any(idx in blocked_slots for idx in range(start, start + lesson.duration)):
                continue
            domain.append(start)
    return domain


def build_domains(
    lessons: Iterable[Lesson],
    days: int,
    slots_per_day: int,
    blocked: Optional[Mapping[str, Iterable[int]]] = None,
    forced_starts: Optional[Mapping[str, int]] = None,
) -> DomainTable:
    """Domains aller Lessons; Sperrzeiten einmal in Mengen umgewandelt."""
    blocked_sets = {tid: set(slots) for tid, slots in (blocked or {}).items()}
    forced = forced_starts or {}
    table = DomainTable()
    for lesson in lessons:
        table[lesson.id] = build_domain(
            lesson, days, slots_per_day, blocked_sets, forced.get(lesson.id)
        )
    return table
