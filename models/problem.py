"""SchedulingProblem: Eingabedaten eines einzelnen Solver-Laufs (Pydantic v2)."""

from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from models.grid import Timetable
from models.lesson import Lesson, MeetingLesson, RegularLesson
from models.load import AcademicLoad, expand_loads
from models.school_class import SchoolClass


class SchedulingProblem(BaseModel):
    """Klassen, Wochenstunden und Rastergröße für einen Solver-Lauf.

    Lehraufträge (``loads``) werden beim Laden zu einzelnen RegularLessons
    expandiert und an ``lessons`` angehängt; danach arbeitet die Engine nur
    noch mit ``lessons``.
    """

    days: int = Field(5, ge=1)
    slots_per_day: int = Field(7, ge=1)
    classes: list[SchoolClass] = []
    lessons: list[Lesson] = []
    loads: list[AcademicLoad] = []
    # Lehrer-ID → gesperrte Slot-Indizes (z.B. erklärte Nichtverfügbarkeit)
    teacher_blocked_slots: dict[str, list[int]] = {}

    @model_validator(mode="after")
    def _expand_and_check(self):
        if self.loads:
            expanded = expand_loads(self.loads)
            known = {l.id for l in self.lessons}
            self.lessons = list(self.lessons) + [l for l in expanded if l.id not in known]
            self.loads = []

        ids = [l.id for l in self.lessons]
        if len(ids) != len(set(ids)):
            dupes = sorted({i for i in ids if ids.count(i) > 1})
            raise ValueError(f"Doppelte Lesson-IDs: {', '.join(dupes)}")

        # Ohne Klassenliste werden die Klassen aus den Lessons abgeleitet
        if self.classes:
            known_classes = {c.id for c in self.classes}
            unknown = sorted({
                l.class_id for l in self.regular_lessons if l.class_id not in known_classes
            })
            if unknown:
                raise ValueError(f"Lessons verweisen auf unbekannte Klassen: {', '.join(unknown)}")
        return self

    # ─── Zugriff ───

    @property
    def total_slots(self) -> int:
        return self.days * self.slots_per_day

    @property
    def regular_lessons(self) -> list[RegularLesson]:
        return [l for l in self.lessons if isinstance(l, RegularLesson)]

    @property
    def meeting_lessons(self) -> list[MeetingLesson]:
        return [l for l in self.lessons if isinstance(l, MeetingLesson)]

    def class_ids(self) -> list[str]:
        """Klassen in Eingabereihenfolge, ergänzt um Klassen, die nur in Lessons vorkommen."""
        ids = [c.id for c in self.classes]
        seen = set(ids)
        for lesson in self.regular_lessons:
            if lesson.class_id not in seen:
                seen.add(lesson.class_id)
                ids.append(lesson.class_id)
        return ids

    def empty_timetable(self) -> Timetable:
        return Timetable.empty(self.days, self.slots_per_day, self.class_ids())

    def blocked_slots(self) -> dict[str, set[int]]:
        return {tid: set(slots) for tid, slots in self.teacher_blocked_slots.items()}

    # ─── Übersicht ───

    def summary(self) -> str:
        """Kurze Übersicht über den Datensatz."""
        regular = self.regular_lessons
        teachers = {t for l in self.lessons for t in l.teachers()}
        lines = [
            f"Raster: {self.days} Tage × {self.slots_per_day} Stunden "
            f"({self.total_slots} Slots)",
            f"Klassen: {len(self.class_ids())}",
            f"Wochenstunden: {len(regular)} regulär "
            f"({sum(l.duration for l in regular)} Slots), "
            f"{len(self.meeting_lessons)} Besprechungen",
            f"Lehrkräfte: {len(teachers)}",
        ]
        if self.teacher_blocked_slots:
            lines.append(f"Lehrkräfte mit Sperrzeiten: {len(self.teacher_blocked_slots)}")
        return "\n".join(lines)

    # ─── Persistenz ───

    def save_json(self, path: Path) -> None:
        """Speichert den Datensatz als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "SchedulingProblem":
        """Lädt einen Datensatz aus einer JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"JSON-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())
