"""Beispieldaten-Generator für die Stundenplan-Engine.

Erzeugt einen reproduzierbaren SchedulingProblem-Datensatz (Seed) aus
Lehraufträgen, wie sie ein Schulverwaltungssystem liefern würde.

Absichtliche Engpässe:
  1. Eine Teilzeit-Lehrkraft ist freitags gesperrt
  2. Doppelstunden (Sport, Kunst, Biologie) brauchen zusammenhängende Slots
  3. Eine Fachkonferenz bindet mehrere Lehrkräfte gleichzeitig
"""

import random
from typing import Optional

from config.defaults import DEFAULT_DAYS, DEFAULT_SLOTS_PER_DAY
from models.lesson import MeetingLesson
from models.load import AcademicLoad
from models.problem import SchedulingProblem
from models.school_class import SchoolClass

# ─── Stundentafel ─────────────────────────────────────────────────────────────

# Fach → (Sitzungen pro Woche, Dauer in Slots)
STUNDENTAFEL: dict[str, tuple[int, int]] = {
    "Mathematik": (4, 1),
    "Deutsch": (4, 1),
    "Englisch": (3, 1),
    "Biologie": (1, 2),
    "Sport": (1, 2),
    "Kunst": (1, 2),
    "Musik": (2, 1),
    "Erdkunde": (2, 1),
}

# Klassen pro Lehrkraft und Fach
CLASSES_PER_TEACHER = 3

_LAST_NAMES = [
    "Müller", "Schmidt", "Schneider", "Fischer", "Weber", "Meyer",
    "Wagner", "Becker", "Schulz", "Hoffmann", "Schäfer", "Koch",
    "Bauer", "Richter", "Klein", "Wolf", "Schröder", "Neumann",
    "Schwarz", "Zimmermann", "Braun", "Krüger", "Hofmann", "Hartmann",
]


def _make_abbreviation(last_name: str, used: set[str]) -> str:
    """Eindeutiges 3-Zeichen-Kürzel aus dem Nachnamen."""
    base = (
        last_name.upper()
        .replace("Ä", "AE").replace("Ö", "OE").replace("Ü", "UE")
        .replace("ß", "SS")
    )
    candidates = [base[:3], base[:2] + base[-1], base[0] + base[2:4]]
    for c in candidates:
        c = c[:3].ljust(3, "X")
        if c not in used:
            used.add(c)
            return c
    n = 1
    while f"{base[:2]}{n}" in used:
        n += 1
    used.add(f"{base[:2]}{n}")
    return f"{base[:2]}{n}"


class SampleDataGenerator:
    """Generiert einen lösbaren Beispiel-Datensatz."""

    def __init__(
        self,
        num_classes: int = 2,
        seed: Optional[int] = None,
        days: int = DEFAULT_DAYS,
        slots_per_day: int = DEFAULT_SLOTS_PER_DAY,
        with_meeting: bool = True,
    ) -> None:
        if num_classes < 1:
            raise ValueError("Mindestens eine Klasse erforderlich")
        self.num_classes = num_classes
        self.days = days
        self.slots_per_day = slots_per_day
        self.with_meeting = with_meeting
        self.rng = random.Random(seed)
        self._used_abbreviations: set[str] = set()

    # ─── Klassen ──────────────────────────────────────────────────────────────

    def _generate_classes(self) -> list[SchoolClass]:
        classes = []
        for i in range(self.num_classes):
            grade = 5 + i // 4
            letter = "abcd"[i % 4]
            classes.append(SchoolClass(id=f"{grade}{letter}", name=f"Klasse {grade}{letter}"))
        return classes

    # ─── Lehraufträge ─────────────────────────────────────────────────────────

    def _generate_loads(self, classes: list[SchoolClass]) -> tuple[list[AcademicLoad], dict[str, list[str]]]:
        """Lehraufträge plus Fach → Lehrkräfte (in Reihenfolge der Anlage)."""
        names = list(_LAST_NAMES)
        self.rng.shuffle(names)
        loads: list[AcademicLoad] = []
        teachers_by_subject: dict[str, list[str]] = {}
        counter = 0

        for subject, (sessions, duration) in STUNDENTAFEL.items():
            teachers: list[str] = []
            for idx, cls in enumerate(classes):
                if idx % CLASSES_PER_TEACHER == 0:
                    name = names[len(self._used_abbreviations) % len(names)]
                    teachers.append(_make_abbreviation(name, self._used_abbreviations))
                counter += 1
                loads.append(AcademicLoad(
                    id=f"C{counter:03d}",
                    class_id=cls.id,
                    subject_id=subject,
                    teacher_id=teachers[-1],
                    sessions_per_week=sessions,
                    duration=duration,
                ))
            teachers_by_subject[subject] = teachers
        return loads, teachers_by_subject

    def _generate_blocked_slots(self, teachers_by_subject: dict[str, list[str]]) -> dict[str, list[int]]:
        """Eine Teilzeit-Lehrkraft (Musik oder Erdkunde) hat freitags frei."""
        if self.days < 5:
            return {}
        subject = self.rng.choice(["Musik", "Erdkunde"])
        teacher = teachers_by_subject[subject][0]
        friday = 4 * self.slots_per_day
        return {teacher: list(range(friday, friday + self.slots_per_day))}

    def _generate_meeting(self, teachers_by_subject: dict[str, list[str]]) -> list[MeetingLesson]:
        participants = [t[0] for t in teachers_by_subject.values()]
        chosen = sorted(self.rng.sample(participants, k=min(3, len(participants))))
        return [MeetingLesson(
            id="M001",
            load_id="M001",
            subject_id="Konferenz",
            teacher_ids=chosen,
            label="Fachkonferenz",
        )]

    # ─── Vollständiger Datensatz ──────────────────────────────────────────────

    def generate(self) -> SchedulingProblem:
        """Erzeugt den vollständigen Datensatz als SchedulingProblem."""
        classes = self._generate_classes()
        loads, teachers_by_subject = self._generate_loads(classes)
        blocked = self._generate_blocked_slots(teachers_by_subject)
        meetings = self._generate_meeting(teachers_by_subject) if self.with_meeting else []
        return SchedulingProblem(
            days=self.days,
            slots_per_day=self.slots_per_day,
            classes=classes,
            lessons=meetings,
            loads=loads,
            teacher_blocked_slots=blocked,
        )

    # ─── Ausgabe ──────────────────────────────────────────────────────────────

    def print_summary(self, problem: SchedulingProblem) -> None:
        """Gibt eine Rich-Tabelle mit Übersicht der erzeugten Daten aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        table = Table(title="Erzeugte Beispieldaten", box=box.ROUNDED)
        table.add_column("Kategorie", style="bold cyan")
        table.add_column("Anzahl", justify="right")
        table.add_column("Details")

        regular = problem.regular_lessons
        teachers = {t for l in problem.lessons for t in l.teachers()}
        table.add_row("Klassen", str(len(problem.class_ids())), "")
        table.add_row("Wochenstunden", str(len(regular)),
                      f"{sum(l.duration for l in regular)} Slots")
        table.add_row("Besprechungen", str(len(problem.meeting_lessons)), "")
        table.add_row("Lehrkräfte", str(len(teachers)),
                      f"{len(problem.teacher_blocked_slots)} mit Sperrzeiten")

        console.print(table)
