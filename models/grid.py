"""Wochenraster: slot-indizierte Stundenplan-Darstellung pro Klasse.

Aufbau:
  - Pro Klasse eine Liste mit ``days * slots_per_day`` Einträgen
  - Slot-Index = ``day * slots_per_day + period``
  - Jeder Eintrag ist leer (None) oder eine TimetableCell
  - Alle ``duration`` Zellen eines Vorkommens tragen dieselbe ``load_id``;
    daran werden Blockgrenzen später wieder erkannt (kein Start-Flag nötig)

Lesende Abfragen (Belegung, Platzierbarkeit, Lehrer frei) verändern das
Raster nie. Schreiben geschieht ausschließlich explizit über
``write_block`` / ``clear_block``.
"""

from collections import Counter
from typing import Callable, Iterable, Iterator, Optional

from pydantic import BaseModel, Field, model_validator

from models.lesson import RegularLesson


class TimetableCell(BaseModel):
    """Eine belegte Zelle im Raster einer Klasse."""

    load_id: str
    subject_id: str
    teacher_id: Optional[str] = None
    class_id: str
    duration: int = Field(1, ge=1)
    lesson_id: Optional[str] = None     # fehlt bei Altdaten ohne Lesson-Bezug
    fixed: bool = False                 # per Pin vorgegeben
    fixed_label: Optional[str] = None

    @classmethod
    def for_lesson(
        cls,
        lesson: RegularLesson,
        fixed: bool = False,
        fixed_label: Optional[str] = None,
    ) -> "TimetableCell":
        return cls(
            load_id=lesson.load_id,
            subject_id=lesson.subject_id,
            teacher_id=lesson.teacher_id,
            class_id=lesson.class_id,
            duration=lesson.duration,
            lesson_id=lesson.id,
            fixed=fixed,
            fixed_label=fixed_label,
        )

    def same_occurrence(self, other: Optional["TimetableCell"]) -> bool:
        """True wenn ``other`` zum selben Vorkommen gehört.

        Gleiche load_id reicht; tragen beide Zellen eine lesson_id, muss auch
        diese übereinstimmen (zwei Sitzungen desselben Lehrauftrags direkt
        hintereinander bleiben so getrennte Blöcke).
        """
        if other is None or other.load_id != self.load_id:
            return False
        if self.lesson_id and other.lesson_id:
            return self.lesson_id == other.lesson_id
        return True


class Timetable(BaseModel):
    """Raster aller Klassen: class_id → Liste von Zellen (oder None)."""

    days: int = Field(ge=1)
    slots_per_day: int = Field(ge=1)
    cells: dict[str, list[Optional[TimetableCell]]] = {}

    @model_validator(mode="after")
    def _check_row_lengths(self):
        total = self.days * self.slots_per_day
        for class_id, row in self.cells.items():
            if len(row) != total:
                raise ValueError(
                    f"Raster der Klasse {class_id} hat {len(row)} Slots, "
                    f"erwartet {total} ({self.days} Tage × {self.slots_per_day})"
                )
        return self

    # ─── Aufbau ──────────────────────────────────────────────────────────────

    @classmethod
    def empty(cls, days: int, slots_per_day: int, class_ids: Iterable[str] = ()) -> "Timetable":
        """Leeres Raster mit einer Zeile pro Klasse."""
        tt = cls(days=days, slots_per_day=slots_per_day)
        for class_id in class_ids:
            tt.ensure_class(class_id)
        return tt

    def ensure_class(self, class_id: str) -> list[Optional[TimetableCell]]:
        """Gibt die Zeile der Klasse zurück, legt sie bei Bedarf leer an."""
        if class_id not in self.cells:
            self.cells[class_id] = [None] * self.total_slots
        return self.cells[class_id]

    def copy(self) -> "Timetable":
        return self.model_copy(deep=True)

    # ─── Slot-Arithmetik ─────────────────────────────────────────────────────

    @property
    def total_slots(self) -> int:
        return self.days * self.slots_per_day

    def slot_index(self, day: int, period: int) -> int:
        return day * self.slots_per_day + period

    def day_of(self, slot: int) -> int:
        return slot // self.slots_per_day

    def period_of(self, slot: int) -> int:
        return slot % self.slots_per_day

    def in_bounds(self, slot: int) -> bool:
        return 0 <= slot < self.total_slots

    def fits_day(self, start: int, duration: int) -> bool:
        """Block [start, start+duration) liegt vollständig in einem Tag."""
        if duration < 1 or not self.in_bounds(start):
            return False
        return self.period_of(start) + duration <= self.slots_per_day

    # ─── Abfragen ────────────────────────────────────────────────────────────

    def is_occupied(self, class_id: str, slot: int) -> bool:
        return self.cells[class_id][slot] is not None

    def can_place(
        self,
        class_id: str,
        start: int,
        duration: int,
        ignore: Iterable[int] = (),
    ) -> bool:
        """Tagesgrenze eingehalten und alle ``duration`` Slots frei.

        Slots in ``ignore`` gelten als frei (z.B. der eigene, gleich
        freiwerdende Block beim Verschieben innerhalb derselben Klasse).
        """
        if not self.fits_day(start, duration):
            return False
        row = self.cells[class_id]
        ignored = set(ignore)
        for idx in range(start, start + duration):
            if row[idx] is not None and idx not in ignored:
                return False
        return True

    def teacher_free(
        self,
        teacher_ids: Iterable[str],
        start: int,
        duration: int,
        ignore: Iterable[int] = (),
    ) -> bool:
        """Prüft durch Scan über alle Klassen, ob die Lehrer frei sind.

        Vollständiger Scan; für wiederholte Abfragen auf demselben Stand
        ist ``TeacherOccupancyIndex`` gedacht.
        """
        wanted = {t for t in teacher_ids if t}
        if not wanted:
            return True
        ignored = set(ignore)
        for row in self.cells.values():
            for idx in range(start, start + duration):
                if idx in ignored or not self.in_bounds(idx):
                    continue
                cell = row[idx]
                if cell is not None and cell.teacher_id in wanted:
                    return False
        return True

    def find_cells(
        self, predicate: Callable[[TimetableCell], bool]
    ) -> list[tuple[str, int, TimetableCell]]:
        """Alle (class_id, slot, cell), für die ``predicate`` zutrifft."""
        found = []
        for class_id, row in self.cells.items():
            for idx, cell in enumerate(row):
                if cell is not None and predicate(cell):
                    found.append((class_id, idx, cell))
        return found

    def assigned_slots(self) -> int:
        """Anzahl belegter Zellen über alle Klassen."""
        return sum(1 for row in self.cells.values() for cell in row if cell is not None)

    def placed_load_ids(self) -> set[str]:
        return {cell.load_id for row in self.cells.values() for cell in row if cell is not None}

    # ─── Blöcke ──────────────────────────────────────────────────────────────

    def block_start(self, class_id: str, index: int) -> int:
        """Rückwärts-Scan zum echten Blockanfang des Vorkommens bei ``index``."""
        row = self.cells[class_id]
        if row[index] is None:
            return index
        i = index
        while (
            i > 0
            and self.day_of(i - 1) == self.day_of(i)
            and row[i].same_occurrence(row[i - 1])
        ):
            i -= 1
        return i

    def block_length(self, class_id: str, start: int) -> int:
        """Vorwärts-Scan ab ``start``: Länge des zusammenhängenden Blocks."""
        row = self.cells[class_id]
        if row[start] is None:
            return 0
        length = 1
        i = start + 1
        while (
            i < self.total_slots
            and self.day_of(i) == self.day_of(start)
            and row[start].same_occurrence(row[i])
        ):
            length += 1
            i += 1
        return length

    def block_at(self, class_id: str, index: int) -> tuple[int, int]:
        """(Start, Länge) des Blocks, zu dem ``index`` gehört."""
        start = self.block_start(class_id, index)
        return start, self.block_length(class_id, start)

    def iter_blocks(self) -> Iterator[tuple[str, int, int, TimetableCell]]:
        """Alle Blöcke als (class_id, start, länge, erste Zelle)."""
        for class_id, row in self.cells.items():
            idx = 0
            while idx < self.total_slots:
                cell = row[idx]
                if cell is None:
                    idx += 1
                    continue
                length = self.block_length(class_id, idx)
                yield class_id, idx, length, cell
                idx += length

    # ─── Schreiben ───────────────────────────────────────────────────────────

    def write_block(self, class_id: str, start: int, cell: TimetableCell) -> None:
        """Schreibt ``cell`` in ``cell.duration`` Slots ab ``start``.

        ``class_id`` der Zelle wird auf die Zielklasse gesetzt. Keine
        Prüfung: Aufrufer müssen vorher ``can_place`` verwenden.
        """
        row = self.ensure_class(class_id)
        placed = cell.model_copy(update={"class_id": class_id})
        for idx in range(start, start + cell.duration):
            row[idx] = placed

    def clear_block(self, class_id: str, start: int, length: int) -> None:
        row = self.cells[class_id]
        for idx in range(start, start + length):
            row[idx] = None


class TeacherOccupancyIndex:
    """Lehrer → belegte Slots, einmal aufgebaut und dann nur noch abgefragt.

    Zähler statt Mengen, damit ein Slot, der zusätzlich reserviert wurde
    (Sperrzeit, Besprechung), beim Entfernen eines Blocks belegt bleibt.
    """

    def __init__(self, total_slots: int) -> None:
        self.total_slots = total_slots
        self._slots: dict[str, Counter] = {}

    @classmethod
    def from_timetable(
        cls,
        timetable: Timetable,
        reserved: Optional[dict[str, Iterable[int]]] = None,
    ) -> "TeacherOccupancyIndex":
        index = cls(timetable.total_slots)
        for row in timetable.cells.values():
            for idx, cell in enumerate(row):
                if cell is not None and cell.teacher_id:
                    index._slots.setdefault(cell.teacher_id, Counter())[idx] += 1
        for teacher_id, slots in (reserved or {}).items():
            index.reserve([teacher_id], slots)
        return index

    def reserve(self, teacher_ids: Iterable[str], slots: Iterable[int]) -> None:
        """Markiert zusätzliche Slots als belegt (außerhalb des Rasters)."""
        slots = [s for s in slots if 0 <= s < self.total_slots]
        for tid in teacher_ids:
            counter = self._slots.setdefault(tid, Counter())
            for s in slots:
                counter[s] += 1

    def add(self, teacher_ids: Iterable[str], start: int, duration: int) -> None:
        self.reserve(teacher_ids, range(start, start + duration))

    def remove(self, teacher_ids: Iterable[str], start: int, duration: int) -> None:
        for tid in teacher_ids:
            counter = self._slots.get(tid)
            if counter is None:
                continue
            for s in range(start, start + duration):
                if counter[s] > 0:
                    counter[s] -= 1

    def is_free(
        self,
        teacher_ids: Iterable[str],
        start: int,
        duration: int,
        ignore: Iterable[int] = (),
    ) -> bool:
        ignored = set(ignore)
        for tid in teacher_ids:
            if not tid:
                continue
            counter = self._slots.get(tid)
            if not counter:
                continue
            for s in range(start, start + duration):
                if s not in ignored and counter[s] > 0:
                    return False
        return True

    def slots_of(self, teacher_id: str) -> frozenset[int]:
        counter = self._slots.get(teacher_id, Counter())
        return frozenset(s for s, n in counter.items() if n > 0)
