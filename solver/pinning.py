"""PinManager – fixiert einzelne Wochenstunden vor dem Solver-Lauf.

Eine gepinnte Stunde ist eine harte Vorgabe: Ihre Domain schrumpft auf genau
den gepinnten Start-Slot. Passt der Pin nicht (Tagesgrenze, Sperrzeit), ist
die Domain leer und der Lauf scheitert mit ``INFEASIBLE_DOMAIN``.
"""

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class PinnedLesson(BaseModel):
    """Eine fixierte Wochenstunde."""

    lesson_id: str
    day: int = Field(ge=0)      # 0-basiert (0=Mo)
    period: int = Field(ge=0)   # 0-basiert (0 = erste Stunde)
    label: Optional[str] = None  # Anzeige-Hinweis, z.B. "Schulgottesdienst"

    def start(self, slots_per_day: int) -> int:
        return self.day * slots_per_day + self.period


def forced_starts(pins: list[PinnedLesson], slots_per_day: int) -> dict[str, int]:
    """lesson_id → Start-Slot; bei mehreren Pins derselben Lesson gewinnt der letzte.

    Eine Stunde außerhalb des Tagesrasters wird auf -1 abgebildet und leert
    damit die Domain, statt still in den Folgetag zu rutschen.
    """
    return {
        p.lesson_id: p.start(slots_per_day) if p.period < slots_per_day else -1
        for p in pins
    }


def forced_labels(pins: list[PinnedLesson]) -> dict[str, str]:
    return {p.lesson_id: p.label for p in pins if p.label}


class PinManager:
    """Sammelt Pins für einen Solver-Lauf, höchstens einer pro Lesson."""

    def __init__(self) -> None:
        self._by_lesson: dict[str, PinnedLesson] = {}

    def add_pin(self, pin: PinnedLesson) -> None:
        """Ein neuer Pin derselben Lesson ersetzt den alten."""
        self._by_lesson.pop(pin.lesson_id, None)
        self._by_lesson[pin.lesson_id] = pin

    def remove_pin(self, lesson_id: str) -> bool:
        return self._by_lesson.pop(lesson_id, None) is not None

    def get_pins(self) -> list[PinnedLesson]:
        return list(self._by_lesson.values())

    # ─── Persistenz ───

    def save_json(self, path: Path) -> None:
        """Schreibt die Pins als JSON-Liste."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = [pin.model_dump() for pin in self.get_pins()]
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    def load_json(self, path: Path) -> None:
        """Ersetzt alle Pins durch den Inhalt der JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Pin-Datei nicht gefunden: {path}")
        items = json.loads(path.read_text(encoding="utf-8"))
        self._by_lesson = {}
        for item in items:
            self.add_pin(PinnedLesson.model_validate(item))

    def __len__(self) -> int:
        return len(self._by_lesson)

    def __repr__(self) -> str:
        return f"PinManager({len(self)} Pins)"
