"""Datenmodell für eine einzelne Wochenstunde (Pydantic v2).

Eine Lesson ist genau ein wöchentliches Vorkommen, das der Solver platziert.
Zwei Varianten mit unterschiedlicher Form:

  - RegularLesson: gehört zu einer Klasse, optional mit einem Lehrer
  - MeetingLesson: keine Klasse, dafür mehrere Lehrer (Konferenz, Fachschaft)

Die Unterscheidung läuft über das Feld ``kind`` (diskriminierte Union),
nicht über das Vorhandensein einzelner Felder.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

# Platzhalter im Fach-Schlüssel für Stunden ohne Lehrer
NO_TEACHER = "-"


class _LessonBase(BaseModel):
    """Gemeinsame Felder beider Varianten."""

    id: str                       # stabil über Solver-Läufe hinweg, z.B. "L7__0"
    load_id: str                  # Referenz auf den Lehrauftrag (mehrere Lessons teilen ihn)
    subject_id: str
    duration: int = Field(1, ge=1)  # Länge in Stunden-Slots, nie über einen Tag hinaus
    # Optional von außen vorgegebene Start-Slots (schränkt die Domain weiter ein)
    allowed_starts: Optional[list[int]] = None


class RegularLesson(_LessonBase):
    """Reguläre Unterrichtsstunde einer Klasse."""

    kind: Literal["regular"] = "regular"
    class_id: str
    teacher_id: Optional[str] = None

    def teachers(self) -> list[str]:
        return [self.teacher_id] if self.teacher_id else []

    @property
    def subject_key(self) -> tuple[str, str, str]:
        """Schlüssel für die Tages-Obergrenze pro (Klasse, Fach, Lehrer)."""
        return (self.class_id, self.subject_id, self.teacher_id or NO_TEACHER)


class MeetingLesson(_LessonBase):
    """Besprechung mehrerer Lehrkräfte ohne Klasse.

    Wird nie in ein Klassen-Raster geschrieben, sondern separat als
    (lesson_id, slot) gemeldet.
    """

    kind: Literal["meeting"] = "meeting"
    teacher_ids: list[str] = Field(min_length=1)
    label: Optional[str] = None

    @field_validator("teacher_ids")
    @classmethod
    def _dedupe_teachers(cls, v: list[str]) -> list[str]:
        # Reihenfolge bleibt erhalten, Duplikate fliegen raus
        return list(dict.fromkeys(v))

    def teachers(self) -> list[str]:
        return list(self.teacher_ids)


Lesson = Annotated[Union[RegularLesson, MeetingLesson], Field(discriminator="kind")]
