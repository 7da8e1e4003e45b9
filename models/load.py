"""Lehraufträge und ihre Aufteilung in einzelne Wochenstunden."""

from typing import Optional

from pydantic import BaseModel, Field

from models.lesson import RegularLesson


class AcademicLoad(BaseModel):
    """Lehrauftrag: Klasse × Fach × Lehrer mit n Sitzungen pro Woche."""

    id: str
    class_id: str
    subject_id: str
    teacher_id: Optional[str] = None
    sessions_per_week: int = Field(1, ge=1)
    duration: int = Field(1, ge=1)   # Slots pro Sitzung

    def expand(self) -> list[RegularLesson]:
        """Eine RegularLesson pro Sitzung; alle teilen sich ``load_id``."""
        return [
            RegularLesson(
                id=f"{self.id}__{i}",
                load_id=self.id,
                class_id=self.class_id,
                subject_id=self.subject_id,
                teacher_id=self.teacher_id,
                duration=self.duration,
            )
            for i in range(self.sessions_per_week)
        ]


def expand_loads(loads: list[AcademicLoad]) -> list[RegularLesson]:
    """Expandiert alle Lehraufträge in Eingabereihenfolge."""
    lessons: list[RegularLesson] = []
    for load in loads:
        lessons.extend(load.expand())
    return lessons
