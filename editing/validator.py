"""Validator für manuelle Änderungen an einem fertigen Raster.

Prüft eine einzelne Anfrage (verschieben, entfernen, tauschen) gegen den
aktuellen Stand und liefert entweder das vollständig aktualisierte Raster
oder eine Ablehnung mit Begründung. Das Eingaberaster wird nie verändert;
geschrieben wird ausschließlich in eine Kopie, und erst nachdem alle
Prüfungen bestanden sind.

Lehrer-Konflikte laufen über einen ``TeacherOccupancyIndex``, der einmal
pro Validator aufgebaut wird.
"""

import logging
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel

from editing.request import EditAction, EditRequest, GridSource, PoolSource
from models.grid import TeacherOccupancyIndex, Timetable, TimetableCell

logger = logging.getLogger(__name__)


class EditErrorKind(str, Enum):
    UNKNOWN_CLASS = "unknown_class"
    INDEX_OUT_OF_RANGE = "index_out_of_range"
    SOURCE_MISMATCH = "source_mismatch"
    ALREADY_PLACED = "already_placed"
    TARGET_OCCUPIED = "target_occupied"
    DOES_NOT_FIT = "does_not_fit"
    TEACHER_CONFLICT = "teacher_conflict"
    SWAP_DOES_NOT_FIT = "swap_does_not_fit"
    SWAP_TEACHER_CONFLICT = "swap_teacher_conflict"


class EditRejection(BaseModel):
    kind: EditErrorKind
    reason: str


class EditResult(BaseModel):
    ok: bool
    timetable: Timetable
    rejection: Optional[EditRejection] = None


class _Rejected(Exception):
    """Interner Abbruch einer Prüfung; wird in ``apply`` zu EditRejection."""

    def __init__(self, kind: EditErrorKind, reason: str) -> None:
        super().__init__(reason)
        self.kind = kind
        self.reason = reason


class EditValidator:
    """Prüft und wendet Bearbeitungsanfragen auf einen Raster-Stand an.

    ``reserved``: zusätzliche Lehrer-Belegungen außerhalb des Rasters
    (z.B. platzierte Besprechungen), Lehrer-ID → Slot-Indizes.
    """

    def __init__(
        self,
        timetable: Timetable,
        reserved: Optional[dict[str, Iterable[int]]] = None,
    ) -> None:
        self.timetable = timetable
        self._teachers = TeacherOccupancyIndex.from_timetable(timetable, reserved)

    def apply(self, request: EditRequest) -> EditResult:
        try:
            if request.action == EditAction.REMOVE:
                updated = self._remove(request)
            else:
                updated = self._move(request)
        except _Rejected as r:
            logger.info(f"Änderung abgelehnt ({r.kind.value}): {r.reason}")
            return EditResult(
                ok=False,
                timetable=self.timetable,
                rejection=EditRejection(kind=r.kind, reason=r.reason),
            )
        return EditResult(ok=True, timetable=updated)

    # ─── Entfernen ────────────────────────────────────────────────────────────

    def _remove(self, request: EditRequest) -> Timetable:
        source = request.source
        start, length, _ = self._locate_source(source)

        updated = self.timetable.copy()
        updated.clear_block(source.class_id, start, length)
        logger.debug(f"Block entfernt: {source.class_id} Slot {start}+{length}")
        return updated

    # ─── Verschieben / Tauschen ──────────────────────────────────────────────

    def _move(self, request: EditRequest) -> Timetable:
        tt = self.timetable
        source = request.source
        target = request.target
        self._check_class(target.class_id)
        self._check_index(target.index)

        if isinstance(source, GridSource):
            s_start, s_len, s_cell = self._locate_source(source)
            s_class = source.class_id
            source_idx = set(range(s_start, s_start + s_len))
            mover = s_cell.model_copy(update={"duration": s_len})
        else:
            self._check_not_placed(source)
            s_start, s_len, s_class = None, source.lesson.duration, None
            source_idx = set()
            mover = TimetableCell.for_lesson(source.lesson)

        same_class = s_class == target.class_id
        target_cell = tt.cells[target.class_id][target.index]
        own_block = same_class and target.index in source_idx

        if target_cell is not None and not own_block:
            if not request.swap:
                raise _Rejected(
                    EditErrorKind.TARGET_OCCUPIED,
                    f"Ziel {target.class_id} Slot {target.index} ist bereits belegt.",
                )
            if isinstance(source, PoolSource):
                raise _Rejected(
                    EditErrorKind.TARGET_OCCUPIED,
                    f"Ziel {target.class_id} Slot {target.index} ist belegt; "
                    f"eine Stunde aus dem Pool kann nicht getauscht werden.",
                )
            return self._swap(s_class, s_start, s_len, mover, target.class_id, target.index)

        ignore_class = source_idx if same_class else set()
        if not tt.can_place(target.class_id, target.index, s_len, ignore_class):
            raise _Rejected(
                EditErrorKind.DOES_NOT_FIT,
                f"Block ({s_len} Slots) passt nicht ab {target.class_id} Slot "
                f"{target.index} (Klasse belegt oder über Tagesgrenze).",
            )
        if not self._teachers.is_free(_teachers(mover), target.index, s_len, source_idx):
            raise _Rejected(
                EditErrorKind.TEACHER_CONFLICT,
                f"Lehrkraft {mover.teacher_id} ist ab Slot {target.index} bereits belegt.",
            )

        updated = tt.copy()
        if s_class is not None:
            updated.clear_block(s_class, s_start, s_len)
        updated.write_block(target.class_id, target.index, mover)
        logger.debug(
            f"Block verschoben: {s_class or 'Pool'} {s_start} → "
            f"{target.class_id} {target.index} ({s_len} Slots)"
        )
        return updated

    def _swap(
        self,
        s_class: str,
        s_start: int,
        s_len: int,
        mover: TimetableCell,
        t_class: str,
        t_index: int,
    ) -> Timetable:
        """Tauscht zwei Blöcke: Quelle an den Zielanfang, Ziel an den Quellanfang."""
        tt = self.timetable
        t_start, t_len = tt.block_at(t_class, t_index)
        displaced = tt.cells[t_class][t_start].model_copy(update={"duration": t_len})

        source_idx = set(range(s_start, s_start + s_len))
        target_idx = set(range(t_start, t_start + t_len))
        same_class = s_class == t_class

        # Jeder Block muss in den Bereich passen, den der andere frei macht
        if s_len > t_len:
            raise _Rejected(
                EditErrorKind.SWAP_DOES_NOT_FIT,
                f"Tausch unmöglich: Block ({s_len} Slots) passt nicht in den "
                f"Zielbereich ({t_len} Slots).",
            )
        if t_len > s_len:
            raise _Rejected(
                EditErrorKind.SWAP_DOES_NOT_FIT,
                f"Tausch unmöglich: Zielblock ({t_len} Slots) passt nicht in den "
                f"Quellbereich ({s_len} Slots).",
            )
        vacated_t = target_idx | (source_idx if same_class else set())
        if not tt.can_place(t_class, t_start, s_len, vacated_t):
            raise _Rejected(
                EditErrorKind.SWAP_DOES_NOT_FIT,
                f"Tausch unmöglich: Block passt nicht ab {t_class} Slot {t_start}.",
            )
        vacated_s = source_idx | (target_idx if same_class else set())
        if not tt.can_place(s_class, s_start, t_len, vacated_s):
            raise _Rejected(
                EditErrorKind.SWAP_DOES_NOT_FIT,
                f"Tausch unmöglich: Zielblock passt nicht ab {s_class} Slot {s_start}.",
            )

        # Pro Lehrkraft: eigene frei werdende Slots zählen nicht als Konflikt
        ignore: dict[str, set[int]] = {}
        for tid in _teachers(mover):
            ignore.setdefault(tid, set()).update(source_idx)
        for tid in _teachers(displaced):
            ignore.setdefault(tid, set()).update(target_idx)

        for tid in _teachers(mover):
            if not self._teachers.is_free([tid], t_start, s_len, ignore[tid]):
                raise _Rejected(
                    EditErrorKind.SWAP_TEACHER_CONFLICT,
                    f"Tausch unmöglich: Lehrkraft {tid} ist ab Slot {t_start} belegt.",
                )
        for tid in _teachers(displaced):
            if not self._teachers.is_free([tid], s_start, t_len, ignore[tid]):
                raise _Rejected(
                    EditErrorKind.SWAP_TEACHER_CONFLICT,
                    f"Tausch unmöglich: Lehrkraft {tid} ist ab Slot {s_start} belegt.",
                )

        updated = tt.copy()
        updated.clear_block(s_class, s_start, s_len)
        updated.clear_block(t_class, t_start, t_len)
        updated.write_block(t_class, t_start, mover)
        updated.write_block(s_class, s_start, displaced)
        logger.debug(f"Blöcke getauscht: {s_class} {s_start} ↔ {t_class} {t_start}")
        return updated

    # ─── Prüfungen ────────────────────────────────────────────────────────────

    def _check_class(self, class_id: str) -> None:
        if class_id not in self.timetable.cells:
            raise _Rejected(EditErrorKind.UNKNOWN_CLASS, f"Klasse {class_id} existiert nicht im Raster.")

    def _check_index(self, index: int) -> None:
        if not self.timetable.in_bounds(index):
            raise _Rejected(
                EditErrorKind.INDEX_OUT_OF_RANGE,
                f"Slot {index} liegt außerhalb des Rasters (0–{self.timetable.total_slots - 1}).",
            )

    def _locate_source(self, source: GridSource) -> tuple[int, int, TimetableCell]:
        """(Blockanfang, Blocklänge, Zelle) der angegebenen Quellzelle."""
        self._check_class(source.class_id)
        self._check_index(source.index)
        cell = self.timetable.cells[source.class_id][source.index]
        if cell is None or cell.load_id != source.load_id:
            raise _Rejected(
                EditErrorKind.SOURCE_MISMATCH,
                f"Zelle {source.class_id} Slot {source.index} gehört nicht zu {source.load_id}.",
            )
        start, length = self.timetable.block_at(source.class_id, source.index)
        return start, length, self.timetable.cells[source.class_id][start]

    def _check_not_placed(self, source: PoolSource) -> None:
        lesson = source.lesson

        def placed(cell: TimetableCell) -> bool:
            if cell.lesson_id is not None:
                return cell.lesson_id == lesson.id
            return cell.load_id == lesson.load_id

        if self.timetable.find_cells(placed):
            raise _Rejected(
                EditErrorKind.ALREADY_PLACED,
                f"Stunde {lesson.id} ist bereits im Raster platziert.",
            )


def _teachers(cell: TimetableCell) -> list[str]:
    return [cell.teacher_id] if cell.teacher_id else []
