"""Tests für Bearbeitungsanfragen und den Edit-Validator."""

import pytest
from pydantic import ValidationError

from editing import (
    EditAction,
    EditErrorKind,
    EditRequest,
    EditTarget,
    EditValidator,
    GridSource,
    PoolSource,
)
from models.grid import Timetable, TimetableCell
from models.lesson import RegularLesson


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def make_cell(load_id: str, teacher_id: str | None = None, duration: int = 1) -> TimetableCell:
    return TimetableCell(
        load_id=load_id,
        subject_id="M",
        teacher_id=teacher_id,
        class_id="5a",
        duration=duration,
    )


def make_grid() -> Timetable:
    """2 Tage × 4 Stunden.

    5a: [A A . . | . . . .]   A = T1, Doppelstunde
    5b: [. . . B | . . . .]   B = T2
    5c: [C . . . | . D . .]   C = T2, D = T1
    """
    tt = Timetable.empty(2, 4, ["5a", "5b", "5c"])
    tt.write_block("5a", 0, make_cell("A", "T1", duration=2))
    tt.write_block("5b", 3, make_cell("B", "T2"))
    tt.write_block("5c", 0, make_cell("C", "T2"))
    tt.write_block("5c", 5, make_cell("D", "T1"))
    return tt


def move(class_id: str, index: int, load_id: str, t_class: str, t_index: int,
         swap: bool = False) -> EditRequest:
    return EditRequest(
        action=EditAction.MOVE,
        source=GridSource(class_id=class_id, index=index, load_id=load_id),
        target=EditTarget(class_id=t_class, index=t_index),
        swap=swap,
    )


def remove(class_id: str, index: int, load_id: str) -> EditRequest:
    return EditRequest(
        action=EditAction.REMOVE,
        source=GridSource(class_id=class_id, index=index, load_id=load_id),
    )


def from_pool(lesson: RegularLesson, t_class: str, t_index: int, swap: bool = False) -> EditRequest:
    return EditRequest(
        action=EditAction.MOVE,
        source=PoolSource(lesson=lesson),
        target=EditTarget(class_id=t_class, index=t_index),
        swap=swap,
    )


def make_pool_lesson(lesson_id: str = "E__0", load_id: str = "E", class_id: str = "5b",
                     teacher_id: str | None = "T3") -> RegularLesson:
    return RegularLesson(id=lesson_id, load_id=load_id, subject_id="D",
                         class_id=class_id, teacher_id=teacher_id)


def loads(tt: Timetable, class_id: str) -> list:
    return [c.load_id if c else None for c in tt.cells[class_id]]


@pytest.fixture
def grid() -> Timetable:
    return make_grid()


# ─── ANFRAGEN ─────────────────────────────────────────────────────────────────

class TestEditRequest:
    def test_move_needs_target(self):
        with pytest.raises(ValidationError, match="Ziel"):
            EditRequest(action=EditAction.MOVE,
                        source=GridSource(class_id="5a", index=0, load_id="A"))

    def test_remove_needs_grid_source(self):
        with pytest.raises(ValidationError):
            EditRequest(action=EditAction.REMOVE, source=PoolSource(lesson=make_pool_lesson()))

    def test_remove_without_swap(self):
        with pytest.raises(ValidationError, match="swap"):
            EditRequest(action=EditAction.REMOVE, swap=True,
                        source=GridSource(class_id="5a", index=0, load_id="A"))

    def test_source_type_discriminates(self):
        request = EditRequest.model_validate({
            "action": "move",
            "source": {
                "source_type": "pool",
                "lesson": {"id": "E__0", "load_id": "E", "subject_id": "D", "class_id": "5b"},
            },
            "target": {"class_id": "5b", "index": 0},
        })
        assert isinstance(request.source, PoolSource)
        assert request.source.load_id == "E"


# ─── ENTFERNEN ────────────────────────────────────────────────────────────────

class TestRemove:
    def test_remove_from_middle_of_block(self, grid):
        """Beliebige Zelle des Blocks reicht; der ganze Block verschwindet."""
        result = EditValidator(grid).apply(remove("5a", 1, "A"))
        assert result.ok
        assert loads(result.timetable, "5a") == [None] * 8
        # Eingabe unverändert
        assert loads(grid, "5a")[:2] == ["A", "A"]

    def test_remove_source_mismatch(self, grid):
        result = EditValidator(grid).apply(remove("5a", 0, "X"))
        assert not result.ok
        assert result.rejection.kind == EditErrorKind.SOURCE_MISMATCH

    def test_remove_empty_cell(self, grid):
        result = EditValidator(grid).apply(remove("5a", 2, "A"))
        assert result.rejection.kind == EditErrorKind.SOURCE_MISMATCH


# ─── VERSCHIEBEN ──────────────────────────────────────────────────────────────

class TestMove:
    def test_move_to_other_class(self, grid):
        result = EditValidator(grid).apply(move("5a", 0, "A", "5b", 0))
        assert result.ok
        assert loads(result.timetable, "5a")[:2] == [None, None]
        assert loads(result.timetable, "5b")[:2] == ["A", "A"]
        assert result.timetable.cells["5b"][0].class_id == "5b"

    def test_move_and_back_restores_grid(self, grid):
        """Verschieben und zurückverschieben ergibt das Ausgangsraster."""
        first = EditValidator(grid).apply(move("5a", 1, "A", "5b", 0))
        back = EditValidator(first.timetable).apply(move("5b", 0, "A", "5a", 0))
        assert back.ok
        assert back.timetable == grid

    def test_slide_within_own_block(self, grid):
        """Ziel innerhalb des eigenen Blocks gilt als frei."""
        result = EditValidator(grid).apply(move("5a", 0, "A", "5a", 1))
        assert result.ok
        assert loads(result.timetable, "5a")[:4] == [None, "A", "A", None]

    def test_target_occupied(self, grid):
        """Ziel belegt, kein Tausch angefordert → abgelehnt, Raster unverändert."""
        snapshot = grid.copy()
        result = EditValidator(grid).apply(move("5b", 3, "B", "5a", 0))
        assert not result.ok
        assert result.rejection.kind == EditErrorKind.TARGET_OCCUPIED
        assert result.timetable == snapshot
        assert grid == snapshot

    def test_crossing_day_boundary(self, grid):
        result = EditValidator(grid).apply(move("5a", 0, "A", "5a", 3))
        assert result.rejection.kind == EditErrorKind.DOES_NOT_FIT

    def test_partially_occupied_target(self, grid):
        """Zielstart frei, aber der zweite Slot ist belegt."""
        result = EditValidator(grid).apply(move("5a", 0, "A", "5b", 2))
        assert result.rejection.kind == EditErrorKind.DOES_NOT_FIT

    def test_teacher_conflict(self, grid):
        """T1 unterrichtet in Slot 5 bereits D in 5c."""
        result = EditValidator(grid).apply(move("5a", 0, "A", "5a", 5))
        assert result.rejection.kind == EditErrorKind.TEACHER_CONFLICT

    def test_own_slots_do_not_conflict(self, grid):
        """Die frei werdenden Slots des eigenen Blocks zählen nicht als Lehrer-Konflikt."""
        result = EditValidator(grid).apply(move("5a", 0, "A", "5b", 1))
        assert result.ok

    def test_reserved_teacher_slot(self, grid):
        validator = EditValidator(grid, reserved={"T1": [4]})
        result = validator.apply(move("5a", 0, "A", "5a", 4))
        assert result.rejection.kind == EditErrorKind.TEACHER_CONFLICT

    def test_unknown_target_class(self, grid):
        result = EditValidator(grid).apply(move("5a", 0, "A", "9z", 0))
        assert result.rejection.kind == EditErrorKind.UNKNOWN_CLASS

    def test_target_index_out_of_range(self, grid):
        result = EditValidator(grid).apply(move("5a", 0, "A", "5a", 8))
        assert result.rejection.kind == EditErrorKind.INDEX_OUT_OF_RANGE


# ─── TAUSCHEN ─────────────────────────────────────────────────────────────────

class TestSwap:
    def test_swap_different_lengths(self, grid):
        """Doppelstunde gegen Einzelstunde → SWAP_DOES_NOT_FIT, beide bleiben."""
        snapshot = grid.copy()
        result = EditValidator(grid).apply(move("5a", 0, "A", "5b", 3, swap=True))
        assert result.rejection.kind == EditErrorKind.SWAP_DOES_NOT_FIT
        assert result.timetable == snapshot

    def test_swap_equal_lengths(self):
        tt = Timetable.empty(1, 4, ["5a", "5b"])
        tt.write_block("5a", 0, make_cell("A", "T1"))
        tt.write_block("5b", 2, make_cell("B", "T2"))

        result = EditValidator(tt).apply(move("5a", 0, "A", "5b", 2, swap=True))
        assert result.ok
        assert loads(result.timetable, "5a") == ["B", None, None, None]
        assert loads(result.timetable, "5b") == [None, None, "A", None]

    def test_swap_is_symmetric(self):
        """Zweimal tauschen ergibt das Ausgangsraster."""
        tt = Timetable.empty(1, 4, ["5a", "5b"])
        tt.write_block("5a", 0, make_cell("A", "T1"))
        tt.write_block("5b", 2, make_cell("B", "T2"))

        once = EditValidator(tt).apply(move("5a", 0, "A", "5b", 2, swap=True))
        twice = EditValidator(once.timetable).apply(move("5b", 2, "A", "5a", 0, swap=True))
        assert twice.ok
        assert twice.timetable == tt

    def test_swap_within_same_class(self):
        tt = Timetable.empty(1, 4, ["5a"])
        tt.write_block("5a", 0, make_cell("A", "T1"))
        tt.write_block("5a", 3, make_cell("B", "T1"))
        result = EditValidator(tt).apply(move("5a", 0, "A", "5a", 3, swap=True))
        assert result.ok
        assert loads(result.timetable, "5a") == ["B", None, None, "A"]

    def test_swap_teacher_conflict(self):
        """B (T2) würde nach 5a Slot 0 wandern, dort unterrichtet T2 schon C."""
        tt = Timetable.empty(2, 4, ["5a", "5b", "5c"])
        tt.write_block("5a", 0, make_cell("A", "T1"))
        tt.write_block("5b", 2, make_cell("B", "T2"))
        tt.write_block("5c", 0, make_cell("C", "T2"))
        result = EditValidator(tt).apply(move("5a", 0, "A", "5b", 2, swap=True))
        assert result.rejection.kind == EditErrorKind.SWAP_TEACHER_CONFLICT

    def test_swap_into_empty_target_is_plain_move(self, grid):
        result = EditValidator(grid).apply(move("5b", 3, "B", "5a", 2, swap=True))
        assert result.ok
        assert loads(result.timetable, "5a")[2] == "B"
        assert loads(result.timetable, "5b")[3] is None


# ─── POOL ─────────────────────────────────────────────────────────────────────

class TestPool:
    def test_place_from_pool(self, grid):
        result = EditValidator(grid).apply(from_pool(make_pool_lesson(), "5b", 0))
        assert result.ok
        cell = result.timetable.cells["5b"][0]
        assert cell.lesson_id == "E__0"
        assert cell.teacher_id == "T3"

    def test_pool_lesson_already_placed(self, grid):
        placed = EditValidator(grid).apply(from_pool(make_pool_lesson(), "5b", 0))
        again = EditValidator(placed.timetable).apply(from_pool(make_pool_lesson(), "5b", 1))
        assert again.rejection.kind == EditErrorKind.ALREADY_PLACED

    def test_pool_matches_cells_without_lesson_id(self, grid):
        """Zellen ohne lesson_id zählen über die load_id."""
        lesson = make_pool_lesson("B__0", "B", teacher_id="T2")
        result = EditValidator(grid).apply(from_pool(lesson, "5b", 0))
        assert result.rejection.kind == EditErrorKind.ALREADY_PLACED

    def test_pool_cannot_swap(self, grid):
        result = EditValidator(grid).apply(from_pool(make_pool_lesson(), "5b", 3, swap=True))
        assert result.rejection.kind == EditErrorKind.TARGET_OCCUPIED

    def test_pool_teacher_conflict(self, grid):
        lesson = make_pool_lesson(teacher_id="T2")
        result = EditValidator(grid).apply(from_pool(lesson, "5b", 0))
        assert result.rejection.kind == EditErrorKind.TEACHER_CONFLICT


# ─── ATOMARITÄT ───────────────────────────────────────────────────────────────

class TestAtomicity:
    def test_rejections_never_modify_grid(self, grid):
        """Jede abgelehnte Anfrage lässt das Raster exakt unverändert."""
        snapshot = grid.copy()
        validator = EditValidator(grid)
        requests = [
            remove("5a", 0, "X"),
            move("5b", 3, "B", "5a", 0),
            move("5a", 0, "A", "5a", 3),
            move("5a", 0, "A", "5a", 5),
            move("5a", 0, "A", "5b", 3, swap=True),
            from_pool(make_pool_lesson(teacher_id="T2"), "5b", 0),
        ]
        for request in requests:
            result = validator.apply(request)
            assert not result.ok
            assert result.timetable == snapshot
        assert grid == snapshot

    def test_success_returns_new_grid(self, grid):
        snapshot = grid.copy()
        result = EditValidator(grid).apply(move("5a", 0, "A", "5b", 0))
        assert result.ok
        assert result.timetable is not grid
        assert grid == snapshot
