"""Tests für Datenmodell und Wochenraster (Lessons, Timetable, Lehrer-Index)."""

import pytest
from pydantic import ValidationError

from models.grid import TeacherOccupancyIndex, Timetable, TimetableCell
from models.lesson import MeetingLesson, RegularLesson
from models.load import AcademicLoad, expand_loads
from models.problem import SchedulingProblem
from models.school_class import SchoolClass
from models.timeslot import TimeSlot


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def make_cell(
    load_id: str,
    class_id: str = "5a",
    teacher_id: str | None = None,
    duration: int = 1,
    lesson_id: str | None = None,
    subject_id: str = "M",
) -> TimetableCell:
    return TimetableCell(
        load_id=load_id,
        subject_id=subject_id,
        teacher_id=teacher_id,
        class_id=class_id,
        duration=duration,
        lesson_id=lesson_id,
    )


def make_grid() -> Timetable:
    """2 Tage × 4 Stunden, drei Klassen mit einigen Blöcken.

    5a: [A A . . | . B . .]   A=T1 (Doppelstunde), B=T2
    5b: [. . C . | . . . .]   C=T1
    5c: [D . . . | . . . D]   D=T3 (zwei Einzelstunden)
    """
    tt = Timetable.empty(2, 4, ["5a", "5b", "5c"])
    tt.write_block("5a", 0, make_cell("A", teacher_id="T1", duration=2))
    tt.write_block("5a", 5, make_cell("B", teacher_id="T2"))
    tt.write_block("5b", 2, make_cell("C", class_id="5b", teacher_id="T1"))
    tt.write_block("5c", 0, make_cell("D", class_id="5c", teacher_id="T3"))
    tt.write_block("5c", 7, make_cell("D", class_id="5c", teacher_id="T3"))
    return tt


# ─── LESSON-MODELL ────────────────────────────────────────────────────────────

class TestLessonModel:
    def test_kind_discriminates_variants(self):
        """Das Feld kind entscheidet über die Variante, nicht die Felder."""
        problem = SchedulingProblem.model_validate({
            "days": 1,
            "slots_per_day": 4,
            "lessons": [
                {"kind": "regular", "id": "L1", "load_id": "C1", "subject_id": "M", "class_id": "5a"},
                {"kind": "meeting", "id": "M1", "load_id": "M1", "subject_id": "K",
                 "teacher_ids": ["T1", "T2"]},
            ],
        })
        assert isinstance(problem.lessons[0], RegularLesson)
        assert isinstance(problem.lessons[1], MeetingLesson)
        assert [l.id for l in problem.meeting_lessons] == ["M1"]

    def test_meeting_teachers_deduplicated(self):
        """Doppelte Lehrer einer Besprechung werden entfernt, Reihenfolge bleibt."""
        m = MeetingLesson(id="M1", load_id="M1", subject_id="K", teacher_ids=["T2", "T1", "T2"])
        assert m.teachers() == ["T2", "T1"]

    def test_meeting_needs_teacher(self):
        """Besprechung ohne Lehrkraft ist ungültig."""
        with pytest.raises(ValidationError):
            MeetingLesson(id="M1", load_id="M1", subject_id="K", teacher_ids=[])

    def test_duration_at_least_one(self):
        with pytest.raises(ValidationError):
            RegularLesson(id="L1", load_id="C1", subject_id="M", class_id="5a", duration=0)

    def test_regular_without_teacher(self):
        """Reguläre Stunde ohne Lehrer: keine Lehrer, Platzhalter im Fach-Schlüssel."""
        lesson = RegularLesson(id="L1", load_id="C1", subject_id="M", class_id="5a")
        assert lesson.teachers() == []
        assert lesson.subject_key == ("5a", "M", "-")

    def test_load_expansion(self):
        """Ein Lehrauftrag mit 3 Sitzungen ergibt 3 Lessons mit gemeinsamer load_id."""
        load = AcademicLoad(id="C7", class_id="5a", subject_id="D", teacher_id="T1",
                            sessions_per_week=3, duration=2)
        lessons = load.expand()
        assert [l.id for l in lessons] == ["C7__0", "C7__1", "C7__2"]
        assert {l.load_id for l in lessons} == {"C7"}
        assert all(l.duration == 2 and l.teacher_id == "T1" for l in lessons)

    def test_expand_loads_keeps_order(self):
        loads = [
            AcademicLoad(id="C1", class_id="5a", subject_id="M", sessions_per_week=2),
            AcademicLoad(id="C2", class_id="5b", subject_id="D"),
        ]
        assert [l.id for l in expand_loads(loads)] == ["C1__0", "C1__1", "C2__0"]


# ─── SCHEDULING-PROBLEM ───────────────────────────────────────────────────────

class TestSchedulingProblem:
    def test_loads_expanded_into_lessons(self):
        problem = SchedulingProblem(
            days=2, slots_per_day=3,
            classes=[SchoolClass(id="5a")],
            loads=[AcademicLoad(id="C1", class_id="5a", subject_id="M", sessions_per_week=2)],
        )
        assert [l.id for l in problem.lessons] == ["C1__0", "C1__1"]
        assert problem.loads == []
        assert problem.total_slots == 6

    def test_duplicate_lesson_ids_rejected(self):
        lesson = RegularLesson(id="L1", load_id="C1", subject_id="M", class_id="5a")
        with pytest.raises(ValueError, match="Doppelte Lesson-IDs"):
            SchedulingProblem(lessons=[lesson, lesson])

    def test_unknown_class_rejected(self):
        """Mit Klassenliste: Lesson einer unbekannten Klasse ist ein Eingabefehler."""
        with pytest.raises(ValueError, match="unbekannte Klassen"):
            SchedulingProblem(
                classes=[SchoolClass(id="5a")],
                lessons=[RegularLesson(id="L1", load_id="C1", subject_id="M", class_id="9z")],
            )

    def test_class_ids_without_class_list(self):
        """Ohne Klassenliste werden Klassen aus den Lessons abgeleitet."""
        problem = SchedulingProblem(lessons=[
            RegularLesson(id="L1", load_id="C1", subject_id="M", class_id="5b"),
            RegularLesson(id="L2", load_id="C2", subject_id="M", class_id="5a"),
        ])
        assert problem.class_ids() == ["5b", "5a"]

    def test_empty_timetable_contains_classes_without_lessons(self):
        """Klassen ohne Stunden bekommen trotzdem eine leere Zeile."""
        problem = SchedulingProblem(days=1, slots_per_day=4,
                                    classes=[SchoolClass(id="5a"), SchoolClass(id="5b")])
        tt = problem.empty_timetable()
        assert set(tt.cells) == {"5a", "5b"}
        assert tt.cells["5b"] == [None] * 4

    def test_json_roundtrip(self, tmp_path):
        problem = SchedulingProblem(
            days=1, slots_per_day=4,
            lessons=[
                RegularLesson(id="L1", load_id="C1", subject_id="M", class_id="5a"),
                MeetingLesson(id="M1", load_id="M1", subject_id="K", teacher_ids=["T1"]),
            ],
            teacher_blocked_slots={"T1": [0, 1]},
        )
        path = tmp_path / "problem.json"
        problem.save_json(path)
        loaded = SchedulingProblem.load_json(path)
        assert loaded == problem

    def test_load_json_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SchedulingProblem.load_json(tmp_path / "fehlt.json")


# ─── TIMESLOT ─────────────────────────────────────────────────────────────────

class TestTimeSlot:
    def test_index_roundtrip(self):
        ts = TimeSlot.from_index(9, 7)
        assert (ts.day, ts.period) == (1, 2)
        assert ts.index(7) == 9

    def test_str(self):
        assert str(TimeSlot(0, 0)) == "Mo 1."
        assert TimeSlot(4, 6).day_name == "Fr"


# ─── TIMETABLE ────────────────────────────────────────────────────────────────

class TestTimetable:
    def test_empty_rows_have_total_slots(self):
        tt = Timetable.empty(5, 7, ["5a"])
        assert tt.total_slots == 35
        assert len(tt.cells["5a"]) == 35
        assert tt.assigned_slots() == 0

    def test_wrong_row_length_rejected(self):
        """Zeilenlänge ≠ days × slots_per_day ist ein Eingabefehler."""
        with pytest.raises(ValidationError):
            Timetable(days=2, slots_per_day=4, cells={"5a": [None] * 7})

    def test_slot_arithmetic(self):
        tt = Timetable.empty(2, 4)
        assert tt.slot_index(1, 2) == 6
        assert tt.day_of(6) == 1
        assert tt.period_of(6) == 2
        assert tt.in_bounds(7) and not tt.in_bounds(8) and not tt.in_bounds(-1)

    def test_can_place_day_containment(self):
        """Ein Block darf nicht über die Tagesgrenze laufen."""
        tt = Timetable.empty(2, 4, ["5a"])
        assert tt.can_place("5a", 2, 2)
        assert not tt.can_place("5a", 3, 2)
        assert not tt.can_place("5a", 7, 2)

    def test_can_place_occupied_and_ignore(self):
        tt = make_grid()
        assert not tt.can_place("5a", 1, 2)
        assert tt.can_place("5a", 1, 2, ignore={0, 1})
        assert tt.can_place("5a", 2, 2)

    def test_is_occupied(self):
        tt = make_grid()
        assert tt.is_occupied("5a", 1)
        assert not tt.is_occupied("5a", 2)

    def test_write_block_refreshes_class(self):
        """write_block setzt class_id der Zelle auf die Zielklasse."""
        tt = Timetable.empty(1, 4, ["5a", "5b"])
        tt.write_block("5b", 1, make_cell("X", class_id="5a", duration=2))
        assert tt.cells["5b"][1].class_id == "5b"
        assert tt.cells["5b"][2].class_id == "5b"
        assert tt.cells["5b"][3] is None

    def test_clear_block(self):
        tt = make_grid()
        tt.clear_block("5a", 0, 2)
        assert tt.cells["5a"][:2] == [None, None]

    def test_block_recovery_from_middle(self):
        """Blockanfang und -länge werden aus einer beliebigen Zelle rekonstruiert."""
        tt = Timetable.empty(1, 6, ["5a"])
        tt.write_block("5a", 2, make_cell("A", duration=3))
        assert tt.block_start("5a", 4) == 2
        assert tt.block_length("5a", 2) == 3
        assert tt.block_at("5a", 3) == (2, 3)

    def test_block_does_not_cross_day(self):
        """Gleiche load_id am Tagesende und Folgetag-Anfang sind zwei Blöcke."""
        tt = Timetable.empty(2, 4, ["5a"])
        tt.write_block("5a", 3, make_cell("A"))
        tt.write_block("5a", 4, make_cell("A"))
        assert tt.block_at("5a", 4) == (4, 1)
        assert tt.block_at("5a", 3) == (3, 1)

    def test_adjacent_sessions_with_lesson_ids_are_separate(self):
        """Zwei Sitzungen desselben Auftrags direkt hintereinander bleiben getrennt."""
        tt = Timetable.empty(1, 4, ["5a"])
        tt.write_block("5a", 0, make_cell("A", lesson_id="A__0"))
        tt.write_block("5a", 1, make_cell("A", lesson_id="A__1"))
        assert tt.block_at("5a", 1) == (1, 1)
        assert [b[1] for b in tt.iter_blocks()] == [0, 1]

    def test_iter_blocks(self):
        blocks = [(c, s, n) for c, s, n, _ in make_grid().iter_blocks()]
        assert blocks == [
            ("5a", 0, 2), ("5a", 5, 1),
            ("5b", 2, 1),
            ("5c", 0, 1), ("5c", 7, 1),
        ]

    def test_find_cells_and_placed_loads(self):
        tt = make_grid()
        found = tt.find_cells(lambda c: c.teacher_id == "T1")
        assert [(c, i) for c, i, _ in found] == [("5a", 0), ("5a", 1), ("5b", 2)]
        assert tt.placed_load_ids() == {"A", "B", "C", "D"}

    def test_copy_is_deep(self):
        tt = make_grid()
        clone = tt.copy()
        clone.clear_block("5a", 0, 2)
        assert tt.cells["5a"][0] is not None
        assert clone != tt


# ─── LEHRER-KONFLIKTE ─────────────────────────────────────────────────────────

class TestTeacherFree:
    def test_conflict_in_other_class(self):
        tt = make_grid()
        assert not tt.teacher_free(["T1"], 2, 1)   # C in 5b
        assert tt.teacher_free(["T1"], 3, 1)

    def test_ignore_slots(self):
        tt = make_grid()
        assert not tt.teacher_free(["T1"], 0, 2)
        assert tt.teacher_free(["T1"], 0, 2, ignore={0, 1})

    def test_no_teacher_always_free(self):
        assert make_grid().teacher_free([], 0, 2)

    def test_index_matches_full_scan(self):
        """Der Lehrer-Index liefert auf demselben Stand dieselben Antworten wie der Scan."""
        tt = make_grid()
        index = TeacherOccupancyIndex.from_timetable(tt)
        for teacher in ["T1", "T2", "T3", "T9"]:
            for start in range(tt.total_slots):
                for duration in (1, 2, 3):
                    for ignore in (set(), {0, 1}, {start}):
                        assert index.is_free([teacher], start, duration, ignore) == \
                            tt.teacher_free([teacher], start, duration, ignore)

    def test_index_add_remove(self):
        index = TeacherOccupancyIndex(8)
        index.add(["T1"], 2, 2)
        assert not index.is_free(["T1"], 3, 1)
        index.remove(["T1"], 2, 2)
        assert index.is_free(["T1"], 2, 2)

    def test_reserved_slot_survives_remove(self):
        """Ein reservierter Slot bleibt belegt, auch wenn ein Block dort entfernt wird."""
        tt = make_grid()
        index = TeacherOccupancyIndex.from_timetable(tt, reserved={"T1": [0]})
        index.remove(["T1"], 0, 2)
        assert not index.is_free(["T1"], 0, 1)
        assert index.is_free(["T1"], 1, 1)
        assert index.slots_of("T1") == frozenset({0, 2})

    def test_reserve_ignores_out_of_range(self):
        index = TeacherOccupancyIndex(4)
        index.reserve(["T1"], [-1, 3, 10])
        assert index.slots_of("T1") == frozenset({3})
