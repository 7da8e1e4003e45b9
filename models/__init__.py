from models.lesson import Lesson, RegularLesson, MeetingLesson
from models.school_class import SchoolClass
from models.load import AcademicLoad, expand_loads
from models.timeslot import TimeSlot
from models.grid import Timetable, TimetableCell, TeacherOccupancyIndex
from models.problem import SchedulingProblem

__all__ = [
    "Lesson",
    "RegularLesson",
    "MeetingLesson",
    "SchoolClass",
    "AcademicLoad",
    "expand_loads",
    "TimeSlot",
    "Timetable",
    "TimetableCell",
    "TeacherOccupancyIndex",
    "SchedulingProblem",
]
