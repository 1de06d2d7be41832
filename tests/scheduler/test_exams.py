"""Tests for exam scheduling."""

from section_scheduler.scheduler.conflicts import detect_exam_conflicts
from section_scheduler.scheduler.exams import ExamScheduler, exam_window_slots
from section_scheduler.scheduler.models import Course, Day, ExamType, Room


def level_courses(level: int, count: int) -> list[Course]:
    return [Course(f"C{level}{i:02d}", f"Course {i}", 3, level) for i in range(count)]


class TestExamWindow:
    """Tests for exam slot generation."""

    def test_default_window(self):
        slots = exam_window_slots()
        # Four sittings a day over five days
        assert len(slots) == 20
        assert slots[0].label == "Sunday 08:00-10:00"
        assert slots[-1].label == "Thursday 16:00-18:00"

    def test_custom_days(self):
        slots = exam_window_slots(days=[Day.MONDAY], start_times=["09:00"], duration=90)
        assert [s.label for s in slots] == ["Monday 09:00-10:30"]


class TestExamScheduler:
    """Tests for ExamScheduler."""

    def test_one_exam_per_course_and_type(self):
        courses = level_courses(3, 3)
        exams, unscheduled = ExamScheduler([Room("B201", 60)]).schedule(
            [(c, 40) for c in courses]
        )
        assert unscheduled == []
        assert sorted(e.id for e in exams) == sorted(
            f"{c.code}-{t.value}" for c in courses for t in (ExamType.MIDTERM, ExamType.FINAL)
        )

    def test_same_level_exams_do_not_overlap(self):
        courses = level_courses(3, 6)
        exams, _ = ExamScheduler([Room("B201", 60), Room("A101", 40)]).schedule(
            [(c, 30) for c in courses]
        )
        assert detect_exam_conflicts(exams, {c.code: c for c in courses}) == []

    def test_spreads_cohort_across_days(self):
        courses = level_courses(3, 5)
        exams, _ = ExamScheduler([Room("B201", 60)]).schedule([(c, 30) for c in courses])
        midterm_days = {e.time_slot.day for e in exams if e.exam_type == ExamType.MIDTERM}
        assert len(midterm_days) == 5

    def test_respects_course_exam_types(self):
        course = Course("CS401", "Operating Systems", 3, 4, exam_types=[ExamType.FINAL])
        exams, _ = ExamScheduler([Room("B201", 60)]).schedule([(course, 25)])
        assert [e.exam_type for e in exams] == [ExamType.FINAL]

    def test_window_full(self):
        courses = level_courses(3, 3)
        scheduler = ExamScheduler(
            [Room("B201", 60)], days=[Day.SUNDAY], start_times=["08:00", "11:00"]
        )
        exams, unscheduled = scheduler.schedule([(c, 30) for c in courses])
        # Two sittings per type for three courses of one level
        assert len(exams) == 4
        assert len(unscheduled) == 2
        assert {u.course_code for u in unscheduled} == {"C302"}

    def test_smallest_fitting_room(self):
        course = Course("CS350", "Web Development", 3, 3)
        exams, _ = ExamScheduler([Room("B201", 60), Room("A101", 40)]).schedule([(course, 35)])
        assert {e.room_id for e in exams} == {"A101"}
