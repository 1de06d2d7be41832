"""Exam scheduling within the exam window."""

import logging
from collections import defaultdict

from ..utils import time_to_minutes
from .constants import EXAM_DURATION, EXAM_START_TIMES, WORKING_DAYS
from .models import Course, Day, Exam, ExamType, Room, TimeSlot, UnscheduledExam
from .rooms import RoomManager
from .timeslots import BusyIndex

logger = logging.getLogger(__name__)


def exam_window_slots(
    days: list[Day] | None = None,
    start_times: list[str] | None = None,
    duration: int = EXAM_DURATION,
) -> list[TimeSlot]:
    """Build all exam slots, ordered by day then start time."""
    slots = []
    for day in sorted(days or WORKING_DAYS, key=lambda d: d.value):
        for start in start_times or EXAM_START_TIMES:
            start_minutes = time_to_minutes(start)
            slots.append(TimeSlot(day, start_minutes, start_minutes + duration))
    return slots


class ExamScheduler:
    """Places one exam per course and exam type.

    Exams of the same type for one level never overlap. Each exam type
    sits in its own exam week, so rooms and cohorts are tracked per type.
    Days holding the fewest exams of the cohort are tried first.
    """

    def __init__(
        self,
        rooms: list[Room],
        days: list[Day] | None = None,
        start_times: list[str] | None = None,
        duration: int = EXAM_DURATION,
    ) -> None:
        self.rooms = rooms
        self.slots = exam_window_slots(days, start_times, duration)

    def schedule(
        self, courses: list[tuple[Course, int]]
    ) -> tuple[list[Exam], list[UnscheduledExam]]:
        """Schedule exams for the offered courses.

        Args:
            courses: Offered courses with their expected exam head-count

        Returns:
            Tuple of (scheduled exams, exams that did not fit)
        """
        exams: list[Exam] = []
        unscheduled: list[UnscheduledExam] = []

        ordered = sorted(courses, key=lambda item: (item[0].level, -item[1], item[0].code))
        for exam_type in ExamType:
            room_manager = RoomManager(self.rooms)
            cohort_busy = BusyIndex()
            # (level, day) -> exams already placed
            daily_count: dict[tuple[int, Day], int] = defaultdict(int)

            for course, expected in ordered:
                if exam_type not in course.exam_types:
                    continue
                cohort_key = f"level-{course.level}"
                candidates = sorted(
                    self.slots,
                    key=lambda s: (
                        daily_count[(course.level, s.day)],
                        s.day.value,
                        s.start_minutes,
                    ),
                )

                placed = False
                for slot in candidates:
                    if not cohort_busy.is_free(cohort_key, slot):
                        continue
                    room = room_manager.find_room(expected, [slot], allow_undersized=True)
                    if room is None:
                        continue
                    room_manager.reserve(room.room_id, [slot])
                    cohort_busy.reserve(cohort_key, slot)
                    daily_count[(course.level, slot.day)] += 1
                    exams.append(Exam(course.code, exam_type, slot, room.room_id))
                    placed = True
                    break

                if not placed:
                    logger.warning(
                        f"No exam slot for {course.code} {exam_type.value} (level {course.level})"
                    )
                    unscheduled.append(
                        UnscheduledExam(
                            course_code=course.code,
                            exam_type=exam_type,
                            level=course.level,
                            details=(
                                f"All {len(self.slots)} exam slots are taken for level "
                                f"{course.level} or have no free room"
                            ),
                        )
                    )

        type_order = list(ExamType)
        exams.sort(
            key=lambda e: (type_order.index(e.exam_type), e.time_slot.sort_key(), e.course_code)
        )
        return exams, unscheduled
