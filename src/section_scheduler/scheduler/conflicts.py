"""Conflict detection for schedules.

Every detector is a pure function over explicit collections and works on
any schedule, generated or hand-edited. Conflict ids are built from the
entities involved (pair ids sorted), so a violation keeps its id across
re-checks and each pair is reported once.
"""

from collections import defaultdict
from itertools import combinations
from typing import Mapping

from .models import (
    CapacityConflict,
    ConflictCheckInput,
    ConflictSummary,
    Course,
    CourseType,
    DailyLoadConflict,
    Exam,
    ExamConflict,
    FacultyAvailability,
    FacultyConflict,
    FacultyIssue,
    PrerequisiteConflict,
    Room,
    RoomConflict,
    ScheduleConflict,
    Section,
    Severity,
    StudentContext,
    StudentOverlapConflict,
    TimeConflict,
    TimeSlot,
)
from .timeslots import TimeSlotManager


def first_overlap(
    slots_a: list[TimeSlot], slots_b: list[TimeSlot]
) -> tuple[TimeSlot, TimeSlot] | None:
    """Return the earliest overlapping pair of meetings, if any."""
    for a in sorted(slots_a, key=lambda s: s.sort_key()):
        for b in sorted(slots_b, key=lambda s: s.sort_key()):
            if a.overlaps(b):
                return a, b
    return None


def time_conflict_severity(first: Course, second: Course) -> Severity:
    """Severity of an overlap between two courses of one level.

    Two required courses can never both be taken, a required course
    against an elective blocks that elective, and two electives only
    matter to students holding both.
    """
    required = [c.course_type == CourseType.REQUIRED for c in (first, second)]
    if all(required):
        return Severity.CRITICAL
    if any(required):
        return Severity.ERROR
    return Severity.WARNING


def detect_time_conflicts(
    sections: list[Section], courses: Mapping[str, Course]
) -> list[ScheduleConflict]:
    """Detect overlapping sections of different courses at the same level.

    Args:
        sections: Sections to check
        courses: Course catalog keyed by code; sections of unknown courses
            are ignored

    Returns:
        List of TimeConflict records
    """
    by_level: dict[int, list[Section]] = defaultdict(list)
    for section in sections:
        course = courses.get(section.course_code)
        if course is not None:
            by_level[course.level].append(section)

    conflicts: list[ScheduleConflict] = []
    for level, level_sections in sorted(by_level.items()):
        ordered = sorted(level_sections, key=lambda s: s.id)
        for a, b in combinations(ordered, 2):
            if a.course_code == b.course_code:
                continue
            overlap = first_overlap(a.time_slots, b.time_slots)
            if overlap is None:
                continue
            codes = sorted([a.course_code, b.course_code])
            conflicts.append(
                TimeConflict(
                    id=f"time-{a.id}-{b.id}",
                    severity=time_conflict_severity(
                        courses[a.course_code], courses[b.course_code]
                    ),
                    message=(
                        f"Time conflict at level {level}: {codes[0]} and {codes[1]} "
                        f"overlap on {overlap[0].label}"
                    ),
                    affected_section_ids=[a.id, b.id],
                    level=level,
                    course_codes=codes,
                )
            )
    return conflicts


def detect_exam_conflicts(
    exams: list[Exam], courses: Mapping[str, Course]
) -> list[ScheduleConflict]:
    """Detect overlapping exams of the same type for one level.

    Exams of different types sit in different exam weeks and are never
    compared.
    """
    groups: dict[tuple[str, int], list[Exam]] = defaultdict(list)
    for exam in exams:
        course = courses.get(exam.course_code)
        if course is not None:
            groups[(exam.exam_type.value, course.level)].append(exam)

    conflicts: list[ScheduleConflict] = []
    for (exam_type, level), group in sorted(groups.items()):
        ordered = sorted(group, key=lambda e: e.course_code)
        for a, b in combinations(ordered, 2):
            if a.course_code == b.course_code or not a.time_slot.overlaps(b.time_slot):
                continue
            conflicts.append(
                ExamConflict(
                    id=f"exam-{exam_type}-{a.course_code}-{b.course_code}",
                    severity=Severity.ERROR,
                    message=(
                        f"Exam conflict: {a.course_code} and {b.course_code} "
                        f"{exam_type} exams overlap on {a.time_slot.label}"
                    ),
                    exam_type=a.exam_type,
                    level=level,
                    course_codes=[a.course_code, b.course_code],
                )
            )
    return conflicts


def detect_faculty_conflicts(
    sections: list[Section], faculty: list[FacultyAvailability] | None = None
) -> list[ScheduleConflict]:
    """Detect instructor double-booking, overload and unavailable meetings.

    Overload and availability checks need ``faculty``; instructors missing
    from it are only checked for double-booking.
    """
    by_instructor: dict[str, list[Section]] = defaultdict(list)
    for section in sections:
        if section.instructor_id:
            by_instructor[section.instructor_id].append(section)

    faculty_index = {f.instructor_id: f for f in faculty or []}
    manager = TimeSlotManager()
    conflicts: list[ScheduleConflict] = []

    for instructor_id, assigned in sorted(by_instructor.items()):
        ordered = sorted(assigned, key=lambda s: s.id)
        for a, b in combinations(ordered, 2):
            overlap = first_overlap(a.time_slots, b.time_slots)
            if overlap is None:
                continue
            conflicts.append(
                FacultyConflict(
                    id=f"faculty-double-{instructor_id}-{a.id}-{b.id}",
                    severity=Severity.ERROR,
                    message=(
                        f"Instructor {instructor_id} double-booked: {a.id} and {b.id} "
                        f"on {overlap[0].label}"
                    ),
                    affected_section_ids=[a.id, b.id],
                    instructor_id=instructor_id,
                    issue=FacultyIssue.DOUBLE_BOOKING,
                )
            )

        member = faculty_index.get(instructor_id)
        if member is None:
            continue

        slots = [slot for section in ordered for slot in section.time_slots]
        if manager.exceeds_max_hours(member, slots):
            conflicts.append(
                FacultyConflict(
                    id=f"faculty-overload-{instructor_id}",
                    severity=Severity.ERROR,
                    message=(
                        f"Instructor {instructor_id} overloaded: "
                        f"{manager.total_hours(slots):g}h assigned, "
                        f"max {member.max_weekly_hours:g}h"
                    ),
                    affected_section_ids=[s.id for s in ordered],
                    instructor_id=instructor_id,
                    issue=FacultyIssue.OVERLOAD,
                )
            )

        windows = {instructor_id: member.available_slots}
        for section in ordered:
            outside = [
                slot
                for slot in section.time_slots
                if not manager.is_faculty_available(instructor_id, slot, windows)
            ]
            if outside:
                conflicts.append(
                    FacultyConflict(
                        id=f"faculty-unavailable-{instructor_id}-{section.id}",
                        severity=Severity.ERROR,
                        message=(
                            f"Instructor {instructor_id} is not available for "
                            f"{section.id} on {outside[0].label}"
                        ),
                        affected_section_ids=[section.id],
                        instructor_id=instructor_id,
                        issue=FacultyIssue.UNAVAILABLE,
                    )
                )
    return conflicts


def detect_room_conflicts(sections: list[Section]) -> list[ScheduleConflict]:
    """Detect pairs of sections booked into one room at overlapping times."""
    by_room: dict[str, list[Section]] = defaultdict(list)
    for section in sections:
        if section.room_id:
            by_room[section.room_id].append(section)

    conflicts: list[ScheduleConflict] = []
    for room_id, booked in sorted(by_room.items()):
        ordered = sorted(booked, key=lambda s: s.id)
        for a, b in combinations(ordered, 2):
            overlap = first_overlap(a.time_slots, b.time_slots)
            if overlap is None:
                continue
            conflicts.append(
                RoomConflict(
                    id=f"room-{room_id}-{a.id}-{b.id}",
                    severity=Severity.ERROR,
                    message=(
                        f"Room {room_id} double-booked: {a.id} and {b.id} "
                        f"on {overlap[0].label}"
                    ),
                    affected_section_ids=[a.id, b.id],
                    room_id=room_id,
                )
            )
    return conflicts


def detect_capacity_conflicts(
    sections: list[Section], rooms: list[Room] | None = None
) -> list[ScheduleConflict]:
    """Detect sections whose enrollment exceeds available seats.

    Available seats are the section capacity, further limited by the
    assigned room's capacity when rooms are known.
    """
    room_index = {room.room_id: room for room in rooms or []}
    conflicts: list[ScheduleConflict] = []
    for section in sorted(sections, key=lambda s: s.id):
        capacity = section.capacity
        room = room_index.get(section.room_id) if section.room_id else None
        if room is not None:
            capacity = min(capacity, room.capacity)
        if section.enrolled <= capacity:
            continue
        conflicts.append(
            CapacityConflict(
                id=f"capacity-{section.id}",
                severity=Severity.WARNING,
                message=(
                    f"Capacity exceeded: {section.course_code} "
                    f"({section.enrolled}/{capacity})"
                ),
                affected_section_ids=[section.id],
                course_code=section.course_code,
                enrolled=section.enrolled,
                capacity=capacity,
                room_id=section.room_id,
            )
        )
    return conflicts


def student_sections(student: StudentContext, sections: list[Section]) -> list[Section]:
    """Resolve the sections on a student's timetable.

    Explicit ``section_ids`` win; otherwise the first section (by id) of
    each required course is used.
    """
    if student.section_ids is not None:
        wanted = set(student.section_ids)
        return sorted((s for s in sections if s.id in wanted), key=lambda s: s.id)

    chosen: dict[str, Section] = {}
    for section in sorted(sections, key=lambda s: s.id):
        if section.course_code in student.required_courses:
            chosen.setdefault(section.course_code, section)
    return sorted(chosen.values(), key=lambda s: s.id)


def detect_student_conflicts(
    student: StudentContext,
    sections: list[Section],
    courses: Mapping[str, Course] | None = None,
) -> list[ScheduleConflict]:
    """Detect problems on one student's timetable.

    Reports overlapping sections, missing prerequisites (needs
    ``courses``) and days above ``max_daily_hours``.
    """
    timetable = student_sections(student, sections)
    conflicts: list[ScheduleConflict] = []

    for a, b in combinations(timetable, 2):
        overlap = first_overlap(a.time_slots, b.time_slots)
        if overlap is None:
            continue
        conflicts.append(
            StudentOverlapConflict(
                id=f"student-{student.student_id}-{a.id}-{b.id}",
                severity=Severity.ERROR,
                message=(
                    f"Student {student.student_id} has overlapping sections "
                    f"{a.id} and {b.id} on {overlap[0].label}"
                ),
                affected_section_ids=[a.id, b.id],
                student_id=student.student_id,
            )
        )

    if courses is not None:
        completed = set(student.completed_courses)
        seen: set[str] = set()
        for section in timetable:
            course = courses.get(section.course_code)
            if course is None or course.code in seen:
                continue
            seen.add(course.code)
            missing = [p for p in course.prerequisites if p not in completed]
            if missing:
                conflicts.append(
                    PrerequisiteConflict(
                        id=f"prereq-{student.student_id}-{course.code}",
                        severity=Severity.ERROR,
                        message=(
                            f"Student {student.student_id} lacks prerequisites for "
                            f"{course.code}: {', '.join(missing)}"
                        ),
                        affected_section_ids=[section.id],
                        student_id=student.student_id,
                        course_code=course.code,
                        missing=missing,
                    )
                )

    if student.max_daily_hours is not None:
        by_day = TimeSlotManager.group_by_day(
            [slot for section in timetable for slot in section.time_slots]
        )
        for day, slots in sorted(by_day.items(), key=lambda item: item[0].value):
            hours = TimeSlotManager.total_hours(slots)
            if hours <= student.max_daily_hours:
                continue
            conflicts.append(
                DailyLoadConflict(
                    id=f"daily-{student.student_id}-{day.name.lower()}",
                    severity=Severity.WARNING,
                    message=(
                        f"Student {student.student_id} has {hours:g}h of classes on "
                        f"{day.label} (max {student.max_daily_hours:g}h)"
                    ),
                    affected_section_ids=[
                        s.id
                        for s in timetable
                        if any(slot.day == day for slot in s.time_slots)
                    ],
                    student_id=student.student_id,
                    day=day,
                    hours=hours,
                )
            )
    return conflicts


def sort_conflicts(conflicts: list[ScheduleConflict]) -> list[ScheduleConflict]:
    """Sort by severity (most severe first), then id."""
    return sorted(conflicts, key=lambda c: c.sort_key())


def detect_all_conflicts(check_input: ConflictCheckInput) -> list[ScheduleConflict]:
    """Run every detector whose inputs are present.

    Args:
        check_input: Sections, exams and optional catalog, faculty, rooms
            and student context

    Returns:
        Conflicts sorted by severity, then id
    """
    sections = check_input.sections
    conflicts: list[ScheduleConflict] = []

    if check_input.courses is not None:
        conflicts.extend(detect_time_conflicts(sections, check_input.courses))
        conflicts.extend(detect_exam_conflicts(check_input.exams, check_input.courses))
    conflicts.extend(detect_faculty_conflicts(sections, check_input.faculty))
    conflicts.extend(detect_room_conflicts(sections))
    conflicts.extend(detect_capacity_conflicts(sections, check_input.rooms))
    if check_input.student is not None:
        conflicts.extend(
            detect_student_conflicts(check_input.student, sections, check_input.courses)
        )

    unique = {conflict.id: conflict for conflict in conflicts}
    return sort_conflicts(list(unique.values()))


def check_conflicts(
    sections: list[Section],
    exams: list[Exam],
    student: StudentContext | None = None,
    courses: Mapping[str, Course] | None = None,
    faculty: list[FacultyAvailability] | None = None,
    rooms: list[Room] | None = None,
) -> list[ScheduleConflict]:
    """Check a section and exam list for conflicts."""
    return detect_all_conflicts(
        ConflictCheckInput(
            sections=sections,
            exams=exams,
            courses=courses,
            faculty=faculty,
            rooms=rooms,
            student=student,
        )
    )


def summarize_conflicts(conflicts: list[ScheduleConflict]) -> ConflictSummary:
    """Count conflicts by type and severity."""
    summary = ConflictSummary(total=len(conflicts))
    for conflict in conflicts:
        type_key = conflict.type.value
        severity_key = conflict.severity.value
        summary.by_type[type_key] = summary.by_type.get(type_key, 0) + 1
        summary.by_severity[severity_key] = summary.by_severity.get(severity_key, 0) + 1
        if not conflict.resolved:
            summary.unresolved += 1
            if conflict.is_blocking:
                summary.blocking += 1
    return summary
