"""Conflict resolution: ranked alternatives, auto and manual resolve."""

import logging
from typing import Mapping

from ..exceptions import ResolutionImpossibleError
from .conflicts import detect_all_conflicts, first_overlap, sort_conflicts
from .constants import DEFAULT_SUGGESTION_LIMIT
from .exams import exam_window_slots
from .models import (
    ConflictCheckInput,
    ConflictType,
    Course,
    Exam,
    ExamConflict,
    ExamSlotChange,
    FacultyAvailability,
    FacultyConflict,
    FacultyIssue,
    GeneratedSchedule,
    InstructorChange,
    ManualResolution,
    RankedRoom,
    RankedSlot,
    ResolutionAction,
    ResolutionMode,
    ResolutionOption,
    ResolutionResult,
    Room,
    RoomChange,
    ScheduleConflict,
    Section,
    StudentContext,
    TimeSlot,
    TimeSlotChange,
)
from .timeslots import TimeSlotManager

logger = logging.getLogger(__name__)

# Base score of any feasible option; candidate quality adds up to 20 more
BASE_OPTION_SCORE = 70.0
# Bonus per additional existing conflict an option also clears
CLEARED_CONFLICT_BONUS = 5.0
# Candidate slots tried per section before validation
CANDIDATES_PER_SECTION = 10
# Conflicts that only exist on a particular student's timetable
STUDENT_CONFLICT_TYPES = (
    ConflictType.STUDENT_OVERLAP,
    ConflictType.PREREQUISITE,
    ConflictType.DAILY_LOAD,
)
STUDENT_CONTEXT_REQUIRED = "Student conflicts need the student's context to validate a change"


def apply_action(
    sections: list[Section], exams: list[Exam], action: ResolutionAction
) -> tuple[list[Section], list[Exam]]:
    """Apply an action to copies of the sections and exams.

    Args:
        sections: Current sections (left untouched)
        exams: Current exams (left untouched)
        action: Change to apply

    Returns:
        Tuple of (new sections, new exams)

    Raises:
        ValueError: If the action names an unknown section, meeting or exam
    """
    new_sections = [s.copy() for s in sections]
    new_exams = [e.copy() for e in exams]

    if isinstance(action, ExamSlotChange):
        for exam in new_exams:
            if exam.course_code == action.course_code and exam.exam_type == action.exam_type:
                exam.time_slot = action.new_slot
                return new_sections, new_exams
        raise ValueError(f"Unknown exam {action.course_code} {action.exam_type.value}")

    section = next((s for s in new_sections if s.id == action.section_id), None)
    if section is None:
        raise ValueError(f"Unknown section '{action.section_id}'")

    if isinstance(action, TimeSlotChange):
        if action.replaces is None:
            section.time_slots = [action.new_slot]
        elif action.replaces in section.time_slots:
            index = section.time_slots.index(action.replaces)
            section.time_slots[index] = action.new_slot
        else:
            raise ValueError(
                f"Section '{section.id}' has no meeting at {action.replaces.label}"
            )
    elif isinstance(action, RoomChange):
        section.room_id = action.new_room_id
    elif isinstance(action, InstructorChange):
        section.instructor_id = action.new_instructor_id
    return new_sections, new_exams


class ConflictResolutionEngine:
    """Proposes, validates and applies fixes for individual conflicts.

    An option is only offered if applying it removes the target conflict
    without introducing any conflict id that was not already present, so
    accepting an option never worsens the schedule.
    """

    def __init__(
        self,
        rooms: list[Room],
        faculty: list[FacultyAvailability],
        courses: Mapping[str, Course],
        time_manager: TimeSlotManager | None = None,
        suggestion_limit: int = DEFAULT_SUGGESTION_LIMIT,
    ) -> None:
        self.rooms = sorted(rooms, key=lambda r: (r.capacity, r.room_id))
        self.faculty = sorted(faculty, key=lambda f: f.instructor_id)
        self.courses = courses
        self.time_manager = time_manager or TimeSlotManager()
        self.suggestion_limit = suggestion_limit
        self._faculty_index = {f.instructor_id: f for f in self.faculty}

    def check(
        self,
        sections: list[Section],
        exams: list[Exam],
        student: StudentContext | None = None,
    ) -> list[ScheduleConflict]:
        """Run the full checker with the engine's reference data."""
        return detect_all_conflicts(
            ConflictCheckInput(
                sections=sections,
                exams=exams,
                courses=self.courses,
                faculty=self.faculty,
                rooms=self.rooms,
                student=student,
            )
        )

    @staticmethod
    def needs_student(conflict: ScheduleConflict, student: StudentContext | None) -> bool:
        """True if validating a fix for the conflict requires a student we lack."""
        return conflict.type in STUDENT_CONFLICT_TYPES and student is None

    def is_movable(self, section: Section) -> bool:
        """Sections of courses taught by other departments are fixed."""
        course = self.courses.get(section.course_code)
        return course is None or course.department_managed

    def suggest_alternative_time_slots(
        self,
        section: Section,
        occupied_slots: list[TimeSlot],
        limit: int | None = None,
        replaces: TimeSlot | None = None,
        allowed_windows: list[TimeSlot] | None = None,
    ) -> list[RankedSlot]:
        """Rank slots a section meeting could move to.

        Candidates have the meeting's duration, overlap nothing in
        ``occupied_slots`` or the section's other meetings, and (when given)
        fit inside ``allowed_windows``. Slots close to the original score
        higher; a second meeting on a day the section already uses costs
        points.

        Args:
            section: Section being moved
            occupied_slots: Slots the new meeting must avoid
            limit: Maximum results
            replaces: Meeting being moved; all meetings when omitted
            allowed_windows: Availability windows the slot must fit in

        Returns:
            Ranked slots, best first
        """
        if limit is None:
            limit = self.suggestion_limit
        reference = replaces or (section.time_slots[0] if section.time_slots else None)
        duration = (
            reference.duration_minutes if reference else self.time_manager.granularity_minutes
        )
        if replaces is not None:
            kept = [s for s in section.time_slots if s != replaces]
        else:
            kept = []
        kept_days = {s.day for s in kept}
        current = set(section.time_slots)

        ranked = []
        for candidate in self.time_manager.generate_slots(granularity_minutes=duration):
            if candidate in current:
                continue
            if any(candidate.overlaps(o) for o in occupied_slots):
                continue
            if any(candidate.overlaps(k) for k in kept):
                continue
            if allowed_windows is not None and not any(
                w.contains(candidate) for w in allowed_windows
            ):
                continue

            score = 100.0
            reasons = []
            if reference is not None:
                day_distance = abs(candidate.day.value - reference.day.value)
                hour_distance = abs(candidate.start_minutes - reference.start_minutes) / 60
                score -= day_distance * 5 + hour_distance * 3
                if day_distance == 0:
                    reasons.append("same day")
                else:
                    reasons.append(f"moves to {candidate.day.label}")
                if hour_distance:
                    reasons.append(f"{hour_distance:g}h from original start")
            if candidate.day in kept_days:
                score -= 15
                reasons.append("second meeting that day")
            reasons.append("free for everyone involved")
            ranked.append(RankedSlot(candidate, round(max(score, 0.0), 1), ", ".join(reasons)))

        ranked.sort(key=lambda r: (-r.score, r.slot.sort_key()))
        return ranked[:limit]

    def suggest_alternative_rooms(
        self,
        section: Section,
        occupied_rooms: set[str] | list[str],
        required_capacity: int | None = None,
        limit: int | None = None,
    ) -> list[RankedRoom]:
        """Rank free rooms that seat the section, least wasted seats first.

        Args:
            section: Section needing a room
            occupied_rooms: Rooms busy at the section's meetings
            required_capacity: Seats needed; defaults to the larger of
                section capacity and enrollment
            limit: Maximum results

        Returns:
            Ranked rooms, best first
        """
        if limit is None:
            limit = self.suggestion_limit
        if required_capacity is None:
            required_capacity = max(section.capacity, section.enrolled)
        occupied = set(occupied_rooms)

        ranked = []
        for room in self.rooms:
            if room.room_id in occupied or room.room_id == section.room_id:
                continue
            if room.capacity < required_capacity:
                continue
            wasted = room.capacity - required_capacity
            ranked.append(
                RankedRoom(
                    room_id=room.room_id,
                    capacity=room.capacity,
                    score=float(max(100 - wasted, 0)),
                    reason=f"Seats {room.capacity} for {required_capacity} ({wasted} spare)",
                )
            )
        ranked.sort(key=lambda r: (r.capacity - required_capacity, r.room_id))
        return ranked[:limit]

    def generate_resolution_options(
        self,
        conflict: ScheduleConflict,
        all_sections: list[Section],
        exams: list[Exam] | None = None,
        student: StudentContext | None = None,
    ) -> list[ResolutionOption]:
        """Enumerate validated options for one conflict, best first.

        Student-scoped conflicts are only visible to the checker with the
        student's context, so without one no option is offered for them.
        """
        if self.needs_student(conflict, student):
            logger.info(f"No student context given; cannot validate fixes for {conflict.id}")
            return []
        exams = list(exams or [])
        baseline = {c.id for c in self.check(all_sections, exams, student)}

        options = []
        for action, quality, impact in self._candidate_actions(conflict, all_sections, exams):
            try:
                new_sections, new_exams = apply_action(all_sections, exams, action)
            except ValueError:
                continue
            after = {c.id for c in self.check(new_sections, new_exams, student)}
            if conflict.id in after or not after <= baseline:
                continue
            cleared = len(baseline - after - {conflict.id})
            score = BASE_OPTION_SCORE + quality * 0.2 + cleared * CLEARED_CONFLICT_BONUS
            if cleared:
                impact = f"{impact}; also clears {cleared} other conflict(s)"
            options.append(
                ResolutionOption(
                    description=action.describe(),
                    action=action,
                    score=round(score, 1),
                    impact=impact,
                )
            )

        options.sort(key=lambda o: (-o.score, o.description))
        return options

    def auto_resolve_conflict(
        self,
        conflict: ScheduleConflict,
        all_sections: list[Section],
        exams: list[Exam] | None = None,
        student: StudentContext | None = None,
    ) -> ResolutionResult:
        """Pick the best feasible option without applying it."""
        try:
            option = self._best_option(conflict, all_sections, exams, student)
        except ResolutionImpossibleError as e:
            logger.info(str(e))
            return ResolutionResult(success=False, message=e.reason)
        return ResolutionResult(
            success=True,
            message=f"{option.description} ({option.impact})",
            actions=[option.action],
            score=option.score,
        )

    def manual_resolve(
        self,
        conflict: ScheduleConflict,
        all_sections: list[Section],
        manual: ManualResolution,
        exams: list[Exam] | None = None,
        student: StudentContext | None = None,
    ) -> ResolutionResult:
        """Validate a human-chosen change against the full checker."""
        if self.needs_student(conflict, student):
            return ResolutionResult(False, STUDENT_CONTEXT_REQUIRED)
        exams = list(exams or [])
        section = next((s for s in all_sections if s.id == manual.section_id), None)
        if section is None:
            return ResolutionResult(False, f"Unknown section '{manual.section_id}'")

        actions: list[ResolutionAction] = []
        if manual.new_slot is not None:
            if not self.is_movable(section):
                return ResolutionResult(
                    False, f"Section '{section.id}' is managed by another department"
                )
            actions.append(TimeSlotChange(section.id, manual.new_slot, manual.replaces))
        if manual.new_room_id is not None:
            room = next((r for r in self.rooms if r.room_id == manual.new_room_id), None)
            if room is None:
                return ResolutionResult(False, f"Unknown room '{manual.new_room_id}'")
            actions.append(RoomChange(section.id, room.room_id, room.capacity))
        if manual.new_instructor_id is not None:
            member = self._faculty_index.get(manual.new_instructor_id)
            if member is None or not member.can_teach(section.course_code):
                return ResolutionResult(
                    False,
                    f"Instructor '{manual.new_instructor_id}' cannot teach {section.course_code}",
                )
            actions.append(InstructorChange(section.id, member.instructor_id))
        if not actions:
            return ResolutionResult(False, "No change given")

        baseline = {c.id for c in self.check(all_sections, exams, student)}
        sections, new_exams = all_sections, exams
        try:
            for action in actions:
                sections, new_exams = apply_action(sections, new_exams, action)
        except ValueError as e:
            return ResolutionResult(False, str(e))

        after = {c.id for c in self.check(sections, new_exams, student)}
        if conflict.id in after:
            return ResolutionResult(False, f"Conflict '{conflict.id}' persists after the change")
        introduced = sorted(after - baseline)
        if introduced:
            return ResolutionResult(
                False, f"Change introduces new conflicts: {', '.join(introduced)}"
            )
        return ResolutionResult(
            True, "; ".join(a.describe() for a in actions), actions=actions
        )

    def resolve(
        self,
        conflict: ScheduleConflict,
        all_sections: list[Section],
        mode: ResolutionMode | str = ResolutionMode.AUTO,
        manual_action: ManualResolution | None = None,
        exams: list[Exam] | None = None,
        student: StudentContext | None = None,
    ) -> ResolutionResult:
        """Resolve a conflict automatically or validate a manual change."""
        if ResolutionMode(mode) == ResolutionMode.MANUAL:
            if manual_action is None:
                return ResolutionResult(False, "Manual resolution requires a change")
            return self.manual_resolve(conflict, all_sections, manual_action, exams, student)
        return self.auto_resolve_conflict(conflict, all_sections, exams, student)

    def apply_to_schedule(
        self,
        schedule: GeneratedSchedule,
        conflict: ScheduleConflict,
        actions: list[ResolutionAction],
        student: StudentContext | None = None,
    ) -> list[ScheduleConflict]:
        """Apply accepted actions to a schedule and re-check it.

        The schedule is updated in place. The target conflict is kept in
        the conflict list marked as resolved if it no longer occurs.
        Stored student conflicts are carried over unless they belong to
        ``student``, whose timetable is checked again.

        Returns:
            The schedule's new conflict list
        """
        sections, exams = schedule.sections, schedule.exams
        for action in actions:
            sections, exams = apply_action(sections, exams, action)
        schedule.sections = sections
        schedule.exams = exams

        rechecked = student.student_id if student is not None else None
        carried = [
            c
            for c in schedule.conflicts
            if c.type in STUDENT_CONFLICT_TYPES
            and not c.resolved
            and c.student_id != rechecked
        ]
        conflicts = sort_conflicts(self.check(sections, exams, student) + carried)
        if all(c.id != conflict.id for c in conflicts):
            conflict.resolved = True
            conflicts.append(conflict)
        schedule.conflicts = conflicts
        schedule.id = schedule.content_id()
        logger.info(
            f"Applied {len(actions)} change(s) for {conflict.id}; "
            f"{len(conflicts)} conflict record(s) remain"
        )
        return conflicts

    def attach_suggestions(
        self,
        conflicts: list[ScheduleConflict],
        sections: list[Section],
        exams: list[Exam] | None = None,
        per_conflict: int = 3,
        student: StudentContext | None = None,
    ) -> list[ScheduleConflict]:
        """Fill each conflict's resolution_suggestions with option descriptions."""
        for conflict in conflicts:
            options = self.generate_resolution_options(conflict, sections, exams, student)
            if options:
                conflict.resolution_suggestions = [o.description for o in options[:per_conflict]]
            else:
                conflict.resolution_suggestions = [self._manual_hint(conflict)]
        return conflicts

    def _best_option(
        self,
        conflict: ScheduleConflict,
        all_sections: list[Section],
        exams: list[Exam] | None,
        student: StudentContext | None = None,
    ) -> ResolutionOption:
        if self.needs_student(conflict, student):
            raise ResolutionImpossibleError(conflict.id, STUDENT_CONTEXT_REQUIRED)
        options = self.generate_resolution_options(conflict, all_sections, exams, student)
        if not options:
            raise ResolutionImpossibleError(conflict.id, self._manual_hint(conflict))
        return options[0]

    def _manual_hint(self, conflict: ScheduleConflict) -> str:
        if conflict.type == ConflictType.CAPACITY:
            return "Enrollment exceeds section capacity; open an additional section"
        if conflict.type == ConflictType.PREREQUISITE:
            return "Student must complete prerequisites first; review with an advisor"
        if conflict.type == ConflictType.DAILY_LOAD:
            return "Choose a different section to spread the student's week"
        return "No feasible automatic change; resolve manually"

    def _candidate_actions(
        self,
        conflict: ScheduleConflict,
        sections: list[Section],
        exams: list[Exam],
    ) -> list[tuple[ResolutionAction, float, str]]:
        """Unvalidated candidate actions with a quality score from 0 to 100."""
        if isinstance(conflict, ExamConflict):
            return self._exam_candidates(conflict, exams)

        by_id = {s.id: s for s in sections}
        affected = [by_id[sid] for sid in conflict.affected_section_ids if sid in by_id]
        movable = [s for s in affected if self.is_movable(s)]
        candidates: list[tuple[ResolutionAction, float, str]] = []

        if conflict.type == ConflictType.CAPACITY:
            for section in movable:
                candidates.extend(self._room_candidates(section, sections, section.enrolled))
            return candidates

        if isinstance(conflict, FacultyConflict) and conflict.issue == FacultyIssue.OVERLOAD:
            for section in sorted(movable, key=lambda s: (-s.weekly_hours, s.id)):
                candidates.extend(self._instructor_candidates(section, sections))
            return candidates

        if conflict.type in (ConflictType.PREREQUISITE, ConflictType.DAILY_LOAD):
            return []

        # Electives move before required courses, later section ids first
        movable.sort(key=lambda s: s.id, reverse=True)
        movable.sort(key=self._is_required)
        for section in movable:
            others = [s for s in affected if s.id != section.id]
            candidates.extend(self._time_candidates(section, sections, others))
            if conflict.type == ConflictType.ROOM:
                candidates.extend(
                    self._room_candidates(
                        section, sections, max(section.capacity, section.enrolled)
                    )
                )
            if isinstance(conflict, FacultyConflict):
                candidates.extend(self._instructor_candidates(section, sections))
        return candidates

    def _is_required(self, section: Section) -> bool:
        course = self.courses.get(section.course_code)
        return course is not None and course.is_required

    def _occupied_for(
        self, section: Section, sections: list[Section], avoid: list[Section] | None = None
    ) -> list[TimeSlot]:
        """Slots held by anyone sharing the section's instructor, room or cohort.

        Sections in ``avoid`` block their slots whatever their level; they
        are the other parties to the conflict being resolved.
        """
        course = self.courses.get(section.course_code)
        level = course.level if course else None
        avoid_ids = {s.id for s in avoid or []}
        occupied = []
        for other in sections:
            if other.id == section.id:
                continue
            if other.id in avoid_ids:
                occupied.extend(other.time_slots)
                continue
            same_instructor = section.instructor_id and other.instructor_id == section.instructor_id
            same_room = section.room_id and other.room_id == section.room_id
            other_course = self.courses.get(other.course_code)
            same_cohort = (
                level is not None
                and other_course is not None
                and other_course.level == level
                and other.course_code != section.course_code
            )
            if same_instructor or same_room or same_cohort:
                occupied.extend(other.time_slots)
        return occupied

    def _time_candidates(
        self, section: Section, sections: list[Section], others: list[Section]
    ) -> list[tuple[ResolutionAction, float, str]]:
        replaces = None
        for other in others:
            overlap = first_overlap(section.time_slots, other.time_slots)
            if overlap is not None:
                replaces = overlap[0]
                break
        if replaces is None and section.time_slots:
            replaces = section.time_slots[0]

        windows = None
        if section.instructor_id in self._faculty_index:
            windows = self._faculty_index[section.instructor_id].available_slots

        ranked = self.suggest_alternative_time_slots(
            section,
            self._occupied_for(section, sections, avoid=others),
            limit=CANDIDATES_PER_SECTION,
            replaces=replaces,
            allowed_windows=windows,
        )
        return [
            (
                TimeSlotChange(section.id, r.slot, replaces),
                r.score,
                f"Moves one meeting of {section.id}; {r.reason}",
            )
            for r in ranked
        ]

    def _room_candidates(
        self, section: Section, sections: list[Section], required_capacity: int
    ) -> list[tuple[ResolutionAction, float, str]]:
        occupied_rooms = {
            other.room_id
            for other in sections
            if other.id != section.id
            and other.room_id
            and first_overlap(section.time_slots, other.time_slots) is not None
        }
        ranked = self.suggest_alternative_rooms(section, occupied_rooms, required_capacity)
        return [
            (
                RoomChange(section.id, r.room_id, r.capacity),
                r.score,
                f"Keeps the time of {section.id}; {r.reason}",
            )
            for r in ranked
        ]

    def _instructor_candidates(
        self, section: Section, sections: list[Section]
    ) -> list[tuple[ResolutionAction, float, str]]:
        candidates = []
        for member in self.faculty:
            if member.instructor_id == section.instructor_id:
                continue
            if not member.can_teach(section.course_code):
                continue
            if not all(
                any(w.contains(slot) for w in member.available_slots)
                for slot in section.time_slots
            ):
                continue
            load = [
                slot
                for other in sections
                if other.instructor_id == member.instructor_id and other.id != section.id
                for slot in other.time_slots
            ]
            if any(a.overlaps(b) for a in section.time_slots for b in load):
                continue
            hours = self.time_manager.total_hours(load) + section.weekly_hours
            if hours > member.max_weekly_hours:
                continue
            utilization = hours / member.max_weekly_hours
            candidates.append(
                (
                    InstructorChange(section.id, member.instructor_id),
                    (1 - utilization) * 100,
                    f"{member.name} would teach {hours:g}h of {member.max_weekly_hours:g}h",
                )
            )
        return candidates

    def _exam_candidates(
        self, conflict: ExamConflict, exams: list[Exam]
    ) -> list[tuple[ResolutionAction, float, str]]:
        same_cohort = {
            code
            for code, course in self.courses.items()
            if course.level == conflict.level
        }
        candidates = []
        for code in reversed(conflict.course_codes):
            current = next(
                (e for e in exams if e.course_code == code and e.exam_type == conflict.exam_type),
                None,
            )
            if current is None:
                continue
            occupied = [
                e.time_slot
                for e in exams
                if e.exam_type == conflict.exam_type
                and e.course_code in same_cohort
                and e.course_code != code
            ]
            for slot in exam_window_slots(duration=current.time_slot.duration_minutes):
                if slot == current.time_slot or any(slot.overlaps(o) for o in occupied):
                    continue
                day_distance = abs(slot.day.value - current.time_slot.day.value)
                quality = max(100 - day_distance * 10, 0)
                candidates.append(
                    (
                        ExamSlotChange(code, conflict.exam_type, slot),
                        quality,
                        f"Moves the {conflict.exam_type.value} exam of {code}",
                    )
                )
        return candidates


def resolve(
    conflict: ScheduleConflict,
    all_sections: list[Section],
    mode: ResolutionMode | str = ResolutionMode.AUTO,
    manual_action: ManualResolution | None = None,
    exams: list[Exam] | None = None,
    rooms: list[Room] | None = None,
    faculty: list[FacultyAvailability] | None = None,
    courses: Mapping[str, Course] | None = None,
    student: StudentContext | None = None,
) -> ResolutionResult:
    """Resolve one conflict with an engine built from the given reference data."""
    engine = ConflictResolutionEngine(rooms or [], faculty or [], courses or {})
    return engine.resolve(conflict, all_sections, mode, manual_action, exams, student)
