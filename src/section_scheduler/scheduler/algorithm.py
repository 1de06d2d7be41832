"""Greedy section placement with local conflict repair."""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass

from ..exceptions import GenerationError, UnplaceableSectionError
from .constants import (
    DAY_END,
    DAY_START,
    ELECTIVE_OFFER_FACTOR,
    MAX_CANDIDATE_CHECKS,
    MAX_ELECTIVES_OFFERED,
    MAX_REPAIR_ROUNDS,
    SECTION_CAPACITY,
    SLOT_GRANULARITY,
)
from .exams import ExamScheduler
from .models import (
    Course,
    CourseType,
    Day,
    Exam,
    FacultyAvailability,
    GeneratedSchedule,
    GenerationRequest,
    OptimizationGoal,
    PlanningSnapshot,
    ScheduleMetadata,
    Section,
    StudentCohort,
    TimeSlot,
    UnplacedReason,
    UnplacedSection,
)
from .resolution import ConflictResolutionEngine, apply_action
from .rooms import RoomManager
from .timeslots import BusyIndex, TimeSlotManager

logger = logging.getLogger(__name__)


@dataclass
class CourseDemand:
    """A course to offer with its expected head-count."""

    course: Course
    level: int
    demand: int


def top_electives_by_demand(
    cohort: StudentCohort, courses: dict[str, Course] | None, limit: int
) -> list[tuple[str, int]]:
    """Rank a cohort's electives by demand.

    Ties are broken by course code. Courses missing from the catalog,
    required courses and courses taught by other departments are skipped.

    Args:
        cohort: Cohort with elective preferences
        courses: Course catalog keyed by code
        limit: Maximum number of electives to return

    Returns:
        List of (course_code, demand), most wanted first
    """
    totals: dict[str, int] = defaultdict(int)
    for preference in cohort.elective_preferences:
        totals[preference.course_code] += preference.count

    ranked = []
    for code, count in totals.items():
        course = (courses or {}).get(code)
        if course is None or course.course_type != CourseType.ELECTIVE:
            continue
        if not course.department_managed or count <= 0:
            continue
        ranked.append((code, count))
    ranked.sort(key=lambda item: (-item[1], item[0]))
    return ranked[: max(limit, 0)]


def split_enrollment(demand: int, sections: int) -> list[int]:
    """Split a head-count as evenly as possible, larger shares first."""
    base, remainder = divmod(demand, sections)
    return [base + 1 if i < remainder else base for i in range(sections)]


class ScheduleGenerator:
    """Builds a conflict-aware draft schedule from a planning snapshot.

    Placement is greedy: sections are taken hardest first (required
    courses, fewest qualified instructors) and each gets the first
    morning-first slot set that satisfies instructor availability, load
    cap and room capacity. A bounded repair pass then applies automatic
    resolutions that strictly reduce the conflict count. The result is
    fully deterministic for identical inputs.
    """

    def __init__(
        self,
        section_capacity: int = SECTION_CAPACITY,
        granularity_minutes: int = SLOT_GRANULARITY,
        day_start: int = DAY_START,
        day_end: int = DAY_END,
        days: list[Day] | None = None,
        max_candidate_checks: int = MAX_CANDIDATE_CHECKS,
        max_repair_rounds: int = MAX_REPAIR_ROUNDS,
    ) -> None:
        """Initialize the generator.

        Args:
            section_capacity: Seats per generated section
            granularity_minutes: Meeting length in minutes
            day_start: Earliest meeting start, minutes since midnight
            day_end: Latest meeting end, minutes since midnight
            days: Working days (Sunday to Thursday by default)
            max_candidate_checks: Slot checks allowed per section
            max_repair_rounds: Passes of the local repair loop
        """
        if section_capacity <= 0:
            raise ValueError("section_capacity must be positive")
        self.section_capacity = section_capacity
        self.time_manager = TimeSlotManager(days, day_start, day_end, granularity_minutes)
        self.max_candidate_checks = max_candidate_checks
        self.max_repair_rounds = max_repair_rounds

    def generate(
        self, snapshot: PlanningSnapshot, request: GenerationRequest
    ) -> GeneratedSchedule:
        """Generate a schedule for the requested levels.

        Args:
            snapshot: Validated planning data
            request: Semester, levels, irregular flag and optimization goals

        Returns:
            GeneratedSchedule with sections, exams, conflicts and metadata

        Raises:
            GenerationError: If a requested level was not collected
            UnplaceableSectionError: If a required course has no qualified
                instructor at all
        """
        levels = sorted(set(request.levels))
        missing = [level for level in levels if level not in snapshot.curriculum]
        if not levels or missing:
            raise GenerationError(f"Levels not present in planning data: {missing or levels}")

        demands = self.build_demand(snapshot, request, levels)
        for item in demands:
            if item.course.is_required and not snapshot.qualified_faculty(item.course.code):
                raise UnplaceableSectionError(item.course.code, "no qualified instructor")

        logger.info(
            f"Generating {request.semester} schedule for levels {levels}: "
            f"{len(demands)} courses to offer"
        )

        self._instructor_busy = BusyIndex()
        self._cohort_busy = BusyIndex()
        self._room_manager = RoomManager(list(snapshot.rooms))
        self._availability = self.time_manager.build_availability_index(list(snapshot.faculty))
        self._candidates = self.time_manager.priority_order(self.time_manager.generate_slots())

        sections = self._reserve_fixed_sections(snapshot)
        unplaced: list[UnplacedSection] = []

        for item in self._placement_order(snapshot, demands):
            count = math.ceil(item.demand / self.section_capacity)
            for index, enrolled in enumerate(split_enrollment(item.demand, count), start=1):
                section = Section(
                    id=f"{item.course.code}-{index}",
                    course_code=item.course.code,
                    capacity=self.section_capacity,
                    enrolled=enrolled,
                )
                failure = self._place_section(section, item, snapshot, request)
                if failure is None:
                    sections.append(section)
                else:
                    logger.warning(
                        f"Could not place {section.id}: {failure.reason.value} ({failure.details})"
                    )
                    unplaced.append(failure)

        offered_codes = {s.course_code for s in sections}
        exam_courses = [
            (item.course, item.demand) for item in demands if item.course.code in offered_codes
        ]
        exams, unscheduled_exams = ExamScheduler(list(snapshot.rooms)).schedule(exam_courses)

        engine = ConflictResolutionEngine(
            list(snapshot.rooms), list(snapshot.faculty), snapshot.courses, self.time_manager
        )
        if request.has_goal(OptimizationGoal.REPAIR_CONFLICTS):
            sections, exams = self._repair(engine, sections, exams)

        conflicts = engine.check(sections, exams)
        if conflicts:
            logger.warning(f"{len(conflicts)} conflict(s) remain in the draft schedule")

        schedule = GeneratedSchedule(
            semester=request.semester,
            levels=levels,
            sections=sections,
            exams=exams,
            conflicts=conflicts,
            unplaced_sections=unplaced,
            unscheduled_exams=unscheduled_exams,
            metadata=self.compute_metadata(snapshot, sections, exams),
        )
        logger.info(
            f"Generated {schedule.id}: {schedule.metadata.total_sections} sections, "
            f"{schedule.metadata.total_exams} exams, {len(unplaced)} unplaced"
        )
        return schedule

    def build_demand(
        self,
        snapshot: PlanningSnapshot,
        request: GenerationRequest,
        levels: list[int],
    ) -> list[CourseDemand]:
        """Work out which courses to offer and for how many students."""
        irregular_need: dict[str, int] = defaultdict(int)
        if request.consider_irregular_students:
            for student in snapshot.irregular_students:
                for code in set(student.required_courses):
                    irregular_need[code] += 1

        demands: dict[str, CourseDemand] = {}
        for level in levels:
            plan = snapshot.curriculum[level]
            cohort = snapshot.cohorts.get(level)
            cohort_size = cohort.count if cohort else 0

            for code in plan.required_courses:
                course = snapshot.courses.get(code)
                if course is None or not course.department_managed or code in demands:
                    continue
                demand = cohort_size + irregular_need.get(code, 0)
                if demand > 0:
                    demands[code] = CourseDemand(course, level, demand)

            if cohort is not None and plan.elective_slots > 0:
                limit = min(plan.elective_slots * ELECTIVE_OFFER_FACTOR, MAX_ELECTIVES_OFFERED)
                for code, count in top_electives_by_demand(cohort, snapshot.courses, limit):
                    if code not in demands:
                        demands[code] = CourseDemand(snapshot.courses[code], level, count)

        # Remaining courses of irregular students outside the requested plans
        for code, count in sorted(irregular_need.items()):
            course = snapshot.courses.get(code)
            if course is None or not course.department_managed or code in demands:
                continue
            demands[code] = CourseDemand(course, course.level, count)

        return list(demands.values())

    def _placement_order(
        self, snapshot: PlanningSnapshot, demands: list[CourseDemand]
    ) -> list[CourseDemand]:
        return sorted(
            demands,
            key=lambda d: (
                not d.course.is_required,
                len(snapshot.qualified_faculty(d.course.code)),
                d.level,
                d.course.code,
            ),
        )

    def _cohort_key(self, level: int, course_code: str) -> str:
        return f"{level}:{course_code}"

    def _cohort_free(self, level: int, course_code: str, slot: TimeSlot) -> bool:
        prefix = f"{level}:"
        own = self._cohort_key(level, course_code)
        return all(
            self._cohort_busy.is_free(key, slot)
            for key in self._cohort_busy.entities()
            if key.startswith(prefix) and key != own
        )

    def _reserve_fixed_sections(self, snapshot: PlanningSnapshot) -> list[Section]:
        """Copy sections taught by other departments and block their time."""
        fixed = []
        for existing in snapshot.existing_sections:
            course = snapshot.courses.get(existing.course_code)
            if course is None or course.department_managed:
                continue
            section = existing.copy()
            for slot in section.time_slots:
                if section.instructor_id:
                    self._instructor_busy.reserve(section.instructor_id, slot)
                self._cohort_busy.reserve(self._cohort_key(course.level, course.code), slot)
            if section.room_id:
                self._room_manager.reserve(section.room_id, section.time_slots)
            fixed.append(section)
        if fixed:
            logger.info(f"Reserved {len(fixed)} fixed section(s) from other departments")
        return fixed

    def _ordered_instructors(
        self, candidates: list[FacultyAvailability], request: GenerationRequest
    ) -> list[FacultyAvailability]:
        if request.has_goal(OptimizationGoal.BALANCE_FACULTY_LOAD):
            return sorted(
                candidates,
                key=lambda f: (self._instructor_busy.hours_for(f.instructor_id), f.instructor_id),
            )
        return sorted(candidates, key=lambda f: f.instructor_id)

    def _place_section(
        self,
        section: Section,
        item: CourseDemand,
        snapshot: PlanningSnapshot,
        request: GenerationRequest,
    ) -> UnplacedSection | None:
        """Place one section, mutating it on success.

        Returns:
            None when placed, otherwise the UnplacedSection record
        """
        course = item.course

        def unplaced(reason: UnplacedReason, details: str) -> UnplacedSection:
            return UnplacedSection(section.id, course.code, item.level, reason, details)

        qualified = snapshot.qualified_faculty(course.code)
        if not qualified:
            return unplaced(
                UnplacedReason.NO_QUALIFIED_INSTRUCTOR, "No instructor teaches this course"
            )

        granularity = self.time_manager.granularity_minutes
        meetings = max(1, math.ceil(course.credits * 60 / granularity))
        needed_hours = meetings * granularity / 60
        cohort_key = self._cohort_key(item.level, course.code)

        if request.has_goal(OptimizationGoal.MINIMIZE_STUDENT_CONFLICTS):
            passes = [True, False]
        else:
            passes = [False]
        checks = 0
        overloaded: set[str] = set()
        saw_available = False
        saw_room_shortage = False

        for strict in passes:
            for member in self._ordered_instructors(qualified, request):
                instructor_id = member.instructor_id
                load = self._instructor_busy.hours_for(instructor_id)
                if load + needed_hours > member.max_weekly_hours:
                    overloaded.add(instructor_id)
                    continue

                chosen: list[TimeSlot] = []
                for slot in self._candidates:
                    checks += 1
                    if checks > self.max_candidate_checks:
                        return unplaced(
                            UnplacedReason.SEARCH_LIMIT,
                            f"Gave up after {self.max_candidate_checks} slot checks",
                        )
                    if any(slot.day == c.day for c in chosen):
                        continue
                    if not self.time_manager.is_faculty_available(
                        instructor_id, slot, self._availability
                    ):
                        continue
                    saw_available = True
                    if not self._instructor_busy.is_free(instructor_id, slot):
                        continue
                    if strict and not self._cohort_free(item.level, course.code, slot):
                        continue
                    room = self._room_manager.find_room(
                        section.capacity, chosen + [slot], allow_undersized=True
                    )
                    if room is None:
                        saw_room_shortage = True
                        continue
                    chosen.append(slot)
                    if len(chosen) == meetings:
                        break

                if len(chosen) < meetings:
                    continue

                room = self._room_manager.find_room(
                    section.capacity, chosen, allow_undersized=True
                )
                self._room_manager.reserve(room.room_id, chosen)
                for slot in chosen:
                    self._instructor_busy.reserve(instructor_id, slot)
                    self._cohort_busy.reserve(cohort_key, slot)
                section.instructor_id = instructor_id
                section.room_id = room.room_id
                section.time_slots = sorted(chosen, key=lambda s: s.sort_key())
                logger.debug(
                    f"Placed {section.id} with {instructor_id} in {room.room_id}: "
                    f"{', '.join(s.label for s in section.time_slots)}"
                )
                return None

        if len(overloaded) == len(qualified):
            return unplaced(
                UnplacedReason.INSTRUCTOR_OVERLOADED,
                "All qualified instructors would exceed their weekly hours "
                f"({needed_hours:g}h needed)",
            )
        if not saw_available:
            return unplaced(
                UnplacedReason.INSTRUCTOR_UNAVAILABLE,
                "No candidate slot lies within a qualified instructor's availability",
            )
        if saw_room_shortage:
            return unplaced(
                UnplacedReason.NO_ROOM_AVAILABLE,
                f"No free room for {section.capacity} seats at the remaining slots",
            )
        return unplaced(
            UnplacedReason.NO_SLOT_AVAILABLE,
            f"No {meetings} free meeting slot(s) on distinct days",
        )

    def _repair(
        self,
        engine: ConflictResolutionEngine,
        sections: list[Section],
        exams: list[Exam],
    ) -> tuple[list[Section], list[Exam]]:
        """Apply automatic resolutions that strictly reduce the conflict count."""
        for round_number in range(1, self.max_repair_rounds + 1):
            conflicts = engine.check(sections, exams)
            current_ids = {c.id for c in conflicts}
            changed = False
            for conflict in conflicts:
                if not conflict.is_blocking or conflict.id not in current_ids:
                    continue
                result = engine.auto_resolve_conflict(conflict, sections, exams)
                if not result.success:
                    continue
                new_sections, new_exams = sections, exams
                for action in result.actions:
                    new_sections, new_exams = apply_action(new_sections, new_exams, action)
                new_ids = {c.id for c in engine.check(new_sections, new_exams)}
                if len(new_ids) >= len(current_ids):
                    continue
                logger.debug(f"Repair round {round_number}: {result.message}")
                sections, exams, current_ids = new_sections, new_exams, new_ids
                changed = True
            if not changed:
                break
        return sections, exams

    def compute_metadata(
        self,
        snapshot: PlanningSnapshot,
        sections: list[Section],
        exams: list[Exam],
    ) -> ScheduleMetadata:
        """Compute totals and utilization percentages."""
        faculty_index = {f.instructor_id: f for f in snapshot.faculty}
        assigned_hours: dict[str, float] = defaultdict(float)
        for section in sections:
            if section.instructor_id in faculty_index:
                assigned_hours[section.instructor_id] += section.weekly_hours
        capacity_hours = sum(faculty_index[i].max_weekly_hours for i in assigned_hours)
        faculty_utilization = (
            sum(assigned_hours.values()) / capacity_hours * 100 if capacity_hours else 0.0
        )

        week_minutes = len(self.time_manager.days) * (
            self.time_manager.day_end - self.time_manager.day_start
        )
        room_ids = {room.room_id for room in snapshot.rooms}
        occupied = sum(
            slot.duration_minutes
            for section in sections
            if section.room_id in room_ids
            for slot in section.time_slots
        )
        total_room_minutes = len(room_ids) * week_minutes
        room_utilization = occupied / total_room_minutes * 100 if total_room_minutes else 0.0

        by_level: dict[int, int] = defaultdict(int)
        for section in sections:
            course = snapshot.courses.get(section.course_code)
            if course is not None:
                by_level[course.level] += 1

        return ScheduleMetadata(
            total_sections=len(sections),
            total_exams=len(exams),
            faculty_utilization=round(faculty_utilization, 1),
            room_utilization=round(room_utilization, 1),
            sections_by_level=dict(by_level),
        )


def generate(
    snapshot: PlanningSnapshot, request: GenerationRequest, **options
) -> GeneratedSchedule:
    """Generate a schedule with a default-configured generator."""
    return ScheduleGenerator(**options).generate(snapshot, request)
