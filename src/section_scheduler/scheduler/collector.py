"""Assembly and validation of planning input."""

import logging
from typing import Protocol

from ..exceptions import PlanningValidationError, ValidationIssue
from .models import (
    CollectParams,
    Course,
    CourseType,
    CurriculumLevel,
    FacultyAvailability,
    IrregularStudent,
    PlanningSnapshot,
    Room,
    Section,
    StudentCohort,
)

logger = logging.getLogger(__name__)


class PlanningDataSource(Protocol):
    """Read contract for the storage layer that owns reference data."""

    def get_courses(self) -> list[Course]: ...

    def get_curriculum(self, levels: list[int]) -> list[CurriculumLevel]: ...

    def get_cohorts(self, levels: list[int]) -> list[StudentCohort]: ...

    def get_faculty(self) -> list[FacultyAvailability]: ...

    def get_rooms(self) -> list[Room]: ...

    def get_existing_sections(self) -> list[Section]: ...

    def get_irregular_students(self, levels: list[int]) -> list[IrregularStudent]: ...


class InMemoryDataSource:
    """Data source over records already held in memory."""

    def __init__(
        self,
        courses: list[Course] | None = None,
        curriculum: list[CurriculumLevel] | None = None,
        cohorts: list[StudentCohort] | None = None,
        faculty: list[FacultyAvailability] | None = None,
        rooms: list[Room] | None = None,
        existing_sections: list[Section] | None = None,
        irregular_students: list[IrregularStudent] | None = None,
    ) -> None:
        self.courses = courses or []
        self.curriculum = curriculum or []
        self.cohorts = cohorts or []
        self.faculty = faculty or []
        self.rooms = rooms or []
        self.existing_sections = existing_sections or []
        self.irregular_students = irregular_students or []

    def get_courses(self) -> list[Course]:
        return list(self.courses)

    def get_curriculum(self, levels: list[int]) -> list[CurriculumLevel]:
        return [c for c in self.curriculum if c.level in levels]

    def get_cohorts(self, levels: list[int]) -> list[StudentCohort]:
        return [c for c in self.cohorts if c.level in levels]

    def get_faculty(self) -> list[FacultyAvailability]:
        return list(self.faculty)

    def get_rooms(self) -> list[Room]:
        return list(self.rooms)

    def get_existing_sections(self) -> list[Section]:
        return [s.copy() for s in self.existing_sections]

    def get_irregular_students(self, levels: list[int]) -> list[IrregularStudent]:
        return [s for s in self.irregular_students if s.level in levels]


class ScheduleDataCollector:
    """Builds a validated PlanningSnapshot from a data source.

    All validation problems are gathered before failing, so the caller
    sees every missing piece at once. Generation never runs on a
    partially valid snapshot.
    """

    def __init__(self, source: PlanningDataSource) -> None:
        self.source = source

    def collect(self, params: CollectParams) -> PlanningSnapshot:
        """Read and validate planning data for the requested levels.

        Args:
            params: Semester, levels and irregular-student flag

        Returns:
            Immutable planning snapshot

        Raises:
            PlanningValidationError: If any required data is missing
        """
        levels = sorted(set(params.levels))
        issues: list[ValidationIssue] = []
        if not levels:
            issues.append(
                ValidationIssue("request", "levels", "At least one level is required")
            )
            raise PlanningValidationError(issues)

        courses = self.source.get_courses()
        curriculum = self.source.get_curriculum(levels)
        cohorts = self.source.get_cohorts(levels)
        faculty = self.source.get_faculty()
        rooms = self.source.get_rooms()
        existing_sections = self.source.get_existing_sections()
        irregular_students = (
            self.source.get_irregular_students(levels)
            if params.consider_irregular_students
            else []
        )

        catalog = {c.code: c for c in courses}
        curriculum_by_level = {c.level: c for c in curriculum}
        cohorts_by_level = {c.level: c for c in cohorts}

        for level in levels:
            plan = curriculum_by_level.get(level)
            if plan is None:
                issues.append(
                    ValidationIssue("curriculum", str(level), "No curriculum for level")
                )
                continue

            cohort = cohorts_by_level.get(level)
            if cohort is None or cohort.count <= 0:
                issues.append(
                    ValidationIssue("cohort", str(level), "No student count for level")
                )
            elif plan.elective_slots > 0 and not cohort.elective_preferences:
                issues.append(
                    ValidationIssue(
                        "elective_demand",
                        str(level),
                        f"Level has {plan.elective_slots} elective slot(s) but no elective demand",
                    )
                )

            for code in plan.required_courses:
                course = catalog.get(code)
                if course is None:
                    issues.append(
                        ValidationIssue(
                            "course", code, f"Unknown course in level {level} curriculum"
                        )
                    )
                    continue
                if course.course_type != CourseType.REQUIRED:
                    issues.append(
                        ValidationIssue("course", code, "Curriculum lists an elective as required")
                    )
                    continue
                if course.department_managed and not any(
                    f.can_teach(code) for f in faculty
                ):
                    issues.append(
                        ValidationIssue(
                            "faculty", code, "No qualified instructor for required course"
                        )
                    )

            if cohort is not None:
                for preference in cohort.elective_preferences:
                    if preference.course_code not in catalog:
                        issues.append(
                            ValidationIssue(
                                "course",
                                preference.course_code,
                                f"Unknown elective in level {level} demand",
                            )
                        )

        if not rooms:
            issues.append(ValidationIssue("room", "*", "Room inventory is empty"))
        seen_rooms: set[str] = set()
        for room in rooms:
            if room.room_id in seen_rooms:
                issues.append(ValidationIssue("room", room.room_id, "Duplicate room id"))
            seen_rooms.add(room.room_id)
            if room.capacity <= 0:
                issues.append(ValidationIssue("room", room.room_id, "Capacity must be positive"))

        for member in faculty:
            if member.max_weekly_hours <= 0:
                issues.append(
                    ValidationIssue(
                        "faculty", member.instructor_id, "Max weekly hours must be positive"
                    )
                )

        for student in irregular_students:
            for code in student.required_courses:
                if code not in catalog:
                    issues.append(
                        ValidationIssue(
                            "irregular_student",
                            student.student_id,
                            f"Unknown remaining course '{code}'",
                        )
                    )

        if issues:
            for issue in issues:
                logger.warning(f"Planning issue: {issue}")
            raise PlanningValidationError(issues)

        snapshot = PlanningSnapshot.build(
            semester=params.semester,
            levels=levels,
            courses=courses,
            curriculum=[curriculum_by_level[level] for level in levels],
            cohorts=[cohorts_by_level[level] for level in levels],
            faculty=faculty,
            rooms=rooms,
            existing_sections=existing_sections,
            irregular_students=irregular_students,
        )
        logger.info(
            f"Collected planning data for levels {levels}: {len(courses)} courses, "
            f"{len(faculty)} instructors, {len(rooms)} rooms, "
            f"{len(irregular_students)} irregular students"
        )
        return snapshot


def collect(source: PlanningDataSource, params: CollectParams) -> PlanningSnapshot:
    """Collect a planning snapshot from a data source."""
    return ScheduleDataCollector(source).collect(params)
