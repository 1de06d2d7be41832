"""Data models for department section scheduling."""

import hashlib
import json
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Mapping, Union

from ..utils import minutes_to_time, time_to_minutes

# Academic day bounds for any valid slot (07:00 to 22:00)
ACADEMIC_DAY_START = 7 * 60
ACADEMIC_DAY_END = 22 * 60


class Day(Enum):
    """Days of the academic week."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4

    @classmethod
    def from_name(cls, name: str) -> "Day":
        """Parse a day from its name, case-insensitive."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown day '{name}'") from None

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class TimeSlot:
    """A contiguous meeting interval on one working day.

    Intervals are half-open: a slot ending at 09:30 does not overlap one
    starting at 09:30.
    """

    day: Day
    start_minutes: int
    end_minutes: int

    def __post_init__(self) -> None:
        if not isinstance(self.day, Day):
            raise ValueError(f"Invalid day: {self.day!r}")
        if self.start_minutes >= self.end_minutes:
            raise ValueError(
                f"Slot start {minutes_to_time(self.start_minutes)} must be before "
                f"end {minutes_to_time(self.end_minutes)}"
            )
        if self.start_minutes < ACADEMIC_DAY_START or self.end_minutes > ACADEMIC_DAY_END:
            raise ValueError(
                f"Slot {minutes_to_time(self.start_minutes)}-"
                f"{minutes_to_time(self.end_minutes)} is outside the academic day"
            )

    @classmethod
    def parse(cls, day: str | Day, start: str, end: str) -> "TimeSlot":
        """Build a slot from a day name and 'HH:MM' times."""
        if not isinstance(day, Day):
            day = Day.from_name(day)
        return cls(day, time_to_minutes(start), time_to_minutes(end))

    @property
    def start(self) -> str:
        return minutes_to_time(self.start_minutes)

    @property
    def end(self) -> str:
        return minutes_to_time(self.end_minutes)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    @property
    def hours(self) -> float:
        return self.duration_minutes / 60

    @property
    def label(self) -> str:
        return f"{self.day.label} {self.start}-{self.end}"

    def sort_key(self) -> tuple[int, int, int]:
        return (self.day.value, self.start_minutes, self.end_minutes)

    def overlaps(self, other: "TimeSlot") -> bool:
        """Check whether two slots share any time on the same day."""
        return self.day == other.day and max(
            self.start_minutes, other.start_minutes
        ) < min(self.end_minutes, other.end_minutes)

    def contains(self, other: "TimeSlot") -> bool:
        """Check whether another slot lies entirely within this one."""
        return (
            self.day == other.day
            and self.start_minutes <= other.start_minutes
            and other.end_minutes <= self.end_minutes
        )

    def to_dict(self) -> dict[str, str]:
        return {"day": self.day.name.lower(), "start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeSlot":
        return cls.parse(data["day"], data["start"], data["end"])


class CourseType(str, Enum):
    """Whether a course is part of the fixed plan or chosen by students."""

    REQUIRED = "required"
    ELECTIVE = "elective"


class ExamType(str, Enum):
    """Exam sittings in a semester."""

    MIDTERM = "midterm"
    MIDTERM2 = "midterm2"
    FINAL = "final"


def _default_exam_types() -> list[ExamType]:
    return [ExamType.MIDTERM, ExamType.FINAL]


@dataclass
class Course:
    """A catalog course."""

    code: str
    name: str
    credits: int
    level: int
    course_type: CourseType = CourseType.REQUIRED
    prerequisites: list[str] = field(default_factory=list)
    department_managed: bool = True
    exam_types: list[ExamType] = field(default_factory=_default_exam_types)

    @property
    def is_required(self) -> bool:
        return self.course_type == CourseType.REQUIRED

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "credits": self.credits,
            "level": self.level,
            "course_type": self.course_type.value,
            "prerequisites": list(self.prerequisites),
            "department_managed": self.department_managed,
            "exam_types": [e.value for e in self.exam_types],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Course":
        exam_types = data.get("exam_types")
        return cls(
            code=data["code"],
            name=data.get("name", data["code"]),
            credits=int(data.get("credits", 3)),
            level=int(data["level"]),
            course_type=CourseType(data.get("course_type", "required")),
            prerequisites=list(data.get("prerequisites", [])),
            department_managed=data.get("department_managed", True),
            exam_types=(
                [ExamType(e) for e in exam_types]
                if exam_types is not None
                else _default_exam_types()
            ),
        )


@dataclass
class Section:
    """A schedulable offering of a course."""

    id: str
    course_code: str
    capacity: int
    instructor_id: str | None = None
    room_id: str | None = None
    time_slots: list[TimeSlot] = field(default_factory=list)
    enrolled: int = 0

    @property
    def weekly_hours(self) -> float:
        return sum(slot.hours for slot in self.time_slots)

    def copy(self) -> "Section":
        return replace(self, time_slots=list(self.time_slots))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "course_code": self.course_code,
            "instructor_id": self.instructor_id,
            "room_id": self.room_id,
            "capacity": self.capacity,
            "enrolled": self.enrolled,
            "time_slots": [slot.to_dict() for slot in self.time_slots],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Section":
        return cls(
            id=data["id"],
            course_code=data["course_code"],
            capacity=int(data.get("capacity", 0)),
            instructor_id=data.get("instructor_id"),
            room_id=data.get("room_id"),
            time_slots=[TimeSlot.from_dict(s) for s in data.get("time_slots", [])],
            enrolled=int(data.get("enrolled", 0)),
        )


@dataclass
class Exam:
    """A scheduled exam sitting for one course."""

    course_code: str
    exam_type: ExamType
    time_slot: TimeSlot
    room_id: str | None = None

    @property
    def id(self) -> str:
        return f"{self.course_code}-{self.exam_type.value}"

    def copy(self) -> "Exam":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_code": self.course_code,
            "exam_type": self.exam_type.value,
            "time_slot": self.time_slot.to_dict(),
            "room_id": self.room_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Exam":
        return cls(
            course_code=data["course_code"],
            exam_type=ExamType(data["exam_type"]),
            time_slot=TimeSlot.from_dict(data["time_slot"]),
            room_id=data.get("room_id"),
        )


@dataclass
class FacultyAvailability:
    """An instructor's declared teaching windows and weekly load cap."""

    instructor_id: str
    name: str
    available_slots: list[TimeSlot] = field(default_factory=list)
    max_weekly_hours: float = 12.0
    courses: list[str] = field(default_factory=list)

    def can_teach(self, course_code: str) -> bool:
        return course_code in self.courses

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.instructor_id,
            "name": self.name,
            "max_weekly_hours": self.max_weekly_hours,
            "courses": list(self.courses),
            "available_slots": [slot.to_dict() for slot in self.available_slots],
        }


@dataclass
class Room:
    """A physical room."""

    room_id: str
    capacity: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.room_id, "capacity": self.capacity}


@dataclass
class ElectivePreference:
    """How many students of a cohort ranked an elective among their top choices."""

    course_code: str
    count: int


@dataclass
class StudentCohort:
    """Students of one level following the regular study plan."""

    level: int
    count: int
    elective_preferences: list[ElectivePreference] = field(default_factory=list)

    def elective_demand(self, course_code: str) -> int:
        return sum(
            p.count for p in self.elective_preferences if p.course_code == course_code
        )


@dataclass
class CurriculumLevel:
    """Required courses and elective slots for one level."""

    level: int
    required_courses: list[str] = field(default_factory=list)
    elective_slots: int = 0


@dataclass
class IrregularStudent:
    """A student behind plan whose remaining courses span several levels."""

    student_id: str
    level: int
    required_courses: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PlanningSnapshot:
    """Validated, read-only planning input for one generation run."""

    semester: str
    levels: tuple[int, ...]
    courses: Mapping[str, Course]
    curriculum: Mapping[int, CurriculumLevel]
    cohorts: Mapping[int, StudentCohort]
    faculty: tuple[FacultyAvailability, ...]
    rooms: tuple[Room, ...]
    existing_sections: tuple[Section, ...] = ()
    irregular_students: tuple[IrregularStudent, ...] = ()

    @classmethod
    def build(
        cls,
        semester: str,
        levels: list[int],
        courses: list[Course],
        curriculum: list[CurriculumLevel],
        cohorts: list[StudentCohort],
        faculty: list[FacultyAvailability],
        rooms: list[Room],
        existing_sections: list[Section] | None = None,
        irregular_students: list[IrregularStudent] | None = None,
    ) -> "PlanningSnapshot":
        """Freeze plain collections into a snapshot."""
        return cls(
            semester=semester,
            levels=tuple(sorted(set(levels))),
            courses=MappingProxyType({c.code: c for c in courses}),
            curriculum=MappingProxyType({c.level: c for c in curriculum}),
            cohorts=MappingProxyType({c.level: c for c in cohorts}),
            faculty=tuple(sorted(faculty, key=lambda f: f.instructor_id)),
            rooms=tuple(sorted(rooms, key=lambda r: r.room_id)),
            existing_sections=tuple(existing_sections or ()),
            irregular_students=tuple(irregular_students or ()),
        )

    def qualified_faculty(self, course_code: str) -> list[FacultyAvailability]:
        return [f for f in self.faculty if f.can_teach(course_code)]


@dataclass
class CollectParams:
    """Parameters for assembling a planning snapshot."""

    semester: str
    levels: list[int]
    consider_irregular_students: bool = False


class OptimizationGoal(str, Enum):
    """Optional behaviours of the generator."""

    BALANCE_FACULTY_LOAD = "balance_faculty_load"
    MINIMIZE_STUDENT_CONFLICTS = "minimize_student_conflicts"
    REPAIR_CONFLICTS = "repair_conflicts"


def _all_goals() -> list[OptimizationGoal]:
    return list(OptimizationGoal)


@dataclass
class GenerationRequest:
    """What to generate."""

    semester: str
    levels: list[int]
    consider_irregular_students: bool = False
    optimization_goals: list[OptimizationGoal] = field(default_factory=_all_goals)

    def has_goal(self, goal: OptimizationGoal) -> bool:
        return goal in self.optimization_goals


class ConflictType(str, Enum):
    """Kind of scheduling violation."""

    TIME = "time"
    EXAM = "exam"
    FACULTY = "faculty"
    ROOM = "room"
    CAPACITY = "capacity"
    STUDENT_OVERLAP = "student_overlap"
    PREREQUISITE = "prerequisite"
    DAILY_LOAD = "daily_load"


class Severity(str, Enum):
    """Conflict severity, most severe first."""

    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return list(Severity).index(self)


class FacultyIssue(str, Enum):
    """What is wrong with an instructor's assignment."""

    DOUBLE_BOOKING = "double_booking"
    OVERLOAD = "overload"
    UNAVAILABLE = "unavailable"


@dataclass(kw_only=True)
class ScheduleConflict:
    """Base record for a detected conflict.

    Subclasses set ``type`` and carry the details specific to that kind
    of conflict. Ids are derived from the entities involved so the same
    violation always gets the same id.
    """

    type: ClassVar[ConflictType]

    id: str
    severity: Severity
    message: str
    affected_section_ids: list[str] = field(default_factory=list)
    resolution_suggestions: list[str] = field(default_factory=list)
    resolved: bool = False

    @property
    def is_blocking(self) -> bool:
        return self.severity in (Severity.CRITICAL, Severity.ERROR)

    def sort_key(self) -> tuple[int, str]:
        return (self.severity.rank, self.id)

    def details(self) -> dict[str, Any]:
        return {}

    @classmethod
    def details_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        result = {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "affected_section_ids": list(self.affected_section_ids),
            "resolution_suggestions": list(self.resolution_suggestions),
            "resolved": self.resolved,
        }
        result.update(self.details())
        return result


@dataclass(kw_only=True)
class TimeConflict(ScheduleConflict):
    """Two courses of the same level meet at overlapping times."""

    type: ClassVar[ConflictType] = ConflictType.TIME

    level: int
    course_codes: list[str]

    def details(self) -> dict[str, Any]:
        return {"level": self.level, "course_codes": list(self.course_codes)}

    @classmethod
    def details_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {"level": data["level"], "course_codes": data["course_codes"]}


@dataclass(kw_only=True)
class ExamConflict(ScheduleConflict):
    """Two exams of the same type for one level overlap."""

    type: ClassVar[ConflictType] = ConflictType.EXAM

    exam_type: ExamType
    level: int
    course_codes: list[str]

    @property
    def exam_ids(self) -> list[str]:
        return [f"{code}-{self.exam_type.value}" for code in self.course_codes]

    def details(self) -> dict[str, Any]:
        return {
            "exam_type": self.exam_type.value,
            "level": self.level,
            "course_codes": list(self.course_codes),
        }

    @classmethod
    def details_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "exam_type": ExamType(data["exam_type"]),
            "level": data["level"],
            "course_codes": data["course_codes"],
        }


@dataclass(kw_only=True)
class FacultyConflict(ScheduleConflict):
    """An instructor is double-booked, overloaded, or outside availability."""

    type: ClassVar[ConflictType] = ConflictType.FACULTY

    instructor_id: str
    issue: FacultyIssue

    def details(self) -> dict[str, Any]:
        return {"instructor_id": self.instructor_id, "issue": self.issue.value}

    @classmethod
    def details_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "instructor_id": data["instructor_id"],
            "issue": FacultyIssue(data["issue"]),
        }


@dataclass(kw_only=True)
class RoomConflict(ScheduleConflict):
    """Two sections occupy one room at overlapping times."""

    type: ClassVar[ConflictType] = ConflictType.ROOM

    room_id: str

    def details(self) -> dict[str, Any]:
        return {"room_id": self.room_id}

    @classmethod
    def details_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {"room_id": data["room_id"]}


@dataclass(kw_only=True)
class CapacityConflict(ScheduleConflict):
    """Enrollment exceeds the seats available to a section."""

    type: ClassVar[ConflictType] = ConflictType.CAPACITY

    course_code: str
    enrolled: int
    capacity: int
    room_id: str | None = None

    def details(self) -> dict[str, Any]:
        return {
            "course_code": self.course_code,
            "enrolled": self.enrolled,
            "capacity": self.capacity,
            "room_id": self.room_id,
        }

    @classmethod
    def details_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "course_code": data["course_code"],
            "enrolled": data["enrolled"],
            "capacity": data["capacity"],
            "room_id": data.get("room_id"),
        }


@dataclass(kw_only=True)
class StudentOverlapConflict(ScheduleConflict):
    """Two sections on one student's timetable overlap."""

    type: ClassVar[ConflictType] = ConflictType.STUDENT_OVERLAP

    student_id: str

    def details(self) -> dict[str, Any]:
        return {"student_id": self.student_id}

    @classmethod
    def details_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {"student_id": data["student_id"]}


@dataclass(kw_only=True)
class PrerequisiteConflict(ScheduleConflict):
    """A student is enrolled in a course without its prerequisites."""

    type: ClassVar[ConflictType] = ConflictType.PREREQUISITE

    student_id: str
    course_code: str
    missing: list[str]

    def details(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "course_code": self.course_code,
            "missing": list(self.missing),
        }

    @classmethod
    def details_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "student_id": data["student_id"],
            "course_code": data["course_code"],
            "missing": data["missing"],
        }


@dataclass(kw_only=True)
class DailyLoadConflict(ScheduleConflict):
    """A student has more class hours on one day than allowed."""

    type: ClassVar[ConflictType] = ConflictType.DAILY_LOAD

    student_id: str
    day: Day
    hours: float

    def details(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "day": self.day.name.lower(),
            "hours": self.hours,
        }

    @classmethod
    def details_from_dict(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "student_id": data["student_id"],
            "day": Day.from_name(data["day"]),
            "hours": data["hours"],
        }


CONFLICT_CLASSES: dict[ConflictType, type[ScheduleConflict]] = {
    cls.type: cls
    for cls in (
        TimeConflict,
        ExamConflict,
        FacultyConflict,
        RoomConflict,
        CapacityConflict,
        StudentOverlapConflict,
        PrerequisiteConflict,
        DailyLoadConflict,
    )
}


def conflict_from_dict(data: dict[str, Any]) -> ScheduleConflict:
    """Rebuild a conflict record of the right subclass from its dictionary."""
    cls = CONFLICT_CLASSES[ConflictType(data["type"])]
    return cls(
        id=data["id"],
        severity=Severity(data["severity"]),
        message=data["message"],
        affected_section_ids=list(data.get("affected_section_ids", [])),
        resolution_suggestions=list(data.get("resolution_suggestions", [])),
        resolved=data.get("resolved", False),
        **cls.details_from_dict(data),
    )


@dataclass(frozen=True)
class TimeSlotChange:
    """Move a section meeting to a new slot.

    ``replaces`` names the meeting being moved; without it every meeting of
    the section is replaced by ``new_slot``.
    """

    kind: ClassVar[str] = "change_time"

    section_id: str
    new_slot: TimeSlot
    replaces: TimeSlot | None = None

    def describe(self) -> str:
        if self.replaces is not None:
            return f"Move {self.section_id} from {self.replaces.label} to {self.new_slot.label}"
        return f"Move {self.section_id} to {self.new_slot.label}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "section_id": self.section_id,
            "new_slot": self.new_slot.to_dict(),
            "replaces": self.replaces.to_dict() if self.replaces else None,
        }


@dataclass(frozen=True)
class RoomChange:
    """Assign a section to a different room."""

    kind: ClassVar[str] = "change_room"

    section_id: str
    new_room_id: str
    capacity: int | None = None

    def describe(self) -> str:
        if self.capacity is not None:
            return f"Move {self.section_id} to room {self.new_room_id} (capacity {self.capacity})"
        return f"Move {self.section_id} to room {self.new_room_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "section_id": self.section_id,
            "new_room_id": self.new_room_id,
            "capacity": self.capacity,
        }


@dataclass(frozen=True)
class InstructorChange:
    """Hand a section to a different instructor."""

    kind: ClassVar[str] = "change_instructor"

    section_id: str
    new_instructor_id: str

    def describe(self) -> str:
        return f"Assign {self.section_id} to instructor {self.new_instructor_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "section_id": self.section_id,
            "new_instructor_id": self.new_instructor_id,
        }


@dataclass(frozen=True)
class ExamSlotChange:
    """Move an exam sitting to a new slot."""

    kind: ClassVar[str] = "change_exam_time"

    course_code: str
    exam_type: ExamType
    new_slot: TimeSlot

    def describe(self) -> str:
        return (
            f"Move {self.course_code} {self.exam_type.value} exam to "
            f"{self.new_slot.label}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "course_code": self.course_code,
            "exam_type": self.exam_type.value,
            "new_slot": self.new_slot.to_dict(),
        }


ResolutionAction = Union[TimeSlotChange, RoomChange, InstructorChange, ExamSlotChange]


@dataclass
class RankedSlot:
    """A candidate slot with its score."""

    slot: TimeSlot
    score: float
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"slot": self.slot.to_dict(), "score": self.score, "reason": self.reason}


@dataclass
class RankedRoom:
    """A candidate room with its score."""

    room_id: str
    capacity: int
    score: float
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_id": self.room_id,
            "capacity": self.capacity,
            "score": self.score,
            "reason": self.reason,
        }


@dataclass
class ResolutionOption:
    """One feasible way to resolve a conflict."""

    description: str
    action: ResolutionAction
    score: float
    impact: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "action": self.action.to_dict(),
            "score": self.score,
            "impact": self.impact,
        }


@dataclass
class ResolutionResult:
    """Outcome of an auto or manual resolution attempt.

    Auto resolution yields one action; a manual resolution may combine a
    slot, room and instructor change for the same section.
    """

    success: bool
    message: str
    actions: list[ResolutionAction] = field(default_factory=list)
    score: float | None = None

    @property
    def action(self) -> ResolutionAction | None:
        return self.actions[0] if self.actions else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "action": self.action.to_dict() if self.action else None,
            "actions": [a.to_dict() for a in self.actions],
            "score": self.score,
        }


class ResolutionMode(str, Enum):
    """How a conflict should be resolved."""

    AUTO = "auto"
    MANUAL = "manual"


@dataclass
class ManualResolution:
    """A human-chosen change for one section."""

    section_id: str
    new_slot: TimeSlot | None = None
    replaces: TimeSlot | None = None
    new_room_id: str | None = None
    new_instructor_id: str | None = None


@dataclass
class StudentContext:
    """A single student's enrollment, used for per-student checks."""

    student_id: str
    level: int
    section_ids: list[str] | None = None
    required_courses: list[str] = field(default_factory=list)
    completed_courses: list[str] = field(default_factory=list)
    max_daily_hours: float | None = None


@dataclass
class ConflictCheckInput:
    """Everything the checker may look at; detectors run when their inputs exist."""

    sections: list[Section]
    exams: list[Exam] = field(default_factory=list)
    courses: Mapping[str, Course] | None = None
    faculty: list[FacultyAvailability] | None = None
    rooms: list[Room] | None = None
    student: StudentContext | None = None


@dataclass
class ConflictSummary:
    """Counts of conflicts by type and severity."""

    total: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    by_severity: dict[str, int] = field(default_factory=dict)
    unresolved: int = 0
    blocking: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_type": dict(self.by_type),
            "by_severity": dict(self.by_severity),
            "unresolved": self.unresolved,
            "blocking": self.blocking,
        }


class UnplacedReason(str, Enum):
    """Reasons why a section could not be placed."""

    NO_QUALIFIED_INSTRUCTOR = "no_qualified_instructor"
    INSTRUCTOR_OVERLOADED = "instructor_overloaded"
    INSTRUCTOR_UNAVAILABLE = "instructor_unavailable"
    NO_SLOT_AVAILABLE = "no_slot_available"
    NO_ROOM_AVAILABLE = "no_room_available"
    SEARCH_LIMIT = "search_limit"


@dataclass
class UnplacedSection:
    """A section the generator could not place."""

    section_id: str
    course_code: str
    level: int
    reason: UnplacedReason
    details: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "section_id": self.section_id,
            "course_code": self.course_code,
            "level": self.level,
            "reason": self.reason.value,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UnplacedSection":
        return cls(
            section_id=data["section_id"],
            course_code=data["course_code"],
            level=data["level"],
            reason=UnplacedReason(data["reason"]),
            details=data.get("details", ""),
        )


@dataclass
class UnscheduledExam:
    """An exam the generator could not fit into the exam window."""

    course_code: str
    exam_type: ExamType
    level: int
    details: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_code": self.course_code,
            "exam_type": self.exam_type.value,
            "level": self.level,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UnscheduledExam":
        return cls(
            course_code=data["course_code"],
            exam_type=ExamType(data["exam_type"]),
            level=data["level"],
            details=data.get("details", ""),
        )


@dataclass
class ScheduleMetadata:
    """Totals and utilization of a generated schedule."""

    total_sections: int = 0
    total_exams: int = 0
    faculty_utilization: float = 0.0
    room_utilization: float = 0.0
    sections_by_level: dict[int, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_sections": self.total_sections,
            "total_exams": self.total_exams,
            "faculty_utilization": self.faculty_utilization,
            "room_utilization": self.room_utilization,
            "sections_by_level": {
                str(level): count for level, count in sorted(self.sections_by_level.items())
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduleMetadata":
        return cls(
            total_sections=data.get("total_sections", 0),
            total_exams=data.get("total_exams", 0),
            faculty_utilization=data.get("faculty_utilization", 0.0),
            room_utilization=data.get("room_utilization", 0.0),
            sections_by_level={
                int(level): count
                for level, count in data.get("sections_by_level", {}).items()
            },
        )


@dataclass
class GeneratedSchedule:
    """A complete candidate schedule with its conflicts."""

    semester: str
    levels: list[int]
    sections: list[Section] = field(default_factory=list)
    exams: list[Exam] = field(default_factory=list)
    conflicts: list[ScheduleConflict] = field(default_factory=list)
    unplaced_sections: list[UnplacedSection] = field(default_factory=list)
    unscheduled_exams: list[UnscheduledExam] = field(default_factory=list)
    metadata: ScheduleMetadata = field(default_factory=ScheduleMetadata)
    id: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            self.id = self.content_id()

    def content_id(self) -> str:
        """Derive a stable id from the schedule's content."""
        payload = json.dumps(
            {
                "semester": self.semester,
                "levels": sorted(self.levels),
                "sections": [s.to_dict() for s in self.sections],
                "exams": [e.to_dict() for e in self.exams],
            },
            sort_keys=True,
        )
        return "sch-" + hashlib.sha1(payload.encode("utf-8")).hexdigest()[:12]

    def get_section(self, section_id: str) -> Section | None:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def get_conflict(self, conflict_id: str) -> ScheduleConflict | None:
        for conflict in self.conflicts:
            if conflict.id == conflict_id:
                return conflict
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "semester": self.semester,
            "levels": list(self.levels),
            "sections": [s.to_dict() for s in self.sections],
            "exams": [e.to_dict() for e in self.exams],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "unplaced_sections": [u.to_dict() for u in self.unplaced_sections],
            "unscheduled_exams": [u.to_dict() for u in self.unscheduled_exams],
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GeneratedSchedule":
        return cls(
            id=data.get("id", ""),
            semester=data.get("semester", ""),
            levels=list(data.get("levels", [])),
            sections=[Section.from_dict(s) for s in data.get("sections", [])],
            exams=[Exam.from_dict(e) for e in data.get("exams", [])],
            conflicts=[conflict_from_dict(c) for c in data.get("conflicts", [])],
            unplaced_sections=[
                UnplacedSection.from_dict(u) for u in data.get("unplaced_sections", [])
            ],
            unscheduled_exams=[
                UnscheduledExam.from_dict(u) for u in data.get("unscheduled_exams", [])
            ],
            metadata=ScheduleMetadata.from_dict(data.get("metadata", {})),
        )
