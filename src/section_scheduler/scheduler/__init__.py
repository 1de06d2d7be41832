"""Department section scheduling: generation, conflict detection and resolution.

Main classes:
- ScheduleDataCollector: Assembles a validated PlanningSnapshot
- ScheduleGenerator: Greedy placement of sections and exams with local repair
- ConflictResolutionEngine: Ranked alternatives, auto and manual resolution
- ConfigLoader: Reads a reference-data directory as a planning data source

Usage:
    from section_scheduler.scheduler import ConfigLoader, CollectParams, collect

    snapshot = collect(ConfigLoader(Path("reference")), CollectParams("2025-fall", [3, 4]))
    schedule = ScheduleGenerator().generate(snapshot, GenerationRequest("2025-fall", [3, 4]))
"""

from .algorithm import ScheduleGenerator, generate, top_electives_by_demand
from .collector import (
    InMemoryDataSource,
    PlanningDataSource,
    ScheduleDataCollector,
    collect,
)
from .config import ConfigLoader
from .conflicts import (
    check_conflicts,
    detect_all_conflicts,
    detect_capacity_conflicts,
    detect_exam_conflicts,
    detect_faculty_conflicts,
    detect_room_conflicts,
    detect_student_conflicts,
    detect_time_conflicts,
    summarize_conflicts,
)
from .constants import SECTION_CAPACITY, SLOT_GRANULARITY, WORKING_DAYS
from .excel_generator import generate_schedule_excel
from .exams import ExamScheduler
from .exporter import export_conflicts_json, export_schedule_json, load_schedule_json
from .models import (
    CollectParams,
    ConflictCheckInput,
    ConflictSummary,
    ConflictType,
    Course,
    CourseType,
    CurriculumLevel,
    Day,
    ElectivePreference,
    Exam,
    ExamType,
    FacultyAvailability,
    GeneratedSchedule,
    GenerationRequest,
    InstructorChange,
    IrregularStudent,
    ManualResolution,
    OptimizationGoal,
    PlanningSnapshot,
    ResolutionMode,
    ResolutionResult,
    Room,
    RoomChange,
    ScheduleConflict,
    Section,
    Severity,
    StudentCohort,
    StudentContext,
    TimeSlot,
    TimeSlotChange,
)
from .resolution import ConflictResolutionEngine, apply_action, resolve
from .rooms import RoomManager
from .timeslots import BusyIndex, TimeSlotManager

__all__ = [
    # Pipeline
    "ScheduleDataCollector",
    "ScheduleGenerator",
    "ConflictResolutionEngine",
    "ExamScheduler",
    "RoomManager",
    "TimeSlotManager",
    "BusyIndex",
    "collect",
    "generate",
    "check_conflicts",
    "resolve",
    "apply_action",
    "top_electives_by_demand",
    # Data sources
    "PlanningDataSource",
    "InMemoryDataSource",
    "ConfigLoader",
    # Detectors
    "detect_all_conflicts",
    "detect_capacity_conflicts",
    "detect_exam_conflicts",
    "detect_faculty_conflicts",
    "detect_room_conflicts",
    "detect_student_conflicts",
    "detect_time_conflicts",
    "summarize_conflicts",
    # Export
    "export_schedule_json",
    "export_conflicts_json",
    "load_schedule_json",
    "generate_schedule_excel",
    # Models
    "CollectParams",
    "ConflictCheckInput",
    "ConflictSummary",
    "ConflictType",
    "Course",
    "CourseType",
    "CurriculumLevel",
    "Day",
    "ElectivePreference",
    "Exam",
    "ExamType",
    "FacultyAvailability",
    "GeneratedSchedule",
    "GenerationRequest",
    "InstructorChange",
    "IrregularStudent",
    "ManualResolution",
    "OptimizationGoal",
    "PlanningSnapshot",
    "ResolutionMode",
    "ResolutionResult",
    "Room",
    "RoomChange",
    "ScheduleConflict",
    "Section",
    "Severity",
    "StudentCohort",
    "StudentContext",
    "TimeSlot",
    "TimeSlotChange",
    # Constants
    "SECTION_CAPACITY",
    "SLOT_GRANULARITY",
    "WORKING_DAYS",
]
