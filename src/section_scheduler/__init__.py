"""Section Scheduler - course section, exam and room scheduling for a department.

This package assembles planning data (curriculum, cohorts, faculty
availability, rooms), generates a conflict-aware weekly schedule of
sections and exams, detects conflicts in any schedule and proposes or
applies fixes.

Example usage:
    from section_scheduler import ConfigLoader, CollectParams, GenerationRequest
    from section_scheduler import collect, generate, check_conflicts

    snapshot = collect(ConfigLoader("reference"), CollectParams("2025-fall", [3, 4]))
    schedule = generate(snapshot, GenerationRequest("2025-fall", [3, 4]))

    print(f"Sections: {schedule.metadata.total_sections}")
    for conflict in schedule.conflicts:
        print(f"{conflict.severity.value} | {conflict.message}")
"""

from .exceptions import (
    DataSourceError,
    GenerationError,
    PlanningValidationError,
    ResolutionImpossibleError,
    SchedulerError,
    UnplaceableSectionError,
    ValidationIssue,
)
from .scheduler import (
    CollectParams,
    ConfigLoader,
    ConflictResolutionEngine,
    GeneratedSchedule,
    GenerationRequest,
    InMemoryDataSource,
    ManualResolution,
    ResolutionMode,
    ScheduleConflict,
    ScheduleDataCollector,
    ScheduleGenerator,
    Section,
    StudentContext,
    TimeSlot,
    check_conflicts,
    collect,
    generate,
    resolve,
)

__version__ = "0.1.0"

__all__ = [
    # Pipeline
    "collect",
    "generate",
    "check_conflicts",
    "resolve",
    "ScheduleDataCollector",
    "ScheduleGenerator",
    "ConflictResolutionEngine",
    # Data sources
    "ConfigLoader",
    "InMemoryDataSource",
    # Models
    "CollectParams",
    "GenerationRequest",
    "GeneratedSchedule",
    "ManualResolution",
    "ResolutionMode",
    "ScheduleConflict",
    "Section",
    "StudentContext",
    "TimeSlot",
    # Exceptions
    "SchedulerError",
    "ValidationIssue",
    "PlanningValidationError",
    "DataSourceError",
    "GenerationError",
    "UnplaceableSectionError",
    "ResolutionImpossibleError",
]
