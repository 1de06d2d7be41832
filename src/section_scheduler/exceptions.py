"""Custom exceptions for the section scheduler."""

from dataclasses import dataclass
from pathlib import Path


class SchedulerError(Exception):
    """Base exception for scheduler errors."""

    pass


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem found while assembling planning data."""

    entity: str
    identifier: str
    message: str

    def __str__(self) -> str:
        return f"{self.entity} '{self.identifier}': {self.message}"

    def to_dict(self) -> dict[str, str]:
        return {
            "entity": self.entity,
            "identifier": self.identifier,
            "message": self.message,
        }


class PlanningValidationError(SchedulerError):
    """Planning input is incomplete or inconsistent."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = list(issues)
        message = f"Planning data is invalid ({len(self.issues)} issue(s))"
        if self.issues:
            message += ": " + "; ".join(str(issue) for issue in self.issues)
        super().__init__(message)


class DataSourceError(SchedulerError):
    """A reference data file could not be read."""

    def __init__(self, path: Path | str, message: str):
        self.path = Path(path)
        super().__init__(f"Cannot read '{self.path.name}': {message}")


class GenerationError(SchedulerError):
    """Base exception for schedule generation failures."""

    pass


class UnplaceableSectionError(GenerationError):
    """A section can never be placed with the given inputs."""

    def __init__(self, course_code: str, reason: str, section_id: str | None = None):
        self.course_code = course_code
        self.section_id = section_id
        self.reason = reason
        subject = f"section '{section_id}'" if section_id else f"course '{course_code}'"
        super().__init__(f"Cannot place {subject}: {reason}")


class ResolutionImpossibleError(SchedulerError):
    """No feasible alternative exists for a conflict."""

    def __init__(self, conflict_id: str, reason: str):
        self.conflict_id = conflict_id
        self.reason = reason
        super().__init__(f"Conflict '{conflict_id}' cannot be resolved: {reason}")
