"""Unified reference-data loader."""

from pathlib import Path

from ...exceptions import DataSourceError
from ...utils import find_table, load_json
from ..models import (
    Course,
    CurriculumLevel,
    FacultyAvailability,
    IrregularStudent,
    Room,
    Section,
    StudentCohort,
)
from .cohorts import CohortConfig
from .courses import CourseConfig, CurriculumConfig
from .faculty import FacultyConfig
from .rooms import RoomConfig


class ConfigLoader:
    """Loads a reference-data directory and serves it as a planning data source."""

    def __init__(self, config_dir: Path | str | None = None):
        """
        Initialize configuration loader.

        Args:
            config_dir: Path to directory containing reference files.
                       Expected files:
                       - courses.csv (or .xlsx)
                       - curriculum.json
                       - cohorts.csv (or .xlsx)
                       - elective-preferences.csv (or .xlsx)
                       - faculty.json
                       - rooms.csv (or .xlsx)
                       - sections.json (optional, existing sections)
                       - irregular-students.json (optional)
        """
        if config_dir is None:
            config_dir = Path("reference")

        self.config_dir = Path(config_dir)
        if not self.config_dir.is_dir():
            raise DataSourceError(self.config_dir, "not a directory")

        self.courses = CourseConfig(find_table(self.config_dir, "courses"))
        self.curriculum = CurriculumConfig(self._get_path("curriculum.json"))
        self.cohorts = CohortConfig(
            cohorts_path=find_table(self.config_dir, "cohorts"),
            preferences_path=find_table(self.config_dir, "elective-preferences"),
            irregular_path=self._get_path("irregular-students.json"),
        )
        self.faculty = FacultyConfig(self._get_path("faculty.json"))
        self.rooms = RoomConfig(find_table(self.config_dir, "rooms"))
        self.sections = self._load_sections(self._get_path("sections.json"))

    def _get_path(self, filename: str) -> Path | None:
        """Get path to config file if it exists."""
        path = self.config_dir / filename
        return path if path.exists() else None

    def _load_sections(self, path: Path | None) -> list[Section]:
        if path is None:
            return []
        data = load_json(path)
        entries = data.get("sections", []) if isinstance(data, dict) else data
        try:
            return [Section.from_dict(entry) for entry in entries]
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(path, f"invalid section: {e}") from e

    def get_courses(self) -> list[Course]:
        return self.courses.get_all_courses()

    def get_curriculum(self, levels: list[int]) -> list[CurriculumLevel]:
        return self.curriculum.get_levels(levels)

    def get_cohorts(self, levels: list[int]) -> list[StudentCohort]:
        return self.cohorts.get_cohorts(levels)

    def get_faculty(self) -> list[FacultyAvailability]:
        return self.faculty.get_all_faculty()

    def get_rooms(self) -> list[Room]:
        return self.rooms.get_all_rooms()

    def get_existing_sections(self) -> list[Section]:
        return [s.copy() for s in self.sections]

    def get_irregular_students(self, levels: list[int]) -> list[IrregularStudent]:
        return self.cohorts.get_irregular_students(levels)
