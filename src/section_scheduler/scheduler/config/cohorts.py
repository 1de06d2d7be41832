"""Student cohort configuration loader."""

from pathlib import Path

from ...exceptions import DataSourceError
from ...utils import load_json, read_table, safe_int, safe_str
from ..models import ElectivePreference, IrregularStudent, StudentCohort


class CohortConfig:
    """Loader for student counts, elective demand and irregular students.

    Files:
        cohorts.csv|xlsx: level, count
        elective-preferences.csv|xlsx: level, course_code, count
        irregular-students.json: [{"id", "level", "required_courses"}]
    """

    def __init__(
        self,
        cohorts_path: Path | None = None,
        preferences_path: Path | None = None,
        irregular_path: Path | None = None,
    ):
        self._cohorts: dict[int, StudentCohort] = {}
        self.irregular_students: list[IrregularStudent] = []

        if cohorts_path and cohorts_path.exists():
            self._load_cohorts(cohorts_path)
        if preferences_path and preferences_path.exists():
            self._load_preferences(preferences_path)
        if irregular_path and irregular_path.exists():
            self._load_irregular(irregular_path)

    def _load_cohorts(self, path: Path) -> None:
        df = read_table(path, ["level", "count"])
        for _, row in df.iterrows():
            level = safe_int(row["level"])
            if level <= 0:
                continue
            self._cohorts[level] = StudentCohort(level=level, count=safe_int(row["count"]))

    def _load_preferences(self, path: Path) -> None:
        df = read_table(path, ["level", "course_code", "count"])
        for _, row in df.iterrows():
            level = safe_int(row["level"])
            code = safe_str(row["course_code"])
            if level <= 0 or not code:
                continue
            # Demand without a cohort row is kept so validation can report it
            cohort = self._cohorts.setdefault(level, StudentCohort(level=level, count=0))
            cohort.elective_preferences.append(
                ElectivePreference(course_code=code, count=safe_int(row["count"]))
            )

    def _load_irregular(self, path: Path) -> None:
        data = load_json(path)
        if not isinstance(data, list):
            raise DataSourceError(path, "expected a list of students")
        for entry in data:
            student_id = str(entry.get("id", "")).strip()
            if not student_id:
                raise DataSourceError(path, "irregular student without id")
            self.irregular_students.append(
                IrregularStudent(
                    student_id=student_id,
                    level=int(entry.get("level", 0)),
                    required_courses=[str(c) for c in entry.get("required_courses", [])],
                )
            )

    def get_cohort(self, level: int) -> StudentCohort | None:
        return self._cohorts.get(level)

    def get_cohorts(self, levels: list[int]) -> list[StudentCohort]:
        return [self._cohorts[level] for level in sorted(levels) if level in self._cohorts]

    def get_irregular_students(self, levels: list[int]) -> list[IrregularStudent]:
        return [s for s in self.irregular_students if s.level in levels]
