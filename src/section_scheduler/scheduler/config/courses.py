"""Course catalog and curriculum loaders."""

from pathlib import Path

from ...exceptions import DataSourceError
from ...utils import load_json, read_table, safe_bool, safe_int, safe_str, split_list
from ..constants import ELECTIVE_SLOTS_BY_LEVEL
from ..models import Course, CourseType, CurriculumLevel, ExamType


class CourseConfig:
    """Loader for the course catalog from courses.csv or courses.xlsx.

    Columns: code, name, credits, level, type (required/elective),
    prerequisites (';'-separated), department_managed, exams
    (';'-separated exam types, defaults to midterm and final).
    """

    def __init__(self, courses_path: Path | None = None):
        self.courses: list[Course] = []
        self._by_code: dict[str, Course] = {}

        if courses_path and courses_path.exists():
            self._load(courses_path)

    def _load(self, path: Path) -> None:
        df = read_table(path, ["code", "credits", "level"])
        for _, row in df.iterrows():
            code = safe_str(row["code"])
            if not code:
                continue
            try:
                course_type = CourseType(safe_str(row.get("type"), "required").lower())
                exams = split_list(row.get("exams"))
                exam_types = (
                    [ExamType(e.lower()) for e in exams]
                    if exams
                    else [ExamType.MIDTERM, ExamType.FINAL]
                )
            except ValueError as e:
                raise DataSourceError(path, f"course '{code}': {e}") from e

            course = Course(
                code=code,
                name=safe_str(row.get("name"), code),
                credits=safe_int(row["credits"], 3),
                level=safe_int(row["level"]),
                course_type=course_type,
                prerequisites=split_list(row.get("prerequisites")),
                department_managed=safe_bool(row.get("department_managed"), default=True),
                exam_types=exam_types,
            )
            self.courses.append(course)
            self._by_code[code] = course

    def get_course(self, code: str) -> Course | None:
        """Get a course by code."""
        return self._by_code.get(code)

    def get_all_courses(self) -> list[Course]:
        """Get the whole catalog."""
        return list(self.courses)

    def get_courses_for_level(self, level: int) -> list[Course]:
        """Get catalog courses of one level."""
        return [c for c in self.courses if c.level == level]


class CurriculumConfig:
    """Loader for curriculum.json.

    Expected format::

        {"levels": [{"level": 3, "required_courses": ["CS201"], "elective_slots": 1}]}

    Levels without ``elective_slots`` use the department default for that
    level.
    """

    def __init__(self, curriculum_path: Path | None = None):
        self._levels: dict[int, CurriculumLevel] = {}

        if curriculum_path and curriculum_path.exists():
            self._load(curriculum_path)

    def _load(self, path: Path) -> None:
        data = load_json(path)
        entries = data.get("levels", []) if isinstance(data, dict) else data
        for entry in entries:
            try:
                level = int(entry["level"])
            except (KeyError, TypeError, ValueError) as e:
                raise DataSourceError(path, f"curriculum entry without a valid level: {e}") from e
            self._levels[level] = CurriculumLevel(
                level=level,
                required_courses=[str(c) for c in entry.get("required_courses", [])],
                elective_slots=int(
                    entry.get("elective_slots", ELECTIVE_SLOTS_BY_LEVEL.get(level, 0))
                ),
            )

    def get_level(self, level: int) -> CurriculumLevel | None:
        return self._levels.get(level)

    def get_levels(self, levels: list[int]) -> list[CurriculumLevel]:
        return [self._levels[level] for level in sorted(levels) if level in self._levels]
