"""Faculty configuration loader."""

from pathlib import Path
from typing import Any

from ...exceptions import DataSourceError
from ...utils import load_json, parse_time_range
from ..models import Day, FacultyAvailability, TimeSlot


class FacultyConfig:
    """Loader for instructors, their qualifications and availability.

    Expected faculty.json format::

        [
            {
                "id": "F01",
                "name": "Dr. Salem",
                "courses": ["CS101", "CS201"],
                "max_weekly_hours": 12,
                "availability": {"sunday": ["08:00-12:00"], "tuesday": ["10:00-16:00"]}
            }
        ]
    """

    def __init__(self, faculty_path: Path | None = None):
        self.faculty: list[FacultyAvailability] = []
        # course code -> instructor ids
        self._by_course: dict[str, list[str]] = {}

        if faculty_path and faculty_path.exists():
            self._load(faculty_path)

    def _load(self, path: Path) -> None:
        """Load faculty from JSON."""
        data = load_json(path)
        if not isinstance(data, list):
            raise DataSourceError(path, "expected a list of instructors")

        for entry in data:
            member = self._parse_entry(path, entry)
            self.faculty.append(member)
            for code in member.courses:
                self._by_course.setdefault(code, []).append(member.instructor_id)

    def _parse_entry(self, path: Path, entry: dict[str, Any]) -> FacultyAvailability:
        instructor_id = str(entry.get("id", "")).strip()
        if not instructor_id:
            raise DataSourceError(path, "instructor entry without id")

        slots = []
        for day_name, ranges in entry.get("availability", {}).items():
            try:
                day = Day.from_name(day_name)
                for value in ranges:
                    start, end = parse_time_range(value)
                    slots.append(TimeSlot(day, start, end))
            except ValueError as e:
                raise DataSourceError(path, f"instructor '{instructor_id}': {e}") from e

        return FacultyAvailability(
            instructor_id=instructor_id,
            name=entry.get("name", instructor_id),
            available_slots=sorted(slots, key=lambda s: s.sort_key()),
            max_weekly_hours=float(entry.get("max_weekly_hours", 12)),
            courses=[str(code) for code in entry.get("courses", [])],
        )

    def get_all_faculty(self) -> list[FacultyAvailability]:
        """Get all instructors."""
        return list(self.faculty)

    def get_instructor_ids_for_course(self, course_code: str) -> list[str]:
        """Get ids of instructors qualified for a course."""
        return list(self._by_course.get(course_code, []))
