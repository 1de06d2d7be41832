"""Test fixtures for section scheduler tests."""

import json

import pytest

from section_scheduler.scheduler.collector import InMemoryDataSource, collect
from section_scheduler.scheduler.constants import WORKING_DAYS
from section_scheduler.scheduler.models import (
    CollectParams,
    Course,
    CourseType,
    CurriculumLevel,
    Day,
    ElectivePreference,
    FacultyAvailability,
    IrregularStudent,
    Room,
    Section,
    StudentCohort,
    TimeSlot,
)


def whole_week(start: str = "08:00", end: str = "18:00") -> list[TimeSlot]:
    """Availability windows covering every working day."""
    return [TimeSlot.parse(day, start, end) for day in WORKING_DAYS]


@pytest.fixture
def sample_courses():
    """Catalog for levels 2 to 4 with required, elective and external courses."""
    return [
        Course("CS201", "Programming II", 3, 2),
        Course("CS301", "Data Structures", 3, 3, prerequisites=["CS201"]),
        Course("CS302", "Computer Networks", 3, 3),
        Course("CS303", "Databases", 3, 3),
        Course("CS350", "Web Development", 3, 3, CourseType.ELECTIVE),
        Course("CS351", "Mobile Apps", 3, 3, CourseType.ELECTIVE),
        Course("CS352", "Game Design", 3, 3, CourseType.ELECTIVE),
        Course("MATH301", "Statistics", 3, 3, department_managed=False),
        Course("CS401", "Operating Systems", 3, 4),
    ]


@pytest.fixture
def sample_faculty():
    """Three instructors available all week."""
    return [
        FacultyAvailability(
            "F01", "Dr. Haddad", whole_week(), 12.0, ["CS301", "CS302", "CS401"]
        ),
        FacultyAvailability(
            "F02", "Dr. Nasser", whole_week(), 18.0, ["CS302", "CS303", "CS350", "CS351", "CS352"]
        ),
        FacultyAvailability("F03", "Dr. Saleh", whole_week(), 12.0, ["CS201", "CS301", "CS303"]),
    ]


@pytest.fixture
def sample_rooms():
    return [
        Room("A101", 40),
        Room("A102", 30),
        Room("B201", 60),
        Room("C301", 25),
    ]


@pytest.fixture
def sample_curriculum():
    return [
        CurriculumLevel(3, ["CS301", "CS302", "CS303", "MATH301"], elective_slots=1),
        CurriculumLevel(4, ["CS401"], elective_slots=0),
    ]


@pytest.fixture
def sample_cohorts():
    return [
        StudentCohort(
            3,
            45,
            [
                ElectivePreference("CS350", 20),
                ElectivePreference("CS351", 20),
                ElectivePreference("CS352", 5),
            ],
        ),
        StudentCohort(4, 25),
    ]


@pytest.fixture
def external_section():
    """Statistics section taught by the mathematics department."""
    return Section(
        id="MATH301-1",
        course_code="MATH301",
        capacity=60,
        instructor_id="M01",
        room_id="B201",
        time_slots=[
            TimeSlot.parse(Day.SUNDAY, "08:00", "09:30"),
            TimeSlot.parse(Day.TUESDAY, "08:00", "09:30"),
        ],
        enrolled=45,
    )


@pytest.fixture
def irregular_students():
    return [IrregularStudent("S100", 4, ["CS303", "CS201"])]


@pytest.fixture
def data_source(
    sample_courses,
    sample_curriculum,
    sample_cohorts,
    sample_faculty,
    sample_rooms,
    external_section,
    irregular_students,
):
    return InMemoryDataSource(
        courses=sample_courses,
        curriculum=sample_curriculum,
        cohorts=sample_cohorts,
        faculty=sample_faculty,
        rooms=sample_rooms,
        existing_sections=[external_section],
        irregular_students=irregular_students,
    )


@pytest.fixture
def snapshot(data_source):
    """Validated snapshot for levels 3 and 4."""
    return collect(data_source, CollectParams("2025-fall", [3, 4]))


@pytest.fixture
def reference_dir(tmp_path):
    """Reference-data directory equivalent to the in-memory fixtures."""
    ref = tmp_path / "reference"
    ref.mkdir()

    (ref / "courses.csv").write_text(
        "code,name,credits,level,type,prerequisites,department_managed,exams\n"
        "CS201,Programming II,3,2,required,,true,\n"
        "CS301,Data Structures,3,3,required,CS201,true,midterm;final\n"
        "CS302,Computer Networks,3,3,required,,true,\n"
        "CS303,Databases,3,3,required,,true,\n"
        "CS350,Web Development,3,3,elective,,true,\n"
        "CS351,Mobile Apps,3,3,elective,,true,\n"
        "CS352,Game Design,3,3,elective,,true,\n"
        "MATH301,Statistics,3,3,required,,false,\n"
        "CS401,Operating Systems,3,4,required,,true,midterm;midterm2;final\n",
        encoding="utf-8",
    )
    (ref / "curriculum.json").write_text(
        json.dumps(
            {
                "levels": [
                    {
                        "level": 3,
                        "required_courses": ["CS301", "CS302", "CS303", "MATH301"],
                        "elective_slots": 1,
                    },
                    {"level": 4, "required_courses": ["CS401"], "elective_slots": 0},
                ]
            }
        ),
        encoding="utf-8",
    )
    (ref / "cohorts.csv").write_text("level,count\n3,45\n4,25\n", encoding="utf-8")
    (ref / "elective-preferences.csv").write_text(
        "level,course_code,count\n3,CS350,20\n3,CS351,20\n3,CS352,5\n",
        encoding="utf-8",
    )
    week = {day.name.lower(): ["08:00-18:00"] for day in WORKING_DAYS}
    (ref / "faculty.json").write_text(
        json.dumps(
            [
                {
                    "id": "F01",
                    "name": "Dr. Haddad",
                    "courses": ["CS301", "CS302", "CS401"],
                    "max_weekly_hours": 12,
                    "availability": week,
                },
                {
                    "id": "F02",
                    "name": "Dr. Nasser",
                    "courses": ["CS302", "CS303", "CS350", "CS351", "CS352"],
                    "max_weekly_hours": 18,
                    "availability": week,
                },
                {
                    "id": "F03",
                    "name": "Dr. Saleh",
                    "courses": ["CS201", "CS301", "CS303"],
                    "max_weekly_hours": 12,
                    "availability": week,
                },
            ]
        ),
        encoding="utf-8",
    )
    (ref / "rooms.csv").write_text(
        "id,capacity\nA101,40\nA102,30\nB201,60\nC301,25\n", encoding="utf-8"
    )
    (ref / "sections.json").write_text(
        json.dumps(
            {
                "sections": [
                    {
                        "id": "MATH301-1",
                        "course_code": "MATH301",
                        "instructor_id": "M01",
                        "room_id": "B201",
                        "capacity": 60,
                        "enrolled": 45,
                        "time_slots": [
                            {"day": "sunday", "start": "08:00", "end": "09:30"},
                            {"day": "tuesday", "start": "08:00", "end": "09:30"},
                        ],
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    (ref / "irregular-students.json").write_text(
        json.dumps([{"id": "S100", "level": 4, "required_courses": ["CS303", "CS201"]}]),
        encoding="utf-8",
    )
    return ref
