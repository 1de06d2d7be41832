"""Excel timetable generator for generated schedules."""

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import get_column_letter

from ..utils import minutes_to_time
from .constants import WORKING_DAYS
from .models import Course, Exam, ExamType, GeneratedSchedule, Section

STRINGS = {
    "schedule_title": "COURSE SCHEDULE",
    "level_template": "Level {}",
    "time_header": "Time",
    "exams_title": "EXAMS",
    "exam_headers": ["Exam", "Course", "Day", "Time", "Room"],
    "empty": "No sections scheduled",
    "exam_types": {
        ExamType.MIDTERM: "Midterm",
        ExamType.MIDTERM2: "Second midterm",
        ExamType.FINAL: "Final",
    },
}

# Column widths
TIME_COLUMN_WIDTH = 14.0
DAY_COLUMN_WIDTH = 28.0
EXAM_COLUMN_WIDTHS = {"A": 16.0, "B": 30.0, "C": 14.0, "D": 14.0, "E": 12.0}

# First grid row (after title rows)
HEADER_ROW = 4
FIRST_DATA_ROW = 5

# Fonts
FONT_TITLE = Font(name="Times New Roman", size=16, bold=True)
FONT_HEADER = Font(name="Times New Roman", size=12, bold=True)
FONT_TIME = Font(name="Times New Roman", size=10, bold=False)
FONT_CELL = Font(name="Times New Roman", size=11, bold=False)

# Alignments
ALIGN_CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)

# Borders
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


@dataclass
class GeneratorConfig:
    """Configuration for one level's workbook."""

    level: int
    semester: str


class ScheduleExcelGenerator:
    """Renders one level's weekly timetable and exam list as a workbook."""

    def __init__(self, config: GeneratorConfig, courses: Mapping[str, Course]):
        """Initialize generator.

        Args:
            config: Level and semester to render.
            courses: Course catalog used to find each section's level.
        """
        self.config = config
        self.courses = courses
        self.days = list(WORKING_DAYS)

    def filter_sections(self, sections: list[Section]) -> list[Section]:
        """Keep sections whose course belongs to the configured level."""
        return [
            s
            for s in sections
            if s.course_code in self.courses
            and self.courses[s.course_code].level == self.config.level
        ]

    def filter_exams(self, exams: list[Exam]) -> list[Exam]:
        return [
            e
            for e in exams
            if e.course_code in self.courses
            and self.courses[e.course_code].level == self.config.level
        ]

    def build_schedule_grid(
        self, sections: list[Section]
    ) -> dict[tuple[int, int], dict[str, list[Section]]]:
        """Build the timetable grid.

        Args:
            sections: Sections of one level.

        Returns:
            Grid structure: {(start, end): {day name: [sections]}}, rows
            ordered by start time.
        """
        grid: dict[tuple[int, int], dict[str, list[Section]]] = {}
        for section in sorted(sections, key=lambda s: s.id):
            for slot in section.time_slots:
                row = grid.setdefault(
                    (slot.start_minutes, slot.end_minutes),
                    {day.name.lower(): [] for day in self.days},
                )
                key = slot.day.name.lower()
                if key in row:
                    row[key].append(section)
        return dict(sorted(grid.items()))

    def format_cell_content(self, section: Section) -> str:
        """Format a section for cell display.

        Returns:
            Multi-line string: course code and name, section, instructor, room.
        """
        course = self.courses.get(section.course_code)
        title = f"{section.course_code} {course.name}" if course else section.course_code
        lines = [title, section.id]
        if section.instructor_id:
            lines.append(section.instructor_id)
        if section.room_id:
            lines.append(f"Room {section.room_id}")
        return "\n".join(lines)

    def create_workbook(self, schedule: GeneratedSchedule) -> Workbook:
        """Create the workbook with a timetable sheet and an exam sheet."""
        wb = Workbook()
        ws = wb.active
        ws.title = self.config_title()

        sections = self.filter_sections(schedule.sections)
        grid = self.build_schedule_grid(sections)
        self.setup_sheet(ws, len(grid))
        if grid:
            self.fill_schedule(ws, grid)
        else:
            ws.cell(row=FIRST_DATA_ROW, column=1, value=STRINGS["empty"]).font = FONT_CELL

        exams_ws = wb.create_sheet(title="Exams")
        self.fill_exams(exams_ws, self.filter_exams(schedule.exams))
        return wb

    def config_title(self) -> str:
        return STRINGS["level_template"].format(self.config.level)

    def setup_sheet(self, ws, row_count: int) -> None:
        """Set up titles, headers and column widths."""
        last_col = get_column_letter(len(self.days) + 1)
        ws.merge_cells(f"A1:{last_col}1")
        ws.merge_cells(f"A2:{last_col}2")

        ws["A1"] = f"{STRINGS['schedule_title']} {self.config.semester}".strip()
        ws["A1"].font = FONT_TITLE
        ws["A1"].alignment = ALIGN_CENTER
        ws["A2"] = self.config_title()
        ws["A2"].font = FONT_HEADER
        ws["A2"].alignment = ALIGN_CENTER

        ws.column_dimensions["A"].width = TIME_COLUMN_WIDTH
        header = ws.cell(row=HEADER_ROW, column=1, value=STRINGS["time_header"])
        header.font = FONT_HEADER
        header.alignment = ALIGN_CENTER
        header.border = THIN_BORDER

        for i, day in enumerate(self.days, start=2):
            ws.column_dimensions[get_column_letter(i)].width = DAY_COLUMN_WIDTH
            cell = ws.cell(row=HEADER_ROW, column=i, value=day.label)
            cell.font = FONT_HEADER
            cell.alignment = ALIGN_CENTER
            cell.border = THIN_BORDER

        for row in range(FIRST_DATA_ROW, FIRST_DATA_ROW + row_count):
            ws.row_dimensions[row].height = 75.0

    def fill_schedule(
        self, ws, grid: dict[tuple[int, int], dict[str, list[Section]]]
    ) -> None:
        """Write the grid into the sheet."""
        for offset, ((start, end), days) in enumerate(grid.items()):
            row = FIRST_DATA_ROW + offset
            time_cell = ws.cell(
                row=row, column=1, value=f"{minutes_to_time(start)}-{minutes_to_time(end)}"
            )
            time_cell.font = FONT_TIME
            time_cell.alignment = ALIGN_CENTER
            time_cell.border = THIN_BORDER

            for i, day in enumerate(self.days, start=2):
                sections = days.get(day.name.lower(), [])
                cell = ws.cell(
                    row=row,
                    column=i,
                    value="\n\n".join(self.format_cell_content(s) for s in sections) or None,
                )
                cell.font = FONT_CELL
                cell.alignment = ALIGN_CENTER
                cell.border = THIN_BORDER

    def fill_exams(self, ws, exams: list[Exam]) -> None:
        """Write the exam list, one row per exam."""
        ws.merge_cells("A1:E1")
        ws["A1"] = f"{STRINGS['exams_title']} {self.config_title()}"
        ws["A1"].font = FONT_TITLE
        ws["A1"].alignment = ALIGN_CENTER

        for col, width in EXAM_COLUMN_WIDTHS.items():
            ws.column_dimensions[col].width = width
        for i, title in enumerate(STRINGS["exam_headers"], start=1):
            cell = ws.cell(row=3, column=i, value=title)
            cell.font = FONT_HEADER
            cell.alignment = ALIGN_CENTER
            cell.border = THIN_BORDER

        type_order = list(ExamType)
        ordered = sorted(
            exams,
            key=lambda e: (type_order.index(e.exam_type), e.time_slot.sort_key(), e.course_code),
        )
        for row, exam in enumerate(ordered, start=4):
            values = [
                STRINGS["exam_types"][exam.exam_type],
                exam.course_code,
                exam.time_slot.day.label,
                f"{exam.time_slot.start}-{exam.time_slot.end}",
                exam.room_id or "",
            ]
            for col, value in enumerate(values, start=1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.font = FONT_CELL
                cell.alignment = ALIGN_CENTER
                cell.border = THIN_BORDER


def generate_schedule_excel(
    schedule: GeneratedSchedule,
    courses: Mapping[str, Course],
    output_dir: Path | str,
    levels: list[int] | None = None,
) -> list[Path]:
    """Write one timetable workbook per level.

    Args:
        schedule: Schedule to render.
        courses: Course catalog keyed by code.
        output_dir: Directory for the workbooks.
        levels: Levels to render; defaults to the schedule's levels.

    Returns:
        Paths of the written files.
    """
    output = Path(output_dir)
    output.mkdir(parents=True, exist_ok=True)

    written = []
    for level in sorted(levels or schedule.levels):
        generator = ScheduleExcelGenerator(GeneratorConfig(level, schedule.semester), courses)
        wb = generator.create_workbook(schedule)
        path = output / f"schedule-level-{level}.xlsx"
        wb.save(path)
        written.append(path)
    return written
