"""CLI entry point for the section scheduler."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from .exceptions import (
    DataSourceError,
    GenerationError,
    PlanningValidationError,
    ValidationIssue,
)
from .scheduler import (
    CollectParams,
    ConfigLoader,
    ConflictResolutionEngine,
    GeneratedSchedule,
    GenerationRequest,
    ManualResolution,
    ResolutionMode,
    ScheduleConflict,
    StudentContext,
    TimeSlot,
    check_conflicts,
    collect,
    export_conflicts_json,
    export_schedule_json,
    generate,
    generate_schedule_excel,
    load_schedule_json,
    summarize_conflicts,
)

app = typer.Typer(
    name="section-scheduler",
    help="Generate and check department course section schedules",
    add_completion=False,
)
console = Console()

# Default paths
DEFAULT_DATA_DIR = Path("reference")
DEFAULT_SCHEDULE_JSON = Path("output/schedule.json")
DEFAULT_EXCEL_DIR = Path("output/excel")

SEVERITY_STYLES = {
    "critical": "bold red",
    "error": "red",
    "warning": "yellow",
    "info": "blue",
}


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


def _load_data(data_dir: Path) -> ConfigLoader:
    """Open a reference-data directory or exit with an error."""
    try:
        with console.status("[bold green]Loading reference data..."):
            return ConfigLoader(data_dir)
    except DataSourceError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _load_schedule(schedule_file: Path) -> GeneratedSchedule:
    if not schedule_file.exists():
        console.print(f"[bold red]Error:[/bold red] File not found: {schedule_file}")
        raise typer.Exit(1)
    try:
        return load_schedule_json(schedule_file)
    except DataSourceError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _show_issues(issues: list[ValidationIssue]) -> None:
    console.print(f"\n[bold red]Issues ({len(issues)}):[/bold red]")
    for issue in issues:
        console.print(f"  [red]• {issue}[/red]")


def _show_conflicts(conflicts: list[ScheduleConflict], limit: int = 20) -> None:
    """Show conflicts in a table, most severe first."""
    if not conflicts:
        console.print("\n[bold green]✓ No conflicts[/bold green]")
        return

    table = Table(title=f"Conflicts ({len(conflicts)})")
    table.add_column("Severity")
    table.add_column("Type", style="cyan")
    table.add_column("Id", style="magenta")
    table.add_column("Message", max_width=60)
    table.add_column("Status", style="green")

    for conflict in conflicts[:limit]:
        style = SEVERITY_STYLES.get(conflict.severity.value, "")
        table.add_row(
            f"[{style}]{conflict.severity.value}[/{style}]",
            conflict.type.value,
            conflict.id,
            conflict.message,
            "resolved" if conflict.resolved else "open",
        )

    if len(conflicts) > limit:
        table.add_row("...", "...", "...", f"and {len(conflicts) - limit} more", "...")

    console.print(table)


def _show_summary(conflicts: list[ScheduleConflict]) -> None:
    summary = summarize_conflicts(conflicts)
    table = Table(title="Conflict Summary", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Total", str(summary.total))
    table.add_row("Unresolved", str(summary.unresolved))
    table.add_row("Blocking", str(summary.blocking))
    for severity, count in sorted(summary.by_severity.items()):
        table.add_row(f"Severity: {severity}", str(count))
    for conflict_type, count in sorted(summary.by_type.items()):
        table.add_row(f"Type: {conflict_type}", str(count))

    console.print(table)


def _parse_slot(value: str) -> TimeSlot:
    """Parse 'sunday 08:00-09:30' into a TimeSlot."""
    parts = value.split()
    if len(parts) != 2 or parts[1].count("-") != 1:
        raise ValueError(f"Invalid slot '{value}', expected 'DAY HH:MM-HH:MM'")
    start, end = parts[1].split("-")
    return TimeSlot.parse(parts[0], start, end)


def _student_context(
    loader: ConfigLoader,
    student_id: Optional[str],
    student_level: Optional[int],
    completed: Optional[list[str]] = None,
    max_daily_hours: Optional[float] = None,
    section_ids: Optional[list[str]] = None,
) -> Optional[StudentContext]:
    """Build the student given on the command line, or exit if it is incomplete."""
    if not student_id:
        return None
    if student_level is None:
        console.print("[bold red]Error:[/bold red] --student-level is required with --student-id")
        raise typer.Exit(1)
    curriculum = loader.curriculum.get_level(student_level)
    return StudentContext(
        student_id=student_id,
        level=student_level,
        section_ids=list(section_ids) if section_ids else None,
        required_courses=list(curriculum.required_courses) if curriculum else [],
        completed_courses=list(completed or []),
        max_daily_hours=max_daily_hours,
    )


@app.command()
def validate(
    data_dir: Annotated[
        Path,
        typer.Argument(help="Reference-data directory"),
    ],
    semester: Annotated[
        str,
        typer.Option("--semester", "-s", help="Semester identifier, e.g. 2025-fall"),
    ],
    level: Annotated[
        list[int],
        typer.Option("--level", "-l", help="Level to plan (repeatable)"),
    ],
    irregular: Annotated[
        bool,
        typer.Option("--irregular", help="Include irregular students"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Validate planning data without generating a schedule."""
    _configure_logging(verbose)
    loader = _load_data(data_dir)

    console.print(f"\n[bold]Validation Results for:[/bold] {data_dir}")
    try:
        with console.status("[bold green]Validating planning data..."):
            snapshot = collect(loader, CollectParams(semester, level, irregular))
    except PlanningValidationError as e:
        console.print("[bold red]✗ Planning data has issues[/bold red]")
        _show_issues(e.issues)
        raise typer.Exit(1)

    console.print("[bold green]✓ Planning data is valid[/bold green]")
    console.print(f"\n  Levels: {', '.join(str(lv) for lv in snapshot.levels)}")
    console.print(f"  Courses: {len(snapshot.courses)}")
    console.print(f"  Faculty: {len(snapshot.faculty)}")
    console.print(f"  Rooms: {len(snapshot.rooms)}")
    console.print(f"  Existing sections: {len(snapshot.existing_sections)}")
    if irregular:
        console.print(f"  Irregular students: {len(snapshot.irregular_students)}")


@app.command("generate")
def generate_command(
    data_dir: Annotated[
        Path,
        typer.Argument(help="Reference-data directory"),
    ],
    semester: Annotated[
        str,
        typer.Option("--semester", "-s", help="Semester identifier, e.g. 2025-fall"),
    ],
    level: Annotated[
        list[int],
        typer.Option("--level", "-l", help="Level to plan (repeatable)"),
    ],
    irregular: Annotated[
        bool,
        typer.Option("--irregular", help="Include irregular students"),
    ] = False,
    output: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Output JSON file path"),
    ] = None,
    excel_dir: Annotated[
        Optional[Path],
        typer.Option("--excel", help="Also write Excel timetables to this directory"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Generate a section and exam schedule for the given levels."""
    _configure_logging(verbose)
    loader = _load_data(data_dir)

    try:
        with console.status("[bold green]Collecting planning data..."):
            snapshot = collect(loader, CollectParams(semester, level, irregular))
    except PlanningValidationError as e:
        console.print("[bold red]Error:[/bold red] Planning data is invalid")
        _show_issues(e.issues)
        raise typer.Exit(1)

    try:
        with console.status("[bold green]Generating schedule..."):
            schedule = generate(snapshot, GenerationRequest(semester, level, irregular))
    except GenerationError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    meta = schedule.metadata
    console.print(f"\n[bold]Schedule for {semester}[/bold] ({schedule.id})")

    overview = Table(title="Overview", show_header=False)
    overview.add_column("Metric", style="cyan")
    overview.add_column("Value", style="green")
    overview.add_row("Sections", str(meta.total_sections))
    overview.add_row("Exams", str(meta.total_exams))
    overview.add_row("Unplaced sections", str(len(schedule.unplaced_sections)))
    overview.add_row("Unscheduled exams", str(len(schedule.unscheduled_exams)))
    overview.add_row("Faculty utilization", f"{meta.faculty_utilization:.1f}%")
    overview.add_row("Room utilization", f"{meta.room_utilization:.1f}%")
    for lv, count in sorted(meta.sections_by_level.items()):
        overview.add_row(f"Level {lv} sections", str(count))
    console.print(overview)

    if schedule.unplaced_sections:
        console.print(
            f"\n[bold yellow]Unplaced sections ({len(schedule.unplaced_sections)}):[/bold yellow]"
        )
        for unplaced in schedule.unplaced_sections[:10]:
            console.print(f"  [yellow]- {unplaced.section_id}: {unplaced.details}[/yellow]")
        if len(schedule.unplaced_sections) > 10:
            console.print(
                f"  [yellow]... and {len(schedule.unplaced_sections) - 10} more[/yellow]"
            )

    if verbose and schedule.unscheduled_exams:
        console.print("\n[bold yellow]Unscheduled exams:[/bold yellow]")
        for exam in schedule.unscheduled_exams:
            console.print(
                f"  [yellow]- {exam.course_code} {exam.exam_type.value}: {exam.details}[/yellow]"
            )

    _show_conflicts(schedule.conflicts)

    output_path = output or DEFAULT_SCHEDULE_JSON
    if output_path.suffix != ".json":
        output_path = output_path.with_suffix(".json")
    with console.status(f"[bold green]Exporting to {output_path}..."):
        export_schedule_json(schedule, output_path)
    console.print(f"\n[bold green]✓[/bold green] Schedule exported to: {output_path}")

    if excel_dir:
        with console.status("[bold green]Generating Excel files..."):
            files = generate_schedule_excel(schedule, snapshot.courses, excel_dir)
        console.print(f"[bold green]✓[/bold green] Generated {len(files)} Excel file(s)")


@app.command()
def check(
    schedule_file: Annotated[
        Path,
        typer.Argument(help="Schedule JSON file"),
    ],
    data_dir: Annotated[
        Path,
        typer.Option("--data", "-d", help="Reference-data directory"),
    ] = DEFAULT_DATA_DIR,
    student_id: Annotated[
        Optional[str],
        typer.Option("--student-id", help="Also check one student's timetable"),
    ] = None,
    student_level: Annotated[
        Optional[int],
        typer.Option("--student-level", help="Student's level (required with --student-id)"),
    ] = None,
    completed: Annotated[
        Optional[list[str]],
        typer.Option("--completed", help="Course the student has completed (repeatable)"),
    ] = None,
    max_daily_hours: Annotated[
        Optional[float],
        typer.Option("--max-daily-hours", help="Daily load limit for the student"),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Write the conflict report to this JSON file"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Re-check a (possibly hand-edited) schedule for conflicts."""
    _configure_logging(verbose)
    schedule = _load_schedule(schedule_file)
    loader = _load_data(data_dir)
    courses = {c.code: c for c in loader.get_courses()}

    student = _student_context(loader, student_id, student_level, completed, max_daily_hours)

    with console.status("[bold green]Checking schedule..."):
        conflicts = check_conflicts(
            schedule.sections,
            schedule.exams,
            student=student,
            courses=courses,
            faculty=loader.get_faculty(),
            rooms=loader.get_rooms(),
        )

    console.print(f"\n[bold]Conflict check for:[/bold] {schedule_file.name}")
    _show_summary(conflicts)
    _show_conflicts(conflicts)

    if output:
        export_conflicts_json(conflicts, output)
        console.print(f"\n[bold green]✓[/bold green] Conflict report exported to: {output}")

    if any(c.is_blocking for c in conflicts):
        raise typer.Exit(1)


@app.command()
def resolve(
    schedule_file: Annotated[
        Path,
        typer.Argument(help="Schedule JSON file"),
    ],
    conflict_id: Annotated[
        str,
        typer.Argument(help="Id of the conflict to resolve"),
    ],
    data_dir: Annotated[
        Path,
        typer.Option("--data", "-d", help="Reference-data directory"),
    ] = DEFAULT_DATA_DIR,
    section_id: Annotated[
        Optional[str],
        typer.Option("--section", help="Section to change (manual mode)"),
    ] = None,
    slot: Annotated[
        Optional[str],
        typer.Option("--slot", help="New meeting, e.g. 'monday 09:30-11:00' (manual mode)"),
    ] = None,
    replaces: Annotated[
        Optional[str],
        typer.Option("--replaces", help="Meeting the new slot replaces (manual mode)"),
    ] = None,
    room_id: Annotated[
        Optional[str],
        typer.Option("--room", help="New room (manual mode)"),
    ] = None,
    instructor_id: Annotated[
        Optional[str],
        typer.Option("--instructor", help="New instructor (manual mode)"),
    ] = None,
    student_id: Annotated[
        Optional[str],
        typer.Option("--student-id", help="Student whose timetable the conflict is on"),
    ] = None,
    student_level: Annotated[
        Optional[int],
        typer.Option("--student-level", help="Student's level (required with --student-id)"),
    ] = None,
    student_sections: Annotated[
        Optional[list[str]],
        typer.Option("--student-section", help="Section the student holds (repeatable)"),
    ] = None,
    completed: Annotated[
        Optional[list[str]],
        typer.Option("--completed", help="Course the student has completed (repeatable)"),
    ] = None,
    apply: Annotated[
        bool,
        typer.Option("--apply", help="Apply the change and write the schedule"),
    ] = False,
    output: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Output JSON file (defaults to the input file)"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Resolve one conflict automatically, or validate a manual change."""
    _configure_logging(verbose)
    schedule = _load_schedule(schedule_file)
    loader = _load_data(data_dir)
    courses = {c.code: c for c in loader.get_courses()}
    engine = ConflictResolutionEngine(loader.get_rooms(), loader.get_faculty(), courses)
    student = _student_context(
        loader, student_id, student_level, completed, section_ids=student_sections
    )

    conflict = schedule.get_conflict(conflict_id)
    if conflict is None:
        # Hand-edited schedules may carry a stale conflict list
        current = engine.check(schedule.sections, schedule.exams, student)
        conflict = next((c for c in current if c.id == conflict_id), None)
    if conflict is None:
        console.print(f"[bold red]Error:[/bold red] Conflict not found: {conflict_id}")
        raise typer.Exit(1)

    console.print(f"\n[bold]Resolving:[/bold] {conflict.id}")
    console.print(f"  {conflict.message}")

    manual = None
    if slot or room_id or instructor_id:
        if not section_id:
            console.print("[bold red]Error:[/bold red] --section is required for a manual change")
            raise typer.Exit(1)
        try:
            manual = ManualResolution(
                section_id=section_id,
                new_slot=_parse_slot(slot) if slot else None,
                replaces=_parse_slot(replaces) if replaces else None,
                new_room_id=room_id,
                new_instructor_id=instructor_id,
            )
        except ValueError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)

    with console.status("[bold green]Searching for alternatives..."):
        if manual is None:
            options = engine.generate_resolution_options(
                conflict, schedule.sections, schedule.exams, student
            )
        else:
            options = []
        result = engine.resolve(
            conflict,
            schedule.sections,
            ResolutionMode.MANUAL if manual else ResolutionMode.AUTO,
            manual,
            schedule.exams,
            student,
        )

    if options:
        table = Table(title="Options")
        table.add_column("Score", style="green")
        table.add_column("Change", style="cyan", max_width=50)
        table.add_column("Impact", max_width=40)
        for option in options[:5]:
            table.add_row(f"{option.score:.1f}", option.description, option.impact)
        console.print(table)

    if not result.success:
        console.print(f"\n[bold red]✗ Not resolved:[/bold red] {result.message}")
        raise typer.Exit(1)

    console.print(f"\n[bold green]✓[/bold green] {result.message}")

    if apply:
        remaining = engine.apply_to_schedule(schedule, conflict, result.actions, student)
        output_path = output or schedule_file
        export_schedule_json(schedule, output_path)
        open_count = sum(1 for c in remaining if not c.resolved)
        console.print(f"  Open conflicts: {open_count}")
        console.print(f"[bold green]✓[/bold green] Schedule written to: {output_path}")


@app.command("export-excel")
def export_excel(
    schedule_file: Annotated[
        Path,
        typer.Argument(help="Schedule JSON file"),
    ],
    data_dir: Annotated[
        Path,
        typer.Option("--data", "-d", help="Reference-data directory"),
    ] = DEFAULT_DATA_DIR,
    output_dir: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Output directory for Excel files"),
    ] = None,
    level: Annotated[
        Optional[list[int]],
        typer.Option("--level", "-l", help="Only export this level (repeatable)"),
    ] = None,
) -> None:
    """Generate one Excel timetable per level from schedule JSON."""
    schedule = _load_schedule(schedule_file)
    loader = _load_data(data_dir)
    courses = {c.code: c for c in loader.get_courses()}
    output_path = output_dir or DEFAULT_EXCEL_DIR

    console.print(f"\n[bold]Generating Excel schedules from:[/bold] {schedule_file.name}")
    with console.status("[bold green]Generating Excel files..."):
        files = generate_schedule_excel(schedule, courses, output_path, levels=level or None)

    if not files:
        console.print("[bold yellow]Warning:[/bold yellow] No files generated")
        raise typer.Exit(1)

    console.print(f"\n[bold green]✓[/bold green] Generated {len(files)} file(s):")
    for file_path in files:
        console.print(f"  - {file_path}")


if __name__ == "__main__":
    app()
