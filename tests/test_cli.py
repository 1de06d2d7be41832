"""Tests for the command-line interface."""

import json

import pytest
from typer.testing import CliRunner

from section_scheduler.cli import app
from section_scheduler.scheduler import (
    CollectParams,
    ConfigLoader,
    GeneratedSchedule,
    GenerationRequest,
    Section,
    TimeSlot,
    collect,
    export_schedule_json,
    generate,
    load_schedule_json,
)

runner = CliRunner()

ROOM_CONFLICT_ID = "room-A101-CS301-1-CS401-1"
SUNDAY_8 = TimeSlot.parse("sunday", "08:00", "09:30")
SUNDAY_9 = TimeSlot.parse("sunday", "09:00", "10:30")


@pytest.fixture
def schedule_file(reference_dir, tmp_path):
    """Schedule generated from the reference directory."""
    snapshot = collect(ConfigLoader(reference_dir), CollectParams("2025-fall", [3, 4]))
    schedule = generate(snapshot, GenerationRequest("2025-fall", [3, 4]))
    path = tmp_path / "schedule.json"
    export_schedule_json(schedule, path)
    return path


@pytest.fixture
def clash_file(tmp_path):
    """Hand-edited schedule with two sections booked into A101 at once."""
    schedule = GeneratedSchedule(
        semester="2025-fall",
        levels=[3, 4],
        sections=[
            Section("CS301-1", "CS301", 30, "F03", "A101", [SUNDAY_8], 20),
            Section("CS401-1", "CS401", 30, "F01", "A101", [SUNDAY_9], 20),
        ],
    )
    path = tmp_path / "clash.json"
    export_schedule_json(schedule, path)
    return path


class TestValidate:
    """Tests for the validate command."""

    def test_valid_data(self, reference_dir):
        result = runner.invoke(
            app, ["validate", str(reference_dir), "-s", "2025-fall", "-l", "3", "-l", "4"]
        )
        assert result.exit_code == 0
        assert "Planning data is valid" in result.output
        assert "Courses: 9" in result.output

    def test_irregular_students_counted(self, reference_dir):
        args = ["validate", str(reference_dir), "-s", "2025-fall", "-l", "3", "-l", "4"]
        result = runner.invoke(app, args + ["--irregular"])
        assert result.exit_code == 0
        assert "Irregular students: 1" in result.output

    def test_reports_issues(self, reference_dir):
        result = runner.invoke(app, ["validate", str(reference_dir), "-s", "2025-fall", "-l", "7"])
        assert result.exit_code == 1
        assert "No curriculum for level" in result.output

    def test_missing_directory(self, tmp_path):
        result = runner.invoke(
            app, ["validate", str(tmp_path / "nope"), "-s", "2025-fall", "-l", "3"]
        )
        assert result.exit_code == 1
        assert "not a directory" in result.output


class TestGenerate:
    """Tests for the generate command."""

    def test_writes_json_and_excel(self, reference_dir, tmp_path):
        output = tmp_path / "out" / "schedule"
        excel_dir = tmp_path / "excel"
        result = runner.invoke(
            app,
            [
                "generate",
                str(reference_dir),
                "-s",
                "2025-fall",
                "-l",
                "3",
                "-l",
                "4",
                "-o",
                str(output),
                "--excel",
                str(excel_dir),
            ],
        )
        assert result.exit_code == 0, result.output

        # Suffix is forced to .json
        written = output.with_suffix(".json")
        data = json.loads(written.read_text(encoding="utf-8"))
        assert len(data["sections"]) == 10
        assert data["metadata"]["total_exams"] == 12
        assert sorted(p.name for p in excel_dir.iterdir()) == [
            "schedule-level-3.xlsx",
            "schedule-level-4.xlsx",
        ]
        assert "Generated 2 Excel file(s)" in result.output

    def test_invalid_planning_data(self, reference_dir, tmp_path):
        output = tmp_path / "schedule.json"
        (reference_dir / "rooms.csv").write_text("id,capacity\n", encoding="utf-8")
        result = runner.invoke(
            app,
            ["generate", str(reference_dir), "-s", "2025-fall", "-l", "3", "-o", str(output)],
        )
        assert result.exit_code == 1
        assert "Room inventory is empty" in result.output
        assert not output.exists()


class TestCheck:
    """Tests for the check command."""

    def test_generated_schedule(self, schedule_file, reference_dir, tmp_path):
        report = tmp_path / "conflicts.json"
        result = runner.invoke(
            app, ["check", str(schedule_file), "-d", str(reference_dir), "-o", str(report)]
        )
        assert result.exit_code == 0, result.output
        assert "Conflict Summary" in result.output
        assert isinstance(json.loads(report.read_text(encoding="utf-8")), list)

    def test_student_missing_prerequisite(self, schedule_file, reference_dir):
        args = ["check", str(schedule_file), "-d", str(reference_dir)]
        student = ["--student-id", "S1", "--student-level", "3"]

        result = runner.invoke(app, args + student)
        assert result.exit_code == 1

        result = runner.invoke(app, args + student + ["--completed", "CS201"])
        assert result.exit_code == 0, result.output

    def test_student_level_required(self, schedule_file, reference_dir):
        result = runner.invoke(
            app, ["check", str(schedule_file), "-d", str(reference_dir), "--student-id", "S1"]
        )
        assert result.exit_code == 1
        assert "--student-level" in result.output

    def test_room_clash_is_blocking(self, clash_file, reference_dir):
        result = runner.invoke(app, ["check", str(clash_file), "-d", str(reference_dir)])
        assert result.exit_code == 1

    def test_missing_file(self, reference_dir, tmp_path):
        result = runner.invoke(
            app, ["check", str(tmp_path / "missing.json"), "-d", str(reference_dir)]
        )
        assert result.exit_code == 1
        assert "File not found" in result.output


class TestResolve:
    """Tests for the resolve command."""

    @staticmethod
    def invoke(clash_file, reference_dir, *extra):
        args = ["resolve", str(clash_file), ROOM_CONFLICT_ID, "-d", str(reference_dir)]
        return runner.invoke(app, args + list(extra))

    def test_auto_resolve_and_apply(self, clash_file, reference_dir, tmp_path):
        output = tmp_path / "resolved.json"
        result = self.invoke(clash_file, reference_dir, "--apply", "-o", str(output))
        assert result.exit_code == 0, result.output
        assert "Options" in result.output

        resolved = load_schedule_json(output)
        conflict = resolved.get_conflict(ROOM_CONFLICT_ID)
        assert conflict is not None
        assert conflict.resolved
        assert resolved.id == resolved.content_id()
        # Input file untouched
        assert load_schedule_json(clash_file).get_section("CS401-1").room_id == "A101"

    def test_manual_room_change(self, clash_file, reference_dir):
        result = self.invoke(clash_file, reference_dir, "--section", "CS401-1", "--room", "B201")
        assert result.exit_code == 0, result.output

    def test_manual_slot_change(self, clash_file, reference_dir):
        result = self.invoke(
            clash_file, reference_dir, "--section", "CS401-1", "--slot", "monday 08:00-09:30"
        )
        assert result.exit_code == 0, result.output

    def test_manual_change_needs_section(self, clash_file, reference_dir):
        result = self.invoke(clash_file, reference_dir, "--room", "B201")
        assert result.exit_code == 1
        assert "--section" in result.output

    def test_bad_slot(self, clash_file, reference_dir):
        result = self.invoke(
            clash_file, reference_dir, "--section", "CS401-1", "--slot", "monday 8-9"
        )
        assert result.exit_code == 1

    def test_student_conflict(self, clash_file, reference_dir):
        student = [
            "--student-id",
            "S1",
            "--student-level",
            "3",
            "--student-section",
            "CS301-1",
            "--student-section",
            "CS401-1",
            "--completed",
            "CS201",
        ]
        args = ["resolve", str(clash_file), "student-S1-CS301-1-CS401-1", "-d", str(reference_dir)]

        result = runner.invoke(app, args + student)
        assert result.exit_code == 0, result.output

        # Only visible with the student's timetable
        result = runner.invoke(app, args)
        assert result.exit_code == 1
        assert "Conflict not found" in result.output

    def test_unknown_conflict(self, clash_file, reference_dir):
        result = runner.invoke(
            app, ["resolve", str(clash_file), "room-X-1-2", "-d", str(reference_dir)]
        )
        assert result.exit_code == 1
        assert "Conflict not found" in result.output


class TestExportExcel:
    """Tests for the export-excel command."""

    def test_single_level(self, schedule_file, reference_dir, tmp_path):
        output = tmp_path / "excel"
        args = ["export-excel", str(schedule_file), "-d", str(reference_dir), "-o", str(output)]
        result = runner.invoke(app, args + ["-l", "3"])
        assert result.exit_code == 0, result.output
        assert [p.name for p in output.iterdir()] == ["schedule-level-3.xlsx"]

    def test_all_levels(self, schedule_file, reference_dir, tmp_path):
        output = tmp_path / "excel"
        result = runner.invoke(
            app, ["export-excel", str(schedule_file), "-d", str(reference_dir), "-o", str(output)]
        )
        assert result.exit_code == 0, result.output
        assert "Generated 2 file(s)" in result.output
