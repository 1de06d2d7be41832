"""Export functions for generated schedules."""

import json
from pathlib import Path

from ..exceptions import DataSourceError
from ..utils import load_json
from .models import GeneratedSchedule, ScheduleConflict


def export_schedule_json(schedule: GeneratedSchedule, output_path: Path | str) -> None:
    """Export a schedule to a JSON file.

    Args:
        schedule: GeneratedSchedule to export
        output_path: Path to output JSON file
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with open(output, "w", encoding="utf-8") as f:
        json.dump(schedule.to_dict(), f, ensure_ascii=False, indent=2)


def export_conflicts_json(
    conflicts: list[ScheduleConflict], output_path: Path | str
) -> None:
    """Export a conflict report to a JSON file."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with open(output, "w", encoding="utf-8") as f:
        json.dump([c.to_dict() for c in conflicts], f, ensure_ascii=False, indent=2)


def load_schedule_json(input_path: Path | str) -> GeneratedSchedule:
    """Load a schedule previously written by export_schedule_json.

    The file may have been edited by hand; the stored id is kept as is.

    Args:
        input_path: Path to schedule JSON file

    Returns:
        GeneratedSchedule

    Raises:
        DataSourceError: If the file is unreadable or not a schedule
    """
    path = Path(input_path)
    data = load_json(path)
    if not isinstance(data, dict) or "sections" not in data:
        raise DataSourceError(path, "not a schedule file")
    try:
        return GeneratedSchedule.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise DataSourceError(path, f"invalid schedule: {e}") from e
