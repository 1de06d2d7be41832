"""Utility functions for the section scheduler."""

import json
import re
from pathlib import Path
from typing import Any

import pandas as pd

from .exceptions import DataSourceError

TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
LIST_SEPARATOR = re.compile(r"[;,]")


def time_to_minutes(value: str) -> int:
    """Convert a 'HH:MM' string to minutes since midnight.

    Args:
        value: Time string like '08:30'

    Returns:
        Minutes since midnight

    Raises:
        ValueError: If the string is not a valid time of day
    """
    match = TIME_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 24 or minutes > 59 or (hours == 24 and minutes):
        raise ValueError(f"Invalid time '{value}'")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight to a 'HH:MM' string."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_time_range(value: str) -> tuple[int, int]:
    """Parse a range like '08:00-12:00' into start and end minutes.

    Args:
        value: Time range string

    Returns:
        Tuple of (start_minutes, end_minutes)

    Raises:
        ValueError: If the range is malformed
    """
    parts = value.split("-")
    if len(parts) != 2:
        raise ValueError(f"Invalid time range '{value}', expected HH:MM-HH:MM")
    return time_to_minutes(parts[0]), time_to_minutes(parts[1])


def safe_int(value, default: int = 0) -> int:
    """Safely convert a value to integer.

    Args:
        value: Value to convert
        default: Default value if conversion fails

    Returns:
        Integer value
    """
    if value is None or pd.isna(value):
        return default
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return default


def safe_str(value, default: str = "") -> str:
    """Safely convert a value to string.

    Args:
        value: Value to convert
        default: Default value if conversion fails

    Returns:
        String value
    """
    if value is None or pd.isna(value):
        return default
    return str(value).strip()


def safe_bool(value, default: bool = False) -> bool:
    """Interpret spreadsheet flags such as 'true', 'yes', '1'."""
    text = safe_str(value).lower()
    if not text:
        return default
    return text in ("true", "yes", "y", "1")


def split_list(value) -> list[str]:
    """Split a ';' or ',' separated cell into trimmed non-empty items."""
    text = safe_str(value)
    if not text:
        return []
    return [item.strip() for item in LIST_SEPARATOR.split(text) if item.strip()]


def find_table(config_dir: Path, stem: str) -> Path | None:
    """Find a tabular reference file by stem, preferring CSV over XLSX."""
    for suffix in (".csv", ".xlsx"):
        path = config_dir / f"{stem}{suffix}"
        if path.exists():
            return path
    return None


def read_table(path: Path, required_columns: list[str] | None = None) -> pd.DataFrame:
    """Read a CSV or Excel reference table into a DataFrame.

    Column names are normalized to lower case with surrounding
    whitespace removed.

    Args:
        path: Path to a .csv or .xlsx file
        required_columns: Columns that must be present

    Returns:
        DataFrame with one row per record

    Raises:
        DataSourceError: If the file cannot be parsed or lacks columns
    """
    try:
        if path.suffix.lower() == ".xlsx":
            df = pd.read_excel(path, engine="openpyxl")
        else:
            df = pd.read_csv(path, encoding="utf-8", dtype=str)
    except (OSError, ValueError) as e:
        raise DataSourceError(path, str(e)) from e

    df.columns = [str(column).strip().lower() for column in df.columns]
    missing = [c for c in required_columns or [] if c not in df.columns]
    if missing:
        raise DataSourceError(path, f"missing column(s): {', '.join(missing)}")
    return df


def load_json(path: Path) -> Any:
    """Load a JSON reference file.

    Raises:
        DataSourceError: If the file cannot be read or parsed
    """
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise DataSourceError(path, str(e)) from e
