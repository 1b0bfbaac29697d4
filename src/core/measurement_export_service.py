"""
Measurement Export Service

Writes measurement records to JSON, CSV, or XLSX files.

Inputs:
    - Ordered measurement records (MeasurementStore.list())
    - File path and format (JSON, CSV, XLSX)

Outputs:
    - Written export files

Requirements:
    - json and csv (standard library)
    - openpyxl for XLSX
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from core.measurement_records import MeasurementRecord, utc_timestamp
from core.measurement_store import _sanitize_filename

PathLike = Union[str, Path]

EXPORT_EXTENSIONS = {"JSON": ".json", "CSV": ".csv", "XLSX": ".xlsx"}

# Flat column set shared by CSV and XLSX; kinds leave foreign columns blank
TABLE_COLUMNS = [
    ("id", "ID"),
    ("kind", "Kind"),
    ("toolName", "Tool"),
    ("sliceIndex", "Slice Index"),
    ("value_mm", "Length (mm)"),
    ("area_mm2", "Area (mm²)"),
    ("volume_mm3", "Volume (mm³)"),
    ("value_degrees", "Angle (°)"),
    ("mean", "Mean"),
    ("stdDev", "Std Dev"),
    ("min", "Min"),
    ("max", "Max"),
    ("formatted", "Formatted"),
    ("creationTimestamp", "Created"),
]


def _table_rows(records: Sequence[MeasurementRecord]) -> List[List[Any]]:
    rows: List[List[Any]] = [[header for _, header in TABLE_COLUMNS]]
    for record in records:
        data = record.to_dict()
        rows.append(["" if data.get(key) is None else data[key] for key, _ in TABLE_COLUMNS])
    return rows


def write_json(file_path: PathLike, records: Sequence[MeasurementRecord], indent: Optional[int] = 2) -> None:
    """Write records as a JSON array (same document as MeasurementStore.export)."""
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump([record.to_dict() for record in records], f, indent=indent, ensure_ascii=False,
                  allow_nan=False)


def write_csv(file_path: PathLike, records: Sequence[MeasurementRecord]) -> None:
    """Write one header row plus one row per record."""
    with open(file_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerows(_table_rows(records))


def write_xlsx(file_path: PathLike, records: Sequence[MeasurementRecord]) -> None:
    """Write one "Measurements" sheet with a bold header row."""
    try:
        from openpyxl import Workbook
        from openpyxl.styles import Font
    except ImportError as e:
        raise ImportError(
            "openpyxl is required for XLSX export. Install with: pip install openpyxl"
        ) from e

    wb = Workbook()
    ws = wb.active
    if ws is None:
        raise RuntimeError("Workbook has no active sheet")
    ws.title = "Measurements"

    bold_font = Font(bold=True)
    for row_index, row in enumerate(_table_rows(records), start=1):
        for column_index, value in enumerate(row, start=1):
            cell = ws.cell(row=row_index, column=column_index, value=value)
            if row_index == 1:
                cell.font = bold_font
    wb.save(str(file_path))


def export_measurements(file_path: PathLike, records: Sequence[MeasurementRecord],
                        format_key: str = "JSON", indent: Optional[int] = 2) -> None:
    """
    Write records in the requested format.

    Args:
        file_path: Destination file
        records: Records to write, in order
        format_key: "JSON", "CSV" or "XLSX" (case-insensitive)
        indent: JSON indentation (ignored for CSV and XLSX)

    Raises:
        ValueError: Unsupported format
    """
    format_key = format_key.upper()
    if format_key == "JSON":
        write_json(file_path, records, indent=indent)
    elif format_key == "CSV":
        write_csv(file_path, records)
    elif format_key == "XLSX":
        write_xlsx(file_path, records)
    else:
        raise ValueError(f"Unsupported format: {format_key}")


def default_export_path(directory: PathLike, format_key: str = "JSON") -> Path:
    """
    Build measurements-<timestamp>.<ext> in directory for the given format.

    Raises:
        ValueError: Unsupported format
    """
    extension = EXPORT_EXTENSIONS.get(format_key.upper())
    if extension is None:
        raise ValueError(f"Unsupported format: {format_key}")
    return Path(directory) / _sanitize_filename(f"measurements-{utc_timestamp()}{extension}")
