"""
Measurement Store

This module holds the ordered, identity-keyed collection of measurement records
mirrored from the annotations tracked by the rendering surface. It is the single
source of truth for the measurement list and for export.

Inputs:
    - Records created by the annotation event bridge
    - Removal requests (one record or all)

Outputs:
    - Ordered read-only record snapshots
    - JSON export (string or file)
    - measurement_added / measurement_removed / measurements_cleared signals

Requirements:
    - PySide6 for signals
    - json (standard library) for export
"""

import json
import re
from collections import OrderedDict
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from PySide6.QtCore import QObject, Signal

from core.measurement_records import MeasurementRecord, records_from_dicts, utc_timestamp
from utils.debug_log import annotation_debug, debug_log


class DuplicateMeasurementError(ValueError):
    """A record id was added twice; indicates a defect in the caller, not user error."""


def _sanitize_filename(s: str) -> str:
    """Replace characters invalid in filenames with dashes."""
    return re.sub(r'[/\\:*?"<>|]', '-', s).strip()


def parse_export(text: str) -> List[MeasurementRecord]:
    """
    Rebuild records from an export document.

    Raises:
        ValueError: If the document is not a JSON array of measurement records
    """
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("Measurement export must be a JSON array")
    return records_from_dicts(data)


class MeasurementStore(QObject):
    """
    Ordered mirror of the surface's annotations as measurement records.

    Records are appended in arrival order and keyed by their annotation id.
    """

    # Signals
    measurement_added = Signal(object)  # MeasurementRecord
    measurement_removed = Signal(str)  # record id
    measurements_cleared = Signal()

    def __init__(self, surface=None):
        """
        Initialize an empty store.

        Args:
            surface: AnnotationSurface the records mirror (required for
                remove_one and clear_all)
        """
        super().__init__()
        self.surface = surface
        self._records: "OrderedDict[str, MeasurementRecord]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __iter__(self) -> Iterator[MeasurementRecord]:
        return iter(self.list())

    def add(self, record: MeasurementRecord) -> None:
        """
        Append a record.

        Raises:
            DuplicateMeasurementError: If a record with the same id exists
        """
        if record.id in self._records:
            raise DuplicateMeasurementError(f"Measurement already stored: {record.id}")
        self._records[record.id] = record
        self.measurement_added.emit(record)

    def remove(self, record_id: str) -> bool:
        """
        Delete the record with record_id if present.

        Returns:
            True if a record was deleted; an absent id is a no-op
        """
        if record_id not in self._records:
            annotation_debug(f"Removal ignored, no measurement with id {record_id}")
            debug_log("measurement_store:remove", "Removal for unknown id", {"id": record_id})
            return False
        del self._records[record_id]
        self.measurement_removed.emit(record_id)
        return True

    def remove_one(self, record_id: str) -> None:
        """
        Remove a measurement and its annotation on the surface.

        When this returns neither the surface nor the store holds record_id.
        """
        if self.surface is not None:
            self.surface.remove_annotation(record_id)
        # The surface's removal event usually removed the record already
        if record_id in self._records:
            self.remove(record_id)

    def clear_all(self) -> None:
        """
        Remove every annotation from the surface and empty the store.

        Both are complete on return; later add events are handled normally.
        """
        if self.surface is not None:
            self.surface.remove_all_annotations()
        had_records = bool(self._records)
        self._records.clear()
        if had_records:
            debug_log("measurement_store:clear_all", "Cleared records left after surface removal", {})
        self.measurements_cleared.emit()

    def list(self) -> Tuple[MeasurementRecord, ...]:
        """Return an ordered read-only snapshot of the records."""
        return tuple(self._records.values())

    def ids(self) -> List[str]:
        return list(self._records.keys())

    def get(self, record_id: str) -> Optional[MeasurementRecord]:
        return self._records.get(record_id)

    def to_dicts(self) -> List[dict]:
        return [record.to_dict() for record in self._records.values()]

    def export(self, indent: Optional[int] = 2) -> str:
        """
        Serialize the records, in order, to a JSON array.

        parse_export() of the result reproduces every field exactly.
        """
        return json.dumps(self.to_dicts(), indent=indent, ensure_ascii=False, allow_nan=False)

    def export_to_file(self, directory: Union[str, Path], indent: Optional[int] = 2) -> Path:
        """
        Write the export to measurements-<timestamp>.json in directory.

        Returns:
            Path of the written file
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        file_path = directory / _sanitize_filename(f"measurements-{utc_timestamp()}.json")
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(self.export(indent=indent))
        return file_path
