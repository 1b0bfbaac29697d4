"""
Measurement Records

This module defines the derived measurement records mirrored from annotations,
their kind-specific payloads, and their JSON field mapping.

Inputs:
    - Values computed by core.measurement_geometry
    - Export dictionaries (for parsing)

Outputs:
    - LengthMeasurement, AreaMeasurement and AngleMeasurement records
    - JSON-ready dictionaries

Requirements:
    - Standard library only
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


KIND_LENGTH = "Length"
KIND_RECTANGLE = "Rectangle"
KIND_ELLIPSE = "Ellipse"
KIND_ANGLE = "Angle"

AREA_KINDS = (KIND_RECTANGLE, KIND_ELLIPSE)
SUPPORTED_KINDS = (KIND_LENGTH, KIND_RECTANGLE, KIND_ELLIPSE, KIND_ANGLE)

# Interaction tool name -> annotation kind
TOOL_NAME_TO_KIND = {
    "Length": KIND_LENGTH,
    "RectangleROI": KIND_RECTANGLE,
    "EllipticalROI": KIND_ELLIPSE,
    "Angle": KIND_ANGLE,
}
KIND_TO_TOOL_NAME = {kind: tool for tool, kind in TOOL_NAME_TO_KIND.items()}

UNIT_MM = "mm"
UNIT_MM2 = "mm²"
UNIT_MM3 = "mm³"
UNIT_DEGREES = "°"

# Optional intensity statistics: attribute name -> JSON key
STATISTIC_FIELDS = (
    ("mean", "mean"),
    ("std_dev", "stdDev"),
    ("min", "min"),
    ("max", "max"),
)


def resolve_kind(kind_or_tool_name: Optional[str]) -> Optional[str]:
    """
    Map a tool name or kind name to a supported annotation kind.

    Returns:
        One of SUPPORTED_KINDS, or None for unsupported kinds
    """
    if kind_or_tool_name in TOOL_NAME_TO_KIND:
        return TOOL_NAME_TO_KIND[kind_or_tool_name]
    if kind_or_tool_name in SUPPORTED_KINDS:
        return kind_or_tool_name
    return None


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


class MeasurementRecord:
    """
    Base class for a measurement derived from one annotation.

    id and slice_index are captured at creation and exposed read-only; the
    slice index is never looked up again after the record exists.
    """

    kind: str = ""

    def __init__(self, record_id: str, slice_index: Optional[int],
                 creation_timestamp: Optional[str] = None,
                 tool_name: Optional[str] = None,
                 formatted: str = ""):
        self._id = str(record_id)
        self._slice_index = slice_index
        self._creation_timestamp = creation_timestamp or utc_timestamp()
        self.tool_name = tool_name or KIND_TO_TOOL_NAME.get(self.kind, self.kind)
        self.formatted = formatted

    @property
    def id(self) -> str:
        return self._id

    @property
    def slice_index(self) -> Optional[int]:
        return self._slice_index

    @property
    def creation_timestamp(self) -> str:
        return self._creation_timestamp

    def _payload(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the export dictionary (kind-specific fields in the middle)."""
        data: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind,
            "toolName": self.tool_name,
            "sliceIndex": self.slice_index,
        }
        data.update(self._payload())
        data["creationTimestamp"] = self.creation_timestamp
        return data

    def __eq__(self, other) -> bool:
        if not isinstance(other, MeasurementRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_dict()!r})"


class LengthMeasurement(MeasurementRecord):
    kind = KIND_LENGTH

    def __init__(self, record_id: str, slice_index: Optional[int], value_mm: float, **kwargs):
        super().__init__(record_id, slice_index, **kwargs)
        self.value_mm = float(value_mm)

    def _payload(self) -> Dict[str, Any]:
        return {"value_mm": self.value_mm, "formatted": self.formatted}


class AreaMeasurement(MeasurementRecord):
    """
    Rectangle or ellipse region measurement.

    Intensity statistics are optional and only exported when present.
    """

    def __init__(self, record_id: str, slice_index: Optional[int], kind: str,
                 area_mm2: float, volume_mm3: float,
                 statistics: Optional[Dict[str, float]] = None,
                 volume_formatted: str = "", **kwargs):
        if kind not in AREA_KINDS:
            raise ValueError(f"Not an area kind: {kind}")
        self.kind = kind
        super().__init__(record_id, slice_index, **kwargs)
        self.area_mm2 = float(area_mm2)
        self.volume_mm3 = float(volume_mm3)
        self.volume_formatted = volume_formatted
        self.mean: Optional[float] = None
        self.std_dev: Optional[float] = None
        self.min: Optional[float] = None
        self.max: Optional[float] = None
        if statistics:
            for attribute, key in STATISTIC_FIELDS:
                value = statistics.get(key, statistics.get(attribute))
                # NaN/inf have no JSON form; treat them as absent
                if value is not None and math.isfinite(float(value)):
                    setattr(self, attribute, float(value))

    @property
    def has_statistics(self) -> bool:
        return any(getattr(self, attribute) is not None for attribute, _ in STATISTIC_FIELDS)

    def _payload(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "area_mm2": self.area_mm2,
            "volume_mm3": self.volume_mm3,
            "formatted": self.formatted,
            "volumeFormatted": self.volume_formatted,
        }
        for attribute, key in STATISTIC_FIELDS:
            value = getattr(self, attribute)
            if value is not None:
                data[key] = value
        return data


class AngleMeasurement(MeasurementRecord):
    kind = KIND_ANGLE

    def __init__(self, record_id: str, slice_index: Optional[int], value_degrees: float, **kwargs):
        super().__init__(record_id, slice_index, **kwargs)
        self.value_degrees = float(value_degrees)

    def _payload(self) -> Dict[str, Any]:
        return {"value_degrees": self.value_degrees, "formatted": self.formatted}


def record_from_dict(data: Dict[str, Any]) -> MeasurementRecord:
    """
    Rebuild a record from its export dictionary.

    Raises:
        ValueError: If the kind is unknown or a mandatory field is missing
    """
    kind = data.get("kind")
    try:
        common = {
            "creation_timestamp": data["creationTimestamp"],
            "tool_name": data.get("toolName"),
            "formatted": data.get("formatted", ""),
        }
        record_id = data["id"]
        slice_index = data.get("sliceIndex")
        if kind == KIND_LENGTH:
            return LengthMeasurement(record_id, slice_index, data["value_mm"], **common)
        if kind in AREA_KINDS:
            statistics = {key: data[key] for _, key in STATISTIC_FIELDS if key in data}
            return AreaMeasurement(record_id, slice_index, kind,
                                   data["area_mm2"], data["volume_mm3"],
                                   statistics=statistics,
                                   volume_formatted=data.get("volumeFormatted", ""),
                                   **common)
        if kind == KIND_ANGLE:
            return AngleMeasurement(record_id, slice_index, data["value_degrees"], **common)
    except KeyError as e:
        raise ValueError(f"Measurement record missing field {e}") from e
    raise ValueError(f"Unknown measurement kind: {kind!r}")


def records_from_dicts(items: List[Dict[str, Any]]) -> List[MeasurementRecord]:
    return [record_from_dict(item) for item in items]
