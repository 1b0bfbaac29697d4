"""
Annotation Event Bridge

This module turns annotation add/remove notifications from the rendering
surface into measurement records and keeps the measurement store synchronized.

Inputs:
    - annotation_added / annotation_removed signals from the surface
    - Current calibration, slice index and (optionally) pixel array, resolved at
      event time through callbacks

Outputs:
    - Records appended to / removed from the MeasurementStore
    - measurement_created / measurement_removed / annotation_dropped signals

Requirements:
    - PySide6 for signals
    - core.measurement_geometry for the physical computations
    - core.roi_statistics for pixel-array statistics
"""

from typing import Callable, Dict, Optional, Tuple

import numpy as np
from PySide6.QtCore import QObject, Signal

from core.measurement_geometry import (
    GeometryError,
    angle,
    distance,
    ellipse_area,
    format_measurement,
    rectangle_area,
    volume,
)
from core.measurement_records import (
    KIND_ANGLE,
    KIND_ELLIPSE,
    KIND_LENGTH,
    KIND_RECTANGLE,
    KIND_TO_TOOL_NAME,
    UNIT_DEGREES,
    UNIT_MM,
    UNIT_MM2,
    UNIT_MM3,
    AngleMeasurement,
    AreaMeasurement,
    LengthMeasurement,
    MeasurementRecord,
    resolve_kind,
)
from core.measurement_store import MeasurementStore
from core.roi_statistics import compute_region_statistics
from utils.dicom_utils import Calibration
from utils.debug_log import annotation_debug, debug_log


# Reasons reported with annotation_dropped
DROP_UNSUPPORTED_KIND = "unsupported_kind"
DROP_INVALID_GEOMETRY = "invalid_geometry"
DROP_DUPLICATE_ID = "duplicate_id"

REQUIRED_HANDLES = {
    KIND_LENGTH: 2,
    KIND_RECTANGLE: 2,
    KIND_ELLIPSE: 2,
    KIND_ANGLE: 3,
}


class AnnotationEventBridge(QObject):
    """
    Mirrors supported annotations into the measurement store.

    All handlers run synchronously and never raise into the emitter: malformed
    or unsupported annotations are dropped and logged, leaving the rendering
    surface interactive.
    """

    # Signals
    measurement_created = Signal(object)  # MeasurementRecord
    measurement_removed = Signal(str)  # record id
    annotation_dropped = Signal(str, str)  # (annotation_uid, reason)

    def __init__(
        self,
        surface,
        store: MeasurementStore,
        get_calibration: Callable[[], Optional[Calibration]],
        get_current_slice_index: Callable[[], Optional[int]],
        get_pixel_array: Optional[Callable[[], Optional[np.ndarray]]] = None,
        get_rescale: Optional[Callable[[], Tuple[Optional[float], Optional[float]]]] = None,
        config_manager=None,
    ):
        """
        Initialize the bridge and connect to the surface signals.

        Args:
            surface: AnnotationSurface emitting annotation_added/annotation_removed
            store: MeasurementStore to keep in sync
            get_calibration: Callback returning the displayed image's calibration
            get_current_slice_index: Callback returning the displayed slice index
            get_pixel_array: Optional callback returning the displayed pixel array
            get_rescale: Optional callback returning (rescale_slope, rescale_intercept)
            config_manager: Optional ConfigManager for display precision
        """
        super().__init__()
        self.surface = surface
        self.store = store
        self.get_calibration = get_calibration
        self.get_current_slice_index = get_current_slice_index
        self.get_pixel_array = get_pixel_array
        self.get_rescale = get_rescale
        self.config_manager = config_manager
        self._connected = False
        self.connect_surface()

    def connect_surface(self) -> None:
        if self._connected:
            return
        self.surface.annotation_added.connect(self.handle_annotation_added)
        self.surface.annotation_removed.connect(self.handle_annotation_removed)
        self._connected = True

    def detach(self) -> None:
        """Stop observing the surface."""
        if not self._connected:
            return
        self.surface.annotation_added.disconnect(self.handle_annotation_added)
        self.surface.annotation_removed.disconnect(self.handle_annotation_removed)
        self._connected = False

    def _decimals(self) -> Dict[str, int]:
        if self.config_manager is None:
            return {"length": 2, "area": 2, "angle": 1}
        return {
            "length": self.config_manager.get_length_decimals(),
            "area": self.config_manager.get_area_decimals(),
            "angle": self.config_manager.get_angle_decimals(),
        }

    def _resolve_calibration(self, annotation_uid: str) -> Tuple[Tuple[float, float], float]:
        """Return (axis_spacing, slice_thickness) with defaults for missing metadata."""
        calibration = self.get_calibration() if self.get_calibration else None
        if calibration is None:
            calibration = Calibration()
        if not calibration.has_pixel_spacing or not calibration.has_slice_thickness:
            debug_log("annotation_event_bridge:calibration", "Missing calibration, using defaults",
                      {"annotation_uid": annotation_uid,
                       "pixel_spacing": calibration.pixel_spacing,
                       "slice_thickness": calibration.slice_thickness})
        return calibration.axis_spacing(), calibration.resolved_slice_thickness()

    def _drop(self, annotation_uid: str, reason: str, detail: str) -> None:
        annotation_debug(f"Dropped annotation {annotation_uid} ({reason}): {detail}")
        debug_log("annotation_event_bridge:drop", "Annotation not mirrored",
                  {"annotation_uid": annotation_uid, "reason": reason, "detail": detail})
        self.annotation_dropped.emit(annotation_uid, reason)

    def handle_annotation_added(self, annotation) -> None:
        """
        Create and store the record for a newly added annotation.

        Calibration and slice index are read now, at the moment of the event.
        """
        annotation_uid = str(getattr(annotation, "annotation_uid", ""))
        raw_kind = getattr(annotation, "kind", None)
        kind = resolve_kind(raw_kind)
        if kind is None:
            self._drop(annotation_uid, DROP_UNSUPPORTED_KIND, f"kind {raw_kind!r}")
            return
        if annotation_uid in self.store:
            self._drop(annotation_uid, DROP_DUPLICATE_ID, "already mirrored")
            return

        slice_index = self.get_current_slice_index() if self.get_current_slice_index else None
        spacing, slice_thickness = self._resolve_calibration(annotation_uid)
        try:
            record = self._build_record(annotation, annotation_uid, kind, slice_index,
                                        spacing, slice_thickness)
        except (GeometryError, TypeError, ValueError) as e:
            self._drop(annotation_uid, DROP_INVALID_GEOMETRY, str(e))
            return

        self.store.add(record)
        annotation_debug(f"Mirrored {kind} {annotation_uid} on slice {slice_index}: {record.formatted}")
        self.measurement_created.emit(record)

    def handle_annotation_removed(self, annotation_uid: str) -> None:
        """Delete the record mirroring annotation_uid; unknown ids are ignored."""
        if self.store.remove(annotation_uid):
            self.measurement_removed.emit(annotation_uid)

    def _build_record(self, annotation, annotation_uid: str, kind: str,
                      slice_index: Optional[int], spacing: Tuple[float, float],
                      slice_thickness: float) -> MeasurementRecord:
        handles = list(getattr(annotation, "handles", None) or [])
        if len(handles) < REQUIRED_HANDLES[kind]:
            raise GeometryError(f"{kind} needs {REQUIRED_HANDLES[kind]} handles, got {len(handles)}")
        decimals = self._decimals()
        tool_name = annotation.kind if annotation.kind in KIND_TO_TOOL_NAME.values() else None

        if kind == KIND_LENGTH:
            value_mm = distance(handles[0], handles[1], spacing)
            return LengthMeasurement(
                annotation_uid, slice_index, value_mm,
                tool_name=tool_name,
                formatted=format_measurement(value_mm, UNIT_MM, decimals["length"]),
            )

        if kind == KIND_ANGLE:
            value_degrees = angle(handles[0], handles[1], handles[2])
            return AngleMeasurement(
                annotation_uid, slice_index, value_degrees,
                tool_name=tool_name,
                formatted=format_measurement(value_degrees, UNIT_DEGREES, decimals["angle"]),
            )

        if kind == KIND_RECTANGLE:
            area_mm2 = rectangle_area(handles, spacing)
        else:
            area_mm2 = ellipse_area(handles, spacing)
        volume_mm3 = volume(area_mm2, slice_thickness)
        return AreaMeasurement(
            annotation_uid, slice_index, kind, area_mm2, volume_mm3,
            statistics=self._region_statistics(annotation, kind, handles),
            tool_name=tool_name,
            formatted=format_measurement(area_mm2, UNIT_MM2, decimals["area"]),
            volume_formatted=format_measurement(volume_mm3, UNIT_MM3, decimals["area"]),
        )

    def _region_statistics(self, annotation, kind: str, handles) -> Optional[Dict[str, float]]:
        """Statistics reported by the surface, else computed from the pixel array if available."""
        statistics = getattr(annotation, "statistics", None)
        if statistics:
            return statistics
        if self.get_pixel_array is None:
            return None
        pixel_array = self.get_pixel_array()
        if pixel_array is None:
            return None
        slope, intercept = self.get_rescale() if self.get_rescale else (None, None)
        try:
            return compute_region_statistics(kind, handles, pixel_array, slope, intercept)
        except (ValueError, TypeError, IndexError) as e:
            # Statistics are optional; the area record is still created
            annotation_debug(f"Statistics skipped for {getattr(annotation, 'annotation_uid', '')}: {e}")
            debug_log("annotation_event_bridge:statistics", "Region statistics failed",
                      {"annotation_uid": getattr(annotation, "annotation_uid", ""),
                       "kind": kind, "error": str(e)})
            return None
