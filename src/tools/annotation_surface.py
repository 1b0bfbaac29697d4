"""
Annotation Surface

This module defines the contract between the measurement engine and the
rendering surface that owns annotations and tool bindings, together with a
headless in-memory implementation.

Inputs:
    - Annotations completed by drawing tools (add_annotation)
    - Removal requests (single annotation or all)
    - Tool binding requests from the tool group
    - Viewport registrations and image-loaded state

Outputs:
    - annotation_added / annotation_removed signals
    - Per-viewport tool modes and bindings

Requirements:
    - PySide6 for signals
"""

from typing import Dict, List, Optional, Tuple

from PySide6.QtCore import QObject, Signal


TOOL_MODE_ACTIVE = "active"
TOOL_MODE_PASSIVE = "passive"
TOOL_MODE_ENABLED = "enabled"
TOOL_MODE_DISABLED = "disabled"


class Annotation:
    """
    A user-drawn geometric primitive on one slice.

    Owned by the rendering surface; the engine only observes it.
    """

    def __init__(self, annotation_uid: str, kind: str, handles: List[Tuple[float, float]],
                 slice_index: Optional[int] = None,
                 statistics: Optional[Dict[str, float]] = None):
        """
        Args:
            annotation_uid: Opaque identity
            kind: Tool name ("RectangleROI") or kind name ("Rectangle")
            handles: Handle points in image pixel space
            slice_index: Slice the annotation was drawn on, if the surface knows it
            statistics: Optional intensity statistics (mean, stdDev, min, max)
        """
        self.annotation_uid = str(annotation_uid)
        self.kind = kind
        self.handles = list(handles) if handles is not None else []
        self.slice_index = slice_index
        self.statistics = statistics

    @classmethod
    def from_dict(cls, data: dict) -> 'Annotation':
        """
        Create from a recorded event dictionary.

        Accepts "id" or "annotationUID", "kind" or "toolName", and handles either
        as a point list or as {"points": [...]}.
        """
        handles = data.get("handles", [])
        if isinstance(handles, dict):
            handles = handles.get("points", [])
        return cls(
            annotation_uid=data.get("id", data.get("annotationUID")),
            kind=data.get("kind", data.get("toolName")),
            handles=[tuple(point) if isinstance(point, (list, tuple)) else point for point in handles],
            slice_index=data.get("sliceIndex"),
            statistics=data.get("stats", data.get("statistics")),
        )

    def __repr__(self) -> str:
        return f"Annotation({self.annotation_uid!r}, {self.kind!r}, handles={self.handles!r})"


class AnnotationSurface(QObject):
    """
    Headless rendering surface keeping annotations and tool bindings in memory.

    Hosts with a real renderer subclass this and forward the binding calls to it;
    the engine only relies on the signals and the methods below.
    """

    # Signals
    annotation_added = Signal(object)  # Annotation
    annotation_removed = Signal(str)  # annotation_uid

    def __init__(self):
        super().__init__()
        self._annotations: Dict[str, Annotation] = {}
        self._viewports: List[str] = []
        self._images_loaded: Dict[str, bool] = {}
        # viewport_id -> tool_name -> (mode, mouse_button)
        self._tool_states: Dict[str, Dict[str, Tuple[str, Optional[str]]]] = {}
        self.registration_count = 0

    # Annotations

    def add_annotation(self, annotation: Annotation) -> None:
        """Track a completed annotation and notify observers."""
        self._annotations[annotation.annotation_uid] = annotation
        self.annotation_added.emit(annotation)

    def remove_annotation(self, annotation_uid: str) -> bool:
        """
        Remove one annotation and notify observers.

        Returns:
            True if the annotation existed
        """
        if annotation_uid not in self._annotations:
            return False
        del self._annotations[annotation_uid]
        self.annotation_removed.emit(annotation_uid)
        return True

    def remove_all_annotations(self) -> int:
        """
        Remove every annotation, emitting one removal per annotation.

        Returns:
            Number of annotations removed
        """
        uids = list(self._annotations.keys())
        for uid in uids:
            self.remove_annotation(uid)
        return len(uids)

    def get_annotations(self) -> List[Annotation]:
        return list(self._annotations.values())

    def get_annotation(self, annotation_uid: str) -> Optional[Annotation]:
        return self._annotations.get(annotation_uid)

    # Viewports

    def register_viewport(self, viewport_id: str) -> bool:
        """
        Register a display surface.

        Returns:
            False if the viewport was already registered
        """
        if viewport_id in self._viewports:
            return False
        self._viewports.append(viewport_id)
        self._tool_states.setdefault(viewport_id, {})
        self.registration_count += 1
        return True

    def unregister_viewport(self, viewport_id: str) -> bool:
        if viewport_id not in self._viewports:
            return False
        self._viewports.remove(viewport_id)
        self._tool_states.pop(viewport_id, None)
        return True

    def get_viewports(self) -> List[str]:
        return list(self._viewports)

    def set_image_loaded(self, viewport_id: str, loaded: bool = True) -> None:
        self._images_loaded[viewport_id] = bool(loaded)

    def has_image(self, viewport_id: str) -> bool:
        return self._images_loaded.get(viewport_id, False)

    # Tool bindings

    def _require_viewport(self, viewport_id: str) -> Dict[str, Tuple[str, Optional[str]]]:
        if viewport_id not in self._tool_states:
            raise KeyError(f"Viewport not registered: {viewport_id}")
        return self._tool_states[viewport_id]

    def set_tool_active(self, viewport_id: str, tool_name: str, mouse_button: str) -> None:
        self._require_viewport(viewport_id)[tool_name] = (TOOL_MODE_ACTIVE, mouse_button)

    def set_tool_passive(self, viewport_id: str, tool_name: str) -> None:
        self._require_viewport(viewport_id)[tool_name] = (TOOL_MODE_PASSIVE, None)

    def set_tool_enabled(self, viewport_id: str, tool_name: str) -> None:
        self._require_viewport(viewport_id)[tool_name] = (TOOL_MODE_ENABLED, None)

    def get_tool_mode(self, viewport_id: str, tool_name: str) -> str:
        state = self._tool_states.get(viewport_id, {}).get(tool_name)
        return state[0] if state else TOOL_MODE_DISABLED

    def get_tool_binding(self, viewport_id: str, tool_name: str) -> Optional[str]:
        state = self._tool_states.get(viewport_id, {}).get(tool_name)
        return state[1] if state else None

    def get_active_tools(self, viewport_id: str) -> List[str]:
        return [name for name, (mode, _) in self._tool_states.get(viewport_id, {}).items()
                if mode == TOOL_MODE_ACTIVE]
