"""
Tool Group

This module coordinates pointer tool activation across registered viewports.
Exactly one pointer tool is active at a time; mouse-wheel slice scrolling stays
enabled regardless of the active pointer tool.

Inputs:
    - Tool activation requests (toolbar, keyboard shortcuts)
    - Viewport registrations

Outputs:
    - Tool bindings applied on the annotation surface
    - active_tool_changed signal

Requirements:
    - PySide6 for signals
    - tools.annotation_surface for the binding operations
"""

from typing import Dict, List, Optional

from PySide6.QtCore import QObject, Signal

from utils.debug_log import annotation_debug, debug_log


MOUSE_BUTTON_PRIMARY = "primary"
MOUSE_BUTTON_SECONDARY = "secondary"

STACK_SCROLL_TOOL_NAME = "StackScrollMouseWheel"
DEFAULT_TOOL_ID = "Pan"


class ToolActivationError(Exception):
    """Raised when a tool cannot be activated; the active tool is left unchanged."""

    def __init__(self, tool_id: str, reason: str):
        super().__init__(f"Cannot activate tool '{tool_id}': {reason}")
        self.tool_id = tool_id
        self.reason = reason


class ToolDescriptor:
    """Describes one pointer tool and the binding it needs."""

    def __init__(self, tool_id: str, tool_name: str, mouse_button: str,
                 measurement_class: bool, label: str = ""):
        """
        Args:
            tool_id: Identifier used by callers ("RectangleROI")
            tool_name: Interaction primitive registered on the surface
            mouse_button: MOUSE_BUTTON_PRIMARY or MOUSE_BUTTON_SECONDARY
            measurement_class: True if activation produces annotations (needs an image)
            label: Toolbar label
        """
        self.tool_id = tool_id
        self.tool_name = tool_name
        self.mouse_button = mouse_button
        self.measurement_class = measurement_class
        self.label = label or tool_id

    def __repr__(self) -> str:
        return f"ToolDescriptor({self.tool_id!r}, button={self.mouse_button!r})"


TOOL_DEFINITIONS: List[ToolDescriptor] = [
    ToolDescriptor("Pan", "Pan", MOUSE_BUTTON_PRIMARY, False),
    ToolDescriptor("Zoom", "Zoom", MOUSE_BUTTON_PRIMARY, False),
    ToolDescriptor("WindowLevel", "WindowLevel", MOUSE_BUTTON_SECONDARY, False, label="W/L"),
    ToolDescriptor("Length", "Length", MOUSE_BUTTON_PRIMARY, True),
    ToolDescriptor("RectangleROI", "RectangleROI", MOUSE_BUTTON_PRIMARY, True, label="Rectangle"),
    ToolDescriptor("EllipticalROI", "EllipticalROI", MOUSE_BUTTON_PRIMARY, True, label="Ellipse"),
    ToolDescriptor("Angle", "Angle", MOUSE_BUTTON_PRIMARY, True),
]

_DESCRIPTORS_BY_ID: Dict[str, ToolDescriptor] = {d.tool_id: d for d in TOOL_DEFINITIONS}


def get_descriptor(tool_id: str) -> Optional[ToolDescriptor]:
    return _DESCRIPTORS_BY_ID.get(tool_id)


class ToolGroup(QObject):
    """
    Finite-state controller over the pointer tools of one viewing session.

    States are the seven tool ids; Pan is the initial state. There is no
    terminal state: the group lives until destroy() is called with the owning
    display surface.
    """

    # Signals
    active_tool_changed = Signal(str)  # Emitted with the new active tool id

    def __init__(self, surface, tool_group_id: str = "default"):
        """
        Initialize the tool group with Pan active.

        Args:
            surface: AnnotationSurface receiving the binding operations
            tool_group_id: Identifier for logs
        """
        super().__init__()
        self.surface = surface
        self.tool_group_id = tool_group_id
        self._active_tool_id = DEFAULT_TOOL_ID
        self._viewports: List[str] = []
        self.wheel_scroll_enabled = True

    def get_active_tool(self) -> str:
        return self._active_tool_id

    def get_active_descriptor(self) -> ToolDescriptor:
        return _DESCRIPTORS_BY_ID[self._active_tool_id]

    def get_descriptor(self, tool_id: str) -> Optional[ToolDescriptor]:
        return get_descriptor(tool_id)

    def is_measurement_tool(self, tool_id: str) -> bool:
        descriptor = get_descriptor(tool_id)
        return descriptor is not None and descriptor.measurement_class

    def viewports(self) -> List[str]:
        return list(self._viewports)

    def has_loaded_image(self) -> bool:
        """True if any registered viewport currently shows an image."""
        return any(self.surface.has_image(viewport_id) for viewport_id in self._viewports)

    def set_active_tool(self, tool_id: str) -> None:
        """
        Make tool_id the single active pointer tool.

        Args:
            tool_id: One of the TOOL_DEFINITIONS ids

        Raises:
            ToolActivationError: Unknown tool, or a measurement tool requested
                while no registered viewport has an image loaded
        """
        descriptor = get_descriptor(tool_id)
        if descriptor is None:
            raise ToolActivationError(tool_id, "unknown tool")
        if descriptor.measurement_class and not self.has_loaded_image():
            debug_log("tool_group:set_active_tool", "Rejected measurement tool without image",
                      {"tool_group": self.tool_group_id, "tool_id": tool_id})
            raise ToolActivationError(tool_id, "no image is loaded")
        if tool_id == self._active_tool_id:
            return

        self._apply_bindings(descriptor)
        self._active_tool_id = tool_id
        annotation_debug(f"Tool group {self.tool_group_id}: active tool -> {tool_id}")
        self.active_tool_changed.emit(tool_id)

    def add_viewport(self, viewport_id: str) -> None:
        """
        Register a viewport with the group (idempotent).

        The current binding is re-applied across all registered viewports after
        every call, so a new viewport is immediately consistent with the others.
        """
        if viewport_id not in self._viewports:
            self.surface.register_viewport(viewport_id)
            self._viewports.append(viewport_id)
        self._apply_bindings(self.get_active_descriptor())

    def remove_viewport(self, viewport_id: str) -> None:
        if viewport_id not in self._viewports:
            return
        for descriptor in TOOL_DEFINITIONS:
            self.surface.set_tool_passive(viewport_id, descriptor.tool_name)
        self._viewports.remove(viewport_id)
        self.surface.unregister_viewport(viewport_id)

    def destroy(self) -> None:
        """Tear the group down with its display surface: all tools passive, viewports released."""
        for viewport_id in list(self._viewports):
            self.remove_viewport(viewport_id)
        self._active_tool_id = DEFAULT_TOOL_ID

    def _apply_bindings(self, descriptor: ToolDescriptor) -> None:
        """Set every tool passive on every viewport, then activate descriptor."""
        for viewport_id in self._viewports:
            if self.wheel_scroll_enabled:
                self.surface.set_tool_enabled(viewport_id, STACK_SCROLL_TOOL_NAME)
            for other in TOOL_DEFINITIONS:
                self.surface.set_tool_passive(viewport_id, other.tool_name)
            self.surface.set_tool_active(viewport_id, descriptor.tool_name, descriptor.mouse_button)
