"""
Measurement Session

This module wires one viewing session together: the tool group, the
measurement store and the annotation event bridge, and exposes the operations
the surrounding UI uses.

Inputs:
    - AnnotationSurface for the session
    - Callbacks for the current dataset (or calibration), slice index and pixel array
    - Optional ConfigManager

Outputs:
    - Measurement list, removal, clearing and export
    - Tool activation and viewport registration

Requirements:
    - core.measurement_store, core.annotation_event_bridge
    - tools.tool_group, tools.stack_scroll
    - utils.dicom_utils for pydicom calibration and rescale lookups
"""

from pathlib import Path
from typing import Callable, Optional, Tuple, Union

import numpy as np
from pydicom.dataset import Dataset

from core.annotation_event_bridge import AnnotationEventBridge
from core.measurement_records import MeasurementRecord
from core.measurement_store import MeasurementStore
from tools.stack_scroll import StackScrollController
from tools.tool_group import DEFAULT_TOOL_ID, ToolActivationError, ToolGroup
from utils.dicom_utils import Calibration, calibration_from_dataset, get_rescale_parameters
from utils.debug_log import debug_log


class MeasurementSession:
    """
    Owns the measurement state of one viewing session.

    Responsibilities:
    - Keep the tool group, store and bridge consistent with one surface
    - Resolve calibration from the current pydicom dataset when one is supplied
    - Expose list/remove/clear/export and tool operations to the UI
    """

    def __init__(
        self,
        surface,
        get_current_dataset: Optional[Callable[[], Optional[Dataset]]] = None,
        get_calibration: Optional[Callable[[], Optional[Calibration]]] = None,
        get_current_slice_index: Optional[Callable[[], int]] = None,
        get_pixel_array: Optional[Callable[[], Optional[np.ndarray]]] = None,
        config_manager=None,
        tool_group_id: str = "default",
    ):
        """
        Initialize the session.

        Args:
            surface: AnnotationSurface for this session
            get_current_dataset: Callback to get the displayed dataset; supplies
                calibration and rescale parameters
            get_calibration: Callback to get calibration directly (takes
                precedence over get_current_dataset)
            get_current_slice_index: Callback to get the displayed slice index;
                defaults to the session's StackScrollController
            get_pixel_array: Callback to get the displayed pixel array for ROI statistics
            config_manager: ConfigManager for defaults and display precision
            tool_group_id: Identifier of the tool group
        """
        self.surface = surface
        self.get_current_dataset = get_current_dataset
        self.config_manager = config_manager
        self.stack_scroll = StackScrollController()

        if get_calibration is None:
            get_calibration = self._calibration_from_current_dataset
        if get_current_slice_index is None:
            get_current_slice_index = self.stack_scroll.get_current_slice

        self.tool_group = ToolGroup(surface, tool_group_id)
        self.store = MeasurementStore(surface)
        self.bridge = AnnotationEventBridge(
            surface,
            self.store,
            get_calibration,
            get_current_slice_index,
            get_pixel_array=get_pixel_array,
            get_rescale=self._rescale_from_current_dataset if get_current_dataset else None,
            config_manager=config_manager,
        )
        self.apply_default_tool()

    def _calibration_from_current_dataset(self) -> Optional[Calibration]:
        if self.get_current_dataset is None:
            return None
        return calibration_from_dataset(self.get_current_dataset())

    def _rescale_from_current_dataset(self) -> Tuple[Optional[float], Optional[float]]:
        return get_rescale_parameters(self.get_current_dataset())

    # Measurements

    def list_measurements(self) -> Tuple[MeasurementRecord, ...]:
        return self.store.list()

    def remove_one(self, record_id: str) -> None:
        self.store.remove_one(record_id)

    def clear_all(self) -> None:
        self.store.clear_all()

    def export(self) -> str:
        indent = self.config_manager.get_export_indent() if self.config_manager else 2
        return self.store.export(indent=indent)

    def export_to_file(self, directory: Optional[Union[str, Path]] = None) -> Path:
        """
        Write the JSON export to directory (default: last export directory, else cwd).

        Returns:
            Path of the written file
        """
        if directory is None and self.config_manager is not None:
            directory = self.config_manager.get_last_export_path() or None
        indent = self.config_manager.get_export_indent() if self.config_manager else 2
        file_path = self.store.export_to_file(directory or Path.cwd(), indent=indent)
        if self.config_manager is not None:
            self.config_manager.set_last_export_path(str(file_path.parent))
        return file_path

    # Tools

    @property
    def active_tool(self) -> str:
        return self.tool_group.get_active_tool()

    def set_active_tool(self, tool_id: str) -> None:
        """Raises ToolActivationError when the tool cannot be activated."""
        self.tool_group.set_active_tool(tool_id)

    def add_viewport(self, viewport_id: str) -> None:
        self.tool_group.add_viewport(viewport_id)

    def apply_default_tool(self) -> str:
        """
        Activate the configured default tool, keeping Pan if it is rejected.

        Returns:
            The active tool id afterwards
        """
        tool_id = self.config_manager.get_default_active_tool() if self.config_manager else DEFAULT_TOOL_ID
        try:
            self.tool_group.set_active_tool(tool_id)
        except ToolActivationError as e:
            debug_log("measurement_session:apply_default_tool", "Default tool rejected",
                      {"tool_id": tool_id, "reason": e.reason})
        return self.active_tool

    def shutdown(self) -> None:
        """Stop observing the surface and tear down the tool group."""
        self.bridge.detach()
        self.tool_group.destroy()
