"""
Stack Scroll

This module handles mouse-wheel slice navigation through an image stack. The
binding is always enabled, independent of the active pointer tool.

Inputs:
    - Mouse wheel deltas
    - Direct slice index requests

Outputs:
    - Current slice index changes
    - slice_changed signal

Requirements:
    - PySide6 for signals
"""

from PySide6.QtCore import QObject, Signal


class StackScrollController(QObject):
    """
    Tracks the current slice of a stack and steps it on wheel events.

    Indices outside [0, total_slices) are never reached; a wheel step past
    either end is ignored.
    """

    # Signals
    slice_changed = Signal(int)  # Emitted when slice index changes

    def __init__(self, total_slices: int = 0):
        super().__init__()
        self.current_slice_index = 0
        self.total_slices = max(0, int(total_slices))

    def set_total_slices(self, total: int) -> None:
        """
        Set the total number of slices, keeping the current index valid.

        Args:
            total: Total number of slices
        """
        self.total_slices = max(0, int(total))
        if self.current_slice_index >= self.total_slices:
            clamped = max(0, self.total_slices - 1)
            if clamped != self.current_slice_index:
                self.current_slice_index = clamped
                self.slice_changed.emit(clamped)

    def get_current_slice(self) -> int:
        return self.current_slice_index

    def set_current_slice(self, index: int) -> bool:
        """
        Jump to a slice.

        Returns:
            True if the index was in range and the slice changed
        """
        if not 0 <= index < self.total_slices or index == self.current_slice_index:
            return False
        self.current_slice_index = index
        self.slice_changed.emit(index)
        return True

    def handle_wheel(self, delta_y: float) -> bool:
        """
        Step one slice per wheel event.

        Args:
            delta_y: Wheel delta; positive scrolls to the next slice

        Returns:
            True if the slice changed
        """
        if self.total_slices == 0 or delta_y == 0:
            return False
        direction = 1 if delta_y > 0 else -1
        return self.set_current_slice(self.current_slice_index + direction)

    def next_slice(self) -> bool:
        return self.set_current_slice(self.current_slice_index + 1)

    def previous_slice(self) -> bool:
        return self.set_current_slice(self.current_slice_index - 1)

    def first_slice(self) -> bool:
        return self.set_current_slice(0)

    def last_slice(self) -> bool:
        return self.set_current_slice(self.total_slices - 1)
