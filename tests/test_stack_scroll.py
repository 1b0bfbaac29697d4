"""
Unit tests for StackScrollController (tools.stack_scroll).
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from PySide6.QtCore import QCoreApplication

from tools.stack_scroll import StackScrollController


class TestStackScrollController(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls._app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    def setUp(self):
        self.controller = StackScrollController(total_slices=5)
        self.changes = []
        self.controller.slice_changed.connect(self.changes.append)

    def test_starts_at_first_slice(self):
        self.assertEqual(self.controller.get_current_slice(), 0)

    def test_wheel_steps_one_slice(self):
        self.assertTrue(self.controller.handle_wheel(120))
        self.assertTrue(self.controller.handle_wheel(120))
        self.assertTrue(self.controller.handle_wheel(-120))
        self.assertEqual(self.controller.get_current_slice(), 1)
        self.assertEqual(self.changes, [1, 2, 1])

    def test_wheel_stops_at_ends(self):
        self.assertFalse(self.controller.handle_wheel(-120))
        self.controller.last_slice()
        self.assertFalse(self.controller.handle_wheel(120))
        self.assertEqual(self.controller.get_current_slice(), 4)

    def test_zero_delta_ignored(self):
        self.assertFalse(self.controller.handle_wheel(0))
        self.assertEqual(self.changes, [])

    def test_out_of_range_jump_rejected(self):
        self.assertFalse(self.controller.set_current_slice(5))
        self.assertFalse(self.controller.set_current_slice(-1))
        self.assertEqual(self.controller.get_current_slice(), 0)

    def test_first_and_last(self):
        self.assertTrue(self.controller.last_slice())
        self.assertEqual(self.controller.get_current_slice(), 4)
        self.assertTrue(self.controller.first_slice())
        self.assertFalse(self.controller.previous_slice())

    def test_shrinking_stack_clamps_index(self):
        self.controller.set_current_slice(4)
        self.controller.set_total_slices(2)
        self.assertEqual(self.controller.get_current_slice(), 1)
        self.assertEqual(self.changes, [4, 1])

    def test_growing_stack_keeps_index_silently(self):
        self.controller.set_current_slice(2)
        self.controller.set_total_slices(10)
        self.assertEqual(self.controller.get_current_slice(), 2)
        self.assertEqual(self.changes, [2])

    def test_empty_stack(self):
        controller = StackScrollController()
        self.assertFalse(controller.handle_wheel(120))
        self.assertFalse(controller.next_slice())
        self.assertEqual(controller.get_current_slice(), 0)


if __name__ == "__main__":
    unittest.main()
