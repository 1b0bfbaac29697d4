"""
Integration tests for MeasurementSession (core.measurement_session).

Wires a headless AnnotationSurface to a session backed by a minimal pydicom
Dataset and exercises the operations the viewer calls: listing, removal,
clear-all, export and tool activation.
"""

import json
import os
import sys
import tempfile
import unittest
from pathlib import Path

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from PySide6.QtCore import QCoreApplication
from pydicom.dataset import Dataset

from core.measurement_session import MeasurementSession
from tools.annotation_surface import Annotation, AnnotationSurface
from tools.tool_group import ToolActivationError
from utils.config_manager import ConfigManager

RECT_HANDLES = [(10, 10), (50, 10), (50, 30), (10, 30)]


def _make_dataset(pixel_spacing=(0.5, 0.5), slice_thickness=2.0, slope=None, intercept=None):
    ds = Dataset()
    ds.Modality = "CT"
    ds.Rows = 64
    ds.Columns = 64
    if pixel_spacing is not None:
        ds.PixelSpacing = list(pixel_spacing)
    if slice_thickness is not None:
        ds.SliceThickness = slice_thickness
    if slope is not None:
        ds.RescaleSlope = slope
    if intercept is not None:
        ds.RescaleIntercept = intercept
    return ds


class TestMeasurementSession(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls._app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config = ConfigManager(config_dir=self._tmp.name)
        self.dataset = _make_dataset()
        self.pixels = None
        self.surface = AnnotationSurface()
        self.session = MeasurementSession(
            self.surface,
            get_current_dataset=lambda: self.dataset,
            get_pixel_array=lambda: self.pixels,
            config_manager=self.config,
        )
        self.session.add_viewport("vp1")
        self.session.stack_scroll.set_total_slices(10)

    def tearDown(self):
        self.session.shutdown()
        self._tmp.cleanup()

    def _draw(self, uid, kind="RectangleROI", handles=None):
        self.surface.add_annotation(Annotation(uid, kind, handles or RECT_HANDLES))

    def test_calibration_from_dataset(self):
        self._draw("rect-1")
        record = self.session.list_measurements()[0]
        # 40 px * 0.5 mm by 20 px * 0.5 mm, extruded through 2 mm
        self.assertEqual(record.area_mm2, 200.0)
        self.assertEqual(record.volume_mm3, 400.0)

    def test_slice_index_from_stack_scroll(self):
        self.session.stack_scroll.set_current_slice(4)
        self._draw("rect-1")
        self.session.stack_scroll.handle_wheel(120)
        self._draw("rect-2")
        self.assertEqual([r.slice_index for r in self.session.list_measurements()], [4, 5])

    def test_statistics_use_dataset_rescale(self):
        self.dataset = _make_dataset(slope=1, intercept=-1024)
        self.pixels = np.full((64, 64), 1064, dtype=np.uint16)
        self._draw("rect-1")
        self.assertEqual(self.session.list_measurements()[0].mean, 40.0)

    def test_dataset_without_calibration(self):
        self.dataset = _make_dataset(pixel_spacing=None, slice_thickness=None)
        self._draw("rect-1")
        record = self.session.list_measurements()[0]
        self.assertEqual(record.area_mm2, 800.0)
        self.assertEqual(record.volume_mm3, 800.0)

    def test_remove_one(self):
        self._draw("a")
        self._draw("b")
        self.session.remove_one("a")
        self.assertIsNone(self.surface.get_annotation("a"))
        self.assertEqual([r.id for r in self.session.list_measurements()], ["b"])

    def test_clear_all_then_draw_again(self):
        for uid in ("a", "b", "c"):
            self._draw(uid)
        self.session.clear_all()
        self.assertEqual(self.surface.get_annotations(), [])
        self.assertEqual(self.session.list_measurements(), ())
        self._draw("d")
        self.assertEqual([r.id for r in self.session.list_measurements()], ["d"])

    def test_export_uses_configured_indent(self):
        self.config.set_export_indent(0)
        self._draw("a")
        text = self.session.export()
        self.assertEqual(json.loads(text)[0]["id"], "a")
        self.assertNotIn("\n  ", text)

    def test_export_to_file_remembers_directory(self):
        self._draw("a")
        out_dir = Path(self._tmp.name) / "out"
        file_path = self.session.export_to_file(out_dir)
        self.assertEqual(file_path.parent, out_dir)
        self.assertEqual(self.config.get_last_export_path(), str(out_dir))
        second = self.session.export_to_file()
        self.assertEqual(second.parent, out_dir)

    def test_measurement_tool_rejected_without_image(self):
        with self.assertRaises(ToolActivationError):
            self.session.set_active_tool("Length")
        self.assertEqual(self.session.active_tool, "Pan")

    def test_measurement_tool_after_image_loaded(self):
        self.surface.set_image_loaded("vp1")
        self.session.set_active_tool("Length")
        self.assertEqual(self.session.active_tool, "Length")

    def test_apply_default_tool(self):
        self.config.set_default_active_tool("RectangleROI")
        self.assertEqual(self.session.apply_default_tool(), "Pan")
        self.surface.set_image_loaded("vp1")
        self.assertEqual(self.session.apply_default_tool(), "RectangleROI")

    def test_default_tool_applied_at_start(self):
        self.config.set_default_active_tool("Zoom")
        surface = AnnotationSurface()
        session = MeasurementSession(surface, config_manager=self.config)
        self.assertEqual(session.active_tool, "Zoom")
        session.add_viewport("vp1")
        self.assertEqual(surface.get_active_tools("vp1"), ["Zoom"])
        session.shutdown()

    def test_rejected_default_tool_falls_back_to_pan(self):
        self.config.set_default_active_tool("Angle")
        session = MeasurementSession(AnnotationSurface(), config_manager=self.config)
        self.assertEqual(session.active_tool, "Pan")
        session.shutdown()

    def test_shutdown_stops_mirroring(self):
        self.session.shutdown()
        self._draw("late")
        self.assertEqual(self.session.list_measurements(), ())
        self.assertEqual(self.surface.get_viewports(), [])


if __name__ == "__main__":
    unittest.main()
