"""
Tests for the event replay used by the command-line entry point (main.py).
"""

import csv
import json
import os
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from PySide6.QtCore import QCoreApplication

from core.measurement_session import MeasurementSession
from main import build_parser, main, replay_events
from tools.annotation_surface import AnnotationSurface
from utils.config_manager import ConfigManager
from utils.dicom_utils import Calibration

EVENTS = [
    {"event": "added", "sliceIndex": 7,
     "annotation": {"id": "rect-1", "toolName": "RectangleROI",
                    "handles": [[10, 10], [50, 10], [50, 30], [10, 30]]}},
    {"event": "added", "sliceIndex": 2,
     "annotation": {"id": "len-1", "toolName": "Length", "handles": [[0, 0], [3, 4]]}},
    {"event": "added", "sliceIndex": 2,
     "annotation": {"id": "arrow-1", "toolName": "ArrowAnnotate", "handles": [[0, 0], [1, 1]]}},
    {"event": "removed", "id": "len-1"},
    {"event": "bogus"},
]


class TestReplayEvents(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls._app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    def test_replay_builds_measurements(self):
        surface = AnnotationSurface()
        session = MeasurementSession(surface, get_calibration=lambda: Calibration((1.0, 1.0), 5.0))
        replay_events(session, surface, EVENTS)
        records = session.list_measurements()
        self.assertEqual([r.id for r in records], ["rect-1"])
        self.assertEqual(records[0].slice_index, 7)
        self.assertEqual(records[0].volume_mm3, 4000.0)
        session.shutdown()

    def test_clear_event(self):
        surface = AnnotationSurface()
        session = MeasurementSession(surface)
        replay_events(session, surface, EVENTS[:2] + [{"event": "clear"}])
        self.assertEqual(session.list_measurements(), ())
        self.assertEqual(surface.get_annotations(), [])
        session.shutdown()


class TestParser(unittest.TestCase):

    def test_arguments(self):
        with tempfile.TemporaryDirectory() as tmp:
            events_path = Path(tmp) / "events.json"
            events_path.write_text(json.dumps(EVENTS), encoding="utf-8")
            args = build_parser().parse_args([str(events_path), "--format", "csv"])
        self.assertEqual(args.events, events_path)
        self.assertEqual(args.format_key, "csv")
        self.assertIsNone(args.output)
        self.assertIsNone(args.dicom)


class TestMainExport(unittest.TestCase):
    """Runs main() end to end with a temporary config directory."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.events_path = self.root / "events.json"
        self.events_path.write_text(json.dumps(EVENTS), encoding="utf-8")
        self.config_dir = self.root / "config"
        self.out_dir = self.root / "out"
        ConfigManager(config_dir=self.config_dir).set_last_export_path(str(self.out_dir))

    def tearDown(self):
        self._tmp.cleanup()

    def _run(self, *extra):
        return main([str(self.events_path), "--config-dir", str(self.config_dir)] + list(extra))

    def test_format_honoured_without_output(self):
        self.assertEqual(self._run("--format", "CSV"), 0)
        written = list(self.out_dir.iterdir())
        self.assertEqual(len(written), 1)
        self.assertEqual(written[0].suffix, ".csv")
        with open(written[0], newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[1][0], "rect-1")

    def test_configured_format_used_by_default(self):
        config = ConfigManager(config_dir=self.config_dir)
        config.set_export_format("XLSX")
        self.assertEqual(self._run(), 0)
        self.assertEqual([p.suffix for p in self.out_dir.iterdir()], [".xlsx"])

    def test_explicit_output_uses_configured_indent(self):
        ConfigManager(config_dir=self.config_dir).set_export_indent(0)
        output = self.root / "result.json"
        self.assertEqual(self._run("--output", str(output)), 0)
        text = output.read_text(encoding="utf-8")
        self.assertEqual(json.loads(text)[0]["id"], "rect-1")
        self.assertNotIn("\n  ", text)
        self.assertEqual(ConfigManager(config_dir=self.config_dir).get_last_export_path(), str(self.root))


if __name__ == "__main__":
    unittest.main()
