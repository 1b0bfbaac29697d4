"""
Unit tests for the measurement export service (core.measurement_export_service).

Writes JSON, CSV and XLSX files into a temporary directory and reads them back.
"""

import csv
import json
import os
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from core.measurement_export_service import TABLE_COLUMNS, default_export_path, export_measurements
from core.measurement_records import AngleMeasurement, AreaMeasurement, LengthMeasurement
from core.measurement_store import parse_export


def _records():
    return [
        LengthMeasurement("len-1", 2, 12.5, formatted="12.50 mm"),
        AreaMeasurement("rect-1", 7, "Rectangle", 800, 4000, statistics={"mean": 55.5},
                        formatted="800.00 mm²", volume_formatted="4000.00 mm³"),
        AngleMeasurement("ang-1", 3, 45.0, formatted="45.0°"),
    ]


class TestExportMeasurements(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.out_dir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_json_matches_store_document(self):
        records = _records()
        path = self.out_dir / "m.json"
        export_measurements(path, records, "json")
        text = path.read_text(encoding="utf-8")
        self.assertEqual(parse_export(text), records)
        self.assertEqual(json.loads(text)[1]["mean"], 55.5)

    def test_csv_rows(self):
        path = self.out_dir / "m.csv"
        export_measurements(path, _records(), "CSV")
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        self.assertEqual(rows[0], [header for _, header in TABLE_COLUMNS])
        self.assertEqual(len(rows), 4)
        columns = [key for key, _ in TABLE_COLUMNS]
        rect = dict(zip(columns, rows[2]))
        self.assertEqual(rect["id"], "rect-1")
        self.assertEqual(rect["sliceIndex"], "7")
        self.assertEqual(float(rect["area_mm2"]), 800.0)
        self.assertEqual(rect["value_mm"], "")
        self.assertEqual(rect["stdDev"], "")
        angle_row = dict(zip(columns, rows[3]))
        self.assertEqual(float(angle_row["value_degrees"]), 45.0)
        self.assertEqual(angle_row["volume_mm3"], "")

    def test_xlsx(self):
        from openpyxl import load_workbook

        path = self.out_dir / "m.xlsx"
        export_measurements(path, _records(), "XLSX")
        wb = load_workbook(path)
        ws = wb["Measurements"]
        self.assertEqual(ws.cell(row=1, column=1).value, "ID")
        self.assertTrue(ws.cell(row=1, column=1).font.bold)
        self.assertEqual(ws.cell(row=3, column=1).value, "rect-1")
        self.assertEqual(ws.max_row, 4)

    def test_json_indent_passed_through(self):
        records = _records()
        path = self.out_dir / "compact.json"
        export_measurements(path, records, "JSON", indent=None)
        text = path.read_text(encoding="utf-8")
        self.assertNotIn("\n", text)
        self.assertEqual(parse_export(text), records)

    def test_default_export_path_uses_format_extension(self):
        path = default_export_path(self.out_dir, "csv")
        self.assertEqual(path.parent, self.out_dir)
        self.assertTrue(path.name.startswith("measurements-"))
        self.assertEqual(path.suffix, ".csv")
        self.assertNotIn(":", path.name)
        with self.assertRaises(ValueError):
            default_export_path(self.out_dir, "PDF")

    def test_unsupported_format(self):
        with self.assertRaises(ValueError):
            export_measurements(self.out_dir / "m.pdf", _records(), "PDF")

    def test_empty_export(self):
        path = self.out_dir / "empty.json"
        export_measurements(path, [], "JSON")
        self.assertEqual(json.loads(path.read_text(encoding="utf-8")), [])


if __name__ == "__main__":
    unittest.main()
