"""
DICOM Measurement Engine - Replay Entry Point

Replays a recorded annotation event log through a measurement session and writes
the resulting measurement export. Useful for regenerating measurements from a
captured session without the viewer.

Inputs:
    - Event log: JSON array of {"event": "added", "annotation": {...}, "sliceIndex": n}
      and {"event": "removed", "id": "..."} / {"event": "clear"} entries
    - Optional DICOM file supplying pixel spacing and slice thickness

Outputs:
    - Measurement export (JSON, CSV or XLSX)

Requirements:
    - PySide6 for the Qt core application and signals
    - pydicom for reading the calibration file
"""

import argparse
import json
import sys
from pathlib import Path

# Add src directory to path
src_dir = Path(__file__).parent
sys.path.insert(0, str(src_dir))

import pydicom
from PySide6.QtCore import QCoreApplication

from core.measurement_export_service import default_export_path, export_measurements
from core.measurement_session import MeasurementSession
from tools.annotation_surface import Annotation, AnnotationSurface
from utils.config_manager import ConfigManager

VIEWPORT_ID = "replay"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Replay annotation events and export the derived measurements."
    )
    parser.add_argument("events", type=Path, help="JSON event log to replay")
    parser.add_argument("--dicom", type=Path, default=None,
                        help="DICOM file providing pixel spacing and slice thickness")
    parser.add_argument("--output", type=Path, default=None,
                        help="Output file (default: measurements-<timestamp>.<ext> in the last export directory)")
    parser.add_argument("--format", dest="format_key", default=None,
                        choices=["JSON", "CSV", "XLSX", "json", "csv", "xlsx"],
                        help="Export format (default from configuration)")
    parser.add_argument("--config-dir", type=Path, default=None,
                        help="Configuration directory (default: per-user config directory)")
    return parser


def replay_events(session: MeasurementSession, surface: AnnotationSurface, events: list) -> None:
    """Feed recorded events to the surface in order."""
    for entry in events:
        event = entry.get("event")
        if event == "added":
            slice_index = entry.get("sliceIndex")
            if slice_index is not None:
                session.stack_scroll.set_total_slices(max(session.stack_scroll.total_slices, slice_index + 1))
                session.stack_scroll.set_current_slice(slice_index)
            surface.add_annotation(Annotation.from_dict(entry.get("annotation", {})))
        elif event == "removed":
            surface.remove_annotation(str(entry.get("id")))
        elif event == "clear":
            session.clear_all()
        else:
            print(f"Warning: skipping unknown event {event!r}")


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    _app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    try:
        events = json.loads(args.events.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error reading event log: {e}")
        return 1
    if not isinstance(events, list):
        print("Error reading event log: expected a JSON array")
        return 1

    dataset = None
    if args.dicom is not None:
        try:
            dataset = pydicom.dcmread(str(args.dicom), stop_before_pixels=True)
        except Exception as e:
            print(f"Error reading DICOM file: {e}")
            return 1

    config_manager = ConfigManager(config_dir=args.config_dir)
    surface = AnnotationSurface()
    session = MeasurementSession(surface, get_current_dataset=lambda: dataset,
                                 config_manager=config_manager)
    session.add_viewport(VIEWPORT_ID)

    replay_events(session, surface, events)

    records = session.list_measurements()
    format_key = (args.format_key or config_manager.get_export_format()).upper()
    if args.output is None:
        directory = Path(config_manager.get_last_export_path() or Path.cwd())
        directory.mkdir(parents=True, exist_ok=True)
        output = default_export_path(directory, format_key)
    else:
        output = args.output
    export_measurements(output, records, format_key, indent=config_manager.get_export_indent())
    config_manager.set_last_export_path(str(Path(output).parent))
    print(f"Wrote {len(records)} measurement(s) to {output}")

    session.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
