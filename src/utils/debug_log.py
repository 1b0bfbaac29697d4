"""
Debug Log Utility

Provides optional, safe file-based debug logging for the measurement engine.
Logs are written only when enabled via environment variable; failures are
swallowed so the host application never crashes due to logging.

Inputs:
    - debug_log(location, message, data) calls from engine code
    - Environment: MEASUREMENT_ENGINE_DEBUG_LOG (set to 1, true, or yes to enable)
    - Environment: MEASUREMENT_ENGINE_ANNOTATION_DEBUG (console annotation prints)

Outputs:
    - When enabled: appends JSON lines to <project_root>/logs/debug.log
    - When disabled or on error: no side effects

Requirements:
    - Standard library only: pathlib, os, json, time
"""

import json
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

# src/utils/debug_log.py -> parent=utils, parent.parent=src, parent.parent.parent=project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

_TRUE_VALUES = ("1", "true", "yes")


def _env_enabled(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in _TRUE_VALUES


# Default off
DEBUG_LOG_ENABLED = _env_enabled("MEASUREMENT_ENGINE_DEBUG_LOG")
ANNOTATION_DEBUG_ENABLED = _env_enabled("MEASUREMENT_ENGINE_ANNOTATION_DEBUG")


def annotation_debug(msg: str) -> None:
    """Print annotation debug message to console only when MEASUREMENT_ENGINE_ANNOTATION_DEBUG is set."""
    if ANNOTATION_DEBUG_ENABLED:
        print(f"[ANNOTATION DEBUG] {msg}")


def get_log_path() -> Path:
    """Return the path debug lines are appended to."""
    return _PROJECT_ROOT / "logs" / "debug.log"


def debug_log(
    location: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Append one JSON log line to logs/debug.log when debug logging is enabled.

    Failures (missing dir, permission, disk full, non-serializable data, etc.)
    are caught and ignored so the engine remains stable.

    Args:
        location: Call site identifier (e.g. "annotation_event_bridge:on_added").
        message: Short description of the event.
        data: Arbitrary dict of context (should be JSON-serializable).
    """
    if not DEBUG_LOG_ENABLED:
        return
    try:
        log_path = get_log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "location": location,
            "message": message,
            "data": data or {},
            "timestamp": int(time.time() * 1000),
        }
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(payload, default=str) + "\n")
    except Exception:
        pass
