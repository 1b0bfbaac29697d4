"""
Configuration Manager

This module handles persistent storage and retrieval of measurement engine
preferences. Settings are stored in a JSON file in the user's application data
directory.

Inputs:
    - User preferences (default tool, display precision, export options)

Outputs:
    - Loaded configuration values
    - Saved configuration file

Requirements:
    - json module (standard library)
    - pathlib module (standard library)
    - os module (standard library)
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional


EXPORT_FORMATS = ("JSON", "CSV", "XLSX")


class ConfigManager:
    """
    Manages engine configuration and user preferences.

    Handles loading and saving of settings including:
    - Tool activated when a session starts
    - Decimal places used in formatted measurement strings
    - Export format, indentation and last export directory
    """

    def __init__(self, config_filename: str = "measurement_engine_config.json",
                 config_dir: Optional[Path] = None):
        """
        Initialize the configuration manager.

        Args:
            config_filename: Name of the configuration file to use
            config_dir: Directory override (defaults to the per-user config directory)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        elif os.name == 'nt':  # Windows
            app_data = os.getenv('APPDATA', os.path.expanduser('~'))
            self.config_dir = Path(app_data) / "DICOMMeasurementEngine"
        else:  # Mac/Linux
            self.config_dir = Path.home() / ".config" / "DICOMMeasurementEngine"

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_path = self.config_dir / config_filename

        self.default_config = {
            "last_export_path": "",
            "default_active_tool": "Pan",
            "length_decimals": 2,  # "12.34 mm"
            "area_decimals": 2,  # "800.00 mm²" and volume
            "angle_decimals": 1,  # "90.0°"
            "export_indent": 2,
            "export_format": "JSON",  # JSON, CSV or XLSX
        }

        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from file, or return defaults if file doesn't exist.

        Returns:
            Dictionary containing configuration values
        """
        if not self.config_path.exists():
            return self.default_config.copy()
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded_config = json.load(f)
            if not isinstance(loaded_config, dict):
                raise ValueError("top-level JSON value is not an object")
        except (json.JSONDecodeError, IOError, ValueError) as e:
            print(f"Warning: Could not load config file: {e}")
            return self.default_config.copy()
        # Merge with defaults so every key exists
        config = self.default_config.copy()
        config.update(loaded_config)
        return config

    def save_config(self) -> bool:
        """
        Save current configuration to file.

        Returns:
            True if save was successful, False otherwise
        """
        try:
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=4, ensure_ascii=False)
            return True
        except IOError as e:
            print(f"Error saving config file: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value, or default if the key doesn't exist."""
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value (in memory only)."""
        self.config[key] = value

    def _set_and_save(self, key: str, value: Any) -> None:
        self.config[key] = value
        self.save_config()

    def get_last_export_path(self) -> str:
        return self.config.get("last_export_path", "")

    def set_last_export_path(self, path: str) -> None:
        """
        Remember the directory used for the last export.

        Args:
            path: Directory or file path; files are reduced to their directory
        """
        if path and os.path.isfile(path):
            path = os.path.dirname(path)
        self._set_and_save("last_export_path", path)

    def get_default_active_tool(self) -> str:
        return self.config.get("default_active_tool", "Pan")

    def set_default_active_tool(self, tool_id: str) -> None:
        self._set_and_save("default_active_tool", tool_id)

    def get_length_decimals(self) -> int:
        return int(self.config.get("length_decimals", 2))

    def get_area_decimals(self) -> int:
        return int(self.config.get("area_decimals", 2))

    def get_angle_decimals(self) -> int:
        return int(self.config.get("angle_decimals", 1))

    def set_decimals(self, length: int, area: int, angle: int) -> None:
        """
        Set decimal places used in formatted measurement strings.

        Args:
            length: Decimals for length values (clamped to 0-6)
            area: Decimals for area and volume values (clamped to 0-6)
            angle: Decimals for angle values (clamped to 0-6)
        """
        self.config["length_decimals"] = max(0, min(6, int(length)))
        self.config["area_decimals"] = max(0, min(6, int(area)))
        self.config["angle_decimals"] = max(0, min(6, int(angle)))
        self.save_config()

    def get_export_indent(self) -> int:
        return int(self.config.get("export_indent", 2))

    def set_export_indent(self, indent: int) -> None:
        self._set_and_save("export_indent", max(0, int(indent)))

    def get_export_format(self) -> str:
        export_format = str(self.config.get("export_format", "JSON")).upper()
        if export_format not in EXPORT_FORMATS:
            return "JSON"
        return export_format

    def set_export_format(self, export_format: str) -> None:
        export_format = export_format.upper()
        if export_format in EXPORT_FORMATS:
            self._set_and_save("export_format", export_format)
