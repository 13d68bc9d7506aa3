"""
Configuration Manager

This module handles persistent storage and retrieval of viewer command and
context menu preferences. Settings are stored in a JSON file in the user's
application data directory.

Inputs:
    - User preferences (hotkey bindings, rotation step, zoom factors, etc.)

Outputs:
    - Loaded configuration values
    - Saved configuration file

Requirements:
    - json module (standard library)
    - pathlib module (standard library)
    - os module (standard library)
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional


# Default hotkeys: key sequence (QKeySequence text) -> named viewer command
DEFAULT_HOTKEY_BINDINGS: List[Dict[str, Any]] = [
    {"keys": "R", "command_name": "rotateViewportCW", "command_options": {}, "context": "VIEWER"},
    {"keys": "L", "command_name": "rotateViewportCCW", "command_options": {}, "context": "VIEWER"},
    {"keys": "I", "command_name": "invertViewport", "command_options": {}, "context": "VIEWER"},
    {"keys": "H", "command_name": "flipViewportHorizontal", "command_options": {}, "context": "VIEWER"},
    {"keys": "V", "command_name": "flipViewportVertical", "command_options": {}, "context": "VIEWER"},
    {"keys": "+", "command_name": "scaleUpViewport", "command_options": {}, "context": "VIEWER"},
    {"keys": "-", "command_name": "scaleDownViewport", "command_options": {}, "context": "VIEWER"},
    {"keys": "=", "command_name": "fitViewportToWindow", "command_options": {}, "context": "VIEWER"},
    {"keys": "Space", "command_name": "resetViewport", "command_options": {}, "context": "VIEWER"},
    {"keys": "Down", "command_name": "nextImage", "command_options": {}, "context": "VIEWER"},
    {"keys": "Up", "command_name": "previousImage", "command_options": {}, "context": "VIEWER"},
    {"keys": "Home", "command_name": "firstImage", "command_options": {}, "context": "VIEWER"},
    {"keys": "End", "command_name": "lastImage", "command_options": {}, "context": "VIEWER"},
    {"keys": "Right", "command_name": "incrementActiveViewport", "command_options": {}, "context": "VIEWER"},
    {"keys": "Left", "command_name": "decrementActiveViewport", "command_options": {}, "context": "VIEWER"},
    {"keys": "Esc", "command_name": "closeViewerContextMenu", "command_options": {}, "context": "VIEWER"},
]


class ConfigManager:
    """
    Manages application configuration and user preferences.

    Handles loading and saving of settings including:
    - Hotkey bindings (key sequence -> command name)
    - Rotation step used by the rotate commands
    - Zoom scale factors used by the scale commands
    - Context menu placement preferences
    - Default colormap
    """

    def __init__(self, config_filename: str = "viewer_context_menu_config.json",
                 config_dir: Optional[Path] = None):
        """
        Initialize the configuration manager.

        Args:
            config_filename: Name of the configuration file to use
            config_dir: Optional directory override (defaults to the user's
                        application data directory)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        elif os.name == 'nt':  # Windows
            app_data = os.getenv('APPDATA', os.path.expanduser('~'))
            self.config_dir = Path(app_data) / "ViewerContextMenu"
        else:  # Mac/Linux
            self.config_dir = Path.home() / ".config" / "ViewerContextMenu"

        # Create config directory if it doesn't exist
        self.config_dir.mkdir(parents=True, exist_ok=True)

        # Full path to config file
        self.config_path = self.config_dir / config_filename

        # Default configuration values
        self.default_config = {
            "hotkey_bindings": DEFAULT_HOTKEY_BINDINGS,
            "rotation_step_degrees": 90,  # Used by rotateViewportCW/CCW
            "zoom_in_scale_factor": 0.9,  # Multiplies parallel scale (smaller = closer)
            "zoom_out_scale_factor": 1.1,
            "context_menu_prevent_cut_off": True,  # Keep menu inside the screen
            "default_colormap": "gray",
        }

        # Load configuration
        self.config = self._load_config()

    def _defaults(self) -> Dict[str, Any]:
        return copy.deepcopy(self.default_config)

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from file, or return defaults if file doesn't exist.

        Returns:
            Dictionary containing configuration values
        """
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    loaded_config = json.load(f)
                    # Merge with defaults to ensure all keys exist
                    config = self._defaults()
                    config.update(loaded_config)
                    return config
            except (json.JSONDecodeError, IOError) as e:
                # If file is corrupted, use defaults
                print(f"Warning: Could not load config file: {e}")
                return self._defaults()
        else:
            # File doesn't exist, use defaults
            return self._defaults()

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
        """
        Get a configuration value.

        Args:
            key: Configuration key to retrieve
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            key: Configuration key to set
            value: Value to set
        """
        self.config[key] = value

    def get_hotkey_bindings(self) -> List[Dict[str, Any]]:
        """
        Get the hotkey bindings.

        Returns:
            List of dicts with keys "keys", "command_name", "command_options", "context"
        """
        return self.config.get("hotkey_bindings", DEFAULT_HOTKEY_BINDINGS)

    def set_hotkey_bindings(self, bindings: List[Dict[str, Any]]) -> None:
        """
        Set the hotkey bindings.

        Bindings without "keys" or "command_name" are dropped.

        Args:
            bindings: List of binding dicts
        """
        valid = [b for b in bindings if b.get("keys") and b.get("command_name")]
        self.config["hotkey_bindings"] = valid
        self.save_config()

    def get_rotation_step_degrees(self) -> int:
        """Get rotation step in degrees for the rotate commands."""
        return self.config.get("rotation_step_degrees", 90)

    def set_rotation_step_degrees(self, degrees: int) -> None:
        """Set rotation step in degrees (must be between 1 and 359)."""
        if 0 < degrees < 360:
            self.config["rotation_step_degrees"] = degrees
            self.save_config()

    def get_zoom_in_scale_factor(self) -> float:
        """Get the parallel scale multiplier applied when zooming in."""
        return self.config.get("zoom_in_scale_factor", 0.9)

    def get_zoom_out_scale_factor(self) -> float:
        """Get the parallel scale multiplier applied when zooming out."""
        return self.config.get("zoom_out_scale_factor", 1.1)

    def set_zoom_scale_factors(self, zoom_in: float, zoom_out: float) -> None:
        """
        Set the zoom scale factors.

        Args:
            zoom_in: Multiplier below 1.0
            zoom_out: Multiplier above 1.0
        """
        if 0 < zoom_in < 1.0 < zoom_out:
            self.config["zoom_in_scale_factor"] = zoom_in
            self.config["zoom_out_scale_factor"] = zoom_out
            self.save_config()

    def get_context_menu_prevent_cut_off(self) -> bool:
        """Whether the context menu is clamped inside the available screen area."""
        return bool(self.config.get("context_menu_prevent_cut_off", True))

    def set_context_menu_prevent_cut_off(self, enabled: bool) -> None:
        """Set whether the context menu is clamped inside the available screen area."""
        self.config["context_menu_prevent_cut_off"] = bool(enabled)
        self.save_config()

    def get_default_colormap(self) -> str:
        """Get the colormap name applied when none is given."""
        return self.config.get("default_colormap", "gray")

    def set_default_colormap(self, colormap: str) -> None:
        """Set the colormap name applied when none is given."""
        if colormap:
            self.config["default_colormap"] = colormap
            self.save_config()

    def export_customizations(self, file_path: str) -> bool:
        """
        Export hotkey and command settings to a JSON file.

        Args:
            file_path: Path where the customization file should be saved

        Returns:
            True if export was successful, False otherwise
        """
        try:
            export_data = {
                "version": "1.0",
                "hotkey_bindings": self.get_hotkey_bindings(),
                "commands": {
                    "rotation_step_degrees": self.get_rotation_step_degrees(),
                    "zoom_in_scale_factor": self.get_zoom_in_scale_factor(),
                    "zoom_out_scale_factor": self.get_zoom_out_scale_factor(),
                    "default_colormap": self.get_default_colormap(),
                },
                "context_menu": {
                    "prevent_cut_off": self.get_context_menu_prevent_cut_off(),
                },
            }
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(export_data, f, indent=4, ensure_ascii=False)
            return True
        except (IOError, TypeError, ValueError) as e:
            print(f"Error exporting customizations: {e}")
            return False

    def import_customizations(self, file_path: str) -> bool:
        """
        Import hotkey and command settings from a JSON file.

        Validates file structure and updates config with imported values.

        Args:
            file_path: Path to the customization file to import

        Returns:
            True if import was successful, False otherwise
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                import_data = json.load(f)
        except (IOError, json.JSONDecodeError) as e:
            print(f"Error importing customizations: {e}")
            return False

        if not isinstance(import_data, dict) or "version" not in import_data:
            print("Error importing customizations: missing version field")
            return False

        if isinstance(import_data.get("hotkey_bindings"), list):
            valid = [b for b in import_data["hotkey_bindings"]
                     if isinstance(b, dict) and b.get("keys") and b.get("command_name")]
            self.config["hotkey_bindings"] = valid

        commands = import_data.get("commands", {})
        for key in ("rotation_step_degrees", "zoom_in_scale_factor",
                    "zoom_out_scale_factor", "default_colormap"):
            if key in commands:
                self.config[key] = commands[key]

        context_menu = import_data.get("context_menu", {})
        if "prevent_cut_off" in context_menu:
            self.config["context_menu_prevent_cut_off"] = bool(context_menu["prevent_cut_off"])

        return self.save_config()
