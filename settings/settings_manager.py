"""
Settings Manager with JSON persistence.

Supports nested key access via dot notation (e.g., "database.connect_timeout")
and automatic persistence to %APPDATA%/WPContext/settings.json (Windows)
or ~/.config/WPContext/settings.json (Linux/macOS).
"""

import json
import logging
import os
import sys
from typing import Any, Optional, Dict, List
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from core.signals import Signal

logger = logging.getLogger("settings")

WORKSPACE_ENV_VAR = "WPCONTEXT_WORKSPACE"


class SettingsManager:
    """
    Manages application settings with JSON persistence.
    Supports nested keys via dot notation (e.g., "database.port")
    """

    DEFAULT_SETTINGS = {
        "workspace": {
            # Directories to search upward from for wp-config.php (first one wins).
            # Empty = $WPCONTEXT_WORKSPACE or the current directory.
            "roots": [],
        },
        "database": {
            "port": 3306,
            "connect_timeout": 10,
            "charset": "utf8mb4",
        },
        "logging": {
            "level": "INFO",
            "debug_log": True,
        },
        "server": {
            "host": "127.0.0.1",
            "port": 8000,
        },
    }

    def __init__(self, app_name: str = "WPContext", settings_dir: Optional[str] = None):
        """
        Initialize settings manager.

        Args:
            app_name: Application name for settings directory
            settings_dir: Override settings directory (useful for tests and portable mode)
        """
        self.app_name = app_name
        self._settings: Dict[str, Any] = {}
        self._settings_dir = settings_dir
        self._settings_path = self._get_settings_path()

        # Signals
        self.on_settings_changed = Signal()

        self._load()

    def _get_settings_path(self) -> Path:
        """Get platform-appropriate settings directory."""
        if self._settings_dir:
            settings_dir = Path(self._settings_dir)
        elif os.name == "nt":  # Windows
            base = os.environ.get("APPDATA", os.path.expanduser("~"))
            settings_dir = Path(base) / self.app_name
        else:  # macOS/Linux
            base = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
            settings_dir = Path(base) / self.app_name

        settings_dir.mkdir(parents=True, exist_ok=True)
        return settings_dir / "settings.json"

    def _load(self):
        """Load settings from file, merging with defaults."""
        self._settings = self._deep_copy(self.DEFAULT_SETTINGS)

        if self._settings_path.exists():
            try:
                with open(self._settings_path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
                    self._deep_merge(self._settings, loaded)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to load settings from {self._settings_path}: {e}")

    def _save(self):
        """Persist settings to disk."""
        try:
            with open(self._settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.warning(f"Failed to save settings: {e}")

    def _deep_copy(self, obj: Any) -> Any:
        """Create a deep copy of nested dicts/lists."""
        if isinstance(obj, dict):
            return {k: self._deep_copy(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._deep_copy(item) for item in obj]
        return obj

    def _deep_merge(self, base: dict, override: dict):
        """Recursively merge override into base."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get setting value using dot notation.

        Example:
            get("database.port")
            get("logging.level", "INFO")
        """
        value = self._settings
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any, save: bool = True):
        """
        Set setting value using dot notation.

        Example:
            set("workspace.roots", ["/var/www/site"])
        """
        keys = key.split(".")
        target = self._settings

        for k in keys[:-1]:
            if k not in target or not isinstance(target[k], dict):
                target[k] = {}
            target = target[k]

        old_value = target.get(keys[-1])
        target[keys[-1]] = value

        if save:
            self._save()

        if old_value != value:
            self.on_settings_changed.emit(key, value)

    def get_section(self, section: str) -> Optional[Dict[str, Any]]:
        """Copy of a settings section, or None if ``section`` does not name one."""
        value = self.get(section)
        return self._deep_copy(value) if isinstance(value, dict) else None

    def get_all(self) -> Dict[str, Any]:
        """Get complete settings dictionary (deep copy)."""
        return self._deep_copy(self._settings)

    def reset_to_defaults(self, section: Optional[str] = None):
        """
        Reset settings to defaults.

        Args:
            section: If provided, only reset that section. Otherwise reset all.
        """
        if section:
            default_value = self._navigate_defaults(section)
            if default_value is not None:
                self.set(section, self._deep_copy(default_value))
        else:
            self._settings = self._deep_copy(self.DEFAULT_SETTINGS)
            self._save()
            self.on_settings_changed.emit("*", None)

    def _navigate_defaults(self, key: str) -> Any:
        """Navigate to a key in DEFAULT_SETTINGS."""
        value = self.DEFAULT_SETTINGS
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return None
        return value

    def workspace_roots(self) -> List[str]:
        """Configured workspace roots, falling back to $WPCONTEXT_WORKSPACE then the cwd."""
        roots = [r for r in (self.get("workspace.roots") or []) if r]
        if roots:
            return roots
        env_root = os.environ.get(WORKSPACE_ENV_VAR)
        return [env_root] if env_root else [os.getcwd()]

    @property
    def settings_path(self) -> Path:
        """Get the settings file path."""
        return self._settings_path

    @property
    def settings_dir(self) -> Path:
        """Get the settings directory path."""
        return self._settings_path.parent
