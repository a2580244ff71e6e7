"""
WPContext Settings Package

Workspace roots, database driver options and logging preferences,
persisted as JSON and read with dot-notation keys.
"""

from .settings_manager import SettingsManager

__all__ = ["SettingsManager"]
