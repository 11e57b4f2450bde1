# notenest/core/settings.py
import os
import sys
from PyQt6.QtCore import QSettings, QStandardPaths, QObject, pyqtSignal, QDir

from notenest import APP_NAME, ORG_NAME


def _get_default_data_dir():
    """Directory holding main.json, usually <AppData>/<Org>/<App>."""
    for location in (QStandardPaths.StandardLocation.AppDataLocation,
                     QStandardPaths.StandardLocation.GenericDataLocation):
        base = QStandardPaths.writableLocation(location)
        if base:
            break
    else:
        print("Warning: No standard data location, storing notes under the home directory.", file=sys.stderr)
        return os.path.join(os.path.expanduser("~"), f".{ORG_NAME}", APP_NAME)
    # AppDataLocation already ends in Org/App on some platforms
    if base.replace("\\", "/").rstrip("/").endswith(f"{ORG_NAME}/{APP_NAME}"):
        return base
    return os.path.join(base, ORG_NAME, APP_NAME)


def _get_default_export_dir():
    return QStandardPaths.writableLocation(QStandardPaths.StandardLocation.DocumentsLocation) or os.path.expanduser("~")


_DATA_DIR = _get_default_data_dir()

DEFAULT_SETTINGS = {
    # Storage
    "data_file": os.path.join(_DATA_DIR, "main.json"),
    "legacy_data_file": os.path.join(_DATA_DIR, "notes-data.json"), # read-only fallback
    "autosave_debounce_ms": 400, # 0 disables debounced saves; explicit flushes still run
    # Import / Export
    "default_export_path": _get_default_export_dir(),
    "export_file_name": "notes-backup.json",
}


def _coerce(key, value, default):
    """INI values come back as strings; convert them to the default's type."""
    if value is None or default is None or isinstance(value, type(default)):
        return value
    try:
        if isinstance(default, bool):
            return value.lower() == "true" if isinstance(value, str) else bool(value)
        if isinstance(default, (int, float)):
            return type(default)(value)
    except (ValueError, TypeError):
        print(f"Warning: Setting '{key}' has unusable value '{value}', using default.", file=sys.stderr)
    return default


def _as_text(value):
    if isinstance(value, bool):
        return str(value).lower()
    return None if value is None else str(value)


class SettingsManager(QObject):
    """Typed access to the NoteNest settings file."""
    settingsChanged = pyqtSignal(str) # key

    def __init__(self, q_settings: QSettings | None = None, parent=None):
        super().__init__(parent)
        self.q_settings = q_settings or QSettings(QSettings.Format.IniFormat, QSettings.Scope.UserScope, ORG_NAME, APP_NAME)

    def data_dir(self) -> str:
        return os.path.dirname(self.get("data_file"))

    def ensure_data_dir(self) -> bool:
        data_dir = self.data_dir()
        if QDir(data_dir).exists():
            return True
        if not QDir().mkpath(data_dir):
            print(f"Error: Failed to create data directory {data_dir}", file=sys.stderr)
            return False
        print(f"Created data directory: {data_dir}")
        return True

    def get(self, key, default_override=None):
        """Returns the stored value for key, or its default when unset or blank."""
        default = DEFAULT_SETTINGS.get(key) if default_override is None else default_override
        if default is None and key not in DEFAULT_SETTINGS:
            print(f"Warning: Unknown setting '{key}'", file=sys.stderr)
            return None

        value = _coerce(key, self.q_settings.value(key, defaultValue=default), default)
        if value in (None, "") and default not in (None, ""):
            return default
        return value

    def set(self, key, value):
        """Stores value and emits settingsChanged if it differs from the stored one."""
        if _as_text(self.q_settings.value(key)) == _as_text(value):
            return
        self.q_settings.setValue(key, value)
        self.settingsChanged.emit(key)

    def sync(self):
        self.q_settings.sync()


# Global instance
settings_manager = SettingsManager()
