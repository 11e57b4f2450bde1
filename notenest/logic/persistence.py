# notenest/logic/persistence.py
import os
import sys
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from notenest.core.errors import ImportFailed
from notenest.core.settings import settings_manager
from notenest.core.snapshot import Snapshot


@dataclass
class SaveResult:
    success: bool
    error: str | None = None


class PersistenceGateway(ABC):
    """Where snapshots live between sessions."""

    @abstractmethod
    def load(self) -> Snapshot | None:
        """Returns the stored snapshot, or None when there is no prior state."""
        pass

    @abstractmethod
    def save(self, snapshot: Snapshot) -> SaveResult:
        """Stores snapshot. Must report failures instead of raising."""
        pass


def read_snapshot_file(file_path) -> Snapshot:
    """Reads a snapshot file for import. Any failure raises ImportFailed."""
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise ImportFailed(f"'{file_path}' is not valid JSON: {e}") from e
    except UnicodeDecodeError as e:
        raise ImportFailed(f"'{file_path}' is not UTF-8 text: {e}") from e
    except (IOError, OSError) as e:
        raise ImportFailed(f"Could not read '{file_path}': {e}") from e
    return Snapshot.from_payload(payload)


def write_snapshot_file(file_path, snapshot: Snapshot) -> SaveResult:
    """Writes snapshot as JSON via a temp file and an atomic replace."""
    tpath = str(file_path) + ".tmp" # Save to temp file first
    try:
        directory = os.path.dirname(os.path.abspath(file_path))
        os.makedirs(directory, exist_ok=True)
        with open(tpath, 'w', encoding='utf-8') as f:
            json.dump(snapshot.to_payload(), f, indent=2)
        os.replace(tpath, file_path)
        return SaveResult(True)
    except (IOError, OSError, TypeError, ValueError) as e:
        print(f"Error saving notes to {file_path}: {e}", file=sys.stderr)
        try:
            if os.path.exists(tpath): os.remove(tpath)
        except OSError: pass
        return SaveResult(False, str(e))


class JsonFileGateway(PersistenceGateway):
    """Snapshot storage in the app data directory.

    Loads main.json, falling back to the legacy notes-data.json. A file that
    cannot be parsed is moved aside and treated as "no prior state".
    """

    def __init__(self, data_file=None, legacy_file=None):
        self.data_file = data_file or settings_manager.get("data_file")
        self.legacy_file = legacy_file if legacy_file is not None else settings_manager.get("legacy_data_file")

    def load(self) -> Snapshot | None:
        for fpath in (self.data_file, self.legacy_file):
            if not fpath or not os.path.exists(fpath):
                continue
            try:
                snapshot = read_snapshot_file(fpath)
                print(f"Notes loaded from: {fpath}")
                return snapshot
            except ImportFailed as e:
                print(f"Error loading notes from {fpath}: {e}", file=sys.stderr)
                self._backup_corrupted(fpath)
                return None
        print("Notes file not found. Starting with empty notebook.")
        return None

    def save(self, snapshot: Snapshot) -> SaveResult:
        return write_snapshot_file(self.data_file, snapshot)

    def _backup_corrupted(self, fpath):
        backup_path = fpath + f".backup.{int(time.time())}"
        try:
             os.rename(fpath, backup_path)
             print(f"Backed up corrupted notes file to: {backup_path}")
        except OSError as e:
             print(f"Warning: Could not back up corrupted file {fpath}: {e}", file=sys.stderr)
