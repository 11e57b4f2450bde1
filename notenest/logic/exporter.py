# notenest/logic/exporter.py
import os
import sys

from notenest.core.settings import settings_manager
from notenest.logic.persistence import SaveResult, read_snapshot_file, write_snapshot_file


class Exporter:
    """Moves snapshots between the live notebook and standalone files.

    Both directions flush the notebook immediately afterwards so nothing
    depends on the debounce timer.
    """

    def __init__(self, notebook, autosave=None, settings=None):
        self.notebook = notebook
        self.autosave = autosave
        self.settings = settings or settings_manager

    def default_export_path(self) -> str:
        default_dir = self.settings.get("default_export_path") or os.path.expanduser("~")
        return os.path.join(default_dir, self.settings.get("export_file_name"))

    def export_to_file(self, note_ids, file_path=None) -> SaveResult:
        """Writes the selected subtrees to file_path.

        Raises NotFound for unknown ids; write errors come back in the result.
        """
        snapshot = self.notebook.export(note_ids)
        if not snapshot.notes:
            print("Warning: Nothing selected for export.", file=sys.stderr)
            return SaveResult(False, "Nothing selected for export.")

        file_path = file_path or self.default_export_path()
        result = write_snapshot_file(file_path, snapshot)
        if result.success:
            print(f"Exported {len(snapshot.notes)} note(s) to: {file_path}")
        if self.autosave is not None:
            self.autosave.flush_now()
        return result

    def export_selected(self, file_path=None) -> SaveResult:
        """Exports whatever is checked in the notebook's export selection."""
        return self.export_to_file(self.notebook.export_selection.selected_ids(), file_path)

    def import_from_file(self, file_path):
        """Merges a snapshot file into the notebook.

        Returns the ImportResult, or None for a file without notes. Raises
        ImportFailed; the live notebook is unchanged in that case.
        """
        snapshot = read_snapshot_file(file_path)
        if not snapshot.notes:
            print(f"Warning: No notes found in {file_path}.", file=sys.stderr)
            return None
        result = self.notebook.import_snapshot(snapshot)
        if self.autosave is not None:
            self.autosave.flush_now()
        return result
