# notenest/logic/export_selection.py
DEFAULT_EXPORT_SELECTION = True


class ExportSelection:
    """Checkbox state for export mode, keyed by note id.

    Checking or unchecking a note applies to its whole active subtree.
    Only active (non-trashed) notes are selectable.
    """

    def __init__(self, notebook):
        self.notebook = notebook
        self._checked: dict[str, bool] = {}

    def selectable_ids(self) -> list[str]:
        store = self.notebook.store
        return [note_id for note_id, note in store.items() if not note.in_trash]

    def is_checked(self, note_id) -> bool:
        return self._checked.get(note_id, DEFAULT_EXPORT_SELECTION)

    def set_checked(self, note_id, checked: bool):
        store = self.notebook.store
        store.read(note_id)
        for target_id in [note_id] + store.descendants(note_id, include_trashed=False):
            self._checked[target_id] = bool(checked)

    def set_all(self, checked: bool):
        for note_id in self.selectable_ids():
            self._checked[note_id] = bool(checked)

    def state(self) -> str:
        """'all', 'partial' or 'none', for a select-all checkbox."""
        ids = self.selectable_ids()
        checked = sum(1 for note_id in ids if self.is_checked(note_id))
        if not ids or checked == 0:
            return "none"
        return "all" if checked == len(ids) else "partial"

    def has_selection(self) -> bool:
        return any(self.is_checked(note_id) for note_id in self.selectable_ids())

    def selected_ids(self) -> list[str]:
        return [note_id for note_id in self.selectable_ids() if self.is_checked(note_id)]

    def discard(self, note_ids):
        for note_id in note_ids:
            self._checked.pop(note_id, None)

    def clear(self):
        self._checked.clear()
