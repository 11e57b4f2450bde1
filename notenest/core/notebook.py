# notenest/core/notebook.py
import copy

from PyQt6.QtCore import QObject, pyqtSignal

from notenest.core.errors import InvalidMove, NotFound
from notenest.core.models import TRASH_ID
from notenest.core.note_store import NoteStore
from notenest.core.order_index import OrderIndex
from notenest.core.snapshot import Snapshot
from notenest.core.trash import TrashManager
from notenest.logic.export_selection import ExportSelection
from notenest.logic.reconciler import ImportResult, export_snapshot, merge_snapshot


class Notebook(QObject):
    """Live note tree: store, sibling order and trash behind one interface.

    Every mutation leaves the Note Store and the Order Index consistent before
    returning, then emits structureChanged (or contentChanged) so autosave can
    schedule a flush.
    """
    noteCreated = pyqtSignal(str)      # item_id
    itemRenamed = pyqtSignal(str, str) # item_id, new_title
    itemTrashed = pyqtSignal(str)      # item_id of the trashed subtree root
    itemRecovered = pyqtSignal(str)    # item_id of the recovered subtree root
    itemDeleted = pyqtSignal(str)      # item_id, once per permanently removed note
    contentChanged = pyqtSignal(str)   # item_id
    structureChanged = pyqtSignal()
    currentChanged = pyqtSignal(object) # item_id or None

    def __init__(self, snapshot: Snapshot | None = None, parent=None, clock=None):
        super().__init__(parent)
        self._clock = clock
        self.current_id = None
        self.export_selection = ExportSelection(self)
        self._install(NoteStore(), None)
        if snapshot is not None:
            self.load_snapshot(snapshot)

    def _install(self, store: NoteStore, order: OrderIndex | None):
        self.store = store
        self.order = order if order is not None else OrderIndex(store)
        self.trash = TrashManager(self.store, self.order, clock=self._clock)

    # --- Reading ---

    def note(self, note_id):
        return self.store.read(note_id)

    def children(self, parent_id=None) -> list[str]:
        return self.order.get_children(parent_id)

    def root_entries(self) -> list[str]:
        """Top-level rows as displayed: notebooks, then the trash if any."""
        entries = self.children(None)
        if self.trash.has_trash():
            entries.append(TRASH_ID)
        return entries

    def trashed_roots(self) -> list[str]:
        return self.trash.trashed_roots()

    def trashed_children(self, note_id) -> list[str]:
        return self.trash.trashed_children(note_id)

    # --- Editing ---

    def create(self, title: str, parent_id=None, index: int | None = None) -> str:
        """Creates a notebook (top level) or note and returns its id.

        New top-level notebooks go first, nested notes go last, unless an
        explicit index is given.
        """
        note_id = self.store.create(title, parent_id)
        if index is None and parent_id is None:
            index = 0
        self._place(parent_id, note_id, index)
        print(f"Created note: {title} (ID: {note_id})")
        self.noteCreated.emit(note_id)
        self.structureChanged.emit()
        return note_id

    def rename(self, note_id, title: str):
        self.store.rename(note_id, title)
        self.itemRenamed.emit(note_id, title)
        self.structureChanged.emit()

    def update_content(self, note_id, content: str):
        if self.store.read(note_id).in_trash:
            raise InvalidMove(f"Note {note_id} is in the trash and read-only.")
        self.store.update_content(note_id, content)
        self.contentChanged.emit(note_id)

    def move(self, note_id, new_parent_id=None, index: int | None = None):
        """Drops note_id under new_parent_id at index (None appends).

        Same parent means a pure reorder; a different parent reparents
        first and fails with InvalidMove on cycles.
        """
        note = self.store.read(note_id)
        if note.parent != new_parent_id:
            self.store.reparent(note_id, new_parent_id)
        elif note.in_trash:
            raise InvalidMove(f"Cannot reorder trashed note {note_id}.")
        self._place(new_parent_id, note_id, index)
        self.structureChanged.emit()

    def _place(self, parent_id, note_id, index):
        siblings = [child_id for child_id in self.order.get_children(parent_id) if child_id != note_id]
        if index is None or index >= len(siblings):
            siblings.append(note_id)
        else:
            siblings.insert(max(0, index), note_id)
        self.order.remove(note_id)
        self.order.set_children(parent_id, siblings)
        if parent_id is None:
            self.trash.sync_sentinel()

    # --- Trash ---

    def move_to_trash(self, note_id) -> list[str]:
        affected = self.trash.move_to_trash(note_id)
        if affected:
            print(f"Moved '{self.store.read(note_id).title}' (ID: {note_id}) and {len(affected) - 1} descendant(s) to trash.")
            if self.current_id in affected:
                self.clear_selection()
            self.itemTrashed.emit(note_id)
            self.structureChanged.emit()
        return affected

    def recover_from_trash(self, note_id) -> list[str]:
        recovered = self.trash.recover_from_trash(note_id)
        if recovered:
            self._check_selection()
            self.itemRecovered.emit(note_id)
            self.structureChanged.emit()
        return recovered

    def permanently_delete(self, note_id) -> set[str]:
        removed = self.trash.permanently_delete(note_id)
        self.export_selection.discard(removed)
        print(f"Permanently deleted {len(removed)} note(s) starting at ID {note_id}.")
        self._check_selection()
        for removed_id in removed:
            self.itemDeleted.emit(removed_id)
        self.structureChanged.emit()
        return removed

    # --- Selection ---

    def select(self, note_id):
        if note_id != TRASH_ID and note_id not in self.store:
            raise NotFound(note_id)
        if note_id == TRASH_ID and not self.trash.has_trash():
            raise NotFound(note_id, "Trash is empty.")
        if self.current_id != note_id:
            self.current_id = note_id
            self.currentChanged.emit(note_id)

    def clear_selection(self):
        if self.current_id is not None:
            self.current_id = None
            self.currentChanged.emit(None)

    def _check_selection(self):
        """Drops a selection that points at a vanished note or an emptied trash."""
        current = self.current_id
        if current is None:
            return
        if current == TRASH_ID:
            if not self.trash.has_trash():
                self.clear_selection()
        elif current not in self.store:
            self.clear_selection()

    # --- Snapshots ---

    def snapshot(self) -> Snapshot:
        """Deep copy of the live state, ready for the persistence gateway."""
        return Snapshot(
            notes={note_id: note.copy() for note_id, note in self.store.items()},
            note_id_counter=self.store.id_counter,
            note_order=self.order.to_dict(),
        )

    def load_snapshot(self, snapshot: Snapshot):
        """Replaces the whole live state (startup load)."""
        snapshot = copy.deepcopy(snapshot).normalize()
        store = NoteStore(snapshot.effective_counter())
        for note_id, note in snapshot.notes.items():
            store.insert(note_id, note)
        order = OrderIndex(store)
        if snapshot.note_order:
            order.hydrate(snapshot.note_order)
        if not order.stored(None):
            order.rebuild_from_notes()

        self._install(store, order)
        self.trash.sync_sentinel()
        self.export_selection.clear()
        self.clear_selection()
        print(f"Loaded {len(store)} note(s).")
        self.structureChanged.emit()

    def export(self, note_ids) -> Snapshot:
        return export_snapshot(self.store, self.order, note_ids)

    def import_snapshot(self, snapshot: Snapshot) -> ImportResult:
        """Merges a foreign snapshot; the live state changes only on success."""
        result = merge_snapshot(self.store, self.order, snapshot)
        self._install(result.store, result.order)
        print(f"Imported {len(result.imported_ids)} note(s).")
        self.structureChanged.emit()
        return result
