# notenest/core/trash.py
import time

from notenest.core.models import TRASH_ID, normalize_parent_key
from notenest.core.note_store import NoteStore
from notenest.core.order_index import OrderIndex


def _now_ms() -> int:
    return int(time.time() * 1000)


class TrashManager:
    """Cascading soft delete, recovery and permanent deletion.

    Per-note states: Active -> Trashed -> Recovered (Active) or deleted.
    The trash container (TRASH_ID) is not a stored note. It sits at the end
    of the root order while anything is trashed and owns an order list of
    the trashed subtree roots, most recently trashed first.
    """

    def __init__(self, store: NoteStore, order: OrderIndex, clock=None):
        self.store = store
        self.order = order
        self.clock = clock or _now_ms

    def has_trash(self) -> bool:
        return self.store.any_in_trash()

    def move_to_trash(self, note_id) -> list[str]:
        """Trashes note_id and its subtree. Returns every affected id.

        Only the subtree root is re-pointed at the trash; descendants keep
        their parent so the subtree's shape survives.
        """
        note = self.store.read(note_id)
        if note.in_trash:
            return []
        descendants = self.store.descendants(note_id)
        trashed_at = self.clock()

        self._mark_trashed(note_id, trashed_at)
        self.store.set_parent(note_id, TRASH_ID)
        for child_id in descendants:
            self._mark_trashed(child_id, trashed_at)

        self.order.remove(note_id)
        self.order.insert(TRASH_ID, note_id, 0)
        self.sync_sentinel()
        return [note_id] + descendants

    def recover_from_trash(self, note_id) -> list[str]:
        """Restores note_id to the parent it had before trashing.

        Falls back to top level if that parent is gone or still trashed.
        Anything trashed along with it comes back too. Returns the recovered
        ids; a note that is not in the trash is left alone.
        """
        note = self.store.get(note_id)
        if note is None or not note.in_trash:
            return []

        recovered = []
        queue = [note_id]
        while queue:
            current_id = queue.pop(0)
            current = self.store.get(current_id)
            if current is None or not current.in_trash:
                continue
            previous_parent = current.parent
            target = current.original_parent
            if target is not None and not self.store.is_active(target):
                target = None
            current.clear_trash_state()
            self.store.set_parent(current_id, target)
            if previous_parent != target:
                # Recovered roots go to the front of the restored parent
                self.order.insert(normalize_parent_key(target), current_id, 0)
            recovered.append(current_id)
            queue.extend(self._trashed_with(current_id))

        self.sync_sentinel()
        return recovered

    def permanently_delete(self, note_id) -> set[str]:
        """Removes note_id and its subtree from the store and the order."""
        removed = self.store.delete_permanent(note_id)
        self.order.purge(removed)
        self.sync_sentinel()
        return removed

    def trashed_roots(self) -> list[str]:
        """Children of the trash container, most recently trashed first."""
        listed = [
            note_id for note_id in self.order.stored(TRASH_ID)
            if self._is_trash_root(note_id)
        ]
        unlisted = [
            note_id for note_id in self.store.children_of(TRASH_ID)
            if note_id not in listed and self._is_trash_root(note_id)
        ]
        unlisted.sort(key=lambda note_id: self.store.read(note_id).trashed_at or 0, reverse=True)
        return listed + unlisted

    def trashed_children(self, note_id) -> list[str]:
        """Children of a trashed note, in their pre-trash order."""
        children = [
            child_id for child_id in self.store.children_of(note_id)
            if self.store.read(child_id).in_trash
        ]
        stored = [child_id for child_id in self.order.stored(note_id) if child_id in children]
        return stored + [child_id for child_id in children if child_id not in stored]

    def sync_sentinel(self) -> bool:
        """Materializes or removes the trash container.

        Returns True when the container was just removed.
        """
        root = [entry for entry in self.order.stored(None) if entry != TRASH_ID]
        if self.has_trash():
            self.order.set_children(None, root + [TRASH_ID])
            if TRASH_ID not in self.order:
                self.order.set_children(TRASH_ID, [])
            return False
        existed = TRASH_ID in self.order or TRASH_ID in self.order.stored(None)
        self.order.set_children(None, root)
        self.order.drop_key(TRASH_ID)
        return existed

    def _mark_trashed(self, note_id, trashed_at):
        note = self.store.read(note_id)
        if not note.in_trash:
            note.original_parent = note.parent
        note.in_trash = True
        note.trashed_at = trashed_at

    def _trashed_with(self, note_id) -> list[str]:
        # Matches on original_parent: nested descendants were never re-pointed
        candidates = self.store.children_of(note_id) + self.store.children_of(TRASH_ID)
        result = []
        for candidate_id in candidates:
            candidate = self.store.get(candidate_id)
            if candidate is not None and candidate.in_trash and candidate.original_parent == note_id:
                result.append(candidate_id)
        return result

    def _is_trash_root(self, note_id) -> bool:
        note = self.store.get(note_id)
        return note is not None and note.in_trash and note.parent == TRASH_ID
