# notenest/core/note_store.py
from notenest.core.errors import InvalidMove, NotFound
from notenest.core.models import TRASH_ID, Note, make_note_id, note_id_number


class NoteStore:
    """Canonical id -> Note map.

    Keeps a children-by-parent index next to the map so cascades never rescan
    the whole store. Note.parent must only change through set_parent() or
    reparent(), otherwise the index goes stale.
    """

    def __init__(self, id_counter: int = 1):
        self._notes: dict[str, Note] = {}
        self._children: dict[str | None, dict[str, None]] = {}  # parent -> ordered set of ids
        self.id_counter = max(1, int(id_counter))

    # --- Lookup ---

    def __contains__(self, note_id) -> bool:
        return note_id in self._notes

    def __len__(self) -> int:
        return len(self._notes)

    def __iter__(self):
        return iter(list(self._notes))

    def items(self):
        return list(self._notes.items())

    def get(self, note_id) -> Note | None:
        return self._notes.get(note_id)

    def read(self, note_id) -> Note:
        note = self._notes.get(note_id)
        if note is None:
            raise NotFound(note_id)
        return note

    def is_active(self, note_id) -> bool:
        note = self._notes.get(note_id)
        return note is not None and not note.in_trash

    def any_in_trash(self) -> bool:
        return any(note.in_trash for note in self._notes.values())

    def children_of(self, parent_id) -> list[str]:
        """Direct children by parent pointer, trashed ones included."""
        return list(self._children.get(parent_id, ()))

    def scan_children(self, parent_id) -> list[str]:
        """Active direct children in store enumeration (insertion) order."""
        return [
            note_id for note_id, note in self._notes.items()
            if note.parent == parent_id and not note.in_trash
        ]

    def descendants(self, note_id, include_trashed: bool = True) -> list[str]:
        """All transitive children of note_id, depth first."""
        result = []
        seen = {note_id}
        stack = list(reversed(self.children_of(note_id)))
        while stack:
            child_id = stack.pop()
            if child_id in seen:
                continue
            seen.add(child_id)
            child = self._notes.get(child_id)
            if child is None or (child.in_trash and not include_trashed):
                continue
            result.append(child_id)
            stack.extend(reversed(self.children_of(child_id)))
        return result

    def is_descendant(self, candidate_id, ancestor_id) -> bool:
        """True if ancestor_id appears on candidate_id's parent chain.

        A note is never its own descendant.
        """
        if not candidate_id or not ancestor_id:
            return False
        seen = set()
        current = self._notes.get(candidate_id)
        while current is not None and current.parent is not None:
            if current.parent == ancestor_id:
                return True
            if current.parent in seen:
                break
            seen.add(current.parent)
            current = self._notes.get(current.parent)
        return False

    # --- Ids ---

    def generate_id(self) -> str:
        while True:
            note_id = make_note_id(self.id_counter)
            self.id_counter += 1
            if note_id not in self._notes:
                return note_id

    def advance_counter_past(self, note_id):
        number = note_id_number(note_id)
        if number is not None:
            self.id_counter = max(self.id_counter, number + 1)

    def derive_counter(self) -> int:
        """Next counter value implied by the largest 'note-<n>' id."""
        numbers = [note_id_number(note_id) for note_id in self._notes]
        return max([n for n in numbers if n is not None], default=0) + 1

    # --- Mutation ---

    def insert(self, note_id: str, note: Note):
        """Stores a record under an explicit id (loading, importing)."""
        if note_id in self._notes:
            self._unlink(note_id)
        self._notes[note_id] = note
        self._link(note_id)

    def create(self, title: str, parent: str | None = None) -> str:
        """Creates an active note with empty content and returns its id.

        The caller registers the new id in the Order Index.
        """
        if not title or not title.strip():
            raise ValueError("Note title cannot be empty.")
        self._check_target_parent(parent)
        note_id = self.generate_id()
        self.insert(note_id, Note(title=title, parent=parent))
        return note_id

    def rename(self, note_id, title: str):
        if not title or not title.strip():
            raise ValueError("Note title cannot be empty.")
        self.read(note_id).title = title

    def update_content(self, note_id, content: str):
        self.read(note_id).content = content

    def reparent(self, note_id, new_parent):
        """Moves note_id under new_parent (None for top level).

        The caller moves the id between Order Index lists.
        """
        note = self.read(note_id)
        if note.in_trash:
            raise InvalidMove(f"Cannot move trashed note {note_id}; recover it first.")
        if new_parent == note_id or (new_parent is not None and self.is_descendant(new_parent, note_id)):
            raise InvalidMove(f"Cannot move {note_id} into itself or one of its descendants.")
        self._check_target_parent(new_parent)
        self.set_parent(note_id, new_parent)

    def set_parent(self, note_id, new_parent):
        """Unchecked parent update that keeps the children index in sync."""
        note = self.read(note_id)
        if note.parent == new_parent:
            return
        self._unlink(note_id)
        note.parent = new_parent
        self._link(note_id)

    def delete_permanent(self, note_id) -> set[str]:
        """Removes note_id and every note whose parent chain reaches it.

        Returns the removed ids so auxiliary per-id state can be cleaned up.
        """
        self.read(note_id)
        removed = [note_id] + self.descendants(note_id)
        for removed_id in removed:
            self._unlink(removed_id)
            self._children.pop(removed_id, None)
            del self._notes[removed_id]
        return set(removed)

    def clear(self):
        self._notes.clear()
        self._children.clear()

    def copy(self) -> "NoteStore":
        clone = NoteStore(self.id_counter)
        for note_id, note in self._notes.items():
            clone.insert(note_id, note.copy())
        return clone

    # --- Internals ---

    def _check_target_parent(self, parent):
        if parent is None:
            return
        if parent == TRASH_ID:
            raise InvalidMove("Notes can only enter the trash through move_to_trash.")
        target = self._notes.get(parent)
        if target is None:
            raise NotFound(parent)
        if target.in_trash:
            raise InvalidMove(f"Target parent {parent} is in the trash.")

    def _link(self, note_id):
        parent = self._notes[note_id].parent
        self._children.setdefault(parent, {})[note_id] = None

    def _unlink(self, note_id):
        parent = self._notes[note_id].parent
        siblings = self._children.get(parent)
        if siblings is not None:
            siblings.pop(note_id, None)
            if not siblings:
                del self._children[parent]
