# notenest/core/snapshot.py
"""Snapshot schema shared by persistence, export and import.

Wire shape::

    {
      "notesData": {"note-1": {"title": ..., "content": ..., "parent": null}},
      "noteIdCounter": 2,
      "noteOrder": {"__root__": ["note-1"]}
    }

Older files may be a bare notesData map, may spell the order "notesOrder",
may lack the counter or the order, and may contain a persisted trash
container record. from_payload() accepts all of those; normalize() repairs
the structure once at load time.
"""
import copy
import sys
from dataclasses import dataclass, field

from notenest.core.errors import ImportFailed
from notenest.core.models import TRASH_ID, Note, note_id_number


def assert_acyclic(parents: dict, label="snapshot"):
    """Raises ImportFailed if following parent pointers ever loops.

    parents maps id -> parent id (or None).
    """
    finished = set()
    for start in parents:
        path = []
        on_path = set()
        current = start
        while current is not None and current in parents and current not in finished:
            if current in on_path:
                raise ImportFailed(f"Parent cycle in {label} involving note '{current}'.")
            on_path.add(current)
            path.append(current)
            current = parents[current]
        finished.update(path)


@dataclass
class Snapshot:
    notes: dict = field(default_factory=dict)  # id -> Note, in file order
    note_id_counter: int | None = None
    note_order: dict | None = None  # parent key -> [ids]

    @classmethod
    def from_payload(cls, payload) -> "Snapshot":
        """Validates a decoded JSON payload and builds a Snapshot."""
        if not isinstance(payload, dict):
            raise ImportFailed("Snapshot root must be a JSON object.")

        wrapped = "notesData" in payload
        notes_data = payload["notesData"] if wrapped else payload
        if not isinstance(notes_data, dict):
            raise ImportFailed("'notesData' must be a JSON object.")

        counter = payload.get("noteIdCounter") if wrapped else None
        if counter is not None and (isinstance(counter, bool) or not isinstance(counter, int)):
            print(f"Warning: Ignoring non-integer noteIdCounter {counter!r}.", file=sys.stderr)
            counter = None

        order = None
        if wrapped:
            order = payload.get("noteOrder", payload.get("notesOrder"))
        if order is not None:
            if not isinstance(order, dict):
                raise ImportFailed("'noteOrder' must be a JSON object.")
            for key, ids in order.items():
                if not isinstance(ids, list):
                    raise ImportFailed(f"Order list for '{key}' must be an array.")
                if not all(isinstance(note_id, str) for note_id in ids):
                    raise ImportFailed(f"Order list for '{key}' must contain only note ids.")
            order = copy.deepcopy(order)

        notes = {}
        for note_id, record in notes_data.items():
            if note_id == TRASH_ID:
                continue  # Legacy files persisted the trash container as a note
            if not isinstance(record, dict):
                raise ImportFailed(f"Record for note '{note_id}' must be a JSON object.")
            for key in ("parent", "originalParent"):
                value = record.get(key)
                if value is not None and not isinstance(value, str):
                    raise ImportFailed(f"Field '{key}' of note '{note_id}' must be a note id or null.")
            notes[str(note_id)] = Note.from_dict(record)

        return cls(notes=notes, note_id_counter=counter, note_order=order)

    def to_payload(self) -> dict:
        return {
            "notesData": {note_id: note.to_dict() for note_id, note in self.notes.items()},
            "noteIdCounter": self.effective_counter(),
            "noteOrder": copy.deepcopy(self.note_order) if self.note_order is not None else {},
        }

    def effective_counter(self) -> int:
        """The stored counter, or one past the largest 'note-<n>' id."""
        derived = max([n for n in map(note_id_number, self.notes) if n is not None], default=0) + 1
        if self.note_id_counter is None:
            return derived
        return max(self.note_id_counter, derived)

    def parents(self) -> dict:
        return {note_id: note.parent for note_id, note in self.notes.items()}

    def normalize(self) -> "Snapshot":
        """One-time repair of a loaded snapshot so the store invariants hold.

        - parents that point nowhere become top level
        - a note claiming the trash as parent without being trashed becomes top level
        - a trashed note hanging under an active note becomes a trash root
        - an active note under a trashed note is trashed along with it
        Parent cycles cannot be repaired and raise ImportFailed.
        """
        for note_id, note in self.notes.items():
            if note.parent is None:
                continue
            if note.parent == TRASH_ID:
                if not note.in_trash:
                    print(f"Warning: Note '{note_id}' points at the trash but is not trashed; moving to top level.", file=sys.stderr)
                    note.parent = None
            elif note.parent not in self.notes or note.parent == note_id:
                print(f"Warning: Note '{note_id}' has missing parent '{note.parent}'; moving to top level.", file=sys.stderr)
                note.parent = None

        assert_acyclic(self.parents())

        changed = True
        while changed:
            changed = False
            for note_id, note in self.notes.items():
                parent = self.notes.get(note.parent) if note.parent not in (None, TRASH_ID) else None
                if note.in_trash and note.parent is None:
                    note.parent = TRASH_ID
                    changed = True
                elif note.in_trash and parent is not None and not parent.in_trash:
                    note.parent = TRASH_ID
                    changed = True
                elif not note.in_trash and parent is not None and parent.in_trash:
                    note.in_trash = True
                    note.trashed_at = parent.trashed_at or 0
                    note.original_parent = note.parent
                    changed = True
        return self
