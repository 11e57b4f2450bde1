# notenest/core/order_index.py
import copy

from notenest.core.models import ROOT_ORDER_KEY, TRASH_ID, normalize_parent_key, parent_from_key
from notenest.core.note_store import NoteStore


def _unique(ids) -> list:
    seen = set()
    result = []
    for note_id in ids:
        if note_id not in seen:
            seen.add(note_id)
            result.append(note_id)
    return result


class OrderIndex:
    """Per-parent explicit sibling order, decoupled from parent pointers.

    Keys are note ids, ROOT_ORDER_KEY for top level, or TRASH_ID for the
    trash container. Lists may go stale; reads heal them against the store.
    """

    def __init__(self, store: NoteStore, order_data: dict | None = None):
        self.store = store
        self._order: dict[str, list[str]] = {ROOT_ORDER_KEY: []}
        if order_data:
            self.hydrate(order_data)

    def __contains__(self, key) -> bool:
        return normalize_parent_key(key) in self._order

    def keys(self) -> list[str]:
        return list(self._order)

    def stored(self, parent_key) -> list[str]:
        """Raw stored list, unfiltered."""
        return list(self._order.get(normalize_parent_key(parent_key), []))

    def get_children(self, parent_key) -> list[str]:
        """Display order of the active children of parent_key.

        Ids that vanished, sit in the trash, or now belong to another parent
        are skipped. Live children missing from the list follow in store scan
        order. Nothing derived here is written back.
        """
        key = normalize_parent_key(parent_key)
        parent_id = parent_from_key(key)
        ordered = [
            note_id for note_id in self._order.get(key, [])
            if self._is_live_child(note_id, parent_id)
        ]
        listed = set(ordered)
        ordered.extend(note_id for note_id in self.store.scan_children(parent_id) if note_id not in listed)
        return ordered

    def set_children(self, parent_key, ids):
        self._order[normalize_parent_key(parent_key)] = _unique(ids)

    def insert(self, parent_key, note_id, index: int | None = None):
        """Places note_id under parent_key, removing it from any other list.

        index is a position in the stored list; None appends.
        """
        self.remove(note_id)
        entries = self._order.setdefault(normalize_parent_key(parent_key), [])
        if index is None or index >= len(entries):
            entries.append(note_id)
        else:
            entries.insert(max(0, index), note_id)

    def remove(self, note_id):
        for key, entries in self._order.items():
            if note_id in entries:
                self._order[key] = [e for e in entries if e != note_id]

    def purge(self, note_ids):
        """Drops every key owned by, and every occurrence of, the given ids."""
        doomed = set(note_ids)
        for key in list(self._order):
            if key in doomed:
                del self._order[key]
            else:
                self._order[key] = [e for e in self._order[key] if e not in doomed]
        self._order.setdefault(ROOT_ORDER_KEY, [])

    def drop_key(self, parent_key):
        key = normalize_parent_key(parent_key)
        if key == ROOT_ORDER_KEY:
            self._order[key] = []
        else:
            self._order.pop(key, None)

    def rebuild_from_notes(self):
        """Regroups every active note by parent, in store scan order."""
        self._order = {ROOT_ORDER_KEY: []}
        for note_id, note in self.store.items():
            if note.in_trash:
                continue
            self._order.setdefault(normalize_parent_key(note.parent), []).append(note_id)

    def hydrate(self, order_data: dict):
        self._order = {}
        for key, value in order_data.items():
            if isinstance(value, list):
                self._order[str(key)] = _unique(value)
        self._order.setdefault(ROOT_ORDER_KEY, [])

    def to_dict(self) -> dict:
        return copy.deepcopy(self._order)

    def copy(self, store: NoteStore | None = None) -> "OrderIndex":
        clone = OrderIndex(store if store is not None else self.store)
        clone._order = copy.deepcopy(self._order)
        return clone

    def _is_live_child(self, note_id, parent_id) -> bool:
        if note_id == TRASH_ID:
            return False
        note = self.store.get(note_id)
        return note is not None and not note.in_trash and note.parent == parent_id
