# notenest/logic/reconciler.py
"""Import/export of snapshots against a live note store.

Export filters the live tree down to a selected set of subtrees. Import
merges a foreign snapshot in without ever overwriting a live note: every
imported id gets a final id (its own when free, a fresh one otherwise) and
that mapping is applied to parents and order lists alike. All import work
happens on scratch copies which the caller swaps in only on success.
"""
import sys
from dataclasses import dataclass, field

from notenest.core.errors import ImportFailed, NoteStoreError
from notenest.core.models import (ROOT_ORDER_KEY, TRASH_ID, normalize_parent_key,
                                  parent_from_key)
from notenest.core.note_store import NoteStore
from notenest.core.order_index import OrderIndex
from notenest.core.snapshot import Snapshot, assert_acyclic

RESERVED_IDS = {ROOT_ORDER_KEY, TRASH_ID}


class IdRemap:
    """Bijective old id -> final id mapping for a single import."""

    def __init__(self):
        self._forward = {}
        self._backward = {}

    def __contains__(self, old_id) -> bool:
        return old_id in self._forward

    def __len__(self) -> int:
        return len(self._forward)

    def __iter__(self):
        return iter(self._forward)

    def get(self, old_id, default=None):
        return self._forward.get(old_id, default)

    def items(self):
        return list(self._forward.items())

    def final_ids(self) -> list:
        return list(self._forward.values())

    def is_final(self, note_id) -> bool:
        return note_id in self._backward

    def add(self, old_id, final_id):
        if old_id in self._forward:
            raise ImportFailed(f"Duplicate imported id '{old_id}'.")
        if final_id in self._backward:
            raise ImportFailed(f"Final id '{final_id}' allocated twice.")
        self._forward[old_id] = final_id
        self._backward[final_id] = old_id

    @classmethod
    def allocate(cls, store: NoteStore, imported_ids) -> "IdRemap":
        """Keeps each imported id when free in store, otherwise mints one.

        Kept ids push the store's counter past their numeric suffix so later
        create() calls cannot collide with them.
        """
        remap = cls()
        for old_id in imported_ids:
            if old_id and old_id not in RESERVED_IDS and old_id not in store and not remap.is_final(old_id):
                final_id = old_id
                store.advance_counter_past(old_id)
            else:
                final_id = store.generate_id()
                while remap.is_final(final_id):
                    final_id = store.generate_id()
            remap.add(old_id, final_id)
        return remap


@dataclass
class ImportResult:
    store: NoteStore
    order: OrderIndex
    remap: IdRemap
    imported_ids: list = field(default_factory=list)
    root_ids: list = field(default_factory=list)


def expand_selection(store: NoteStore, note_ids) -> list:
    """Selected active notes plus all their active descendants."""
    selected = {}
    for note_id in note_ids:
        note = store.read(note_id)
        if note.in_trash:
            continue
        selected[note_id] = None
        for descendant_id in store.descendants(note_id, include_trashed=False):
            selected[descendant_id] = None
    return list(selected)


def export_snapshot(store: NoteStore, order: OrderIndex, note_ids) -> Snapshot:
    """Builds a standalone snapshot of the selected subtrees.

    Notes whose parent is not exported become top level. Order lists keep
    only exported children; a list whose parent was not exported is folded
    into the root list.
    """
    selected = set(expand_selection(store, note_ids))

    notes = {}
    for note_id, note in store.items():
        if note_id not in selected:
            continue
        clone = note.copy()
        if clone.parent not in selected:
            clone.parent = None
        notes[note_id] = clone

    filtered = {}
    for key, entries in order.to_dict().items():
        target = key if key == ROOT_ORDER_KEY or key in selected else ROOT_ORDER_KEY
        expected_parent = parent_from_key(target)
        kept = [
            note_id for note_id in entries
            if note_id in notes and notes[note_id].parent == expected_parent
        ]
        if not kept:
            continue
        bucket = filtered.setdefault(target, [])
        bucket.extend(note_id for note_id in kept if note_id not in bucket)

    return Snapshot(notes=notes, note_id_counter=store.id_counter, note_order=filtered)


def merge_snapshot(store: NoteStore, order: OrderIndex, snapshot: Snapshot) -> ImportResult:
    """Merges snapshot into scratch copies of store and order.

    The live structures are never touched. Raises ImportFailed on any
    problem; on success the caller installs result.store / result.order.
    """
    try:
        return _merge(store, order, snapshot)
    except NoteStoreError as e:
        if isinstance(e, ImportFailed):
            raise
        raise ImportFailed(f"Import failed: {e}") from e
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        print(f"Error: Unexpected import failure: {e}", file=sys.stderr)
        raise ImportFailed(f"Import failed: {e}") from e


def _merge(store, order, snapshot):
    scratch_store = store.copy()
    scratch_order = order.copy(scratch_store)
    remap = IdRemap.allocate(scratch_store, list(snapshot.notes))

    root_ids = []
    for old_id, record in snapshot.notes.items():
        note = record.copy()
        note.clear_trash_state()
        note.parent = _resolve_parent(record.parent, remap, store)
        final_id = remap.get(old_id)
        scratch_store.insert(final_id, note)
        if note.parent is None:
            root_ids.append(final_id)

    assert_acyclic({note_id: note.parent for note_id, note in scratch_store.items()}, label="import")

    if snapshot.note_id_counter is not None:
        scratch_store.id_counter = max(scratch_store.id_counter, snapshot.note_id_counter)

    _merge_order(scratch_store, scratch_order, snapshot.note_order, remap)
    _prioritize_roots(scratch_store, scratch_order, snapshot.note_order, remap, root_ids)

    return ImportResult(
        store=scratch_store,
        order=scratch_order,
        remap=remap,
        imported_ids=remap.final_ids(),
        root_ids=root_ids,
    )


def _resolve_parent(parent, remap: IdRemap, live_store: NoteStore):
    if parent is None:
        return None
    if parent in remap:
        return remap.get(parent)
    if not live_store.is_active(parent):
        return None  # Never attach to a parent the destination lacks (the trash included)
    return parent


def _splice_front(order: OrderIndex, key, ids):
    existing = [note_id for note_id in order.stored(key) if note_id not in ids]
    order.set_children(key, list(ids) + existing)


def _merge_order(store: NoteStore, order: OrderIndex, imported_order, remap: IdRemap):
    placed = set()
    for key, entries in (imported_order or {}).items():
        if key == TRASH_ID:
            continue  # Imported notes arrive active, so the trash gains nothing
        if key == ROOT_ORDER_KEY:
            target = ROOT_ORDER_KEY
        else:
            target = normalize_parent_key(remap.get(key, key))
            if target not in store:
                continue  # Parent exists on neither side; its children fall back below
        mapped = []
        for old_id in entries:
            final_id = remap.get(old_id)
            if final_id is not None and final_id not in mapped:
                mapped.append(final_id)
        if not mapped:
            continue
        _splice_front(order, target, mapped)
        for final_id in mapped:
            if normalize_parent_key(store.read(final_id).parent) == target:
                placed.add(final_id)

    # Anything the imported order did not place under its real parent goes last
    for final_id in remap.final_ids():
        if final_id not in placed:
            order.insert(store.read(final_id).parent, final_id)


def _prioritize_roots(store: NoteStore, order: OrderIndex, imported_order, remap: IdRemap, root_ids):
    root_set = set(root_ids)
    ordered = []
    imported_root_order = (imported_order or {}).get(ROOT_ORDER_KEY)
    if isinstance(imported_root_order, list):
        for old_id in imported_root_order:
            final_id = remap.get(old_id)
            if final_id in root_set and final_id not in ordered:
                ordered.append(final_id)
    ordered.extend(note_id for note_id in root_ids if note_id not in ordered)

    remaining = [
        note_id for note_id in order.stored(None)
        if note_id not in root_set and note_id != TRASH_ID
    ]
    trash = [TRASH_ID] if store.any_in_trash() else []
    order.set_children(None, ordered + remaining + trash)
