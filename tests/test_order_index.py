# tests/test_order_index.py
import pytest

from notenest.core.models import ROOT_ORDER_KEY, TRASH_ID
from notenest.core.note_store import NoteStore
from notenest.core.order_index import OrderIndex


@pytest.fixture
def store():
    store = NoteStore()
    a = store.create("A")
    store.create("B", a)
    store.create("C", a)
    store.create("D")
    return store


@pytest.fixture
def order(store):
    order = OrderIndex(store)
    order.set_children(None, ["note-4", "note-1"])
    order.set_children("note-1", ["note-3", "note-2"])
    return order


def test_get_children_follows_stored_order(order):
    assert order.get_children(None) == ["note-4", "note-1"]
    assert order.get_children("note-1") == ["note-3", "note-2"]
    assert order.get_children(ROOT_ORDER_KEY) == ["note-4", "note-1"]


def test_get_children_skips_stale_entries(store, order):
    store.reparent("note-3", None)

    assert order.get_children("note-1") == ["note-2"]
    assert "note-3" not in order.get_children("note-1")
    assert order.stored("note-1") == ["note-3", "note-2"]  # reads never write back


def test_get_children_never_returns_foreign_parent(store, order):
    order.set_children("note-1", ["note-4", "note-2", "missing", TRASH_ID])

    children = order.get_children("note-1")

    assert all(store.read(child).parent == "note-1" for child in children)


def test_get_children_appends_unlisted_in_scan_order(store, order):
    store.create("E", "note-1")
    store.create("F", "note-1")

    assert order.get_children("note-1") == ["note-3", "note-2", "note-5", "note-6"]


def test_get_children_without_list_falls_back_to_scan(store):
    order = OrderIndex(store)

    assert order.get_children(None) == ["note-1", "note-4"]
    assert order.get_children("note-1") == ["note-2", "note-3"]


def test_get_children_skips_trashed(store, order):
    store.read("note-2").in_trash = True

    assert order.get_children("note-1") == ["note-3"]


def test_set_children_dedupes(order):
    order.set_children(None, ["note-1", "note-4", "note-1"])

    assert order.stored(None) == ["note-1", "note-4"]


def test_insert_moves_between_lists(order):
    order.insert(None, "note-3", 1)

    assert order.stored(None) == ["note-4", "note-3", "note-1"]
    assert order.stored("note-1") == ["note-2"]


def test_insert_appends_by_default(order):
    order.insert("note-4", "note-2")

    assert order.stored("note-4") == ["note-2"]


def test_purge_removes_keys_and_occurrences(order):
    order.purge({"note-1", "note-2"})

    assert "note-1" not in order
    assert order.stored(None) == ["note-4"]


def test_purge_keeps_root_key(order):
    order.purge({"note-1", "note-4"})

    assert ROOT_ORDER_KEY in order.keys()
    assert order.stored(None) == []


def test_rebuild_from_notes(store):
    store.read("note-4").in_trash = True
    order = OrderIndex(store)
    order.rebuild_from_notes()

    assert order.to_dict() == {ROOT_ORDER_KEY: ["note-1"], "note-1": ["note-2", "note-3"]}


def test_hydrate_drops_non_list_values(store):
    order = OrderIndex(store, {"note-1": ["note-2"], "bogus": "nope"})

    assert order.keys() == ["note-1", ROOT_ORDER_KEY]


def test_copy_is_independent(store, order):
    clone = order.copy()
    clone.insert(None, "note-2", 0)

    assert order.stored(None) == ["note-4", "note-1"]
    assert clone.store is store
