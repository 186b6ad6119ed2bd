from __future__ import annotations

import json

import pytest

from shelf_models import NAMESPACES, Entry, make_custom_entry
from shelf_storage import (
    KeyValueStore,
    PersistenceReadError,
    SessionStore,
    add_custom_entry,
    load_custom_entries,
    load_pins,
    next_custom_key,
    parse_pin_set,
    resolve_pins,
    save_pins,
    serialize_pin_set,
    toggle_pin,
)

pytestmark = pytest.mark.unit

APPS = NAMESPACES["apps"]
TOOLS = NAMESPACES["tools"]


def test_store_writes_through(tmp_path):
    path = tmp_path / "storage.json"
    store = KeyValueStore(path)
    store.set("Apinned", "h1")
    assert json.loads(path.read_text())["Apinned"] == "h1"  # nosec B101
    assert KeyValueStore(path).get("Apinned") == "h1"  # nosec B101


def test_unreadable_store_file_starts_empty(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("{not json")
    assert KeyValueStore(path).get("Apinned") is None  # nosec B101


def test_session_store():
    session = SessionStore()
    assert session.get("GoUrl") is None  # nosec B101
    session.set("GoUrl", "https://x")
    assert session.get("GoUrl") == "https://x"  # nosec B101


def test_toggle_twice_is_identity():
    pins = frozenset({"h1", "h2"})
    for key in ("h1", "h3"):
        assert toggle_pin(toggle_pin(pins, key), key) == pins  # nosec B101


def test_pin_set_round_trip(store):
    save_pins(store, APPS, {"hb", "ha"})
    assert store.get("Apinned") == "ha,hb"  # nosec B101
    assert load_pins(store, APPS) == {"ha", "hb"}  # nosec B101
    assert load_pins(store, TOOLS) == frozenset()  # nosec B101


def test_legacy_numeric_pins_parse():
    assert parse_pin_set("3,1") == {"3", "1"}  # nosec B101
    assert parse_pin_set("") == frozenset()  # nosec B101
    assert serialize_pin_set([]) == ""  # nosec B101


@pytest.mark.parametrize("raw", ["1,,2", "abc", "1, two"])
def test_malformed_pins_raise(raw):
    with pytest.raises(PersistenceReadError):
        parse_pin_set(raw)


def test_malformed_pins_load_as_empty(store):
    store.set("Apinned", "NaN,4")
    assert load_pins(store, APPS) == frozenset()  # nosec B101


def test_resolve_pins_maps_indices_and_drops_out_of_range():
    keys = ["h0", "h1", "h2"]
    assert resolve_pins({"1", "7", "hx"}, keys) == {"h1", "hx"}  # nosec B101


def test_add_custom_entry_uses_next_free_key(store):
    first = add_custom_entry(store, APPS, make_custom_entry("One", "https://1"))
    second = add_custom_entry(store, APPS, make_custom_entry("Two", "https://2"))
    assert (first, second) == ("custom1", "custom2")  # nosec B101
    loaded = load_custom_entries(store, APPS)
    assert [e.name for e in loaded.values()] == ["[Custom] One", "[Custom] Two"]  # nosec B101
    assert load_custom_entries(store, TOOLS) == {}  # nosec B101


def test_next_custom_key_skips_taken():
    assert next_custom_key(["custom2"]) == "custom3"  # nosec B101
    assert next_custom_key(["custom1", "custom3"]) == "custom4"  # nosec B101
    assert next_custom_key([]) == "custom1"  # nosec B101


def test_custom_entries_written_by_older_versions_get_all_category(store):
    store.set(
        "Acustom",
        json.dumps({"custom1": {"name": "[Custom] Old", "link": "https://o", "custom": False}}),
    )
    entry = load_custom_entries(store, APPS)["custom1"]
    assert entry.categories == ("all",)  # nosec B101
    assert entry == Entry(name="[Custom] Old", link="https://o", categories=("all",), custom=False)  # nosec B101


@pytest.mark.parametrize("raw", ["[1, 2]", "{broken", '"text"'])
def test_malformed_custom_map_loads_as_empty(store, raw):
    store.set("Acustom", raw)
    assert load_custom_entries(store, APPS) == {}  # nosec B101
