from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from catalog_source import CatalogFetchError
from list_builder import ListBuilder
from shelf_models import Entry, entry_key, make_custom_entry
from shelf_storage import add_custom_entry, load_pins, save_pins

pytestmark = pytest.mark.unit


@dataclass
class FakeNode:
    name: str
    index: int | None
    on_launch: object
    on_pin: object


@dataclass
class FakeTarget:
    pinned: list = field(default_factory=list)
    unpinned: list = field(default_factory=list)
    events: list = field(default_factory=list)

    def clear(self):
        self.events.append("clear")
        self.pinned.clear()
        self.unpinned.clear()

    def make_node(self, placed, ctx, on_launch, on_pin):
        return FakeNode(placed.entry.name, placed.index, on_launch, on_pin)

    def place(self, node, pinned):
        (self.pinned if pinned else self.unpinned).append(node)

    def prepend(self, node):
        self.unpinned.insert(0, node)

    def attach(self):
        self.events.append("attach")

    def names(self, section):
        return [n.name for n in getattr(self, section)]


CATALOG = [
    Entry(name="Zeta", link="https://z.example"),
    Entry(name="[Custom] Alpha", link="https://a.example"),
    Entry(name="Mid", link="https://m.example"),
]


@pytest.fixture
def harness(store):
    target = FakeTarget()
    launched = []
    fetched = []

    def fetch(url):
        fetched.append(url)
        return list(CATALOG)

    builder = ListBuilder(fetch, store, target, lambda e, c: launched.append(e.name))
    return builder, target, launched, fetched


def test_build_renders_sorted_catalog(harness, ctx):
    builder, target, _, fetched = harness
    assert builder.build(ctx) is True  # nosec B101
    assert fetched == ["http://shelf.test/assets/json/a.min.json"]  # nosec B101
    assert target.names("unpinned") == ["[Custom] Alpha", "Mid", "Zeta"]  # nosec B101
    assert target.pinned == []  # nosec B101
    assert target.events == ["clear", "attach"]  # nosec B101
    assert target.unpinned[0].on_pin is None  # nosec B101
    assert target.unpinned[1].on_pin is not None  # nosec B101


def test_stored_customs_render_first_newest_first(harness, store, ctx):
    builder, target, _, _ = harness
    add_custom_entry(store, ctx.namespace, make_custom_entry("Old", "https://o"))
    add_custom_entry(store, ctx.namespace, make_custom_entry("New", "https://n"))
    builder.build(ctx)
    assert target.names("unpinned")[:3] == ["[Custom] New", "[Custom] Old", "[Custom] Alpha"]  # nosec B101
    assert target.unpinned[0].index is None  # nosec B101
    assert target.unpinned[0].on_pin is None  # nosec B101


def test_pin_toggle_persists_and_rebuilds(harness, store, ctx):
    builder, target, _, fetched = harness
    builder.build(ctx)
    mid = target.unpinned[1]
    mid.on_pin()
    assert len(fetched) == 2  # nosec B101
    assert target.names("pinned") == ["Mid"]  # nosec B101
    assert load_pins(store, ctx.namespace) == {entry_key(CATALOG[2])}  # nosec B101

    target.pinned[0].on_pin()
    assert target.pinned == []  # nosec B101
    assert load_pins(store, ctx.namespace) == frozenset()  # nosec B101


def test_toggle_migrates_legacy_indices(harness, store, ctx):
    builder, target, _, _ = harness
    save_pins(store, ctx.namespace, {"2"})
    builder.build(ctx)
    assert target.names("pinned") == ["Zeta"]  # nosec B101
    builder.toggle(ctx, entry_key(CATALOG[2]))
    assert load_pins(store, ctx.namespace) == {entry_key(CATALOG[0]), entry_key(CATALOG[2])}  # nosec B101


def test_launch_callback_gets_annotated_entry(harness, ctx):
    builder, target, launched, _ = harness
    builder.build(ctx)
    target.unpinned[2].on_launch()
    assert launched == ["Zeta"]  # nosec B101


def test_fetch_failure_leaves_sections_untouched(store, ctx):
    target = FakeTarget()
    calls = {"n": 0}

    def fetch(url):
        calls["n"] += 1
        if calls["n"] > 1:
            raise CatalogFetchError("offline")
        return list(CATALOG)

    builder = ListBuilder(fetch, store, target, lambda e, c: None)
    assert builder.build(ctx) is True  # nosec B101
    before = target.names("unpinned")
    assert builder.build(ctx) is False  # nosec B101
    assert target.names("unpinned") == before  # nosec B101
    assert target.events == ["clear", "attach"]  # nosec B101


def test_render_custom_prepends_without_rebuild(harness, ctx):
    builder, target, _, fetched = harness
    builder.build(ctx)
    builder.render_custom(make_custom_entry("Fresh", "https://f"), ctx)
    assert target.names("unpinned")[0] == "[Custom] Fresh"  # nosec B101
    assert len(fetched) == 1  # nosec B101


def test_on_built_runs_only_after_successful_build(store, ctx):
    built = []
    results = [list(CATALOG)]

    def fetch(url):
        if not results:
            raise CatalogFetchError("offline")
        return results.pop()

    builder = ListBuilder(
        fetch, store, FakeTarget(), lambda e, c: None, on_built=lambda c: built.append(c)
    )
    builder.build(ctx)
    builder.build(ctx)
    assert built == [ctx]  # nosec B101
