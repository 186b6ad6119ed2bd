# SPDX-License-Identifier: Apache-2.0
"""Merge catalog, custom entries and pins into the pinned/unpinned sections."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Generic, Optional, Protocol, Sequence, TypeVar

from catalog_source import CatalogFetchError
from debug_scaffold import record_breadcrumb, runtime_state, sanitize_log_extra, sanitize_url
from shelf_models import (
    Entry,
    ShelfContext,
    Status,
    annotate,
    entry_key,
    sort_catalog,
    status_for,
    with_status_message,
)
from shelf_storage import (
    KeyValueStore,
    load_custom_entries,
    load_pins,
    resolve_pins,
    save_pins,
    toggle_pin,
)

logger = logging.getLogger(__name__)

NodeT = TypeVar("NodeT")


@dataclass(frozen=True)
class PlacedEntry:
    entry: Entry
    key: str
    index: Optional[int]
    pinnable: bool
    pinned: bool
    status: Optional[Status] = None


@dataclass
class ListPlan:
    customs: list[PlacedEntry] = field(default_factory=list)
    pinned: list[PlacedEntry] = field(default_factory=list)
    unpinned: list[PlacedEntry] = field(default_factory=list)
    keys_by_index: list[str] = field(default_factory=list)
    pins: frozenset[str] = frozenset()

    @property
    def indexed(self) -> list[PlacedEntry]:
        return sorted(self.pinned + self.unpinned, key=lambda p: p.index or 0)


def _keyed(entries: Sequence[Entry]) -> list[str]:
    seen: Counter[str] = Counter()
    keys = []
    for entry in entries:
        base = entry_key(entry)
        seen[base] += 1
        keys.append(base if seen[base] == 1 else f"{base}#{seen[base]}")
    return keys


def plan_list(
    catalog: Sequence[Entry],
    customs: Sequence[Entry],
    stored_pins: frozenset[str],
) -> ListPlan:
    """Decide where every entry goes.

    *catalog* must already be sorted.  Position 0 is never pinnable, whatever
    the pin set says.
    """
    plan = ListPlan()
    for entry in customs:
        entry = with_status_message(annotate(entry))
        plan.customs.append(
            PlacedEntry(entry, entry_key(entry), None, False, False, status_for(entry))
        )

    plan.keys_by_index = _keyed(catalog)
    plan.pins = resolve_pins(stored_pins, plan.keys_by_index)
    for index, (raw, key) in enumerate(zip(catalog, plan.keys_by_index)):
        entry = with_status_message(annotate(raw))
        pinnable = index != 0
        pinned = pinnable and key in plan.pins
        placed = PlacedEntry(entry, key, index, pinnable, pinned, status_for(entry))
        (plan.pinned if pinned else plan.unpinned).append(placed)
    return plan


class RenderTarget(Protocol[NodeT]):
    def clear(self) -> None: ...

    def make_node(
        self,
        placed: PlacedEntry,
        ctx: ShelfContext,
        on_launch: Callable[[], None],
        on_pin: Optional[Callable[[], None]],
    ) -> NodeT: ...

    def place(self, node: NodeT, pinned: bool) -> None: ...

    def prepend(self, node: NodeT) -> None: ...

    def attach(self) -> None: ...


class ListBuilder(Generic[NodeT]):
    def __init__(
        self,
        fetch: Callable[[str], list[Entry]],
        store: KeyValueStore,
        target: RenderTarget[NodeT],
        launch: Callable[[Entry, ShelfContext], object],
        on_built: Optional[Callable[[ShelfContext], None]] = None,
    ) -> None:
        self.fetch = fetch
        self.store = store
        self.target = target
        self.launch = launch
        self.on_built = on_built
        self.last_plan: Optional[ListPlan] = None

    def build(self, ctx: ShelfContext) -> bool:
        """Fetch and render the catalog for *ctx*.

        Returns ``False`` on fetch failure, leaving the sections untouched.
        """
        url = ctx.catalog_url
        runtime_state["namespace"] = ctx.namespace.tag
        runtime_state["catalog_url"] = sanitize_url(url)
        try:
            catalog = sort_catalog(self.fetch(url))
        except CatalogFetchError as exc:
            record_breadcrumb("catalog_fetch_failed", url=sanitize_url(url))
            logger.error(
                "catalog_fetch_failed",
                extra=sanitize_log_extra(
                    {"url": sanitize_url(url), "namespace": ctx.namespace.tag, "error": str(exc)}
                ),
            )
            return False

        customs = list(reversed(load_custom_entries(self.store, ctx.namespace).values()))
        plan = plan_list(catalog, customs, load_pins(self.store, ctx.namespace))

        self.target.clear()
        for placed in plan.customs:
            self.target.place(self._node(placed, ctx), pinned=False)
        for placed in plan.indexed:
            self.target.place(self._node(placed, ctx), pinned=placed.pinned)
        self.target.attach()

        self.last_plan = plan
        record_breadcrumb(
            "list_built",
            namespace=ctx.namespace.tag,
            entries=len(catalog),
            customs=len(plan.customs),
            pinned=len(plan.pinned),
        )
        if self.on_built is not None:
            self.on_built(ctx)
        return True

    def _node(self, placed: PlacedEntry, ctx: ShelfContext) -> NodeT:
        on_launch = partial(self.launch, placed.entry, ctx)
        on_pin = partial(self.toggle, ctx, placed.key) if placed.pinnable else None
        return self.target.make_node(placed, ctx, on_launch, on_pin)

    def toggle(self, ctx: ShelfContext, key: str) -> frozenset[str]:
        """Flip *key* in the namespace's pin set, persist, and rebuild."""
        keys_by_index = self.last_plan.keys_by_index if self.last_plan else []
        pins = resolve_pins(load_pins(self.store, ctx.namespace), keys_by_index)
        pins = toggle_pin(pins, key)
        save_pins(self.store, ctx.namespace, pins)
        record_breadcrumb(
            "pin_toggled", namespace=ctx.namespace.tag, key=key, pinned=key in pins
        )
        self.build(ctx)
        return pins

    def render_custom(self, entry: Entry, ctx: ShelfContext) -> None:
        """Show a freshly added custom entry at the front without a rebuild."""
        entry = with_status_message(annotate(entry))
        placed = PlacedEntry(entry, entry_key(entry), None, False, False, status_for(entry))
        self.target.prepend(self._node(placed, ctx))
