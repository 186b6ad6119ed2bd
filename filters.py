# SPDX-License-Identifier: Apache-2.0
"""Category and search filters over already-rendered entry nodes.

The two filters do not compose: each one recomputes visibility for every
node from scratch, so applying one discards what the other had hidden.
"""

from __future__ import annotations

from typing import Collection, Iterable, Protocol


class FilterableNode(Protocol):
    label: str
    categories: tuple[str, ...]

    def setVisible(self, visible: bool) -> None: ...  # noqa: N802


def category_matches(selected: Collection[str], categories: Iterable[str]) -> bool:
    if not selected:
        return True
    return any(c in selected for c in categories)


def text_matches(query: str, label: str) -> bool:
    return query.lower() in label.lower()


def apply_category_filter(nodes: Iterable[FilterableNode], selected: Collection[str]) -> int:
    """Show nodes tagged with any selected category; returns the visible count."""
    shown = 0
    for node in nodes:
        visible = category_matches(selected, node.categories)
        node.setVisible(visible)
        shown += visible
    return shown


def apply_text_filter(nodes: Iterable[FilterableNode], query: str) -> int:
    shown = 0
    for node in nodes:
        visible = text_matches(query, node.label)
        node.setVisible(visible)
        shown += visible
    return shown
