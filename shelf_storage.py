# SPDX-License-Identifier: Apache-2.0
"""Client-side persistence: pin sets, custom entries and the hand-off key."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Optional

from debug_scaffold import sanitize_log_extra
from shelf_models import Entry, NamespaceConfig

logger = logging.getLogger(__name__)

HANDOFF_KEY = "GoUrl"

_PIN_TOKEN_RE = re.compile(r"^(\d+|h[0-9a-f]+(#\d+)?|id-[^\s,]+)$")


class PersistenceReadError(ValueError):
    """Stored data could not be parsed."""


class KeyValueStore:
    """Durable string store backed by a JSON file; every ``set`` writes through."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._data: dict[str, str] = {}
        if path.exists():
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning(
                    "storage_unreadable",
                    extra=sanitize_log_extra({"path": str(path), "error": str(exc)}),
                )
                raw = {}
            if isinstance(raw, dict):
                self._data = {k: v for k, v in raw.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")


class SessionStore:
    """Transient store that lives as long as the process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


# -------- pin set --------


def parse_pin_set(raw: Optional[str]) -> frozenset[str]:
    if raw is None or raw == "":
        return frozenset()
    tokens = [t.strip() for t in raw.split(",")]
    for token in tokens:
        if not _PIN_TOKEN_RE.match(token):
            raise PersistenceReadError(f"invalid pin entry {token!r}")
    return frozenset(tokens)


def serialize_pin_set(pins: Iterable[str]) -> str:
    return ",".join(sorted(pins))


def load_pins(store: KeyValueStore, ns: NamespaceConfig) -> frozenset[str]:
    try:
        return parse_pin_set(store.get(ns.pinned_key))
    except PersistenceReadError as exc:
        logger.warning(
            "pin_set_unreadable",
            extra=sanitize_log_extra({"key": ns.pinned_key, "error": str(exc)}),
        )
        return frozenset()


def save_pins(store: KeyValueStore, ns: NamespaceConfig, pins: Iterable[str]) -> None:
    store.set(ns.pinned_key, serialize_pin_set(pins))


def resolve_pins(stored: Iterable[str], keys_by_index: list[str]) -> frozenset[str]:
    """Map legacy positional members onto entry keys of the current order.

    Indices outside the current list are dropped.
    """
    resolved: set[str] = set()
    for member in stored:
        if member.isdigit():
            idx = int(member)
            if idx < len(keys_by_index):
                resolved.add(keys_by_index[idx])
        else:
            resolved.add(member)
    return frozenset(resolved)


def toggle_pin(pins: frozenset[str], key: str) -> frozenset[str]:
    return pins ^ {key}


# -------- custom entries --------


def parse_custom_map(raw: Optional[str]) -> dict[str, Entry]:
    if raw is None or raw == "":
        return {}
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise PersistenceReadError(str(exc)) from exc
    if not isinstance(data, dict):
        raise PersistenceReadError("custom entries must be an object")
    entries: dict[str, Entry] = {}
    for key, value in data.items():
        try:
            entry = Entry.from_dict(value)
        except ValueError:
            logger.warning("custom_entry_skipped", extra={"key": key})
            continue
        if not entry.categories:
            entry = replace(entry, categories=("all",))
        entries[key] = entry
    return entries


def load_custom_entries(store: KeyValueStore, ns: NamespaceConfig) -> dict[str, Entry]:
    try:
        return parse_custom_map(store.get(ns.custom_key))
    except PersistenceReadError as exc:
        logger.warning(
            "custom_entries_unreadable",
            extra=sanitize_log_extra({"key": ns.custom_key, "error": str(exc)}),
        )
        return {}


def next_custom_key(existing: Iterable[str]) -> str:
    taken = set(existing)
    n = len(taken) + 1
    while f"custom{n}" in taken:
        n += 1
    return f"custom{n}"


def add_custom_entry(store: KeyValueStore, ns: NamespaceConfig, entry: Entry) -> str:
    """Persist *entry* under the next free ``customN`` key and return that key."""
    entries = load_custom_entries(store, ns)
    key = next_custom_key(entries)
    entries[key] = entry
    store.set(
        ns.custom_key,
        json.dumps({k: e.to_dict() for k, e in entries.items()}),
    )
    return key
