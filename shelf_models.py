# SPDX-License-Identifier: Apache-2.0
"""Catalog entry model, annotation rules and namespace table.

Everything in this module is pure so that it can be imported and unit
tested without PySide6.
"""

from __future__ import annotations

import hashlib
import locale
import logging
import unicodedata
import urllib.parse
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Optional

logger = logging.getLogger(__name__)

CUSTOM_PREFIX = "[Custom]"
CUSTOM_ICON = "/assets/media/icons/custom.webp"

NOWGG_PARTIAL_SAY = "Now.gg is currently not working for some users."
NOWGG_DOWN_SAY = "NowGG.nl is currently down."

FLAG_NAMES = (
    "local",
    "local2",
    "blank",
    "now",
    "dy",
    "custom",
    "partial",
    "error",
    "load",
)


@dataclass(frozen=True)
class LinkVariant:
    name: str
    url: str


@dataclass(frozen=True)
class Entry:
    """One launchable catalog item.

    Flags are ``None`` when the catalog leaves them unset; any other value is
    interpreted by truthiness, the catalog occasionally ships strings.
    """

    name: str
    link: Optional[str] = None
    links: tuple[LinkVariant, ...] = ()
    image: Optional[str] = None
    categories: tuple[str, ...] = ()
    id: Optional[str] = None
    say: Optional[str] = None
    local: Any = None
    local2: Any = None
    blank: Any = None
    now: Any = None
    dy: Any = None
    custom: Any = None
    partial: Any = None
    error: Any = None
    load: Any = None

    @staticmethod
    def from_dict(data: Any) -> "Entry":
        if not isinstance(data, Mapping):
            raise ValueError("catalog entry must be an object")
        name = data.get("name")
        if not isinstance(name, str):
            raise ValueError("catalog entry has no name")

        links: list[LinkVariant] = []
        for raw in data.get("links") or []:
            if isinstance(raw, Mapping) and isinstance(raw.get("url"), str):
                links.append(LinkVariant(str(raw.get("name") or raw["url"]), raw["url"]))

        raw_cats = data.get("categories") or []
        if isinstance(raw_cats, str):
            raw_cats = raw_cats.split()
        categories = tuple(c for c in raw_cats if isinstance(c, str))

        link = data.get("link")
        image = data.get("image")
        say = data.get("say")
        raw_id = data.get("id")
        flags = {f: data.get(f) for f in FLAG_NAMES}
        return Entry(
            name=name,
            link=link if isinstance(link, str) else None,
            links=tuple(links),
            image=image if isinstance(image, str) and image else None,
            categories=categories,
            id=str(raw_id) if raw_id not in (None, "") else None,
            say=say if isinstance(say, str) and say else None,
            **flags,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.link is not None:
            data["link"] = self.link
        if self.links:
            data["links"] = [{"name": v.name, "url": v.url} for v in self.links]
        if self.image is not None:
            data["image"] = self.image
        if self.categories:
            data["categories"] = list(self.categories)
        if self.id is not None:
            data["id"] = self.id
        if self.say is not None:
            data["say"] = self.say
        for f in FLAG_NAMES:
            value = getattr(self, f)
            if value is not None:
                data[f] = value
        return data

    @property
    def is_custom_named(self) -> bool:
        return self.name.startswith(CUSTOM_PREFIX)


def make_custom_entry(title: str, link: str) -> Entry:
    """Return the entry stored for a user-registered app."""
    return Entry(
        name=f"{CUSTOM_PREFIX} {title}",
        link=link,
        image=CUSTOM_ICON,
        categories=("all",),
        custom=False,
    )


# -------- annotation --------


def annotate(entry: Entry) -> Entry:
    """Derive warning flags from the entry's link and categories.

    Rules run in order and the first match wins.
    """
    link = entry.link or ""
    if "local" in entry.categories:
        return replace(entry, local=True)
    if ("now.gg" in link or "nowgg.me" in link) and entry.partial is None:
        return replace(entry, partial=True, say=entry.say or NOWGG_PARTIAL_SAY)
    if "nowgg.nl" in link and entry.error is None:
        return replace(entry, error=True, say=entry.say or NOWGG_DOWN_SAY)
    return entry


@dataclass(frozen=True)
class Status:
    color: str
    message: str


_STATUS_RULES = (
    ("error", "red", "This app is currently not working."),
    ("load", "yellow", "This app may experience excessive loading times."),
    (
        "partial",
        "yellow",
        "This app is currently experiencing some issues, it may not work for you."
        " (Dynamic doesn't work in about:blank)",
    ),
)


def status_for(entry: Entry) -> Status | None:
    """Return the label styling for *entry*; ``error`` beats ``load`` beats ``partial``."""
    for flag, color, default in _STATUS_RULES:
        if getattr(entry, flag):
            return Status(color, entry.say or default)
    return None


def with_status_message(entry: Entry) -> Entry:
    status = status_for(entry)
    if status is None or entry.say:
        return entry
    return replace(entry, say=status.message)


# -------- ordering and identity --------


def use_user_collation() -> Optional[str]:
    """Switch ``LC_COLLATE`` to the user's locale; returns the locale name.

    Python starts in the "C" locale, where :func:`locale.strxfrm` compares
    raw code points.  Returns ``None`` when the environment names a locale
    the system does not have.
    """
    try:
        return locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        logger.warning("collation_locale_unavailable: %s", exc)
        return None


def _collation_key(name: str) -> tuple[str, str]:
    folded = unicodedata.normalize("NFKD", name.casefold())
    base = "".join(c for c in folded if not unicodedata.combining(c))
    # accents only break ties, so "Éclair" sorts among the e's in any locale
    return (locale.strxfrm(base), locale.strxfrm(name.casefold()))


def _sort_key(entry: Entry) -> tuple[int, tuple[str, str]]:
    if entry.is_custom_named:
        return (0, ("", ""))
    return (1, _collation_key(entry.name))


def sort_catalog(entries: Iterable[Entry]) -> list[Entry]:
    """Custom-prefixed names first (stable), the rest by locale-aware name."""
    return sorted(entries, key=_sort_key)


def entry_key(entry: Entry) -> str:
    """Stable pin identity for *entry*; never purely numeric."""
    if entry.id:
        return "id-" + urllib.parse.quote(entry.id, safe="")
    digest = hashlib.sha1(
        f"{entry.name}\0{entry.link or ''}".encode("utf-8"), usedforsecurity=False
    ).hexdigest()
    return "h" + digest[:12]


# -------- namespaces --------

APP_CATEGORIES = (
    ("android", "Android Emulator"),
    ("social", "Social"),
    ("stream", "Streaming"),
    ("message", "Messaging"),
    ("media", "TV & Movies"),
    ("game", "Game Sites"),
    ("cloud", "Cloud Gaming"),
    ("tool", "Tools"),
    ("AI", "AI"),
    ("emu", "Emulator"),
    ("mail", "Mail"),
)

TOOL_CATEGORIES = (
    ("ai", "AI"),
    ("ad", "AI Detectors"),
    ("pc", "Plagiarism Checker"),
    ("ts", "YouTube Transcript"),
    ("cs", "Cheats"),
    ("ep", "Edpuzzle"),
    ("bl", "Blooket"),
    ("kh", "Kahoot"),
)


@dataclass(frozen=True)
class NamespaceConfig:
    tag: str
    prefix: str
    catalog_file: str
    categories: tuple[tuple[str, str], ...] = field(default=())

    @property
    def pinned_key(self) -> str:
        return f"{self.prefix}pinned"

    @property
    def custom_key(self) -> str:
        return f"{self.prefix}custom"


NAMESPACES: dict[str, NamespaceConfig] = {
    "apps": NamespaceConfig("apps", "A", "a.min.json", APP_CATEGORIES),
    "games": NamespaceConfig("games", "G", "g.min.json"),
    "tools": NamespaceConfig("tools", "T", "t.min.json", TOOL_CATEGORIES),
}


@dataclass(frozen=True)
class ShelfContext:
    """Immutable per-view settings passed to the builder and dispatcher."""

    namespace: NamespaceConfig
    catalog_base: str
    handoff_route: str = "ta"
    top_level: bool = False
    custom_entries: bool = True

    def resolve(self, ref: str) -> str:
        return urllib.parse.urljoin(self.catalog_base, ref)

    @property
    def catalog_url(self) -> str:
        return self.resolve(f"assets/json/{self.namespace.catalog_file}")

    @property
    def handoff_url(self) -> str:
        return self.resolve(self.handoff_route)
