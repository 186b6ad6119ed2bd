# SPDX-License-Identifier: Apache-2.0
"""Per-user configuration and resolution of the active :class:`ShelfContext`."""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional, cast

from shelf_models import NAMESPACES, ShelfContext

APP_NAME = "AppShelf"

Page = Literal["apps", "games"]
Mode = Literal["apps", "tools"]

DEFAULT_CATALOG_BASE = "http://localhost:8080/"


def app_dirs():
    if sys.platform.startswith("win"):
        base = Path(os.getenv("APPDATA", str(Path.home() / "AppData/Roaming")))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME", str(Path.home() / ".config")))
    cfg = base / APP_NAME
    icons = cfg / "icons"
    cfg.mkdir(parents=True, exist_ok=True)
    icons.mkdir(parents=True, exist_ok=True)
    return cfg, icons


CFG_DIR, ICON_DIR = app_dirs()
CFG_PATH = CFG_DIR / "config.json"
STORAGE_PATH = CFG_DIR / "storage.json"


def _route(value: object) -> Optional[str]:
    if isinstance(value, str) and "{url}" in value:
        return value
    return None


@dataclass
class ShelfConfig:
    title: str = "AppShelf"
    page: Page = "apps"
    mode: Mode = "apps"
    catalog_base_url: str = DEFAULT_CATALOG_BASE
    handoff_route: str = "ta"
    top_level: bool = False
    custom_entries: bool = True
    columns: int = 6
    fetch_images: bool = False
    fetch_timeout: float = 10.0
    go_route: Optional[str] = None
    now_route: Optional[str] = None
    dy_route: Optional[str] = None

    @staticmethod
    def load() -> "ShelfConfig":
        if not CFG_PATH.exists():
            cfg = ShelfConfig()
            cfg.save()
            return cfg
        try:
            data = json.loads(CFG_PATH.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return ShelfConfig()
        if not isinstance(data, dict):
            return ShelfConfig()

        d = ShelfConfig()
        title = data.get("title")
        page = data.get("page")
        mode = data.get("mode")
        base = data.get("catalog_base_url")
        handoff = data.get("handoff_route")
        columns = data.get("columns")
        timeout = data.get("fetch_timeout")
        return ShelfConfig(
            title=title if isinstance(title, str) and title else d.title,
            page=cast(Page, page) if page in {"apps", "games"} else d.page,
            mode=cast(Mode, mode) if mode in {"apps", "tools"} else d.mode,
            catalog_base_url=base if isinstance(base, str) and base else d.catalog_base_url,
            handoff_route=handoff if isinstance(handoff, str) and handoff else d.handoff_route,
            top_level=data.get("top_level") is True,
            custom_entries=data.get("custom_entries", True) is not False,
            columns=(
                columns
                if isinstance(columns, int) and not isinstance(columns, bool) and columns > 0
                else d.columns
            ),
            fetch_images=data.get("fetch_images") is True,
            fetch_timeout=(
                float(timeout)
                if isinstance(timeout, (int, float)) and timeout > 0
                else d.fetch_timeout
            ),
            go_route=_route(data.get("go_route")),
            now_route=_route(data.get("now_route")),
            dy_route=_route(data.get("dy_route")),
        )

    def save(self) -> None:
        data = {
            "title": self.title,
            "page": self.page,
            "mode": self.mode,
            "catalog_base_url": self.catalog_base_url,
            "handoff_route": self.handoff_route,
            "top_level": self.top_level,
            "custom_entries": self.custom_entries,
            "columns": self.columns,
            "fetch_images": self.fetch_images,
            "fetch_timeout": self.fetch_timeout,
        }
        for key in ("go_route", "now_route", "dy_route"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        CFG_PATH.write_text(json.dumps(data, indent=2), encoding="utf-8")


def namespace_tag(page: Page, mode: Mode) -> str:
    """The games page has one catalog; the apps page toggles apps/tools."""
    if page == "games":
        return "games"
    return mode


def resolve_context(cfg: ShelfConfig, mode: Mode | None = None) -> ShelfContext:
    base = cfg.catalog_base_url
    if not base.endswith("/"):
        base += "/"
    tag = namespace_tag(cfg.page, mode or cfg.mode)
    return ShelfContext(
        namespace=NAMESPACES[tag],
        catalog_base=base,
        handoff_route=cfg.handoff_route,
        top_level=cfg.top_level,
        custom_entries=cfg.custom_entries,
    )
