# SPDX-License-Identifier: Apache-2.0
"""Download catalog JSON and turn it into :class:`Entry` objects."""

from __future__ import annotations

import hashlib
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path, PurePosixPath
from typing import Optional

from debug_scaffold import sanitize_log_extra, sanitize_url
from shelf_models import Entry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class CatalogFetchError(RuntimeError):
    """The catalog could not be downloaded or was not a JSON array."""


def parse_catalog(payload: bytes | str, source: str = "") -> list[Entry]:
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise CatalogFetchError(f"catalog at {source or '?'} is not JSON: {exc}") from exc
    if not isinstance(data, list):
        raise CatalogFetchError(f"catalog at {source or '?'} is not a JSON array")

    entries: list[Entry] = []
    for pos, raw in enumerate(data):
        try:
            entries.append(Entry.from_dict(raw))
        except ValueError as exc:
            logger.warning(
                "catalog_entry_skipped",
                extra=sanitize_log_extra({"position": pos, "error": str(exc)}),
            )
    return entries


def fetch_catalog(url: str, timeout: float = DEFAULT_TIMEOUT) -> list[Entry]:
    """GET *url* (http, https or file) and parse the catalog array."""
    try:
        with urllib.request.urlopen(url, timeout=timeout) as resp:  # nosec B310 - user-configured catalog
            payload = resp.read()
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise CatalogFetchError(f"failed to fetch {sanitize_url(url)}: {exc}") from exc
    return parse_catalog(payload, sanitize_url(url))


def fetch_image(url: str, cache_dir: Path, timeout: float = 5.0) -> Optional[Path]:
    """Download an entry image into *cache_dir*; ``None`` when unavailable."""
    name = PurePosixPath(urllib.parse.urlsplit(url).path).name
    if not name:
        return None
    digest = hashlib.sha1(url.encode("utf-8"), usedforsecurity=False).hexdigest()[:8]
    out = cache_dir / f"{digest}_{name}"
    if out.exists():
        return out
    try:
        with urllib.request.urlopen(url, timeout=timeout) as r, open(out, "wb") as f:  # nosec B310
            f.write(r.read())
        return out
    except (urllib.error.URLError, OSError, ValueError):
        logger.debug("image_fetch_failed", extra={"url": sanitize_url(url)})
        return None
