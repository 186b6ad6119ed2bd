from __future__ import annotations

import json

import pytest

from catalog_source import CatalogFetchError, fetch_catalog, fetch_image, parse_catalog

pytestmark = pytest.mark.unit


def test_fetch_catalog_from_file_url(tmp_path):
    path = tmp_path / "a.min.json"
    path.write_text(
        json.dumps(
            [
                {"name": "Zeta", "link": "https://z.example", "categories": ["social"]},
                {"name": "Mirrors", "links": [{"name": "A", "url": "https://a"}]},
            ]
        )
    )
    entries = fetch_catalog(path.as_uri())
    assert [e.name for e in entries] == ["Zeta", "Mirrors"]  # nosec B101
    assert entries[0].categories == ("social",)  # nosec B101
    assert entries[1].links[0].url == "https://a"  # nosec B101


def test_missing_file_raises(tmp_path):
    with pytest.raises(CatalogFetchError):
        fetch_catalog((tmp_path / "nope.json").as_uri())


@pytest.mark.parametrize("payload", ["<html>", '{"name": "x"}', "42"])
def test_non_array_payload_raises(payload):
    with pytest.raises(CatalogFetchError):
        parse_catalog(payload, "http://shelf.test/assets/json/a.min.json")


def test_malformed_items_are_skipped():
    payload = json.dumps([{"name": "Ok"}, {"link": "https://nameless"}, "junk", {"name": "Also"}])
    assert [e.name for e in parse_catalog(payload)] == ["Ok", "Also"]  # nosec B101


def test_fetch_image_caches_by_url(tmp_path):
    src = tmp_path / "icon.webp"
    src.write_bytes(b"RIFF")
    cache = tmp_path / "cache"
    cache.mkdir()
    out = fetch_image(src.as_uri(), cache)
    assert out is not None and out.read_bytes() == b"RIFF"  # nosec B101
    assert out.name.endswith("_icon.webp")  # nosec B101
    src.unlink()
    assert fetch_image(src.as_uri(), cache) == out  # nosec B101


def test_fetch_image_without_filename(tmp_path):
    assert fetch_image("http://shelf.test/", tmp_path) is None  # nosec B101
