from __future__ import annotations

import locale

import pytest

from shelf_models import (
    NAMESPACES,
    Entry,
    LinkVariant,
    ShelfContext,
    entry_key,
    make_custom_entry,
    sort_catalog,
    use_user_collation,
)

pytestmark = pytest.mark.unit


def names(entries):
    return [e.name for e in entries]


def test_custom_prefixed_entry_sorts_first():
    catalog = [
        Entry(name="Zeta", link="https://z.example"),
        Entry(name="[Custom] Alpha", link="https://a.example"),
    ]
    assert names(sort_catalog(catalog)) == ["[Custom] Alpha", "Zeta"]  # nosec B101


def test_custom_entries_keep_relative_order_and_rest_is_case_insensitive():
    catalog = [
        Entry(name="beta"),
        Entry(name="[Custom] Zed"),
        Entry(name="Alpha"),
        Entry(name="[Custom] Ace"),
        Entry(name="charlie"),
    ]
    assert names(sort_catalog(catalog)) == [  # nosec B101
        "[Custom] Zed",
        "[Custom] Ace",
        "Alpha",
        "beta",
        "charlie",
    ]


def test_from_dict_parses_links_and_flags():
    entry = Entry.from_dict(
        {
            "name": "Mirror",
            "links": [{"name": "A", "url": "https://a"}, {"name": "B", "url": "https://b"}],
            "categories": ["social", 3],
            "blank": "true",
            "say": "",
        }
    )
    assert entry.links == (LinkVariant("A", "https://a"), LinkVariant("B", "https://b"))  # nosec B101
    assert entry.categories == ("social",)  # nosec B101
    assert entry.blank == "true"  # nosec B101
    assert entry.say is None  # nosec B101
    assert entry.local is None  # nosec B101


@pytest.mark.parametrize("raw", [None, [], "x", {"link": "https://a"}])
def test_from_dict_rejects_nameless(raw):
    with pytest.raises(ValueError):
        Entry.from_dict(raw)


def test_to_dict_round_trips_custom_entry():
    entry = make_custom_entry("Docs", "https://docs.example")
    assert entry.name == "[Custom] Docs"  # nosec B101
    assert Entry.from_dict(entry.to_dict()) == entry  # nosec B101


def test_entry_key_is_stable_and_never_numeric():
    a = Entry(name="App", link="https://a")
    assert entry_key(a) == entry_key(Entry(name="App", link="https://a", categories=("x",)))  # nosec B101
    assert entry_key(a) != entry_key(Entry(name="App", link="https://b"))  # nosec B101
    assert entry_key(a).startswith("h")  # nosec B101
    assert not entry_key(a).isdigit()  # nosec B101
    assert entry_key(Entry(name="App", id="42")) == "id-42"  # nosec B101
    assert entry_key(Entry(name="App", id="a,b")) == "id-a%2Cb"  # nosec B101


def test_namespace_storage_keys():
    assert NAMESPACES["apps"].pinned_key == "Apinned"  # nosec B101
    assert NAMESPACES["games"].custom_key == "Gcustom"  # nosec B101
    assert NAMESPACES["tools"].catalog_file == "t.min.json"  # nosec B101


def test_context_urls():
    ctx = ShelfContext(namespace=NAMESPACES["games"], catalog_base="http://host:8080/")
    assert ctx.catalog_url == "http://host:8080/assets/json/g.min.json"  # nosec B101
    assert ctx.handoff_url == "http://host:8080/ta"  # nosec B101
    assert ctx.resolve("/assets/media/icons/x.webp") == "http://host:8080/assets/media/icons/x.webp"  # nosec B101


def test_accented_names_sort_with_their_base_letter():
    catalog = [
        Entry(name="Zeta"),
        Entry(name="Éclair"),
        Entry(name="apple"),
        Entry(name="Über"),
        Entry(name="banana"),
    ]
    assert names(sort_catalog(catalog)) == ["apple", "banana", "Éclair", "Über", "Zeta"]  # nosec B101


def test_accent_only_breaks_ties():
    catalog = [Entry(name="résumé"), Entry(name="Resume"), Entry(name="rust")]
    ordered = names(sort_catalog(catalog))
    assert ordered[-1] == "rust"  # nosec B101
    assert set(ordered[:2]) == {"résumé", "Resume"}  # nosec B101


def test_unknown_user_locale_keeps_current_collation(monkeypatch):
    def refuse(category, value=None):
        raise locale.Error("unsupported locale setting")

    monkeypatch.setattr(locale, "setlocale", refuse)
    assert use_user_collation() is None  # nosec B101


def test_tool_categories_include_quiz_and_cheat_tools():
    values = [v for v, _ in NAMESPACES["tools"].categories]
    assert values[:4] == ["ai", "ad", "pc", "ts"]  # nosec B101
    assert {"cs", "ep", "bl", "kh"} <= set(values)  # nosec B101
