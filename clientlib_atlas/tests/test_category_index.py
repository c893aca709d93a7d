"""
clientlib_atlas/tests/test_category_index.py — Tests for the category index.

Tests verify:
- Categories map to the clientlibs publishing them, in inventory order.
- A category is used only when its usage list is non-empty.
- Categories seen only in relations or usages resolve to no clientlib.
- Unknown categories never raise.
"""

from clientlib_atlas.graph.category_index import build_index
from clientlib_atlas.inventory.models import Inventory, parse_inventory


def test_category_to_clientlibs(sample_inventory):
    index = build_index(sample_inventory)
    libs = index.clientlibs_for("site.base")
    assert [lib.path for lib in libs] == ["/apps/site/clientlibs/base"]


def test_shared_category_keeps_inventory_order():
    inv = parse_inventory({
        "clientlibs": [
            {"path": "/apps/b", "categories": ["shared"]},
            {"path": "/apps/a", "categories": ["shared", "only.a"]},
        ]
    })
    index = build_index(inv)
    assert [lib.path for lib in index.clientlibs_for("shared")] == ["/apps/b", "/apps/a"]
    assert [lib.path for lib in index.clientlibs_for("only.a")] == ["/apps/a"]


def test_used_categories(sample_inventory):
    index = build_index(sample_inventory)
    assert index.used_categories == frozenset({"site.page", "site.base"})
    assert index.is_used("site.page")
    assert not index.is_used("legacy.all")      # present with an empty list
    assert not index.is_used("site.vendor")     # absent from usages


def test_usage_counts(sample_inventory):
    index = build_index(sample_inventory)
    assert index.usage_count("site.page") == 2
    assert index.usage_count("legacy.all") == 0
    assert index.usage_count("site.vendor") == 0


def test_unknown_category_lookups_are_empty(sample_inventory):
    index = build_index(sample_inventory)
    assert index.clientlibs_for("nope") == ()
    assert index.usages_for("nope") == ()
    assert index.is_used("nope") is False


def test_dangling_relation_category_resolves_to_nothing():
    inv = parse_inventory({
        "clientlibs": [{"path": "/apps/a", "categories": ["a"]}],
        "relations": [{"from": "a", "to": "ghost", "type": "depends"}],
    })
    index = build_index(inv)
    assert "ghost" in index.category_to_clientlibs
    assert index.clientlibs_for("ghost") == ()


def test_all_categories_lists_published_only(sample_inventory):
    index = build_index(sample_inventory)
    assert index.all_categories() == [
        "legacy.all", "site.base", "site.page", "site.vendor", "site.widgets",
    ]


def test_empty_inventory():
    index = build_index(Inventory())
    assert index.used_categories == frozenset()
    assert index.all_categories() == []
