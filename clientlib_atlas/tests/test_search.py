"""
clientlib_atlas/tests/test_search.py — Tests for clientlib search and category suggestions.
"""

from clientlib_atlas.analysis.search import (
    path_priority,
    rank_category_suggestions,
    search_clientlibs,
    split_suggestions,
)
from clientlib_atlas.graph.category_index import build_index
from clientlib_atlas.inventory.models import parse_inventory


# ── search_clientlibs ─────────────────────────────────────────────────────────

def test_search_matches_path_or_category_case_insensitive(sample_inventory):
    found = search_clientlibs(sample_inventory.clientlibs, "BASE")
    assert [lib.path for lib in found] == ["/apps/site/clientlibs/base"]


def test_search_matches_category_only(sample_inventory):
    found = search_clientlibs(sample_inventory.clientlibs, "legacy.all")
    assert [lib.name for lib in found] == ["clientlibs"]


def test_search_respects_limit(sample_inventory):
    assert len(search_clientlibs(sample_inventory.clientlibs, "site")) == 5
    assert len(search_clientlibs(sample_inventory.clientlibs, "site", limit=2)) == 2


def test_search_blank_term_returns_nothing(sample_inventory):
    assert search_clientlibs(sample_inventory.clientlibs, "") == []
    assert search_clientlibs(sample_inventory.clientlibs, "   ") == []


# ── Ranking ───────────────────────────────────────────────────────────────────

def test_path_priority():
    assert path_priority("/apps/x") < path_priority("/etc/x") < path_priority("/libs/x")
    assert path_priority("/content/x") > path_priority("/libs/x")


def test_ranking_used_then_path_then_alpha(sample_inventory):
    index = build_index(sample_inventory)
    ranked = rank_category_suggestions(index, sample_inventory.clientlibs)
    assert ranked == ["site.base", "site.page", "site.vendor", "legacy.all", "site.widgets"]


def test_ranking_filters_on_term(sample_inventory):
    index = build_index(sample_inventory)
    assert rank_category_suggestions(index, sample_inventory.clientlibs, "WID") == ["site.widgets"]


# ── Split ─────────────────────────────────────────────────────────────────────

def test_split_small_inventory(sample_inventory):
    index = build_index(sample_inventory)
    ranked = rank_category_suggestions(index, sample_inventory.clientlibs)
    groups = split_suggestions(ranked, index)
    assert groups.used == ("site.base", "site.page")
    assert groups.other == ("site.vendor", "legacy.all", "site.widgets")
    assert groups.used_hidden == 0
    assert groups.other_hidden == 0


def test_split_caps_used_and_leaves_no_room_for_others():
    used = [f"used.{i:02d}" for i in range(12)]
    unused = ["other.a", "other.b", "other.c"]
    inv = parse_inventory({
        "clientlibs": [{"path": f"/apps/{c}", "categories": [c]} for c in used + unused],
        "usages": {c: [{"type": "HTL", "path": "/apps/p.html"}] for c in used},
    })
    index = build_index(inv)
    groups = split_suggestions(rank_category_suggestions(index, inv.clientlibs), index)
    assert len(groups.used) == 10
    assert groups.used_hidden == 2
    assert groups.other == ()
    assert groups.other_hidden == 3


def test_split_others_fill_remaining_room():
    used = [f"used.{i}" for i in range(7)]
    unused = [f"other.{i}" for i in range(6)]
    inv = parse_inventory({
        "clientlibs": [{"path": f"/apps/{c}", "categories": [c]} for c in used + unused],
        "usages": {c: [{"type": "HTL", "path": "/apps/p.html"}] for c in used},
    })
    index = build_index(inv)
    groups = split_suggestions(rank_category_suggestions(index, inv.clientlibs), index)
    assert len(groups.used) == 7
    assert len(groups.other) == 3
    assert groups.other_hidden == 3
