"""
clientlib_atlas/reports/tables.py — Tabular views of the inventory.

Builds the pandas DataFrames behind the clientlibs table, the usages panel
and the summary strip. Filtering and sorting happen here so that the
dashboard, the CLI and the API all show the same rows in the same order.
"""

import logging
from typing import Any, Mapping, Sequence

import pandas as pd

from clientlib_atlas.inventory.models import Clientlib, Inventory, Usage

logger = logging.getLogger(__name__)

SORT_RELATIONS = "relations"
SORT_SIZE = "size"

CLIENTLIB_COLUMNS = [
    "path",
    "name",
    "categories",
    "dependencies",
    "embed",
    "relations",
    "total_kb",
    "uses_jquery",
    "jquery_version",
    "libraries",
]

USAGE_COLUMNS = ["category", "usage_count", "usages"]


def _matches(lib: Clientlib, needle: str) -> bool:
    return (
        needle in lib.name.lower()
        or needle in lib.path.lower()
        or any(needle in cat.lower() for cat in lib.categories)
    )


def clientlib_table(
    clientlibs: Sequence[Clientlib],
    filter_text: str = "",
    sort_by: str = SORT_RELATIONS,
    descending: bool = True,
) -> pd.DataFrame:
    """
    One row per clientlib, filtered and sorted for display.

    Args:
        clientlibs:  Clientlibs of the inventory.
        filter_text: Case-insensitive substring matched against name, path and
                     every category. Blank → no filtering.
        sort_by:     "relations" (dependencies + embeds) or "size" (total KB).
        descending:  Sort order; ties keep inventory order.

    Returns:
        DataFrame with CLIENTLIB_COLUMNS and a fresh RangeIndex. List-valued
        columns hold comma-joined strings.
    """
    if sort_by not in (SORT_RELATIONS, SORT_SIZE):
        raise ValueError(f"sort_by must be '{SORT_RELATIONS}' or '{SORT_SIZE}', got {sort_by!r}")

    needle = (filter_text or "").strip().lower()
    rows = [
        {
            "path": lib.path,
            "name": lib.name,
            "categories": ", ".join(lib.categories),
            "dependencies": ", ".join(lib.dependencies),
            "embed": ", ".join(lib.embed),
            "relations": lib.relation_count,
            "total_kb": lib.total_kb,
            "uses_jquery": lib.uses_jquery,
            "jquery_version": lib.jquery_version or "",
            "libraries": ", ".join(f"{k} {v}".strip() for k, v in lib.libraries.items()),
        }
        for lib in clientlibs
        if not needle or _matches(lib, needle)
    ]
    df = pd.DataFrame(rows, columns=CLIENTLIB_COLUMNS)
    if df.empty:
        return df

    column = "relations" if sort_by == SORT_RELATIONS else "total_kb"
    df = df.sort_values(column, ascending=not descending, kind="stable")
    return df.reset_index(drop=True)


def usage_table(
    usages: Mapping[str, Sequence[Usage]],
    search: str = "",
) -> pd.DataFrame:
    """
    One row per category of the usages map, most used first.

    Categories with an empty usage list are kept (usage_count == 0): they are
    exactly the candidates for removal.
    """
    needle = (search or "").strip().lower()
    rows = [
        {
            "category": category,
            "usage_count": len(entries),
            "usages": [{"type": u.type, "path": u.path} for u in entries],
        }
        for category, entries in usages.items()
        if not needle or needle in category.lower()
    ]
    df = pd.DataFrame(rows, columns=USAGE_COLUMNS)
    if df.empty:
        return df
    return df.sort_values("usage_count", ascending=False, kind="stable").reset_index(drop=True)


def usage_stats(usages: Mapping[str, Sequence[Usage]]) -> dict[str, int]:
    """Header counts of the usages panel."""
    return {
        "categories": len(usages),
        "total_usages": sum(len(entries) for entries in usages.values()),
        "unused_categories": sum(1 for entries in usages.values() if not entries),
    }


def summary_counts(inventory: Inventory) -> dict[str, Any]:
    """
    Summary strip values.

    The servlet's own summary wins; missing keys are computed from the
    inventory so that a partial payload still yields four numbers.
    """
    categories = {cat for lib in inventory.clientlibs for cat in lib.categories}
    computed = {
        "totalClientlibs": len(inventory.clientlibs),
        "totalCategories": len(categories),
        "totalRelations": len(inventory.relations),
        "alertsCount": len(inventory.alerts),
    }
    counts = dict(computed)
    for key, value in inventory.summary.items():
        if value is not None:
            counts[key] = value

    missing = [k for k in computed if k not in inventory.summary]
    if missing:
        logger.debug("Summary keys computed locally: %s", missing)
    return counts
