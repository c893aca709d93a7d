"""
clientlib_atlas/graph/category_index.py — Category lookup structures.

Relations and usages are expressed between categories, but the people reading
the dashboard think in clientlibs. The index resolves one into the other:

    category → clientlibs publishing it   (many clientlibs may share a category)
    category → usage count                (from the usage map)

Categories referenced by relations or usages but published by no clientlib
(dangling references) resolve to an empty tuple rather than raising.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from clientlib_atlas.inventory.models import Clientlib, Inventory, Usage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryIndex:
    """
    Read-only lookups derived from one Inventory.

    Fields:
        category_to_clientlibs: Category → clientlibs, in inventory order.
        used_categories:        Categories with at least one usage entry.
        usage_counts:           Category → number of usage entries (every
                                usage map key, including zero counts).
        usages:                 The usage map itself, for usages_for().
    """

    category_to_clientlibs: dict[str, tuple[Clientlib, ...]] = field(default_factory=dict, compare=False)
    used_categories: frozenset[str] = frozenset()
    usage_counts: dict[str, int] = field(default_factory=dict, compare=False)
    usages: Mapping[str, tuple[Usage, ...]] = field(default_factory=dict, compare=False)

    def clientlibs_for(self, category: str) -> tuple[Clientlib, ...]:
        """Clientlibs publishing this category; () for a dangling category."""
        return self.category_to_clientlibs.get(category, ())

    def usages_for(self, category: str) -> tuple[Usage, ...]:
        return self.usages.get(category, ())

    def is_used(self, category: str) -> bool:
        return category in self.used_categories

    def usage_count(self, category: str) -> int:
        return self.usage_counts.get(category, 0)

    def all_categories(self) -> list[str]:
        """Every category published by at least one clientlib, sorted."""
        return sorted(
            cat for cat, libs in self.category_to_clientlibs.items() if libs
        )


def build_index(inventory: Inventory) -> CategoryIndex:
    """
    Build the category index for an inventory.

    Algorithm (O(total categories across clientlibs + usage map size)):
        1. For each clientlib, for each of its categories, append the
           clientlib to that category's list (clientlib order preserved).
        2. Make sure every category that appears only in relations or usages
           maps to an empty tuple instead of being absent.
        3. used_categories = usage map keys with a non-empty usage list.

    Args:
        inventory: Parsed Inventory.

    Returns:
        CategoryIndex. Pure function of the inventory.
    """
    buckets: dict[str, list[Clientlib]] = {}
    for lib in inventory.clientlibs:
        for category in lib.categories:
            buckets.setdefault(category, []).append(lib)

    for rel in inventory.relations:
        buckets.setdefault(rel.source, [])
        buckets.setdefault(rel.target, [])
    for category in inventory.usages:
        buckets.setdefault(category, [])

    category_to_clientlibs = {cat: tuple(libs) for cat, libs in buckets.items()}
    usage_counts = {cat: len(entries) for cat, entries in inventory.usages.items()}
    used = frozenset(cat for cat, count in usage_counts.items() if count > 0)

    dangling = sum(1 for libs in category_to_clientlibs.values() if not libs)
    logger.info(
        "Category index built: %d categories (%d dangling), %d used by templates/dialogs.",
        len(category_to_clientlibs),
        dangling,
        len(used),
    )

    return CategoryIndex(
        category_to_clientlibs=category_to_clientlibs,
        used_categories=used,
        usage_counts=usage_counts,
        usages=inventory.usages,
    )
