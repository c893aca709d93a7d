"""
clientlib_atlas/analysis/search.py — Clientlib search and category suggestions.

Feeds the two search boxes of the dashboard: picking a clientlib for impact
analysis, and picking a starting category for the dependency graph.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from clientlib_atlas.config import DEFAULT_CONFIG, AtlasConfig
from clientlib_atlas.graph.category_index import CategoryIndex
from clientlib_atlas.inventory.models import Clientlib

logger = logging.getLogger(__name__)

# Overlay precedence: project code first, then legacy designs, then product code.
_PATH_PRIORITY = (("/apps", 0), ("/etc", 1), ("/libs", 2))


def path_priority(path: str) -> int:
    for prefix, rank in _PATH_PRIORITY:
        if path.startswith(prefix):
            return rank
    return len(_PATH_PRIORITY)


def search_clientlibs(
    clientlibs: Iterable[Clientlib],
    term: str,
    limit: Optional[int] = None,
    config: AtlasConfig = DEFAULT_CONFIG,
) -> list[Clientlib]:
    """
    Case-insensitive substring match on the path or any category.

    An empty term returns nothing (the suggestion box stays closed).
    """
    term = (term or "").strip().lower()
    if not term:
        return []
    limit = config.search_result_limit if limit is None else limit

    matches: list[Clientlib] = []
    for lib in clientlibs:
        if term in lib.path.lower() or any(term in cat.lower() for cat in lib.categories):
            matches.append(lib)
            if len(matches) >= limit:
                break
    return matches


def rank_category_suggestions(
    index: CategoryIndex,
    clientlibs: Sequence[Clientlib],
    term: str = "",
) -> list[str]:
    """
    Categories matching `term`, best candidates first.

    Order:
        1. used categories before unused ones;
        2. path priority of the first clientlib publishing the category
           (/apps < /etc < /libs < anything else), when both have one;
        3. alphabetical.
    """
    term = (term or "").strip().lower()
    categories = index.all_categories()
    if term:
        categories = [c for c in categories if term in c.lower()]

    first_owner: dict[str, str] = {}
    for lib in clientlibs:
        for cat in lib.categories:
            first_owner.setdefault(cat, lib.path)

    def sort_key(category: str) -> tuple:
        owner = first_owner.get(category)
        rank = path_priority(owner) if owner is not None else len(_PATH_PRIORITY)
        return (0 if index.is_used(category) else 1, rank, category)

    return sorted(categories, key=sort_key)


@dataclass(frozen=True)
class SuggestionGroups:
    """Suggestion box content: shown entries plus how many were left out."""

    used: tuple[str, ...]
    other: tuple[str, ...]
    used_hidden: int
    other_hidden: int


def split_suggestions(
    ranked: Sequence[str],
    index: CategoryIndex,
    config: AtlasConfig = DEFAULT_CONFIG,
) -> SuggestionGroups:
    """
    Split ranked suggestions into the used and other sections.

    The other section only fills the room the used section leaves, so the
    box never shows more than suggestion_used_limit entries.
    """
    used = [c for c in ranked if index.is_used(c)]
    other = [c for c in ranked if not index.is_used(c)]

    used_shown = used[: config.suggestion_used_limit]
    other_room = max(0, min(config.suggestion_other_limit, config.suggestion_used_limit - len(used)))
    other_shown = other[:other_room]

    return SuggestionGroups(
        used=tuple(used_shown),
        other=tuple(other_shown),
        used_hidden=len(used) - len(used_shown),
        other_hidden=len(other) - len(other_shown),
    )
