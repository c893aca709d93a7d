"""
clientlib_atlas/pipeline.py — One inventory, every derived structure.

An AtlasSession bundles an Inventory with the Category Index and the Relation
Graph built from it, and exposes the questions the CLI, the API and the
dashboard ask. Sessions are immutable: reloading the inventory means building
a new session and swapping it in.

Usage:
    from clientlib_atlas.pipeline import load_session
    session = load_session(inventory_path="snapshots/inventory.json")
    report = session.analyze("/apps/site/clientlibs/base")
    print(report.impact.total)
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from clientlib_atlas.analysis.impact import (
    CategoryImpact,
    ClientlibImpactReport,
    ImpactResult,
    analyze_clientlib,
    compute_dependencies,
    compute_impact,
)
from clientlib_atlas.analysis.search import (
    SuggestionGroups,
    rank_category_suggestions,
    search_clientlibs,
    split_suggestions,
)
from clientlib_atlas.config import DEFAULT_CONFIG, AtlasConfig
from clientlib_atlas.graph.category_index import CategoryIndex, build_index
from clientlib_atlas.graph.relation_graph import RelationGraph, build_relation_graph
from clientlib_atlas.graph.view import GraphView, LayoutMode, ViewSelection, build_view
from clientlib_atlas.inventory.client import fetch_inventory
from clientlib_atlas.inventory.loader import load_inventory_file
from clientlib_atlas.inventory.models import Clientlib, Inventory, parse_inventory
from clientlib_atlas.reports.recommendations import Recommendation, build_recommendations

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AtlasSession:
    """
    Inventory plus its derived, read-only structures.

    Build with AtlasSession.from_inventory(); never mutate.
    """

    inventory: Inventory
    index: CategoryIndex
    graph: RelationGraph
    config: AtlasConfig = DEFAULT_CONFIG

    @classmethod
    def from_inventory(
        cls,
        inventory: Inventory,
        config: AtlasConfig = DEFAULT_CONFIG,
    ) -> "AtlasSession":
        index = build_index(inventory)
        graph = build_relation_graph(inventory.relations)
        logger.info(
            "Session ready: %d clientlibs, %d categories, %d relations, %d used.",
            len(inventory.clientlibs),
            len(index.category_to_clientlibs),
            len(graph.relations),
            len(index.used_categories),
        )
        return cls(inventory=inventory, index=index, graph=graph, config=config)

    # ── Lookups ──────────────────────────────────────────────────────────────

    def find_clientlib(self, path: str) -> Optional[Clientlib]:
        return self.inventory.find_clientlib(path)

    def search(self, term: str, limit: Optional[int] = None) -> list[Clientlib]:
        return search_clientlibs(self.inventory.clientlibs, term, limit=limit, config=self.config)

    def suggest_categories(self, term: str = "") -> SuggestionGroups:
        ranked = rank_category_suggestions(self.index, self.inventory.clientlibs, term)
        return split_suggestions(ranked, self.index, config=self.config)

    # ── Impact ───────────────────────────────────────────────────────────────

    def impact(self, categories: Iterable[str]) -> ImpactResult:
        return compute_impact(categories, self.graph, self.index)

    def dependencies(self, categories: Iterable[str]) -> tuple[CategoryImpact, ...]:
        return compute_dependencies(categories, self.graph, self.index)

    def analyze(self, path: str) -> Optional[ClientlibImpactReport]:
        """Impact report for the clientlib at `path`; None when the path is unknown."""
        clientlib = self.find_clientlib(path)
        if clientlib is None:
            logger.warning("No clientlib at path %s", path)
            return None
        return analyze_clientlib(clientlib, self.graph, self.index)

    # ── Graph view ───────────────────────────────────────────────────────────

    def view(
        self,
        selection: Optional[ViewSelection] = None,
        layout: LayoutMode = LayoutMode.FROM_USAGE,
    ) -> GraphView:
        return build_view(
            self.graph.relations,
            self.index.used_categories,
            selection=selection,
            layout=layout,
            config=self.config,
        )

    def expansion_preview(self, category: str) -> int:
        """Number of relations expanding `category` would bring into the view."""
        return len(self.graph.relations_touching(category))

    # ── Reports ──────────────────────────────────────────────────────────────

    def recommendations(self) -> list[Recommendation]:
        return build_recommendations(self.inventory)


def load_session(
    inventory_path: Optional[str] = None,
    host: Optional[str] = None,
    scan_roots: Optional[Iterable[str]] = None,
    config: AtlasConfig = DEFAULT_CONFIG,
) -> AtlasSession:
    """
    Build a session from a saved snapshot, or from the live servlet.

    Args:
        inventory_path: JSON snapshot to read. When given, no request is made.
        host:           AEM host for a live fetch (None → config.aem_host).
        scan_roots:     Roots for a live fetch (None → config.default_scan_roots).
        config:         AtlasConfig.

    Raises:
        InventoryLoadError:  Snapshot missing or invalid.
        InventoryFetchError: Servlet unreachable or answered non-2xx.
    """
    if inventory_path:
        inventory = load_inventory_file(inventory_path)
    else:
        inventory = parse_inventory(fetch_inventory(host=host, scan_roots=scan_roots, config=config))
    return AtlasSession.from_inventory(inventory, config=config)
