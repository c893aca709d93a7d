"""
clientlib_atlas/analysis/impact.py — Change impact of a clientlib (BFS cascade).

Changing a clientlib changes every category it publishes. Whoever declares a
`depends` or `embeds` on one of those categories is hit directly; whoever
depends on *them* is hit by cascade, and so on up the reverse graph.

Algorithm: BFS on the reverse adjacency.
Relations point toward what is required (A → B means "A requires B"), so the
dependents of B are its reverse neighbours. All categories of the selected
clientlib are seeded together: the result is one combined impact set, not one
set per category.

Both edge kinds cascade identically; the kind recorded at first discovery is
carried as metadata so that the dashboard can flag embeds (inlined code) as
the stronger impact.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable

from clientlib_atlas.graph.category_index import CategoryIndex
from clientlib_atlas.graph.relation_graph import RelationGraph
from clientlib_atlas.inventory.models import EDGE_EMBEDS, Clientlib

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryImpact:
    """
    One affected (or required) category.

    Fields:
        category:   Category id.
        edge_type:  Kind of the relation through which it was first reached.
        clientlibs: Clientlibs publishing the category (resolved via the index;
                    empty for a dangling category).
    """

    category: str
    edge_type: str
    clientlibs: tuple[Clientlib, ...] = ()

    @property
    def is_embed(self) -> bool:
        return self.edge_type == EDGE_EMBEDS


@dataclass(frozen=True)
class ImpactResult:
    direct: tuple[CategoryImpact, ...] = ()
    indirect: tuple[CategoryImpact, ...] = ()

    @property
    def all(self) -> tuple[CategoryImpact, ...]:
        return self.direct + self.indirect

    @property
    def total(self) -> int:
        return len(self.direct) + len(self.indirect)

    @property
    def has_direct_embed(self) -> bool:
        return any(d.is_embed for d in self.direct)


@dataclass(frozen=True)
class RetestPlan:
    """What to re-test after modifying the selected clientlib."""

    direct_count: int
    indirect_count: int
    warn_embeds: bool
    steps: tuple[str, ...] = ()

    @property
    def safe_to_change(self) -> bool:
        return self.direct_count == 0 and self.indirect_count == 0


@dataclass(frozen=True)
class ClientlibImpactReport:
    clientlib: Clientlib
    dependencies: tuple[CategoryImpact, ...]
    impact: ImpactResult
    retest_plan: RetestPlan
    categories: tuple[str, ...] = field(default=())


def compute_impact(
    start_categories: Iterable[str],
    graph: RelationGraph,
    index: CategoryIndex,
) -> ImpactResult:
    """
    Compute direct and cascading dependents of a set of categories.

    Algorithm:
        1. visited = {}; direct = ordered map.
        2. For every start category c, every (dependent, kind) in reverse[c]
           not yet in direct is recorded as direct and marked visited.
        3. BFS seeded with the direct categories (not the start categories):
           each unvisited reverse neighbour is recorded as indirect (first
           discovery wins), marked visited and enqueued.

    Args:
        start_categories: Categories of the selected clientlib, in order.
        graph:            RelationGraph of the inventory.
        index:            CategoryIndex used to resolve clientlibs.

    Returns:
        ImpactResult. Each category appears at most once across direct and
        indirect.

    Notes:
        - Every category is enqueued at most once, so cycles terminate.
        - Start categories are not pre-marked: a start category reached back
          through a cycle is reported, because the change really does come
          back around to it.
        - Empty start set → empty result.
    """
    visited: set[str] = set()
    direct: dict[str, CategoryImpact] = {}
    indirect: dict[str, CategoryImpact] = {}

    starts = list(dict.fromkeys(start_categories))
    for category in starts:
        for dependent, edge_type in graph.dependents_of(category):
            if dependent in direct:
                continue
            direct[dependent] = CategoryImpact(
                category=dependent,
                edge_type=edge_type,
                clientlibs=index.clientlibs_for(dependent),
            )
            visited.add(dependent)

    queue: deque[str] = deque(direct)
    while queue:
        current = queue.popleft()
        for dependent, edge_type in graph.dependents_of(current):
            if dependent in visited:
                continue
            indirect[dependent] = CategoryImpact(
                category=dependent,
                edge_type=edge_type,
                clientlibs=index.clientlibs_for(dependent),
            )
            visited.add(dependent)
            queue.append(dependent)

    logger.debug(
        "Impact of %s: %d direct, %d indirect.",
        starts,
        len(direct),
        len(indirect),
    )
    return ImpactResult(direct=tuple(direct.values()), indirect=tuple(indirect.values()))


def compute_dependencies(
    start_categories: Iterable[str],
    graph: RelationGraph,
    index: CategoryIndex,
) -> tuple[CategoryImpact, ...]:
    """
    What the selected categories themselves require — one hop, no cascade.

    Deduplicated by category; the kind of the first relation seen wins.
    """
    deps: dict[str, CategoryImpact] = {}
    for category in dict.fromkeys(start_categories):
        for required, edge_type in graph.dependencies_of(category):
            if required not in deps:
                deps[required] = CategoryImpact(
                    category=required,
                    edge_type=edge_type,
                    clientlibs=index.clientlibs_for(required),
                )
    return tuple(deps.values())


def recommend_tests(impact: ImpactResult) -> RetestPlan:
    """Turn an impact result into the re-test checklist shown under the impact view."""
    if impact.total == 0:
        return RetestPlan(direct_count=0, indirect_count=0, warn_embeds=False)

    direct_step = f"Re-test the {len(impact.direct)} directly impacted clientlib categories"
    if impact.has_direct_embed:
        direct_step += " (watch the embeds: their code is inlined)"
    steps = (
        direct_step,
        f"Run regression tests on the {len(impact.indirect)} categories impacted by cascade",
        "Check every component and page that includes these categories (see Usages)",
    )
    return RetestPlan(
        direct_count=len(impact.direct),
        indirect_count=len(impact.indirect),
        warn_embeds=impact.has_direct_embed,
        steps=steps,
    )


def analyze_clientlib(
    clientlib: Clientlib,
    graph: RelationGraph,
    index: CategoryIndex,
) -> ClientlibImpactReport:
    """
    Full impact report for one clientlib: what it requires, who it breaks,
    and what to re-test.
    """
    categories = clientlib.categories
    if not categories:
        logger.info("Clientlib %s publishes no category — nothing can depend on it.",
                    clientlib.path)

    impact = compute_impact(categories, graph, index)
    dependencies = compute_dependencies(categories, graph, index)

    logger.info(
        "Impact analysis for %s: %d dependencies, %d direct, %d indirect.",
        clientlib.path,
        len(dependencies),
        len(impact.direct),
        len(impact.indirect),
    )
    return ClientlibImpactReport(
        clientlib=clientlib,
        dependencies=dependencies,
        impact=impact,
        retest_plan=recommend_tests(impact),
        categories=categories,
    )
