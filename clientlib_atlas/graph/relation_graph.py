"""
clientlib_atlas/graph/relation_graph.py — Forward and reverse category adjacency.

A relation A → B ("A requires B", kind depends or embeds) is stored twice:

    forward[A] gets (B, kind)   — what A needs
    reverse[B] gets (A, kind)   — who needs B (the direction impact flows)

Neighbor lists keep the first-seen order of the input relations so that every
downstream traversal is deterministic. Nothing is validated or deduplicated:
self-loops and parallel edges are stored as given, and traversals are
responsible for terminating on them.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, NamedTuple

from clientlib_atlas.inventory.models import Relation

logger = logging.getLogger(__name__)


class Neighbor(NamedTuple):
    category: str
    edge_type: str


@dataclass(frozen=True)
class RelationGraph:
    """Immutable adjacency over categories, built once per inventory."""

    relations: tuple[Relation, ...] = ()
    forward: dict[str, tuple[Neighbor, ...]] = field(default_factory=dict, compare=False)
    reverse: dict[str, tuple[Neighbor, ...]] = field(default_factory=dict, compare=False)

    def dependencies_of(self, category: str) -> tuple[Neighbor, ...]:
        """Categories this category requires (one hop)."""
        return self.forward.get(category, ())

    def dependents_of(self, category: str) -> tuple[Neighbor, ...]:
        """Categories requiring this category (one hop)."""
        return self.reverse.get(category, ())

    def relations_touching(self, category: str) -> list[Relation]:
        """Relations with this category at either end, in input order."""
        return [r for r in self.relations if r.source == category or r.target == category]


def build_relation_graph(relations: Iterable[Relation]) -> RelationGraph:
    """
    Build forward/reverse adjacency from the relation list.

    Args:
        relations: Relations in payload order.

    Returns:
        RelationGraph whose neighbor lists follow input order.
    """
    rels = tuple(relations)
    forward: dict[str, list[Neighbor]] = {}
    reverse: dict[str, list[Neighbor]] = {}

    self_loops = 0
    for rel in rels:
        forward.setdefault(rel.source, []).append(Neighbor(rel.target, rel.edge_type))
        reverse.setdefault(rel.target, []).append(Neighbor(rel.source, rel.edge_type))
        if rel.source == rel.target:
            self_loops += 1

    if self_loops:
        logger.warning("Relation list contains %d self-referencing relation(s).", self_loops)

    logger.info(
        "Relation graph built: %d relations over %d categories.",
        len(rels),
        len(set(forward) | set(reverse)),
    )
    return RelationGraph(
        relations=rels,
        forward={cat: tuple(n) for cat, n in forward.items()},
        reverse={cat: tuple(n) for cat, n in reverse.items()},
    )
