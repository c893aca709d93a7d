"""
clientlib_atlas/graph/view.py — Visible subgraph selection and layered layout.

The full category graph of an instance has thousands of edges; nobody reads
that. The dashboard instead starts from the categories that templates and
dialogs actually include ("all used" mode) or from one category the user
picked, and grows the picture one double-click at a time.

Selection:
    - ALL_USED  — visible set = used categories (+ anything expanded since).
    - EXPANDED  — visible set = the accumulated expanded categories only.
    An edge is shown when EITHER endpoint is visible, so expanding a category
    pulls in all of its direct neighbours without expanding them in turn.

Layout (deterministic, layered):
    1. in/out degree per node over the included edges;
    2. roots — used nodes by descending in-degree (FROM_USAGE) or nodes with
       no incoming edge by descending out-degree (HIERARCHICAL), with a
       top-N fallback when no node qualifies;
    3. BFS along source → target, one layer per hop, bounded by max_layers;
    4. everything unreached goes into one overflow layer;
    5. each layer is centred on start_x, deeper layers move down and slightly
       right (layer_skew).

Ties everywhere are broken by the lexicographic node id, so identical inputs
always give identical coordinates.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

import networkx as nx

from clientlib_atlas.config import DEFAULT_CONFIG, AtlasConfig
from clientlib_atlas.inventory.models import EDGE_EMBEDS, Relation

logger = logging.getLogger(__name__)


class ViewMode(str, Enum):
    ALL_USED = "all_used"
    EXPANDED = "expanded"


class LayoutMode(str, Enum):
    FROM_USAGE = "from_usage"
    HIERARCHICAL = "hierarchical"


@dataclass(frozen=True)
class ViewSelection:
    """
    What the user has asked to see. Immutable: every change returns a new value.

    Expansion is additive and monotonic; only reset() shrinks the view.
    """

    mode: ViewMode = ViewMode.ALL_USED
    expanded: frozenset[str] = frozenset()

    def select(self, category: str) -> "ViewSelection":
        """Start a fresh exploration from a single category."""
        return ViewSelection(mode=ViewMode.EXPANDED, expanded=frozenset({category}))

    def expand(self, category: str) -> "ViewSelection":
        """Add a category's direct relations to the current view."""
        return ViewSelection(mode=self.mode, expanded=self.expanded | {category})

    def reset(self) -> "ViewSelection":
        """Back to the default view of every used category."""
        return ViewSelection()

    def visible_set(self, used_categories: Iterable[str]) -> frozenset[str]:
        if self.mode is ViewMode.ALL_USED:
            return frozenset(used_categories) | self.expanded
        return self.expanded


@dataclass(frozen=True)
class ViewNode:
    id: str
    is_used: bool
    is_expanded: bool
    in_degree: int
    out_degree: int
    layer: int
    x: float
    y: float

    @property
    def label(self) -> str:
        return self.id


@dataclass(frozen=True)
class ViewEdge:
    id: str
    source: str
    target: str
    edge_type: str

    @property
    def label(self) -> str:
        return "embed" if self.edge_type == EDGE_EMBEDS else "depends on"

    @property
    def animated(self) -> bool:
        return self.edge_type == EDGE_EMBEDS


@dataclass(frozen=True)
class GraphView:
    """Laid-out visible subgraph. Nodes are sorted by id; edges follow input order."""

    nodes: tuple[ViewNode, ...] = ()
    edges: tuple[ViewEdge, ...] = ()
    layers: tuple[tuple[str, ...], ...] = ()
    selection: ViewSelection = field(default_factory=ViewSelection)

    def node(self, node_id: str) -> Optional[ViewNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def positions(self) -> dict[str, tuple[float, float]]:
        return {n.id: (n.x, n.y) for n in self.nodes}

    def to_networkx(self) -> nx.MultiDiGraph:
        """Export with node attributes (is_used, layer, pos) and edge_type on edges."""
        G = nx.MultiDiGraph()
        for n in self.nodes:
            G.add_node(n.id, is_used=n.is_used, is_expanded=n.is_expanded,
                       layer=n.layer, pos=(n.x, n.y))
        for e in self.edges:
            G.add_edge(e.source, e.target, key=e.id, edge_type=e.edge_type)
        return G

    def to_dict(self) -> dict:
        """JSON-ready structure for the API."""
        return {
            "nodes": [
                {
                    "id": n.id,
                    "label": n.label,
                    "isUsed": n.is_used,
                    "isExpanded": n.is_expanded,
                    "inDegree": n.in_degree,
                    "outDegree": n.out_degree,
                    "layer": n.layer,
                    "position": {"x": n.x, "y": n.y},
                }
                for n in self.nodes
            ],
            "edges": [
                {
                    "id": e.id,
                    "source": e.source,
                    "target": e.target,
                    "type": e.edge_type,
                    "label": e.label,
                    "animated": e.animated,
                }
                for e in self.edges
            ],
            "layers": [list(layer) for layer in self.layers],
            "mode": self.selection.mode.value,
            "expanded": sorted(self.selection.expanded),
        }


def filter_relations(
    relations: Iterable[Relation],
    visible: frozenset[str],
) -> list[Relation]:
    """Keep relations with at least one endpoint in the visible set (OR, not AND)."""
    return [r for r in relations if r.source in visible or r.target in visible]


def _select_roots(
    G: nx.MultiDiGraph,
    node_ids: list[str],
    used: frozenset[str],
    layout: LayoutMode,
    config: AtlasConfig,
) -> list[str]:
    """
    Pick layer-0 nodes. node_ids is sorted, and sorted() is stable, so
    degree ties keep lexicographic order.
    """
    if not node_ids:
        return []

    if layout is LayoutMode.HIERARCHICAL:
        roots = sorted(
            (n for n in node_ids if G.in_degree(n) == 0),
            key=lambda n: -G.out_degree(n),
        )
        if not roots:
            roots = sorted(node_ids, key=lambda n: -G.out_degree(n))[
                : config.hierarchical_fallback_root_count
            ]
        return roots

    roots = sorted((n for n in node_ids if n in used), key=lambda n: -G.in_degree(n))
    if not roots:
        roots = sorted(node_ids, key=lambda n: -G.in_degree(n))[: config.fallback_root_count]
    return roots


def assign_layers(
    G: nx.MultiDiGraph,
    node_ids: list[str],
    roots: list[str],
    max_layers: int,
) -> list[list[str]]:
    """
    BFS layering from the roots along source → target edges.

    Layer k+1 holds the not-yet-placed successors of layer k in first-discovery
    order. At most max_layers BFS layers are produced; unreached nodes (cycles
    entered from below, disconnected parts, depth overflow) form one final
    layer in id order. Every node ends up in exactly one layer.
    """
    layers: list[list[str]] = []
    placed: set[str] = set()

    frontier = list(roots)
    if frontier:
        layers.append(frontier)
        placed.update(frontier)

    while frontier and len(layers) < max_layers:
        next_layer: list[str] = []
        for node in frontier:
            for child in G.successors(node):
                if child not in placed:
                    placed.add(child)
                    next_layer.append(child)
        if not next_layer:
            break
        layers.append(next_layer)
        frontier = next_layer

    remaining = [n for n in node_ids if n not in placed]
    if remaining:
        layers.append(remaining)

    return layers


def build_view(
    relations: Iterable[Relation],
    used_categories: Iterable[str],
    selection: Optional[ViewSelection] = None,
    layout: LayoutMode = LayoutMode.FROM_USAGE,
    config: AtlasConfig = DEFAULT_CONFIG,
) -> GraphView:
    """
    Select the visible subgraph and lay it out.

    Args:
        relations:       Full relation list of the inventory (input order matters:
                         it fixes edge ids and BFS discovery order).
        used_categories: Categories with at least one usage.
        selection:       ViewSelection; None means the default all-used view.
        layout:          Root selection strategy.
        config:          AtlasConfig with spacing constants and layer bound.

    Returns:
        GraphView. Pure: the same arguments always give the same view.
    """
    selection = selection or ViewSelection()
    used = frozenset(used_categories)
    visible = selection.visible_set(used)

    included = filter_relations(relations, visible)

    node_ids = sorted({r.source for r in included} | {r.target for r in included})
    G = nx.MultiDiGraph()
    G.add_nodes_from(node_ids)
    edges: list[ViewEdge] = []
    for index, rel in enumerate(included):
        edge_id = f"e{index}"
        G.add_edge(rel.source, rel.target, key=edge_id, edge_type=rel.edge_type)
        edges.append(ViewEdge(id=edge_id, source=rel.source, target=rel.target,
                              edge_type=rel.edge_type))

    roots = _select_roots(G, node_ids, used, layout, config)
    layers = assign_layers(G, node_ids, roots, config.max_layers)

    positions: dict[str, tuple[int, float, float]] = {}
    h = config.horizontal_spacing
    for depth, layer_nodes in enumerate(layers):
        offset_x = config.start_x - (len(layer_nodes) - 1) * h / 2
        y = config.start_y + depth * config.vertical_spacing
        for index, node in enumerate(layer_nodes):
            x = offset_x + index * h + depth * config.layer_skew
            positions[node] = (depth, x, y)

    nodes = tuple(
        ViewNode(
            id=node,
            is_used=node in used,
            is_expanded=node in selection.expanded,
            in_degree=G.in_degree(node),
            out_degree=G.out_degree(node),
            layer=positions[node][0],
            x=positions[node][1],
            y=positions[node][2],
        )
        for node in node_ids
    )

    logger.info(
        "Graph view built (%s, %s): %d nodes, %d edges, %d layers, %d roots.",
        selection.mode.value,
        layout.value,
        len(nodes),
        len(edges),
        len(layers),
        len(roots),
    )

    return GraphView(
        nodes=nodes,
        edges=tuple(edges),
        layers=tuple(tuple(layer) for layer in layers),
        selection=selection,
    )
