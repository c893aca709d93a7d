"""
clientlib_atlas/viz/figures.py — Static PNG figures (matplotlib, Agg backend).

For reports and CI artefacts where an interactive page is not wanted:

    graph_view.png       the laid-out graph view, positions from build_view()
    top_usages.png       most referenced categories
    impact_<name>.png    direct vs indirect impact of one clientlib

Usage:
    from clientlib_atlas.viz.figures import generate_all_figures
    paths = generate_all_figures(session, output_dir="figures")
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Optional

import matplotlib
try:
    matplotlib.use("Agg")
except Exception:
    pass  # backend already set

import matplotlib.patches as mpatches
import matplotlib.pyplot as plt
import networkx as nx

from clientlib_atlas.graph.view import GraphView

if TYPE_CHECKING:
    from clientlib_atlas.analysis.impact import ClientlibImpactReport
    from clientlib_atlas.pipeline import AtlasSession

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Palette
# ---------------------------------------------------------------------------
C_USED = "#2E9E6B"       # green: referenced by a template/dialog
C_UNUSED = "#B8C2CC"     # gray: not referenced
C_EXPANDED = "#F2B134"   # amber: explicitly expanded
C_DEPENDS = "#7A8794"
C_EMBEDS = "#2F6FB3"
C_DIRECT = "#E05E3A"
C_INDIRECT = "#F2B134"
C_DARK = "#1A2B3C"
C_LIGHT = "#F4F7FA"

STYLE = {
    "figure.facecolor": "white",
    "axes.facecolor": C_LIGHT,
    "axes.grid": False,
    "axes.titlelocation": "left",
    "grid.color": "#DDE3EA",
    "font.size": 9,
    "legend.frameon": False,
    **{key: C_DARK for key in ("axes.edgecolor", "axes.labelcolor", "xtick.color", "ytick.color", "text.color")},
    **{f"axes.spines.{side}": False for side in ("top", "right")},
}

TOP_USAGES = 15


def _save(fig, path: str, dpi: int = 150) -> str:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return os.path.abspath(path)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def generate_all_figures(session: "AtlasSession", output_dir: str) -> dict[str, str]:
    """
    Generate the graph view and usage figures of a session.

    Args:
        session:    AtlasSession whose default view and usages are drawn.
        output_dir: Directory to save PNG files into (created if needed).

    Returns:
        Dict mapping filename -> absolute path for each generated figure.
        Figures with nothing to draw are skipped.
    """
    os.makedirs(output_dir, exist_ok=True)
    plt.rcParams.update(STYLE)
    paths: dict[str, str] = {}

    view = session.view()
    if view.nodes:
        p = save_view_png(view, os.path.join(output_dir, "graph_view.png"))
        paths[os.path.basename(p)] = p

    p = save_usage_chart(session.index.usage_counts, os.path.join(output_dir, "top_usages.png"))
    if p:
        paths[os.path.basename(p)] = p

    logger.info("Generated %d figures in %s", len(paths), output_dir)
    return paths


def save_view_png(view: GraphView, output_path: str, title: Optional[str] = None) -> str:
    """
    Draw a GraphView with its computed positions.

    Layer 0 is drawn at the top; embeds are dashed blue, depends solid gray.

    Returns:
        Absolute path of the written PNG.
    """
    # Parallel relations are drawn once per kind.
    G = nx.DiGraph(view.to_networkx())
    pos = {n.id: (n.x, -n.y) for n in view.nodes}

    width = max(8.0, min(24.0, 2.0 + max((len(layer) for layer in view.layers), default=1) * 1.6))
    height = max(5.0, min(20.0, 2.0 + len(view.layers) * 1.4))
    fig, ax = plt.subplots(figsize=(width, height))

    depends = list(dict.fromkeys((e.source, e.target) for e in view.edges if not e.animated))
    embeds = list(dict.fromkeys((e.source, e.target) for e in view.edges if e.animated))
    nx.draw_networkx_edges(G, pos, edgelist=depends, ax=ax, edge_color=C_DEPENDS,
                           arrows=True, arrowsize=12, width=1.2)
    nx.draw_networkx_edges(G, pos, edgelist=embeds, ax=ax, edge_color=C_EMBEDS,
                           arrows=True, arrowsize=12, width=1.6, style="dashed")

    node_colors = [C_USED if n.is_used else C_UNUSED for n in view.nodes]
    border_colors = [C_EXPANDED if n.is_expanded else "white" for n in view.nodes]
    nx.draw_networkx_nodes(G, pos, nodelist=[n.id for n in view.nodes], ax=ax,
                           node_color=node_colors, edgecolors=border_colors,
                           linewidths=2.0, node_size=420)
    nx.draw_networkx_labels(G, pos, labels={n.id: n.label for n in view.nodes}, ax=ax,
                            font_size=8, verticalalignment="top")

    ax.legend(
        handles=[
            mpatches.Patch(color=C_USED, label="used"),
            mpatches.Patch(color=C_UNUSED, label="unused"),
            mpatches.Patch(color=C_DEPENDS, label="depends on"),
            mpatches.Patch(color=C_EMBEDS, label="embed"),
        ],
        loc="upper right",
        fontsize=8,
    )
    ax.set_title(
        title or f"Clientlib dependencies ({len(view.nodes)} categories, {len(view.edges)} relations)",
        fontsize=13, fontweight="bold", pad=12,
    )
    ax.axis("off")
    fig.tight_layout()
    path = _save(fig, output_path)
    logger.info("Graph view PNG saved to: %s", path)
    return path


def save_usage_chart(usage_counts: dict[str, int], output_path: str) -> str | None:
    """Horizontal bar chart of the most referenced categories. None if nothing is used."""
    top = sorted(((c, n) for c, n in usage_counts.items() if n > 0),
                 key=lambda item: (-item[1], item[0]))[:TOP_USAGES]
    if not top:
        return None

    categories = [c for c, _ in reversed(top)]
    counts = [n for _, n in reversed(top)]

    fig, ax = plt.subplots(figsize=(9, max(3.0, 0.4 * len(top) + 1.5)))
    bars = ax.barh(range(len(categories)), counts, color=C_USED, edgecolor="white")
    for bar, val in zip(bars, counts):
        ax.text(bar.get_width() + 0.1, bar.get_y() + bar.get_height() / 2,
                str(val), va="center", fontsize=9)

    ax.set_yticks(range(len(categories)))
    ax.set_yticklabels(categories, fontsize=9)
    ax.set_xlabel("Templates / dialogs referencing the category", fontsize=10)
    ax.set_title("Most referenced clientlib categories", fontsize=13, fontweight="bold")
    ax.xaxis.grid(True, zorder=0)
    fig.tight_layout()
    return _save(fig, output_path)


def save_impact_chart(report: "ClientlibImpactReport", output_path: str) -> str:
    """Bar chart of what a clientlib requires and what it impacts, split by edge kind."""
    groups = {
        "requires": report.dependencies,
        "direct": report.impact.direct,
        "indirect": report.impact.indirect,
    }
    labels = list(groups)
    depends = [sum(1 for c in groups[g] if not c.is_embed) for g in labels]
    embeds = [sum(1 for c in groups[g] if c.is_embed) for g in labels]

    fig, ax = plt.subplots(figsize=(7, 4))
    ax.bar(labels, depends, color=[C_DEPENDS, C_DIRECT, C_INDIRECT], label="depends")
    ax.bar(labels, embeds, bottom=depends, color=C_EMBEDS, label="embed")
    for i, total in enumerate(d + e for d, e in zip(depends, embeds)):
        ax.text(i, total + 0.05, str(total), ha="center", va="bottom", fontweight="bold")

    ax.set_ylabel("Categories", fontsize=10)
    ax.set_title(f"Impact of {report.clientlib.path}", fontsize=12, fontweight="bold")
    ax.legend(fontsize=8)
    ax.yaxis.grid(True, zorder=0)
    fig.tight_layout()
    return _save(fig, output_path)
