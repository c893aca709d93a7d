"""
clientlib_atlas/viz/plotly_graph.py — Interactive Plotly dependency graph.

Draws a GraphView with the positions computed by build_view(); no layout
work happens here, so the picture is exactly what the API serves.

Visual encoding:
    - Node color:  green = used by a template/dialog, gray = unused
    - Node border: orange when the category was explicitly expanded
    - Node size:   grows with in-degree (how many categories require it)
    - Edge color:  gray for depends, blue (dashed) for embeds
    - y axis:      reversed so that layer 0 sits at the top
"""

import logging
import os
from typing import Optional

from clientlib_atlas.graph.view import GraphView

logger = logging.getLogger(__name__)

# ── Optional Plotly dependency ─────────────────────────────────────────────────
try:
    import plotly.graph_objects as go
    HAS_PLOTLY = True
except ImportError:
    go = None
    HAS_PLOTLY = False

# ── Visual config ──────────────────────────────────────────────────────────────
_EDGE_STYLES = {
    "depends": {"color": "rgba(150, 150, 150, 0.6)", "width": 1.5, "dash": "solid"},
    "embeds": {"color": "rgba(70, 130, 200, 0.8)", "width": 2, "dash": "dash"},
}
_USED_COLOR = "mediumseagreen"
_UNUSED_COLOR = "lightgray"
_EXPANDED_BORDER = "darkorange"


def _node_size(in_degree: int) -> float:
    return max(12.0, min(40.0, 12.0 + in_degree * 4.0))


def build_view_figure(view: GraphView, title: Optional[str] = None) -> "go.Figure":
    """
    Build a Plotly figure of a laid-out graph view.

    Args:
        view:  GraphView from build_view().
        title: Figure title; defaults to a count summary.

    Returns:
        Plotly Figure (no IO, no files written). An empty view yields an
        empty figure with the title only.

    Raises:
        ImportError: If plotly is not installed.
    """
    if not HAS_PLOTLY:
        raise ImportError("plotly is required: pip install plotly")

    positions = view.positions()

    # ── Edge traces, one per edge type ────────────────────────────────────────
    edge_groups: dict[str, list[tuple[str, str]]] = {}
    for edge in view.edges:
        edge_groups.setdefault(edge.edge_type, []).append((edge.source, edge.target))

    edge_traces = []
    for etype, pairs in edge_groups.items():
        x_coords: list = []
        y_coords: list = []
        for u, v in pairs:
            x0, y0 = positions[u]
            x1, y1 = positions[v]
            x_coords += [x0, x1, None]
            y_coords += [y0, y1, None]

        style = _EDGE_STYLES.get(etype, _EDGE_STYLES["depends"])
        edge_traces.append(go.Scatter(
            x=x_coords,
            y=y_coords,
            mode="lines",
            line={"width": style["width"], "color": style["color"], "dash": style["dash"]},
            name="embed" if etype == "embeds" else "depends on",
            legendgroup=f"edge_{etype}",
            hoverinfo="none",
        ))

    # ── Node traces: used vs unused ───────────────────────────────────────────
    node_traces = []
    for is_used, name, color in ((True, "used", _USED_COLOR), (False, "unused", _UNUSED_COLOR)):
        nodes = [n for n in view.nodes if n.is_used == is_used]
        if not nodes:
            continue
        node_traces.append(go.Scatter(
            x=[n.x for n in nodes],
            y=[n.y for n in nodes],
            mode="markers+text",
            name=name,
            text=[n.label for n in nodes],
            textposition="bottom center",
            customdata=[[n.id, n.layer, n.in_degree, n.out_degree] for n in nodes],
            hovertemplate=(
                "<b>%{customdata[0]}</b><br>"
                "Layer: %{customdata[1]}<br>"
                "Required by: %{customdata[2]}<br>"
                "Requires: %{customdata[3]}<extra></extra>"
            ),
            marker={
                "size": [_node_size(n.in_degree) for n in nodes],
                "color": color,
                "line": {
                    "color": [_EXPANDED_BORDER if n.is_expanded else "white" for n in nodes],
                    "width": 2,
                },
            },
        ))

    if title is None:
        title = f"Clientlib dependencies — {len(view.nodes)} categories, {len(view.edges)} relations"

    fig = go.Figure(
        data=edge_traces + node_traces,
        layout=go.Layout(
            title=title,
            showlegend=True,
            hovermode="closest",
            xaxis={"showgrid": False, "zeroline": False, "showticklabels": False},
            yaxis={"showgrid": False, "zeroline": False, "showticklabels": False,
                   "autorange": "reversed"},
            margin={"l": 20, "r": 20, "t": 60, "b": 20},
            paper_bgcolor="white",
            plot_bgcolor="white",
        ),
    )

    logger.info(
        "Plotly figure built: %d nodes, %d edges, %d traces.",
        len(view.nodes),
        len(view.edges),
        len(edge_traces) + len(node_traces),
    )
    return fig


def save_figure_html(fig: "go.Figure", output_path: str) -> None:
    """
    Write a Plotly figure to an HTML file (plotly.js loaded from CDN).

    Raises:
        ImportError: If plotly is not installed.
    """
    if not HAS_PLOTLY:
        raise ImportError("plotly is required: pip install plotly")

    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fig.write_html(output_path, include_plotlyjs="cdn")
    logger.info("Plotly figure saved to: %s", output_path)
