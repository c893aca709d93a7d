"""
clientlib_atlas/viz/dashboard.py — Streamlit dashboard for Clientlib Atlas.

Six-page dashboard over one inventory.

Pages:
    1. Clientlibs        — summary strip + filterable, sortable clientlib table
    2. Usages            — categories by usage count, with their templates/dialogs
    3. Dependency Graph  — visible subgraph, select / expand / reset controls
    4. Impact Analysis   — pick a clientlib, see what it requires and what it breaks
    5. Alerts            — servlet alerts by level
    6. Recommendations   — prioritised action list

The AtlasSession lives in st.session_state and is replaced wholesale when the
user reloads the inventory; the graph selection is reset at the same time.

Usage:
    streamlit run clientlib_atlas/viz/dashboard.py -- --inventory inventory.json
    clientlib-atlas dashboard --inventory inventory.json

Note: Requires streamlit and plotly. Module is importable without them.
"""

import argparse
import json
import logging
import sys
from typing import Optional

from clientlib_atlas.config import DEFAULT_CONFIG
from clientlib_atlas.errors import ClientlibAtlasError
from clientlib_atlas.graph.view import LayoutMode, ViewMode, ViewSelection
from clientlib_atlas.pipeline import AtlasSession, load_session
from clientlib_atlas.reports.tables import (
    SORT_RELATIONS,
    SORT_SIZE,
    clientlib_table,
    summary_counts,
    usage_stats,
    usage_table,
)
from clientlib_atlas.viz.plotly_graph import HAS_PLOTLY, build_view_figure

logger = logging.getLogger(__name__)

# ── Optional Streamlit dependency ──────────────────────────────────────────────
try:
    import streamlit as st
    HAS_STREAMLIT = True
except ImportError:
    st = None
    HAS_STREAMLIT = False

SESSION_KEY = "atlas_session"
SELECTION_KEY = "view_selection"
PAGE_KEY = "page"
PENDING_PAGE_KEY = "pending_page"
GRAPH_PAGE = "Dependency Graph"

LEVEL_ICONS = {"CRITICAL": "🔴", "HIGH": "🟠", "MEDIUM": "🟡", "INFO": "🔵"}

PAGES = [
    "Clientlibs",
    "Usages",
    GRAPH_PAGE,
    "Impact Analysis",
    "Alerts",
    "Recommendations",
]


# ── Session state ──────────────────────────────────────────────────────────────

def _current_session() -> Optional[AtlasSession]:
    return st.session_state.get(SESSION_KEY)


def _current_selection() -> ViewSelection:
    return st.session_state.get(SELECTION_KEY, ViewSelection())


def _set_selection(selection: ViewSelection) -> None:
    st.session_state[SELECTION_KEY] = selection


def _show_in_graph(category: str) -> None:
    """Switch to the graph page on the next run, showing only `category`."""
    _set_selection(ViewSelection().select(category))
    st.session_state[PENDING_PAGE_KEY] = GRAPH_PAGE


def _reload(inventory_path: Optional[str], host: Optional[str], roots: list[str]) -> None:
    """Build a new session and swap it in; on failure keep the previous one."""
    try:
        session = load_session(inventory_path=inventory_path, host=host, scan_roots=roots)
    except ClientlibAtlasError as exc:
        logger.error("Inventory reload failed: %s", exc)
        st.error(f"Could not load the inventory: {exc}")
        return
    st.session_state[SESSION_KEY] = session
    st.session_state[SELECTION_KEY] = ViewSelection()


def _render_sidebar(default_inventory: Optional[str]) -> str:
    st.sidebar.header("Inventory")
    source = st.sidebar.radio("Source", ["Snapshot file", "Live AEM instance"])

    if source == "Snapshot file":
        inventory_path = st.sidebar.text_input("Inventory JSON", value=default_inventory or "")
        if st.sidebar.button("Load"):
            _reload(inventory_path or None, None, [])
    else:
        host = st.sidebar.text_input("AEM host", value=DEFAULT_CONFIG.aem_host)
        roots_text = st.sidebar.text_area(
            "Scan roots (one per line)",
            value="\n".join(DEFAULT_CONFIG.default_scan_roots),
        )
        roots = [r.strip() for r in roots_text.splitlines() if r.strip()]
        if st.sidebar.button("Scan"):
            _reload(None, host, roots)

    # The page widget can only be set before it is drawn.
    pending = st.session_state.pop(PENDING_PAGE_KEY, None)
    if pending is not None:
        st.session_state[PAGE_KEY] = pending
    return st.sidebar.selectbox("Navigate", PAGES, key=PAGE_KEY)


# ── Pages ──────────────────────────────────────────────────────────────────────

def _render_clientlibs(session: AtlasSession) -> None:
    st.header("Clientlibs")

    counts = summary_counts(session.inventory)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Clientlibs", counts["totalClientlibs"])
    col2.metric("Categories", counts["totalCategories"])
    col3.metric("Relations", counts["totalRelations"])
    col4.metric("Alerts", counts["alertsCount"])

    col_filter, col_sort, col_order = st.columns([3, 1, 1])
    filter_text = col_filter.text_input("Filter by name, path or category")
    sort_by = col_sort.selectbox("Sort by", [SORT_RELATIONS, SORT_SIZE])
    descending = col_order.selectbox("Order", ["desc", "asc"]) == "desc"

    df = clientlib_table(session.inventory.clientlibs, filter_text, sort_by, descending)
    st.caption(f"{len(df)} / {len(session.inventory.clientlibs)} clientlibs")
    st.dataframe(df, use_container_width=True)

    categories = sorted({c for cell in df["categories"] for c in cell.split(", ") if c})
    if categories:
        col_cat, col_go = st.columns([3, 1])
        category = col_cat.selectbox("Category", categories, key="clientlib_category")
        if col_go.button("Show in graph"):
            _show_in_graph(category)
            st.rerun()


def _render_usages(session: AtlasSession) -> None:
    st.header("Usages")

    stats = usage_stats(session.inventory.usages)
    col1, col2, col3 = st.columns(3)
    col1.metric("Categories", stats["categories"])
    col2.metric("Total usages", stats["total_usages"])
    col3.metric("Unused categories", stats["unused_categories"])

    search = st.text_input("Search a category")
    df = usage_table(session.inventory.usages, search)
    if df.empty:
        st.info("No category matches.")
        return

    st.dataframe(df[["category", "usage_count"]], use_container_width=True)
    category = st.selectbox("Show usages of", df["category"].tolist())
    usages = session.index.usages_for(category)
    if not usages:
        st.warning(f"{category} is not referenced by any template or dialog.")
    for usage in usages:
        st.write(f"`{usage.type}` {usage.path}")


def _render_graph(session: AtlasSession) -> None:
    st.header("Dependency Graph")

    selection = _current_selection()
    groups = session.suggest_categories(st.text_input("Find a category"))
    options = list(groups.used) + list(groups.other)
    if groups.used_hidden or groups.other_hidden:
        st.caption(f"{groups.used_hidden + groups.other_hidden} more matches, refine the search.")

    col_pick, col_select, col_expand, col_reset = st.columns([3, 1, 1, 1])
    category = col_pick.selectbox("Category", options) if options else None
    if category is not None:
        col_pick.caption(f"Expand adds {session.expansion_preview(category)} relations")
    if col_select.button("Show only", disabled=category is None):
        selection = selection.select(category)
    if col_expand.button("Expand", disabled=category is None):
        selection = selection.expand(category)
    if col_reset.button("Reset"):
        selection = selection.reset()
    _set_selection(selection)

    layout_label = st.radio("Layout", ["From usage", "Hierarchical"], horizontal=True)
    layout = LayoutMode.FROM_USAGE if layout_label == "From usage" else LayoutMode.HIERARCHICAL

    view = session.view(selection, layout)
    if selection.mode is ViewMode.EXPANDED:
        st.caption("Expanded: " + ", ".join(sorted(selection.expanded)))
    else:
        st.caption("Showing every relation touching a used category.")

    if not view.nodes:
        st.info("Nothing to draw for this selection.")
        return

    if HAS_PLOTLY:
        st.plotly_chart(build_view_figure(view), use_container_width=True)
    else:
        st.json(view.to_dict())


def _render_impact(session: AtlasSession) -> None:
    st.header("Impact Analysis")

    term = st.text_input("Search a clientlib by path or category")
    matches = session.search(term)
    if not term:
        st.info("Type part of a path or category to pick a clientlib.")
        return
    if not matches:
        st.warning("No clientlib matches.")
        return

    path = st.selectbox("Clientlib", [lib.path for lib in matches])
    report = session.analyze(path)
    if report is None:
        return

    st.subheader("Dependencies")
    if not report.dependencies:
        st.write("This clientlib requires no other category.")
    for dep in report.dependencies:
        note = "  ⚠️ inlined code, strong impact" if dep.is_embed else ""
        owners = ", ".join(lib.path for lib in dep.clientlibs) or "no clientlib publishes it"
        st.write(f"**{dep.category}** ({dep.edge_type}) — {owners}{note}")

    st.subheader("Impact of a modification")
    col1, col2 = st.columns(2)
    col1.metric("Direct", len(report.impact.direct))
    col2.metric("Indirect (cascade)", len(report.impact.indirect))
    for label, items in (("Direct", report.impact.direct), ("Indirect", report.impact.indirect)):
        if items:
            with st.expander(f"{label} ({len(items)})"):
                for item in items:
                    owners = ", ".join(lib.path for lib in item.clientlibs)
                    st.write(f"**{item.category}** ({item.edge_type}) {owners}")

    plan = report.retest_plan
    if plan.safe_to_change:
        st.success("No other category depends on this clientlib: it can be changed safely.")
    else:
        if plan.warn_embeds:
            st.warning("Some direct dependents embed this clientlib: their bundles change too.")
        for step in plan.steps:
            st.write(f"- {step}")


def _render_alerts(session: AtlasSession) -> None:
    st.header("Alerts")
    alerts = session.inventory.alerts
    if not alerts:
        st.success("No alert raised by the scan.")
        return

    for alert in alerts:
        icon = LEVEL_ICONS.get(alert.level, "")
        with st.expander(f"{icon} [{alert.level}] {alert.title or alert.type}"):
            st.write(alert.description)
            if alert.impact:
                st.write(f"**Impact:** {alert.impact}")
            if alert.action:
                st.write(f"**Action:** {alert.action}")
            if alert.data is not None:
                st.code(json.dumps(alert.data, indent=2, ensure_ascii=False), language="json")
            if alert.conflicts:
                st.write(f"**Conflicts ({len(alert.conflicts)}):**")
                st.json(list(alert.conflicts))


def _render_recommendations(session: AtlasSession) -> None:
    st.header("Recommendations")
    recommendations = session.recommendations()
    if not recommendations:
        st.success("Nothing to recommend.")
        return

    for rec in recommendations:
        icon = LEVEL_ICONS.get(rec.priority, "")
        with st.expander(f"{icon} {rec.title}", expanded=rec.priority == "CRITICAL"):
            st.write(rec.description)
            st.write(f"**Impact:** {rec.impact}")
            col1, col2 = st.columns(2)
            col1.write(f"**Effort:** {rec.effort}")
            col2.write(f"**Benefit:** {rec.benefit}")
            for action in rec.actions:
                st.write(f"- {action['suggestion']}")


# ── Entry point ────────────────────────────────────────────────────────────────

def run_dashboard(inventory_path: Optional[str] = None) -> None:
    """
    Launch the Clientlib Atlas Streamlit dashboard.

    Args:
        inventory_path: Snapshot loaded on first render when no session exists yet.

    Raises:
        ImportError: If streamlit is not installed.
    """
    if not HAS_STREAMLIT:
        raise ImportError("streamlit is required: pip install streamlit")

    st.set_page_config(page_title="Clientlib Atlas", layout="wide")
    st.title("Clientlib Atlas — AEM Clientlib Dependencies")

    page = _render_sidebar(inventory_path)

    if _current_session() is None and inventory_path:
        _reload(inventory_path, None, [])

    session = _current_session()
    if session is None:
        st.warning("No inventory loaded. Load a snapshot or scan an AEM instance from the sidebar.")
        return

    renderers = {
        "Clientlibs": _render_clientlibs,
        "Usages": _render_usages,
        "Dependency Graph": _render_graph,
        "Impact Analysis": _render_impact,
        "Alerts": _render_alerts,
        "Recommendations": _render_recommendations,
    }
    renderers[page](session)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="clientlib-atlas-dashboard")
    parser.add_argument("--inventory", default=None, metavar="PATH")
    return parser.parse_args(argv)


if __name__ == "__main__":
    # Arguments after `--` on the streamlit command line.
    run_dashboard(_parse_args(sys.argv[1:]).inventory)
