"""
clientlib_atlas/api/endpoints.py — FastAPI read API over one inventory.

The inventory is obtained from an injected loader (a snapshot reader in
production, a fixture in tests), turned into an AtlasSession on first use and
reused across requests. POST /api/v1/reload swaps in a fresh session.

Endpoint summary:
    GET  /api/v1/health            — Liveness probe.
    GET  /api/v1/summary           — Summary counts.
    GET  /api/v1/clientlibs        — Clientlib table (?filter=&sort=&order=).
    GET  /api/v1/usages            — Categories by usage count (?search=).
    GET  /api/v1/impact            — ?path= (full report) or ?category= (repeatable).
    GET  /api/v1/dependencies      — ?path= or ?category=, one hop.
    GET  /api/v1/graph             — Laid-out view (?expanded=&mode=&layout=).
    GET  /api/v1/alerts            — Alerts as sent by the servlet.
    GET  /api/v1/recommendations   — Prioritised action list.
    POST /api/v1/reload            — Re-run the loader and replace the session.
"""

import logging
from typing import Any, Callable, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from clientlib_atlas import __version__
from clientlib_atlas.analysis.impact import CategoryImpact, ImpactResult
from clientlib_atlas.errors import InventoryFetchError, InventoryLoadError
from clientlib_atlas.graph.view import LayoutMode, ViewMode, ViewSelection
from clientlib_atlas.inventory.models import Alert, Clientlib, Inventory
from clientlib_atlas.pipeline import AtlasSession
from clientlib_atlas.reports.tables import (
    SORT_RELATIONS,
    clientlib_table,
    summary_counts,
    usage_stats,
    usage_table,
)

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    inventory_loaded: bool


# ── Serialisation helpers ──────────────────────────────────────────────────────

def clientlib_to_dict(lib: Clientlib) -> dict[str, Any]:
    return {
        "path": lib.path,
        "name": lib.name,
        "categories": list(lib.categories),
        "dependencies": list(lib.dependencies),
        "embed": list(lib.embed),
        "totalKB": lib.total_kb,
        "usesJQuery": lib.uses_jquery,
        "jqueryVersion": lib.jquery_version,
        "libraries": dict(lib.libraries),
    }


def category_impact_to_dict(item: CategoryImpact) -> dict[str, Any]:
    return {
        "category": item.category,
        "type": item.edge_type,
        "clientlibs": [lib.path for lib in item.clientlibs],
    }


def impact_to_dict(impact: ImpactResult) -> dict[str, Any]:
    return {
        "direct": [category_impact_to_dict(i) for i in impact.direct],
        "indirect": [category_impact_to_dict(i) for i in impact.indirect],
        "total": impact.total,
    }


def alert_to_dict(alert: Alert) -> dict[str, Any]:
    return {
        "type": alert.type,
        "level": alert.level,
        "title": alert.title,
        "description": alert.description,
        "impact": alert.impact,
        "action": alert.action,
        "data": alert.data,
        "conflicts": list(alert.conflicts),
    }


def create_app(inventory_loader: Callable[[], Inventory]) -> FastAPI:
    """
    Create the Clientlib Atlas FastAPI application.

    Args:
        inventory_loader: Zero-argument callable returning an Inventory. Called
                          once on first request and again on POST /reload.
                          May raise InventoryFetchError (→ 502) or
                          InventoryLoadError (→ 500).

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Clientlib Atlas API",
        version=__version__,
        description=(
            "Read API over an AEM clientlib inventory: categories, relations, usages, "
            "change impact and a laid-out dependency graph."
        ),
    )

    state: dict[str, Optional[AtlasSession]] = {"session": None}

    def _load() -> AtlasSession:
        try:
            inventory = inventory_loader()
        except InventoryFetchError as exc:
            logger.error("Inventory fetch failed: %s", exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        except InventoryLoadError as exc:
            logger.error("Inventory load failed: %s", exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        session = AtlasSession.from_inventory(inventory)
        state["session"] = session
        return session

    def _session() -> AtlasSession:
        return state["session"] or _load()

    def _categories_for(
        session: AtlasSession,
        path: Optional[str],
        category: Optional[list[str]],
    ) -> list[str]:
        if path:
            lib = session.find_clientlib(path)
            if lib is None:
                raise HTTPException(status_code=404, detail=f"Clientlib '{path}' not found.")
            return list(lib.categories)
        if category:
            return category
        raise HTTPException(status_code=400, detail="Provide either 'path' or 'category'.")

    # ── Routes ────────────────────────────────────────────────────────────────

    @app.get("/api/v1/health", response_model=HealthResponse, tags=["system"])
    async def health() -> dict:
        """Liveness probe — does not trigger an inventory load."""
        return {
            "status": "ok",
            "version": __version__,
            "inventory_loaded": state["session"] is not None,
        }

    @app.post("/api/v1/reload", tags=["system"])
    async def reload() -> dict:
        session = _load()
        return summary_counts(session.inventory)

    @app.get("/api/v1/summary", tags=["inventory"])
    async def get_summary() -> dict:
        return summary_counts(_session().inventory)

    @app.get("/api/v1/clientlibs", tags=["inventory"])
    async def get_clientlibs(
        filter: str = "",
        sort: str = SORT_RELATIONS,
        order: str = "desc",
    ) -> dict:
        """
        Clientlib table, filtered on name/path/category and sorted by
        'relations' or 'size'.

        Raises:
            400: Unknown sort key or order.
        """
        if order not in ("asc", "desc"):
            raise HTTPException(status_code=400, detail="order must be 'asc' or 'desc'.")
        session = _session()
        try:
            df = clientlib_table(session.inventory.clientlibs, filter, sort, order == "desc")
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {
            "total": len(session.inventory.clientlibs),
            "count": len(df),
            "clientlibs": df.to_dict(orient="records"),
        }

    @app.get("/api/v1/usages", tags=["inventory"])
    async def get_usages(search: str = "") -> dict:
        session = _session()
        df = usage_table(session.inventory.usages, search)
        return {
            **usage_stats(session.inventory.usages),
            "usages": df.to_dict(orient="records"),
        }

    @app.get("/api/v1/impact", tags=["analysis"])
    async def get_impact(
        path: Optional[str] = None,
        category: Optional[list[str]] = Query(None),
    ) -> dict:
        """
        Change impact.

        With ?path= the full clientlib report is returned (dependencies,
        direct/indirect impact, re-test plan). With one or more ?category=
        only the impact of those categories is returned.

        Raises:
            400: Neither path nor category given.
            404: Unknown clientlib path.
        """
        session = _session()
        if path:
            report = session.analyze(path)
            if report is None:
                raise HTTPException(status_code=404, detail=f"Clientlib '{path}' not found.")
            plan = report.retest_plan
            return {
                "clientlib": clientlib_to_dict(report.clientlib),
                "categories": list(report.categories),
                "dependencies": [category_impact_to_dict(d) for d in report.dependencies],
                "impact": impact_to_dict(report.impact),
                "retestPlan": {
                    "directCount": plan.direct_count,
                    "indirectCount": plan.indirect_count,
                    "warnEmbeds": plan.warn_embeds,
                    "safeToChange": plan.safe_to_change,
                    "steps": list(plan.steps),
                },
            }

        categories = _categories_for(session, None, category)
        return {"categories": categories, "impact": impact_to_dict(session.impact(categories))}

    @app.get("/api/v1/dependencies", tags=["analysis"])
    async def get_dependencies(
        path: Optional[str] = None,
        category: Optional[list[str]] = Query(None),
    ) -> dict:
        session = _session()
        categories = _categories_for(session, path, category)
        return {
            "categories": categories,
            "dependencies": [category_impact_to_dict(d) for d in session.dependencies(categories)],
        }

    @app.get("/api/v1/graph", tags=["analysis"])
    async def get_graph(
        expanded: Optional[list[str]] = Query(None),
        mode: Optional[ViewMode] = None,
        layout: LayoutMode = LayoutMode.FROM_USAGE,
    ) -> dict:
        """
        Laid-out graph view.

        Without parameters: every relation touching a used category. With
        ?expanded= (repeatable) the view switches to EXPANDED mode unless
        ?mode=all_used asks to add them on top of the used categories.
        """
        expanded_set = frozenset(expanded or ())
        if mode is None:
            mode = ViewMode.EXPANDED if expanded_set else ViewMode.ALL_USED
        selection = ViewSelection(mode=mode, expanded=expanded_set)
        return _session().view(selection, layout).to_dict()

    @app.get("/api/v1/alerts", tags=["reports"])
    async def get_alerts() -> dict:
        alerts = _session().inventory.alerts
        return {"count": len(alerts), "alerts": [alert_to_dict(a) for a in alerts]}

    @app.get("/api/v1/recommendations", tags=["reports"])
    async def get_recommendations() -> dict:
        recs = _session().recommendations()
        return {"count": len(recs), "recommendations": [r.to_dict() for r in recs]}

    logger.info("Clientlib Atlas FastAPI application created with 10 endpoints.")
    return app
