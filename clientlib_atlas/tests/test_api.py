"""
clientlib_atlas/tests/test_api.py — Tests for the FastAPI read API.

The app is created with a loader returning the sample inventory, so no file
or network access happens.
"""

import pytest
from fastapi.testclient import TestClient

from clientlib_atlas.api.endpoints import create_app
from clientlib_atlas.errors import InventoryFetchError, InventoryLoadError


@pytest.fixture
def loader_calls() -> dict:
    return {"count": 0}


@pytest.fixture
def client(sample_inventory, loader_calls):
    def loader():
        loader_calls["count"] += 1
        return sample_inventory

    return TestClient(create_app(loader))


def failing_client(exc) -> TestClient:
    def loader():
        raise exc
    return TestClient(create_app(loader))


# ── System ────────────────────────────────────────────────────────────────────

def test_health_does_not_load(client, loader_calls):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.json()["inventory_loaded"] is False
    assert loader_calls["count"] == 0


def test_session_is_reused_across_requests(client, loader_calls):
    client.get("/api/v1/summary")
    client.get("/api/v1/alerts")
    assert loader_calls["count"] == 1


def test_reload_rebuilds_session(client, loader_calls):
    client.get("/api/v1/summary")
    resp = client.post("/api/v1/reload")
    assert resp.status_code == 200
    assert loader_calls["count"] == 2


# ── Inventory ─────────────────────────────────────────────────────────────────

def test_summary(client):
    assert client.get("/api/v1/summary").json() == {
        "totalClientlibs": 6,
        "totalCategories": 5,
        "totalRelations": 4,
        "alertsCount": 6,
    }


def test_clientlibs_filter_and_sort(client):
    data = client.get("/api/v1/clientlibs", params={"sort": "size", "order": "desc"}).json()
    assert data["total"] == 6
    assert data["clientlibs"][0]["path"] == "/apps/site/clientlibs/vendor"

    data = client.get("/api/v1/clientlibs", params={"filter": "widgets"}).json()
    assert data["count"] == 1


def test_clientlibs_bad_sort_is_400(client):
    assert client.get("/api/v1/clientlibs", params={"sort": "name"}).status_code == 400
    assert client.get("/api/v1/clientlibs", params={"order": "up"}).status_code == 400


def test_usages(client):
    data = client.get("/api/v1/usages").json()
    assert data["total_usages"] == 3
    assert data["unused_categories"] == 2
    assert data["usages"][0]["category"] == "site.page"


# ── Analysis ──────────────────────────────────────────────────────────────────

def test_impact_by_path(client):
    resp = client.get("/api/v1/impact", params={"path": "/apps/site/clientlibs/vendor"})
    assert resp.status_code == 200
    data = resp.json()
    assert [d["category"] for d in data["impact"]["direct"]] == ["site.base"]
    assert [d["category"] for d in data["impact"]["indirect"]] == ["site.page", "legacy.all"]
    assert data["retestPlan"]["directCount"] == 1
    assert data["retestPlan"]["safeToChange"] is False


def test_impact_by_categories(client):
    resp = client.get("/api/v1/impact", params=[("category", "site.widgets")])
    data = resp.json()
    assert data["impact"]["direct"][0] == {
        "category": "site.page",
        "type": "embeds",
        "clientlibs": ["/apps/site/clientlibs/page"],
    }


def test_impact_unknown_path_is_404(client):
    assert client.get("/api/v1/impact", params={"path": "/apps/nope"}).status_code == 404


def test_impact_without_target_is_400(client):
    assert client.get("/api/v1/impact").status_code == 400


def test_dependencies_by_path(client):
    data = client.get("/api/v1/dependencies", params={"path": "/apps/site/clientlibs/page"}).json()
    assert [d["category"] for d in data["dependencies"]] == ["site.base", "site.widgets"]


def test_dependencies_unknown_path_is_404(client):
    assert client.get("/api/v1/dependencies", params={"path": "/apps/nope"}).status_code == 404


def test_graph_default_view(client):
    data = client.get("/api/v1/graph").json()
    assert data["mode"] == "all_used"
    assert len(data["nodes"]) == 5
    assert len(data["edges"]) == 4


def test_graph_expanded_view(client):
    data = client.get("/api/v1/graph", params=[("expanded", "site.vendor")]).json()
    assert data["mode"] == "expanded"
    assert data["expanded"] == ["site.vendor"]
    assert [(e["source"], e["target"]) for e in data["edges"]] == [("site.base", "site.vendor")]


def test_graph_hierarchical_layout(client):
    data = client.get("/api/v1/graph", params={"layout": "hierarchical"}).json()
    layer0 = data["layers"][0]
    assert set(layer0) == {"site.page", "legacy.all"}


# ── Reports ───────────────────────────────────────────────────────────────────

def test_alerts(client):
    data = client.get("/api/v1/alerts").json()
    assert data["count"] == 6
    assert data["alerts"][0]["type"] == "CVE"


def test_recommendations(client):
    data = client.get("/api/v1/recommendations").json()
    assert data["count"] == 7
    assert data["recommendations"][0]["priority"] == "CRITICAL"


# ── Loader failures ───────────────────────────────────────────────────────────

def test_fetch_error_is_502():
    resp = failing_client(InventoryFetchError("HTTP 503: Service Unavailable", status=503)).get(
        "/api/v1/summary"
    )
    assert resp.status_code == 502
    assert "503" in resp.json()["detail"]


def test_load_error_is_500():
    resp = failing_client(InventoryLoadError("Inventory file not found: x.json")).get(
        "/api/v1/summary"
    )
    assert resp.status_code == 500
