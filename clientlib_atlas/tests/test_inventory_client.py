"""
Unit tests for clientlib_atlas.inventory (servlet client and snapshot loader).

All tests are fully offline: urllib.request.urlopen is monkeypatched.
Tests cover URL building, authentication, error mapping and JSON round trip
through a snapshot file.
"""

import base64
import io
import json
import urllib.error
import urllib.parse

import pytest

from clientlib_atlas.config import AtlasConfig
from clientlib_atlas.errors import ClientlibAtlasError, InventoryFetchError, InventoryLoadError
from clientlib_atlas.inventory.client import build_inventory_url, fetch_inventory
from clientlib_atlas.inventory.loader import load_inventory_file, save_inventory_payload


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------

class FakeResponse:
    def __init__(self, body: bytes):
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def captured(monkeypatch):
    """Patch urlopen to answer with `captured['body']` and record the request."""
    state = {"body": b"{}", "request": None, "timeout": None}

    def fake_urlopen(req, timeout=None):
        state["request"] = req
        state["timeout"] = timeout
        return FakeResponse(state["body"])

    monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
    monkeypatch.delenv("AEM_USER", raising=False)
    monkeypatch.delenv("AEM_PASSWORD", raising=False)
    return state


def raise_on_open(exc):
    def fake_urlopen(req, timeout=None):
        raise exc
    return fake_urlopen


# ---------------------------------------------------------------------------
# URL building
# ---------------------------------------------------------------------------

def test_url_has_one_roots_param_per_root():
    url = build_inventory_url("http://aem:4502", ["/apps/a", " ", "/apps/b"])
    parsed = urllib.parse.urlparse(url)
    assert parsed.path == "/bin/myaemproject/clientlibs-inventory"
    assert urllib.parse.parse_qs(parsed.query)["roots"] == ["/apps/a", "/apps/b"]


def test_url_without_roots_has_no_query():
    assert build_inventory_url("http://aem:4502/", []) == (
        "http://aem:4502/bin/myaemproject/clientlibs-inventory"
    )


def test_url_falls_back_to_configured_host():
    config = AtlasConfig(aem_host="https://author.example.com")
    assert build_inventory_url(None, [], config).startswith("https://author.example.com/bin/")


# ---------------------------------------------------------------------------
# fetch_inventory
# ---------------------------------------------------------------------------

def test_fetch_returns_payload(captured, sample_payload):
    captured["body"] = json.dumps(sample_payload).encode("utf-8")
    payload = fetch_inventory(host="http://aem:4502", scan_roots=["/apps/site"])
    assert payload == sample_payload
    assert captured["timeout"] == pytest.approx(30.0)


def test_fetch_uses_default_roots(captured):
    fetch_inventory(host="http://aem:4502")
    query = urllib.parse.urlparse(captured["request"].full_url).query
    assert urllib.parse.parse_qs(query)["roots"] == ["/apps/ca/npc", "/apps/settings/wcm/designs/ca"]


def test_fetch_sends_basic_auth(captured):
    fetch_inventory(host="http://aem:4502", user="admin", password="admin")
    header = captured["request"].get_header("Authorization")
    assert header == "Basic " + base64.b64encode(b"admin:admin").decode("ascii")


def test_fetch_reads_credentials_from_environment(captured, monkeypatch):
    monkeypatch.setenv("AEM_USER", "reader")
    monkeypatch.setenv("AEM_PASSWORD", "secret")
    fetch_inventory(host="http://aem:4502")
    header = captured["request"].get_header("Authorization")
    assert header == "Basic " + base64.b64encode(b"reader:secret").decode("ascii")


def test_fetch_without_credentials_sends_no_auth(captured):
    fetch_inventory(host="http://aem:4502")
    assert captured["request"].get_header("Authorization") is None


def test_http_error_maps_to_fetch_error(monkeypatch):
    err = urllib.error.HTTPError(
        "http://aem:4502/bin/x", 401, "Unauthorized", hdrs=None, fp=io.BytesIO(b"")
    )
    monkeypatch.setattr("urllib.request.urlopen", raise_on_open(err))
    with pytest.raises(InventoryFetchError) as info:
        fetch_inventory(host="http://aem:4502")
    assert str(info.value) == "HTTP 401: Unauthorized"
    assert info.value.status == 401


def test_network_error_maps_to_fetch_error(monkeypatch):
    monkeypatch.setattr("urllib.request.urlopen",
                        raise_on_open(urllib.error.URLError("connection refused")))
    with pytest.raises(InventoryFetchError) as info:
        fetch_inventory(host="http://aem:4502")
    assert info.value.status is None
    assert isinstance(info.value, ClientlibAtlasError)


def test_invalid_json_maps_to_fetch_error(captured):
    captured["body"] = b"<html>login</html>"
    with pytest.raises(InventoryFetchError):
        fetch_inventory(host="http://aem:4502")


def test_non_object_json_maps_to_fetch_error(captured):
    captured["body"] = b"[1, 2]"
    with pytest.raises(InventoryFetchError):
        fetch_inventory(host="http://aem:4502")


# ---------------------------------------------------------------------------
# Snapshot files
# ---------------------------------------------------------------------------

def test_snapshot_round_trip(tmp_path, sample_payload):
    path = tmp_path / "snap" / "inventory.json"
    save_inventory_payload(sample_payload, str(path))
    inventory = load_inventory_file(str(path))
    assert len(inventory.clientlibs) == 6
    assert len(inventory.relations) == 4


def test_missing_snapshot_raises_load_error(tmp_path):
    with pytest.raises(InventoryLoadError):
        load_inventory_file(str(tmp_path / "missing.json"))


def test_invalid_snapshot_raises_load_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(InventoryLoadError):
        load_inventory_file(str(path))


# ---------------------------------------------------------------------------
# Live instance
# ---------------------------------------------------------------------------

@pytest.mark.integration
def test_live_servlet_answers(aem_host):
    """Requires AEM_HOST (and AEM_USER / AEM_PASSWORD) pointing at an author instance."""
    if not aem_host:
        pytest.skip("AEM_HOST not set")
    payload = fetch_inventory(host=aem_host)
    assert "clientlibs" in payload
