"""
clientlib_atlas/tests/test_cli.py — Tests for the command-line interface.

Commands run against a snapshot written to tmp_path; `fetch` uses a
monkeypatched transport.
"""

import json
import os

import pytest

from clientlib_atlas import cli
from clientlib_atlas.errors import InventoryFetchError
from clientlib_atlas.inventory.loader import save_inventory_payload


@pytest.fixture
def snapshot(tmp_path, sample_payload) -> str:
    path = tmp_path / "inventory.json"
    save_inventory_payload(sample_payload, str(path))
    return str(path)


def run(*argv: str) -> int:
    return cli.main(["--env-file", "/nonexistent/.env", "--log-level", "WARNING", *argv])


# ── Parser ────────────────────────────────────────────────────────────────────

def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_parser_collects_repeated_roots():
    args = cli.build_parser().parse_args(
        ["fetch", "--root", "/apps/a", "--root", "/apps/b", "--output", "x.json"]
    )
    assert args.roots == ["/apps/a", "/apps/b"]


# ── .env loading ──────────────────────────────────────────────────────────────

def test_load_dotenv_does_not_override(tmp_path, monkeypatch):
    env = tmp_path / ".env"
    env.write_text('# creds\nAEM_USER="reader"\nAEM_PASSWORD=secret\n', encoding="utf-8")
    monkeypatch.setenv("AEM_PASSWORD", "from-env")
    # recorded for teardown
    monkeypatch.setenv("AEM_USER", "")
    monkeypatch.delenv("AEM_USER")

    loaded = cli._load_dotenv(str(env))
    assert loaded == {"AEM_USER": "reader"}
    assert os.environ["AEM_USER"] == "reader"
    assert os.environ["AEM_PASSWORD"] == "from-env"


# ── Commands ──────────────────────────────────────────────────────────────────

def test_summary(snapshot, capsys):
    assert run("summary", "--inventory", snapshot) == 0
    out = capsys.readouterr().out
    assert "Clientlibs         : 6" in out
    assert "Unused categories  : 2" in out


def test_impact_by_path_json(snapshot, capsys):
    assert run("impact", "--inventory", snapshot, "--path", "/apps/site/clientlibs/vendor", "--json") == 0
    data = json.loads(capsys.readouterr().out)
    assert data["direct"] == ["site.base"]
    assert data["indirect"] == ["site.page", "legacy.all"]


def test_impact_by_category(snapshot, capsys):
    assert run("impact", "--inventory", snapshot, "--category", "site.widgets") == 0
    assert "site.page (embeds)" in capsys.readouterr().out


def test_impact_unknown_path_fails(snapshot):
    assert run("impact", "--inventory", snapshot, "--path", "/apps/nope") == 1


def test_impact_without_target_fails(snapshot):
    assert run("impact", "--inventory", snapshot) == 1


def test_missing_snapshot_fails(tmp_path):
    assert run("summary", "--inventory", str(tmp_path / "missing.json")) == 1


def test_graph_json_export(snapshot, tmp_path):
    out = tmp_path / "graph.json"
    assert run("graph", "--inventory", snapshot, "--expanded", "site.vendor", "--only",
               "--output", str(out)) == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["mode"] == "expanded"
    assert len(data["edges"]) == 1


def test_graph_png_export(snapshot, tmp_path):
    out = tmp_path / "graph.png"
    assert run("graph", "--inventory", snapshot, "--format", "png", "--output", str(out)) == 0
    assert out.exists()


def test_graph_html_requires_output(snapshot):
    assert run("graph", "--inventory", snapshot, "--format", "html") == 1


def test_recommend_markdown(snapshot, tmp_path):
    out = tmp_path / "recommendations.md"
    assert run("recommend", "--inventory", snapshot, "--output", str(out)) == 0
    assert "## CRITICAL" in out.read_text(encoding="utf-8")


def test_fetch_saves_payload(monkeypatch, tmp_path, sample_payload):
    monkeypatch.setattr(
        "clientlib_atlas.inventory.client.fetch_inventory",
        lambda host=None, scan_roots=None, **kwargs: sample_payload,
    )
    out = tmp_path / "fetched.json"
    assert run("fetch", "--host", "http://aem:4502", "--output", str(out)) == 0
    assert json.loads(out.read_text(encoding="utf-8")) == sample_payload


def test_fetch_error_exit_code(monkeypatch, tmp_path):
    def boom(**kwargs):
        raise InventoryFetchError("HTTP 401: Unauthorized", status=401)

    monkeypatch.setattr("clientlib_atlas.inventory.client.fetch_inventory", boom)
    assert run("fetch", "--output", str(tmp_path / "x.json")) == 1
    assert not (tmp_path / "x.json").exists()
