"""
clientlib_atlas/tests/conftest.py — Shared pytest fixtures for the Clientlib Atlas test suite.

The sample payload mirrors what the scanning servlet returns for a small
site: a project clientlib chain under /apps, a product clientlib under /libs,
a legacy design under /etc, one uncategorised clientlib and one alert of
every known type.

Relations of the sample:

    site.page ──depends──▶ site.base ──depends──▶ site.vendor
        │                     ▲
        └──embeds──▶ site.widgets
                              │
    legacy.all ──depends──────┘ (to site.base)

Used categories: site.page, site.base.

Fixtures:
    sample_payload    — Raw servlet JSON (fresh dict per test).
    sample_inventory  — parse_inventory(sample_payload).
    sample_session    — AtlasSession over sample_inventory.
    aem_host          — AEM host from AEM_HOST env var (or None).
"""

import copy
import os

import pytest

from clientlib_atlas.inventory.models import parse_inventory
from clientlib_atlas.pipeline import AtlasSession


# ── Pytest configuration hooks ────────────────────────────────────────────────

def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "integration: needs a live AEM author (AEM_HOST); skipped unless "
        "--run-integration or -m integration is given",
    )


def pytest_addoption(parser):
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Also run tests that call the live inventory servlet.",
    )


def pytest_collection_modifyitems(config, items):
    """Mark integration tests as skipped for ordinary offline runs."""
    wanted = config.getoption("--run-integration") or "integration" in config.getoption("-m", default="")
    if wanted:
        return
    skip = pytest.mark.skip(reason="live AEM test: use --run-integration or -m integration")
    for item in (i for i in items if "integration" in i.keywords):
        item.add_marker(skip)


# ── Sample inventory ──────────────────────────────────────────────────────────

SAMPLE_PAYLOAD = {
    "clientlibs": [
        {
            "path": "/apps/site/clientlibs/base",
            "name": "base",
            "categories": ["site.base"],
            "dependencies": ["site.vendor"],
            "embed": [],
            "totalKB": 12.5,
            "usesJQuery": True,
            "jqueryVersion": "3.6.0",
        },
        {
            "path": "/apps/site/clientlibs/vendor",
            "name": "vendor",
            "categories": ["site.vendor"],
            "dependencies": [],
            "embed": [],
            "totalKB": 80,
            "usesJQuery": True,
            "jqueryInfo": {"libraries": {"jquery": "3.6.0", "lodash": "4.17.21"}},
        },
        {
            "path": "/apps/site/clientlibs/page",
            "name": "page",
            "categories": ["site.page"],
            "dependencies": ["site.base"],
            "embed": ["site.widgets"],
            "totalKB": 5,
        },
        {
            "path": "/libs/clientlibs/widgets",
            "name": "widgets",
            "categories": ["site.widgets"],
            "totalKB": 30,
        },
        {
            "path": "/etc/designs/legacy/clientlibs",
            "name": "clientlibs",
            "categories": ["legacy.all"],
            "dependencies": ["site.base"],
            "totalKB": 3,
        },
        {
            "path": "/apps/site/clientlibs/orphan",
            "name": "orphan",
            "categories": [],
            "totalKB": 1,
        },
    ],
    "relations": [
        {"from": "site.base", "to": "site.vendor", "type": "depends"},
        {"from": "site.page", "to": "site.base", "type": "depends"},
        {"from": "site.page", "to": "site.widgets", "type": "embeds"},
        {"from": "legacy.all", "to": "site.base", "type": "depends"},
    ],
    "usages": {
        "site.page": [
            {"type": "HTL", "path": "/apps/site/components/page/customheaderlibs.html"},
            {"type": "DIALOG", "path": "/apps/site/components/hero/_cq_dialog"},
        ],
        "site.base": [
            {"type": "JSP", "path": "/apps/site/components/legacy/head.jsp"},
        ],
        "legacy.all": [],
        "site.widgets": [],
    },
    "alerts": [
        {
            "type": "CVE",
            "level": "CRITICAL",
            "title": "jQuery 1.12.4 vulnerable",
            "data": {"library": "jquery", "version": "1.12.4", "cveId": "CVE-2020-11022"},
        },
        {
            "type": "JQUERY_CONFLICT",
            "level": "CRITICAL",
            "title": "Several jQuery versions",
            "data": {"versions": ["1.12.4", "3.6.0"]},
            "conflicts": [{"category": "site.page", "versions": ["1.12.4", "3.6.0"]}],
        },
        {
            "type": "CIRCULAR_DEPENDENCY",
            "level": "HIGH",
            "title": "Circular dependencies",
            "data": [["site.a", "site.b"]],
        },
        {
            "type": "NO_CATEGORY",
            "level": "HIGH",
            "title": "Clientlibs without category",
            "data": ["/apps/site/clientlibs/orphan"],
        },
        {
            "type": "DUPLICATES",
            "level": "MEDIUM",
            "title": "Duplicated files",
            "data": [{"checksum": "9a0364b9", "paths": ["/apps/a/js/x.js", "/apps/b/js/x.js"]}],
        },
        {
            "type": "EMBED_RISK",
            "level": "MEDIUM",
            "title": "Embedded several times",
            "data": [{"embeddedCategory": "site.widgets", "embeddedBy": ["site.page", "site.blog"]}],
        },
    ],
    "summary": {
        "totalClientlibs": 6,
        "totalCategories": 5,
        "totalRelations": 4,
        "alertsCount": 6,
    },
}


@pytest.fixture
def sample_payload() -> dict:
    """Raw servlet payload; a deep copy so tests may mutate it."""
    return copy.deepcopy(SAMPLE_PAYLOAD)


@pytest.fixture
def sample_inventory(sample_payload):
    return parse_inventory(sample_payload)


@pytest.fixture
def sample_session(sample_inventory) -> AtlasSession:
    return AtlasSession.from_inventory(sample_inventory)


@pytest.fixture(scope="session")
def aem_host():
    """AEM host for integration tests, or None when AEM_HOST is not set."""
    return os.environ.get("AEM_HOST")
