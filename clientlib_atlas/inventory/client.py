"""
Inventory Client — Fetch the clientlib inventory from the AEM scanning servlet.

GET {host}/bin/myaemproject/clientlibs-inventory?roots=/apps/a&roots=/apps/b

The servlet walks every root, collects clientlib folders, their relations,
usages in JSP/HTL/dialogs and the alerts, and answers with one JSON document.
Authentication is HTTP Basic (author instances only).

Uses only Python stdlib (urllib.request).
"""
import base64
import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from typing import Iterable, Optional

from clientlib_atlas.config import DEFAULT_CONFIG, AtlasConfig
from clientlib_atlas.errors import InventoryFetchError

logger = logging.getLogger(__name__)


def build_inventory_url(
    host: Optional[str],
    scan_roots: Iterable[str] = (),
    config: AtlasConfig = DEFAULT_CONFIG,
) -> str:
    """Build the servlet URL with one `roots` query parameter per non-blank root.

    Args:
        host: Scheme + authority, e.g. "http://localhost:4502". Blank or None
            falls back to config.aem_host.
        scan_roots: Repository paths to scan. Blank entries are dropped.
        config: AtlasConfig providing the default host and servlet path.

    Returns:
        Fully-qualified URL string.
    """
    base_host = (host or "").strip() or config.aem_host
    base_url = f"{base_host.rstrip('/')}{config.servlet_path}"

    params = [("roots", root.strip()) for root in scan_roots if root and root.strip()]
    if not params:
        return base_url
    return f"{base_url}?{urllib.parse.urlencode(params)}"


def _basic_auth_header(user: str, password: str) -> str:
    token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def fetch_inventory(
    host: Optional[str] = None,
    scan_roots: Optional[Iterable[str]] = None,
    user: Optional[str] = None,
    password: Optional[str] = None,
    config: AtlasConfig = DEFAULT_CONFIG,
) -> dict:
    """Fetch the raw inventory payload from the servlet.

    Credentials default to the AEM_USER / AEM_PASSWORD environment variables
    (the CLI loads them from .env). When neither is set, no Authorization
    header is sent.

    Args:
        host: AEM host; None uses config.aem_host.
        scan_roots: Roots to scan; None uses config.default_scan_roots.
        user: Basic-auth user.
        password: Basic-auth password.
        config: AtlasConfig instance.

    Returns:
        Decoded JSON object (pass it to parse_inventory()).

    Raises:
        InventoryFetchError: On a non-2xx status, a network error, or a body
            that is not a JSON object.
    """
    roots = list(scan_roots) if scan_roots is not None else list(config.default_scan_roots)
    url = build_inventory_url(host, roots, config)

    user = user if user is not None else os.environ.get("AEM_USER")
    password = password if password is not None else os.environ.get("AEM_PASSWORD")

    headers = {"Accept": "application/json", "Content-Type": "application/json"}
    if user:
        headers["Authorization"] = _basic_auth_header(user, password or "")

    logger.info("Fetching inventory for %d scan root(s): %s", len(roots), ", ".join(roots))
    logger.debug("Request URL: %s (auth=%s)", url, "yes" if user else "no")

    req = urllib.request.Request(url, headers=headers, method="GET")
    try:
        with urllib.request.urlopen(req, timeout=config.request_timeout_s) as resp:
            body = resp.read()
    except urllib.error.HTTPError as exc:
        raise InventoryFetchError(f"HTTP {exc.code}: {exc.reason}", status=exc.code) from exc
    except urllib.error.URLError as exc:
        raise InventoryFetchError(f"Network error contacting {url}: {exc.reason}") from exc

    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InventoryFetchError(f"Inventory response is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise InventoryFetchError(
            f"Inventory response is a {type(payload).__name__}, expected a JSON object"
        )

    logger.info("Received %d clientlibs.", len(payload.get("clientlibs") or []))
    return payload
