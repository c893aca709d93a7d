"""
clientlib_atlas/config.py — All tunable parameters for Clientlib Atlas.

Layout spacing, traversal bounds, search limits and servlet coordinates all
live here so that a calibration change is a single-file diff. Credentials are
never stored here; they come from AEM_USER / AEM_PASSWORD in the environment.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class AtlasConfig:
    """
    Immutable configuration for the inventory engine and its surfaces.

    Override by constructing a new AtlasConfig with the desired values.
    """

    # ── Graph layout ──────────────────────────────────────────────────────────
    horizontal_spacing: float = 250.0
    # Distance between two nodes of the same layer along the x axis.

    vertical_spacing: float = 150.0
    # Distance between consecutive layers along the y axis.

    start_x: float = 100.0
    start_y: float = 100.0
    # Origin: every layer is centred on start_x; layer 0 sits at start_y.

    layer_skew: float = 50.0
    # Extra x offset per layer depth. Shifts deeper layers to the right so
    # that edges between aligned columns do not overlap vertically.

    max_layers: int = 10
    # Upper bound on BFS layers. Nodes not reached within this many layers
    # are collected into one overflow layer placed after the last BFS layer.

    fallback_root_count: int = 5
    # When no visible node is used by a template/dialog, the layout starts
    # from this many nodes with the highest in-degree.

    hierarchical_fallback_root_count: int = 3
    # Hierarchical layout: when every node has an incoming edge (pure cycle),
    # start from this many nodes with the highest out-degree.

    # ── Search / autocomplete ─────────────────────────────────────────────────
    search_result_limit: int = 20
    # Maximum clientlibs returned by search_clientlibs().

    suggestion_used_limit: int = 10
    # Maximum used categories listed in the category suggestion box.

    suggestion_other_limit: int = 5
    # Maximum unused categories listed, further capped so that the box
    # never exceeds suggestion_used_limit entries in total.

    # ── Inventory servlet ─────────────────────────────────────────────────────
    aem_host: str = "http://localhost:4502"
    # Author instance used when no host is passed explicitly.

    servlet_path: str = "/bin/myaemproject/clientlibs-inventory"
    # Path of the scanning servlet that returns the inventory JSON.

    default_scan_roots: tuple[str, ...] = field(
        default=("/apps/ca/npc", "/apps/settings/wcm/designs/ca")
    )
    # Repository roots scanned when the caller does not provide any.

    request_timeout_s: float = 30.0
    # Socket timeout for the inventory request. Full /apps,/etc,/libs scans
    # are slow on large instances; raise this rather than retrying.


# Singleton default: import this everywhere instead of constructing anew.
DEFAULT_CONFIG = AtlasConfig()
