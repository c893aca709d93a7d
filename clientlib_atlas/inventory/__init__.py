"""
clientlib_atlas.inventory — Inventory payload model, loading and fetching.

Modules:
    models  — Clientlib / Relation / Usage / Alert / Inventory + parse_inventory().
    loader  — Read and write JSON snapshots.
    client  — Fetch the payload from the AEM scanning servlet.
"""

from clientlib_atlas.inventory.models import (
    EDGE_DEPENDS,
    EDGE_EMBEDS,
    Alert,
    Clientlib,
    Inventory,
    Relation,
    Usage,
    parse_inventory,
)
