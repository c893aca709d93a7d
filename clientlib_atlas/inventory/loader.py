"""
clientlib_atlas/inventory/loader.py — Load an inventory snapshot from disk.

Saved snapshots are the raw servlet JSON (see `clientlib-atlas fetch --output`).
"""

import json
import logging
import os

from clientlib_atlas.errors import InventoryLoadError
from clientlib_atlas.inventory.models import Inventory, parse_inventory

logger = logging.getLogger(__name__)


def load_inventory_file(path: str) -> Inventory:
    """
    Read and parse a JSON inventory snapshot.

    Raises:
        InventoryLoadError: If the file is missing, unreadable or not valid JSON.
    """
    logger.info("Loading inventory from: %s", path)
    try:
        with open(path, encoding="utf-8") as fh:
            payload = json.load(fh)
    except FileNotFoundError as exc:
        raise InventoryLoadError(f"Inventory file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise InventoryLoadError(f"Inventory file is not valid JSON: {path} ({exc})") from exc
    except OSError as exc:
        raise InventoryLoadError(f"Cannot read inventory file {path}: {exc}") from exc

    return parse_inventory(payload)


def save_inventory_payload(payload: dict, path: str) -> None:
    """Write a raw servlet payload to disk so it can be reloaded offline."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)
    logger.info("Inventory payload saved to: %s", path)
