"""
clientlib_atlas/errors.py — Exception hierarchy.

The engine itself never raises on malformed inventory content (unknown
categories, self-loops, duplicates are all tolerated). Only the transport
layer, which fetches or reads the payload, has fatal conditions.
"""


class ClientlibAtlasError(Exception):
    """Base class for every error raised by clientlib_atlas."""


class InventoryFetchError(ClientlibAtlasError):
    """The inventory servlet could not be reached or answered with a non-2xx status."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class InventoryLoadError(ClientlibAtlasError):
    """An inventory file could not be read or is not valid JSON."""
