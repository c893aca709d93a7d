"""
clientlib_atlas/inventory/models.py — Inventory payload model and lenient parser.

The scanning servlet returns one JSON document per scan:

    {
      "clientlibs": [{path, name, categories, dependencies, embed, totalKB,
                      usesJQuery, jqueryVersion, jqueryInfo: {libraries}}],
      "relations":  [{from, to, type}],          # type: depends | embeds
      "usages":     {category: [{type, path}]},  # type: JSP | HTL | DIALOG ...
      "alerts":     [{type, level, title, description, impact, action,
                      data, conflicts}],
      "summary":    {totalClientlibs, totalCategories, totalRelations, alertsCount}
    }

Any missing or null field is read as an empty collection. Individual malformed
entries are skipped with a warning; a bad row never fails the whole load.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

EDGE_DEPENDS = "depends"
EDGE_EMBEDS = "embeds"

ALERT_LEVELS = ("CRITICAL", "HIGH", "MEDIUM", "INFO")


@dataclass(frozen=True)
class Clientlib:
    """
    One clientlib folder of the repository, identified by its JCR path.

    Fields:
        path:           Unique repository path (identity).
        name:           Node name of the clientlib folder.
        categories:     Categories the clientlib is published under (may be empty).
        dependencies:   Categories declared in the `dependencies` property, in order.
        embed:          Categories declared in the `embed` property, in order.
        total_kb:       Total size of the JS/CSS sources in KB.
        uses_jquery:    True if the sources reference jQuery.
        jquery_version: Detected jQuery version, None when unknown.
        libraries:      Third-party libraries detected in the sources (name → version).
    """

    path: str
    name: str = ""
    categories: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    embed: tuple[str, ...] = ()
    total_kb: float = 0.0
    uses_jquery: bool = False
    jquery_version: Optional[str] = None
    libraries: dict[str, str] = field(default_factory=dict, hash=False, compare=False)

    @property
    def relation_count(self) -> int:
        return len(self.dependencies) + len(self.embed)


@dataclass(frozen=True)
class Relation:
    """Directed edge: `source` requires `target` (payload keys `from` / `to`)."""

    source: str
    target: str
    edge_type: str = EDGE_DEPENDS


@dataclass(frozen=True)
class Usage:
    """A template, component script or dialog that includes a category."""

    type: str
    path: str


@dataclass(frozen=True)
class Alert:
    """
    A curated alert computed by the scanner. The engine only renders these.

    `data` is alert-type specific (list of cycles, duplicate groups, CVE record...)
    and is passed through untouched.
    """

    type: str
    level: str
    title: str = ""
    description: str = ""
    impact: str = ""
    action: str = ""
    data: Any = None
    conflicts: tuple[dict, ...] = ()


@dataclass(frozen=True)
class Inventory:
    """
    Root aggregate of one scan. Built once, read-only, replaced wholesale on reload.
    """

    clientlibs: tuple[Clientlib, ...] = ()
    relations: tuple[Relation, ...] = ()
    usages: dict[str, tuple[Usage, ...]] = field(default_factory=dict, hash=False, compare=False)
    alerts: tuple[Alert, ...] = ()
    summary: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def usages_for(self, category: str) -> tuple[Usage, ...]:
        """Return the usages of a category; a category never observed has none."""
        return self.usages.get(category, ())

    def find_clientlib(self, path: str) -> Optional[Clientlib]:
        """Return the clientlib with this exact path, or None."""
        for lib in self.clientlibs:
            if lib.path == path:
                return lib
        return None


# ── Parsing ───────────────────────────────────────────────────────────────────

def _as_list(value: Any) -> list:
    """Read null/absent as empty; wrap a lone scalar; pass sequences through."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        return [value]
    return []


def _as_str_tuple(value: Any) -> tuple[str, ...]:
    return tuple(str(v) for v in _as_list(value) if v is not None and str(v) != "")


def _as_float(value: Any, context: str) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Non-numeric size %r on %s — using 0.", value, context)
        return 0.0


def _as_bool(value: Any, context: str) -> bool:
    """Only a JSON boolean counts; strings such as "false" are not coerced."""
    if value is None or isinstance(value, bool):
        return bool(value)
    logger.warning("Non-boolean flag %r on %s, treated as false.", value, context)
    return False


def parse_clientlib(raw: Mapping) -> Optional[Clientlib]:
    """Build a Clientlib from one payload entry. Returns None if it has no path."""
    path = str(raw.get("path") or "").strip()
    if not path:
        logger.warning("Skipping clientlib entry without a path: %r", dict(raw))
        return None

    jquery_info = raw.get("jqueryInfo") or {}
    libraries = jquery_info.get("libraries") if isinstance(jquery_info, Mapping) else None
    if not isinstance(libraries, Mapping):
        libraries = {}

    jquery_version = raw.get("jqueryVersion")
    return Clientlib(
        path=path,
        name=str(raw.get("name") or ""),
        categories=_as_str_tuple(raw.get("categories")),
        dependencies=_as_str_tuple(raw.get("dependencies")),
        embed=_as_str_tuple(raw.get("embed")),
        total_kb=_as_float(raw.get("totalKB"), path),
        uses_jquery=_as_bool(raw.get("usesJQuery"), path),
        jquery_version=str(jquery_version) if jquery_version else None,
        libraries={str(k): str(v) for k, v in libraries.items()},
    )


def parse_relation(raw: Mapping) -> Optional[Relation]:
    """Build a Relation. Self-loops and unknown types are kept verbatim."""
    source = raw.get("from")
    target = raw.get("to")
    if not source or not target:
        logger.warning("Skipping relation without both endpoints: %r", dict(raw))
        return None
    return Relation(
        source=str(source),
        target=str(target),
        edge_type=str(raw.get("type") or EDGE_DEPENDS),
    )


def parse_usages(raw: Any) -> dict[str, tuple[Usage, ...]]:
    """Parse the usage map. Categories with an empty list are kept (known but unused)."""
    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.warning("Ignoring usages of type %s (expected an object).", type(raw).__name__)
        return {}

    usages: dict[str, tuple[Usage, ...]] = {}
    for category, entries in raw.items():
        parsed: list[Usage] = []
        for entry in _as_list(entries):
            if not isinstance(entry, Mapping):
                logger.debug("Skipping non-object usage under %s: %r", category, entry)
                continue
            parsed.append(Usage(
                type=str(entry.get("type") or ""),
                path=str(entry.get("path") or ""),
            ))
        usages[str(category)] = tuple(parsed)
    return usages


def parse_alert(raw: Mapping) -> Alert:
    level = str(raw.get("level") or "INFO").upper()
    if level not in ALERT_LEVELS:
        logger.debug("Unknown alert level %r — rendering as INFO.", level)
        level = "INFO"
    conflicts = tuple(c for c in _as_list(raw.get("conflicts")) if isinstance(c, Mapping))
    return Alert(
        type=str(raw.get("type") or ""),
        level=level,
        title=str(raw.get("title") or ""),
        description=str(raw.get("description") or ""),
        impact=str(raw.get("impact") or ""),
        action=str(raw.get("action") or ""),
        data=raw.get("data"),
        conflicts=tuple(dict(c) for c in conflicts),
    )


def parse_inventory(payload: Optional[Mapping]) -> Inventory:
    """
    Convert a raw inventory payload (decoded JSON) into an Inventory.

    Args:
        payload: Decoded JSON object. None is accepted and yields an empty
                 inventory.

    Returns:
        Inventory with every collection populated (possibly empty).

    Notes:
        - Absent and null fields are empty collections, never a fault.
        - Non-object entries and relations missing an endpoint are skipped
          with a warning.
        - Relations are not deduplicated: parallel edges of different kinds
          between the same pair are meaningful.
    """
    if payload is None:
        return Inventory()
    if not isinstance(payload, Mapping):
        logger.warning("Inventory payload is a %s, not an object — treating as empty.",
                       type(payload).__name__)
        return Inventory()

    clientlibs: list[Clientlib] = []
    for raw in _as_list(payload.get("clientlibs")):
        if not isinstance(raw, Mapping):
            logger.warning("Skipping non-object clientlib entry: %r", raw)
            continue
        lib = parse_clientlib(raw)
        if lib is not None:
            clientlibs.append(lib)

    relations: list[Relation] = []
    for raw in _as_list(payload.get("relations")):
        if not isinstance(raw, Mapping):
            logger.warning("Skipping non-object relation entry: %r", raw)
            continue
        rel = parse_relation(raw)
        if rel is not None:
            relations.append(rel)

    alerts = [parse_alert(raw) for raw in _as_list(payload.get("alerts")) if isinstance(raw, Mapping)]

    summary = payload.get("summary")
    inventory = Inventory(
        clientlibs=tuple(clientlibs),
        relations=tuple(relations),
        usages=parse_usages(payload.get("usages")),
        alerts=tuple(alerts),
        summary=dict(summary) if isinstance(summary, Mapping) else {},
    )

    logger.info(
        "Parsed inventory: %d clientlibs, %d relations, %d usage categories, %d alerts.",
        len(inventory.clientlibs),
        len(inventory.relations),
        len(inventory.usages),
        len(inventory.alerts),
    )
    return inventory
