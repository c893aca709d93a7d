"""
clientlib_atlas/reports/recommendations.py — Prioritised action list.

Turns the alerts raised by the scanning servlet into concrete recommendations,
ordered CRITICAL → HIGH → MEDIUM → INFO:

    CRITICAL  CVE               one update action per vulnerable library
    CRITICAL  JQUERY_CONFLICT   consolidate / isolate / analyse
    HIGH      CIRCULAR_DEPENDENCY  one refactor action per cycle
    HIGH      NO_CATEGORY       clean up uncategorised clientlibs
    MEDIUM    DUPLICATES        one consolidate action per checksum
    MEDIUM    EMBED_RISK        one refactor action per multiply-embedded category
    INFO      (usages)          audit categories nobody references

An alert contributes only when both its type and its level match the table
above; CVE alerts are aggregated, every other type uses the first match.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional

from clientlib_atlas.inventory.models import Alert, Inventory

logger = logging.getLogger(__name__)

PRIORITY_ORDER = ("CRITICAL", "HIGH", "MEDIUM", "INFO")
UNUSED_PREVIEW_COUNT = 3


@dataclass(frozen=True)
class Recommendation:
    """
    One recommendation card.

    Fields:
        id:          Stable slug, e.g. "cve-updates".
        priority:    CRITICAL | HIGH | MEDIUM | INFO.
        title:       Headline including the affected count.
        description: What was detected.
        impact:      What happens if nothing is done.
        actions:     Action dicts; each has "type" and "suggestion" plus
                     type-specific keys (library, cycle, paths, ...).
        effort:      Low | Medium | High.
        benefit:     Benefit label, e.g. "Critical - Security".
        conflicts:   jQuery conflict details, passed through from the alert.
    """

    id: str
    priority: str
    title: str
    description: str
    impact: str
    actions: tuple[dict, ...] = ()
    effort: str = ""
    benefit: str = ""
    conflicts: tuple[dict, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "priority": self.priority,
            "title": self.title,
            "description": self.description,
            "impact": self.impact,
            "actions": list(self.actions),
            "effort": self.effort,
            "benefit": self.benefit,
            "conflicts": list(self.conflicts),
        }


def _first(alerts: list[Alert], alert_type: str, level: str) -> Optional[Alert]:
    return next((a for a in alerts if a.type == alert_type and a.level == level), None)


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _data(alert: Alert) -> dict:
    return alert.data if isinstance(alert.data, dict) else {}


# ── Per-alert builders ───────────────────────────────────────────────────────

def _cve_recommendation(cves: list[Alert]) -> Recommendation:
    actions = []
    for cve in cves:
        data = _data(cve)
        library = data.get("library", "")
        version = data.get("version", "")
        cve_id = data.get("cveId", "")
        actions.append({
            "type": "update",
            "library": library,
            "current_version": version,
            "issue": cve_id,
            "suggestion": f"Update {library} {version} to fix {cve_id}",
        })
    return Recommendation(
        id="cve-updates",
        priority="CRITICAL",
        title=f"{len(cves)} security vulnerabilities (CVEs)",
        description="Known vulnerabilities were detected in third-party libraries.",
        impact="Major security risk for the application",
        actions=tuple(actions),
        effort="Medium",
        benefit="Critical - Security",
    )


def _jquery_recommendation(alert: Alert) -> Recommendation:
    versions = [str(v) for v in _as_list(_data(alert).get("versions"))]
    return Recommendation(
        id="jquery-conflicts",
        priority="CRITICAL",
        title=f"jQuery conflicts - {len(versions)} versions detected",
        description=f"The application loads jQuery {', '.join(versions)} at the same time.",
        impact="JavaScript errors, broken features, $ and jQuery clashes",
        actions=(
            {
                "type": "consolidate",
                "suggestion": "Option 1 (recommended): migrate every clientlib to the "
                              "latest stable jQuery",
            },
            {
                "type": "isolate",
                "suggestion": "Option 2: use jQuery.noConflict() and wrap scripts in IIFEs",
            },
            {
                "type": "analyze",
                "suggestion": "Option 3: trace dependencies to find which version each "
                              "component needs",
            },
        ),
        effort="High",
        benefit="Critical - Stability",
        conflicts=alert.conflicts,
    )


def _cycle_recommendation(alert: Alert) -> Recommendation:
    cycles = [_as_list(c) for c in _as_list(alert.data)]
    actions = tuple(
        {
            "type": "refactor",
            "cycle": cycle,
            "suggestion": f"Cycle {i}: {' → '.join(map(str, cycle))} → ... "
                          f"Extract the shared dependencies into a separate clientlib",
        }
        for i, cycle in enumerate(cycles, start=1)
    )
    return Recommendation(
        id="circular-deps",
        priority="HIGH",
        title=f"{len(cycles)} circular dependencies",
        description="Dependency cycles were detected; load order is unpredictable.",
        impact="Unpredictable load order, possible initialisation errors",
        actions=actions,
        effort="Medium",
        benefit="High - Maintainability",
    )


def _no_category_recommendation(alert: Alert) -> Recommendation:
    paths = [str(p) for p in _as_list(alert.data)]
    return Recommendation(
        id="unused-clientlibs",
        priority="HIGH",
        title=f"{len(paths)} clientlibs without category (obsolete)",
        description="These clientlibs publish no category and cannot be referenced.",
        impact="Dead code, needless complexity, wasted build time",
        actions=(
            {
                "type": "cleanup",
                "suggestion": f"Review and delete the {len(paths)} obsolete clientlibs",
                "paths": paths,
            },
        ),
        effort="Low",
        benefit="Medium - Cleanup",
    )


def _duplicates_recommendation(alert: Alert) -> Recommendation:
    duplicates = [d for d in _as_list(alert.data) if isinstance(d, dict)]
    actions = []
    for dup in duplicates:
        paths = _as_list(dup.get("paths"))
        actions.append({
            "type": "consolidate",
            "checksum": dup.get("checksum", ""),
            "paths": paths,
            "suggestion": f"Consolidate {len(paths)} identical files into one shared clientlib",
        })
    return Recommendation(
        id="duplicate-files",
        priority="MEDIUM",
        title=f"{len(duplicates)} duplicated files",
        description="Identical files (same checksum) exist in several clientlibs.",
        impact="Larger payload, wasted bandwidth",
        actions=tuple(actions),
        effort="Medium",
        benefit="Medium - Performance",
    )


def _embed_recommendation(alert: Alert) -> Recommendation:
    warnings = [w for w in _as_list(alert.data) if isinstance(w, dict)]
    actions = []
    for warn in warnings:
        category = warn.get("embeddedCategory", "")
        embedded_by = _as_list(warn.get("embeddedBy"))
        actions.append({
            "type": "refactor",
            "category": category,
            "embedded_by": embedded_by,
            "suggestion": f'"{category}" is embedded by {len(embedded_by)} clientlibs. '
                          f"Consider 'dependencies' instead of 'embed'",
        })
    return Recommendation(
        id="embed-duplication",
        priority="MEDIUM",
        title=f"{len(warnings)} duplication risks through embed",
        description="Some categories are embedded by several parents, duplicating their code.",
        impact="Duplicated code, larger payload, harder maintenance",
        actions=tuple(actions),
        effort="Low",
        benefit="Medium - Optimisation",
    )


def _unused_categories_recommendation(unused: list[str]) -> Recommendation:
    preview = ", ".join(unused[:UNUSED_PREVIEW_COUNT])
    if len(unused) > UNUSED_PREVIEW_COUNT:
        preview += "..."
    return Recommendation(
        id="unused-categories",
        priority="INFO",
        title=f"{len(unused)} unused categories",
        description="These categories are not referenced by any HTL, JSP or dialog.",
        impact="Possibly dead code, or only included programmatically",
        actions=(
            {
                "type": "audit",
                "categories": unused,
                "suggestion": f"Audit the usage of these {len(unused)} categories: {preview}",
            },
        ),
        effort="Low",
        benefit="Low - Audit",
    )


# ── Public API ───────────────────────────────────────────────────────────────

def build_recommendations(inventory: Inventory) -> list[Recommendation]:
    """
    Derive the ordered recommendation list from an inventory.

    Args:
        inventory: Parsed inventory (alerts + usages are read).

    Returns:
        Recommendations in fixed order (CVE, jQuery, cycles, no-category,
        duplicates, embed risk, unused categories). Alerts whose type is
        unknown are ignored. Empty inventory → [].
    """
    alerts = list(inventory.alerts)
    recs: list[Recommendation] = []

    cves = [a for a in alerts if a.type == "CVE" and a.level == "CRITICAL"]
    if cves:
        recs.append(_cve_recommendation(cves))

    builders = (
        ("JQUERY_CONFLICT", "CRITICAL", _jquery_recommendation),
        ("CIRCULAR_DEPENDENCY", "HIGH", _cycle_recommendation),
        ("NO_CATEGORY", "HIGH", _no_category_recommendation),
        ("DUPLICATES", "MEDIUM", _duplicates_recommendation),
        ("EMBED_RISK", "MEDIUM", _embed_recommendation),
    )
    for alert_type, level, builder in builders:
        alert = _first(alerts, alert_type, level)
        if alert is not None:
            recs.append(builder(alert))

    unused = [category for category, entries in inventory.usages.items() if not entries]
    if unused:
        recs.append(_unused_categories_recommendation(unused))

    logger.info(
        "Built %d recommendations from %d alerts (%d unused categories).",
        len(recs),
        len(alerts),
        len(unused),
    )
    return recs


def export_recommendations_markdown(
    recommendations: list[Recommendation],
    output_path: Optional[str] = None,
) -> str:
    """
    Render recommendations as a Markdown action plan.

    Writes the file when output_path is given and returns the Markdown string
    either way.
    """
    lines: list[str] = ["# Clientlib Atlas — Recommendations", ""]

    if not recommendations:
        lines += ["_Nothing to recommend: no alert matched and every category is used._", ""]

    for priority in PRIORITY_ORDER:
        group = [r for r in recommendations if r.priority == priority]
        if not group:
            continue
        lines += [f"## {priority}", ""]
        for rec in group:
            lines += [
                f"### {rec.title}",
                "",
                rec.description,
                "",
                f"- **Impact:** {rec.impact}",
                f"- **Effort:** {rec.effort}",
                f"- **Benefit:** {rec.benefit}",
                "",
            ]
            lines += [f"1. {action['suggestion']}" for action in rec.actions]
            lines.append("")

    markdown = "\n".join(lines)
    if output_path:
        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as fh:
            fh.write(markdown)
        logger.info("Recommendations written to %s", output_path)
    return markdown
