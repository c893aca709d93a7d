"""
clientlib_atlas/cli.py — Command-line interface for Clientlib Atlas.

Provides a single entry point that:
  1. Loads AEM_USER / AEM_PASSWORD from a .env file automatically
  2. Fetches the inventory from the AEM scanning servlet (or reads a snapshot)
  3. Answers impact, graph and recommendation questions on it

Usage:
    python -m clientlib_atlas fetch --output inventory.json
    python -m clientlib_atlas summary   --inventory inventory.json
    python -m clientlib_atlas impact    --inventory inventory.json --path /apps/site/clientlibs/base
    python -m clientlib_atlas graph     --inventory inventory.json --format html --output graph.html
    python -m clientlib_atlas recommend --inventory inventory.json --output recommendations.md
    python -m clientlib_atlas dashboard --inventory inventory.json

Every command except `fetch` scans the live instance when --inventory is
omitted.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import subprocess
import sys
from pathlib import Path

from clientlib_atlas.errors import ClientlibAtlasError


# ── .env loader (stdlib only, no python-dotenv) ──────────────────────────────

def _find_env_file() -> Path | None:
    here = Path.cwd()
    return next(
        (d / ".env" for d in (here, *here.parents) if (d / ".env").is_file()),
        None,
    )


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if line.startswith("#") or "=" not in line:
        return None
    key, value = (part.strip() for part in line.split("=", 1))
    if value[:1] in ('"', "'") and len(value) >= 2 and value.endswith(value[0]):
        value = value[1:-1]
    return (key, value) if key else None


def _load_dotenv(env_file: str | None = None) -> dict[str, str]:
    """Export the AEM credentials (or anything else) kept in a .env file.

    Variables already present in the environment win. Returns only the
    values this call exported.

    Args:
        env_file: Explicit path. If None, the nearest .env from the current
                  directory upwards is used.
    """
    path = Path(env_file) if env_file else _find_env_file()
    if path is None or not path.is_file():
        return {}

    exported: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        pair = _parse_env_line(raw_line)
        if pair is None or pair[0] in os.environ:
            continue
        os.environ[pair[0]] = exported[pair[0]] = pair[1]
    return exported


# ── Logging setup ─────────────────────────────────────────────────────────────

def _setup_logging(level: str = "INFO") -> None:
    """Timestamped root logger on stderr; chatty libraries held at WARNING."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    for noisy in ("urllib.request", "matplotlib", "PIL"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


logger = logging.getLogger("clientlib_atlas.cli")


def _prepare(args: argparse.Namespace) -> None:
    _load_dotenv(args.env_file)
    _setup_logging(args.log_level)


def _session(args: argparse.Namespace):
    from clientlib_atlas.pipeline import load_session

    return load_session(
        inventory_path=args.inventory,
        host=args.host,
        scan_roots=args.roots or None,
    )


# ── Subcommand: fetch ─────────────────────────────────────────────────────────

def cmd_fetch(args: argparse.Namespace) -> int:
    """Fetch the inventory from the servlet and save the raw JSON."""
    _prepare(args)

    from clientlib_atlas.inventory.client import fetch_inventory
    from clientlib_atlas.inventory.loader import save_inventory_payload
    from clientlib_atlas.inventory.models import parse_inventory
    from clientlib_atlas.reports.tables import summary_counts

    try:
        payload = fetch_inventory(host=args.host, scan_roots=args.roots or None)
    except ClientlibAtlasError as exc:
        logger.error("Fetch failed: %s", exc)
        return 1

    save_inventory_payload(payload, args.output)
    counts = summary_counts(parse_inventory(payload))
    print(f"Saved {counts['totalClientlibs']} clientlibs to {args.output}")
    return 0


# ── Subcommand: summary ───────────────────────────────────────────────────────

def cmd_summary(args: argparse.Namespace) -> int:
    """Print summary counts and usage statistics."""
    _prepare(args)

    from clientlib_atlas.reports.tables import summary_counts, usage_stats

    try:
        session = _session(args)
    except ClientlibAtlasError as exc:
        logger.error("Could not load the inventory: %s", exc)
        return 1

    counts = summary_counts(session.inventory)
    stats = usage_stats(session.inventory.usages)

    print()
    print("=" * 50)
    print("  CLIENTLIB ATLAS — SUMMARY")
    print("=" * 50)
    print(f"  Clientlibs         : {counts['totalClientlibs']}")
    print(f"  Categories         : {counts['totalCategories']}")
    print(f"  Relations          : {counts['totalRelations']}")
    print(f"  Alerts             : {counts['alertsCount']}")
    print(f"  Used categories    : {len(session.index.used_categories)}")
    print(f"  Total usages       : {stats['total_usages']}")
    print(f"  Unused categories  : {stats['unused_categories']}")
    print("=" * 50)
    return 0


# ── Subcommand: impact ────────────────────────────────────────────────────────

def _print_items(title: str, items) -> None:
    print(f"\n  {title} ({len(items)}):")
    if not items:
        print("    (none)")
    for item in items:
        owners = ", ".join(lib.path for lib in item.clientlibs) or "no clientlib"
        marker = "  [embed: inlined code]" if item.is_embed else ""
        print(f"    - {item.category} ({item.edge_type}) → {owners}{marker}")


def cmd_impact(args: argparse.Namespace) -> int:
    """Impact of changing a clientlib (--path) or categories (--category)."""
    _prepare(args)

    if not args.path and not args.category:
        logger.error("Provide --path or at least one --category.")
        return 1

    try:
        session = _session(args)
    except ClientlibAtlasError as exc:
        logger.error("Could not load the inventory: %s", exc)
        return 1

    if args.path:
        report = session.analyze(args.path)
        if report is None:
            logger.error("No clientlib at path %s", args.path)
            return 1
        if args.json:
            print(json.dumps(_report_to_dict(report), indent=2))
            return 0
        print(f"\nClientlib  : {report.clientlib.path}")
        print(f"Categories : {', '.join(report.categories) or '(none)'}")
        _print_items("Requires", report.dependencies)
        _print_items("Direct impact", report.impact.direct)
        _print_items("Indirect impact", report.impact.indirect)
        plan = report.retest_plan
        print()
        if plan.safe_to_change:
            print("  Nothing depends on this clientlib: safe to change.")
        for step in plan.steps:
            print(f"  * {step}")
        return 0

    impact = session.impact(args.category)
    if args.json:
        print(json.dumps({
            "direct": [i.category for i in impact.direct],
            "indirect": [i.category for i in impact.indirect],
        }, indent=2))
        return 0
    _print_items("Direct impact", impact.direct)
    _print_items("Indirect impact", impact.indirect)
    return 0


def _report_to_dict(report) -> dict:
    return {
        "clientlib": report.clientlib.path,
        "categories": list(report.categories),
        "dependencies": [d.category for d in report.dependencies],
        "direct": [i.category for i in report.impact.direct],
        "indirect": [i.category for i in report.impact.indirect],
        "steps": list(report.retest_plan.steps),
    }


# ── Subcommand: graph ─────────────────────────────────────────────────────────

def cmd_graph(args: argparse.Namespace) -> int:
    """Export the laid-out graph view as JSON, HTML (Plotly) or PNG (matplotlib)."""
    _prepare(args)

    from clientlib_atlas.graph.view import LayoutMode, ViewSelection

    try:
        session = _session(args)
    except ClientlibAtlasError as exc:
        logger.error("Could not load the inventory: %s", exc)
        return 1

    selection = ViewSelection()
    for i, category in enumerate(args.expanded or []):
        selection = selection.select(category) if i == 0 and args.only else selection.expand(category)
    view = session.view(selection, LayoutMode(args.layout))

    if args.format == "json":
        text = json.dumps(view.to_dict(), indent=2)
        if args.output:
            Path(args.output).write_text(text, encoding="utf-8")
            print(f"Graph written to {args.output}")
        else:
            print(text)
        return 0

    if not args.output:
        logger.error("--output is required for --format %s", args.format)
        return 1

    if args.format == "html":
        from clientlib_atlas.viz.plotly_graph import build_view_figure, save_figure_html

        try:
            save_figure_html(build_view_figure(view), args.output)
        except ImportError as exc:
            logger.error("%s", exc)
            return 1
    else:
        from clientlib_atlas.viz.figures import save_view_png

        save_view_png(view, args.output)

    print(f"Graph ({len(view.nodes)} categories, {len(view.edges)} relations) written to {args.output}")
    return 0


# ── Subcommand: recommend ─────────────────────────────────────────────────────

def cmd_recommend(args: argparse.Namespace) -> int:
    """Print (or export to Markdown) the prioritised recommendations."""
    _prepare(args)

    from clientlib_atlas.reports.recommendations import export_recommendations_markdown

    try:
        session = _session(args)
    except ClientlibAtlasError as exc:
        logger.error("Could not load the inventory: %s", exc)
        return 1

    markdown = export_recommendations_markdown(session.recommendations(), args.output)
    if args.output:
        print(f"Recommendations written to {args.output}")
    else:
        print(markdown)
    return 0


# ── Subcommand: dashboard ─────────────────────────────────────────────────────

def cmd_dashboard(args: argparse.Namespace) -> int:
    """Launch the Streamlit dashboard."""
    _prepare(args)

    from clientlib_atlas.viz import dashboard

    if not dashboard.HAS_STREAMLIT:
        logger.error("streamlit is required: pip install streamlit")
        return 1

    command = [sys.executable, "-m", "streamlit", "run", dashboard.__file__]
    if args.inventory:
        command += ["--", "--inventory", os.path.abspath(args.inventory)]
    logger.info("Starting dashboard: %s", " ".join(command))
    return subprocess.call(command)


# ── Argument parser ───────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clientlib-atlas",
        description=(
            "Clientlib Atlas — dependency and impact analysis of AEM clientlibs.\n"
            "Reads AEM_USER / AEM_PASSWORD from .env automatically."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan the default roots of a local author and keep a snapshot
  clientlib-atlas fetch --output inventory.json

  # Scan other roots on another instance
  clientlib-atlas fetch --host https://author.example.com --root /apps/site --root /libs/clientlibs --output inventory.json

  # What breaks if this clientlib changes?
  clientlib-atlas impact --inventory inventory.json --path /apps/site/clientlibs/base

  # Graph around one category, as an interactive page
  clientlib-atlas graph --inventory inventory.json --expanded site.base --only --format html --output graph.html
        """,
    )

    # Global flags
    parser.add_argument(
        "--env-file",
        default=None,
        metavar="PATH",
        help="Path to .env file (default: auto-detect .env from the current directory up)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    def add_source_flags(p: argparse.ArgumentParser, with_inventory: bool = True) -> None:
        if with_inventory:
            p.add_argument(
                "--inventory",
                default=None,
                metavar="PATH",
                help="Inventory JSON snapshot (default: scan the live instance)",
            )
        p.add_argument(
            "--host",
            default=None,
            metavar="URL",
            help="AEM host (default: http://localhost:4502)",
        )
        p.add_argument(
            "--root",
            dest="roots",
            action="append",
            default=None,
            metavar="PATH",
            help="Repository root to scan (repeatable; default: configured roots)",
        )

    p_fetch = subparsers.add_parser("fetch", help="Fetch the inventory and save it as JSON")
    add_source_flags(p_fetch, with_inventory=False)
    p_fetch.add_argument("--output", required=True, metavar="PATH")
    p_fetch.set_defaults(func=cmd_fetch)

    p_summary = subparsers.add_parser("summary", help="Summary counts and usage statistics")
    add_source_flags(p_summary)
    p_summary.set_defaults(func=cmd_summary)

    p_impact = subparsers.add_parser("impact", help="Impact of changing a clientlib or categories")
    add_source_flags(p_impact)
    p_impact.add_argument("--path", default=None, help="Clientlib path")
    p_impact.add_argument("--category", action="append", default=None,
                          help="Category (repeatable); ignored when --path is given")
    p_impact.add_argument("--json", action="store_true", help="Machine-readable output")
    p_impact.set_defaults(func=cmd_impact)

    p_graph = subparsers.add_parser("graph", help="Export the laid-out dependency graph")
    add_source_flags(p_graph)
    p_graph.add_argument("--expanded", action="append", default=None, metavar="CATEGORY",
                         help="Category whose relations are shown (repeatable)")
    p_graph.add_argument("--only", action="store_true",
                         help="Show only the expanded categories, not every used one")
    p_graph.add_argument("--layout", default="from_usage", choices=["from_usage", "hierarchical"])
    p_graph.add_argument("--format", default="json", choices=["json", "html", "png"])
    p_graph.add_argument("--output", default=None, metavar="PATH")
    p_graph.set_defaults(func=cmd_graph)

    p_recommend = subparsers.add_parser("recommend", help="Prioritised recommendations")
    add_source_flags(p_recommend)
    p_recommend.add_argument("--output", default=None, metavar="PATH",
                             help="Write Markdown here instead of stdout")
    p_recommend.set_defaults(func=cmd_recommend)

    p_dashboard = subparsers.add_parser("dashboard", help="Launch the Streamlit dashboard")
    p_dashboard.add_argument("--inventory", default=None, metavar="PATH")
    p_dashboard.set_defaults(func=cmd_dashboard)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
