#!/usr/bin/env python3

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__ as FIGHTLINE_VERSION
from .config import Config
from .core.action_data import ActionDataError, ActionTable, load_action_table
from .core.engine import FightAnalysis
from .core.fights import (
    FightNotFoundError,
    ReportError,
    annotations_for_fight,
    events_for_fight,
    group_fights_by_zone,
    load_report,
    select_fight,
)
from .core.view_model import export_view_model

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="fightline - build an annotated timeline for one fight of a report"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"fightline {FIGHTLINE_VERSION}",
    )
    parser.add_argument("--report", "-r", type=Path, help="Report JSON file")
    parser.add_argument("--fight", "-f", type=int, help="Id of the fight to analyze")
    parser.add_argument(
        "--list-fights",
        action="store_true",
        help="List the report's boss fights grouped by zone as JSON and exit",
    )
    parser.add_argument(
        "--all-fights",
        action="store_true",
        help="Include wipes when listing or auto-selecting fights",
    )
    parser.add_argument(
        "--actions", type=Path, help="Action data file (.json/.yml/.yaml), overrides config"
    )
    parser.add_argument("--out", "-o", type=Path, help="Output JSON report file")
    parser.add_argument(
        "--stdout",
        choices=["json", "none"],
        default="json",
        help="Control stdout output when --out is not set (default: json)",
    )
    parser.add_argument(
        "--window",
        nargs=2,
        type=int,
        metavar=("START", "END"),
        help="Initial visible window in ms from fight start",
    )
    parser.add_argument(
        "--export-items", type=Path, help="Also export the timeline view model to this file"
    )
    parser.add_argument(
        "--export-format",
        choices=["json", "csv"],
        default="json",
        help="Format for --export-items (default: json)",
    )
    parser.add_argument(
        "--plugin-dir",
        type=Path,
        action="append",
        default=[],
        help="Directory of analyzer plugins. Can be repeated.",
    )
    parser.add_argument(
        "--list-analyzers",
        action="store_true",
        help="List enabled analyzers (built-in and plugins) as JSON and exit",
    )
    parser.add_argument("--config", type=Path, help="Configuration file path")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON lines (useful for ingestion)",
    )
    parser.add_argument(
        "--no-redaction",
        dest="enable_redaction",
        action="store_false",
        help="Do not redact character names and report codes from logs",
    )
    parser.add_argument(
        "--doctor",
        action="store_true",
        help="Run self-checks and print a JSON diagnostic report",
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    sys.exit(run(args))


def run(args: argparse.Namespace) -> int:
    # Load configuration
    config = Config(args.config) if args.config else Config()
    if args.actions:
        config.set("action_data_path", str(args.actions))

    if config.get("enable_logging", True):
        from .core.secure_logging import setup_secure_logging

        level = "DEBUG" if args.verbose else config.get("log_level", "INFO")
        setup_secure_logging(
            level,
            enable_redaction=args.enable_redaction and config.get("enable_redaction", True),
            log_json=bool(args.log_json),
        )

    # Doctor mode: run diagnostics and exit (no report required).
    if args.doctor:
        diag = _run_doctor(config)
        print(json.dumps(diag, indent=2))
        return 0 if diag.get("ok") else 1

    if args.list_analyzers:
        analysis = FightAnalysis(config, actions=ActionTable(), plugin_dirs=args.plugin_dir)
        names = [
            {"name": a.name, "class": type(a).__name__} for a in analysis.analyzers
        ]
        print(json.dumps({"analyzers": names}, indent=2))
        return 0

    if not args.report:
        print("Error: --report is required", file=sys.stderr)
        return 1

    try:
        report = load_report(args.report)
    except ReportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.list_fights:
        zones = group_fights_by_zone(report.get("fights") or [], kills_only=not args.all_fights)
        print(json.dumps({"zones": [z.to_dict() for z in zones]}, indent=2))
        return 0

    try:
        session = select_fight(report, args.fight, kills_only=not args.all_fights)
    except FightNotFoundError as e:
        print(f"Error: {e.args[0]}", file=sys.stderr)
        return 1

    try:
        analysis = FightAnalysis(config, plugin_dirs=args.plugin_dir)
    except ActionDataError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.info("Analyzing fight %s (%s)", session.fight_id, session.name or "unnamed")
    result = analysis.run(
        session,
        events_for_fight(report, session),
        annotations=annotations_for_fight(report, session),
        window=tuple(args.window) if args.window else None,
    )
    result["meta"]["report"] = report.get("code")

    if args.export_items:
        args.export_items.parent.mkdir(parents=True, exist_ok=True)
        export_view_model(result["view_model"], args.export_items, args.export_format)

    text = json.dumps(result, indent=2)
    if args.out:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(text)
        logger.info("Report written to %s", args.out)
    elif args.stdout == "json":
        print(text)
    return 0


def _run_doctor(config: Config) -> dict:
    import platform

    def has(mod: str) -> bool:
        try:
            __import__(mod)
            return True
        except ImportError:
            return False

    diag = {
        "ok": True,
        "python": sys.version.split(" ")[0],
        "platform": platform.platform(),
        "version": FIGHTLINE_VERSION,
        "optional_dependencies": {
            "yaml": has("yaml"),
        },
        "action_data": None,
    }

    path = config.get("action_data_path")
    if path:
        try:
            table = load_action_table(Path(path))
            diag["action_data"] = {"path": str(path), "ok": True, "actions": len(table)}
        except ActionDataError as e:
            diag["action_data"] = {"path": str(path), "ok": False, "error": str(e)}
            diag["ok"] = False

    return diag


if __name__ == "__main__":
    main()
