#!/usr/bin/env python3
"""``isodash`` command-line entry point.

Usage:
    isodash ingest incoming/
    isodash --config scripts/user_config.py latest --limit 10
    isodash ranking Cs-137
    isodash export daily --output daily.parquet
    isodash show 3f9c2a1b7d4e5f60
"""

import argparse
from dataclasses import asdict
import json
import sys
from pathlib import Path

import pandas as pd

from isodash.cli.run import build_config, open_store
from isodash.contracts import NotFoundError, ValidationError
from isodash.pipeline import SessionIngestor
from isodash.schemas import SESSION_STATUSES
from isodash.views import AnalysisQueries, EXPORTABLE_VIEWS


def _print_frame(df: pd.DataFrame, empty_message: str = "No records."):
    if df.empty:
        print(empty_message)
    else:
        with pd.option_context("display.width", 200, "display.max_columns", None):
            print(df.to_string(index=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="isodash",
        description="Record gamma-spectroscopy analysis results and query dashboard views",
    )
    parser.add_argument("--config", help="Path to user config file (Python file with a CONFIG dict)")
    parser.add_argument("--base-dir", help="Output directory")
    parser.add_argument("--db-path", help="SQLite database file (overrides base-dir/db)")
    parser.add_argument("--timezone", help="IANA zone for the daily rollup")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("ingest", help="Record producer result file(s)")
    p.add_argument("path", help="JSON result file or directory of files")
    p.add_argument("--pattern", default="*.json", help="Glob for directory ingestion")

    p = sub.add_parser("latest", help="Most recent sessions with summary and plot counts")
    p.add_argument("--limit", type=int, help="Maximum rows")

    p = sub.add_parser("detections", help="Detections joined with mass estimates")
    p.add_argument("--session", help="Restrict to one session")
    p.add_argument("--isotope", help="Restrict to one parent isotope")

    p = sub.add_parser("plots", help="Plot catalog (metadata only)")
    p.add_argument("--session", help="Restrict to one session")

    sub.add_parser("frequency", help="Isotope frequency over completed sessions")

    p = sub.add_parser("ranking", help="Rank sessions by estimated mass of an isotope")
    p.add_argument("isotope")

    sub.add_parser("daily", help="Daily rollup of completed sessions")
    sub.add_parser("overview", help="Headline dashboard numbers")

    p = sub.add_parser("show", help="Everything about one session")
    p.add_argument("session_id")

    p = sub.add_parser("status", help="Change a session's status")
    p.add_argument("session_id")
    p.add_argument("status", choices=SESSION_STATUSES)

    p = sub.add_parser("delete", help="Delete a session and everything it owns")
    p.add_argument("session_id")

    p = sub.add_parser("plot-payload", help="Write a stored plot's bytes to a file")
    p.add_argument("plot_id", type=int)
    p.add_argument("output", help="Destination file")

    p = sub.add_parser("export", help="Export a view to Parquet/CSV")
    p.add_argument("view", choices=EXPORTABLE_VIEWS)
    p.add_argument("--output", help="Output file (default: <base-dir>/exports/<view>.<format>)")
    p.add_argument("--isotope", help="Isotope for the ranking view")

    return parser


def run_command(args, store, queries) -> int:
    """Execute one parsed subcommand against an open store."""
    command = args.command

    if command == "ingest":
        ingestor = SessionIngestor(store)
        path = Path(args.path)
        if path.is_dir():
            result = ingestor.ingest_directory(path, pattern=args.pattern)
            print(f"Ingested: {result['ingested']}  Failed: {result['failed']}")
            for name, message in result["errors"].items():
                print(f"  {name}: {message}")
            return 1 if result["failed"] else 0
        print(ingestor.ingest_file(path))

    elif command == "latest":
        _print_frame(queries.latest_sessions(limit=args.limit), "No sessions recorded.")

    elif command == "detections":
        _print_frame(queries.detection_results(session_id=args.session, isotope=args.isotope))

    elif command == "plots":
        _print_frame(queries.plot_catalog(session_id=args.session), "No plots recorded.")

    elif command == "frequency":
        report = queries.isotope_frequency()
        if report.no_data:
            print("No data: there are no completed sessions.")
        else:
            print(f"Completed sessions: {report.completed_sessions}")
            _print_frame(report.table)

    elif command == "ranking":
        _print_frame(queries.mass_ranking(args.isotope), f"No mass estimates for {args.isotope}.")

    elif command == "daily":
        _print_frame(queries.daily_rollup(), "No completed sessions.")

    elif command == "overview":
        overview = queries.overview()
        for key in ("total_analyses", "completed_analyses", "total_isotopes",
                    "unique_isotopes", "avg_peaks"):
            print(f"{key:20s} {overview[key]}")
        print()
        _print_frame(overview["recent_sessions"], "No sessions recorded.")

    elif command == "show":
        detail = queries.session_detail(args.session_id)
        print(json.dumps(detail["session"], indent=2, default=str))
        print(json.dumps(asdict(detail["summary"]), indent=2))
        for name in ("detections", "mass_estimates", "plots"):
            print(f"\n{name}:")
            _print_frame(detail[name])

    elif command == "status":
        store.set_session_status(args.session_id, args.status)
        print(f"{args.session_id}: {args.status}")

    elif command == "delete":
        store.delete_session(args.session_id)
        print(f"Deleted {args.session_id}")

    elif command == "plot-payload":
        output = Path(args.output)
        output.write_bytes(store.get_plot_payload(args.plot_id))
        print(output)

    elif command == "export":
        path = queries.export(args.view, filepath=args.output, isotope=args.isotope)
        print(path if path is not None else f"View '{args.view}' is empty, nothing exported.")

    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = build_config(args.config, {
        "base_dir": args.base_dir,
        "db_path": args.db_path,
        "timezone": args.timezone,
        "log_level": "DEBUG" if args.verbose else None,
    })

    try:
        with open_store(config) as store:
            return run_command(args, store, AnalysisQueries(store, config))
    except (ValidationError, NotFoundError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
