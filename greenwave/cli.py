"""
Command line interface for the greenwave traffic engine.

Usage:
    greenwave snapshot --reports reports.json --direction "do centrum"
    greenwave snapshot --street Kasztanowa --direction to_center --now 2025-11-28T07:40:00+01:00
    greenwave grid --reports reports.json --at 07:15
    greenwave watch --street Kasztanowa --interval 60
"""

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .common import get_logger, reload_config, setup_logging
from .reports import DirectionKind, create_report_store_client, parse_timestamp
from .refresh import RefreshScheduler, TrafficPipeline, rows_source, store_source
from .transform import aggregate_weekly_grid, lookup_grid_status

logger = get_logger("cli")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="greenwave",
        description="Aggregate and predict crowdsourced traffic reports",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", type=str, help="Path to .env configuration file")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_source_arguments(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--reports",
            type=str,
            help="JSON file with a list of report rows (instead of the report store)",
        )
        sub.add_argument("--street", type=str, help="Street to query in the report store")
        sub.add_argument(
            "--direction",
            type=str,
            help='Direction ("do centrum"/"od centrum" or to_center/from_center)',
        )
        sub.add_argument(
            "--now",
            type=str,
            help="Reference moment (ISO 8601); defaults to the current time",
        )

    snapshot = subparsers.add_parser(
        "snapshot", help="Run the full pipeline once and print the snapshot as JSON"
    )
    add_source_arguments(snapshot)
    snapshot.add_argument(
        "--count", type=int, default=None, help="Number of 5-minute prediction slots"
    )

    grid = subparsers.add_parser(
        "grid", help="Print the weekly grid status at a time of day per weekday"
    )
    add_source_arguments(grid)
    grid.add_argument("--at", type=str, required=True, help="Time of day (HH:MM)")

    watch = subparsers.add_parser(
        "watch", help="Refresh periodically and print each snapshot summary"
    )
    add_source_arguments(watch)
    watch.add_argument(
        "--interval", type=float, default=None, help="Seconds between refreshes"
    )

    return parser.parse_args(argv)


def load_rows(path: str) -> List[Dict[str, Any]]:
    """Load report rows from a JSON file (a list, or an object with "reports")."""
    with open(Path(path), "r") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("reports", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of report rows")
    return data


def parse_direction(value: Optional[str]) -> Optional[DirectionKind]:
    """Parse the --direction argument."""
    if value is None:
        return None
    direction = DirectionKind.parse(value)
    if direction is None:
        raise ValueError(f"Unknown direction: {value!r}")
    return direction


def build_pipeline(args: argparse.Namespace) -> TrafficPipeline:
    """Create a pipeline over a JSON file or the report store."""
    direction = parse_direction(args.direction)

    if args.reports:
        source = rows_source(load_rows(args.reports))
    elif args.street:
        source = store_source(create_report_store_client(), args.street, direction)
    else:
        raise ValueError("Either --reports or --street is required")

    return TrafficPipeline(
        source,
        street=args.street,
        direction=direction,
        prediction_count=getattr(args, "count", None),
    )


def summarize(snapshot) -> Dict[str, Any]:
    """Short, human-oriented view of a snapshot."""
    return {
        "computed_at": snapshot.computed_at.isoformat(),
        "current_status": snapshot.current_status.to_dict(),
        "prediction_ranges": [r.to_dict() for r in snapshot.prediction_ranges],
        "green_wave": [r.to_dict() for r in snapshot.green_wave],
    }


def run_snapshot(args: argparse.Namespace) -> Dict[str, Any]:
    pipeline = build_pipeline(args)
    reference_now = parse_timestamp(args.now) if args.now else None
    return pipeline.run(reference_now).to_dict()


def run_grid(args: argparse.Namespace) -> Dict[str, Any]:
    pipeline = build_pipeline(args)
    reference_now = parse_timestamp(args.now) if args.now else None

    try:
        hour_str, minute_str = args.at.split(":", 1)
        hour, minute = int(hour_str), int(minute_str)
    except ValueError:
        raise ValueError(f"--at must look like HH:MM, got {args.at!r}")

    reports = pipeline.directed(pipeline.source())
    grid = aggregate_weekly_grid(reports, reference_now)
    statuses = lookup_grid_status(grid, hour, minute)

    return {
        str(weekday): {"date": entry.date.isoformat(), "status": entry.status.value}
        for weekday, entry in sorted(statuses.items())
    }


def run_watch(args: argparse.Namespace) -> int:
    scheduler = RefreshScheduler(build_pipeline(args), interval_seconds=args.interval)
    scheduler.add_listener(lambda snapshot: print(json.dumps(summarize(snapshot))))

    scheduler.start()
    try:
        while scheduler.running:
            time.sleep(1.0)
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping refresh scheduler")
    finally:
        scheduler.stop()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    try:
        if args.config:
            load_dotenv(args.config, override=True)
            reload_config()
        if args.verbose:
            setup_logging("greenwave", level="DEBUG")

        if args.command == "watch":
            return run_watch(args)

        if args.command == "snapshot":
            result = run_snapshot(args)
        else:
            result = run_grid(args)

        print(json.dumps(result, indent=2))
        return 0

    except (ValueError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
