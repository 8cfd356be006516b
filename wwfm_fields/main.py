"""Command-line entry point for one-off aggregation runs.

Reads a JSON file holding a list of report rows (each with a
``solution_fields`` object and optional ``user_id``), aggregates them and
prints either the JSON field map or a Markdown report:

    wwfm-fields reports.json --category meditation_mindfulness
    wwfm-fields reports.json --format markdown --title "Meditation for anxiety"
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, List, Optional, Sequence

from dotenv import load_dotenv

from wwfm_fields.aggregation.pipeline import compute_aggregates, serialize_field_map
from wwfm_fields.reporting.render import render_field_report

logger = logging.getLogger("wwfm_fields")


def _configure_logging() -> None:
    logging_level = os.environ.get("WWFM_LOG_LEVEL", "INFO")
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging_level,
        stream=sys.stderr,
    )


def _load_reports(path: str) -> List[Any]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict) and isinstance(data.get("ratings"), list):
        data = data["ratings"]
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of report rows")
    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wwfm-fields",
        description="Aggregate solution rating rows into field distributions.",
    )
    parser.add_argument("reports", help="Path to a JSON list of report rows")
    parser.add_argument(
        "--category",
        default=None,
        help="Solution category (enables derived cost fields for practice/hobby categories)",
    )
    parser.add_argument(
        "--format",
        choices=("json", "markdown"),
        default="json",
        help="Output format (default: json)",
    )
    parser.add_argument(
        "--title",
        default="Aggregated solution fields",
        help="Report title for --format markdown",
    )
    parser.add_argument(
        "--no-dedupe",
        action="store_true",
        help="Skip near-duplicate merging of values",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI; returns the process exit code."""

    load_dotenv()
    _configure_logging()
    args = build_parser().parse_args(argv)

    try:
        reports = _load_reports(args.reports)
    except (OSError, ValueError) as exc:
        logger.error("Could not read reports: %s", exc)
        return 1

    aggregated = compute_aggregates(
        reports, category=args.category, deduplicate=not args.no_dedupe
    )

    if args.format == "markdown":
        sys.stdout.write(render_field_report(aggregated, title=args.title))
    else:
        json.dump(serialize_field_map(aggregated), sys.stdout, indent=2)
        sys.stdout.write("\n")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
