import argparse
from pathlib import Path

import pandas as pd

from pi_capacity_reports.capacity_reporting.report_cache import ReportCache
from pi_capacity_reports.capacity_reporting.utilization_usecase import (
    run_utilization_reports,
)
from pi_capacity_reports.data.capacity_grid import load_capacity_grid
from pi_capacity_reports.data.issues import load_issues
from pi_capacity_reports.data.team_registry import load_team_registry
from pi_capacity_reports.presentation.console import render_utilization
from pi_capacity_reports.presentation.tables import report_to_frame
from pi_capacity_reports.utils.config import config


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(
        description="PI Capacity Utilization Report"
    )

    parser.add_argument(
        "--capacity",
        required=True,
        help="Capacity workbook (.xlsx) or CSV export of the capacity tab",
    )

    parser.add_argument(
        "--issues",
        required=True,
        help="Issue export (.csv or .xlsx)",
    )

    parser.add_argument(
        "--context",
        action="append",
        default=None,
        help="Value stream to report on (repeatable). Defaults to DEFAULT_CONTEXTS.",
    )

    parser.add_argument(
        "--pi",
        type=str,
        default=None,
        help="PI number, e.g. 14. Picks the 'PI<n> - Capacity' tab and slots sprints by iteration.",
    )

    parser.add_argument(
        "--registry",
        type=str,
        default=None,
        help="Team Registry export. Defaults to TEAM_REGISTRY_PATH or the built-in registry.",
    )

    parser.add_argument(
        "--sheet",
        type=str,
        default=None,
        help="Capacity sheet name (overrides auto-detection)",
    )

    parser.add_argument(
        "--special-team",
        type=str,
        default=None,
        help="Team shown after SUBTOTAL and added into TOTAL. Defaults to SPECIAL_TEAM.",
    )

    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the flattened team/role/window table to this CSV path",
    )

    args = parser.parse_args(argv)

    try:
        grid = load_capacity_grid(args.capacity, sheet_name=args.sheet, pi_number=args.pi)
        issues = load_issues(args.issues)
        registry = load_team_registry(args.registry)
    except FileNotFoundError as exc:
        parser.error(str(exc))

    contexts = args.context or config.DEFAULT_CONTEXTS
    cache = ReportCache(config.REPORT_CACHE_TTL_SECONDS) if config.REPORT_CACHE_TTL_SECONDS > 0 else None

    reports = run_utilization_reports(
        grid,
        issues,
        contexts,
        registry=registry,
        special_team=args.special_team,
        pi_number=args.pi,
        cache=cache,
    )

    for report in reports.values():
        print(render_utilization(report))

    if args.output:
        frames = [report_to_frame(r) for r in reports.values()]
        df = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame()
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output, index=False)
        print(f"Saved: {output}")


if __name__ == "__main__":
    main()
