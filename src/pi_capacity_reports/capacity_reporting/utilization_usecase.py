"""
PI Capacity Utilization Use Case

Purpose:
- Reconcile the capacity tab against the tracker export for ONE value stream
- Drop teams that only appear through inbound cross-context dependencies
- Produce per-team / per-role utilization for Entire PI and Code Freeze,
  plus the SUBTOTAL / special team / TOTAL rollup

Important:
- All I/O happens before this is called (see data/)
- ONE context per run; run_utilization_reports loops and can resume
"""

from __future__ import annotations

from typing import Dict, Iterable, List, MutableSet, Optional

from pi_capacity_reports.capacity_reporting.aggregator import aggregate, special_team_rollup
from pi_capacity_reports.capacity_reporting.allocation import category_counts
from pi_capacity_reports.capacity_reporting.block_locator import (
    CapacityBlockLayout,
    locate_capacity_blocks,
    snapshot_grid,
)
from pi_capacity_reports.capacity_reporting.capacity_models import (
    CapacityWindow,
    Issue,
    UtilizationReport,
    ensure_issues,
)
from pi_capacity_reports.capacity_reporting.exclusions import resolve_exclusions
from pi_capacity_reports.capacity_reporting.identifiers import normalize
from pi_capacity_reports.capacity_reporting.report_cache import ReportCache
from pi_capacity_reports.capacity_reporting.value_streams import TeamRegistry
from pi_capacity_reports.utils.config import config
from pi_capacity_reports.utils.logger import get_logger

logger = get_logger(__name__)


def run_utilization_report(
    grid: object,
    issues: Optional[Iterable[Issue]],
    context: str,
    registry: Optional[TeamRegistry] = None,
    special_team: Optional[str] = None,
    pi_number: object = None,
    layout: Optional[CapacityBlockLayout] = None,
    cache: Optional[ReportCache] = None,
) -> UtilizationReport:
    """
    Run the utilization report for a single value stream.
    """

    logger.info("Running PI capacity utilization | context=%s PI=%s", context, pi_number)

    registry = registry or TeamRegistry.default()
    aliases = registry.aliases()
    issues = ensure_issues(issues)
    grid = snapshot_grid(grid)
    layout = layout or CapacityBlockLayout()
    special_team = special_team or config.SPECIAL_TEAM

    cache_key = None
    if cache is not None:
        cache_key = ReportCache.compute_key(
            issues,
            context,
            {
                "grid": grid,
                "special_team": normalize(special_team),
                "pi_number": pi_number,
                "registry": {vs: registry.teams_for(vs) for vs in registry.value_streams()},
                "aliases": aliases,
                "layout": layout.model_dump(),
            },
        )
        cached = cache.get(cache_key)
        if cached is not None:
            logger.info("Cache hit for context=%s", context)
            return cached

    # ------------------------------------------------------------
    # Known teams for this value stream
    # ------------------------------------------------------------
    known_teams: List[str] = registry.teams_for(context)
    if not known_teams:
        logger.warning("No registered teams for %r; matching against all known teams", context)
        known_teams = sorted(registry.all_known_teams())

    # ------------------------------------------------------------
    # Capacity blocks (only this value stream's region)
    # ------------------------------------------------------------
    blocks = locate_capacity_blocks(
        grid,
        known_teams,
        layout=layout,
        value_stream=context,
        aliases=aliases,
    )

    # ------------------------------------------------------------
    # Exclusions + aggregation
    # ------------------------------------------------------------
    excluded = resolve_exclusions(issues, context, aliases)

    mix = category_counts(i.allocation for i in issues)
    logger.info(
        "Allocation mix for %s: %s",
        context, ", ".join(f"{c.value}={n}" for c, n in mix.items()),
    )

    report = aggregate(blocks, issues, excluded, context=context, pi_number=pi_number)
    report.rollup = special_team_rollup(report, special_team)

    total = report.rollup.total[CapacityWindow.ENTIRE_PI]
    logger.info(
        "Context %s: %s teams, %s excluded, capacity=%s used=%s remaining=%s",
        context, len(report.teams), len(report.excluded_teams),
        total.capacity, total.used, total.remaining,
    )
    if report.over_capacity_teams:
        logger.warning("Over capacity in %s: %s", context, ", ".join(report.over_capacity_teams))

    if cache is not None:
        cache.set(cache_key, report)

    return report


def run_utilization_reports(
    grid: object,
    issues: Optional[Iterable[Issue]],
    contexts: Iterable[str],
    registry: Optional[TeamRegistry] = None,
    completed: Optional[MutableSet[str]] = None,
    **kwargs,
) -> Dict[str, UtilizationReport]:
    """
    One report per context, run one at a time.

    Contexts already in `completed` are skipped; each finished context is
    added to it, so a caller can pass the same set back in to resume.
    """
    issues = ensure_issues(issues)
    if completed is None:
        completed = set()

    reports: Dict[str, UtilizationReport] = {}
    for context in contexts:
        if normalize(context) in {normalize(c) for c in completed}:
            logger.info("Skipping already completed context %s", context)
            continue
        reports[context] = run_utilization_report(grid, issues, context, registry=registry, **kwargs)
        completed.add(context)

    return reports
