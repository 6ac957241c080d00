"""
Utilization aggregation

Purpose:
Join capacity blocks with tracker issues and produce, per team and per role,
capacity / used / remaining and planned / actual epic load for the two
capacity windows (Entire PI, Code Freeze).

Rules:
- used          = story points of Story/Bug issues whose allocation is Features
- planned load  = feature points * 10 over Features Epics
- actual load   = story point estimate over the same Epics
- remaining     = capacity - used (negative => over capacity, never an error)
- roles the grid doesn't list go to "Unassigned" with capacity 0
"""

from __future__ import annotations

import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from pi_capacity_reports.capacity_reporting.allocation import is_features
from pi_capacity_reports.capacity_reporting.capacity_models import (
    ITERATIONS,
    UNASSIGNED,
    CapacityWindow,
    Issue,
    SpecialTeamRollup,
    TeamCapacityBlock,
    TeamUtilization,
    UtilizationReport,
    WindowMetrics,
    WindowTable,
    ensure_issues,
)
from pi_capacity_reports.capacity_reporting.exclusions import is_excluded_team
from pi_capacity_reports.capacity_reporting.identifiers import compact, normalize
from pi_capacity_reports.capacity_reporting.roles import detect_role
from pi_capacity_reports.utils.logger import get_logger

logger = get_logger(__name__)

PLANNED_LOAD_MULTIPLIER = 10


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------
def sprint_iteration(sprint_name: object, pi_number: object) -> Optional[int]:
    """
    Iteration (1..6) of a "<pi>.<n>" sprint name, e.g. "PI 12.3 - Clinical" -> 3.

    Returns None when the sprint doesn't belong to `pi_number`.
    """
    if not sprint_name or pi_number in (None, ""):
        return None
    pattern = re.compile(r"(?<!\d)%s\s*\.\s*(\d)" % re.escape(str(pi_number).strip()))
    match = pattern.search(str(sprint_name))
    if not match:
        return None
    iteration = int(match.group(1))
    return iteration if iteration in ITERATIONS else None


def epic_loe(issues: Optional[Iterable[Issue]]) -> Dict[str, int]:
    """Epic key -> summed story points of its children. Every epic starts at 0."""
    issues = ensure_issues(issues)
    loe = {i.key: 0 for i in issues if i.is_epic and i.key}
    for child in issues:
        if child.is_epic:
            continue
        parent = child.epic_key
        if parent and parent in loe:
            loe[parent] += child.story_points
    return loe


def _window_table(capacity_for, used: int, planned: int, actual: int) -> WindowTable:
    return {
        window: WindowMetrics.build(capacity_for(window), used, planned, actual)
        for window in CapacityWindow
    }


def _empty_table() -> WindowTable:
    return {window: WindowMetrics() for window in CapacityWindow}


def _sum_tables(tables: Iterable[WindowTable]) -> WindowTable:
    total = _empty_table()
    for table in tables:
        for window in CapacityWindow:
            total[window] = total[window] + table[window]
    return total


def _belongs_to(issue: Issue, block: TeamCapacityBlock) -> bool:
    return normalize(issue.scrum_team) == block.team or compact(issue.scrum_team) == compact(block.team)


# ------------------------------------------------------------
# Per-team
# ------------------------------------------------------------
def aggregate_team(
    block: TeamCapacityBlock,
    issues: Optional[Iterable[Issue]],
    pi_number: object = None,
) -> TeamUtilization:
    """Team-level and per-role metrics for one capacity block. Issues of other teams are ignored."""
    team_issues = [i for i in ensure_issues(issues) if _belongs_to(i, block)]
    role_codes = {r.role for r in block.roles}

    def _bucket(issue: Issue) -> str:
        role = detect_role(issue)
        return role if role in role_codes else UNASSIGNED

    used = 0
    role_used: Dict[str, int] = defaultdict(int)
    used_by_iteration = {it: 0 for it in ITERATIONS}
    role_used_by_iteration: Dict[str, Dict[int, int]] = defaultdict(lambda: {it: 0 for it in ITERATIONS})

    planned = actual = 0
    role_planned: Dict[str, int] = defaultdict(int)
    role_actual: Dict[str, int] = defaultdict(int)

    for issue in team_issues:
        if not is_features(issue.allocation):
            continue

        if issue.is_regular_work:
            role = _bucket(issue)
            used += issue.story_points
            role_used[role] += issue.story_points

            iteration = sprint_iteration(issue.sprint_name, pi_number)
            if iteration:
                used_by_iteration[iteration] += issue.story_points
                role_used_by_iteration[role][iteration] += issue.story_points

        elif issue.is_epic:
            role = _bucket(issue)
            epic_planned = issue.feature_points * PLANNED_LOAD_MULTIPLIER
            planned += epic_planned
            actual += issue.story_point_estimate
            role_planned[role] += epic_planned
            role_actual[role] += issue.story_point_estimate

    roles: Dict[str, WindowTable] = {}
    for rc in block.roles:
        roles[rc.role] = _window_table(
            rc.capacity, role_used[rc.role], role_planned[rc.role], role_actual[rc.role]
        )

    if role_used[UNASSIGNED] or role_planned[UNASSIGNED] or role_actual[UNASSIGNED]:
        roles[UNASSIGNED] = _window_table(
            lambda _window: 0, role_used[UNASSIGNED], role_planned[UNASSIGNED], role_actual[UNASSIGNED]
        )

    utilization = TeamUtilization(
        team=block.team,
        display_name=block.display_name,
        value_stream=block.value_stream,
        windows=_window_table(block.capacity, used, planned, actual),
        roles=roles,
        used_by_iteration=used_by_iteration if pi_number not in (None, "") else {},
        role_used_by_iteration=dict(role_used_by_iteration),
    )

    if utilization.over_capacity:
        entire = utilization.windows[CapacityWindow.ENTIRE_PI]
        logger.warning(
            "%s over capacity: used=%s capacity=%s remaining=%s",
            block.team, entire.used, entire.capacity, entire.remaining,
        )
    return utilization


# ------------------------------------------------------------
# Whole report
# ------------------------------------------------------------
def aggregate(
    blocks: Optional[Iterable[TeamCapacityBlock]],
    issues: Optional[Iterable[Issue]],
    excluded_teams: Optional[Iterable[str]],
    context: str = "",
    pi_number: object = None,
) -> UtilizationReport:
    issues = ensure_issues(issues)
    excluded: Set[str] = set(excluded_teams or ())
    blocks = list(blocks or [])

    if not blocks:
        logger.warning("No capacity blocks for context %r; report will be empty", context)
    if not issues:
        logger.warning("No issues for context %r; used/load will be 0", context)

    teams: Dict[str, TeamUtilization] = {}
    for block in blocks:
        if not isinstance(block, TeamCapacityBlock):
            raise TypeError(f"expected TeamCapacityBlock, got {type(block).__name__}")
        if is_excluded_team(block.team, excluded):
            logger.debug("Team %s excluded from %s", block.team, context)
            continue
        if block.team in teams:
            logger.warning("Duplicate capacity block for %s at row %s; keeping the first", block.team, block.anchor_row + 1)
            continue
        teams[block.team] = aggregate_team(block, issues, pi_number)

    block_keys = {b.team for b in blocks} | {compact(b.team) for b in blocks}
    unmatched = {
        i.scrum_team for i in issues
        if normalize(i.scrum_team) not in block_keys
        and compact(i.scrum_team) not in block_keys
        and not is_excluded_team(i.scrum_team, excluded)
    }
    if unmatched:
        logger.info("Issue teams with no capacity block in %s: %s", context, ", ".join(sorted(unmatched)))

    return UtilizationReport(
        context=context,
        teams=teams,
        excluded_teams=excluded,
        unmatched_teams=unmatched,
    )


def special_team_rollup(report: UtilizationReport, special_team: str) -> SpecialTeamRollup:
    """
    SUBTOTAL (everyone but the special team), the special team's row, and
    TOTAL = SUBTOTAL + special row. Without the special team TOTAL == SUBTOTAL.
    """
    special_key = normalize(special_team)
    subtotal_teams: List[str] = [t for t in report.teams if t != special_key]
    subtotal = _sum_tables(report.teams[t].windows for t in subtotal_teams)

    special_util = report.teams.get(special_key)
    special = dict(special_util.windows) if special_util else None
    total = _sum_tables([subtotal, special]) if special else dict(subtotal)

    return SpecialTeamRollup(
        special_team=special_key,
        subtotal_teams=tuple(subtotal_teams),
        subtotal=subtotal,
        special=special,
        total=total,
    )
