"""
Exclusion resolution

Purpose:
A team that only shows up in a value stream because other streams filed
dependencies against it should not appear in that stream's report.

Rule (per team, per context):
    excluded  <=>  no regular (non-Dependency) work
              AND  at least one Dependency
              AND  every Dependency targets a different value stream

Recomputed on every call; nothing here is cached.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, List, Mapping, Optional, Set

from pi_capacity_reports.capacity_reporting.capacity_models import (
    UNASSIGNED,
    ExclusionDecision,
    Issue,
    ensure_issues,
)
from pi_capacity_reports.capacity_reporting.identifiers import canonical_value_stream, compact
from pi_capacity_reports.utils.logger import get_logger

logger = get_logger(__name__)


def dependency_value_stream(issue: Issue, aliases: Optional[Mapping[str, str]] = None) -> str:
    """Target value stream of a dependency; falls back to the issue's own stream."""
    return canonical_value_stream(issue.depends_on_value_stream or issue.value_stream, aliases)


def is_cross_context(issue: Issue, context: str, aliases: Optional[Mapping[str, str]] = None) -> bool:
    """`context` must already be canonical. A blank target is never cross-context."""
    target = dependency_value_stream(issue, aliases)
    return bool(target) and target != context


def exclusion_decisions(
    issues: Optional[Iterable[Issue]],
    context: object,
    aliases: Optional[Mapping[str, str]] = None,
) -> List[ExclusionDecision]:
    issues = ensure_issues(issues)
    ctx = canonical_value_stream(context, aliases)
    if not ctx:
        logger.warning("Exclusion check skipped: empty reporting context")
        return []
    if not issues:
        logger.warning("Exclusion check for %s: no issues supplied", ctx)
        return []

    # compact team key -> counters; first spelling seen is reported
    teams: "OrderedDict[str, Dict[str, object]]" = OrderedDict()
    for issue in issues:
        key = compact(issue.scrum_team)
        if not key or issue.scrum_team == UNASSIGNED:
            continue
        entry = teams.setdefault(
            key, {"name": issue.scrum_team, "regular": 0, "deps": 0, "cross": 0}
        )
        if issue.is_dependency:
            entry["deps"] += 1
            if is_cross_context(issue, ctx, aliases):
                entry["cross"] += 1
        else:
            entry["regular"] += 1

    decisions = []
    for entry in teams.values():
        regular, deps, cross = entry["regular"], entry["deps"], entry["cross"]
        if regular:
            excluded, reason = False, "has regular work"
        elif not deps:
            excluded, reason = False, "no dependencies"
        elif cross == deps:
            excluded, reason = True, "only cross-context dependencies"
        else:
            excluded, reason = False, "has in-context dependencies"

        decisions.append(
            ExclusionDecision(
                team=entry["name"],
                context=ctx,
                excluded=excluded,
                reason=reason,
                regular_work=regular,
                dependencies=deps,
                cross_context=cross,
            )
        )
        if excluded:
            logger.info(
                "Excluding %s from %s: %s dependencies, all cross-context",
                entry["name"], ctx, deps,
            )

    return decisions


def resolve_exclusions(
    issues: Optional[Iterable[Issue]],
    context: object,
    aliases: Optional[Mapping[str, str]] = None,
) -> Set[str]:
    """Names (as spelled on the issues) of teams to drop from `context`."""
    return {d.team for d in exclusion_decisions(issues, context, aliases) if d.excluded}


def is_excluded_team(team: object, excluded: Iterable[str]) -> bool:
    """Separator-insensitive, like the locator and aggregator team matching."""
    key = compact(team)
    return bool(key) and any(compact(name) == key for name in excluded)
