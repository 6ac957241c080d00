from __future__ import annotations

from typing import Dict, List

import pandas as pd

from pi_capacity_reports.capacity_reporting.capacity_models import (
    TEAM_LEVEL,
    CapacityWindow,
    SpecialTeamRollup,
    UtilizationReport,
    WindowTable,
)

METRIC_COLUMNS = [
    "capacity",
    "used",
    "remaining",
    "plannedLoad",
    "plannedRemaining",
    "actualLoad",
    "actualRemaining",
]

REPORT_COLUMNS = ["context", "team", "value_stream", "role", "window", *METRIC_COLUMNS, "over_capacity"]
ROLLUP_COLUMNS = ["row", "window", *METRIC_COLUMNS]


def _metric_rows(table: WindowTable, base: Dict[str, object]) -> List[Dict[str, object]]:
    rows = []
    for window in CapacityWindow:
        metrics = table[window]
        rows.append({**base, "window": window.value, **metrics.as_dict(), "over_capacity": metrics.over_capacity})
    return rows


def report_to_frame(report: UtilizationReport) -> pd.DataFrame:
    """One row per team x role x window; team-level rows use role TEAM."""
    rows: List[Dict[str, object]] = []
    for util in report.teams.values():
        base = {"context": report.context, "team": util.display_name, "value_stream": util.value_stream}
        rows.extend(_metric_rows(util.windows, {**base, "role": TEAM_LEVEL}))
        for role, table in util.roles.items():
            rows.extend(_metric_rows(table, {**base, "role": role}))
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def rollup_to_frame(rollup: SpecialTeamRollup) -> pd.DataFrame:
    """SUBTOTAL, the special team's row (when present) and TOTAL, per window."""
    sections = [("SUBTOTAL", rollup.subtotal)]
    if rollup.special is not None:
        sections.append((rollup.special_team, rollup.special))
    sections.append(("TOTAL", rollup.total))

    rows = []
    for label, table in sections:
        for window in CapacityWindow:
            rows.append({"row": label, "window": window.value, **table[window].as_dict()})
    return pd.DataFrame(rows, columns=ROLLUP_COLUMNS)
