from __future__ import annotations

import io

from pi_capacity_reports.capacity_reporting.capacity_models import UtilizationReport
from pi_capacity_reports.presentation.tables import report_to_frame, rollup_to_frame


def render_utilization(report: UtilizationReport) -> str:
    out = io.StringIO()

    print("\n" + "=" * 80, file=out)
    print(f"PI CAPACITY UTILIZATION - {report.context}", file=out)
    print("=" * 80, file=out)
    print(f"Generated: {report.generated_at:%Y-%m-%d %H:%M}", file=out)
    print(f"Teams reported: {len(report.teams)}", file=out)
    print(f"Excluded (cross-context dependencies only): {', '.join(sorted(report.excluded_teams)) or 'none'}", file=out)
    if report.unmatched_teams:
        print(f"Issue teams without a capacity block: {', '.join(sorted(report.unmatched_teams))}", file=out)
    print(file=out)

    df = report_to_frame(report)
    if df.empty:
        print("No capacity data for this context.", file=out)
    else:
        print(df.drop(columns=["context", "value_stream"]).to_string(index=False), file=out)

    if report.rollup is not None:
        print(file=out)
        print("-" * 80, file=out)
        print(rollup_to_frame(report.rollup).to_string(index=False), file=out)

    if report.over_capacity_teams:
        print(file=out)
        print(f"OVER CAPACITY: {', '.join(report.over_capacity_teams)}", file=out)

    return out.getvalue()
