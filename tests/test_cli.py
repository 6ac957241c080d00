"""
Tests for the flattened tables and the command-line entry point.
"""

import pandas as pd
import pytest

from pi_capacity_reports.capacity_reporting.aggregator import aggregate, special_team_rollup
from pi_capacity_reports.capacity_reporting.cli import main
from pi_capacity_reports.presentation.console import render_utilization
from pi_capacity_reports.presentation.tables import (
    REPORT_COLUMNS,
    report_to_frame,
    rollup_to_frame,
)


@pytest.fixture
def report(avengers_block, eyefinity_block, story):
    issues = [story(points=10, labels=("BE",)), story(team="Eyefinity", points=30, labels=("FE",))]
    report = aggregate([avengers_block, eyefinity_block], issues, set(), context="EMA Clinical")
    report.rollup = special_team_rollup(report, "Eyefinity")
    return report


def test_report_to_frame(report) -> None:
    df = report_to_frame(report)

    assert list(df.columns) == REPORT_COLUMNS
    # (team row + roles) x 2 windows: Avengers 1+2, Eyefinity 1+1
    assert len(df) == 10
    team_rows = df[(df["role"] == "TEAM") & (df["window"] == "Entire PI")].set_index("team")
    assert team_rows.loc["Avengers", "remaining"] == 55
    assert bool(team_rows.loc["Eyefinity", "over_capacity"]) is True


def test_rollup_to_frame(report) -> None:
    df = rollup_to_frame(report.rollup)
    assert list(df["row"].unique()) == ["SUBTOTAL", "EYEFINITY", "TOTAL"]
    total = df[(df["row"] == "TOTAL") & (df["window"] == "Entire PI")].iloc[0]
    assert total["capacity"] == 85
    assert total["used"] == 40


def test_render_utilization(report) -> None:
    text = render_utilization(report)
    assert "PI CAPACITY UTILIZATION - EMA Clinical" in text
    assert "OVER CAPACITY: EYEFINITY" in text


def test_cli_writes_csv(tmp_path, clinical_grid, capsys) -> None:
    capacity = tmp_path / "capacity.csv"
    pd.DataFrame(clinical_grid).to_csv(capacity, header=False, index=False)

    issues = tmp_path / "issues.csv"
    issues.write_text(
        "Key,Issue Type,Scrum Team,Allocation,Story Points,Labels\n"
        "AV-1,Story,Avengers,Product - Feature,8,BE\n"
        "EY-1,Story,Eyefinity,Product - Feature,2,FE\n"
    )
    output = tmp_path / "out" / "report.csv"

    main([
        "--capacity", str(capacity),
        "--issues", str(issues),
        "--context", "EMA Clinical",
        "--output", str(output),
    ])

    printed = capsys.readouterr().out
    assert "PI CAPACITY UTILIZATION - EMA Clinical" in printed
    assert output.exists()

    df = pd.read_csv(output)
    assert set(df["team"]) == {"Avengers", "Explorers", "Eyefinity"}
    avengers = df[(df["team"] == "Avengers") & (df["role"] == "TEAM") & (df["window"] == "Entire PI")].iloc[0]
    assert avengers["used"] == 8
    assert avengers["remaining"] == 58


def test_cli_missing_input(tmp_path) -> None:
    with pytest.raises(SystemExit):
        main(["--capacity", str(tmp_path / "nope.csv"), "--issues", str(tmp_path / "nope.csv")])
