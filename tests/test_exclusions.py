"""
Unit tests for cross-context exclusion resolution.
"""

import pytest

from pi_capacity_reports.capacity_reporting.capacity_models import Issue
from pi_capacity_reports.capacity_reporting.exclusions import (
    exclusion_decisions,
    is_excluded_team,
    resolve_exclusions,
)

CONTEXT = "EMA Clinical"


def dependency(team, target="", value_stream=""):
    return Issue(
        issue_type="Dependency",
        scrum_team=team,
        depends_on_value_stream=target,
        value_stream=value_stream,
    )


def test_only_cross_context_dependencies_is_excluded() -> None:
    issues = [dependency("Borg", "EMA RaC"), dependency("Borg", "RCM Genie")]
    assert resolve_exclusions(issues, CONTEXT) == {"Borg"}


def test_regular_work_keeps_team(story) -> None:
    issues = [dependency("Borg", "EMA RaC"), story(team="Borg")]
    assert resolve_exclusions(issues, CONTEXT) == set()


def test_one_in_context_dependency_keeps_team() -> None:
    issues = [dependency("Borg", "EMA RaC"), dependency("Borg", "ema-clinical")]
    assert resolve_exclusions(issues, CONTEXT) == set()


def test_team_without_dependencies_is_kept(story) -> None:
    assert resolve_exclusions([story(team="Avengers")], CONTEXT) == set()


class TestDependencyTarget:
    def test_blank_target_falls_back_to_issue_value_stream(self) -> None:
        assert resolve_exclusions([dependency("Borg", "", "EMA RAC")], CONTEXT) == {"Borg"}

    def test_blank_everywhere_is_not_cross_context(self) -> None:
        assert resolve_exclusions([dependency("Borg")], CONTEXT) == set()

    def test_aliases_resolve_before_comparing(self, aliases) -> None:
        issues = [dependency("Claimbots", "RCM Genie")]
        assert resolve_exclusions(issues, "RCM", aliases) == set()
        assert resolve_exclusions(issues, "RCM") == {"Claimbots"}


def test_returned_names_keep_issue_spelling() -> None:
    issues = [dependency("time_keepers", "RCM"), dependency("Time-Keepers", "EMA RaC")]
    assert resolve_exclusions(issues, CONTEXT) == {"time_keepers"}


def test_decisions_carry_counts(story) -> None:
    issues = [dependency("Borg", "EMA RaC"), dependency("Borg", "RCM"), story(team="Avengers")]
    decisions = {d.team: d for d in exclusion_decisions(issues, CONTEXT)}

    borg = decisions["Borg"]
    assert borg.excluded
    assert (borg.regular_work, borg.dependencies, borg.cross_context) == (0, 2, 2)
    assert borg.context == "EMA CLINICAL"

    assert not decisions["Avengers"].excluded
    assert decisions["Avengers"].reason == "has regular work"


def test_empty_context_gives_empty_set(caplog) -> None:
    assert resolve_exclusions([dependency("Borg", "RCM")], "  ") == set()
    assert "empty reporting context" in caplog.text


def test_no_issues() -> None:
    assert resolve_exclusions([], CONTEXT) == set()
    assert resolve_exclusions(None, CONTEXT) == set()


def test_rejects_raw_records() -> None:
    with pytest.raises(TypeError):
        resolve_exclusions([{"issueType": "Dependency"}], CONTEXT)


def test_is_excluded_team() -> None:
    excluded = {"Borg", "Time-Keepers"}
    assert is_excluded_team("borg ", excluded)
    assert is_excluded_team("time keepers", excluded)
    assert not is_excluded_team("Avengers", excluded)
    assert not is_excluded_team("", excluded)


class TestBorgScenarios:
    def test_all_cross_context_dependencies(self) -> None:
        issues = [dependency("Borg", "MMPM")]
        assert resolve_exclusions(issues, "EMA RAC") == {"Borg"}

    def test_regular_work(self) -> None:
        issues = [Issue(scrum_team="Borg", issue_type="Story"), dependency("Borg", "MMPM")]
        assert resolve_exclusions(issues, "EMA RAC") == set()

    def test_mixed_dependency_origins(self) -> None:
        issues = [dependency("Borg", "MMPM"), dependency("Borg", "EMA RAC")]
        assert resolve_exclusions(issues, "EMA RAC") == set()


class TestTeamSpelling:
    def test_separator_free_spelling_groups_with_hyphenated(self, story) -> None:
        issues = [dependency("Penny-Wise", "EMA RAC"), story(team="PennyWise")]
        assert resolve_exclusions(issues, "MMPM") == set()

    def test_spellings_share_one_decision(self) -> None:
        issues = [dependency("Penny-Wise", "EMA RAC"), dependency("PennyWise", "RCM")]
        decisions = exclusion_decisions(issues, "MMPM")
        assert len(decisions) == 1
        assert decisions[0].team == "Penny-Wise"
        assert decisions[0].dependencies == 2

    def test_is_excluded_team_ignores_separators(self) -> None:
        assert is_excluded_team("PennyWise", {"Penny-Wise"})
        assert is_excluded_team("TIMEKEEPERS", {"Time-Keepers"})


def test_team_less_issues_are_never_excluded() -> None:
    issues = [
        Issue(issue_type="Dependency", depends_on_value_stream="RCM"),
        Issue.from_record({"issueType": "Dependency", "scrumTeam": "", "dependsOnValueStream": "MMPM"}),
        dependency("", "RCM"),
    ]
    assert resolve_exclusions(issues, CONTEXT) == set()
    assert exclusion_decisions(issues, CONTEXT) == []
