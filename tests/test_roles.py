"""
Unit tests for role detection.
"""

import pytest

from pi_capacity_reports.capacity_reporting.capacity_models import Issue
from pi_capacity_reports.capacity_reporting.roles import detect_role, normalize_role


def test_label_wins_over_title() -> None:
    issue = Issue(labels=("QA",), summary="[BE] Fix login timeout")
    assert detect_role(issue) == "QA"


def test_label_beats_bracketed_title_prefix() -> None:
    issue = Issue(labels=("BE",), summary="[QA] fix login")
    assert detect_role(issue) == "BE"


def test_first_resolving_label_wins() -> None:
    issue = Issue(labels=("backend", "fe", "BE"))
    assert detect_role(issue) == "FE"


@pytest.mark.parametrize(
    "summary, expected",
    [
        ("[BE] Fix login timeout", "BE"),
        ("(fe) Align header", "FE"),
        ("DevOps: rotate keys", "DEVOPS"),
        ("UX - new onboarding flow", "UX"),
        ("BE fix retry logic", "BE"),
        ("AQA: regression suite", "QA"),
        ("M-DEV: push notifications", "M-DEV"),
        ("W-DEV - settings page", "W-DEV"),
    ],
)
def test_title_prefixes(summary, expected) -> None:
    assert detect_role(Issue(summary=summary)) == expected


@pytest.mark.parametrize(
    "summary",
    ["Improve login flow", "Fix the bug", "", "[Spike] research caching"],
)
def test_no_signal_is_none(summary) -> None:
    assert detect_role(Issue(summary=summary)) is None


def test_labels_from_record_string() -> None:
    issue = Issue.from_record({"labels": "backend, BE", "summary": "Refactor"})
    assert detect_role(issue) == "BE"


def test_normalize_role() -> None:
    assert normalize_role("AQA") == "QA"
    assert normalize_role("w dev") == "W-DEV"
    assert normalize_role("Mobile") == "M-DEV"
    assert normalize_role("M-iOS") == "M-IOS"
    assert normalize_role("Architect") == "ARCHITECT"
