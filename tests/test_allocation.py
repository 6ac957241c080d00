"""
Unit tests for allocation classification.
"""

import pytest

from pi_capacity_reports.capacity_reporting.allocation import (
    category_counts,
    classify_allocation,
    is_features,
)
from pi_capacity_reports.capacity_reporting.capacity_models import AllocationCategory


@pytest.mark.parametrize(
    "label, expected",
    [
        ("Product - Feature", AllocationCategory.FEATURES),
        ("Product - Compliance", AllocationCategory.FEATURES),
        ("Tech Debt", AllocationCategory.TECH),
        ("Platform", AllocationCategory.TECH),
        ("Planned KLO", AllocationCategory.KLO),
        ("Maintenance", AllocationCategory.KLO),
        ("Quality", AllocationCategory.QUALITY),
        ("Defect", AllocationCategory.QUALITY),
        ("Testing", AllocationCategory.QUALITY),
    ],
)
def test_single_category_labels(label, expected) -> None:
    assert classify_allocation(label) is expected


def test_earlier_category_wins() -> None:
    # product (Features) beats support (KLO)
    assert classify_allocation("Product support") is AllocationCategory.FEATURES
    # platform (Tech) beats bug fix (Quality)
    assert classify_allocation("Platform bug fix") is AllocationCategory.TECH


def test_case_insensitive() -> None:
    assert classify_allocation("KLO") is AllocationCategory.KLO
    assert classify_allocation("  QUALITY  ") is AllocationCategory.QUALITY


@pytest.mark.parametrize("label", [None, "", "   ", "zzz"])
def test_default_is_features(label) -> None:
    assert classify_allocation(label) is AllocationCategory.FEATURES
    assert is_features(label)


def test_category_counts() -> None:
    counts = category_counts(["Feature", "KLO", "", "bug"])
    assert counts == {
        AllocationCategory.FEATURES: 2,
        AllocationCategory.TECH: 0,
        AllocationCategory.KLO: 1,
        AllocationCategory.QUALITY: 1,
    }


def test_feature_keyword_beats_quality_keywords() -> None:
    assert classify_allocation("Feature bug fix") is AllocationCategory.FEATURES


def test_quality_only_label() -> None:
    assert classify_allocation("QA Testing") is AllocationCategory.QUALITY
