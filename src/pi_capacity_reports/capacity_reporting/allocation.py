"""
Allocation classification

Free-text allocation labels ("Product - Feature", "Planned KLO", ...) map to
one of four categories. Rules are evaluated in declared order and the first
category with a keyword contained in the label wins, so a label that hits
several categories always lands in the earliest one. That ordering is part
of the report contract.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from pi_capacity_reports.capacity_reporting.capacity_models import AllocationCategory

ALLOCATION_RULES: List[Tuple[AllocationCategory, Tuple[str, ...]]] = [
    (
        AllocationCategory.FEATURES,
        ("feature", "product", "compliance", "capability", "enhancement",
         "story", "user story", "requirement", "func", "new feature"),
    ),
    (
        AllocationCategory.TECH,
        ("tech", "platform", "infrastructure", "architecture", "technical",
         "system", "framework", "devops", "tooling", "engineering"),
    ),
    (
        AllocationCategory.KLO,
        ("klo", "keep", "lights", "maintenance", "support", "operational",
         "ops", "sustaining", "keep lights on", "bau", "business as usual"),
    ),
    (
        AllocationCategory.QUALITY,
        ("quality", "defect", "bug", "fix", "issue", "problem",
         "qa", "test", "testing", "quality assurance", "defect fix"),
    ),
]

DEFAULT_CATEGORY = AllocationCategory.FEATURES


def classify_allocation(label: object) -> AllocationCategory:
    if label is None:
        return DEFAULT_CATEGORY
    text = str(label).lower().strip()
    if not text:
        return DEFAULT_CATEGORY

    for category, keywords in ALLOCATION_RULES:
        if any(keyword in text for keyword in keywords):
            return category

    return DEFAULT_CATEGORY


def is_features(label: object) -> bool:
    return classify_allocation(label) is AllocationCategory.FEATURES


def category_counts(labels: Iterable[object]) -> Dict[AllocationCategory, int]:
    """How many labels fall in each category (all four keys always present)."""
    counts = {category: 0 for category, _ in ALLOCATION_RULES}
    for label in labels:
        counts[classify_allocation(label)] += 1
    return counts
