"""
Role detection

Issues carry no role field. The role is inferred, best effort, from:
  1. labels (exact match against the role table)
  2. a title prefix: [BE], (BE), BE:, BE -, or a short leading token

Anything without a clear signal returns None and is reported as "Unassigned".
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional, Pattern, Tuple

from pi_capacity_reports.capacity_reporting.capacity_models import Issue
from pi_capacity_reports.capacity_reporting.identifiers import normalize

# Normalized variant -> canonical role code
ROLE_NORMALIZATION = {
    "QA": "QA",
    "AQA": "QA",
    "W DEV": "W-DEV",
    "WDEV": "W-DEV",
    "M DEV": "M-DEV",
    "MDEV": "M-DEV",
    "MOBILE": "M-DEV",
    "M ANDROID": "M-ANDROID",
    "M IOS": "M-IOS",
    "BE": "BE",
    "FE": "FE",
    "DEVOPS": "DEVOPS",
    "UX": "UX",
}

# Tried in order against the summary; group 1 is the candidate token
TITLE_PREFIX_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"^\s*\[([A-Z\-]+)\]", re.IGNORECASE),      # [BE] fix
    re.compile(r"^\s*\(([A-Z\-]+)\)", re.IGNORECASE),      # (BE) fix
    re.compile(r"^\s*([A-Z\-]+)\s*:", re.IGNORECASE),      # BE: fix
    re.compile(r"^\s*([A-Z\-]+)\s*-\s", re.IGNORECASE),    # BE - fix
    re.compile(r"^\s*([A-Z\-]{2,6})\s+", re.IGNORECASE),   # BE fix
)


def lookup_role(token: object) -> Optional[str]:
    """Exact (normalized) lookup in the role table."""
    return ROLE_NORMALIZATION.get(normalize(token))


def normalize_role(name: object) -> str:
    """Role code for a capacity-grid role name; unknown names keep their normalized form."""
    key = normalize(name)
    return ROLE_NORMALIZATION.get(key, key)


def _from_labels(issue: Issue) -> Optional[str]:
    for label in issue.labels:
        role = lookup_role(label)
        if role:
            return role
    return None


def _from_title(issue: Issue) -> Optional[str]:
    summary = issue.summary or ""
    for pattern in TITLE_PREFIX_PATTERNS:
        match = pattern.match(summary)
        if not match:
            continue
        role = lookup_role(match.group(1))
        if role:
            return role
    return None


# Ordered rule list; first source that yields a role wins
ROLE_RULES: List[Callable[[Issue], Optional[str]]] = [_from_labels, _from_title]


def detect_role(issue: Issue) -> Optional[str]:
    for rule in ROLE_RULES:
        role = rule(issue)
        if role:
            return role
    return None

