from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

UNASSIGNED = "Unassigned"
TEAM_LEVEL = "TEAM"
ITERATIONS = (1, 2, 3, 4, 5, 6)

REGULAR_WORK_TYPES = ("Story", "Bug")
EPIC_TYPE = "Epic"
DEPENDENCY_TYPE = "Dependency"


# ------------------------------------------------------------
# Lenient numeric parsing (grid cells + tracker fields)
# ------------------------------------------------------------
def parse_points(value: object) -> int:
    """
    Parse a point value and round it UP to an int.

    '-', '', None, NaN and anything non-numeric are 0. Rounding happens here,
    once, so every later sum is a sum of already-rounded parts.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text or text == "-":
            return 0
        try:
            number = float(text)
        except ValueError:
            return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return int(math.ceil(number))


def _text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def _labels(value: object) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        parts: Iterable[object] = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        parts = value
    else:
        parts = [value]
    return tuple(t for t in (_text(p) for p in parts) if t)


# ------------------------------------------------------------
# Categories / windows
# ------------------------------------------------------------
class AllocationCategory(Enum):
    # Declaration order is classification priority
    FEATURES = "Features"
    TECH = "Tech/Platform"
    KLO = "KLO"
    QUALITY = "Quality"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    AllocationCategory.FEATURES: "Features (Product - Compliance & Feature)",
    AllocationCategory.TECH: "Tech / Platform",
    AllocationCategory.KLO: "Planned KLO",
    AllocationCategory.QUALITY: "Planned Quality",
}


class CapacityWindow(Enum):
    ENTIRE_PI = "Entire PI"      # before FF + after FF
    CODE_FREEZE = "Code Freeze"  # before FF only


# ------------------------------------------------------------
# Capacity grid records
# ------------------------------------------------------------
@dataclass(frozen=True)
class RoleCapacity:
    role: str
    display_name: str
    before_ff: int = 0
    after_ff: int = 0
    by_iteration: Mapping[int, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.before_ff + self.after_ff

    def capacity(self, window: CapacityWindow) -> int:
        if window is CapacityWindow.CODE_FREEZE:
            return self.before_ff
        return self.total


@dataclass(frozen=True)
class TeamCapacityBlock:
    team: str                 # normalized
    display_name: str
    value_stream: str
    roles: Tuple[RoleCapacity, ...] = ()
    allocations: Mapping[str, int] = field(default_factory=dict)
    anchor_row: int = 0
    anchor_col: int = 0

    @property
    def before_ff(self) -> int:
        return sum(r.before_ff for r in self.roles)

    @property
    def after_ff(self) -> int:
        return sum(r.after_ff for r in self.roles)

    @property
    def total(self) -> int:
        return self.before_ff + self.after_ff

    @property
    def by_iteration(self) -> Dict[int, int]:
        return {i: sum(r.by_iteration.get(i, 0) for r in self.roles) for i in ITERATIONS}

    @property
    def product_capacity(self) -> int:
        return self.allocations.get("PRODUCT FEATURE", 0) + self.allocations.get("PRODUCT COMPLIANCE", 0)

    def capacity(self, window: CapacityWindow) -> int:
        if window is CapacityWindow.CODE_FREEZE:
            return self.before_ff
        return self.total

    def role(self, code: str) -> Optional[RoleCapacity]:
        for r in self.roles:
            if r.role == code:
                return r
        return None


# ------------------------------------------------------------
# Tracker issue
# ------------------------------------------------------------
# Compact (lowercase, no separators) source key -> Issue attribute
_RECORD_KEYS = {
    "key": "key",
    "issuekey": "key",
    "issuetype": "issue_type",
    "type": "issue_type",
    "scrumteam": "scrum_team",
    "team": "scrum_team",
    "valuestream": "value_stream",
    "allocation": "allocation",
    "storypoints": "story_points",
    "storypointestimate": "story_point_estimate",
    "featurepoints": "feature_points",
    "sprintname": "sprint_name",
    "sprint": "sprint_name",
    "labels": "labels",
    "dependsonvaluestream": "depends_on_value_stream",
    "dependsonteam": "depends_on_team",
    "parentkey": "parent_key",
    "parent": "parent_key",
    "epiclink": "epic_link",
    "summary": "summary",
    "title": "summary",
    "status": "status",
}

_POINT_FIELDS = ("story_points", "story_point_estimate", "feature_points")


def _compact_key(key: object) -> str:
    return "".join(ch for ch in str(key).lower() if ch.isalnum())


@dataclass(frozen=True)
class Issue:
    key: str = ""
    issue_type: str = ""
    scrum_team: str = UNASSIGNED
    value_stream: str = ""
    allocation: str = ""
    story_points: int = 0
    story_point_estimate: int = 0
    feature_points: int = 0
    sprint_name: str = ""
    labels: Tuple[str, ...] = ()
    depends_on_value_stream: str = ""
    depends_on_team: str = ""
    parent_key: str = ""
    epic_link: str = ""
    summary: str = ""
    status: str = ""

    @classmethod
    def from_record(cls, record: Mapping[str, object]) -> "Issue":
        """
        Build an Issue from a tracker/export record.

        Accepts camelCase, snake_case or display headers ("Scrum Team").
        Missing fields default to empty/0; point fields are ceil-rounded here.
        """
        values: Dict[str, object] = {}
        for raw_key, raw_value in record.items():
            attr = _RECORD_KEYS.get(_compact_key(raw_key))
            if attr is None:
                continue
            # First non-empty source wins when two headers map to one field
            if values.get(attr) not in (None, "", 0, ()):
                continue
            if attr in _POINT_FIELDS:
                values[attr] = parse_points(raw_value)
            elif attr == "labels":
                values[attr] = _labels(raw_value)
            else:
                values[attr] = _text(raw_value)

        if not values.get("scrum_team"):
            values["scrum_team"] = UNASSIGNED
        return cls(**values)

    @property
    def epic_key(self) -> str:
        return self.epic_link or self.parent_key

    @property
    def is_dependency(self) -> bool:
        return self.issue_type == DEPENDENCY_TYPE

    @property
    def is_epic(self) -> bool:
        return self.issue_type == EPIC_TYPE

    @property
    def is_regular_work(self) -> bool:
        return self.issue_type in REGULAR_WORK_TYPES


def ensure_issues(issues: Optional[Iterable[Issue]]) -> List[Issue]:
    """Materialize an issue iterable; None is an empty list, anything else must hold Issues."""
    if issues is None:
        return []
    if isinstance(issues, (str, bytes, Mapping)):
        raise TypeError("issues must be an iterable of Issue")
    try:
        items = list(issues)
    except TypeError:
        raise TypeError("issues must be an iterable of Issue") from None
    for item in items:
        if not isinstance(item, Issue):
            raise TypeError(f"expected Issue, got {type(item).__name__}")
    return items


# ------------------------------------------------------------
# Exclusion decisions
# ------------------------------------------------------------
@dataclass(frozen=True)
class ExclusionDecision:
    team: str
    context: str
    excluded: bool
    reason: str
    regular_work: int = 0
    dependencies: int = 0
    cross_context: int = 0


# ------------------------------------------------------------
# Utilization metrics
# ------------------------------------------------------------
@dataclass(frozen=True)
class WindowMetrics:
    capacity: int = 0
    used: int = 0
    remaining: int = 0
    planned_load: int = 0
    planned_remaining: int = 0
    actual_load: int = 0
    actual_remaining: int = 0

    @classmethod
    def build(cls, capacity: int, used: int, planned_load: int, actual_load: int) -> "WindowMetrics":
        return cls(
            capacity=capacity,
            used=used,
            remaining=capacity - used,
            planned_load=planned_load,
            planned_remaining=capacity - planned_load,
            actual_load=actual_load,
            actual_remaining=capacity - actual_load,
        )

    @property
    def over_capacity(self) -> bool:
        return self.remaining < 0

    def __add__(self, other: "WindowMetrics") -> "WindowMetrics":
        # Field-wise, like summing displayed rows
        return WindowMetrics(
            capacity=self.capacity + other.capacity,
            used=self.used + other.used,
            remaining=self.remaining + other.remaining,
            planned_load=self.planned_load + other.planned_load,
            planned_remaining=self.planned_remaining + other.planned_remaining,
            actual_load=self.actual_load + other.actual_load,
            actual_remaining=self.actual_remaining + other.actual_remaining,
        )

    def as_dict(self) -> Dict[str, int]:
        return {
            "capacity": self.capacity,
            "used": self.used,
            "remaining": self.remaining,
            "plannedLoad": self.planned_load,
            "plannedRemaining": self.planned_remaining,
            "actualLoad": self.actual_load,
            "actualRemaining": self.actual_remaining,
        }


WindowTable = Dict[CapacityWindow, WindowMetrics]


@dataclass
class TeamUtilization:
    team: str
    display_name: str
    value_stream: str
    windows: WindowTable
    roles: Dict[str, WindowTable] = field(default_factory=dict)
    used_by_iteration: Dict[int, int] = field(default_factory=dict)
    role_used_by_iteration: Dict[str, Dict[int, int]] = field(default_factory=dict)

    @property
    def over_capacity(self) -> bool:
        return any(m.over_capacity for m in self.windows.values())

    def over_capacity_roles(self, window: CapacityWindow = CapacityWindow.ENTIRE_PI) -> List[str]:
        return sorted(role for role, table in self.roles.items() if table[window].over_capacity)


@dataclass(frozen=True)
class SpecialTeamRollup:
    special_team: str
    subtotal_teams: Tuple[str, ...]
    subtotal: WindowTable
    special: Optional[WindowTable]
    total: WindowTable


@dataclass
class UtilizationReport:
    context: str
    teams: Dict[str, TeamUtilization]
    excluded_teams: Set[str]
    unmatched_teams: Set[str] = field(default_factory=set)
    rollup: Optional[SpecialTeamRollup] = None
    generated_at: datetime = field(default_factory=datetime.now)

    def as_nested(self) -> Dict[str, Dict[str, Dict[str, Dict[str, int]]]]:
        """team -> role -> window -> metrics; team-level figures sit under TEAM_LEVEL."""
        nested: Dict[str, Dict[str, Dict[str, Dict[str, int]]]] = {}
        for team, util in self.teams.items():
            roles = {TEAM_LEVEL: {w.value: m.as_dict() for w, m in util.windows.items()}}
            for role, table in util.roles.items():
                roles[role] = {w.value: m.as_dict() for w, m in table.items()}
            nested[team] = roles
        return nested

    @property
    def over_capacity_teams(self) -> List[str]:
        return sorted(t for t, u in self.teams.items() if u.over_capacity)
