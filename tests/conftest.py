"""
Pytest configuration and shared fixtures.

Capacity grids are built synthetically in the same shape as the consolidated
capacity tab: value-stream headers in row 0 every 11 columns, team blocks
25 rows tall starting at row 2.
"""

import pytest

from pi_capacity_reports.capacity_reporting.capacity_models import (
    Issue,
    RoleCapacity,
    TeamCapacityBlock,
)
from pi_capacity_reports.capacity_reporting.value_streams import TeamRegistry

BLOCK_WIDTH = 11
BLOCK_HEIGHT = 25
FIRST_TEAM_ROW = 2

BEFORE_FF_ROW = 10
AFTER_FF_ROW = 18


def _fill_roles(rows, marker_row, marker, roles):
    rows[marker_row][0] = marker
    for i, (name, value) in enumerate(roles.items()):
        row = rows[marker_row + 1 + i]
        row[0] = name
        if isinstance(value, tuple):
            total, iterations = value
            for it, cell in enumerate(iterations):
                row[3 + it] = cell
        else:
            total = value
        row[9] = total


def build_block(team, before=None, after=None, allocations=None, anchor_marker="Allocation Type"):
    """
    25 x 11 team block.

    `before` / `after` map role name -> total or (total, [iteration values]).
    None leaves the FF marker out entirely.
    """
    rows = [[""] * BLOCK_WIDTH for _ in range(BLOCK_HEIGHT)]
    rows[0][0] = team
    rows[1][0] = anchor_marker
    for i, (label, total) in enumerate((allocations or {}).items()):
        rows[2 + i][2] = label
        rows[2 + i][9] = total
    if before is not None:
        _fill_roles(rows, BEFORE_FF_ROW, "Base Capacity before FF", before)
    if after is not None:
        _fill_roles(rows, AFTER_FF_ROW, "Base Capacity after FF", after)
    return rows


def build_grid(*regions):
    """regions: (value-stream header, [block rows, ...]) laid out left to right."""
    height = FIRST_TEAM_ROW + BLOCK_HEIGHT * max((len(blocks) for _, blocks in regions), default=0)
    width = BLOCK_WIDTH * len(regions)
    grid = [[""] * width for _ in range(height)]
    for r, (header, blocks) in enumerate(regions):
        col = r * BLOCK_WIDTH
        grid[0][col] = header
        for b, block in enumerate(blocks):
            top = FIRST_TEAM_ROW + b * BLOCK_HEIGHT
            for dy, row in enumerate(block):
                grid[top + dy][col:col + BLOCK_WIDTH] = row
    return grid


@pytest.fixture
def make_block():
    return build_block


@pytest.fixture
def make_grid():
    return build_grid


@pytest.fixture
def registry() -> TeamRegistry:
    return TeamRegistry.default()


@pytest.fixture
def aliases(registry):
    return registry.aliases()


@pytest.fixture
def avengers_block() -> TeamCapacityBlock:
    return TeamCapacityBlock(
        team="AVENGERS",
        display_name="Avengers",
        value_stream="EMA Clinical",
        roles=(
            RoleCapacity("QA", "QA", before_ff=20, after_ff=5),
            RoleCapacity("BE", "BE", before_ff=30, after_ff=10),
        ),
    )


@pytest.fixture
def eyefinity_block() -> TeamCapacityBlock:
    return TeamCapacityBlock(
        team="EYEFINITY",
        display_name="Eyefinity",
        value_stream="EMA Clinical",
        roles=(RoleCapacity("FE", "FE", before_ff=15, after_ff=5),),
    )


@pytest.fixture
def story():
    """Factory for Features Story issues."""
    def _make(team="Avengers", points=1, **kwargs):
        kwargs.setdefault("issue_type", "Story")
        kwargs.setdefault("allocation", "Product - Feature")
        return Issue(scrum_team=team, story_points=points, **kwargs)
    return _make


@pytest.fixture
def clinical_grid(make_grid, make_block):
    """EMA Clinical region (Avengers, Explorers, Eyefinity) next to an RCM region."""
    return make_grid(
        (
            "EMA Clinical",
            [
                make_block(
                    "Avengers",
                    before={"QA": (20, [3, 3, 3, 3, 4, 4]), "BE": "30.2"},
                    after={"QA": 5, "BE": 10},
                    allocations={
                        "KLO": 10,
                        "Quality": 5,
                        "Tech / Platform": 5,
                        "Product - Feature": 40,
                        "Product - Compliance": "7.5",
                        "Unplanned work": "-",
                    },
                ),
                make_block("Explorers", before={"FE": 12}, after={"FE": 4}),
                make_block("Eyefinity", before={"FE": 15}, after={"FE": 5}),
            ],
        ),
        ("RCM", [make_block("Claimbots", before={"BE": 8}, after={"BE": 2})]),
    )
