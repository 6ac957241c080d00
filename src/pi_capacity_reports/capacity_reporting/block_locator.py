"""
Capacity Block Locator

Reads the consolidated "PI<n> - Capacity" tab (as a 2D snapshot) and pulls
out one TeamCapacityBlock per known team.

Grid shape (0-indexed, relative to the team-name anchor at row N, col C):
- Row 0:          value-stream headers every 11 columns
- N, C:           team name; N+1, C holds the literal "Allocation Type"
- N+2..N+7:       allocation rows, label at C+2, total at C+9
- N+8..N+12:      "Base Capacity before FF" marker, then up to 6 role rows
- N+16..N+20:     "Base Capacity after FF" marker, then up to 6 role rows
- role rows:      iterations 1-6 at C+3..C+8, total at C+9
Blocks are 25 rows tall; the scan jumps a whole block after every anchor.

Pure: no sheet access, no config reads beyond the layout object.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pi_capacity_reports.capacity_reporting.capacity_models import (
    ITERATIONS,
    RoleCapacity,
    TeamCapacityBlock,
    parse_points,
)
from pi_capacity_reports.capacity_reporting.identifiers import (
    canonical_value_stream,
    compact,
    normalize,
)
from pi_capacity_reports.capacity_reporting.roles import normalize_role
from pi_capacity_reports.utils.logger import get_logger

logger = get_logger(__name__)

Grid = Tuple[Tuple[object, ...], ...]


class CapacityBlockLayout(BaseSettings):
    """
    Named offsets for the capacity tab.

    Override any value with CAPACITY_LAYOUT_<FIELD> in the environment or .env.
    """
    model_config = SettingsConfigDict(
        env_prefix="CAPACITY_LAYOUT_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    value_stream_row: int = 0
    first_team_row: int = 2
    block_width: int = 11
    block_height: int = 25

    anchor_marker: str = "Allocation Type"

    before_ff_marker: str = "before ff"
    before_ff_window_start: int = 8
    before_ff_window_end: int = 12

    after_ff_marker: str = "after ff"
    after_ff_window_start: int = 16
    after_ff_window_end: int = 20

    max_role_rows: int = 6
    section_stop_marker: str = "base capacity"

    label_col_offset: int = 2
    first_iteration_col_offset: int = 3
    total_col_offset: int = 9

    allocation_first_row_offset: int = 2
    allocation_last_row_offset: int = 7

    @model_validator(mode="after")
    def _check_windows(self) -> "CapacityBlockLayout":
        if self.before_ff_window_start > self.before_ff_window_end:
            raise ValueError("before_ff_window_start must be <= before_ff_window_end")
        if self.after_ff_window_start > self.after_ff_window_end:
            raise ValueError("after_ff_window_start must be <= after_ff_window_end")
        if self.block_width <= 0 or self.block_height <= 0:
            raise ValueError("block_width and block_height must be positive")
        return self


# ------------------------------------------------------------
# Grid helpers
# ------------------------------------------------------------
def snapshot_grid(rows: object) -> Grid:
    """
    Immutable, rectangular copy of a 2D cell array.

    Ragged rows are padded with "". Raises TypeError for anything that is not
    a sequence of row sequences.
    """
    if rows is None:
        return ()
    if isinstance(rows, (str, bytes)) or not isinstance(rows, Sequence):
        raise TypeError("capacity grid must be a sequence of rows")

    materialized: List[Tuple[object, ...]] = []
    for row in rows:
        if isinstance(row, (str, bytes)) or not isinstance(row, Sequence):
            raise TypeError("each capacity grid row must be a sequence of cells")
        materialized.append(tuple(row))

    width = max((len(r) for r in materialized), default=0)
    return tuple(r + ("",) * (width - len(r)) for r in materialized)


def _cell(grid: Grid, row: int, col: int) -> object:
    if row < 0 or row >= len(grid):
        return ""
    cells = grid[row]
    if col < 0 or col >= len(cells):
        return ""
    return cells[col]


def _cell_text(grid: Grid, row: int, col: int) -> str:
    value = _cell(grid, row, col)
    if value is None:
        return ""
    if isinstance(value, float) and value != value:  # NaN from pandas
        return ""
    return str(value).strip()


def find_value_stream_regions(grid: Grid, layout: CapacityBlockLayout) -> List[Tuple[str, int]]:
    """(header, start column) for every value-stream header in the header row."""
    if not grid:
        return []
    width = len(grid[0])
    regions = []
    for col in range(0, width, layout.block_width):
        name = _cell_text(grid, layout.value_stream_row, col)
        if name:
            regions.append((name, col))
    return regions


def _region_matches(header: str, value_stream: str, aliases: Optional[Mapping[str, str]]) -> bool:
    wanted = canonical_value_stream(value_stream, aliases)
    found = canonical_value_stream(header, aliases)
    return wanted == found or (bool(wanted) and wanted in found)


def _find_marker(grid: Grid, anchor_row: int, col: int, marker: str, start: int, end: int) -> Optional[int]:
    marker = marker.lower()
    for offset in range(start, end + 1):
        row = anchor_row + offset
        if row >= len(grid):
            break
        if marker in _cell_text(grid, row, col).lower():
            return row
    return None


# ------------------------------------------------------------
# Block parsing
# ------------------------------------------------------------
def _read_role_rows(
    grid: Grid,
    marker_row: int,
    col: int,
    layout: CapacityBlockLayout,
) -> List[Tuple[str, str, int, Dict[int, int]]]:
    """(code, display name, total, per-iteration) for the rows under one FF marker."""
    rows = []
    for step in range(1, layout.max_role_rows + 1):
        row = marker_row + step
        if row >= len(grid):
            break
        name = _cell_text(grid, row, col)
        if not name or name == "-":
            continue
        if layout.section_stop_marker in name.lower():
            break

        total = parse_points(_cell(grid, row, col + layout.total_col_offset))
        by_iteration = {
            it: parse_points(_cell(grid, row, col + layout.first_iteration_col_offset + it - 1))
            for it in ITERATIONS
        }
        rows.append((normalize_role(name), name, total, by_iteration))
    return rows


def _read_allocations(grid: Grid, anchor_row: int, col: int, layout: CapacityBlockLayout) -> Dict[str, int]:
    allocations: Dict[str, int] = {}
    for offset in range(layout.allocation_first_row_offset, layout.allocation_last_row_offset + 1):
        row = anchor_row + offset
        if row >= len(grid):
            break
        label = _cell_text(grid, row, col + layout.label_col_offset)
        if not label or label == "-":
            continue
        key = normalize(label)
        allocations[key] = allocations.get(key, 0) + parse_points(
            _cell(grid, row, col + layout.total_col_offset)
        )
    return allocations


def parse_team_block(
    grid: Grid,
    anchor_row: int,
    col: int,
    value_stream: str,
    layout: CapacityBlockLayout,
) -> TeamCapacityBlock:
    display_name = _cell_text(grid, anchor_row, col)

    before_row = _find_marker(
        grid, anchor_row, col, layout.before_ff_marker,
        layout.before_ff_window_start, layout.before_ff_window_end,
    )
    after_row = _find_marker(
        grid, anchor_row, col, layout.after_ff_marker,
        layout.after_ff_window_start, layout.after_ff_window_end,
    )

    # code -> [display, before, after, by_iteration]
    merged: Dict[str, list] = {}

    def _merge(marker_row: Optional[int], slot: int, label: str) -> None:
        if marker_row is None:
            logger.debug("No '%s' marker for %s at row %s", label, display_name, anchor_row + 1)
            return
        for code, name, total, by_iteration in _read_role_rows(grid, marker_row, col, layout):
            entry = merged.setdefault(code, [name, 0, 0, {it: 0 for it in ITERATIONS}])
            entry[slot] += total
            for it, value in by_iteration.items():
                entry[3][it] += value

    _merge(before_row, 1, layout.before_ff_marker)
    _merge(after_row, 2, layout.after_ff_marker)

    roles = tuple(
        RoleCapacity(
            role=code,
            display_name=name,
            before_ff=before,
            after_ff=after,
            by_iteration=by_iteration,
        )
        for code, (name, before, after, by_iteration) in merged.items()
    )

    return TeamCapacityBlock(
        team=normalize(display_name),
        display_name=display_name,
        value_stream=value_stream,
        roles=roles,
        allocations=_read_allocations(grid, anchor_row, col, layout),
        anchor_row=anchor_row,
        anchor_col=col,
    )


def _is_known(name: str, known: Optional[Set[str]], known_compact: Set[str]) -> bool:
    if known is None:
        return True
    return normalize(name) in known or compact(name) in known_compact


def locate_capacity_blocks(
    grid: object,
    known_teams: Optional[Iterable[str]],
    layout: Optional[CapacityBlockLayout] = None,
    value_stream: Optional[str] = None,
    aliases: Optional[Mapping[str, str]] = None,
) -> List[TeamCapacityBlock]:
    """
    Scan the grid and return one block per matched, known team.

    known_teams=None accepts every confirmed anchor. value_stream limits the
    scan to that region (alias-aware).
    """
    grid = snapshot_grid(grid)
    if not grid:
        logger.warning("Capacity grid is empty; no capacity blocks located")
        return []

    layout = layout or CapacityBlockLayout()
    known = {normalize(t) for t in known_teams if normalize(t)} if known_teams is not None else None
    known_compact = {k.replace(" ", "") for k in known} if known else set()

    regions = find_value_stream_regions(grid, layout)
    if value_stream:
        regions = [r for r in regions if _region_matches(r[0], value_stream, aliases)]
        if not regions:
            logger.warning("Value stream %r not found in capacity grid header row", value_stream)

    blocks: List[TeamCapacityBlock] = []
    for region_name, col in regions:
        row = layout.first_team_row
        while row < len(grid):
            text = _cell_text(grid, row, col)
            if not text or text == "-":
                row += 1
                continue

            if _cell_text(grid, row + 1, col) != layout.anchor_marker:
                row += 1
                continue

            if not _is_known(text, known, known_compact):
                logger.debug("Skipping unknown team block %r at row %s (%s)", text, row + 1, region_name)
                row += layout.block_height
                continue

            block = parse_team_block(grid, row, col, region_name, layout)
            logger.info(
                "Capacity block %s (%s): before FF=%s after FF=%s roles=%s",
                block.team, region_name, block.before_ff, block.after_ff,
                ",".join(r.role for r in block.roles) or "-",
            )
            blocks.append(block)
            row += layout.block_height

    return blocks
