"""
Capacity grid data access layer.

Reads the consolidated capacity tab from a workbook (openpyxl) or a CSV export
of that tab. No headers: the tab is a positional grid, handed to the block
locator as an immutable snapshot.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd

from pi_capacity_reports.capacity_reporting.block_locator import Grid, snapshot_grid
from pi_capacity_reports.utils.file_utils import is_excel, resolve_input
from pi_capacity_reports.utils.logger import get_logger

logger = get_logger(__name__)

SHEET_NAME_PATTERN = "PI{pi_number} - Capacity"
SHEET_NAME_REGEX = re.compile(r"^PI\s*(\d+)\s*-\s*Capacity$", re.IGNORECASE)
ALTERNATIVE_SHEET_NAMES = ("Capacity Planning", "Consolidated Capacity")


def find_capacity_sheet(sheet_names: Iterable[str], pi_number: object = None) -> Optional[str]:
    """
    Pick the capacity tab:
      1. "PI<n> - Capacity" for the requested PI
      2. the first tab that looks like "PI<n> - Capacity"
      3. "Capacity Planning", then "Consolidated Capacity"
    """
    names = list(sheet_names)

    if pi_number not in (None, ""):
        wanted = SHEET_NAME_PATTERN.format(pi_number=str(pi_number).strip())
        if wanted in names:
            return wanted
        logger.info("Sheet %r not found, trying alternatives", wanted)

    for name in names:
        if SHEET_NAME_REGEX.match(name.strip()):
            return name

    for alt in ALTERNATIVE_SHEET_NAMES:
        if alt in names:
            return alt

    return None


def _frame_to_grid(df: pd.DataFrame) -> Grid:
    df = df.astype(object).where(pd.notna(df), "")
    return snapshot_grid(df.values.tolist())


def load_capacity_grid(
    path: Union[str, Path],
    sheet_name: Optional[str] = None,
    pi_number: object = None,
) -> Grid:
    """
    Read a capacity tab into a grid snapshot.

    Empty files (or a workbook with no capacity tab) give an empty grid.
    """
    path = resolve_input(path)

    if is_excel(path):
        with pd.ExcelFile(path, engine="openpyxl") as workbook:
            sheet = sheet_name or find_capacity_sheet(workbook.sheet_names, pi_number)
            if sheet is None or sheet not in workbook.sheet_names:
                logger.warning("No capacity sheet found in %s (sheets: %s)", path, workbook.sheet_names)
                return ()
            df = workbook.parse(sheet, header=None, dtype=object)
        logger.info("Loaded capacity sheet %r from %s: %s rows x %s cols", sheet, path, *df.shape)
    else:
        try:
            df = pd.read_csv(path, header=None, dtype=object, keep_default_na=False)
        except pd.errors.EmptyDataError:
            logger.warning("Capacity file %s is empty", path)
            return ()
        logger.info("Loaded capacity grid from %s: %s rows x %s cols", path, *df.shape)

    return _frame_to_grid(df)
