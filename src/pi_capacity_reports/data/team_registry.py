"""
Team registry data access layer.

Source: the "Team Registry" tab (or a CSV export of it)
Expected columns:
  - Value Stream
  - Scrum Team
  - Active
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import pandas as pd

from pi_capacity_reports.capacity_reporting.value_streams import TeamRegistry
from pi_capacity_reports.utils.config import config
from pi_capacity_reports.utils.file_utils import is_excel, resolve_input
from pi_capacity_reports.utils.logger import get_logger

logger = get_logger(__name__)

REGISTRY_SHEET_NAME = "Team Registry"


def load_team_registry(path: Optional[Union[str, Path]] = None) -> TeamRegistry:
    """
    Registry from a file, or the built-in defaults when no file is configured.
    """
    path = path or config.team_registry_path
    if not path:
        return TeamRegistry.default()

    path = resolve_input(path)

    if is_excel(path):
        with pd.ExcelFile(path, engine="openpyxl") as workbook:
            if REGISTRY_SHEET_NAME not in workbook.sheet_names:
                logger.warning("No %r sheet in %s; using default value streams", REGISTRY_SHEET_NAME, path)
                return TeamRegistry.default()
            df = workbook.parse(REGISTRY_SHEET_NAME, dtype=object)
    else:
        try:
            df = pd.read_csv(path, dtype=object, keep_default_na=False)
        except pd.errors.EmptyDataError:
            logger.warning("Team registry %s is empty; using default value streams", path)
            return TeamRegistry.default()

    df.columns = [str(c).strip() for c in df.columns]
    df = df.dropna(how="all")
    df = df.where(pd.notna(df), "")
    return TeamRegistry.from_table(df.to_dict(orient="records"))
