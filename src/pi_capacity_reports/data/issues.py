"""
Issue export data access layer.

Expected columns (display or camelCase headers both work):
  - Key, Issue Type, Scrum Team, Value Stream, Allocation
  - Story Points, Story Point Estimate, Feature Points
  - Sprint Name, Labels, Depends On Value Stream, Depends On Team
  - Parent Key / Epic Link, Summary, Status
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from pi_capacity_reports.capacity_reporting.capacity_models import Issue
from pi_capacity_reports.utils.config import config
from pi_capacity_reports.utils.file_utils import is_excel, resolve_input
from pi_capacity_reports.utils.logger import get_logger

logger = get_logger(__name__)


def read_issue_frame(
    path: Union[str, Path],
    header_row: Optional[int] = None,
    sheet_name: Optional[str] = None,
) -> pd.DataFrame:
    """Raw export as a DataFrame. `header_row` is 1-indexed."""
    path = resolve_input(path)
    header = (header_row or config.ISSUE_HEADER_ROW) - 1

    if is_excel(path):
        df = pd.read_excel(path, sheet_name=sheet_name or 0, header=header, dtype=object, engine="openpyxl")
    else:
        try:
            df = pd.read_csv(path, header=header, dtype=object, keep_default_na=False)
        except pd.errors.EmptyDataError:
            logger.warning("Issue export %s is empty", path)
            return pd.DataFrame()

    df.columns = [str(c).strip() for c in df.columns]
    return df.dropna(how="all")


def load_issues(
    path: Union[str, Path],
    header_row: Optional[int] = None,
    sheet_name: Optional[str] = None,
) -> List[Issue]:
    df = read_issue_frame(path, header_row=header_row, sheet_name=sheet_name)
    if df.empty:
        logger.warning("No issues found in %s", path)
        return []

    issues = []
    skipped = 0
    for record in df.to_dict(orient="records"):
        issue = Issue.from_record(record)
        if not issue.key and not issue.issue_type:
            skipped += 1
            continue
        issues.append(issue)

    logger.info("Loaded %s issues from %s (%s blank rows skipped)", len(issues), path, skipped)
    return issues
