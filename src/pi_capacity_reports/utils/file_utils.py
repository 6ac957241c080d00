# src/pi_capacity_reports/utils/file_utils.py

from pathlib import Path
from typing import Union

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


def resolve_input(path: Union[str, Path]) -> Path:
    """
    Path to an existing input export.

    :param path: CSV or Excel file path.
    :raises FileNotFoundError: if the file does not exist.
    """
    resolved = Path(path).expanduser()
    if not resolved.is_file():
        raise FileNotFoundError(f"Input file not found: {resolved}")
    return resolved


def is_excel(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() in EXCEL_SUFFIXES
