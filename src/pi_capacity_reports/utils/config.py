# src/pi_capacity_reports/utils/config.py
"""
Runtime config for the capacity report runs.

Everything here is optional: a missing .env or missing keys fall back to
defaults that reproduce the standard clinical report.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load .env from project root
BASE_DIR = Path(__file__).resolve().parents[3]
load_dotenv(BASE_DIR / ".env")


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


class Config:
    # Team whose TOTAL row is SUBTOTAL + its own row (see special_team_rollup)
    SPECIAL_TEAM = os.getenv("SPECIAL_TEAM", "Eyefinity").strip()

    # Report cache lifetime; 0 disables caching in the CLI
    REPORT_CACHE_TTL_SECONDS = int(os.getenv("REPORT_CACHE_TTL_SECONDS", "300"))

    # Optional "Team Registry" export (CSV/XLSX). Empty -> built-in registry.
    TEAM_REGISTRY_PATH = os.getenv("TEAM_REGISTRY_PATH", "").strip()

    # Contexts used when the CLI gets no --context
    DEFAULT_CONTEXTS = _split_csv(os.getenv("DEFAULT_CONTEXTS", "EMA Clinical"))

    # Header row of the issue export (1-indexed; the PI sheet puts headers in row 4)
    ISSUE_HEADER_ROW = int(os.getenv("ISSUE_HEADER_ROW", "1"))

    @property
    def team_registry_path(self) -> Optional[Path]:
        """Registry path if configured and present on disk."""
        if not self.TEAM_REGISTRY_PATH:
            return None
        path = Path(self.TEAM_REGISTRY_PATH)
        return path if path.exists() else None

    def __repr__(self):
        return (
            f"<Config special_team={self.SPECIAL_TEAM!r} "
            f"cache_ttl={self.REPORT_CACHE_TTL_SECONDS} contexts={self.DEFAULT_CONTEXTS}>"
        )


# Singleton
config = Config()
