"""
In-memory TTL cache for utilization reports.

Keyed on the issue set, the normalized context and every other report input,
so only a re-run against unchanged inputs within the TTL returns the previous
report. Never a source of truth past expiry: expired entries are dropped on
read.
"""

import hashlib
import json
import time
from dataclasses import asdict
from threading import Lock
from typing import Callable, Dict, Iterable, Mapping, Optional

from pi_capacity_reports.capacity_reporting.capacity_models import Issue, UtilizationReport
from pi_capacity_reports.capacity_reporting.identifiers import normalize
from pi_capacity_reports.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300  # 5 minutes


class ReportCache:
    """Report cache with hit/miss/set/eviction counters."""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._memory: Dict[str, dict] = {}  # key -> {report, expires_at}
        self._lock = Lock()
        self._stats = {"hits": 0, "misses": 0, "sets": 0, "evictions": 0}

    @staticmethod
    def compute_key(issues: Iterable[Issue], context: object, inputs: Optional[Mapping[str, object]] = None) -> str:
        """
        Deterministic hash of the issues (order-independent), the context and any
        other report inputs (grid, rollup team, PI, registry, layout).
        """
        records = sorted(
            (asdict(issue) for issue in issues),
            key=lambda r: json.dumps(r, sort_keys=True, default=str),
        )
        payload = json.dumps(
            {"issues": records, "context": normalize(context), "inputs": inputs or {}},
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(payload.encode()).hexdigest()

    def get(self, key: str) -> Optional[UtilizationReport]:
        now = self._clock()
        with self._lock:
            entry = self._memory.get(key)
            if entry and entry["expires_at"] > now:
                self._stats["hits"] += 1
                return entry["report"]
            if entry:
                del self._memory[key]
                self._stats["evictions"] += 1
            self._stats["misses"] += 1
        return None

    def set(self, key: str, report: UtilizationReport, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._memory[key] = {"report": report, "expires_at": self._clock() + ttl}
            self._stats["sets"] += 1

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one entry, or everything when key is None."""
        with self._lock:
            if key:
                if self._memory.pop(key, None) is not None:
                    self._stats["evictions"] += 1
            else:
                self._stats["evictions"] += len(self._memory)
                self._memory.clear()

    def get_stats(self) -> dict:
        with self._lock:
            stats = dict(self._stats)
            entries = len(self._memory)
        total = stats["hits"] + stats["misses"]
        hit_rate = (stats["hits"] / total * 100) if total > 0 else 0.0
        return {
            **stats,
            "hit_rate_pct": round(hit_rate, 2),
            "memory_entries": entries,
            "ttl_seconds": self.ttl_seconds,
        }
