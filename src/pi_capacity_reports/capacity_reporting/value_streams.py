"""
Value-stream registry

Which scrum teams belong to which value stream, and the alternate names a
value stream goes by in headers and tracker fields. The defaults below are
used unless a "Team Registry" table is supplied.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from pi_capacity_reports.capacity_reporting.identifiers import canonical_value_stream, normalize
from pi_capacity_reports.utils.logger import get_logger

logger = get_logger(__name__)

REGISTRY_COLUMNS = ("Value Stream", "Scrum Team", "Active")
PLACEHOLDER_MARKER = "[Add Team Name]"
_TRUE_VALUES = {"TRUE", "YES", "Y", "1"}


@dataclass(frozen=True)
class ValueStream:
    name: str
    teams: Tuple[str, ...]
    alternate_names: Tuple[str, ...] = ()


DEFAULT_VALUE_STREAMS: Tuple[ValueStream, ...] = (
    ValueStream(
        "EMA Clinical",
        ("Alchemist", "Avengers", "Explorers", "Eyefinity", "Mandalore", "Ordernauts",
         "Painkillers", "Artificially Intelligent", "Patience", "Embryonics", "Vesties",
         "Spice Runners", "Pain Killers"),
    ),
    ValueStream("EMA RAC", ("Achievers", "Borg", "Cyborg"), ("EMA RaC",)),
    ValueStream("RCM Genie", ("Claimbots", "Frontliners", "Integrators", "Vajra"), ("RCM",)),
    ValueStream(
        "MMPM",
        ("Billionaires", "Claimcraft", "Lynx", "Penny-Wise", "Time-Keepers",
         "Trailblazers", "ClaimCraft", "Kaizen"),
    ),
    ValueStream(
        "Patient Collaboration",
        ("Agni", "Apollo", "Bheem", "Jupiter", "Rubber Ducks", "Sudo", "Vaayu", "Voyagers"),
    ),
    ValueStream("AIMM", ("Artificially Intelligent",)),
)


def _is_active(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return normalize(value) in _TRUE_VALUES


class TeamRegistry:
    def __init__(self, value_streams: Iterable[ValueStream] = DEFAULT_VALUE_STREAMS):
        self._streams: List[ValueStream] = list(value_streams)
        self._aliases: Dict[str, str] = {}
        for vs in self._streams:
            canonical = normalize(vs.name)
            self._aliases[canonical] = canonical
            for alt in vs.alternate_names:
                self._aliases[normalize(alt)] = canonical

    def __repr__(self) -> str:
        return f"<TeamRegistry value_streams={self.value_streams()}>"

    @classmethod
    def default(cls) -> "TeamRegistry":
        return cls(DEFAULT_VALUE_STREAMS)

    @classmethod
    def from_table(cls, records: Optional[Iterable[Mapping[str, object]]]) -> "TeamRegistry":
        """
        Build from "Team Registry" rows (Value Stream, Scrum Team, Active).

        Placeholder and inactive rows are skipped. Falls back to the defaults
        when there are no rows, the columns are missing, or nothing is active.
        Alternate names always come from the defaults.
        """
        records = list(records or [])
        if not records:
            logger.warning("Team registry table is empty; using default value streams")
            return cls.default()

        missing = [c for c in REGISTRY_COLUMNS if c not in records[0]]
        if missing:
            logger.warning("Team registry missing columns %s; using default value streams", missing)
            return cls.default()

        teams: Dict[str, List[str]] = {}
        names: Dict[str, str] = {}
        for row in records:
            stream = str(row.get("Value Stream") or "").strip()
            team = str(row.get("Scrum Team") or "").strip()
            if not stream or not team:
                continue
            if PLACEHOLDER_MARKER in stream or PLACEHOLDER_MARKER in team:
                continue
            if not _is_active(row.get("Active")):
                continue
            key = normalize(stream)
            names.setdefault(key, stream)
            teams.setdefault(key, []).append(team)

        if not teams:
            logger.warning("Team registry has no active teams; using default value streams")
            return cls.default()

        alternates = {normalize(vs.name): vs.alternate_names for vs in DEFAULT_VALUE_STREAMS}
        streams = [
            ValueStream(names[key], tuple(team_list), alternates.get(key, ()))
            for key, team_list in teams.items()
        ]
        logger.info("Loaded team registry: %s value streams, %s teams",
                    len(streams), sum(len(v) for v in teams.values()))
        return cls(streams)

    # ------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------
    def aliases(self) -> Dict[str, str]:
        """Normalized name or alternate name -> normalized canonical name."""
        return dict(self._aliases)

    def value_streams(self) -> List[str]:
        return [vs.name for vs in self._streams]

    def teams_for(self, value_stream: object) -> List[str]:
        key = canonical_value_stream(value_stream, self._aliases)
        for vs in self._streams:
            if normalize(vs.name) == key:
                return list(vs.teams)
        return []

    def all_known_teams(self) -> Set[str]:
        return {team for vs in self._streams for team in vs.teams}
