"""Report loading and fight selection.

A report holds every pull logged in one session:

{
  "code": "aBcD1234eFgH5678",
  "fights": [{"id": 1, "name": "...", "boss": 1045, "kill": true,
              "zoneID": 777, "zoneName": "...", "start_time": 0, "end_time": 0}],
  "events": [{"type": "cast", "timestamp": 0, "ability": {"guid": 7}}],
  "annotations": [{"severity": "warning", "timestamp": 0, "message": "..."}]
}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence
import json
import logging

from ..utils.helpers import format_offset
from .models import FightSession

logger = logging.getLogger(__name__)


class ReportError(ValueError):
    pass


class FightNotFoundError(KeyError):
    pass


@dataclass
class ZoneGroup:
    zone_id: Any
    zone_name: str
    fights: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "zoneID": self.zone_id,
            "zoneName": self.zone_name,
            "fights": [self._fight_summary(f) for f in self.fights],
        }

    @staticmethod
    def _fight_summary(fight: Mapping[str, Any]) -> Dict[str, Any]:
        duration = int(fight.get("end_time", 0)) - int(fight.get("start_time", 0))
        return {
            "id": fight.get("id"),
            "name": fight.get("name"),
            "kill": bool(fight.get("kill", False)),
            "duration": duration,
            "durationText": format_offset(duration),
        }


def load_report(path: Path) -> Dict[str, Any]:
    """Load a report JSON file."""
    if not path.exists():
        raise ReportError(f"Report not found: {path}")
    try:
        raw = json.loads(path.read_text())
    except ValueError as e:
        raise ReportError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ReportError("Report root must be an object")
    if not isinstance(raw.get("fights") or [], list):
        raise ReportError("fights must be an array")
    if not isinstance(raw.get("events") or [], list):
        raise ReportError("events must be an array")
    return raw


def group_fights_by_zone(
    fights: Sequence[Mapping[str, Any]], kills_only: bool = True
) -> List[ZoneGroup]:
    """Group consecutive fights by zone.

    Trash pulls (no boss) are always dropped, wipes too when `kills_only`.
    A zone visited twice with other zones in between yields two groups.
    """
    groups: List[ZoneGroup] = []
    last_zone: Any = None
    for fight in fights:
        if not fight.get("boss") or (kills_only and not fight.get("kill")):
            continue

        zone_id = fight.get("zoneID")
        if not groups or zone_id != last_zone:
            groups.append(ZoneGroup(zone_id=zone_id, zone_name=str(fight.get("zoneName") or "")))
            last_zone = zone_id

        groups[-1].fights.append(dict(fight))
    return groups


def select_fight(
    report: Mapping[str, Any], fight_id: Optional[int] = None, kills_only: bool = False
) -> FightSession:
    """Pick the fight to analyze.

    Without `fight_id` the report must contain exactly one selectable fight.
    """
    fights = report.get("fights") or []
    if fight_id is not None:
        for fight in fights:
            if int(fight.get("id", -1)) == int(fight_id):
                return FightSession.from_dict(fight)
        raise FightNotFoundError(f"No fight with id {fight_id} in report")

    candidates = [
        fight for zone in group_fights_by_zone(fights, kills_only=kills_only)
        for fight in zone.fights
    ]
    if len(candidates) != 1:
        raise FightNotFoundError(
            f"Report has {len(candidates)} selectable fights; pick one by id"
        )
    return FightSession.from_dict(candidates[0])


def events_for_fight(report: Mapping[str, Any], session: FightSession) -> List[Dict[str, Any]]:
    """Events of `report` that fall inside the fight, in timestamp order."""
    events = [
        ev for ev in (report.get("events") or [])
        if isinstance(ev, dict)
        and isinstance(ev.get("timestamp"), (int, float))
        and session.start_time <= ev["timestamp"] <= session.end_time
    ]
    return sorted(events, key=lambda ev: ev["timestamp"])


def annotations_for_fight(
    report: Mapping[str, Any], session: FightSession
) -> List[Dict[str, Any]]:
    """Annotation records for the fight: tagged with its id, or untagged."""
    out = []
    for record in report.get("annotations") or []:
        if not isinstance(record, dict):
            continue
        fight = record.get("fight")
        if fight is None:
            out.append(record)
            continue
        try:
            fight_id = int(fight)
        except (TypeError, ValueError):
            logger.warning("Skipping annotation record with bad fight tag %r", record)
            continue
        if fight_id == session.fight_id:
            out.append(record)
    return out
