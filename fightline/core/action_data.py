"""Static action data (actions-as-data).

Annotating an event needs the cast time of the action that produced it, so
the annotation can be matched back to the item registered when the cast
started. The table is keyed by ability id.

Format (JSON or YAML):

schema_version: 1
actions:
  - id: 7
    name: "Attack"
    icon: "https://xivapi.com/i/000000/000101.png"
    castTime: 0
    onGcd: false
  - id: 3577
    name: "Fire IV"
    icon: "https://xivapi.com/i/002000/002660.png"
    castTime: 2.8
    onGcd: true
    cooldown: 2.5

Times are seconds, as in the game data.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional
import json

from ..utils.helpers import seconds_to_ms


class ActionDataError(ValueError):
    pass


@dataclass(frozen=True)
class ActionData:
    id: int
    name: str
    icon: Optional[str] = None
    cast_time: float = 0.0
    on_gcd: bool = False
    cooldown: Optional[float] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ActionData":
        if "id" not in record:
            raise ActionDataError(f"Action record without id: {dict(record)!r}")
        try:
            return cls(
                id=int(record["id"]),
                name=str(record.get("name") or f"Action {record['id']}"),
                icon=record.get("icon"),
                cast_time=float(record.get("castTime") or 0),
                on_gcd=bool(record.get("onGcd", False)),
                cooldown=(
                    float(record["cooldown"]) if record.get("cooldown") is not None else None
                ),
            )
        except (TypeError, ValueError) as e:
            raise ActionDataError(f"Invalid action record {dict(record)!r}: {e}") from e


class ActionTable:
    """Lookup of ActionData by ability id."""

    def __init__(self, actions: Iterable[ActionData] = ()):
        self._by_id: Dict[int, ActionData] = {}
        for action in actions:
            self._by_id[action.id] = action

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "ActionTable":
        return cls(ActionData.from_record(r) for r in records)

    def get(self, action_id: Any) -> Optional[ActionData]:
        try:
            return self._by_id.get(int(action_id))
        except (TypeError, ValueError):
            return None

    def cast_time_ms(self, action_id: Any) -> int:
        """Cast time in milliseconds, 0 for unknown actions and instant casts."""
        action = self.get(action_id)
        if action is None:
            return 0
        return seconds_to_ms(action.cast_time)

    def __contains__(self, action_id: Any) -> bool:
        return self.get(action_id) is not None

    def __iter__(self) -> Iterator[ActionData]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)


def load_action_table(path: Path) -> ActionTable:
    """Load an action table file (JSON or YAML)."""
    if not path.exists():
        raise ActionDataError(f"Action data not found: {path}")

    raw: Any
    suffix = path.suffix.lower()
    if suffix == ".json":
        try:
            raw = json.loads(path.read_text())
        except ValueError as e:
            raise ActionDataError(f"Invalid JSON in {path}: {e}") from e
    elif suffix in {".yml", ".yaml"}:
        try:
            import yaml  # type: ignore
        except ImportError as e:
            raise ActionDataError(
                "YAML action data requires PyYAML (pip install 'fightline[yaml]')"
            ) from e
        raw = yaml.safe_load(path.read_text())
        if raw is None:
            raw = {}
    else:
        raise ActionDataError(f"Unsupported action data type: {suffix}")

    if not isinstance(raw, dict):
        raise ActionDataError("Action data root must be an object")

    schema_version = raw.get("schema_version", 1)
    if schema_version != 1:
        raise ActionDataError(f"Unsupported action data schema_version: {schema_version}")

    actions = raw.get("actions") or []
    if not isinstance(actions, list):
        raise ActionDataError("actions must be an array")
    for record in actions:
        if not isinstance(record, dict):
            raise ActionDataError("each action must be an object")

    return ActionTable.from_records(actions)
