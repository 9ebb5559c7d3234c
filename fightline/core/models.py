"""Timeline data model.

Items are single entries on the timeline (a cast, a buff window, a marker).
Groups are the lanes that hold them. Both render to plain dicts in the shape
the timeline widget consumes.

Offsets (`start`, `end`) are milliseconds relative to the start of the fight.
Absolute log timestamps are normalized by the Timeline before they are stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


class TimelineFrozenError(RuntimeError):
    """Raised when the timeline is modified after it has been finalized."""


@dataclass
class ItemContent:
    """Renderable payload of an item: icon, alt text, tooltip and marker."""

    icon: Optional[str] = None
    alt: str = ""
    title: Optional[str] = None
    style: Optional[str] = None  # marker name: "error", "warning", "message"

    def to_dict(self, style_map: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        style: Dict[str, str] = {}
        if self.style and style_map and self.style in style_map:
            style["border"] = style_map[self.style]
        return {
            "src": self.icon,
            "alt": self.alt,
            "title": self.title or "",
            "marker": self.style,
            "style": style,
        }


@dataclass(eq=False)
class Item:
    """A single point or interval on the timeline.

    Compared by identity: two casts of the same action at the same offset are
    still two items.
    """

    start: int
    end: Optional[int] = None
    content: ItemContent = field(default_factory=ItemContent)
    group: Optional[str] = None
    class_name: Optional[str] = None
    has_error: bool = False
    has_warning: bool = False

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "start" and "start" in self.__dict__:
            raise AttributeError("Item.start cannot be changed once set")
        super().__setattr__(name, value)

    def to_dict(
        self,
        style_map: Optional[Mapping[str, str]] = None,
        item_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        out: Dict[str, Any] = {"start": self.start}
        if item_id is not None:
            out["id"] = item_id
        if self.end is not None:
            out["end"] = self.end
        if self.group is not None:
            out["group"] = self.group
        if self.class_name:
            out["className"] = self.class_name
        out["content"] = self.content.to_dict(style_map)
        out["hasError"] = self.has_error
        out["hasWarning"] = self.has_warning
        return out


@dataclass(eq=False)
class Group:
    """A named lane of items, optionally nested under another group.

    ``items=None`` marks a purely organizational lane with no item collection.
    Once the owning timeline is finalized the lane is closed and `add_item`
    raises `TimelineFrozenError`.
    """

    id: str
    content: str = ""
    items: Optional[List[Item]] = field(default_factory=list)
    nested_groups: List[str] = field(default_factory=list)
    closed: bool = field(default=False, repr=False, compare=False)

    def add_item(self, item: Item) -> Item:
        if self.closed:
            raise TimelineFrozenError(f"Group {self.id!r} is closed")
        if self.items is None:
            self.items = []
        item.group = self.id
        self.items.append(item)
        return item

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "content": self.content or str(self.id),
        }
        if self.nested_groups:
            out["nestedGroups"] = list(self.nested_groups)
        return out


@dataclass(frozen=True)
class AnnotationRequest:
    """An annotation that could not be matched to an item yet."""

    timestamp: int
    message: str
    cast_time: int = 0


@dataclass(frozen=True)
class FightSession:
    """The fight being analyzed. Times are absolute log milliseconds."""

    fight_id: int
    start_time: int
    end_time: int
    name: str = ""
    zone_id: Optional[int] = None
    zone_name: str = ""
    boss: int = 0
    kill: bool = False

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "FightSession":
        return cls(
            fight_id=int(raw.get("id", 0)),
            start_time=int(raw.get("start_time", 0)),
            end_time=int(raw.get("end_time", 0)),
            name=str(raw.get("name") or ""),
            zone_id=raw.get("zoneID"),
            zone_name=str(raw.get("zoneName") or ""),
            boss=int(raw.get("boss") or 0),
            kill=bool(raw.get("kill", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.fight_id,
            "name": self.name,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "zoneID": self.zone_id,
            "zoneName": self.zone_name,
            "boss": self.boss,
            "kill": self.kill,
        }
