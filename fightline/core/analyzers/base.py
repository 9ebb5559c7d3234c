from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple
import logging

from ...config import Config
from ..action_data import ActionTable
from ..annotations import Severity
from ..models import FightSession, Group, Item, ItemContent
from ..timeline import Timeline

logger = logging.getLogger(__name__)


@dataclass
class AnalysisContext:
    """Everything an analyzer may read or write for one fight."""

    session: FightSession
    timeline: Timeline
    events: List[Dict[str, Any]] = field(default_factory=list)
    actions: ActionTable = field(default_factory=ActionTable)
    annotations: List[Dict[str, Any]] = field(default_factory=list)
    config: Config = None

    def events_of_type(self, *types: str) -> List[Dict[str, Any]]:
        return [ev for ev in self.events if ev.get("type") in types]


class Analyzer(ABC):
    """Base class for all analyzers."""

    @abstractmethod
    def can_analyze(self, context: AnalysisContext) -> bool:
        """Check if this analyzer has anything to do for the fight."""
        pass

    @abstractmethod
    def analyze(self, context: AnalysisContext) -> None:
        """Register items on, or annotate, the context's timeline."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the analyzer."""
        pass


def _ability(event: Dict[str, Any]) -> Dict[str, Any]:
    ability = event.get("ability")
    return ability if isinstance(ability, dict) else {}


class CastAnalyzer(Analyzer):
    """Puts every cast on the timeline.

    GCD casts share the ``casts`` lane; each off-GCD action gets its own lane
    nested under it.
    """

    GROUP_ID = "casts"

    def can_analyze(self, context: AnalysisContext) -> bool:
        return bool(context.events_of_type("cast"))

    def analyze(self, context: AnalysisContext) -> None:
        timeline = context.timeline
        casts = timeline.get_group(self.GROUP_ID) or timeline.add_group(
            Group(self.GROUP_ID, content="Casts")
        )
        lanes: Dict[int, Group] = {}

        for event in context.events_of_type("cast"):
            ability = _ability(event)
            guid = ability.get("guid")
            action = context.actions.get(guid)

            name = action.name if action else str(ability.get("name") or f"Action {guid}")
            icon = action.icon if action else ability.get("abilityIcon")
            start = event["timestamp"] - context.session.start_time
            cast_time = context.actions.cast_time_ms(guid)
            item = Item(
                start=start,
                end=start + cast_time if cast_time else None,
                content=ItemContent(icon=icon, alt=name, title=name),
            )

            if action is not None and not action.on_gcd:
                lane = lanes.get(action.id)
                if lane is None:
                    lane = Group(f"action-{action.id}", content=action.name)
                    timeline.attach_to_group(self.GROUP_ID, lane)
                    lanes[action.id] = lane
                lane.add_item(item)
            else:
                casts.add_item(item)

        logger.debug("Registered casts with %d off-GCD lanes", len(lanes))

    @property
    def name(self) -> str:
        return "casts"


class BuffAnalyzer(Analyzer):
    """Shows buff windows as interval items in the ``buffs`` lane."""

    GROUP_ID = "buffs"

    def can_analyze(self, context: AnalysisContext) -> bool:
        return bool(context.events_of_type("applybuff", "removebuff"))

    def analyze(self, context: AnalysisContext) -> None:
        origin = context.session.start_time
        lane = context.timeline.get_group(self.GROUP_ID) or context.timeline.add_group(
            Group(self.GROUP_ID, content="Buffs")
        )
        active: Dict[Tuple[Any, Any], Dict[str, Any]] = {}

        for event in context.events_of_type("applybuff", "removebuff"):
            key = (_ability(event).get("guid"), event.get("targetID"))
            if event["type"] == "applybuff":
                # Refreshes keep the original application
                active.setdefault(key, event)
                continue

            applied = active.pop(key, None)
            start = applied["timestamp"] - origin if applied else 0
            lane.add_item(self._window(context, applied or event, start, event["timestamp"] - origin))

        # Still up when the fight ended
        for event in active.values():
            lane.add_item(
                self._window(context, event, event["timestamp"] - origin, context.session.duration)
            )

    @staticmethod
    def _window(context: AnalysisContext, event: Dict[str, Any], start: int, end: int) -> Item:
        ability = _ability(event)
        action = context.actions.get(ability.get("guid"))
        name = action.name if action else str(ability.get("name") or "Buff")
        icon = action.icon if action else ability.get("abilityIcon")
        return Item(
            start=start,
            end=end,
            content=ItemContent(icon=icon, alt=name, title=name),
            class_name="buff",
        )

    @property
    def name(self) -> str:
        return "buffs"


class AnnotationAnalyzer(Analyzer):
    """Replays annotation records stored alongside the report."""

    def can_analyze(self, context: AnalysisContext) -> bool:
        return bool(context.annotations)

    def analyze(self, context: AnalysisContext) -> None:
        for record in context.annotations:
            try:
                severity = Severity.parse(record.get("severity"))
                timestamp = int(record["timestamp"])
                cast_time = int(record.get("castTime") or 0)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed annotation record %r: %s", record, e)
                continue
            context.timeline.annotate(
                severity, timestamp, str(record.get("message") or ""), cast_time
            )

    @property
    def name(self) -> str:
        return "annotations"
