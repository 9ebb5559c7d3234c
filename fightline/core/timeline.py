"""Timeline assembly and annotation engine for one fight.

Analyzers register lanes (groups) and entries (items) while they process the
fight, and annotate entries after the fact by timestamp alone. Annotations
that arrive before their target item exists are queued and retried once when
the timeline is finalized; whatever still cannot be matched is logged and
dropped from the display.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

from ..config import Config
from .action_data import ActionTable
from .annotations import (
    AnnotationOutcome,
    AnnotationQueues,
    FinalizeReport,
    Severity,
    SeverityReplay,
    merge_annotation,
)
from .matcher import find_item_at
from .models import (
    AnnotationRequest,
    FightSession,
    Group,
    Item,
    ItemContent,
    TimelineFrozenError,
)
from .sinks import ScrollHost, TimelineSink
from .view_model import ONE_MINUTE, ZOOM_MIN, ViewOptions, build_view_model

logger = logging.getLogger(__name__)

DEFAULT_MARKER_STYLES = {
    Severity.ERROR.value: "4px solid red",
    Severity.WARNING.value: "4px solid yellow",
    Severity.MESSAGE.value: "4px solid green",
}


class Timeline:
    """Owns the groups, ungrouped items and pending annotations of a fight."""

    handle = "timeline"

    def __init__(
        self,
        session: FightSession,
        actions: Optional[ActionTable] = None,
        style_map: Optional[Mapping[str, str]] = None,
        default_window: int = ONE_MINUTE,
        zoom_min: int = ZOOM_MIN,
        zoom_key: str = "ctrlKey",
        stack: bool = False,
        scroll_host: Optional[ScrollHost] = None,
    ):
        self.session = session
        self.actions = actions or ActionTable()
        self.style_map = dict(style_map or DEFAULT_MARKER_STYLES)
        self.default_window = default_window
        self.zoom_min = zoom_min
        self.zoom_key = zoom_key
        self.stack = stack
        self.scroll_host = scroll_host

        # Data to be displayed on the timeline
        self._groups: List[Group] = []
        self._items: List[Item] = []
        # Annotations provided before the matching item was added
        self._queues = AnnotationQueues()

        self._sink: Optional[TimelineSink] = None
        self._pending_window: Optional[Tuple[int, int]] = None
        self._finalize_report: Optional[FinalizeReport] = None
        self._frozen = False

    @classmethod
    def from_config(
        cls,
        session: FightSession,
        config: Config,
        actions: Optional[ActionTable] = None,
        scroll_host: Optional[ScrollHost] = None,
    ) -> "Timeline":
        return cls(
            session,
            actions=actions,
            style_map=config.get("marker_styles") or DEFAULT_MARKER_STYLES,
            default_window=int(config.get("default_window_ms", ONE_MINUTE)),
            zoom_min=int(config.get("zoom_min_ms", ZOOM_MIN)),
            zoom_key=config.get("zoom_key", "ctrlKey"),
            stack=bool(config.get("stack_items", False)),
            scroll_host=scroll_host,
        )

    @property
    def groups(self) -> Tuple[Group, ...]:
        return tuple(self._groups)

    @property
    def items(self) -> Tuple[Item, ...]:
        return tuple(self._items)

    @property
    def queues(self) -> AnnotationQueues:
        return self._queues

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise TimelineFrozenError("Timeline has already been finalized")

    # Registration

    def add_group(self, group: Group) -> Group:
        self._check_mutable()
        self._groups.append(group)
        return group

    def add_item(self, item: Item) -> Item:
        """Register an item that does not belong to any group."""
        self._check_mutable()
        self._items.append(item)
        return item

    def add_item_at(
        self,
        timestamp: int,
        content: Optional[ItemContent] = None,
        end_timestamp: Optional[int] = None,
        group: Optional[Group] = None,
    ) -> Item:
        """Create an item from absolute log timestamps.

        The item lands in `group` when one is given, otherwise it is
        registered as ungrouped.
        """
        origin = self.session.start_time
        item = Item(
            start=timestamp - origin,
            end=None if end_timestamp is None else end_timestamp - origin,
            content=content or ItemContent(),
        )
        if group is not None:
            self._check_mutable()
            return group.add_item(item)
        return self.add_item(item)

    def get_group(self, group_id: Any) -> Optional[Group]:
        for group in self._groups:
            if group.id == group_id:
                return group
        return None

    def attach_to_group(self, parent_id: Any, group: Group) -> bool:
        """Register `group` nested under the group `parent_id`.

        Nesting is cosmetic: an unknown parent is ignored and False returned.
        """
        self._check_mutable()
        parent = self.get_group(parent_id)
        if parent is None:
            logger.debug("No parent group %r for nested group %r", parent_id, group.id)
            return False
        self.add_group(group)
        parent.nested_groups.append(group.id)
        return True

    # Annotations

    def cast_time_for(self, event: Mapping[str, Any]) -> int:
        ability = event.get("ability") or {}
        if not isinstance(ability, Mapping):
            return 0
        return self.actions.cast_time_ms(ability.get("guid"))

    def find_item_at(self, timestamp: int, cast_time: int = 0) -> Optional[Item]:
        return find_item_at(
            timestamp, cast_time, self._items, self._groups, origin=self.session.start_time
        )

    def annotate(
        self, severity: Severity, timestamp: int, message: str, cast_time: int = 0
    ) -> AnnotationOutcome:
        self._check_mutable()
        item = self.find_item_at(timestamp, cast_time)
        if item is None:
            self._queues.push(severity, AnnotationRequest(timestamp, message, cast_time))
            return AnnotationOutcome.QUEUED
        merge_annotation(item, severity, message)
        return AnnotationOutcome.APPLIED

    def add_error_to_event(self, event: Mapping[str, Any], message: str) -> AnnotationOutcome:
        return self.add_error_to_event_at(event["timestamp"], message, self.cast_time_for(event))

    def add_error_to_event_at(
        self, timestamp: int, message: str, cast_time: int = 0
    ) -> AnnotationOutcome:
        return self.annotate(Severity.ERROR, timestamp, message, cast_time)

    def add_warning_to_event(self, event: Mapping[str, Any], message: str) -> AnnotationOutcome:
        return self.add_warning_to_event_at(event["timestamp"], message, self.cast_time_for(event))

    def add_warning_to_event_at(
        self, timestamp: int, message: str, cast_time: int = 0
    ) -> AnnotationOutcome:
        return self.annotate(Severity.WARNING, timestamp, message, cast_time)

    def add_message_to_event(self, event: Mapping[str, Any], message: str) -> AnnotationOutcome:
        return self.add_message_to_event_at(event["timestamp"], message, self.cast_time_for(event))

    def add_message_to_event_at(
        self, timestamp: int, message: str, cast_time: int = 0
    ) -> AnnotationOutcome:
        return self.annotate(Severity.MESSAGE, timestamp, message, cast_time)

    # Finalize / render

    def finalize(self) -> FinalizeReport:
        """Retry every queued annotation once and close the timeline.

        Runs only once per timeline. Afterwards registration and annotation
        raise `TimelineFrozenError`.
        """
        if self._finalize_report is not None:
            return self._finalize_report

        replays: Dict[Severity, SeverityReplay] = {}
        for severity in Severity:
            # Work on a snapshot so a request for a timestamp that never made
            # it onto the timeline is not retried forever.
            pending = self._queues.drain(severity)
            for request in pending:
                self.annotate(severity, request.timestamp, request.message, request.cast_time)

            unresolved = len(self._queues.pending(severity))
            if unresolved:
                logger.debug(
                    "Could not find matching timeline items for %d %s annotations.",
                    unresolved,
                    severity.value,
                )
            replays[severity] = SeverityReplay(
                replayed=len(pending),
                resolved=len(pending) - unresolved,
                unresolved=unresolved,
            )

        self._finalize_report = FinalizeReport(
            errors=replays[Severity.ERROR],
            warnings=replays[Severity.WARNING],
            messages=replays[Severity.MESSAGE],
        )
        self._frozen = True
        for group in self._groups:
            group.closed = True
        return self._finalize_report

    def view_options(self) -> ViewOptions:
        start, end = self._pending_window or (None, None)
        return ViewOptions(
            duration=self.session.duration,
            default_window=self.default_window,
            zoom_min=self.zoom_min,
            zoom_key=self.zoom_key,
            stack=self.stack,
            start=start,
            end=end,
        )

    def view_model(self) -> Dict[str, List[Dict[str, Any]]]:
        return build_view_model(self._groups, self._items, self.style_map)

    def render(self, sink: TimelineSink) -> FinalizeReport:
        """Finalize the timeline and hand the view model to `sink`."""
        report = self.finalize()
        sink.render(self.view_model(), self.view_options().to_dict())
        self._sink = sink
        return report

    def show(self, start: int, end: int, scroll_to: bool = True) -> bool:
        """Move & zoom the viewport to show ``[start, end]`` (fight offsets, ms).

        Before the timeline is rendered the range is kept and used as the
        initial window; returns False in that case.
        """
        if self._sink is None:
            self._pending_window = (start, end)
            return False

        self._sink.set_window(start, end)

        # If not disabled, scroll the page to us
        if scroll_to and self.scroll_host is not None:
            self.scroll_host.scroll_to(self.handle)
        return True
