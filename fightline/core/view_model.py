"""View model emission for the timeline widget.

Flattens the group lanes and their items into the two sequences the widget
expects, and builds the widget options (visible window, zoom limits, label
formats). Time formatting itself is left to the widget.
"""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .models import Group, Item

# We default to showing the first minute of the pull
ONE_MINUTE = 60000
ZOOM_MIN = 10000


@dataclass
class ViewOptions:
    duration: int
    default_window: int = ONE_MINUTE
    zoom_min: int = ZOOM_MIN
    zoom_key: str = "ctrlKey"
    stack: bool = False
    start: Optional[int] = None
    end: Optional[int] = None
    label_formats: Dict[str, Dict[str, str]] = field(
        default_factory=lambda: {
            "minorLabels": {"minute": "m[m]"},
            "majorLabels": {"second": "m[m]", "minute": ""},
        }
    )

    def window(self) -> tuple:
        """Initial window; full fight view is a bit hard to grok."""
        start = 0 if self.start is None else self.start
        end = min(self.duration, self.default_window) if self.end is None else self.end
        return start, end

    def to_dict(self) -> Dict[str, Any]:
        start, end = self.window()
        return {
            # General styling
            "width": "100%",
            "align": "left",
            "stack": self.stack,
            "showCurrentTime": False,
            # Date/time formatting
            "maxMinorChars": 4,
            "format": self.label_formats,
            # View constraints
            "min": 0,
            "max": self.duration,
            "zoomMin": self.zoom_min,
            # View defaults
            "start": start,
            "end": end,
            # Zoom key handling
            "zoomKey": self.zoom_key,
            "horizontalScroll": True,
        }


def flatten_items(groups: Sequence[Group], items: Sequence[Item]) -> List[Item]:
    """Ungrouped items first, then each group's items in group order."""
    out = list(items)
    for group in groups:
        if group.items:
            out.extend(group.items)
    return out


def build_view_model(
    groups: Sequence[Group],
    items: Sequence[Item],
    style_map: Optional[Mapping[str, str]] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "groups": [group.to_dict() for group in groups],
        "items": [
            item.to_dict(style_map, item_id=index)
            for index, item in enumerate(flatten_items(groups, items))
        ],
    }


def export_view_model(view_model: Dict[str, Any], path: Path, fmt: str = "json") -> None:
    """Export a view model to disk. CSV holds one row per item."""
    fmt = (fmt or "json").lower()
    if fmt == "json":
        path.write_text(json.dumps(view_model, indent=2))
        return
    if fmt == "csv":
        fieldnames = [
            "id",
            "group",
            "start",
            "end",
            "alt",
            "marker",
            "hasError",
            "hasWarning",
            "title",
        ]
        with path.open("w", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=fieldnames)
            writer.writeheader()
            for item in view_model.get("items") or []:
                content = item.get("content") or {}
                writer.writerow({
                    "id": item.get("id"),
                    "group": item.get("group"),
                    "start": item.get("start"),
                    "end": item.get("end"),
                    "alt": content.get("alt"),
                    "marker": content.get("marker"),
                    "hasError": item.get("hasError"),
                    "hasWarning": item.get("hasWarning"),
                    "title": content.get("title"),
                })
        return
    raise ValueError(f"Unsupported view model format: {fmt}")
