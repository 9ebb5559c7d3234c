"""Rendering sinks for the finished timeline.

The sink is whatever draws the timeline: a browser widget, a file on disk, a
test double. The Timeline only hands it the view model once and, later, asks
it to move its visible window.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class TimelineSink(ABC):
    """Receives the view model and viewport changes."""

    @abstractmethod
    def render(self, view_model: Dict[str, Any], options: Dict[str, Any]) -> None:
        """Draw the groups/items view model with the given widget options."""
        pass

    @abstractmethod
    def set_window(self, start: int, end: int) -> None:
        """Move and zoom the visible range to ``[start, end]``."""
        pass


class ScrollHost(ABC):
    """The page/window hosting the timeline."""

    @abstractmethod
    def scroll_to(self, handle: str) -> None:
        """Bring the section identified by `handle` into view."""
        pass


class MemorySink(TimelineSink):
    """Keeps what it is given. Used by the CLI report and by tests."""

    def __init__(self):
        self.view_model: Optional[Dict[str, Any]] = None
        self.options: Optional[Dict[str, Any]] = None
        self.windows: List[Tuple[int, int]] = []

    def render(self, view_model: Dict[str, Any], options: Dict[str, Any]) -> None:
        self.view_model = view_model
        self.options = dict(options)

    def set_window(self, start: int, end: int) -> None:
        self.windows.append((start, end))
        if self.options is not None:
            self.options["start"] = start
            self.options["end"] = end

    @property
    def window(self) -> Optional[Tuple[int, int]]:
        if self.options is None:
            return None
        return self.options.get("start"), self.options.get("end")


class JsonFileSink(MemorySink):
    """Writes the view model and options to a JSON file on every change."""

    def __init__(self, path: Path):
        super().__init__()
        self.path = path

    def render(self, view_model: Dict[str, Any], options: Dict[str, Any]) -> None:
        super().render(view_model, options)
        self._write()

    def set_window(self, start: int, end: int) -> None:
        super().set_window(start, end)
        if self.view_model is not None:
            self._write()

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"options": self.options, **(self.view_model or {})}
        self.path.write_text(json.dumps(payload, indent=2))
        logger.info("Timeline written to %s", self.path)
