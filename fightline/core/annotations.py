"""Annotation severities, merge policy and the pending-annotation queues.

Analyzers annotate items after the fact: an error, a warning or a plain
message is appended to the item's tooltip, and the item's border marker is
chosen by severity. Marker precedence is decided against the item's flags at
the moment of the call:

- error always sets the error marker
- warning sets its marker unless the item already has an error
- message sets its marker only if the item has neither
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Tuple

from .models import AnnotationRequest, Item


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    MESSAGE = "message"

    @property
    def prefix(self) -> str:
        return _PREFIXES[self]

    @classmethod
    def parse(cls, value: str) -> "Severity":
        """Parse a severity name (case-insensitive). Raises ValueError."""
        return cls((value or "").strip().lower())


_PREFIXES = {
    Severity.ERROR: "\n! ",
    Severity.WARNING: "\n- ",
    Severity.MESSAGE: "\n  ",
}


class AnnotationOutcome(str, Enum):
    APPLIED = "applied"
    QUEUED = "queued"


def merge_annotation(item: Item, severity: Severity, message: str) -> None:
    """Append `message` to the item's tooltip and update its marker/flags."""
    content = item.content
    title = (content.title or "") + severity.prefix + message

    if severity is Severity.ERROR:
        item.has_error = True
        style = Severity.ERROR.value
    elif severity is Severity.WARNING:
        style = content.style if item.has_error else Severity.WARNING.value
        item.has_warning = True
    else:
        if item.has_error or item.has_warning:
            style = content.style
        else:
            style = Severity.MESSAGE.value

    item.content = replace(content, title=title, style=style)


class AnnotationQueues:
    """Three independent FIFO queues of unresolved annotation requests."""

    def __init__(self):
        self._queues: Dict[Severity, List[AnnotationRequest]] = {
            severity: [] for severity in Severity
        }

    def push(self, severity: Severity, request: AnnotationRequest) -> None:
        self._queues[severity].append(request)

    def drain(self, severity: Severity) -> List[AnnotationRequest]:
        """Take every pending request for `severity`, leaving the queue empty."""
        pending = self._queues[severity]
        self._queues[severity] = []
        return pending

    def pending(self, severity: Severity) -> Tuple[AnnotationRequest, ...]:
        return tuple(self._queues[severity])

    def counts(self) -> Dict[str, int]:
        return {severity.value: len(queue) for severity, queue in self._queues.items()}

    def __len__(self) -> int:
        return sum(len(queue) for queue in self._queues.values())


@dataclass(frozen=True)
class SeverityReplay:
    replayed: int = 0
    resolved: int = 0
    unresolved: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "replayed": self.replayed,
            "resolved": self.resolved,
            "unresolved": self.unresolved,
        }


@dataclass(frozen=True)
class FinalizeReport:
    """Outcome of replaying the queues at finalize, per severity."""

    errors: SeverityReplay
    warnings: SeverityReplay
    messages: SeverityReplay

    def for_severity(self, severity: Severity) -> SeverityReplay:
        return {
            Severity.ERROR: self.errors,
            Severity.WARNING: self.warnings,
            Severity.MESSAGE: self.messages,
        }[severity]

    @property
    def unresolved(self) -> int:
        return self.errors.unresolved + self.warnings.unresolved + self.messages.unresolved

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {
            Severity.ERROR.value: self.errors.to_dict(),
            Severity.WARNING.value: self.warnings.to_dict(),
            Severity.MESSAGE.value: self.messages.to_dict(),
        }
