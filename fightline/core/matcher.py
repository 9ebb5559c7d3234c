"""Resolve an annotation timestamp to a registered timeline item."""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Sequence

from .models import Group, Item

ItemPredicate = Callable[[Item], bool]


def build_predicate(offset: int, cast_time: int) -> ItemPredicate:
    """Predicate for an offset already relative to the fight start.

    With no cast time the item must start exactly at `offset`. Otherwise any
    item that started in ``[offset - cast_time, offset]`` matches: the action
    that was being cast during that window and resolved at `offset`.
    """
    if cast_time <= 0:
        return lambda item: item.start == offset
    return lambda item: offset - cast_time <= item.start <= offset


def _first(items: Iterable[Item], predicate: ItemPredicate) -> Optional[Item]:
    for item in items:
        if predicate(item):
            return item
    return None


def find_item_at(
    timestamp: int,
    cast_time: int,
    items: Sequence[Item],
    groups: Sequence[Group],
    origin: int = 0,
) -> Optional[Item]:
    """Find the item an annotation at absolute `timestamp` refers to.

    Ungrouped items are searched first, then each group in registration
    order. Returns the stored item itself, or None.
    """
    predicate = build_predicate(timestamp - origin, cast_time)

    found = _first(items, predicate)
    if found is not None:
        return found

    for group in groups:
        if group.items is None:
            continue
        found = _first(group.items, predicate)
        if found is not None:
            return found
    return None
