"""
Drag-to-reorder protocol.

A drag gesture is an (active, over) pair of node ids. It is turned into
a ReorderPlan over the active node's siblings, which the reorder command
then applies. Gestures that cross parents or types resolve to None and
are dropped without touching state.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, TypeVar

from plotline.client.tree_state import OutlineTreeState

logger = logging.getLogger(__name__)

T = TypeVar("T")


def array_move(items: Sequence[T], old_index: int, new_index: int) -> list[T]:
    """Remove the item at ``old_index`` and insert it at ``new_index``."""
    moved = list(items)
    moved.insert(new_index, moved.pop(old_index))
    return moved


@dataclass(frozen=True)
class ReorderPlan:
    """
    A sibling list and the move to apply to it.

    ``siblings`` holds ids sorted by current order.
    """

    siblings: tuple[str, ...]
    old_index: int
    new_index: int

    @property
    def active_id(self) -> str:
        return self.siblings[self.old_index]

    def moved(self) -> list[str]:
        return array_move(self.siblings, self.old_index, self.new_index)

    def new_orders(self) -> dict[str, int]:
        """1-based position of every sibling after the move."""
        return {node_id: position for position, node_id in enumerate(self.moved(), start=1)}


def resolve_drag(state: OutlineTreeState, active_id: str, over_id: str) -> Optional[ReorderPlan]:
    """
    Build the plan for dropping ``active_id`` onto ``over_id``.

    Returns None when either node is unknown, when they are the same
    node, or when they differ in parent or type.
    """
    active = state.get(active_id)
    over = state.get(over_id)
    if active is None or over is None or active.id == over.id:
        return None
    if active.parent_id != over.parent_id or active.type != over.type:
        logger.debug(f"Ignoring drag of {active_id} onto {over_id}: not siblings of one type")
        return None

    siblings = tuple(node.id for node in state.siblings_of(active_id, same_type=True))
    return ReorderPlan(
        siblings=siblings,
        old_index=siblings.index(active_id),
        new_index=siblings.index(over_id),
    )


class DragController:
    """Global drag mode switch; drops are ignored while it is off."""

    def __init__(self, state: OutlineTreeState, drag_mode: bool = False):
        self.state = state
        self.drag_mode = drag_mode

    def toggle(self) -> bool:
        self.drag_mode = not self.drag_mode
        logger.info(f"Drag mode {'on' if self.drag_mode else 'off'}")
        return self.drag_mode

    def drop(self, active_id: str, over_id: Optional[str]) -> Optional[ReorderPlan]:
        if not self.drag_mode or not over_id:
            return None
        return resolve_drag(self.state, active_id, over_id)
