"""
Client-side outline state.

Nodes are kept in an arena keyed by id; a node refers to its parent by
id only. A parent id → child ids index is derived from the arena and
rebuilt after every structural change. Nodes are pydantic models that
are never mutated in place: changes swap in a copy, so a snapshot is a
shallow copy of the arena.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from plotline.models.plot_element import PlotElementResponse, PlotTreeNode
from plotline.models.project import PlotViewMode
from plotline.services.hierarchy import build_hierarchy, sort_by_order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreeSnapshot:
    nodes: dict[str, PlotElementResponse]
    expanded: frozenset[str] = field(default_factory=frozenset)


class OutlineTreeState:
    """
    Local copy of one project's outline.

    Usage:
        state = OutlineTreeState(project_id)
        state.load(await client.list_plot_elements(project_id))
        chapters = state.children_of(part_id)
    """

    def __init__(self, project_id: Optional[str] = None):
        self.project_id = project_id
        self.expanded: set[str] = set()
        self._nodes: dict[str, PlotElementResponse] = {}
        self._children: dict[Optional[str], list[str]] = defaultdict(list)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def _reindex(self) -> None:
        self._children = defaultdict(list)
        for node in self._nodes.values():
            self._children[node.parent_id].append(node.id)

    # =========================================================================
    # Queries
    # =========================================================================

    def load(self, elements: Iterable[PlotElementResponse]) -> None:
        """Replace the whole state with a server listing."""
        self._nodes = {element.id: element for element in elements}
        self.expanded &= set(self._nodes)
        self._reindex()
        logger.debug(f"Loaded {len(self._nodes)} outline nodes")

    def get(self, node_id: Optional[str]) -> Optional[PlotElementResponse]:
        return self._nodes.get(node_id) if node_id else None

    def nodes(self) -> list[PlotElementResponse]:
        """All nodes in arena order."""
        return list(self._nodes.values())

    def children_of(self, parent_id: Optional[str]) -> list[PlotElementResponse]:
        """Direct children sorted by order; ``None`` gives the roots."""
        return sort_by_order(self._nodes[child_id] for child_id in self._children.get(parent_id, ()))

    def siblings_of(self, node_id: str, same_type: bool = False) -> list[PlotElementResponse]:
        """Nodes sharing the node's parent, including the node itself."""
        node = self._nodes.get(node_id)
        if node is None:
            return []
        siblings = self.children_of(node.parent_id)
        if same_type:
            siblings = [sibling for sibling in siblings if sibling.type == node.type]
        return siblings

    def descendants(self, node_id: str) -> list[str]:
        """Ids of every node below ``node_id``, breadth first."""
        found: list[str] = []
        seen = {node_id}
        frontier = [node_id]
        while frontier:
            next_frontier = []
            for parent_id in frontier:
                for child_id in self._children.get(parent_id, ()):
                    if child_id not in seen:
                        seen.add(child_id)
                        next_frontier.append(child_id)
            found.extend(next_frontier)
            frontier = next_frontier
        return found

    def next_order(self, parent_id: Optional[str]) -> int:
        siblings = self.children_of(parent_id)
        return max((sibling.order for sibling in siblings), default=0) + 1

    def hierarchy(
        self,
        mode: PlotViewMode | str = PlotViewMode.COMPLETE,
        level_names: Optional[dict[str, str]] = None,
    ) -> list[PlotTreeNode]:
        """Nested view of the local state."""
        return build_hierarchy(self.nodes(), mode, level_names)

    # =========================================================================
    # Mutations
    # =========================================================================

    def insert(self, node: PlotElementResponse) -> None:
        self._nodes[node.id] = node
        self._children[node.parent_id].append(node.id)

    def replace(self, node_id: str, node: PlotElementResponse) -> None:
        """
        Swap the node stored under ``node_id`` for ``node``.

        The id may change, as when a temporary node is confirmed by the
        server. The node keeps its arena position.
        """
        if node_id not in self._nodes:
            logger.warning(f"Cannot replace unknown outline node {node_id}")
            return
        self._nodes = {
            (node.id if key == node_id else key): (node if key == node_id else value)
            for key, value in self._nodes.items()
        }
        if node_id != node.id and node_id in self.expanded:
            self.expanded.discard(node_id)
            self.expanded.add(node.id)
        self._reindex()

    def update(self, node_id: str, **fields) -> Optional[PlotElementResponse]:
        """
        Apply field changes to a node.

        Returns:
            The node as it was before the change, or None if unknown.
        """
        previous = self._nodes.get(node_id)
        if previous is None:
            return None
        self._nodes[node_id] = previous.model_copy(update=fields)
        if "parent_id" in fields:
            self._reindex()
        return previous

    def remove(self, node_ids: Iterable[str]) -> None:
        for node_id in list(node_ids):
            self._nodes.pop(node_id, None)
            self.expanded.discard(node_id)
        self._reindex()

    def apply_orders(self, orders: dict[str, int]) -> None:
        """Set ``order`` on each listed node."""
        for node_id, order in orders.items():
            node = self._nodes.get(node_id)
            if node is not None:
                self._nodes[node_id] = node.model_copy(update={"order": order})

    def snapshot(self) -> TreeSnapshot:
        return TreeSnapshot(nodes=dict(self._nodes), expanded=frozenset(self.expanded))

    def restore(self, snapshot: TreeSnapshot) -> None:
        self._nodes = dict(snapshot.nodes)
        self.expanded = set(snapshot.expanded)
        self._reindex()
