"""
Outline hierarchy builder.

Turns a flat list of plot elements into nested PlotTreeNode lists. Both
presentation modes go through the same builder, which takes a predicate
choosing the roots and a selector choosing each node's children; only
those two functions differ between modes.

Sibling lists are always sorted with a stable sort on ``order``, so
elements with equal order keep their input positions.

Elements can be ORM rows, pydantic models or any object exposing ``id``,
``parent_id``, ``type``, ``order`` and the display attributes.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Iterable, Optional

from plotline.models.plot_element import PlotElementType, PlotTreeNode
from plotline.models.project import DEFAULT_LEVEL_NAMES, PlotViewMode

logger = logging.getLogger(__name__)


class ChildIndex:
    """Lookup of elements by id and by parent id, in input order."""

    def __init__(self, elements: Iterable[Any]):
        self.by_id: dict[str, Any] = {}
        self._children: dict[Optional[str], list[Any]] = defaultdict(list)
        for element in elements:
            self.by_id[element.id] = element
            self._children[element.parent_id].append(element)

    def __contains__(self, element_id: Optional[str]) -> bool:
        return element_id in self.by_id

    def children(self, parent_id: Optional[str]) -> list[Any]:
        return list(self._children.get(parent_id, ()))


RootPredicate = Callable[[Any, ChildIndex], bool]
ChildSelector = Callable[[Any, ChildIndex], list[Any]]


def _type_value(element_type: Any) -> str:
    return PlotElementType(element_type).value


def sort_by_order(elements: Iterable[Any]) -> list[Any]:
    """Stable sort by ``order``."""
    return sorted(elements, key=lambda element: element.order)


def level_label(element_type: Any, level_names: Optional[dict[str, str]] = None) -> str:
    """User-facing name for an outline level, falling back to the defaults."""
    key = _type_value(element_type)
    if level_names and level_names.get(key):
        return level_names[key]
    return DEFAULT_LEVEL_NAMES.get(key, key)


def _to_node(element: Any, level_names: Optional[dict[str, str]], children: list[PlotTreeNode]) -> PlotTreeNode:
    return PlotTreeNode(
        id=element.id,
        project_id=element.project_id,
        parent_id=element.parent_id,
        title=element.title,
        type=element.type,
        order=element.order,
        status=element.status,
        summary=getattr(element, "summary", None),
        word_count=getattr(element, "word_count", 0) or 0,
        target_words=getattr(element, "target_words", None),
        label=level_label(element.type, level_names),
        children=children,
    )


def build_tree(
    elements: Iterable[Any],
    include_root: RootPredicate,
    select_children: ChildSelector,
    level_names: Optional[dict[str, str]] = None,
    keep_unreached: bool = False,
) -> list[PlotTreeNode]:
    """
    Build a nested tree from a flat element list.

    Args:
        elements: Flat list of elements.
        include_root: Decides whether an element starts a top-level branch.
        select_children: Returns the elements nested under an element.
        level_names: Project labels for each level.
        keep_unreached: Append elements no branch reached as extra roots.

    Returns:
        Root nodes with nested children, every list sorted by order.
    """
    elements = list(elements)
    index = ChildIndex(elements)
    visited: set[str] = set()

    def expand(element: Any) -> PlotTreeNode:
        visited.add(element.id)
        children = []
        for child in sort_by_order(select_children(element, index)):
            if child.id in visited:
                logger.warning(f"Skipping repeated outline node {child.id} under {element.id}")
                continue
            children.append(expand(child))
        return _to_node(element, level_names, children)

    roots = [expand(element) for element in sort_by_order(
        element for element in elements if include_root(element, index)
    ) if element.id not in visited]

    if keep_unreached:
        for element in sort_by_order(el for el in elements if el.id not in visited):
            if element.id not in visited:
                roots.append(expand(element))

    return roots


def _is_complete_root(element: Any, index: ChildIndex) -> bool:
    # Parents outside the loaded set make the element a pseudo-root
    return element.parent_id is None or element.parent_id not in index


def _all_children(element: Any, index: ChildIndex) -> list[Any]:
    return index.children(element.id)


def _is_chapter(element: Any, index: ChildIndex) -> bool:
    return _type_value(element.type) == PlotElementType.CHAPTER.value


def _chapter_scenes(element: Any, index: ChildIndex) -> list[Any]:
    if _type_value(element.type) != PlotElementType.CHAPTER.value:
        return []
    return [
        child for child in index.children(element.id)
        if _type_value(child.type) == PlotElementType.SCENE.value
    ]


def build_complete_hierarchy(
    elements: Iterable[Any],
    level_names: Optional[dict[str, str]] = None,
) -> list[PlotTreeNode]:
    """Every level, nested under its parent."""
    return build_tree(
        elements,
        include_root=_is_complete_root,
        select_children=_all_children,
        level_names=level_names,
        keep_unreached=True,
    )


def build_simplified_hierarchy(
    elements: Iterable[Any],
    level_names: Optional[dict[str, str]] = None,
) -> list[PlotTreeNode]:
    """Chapters as roots with their direct scenes; books, parts and beats are hidden."""
    return build_tree(
        elements,
        include_root=_is_chapter,
        select_children=_chapter_scenes,
        level_names=level_names,
    )


def build_hierarchy(
    elements: Iterable[Any],
    mode: PlotViewMode | str = PlotViewMode.COMPLETE,
    level_names: Optional[dict[str, str]] = None,
) -> list[PlotTreeNode]:
    """Build the tree for a presentation mode."""
    if PlotViewMode(mode) == PlotViewMode.SIMPLIFIED:
        return build_simplified_hierarchy(elements, level_names)
    return build_complete_hierarchy(elements, level_names)


def flatten_hierarchy(nodes: Iterable[PlotTreeNode]) -> list[PlotTreeNode]:
    """Pre-order list of every node in the tree, with children stripped."""
    flat: list[PlotTreeNode] = []
    for node in nodes:
        flat.append(node.model_copy(update={"children": []}))
        flat.extend(flatten_hierarchy(node.children))
    return flat


def count_nodes(nodes: Iterable[PlotTreeNode]) -> int:
    return sum(1 + count_nodes(node.children) for node in nodes)
