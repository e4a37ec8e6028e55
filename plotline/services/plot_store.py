"""
Plot outline storage.

PlotStore wraps a SQLAlchemy session and owns every rule the outline
enforces at the storage boundary:

- parents must live in the same project as their children
- reparenting may not create a cycle
- an element with children is only deleted when a cascade is requested
- sibling order defaults to max(order) + 1 under the same parent
- each relation row is unique per (plot element, related record)

Every public write runs in its own transaction.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from plotline.config import Settings, get_settings
from plotline.models.plot_element import (
    CHILD_TYPE,
    LEAF_TYPES,
    CharacterLinkCreate,
    PlotElementCreate,
    PlotElementType,
    PlotElementUpdate,
    PlotStatus,
    SettingLinkCreate,
)
from plotline.models.tables import (
    Character,
    PlotElement,
    PlotElementCharacter,
    PlotElementSetting,
    PlotElementTimeline,
    Project,
    Timeline,
    WorldSetting,
)
from plotline.models.timeline import TimelineLinkCreate, TimelineLinkUpdate
from plotline.services.errors import (
    ConflictError,
    NotFoundError,
    StructuralError,
    ValidationError,
    require_fields,
)
from plotline.services.word_count import count_words

logger = logging.getLogger(__name__)

# Query-string value that selects root elements only
ROOT_PARENT_SENTINEL = "null"

_ELEMENT_RELATIONS = (
    selectinload(PlotElement.parent),
    selectinload(PlotElement.children),
    selectinload(PlotElement.characters).selectinload(PlotElementCharacter.character),
    selectinload(PlotElement.settings).selectinload(PlotElementSetting.setting),
    selectinload(PlotElement.timelines).selectinload(PlotElementTimeline.timeline),
)


class PlotStore:
    """
    Storage operations for the plot outline.

    Usage:
        store = PlotStore(session)
        book = store.create_element(PlotElementCreate(project_id=pid, title="B", type="book"))
    """

    def __init__(self, session: Session, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    # =========================================================================
    # Reads
    # =========================================================================

    def get_project(self, project_id: str) -> Project:
        project = self.session.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    def get_element(self, element_id: str, with_relations: bool = False) -> PlotElement:
        """Fetch one element, optionally with parent, children and relations loaded."""
        if with_relations:
            element = self.session.scalars(
                select(PlotElement)
                .where(PlotElement.id == element_id)
                .options(*_ELEMENT_RELATIONS)
            ).first()
        else:
            element = self.session.get(PlotElement, element_id)
        if element is None:
            raise NotFoundError("Plot element not found")
        return element

    def list_elements(
        self,
        project_id: str,
        element_type: Optional[str] = None,
        parent_id: Optional[str] = None,
        with_relations: bool = True,
    ) -> list[PlotElement]:
        """
        List a project's elements ordered by ``order``.

        Args:
            project_id: Owning project.
            element_type: Only elements of this type.
            parent_id: Only children of this element; the string "null"
                selects root elements.
            with_relations: Eager-load parent, children and relation rows.
        """
        stmt = select(PlotElement).where(PlotElement.project_id == project_id)

        if element_type:
            stmt = stmt.where(PlotElement.type == element_type)

        if parent_id == ROOT_PARENT_SENTINEL:
            stmt = stmt.where(PlotElement.parent_id.is_(None))
        elif parent_id:
            stmt = stmt.where(PlotElement.parent_id == parent_id)

        if with_relations:
            stmt = stmt.options(*_ELEMENT_RELATIONS)

        stmt = stmt.order_by(PlotElement.order, PlotElement.created_at)
        return list(self.session.scalars(stmt).all())

    def count_children(self, element_id: str) -> int:
        return self.session.scalar(
            select(func.count()).select_from(PlotElement).where(PlotElement.parent_id == element_id)
        ) or 0

    def next_order(self, project_id: str, parent_id: Optional[str]) -> int:
        """Order for a new last sibling under ``parent_id``."""
        stmt = select(func.max(PlotElement.order)).where(PlotElement.project_id == project_id)
        if parent_id:
            stmt = stmt.where(PlotElement.parent_id == parent_id)
        else:
            stmt = stmt.where(PlotElement.parent_id.is_(None))
        return (self.session.scalar(stmt) or 0) + 1

    def ancestor_ids(self, element_id: str) -> list[str]:
        """Ids on the parent chain above ``element_id``, nearest first."""
        ancestors: list[str] = []
        current = self.session.get(PlotElement, element_id)
        while current is not None and current.parent_id and current.parent_id not in ancestors:
            ancestors.append(current.parent_id)
            current = self.session.get(PlotElement, current.parent_id)
        return ancestors

    def descendant_ids(self, element_id: str) -> list[str]:
        """Ids of every element below ``element_id``, breadth first."""
        found: list[str] = []
        seen = {element_id}
        frontier = [element_id]
        while frontier:
            rows = self.session.scalars(
                select(PlotElement.id).where(PlotElement.parent_id.in_(frontier))
            ).all()
            frontier = [row for row in rows if row not in seen]
            seen.update(frontier)
            found.extend(frontier)
        return found

    # =========================================================================
    # Element writes
    # =========================================================================

    def _resolve_parent(self, project_id: str, parent_id: str) -> PlotElement:
        parent = self.session.get(PlotElement, parent_id)
        if parent is None:
            raise NotFoundError("Parent plot element not found")
        if parent.project_id != project_id:
            raise ValidationError("Parent plot element belongs to a different project")
        return parent

    def create_element(self, payload: PlotElementCreate) -> PlotElement:
        """
        Create a plot element.

        When ``auto_create_children`` is set and the type is not a leaf
        type, one default child of the next level is created in the same
        transaction. The created element is returned, not the child.

        Raises:
            ValidationError: projectId, title or type missing, or a
                parent from another project.
            NotFoundError: Unknown project or parent.
        """
        require_fields(
            {"projectId": payload.project_id, "title": payload.title, "type": payload.type},
            "projectId", "title", "type",
        )
        title = payload.title.strip()
        if not title:
            raise ValidationError("Missing required fields: projectId, title, type")

        self.get_project(payload.project_id)
        parent_id = payload.parent_id or None
        if parent_id:
            self._resolve_parent(payload.project_id, parent_id)

        order = payload.order
        if order is None:
            order = self.next_order(payload.project_id, parent_id)

        content = payload.content or ""
        element_type = PlotElementType(payload.type)

        with self._transaction():
            element = PlotElement(
                project_id=payload.project_id,
                parent_id=parent_id,
                title=title,
                type=element_type.value,
                order=order,
                status=(payload.status or PlotStatus.PLANNED).value,
                summary=payload.summary or None,
                content=content,
                notes=payload.notes or None,
                word_count=count_words(content, self.settings.word_count_mode),
                target_words=payload.target_words or None,
                mood=payload.mood or None,
                pov=payload.pov or None,
            )
            self.session.add(element)
            self.session.flush()

            if payload.auto_create_children and element_type not in LEAF_TYPES:
                child_type = CHILD_TYPE.get(element_type)
                if child_type:
                    self.session.add(PlotElement(
                        project_id=payload.project_id,
                        parent_id=element.id,
                        title=self.settings.default_child_title,
                        type=child_type.value,
                        order=1,
                        status=PlotStatus.PLANNED.value,
                        content="",
                        word_count=0,
                    ))
                    logger.info(f"Auto-created {child_type.value} under {element.type} {element.id}")

        logger.info(f"Created plot element {element.id} ({element.type}) for project {element.project_id}")
        return element

    def update_element(self, element_id: str, payload: PlotElementUpdate) -> PlotElement:
        """
        Apply a partial update.

        Raises:
            ValidationError: Nothing to update, or a parent from another project.
            StructuralError: The new parent is the element or one of its descendants.
            NotFoundError: Unknown element or parent.
        """
        data = payload.model_dump(exclude_unset=True)
        if not data:
            raise ValidationError("No fields to update")

        element = self.get_element(element_id)

        if "parent_id" in data:
            new_parent_id = data["parent_id"] or None
            if new_parent_id:
                self._resolve_parent(element.project_id, new_parent_id)
                if new_parent_id == element.id or element.id in self.ancestor_ids(new_parent_id):
                    logger.warning(f"Rejected reparenting {element.id} under its own subtree")
                    raise StructuralError(
                        "Cannot move a plot element under itself or one of its descendants"
                    )

        with self._transaction():
            if data.get("title") and data["title"].strip():
                element.title = data["title"].strip()
            if data.get("type"):
                element.type = PlotElementType(data["type"]).value
            if data.get("order") is not None:
                element.order = data["order"]
            if "parent_id" in data:
                element.parent_id = data["parent_id"] or None
            for field in ("summary", "notes", "mood", "pov", "target_words"):
                if field in data:
                    setattr(element, field, data[field] or None)
            if data.get("content") is not None:
                element.content = data["content"]
                element.word_count = count_words(data["content"], self.settings.word_count_mode)
            if data.get("status"):
                element.status = PlotStatus(data["status"]).value

        logger.info(f"Updated plot element {element_id}: {', '.join(sorted(data))}")
        return element

    def delete_element(self, element_id: str, cascade: bool = False) -> int:
        """
        Delete an element.

        Without ``cascade`` an element that still has children is refused.
        With it, the element and its whole subtree are removed in one
        transaction. Relation rows go with their elements.

        Returns:
            Number of elements removed.

        Raises:
            StructuralError: Children exist and no cascade was requested.
            NotFoundError: Unknown element.
        """
        element = self.get_element(element_id)

        if not cascade and self.count_children(element_id) > 0:
            logger.warning(f"Refused to delete plot element {element_id} with children")
            raise StructuralError(
                "Cannot delete plot element with children. Please delete children first."
            )

        descendants = self.descendant_ids(element_id) if cascade else []

        with self._transaction():
            for descendant_id in reversed(descendants):
                self.session.delete(self.session.get(PlotElement, descendant_id))
            self.session.delete(element)

        logger.info(f"Deleted plot element {element_id} (+{len(descendants)} descendants)")
        return 1 + len(descendants)

    def add_default_structure(self, project_id: str) -> PlotElement:
        """
        Add a book → part → chapter chain to a project.

        Runs inside the caller's transaction; nothing is committed here.

        Returns:
            The default chapter.
        """
        parent_id = None
        node = None
        for element_type in (PlotElementType.BOOK, PlotElementType.PART, PlotElementType.CHAPTER):
            node = PlotElement(
                project_id=project_id,
                parent_id=parent_id,
                title=self.settings.default_child_title,
                type=element_type.value,
                order=1,
                status=PlotStatus.PLANNED.value,
                content="",
                word_count=0,
            )
            self.session.add(node)
            self.session.flush()
            parent_id = node.id
        return node

    # =========================================================================
    # Relations
    # =========================================================================

    def _add_relation(self, relation, conflict_message: str):
        try:
            with self._transaction():
                self.session.add(relation)
        except IntegrityError:
            raise ConflictError(conflict_message)
        return relation

    def link_character(self, element_id: str, payload: CharacterLinkCreate) -> PlotElementCharacter:
        """
        Link a character to a plot element.

        Raises:
            ValidationError: characterId missing or from another project.
            NotFoundError: Unknown element or character.
            ConflictError: The pair is already linked.
        """
        require_fields({"characterId": payload.character_id}, "characterId")
        element = self.get_element(element_id)

        character = self.session.get(Character, payload.character_id)
        if character is None:
            raise NotFoundError("Character not found")
        if character.project_id != element.project_id:
            raise ValidationError("Character belongs to a different project")

        message = "Character already linked to this plot element"
        existing = self.session.scalars(
            select(PlotElementCharacter).where(
                PlotElementCharacter.plot_element_id == element_id,
                PlotElementCharacter.character_id == character.id,
            )
        ).first()
        if existing is not None:
            raise ConflictError(message)

        relation = self._add_relation(
            PlotElementCharacter(
                plot_element_id=element_id,
                character_id=character.id,
                role=payload.role or None,
                importance=payload.importance or 5,
            ),
            message,
        )
        logger.info(f"Linked character {character.id} to plot element {element_id}")
        return relation

    def unlink_character(self, element_id: str, character_id: str) -> None:
        relation = self.session.scalars(
            select(PlotElementCharacter).where(
                PlotElementCharacter.plot_element_id == element_id,
                PlotElementCharacter.character_id == character_id,
            )
        ).first()
        if relation is None:
            raise NotFoundError("Character relation not found")

        with self._transaction():
            self.session.delete(relation)
        logger.info(f"Unlinked character {character_id} from plot element {element_id}")

    def link_setting(self, element_id: str, payload: SettingLinkCreate) -> PlotElementSetting:
        """
        Link a world setting to a plot element.

        Raises:
            ValidationError: settingId missing or from another project.
            NotFoundError: Unknown element or setting.
            ConflictError: The pair is already linked.
        """
        require_fields({"settingId": payload.setting_id}, "settingId")
        element = self.get_element(element_id)

        setting = self.session.get(WorldSetting, payload.setting_id)
        if setting is None:
            raise NotFoundError("World setting not found")
        if setting.project_id != element.project_id:
            raise ValidationError("World setting belongs to a different project")

        message = "Setting already linked to this plot element"
        existing = self.session.scalars(
            select(PlotElementSetting).where(
                PlotElementSetting.plot_element_id == element_id,
                PlotElementSetting.setting_id == setting.id,
            )
        ).first()
        if existing is not None:
            raise ConflictError(message)

        relation = self._add_relation(
            PlotElementSetting(
                plot_element_id=element_id,
                setting_id=setting.id,
                relevance=payload.relevance or None,
            ),
            message,
        )
        logger.info(f"Linked setting {setting.id} to plot element {element_id}")
        return relation

    def unlink_setting(self, element_id: str, setting_id: str) -> None:
        relation = self.session.scalars(
            select(PlotElementSetting).where(
                PlotElementSetting.plot_element_id == element_id,
                PlotElementSetting.setting_id == setting_id,
            )
        ).first()
        if relation is None:
            raise NotFoundError("Setting relation not found")

        with self._transaction():
            self.session.delete(relation)
        logger.info(f"Unlinked setting {setting_id} from plot element {element_id}")

    def _find_timeline_link(self, timeline_id: str, element_id: str) -> PlotElementTimeline:
        relation = self.session.scalars(
            select(PlotElementTimeline).where(
                PlotElementTimeline.timeline_id == timeline_id,
                PlotElementTimeline.plot_element_id == element_id,
            )
        ).first()
        if relation is None:
            raise NotFoundError("Plot element relation not found")
        return relation

    def link_timeline(self, timeline_id: str, payload: TimelineLinkCreate) -> PlotElementTimeline:
        """
        Place a plot element on a timeline.

        Raises:
            ValidationError: plotElementId or relationship missing, or the
                element belongs to another project.
            NotFoundError: Unknown timeline or element.
            ConflictError: The pair is already linked.
        """
        require_fields(
            {"plotElementId": payload.plot_element_id, "relationship": payload.relationship},
            "plotElementId", "relationship",
        )
        timeline = self.session.get(Timeline, timeline_id)
        if timeline is None:
            raise NotFoundError("Timeline not found")
        element = self.get_element(payload.plot_element_id)
        if element.project_id != timeline.project_id:
            raise ValidationError("Plot element belongs to a different project")

        message = "Plot element already linked to this timeline"
        existing = self.session.scalars(
            select(PlotElementTimeline).where(
                PlotElementTimeline.timeline_id == timeline_id,
                PlotElementTimeline.plot_element_id == element.id,
            )
        ).first()
        if existing is not None:
            raise ConflictError(message)

        relation = self._add_relation(
            PlotElementTimeline(
                timeline_id=timeline_id,
                plot_element_id=element.id,
                relationship_type=payload.relationship.value,
                description=payload.description or None,
            ),
            message,
        )
        logger.info(f"Linked plot element {element.id} to timeline {timeline_id}")
        return relation

    def update_timeline_link(
        self, timeline_id: str, element_id: str, payload: TimelineLinkUpdate
    ) -> PlotElementTimeline:
        relation = self._find_timeline_link(timeline_id, element_id)
        data = payload.model_dump(exclude_unset=True)

        with self._transaction():
            if data.get("relationship"):
                relation.relationship_type = data["relationship"].value
            if "description" in data:
                relation.description = data["description"] or None

        logger.info(f"Updated timeline {timeline_id} relation for plot element {element_id}")
        return relation

    def unlink_timeline(self, timeline_id: str, element_id: str) -> None:
        relation = self._find_timeline_link(timeline_id, element_id)
        with self._transaction():
            self.session.delete(relation)
        logger.info(f"Unlinked plot element {element_id} from timeline {timeline_id}")
