"""
Plot element API routes.

CRUD and hierarchy operations for the plot outline, plus the character
and world setting links of each element.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError

from plotline.api.deps import PlotStoreDep
from plotline.models.plot_element import (
    CharacterDetailRef,
    CharacterLink,
    CharacterLinkCreate,
    CharacterLinkDetail,
    CharacterRef,
    ChildDetail,
    ChildSummary,
    ParentSummary,
    PlotElementCreate,
    PlotElementDetail,
    PlotElementResponse,
    PlotElementType,
    PlotElementUpdate,
    PlotTree,
    SettingDetailRef,
    SettingLink,
    SettingLinkCreate,
    SettingLinkDetail,
    SettingRef,
    TimelineDetailRef,
    TimelineLink,
    TimelineLinkDetail,
    TimelineRef,
)
from plotline.models.project import PlotViewMode
from plotline.models.tables import PlotElement, PlotElementCharacter, PlotElementSetting
from plotline.services.hierarchy import build_hierarchy, count_nodes

logger = logging.getLogger(__name__)

router = APIRouter()

_ELEMENT_FIELDS = (
    "id", "project_id", "parent_id", "title", "type", "order", "status", "summary",
    "content", "notes", "word_count", "target_words", "mood", "pov", "created_at", "updated_at",
)


def _element_fields(element: PlotElement) -> dict:
    return {field: getattr(element, field) for field in _ELEMENT_FIELDS}


def _parent_summary(parent: Optional[PlotElement]) -> Optional[ParentSummary]:
    if parent is None:
        return None
    return ParentSummary(id=parent.id, title=parent.title, type=parent.type)


def _character_link(row: PlotElementCharacter) -> CharacterLink:
    return CharacterLink(
        id=row.id,
        plot_element_id=row.plot_element_id,
        character_id=row.character_id,
        role=row.role,
        importance=row.importance,
        character=CharacterRef(id=row.character.id, name=row.character.name, role=row.character.role),
    )


def _setting_link(row: PlotElementSetting) -> SettingLink:
    return SettingLink(
        id=row.id,
        plot_element_id=row.plot_element_id,
        setting_id=row.setting_id,
        relevance=row.relevance,
        setting=SettingRef(id=row.setting.id, title=row.setting.title, category=row.setting.category),
    )


def _to_response(element: PlotElement) -> PlotElementResponse:
    """Build the list projection of an element."""
    return PlotElementResponse(
        **_element_fields(element),
        parent=_parent_summary(element.parent),
        children=[
            ChildSummary(id=c.id, title=c.title, type=c.type, order=c.order, status=c.status)
            for c in element.children
        ],
        characters=[_character_link(row) for row in element.characters],
        settings=[_setting_link(row) for row in element.settings],
        timelines=[
            TimelineLink(
                id=row.id,
                plot_element_id=row.plot_element_id,
                timeline_id=row.timeline_id,
                relationship=row.relationship_type,
                description=row.description,
                timeline=TimelineRef(
                    id=row.timeline.id, name=row.timeline.name, chron_order=row.timeline.chron_order
                ),
            )
            for row in element.timelines
        ],
    )


def _to_detail(element: PlotElement) -> PlotElementDetail:
    """Build the detail projection of an element."""
    return PlotElementDetail(
        **_element_fields(element),
        parent=_parent_summary(element.parent),
        children=[
            ChildDetail(
                id=c.id, title=c.title, type=c.type, order=c.order,
                status=c.status, word_count=c.word_count,
            )
            for c in element.children
        ],
        characters=[
            CharacterLinkDetail(
                id=row.id,
                plot_element_id=row.plot_element_id,
                character_id=row.character_id,
                role=row.role,
                importance=row.importance,
                character=CharacterDetailRef(
                    id=row.character.id,
                    name=row.character.name,
                    role=row.character.role,
                    description=row.character.description or "",
                ),
            )
            for row in element.characters
        ],
        settings=[
            SettingLinkDetail(
                id=row.id,
                plot_element_id=row.plot_element_id,
                setting_id=row.setting_id,
                relevance=row.relevance,
                setting=SettingDetailRef(
                    id=row.setting.id,
                    title=row.setting.title,
                    category=row.setting.category,
                    content=row.setting.content or "",
                ),
            )
            for row in element.settings
        ],
        timelines=[
            TimelineLinkDetail(
                id=row.id,
                plot_element_id=row.plot_element_id,
                timeline_id=row.timeline_id,
                relationship=row.relationship_type,
                description=row.description,
                timeline=TimelineDetailRef(
                    id=row.timeline.id,
                    name=row.timeline.name,
                    chron_order=row.timeline.chron_order,
                    description=row.timeline.description,
                    story_date=row.timeline.story_date,
                ),
            )
            for row in element.timelines
        ],
    )


# =============================================================================
# Reads
# =============================================================================

@router.get(
    "/detail/{element_id}",
    response_model=PlotElementDetail,
    summary="Get plot element",
    description="Get one plot element with its children and linked records.",
)
async def get_plot_element(element_id: str, store: PlotStoreDep) -> PlotElementDetail:
    """Get a single plot element by ID."""
    try:
        return _to_detail(store.get_element(element_id, with_relations=True))
    except SQLAlchemyError as e:
        logger.exception(f"Error getting plot element {element_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch plot element",
        )


@router.get(
    "/{project_id}/tree",
    response_model=PlotTree,
    summary="Get outline tree",
    description="Get the nested outline of a project in complete or simplified mode.",
)
async def get_plot_tree(
    project_id: str,
    store: PlotStoreDep,
    mode: Optional[PlotViewMode] = Query(None, description="Defaults to the project's view mode"),
) -> PlotTree:
    """Get the outline tree for a project."""
    try:
        project = store.get_project(project_id)
        view_mode = mode or PlotViewMode(project.plot_view_mode)
        elements = store.list_elements(project_id, with_relations=False)
        nodes = build_hierarchy(elements, view_mode, project.level_names)

        return PlotTree(
            project_id=project_id,
            mode=view_mode,
            nodes=nodes,
            total_count=count_nodes(nodes),
        )
    except SQLAlchemyError as e:
        logger.exception(f"Error building outline tree for project {project_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch plot tree",
        )


@router.get(
    "/{project_id}",
    response_model=list[PlotElementResponse],
    summary="List plot elements",
    description="List a project's plot elements ordered by position.",
)
async def list_plot_elements(
    project_id: str,
    store: PlotStoreDep,
    element_type: Optional[PlotElementType] = Query(None, alias="type"),
    parent_id: Optional[str] = Query(
        None, alias="parentId", description="Parent ID, or 'null' for root elements"
    ),
) -> list[PlotElementResponse]:
    """List plot elements, optionally filtered by type and parent."""
    try:
        elements = store.list_elements(
            project_id,
            element_type=element_type.value if element_type else None,
            parent_id=parent_id,
        )
        return [_to_response(element) for element in elements]
    except SQLAlchemyError as e:
        logger.exception(f"Error listing plot elements for project {project_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch plot elements",
        )


# =============================================================================
# Writes
# =============================================================================

@router.post(
    "",
    response_model=PlotElementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create plot element",
    description="Add a plot element, optionally with a default child of the next level.",
)
async def create_plot_element(
    payload: PlotElementCreate,
    store: PlotStoreDep,
) -> PlotElementResponse:
    """Create a plot element."""
    try:
        created = store.create_element(payload)
        return _to_response(store.get_element(created.id, with_relations=True))
    except SQLAlchemyError as e:
        logger.exception(f"Error creating plot element: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create plot element",
        )


@router.put(
    "/{element_id}",
    response_model=PlotElementResponse,
    summary="Update plot element",
    description="Update any subset of a plot element's fields, including its parent.",
)
async def update_plot_element(
    element_id: str,
    payload: PlotElementUpdate,
    store: PlotStoreDep,
) -> PlotElementResponse:
    """Update a plot element."""
    try:
        store.update_element(element_id, payload)
        return _to_response(store.get_element(element_id, with_relations=True))
    except SQLAlchemyError as e:
        logger.exception(f"Error updating plot element {element_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update plot element",
        )


@router.delete(
    "/{element_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete plot element",
    description="Delete a leaf element, or a whole subtree with cascade=true.",
)
async def delete_plot_element(
    element_id: str,
    store: PlotStoreDep,
    cascade: bool = Query(False, description="Also delete every descendant"),
) -> None:
    """Delete a plot element."""
    try:
        store.delete_element(element_id, cascade=cascade)
    except SQLAlchemyError as e:
        logger.exception(f"Error deleting plot element {element_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete plot element",
        )


# =============================================================================
# Character and setting links
# =============================================================================

@router.post(
    "/{element_id}/characters",
    response_model=CharacterLink,
    status_code=status.HTTP_201_CREATED,
    summary="Link character",
)
async def link_character(
    element_id: str,
    payload: CharacterLinkCreate,
    store: PlotStoreDep,
) -> CharacterLink:
    try:
        return _character_link(store.link_character(element_id, payload))
    except SQLAlchemyError as e:
        logger.exception(f"Error linking character to plot element {element_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to link character",
        )


@router.delete(
    "/{element_id}/characters/{character_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unlink character",
)
async def unlink_character(element_id: str, character_id: str, store: PlotStoreDep) -> None:
    try:
        store.unlink_character(element_id, character_id)
    except SQLAlchemyError as e:
        logger.exception(f"Error unlinking character {character_id} from {element_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to unlink character",
        )


@router.post(
    "/{element_id}/settings",
    response_model=SettingLink,
    status_code=status.HTTP_201_CREATED,
    summary="Link world setting",
)
async def link_setting(
    element_id: str,
    payload: SettingLinkCreate,
    store: PlotStoreDep,
) -> SettingLink:
    try:
        return _setting_link(store.link_setting(element_id, payload))
    except SQLAlchemyError as e:
        logger.exception(f"Error linking setting to plot element {element_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to link setting",
        )


@router.delete(
    "/{element_id}/settings/{setting_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unlink world setting",
)
async def unlink_setting(element_id: str, setting_id: str, store: PlotStoreDep) -> None:
    try:
        store.unlink_setting(element_id, setting_id)
    except SQLAlchemyError as e:
        logger.exception(f"Error unlinking setting {setting_id} from {element_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to unlink setting",
        )
