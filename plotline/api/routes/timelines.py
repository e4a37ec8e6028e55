"""
Timeline API routes.

CRUD operations for timelines and the links that place plot elements on
them. Timelines are ordered by ``chronOrder``, which defaults to the next
free position in the project.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from plotline.api.deps import DatabaseDep, PlotStoreDep
from plotline.models.tables import PlotElementTimeline, Project, Timeline
from plotline.models.timeline import (
    TimelineCreate,
    TimelineLinkCreate,
    TimelineLinkUpdate,
    TimelinePlotElement,
    TimelinePlotElementLink,
    TimelineResponse,
    TimelineUpdate,
    TimeType,
)
from plotline.services.errors import NotFoundError, ValidationError, require_fields

logger = logging.getLogger(__name__)

router = APIRouter()

_WITH_LINKS = selectinload(Timeline.plot_elements).selectinload(PlotElementTimeline.plot_element)


def _link_response(row: PlotElementTimeline) -> TimelinePlotElementLink:
    element = row.plot_element
    return TimelinePlotElementLink(
        id=row.id,
        plot_element_id=row.plot_element_id,
        timeline_id=row.timeline_id,
        relationship=row.relationship_type,
        description=row.description,
        plot_element=TimelinePlotElement(
            id=element.id,
            title=element.title,
            type=element.type,
            status=element.status,
            summary=element.summary,
            word_count=element.word_count or 0,
        ),
    )


def _to_response(timeline: Timeline) -> TimelineResponse:
    links = sorted(timeline.plot_elements, key=lambda row: row.plot_element.order)
    return TimelineResponse(
        id=timeline.id,
        project_id=timeline.project_id,
        name=timeline.name,
        description=timeline.description,
        story_date=timeline.story_date,
        time_type=timeline.time_type,
        chron_order=timeline.chron_order,
        importance=timeline.importance,
        duration=timeline.duration,
        created_at=timeline.created_at,
        updated_at=timeline.updated_at,
        plot_elements=[_link_response(row) for row in links],
    )


def _get_timeline(db, timeline_id: str) -> Timeline:
    timeline = db.scalars(
        select(Timeline).where(Timeline.id == timeline_id).options(_WITH_LINKS)
    ).first()
    if timeline is None:
        raise NotFoundError("Timeline not found")
    return timeline


@router.get("/detail/{timeline_id}", response_model=TimelineResponse, summary="Get a timeline")
async def get_timeline(timeline_id: str, db: DatabaseDep) -> TimelineResponse:
    """Get a timeline with its plot elements in outline order."""
    try:
        return _to_response(_get_timeline(db, timeline_id))
    except SQLAlchemyError as e:
        logger.exception(f"Error getting timeline {timeline_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch timeline",
        )


@router.get(
    "/{project_id}",
    response_model=list[TimelineResponse],
    summary="List timelines",
    description="List a project's timelines in chronological order.",
)
async def list_timelines(project_id: str, db: DatabaseDep) -> list[TimelineResponse]:
    try:
        timelines = db.scalars(
            select(Timeline)
            .where(Timeline.project_id == project_id)
            .options(_WITH_LINKS)
            .order_by(Timeline.chron_order, Timeline.created_at)
        ).all()
        return [_to_response(timeline) for timeline in timelines]
    except SQLAlchemyError as e:
        logger.exception(f"Error listing timelines for project {project_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch timelines",
        )


@router.post(
    "",
    response_model=TimelineResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a timeline",
)
async def create_timeline(payload: TimelineCreate, db: DatabaseDep) -> TimelineResponse:
    required = "projectId", "name", "timeType"
    require_fields(
        {"projectId": payload.project_id, "name": payload.name, "timeType": payload.time_type},
        *required,
    )
    name = payload.name.strip()
    if not name:
        raise ValidationError(f"Missing required fields: {', '.join(required)}")
    if db.get(Project, payload.project_id) is None:
        raise NotFoundError("Project not found")

    try:
        chron_order = payload.chron_order
        if chron_order is None:
            max_order = db.scalar(
                select(func.max(Timeline.chron_order)).where(Timeline.project_id == payload.project_id)
            )
            chron_order = (max_order or 0) + 1

        timeline = Timeline(
            project_id=payload.project_id,
            name=name,
            description=payload.description or None,
            story_date=payload.story_date or None,
            time_type=payload.time_type.value,
            chron_order=chron_order,
            importance=payload.importance or 5,
            duration=payload.duration or None,
        )
        db.add(timeline)
        db.commit()
        logger.info(f"Created timeline {timeline.id} for project {payload.project_id}")

        return _to_response(timeline)

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error creating timeline: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create timeline",
        )


@router.put("/{timeline_id}", response_model=TimelineResponse, summary="Update a timeline")
async def update_timeline(
    timeline_id: str,
    payload: TimelineUpdate,
    db: DatabaseDep,
) -> TimelineResponse:
    update_data = payload.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No fields to update")

    timeline = _get_timeline(db, timeline_id)

    try:
        if update_data.get("name") and update_data["name"].strip():
            timeline.name = update_data["name"].strip()
        if update_data.get("time_type"):
            timeline.time_type = TimeType(update_data["time_type"]).value
        for field in ("description", "story_date", "duration"):
            if field in update_data:
                setattr(timeline, field, update_data[field] or None)
        for field in ("chron_order", "importance"):
            if update_data.get(field) is not None:
                setattr(timeline, field, update_data[field])

        db.commit()
        logger.info(f"Updated timeline {timeline_id}")

        return _to_response(timeline)

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error updating timeline {timeline_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update timeline",
        )


@router.delete("/{timeline_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a timeline")
async def delete_timeline(timeline_id: str, db: DatabaseDep) -> None:
    timeline = db.get(Timeline, timeline_id)
    if timeline is None:
        raise NotFoundError("Timeline not found")

    try:
        db.delete(timeline)
        db.commit()
        logger.info(f"Deleted timeline {timeline_id}")

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error deleting timeline {timeline_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete timeline",
        )


# =============================================================================
# Plot element links
# =============================================================================

@router.post(
    "/{timeline_id}/plot-elements",
    response_model=TimelinePlotElementLink,
    status_code=status.HTTP_201_CREATED,
    summary="Link plot element",
    description="Place a plot element on the timeline.",
)
async def link_plot_element(
    timeline_id: str,
    payload: TimelineLinkCreate,
    store: PlotStoreDep,
) -> TimelinePlotElementLink:
    try:
        return _link_response(store.link_timeline(timeline_id, payload))
    except SQLAlchemyError as e:
        logger.exception(f"Error linking plot element to timeline {timeline_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to link plot element",
        )


@router.put(
    "/{timeline_id}/plot-elements/{element_id}",
    response_model=TimelinePlotElementLink,
    summary="Update plot element link",
)
async def update_plot_element_link(
    timeline_id: str,
    element_id: str,
    payload: TimelineLinkUpdate,
    store: PlotStoreDep,
) -> TimelinePlotElementLink:
    try:
        return _link_response(store.update_timeline_link(timeline_id, element_id, payload))
    except SQLAlchemyError as e:
        logger.exception(f"Error updating timeline {timeline_id} link for {element_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update relation",
        )


@router.delete(
    "/{timeline_id}/plot-elements/{element_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unlink plot element",
)
async def unlink_plot_element(timeline_id: str, element_id: str, store: PlotStoreDep) -> None:
    try:
        store.unlink_timeline(timeline_id, element_id)
    except SQLAlchemyError as e:
        logger.exception(f"Error unlinking plot element {element_id} from timeline {timeline_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to unlink plot element",
        )
