"""
Project API routes.

CRUD operations for novel projects, plus outline statistics.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from plotline.api.deps import DatabaseDep, PlotStoreDep
from plotline.models.project import (
    DEFAULT_LEVEL_NAMES,
    PlotElementStats,
    ProgressStats,
    ProjectCounts,
    ProjectCreate,
    ProjectResponse,
    ProjectStats,
    ProjectStatus,
    ProjectUpdate,
)
from plotline.models.tables import Character, PlotElement, Project, Timeline, WorldSetting
from plotline.services.errors import NotFoundError, ValidationError, require_fields

logger = logging.getLogger(__name__)

router = APIRouter()


def _count(db, model, project_id: str) -> int:
    return db.scalar(
        select(func.count()).select_from(model).where(model.project_id == project_id)
    ) or 0


def _counts(db, project_id: str) -> ProjectCounts:
    return ProjectCounts(
        characters=_count(db, Character, project_id),
        world_settings=_count(db, WorldSetting, project_id),
        plot_elements=_count(db, PlotElement, project_id),
        timelines=_count(db, Timeline, project_id),
    )


def _to_response(db, project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        title=project.title,
        description=project.description,
        genre=project.genre,
        status=project.status,
        word_count=project.word_count or 0,
        target_words=project.target_words,
        plot_view_mode=project.plot_view_mode,
        level_names={**DEFAULT_LEVEL_NAMES, **(project.level_names or {})},
        created_at=project.created_at,
        updated_at=project.updated_at,
        counts=_counts(db, project.id),
    )


def _get_project(db, project_id: str) -> Project:
    project = db.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


@router.get(
    "",
    response_model=list[ProjectResponse],
    summary="List projects",
    description="List all projects, most recently updated first.",
)
async def list_projects(db: DatabaseDep) -> list[ProjectResponse]:
    """List all projects with record counts."""
    try:
        projects = db.scalars(select(Project).order_by(Project.updated_at.desc())).all()
        return [_to_response(db, project) for project in projects]
    except SQLAlchemyError as e:
        logger.exception(f"Error listing projects: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch projects",
        )


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new project",
    description="Create a project, optionally scaffolding a default book/part/chapter chain.",
)
async def create_project(
    payload: ProjectCreate,
    db: DatabaseDep,
    store: PlotStoreDep,
) -> ProjectResponse:
    """Create a new novel project."""
    require_fields({"title": payload.title}, "title")
    title = payload.title.strip()
    if not title:
        raise ValidationError("Missing required field: title")

    try:
        project = Project(
            title=title,
            description=payload.description,
            genre=payload.genre,
            status=ProjectStatus.DRAFT.value,
            target_words=payload.target_words,
            plot_view_mode=payload.plot_view_mode.value,
            level_names=payload.level_names or dict(DEFAULT_LEVEL_NAMES),
        )
        db.add(project)
        db.flush()

        if payload.create_default_structure:
            store.add_default_structure(project.id)

        db.commit()
        logger.info(f"Created project {project.id}")

        return _to_response(db, project)

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error creating project: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create project",
        )


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Get a project",
    description="Get details of a specific project.",
)
async def get_project(project_id: str, db: DatabaseDep) -> ProjectResponse:
    """Get a project by ID."""
    try:
        return _to_response(db, _get_project(db, project_id))
    except SQLAlchemyError as e:
        logger.exception(f"Error getting project {project_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch project",
        )


@router.get(
    "/{project_id}/stats",
    response_model=ProjectStats,
    summary="Get project statistics",
    description="Record counts, outline word totals and progress toward the word target.",
)
async def get_project_stats(project_id: str, db: DatabaseDep) -> ProjectStats:
    """Aggregate statistics for a project."""
    try:
        project = _get_project(db, project_id)

        total, total_words = db.execute(
            select(func.count(PlotElement.id), func.coalesce(func.sum(PlotElement.word_count), 0))
            .where(PlotElement.project_id == project_id)
        ).one()
        by_status = {
            row_status: count
            for row_status, count in db.execute(
                select(PlotElement.status, func.count(PlotElement.id))
                .where(PlotElement.project_id == project_id)
                .group_by(PlotElement.status)
            ).all()
        }

        progress = 0
        if project.target_words:
            progress = round((project.word_count or 0) / project.target_words * 100)

        return ProjectStats(
            characters=_count(db, Character, project_id),
            world_settings=_count(db, WorldSetting, project_id),
            plot_elements=PlotElementStats(total=total, total_words=total_words, by_status=by_status),
            timelines=_count(db, Timeline, project_id),
            project=ProgressStats(
                word_count=project.word_count or 0,
                target_words=project.target_words,
                progress=progress,
            ),
        )
    except SQLAlchemyError as e:
        logger.exception(f"Error computing stats for project {project_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch project statistics",
        )


@router.put(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Update a project",
    description="Update a project's details and display settings.",
)
async def update_project(
    project_id: str,
    payload: ProjectUpdate,
    db: DatabaseDep,
) -> ProjectResponse:
    """Update a project."""
    update_data = payload.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No fields to update")

    project = _get_project(db, project_id)

    try:
        for field, value in update_data.items():
            if field == "title":
                if value and value.strip():
                    project.title = value.strip()
            elif field in ("status", "plot_view_mode"):
                if value:
                    setattr(project, field, value.value)
            elif field == "word_count":
                project.word_count = value or 0
            elif field == "level_names":
                project.level_names = {**DEFAULT_LEVEL_NAMES, **(value or {})}
            else:
                setattr(project, field, value)

        db.commit()
        logger.info(f"Updated project {project_id}: {', '.join(sorted(update_data))}")

        return _to_response(db, project)

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error updating project {project_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update project",
        )


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a project",
    description="Delete a project together with its outline and collaborators.",
)
async def delete_project(project_id: str, db: DatabaseDep) -> None:
    """Delete a project."""
    project = _get_project(db, project_id)

    try:
        db.delete(project)
        db.commit()
        logger.info(f"Deleted project {project_id}")

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error deleting project {project_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete project",
        )
