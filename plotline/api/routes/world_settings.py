"""
World setting API routes.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from plotline.api.deps import DatabaseDep
from plotline.models.plot_element import ParentSummary
from plotline.models.tables import PlotElementSetting, Project, WorldSetting
from plotline.models.world_setting import (
    SettingCategory,
    SettingUsage,
    WorldSettingCreate,
    WorldSettingResponse,
    WorldSettingUpdate,
)
from plotline.services.errors import NotFoundError, ValidationError, require_fields

logger = logging.getLogger(__name__)

router = APIRouter()

_WITH_USAGES = selectinload(WorldSetting.plot_elements).selectinload(PlotElementSetting.plot_element)


def _to_response(setting: WorldSetting) -> WorldSettingResponse:
    return WorldSettingResponse(
        id=setting.id,
        project_id=setting.project_id,
        category=setting.category,
        title=setting.title,
        content=setting.content or "",
        importance=setting.importance,
        created_at=setting.created_at,
        updated_at=setting.updated_at,
        plot_elements=[
            SettingUsage(
                relevance=row.relevance,
                plot_element=ParentSummary(
                    id=row.plot_element.id, title=row.plot_element.title, type=row.plot_element.type
                ),
            )
            for row in setting.plot_elements
        ],
    )


def _get_setting(db, setting_id: str) -> WorldSetting:
    setting = db.scalars(
        select(WorldSetting).where(WorldSetting.id == setting_id).options(_WITH_USAGES)
    ).first()
    if setting is None:
        raise NotFoundError("World setting not found")
    return setting


@router.get("/detail/{setting_id}", response_model=WorldSettingResponse, summary="Get a world setting")
async def get_world_setting(setting_id: str, db: DatabaseDep) -> WorldSettingResponse:
    try:
        return _to_response(_get_setting(db, setting_id))
    except SQLAlchemyError as e:
        logger.exception(f"Error getting world setting {setting_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch world setting",
        )


@router.get(
    "/{project_id}",
    response_model=list[WorldSettingResponse],
    summary="List world settings",
    description="List a project's world settings, most important first.",
)
async def list_world_settings(project_id: str, db: DatabaseDep) -> list[WorldSettingResponse]:
    try:
        settings = db.scalars(
            select(WorldSetting)
            .where(WorldSetting.project_id == project_id)
            .options(_WITH_USAGES)
            .order_by(WorldSetting.importance.desc(), WorldSetting.created_at)
        ).all()
        return [_to_response(setting) for setting in settings]
    except SQLAlchemyError as e:
        logger.exception(f"Error listing world settings for project {project_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch world settings",
        )


@router.post(
    "",
    response_model=WorldSettingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a world setting",
)
async def create_world_setting(payload: WorldSettingCreate, db: DatabaseDep) -> WorldSettingResponse:
    required = "projectId", "category", "title", "content"
    require_fields(
        {
            "projectId": payload.project_id,
            "category": payload.category,
            "title": payload.title,
            "content": payload.content,
        },
        *required,
    )
    title = payload.title.strip()
    if not title:
        raise ValidationError(f"Missing required fields: {', '.join(required)}")
    if db.get(Project, payload.project_id) is None:
        raise NotFoundError("Project not found")

    try:
        setting = WorldSetting(
            project_id=payload.project_id,
            category=payload.category.value,
            title=title,
            content=payload.content.strip(),
            importance=payload.importance or 5,
        )
        db.add(setting)
        db.commit()
        logger.info(f"Created world setting {setting.id} for project {payload.project_id}")

        return _to_response(setting)

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error creating world setting: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create world setting",
        )


@router.put("/{setting_id}", response_model=WorldSettingResponse, summary="Update a world setting")
async def update_world_setting(
    setting_id: str,
    payload: WorldSettingUpdate,
    db: DatabaseDep,
) -> WorldSettingResponse:
    update_data = payload.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No fields to update")

    setting = _get_setting(db, setting_id)

    try:
        if update_data.get("category"):
            setting.category = SettingCategory(update_data["category"]).value
        if update_data.get("title") and update_data["title"].strip():
            setting.title = update_data["title"].strip()
        if update_data.get("content") is not None:
            setting.content = update_data["content"].strip()
        if update_data.get("importance") is not None:
            setting.importance = update_data["importance"]

        db.commit()
        logger.info(f"Updated world setting {setting_id}")

        return _to_response(setting)

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error updating world setting {setting_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update world setting",
        )


@router.delete("/{setting_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a world setting")
async def delete_world_setting(setting_id: str, db: DatabaseDep) -> None:
    setting = db.get(WorldSetting, setting_id)
    if setting is None:
        raise NotFoundError("World setting not found")

    try:
        db.delete(setting)
        db.commit()
        logger.info(f"Deleted world setting {setting_id}")

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error deleting world setting {setting_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete world setting",
        )
