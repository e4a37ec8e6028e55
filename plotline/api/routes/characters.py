"""
Character API routes.

CRUD operations for a project's characters.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from plotline.api.deps import DatabaseDep
from plotline.models.character import (
    CharacterAppearance,
    CharacterCreate,
    CharacterResponse,
    CharacterRole,
    CharacterUpdate,
)
from plotline.models.plot_element import ParentSummary
from plotline.models.tables import Character, PlotElementCharacter, Project
from plotline.services.errors import NotFoundError, ValidationError, require_fields

logger = logging.getLogger(__name__)

router = APIRouter()

_WITH_APPEARANCES = selectinload(Character.plot_elements).selectinload(PlotElementCharacter.plot_element)


def _to_response(character: Character) -> CharacterResponse:
    return CharacterResponse(
        id=character.id,
        project_id=character.project_id,
        name=character.name,
        role=character.role,
        description=character.description or "",
        importance=character.importance,
        created_at=character.created_at,
        updated_at=character.updated_at,
        plot_elements=[
            CharacterAppearance(
                role=row.role,
                importance=row.importance,
                plot_element=ParentSummary(
                    id=row.plot_element.id, title=row.plot_element.title, type=row.plot_element.type
                ),
            )
            for row in character.plot_elements
        ],
    )


def _get_character(db, character_id: str) -> Character:
    character = db.scalars(
        select(Character).where(Character.id == character_id).options(_WITH_APPEARANCES)
    ).first()
    if character is None:
        raise NotFoundError("Character not found")
    return character


@router.get(
    "/detail/{character_id}",
    response_model=CharacterResponse,
    summary="Get a character",
)
async def get_character(character_id: str, db: DatabaseDep) -> CharacterResponse:
    """Get a character with the plot elements it appears in."""
    try:
        return _to_response(_get_character(db, character_id))
    except SQLAlchemyError as e:
        logger.exception(f"Error getting character {character_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch character",
        )


@router.get(
    "/{project_id}",
    response_model=list[CharacterResponse],
    summary="List characters",
    description="List a project's characters, most important first.",
)
async def list_characters(project_id: str, db: DatabaseDep) -> list[CharacterResponse]:
    try:
        characters = db.scalars(
            select(Character)
            .where(Character.project_id == project_id)
            .options(_WITH_APPEARANCES)
            .order_by(Character.importance.desc(), Character.created_at)
        ).all()
        return [_to_response(character) for character in characters]
    except SQLAlchemyError as e:
        logger.exception(f"Error listing characters for project {project_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch characters",
        )


@router.post(
    "",
    response_model=CharacterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a character",
)
async def create_character(payload: CharacterCreate, db: DatabaseDep) -> CharacterResponse:
    """Create a character in a project."""
    require_fields(
        {"projectId": payload.project_id, "name": payload.name, "role": payload.role},
        "projectId", "name", "role",
    )
    name = payload.name.strip()
    if not name:
        raise ValidationError("Missing required fields: projectId, name, role")
    if db.get(Project, payload.project_id) is None:
        raise NotFoundError("Project not found")

    try:
        character = Character(
            project_id=payload.project_id,
            name=name,
            role=payload.role.value,
            description=payload.description or "",
            importance=payload.importance or 5,
        )
        db.add(character)
        db.commit()
        logger.info(f"Created character {character.id} for project {payload.project_id}")

        return _to_response(character)

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error creating character: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create character",
        )


@router.put(
    "/{character_id}",
    response_model=CharacterResponse,
    summary="Update a character",
)
async def update_character(
    character_id: str,
    payload: CharacterUpdate,
    db: DatabaseDep,
) -> CharacterResponse:
    update_data = payload.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No fields to update")

    character = _get_character(db, character_id)

    try:
        if update_data.get("name") and update_data["name"].strip():
            character.name = update_data["name"].strip()
        if update_data.get("role"):
            character.role = CharacterRole(update_data["role"]).value
        if "description" in update_data:
            character.description = update_data["description"] or ""
        if update_data.get("importance") is not None:
            character.importance = update_data["importance"]

        db.commit()
        logger.info(f"Updated character {character_id}")

        return _to_response(character)

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error updating character {character_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update character",
        )


@router.delete(
    "/{character_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a character",
    description="Delete a character and its plot element links.",
)
async def delete_character(character_id: str, db: DatabaseDep) -> None:
    character = db.get(Character, character_id)
    if character is None:
        raise NotFoundError("Character not found")

    try:
        db.delete(character)
        db.commit()
        logger.info(f"Deleted character {character_id}")

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error deleting character {character_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete character",
        )
