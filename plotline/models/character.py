"""
Character Pydantic models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from plotline.models.common import CamelModel
from plotline.models.plot_element import ParentSummary


class CharacterRole(str, Enum):
    PROTAGONIST = "protagonist"
    ANTAGONIST = "antagonist"
    SUPPORTING = "supporting"
    MINOR = "minor"


class CharacterCreate(CamelModel):
    """Request model for creating a character."""

    project_id: Optional[str] = None
    name: Optional[str] = Field(None, max_length=200)
    role: Optional[CharacterRole] = None
    description: str = ""
    importance: int = Field(5, ge=1, le=10)


class CharacterUpdate(CamelModel):
    """Request model for updating a character."""

    name: Optional[str] = Field(None, max_length=200)
    role: Optional[CharacterRole] = None
    description: Optional[str] = None
    importance: Optional[int] = Field(None, ge=1, le=10)


class CharacterAppearance(CamelModel):
    """A plot element the character is linked to."""

    role: Optional[str] = None
    importance: int = 5
    plot_element: ParentSummary


class CharacterResponse(CamelModel):
    """Response model for a character."""

    id: str
    project_id: str
    name: str
    role: CharacterRole
    description: str = ""
    importance: int = 5
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    plot_elements: list[CharacterAppearance] = []

