"""
World setting Pydantic models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from plotline.models.common import CamelModel
from plotline.models.plot_element import ParentSummary


class SettingCategory(str, Enum):
    BACKGROUND = "background"
    CULTURE = "culture"
    GEOGRAPHY = "geography"
    TECHNOLOGY = "technology"
    MAGIC = "magic"
    SOCIETY = "society"
    HISTORY = "history"


class WorldSettingCreate(CamelModel):
    """Request model for creating a world setting."""

    project_id: Optional[str] = None
    category: Optional[SettingCategory] = None
    title: Optional[str] = Field(None, max_length=200)
    content: Optional[str] = None
    importance: int = Field(5, ge=1, le=10)


class WorldSettingUpdate(CamelModel):
    """Request model for updating a world setting."""

    category: Optional[SettingCategory] = None
    title: Optional[str] = Field(None, max_length=200)
    content: Optional[str] = None
    importance: Optional[int] = Field(None, ge=1, le=10)


class SettingUsage(CamelModel):
    """A plot element the setting is linked to."""

    relevance: Optional[str] = None
    plot_element: ParentSummary


class WorldSettingResponse(CamelModel):
    """Response model for a world setting."""

    id: str
    project_id: str
    category: SettingCategory
    title: str
    content: str = ""
    importance: int = 5
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    plot_elements: list[SettingUsage] = []
