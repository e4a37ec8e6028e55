"""
Project Pydantic models.

Models for novel project CRUD operations. A project carries the two
display settings that decide how its outline is rendered.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from plotline.models.common import SQL_INT_MAX, CamelModel


class ProjectStatus(str, Enum):
    """Project status enumeration."""

    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class PlotViewMode(str, Enum):
    """How the outline tree is presented."""

    SIMPLIFIED = "simplified"
    COMPLETE = "complete"


DEFAULT_LEVEL_NAMES: dict[str, str] = {
    "book": "Book",
    "part": "Part",
    "chapter": "Chapter",
    "scene": "Scene",
    "beat": "Beat",
}


class ProjectCreate(CamelModel):
    """Request model for creating a project."""

    title: Optional[str] = Field(None, max_length=500, description="Project title")
    description: Optional[str] = Field(None, max_length=5000)
    genre: Optional[str] = Field(None, max_length=100)
    target_words: Optional[int] = Field(None, ge=0, le=SQL_INT_MAX)
    plot_view_mode: PlotViewMode = PlotViewMode.SIMPLIFIED
    level_names: Optional[dict[str, str]] = None
    create_default_structure: bool = Field(
        False, description="Scaffold a default book/part/chapter chain"
    )


class ProjectUpdate(CamelModel):
    """Request model for updating a project."""

    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    genre: Optional[str] = Field(None, max_length=100)
    status: Optional[ProjectStatus] = None
    word_count: Optional[int] = Field(None, ge=0, le=SQL_INT_MAX)
    target_words: Optional[int] = Field(None, ge=0, le=SQL_INT_MAX)
    plot_view_mode: Optional[PlotViewMode] = None
    level_names: Optional[dict[str, str]] = None


class ProjectCounts(CamelModel):
    """Number of records owned by a project."""

    characters: int = 0
    world_settings: int = 0
    plot_elements: int = 0
    timelines: int = 0


class ProjectResponse(CamelModel):
    """Response model for a single project."""

    id: str
    title: str
    description: Optional[str] = None
    genre: Optional[str] = None
    status: ProjectStatus
    word_count: int = 0
    target_words: Optional[int] = None
    plot_view_mode: PlotViewMode = PlotViewMode.SIMPLIFIED
    level_names: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_LEVEL_NAMES))
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    counts: Optional[ProjectCounts] = None


class PlotElementStats(CamelModel):
    """Aggregate figures over a project's outline."""

    total: int = 0
    total_words: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)


class ProgressStats(CamelModel):
    word_count: int = 0
    target_words: Optional[int] = None
    progress: int = 0


class ProjectStats(CamelModel):
    """Response model for project statistics."""

    characters: int = 0
    world_settings: int = 0
    plot_elements: PlotElementStats
    timelines: int = 0
    project: ProgressStats
