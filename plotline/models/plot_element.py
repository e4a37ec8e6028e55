"""
Plot element Pydantic models.

Models for the hierarchical plot outline: request bodies, list/detail
responses with their relation projections, and the nested tree views.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from plotline.models.common import SQL_INT_MAX, CamelModel
from plotline.models.project import PlotViewMode


class PlotElementType(str, Enum):
    """Outline levels, outermost first."""

    BOOK = "book"
    PART = "part"
    CHAPTER = "chapter"
    SCENE = "scene"
    BEAT = "beat"


class PlotStatus(str, Enum):
    """Writing workflow status, independent of tree position."""

    PLANNED = "planned"
    OUTLINED = "outlined"
    DRAFTED = "drafted"
    COMPLETED = "completed"


class TimelineRelationship(str, Enum):
    """How a plot element sits on a timeline."""

    MAIN = "main"
    FLASHBACK = "flashback"
    FORESHADOWING = "foreshadowing"
    PARALLEL = "parallel"


# Default child created by autoCreateChildren
CHILD_TYPE: dict[PlotElementType, PlotElementType] = {
    PlotElementType.BOOK: PlotElementType.PART,
    PlotElementType.PART: PlotElementType.CHAPTER,
    PlotElementType.CHAPTER: PlotElementType.SCENE,
}

# Types that never get an auto-created child
LEAF_TYPES = frozenset({PlotElementType.CHAPTER, PlotElementType.SCENE, PlotElementType.BEAT})


# =============================================================================
# Requests
# =============================================================================

class PlotElementCreate(CamelModel):
    """
    Request model for creating a plot element.

    projectId, title and type are checked by the store so that a missing
    value yields a message naming the field.
    """

    project_id: Optional[str] = None
    title: Optional[str] = Field(None, max_length=500)
    type: Optional[PlotElementType] = None
    parent_id: Optional[str] = Field(None, description="Parent element ID for nesting")
    summary: Optional[str] = None
    content: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[PlotStatus] = None
    target_words: Optional[int] = Field(None, ge=0, le=SQL_INT_MAX)
    mood: Optional[str] = Field(None, max_length=100)
    pov: Optional[str] = Field(None, max_length=100)
    order: Optional[int] = Field(None, ge=0, le=SQL_INT_MAX, description="Position within parent")
    auto_create_children: bool = False


class PlotElementUpdate(CamelModel):
    """Request model for updating a plot element. Only sent fields change."""

    title: Optional[str] = Field(None, max_length=500)
    type: Optional[PlotElementType] = None
    order: Optional[int] = Field(None, ge=0, le=SQL_INT_MAX)
    parent_id: Optional[str] = None
    summary: Optional[str] = None
    content: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[PlotStatus] = None
    target_words: Optional[int] = Field(None, ge=0, le=SQL_INT_MAX)
    mood: Optional[str] = Field(None, max_length=100)
    pov: Optional[str] = Field(None, max_length=100)


class CharacterLinkCreate(CamelModel):
    character_id: Optional[str] = None
    role: Optional[str] = None
    importance: Optional[int] = Field(None, ge=1, le=10)


class SettingLinkCreate(CamelModel):
    setting_id: Optional[str] = None
    relevance: Optional[str] = None


# =============================================================================
# Projections of related records
# =============================================================================

class ParentSummary(CamelModel):
    id: str
    title: str
    type: PlotElementType


class ChildSummary(CamelModel):
    id: str
    title: str
    type: PlotElementType
    order: int
    status: PlotStatus


class ChildDetail(ChildSummary):
    word_count: int = 0


class CharacterRef(CamelModel):
    id: str
    name: str
    role: str


class CharacterDetailRef(CharacterRef):
    description: str = ""


class SettingRef(CamelModel):
    id: str
    title: str
    category: str


class SettingDetailRef(SettingRef):
    content: str = ""


class TimelineRef(CamelModel):
    id: str
    name: str
    chron_order: int


class TimelineDetailRef(TimelineRef):
    description: Optional[str] = None
    story_date: Optional[str] = None


class CharacterLink(CamelModel):
    """A plot element ↔ character relation row."""

    id: str
    plot_element_id: str
    character_id: str
    role: Optional[str] = None
    importance: int = 5
    character: CharacterRef


class CharacterLinkDetail(CharacterLink):
    character: CharacterDetailRef


class SettingLink(CamelModel):
    """A plot element ↔ world setting relation row."""

    id: str
    plot_element_id: str
    setting_id: str
    relevance: Optional[str] = None
    setting: SettingRef


class SettingLinkDetail(SettingLink):
    setting: SettingDetailRef


class TimelineLink(CamelModel):
    """A plot element ↔ timeline relation row."""

    id: str
    plot_element_id: str
    timeline_id: str
    relationship: TimelineRelationship
    description: Optional[str] = None
    timeline: TimelineRef


class TimelineLinkDetail(TimelineLink):
    timeline: TimelineDetailRef


# =============================================================================
# Plot elements
# =============================================================================

class PlotElementResponse(CamelModel):
    """A plot element as returned by the list endpoint."""

    id: str
    project_id: str
    parent_id: Optional[str] = None
    title: str
    type: PlotElementType
    order: int
    status: PlotStatus = PlotStatus.PLANNED
    summary: Optional[str] = None
    content: str = ""
    notes: Optional[str] = None
    word_count: int = 0
    target_words: Optional[int] = None
    mood: Optional[str] = None
    pov: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    parent: Optional[ParentSummary] = None
    children: list[ChildSummary] = []
    characters: list[CharacterLink] = []
    settings: list[SettingLink] = []
    timelines: list[TimelineLink] = []


class PlotElementDetail(PlotElementResponse):
    """A plot element with richer child and relation projections."""

    children: list[ChildDetail] = []
    characters: list[CharacterLinkDetail] = []
    settings: list[SettingLinkDetail] = []
    timelines: list[TimelineLinkDetail] = []


class PlotTreeNode(CamelModel):
    """Plot element with nested children."""

    id: str
    project_id: str
    parent_id: Optional[str] = None
    title: str
    type: PlotElementType
    order: int
    status: PlotStatus = PlotStatus.PLANNED
    summary: Optional[str] = None
    word_count: int = 0
    target_words: Optional[int] = None
    label: Optional[str] = Field(None, description="User-facing name of this level")

    children: list["PlotTreeNode"] = []


# Rebuild for self-reference
PlotTreeNode.model_rebuild()


class PlotTree(CamelModel):
    """Outline tree for a project, in one presentation mode."""

    project_id: str
    mode: PlotViewMode
    nodes: list[PlotTreeNode] = []
    total_count: int = 0
