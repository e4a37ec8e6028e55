"""
Timeline Pydantic models.

Timelines own the plot element links that place outline nodes in story
chronology.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from plotline.models.common import SQL_INT_MAX, SQL_INT_MIN, CamelModel
from plotline.models.plot_element import ParentSummary, PlotStatus, TimelineRelationship


class TimeType(str, Enum):
    ABSOLUTE = "absolute"
    RELATIVE = "relative"
    SYMBOLIC = "symbolic"


class TimelineCreate(CamelModel):
    """Request model for creating a timeline."""

    project_id: Optional[str] = None
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    story_date: Optional[str] = Field(None, max_length=100)
    time_type: Optional[TimeType] = None
    chron_order: Optional[int] = Field(None, ge=SQL_INT_MIN, le=SQL_INT_MAX)
    importance: int = Field(5, ge=1, le=10)
    duration: Optional[str] = Field(None, max_length=100)


class TimelineUpdate(CamelModel):
    """Request model for updating a timeline."""

    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    story_date: Optional[str] = Field(None, max_length=100)
    time_type: Optional[TimeType] = None
    chron_order: Optional[int] = Field(None, ge=SQL_INT_MIN, le=SQL_INT_MAX)
    importance: Optional[int] = Field(None, ge=1, le=10)
    duration: Optional[str] = Field(None, max_length=100)


class TimelineLinkCreate(CamelModel):
    """Request body for placing a plot element on a timeline."""

    plot_element_id: Optional[str] = None
    relationship: Optional[TimelineRelationship] = None
    description: Optional[str] = None


class TimelineLinkUpdate(CamelModel):
    relationship: Optional[TimelineRelationship] = None
    description: Optional[str] = None


class TimelinePlotElement(ParentSummary):
    status: PlotStatus
    summary: Optional[str] = None
    word_count: int = 0


class TimelinePlotElementLink(CamelModel):
    """A timeline ↔ plot element relation row, seen from the timeline."""

    id: str
    plot_element_id: str
    timeline_id: str
    relationship: TimelineRelationship
    description: Optional[str] = None
    plot_element: TimelinePlotElement


class TimelineResponse(CamelModel):
    """Response model for a timeline."""

    id: str
    project_id: str
    name: str
    description: Optional[str] = None
    story_date: Optional[str] = None
    time_type: TimeType
    chron_order: int
    importance: int = 5
    duration: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    plot_elements: list[TimelinePlotElementLink] = []
