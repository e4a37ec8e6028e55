"""
Pydantic models for Plotline.

This package contains all request/response models and the ORM tables.
"""

from plotline.models.common import (
    CamelModel,
    ErrorResponse,
    HealthResponse,
)
from plotline.models.project import (
    DEFAULT_LEVEL_NAMES,
    PlotViewMode,
    ProjectCreate,
    ProjectResponse,
    ProjectStats,
    ProjectStatus,
    ProjectUpdate,
)
from plotline.models.plot_element import (
    CHILD_TYPE,
    LEAF_TYPES,
    CharacterLink,
    CharacterLinkCreate,
    PlotElementCreate,
    PlotElementDetail,
    PlotElementResponse,
    PlotElementType,
    PlotElementUpdate,
    PlotStatus,
    PlotTree,
    PlotTreeNode,
    SettingLink,
    SettingLinkCreate,
    TimelineRelationship,
)
from plotline.models.character import (
    CharacterCreate,
    CharacterResponse,
    CharacterRole,
    CharacterUpdate,
)
from plotline.models.world_setting import (
    SettingCategory,
    WorldSettingCreate,
    WorldSettingResponse,
    WorldSettingUpdate,
)
from plotline.models.timeline import (
    TimeType,
    TimelineCreate,
    TimelineLinkCreate,
    TimelineLinkUpdate,
    TimelinePlotElementLink,
    TimelineResponse,
    TimelineUpdate,
)

__all__ = [
    # Common
    "CamelModel",
    "ErrorResponse",
    "HealthResponse",
    # Project
    "DEFAULT_LEVEL_NAMES",
    "PlotViewMode",
    "ProjectCreate",
    "ProjectResponse",
    "ProjectStats",
    "ProjectStatus",
    "ProjectUpdate",
    # Plot elements
    "CHILD_TYPE",
    "LEAF_TYPES",
    "CharacterLink",
    "CharacterLinkCreate",
    "PlotElementCreate",
    "PlotElementDetail",
    "PlotElementResponse",
    "PlotElementType",
    "PlotElementUpdate",
    "PlotStatus",
    "PlotTree",
    "PlotTreeNode",
    "SettingLink",
    "SettingLinkCreate",
    "TimelineRelationship",
    # Characters
    "CharacterCreate",
    "CharacterResponse",
    "CharacterRole",
    "CharacterUpdate",
    # World settings
    "SettingCategory",
    "WorldSettingCreate",
    "WorldSettingResponse",
    "WorldSettingUpdate",
    # Timelines
    "TimeType",
    "TimelineCreate",
    "TimelineLinkCreate",
    "TimelineLinkUpdate",
    "TimelinePlotElementLink",
    "TimelineResponse",
    "TimelineUpdate",
]
