"""
API package for Plotline.

This package contains all API routes and dependencies.
"""

from fastapi import APIRouter

from plotline.api.routes import characters, health, plot_elements, projects, timelines, world_settings

# Create main API router
api_router = APIRouter()

# Include sub-routers
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

api_router.include_router(
    projects.router,
    prefix="/projects",
    tags=["projects"],
)

api_router.include_router(
    plot_elements.router,
    prefix="/plot-elements",
    tags=["plot-elements"],
)

api_router.include_router(
    characters.router,
    prefix="/characters",
    tags=["characters"],
)

api_router.include_router(
    world_settings.router,
    prefix="/world-settings",
    tags=["world-settings"],
)

# Timeline routes also carry the timeline ↔ plot element links
api_router.include_router(
    timelines.router,
    prefix="/timelines",
    tags=["timelines"],
)

__all__ = ["api_router"]
