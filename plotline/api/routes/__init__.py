"""
API routes package.

All route modules are imported here for easy access.
"""

from plotline.api.routes import characters, health, plot_elements, projects, timelines, world_settings

__all__ = ["characters", "health", "plot_elements", "projects", "timelines", "world_settings"]
