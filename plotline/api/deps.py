"""
FastAPI dependencies.

Common dependencies used across API routes.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from plotline.config import Settings, get_settings
from plotline.services.database import get_db
from plotline.services.plot_store import PlotStore

# Type aliases for cleaner dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]
DatabaseDep = Annotated[Session, Depends(get_db)]


def get_plot_store(db: DatabaseDep, settings: SettingsDep) -> PlotStore:
    """Get an outline store bound to the request session."""
    return PlotStore(db, settings)


PlotStoreDep = Annotated[PlotStore, Depends(get_plot_store)]
