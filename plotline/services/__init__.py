"""
Service layer for Plotline.

Contains storage, hierarchy and word count logic shared by the API.
"""

from plotline.services.database import create_db_engine, get_db, get_engine, init_db
from plotline.services.errors import (
    ConflictError,
    NotFoundError,
    OutlineError,
    StructuralError,
    ValidationError,
)
from plotline.services.hierarchy import (
    build_complete_hierarchy,
    build_hierarchy,
    build_simplified_hierarchy,
    flatten_hierarchy,
    level_label,
)
from plotline.services.plot_store import PlotStore
from plotline.services.word_count import count_words, live_word_count

__all__ = [
    # Database
    "create_db_engine",
    "get_db",
    "get_engine",
    "init_db",
    # Errors
    "ConflictError",
    "NotFoundError",
    "OutlineError",
    "StructuralError",
    "ValidationError",
    # Hierarchy
    "build_complete_hierarchy",
    "build_hierarchy",
    "build_simplified_hierarchy",
    "flatten_hierarchy",
    "level_label",
    # Storage
    "PlotStore",
    # Word count
    "count_words",
    "live_word_count",
]
