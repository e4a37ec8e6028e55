"""
Client tier for Plotline.

An async API client plus the optimistic outline editor built on it.
"""

from plotline.client.api_client import PlotlineClient, PlotlineClientError
from plotline.client.drag import DragController, ReorderPlan, array_move, resolve_drag
from plotline.client.mutations import (
    FailurePolicy,
    Mutation,
    MutationDispatcher,
    MutationResult,
)
from plotline.client.outline_manager import OutlineManager
from plotline.client.tree_state import OutlineTreeState, TreeSnapshot

__all__ = [
    "DragController",
    "FailurePolicy",
    "Mutation",
    "MutationDispatcher",
    "MutationResult",
    "OutlineManager",
    "OutlineTreeState",
    "PlotlineClient",
    "PlotlineClientError",
    "ReorderPlan",
    "TreeSnapshot",
    "array_move",
    "resolve_drag",
]
