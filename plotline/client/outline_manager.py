"""
Outline manager.

Ties the API client, the local tree state, the mutation dispatcher and
the drag controller together for one project. This is the surface a UI
layer or a script drives.
"""

import logging
from typing import Optional

from plotline.client import mutations
from plotline.client.api_client import PlotlineClient
from plotline.client.drag import DragController
from plotline.client.mutations import MutationDispatcher, MutationResult
from plotline.client.tree_state import OutlineTreeState
from plotline.models.plot_element import PlotElementCreate, PlotElementUpdate, PlotTreeNode
from plotline.models.project import PlotViewMode
from plotline.services.errors import require_fields

logger = logging.getLogger(__name__)


class OutlineManager:
    """
    Optimistic editor for one project's outline.

    Usage:
        async with PlotlineClient(url) as client:
            manager = OutlineManager(client, project_id)
            await manager.load()
            await manager.create(PlotElementCreate(project_id=project_id, title="Ch", type="chapter"))
    """

    def __init__(self, client: PlotlineClient, project_id: str):
        self.client = client
        self.project_id = project_id
        self.state = OutlineTreeState(project_id)
        self.dispatcher = MutationDispatcher(self.state, self.reload)
        self.drag = DragController(self.state)
        self.view_mode = PlotViewMode.SIMPLIFIED
        self.level_names: Optional[dict[str, str]] = None

    @property
    def errors(self) -> list[str]:
        return self.dispatcher.errors

    async def load(self) -> None:
        """Fetch project display settings and the outline."""
        project = await self.client.get_project(self.project_id)
        self.view_mode = project.plot_view_mode
        self.level_names = project.level_names
        await self.reload()

    async def reload(self) -> None:
        elements = await self.client.list_plot_elements(self.project_id)
        self.state.load(elements)
        logger.info(f"Reloaded {len(elements)} plot elements for project {self.project_id}")

    def hierarchy(self, mode: Optional[PlotViewMode] = None) -> list[PlotTreeNode]:
        return self.state.hierarchy(mode or self.view_mode, self.level_names)

    async def create(self, payload: PlotElementCreate) -> MutationResult:
        """
        Create an element optimistically.

        Raises:
            ValidationError: projectId, title or type missing; nothing is
                sent or changed.
        """
        if payload.project_id is None:
            payload = payload.model_copy(update={"project_id": self.project_id})
        require_fields(
            {"projectId": payload.project_id, "title": (payload.title or "").strip(), "type": payload.type},
            "projectId", "title", "type",
        )

        result = await self.dispatcher.dispatch(mutations.create_element(self.client, payload))
        if result.ok and payload.auto_create_children:
            # The auto-created child only exists on the server
            await self.reload()
        return result

    async def update(self, element_id: str, payload: PlotElementUpdate) -> MutationResult:
        return await self.dispatcher.dispatch(mutations.update_element(self.client, element_id, payload))

    async def delete(self, element_id: str) -> MutationResult:
        return await self.dispatcher.dispatch(mutations.delete_element(self.client, element_id))

    def toggle_drag_mode(self) -> bool:
        return self.drag.toggle()

    async def drop(self, active_id: str, over_id: Optional[str]) -> Optional[MutationResult]:
        """
        Handle the end of a drag gesture.

        Returns None when drag mode is off or the gesture is not a valid
        sibling move.
        """
        plan = self.drag.drop(active_id, over_id)
        if plan is None or plan.old_index == plan.new_index:
            return None
        return await self.dispatcher.dispatch(mutations.reorder_siblings(self.client, plan))
