"""
Plotline API client.

Async client for the outline endpoints, used by the outline manager and
by scripts. Responses are parsed into the same pydantic models the
server returns.
"""

import logging
from typing import Any, Optional

import httpx

from plotline.models.plot_element import (
    CharacterLink,
    CharacterLinkCreate,
    PlotElementCreate,
    PlotElementDetail,
    PlotElementResponse,
    PlotElementUpdate,
    PlotTree,
    SettingLink,
    SettingLinkCreate,
)
from plotline.models.project import PlotViewMode, ProjectCreate, ProjectResponse
from plotline.models.timeline import TimelineLinkCreate, TimelineLinkUpdate, TimelinePlotElementLink

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"


class PlotlineClientError(Exception):
    """Plotline API error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


def _body(payload) -> dict:
    return payload.model_dump(by_alias=True, exclude_unset=True, mode="json")


class PlotlineClient:
    """
    Client for the Plotline API.

    Usage:
        async with PlotlineClient("http://localhost:8000") as client:
            elements = await client.list_plot_elements(project_id)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Server root; the ``/api`` prefix is added per request.
            timeout: Request timeout in seconds.
            transport: Custom httpx transport, e.g. an ASGI transport for
                in-process use.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "PlotlineClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/api",
            headers={"Accept": "application/json"},
            timeout=self.timeout,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request and raise on any non-2xx status.

        Raises:
            PlotlineClientError: Transport failure or error response.
        """
        if not self._client:
            raise PlotlineClientError("Client not initialized. Use async context manager.")

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error on {method} {path}: {e}")
            raise PlotlineClientError(f"HTTP error: {e}")

        if response.status_code >= 400:
            try:
                message = response.json().get("error") or response.text
            except ValueError:
                message = response.text
            logger.warning(f"{method} {path} failed with {response.status_code}: {message}")
            raise PlotlineClientError(message, response.status_code)

        return response

    # =========================================================================
    # Projects
    # =========================================================================

    async def create_project(self, payload: ProjectCreate) -> ProjectResponse:
        response = await self._request("POST", "/projects", json=_body(payload))
        return ProjectResponse.model_validate(response.json())

    async def get_project(self, project_id: str) -> ProjectResponse:
        response = await self._request("GET", f"/projects/{project_id}")
        return ProjectResponse.model_validate(response.json())

    # =========================================================================
    # Plot elements
    # =========================================================================

    async def list_plot_elements(
        self,
        project_id: str,
        element_type: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> list[PlotElementResponse]:
        """
        List a project's plot elements.

        Args:
            project_id: Owning project.
            element_type: Only elements of this type.
            parent_id: Only children of this element; "null" selects roots.
        """
        params = {}
        if element_type:
            params["type"] = element_type
        if parent_id:
            params["parentId"] = parent_id

        response = await self._request("GET", f"/plot-elements/{project_id}", params=params)
        return [PlotElementResponse.model_validate(item) for item in response.json()]

    async def get_plot_element(self, element_id: str) -> PlotElementDetail:
        response = await self._request("GET", f"/plot-elements/detail/{element_id}")
        return PlotElementDetail.model_validate(response.json())

    async def get_plot_tree(self, project_id: str, mode: Optional[PlotViewMode] = None) -> PlotTree:
        params = {"mode": PlotViewMode(mode).value} if mode else {}
        response = await self._request("GET", f"/plot-elements/{project_id}/tree", params=params)
        return PlotTree.model_validate(response.json())

    async def create_plot_element(self, payload: PlotElementCreate) -> PlotElementResponse:
        response = await self._request("POST", "/plot-elements", json=_body(payload))
        return PlotElementResponse.model_validate(response.json())

    async def update_plot_element(self, element_id: str, payload: PlotElementUpdate) -> PlotElementResponse:
        response = await self._request("PUT", f"/plot-elements/{element_id}", json=_body(payload))
        return PlotElementResponse.model_validate(response.json())

    async def delete_plot_element(self, element_id: str, cascade: bool = False) -> None:
        """Delete an element; ``cascade`` also removes its whole subtree."""
        params = {"cascade": "true"} if cascade else {}
        await self._request("DELETE", f"/plot-elements/{element_id}", params=params)

    # =========================================================================
    # Relations
    # =========================================================================

    async def link_character(self, element_id: str, payload: CharacterLinkCreate) -> CharacterLink:
        response = await self._request(
            "POST", f"/plot-elements/{element_id}/characters", json=_body(payload)
        )
        return CharacterLink.model_validate(response.json())

    async def unlink_character(self, element_id: str, character_id: str) -> None:
        await self._request("DELETE", f"/plot-elements/{element_id}/characters/{character_id}")

    async def link_setting(self, element_id: str, payload: SettingLinkCreate) -> SettingLink:
        response = await self._request(
            "POST", f"/plot-elements/{element_id}/settings", json=_body(payload)
        )
        return SettingLink.model_validate(response.json())

    async def unlink_setting(self, element_id: str, setting_id: str) -> None:
        await self._request("DELETE", f"/plot-elements/{element_id}/settings/{setting_id}")

    async def link_timeline(self, timeline_id: str, payload: TimelineLinkCreate) -> TimelinePlotElementLink:
        response = await self._request(
            "POST", f"/timelines/{timeline_id}/plot-elements", json=_body(payload)
        )
        return TimelinePlotElementLink.model_validate(response.json())

    async def unlink_timeline(self, timeline_id: str, element_id: str) -> None:
        await self._request("DELETE", f"/timelines/{timeline_id}/plot-elements/{element_id}")

    async def update_timeline_relation(
        self,
        timeline_id: str,
        element_id: str,
        payload: TimelineLinkUpdate,
    ) -> TimelinePlotElementLink:
        response = await self._request(
            "PUT", f"/timelines/{timeline_id}/plot-elements/{element_id}", json=_body(payload)
        )
        return TimelinePlotElementLink.model_validate(response.json())
