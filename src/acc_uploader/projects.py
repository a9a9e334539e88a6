"""Hub and project lookups."""

from __future__ import annotations

from acc_uploader._internal.gateway import ApiGateway
from acc_uploader.models import Resource


class ProjectBrowser:
    """Read-only access to the hubs and projects visible to the application."""

    def __init__(self, gateway: ApiGateway) -> None:
        self._gateway = gateway

    async def list_hubs(self) -> list[Resource]:
        document = await self._gateway.get("/project/v1/hubs")
        return [Resource.from_api(data) for data in document.get("data") or []]

    async def get_hub(self, hub_id: str) -> Resource:
        document = await self._gateway.get(f"/project/v1/hubs/{hub_id}", resource_id=hub_id)
        return Resource.from_api(document["data"])

    async def list_projects(self, hub_id: str) -> list[Resource]:
        document = await self._gateway.get(
            f"/project/v1/hubs/{hub_id}/projects", resource_id=hub_id
        )
        return [Resource.from_api(data) for data in document.get("data") or []]

    async def get_project(self, hub_id: str, project_id: str) -> Resource:
        document = await self._gateway.get(
            f"/project/v1/hubs/{hub_id}/projects/{project_id}", resource_id=project_id
        )
        return Resource.from_api(document["data"])
