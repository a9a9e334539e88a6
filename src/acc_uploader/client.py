"""Main AccClient class for interacting with Autodesk Construction Cloud."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import httpx

from acc_uploader._internal.gateway import ApiGateway, BearerAuth
from acc_uploader.auth import TokenIssuer, utcnow
from acc_uploader.config import AccConfig, load_config
from acc_uploader.credentials import CredentialStore
from acc_uploader.folders import FolderNavigator
from acc_uploader.models import Item
from acc_uploader.projects import ProjectBrowser
from acc_uploader.upload import OrphanPolicy, UploadOrchestrator

logger = logging.getLogger(__name__)


class AccClient:
    """Client for Autodesk Construction Cloud document management.

    Example:
        async with AccClient.from_env() as client:
            folder = await client.folders.get_or_create(project_id, root_id, "Reports")
            item = await client.upload(project_id, folder.id, "report.pdf", data)

    The client owns two HTTP connection pools: one that carries the
    application's bearer token for the metadata and storage APIs, and one
    without any credentials, used for grant requests and signed-URL uploads.
    """

    def __init__(
        self,
        config: AccConfig,
        *,
        store: CredentialStore | None = None,
        orphan_policy: OrphanPolicy = OrphanPolicy.KEEP,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client settings
            store: Token cache; pass one to share the 2-legged token between clients
            orphan_policy: What to do with storage objects of aborted uploads
            transport: Optional httpx transport, mainly for tests
            clock: Returns the current time; injectable for tests
        """
        self._config = config
        self._plain_http = httpx.AsyncClient(transport=transport, timeout=config.http_timeout)
        self.auth = TokenIssuer(config, self._plain_http, store, clock=clock)
        self._api_http = httpx.AsyncClient(
            base_url=config.base_url,
            auth=BearerAuth(self.auth),
            transport=transport,
            timeout=config.http_timeout,
        )
        self._gateway = ApiGateway(self._api_http, self._plain_http)
        self.projects = ProjectBrowser(self._gateway)
        self.folders = FolderNavigator(
            self._gateway, hub_id=config.hub_id, default_kind=config.default_kind
        )
        self.uploads = UploadOrchestrator(
            self._gateway, self.folders, orphan_policy=orphan_policy, clock=clock
        )

    @classmethod
    def from_env(cls, dotenv_path: str | None = None, **kwargs: Any) -> AccClient:
        """Create a client from ACC_* environment variables."""
        return cls(load_config(dotenv_path), **kwargs)

    @property
    def config(self) -> AccConfig:
        return self._config

    async def __aenter__(self) -> AccClient:
        """Enter context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit context manager."""
        await self.close()

    async def upload(
        self,
        project_id: str,
        folder_id: str,
        file_name: str,
        content: bytes,
        content_type: str | None = None,
    ) -> Item:
        """Upload bytes as a new document; see UploadOrchestrator.upload."""
        return await self.uploads.upload(project_id, folder_id, file_name, content, content_type)

    async def get_item(self, project_id: str, item_id: str) -> Item:
        """Fetch one item.

        Raises:
            NotFoundError: If the item does not exist
        """
        document = await self._gateway.get(
            f"/data/v1/projects/{project_id}/items/{item_id}", resource_id=item_id
        )
        return Item.from_document(document)

    async def delete_item(self, project_id: str, item_id: str) -> None:
        """Delete an item."""
        await self._gateway.delete(
            f"/data/v1/projects/{project_id}/items/{item_id}", resource_id=item_id
        )
        logger.info(f"Deleted item: {item_id}")

    async def search_items(self, project_id: str, filter: str) -> list[Item]:
        """Search items in a project with a raw filter expression."""
        document = await self._gateway.get(
            f"/data/v1/projects/{project_id}/items", params={"filter": filter}
        )
        return [Item.from_api(data) for data in document.get("data") or []]

    async def close(self) -> None:
        """Close the client and clean up resources."""
        await self._api_http.aclose()
        await self._plain_http.aclose()
