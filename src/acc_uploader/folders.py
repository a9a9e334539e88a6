"""Folder tree navigation: listing, lookup and find-or-create."""

from __future__ import annotations

import logging
from typing import Any

from acc_uploader._internal.gateway import ApiGateway, json_api_document, relationship
from acc_uploader.exceptions import AccError, AuthenticationError, ConfigError
from acc_uploader.kinds import DEFAULT_KIND, ExtensionKind, resolve_child_types
from acc_uploader.models import Folder, FolderContents, Item, TraversalWarning

logger = logging.getLogger(__name__)


class FolderNavigator:
    """Reads and extends a project's folder tree.

    The remote service owns the tree; nothing here is cached. Lookups by name
    and get_or_create are not transactional, so two concurrent callers may
    both create a folder with the same name.
    """

    def __init__(
        self,
        gateway: ApiGateway,
        *,
        hub_id: str | None = None,
        default_kind: ExtensionKind = DEFAULT_KIND,
    ) -> None:
        self._gateway = gateway
        self._hub_id = hub_id
        self._default_kind = default_kind

    @property
    def default_kind(self) -> ExtensionKind:
        """Kind used for children of folders with no recognizable extension type."""
        return self._default_kind

    async def list_top_folders(self, project_id: str, hub_id: str | None = None) -> list[Folder]:
        """List the entry points of a project's folder tree.

        Raises:
            ConfigError: If no hub id is given or configured
            NotFoundError: If the hub or project does not exist
        """
        hub_id = hub_id or self._hub_id
        if not hub_id:
            raise ConfigError("A hub id is required to list top folders (set ACC_HUB_ID)")
        document = await self._gateway.get(
            f"/project/v1/hubs/{hub_id}/projects/{project_id}/topFolders",
            resource_id=project_id,
        )
        return [Folder.from_api(data) for data in document.get("data") or []]

    async def get_folder(self, project_id: str, folder_id: str) -> Folder:
        """Fetch one folder.

        Raises:
            NotFoundError: If the folder does not exist
        """
        document = await self._gateway.get(
            f"/data/v1/projects/{project_id}/folders/{folder_id}",
            resource_id=folder_id,
        )
        return Folder.from_api(document["data"])

    async def get_contents(self, project_id: str, folder_id: str) -> FolderContents:
        """List the immediate children of a folder."""
        document = await self._gateway.get(
            f"/data/v1/projects/{project_id}/folders/{folder_id}/contents",
            resource_id=folder_id,
        )
        folders: list[Folder] = []
        items: list[Item] = []
        for data in document.get("data") or []:
            if data.get("type") == "folders":
                folders.append(Folder.from_api(data))
            elif data.get("type") == "items":
                items.append(Item.from_api(data))
        return FolderContents(folders=folders, items=items)

    async def list_all_folders(
        self,
        project_id: str,
        root_id: str | None = None,
        *,
        warnings: list[TraversalWarning] | None = None,
    ) -> list[Folder]:
        """Recursively list folders, depth first.

        Without root_id the walk starts from the project's top folders, which
        are included in the result. With root_id only its descendants are
        returned.

        A folder whose contents cannot be listed is kept, its descendants are
        left out, and a TraversalWarning is appended to warnings when a list
        is passed. The walk carries on with the remaining folders.

        Raises:
            AuthenticationError: If a token cannot be obtained mid-walk
        """
        if warnings is None:
            warnings = []
        result: list[Folder] = []
        if root_id is None:
            for top_folder in await self.list_top_folders(project_id):
                result.append(top_folder)
                await self._walk(project_id, top_folder.id, result, warnings)
        else:
            await self._walk(project_id, root_id, result, warnings)
        return result

    async def _walk(
        self,
        project_id: str,
        folder_id: str,
        result: list[Folder],
        warnings: list[TraversalWarning],
    ) -> None:
        try:
            contents = await self.get_contents(project_id, folder_id)
        except AuthenticationError:
            raise
        except AccError as e:
            logger.warning(f"Skipping folder {folder_id}: failed to list contents: {e}")
            warnings.append(TraversalWarning(folder_id=folder_id, message=str(e)))
            return
        for folder in contents.folders:
            result.append(folder)
            await self._walk(project_id, folder.id, result, warnings)

    async def find_by_name(
        self,
        project_id: str,
        name: str,
        root_id: str | None = None,
        *,
        warnings: list[TraversalWarning] | None = None,
    ) -> Folder | None:
        """Find the first folder named name, in traversal order.

        Both the name and displayName attributes are compared. Folders under
        subtrees that failed to list are not searched; those subtrees are
        reported through warnings as in list_all_folders.
        """
        for folder in await self.list_all_folders(project_id, root_id, warnings=warnings):
            if folder.matches_name(name):
                return folder
        return None

    async def create_folder(self, project_id: str, parent_id: str, name: str) -> Folder:
        """Create a folder whose kind matches its parent's.

        Raises:
            NotFoundError: If the parent folder does not exist
            ApiError: If the creation is rejected
        """
        parent = await self.get_folder(project_id, parent_id)
        child_types = resolve_child_types(parent.extension_type, self._default_kind)
        return await self.create_folder_with_type(
            project_id, parent_id, name, child_types.folder_type
        )

    async def create_folder_with_type(
        self,
        project_id: str,
        parent_id: str,
        name: str,
        extension_type: str,
    ) -> Folder:
        """Create a folder with an explicit extension type."""
        body = json_api_document(
            "folders",
            attributes={
                "name": name,
                "extension": {"type": extension_type, "version": "1.0"},
            },
            relationships={"parent": relationship("folders", parent_id)},
        )
        logger.info(f"Creating folder {name!r} under {parent_id} as {extension_type}")
        document: dict[str, Any] = await self._gateway.post(
            f"/data/v1/projects/{project_id}/folders", body, resource_id=parent_id
        )
        return Folder.from_api(document["data"])

    async def get_or_create(self, project_id: str, parent_id: str, name: str) -> Folder:
        """Return the child folder of parent_id named name, creating it if absent.

        Only the immediate children of parent_id are checked.
        """
        contents = await self.get_contents(project_id, parent_id)
        for folder in contents.folders:
            if folder.matches_name(name):
                return folder
        return await self.create_folder(project_id, parent_id, name)

    async def ensure_path(self, project_id: str, root_id: str, path: str) -> Folder:
        """Walk a slash-separated path below root_id, creating missing folders.

        Returns:
            The folder at the end of the path
        """
        segments = [segment for segment in path.split("/") if segment]
        if not segments:
            raise ValueError("path must name at least one folder")
        folder = await self.get_or_create(project_id, root_id, segments[0])
        for segment in segments[1:]:
            folder = await self.get_or_create(project_id, folder.id, segment)
        return folder
