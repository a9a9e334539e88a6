"""File upload pipeline.

Uploading a document takes five calls across two services:

1. reserve: create a storage object in the target folder (Data Management)
2. grant: request a signed S3 upload URL for that object (OSS)
3. transfer: PUT the bytes to the signed URL (no API token)
4. finalize: complete the signed upload with the grant's upload key (OSS)
5. publish: create the item and its first version pointing at the object

Each stage consumes the previous stage's output. The first failure aborts the
pipeline with an UploadFailedError; nothing is retried. A storage object
reserved by an aborted upload is left behind unless OrphanPolicy.DELETE is
selected.
"""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import partial
from pathlib import Path

from acc_uploader import urn
from acc_uploader._internal.gateway import ApiGateway, json_api_document, relationship
from acc_uploader.auth import utcnow
from acc_uploader.exceptions import AccError, GrantExpiredError, UploadFailedError
from acc_uploader.folders import FolderNavigator
from acc_uploader.kinds import resolve_child_types
from acc_uploader.models import (
    Item,
    SignedUploadGrant,
    StorageObject,
    UploadResult,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_GRANT_MINUTES = 30


class UploadStage(Enum):
    RESERVE = "reserve"
    GRANT = "grant"
    TRANSFER = "transfer"
    FINALIZE = "finalize"
    PUBLISH = "publish"


class UploadState(Enum):
    PENDING = "pending"
    RESERVED = "reserved"
    GRANTED = "granted"
    TRANSFERRED = "transferred"
    FINALIZED = "finalized"
    PUBLISHED = "published"
    FAILED = "failed"


# Each stage moves the session from one state to the next
_STAGE_TRANSITIONS: dict[UploadStage, tuple[UploadState, UploadState]] = {
    UploadStage.RESERVE: (UploadState.PENDING, UploadState.RESERVED),
    UploadStage.GRANT: (UploadState.RESERVED, UploadState.GRANTED),
    UploadStage.TRANSFER: (UploadState.GRANTED, UploadState.TRANSFERRED),
    UploadStage.FINALIZE: (UploadState.TRANSFERRED, UploadState.FINALIZED),
    UploadStage.PUBLISH: (UploadState.FINALIZED, UploadState.PUBLISHED),
}


class OrphanPolicy(Enum):
    """What to do with a storage object reserved by an aborted upload."""

    KEEP = "keep"
    DELETE = "delete"


@dataclass
class UploadSession:
    """Progress of one upload attempt.

    A failed session keeps whatever the completed stages produced, so the
    caller can see, for example, which storage object was left behind.
    """

    project_id: str
    folder_id: str
    file_name: str
    state: UploadState = UploadState.PENDING
    storage: StorageObject | None = None
    grant: SignedUploadGrant | None = None
    item: Item | None = None
    failed_stage: UploadStage | None = None
    error: str | None = None
    orphan_deleted: bool = False

    def begin(self, stage: UploadStage) -> None:
        expected, _ = _STAGE_TRANSITIONS[stage]
        if self.state is not expected:
            raise RuntimeError(
                f"Cannot run {stage.value} stage from state {self.state.value}"
            )

    def complete(self, stage: UploadStage) -> None:
        _, self.state = _STAGE_TRANSITIONS[stage]

    def fail(self, stage: UploadStage, error: BaseException) -> None:
        self.state = UploadState.FAILED
        self.failed_stage = stage
        self.error = str(error)

    def require_storage(self) -> StorageObject:
        if self.storage is None:
            raise RuntimeError(f"No storage object reserved for {self.file_name}")
        return self.storage

    def require_grant(self) -> SignedUploadGrant:
        if self.grant is None:
            raise RuntimeError(f"No signed upload grant issued for {self.file_name}")
        return self.grant

    def require_item(self) -> Item:
        if self.item is None:
            raise RuntimeError(f"No item published for {self.file_name}")
        return self.item

    @property
    def is_orphaned(self) -> bool:
        """True if a reserved storage object was never published."""
        return (
            self.state is UploadState.FAILED
            and self.storage is not None
            and not self.orphan_deleted
        )


class UploadOrchestrator:
    """Runs the five-stage upload pipeline."""

    def __init__(
        self,
        gateway: ApiGateway,
        folders: FolderNavigator,
        *,
        orphan_policy: OrphanPolicy = OrphanPolicy.KEEP,
        grant_minutes: int = DEFAULT_GRANT_MINUTES,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            gateway: API gateway used for every call
            folders: Navigator used to read the target folder's kind
            orphan_policy: Whether to delete the storage object of an aborted upload
            grant_minutes: Requested validity of the signed upload URL
            clock: Returns the current time; injectable for tests
        """
        self._gateway = gateway
        self._folders = folders
        self._orphan_policy = orphan_policy
        self._grant_minutes = grant_minutes
        self._clock = clock

    async def upload(
        self,
        project_id: str,
        folder_id: str,
        file_name: str,
        content: bytes,
        content_type: str | None = None,
    ) -> Item:
        """Upload bytes as a new document in a folder.

        Args:
            project_id: Project containing the folder
            folder_id: Target folder id
            file_name: Name of the new document
            content: File contents
            content_type: MIME type sent with the bytes (default application/octet-stream)

        Returns:
            The created Item, with its first version

        Raises:
            UploadFailedError: If any stage fails; stage tells which one
        """
        session = UploadSession(project_id=project_id, folder_id=folder_id, file_name=file_name)
        content_type = content_type or DEFAULT_CONTENT_TYPE

        await self._run(session, UploadStage.RESERVE, partial(self._reserve, session))
        await self._run(session, UploadStage.GRANT, partial(self._request_grant, session))
        await self._run(
            session,
            UploadStage.TRANSFER,
            partial(self._transfer, session, content, content_type),
        )
        await self._run(session, UploadStage.FINALIZE, partial(self._finalize, session))
        await self._run(session, UploadStage.PUBLISH, partial(self._publish, session))

        logger.info(f"Successfully uploaded {file_name} to folder {folder_id}")
        return session.require_item()

    async def _run(
        self,
        session: UploadSession,
        stage: UploadStage,
        step: Callable[[], Awaitable[None]],
    ) -> None:
        """Run one stage, recording the transition or the failure."""
        session.begin(stage)
        try:
            await step()
        except Exception as e:
            await self._abort(session, stage, e)
        session.complete(stage)
        logger.info(f"{session.file_name}: {stage.value} stage completed")

    async def _abort(self, session: UploadSession, stage: UploadStage, error: Exception) -> None:
        session.fail(stage, error)
        logger.error(f"Upload of {session.file_name} failed at {stage.value} stage: {error}")
        if session.storage is not None:
            await self._handle_orphan(session)
        raise UploadFailedError(stage, error, session) from error

    async def _handle_orphan(self, session: UploadSession) -> None:
        storage = session.require_storage()
        if self._orphan_policy is OrphanPolicy.KEEP:
            logger.warning(f"Storage object {storage.id} left orphaned by aborted upload")
            return
        try:
            await self._gateway.delete(
                urn.object_path(storage.bucket_key, storage.object_key),
                resource_id=storage.id,
            )
        except AccError as e:
            logger.warning(f"Failed to delete orphaned storage object {storage.id}: {e}")
            return
        session.orphan_deleted = True
        logger.info(f"Deleted orphaned storage object {storage.id}")

    async def _reserve(self, session: UploadSession) -> None:
        body = json_api_document(
            "objects",
            attributes={"name": session.file_name},
            relationships={"target": relationship("folders", session.folder_id)},
        )
        document = await self._gateway.post(
            f"/data/v1/projects/{session.project_id}/storage",
            body,
            resource_id=session.folder_id,
        )
        session.storage = StorageObject.from_api(document["data"])
        logger.info(f"Created storage location {session.storage.id} for {session.file_name}")

    async def _request_grant(self, session: UploadSession) -> None:
        storage = session.require_storage()
        # Re-decode the id: the URN is the only key the storage stage hands over
        key = urn.decode(storage.id)
        issued_at = self._clock()
        document = await self._gateway.get(
            f"{urn.object_path(key.bucket_key, key.object_key)}/signeds3upload",
            params={"minutesExpiration": self._grant_minutes},
            resource_id=storage.id,
        )
        urls = document.get("urls") or []
        if not urls:
            raise AccError("Signed upload response contained no URL")
        session.grant = SignedUploadGrant(
            url=urls[0],
            upload_key=document.get("uploadKey") or "",
            expires_in_minutes=self._grant_minutes,
            issued_at=issued_at,
        )

    async def _transfer(self, session: UploadSession, content: bytes, content_type: str) -> None:
        grant = session.require_grant()
        if grant.is_expired(self._clock()):
            raise GrantExpiredError("Signed upload URL expired before the transfer started")
        await self._gateway.put_signed(grant.url, content, content_type)
        logger.info(f"Uploaded {len(content)} bytes for {session.file_name}")

    async def _finalize(self, session: UploadSession) -> None:
        storage, grant = session.require_storage(), session.require_grant()
        if not grant.upload_key:
            raise AccError("Signed upload grant has no upload key to finalize with")
        if grant.is_expired(self._clock()):
            raise GrantExpiredError("Signed upload URL expired before finalization")
        await self._gateway.post(
            f"{urn.object_path(storage.bucket_key, storage.object_key)}/signeds3upload",
            {"uploadKey": grant.upload_key},
            content_type="application/json",
            resource_id=storage.id,
        )

    async def _publish(self, session: UploadSession) -> None:
        storage = session.require_storage()
        folder = await self._folders.get_folder(session.project_id, session.folder_id)
        child_types = resolve_child_types(folder.extension_type, self._folders.default_kind)

        body = json_api_document(
            "items",
            attributes={
                "displayName": session.file_name,
                "extension": {"type": child_types.item_type, "version": "1.0"},
            },
            relationships={
                "tip": relationship("versions", "1"),
                "parent": relationship("folders", session.folder_id),
            },
            included=[
                {
                    "type": "versions",
                    "id": "1",
                    "attributes": {
                        "name": session.file_name,
                        "extension": {"type": child_types.version_type, "version": "1.0"},
                    },
                    "relationships": {"storage": relationship("objects", storage.id)},
                }
            ],
        )
        document = await self._gateway.post(
            f"/data/v1/projects/{session.project_id}/items",
            body,
            resource_id=session.folder_id,
        )
        session.item = Item.from_document(document)

    async def upload_file(
        self,
        project_id: str,
        folder_id: str,
        file_path: str | Path,
        content_type: str | None = None,
    ) -> Item:
        """Upload a local file; the content type is guessed from its name if not given."""
        file_path = Path(file_path)
        content_type = content_type or mimetypes.guess_type(file_path.name)[0]
        return await self.upload(
            project_id, folder_id, file_path.name, file_path.read_bytes(), content_type
        )

    async def upload_many(
        self,
        project_id: str,
        folder_id: str,
        file_paths: Iterable[str | Path],
        *,
        content_type: str | None = None,
        stop_on_error: bool = False,
    ) -> list[UploadResult]:
        """Upload several local files one after another.

        Args:
            project_id: Project containing the folder
            folder_id: Target folder id
            file_paths: Files to upload
            content_type: MIME type for every file; guessed per file if omitted
            stop_on_error: If True, stop uploading on first error

        Returns:
            List of UploadResult for each attempted file
        """
        results: list[UploadResult] = []

        for file_path in file_paths:
            file_path = Path(file_path)
            try:
                item = await self.upload_file(project_id, folder_id, file_path, content_type)
                result = UploadResult(
                    success=True, file_name=file_path.name, folder_id=folder_id, item=item
                )
            except (UploadFailedError, OSError) as e:
                result = UploadResult(
                    success=False, file_name=file_path.name, folder_id=folder_id, error=str(e)
                )
            results.append(result)

            if stop_on_error and not result.success:
                break

        return results
