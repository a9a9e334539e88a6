"""Data models for the acc_uploader library."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from acc_uploader import urn


@dataclass(frozen=True)
class AuthContext:
    """An issued access token and its expiry.

    Instances are never updated in place; a refreshed token is a new
    AuthContext that replaces the previous one.
    """

    access_token: str
    expires_at: datetime
    refresh_token: str | None = None

    @classmethod
    def from_token_response(
        cls,
        payload: dict[str, Any],
        now: datetime,
        fallback_refresh_token: str | None = None,
    ) -> AuthContext:
        """Build a context from an authorization endpoint response."""
        return cls(
            access_token=payload["access_token"],
            expires_at=now + timedelta(seconds=int(payload.get("expires_in", 0))),
            refresh_token=payload.get("refresh_token") or fallback_refresh_token,
        )

    def is_valid(self, now: datetime, buffer: timedelta = timedelta(0)) -> bool:
        """Check whether the token is still usable at now, minus buffer."""
        return now < self.expires_at - buffer


@dataclass(frozen=True)
class StorageObject:
    """A reserved object-storage location for one upload attempt."""

    id: str
    bucket_key: str
    object_key: str
    size: int | None = None
    location: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> StorageObject:
        """Build from the ``data`` member of a storage creation response."""
        object_id = data["id"]
        key = urn.decode(object_id)
        attributes = data.get("attributes") or {}
        return cls(
            id=object_id,
            bucket_key=key.bucket_key,
            object_key=key.object_key,
            size=attributes.get("size"),
            location=attributes.get("location"),
        )


@dataclass(frozen=True)
class SignedUploadGrant:
    """A single-use, time-limited signed URL for a direct byte upload."""

    url: str
    upload_key: str
    expires_in_minutes: int
    issued_at: datetime

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(minutes=self.expires_in_minutes)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class Resource:
    """A JSON:API resource returned by the Data Management API."""

    type: str
    id: str
    attributes: dict[str, Any] = field(default_factory=dict)
    relationships: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Resource:
        return cls(
            type=data.get("type", ""),
            id=data["id"],
            attributes=data.get("attributes") or {},
            relationships=data.get("relationships") or {},
        )

    @property
    def name(self) -> str | None:
        return self.attributes.get("name")

    @property
    def display_name(self) -> str | None:
        return self.attributes.get("displayName")

    @property
    def extension_type(self) -> str | None:
        extension = self.attributes.get("extension") or {}
        return extension.get("type")

    def matches_name(self, name: str) -> bool:
        """True if either the name or the display name equals name."""
        return name in (self.name, self.display_name)

    def related_id(self, relationship: str) -> str | None:
        """Return the id referenced by a to-one relationship, if present."""
        data = (self.relationships.get(relationship) or {}).get("data")
        if isinstance(data, dict):
            return data.get("id")
        return None


@dataclass(frozen=True)
class Folder(Resource):
    """A folder in a project's folder tree."""

    pass


@dataclass(frozen=True)
class Version(Resource):
    """A document revision."""

    @property
    def storage_id(self) -> str | None:
        """Id of the storage object holding this version's bytes."""
        return self.related_id("storage")


@dataclass(frozen=True)
class Item(Resource):
    """A document, optionally with the versions included in the response."""

    versions: tuple[Version, ...] = ()

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> Item:
        """Build from a full JSON:API document (``data`` plus ``included``)."""
        data = document["data"]
        versions = tuple(
            Version.from_api(included)
            for included in document.get("included") or []
            if included.get("type") == "versions"
        )
        return cls(
            type=data.get("type", "items"),
            id=data["id"],
            attributes=data.get("attributes") or {},
            relationships=data.get("relationships") or {},
            versions=versions,
        )

    @property
    def tip_version_id(self) -> str | None:
        return self.related_id("tip")


@dataclass(frozen=True)
class FolderContents:
    """Immediate children of a folder, split by resource type."""

    folders: list[Folder]
    items: list[Item]


@dataclass(frozen=True)
class TraversalWarning:
    """A folder whose contents could not be enumerated during a tree walk."""

    folder_id: str
    message: str


@dataclass(frozen=True)
class UploadResult:
    """Result of one file in a batch upload."""

    success: bool
    file_name: str
    folder_id: str
    item: Item | None = None
    error: str | None = None
