"""ACC Uploader - A Python library for Autodesk Construction Cloud documents.

Example usage:
    from acc_uploader import AccClient

    # Using context manager (recommended)
    async with AccClient.from_env() as client:
        folder = await client.folders.get_or_create(project_id, root_id, "Reports")
        item = await client.upload(project_id, folder.id, "report.pdf", data)
        print(f"Uploaded {item.display_name} as {item.id}")

    # 3-legged flow: the caller keeps the user's tokens
    url = client.auth.build_authorization_url(state="xyz")
    context = await client.auth.exchange_code(code)
"""

from acc_uploader.auth import TokenIssuer
from acc_uploader.client import AccClient
from acc_uploader.config import AccConfig, load_config
from acc_uploader.credentials import CredentialStore
from acc_uploader.exceptions import (
    AccError,
    ApiError,
    AuthenticationError,
    ConfigError,
    GrantExpiredError,
    InvalidIdentifierError,
    NotFoundError,
    UploadFailedError,
)
from acc_uploader.folders import FolderNavigator
from acc_uploader.kinds import ChildTypes, ExtensionKind, resolve_child_types
from acc_uploader.models import (
    AuthContext,
    Folder,
    FolderContents,
    Item,
    Resource,
    SignedUploadGrant,
    StorageObject,
    TraversalWarning,
    UploadResult,
    Version,
)
from acc_uploader.upload import (
    OrphanPolicy,
    UploadOrchestrator,
    UploadSession,
    UploadStage,
    UploadState,
)

__version__ = "0.1.0"

__all__ = [
    # Main client
    "AccClient",
    "AccConfig",
    "load_config",
    # Components
    "CredentialStore",
    "TokenIssuer",
    "FolderNavigator",
    "UploadOrchestrator",
    "UploadSession",
    "UploadStage",
    "UploadState",
    "OrphanPolicy",
    "ExtensionKind",
    "ChildTypes",
    "resolve_child_types",
    # Models
    "AuthContext",
    "StorageObject",
    "SignedUploadGrant",
    "Resource",
    "Folder",
    "Item",
    "Version",
    "FolderContents",
    "TraversalWarning",
    "UploadResult",
    # Exceptions
    "AccError",
    "ConfigError",
    "AuthenticationError",
    "ApiError",
    "NotFoundError",
    "InvalidIdentifierError",
    "GrantExpiredError",
    "UploadFailedError",
]
