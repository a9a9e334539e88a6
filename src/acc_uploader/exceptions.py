"""Exception hierarchy for the acc_uploader library."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from acc_uploader.upload import UploadSession, UploadStage


class AccError(Exception):
    """Base exception for all acc_uploader errors."""

    pass


class ConfigError(AccError):
    """Raised when required configuration is missing or invalid."""

    pass


class AuthenticationError(AccError):
    """Raised when an OAuth grant request fails."""

    pass


class ApiError(AccError):
    """Raised when the API answers with an unexpected status or is unreachable."""

    def __init__(self, message: str, status_code: int | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class NotFoundError(ApiError):
    """Raised when a hub, project, folder or item id cannot be resolved."""

    def __init__(self, message: str, resource_id: str | None = None) -> None:
        super().__init__(message, status_code=404)
        self.resource_id = resource_id


class InvalidIdentifierError(AccError):
    """Raised when a storage object id is not a valid object URN."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Invalid storage object id: {identifier!r}")
        self.identifier = identifier


class GrantExpiredError(AccError):
    """Raised when a signed upload grant is used after its expiry window."""

    pass


class UploadFailedError(AccError):
    """Raised when one stage of the upload pipeline fails.

    The stage attribute names the failing stage, cause is the underlying
    exception (also chained as __cause__) and session holds the partial
    pipeline state, including any storage object reserved before the failure.
    """

    def __init__(
        self,
        stage: UploadStage,
        cause: BaseException,
        session: UploadSession | None = None,
    ) -> None:
        super().__init__(f"Upload failed at {stage.value} stage: {cause}")
        self.stage = stage
        self.cause = cause
        self.session = session
