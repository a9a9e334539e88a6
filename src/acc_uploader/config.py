"""Configuration loading for acc_uploader.

Values come from environment variables, optionally read from a ``.env`` file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from acc_uploader.exceptions import ConfigError
from acc_uploader.kinds import DEFAULT_KIND, ExtensionKind, parse_kind

DEFAULT_BASE_URL = "https://developer.api.autodesk.com"
DEFAULT_HTTP_TIMEOUT = 30.0


@dataclass(frozen=True)
class AccConfig:
    """Client settings.

    Attributes:
        client_id: APS application client id
        client_secret: APS application client secret
        callback_url: Redirect URI registered for the 3-legged flow
        scopes: OAuth scopes; None selects the per-flow defaults
        base_url: API host
        hub_id: Hub used when listing a project's top folders
        default_kind: Kind used under folders with no recognizable extension type
        http_timeout: Timeout in seconds applied to every HTTP call
    """

    client_id: str
    client_secret: str
    callback_url: str | None = None
    scopes: tuple[str, ...] | None = None
    base_url: str = DEFAULT_BASE_URL
    hub_id: str | None = None
    default_kind: ExtensionKind = DEFAULT_KIND
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @property
    def auth_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/authentication/v2"


def load_config(dotenv_path: str | None = None) -> AccConfig:
    """Load configuration from the environment.

    Args:
        dotenv_path: Optional .env file; the default search applies when omitted

    Returns:
        AccConfig built from ACC_* variables

    Raises:
        ConfigError: If required variables are missing or a value is invalid
    """
    load_dotenv(dotenv_path)

    client_id = os.getenv("ACC_CLIENT_ID")
    client_secret = os.getenv("ACC_CLIENT_SECRET")

    missing = [
        name
        for name, value in (("ACC_CLIENT_ID", client_id), ("ACC_CLIENT_SECRET", client_secret))
        if not value
    ]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    scopes_value = os.getenv("ACC_SCOPES")
    scopes = tuple(scopes_value.split()) if scopes_value and scopes_value.strip() else None

    try:
        default_kind = parse_kind(os.getenv("ACC_DEFAULT_KIND"))
        http_timeout = float(os.getenv("ACC_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))
    except ValueError as e:
        raise ConfigError(str(e)) from e

    return AccConfig(
        client_id=client_id,  # type: ignore[arg-type]
        client_secret=client_secret,  # type: ignore[arg-type]
        callback_url=os.getenv("ACC_CALLBACK_URL") or None,
        scopes=scopes,
        base_url=os.getenv("ACC_BASE_URL") or DEFAULT_BASE_URL,
        hub_id=os.getenv("ACC_HUB_ID") or None,
        default_kind=default_kind,
        http_timeout=http_timeout,
    )
