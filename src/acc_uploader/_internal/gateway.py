"""HTTP plumbing shared by the metadata and object-storage services."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Any

import httpx

from acc_uploader.auth import TokenIssuer
from acc_uploader.exceptions import ApiError, NotFoundError

logger = logging.getLogger(__name__)

JSON_API_CONTENT_TYPE = "application/vnd.api+json"
JSON_API_VERSION = {"version": "1.0"}


class BearerAuth(httpx.Auth):
    """Attaches a fresh 2-legged bearer token to every request."""

    def __init__(self, issuer: TokenIssuer) -> None:
        self._issuer = issuer

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self._issuer.get_token()
        request.headers["Authorization"] = f"Bearer {token}"
        yield request


def json_api_document(
    resource_type: str,
    attributes: dict[str, Any],
    relationships: dict[str, Any] | None = None,
    included: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a JSON:API request body."""
    data: dict[str, Any] = {"type": resource_type, "attributes": attributes}
    if relationships:
        data["relationships"] = relationships
    document: dict[str, Any] = {"jsonapi": dict(JSON_API_VERSION), "data": data}
    if included:
        document["included"] = included
    return document


def relationship(resource_type: str, resource_id: str) -> dict[str, Any]:
    """Build a to-one relationship object."""
    return {"data": {"type": resource_type, "id": resource_id}}


class ApiGateway:
    """Wraps the authenticated API client and the raw upload client.

    Calls made through get/post/delete carry the bearer token. put_signed goes
    through a separate client with no auth at all: signed URLs carry their own
    authorization and must not receive the API token.
    """

    def __init__(
        self,
        api_client: httpx.AsyncClient,
        transfer_client: httpx.AsyncClient,
    ) -> None:
        self._api = api_client
        self._transfer = transfer_client

    async def get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        resource_id: str | None = None,
    ) -> Any:
        return await self._request("GET", path, params=params, resource_id=resource_id)

    async def post(
        self,
        path: str,
        body: dict[str, Any],
        *,
        content_type: str = JSON_API_CONTENT_TYPE,
        resource_id: str | None = None,
    ) -> Any:
        return await self._request(
            "POST", path, body=body, content_type=content_type, resource_id=resource_id
        )

    async def delete(self, path: str, *, resource_id: str | None = None) -> Any:
        return await self._request("DELETE", path, resource_id=resource_id)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
        content_type: str = JSON_API_CONTENT_TYPE,
        resource_id: str | None = None,
    ) -> Any:
        """Make an authenticated API call and decode the JSON response."""
        headers: dict[str, str] = {}
        if body is not None:
            headers["Content-Type"] = content_type

        try:
            response = await self._api.request(
                method, path, params=params, json=body, headers=headers
            )
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(
                f"Resource {resource_id or path} not found", resource_id=resource_id
            )
        if not response.is_success:
            logger.error(f"{method} {path} returned {response.status_code}: {response.text}")
            raise ApiError(
                f"{method} {path} failed with status {response.status_code}",
                status_code=response.status_code,
                detail=response.text,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"{method} {path} returned invalid JSON: {e}") from e

    async def put_signed(
        self,
        url: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Upload raw bytes to a pre-signed URL, without the API token."""
        try:
            response = await self._transfer.put(
                url,
                content=content,
                headers={"Content-Type": content_type},
            )
        except httpx.HTTPError as e:
            raise ApiError(f"Upload to signed URL failed: {e}") from e

        if not response.is_success:
            raise ApiError(
                f"Upload to signed URL failed with status {response.status_code}",
                status_code=response.status_code,
                detail=response.text,
            )
