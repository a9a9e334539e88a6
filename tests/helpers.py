"""Shared test helpers for acc_uploader tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

START_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

TOKEN_PATH = "/authentication/v2/token"

PROJECT_ID = "b.project"
HUB_ID = "b.hub"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = START_TIME) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeAcc:
    """In-memory stand-in for the Autodesk APIs, served through httpx.MockTransport.

    Routes are keyed by method and raw (still percent-encoded) path. A route
    is either a handler or a list of responses served in order; the last
    response is repeated once the list runs out. Every request is recorded.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], Handler | list[httpx.Response]] = {}
        self.token_count = 0
        self.add_handler("POST", TOKEN_PATH, self._issue_token)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self._routes.get((request.method, raw_path(request)))
        if route is None:
            return httpx.Response(404, json={"errors": [{"detail": "not found"}]})
        if callable(route):
            return route(request)
        if len(route) > 1:
            return route.pop(0)
        return route[0]

    def add(
        self,
        method: str,
        path: str,
        json: Any = None,
        status_code: int = 200,
    ) -> None:
        """Register a response; repeated calls to one route queue responses."""
        response = httpx.Response(status_code, json=json)
        route = self._routes.get((method, path))
        if isinstance(route, list):
            route.append(response)
        else:
            self._routes[(method, path)] = [response]

    def add_handler(self, method: str, path: str, handler: Handler) -> None:
        self._routes[(method, path)] = handler

    def _issue_token(self, request: httpx.Request) -> httpx.Response:
        self.token_count += 1
        return httpx.Response(
            200,
            json={
                "access_token": f"token-{self.token_count}",
                "token_type": "Bearer",
                "expires_in": 3600,
            },
        )

    def sent(self, method: str, path: str) -> list[httpx.Request]:
        """Requests received for one route."""
        return [r for r in self.requests if r.method == method and raw_path(r) == path]

    def api_requests(self) -> list[httpx.Request]:
        """Requests other than token grants."""
        return [r for r in self.requests if raw_path(r) != TOKEN_PATH]


def raw_path(request: httpx.Request) -> str:
    return request.url.raw_path.decode("ascii").split("?", 1)[0]


def body(request: httpx.Request) -> Any:
    return json.loads(request.content)


def folder_data(
    folder_id: str,
    name: str,
    extension_type: str | None = "folders:autodesk.bim360:Folder",
    display_name: str | None = None,
) -> dict[str, Any]:
    attributes: dict[str, Any] = {"name": name, "displayName": display_name or name}
    if extension_type:
        attributes["extension"] = {"type": extension_type, "version": "1.0"}
    return {"type": "folders", "id": folder_id, "attributes": attributes}


def item_data(item_id: str, name: str) -> dict[str, Any]:
    return {
        "type": "items",
        "id": item_id,
        "attributes": {"displayName": name},
    }
