"""In-memory stand-in for registries and their token endpoints."""

from collections.abc import Callable
from typing import Any, TypeAlias

import httpx

Responder: TypeAlias = httpx.Response | Callable[[httpx.Request], httpx.Response]


def json_response(
    status: int = 200, body: Any = None, headers: dict[str, str] | None = None
) -> httpx.Response:
    return httpx.Response(status, json=body, headers=headers)


def challenge(realm: str, service: str, scope: str) -> httpx.Response:
    return httpx.Response(
        401,
        headers={
            "WWW-Authenticate": (
                f'Bearer realm="{realm}",service="{service}",scope="{scope}"'
            )
        },
    )


class MockRegistry:
    """Route requests by URL (without query) to canned responses.

    Several responses for one URL are served in order, the last one
    repeating.  A request for an unregistered URL fails the test.
    """

    def __init__(self) -> None:
        self._routes: dict[str, list[Responder]] = {}
        self._served: dict[str, int] = {}
        self.requests: list[httpx.Request] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def add(self, url: str, *responses: Responder) -> None:
        self._routes[url] = list(responses)
        self._served[url] = 0

    def calls(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if self._key(r) == url]

    def _key(self, request: httpx.Request) -> str:
        url = request.url
        return f"{url.scheme}://{url.netloc.decode()}{url.path}"

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = self._key(request)
        if key not in self._routes:
            raise AssertionError(f"Unexpected request for {request.url}")
        responders = self._routes[key]
        index = min(self._served[key], len(responders) - 1)
        self._served[key] += 1
        responder = responders[index]
        if isinstance(responder, httpx.Response):
            return httpx.Response(
                responder.status_code,
                headers=responder.headers,
                content=responder.content,
            )
        return responder(request)
