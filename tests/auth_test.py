"""Test bearer challenge parsing and token exchange."""

import httpx
import pytest
from support.mockregistry import MockRegistry, challenge, json_response

from registry_browser.storage.auth import (
    BearerChallenge,
    ChallengeTokenProvider,
    FixedRealmTokenProvider,
    parse_bearer_challenge,
)


def test_parse_challenge() -> None:
    """Parse a typical ghcr.io challenge."""
    header = (
        'Bearer realm="https://ghcr.io/token",service="ghcr.io",'
        'scope="repository:user/app:pull"'
    )
    assert parse_bearer_challenge(header) == BearerChallenge(
        realm="https://ghcr.io/token",
        service="ghcr.io",
        scope="repository:user/app:pull",
    )


def test_parse_challenge_spacing_and_case() -> None:
    """Scheme and parameter names are case-insensitive; values may be
    unquoted.
    """
    header = 'bearer Realm="https://auth.example.com/token", service=reg'
    parsed = parse_bearer_challenge(header)
    assert parsed is not None
    assert parsed.realm == "https://auth.example.com/token"
    assert parsed.service == "reg"
    assert parsed.scope is None


@pytest.mark.parametrize(
    "header",
    [
        None,
        "",
        'Basic realm="Registry Realm"',
        'Bearer service="registry.example.com"',
    ],
)
def test_parse_unusable_challenge(header: str | None) -> None:
    """Anything but a Bearer challenge with a realm is unusable."""
    assert parse_bearer_challenge(header) is None


async def test_fixed_realm(mock_registry: MockRegistry) -> None:
    """Well-known registries ask their fixed endpoint for a pull token."""
    mock_registry.add(
        "https://auth.docker.io/token", json_response(body={"token": "t0k"})
    )
    provider = FixedRealmTokenProvider(
        "https://auth.docker.io/token",
        "registry.docker.io",
        user_agent="test",
        transport=mock_registry.transport,
    )
    token = await provider.acquire("library/alpine", httpx.Response(401))
    assert token == "t0k"
    request = mock_registry.calls("https://auth.docker.io/token")[0]
    assert request.url.params["service"] == "registry.docker.io"
    assert request.url.params["scope"] == "repository:library/alpine:pull"
    assert request.headers["user-agent"] == "test"


async def test_access_token_field(mock_registry: MockRegistry) -> None:
    """``access_token`` is accepted when ``token`` is absent."""
    mock_registry.add(
        "https://auth.example.com/token",
        json_response(body={"access_token": "acc"}),
    )
    provider = ChallengeTokenProvider(
        user_agent="test", transport=mock_registry.transport
    )
    response = challenge(
        "https://auth.example.com/token",
        "registry.example.com",
        "repository:team/app:pull",
    )
    assert await provider.acquire("team/app", response) == "acc"
    request = mock_registry.calls("https://auth.example.com/token")[0]
    assert request.url.params["service"] == "registry.example.com"
    assert request.url.params["scope"] == "repository:team/app:pull"


@pytest.mark.parametrize(
    "token_response",
    [
        json_response(503),
        json_response(403, {"errors": []}),
        httpx.Response(200, content=b"<html>not json</html>"),
        json_response(body=["token"]),
        json_response(body={"expires_in": 300}),
    ],
)
async def test_no_token(
    mock_registry: MockRegistry, token_response: httpx.Response
) -> None:
    """Failure at the token endpoint yields no token, not an exception."""
    mock_registry.add("https://ghcr.io/token", token_response)
    provider = FixedRealmTokenProvider(
        "https://ghcr.io/token",
        "ghcr.io",
        user_agent="test",
        transport=mock_registry.transport,
    )
    assert await provider.acquire("owner/image", httpx.Response(401)) is None


async def test_token_endpoint_unreachable() -> None:
    """A connection failure also yields no token."""

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    provider = FixedRealmTokenProvider(
        "https://ghcr.io/token",
        "ghcr.io",
        user_agent="test",
        transport=httpx.MockTransport(refuse),
    )
    assert await provider.acquire("owner/image", httpx.Response(401)) is None


async def test_challenge_without_header(mock_registry: MockRegistry) -> None:
    """A 401 with no challenge cannot be answered."""
    provider = ChallengeTokenProvider(
        user_agent="test", transport=mock_registry.transport
    )
    request = httpx.Request("GET", "https://registry.example.com/v2/")
    response = httpx.Response(401, request=request)
    assert await provider.acquire("team/app", response) is None
    assert mock_registry.requests == []


async def test_challenge_without_scope(mock_registry: MockRegistry) -> None:
    """Ask for pull on the repository if the challenge names no scope."""
    mock_registry.add(
        "https://auth.example.com/token", json_response(body={"token": "t"})
    )
    provider = ChallengeTokenProvider(
        user_agent="test", transport=mock_registry.transport
    )
    response = httpx.Response(
        401,
        headers={
            "WWW-Authenticate": 'Bearer realm="https://auth.example.com/token"'
        },
    )
    assert await provider.acquire("team/app", response) == "t"
    request = mock_registry.calls("https://auth.example.com/token")[0]
    assert "service" not in request.url.params
    assert request.url.params["scope"] == "repository:team/app:pull"
