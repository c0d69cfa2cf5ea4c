"""Test detection of OCI registries at arbitrary URLs."""

import asyncio

import httpx
import pytest
from support.mockregistry import MockRegistry, json_response

from registry_browser.config import Config
from registry_browser.factory import Factory
from registry_browser.services.detection import (
    InvalidRegistryURLError,
    normalize_registry_url,
)

PROBE = "https://docker.redpanda.com/v2/"
V2 = {"Docker-Distribution-Api-Version": "registry/2.0"}


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("docker.redpanda.com", "https://docker.redpanda.com"),
        ("  https://registry.example.com/  ", "https://registry.example.com"),
        ("http://localhost:5000", "http://localhost:5000"),
        ("HTTPS://Registry.Example.com/", "https://registry.example.com"),
        ("reg.example.com/mirror/", "https://reg.example.com/mirror"),
    ],
)
def test_normalize(url: str, expected: str) -> None:
    assert normalize_registry_url(url) == expected


@pytest.mark.parametrize(
    ("url", "message"),
    [
        ("", "URL cannot be empty"),
        ("   ", "URL cannot be empty"),
        ("ftp://registry.example.com", "URL must use HTTP or HTTPS"),
        ("https://", "Invalid URL format"),
    ],
)
def test_normalize_invalid(url: str, message: str) -> None:
    with pytest.raises(InvalidRegistryURLError, match=message):
        normalize_registry_url(url)


async def test_supported(
    config: Config, factory: Factory, mock_registry: MockRegistry
) -> None:
    mock_registry.add(PROBE, json_response(body={}, headers=V2))
    detector = factory.create_detector()

    result = await detector.detect("docker.redpanda.com/")

    assert result.supported
    assert result.normalized_url == "https://docker.redpanda.com"
    assert result.api_version == "registry/2.0"
    assert result.capabilities is not None
    assert result.capabilities.supports_tags_list
    assert not result.capabilities.supports_catalog
    assert result.error_message is None
    request = mock_registry.calls(PROBE)[0]
    assert request.headers["user-agent"] == config.user_agent


async def test_auth_required_is_supported(
    factory: Factory, mock_registry: MockRegistry
) -> None:
    """A 401 on /v2/ is how most public registries say hello."""
    mock_registry.add(PROBE, json_response(401, headers=V2))
    detector = factory.create_detector()

    result = await detector.detect("https://docker.redpanda.com")

    assert result.supported
    assert result.api_version == "registry/2.0"


@pytest.mark.parametrize("status", [200, 401])
async def test_missing_header(
    factory: Factory, mock_registry: MockRegistry, status: int
) -> None:
    mock_registry.add(PROBE, json_response(status))
    detector = factory.create_detector()

    result = await detector.detect("docker.redpanda.com")

    assert not result.supported
    assert result.normalized_url == "https://docker.redpanda.com"
    assert "missing API version header" in (result.error_message or "")
    assert result.capabilities is None


async def test_no_v2(factory: Factory, mock_registry: MockRegistry) -> None:
    mock_registry.add(PROBE, json_response(404))
    detector = factory.create_detector()

    result = await detector.detect("docker.redpanda.com")

    assert not result.supported
    assert "v2" in (result.error_message or "")


@pytest.mark.parametrize("status", [302, 403, 500, 503])
async def test_unexpected_status(
    factory: Factory, mock_registry: MockRegistry, status: int
) -> None:
    mock_registry.add(PROBE, json_response(status, headers=V2))
    detector = factory.create_detector()

    result = await detector.detect("docker.redpanda.com")

    assert not result.supported
    assert result.error_message == (
        f"Registry returned unexpected status code: {status}"
    )


async def test_timeout(factory: Factory, mock_registry: MockRegistry) -> None:
    def hang(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    mock_registry.add(PROBE, hang)
    detector = factory.create_detector()

    result = await detector.detect("docker.redpanda.com")

    assert not result.supported
    assert result.error_message == (
        "Connection timeout. Registry may be unreachable."
    )


async def test_connection_error(
    factory: Factory, mock_registry: MockRegistry
) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    mock_registry.add(PROBE, refuse)
    detector = factory.create_detector()

    result = await detector.detect("docker.redpanda.com")

    assert not result.supported
    assert result.error_message == (
        "Unable to connect to registry: Name or service not known"
    )


async def test_probe_cancelled(
    factory: Factory, mock_registry: MockRegistry
) -> None:
    """A probe cancelled from below is reported, not raised."""

    def cancel(request: httpx.Request) -> httpx.Response:
        raise asyncio.CancelledError

    mock_registry.add(PROBE, cancel)
    detector = factory.create_detector()

    result = await detector.detect("docker.redpanda.com")

    assert not result.supported
    assert result.error_message == "Request was cancelled"


async def test_invalid_url(
    factory: Factory, mock_registry: MockRegistry
) -> None:
    detector = factory.create_detector()

    result = await detector.detect("ftp://docker.redpanda.com")

    assert not result.supported
    assert result.normalized_url is None
    assert result.error_message == "URL must use HTTP or HTTPS"
    assert mock_registry.requests == []


async def test_to_dict(factory: Factory, mock_registry: MockRegistry) -> None:
    mock_registry.add(PROBE, json_response(401, headers=V2))
    detector = factory.create_detector()

    result = await detector.detect("docker.redpanda.com")

    assert result.to_dict() == {
        "supported": True,
        "normalizedUrl": "https://docker.redpanda.com",
        "apiVersion": "registry/2.0",
        "capabilities": {"catalog": False, "tagsList": True},
        "errorMessage": None,
    }
