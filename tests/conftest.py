"""Test fixtures for the registry browser."""

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
import structlog
from support.mockregistry import MockRegistry

from registry_browser.config import Config
from registry_browser.factory import Factory


@pytest.fixture
def mock_registry() -> MockRegistry:
    """Fake registries, token endpoints, and vendor APIs."""
    return MockRegistry()


@pytest.fixture
def config() -> Config:
    """Browser configuration with default endpoints."""
    return Config(debug=True)


@pytest.fixture
async def http_client(
    mock_registry: MockRegistry,
) -> AsyncIterator[httpx.AsyncClient]:
    """Registry HTTP client wired to the fake registries."""
    async with httpx.AsyncClient(transport=mock_registry.transport) as client:
        yield client


@pytest.fixture
def factory(
    config: Config, http_client: httpx.AsyncClient, mock_registry: MockRegistry
) -> Factory:
    """Factory whose every HTTP client talks to the fake registries."""
    return Factory(
        config,
        http_client,
        structlog.get_logger("test"),
        auth_transport=mock_registry.transport,
    )


@pytest.fixture
def config_file() -> Path:
    """YAML configuration file."""
    return Path(__file__).parent / "support" / "config.yaml"
