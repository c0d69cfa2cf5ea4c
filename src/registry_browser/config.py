"""Configuration for the container registry browser."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Self

import yaml
from pydantic import BaseModel, Field, HttpUrl
from safir.pydantic import CamelCaseModel

__all__ = [
    "Config",
    "DockerHubSettings",
    "GcrSettings",
    "GhcrSettings",
    "QuaySettings",
    "RegistriesConfig",
    "RegistrySettings",
]


def _url(inp: HttpUrl | str) -> str:
    # HttpUrl always renders a bare host with a trailing slash.
    return str(inp).rstrip("/")


class RegistrySettings(CamelCaseModel):
    """Endpoints for one well-known registry."""

    base_url: Annotated[
        HttpUrl,
        Field(
            title="Base URL",
            description="URL of the OCI Distribution API host",
            examples=[HttpUrl("https://ghcr.io")],
        ),
    ]

    auth_url: Annotated[
        HttpUrl | None,
        Field(
            title="Auth URL",
            description=(
                "Token endpoint used after a 401 challenge.  If unset, the "
                "realm from the WWW-Authenticate header is used."
            ),
            examples=[HttpUrl("https://ghcr.io/token")],
        ),
    ] = None

    service: Annotated[
        str | None,
        Field(
            title="Service",
            description="Value of the 'service' token request parameter",
            examples=["ghcr.io"],
        ),
    ] = None

    api_url: Annotated[
        HttpUrl | None,
        Field(
            title="API URL",
            description="Vendor API used to list repositories, if any",
            examples=[HttpUrl("https://api.github.com")],
        ),
    ] = None

    @property
    def base(self) -> str:
        return _url(self.base_url)

    @property
    def auth(self) -> str | None:
        return None if self.auth_url is None else _url(self.auth_url)

    @property
    def api(self) -> str | None:
        return None if self.api_url is None else _url(self.api_url)


class GhcrSettings(RegistrySettings):
    """GitHub Container Registry; listing goes through the GitHub API."""

    base_url: HttpUrl = HttpUrl("https://ghcr.io")
    auth_url: HttpUrl | None = HttpUrl("https://ghcr.io/token")
    service: str | None = "ghcr.io"
    api_url: HttpUrl | None = HttpUrl("https://api.github.com")


class DockerHubSettings(RegistrySettings):
    """Docker Hub: tags from registry-1, listing from hub.docker.com."""

    base_url: HttpUrl = HttpUrl("https://registry-1.docker.io")
    auth_url: HttpUrl | None = HttpUrl("https://auth.docker.io/token")
    service: str | None = "registry.docker.io"
    api_url: HttpUrl | None = HttpUrl("https://hub.docker.com")


class QuaySettings(RegistrySettings):
    """Quay.io; listing goes through the Quay v1 API."""

    base_url: HttpUrl = HttpUrl("https://quay.io")
    auth_url: HttpUrl | None = HttpUrl("https://quay.io/v2/auth")
    service: str | None = "quay.io"
    api_url: HttpUrl | None = HttpUrl("https://quay.io")


class GcrSettings(RegistrySettings):
    """Google Container Registry; no listing API."""

    base_url: HttpUrl = HttpUrl("https://gcr.io")


class RegistriesConfig(BaseModel):
    """Endpoints for all the well-known registries."""

    ghcr: GhcrSettings = Field(default_factory=GhcrSettings)
    dockerhub: DockerHubSettings = Field(default_factory=DockerHubSettings)
    quay: QuaySettings = Field(default_factory=QuaySettings)
    gcr: GcrSettings = Field(default_factory=GcrSettings)


class Config(CamelCaseModel):
    """Configuration for the registry browser."""

    registries: Annotated[
        RegistriesConfig,
        Field(
            title="Registries",
            description="Endpoints of the well-known registries.",
            default_factory=RegistriesConfig,
        ),
    ]

    user_agent: Annotated[
        str,
        Field(
            title="User agent",
            description="User-Agent header sent with every request.",
        ),
    ] = "registry-browser/0.1.0"

    timeout: Annotated[
        float,
        Field(
            title="Timeout",
            description="Timeout in seconds for registry requests.",
            gt=0,
        ),
    ] = 30.0

    detection_timeout: Annotated[
        float,
        Field(
            title="Detection timeout",
            description=(
                "Timeout in seconds for the /v2/ probe of a custom registry."
            ),
            gt=0,
        ),
    ] = 5.0

    debug: Annotated[
        bool,
        Field(
            title="Debug",
            description="Much more verbose logging in human-readable format.",
        ),
    ] = False

    @classmethod
    def from_file(cls, path: Path) -> Self:
        return cls.model_validate(yaml.safe_load(path.read_text()) or {})
