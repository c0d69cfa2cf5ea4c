"""Component factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager
from typing import Self

import httpx
import structlog
from structlog.stdlib import BoundLogger

from .config import Config, RegistrySettings
from .models.registry_category import RegistryCategory
from .services.browser import RegistryBrowser
from .services.detection import RegistryDetector
from .storage.auth import (
    ChallengeTokenProvider,
    FixedRealmTokenProvider,
    TokenProvider,
)
from .storage.custom import CustomRegistryClient
from .storage.dockerhub import DockerHubClient
from .storage.gcr import GcrClient
from .storage.ghcr import GhcrClient
from .storage.quay import QuayClient
from .storage.registry import ContainerRegistryClient

__all__ = ["Factory", "configure_logging"]


def configure_logging(debug: bool) -> None:
    log_level = logging.DEBUG if debug else logging.INFO
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(log_level)
    )


class Factory:
    """Build registry browser components.

    Parameters
    ----------
    config
        Browser configuration.
    http_client
        Client shared by every registry client the factory builds.  The
        factory does not close it unless it created it.
    logger
        Logger to use for messages.
    auth_transport
        Transport for the short-lived clients used for token exchange and
        detection probes.  Only the test suite should need this.
    """

    @classmethod
    @asynccontextmanager
    async def standalone(
        cls,
        config: Config | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> AsyncIterator[Self]:
        """Async context manager for registry browser components.

        Intended for scripts and the test suite; a web application would
        build the factory around its own long-lived client instead.

        Parameters
        ----------
        config
            Browser configuration.  Defaults apply if not given.
        transport
            Transport for every HTTP client the factory makes.

        Yields
        ------
        Factory
            Newly-created factory. Must be used as a context manager.
        """
        config = config or Config()
        configure_logging(config.debug)
        logger = structlog.get_logger(__name__)
        http_client = httpx.AsyncClient(
            transport=transport,
            timeout=config.timeout,
            headers={"User-Agent": config.user_agent},
            follow_redirects=True,
        )
        factory = cls(
            config,
            http_client,
            logger,
            auth_transport=transport,
            owns_client=True,
        )
        async with aclosing(factory):
            yield factory

    def __init__(
        self,
        config: Config,
        http_client: httpx.AsyncClient,
        logger: BoundLogger | None = None,
        *,
        auth_transport: httpx.AsyncBaseTransport | None = None,
        owns_client: bool = False,
    ) -> None:
        self._config = config
        self._http_client = http_client
        self._logger = logger or structlog.get_logger(__name__)
        self._auth_transport = auth_transport
        self._owns_client = owns_client

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    def supported_registries(self) -> list[RegistryCategory]:
        """Registry types buildable by `create_client`.

        CUSTOM needs a base URL and goes through `create_custom_client`.
        """
        return [x for x in RegistryCategory if x != RegistryCategory.CUSTOM]

    def is_supported(self, category: RegistryCategory) -> bool:
        return category in self.supported_registries()

    def create_client(
        self, category: RegistryCategory
    ) -> ContainerRegistryClient:
        """Client for one of the well-known registries.

        Raises
        ------
        ValueError
            ``category`` is CUSTOM, which needs a base URL.
        """
        regs = self._config.registries
        match category:
            case RegistryCategory.GHCR:
                return GhcrClient(
                    self._http_client,
                    base_url=regs.ghcr.base,
                    api_url=regs.ghcr.api or "https://api.github.com",
                    token_provider=self._token_provider(regs.ghcr),
                    logger=self._logger,
                )
            case RegistryCategory.DOCKERHUB:
                return DockerHubClient(
                    self._http_client,
                    base_url=regs.dockerhub.base,
                    hub_url=regs.dockerhub.api or "https://hub.docker.com",
                    token_provider=self._token_provider(regs.dockerhub),
                    logger=self._logger,
                )
            case RegistryCategory.QUAY:
                return QuayClient(
                    self._http_client,
                    base_url=regs.quay.base,
                    api_url=regs.quay.api or regs.quay.base,
                    token_provider=self._token_provider(regs.quay),
                    logger=self._logger,
                )
            case RegistryCategory.GCR:
                return GcrClient(
                    self._http_client,
                    base_url=regs.gcr.base,
                    token_provider=self._token_provider(regs.gcr),
                    logger=self._logger,
                )
            case _:
                raise ValueError(
                    f"Registry type '{category.value}' needs a base URL;"
                    " use create_custom_client()"
                )

    def create_client_by_name(
        self, name: str, base_url: str | None = None
    ) -> ContainerRegistryClient:
        """Client for a case-insensitive registry type token.

        Raises
        ------
        UnknownRegistryError
            ``name`` is not a registry type.
        """
        category = RegistryCategory.from_name(name)
        if category == RegistryCategory.CUSTOM:
            return self.create_custom_client(base_url or "")
        return self.create_client(category)

    def create_custom_client(self, base_url: str) -> CustomRegistryClient:
        return CustomRegistryClient(
            self._http_client,
            base_url,
            token_provider=ChallengeTokenProvider(
                user_agent=self._config.user_agent,
                timeout=self._config.timeout,
                transport=self._auth_transport,
                logger=self._logger,
            ),
            logger=self._logger,
        )

    def create_detector(self) -> RegistryDetector:
        return RegistryDetector(
            timeout=self._config.detection_timeout,
            user_agent=self._config.user_agent,
            transport=self._auth_transport,
            logger=self._logger,
        )

    def create_browser(self) -> RegistryBrowser:
        return RegistryBrowser(self._logger)

    def _token_provider(self, settings: RegistrySettings) -> TokenProvider:
        if settings.auth is None:
            return ChallengeTokenProvider(
                user_agent=self._config.user_agent,
                timeout=self._config.timeout,
                transport=self._auth_transport,
                logger=self._logger,
            )
        return FixedRealmTokenProvider(
            settings.auth,
            settings.service,
            user_agent=self._config.user_agent,
            timeout=self._config.timeout,
            transport=self._auth_transport,
            logger=self._logger,
        )
