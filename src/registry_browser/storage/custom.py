"""Storage driver for any registry implementing the OCI Distribution API."""

from typing import Any

import httpx
import structlog
from structlog.stdlib import BoundLogger

from ..models.image import BrowseImagesResult, ImageListing
from ..models.outcome import Outcome
from ..models.registry_category import RegistryCategory
from .auth import TokenProvider
from .oci import DistributionProtocol
from .registry import ContainerRegistryClient, cursor_url, next_link


class CustomRegistryClient(ContainerRegistryClient):
    """Client for an arbitrary OCI registry at ``base_url``.

    Listing uses ``/v2/_catalog``, which is optional in the OCI
    Distribution API.  A 404 there means the registry does not offer it,
    which is not the same as the owner not existing: tags can still be
    fetched for a known image name.
    """

    category = RegistryCategory.CUSTOM

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        *,
        token_provider: TokenProvider | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("Custom registry base URL must not be empty")
        self._logger = logger or structlog.get_logger(__name__)
        self._distribution = DistributionProtocol(
            http_client,
            base_url.strip(),
            token_provider,
            logger=self._logger,
        )

    @property
    def distribution(self) -> DistributionProtocol:
        return self._distribution

    def format_reference(self, owner: str, image: str, tag: str) -> str:
        url = httpx.URL(self.base_url)
        host = url.host if url.port is None else f"{url.host}:{url.port}"
        return f"{host}/{owner}/{image}:{tag}"

    async def list_images(
        self,
        owner: str,
        page_size: int,
        auth_token: str | None = None,
        next_page: str | None = None,
    ) -> BrowseImagesResult:
        """List catalog repositories under ``owner/``.

        The catalog covers the whole registry, so a page may well contain
        nothing for ``owner`` even when a later page does.
        """
        if next_page:
            url = cursor_url(next_page, self.base_url)
        else:
            url = httpx.URL(
                f"{self.base_url}/v2/_catalog", params={"n": page_size}
            )
        fetched = await self._distribution.fetch(url, "", bearer=auth_token)
        if fetched.status_code == 404:
            self._logger.info(f"{self.base_url} has no /v2/_catalog endpoint")
            return BrowseImagesResult.failure(
                Outcome.CATALOG_NOT_SUPPORTED,
                f"Registry at {self.base_url} does not support the OCI "
                "catalog API. Direct image access is required.",
            )
        if fetched.outcome != Outcome.SUCCESS or fetched.response is None:
            self._logger.warning(
                "Catalog request failed",
                status=fetched.status_code,
                outcome=fetched.outcome.value,
            )
            return BrowseImagesResult.failure(fetched.outcome)
        try:
            repos = self._extract_repositories(fetched.response.json())
        except (ValueError, TypeError):
            self._logger.exception(f"Failed to parse catalog from {url}")
            return BrowseImagesResult.failure(Outcome.RETRYABLE)

        prefix = f"{owner}/"
        images = [
            ImageListing(
                owner=owner,
                image_name=repo[len(prefix) :],
                registry_type=self.category,
            )
            for repo in repos
            if repo.startswith(prefix)
        ]
        self._logger.debug(
            f"Catalog page has {len(images)} of {len(repos)} repositories"
            f" under {owner}"
        )
        return BrowseImagesResult(
            images=tuple(images), next_page_cursor=next_link(fetched.response)
        )

    def _extract_repositories(self, body: Any) -> list[str]:
        if not isinstance(body, dict):
            raise TypeError(f"Catalog is not a JSON object: {body!r}")
        repos = body.get("repositories") or []
        if not isinstance(repos, list):
            raise TypeError(f"'repositories' is not a list: {repos!r}")
        return [x for x in repos if isinstance(x, str)]
