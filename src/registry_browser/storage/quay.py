"""Storage driver for quay.io."""

import datetime
from typing import Any

import httpx
import structlog
from structlog.stdlib import BoundLogger

from ..models.image import BrowseImagesResult, ImageListing, ImageMetadata
from ..models.outcome import Outcome
from ..models.registry_category import RegistryCategory
from .auth import TokenProvider
from .oci import DistributionProtocol
from .registry import ContainerRegistryClient


class QuayClient(ContainerRegistryClient):
    """Client for Quay.io.

    Repository listing uses the v1 API restricted to public repositories,
    and is a single page: we do not follow Quay's own page tokens.
    """

    category = RegistryCategory.QUAY

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        base_url: str = "https://quay.io",
        api_url: str = "https://quay.io",
        token_provider: TokenProvider | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._logger = logger or structlog.get_logger(__name__)
        self._distribution = DistributionProtocol(
            http_client, base_url, token_provider, logger=self._logger
        )
        self._api = DistributionProtocol(
            http_client, api_url, logger=self._logger
        )

    @property
    def distribution(self) -> DistributionProtocol:
        return self._distribution

    def format_reference(self, owner: str, image: str, tag: str) -> str:
        return f"quay.io/{self.repository_path(owner, image)}:{tag}"

    async def list_images(
        self,
        owner: str,
        page_size: int,
        auth_token: str | None = None,
        next_page: str | None = None,
    ) -> BrowseImagesResult:
        url = httpx.URL(
            f"{self._api.base_url}/api/v1/repository",
            params={"namespace": owner, "public": "true"},
        )
        fetched = await self._api.fetch(url, "")
        if fetched.outcome != Outcome.SUCCESS or fetched.response is None:
            self._logger.warning(
                f"Quay API request failed for namespace {owner}",
                status=fetched.status_code,
                outcome=fetched.outcome.value,
            )
            return BrowseImagesResult.failure(fetched.outcome)
        try:
            obj = fetched.response.json()
            repos = obj.get("repositories") or []
            images = [self._to_listing(owner, x) for x in repos]
        except (ValueError, TypeError, KeyError, AttributeError):
            self._logger.exception(f"Failed to parse Quay listing for {owner}")
            return BrowseImagesResult.failure(Outcome.RETRYABLE)
        self._logger.debug(f"Found {len(images)} repositories for {owner}")
        return BrowseImagesResult(
            images=tuple(images), total_count=len(images)
        )

    def _to_listing(self, owner: str, repo: dict[str, Any]) -> ImageListing:
        last_updated: datetime.datetime | None = None
        modified = repo.get("last_modified")
        if modified is not None:
            # Unix seconds, unlike everyone else.
            last_updated = datetime.datetime.fromtimestamp(
                int(modified), tz=datetime.UTC
            )
        return ImageListing(
            owner=repo.get("namespace") or owner,
            image_name=repo["name"],
            registry_type=self.category,
            last_updated=last_updated,
            metadata=ImageMetadata(
                description=repo.get("description") or None,
                is_public=repo.get("is_public"),
                repository_state=repo.get("state"),
            ),
        )
