"""Minimalist function set of the Docker Hub API.

Tags come from the registry proper (registry-1.docker.io) through the
usual token dance against auth.docker.io.  Repository listing is not part
of the registry API; it comes from hub.docker.com.
"""

from typing import Any

import httpx
import structlog
from structlog.stdlib import BoundLogger

from ..models.image import BrowseImagesResult, ImageListing, ImageMetadata
from ..models.outcome import Outcome
from ..models.registry_category import RegistryCategory
from .auth import TokenProvider
from .oci import DistributionProtocol
from .registry import ContainerRegistryClient, cursor_url, parse_timestamp

MAX_PAGE_SIZE = 100
"""Largest ``page_size`` hub.docker.com will honor."""


class DockerHubClient(ContainerRegistryClient):
    """Client for talking to docker.io / hub.docker.com."""

    category = RegistryCategory.DOCKERHUB

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        base_url: str = "https://registry-1.docker.io",
        hub_url: str = "https://hub.docker.com",
        token_provider: TokenProvider | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._logger = logger or structlog.get_logger(__name__)
        self._distribution = DistributionProtocol(
            http_client, base_url, token_provider, logger=self._logger
        )
        self._hub = DistributionProtocol(
            http_client, hub_url, logger=self._logger
        )

    @property
    def distribution(self) -> DistributionProtocol:
        return self._distribution

    def repository_path(self, owner: str, image: str) -> str:
        # Official images live under the implicit "library" namespace.
        if not owner or owner.lower() == "library":
            return f"library/{image}".lower()
        return super().repository_path(owner, image)

    def format_reference(self, owner: str, image: str, tag: str) -> str:
        return f"docker.io/{self.repository_path(owner, image)}:{tag}"

    async def list_images(
        self,
        owner: str,
        page_size: int,
        auth_token: str | None = None,
        next_page: str | None = None,
    ) -> BrowseImagesResult:
        """List repositories in a Docker Hub namespace.

        ``next_page`` is the ``next`` URL from the previous response, used
        verbatim once checked to be on hub.docker.com.  ``auth_token`` is
        ignored: public repositories need none.
        """
        if next_page:
            url = cursor_url(next_page, self._hub.base_url)
        else:
            url = httpx.URL(
                f"{self._hub.base_url}/v2/repositories/{owner}",
                params={"page_size": min(page_size, MAX_PAGE_SIZE)},
            )
        self._logger.debug(f"Requesting Docker Hub repositories for {owner}")
        fetched = await self._hub.fetch(url, "")
        if fetched.outcome != Outcome.SUCCESS or fetched.response is None:
            self._logger.warning(
                f"Docker Hub listing for {owner} failed",
                status=fetched.status_code,
                outcome=fetched.outcome.value,
            )
            return BrowseImagesResult.failure(fetched.outcome)
        try:
            obj = fetched.response.json()
            images = [self._to_listing(owner, x) for x in obj["results"]]
            total = obj.get("count")
            next_url = obj.get("next")
        except (ValueError, TypeError, KeyError, AttributeError):
            self._logger.exception(f"Failed to parse Docker Hub listing {url}")
            return BrowseImagesResult.failure(Outcome.RETRYABLE)
        self._logger.debug(f"Found {len(images)} repositories for {owner}")
        return BrowseImagesResult(
            images=tuple(images),
            total_count=total if isinstance(total, int) else None,
            next_page_cursor=next_url or None,
        )

    def _to_listing(self, owner: str, res: dict[str, Any]) -> ImageListing:
        is_private = res.get("is_private")
        return ImageListing(
            owner=res.get("namespace") or owner,
            image_name=res["name"],
            registry_type=self.category,
            last_updated=parse_timestamp(res.get("last_updated")),
            created_at=parse_timestamp(res.get("date_registered")),
            metadata=ImageMetadata(
                description=res.get("description") or None,
                star_count=res.get("star_count"),
                pull_count=res.get("pull_count"),
                is_public=None if is_private is None else not is_private,
            ),
        )
