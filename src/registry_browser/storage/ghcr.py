"""Storage driver for ghcr.io package registry."""

from typing import Any

import httpx
import structlog
from structlog.stdlib import BoundLogger

from ..models.image import BrowseImagesResult, ImageListing, ImageMetadata
from ..models.outcome import Outcome
from ..models.registry_category import RegistryCategory
from .auth import TokenProvider
from .oci import DistributionProtocol
from .registry import (
    ContainerRegistryClient,
    cursor_url,
    next_link,
    parse_timestamp,
)

GITHUB_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
}

MAX_PAGE_SIZE = 100


class GhcrClient(ContainerRegistryClient):
    """Client for communication with ghcr.io.

    Tags are public through the registry with an anonymous token from
    ghcr.io/token.  Listing packages needs the GitHub REST API, which in
    turn needs a personal access token supplied by the caller.
    """

    category = RegistryCategory.GHCR

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        base_url: str = "https://ghcr.io",
        api_url: str = "https://api.github.com",
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
        return f"ghcr.io/{self.repository_path(owner, image)}:{tag}"

    def owner_type(self, owner: str) -> str:
        """Guess whether ``owner`` is an organization or a user.

        GitHub will not tell us without another request, and hyphenated
        names are overwhelmingly organizations.
        """
        return "orgs" if "-" in owner else "users"

    async def list_images(
        self,
        owner: str,
        page_size: int,
        auth_token: str | None = None,
        next_page: str | None = None,
    ) -> BrowseImagesResult:
        if not auth_token:
            return BrowseImagesResult.failure(
                Outcome.AUTH_REQUIRED,
                "Listing GHCR packages requires a GitHub token",
            )
        if next_page:
            url = cursor_url(next_page, self._api.base_url)
        else:
            url = httpx.URL(
                f"{self._api.base_url}/{self.owner_type(owner)}/{owner}"
                "/packages",
                params={
                    "package_type": "container",
                    "per_page": min(page_size, MAX_PAGE_SIZE),
                },
            )
        self._logger.debug(f"Requesting container packages for {owner}")
        fetched = await self._api.fetch(
            url, "", bearer=auth_token, headers=GITHUB_HEADERS
        )
        if fetched.status_code == 401:
            self._logger.warning(f"GitHub rejected the token for {owner}")
            return BrowseImagesResult.failure(
                Outcome.AUTH_REQUIRED, "GitHub rejected the supplied token"
            )
        if fetched.outcome != Outcome.SUCCESS or fetched.response is None:
            self._logger.warning(
                f"GitHub API request failed for owner {owner}",
                status=fetched.status_code,
                outcome=fetched.outcome.value,
            )
            return BrowseImagesResult.failure(fetched.outcome)
        try:
            packages = fetched.response.json()
            if not isinstance(packages, list):
                raise TypeError(f"Expected a list of packages from {url}")
            images = [self._to_listing(owner, x) for x in packages]
        except (ValueError, TypeError, KeyError, AttributeError):
            self._logger.exception(f"Failed to parse GitHub packages {url}")
            return BrowseImagesResult.failure(Outcome.RETRYABLE)
        self._logger.debug(f"Found {len(images)} packages for {owner}")
        return BrowseImagesResult(
            images=tuple(images),
            total_count=len(images),
            next_page_cursor=next_link(fetched.response),
        )

    def _to_listing(self, owner: str, pkg: dict[str, Any]) -> ImageListing:
        pkg_owner = pkg.get("owner") or {}
        return ImageListing(
            owner=pkg_owner.get("login") or owner,
            image_name=pkg["name"],
            registry_type=self.category,
            last_updated=parse_timestamp(pkg.get("updated_at")),
            created_at=parse_timestamp(pkg.get("created_at")),
            metadata=ImageMetadata(
                package_id=pkg.get("id"),
                visibility=pkg.get("visibility"),
                html_url=pkg.get("html_url"),
            ),
        )
