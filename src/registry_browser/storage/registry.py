"""Abstract superclass for container registry clients."""

import datetime
from abc import abstractmethod
from typing import Any

import httpx
import structlog

from ..models.image import BrowseImagesResult
from ..models.registry_category import RegistryCategory
from ..models.tag import TagPageResult
from .oci import DistributionProtocol, repository_path

DATEFMT = "%Y-%m-%dT%H:%M:%S.%f%z"


class ContainerRegistryClient:
    """Collection of methods we expect any registry client to provide.

    A client holds only what it was constructed with: the HTTP client,
    the endpoints, and a logger.  Nothing is cached between calls, so one
    client can serve any number of concurrent requests.

    Tag listing is the same OCI Distribution protocol everywhere and is
    delegated to the client's `DistributionProtocol`; what differs per
    vendor is how the repository path is spelled, how the token exchange
    works, and whether (and how) repositories can be listed at all.

    Nothing here raises for an upstream failure.  Every result carries an
    `Outcome` instead.
    """

    category: RegistryCategory

    @property
    @abstractmethod
    def distribution(self) -> DistributionProtocol: ...

    @property
    def base_url(self) -> str:
        return self.distribution.base_url

    @abstractmethod
    async def list_images(
        self,
        owner: str,
        page_size: int,
        auth_token: str | None = None,
        next_page: str | None = None,
    ) -> BrowseImagesResult:
        """List repositories under ``owner``.

        ``next_page`` is the ``next_page_cursor`` of a previous result.
        """
        ...

    @abstractmethod
    def format_reference(self, owner: str, image: str, tag: str) -> str:
        """Full pullable reference, e.g. ``ghcr.io/owner/image:tag``."""
        ...

    def repository_path(self, owner: str, image: str) -> str:
        return repository_path(owner, image)

    async def list_tags_page(
        self,
        owner: str,
        image: str,
        page_size: int,
        last: str | None = None,
    ) -> TagPageResult:
        """Fetch one page of tags, starting after the tag ``last``."""
        return await self.distribution.list_tags_page(
            self.repository_path(owner, image), page_size, last
        )


def next_link(response: httpx.Response) -> str | None:
    """Absolute URL of the ``Link: <...>; rel="next"`` target, if any."""
    link = response.links.get("next", {}).get("url")
    if not link:
        return None
    # Registries commonly send a path relative to themselves.
    return str(response.url.join(link))


def cursor_url(cursor: str, base_url: str) -> httpx.URL:
    """Validate a caller-supplied next-page cursor.

    Cursors are full URLs handed back by a previous response.  A cursor
    pointing anywhere but the API it came from would carry the caller's
    token off to that host, so it is refused.

    Raises
    ------
    ValueError
        The cursor is not on the host of ``base_url``.
    """
    url = httpx.URL(cursor)
    expected = httpx.URL(base_url)
    if (url.scheme, url.host, url.port) != (
        expected.scheme,
        expected.host,
        expected.port,
    ):
        raise ValueError(f"Next-page cursor is not on {expected.host}")
    return url


def parse_timestamp(value: Any) -> datetime.datetime | None:
    """Parse an ISO 8601 UTC timestamp as the vendor APIs send them.

    Docker Hub sends microseconds and GitHub sends none.
    """
    if not value or not isinstance(value, str):
        return None
    if "." not in value and value.endswith("Z"):
        value = f"{value[:-1]}.000000Z"
    try:
        return datetime.datetime.strptime(value, DATEFMT).astimezone(
            datetime.UTC
        )
    except ValueError:
        structlog.get_logger(__name__).warning(
            f"Ignoring unparseable timestamp {value!r}"
        )
        return None
