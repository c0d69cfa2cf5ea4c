"""Provides browsing services on top of the registry clients."""

import structlog
from structlog.stdlib import BoundLogger

from ..exceptions import RepositoryNotFoundError, error_for_outcome
from ..models.image import BrowseImagesResult, RegistryReference
from ..models.outcome import Outcome
from ..storage.registry import ContainerRegistryClient

DIGEST_TAG_PREFIX = "sha256"
"""Tags that are really digests (cosign signatures, attestations...)."""

PAGE_SIZE = 100
MAX_REQUESTS = 200


def is_digest_tag(tag: str) -> bool:
    return tag.lower().startswith(DIGEST_TAG_PREFIX)


class RegistryBrowser:
    """Drive registry clients page by page and turn failed outcomes into
    exceptions.

    This is the layer that decides what a user sees: digest-like tags
    are dropped here, not in the clients, and an empty repository is
    reported as not found.
    """

    def __init__(self, logger: BoundLogger | None = None) -> None:
        self._logger = logger or structlog.get_logger(__name__)

    async def list_tags(
        self,
        client: ContainerRegistryClient,
        owner: str,
        image: str,
        *,
        page_size: int = PAGE_SIZE,
        max_requests: int = MAX_REQUESTS,
    ) -> list[str]:
        """Every human-readable tag of ``owner/image``.

        Raises
        ------
        RepositoryNotFoundError
            The repository does not exist or has no tags.
        UpstreamUnavailableError
            The registry failed transiently; try again later.
        UpstreamError
            The registry failed in an unexpected way.
        """
        name = str(RegistryReference(owner, image))
        tags: list[str] = []
        last: str | None = None
        has_more = True
        requests = 0
        while has_more and requests < max_requests:
            self._logger.debug(
                f"Requesting {name}: tags {requests * page_size + 1}-"
                f"{(requests + 1) * page_size}"
            )
            page = await client.list_tags_page(owner, image, page_size, last)
            if page.outcome != Outcome.SUCCESS:
                raise error_for_outcome(page.outcome)
            if not page.tags:
                if requests == 0:
                    raise RepositoryNotFoundError("Repository not found")
                has_more = False
                break
            tags.extend(t for t in page.tags if not is_digest_tag(t))
            has_more = page.has_more
            last = page.tags[-1]
            requests += 1
        if has_more:
            self._logger.warning(
                f"Gave up on {name} after {requests} requests",
                tags=len(tags),
            )
        self._logger.info(f"Found {len(tags)} tags for {name}")
        return tags

    async def list_images(
        self,
        client: ContainerRegistryClient,
        owner: str,
        *,
        page_size: int = 25,
        auth_token: str | None = None,
        next_page: str | None = None,
    ) -> BrowseImagesResult:
        """One page of repositories under ``owner``.

        Raises
        ------
        RegistryBrowserError
            The subclass matching the failed outcome.
        """
        result = await client.list_images(
            owner, page_size, auth_token=auth_token, next_page=next_page
        )
        if result.outcome != Outcome.SUCCESS:
            raise error_for_outcome(result.outcome, result.message)
        return result
