"""Storage driver for Google Container Registry (gcr.io)."""

import httpx
import structlog
from structlog.stdlib import BoundLogger

from ..models.image import BrowseImagesResult
from ..models.outcome import Outcome
from ..models.registry_category import RegistryCategory
from .auth import TokenProvider
from .oci import DistributionProtocol
from .registry import ContainerRegistryClient


class GcrClient(ContainerRegistryClient):
    """Client for gcr.io.

    gcr.io returns the whole tag list for a repository no matter what
    ``n`` and ``last`` say, so pages are cut locally.  There is no way to
    enumerate the images in a project; the caller must know the image
    name.
    """

    category = RegistryCategory.GCR

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        base_url: str = "https://gcr.io",
        token_provider: TokenProvider | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._logger = logger or structlog.get_logger(__name__)
        self._distribution = DistributionProtocol(
            http_client,
            base_url,
            token_provider,
            client_side_paging=True,
            logger=self._logger,
        )

    @property
    def distribution(self) -> DistributionProtocol:
        return self._distribution

    def format_reference(self, owner: str, image: str, tag: str) -> str:
        return f"gcr.io/{self.repository_path(owner, image)}:{tag}"

    async def list_images(
        self,
        owner: str,
        page_size: int,
        auth_token: str | None = None,
        next_page: str | None = None,
    ) -> BrowseImagesResult:
        self._logger.debug(f"Image listing requested for GCR project {owner}")
        return BrowseImagesResult.failure(
            Outcome.CATALOG_NOT_SUPPORTED,
            "Google Container Registry cannot list images; enter the image "
            "name directly.",
        )
