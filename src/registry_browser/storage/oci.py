"""Request protocol shared by every client speaking the OCI Distribution
API: status classification, the single token-exchange retry, and paging
through ``/v2/<repository>/tags/list``.

https://github.com/opencontainers/distribution-spec/blob/main/spec.md
"""

from dataclasses import dataclass
from typing import Any

import httpx
import structlog
from structlog.stdlib import BoundLogger

from ..models.outcome import Outcome, ResponseClass
from ..models.tag import TagPageResult
from .auth import TokenProvider

__all__ = [
    "DistributionProtocol",
    "Fetched",
    "classify_status",
    "repository_path",
]


def classify_status(status: int) -> ResponseClass:
    """Map an HTTP status code onto how we treat the response.

    403 is not-found rather than a permission problem: ghcr.io (among
    others) answers anonymous requests for nonexistent repositories that
    way.  401 is retryable because it means "get a token and try again".
    """
    if status in (403, 404):
        return ResponseClass.NOT_FOUND
    if status in (401, 429) or status >= 500:
        return ResponseClass.RETRYABLE
    if 200 <= status < 300:
        return ResponseClass.SUCCESS
    return ResponseClass.FATAL


def repository_path(owner: str, image: str) -> str:
    return f"{owner}/{image}".lower()


@dataclass(frozen=True)
class Fetched:
    """Final disposition of a GET, after any token retry.

    ``response`` is the last response received, if there was one; it is
    only safe to read the body when ``outcome`` is SUCCESS.
    """

    outcome: Outcome
    response: httpx.Response | None = None

    @property
    def status_code(self) -> int | None:
        return None if self.response is None else self.response.status_code


class DistributionProtocol:
    """The anonymous-first request protocol against one registry.

    Holds no state between calls; the HTTP client (and its connection
    pool) belongs to whoever constructed us.

    Parameters
    ----------
    http_client
        Client used for all registry requests.
    base_url
        Registry API root, e.g. ``https://ghcr.io``.
    token_provider
        How to get a bearer token after a 401.  If None, a 401 is final.
    client_side_paging
        The registry ignores ``n`` and ``last`` and always returns every
        tag, so pages must be cut locally.
    logger
        Logger to use for messages.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        token_provider: TokenProvider | None = None,
        *,
        client_side_paging: bool = False,
        logger: BoundLogger | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("Registry base URL must not be empty")
        self._http_client = http_client
        self._url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._client_side_paging = client_side_paging
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def base_url(self) -> str:
        return self._url

    async def send(
        self,
        url: httpx.URL | str,
        *,
        bearer: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Issue one GET.  Transport errors propagate."""
        req_headers = dict(headers or {})
        if bearer:
            req_headers["Authorization"] = f"Bearer {bearer}"
        r = await self._http_client.get(url, headers=req_headers)
        self._logger.debug(f"HTTP GET {url} -> {r.status_code}")
        return r

    async def fetch(
        self,
        url: httpx.URL | str,
        repository: str,
        *,
        bearer: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> Fetched:
        """GET ``url``, exchanging a 401 challenge for a token exactly once.

        A 401 that cannot be turned into a token, or that persists with
        one, is reported as NOT_FOUND.  Public registries do that almost
        only for repositories that do not exist, though it also hides a
        token endpoint that is down.
        """
        try:
            r = await self.send(url, bearer=bearer, headers=headers)
        except httpx.TransportError as exc:
            self._logger.warning(f"Request to {url} failed", error=str(exc))
            return Fetched(Outcome.RETRYABLE)
        first = self._disposition(r)
        if first.outcome != Outcome.RETRYABLE or r.status_code != 401:
            if first.outcome == Outcome.FATAL:
                self._logger.warning(
                    f"Unexpected status code {r.status_code} for {url}"
                )
            return first

        if self._token_provider is None:
            self._logger.info(f"{url} requires authentication; no provider")
            return Fetched(Outcome.NOT_FOUND, r)
        self._logger.debug(f"Acquiring token for {repository or url}")
        token = await self._token_provider.acquire(repository, r)
        if token is None:
            self._logger.warning(f"Failed to acquire token for {repository}")
            return Fetched(Outcome.NOT_FOUND, r)

        try:
            r = await self.send(url, bearer=token, headers=headers)
        except httpx.TransportError as exc:
            self._logger.warning(f"Request to {url} failed", error=str(exc))
            return Fetched(Outcome.RETRYABLE)
        second = self._disposition(r)
        if second.outcome == Outcome.RETRYABLE and r.status_code == 401:
            self._logger.info(f"{url}: still 401 after token acquisition")
            return Fetched(Outcome.NOT_FOUND, r)
        return second

    def _disposition(self, r: httpx.Response) -> Fetched:
        match classify_status(r.status_code):
            case ResponseClass.SUCCESS:
                return Fetched(Outcome.SUCCESS, r)
            case ResponseClass.NOT_FOUND:
                return Fetched(Outcome.NOT_FOUND, r)
            case ResponseClass.RETRYABLE:
                return Fetched(Outcome.RETRYABLE, r)
            case _:
                return Fetched(Outcome.FATAL, r)

    async def list_tags_page(
        self, repository: str, page_size: int, last: str | None = None
    ) -> TagPageResult:
        """Fetch one page of tags for ``repository``.

        ``last`` is the final tag of the previous page.  If the registry
        sends no ``Link`` header we assume there is more whenever the page
        came back full, which is wrong exactly when the last page happens
        to be full.
        """
        if page_size < 1:
            raise ValueError(f"Page size must be positive, not {page_size}")
        url = httpx.URL(f"{self._url}/v2/{repository}/tags/list")
        if not self._client_side_paging:
            params: dict[str, str | int] = {"n": page_size}
            if last:
                params["last"] = last
            url = url.copy_merge_params(params)
        self._logger.info(f"Fetching tags for {repository} from {self._url}")

        fetched = await self.fetch(url, repository)
        if fetched.outcome != Outcome.SUCCESS or fetched.response is None:
            self._logger.info(
                f"No tags for {repository}: {fetched.outcome.value}",
                status=fetched.status_code,
            )
            return TagPageResult.failure(fetched.outcome)

        r = fetched.response
        try:
            tags = self._extract_tags(r.json())
        except (ValueError, TypeError):
            self._logger.exception(
                f"Failed to parse response for {repository}"
            )
            return TagPageResult.failure(Outcome.RETRYABLE)

        if self._client_side_paging and not tags:
            self._logger.info(f"Repository {repository} has no tags")
            return TagPageResult.failure(Outcome.NOT_FOUND)

        remainder = False
        if self._client_side_paging or len(tags) > page_size:
            tags, remainder = self._cut_page(tags, page_size, last)

        if "link" in r.headers:
            has_more = remainder or "next" in r.links
        else:
            has_more = remainder or len(tags) == page_size
        self._logger.info(f"Retrieved {len(tags)} tags for {repository}")
        return TagPageResult.page(tags, has_more=has_more)

    def _extract_tags(self, body: Any) -> list[str]:
        if not isinstance(body, dict):
            raise TypeError(f"Tag list is not a JSON object: {body!r}")
        tags = body.get("tags") or []
        if not isinstance(tags, list) or not all(
            isinstance(t, str) for t in tags
        ):
            raise TypeError(f"'tags' is not a list of strings: {tags!r}")
        return tags

    def _cut_page(
        self, tags: list[str], page_size: int, last: str | None
    ) -> tuple[list[str], bool]:
        # Registries that ignore "last" send everything again; skip past
        # the cursor if we find it.
        start = 0
        if last and last in tags:
            start = tags.index(last) + 1
        page = tags[start : start + page_size]
        return page, start + len(page) < len(tags)
