"""Decide whether an arbitrary URL hosts a usable OCI registry."""

import asyncio

import httpx
import structlog
from pydantic import HttpUrl, TypeAdapter, ValidationError
from structlog.stdlib import BoundLogger

from ..models.detection import RegistryCapabilities, RegistryDetectionResult

__all__ = [
    "API_VERSION_HEADER",
    "InvalidRegistryURLError",
    "RegistryDetector",
    "normalize_registry_url",
]

API_VERSION_HEADER = "Docker-Distribution-Api-Version"

_URL_ADAPTER = TypeAdapter(HttpUrl)


class InvalidRegistryURLError(ValueError):
    """The string given cannot be turned into an http(s) registry URL."""


def normalize_registry_url(url: str) -> str:
    """Canonical form of a user-supplied registry URL.

    ``https://`` is assumed when no scheme is given, and the result never
    ends in a slash: ``docker.redpanda.com`` becomes
    ``https://docker.redpanda.com``.
    """
    url = url.strip()
    if not url:
        raise InvalidRegistryURLError("URL cannot be empty")
    scheme, sep, _ = url.partition("://")
    if not sep:
        url = f"https://{url}"
    elif scheme.lower() not in ("http", "https"):
        raise InvalidRegistryURLError("URL must use HTTP or HTTPS")
    try:
        parsed = _URL_ADAPTER.validate_python(url)
    except ValidationError as exc:
        raise InvalidRegistryURLError("Invalid URL format") from exc
    return str(parsed).rstrip("/")


class RegistryDetector:
    """Probe ``/v2/`` once to see whether a registry speaks OCI.

    The probe is a liveness check, not a data call, so it gets a short
    timeout and no retries.  Every failure, including network failure,
    comes back as an unsupported result with a message saying why.

    Parameters
    ----------
    timeout
        Seconds to wait for the probe.
    user_agent
        User-Agent header for the probe.
    transport
        Transport for the probe client; the test suite substitutes a mock.
    logger
        Logger to use for messages.
    """

    def __init__(
        self,
        *,
        timeout: float = 5.0,
        user_agent: str = "registry-browser",
        transport: httpx.AsyncBaseTransport | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._timeout = timeout
        self._user_agent = user_agent
        self._transport = transport
        self._logger = logger or structlog.get_logger(__name__)

    async def detect(self, url: str) -> RegistryDetectionResult:
        try:
            normalized = normalize_registry_url(url)
        except InvalidRegistryURLError as exc:
            return RegistryDetectionResult(
                supported=False, error_message=str(exc)
            )

        probe = f"{normalized}/v2/"
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._timeout,
                headers={"User-Agent": self._user_agent},
            ) as client:
                r = await client.get(probe)
        except httpx.TimeoutException:
            self._logger.warning(
                f"Registry detection timeout for {normalized}"
            )
            return self._unsupported(
                normalized, "Connection timeout. Registry may be unreachable."
            )
        except httpx.TransportError as exc:
            self._logger.warning(
                f"Failed to connect to registry {normalized}", error=str(exc)
            )
            return self._unsupported(
                normalized, f"Unable to connect to registry: {exc}"
            )
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                # Our own task is being cancelled; let that happen.
                raise
            self._logger.info(f"Registry detection for {normalized} cancelled")
            return self._unsupported(normalized, "Request was cancelled")

        self._logger.info(
            f"Registry detection probe {probe} returned {r.status_code}"
        )
        return self._decide(normalized, r)

    def _decide(
        self, normalized: str, r: httpx.Response
    ) -> RegistryDetectionResult:
        if r.status_code == 404:
            return self._unsupported(
                normalized,
                "Registry does not support OCI Distribution API v2 "
                "(/v2/ endpoint not found)",
            )
        if r.status_code == 401 or r.is_success:
            api_version = r.headers.get(API_VERSION_HEADER)
            if api_version is None:
                return self._unsupported(
                    normalized,
                    "Registry responded but did not return "
                    f"{API_VERSION_HEADER} header (missing API version "
                    "header)",
                )
            self._logger.info(
                f"Detected OCI registry at {normalized}",
                api_version=api_version,
            )
            # Catalog support would take a separate /v2/_catalog request.
            return RegistryDetectionResult(
                supported=True,
                normalized_url=normalized,
                api_version=api_version,
                capabilities=RegistryCapabilities(
                    supports_catalog=False, supports_tags_list=True
                ),
            )
        return self._unsupported(
            normalized,
            f"Registry returned unexpected status code: {r.status_code}",
        )

    def _unsupported(
        self, normalized: str, message: str
    ) -> RegistryDetectionResult:
        return RegistryDetectionResult(
            supported=False, normalized_url=normalized, error_message=message
        )
