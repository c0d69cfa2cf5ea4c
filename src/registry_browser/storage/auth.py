"""Bearer token exchange after a registry's 401 challenge.

Registries speaking the OCI Distribution API answer an anonymous request
for a protected resource with 401 and a header of the form::

    WWW-Authenticate: Bearer realm="https://ghcr.io/token",
        service="ghcr.io",scope="repository:owner/image:pull"

A client then fetches ``{realm}?service=...&scope=...`` and retries with
the ``token`` (or ``access_token``) from the JSON body.  Well-known
registries have a fixed token endpoint, so we do not need to look at the
challenge at all for those.

No failure here is an exception: anything that prevents getting a token
just yields ``None``.
"""

import re
from abc import abstractmethod
from dataclasses import dataclass

import httpx
import structlog
from structlog.stdlib import BoundLogger

__all__ = [
    "BearerChallenge",
    "ChallengeTokenProvider",
    "FixedRealmTokenProvider",
    "TokenProvider",
    "parse_bearer_challenge",
    "pull_scope",
]

_CHALLENGE_PARAM = re.compile(r'(\w+)\s*=\s*(?:"([^"]*)"|([^\s,]+))')


@dataclass(frozen=True)
class BearerChallenge:
    """Parameters of a ``WWW-Authenticate: Bearer`` challenge."""

    realm: str
    service: str | None = None
    scope: str | None = None


def pull_scope(repository: str) -> str:
    return f"repository:{repository}:pull"


def parse_bearer_challenge(header: str | None) -> BearerChallenge | None:
    """Parse a ``WWW-Authenticate`` value.

    Returns None unless the scheme is Bearer and a realm is present.
    """
    if not header:
        return None
    scheme, _, params = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    parsed = {
        m.group(1).lower(): (
            m.group(2) if m.group(2) is not None else m.group(3)
        )
        for m in _CHALLENGE_PARAM.finditer(params)
    }
    realm = parsed.get("realm")
    if not realm:
        return None
    return BearerChallenge(
        realm=realm, service=parsed.get("service"), scope=parsed.get("scope")
    )


class TokenProvider:
    """Obtain a pull token for a repository.

    The token endpoint usually lives on a different host than the
    registry, so every exchange uses its own short-lived HTTP client
    rather than the registry's.  ``transport`` exists so that the test
    suite can substitute a mock.
    """

    def __init__(
        self,
        *,
        user_agent: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._user_agent = user_agent
        self._timeout = timeout
        self._transport = transport
        self._logger = logger or structlog.get_logger(__name__)

    @abstractmethod
    async def acquire(
        self, repository: str, challenge: httpx.Response
    ) -> str | None:
        """Return a bearer token for ``repository``, or None.

        ``challenge`` is the 401 response that prompted the exchange.
        """
        ...

    async def _fetch_token(
        self, realm: str, service: str | None, scope: str | None
    ) -> str | None:
        params: dict[str, str] = {}
        if service:
            params["service"] = service
        if scope:
            params["scope"] = scope
        self._logger.debug(f"Acquiring token from {realm}", params=params)
        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self._timeout,
            headers={"User-Agent": self._user_agent},
        ) as client:
            try:
                r = await client.get(realm, params=params)
            except httpx.TransportError as exc:
                self._logger.warning(
                    f"Token request to {realm} failed", error=str(exc)
                )
                return None
        if not r.is_success:
            self._logger.warning(
                f"Token request failed with status {r.status_code}",
                realm=realm,
                scope=scope,
            )
            return None
        try:
            body = r.json()
        except ValueError:
            self._logger.exception(
                f"Failed to parse token response for {scope}"
            )
            return None
        if not isinstance(body, dict):
            self._logger.warning(
                f"Token response for {scope} is not an object"
            )
            return None
        token = body.get("token") or body.get("access_token")
        if not token or not isinstance(token, str):
            self._logger.warning(f"Token response for {scope} has no token")
            return None
        return token


class FixedRealmTokenProvider(TokenProvider):
    """Token exchange against a vendor's well-known token endpoint."""

    def __init__(
        self,
        realm: str,
        service: str | None,
        *,
        user_agent: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        super().__init__(
            user_agent=user_agent,
            timeout=timeout,
            transport=transport,
            logger=logger,
        )
        self._realm = realm
        self._service = service

    async def acquire(
        self, repository: str, challenge: httpx.Response
    ) -> str | None:
        return await self._fetch_token(
            self._realm, self._service, pull_scope(repository)
        )


class ChallengeTokenProvider(TokenProvider):
    """Token exchange driven by the registry's own challenge header."""

    async def acquire(
        self, repository: str, challenge: httpx.Response
    ) -> str | None:
        header = challenge.headers.get("www-authenticate")
        if not header:
            self._logger.warning("401 but no WWW-Authenticate header")
            return None
        parsed = parse_bearer_challenge(header)
        if parsed is None:
            self._logger.warning(
                "Unusable WWW-Authenticate challenge", header=header
            )
            return None
        # Some registries omit the scope when challenging a catalog or
        # /v2/ request; ask for pull on the repository we want.
        scope = parsed.scope
        if not scope and repository:
            scope = pull_scope(repository)
        return await self._fetch_token(parsed.realm, parsed.service, scope)
