"""Exceptions raised by the caller layer when a registry call fails.

Registry clients themselves never raise for upstream failures; they
return a result carrying an `~registry_browser.models.outcome.Outcome`.
These exceptions are how `~registry_browser.services.browser.RegistryBrowser`
turns those outcomes into something an endpoint or command can report.
Each carries the HTTP status an API layer would answer with.
"""

from .models.outcome import Outcome

__all__ = [
    "AuthenticationRequiredError",
    "CatalogNotSupportedError",
    "RegistryBrowserError",
    "RepositoryNotFoundError",
    "UpstreamError",
    "UpstreamUnavailableError",
    "error_for_outcome",
]


class RegistryBrowserError(Exception):
    """Base class for registry browsing failures."""

    code = "Unknown"
    status_code = 500
    retryable = False


class RepositoryNotFoundError(RegistryBrowserError):
    """Repository or namespace does not exist, or is not visible."""

    code = "NotFound"
    status_code = 404


class UpstreamUnavailableError(RegistryBrowserError):
    """Registry rate-limited us or failed in a way that may go away."""

    code = "TransientUpstream"
    status_code = 503
    retryable = True


class CatalogNotSupportedError(RegistryBrowserError):
    """Registry cannot list repositories; tags by image name may work."""

    code = "CatalogNotSupported"
    status_code = 501


class UpstreamError(RegistryBrowserError):
    """Registry returned a status we have no interpretation for."""

    code = "UpstreamError"
    status_code = 502


class AuthenticationRequiredError(RegistryBrowserError):
    """Listing needs a credential that was missing or rejected."""

    code = "AuthRequired"
    status_code = 401


_ERRORS: dict[Outcome, tuple[type[RegistryBrowserError], str]] = {
    Outcome.NOT_FOUND: (RepositoryNotFoundError, "Repository not found"),
    Outcome.RETRYABLE: (
        UpstreamUnavailableError,
        "Upstream temporary error. Please retry.",
    ),
    Outcome.CATALOG_NOT_SUPPORTED: (
        CatalogNotSupportedError,
        "Registry does not support listing images",
    ),
    Outcome.FATAL: (UpstreamError, "Unexpected response from registry"),
    Outcome.AUTH_REQUIRED: (
        AuthenticationRequiredError,
        "Authentication required",
    ),
}


def error_for_outcome(
    outcome: Outcome, message: str | None = None
) -> RegistryBrowserError:
    """Build the exception matching a failed outcome."""
    if outcome == Outcome.SUCCESS:
        raise ValueError("SUCCESS is not an error outcome")
    cls, default = _ERRORS[outcome]
    return cls(message or default)
