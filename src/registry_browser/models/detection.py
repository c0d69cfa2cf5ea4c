"""Model for the result of probing an arbitrary registry URL."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RegistryCapabilities:
    """What a detected registry can be asked to do."""

    supports_catalog: bool = False
    supports_tags_list: bool = True


@dataclass(frozen=True)
class RegistryDetectionResult:
    supported: bool
    normalized_url: str | None = None
    api_version: str | None = None
    capabilities: RegistryCapabilities | None = None
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        caps: dict[str, bool] | None = None
        if self.capabilities is not None:
            caps = {
                "catalog": self.capabilities.supports_catalog,
                "tagsList": self.capabilities.supports_tags_list,
            }
        return {
            "supported": self.supported,
            "normalizedUrl": self.normalized_url,
            "apiVersion": self.api_version,
            "capabilities": caps,
            "errorMessage": self.error_message,
        }
