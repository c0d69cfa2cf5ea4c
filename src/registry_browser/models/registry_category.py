from enum import Enum
from typing import Self


class UnknownRegistryError(ValueError):
    """Registry type token does not name a supported registry."""


class RegistryCategory(Enum):
    """Each registry category has its own way of authenticating, paging
    through tags, and listing repositories.  Everything else speaks the
    plain OCI Distribution API and is handled as CUSTOM.
    """

    GHCR = "ghcr"
    DOCKERHUB = "dockerhub"
    QUAY = "quay"
    GCR = "gcr"
    CUSTOM = "custom"

    @classmethod
    def from_name(cls, name: str) -> Self:
        """Case-insensitive lookup of a registry type token."""
        key = name.strip().lower()
        for member in cls:
            if member.value == key:
                return member
        raise UnknownRegistryError(f"Invalid registry type: {name}")
