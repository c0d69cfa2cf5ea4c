"""Model for repositories returned by registry listing APIs."""

import datetime
from dataclasses import dataclass, field, fields
from typing import Any, Self, TypeAlias

from .outcome import Outcome
from .registry_category import RegistryCategory

JSONListing: TypeAlias = dict[str, Any]


def _camel(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(x.capitalize() for x in rest)


def _iso(date: datetime.datetime | None) -> str | None:
    return None if date is None else date.isoformat()


@dataclass(frozen=True)
class RegistryReference:
    """An ``owner/image`` pair, already validated by the caller."""

    owner: str
    image: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.image}"


@dataclass(frozen=True)
class ImageMetadata:
    """Vendor-specific extras.  Anything a vendor does not expose stays
    None and is left out of the serialized form.
    """

    description: str | None = None
    star_count: int | None = None
    pull_count: int | None = None
    is_public: bool | None = None
    repository_state: str | None = None
    package_id: int | None = None
    visibility: str | None = None
    html_url: str | None = None
    project_id: str | None = None

    def to_dict(self) -> JSONListing:
        return {
            _camel(f.name): getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass(frozen=True)
class ImageListing:
    """One repository from a vendor's catalog or listing API."""

    owner: str
    image_name: str
    registry_type: RegistryCategory
    last_updated: datetime.datetime | None = None
    created_at: datetime.datetime | None = None
    metadata: ImageMetadata = field(default_factory=ImageMetadata)

    def to_dict(self) -> JSONListing:
        return {
            "owner": self.owner,
            "imageName": self.image_name,
            "registryType": self.registry_type.value,
            "lastUpdated": _iso(self.last_updated),
            "createdAt": _iso(self.created_at),
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class BrowseImagesResult:
    """A page of repositories, plus an opaque cursor for the next one.

    The cursor is whatever the vendor hands back (a full URL for Docker
    Hub, GitHub, and catalog ``Link`` headers) and is passed back in
    verbatim to fetch the following page.
    """

    images: tuple[ImageListing, ...] = field(default_factory=tuple)
    total_count: int | None = None
    next_page_cursor: str | None = None
    outcome: Outcome = Outcome.SUCCESS
    message: str | None = None

    @classmethod
    def failure(
        cls, outcome: Outcome, message: str | None = None
    ) -> Self:
        return cls(outcome=outcome, message=message)

    def to_dict(self) -> JSONListing:
        return {
            "images": [x.to_dict() for x in self.images],
            "totalCount": self.total_count,
            "nextPageUrl": self.next_page_cursor,
        }
