"""Model for one page of tags from a registry."""

from dataclasses import dataclass, field
from typing import Self, TypeAlias

from .outcome import Outcome

JSONTagPage: TypeAlias = dict[str, list[str] | bool]


@dataclass(frozen=True)
class TagPageResult:
    """Tags returned by a single "list tags" call.

    ``not_found`` and ``retryable`` are derived from a single outcome, so
    they can never both be set.  ``has_more`` only means anything for a
    successful page.
    """

    tags: tuple[str, ...] = field(default_factory=tuple)
    outcome: Outcome = Outcome.SUCCESS
    has_more: bool = False

    @property
    def not_found(self) -> bool:
        return self.outcome == Outcome.NOT_FOUND

    @property
    def retryable(self) -> bool:
        return self.outcome == Outcome.RETRYABLE

    @property
    def fatal(self) -> bool:
        return self.outcome == Outcome.FATAL

    @classmethod
    def page(cls, tags: list[str], *, has_more: bool) -> Self:
        return cls(tags=tuple(tags), has_more=has_more)

    @classmethod
    def failure(cls, outcome: Outcome) -> Self:
        """Empty result for anything that did not yield a page."""
        if outcome == Outcome.SUCCESS:
            raise ValueError("A failed tag page cannot have outcome SUCCESS")
        return cls(outcome=outcome)

    def to_dict(self) -> JSONTagPage:
        return {
            "tags": list(self.tags),
            "notFound": self.not_found,
            "retryable": self.retryable,
            "hasMore": self.has_more,
        }
