"""Runtime records flowing through a sweep."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple

TITLE_MAX_LENGTH = 100
PRICE_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 200


class OfferFingerprint(NamedTuple):
    """Stable identity of an offer across sweeps; price never takes part in it."""

    source_name: str
    title: str

    @classmethod
    def of(cls, source_name: str, title: str) -> "OfferFingerprint":
        return cls(source_name.strip(), title.strip()[:TITLE_MAX_LENGTH])

    def key(self) -> str:
        return f"{self.source_name}-{self.title}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Offer:
    """A single promotion observed on a source page."""

    source_name: str
    title: str
    source_location: str
    price: str | None = None
    description: str | None = None
    observed_at: datetime = field(default_factory=_utcnow)

    @property
    def fingerprint(self) -> OfferFingerprint:
        return OfferFingerprint.of(self.source_name, self.title)


class Classification(str, Enum):
    NEW = "new"
    CHANGED = "changed"
    UNCHANGED = "unchanged"

    @property
    def notifiable(self) -> bool:
        return self is not Classification.UNCHANGED


@dataclass(frozen=True, slots=True)
class SourceFailure:
    source_name: str
    error: Exception

    @property
    def kind(self) -> str:
        return type(self.error).__name__


@dataclass(slots=True)
class SweepResult:
    """Outcome of one full pass over the registered sources."""

    sources_checked: int = 0
    changed_offers: list[Offer] = field(default_factory=list)
    failures: list[SourceFailure] = field(default_factory=list)
    started_at: datetime = field(default_factory=_utcnow)
    finished_at: datetime | None = None
    notified: bool = False

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def failed_sources(self) -> list[str]:
        return [failure.source_name for failure in self.failures]


__all__ = [
    "Classification",
    "DESCRIPTION_MAX_LENGTH",
    "Offer",
    "OfferFingerprint",
    "PRICE_MAX_LENGTH",
    "SourceFailure",
    "SweepResult",
    "TITLE_MAX_LENGTH",
]
