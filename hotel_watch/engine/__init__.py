"""Engine components orchestrating fetch → extract → classify."""

from .detector import ChangeDetector
from .extractor import OfferExtractor
from .fetcher import FetchResponse, Fetcher, PageFetcher
from .models import Classification, Offer, OfferFingerprint, SourceFailure, SweepResult
from .registry import SourceRegistry
from .state import MemoryStateStore, SQLiteStateStore, StateStore

__all__ = [
    "ChangeDetector",
    "Classification",
    "FetchResponse",
    "Fetcher",
    "MemoryStateStore",
    "Offer",
    "OfferExtractor",
    "OfferFingerprint",
    "PageFetcher",
    "SQLiteStateStore",
    "SourceFailure",
    "SourceRegistry",
    "StateStore",
    "SweepResult",
]
