"""NEW / CHANGED / UNCHANGED classification of observed offers."""

from __future__ import annotations

from threading import Lock

import structlog

from .models import Classification, Offer, OfferFingerprint
from .state import MemoryStateStore, StateStore


class ChangeDetector:
    """Own the observed state and classify each offer against it.

    ``classify`` decides and updates in one step, so calling it twice for the
    same offer in one sweep yields NEW then UNCHANGED. Only the price is
    compared; description drift alone is not a change.
    """

    def __init__(self, store: StateStore | None = None) -> None:
        self.store = store or MemoryStateStore()
        self._observed: dict[OfferFingerprint, Offer] = self.store.load()
        self._lock = Lock()
        self.logger = structlog.get_logger("hotel_watch.detector")

    def classify(self, offer: Offer) -> Classification:
        fingerprint = offer.fingerprint
        with self._lock:
            previous = self._observed.get(fingerprint)
            if previous is None:
                outcome = Classification.NEW
            elif offer.price != previous.price:
                outcome = Classification.CHANGED
            else:
                return Classification.UNCHANGED
            self._observed[fingerprint] = offer
            self.store.save(fingerprint, offer)
        self.logger.debug(
            "offer_classified",
            source=offer.source_name,
            title=offer.title,
            outcome=outcome.value,
            previous_price=previous.price if previous else None,
            price=offer.price,
        )
        return outcome

    def get(self, fingerprint: OfferFingerprint) -> Offer | None:
        with self._lock:
            return self._observed.get(fingerprint)

    @property
    def observed_count(self) -> int:
        with self._lock:
            return len(self._observed)

    def reset(self) -> None:
        with self._lock:
            self._observed.clear()
            self.store.clear()


__all__ = ["ChangeDetector"]
