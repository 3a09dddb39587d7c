"""Persistence backends for the observed offer state."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Dict, Protocol

from ..infra.storage import SQLiteManager
from .models import Offer, OfferFingerprint


class StateStore(Protocol):
    """Snapshot-on-update, load-on-start storage of last-seen offers."""

    def load(self) -> Dict[OfferFingerprint, Offer]:
        """Return every stored offer keyed by fingerprint."""

    def save(self, fingerprint: OfferFingerprint, offer: Offer) -> None:
        """Persist ``offer`` as the last-seen value for ``fingerprint``."""

    def clear(self) -> None:
        """Forget every stored offer."""


class MemoryStateStore:
    """Process-lifetime store; history is lost on restart."""

    def __init__(self) -> None:
        self._offers: Dict[OfferFingerprint, Offer] = {}

    def load(self) -> Dict[OfferFingerprint, Offer]:
        return dict(self._offers)

    def save(self, fingerprint: OfferFingerprint, offer: Offer) -> None:
        self._offers[fingerprint] = offer

    def clear(self) -> None:
        self._offers.clear()


class SQLiteStateStore:
    """Write-through store backed by the ``observed_offers`` table."""

    def __init__(self, manager: SQLiteManager, db_path: Path) -> None:
        self.manager = manager
        self.db_path = db_path
        self._lock = Lock()
        self._conn = self.manager.connect(db_path)

    def load(self) -> Dict[OfferFingerprint, Offer]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT source_name, title, price, description, source_location, observed_at"
                " FROM observed_offers"
            ).fetchall()
        offers: Dict[OfferFingerprint, Offer] = {}
        for row in rows:
            offer = Offer(
                source_name=row["source_name"],
                title=row["title"],
                price=row["price"],
                description=row["description"],
                source_location=row["source_location"],
                observed_at=datetime.fromisoformat(row["observed_at"]),
            )
            offers[offer.fingerprint] = offer
        return offers

    def save(self, fingerprint: OfferFingerprint, offer: Offer) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO observed_offers"
                "(source_name, title, price, description, source_location, observed_at)"
                " VALUES (?, ?, ?, ?, ?, ?)",
                (
                    fingerprint.source_name,
                    fingerprint.title,
                    offer.price,
                    offer.description,
                    offer.source_location,
                    offer.observed_at.isoformat(),
                ),
            )
            self._conn.commit()

    def clear(self) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM observed_offers")
            self._conn.commit()


__all__ = ["MemoryStateStore", "SQLiteStateStore", "StateStore"]
