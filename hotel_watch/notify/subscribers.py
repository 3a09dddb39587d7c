"""Explicit registry of notification recipients."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Dict, Protocol

import structlog

from ..infra.storage import SQLiteManager


class SubscriberStore(Protocol):
    def load(self) -> Dict[str, str]:
        """Return subscriber id → delivery target."""

    def save(self, subscriber_id: str, target: str) -> None:
        """Persist one subscription."""

    def delete(self, subscriber_id: str) -> None:
        """Drop one subscription."""


class SQLiteSubscriberStore:
    """Subscriptions kept in the ``subscribers`` table next to the observed offers."""

    def __init__(self, manager: SQLiteManager, db_path: Path) -> None:
        self._lock = Lock()
        self._conn = manager.connect(db_path)

    def load(self) -> Dict[str, str]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT subscriber_id, target FROM subscribers ORDER BY subscribed_at"
            ).fetchall()
        return {row["subscriber_id"]: row["target"] for row in rows}

    def save(self, subscriber_id: str, target: str) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO subscribers(subscriber_id, target, subscribed_at)"
                " VALUES (?, ?, ?)",
                (subscriber_id, target, datetime.now(timezone.utc).isoformat()),
            )
            self._conn.commit()

    def delete(self, subscriber_id: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM subscribers WHERE subscriber_id = ?", (subscriber_id,))
            self._conn.commit()


class SubscriberRegistry:
    """Map a subscriber identity to the target notifications are pushed to."""

    def __init__(self, store: SubscriberStore | None = None) -> None:
        self._store = store
        self._lock = Lock()
        self._targets: Dict[str, str] = store.load() if store is not None else {}
        self.logger = structlog.get_logger("hotel_watch.subscribers")

    def subscribe(self, subscriber_id: str, target: str | None = None) -> bool:
        """Register ``subscriber_id``; returns False when it was already subscribed."""

        destination = target or subscriber_id
        with self._lock:
            if self._targets.get(subscriber_id) == destination:
                return False
            self._targets[subscriber_id] = destination
            if self._store is not None:
                self._store.save(subscriber_id, destination)
        self.logger.info("subscriber_added", subscriber=subscriber_id)
        return True

    def unsubscribe(self, subscriber_id: str) -> bool:
        with self._lock:
            if subscriber_id not in self._targets:
                return False
            del self._targets[subscriber_id]
            if self._store is not None:
                self._store.delete(subscriber_id)
        self.logger.info("subscriber_removed", subscriber=subscriber_id)
        return True

    def targets(self) -> list[str]:
        with self._lock:
            return list(dict.fromkeys(self._targets.values()))

    def __contains__(self, subscriber_id: object) -> bool:
        with self._lock:
            return subscriber_id in self._targets

    def __len__(self) -> int:
        with self._lock:
            return len(self._targets)


__all__ = ["SQLiteSubscriberStore", "SubscriberRegistry", "SubscriberStore"]
