"""In-memory registry of monitored sources."""

from __future__ import annotations

from threading import Lock
from typing import Callable, Iterable

import structlog

from ..config import ExtractionRule, SourceConfig

ChangeCallback = Callable[[list[SourceConfig]], None]


class SourceRegistry:
    """Ordered, name-unique collection of sources with single-writer mutations."""

    def __init__(
        self,
        sources: Iterable[SourceConfig] | None = None,
        on_change: ChangeCallback | None = None,
    ) -> None:
        self._lock = Lock()
        self._sources: list[SourceConfig] = []
        self._on_change = on_change
        self.logger = structlog.get_logger("hotel_watch.registry")
        for source in sources or []:
            if not self._find(source.name):
                self._sources.append(source)

    def add(self, name: str, location: str, rule: ExtractionRule | None = None) -> bool:
        """Register a source; an already registered name is left untouched."""

        source = SourceConfig(name=name, location=location, rule=rule or ExtractionRule())
        with self._lock:
            if self._find(source.name) is not None:
                self.logger.info("source_exists", source=source.name)
                return False
            self._sources.append(source)
            self.logger.info("source_added", source=source.name, location=source.location)
            self._notify()
        return True

    def remove(self, name: str) -> bool:
        """Remove the source whose name matches exactly."""

        key = name.strip()
        with self._lock:
            source = self._find(key)
            if source is None:
                return False
            self._sources.remove(source)
            self.logger.info("source_removed", source=key)
            self._notify()
        return True

    def suggest(self, fragment: str) -> list[str]:
        """Names containing ``fragment`` or contained in it, in registration order."""

        needle = fragment.strip()
        if not needle:
            return []
        return [
            source.name
            for source in self.list()
            if needle in source.name or source.name in needle
        ]

    def get(self, name: str) -> SourceConfig | None:
        with self._lock:
            return self._find(name.strip())

    def list(self) -> list[SourceConfig]:
        with self._lock:
            return list(self._sources)

    def names(self) -> list[str]:
        return [source.name for source in self.list()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._sources)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def _find(self, name: str) -> SourceConfig | None:
        for source in self._sources:
            if source.name == name:
                return source
        return None

    def _notify(self) -> None:
        # Runs with self._lock held.
        if self._on_change is not None:
            self._on_change(list(self._sources))


__all__ = ["SourceRegistry"]
