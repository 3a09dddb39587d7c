"""Shared fixtures and test doubles for hotel-watch."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from hotel_watch.config import (
    ConfigLocator,
    ConfigRepository,
    ExtractionRule,
    MonitorSettings,
    SourceConfig,
)
from hotel_watch.engine import (
    ChangeDetector,
    FetchResponse,
    OfferExtractor,
    SourceRegistry,
)
from hotel_watch.errors import DeliveryError, FetchError
from hotel_watch.notify import NotificationBatcher
from hotel_watch.orchestrator import Monitor


def offer_page(*offers: tuple[str, str | None, str | None]) -> str:
    """Build a page with one ``.promotion`` block per (title, price, description)."""

    blocks = []
    for title, price, description in offers:
        parts = [f"<h3>{title}</h3>"]
        if price is not None:
            parts.append(f'<span class="price">{price}</span>')
        if description is not None:
            parts.append(f'<p class="description">{description}</p>')
        blocks.append(f'<div class="promotion">{"".join(parts)}</div>')
    return f"<html><body>{''.join(blocks)}</body></html>"


class FakeFetcher:
    """Serve canned pages; a value that is an exception is raised instead."""

    def __init__(self, pages: dict[str, Any] | None = None) -> None:
        self.pages: dict[str, Any] = dict(pages or {})
        self.calls: list[str] = []
        self.closed = False

    def fetch(self, location: str, timeout: float | None = None) -> FetchResponse:
        self.calls.append(location)
        page = self.pages.get(location)
        if page is None:
            raise FetchError(location, "Unexpected status 404", status_code=404)
        if isinstance(page, Exception):
            raise page
        return FetchResponse(url=location, status_code=200, text=page, headers={})

    def close(self) -> None:
        self.closed = True


class FakeDispatcher:
    def __init__(self, fail: bool = False, recipients: int = 1) -> None:
        self.fail = fail
        self.recipients = recipients
        self.delivered: list[str] = []
        self.replies: list[tuple[str, str]] = []

    def deliver(self, message: str) -> int:
        if self.fail:
            raise DeliveryError("LINE push rejected with status 500", status_code=500)
        self.delivered.append(message)
        return self.recipients

    def reply(self, token: str, message: str) -> None:
        if self.fail:
            raise DeliveryError("LINE reply rejected with status 400", status_code=400)
        self.replies.append((token, message))


@pytest.fixture(autouse=True)
def hotel_watch_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("HOTEL_WATCH_HOME", str(tmp_path))
    for name in ("LINE_CHANNEL_ACCESS_TOKEN", "LINE_CHANNEL_SECRET", "LINE_USER_ID", "PORT"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def sample_source() -> Callable[..., SourceConfig]:
    def _builder(**overrides: Any) -> SourceConfig:
        base: dict[str, Any] = {
            "name": "Hotel1",
            "location": "https://hotel1.example.com/offers",
            "rule": ExtractionRule(),
        }
        base.update(overrides)
        return SourceConfig(**base)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> Iterable[ConfigRepository]:
    locator = ConfigLocator(project_root=tmp_path)
    yield ConfigRepository(locator)


@pytest.fixture
def monitor_factory() -> Callable[..., Monitor]:
    """Assemble a monitor around in-memory state with no real delays."""

    def _builder(
        sources: Iterable[SourceConfig],
        pages: dict[str, Any],
        dispatcher: FakeDispatcher | None = None,
        **overrides: Any,
    ) -> Monitor:
        sleeps: list[float] = []
        kwargs: dict[str, Any] = {
            "registry": SourceRegistry(sources),
            "fetcher": FakeFetcher(pages),
            "extractor": OfferExtractor(),
            "detector": ChangeDetector(),
            "batcher": NotificationBatcher(),
            "dispatcher": dispatcher if dispatcher is not None else FakeDispatcher(),
            "settings": MonitorSettings(inter_source_delay=3.0),
            "sleep": sleeps.append,
        }
        kwargs.update(overrides)
        monitor = Monitor(**kwargs)
        monitor.sleeps = sleeps  # type: ignore[attr-defined]
        return monitor

    return _builder


@pytest.fixture
def page_html() -> Callable[..., str]:
    return offer_page


@pytest.fixture
def make_dispatcher() -> Callable[..., FakeDispatcher]:
    return FakeDispatcher


@pytest.fixture
def make_fetcher() -> Callable[..., FakeFetcher]:
    return FakeFetcher
