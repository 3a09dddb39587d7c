"""HTTP fetching of source pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Protocol

import httpx
import structlog

from ..config import MonitorSettings
from ..errors import FetchError


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    text: str
    headers: Dict[str, str]
    raw: httpx.Response | None = field(repr=False, default=None)


class PageFetcher(Protocol):
    """What the monitor needs from a fetcher."""

    def fetch(self, location: str, timeout: float | None = None) -> FetchResponse:
        """Return the page at ``location`` or raise ``FetchError``."""

    def close(self) -> None:
        """Release underlying resources."""


class Fetcher:
    """Fetch source pages with a browser-like User-Agent and a bounded timeout."""

    def __init__(
        self,
        settings: MonitorSettings,
        logger: structlog.BoundLogger | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger or structlog.get_logger("hotel_watch.fetcher")
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=settings.fetch_timeout,
            headers={"User-Agent": settings.user_agent},
        )

    def close(self) -> None:
        self._client.close()

    def fetch(self, location: str, timeout: float | None = None) -> FetchResponse:
        effective_timeout = timeout or self.settings.fetch_timeout
        try:
            response = self._client.get(location, timeout=effective_timeout)
        except httpx.TimeoutException as exc:
            self.logger.warning("fetch_timeout", url=location, timeout=effective_timeout)
            raise FetchError(location, f"Timed out after {effective_timeout}s") from exc
        except httpx.HTTPError as exc:
            self.logger.warning("fetch_error", url=location, error=str(exc))
            raise FetchError(location, f"Request failed: {exc}") from exc

        if self._is_failure(response):
            self.logger.warning("fetch_bad_status", url=location, status=response.status_code)
            raise FetchError(
                location,
                f"Unexpected status {response.status_code}",
                status_code=response.status_code,
            )
        return FetchResponse(
            url=str(response.url),
            status_code=response.status_code,
            text=response.text,
            headers=dict(response.headers),
            raw=response,
        )

    @staticmethod
    def _is_failure(response: httpx.Response) -> bool:
        return response.status_code >= 400


__all__ = ["FetchResponse", "Fetcher", "PageFetcher"]
