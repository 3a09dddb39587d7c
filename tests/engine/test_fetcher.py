from __future__ import annotations

import httpx
import pytest

from hotel_watch.config import MonitorSettings
from hotel_watch.engine import Fetcher
from hotel_watch.errors import FetchError


def _fetcher(handler) -> Fetcher:
    settings = MonitorSettings(fetch_timeout=5)
    client = httpx.Client(
        transport=httpx.MockTransport(handler),
        headers={"User-Agent": settings.user_agent},
        follow_redirects=True,
    )
    return Fetcher(settings, client=client)


def test_fetch_returns_body_and_sends_user_agent() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["ua"] = request.headers.get("User-Agent")
        return httpx.Response(200, text="<html>ok</html>", headers={"Server": "mock"})

    fetcher = _fetcher(handler)
    response = fetcher.fetch("https://hotel.example.com/")
    assert response.status_code == 200
    assert response.text == "<html>ok</html>"
    assert response.headers["server"] == "mock"
    assert seen["ua"].startswith("Mozilla/5.0")
    fetcher.close()


def test_fetch_follows_redirects() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old":
            return httpx.Response(302, headers={"Location": "https://hotel.example.com/new"})
        return httpx.Response(200, text="moved")

    response = _fetcher(handler).fetch("https://hotel.example.com/old")
    assert response.text == "moved"
    assert response.url == "https://hotel.example.com/new"


@pytest.mark.parametrize("status", [403, 404, 500, 503])
def test_error_status_raises_fetch_error(status: int) -> None:
    fetcher = _fetcher(lambda request: httpx.Response(status))
    with pytest.raises(FetchError) as excinfo:
        fetcher.fetch("https://hotel.example.com/")
    assert excinfo.value.status_code == status
    assert excinfo.value.location == "https://hotel.example.com/"


def test_timeout_raises_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(FetchError) as excinfo:
        _fetcher(handler).fetch("https://hotel.example.com/", timeout=1)
    assert "Timed out" in excinfo.value.reason
    assert excinfo.value.status_code is None


def test_connection_error_raises_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(FetchError) as excinfo:
        _fetcher(handler).fetch("https://hotel.example.com/")
    assert "Request failed" in excinfo.value.reason
