"""Outbound message delivery through the LINE Messaging API."""

from __future__ import annotations

from typing import Protocol

import httpx
import structlog

from ..config import LineConfig
from ..errors import DeliveryError
from .subscribers import SubscriberRegistry

# LINE rejects text messages longer than this.
MAX_TEXT_LENGTH = 5000


class Dispatcher(Protocol):
    """Push notifications to subscribers and answer commands."""

    def deliver(self, message: str) -> int:
        """Push ``message`` to every subscriber; return how many received it."""

    def reply(self, token: str, message: str) -> None:
        """Answer the request identified by ``token``."""


class LineDispatcher:
    """Send push and reply messages with a channel access token."""

    def __init__(
        self,
        config: LineConfig,
        subscribers: SubscriberRegistry,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.subscribers = subscribers
        self.logger = logger or structlog.get_logger("hotel_watch.dispatcher")
        self._client = client or httpx.Client(timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def deliver(self, message: str) -> int:
        targets = self.subscribers.targets()
        if not targets:
            self.logger.warning("no_subscribers")
            return 0
        delivered = 0
        errors: list[str] = []
        for target in targets:
            try:
                self._post("push", {"to": target, "messages": [self._text(message)]})
            except DeliveryError as exc:
                errors.append(f"{target}: {exc.reason}")
                continue
            delivered += 1
        if errors:
            raise DeliveryError(
                f"Push failed for {len(errors)} of {len(targets)} subscribers: " + "; ".join(errors)
            )
        self.logger.info("push_delivered", recipients=delivered)
        return delivered

    def reply(self, token: str, message: str) -> None:
        self._post("reply", {"replyToken": token, "messages": [self._text(message)]})

    def _post(self, endpoint: str, payload: dict) -> None:
        if not self.config.configured:
            raise DeliveryError("LINE channel access token is not configured")
        url = f"{self.config.api_base.rstrip('/')}/message/{endpoint}"
        try:
            response = self._client.post(
                url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.config.channel_access_token}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            self.logger.error("line_request_failed", endpoint=endpoint, error=str(exc))
            raise DeliveryError(f"LINE {endpoint} request failed: {exc}") from exc
        if response.status_code >= 400:
            self.logger.error(
                "line_request_rejected",
                endpoint=endpoint,
                status=response.status_code,
                body=response.text[:200],
            )
            raise DeliveryError(
                f"LINE {endpoint} rejected with status {response.status_code}",
                status_code=response.status_code,
            )

    @staticmethod
    def _text(message: str) -> dict[str, str]:
        return {"type": "text", "text": message[:MAX_TEXT_LENGTH]}


__all__ = ["Dispatcher", "LineDispatcher", "MAX_TEXT_LENGTH"]
