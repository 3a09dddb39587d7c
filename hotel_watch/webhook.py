"""LINE webhook endpoint routing chat messages to the command handler."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from .commands import CommandHandler
from .errors import DeliveryError
from .notify import Dispatcher

SIGNATURE_HEADER = "x-line-signature"
HEALTH_TEXT = "台南飯店監控系統運行中 🏨"


def compute_signature(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Check the base64 HMAC-SHA256 of the raw body in constant time."""

    if not secret or not signature:
        return False
    return hmac.compare_digest(compute_signature(body, secret), signature)


def create_app(handler: CommandHandler, dispatcher: Dispatcher, channel_secret: str) -> FastAPI:
    app = FastAPI(title="hotel-watch", docs_url=None, redoc_url=None)
    logger = structlog.get_logger("hotel_watch.webhook")

    def handle_event(event: dict[str, Any]) -> None:
        if event.get("type") != "message":
            return
        message = event.get("message") or {}
        if message.get("type") != "text":
            return
        subscriber_id = (event.get("source") or {}).get("userId")
        result = handler.handle(message.get("text", ""), subscriber_id=subscriber_id)
        if result.reply is None:
            return
        reply_token = event.get("replyToken")
        if not reply_token:
            logger.warning("reply_token_missing", command=result.command)
            return
        try:
            dispatcher.reply(reply_token, result.reply)
        except DeliveryError as exc:
            logger.error("reply_failed", command=result.command, error=str(exc))

    @app.get("/", response_class=PlainTextResponse)
    def health() -> str:
        return HEALTH_TEXT

    @app.post("/webhook", response_class=PlainTextResponse)
    async def webhook(request: Request) -> str:
        body = await request.body()
        if not verify_signature(body, request.headers.get(SIGNATURE_HEADER), channel_secret):
            logger.warning("signature_rejected")
            raise HTTPException(status_code=401, detail="Unauthorized")
        try:
            payload = json.loads(body or b"{}")
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid JSON") from exc
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")
        for event in payload.get("events") or []:
            await run_in_threadpool(handle_event, event)
        return "OK"

    return app


__all__ = ["compute_signature", "create_app", "verify_signature"]
