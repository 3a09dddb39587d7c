"""Render the changed offers of a sweep into one bounded notification."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Sequence

from ..engine.models import Offer

DEFAULT_HEADER = "🏨 發現台南飯店新優惠！"


def format_zh_tw(moment: datetime) -> str:
    """Render ``moment`` the way zh-TW locales print a date and time.

    >>> format_zh_tw(datetime(2026, 10, 19, 14, 5, 9))
    '2026/10/19 下午2:05:09'
    """

    period = "上午" if moment.hour < 12 else "下午"
    hour = moment.hour % 12 or 12
    return f"{moment.year}/{moment.month}/{moment.day} {period}{hour}:{moment:%M:%S}"


class NotificationBatcher:
    """Format at most ``max_entries`` offers and summarise the rest."""

    def __init__(
        self,
        max_entries: int = 5,
        description_preview: int = 60,
        tz: tzinfo | None = None,
        header: str = DEFAULT_HEADER,
    ) -> None:
        self.max_entries = max_entries
        self.description_preview = description_preview
        self.tz = tz
        self.header = header

    def format(self, offers: Sequence[Offer], completed_at: datetime | None = None) -> str | None:
        if not offers:
            return None
        lines = [self.header, ""]
        for index, offer in enumerate(offers[: self.max_entries], start=1):
            lines.extend(self._render_offer(index, offer))
            lines.append("")
        remainder = len(offers) - self.max_entries
        if remainder > 0:
            lines.append(f"... 還有 {remainder} 個優惠")
        lines.append(f"⏰ 檢查時間：{format_zh_tw(self._localise(completed_at))}")
        return "\n".join(lines)

    def _render_offer(self, index: int, offer: Offer) -> list[str]:
        rendered = [f"{index}. {offer.source_name}", f"📝 {offer.title}"]
        if offer.price:
            rendered.append(f"💰 {offer.price}")
        if offer.description:
            rendered.append(f"📋 {offer.description[: self.description_preview]}...")
        rendered.append(f"🔗 {offer.source_location}")
        return rendered

    def _localise(self, moment: datetime | None) -> datetime:
        if moment is None:
            moment = datetime.now(timezone.utc)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self.tz) if self.tz is not None else moment.astimezone()


__all__ = ["DEFAULT_HEADER", "NotificationBatcher", "format_zh_tw"]
