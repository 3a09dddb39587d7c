"""Text commands accepted from chat users."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import structlog
from pydantic import ValidationError

from .errors import CommandError
from .notify import SubscriberRegistry
from .orchestrator import Monitor

ADD_PREFIXES = ("加入飯店", "add")
REMOVE_PREFIXES = ("移除飯店", "remove")
LIST_WORDS = ("查看飯店清單", "飯店清單", "list")
CHECK_WORDS = ("立即檢查", "檢查優惠", "check")
HELP_WORDS = ("幫助", "help", "指令")
STATUS_WORDS = ("系統狀態", "狀態", "status")
SUBSCRIBE_WORDS = ("訂閱", "subscribe")
UNSUBSCRIBE_WORDS = ("取消訂閱", "unsubscribe")

ADD_USAGE = "正確格式：加入飯店 飯店名稱 官網網址\n\n範例：\n加入飯店 測試飯店 https://test.com"
REMOVE_USAGE = "正確格式：移除飯店 飯店名稱"


@dataclass(slots=True)
class CommandResult:
    """Reply text for a handled command; ``reply`` is None for unrecognised input."""

    command: str | None
    reply: str | None


class CommandHandler:
    """Parse one chat message and apply it to the running monitor."""

    def __init__(self, monitor: Monitor, subscribers: SubscriberRegistry | None = None) -> None:
        self.monitor = monitor
        self.subscribers = subscribers
        self.logger = structlog.get_logger("hotel_watch.commands")
        self._exact: dict[str, tuple[str, Callable[[str | None], str]]] = {}
        for words, name, handler in (
            (LIST_WORDS, "list", self._list),
            (CHECK_WORDS, "check", self._check),
            (HELP_WORDS, "help", self._help),
            (STATUS_WORDS, "status", self._status),
            (SUBSCRIBE_WORDS, "subscribe", self._subscribe),
            (UNSUBSCRIBE_WORDS, "unsubscribe", self._unsubscribe),
        ):
            for word in words:
                self._exact[word.lower()] = (name, handler)

    def handle(self, text: str, subscriber_id: str | None = None) -> CommandResult:
        message = (text or "").strip()
        if not message:
            return CommandResult(command=None, reply=None)
        head, _, rest = message.partition(" ")
        try:
            if head.lower() in ADD_PREFIXES:
                return CommandResult("add", self._add(rest.strip()))
            if head.lower() in REMOVE_PREFIXES:
                return CommandResult("remove", self._remove(rest.strip()))
            entry = self._exact.get(message.lower())
            if entry is None:
                return CommandResult(command=None, reply=None)
            name, handler = entry
            return CommandResult(name, handler(subscriber_id))
        except CommandError as exc:
            self.logger.info("command_rejected", text=message, error=exc.message)
            return CommandResult("error", f"❌ {exc.user_message()}")

    # ------------------------------------------------------------------
    def _add(self, arguments: str) -> str:
        parts = arguments.split()
        if len(parts) < 2:
            raise CommandError("格式錯誤！", usage=ADD_USAGE)
        name, location = parts[0], parts[1]
        try:
            added = self.monitor.registry.add(name, location)
        except ValidationError as exc:
            raise CommandError("網址格式錯誤，請以 http:// 或 https:// 開頭。", usage=ADD_USAGE) from exc
        if not added:
            return f"ℹ️ 「{name}」已在監控清單中"
        return f"✅ 已加入「{name}」的監控\n🔗 {location}"

    def _remove(self, name: str) -> str:
        if not name:
            raise CommandError("請提供要移除的飯店名稱。", usage=REMOVE_USAGE)
        if self.monitor.registry.remove(name):
            return f"✅ 已移除「{name}」的監控"
        suggestions = self.monitor.registry.suggest(name)
        if not suggestions:
            return f"❌ 找不到「{name}」"
        listed = "\n".join(f"• {candidate}" for candidate in suggestions)
        return f"❌ 找不到「{name}」\n您是不是要找：\n{listed}\n\n請輸入完整名稱再試一次。"

    def _list(self, _subscriber_id: str | None) -> str:
        sources = self.monitor.registry.list()
        lines = ["🏨 目前監控的飯店清單：", ""]
        lines.extend(f"{index}. {source.name}" for index, source in enumerate(sources, start=1))
        lines.extend(["", f"📊 總共監控 {len(sources)} 家飯店"])
        return "\n".join(lines)

    def _check(self, _subscriber_id: str | None) -> str:
        if not self.monitor.trigger_sweep_now():
            return "⏳ 目前正在檢查中，完成後會自動通知。"
        return "🔍 開始檢查台南飯店優惠，請稍候..."

    def _help(self, _subscriber_id: str | None) -> str:
        times = self._schedule_label()
        return "\n".join(
            [
                "🤖 台南飯店監控機器人",
                "",
                "📋 基本指令：",
                "• 飯店清單 - 查看監控中的飯店",
                "• 檢查優惠 - 立即檢查所有飯店",
                "• 狀態 - 查看系統狀態",
                "• 訂閱 / 取消訂閱 - 開啟或關閉優惠推播",
                "• 指令 - 顯示此說明",
                "",
                "🔧 管理指令：",
                "• 加入飯店 [名稱] [網址]",
                "• 移除飯店 [名稱]",
                "",
                "📝 範例：",
                "加入飯店 測試飯店 https://test.com",
                "移除飯店 測試飯店",
                "",
                f"⏰ 系統會在每天 {times} 自動檢查優惠",
            ]
        )

    def _status(self, _subscriber_id: str | None) -> str:
        status = self.monitor.status()
        state = "🔄 檢查進行中" if status.sweep_running else "🤖 系統運行正常"
        return "\n".join(
            [
                "📊 系統狀態報告",
                "",
                f"🏨 監控飯店數量：{status.source_count} 家",
                f"📝 優惠記錄數量：{status.observed_offer_count} 筆",
                f"👥 訂閱人數：{status.subscriber_count} 位",
                f"⏰ 自動檢查時間：每天 {self._schedule_label()}",
                state,
            ]
        )

    def _subscribe(self, subscriber_id: str | None) -> str:
        if self.subscribers is None or not subscriber_id:
            raise CommandError("無法辨識使用者，暫時無法訂閱。")
        if not self.subscribers.subscribe(subscriber_id):
            return "ℹ️ 您已訂閱優惠通知"
        return "🔔 已訂閱優惠通知，發現新優惠時會主動推播給您"

    def _unsubscribe(self, subscriber_id: str | None) -> str:
        if self.subscribers is None or not subscriber_id:
            raise CommandError("無法辨識使用者，暫時無法取消訂閱。")
        if not self.subscribers.unsubscribe(subscriber_id):
            return "ℹ️ 您目前沒有訂閱優惠通知"
        return "🔕 已取消訂閱優惠通知"

    def _schedule_label(self) -> str:
        times = self.monitor.status().schedule_times
        if not times:
            return "（未排程）"
        labels = []
        for text in times:
            hour, minute = text.split(":")
            labels.append(f"{int(hour)}:{minute}")
        return ", ".join(labels)


__all__ = ["CommandHandler", "CommandResult"]
