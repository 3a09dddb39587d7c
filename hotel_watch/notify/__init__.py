"""Notification formatting, recipients and delivery."""

from .batcher import NotificationBatcher, format_zh_tw
from .dispatcher import Dispatcher, LineDispatcher
from .subscribers import SQLiteSubscriberStore, SubscriberRegistry

__all__ = [
    "Dispatcher",
    "LineDispatcher",
    "NotificationBatcher",
    "SQLiteSubscriberStore",
    "SubscriberRegistry",
    "format_zh_tw",
]
