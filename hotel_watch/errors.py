"""Error types raised across the monitoring pipeline."""

from __future__ import annotations


class HotelWatchError(Exception):
    """Base class for all hotel-watch errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | details: {self.details}"
        return self.message


class FetchError(HotelWatchError):
    """Network failure, timeout or unexpected HTTP status while fetching a source."""

    def __init__(self, location: str, reason: str, status_code: int | None = None) -> None:
        details: dict = {"location": location}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(reason, details)
        self.location = location
        self.reason = reason
        self.status_code = status_code


class ParseError(HotelWatchError):
    """Fetched content could not be parsed as markup."""

    def __init__(self, source_name: str, reason: str) -> None:
        super().__init__(reason, {"source": source_name})
        self.source_name = source_name
        self.reason = reason


class DeliveryError(HotelWatchError):
    """A notification or reply could not be delivered."""

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        details = {"status_code": status_code} if status_code is not None else None
        super().__init__(reason, details)
        self.reason = reason
        self.status_code = status_code


class CommandError(HotelWatchError):
    """Malformed command input; the message is shown back to the user."""

    def __init__(self, message: str, usage: str | None = None) -> None:
        super().__init__(message)
        self.usage = usage

    def user_message(self) -> str:
        if self.usage:
            return f"{self.message}\n{self.usage}"
        return self.message


__all__ = [
    "CommandError",
    "DeliveryError",
    "FetchError",
    "HotelWatchError",
    "ParseError",
]
