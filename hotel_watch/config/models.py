"""Pydantic models used across hotel-watch configuration flow."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_ITEM_SELECTOR = ".promotion, .offer, .news, .package"
DEFAULT_TITLE_SELECTORS = ["h1", "h2", "h3", ".title", ".name"]
DEFAULT_PRICE_SELECTORS = [".price", ".rate", ".cost", ".amount"]
DEFAULT_DESCRIPTION_SELECTORS = [".description", ".detail", "p"]
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def _coerce_selector_list(value: Any) -> list[str]:
    if value in (None, ""):
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(part).strip() for part in value if str(part).strip()]
    raise ValueError("Selectors expect a comma separated string or a list")


class ExtractionRule(BaseModel):
    """How to locate offer blocks in a page and which fields to pull from them.

    Each field takes the first element, in document order, matched by any of
    its selectors. A selector may end with ``::attr:<name>`` to read an
    attribute.
    """

    model_config = ConfigDict(frozen=True)

    item_selector: str = DEFAULT_ITEM_SELECTOR
    title_selectors: list[str] = Field(default_factory=lambda: list(DEFAULT_TITLE_SELECTORS))
    price_selectors: list[str] = Field(default_factory=lambda: list(DEFAULT_PRICE_SELECTORS))
    description_selectors: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DESCRIPTION_SELECTORS)
    )

    @field_validator("title_selectors", "price_selectors", "description_selectors", mode="before")
    @classmethod
    def _coerce_selectors(cls, value: Any) -> list[str]:
        return _coerce_selector_list(value)

    @model_validator(mode="after")
    def _validate_selectors(self) -> "ExtractionRule":
        if not self.item_selector.strip():
            raise ValueError("item_selector cannot be empty")
        if not self.title_selectors:
            raise ValueError("title_selectors cannot be empty")
        return self


class SourceConfig(BaseModel):
    """A registered remote location plus the rule used to extract offers from it."""

    model_config = ConfigDict(frozen=True)

    name: str
    location: str
    rule: ExtractionRule = Field(default_factory=ExtractionRule)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("Source name cannot be empty")
        return text

    @field_validator("location")
    @classmethod
    def _validate_location(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Source location must be an http(s) URL: {value}")
        return value


class ScheduleConfig(BaseModel):
    """Fixed times of day at which a sweep runs."""

    times: list[str] = Field(default_factory=lambda: ["08:00", "14:00"])
    timezone: str = "Asia/Taipei"
    startup_delay: float | None = 10.0

    @field_validator("times", mode="before")
    @classmethod
    def _coerce_times(cls, value: Any) -> list[str]:
        if isinstance(value, str):
            value = value.split(",")
        result: list[str] = []
        for item in value or []:
            text = str(item).strip()
            try:
                parsed = datetime.strptime(text, "%H:%M")
            except ValueError as exc:
                raise ValueError(f"Schedule time must use HH:MM: {text}") from exc
            result.append(parsed.strftime("%H:%M"))
        return result

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("startup_delay")
    @classmethod
    def _validate_delay(cls, value: float | None) -> float | None:
        if value is not None and value < 0:
            raise ValueError("startup_delay must be >= 0")
        return value

    def hour_minutes(self) -> list[tuple[int, int]]:
        pairs = []
        for text in self.times:
            hour, minute = text.split(":")
            pairs.append((int(hour), int(minute)))
        return pairs

    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class MonitorSettings(BaseModel):
    """Sweep timing and notification bounds."""

    fetch_timeout: float = 15.0
    inter_source_delay: float = 3.0
    max_notified_offers: int = 5
    description_preview: int = 60
    user_agent: str = DEFAULT_USER_AGENT

    @model_validator(mode="after")
    def _validate_bounds(self) -> "MonitorSettings":
        if self.fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be > 0")
        if self.inter_source_delay < 0:
            raise ValueError("inter_source_delay must be >= 0")
        if self.max_notified_offers < 1:
            raise ValueError("max_notified_offers must be >= 1")
        if self.description_preview < 1:
            raise ValueError("description_preview must be >= 1")
        return self


class StateConfig(BaseModel):
    """Where observed offers and subscribers are persisted."""

    persist: bool = True
    path: Path = Field(default=Path("data/state/observed.db"))

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    def resolved_path(self, base_dir: Path) -> Path:
        if not self.path.is_absolute():
            return (base_dir / self.path).resolve()
        return self.path


class LineConfig(BaseModel):
    """LINE Messaging API credentials; usually supplied through the environment."""

    channel_access_token: str = ""
    channel_secret: str = ""
    user_id: str | None = None
    api_base: str = "https://api.line.me/v2/bot"
    timeout: float = 10.0

    @property
    def configured(self) -> bool:
        return bool(self.channel_access_token)


class WebhookConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000


class GlobalConfig(BaseModel):
    """Global controls shared by every component."""

    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    state: StateConfig = Field(default_factory=StateConfig)
    line: LineConfig = Field(default_factory=LineConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)


__all__ = [
    "DEFAULT_DESCRIPTION_SELECTORS",
    "DEFAULT_ITEM_SELECTOR",
    "DEFAULT_PRICE_SELECTORS",
    "DEFAULT_TITLE_SELECTORS",
    "ExtractionRule",
    "GlobalConfig",
    "LineConfig",
    "MonitorSettings",
    "ScheduleConfig",
    "SourceConfig",
    "StateConfig",
    "WebhookConfig",
]
