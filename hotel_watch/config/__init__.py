"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, apply_env_overrides
from .models import (
    ExtractionRule,
    GlobalConfig,
    LineConfig,
    MonitorSettings,
    ScheduleConfig,
    SourceConfig,
    StateConfig,
    WebhookConfig,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "ExtractionRule",
    "GlobalConfig",
    "LineConfig",
    "MonitorSettings",
    "ScheduleConfig",
    "SourceConfig",
    "StateConfig",
    "WebhookConfig",
    "apply_env_overrides",
]
