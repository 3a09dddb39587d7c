"""Configuration loading helpers for hotel-watch."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

import yaml

from .models import GlobalConfig, SourceConfig

GLOBAL_CONFIG_FILENAME = "global_config.yaml"
SOURCES_FILENAME = "sources.yaml"
DEFAULT_SOURCES_TEMPLATE = "default_sources.yaml"

ENV_HOME = "HOTEL_WATCH_HOME"
ENV_ACCESS_TOKEN = "LINE_CHANNEL_ACCESS_TOKEN"
ENV_CHANNEL_SECRET = "LINE_CHANNEL_SECRET"
ENV_USER_ID = "LINE_USER_ID"
ENV_PORT = "PORT"


def _slugify(name: str) -> str:
    return "".join(ch.lower() if ch.isalnum() else "-" for ch in name).strip("-")


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    state_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(ENV_HOME)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path.cwd()).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.state_dir = (self.data_dir / "state").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.state_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def global_config_path(self) -> Path:
        return self.data_dir / GLOBAL_CONFIG_FILENAME

    def sources_path(self) -> Path:
        return self.data_dir / SOURCES_FILENAME


def apply_env_overrides(config: GlobalConfig, environ: Mapping[str, str] | None = None) -> GlobalConfig:
    """Overlay LINE credentials and webhook port from the environment."""

    env = os.environ if environ is None else environ
    line_updates: dict[str, object] = {}
    if env.get(ENV_ACCESS_TOKEN):
        line_updates["channel_access_token"] = env[ENV_ACCESS_TOKEN]
    if env.get(ENV_CHANNEL_SECRET):
        line_updates["channel_secret"] = env[ENV_CHANNEL_SECRET]
    if env.get(ENV_USER_ID):
        line_updates["user_id"] = env[ENV_USER_ID]
    updates: dict[str, object] = {}
    if line_updates:
        updates["line"] = config.line.model_copy(update=line_updates)
    port = env.get(ENV_PORT)
    if port:
        try:
            updates["webhook"] = config.webhook.model_copy(update={"port": int(port)})
        except ValueError as exc:
            raise ValueError(f"{ENV_PORT} must be an integer: {port}") from exc
    if not updates:
        return config
    return config.model_copy(update=updates)


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._global_cache: GlobalConfig | None = None

    # ------------------------------------------------------------------
    # Global configuration helpers
    # ------------------------------------------------------------------
    def load_global_config(self) -> GlobalConfig:
        if self._global_cache is not None:
            return self._global_cache
        path = self.locator.global_config_path()
        if path.exists():
            payload = _read_file(path)
            global_cfg = GlobalConfig.model_validate(payload)
        else:
            global_cfg = GlobalConfig()
            self.save_global_config(global_cfg)
        # Credentials from the environment are never written back to disk.
        self._global_cache = apply_env_overrides(global_cfg)
        return self._global_cache

    def save_global_config(self, config: GlobalConfig) -> None:
        path = self.locator.global_config_path()
        payload = config.model_dump(mode="json")
        _write_file(path, payload)
        self._global_cache = config

    # ------------------------------------------------------------------
    # Source configuration helpers
    # ------------------------------------------------------------------
    def list_sources(self) -> list[SourceConfig]:
        path = self.locator.sources_path()
        if not path.exists():
            sources = self.default_sources()
            self.save_sources(sources)
            return sources
        payload = _read_file(path)
        return self._parse_sources(payload, path)

    def save_sources(self, sources: Iterable[SourceConfig]) -> Path:
        path = self.locator.sources_path()
        payload = {"sources": [source.model_dump(mode="json") for source in sources]}
        _write_file(path, payload)
        return path

    def default_sources(self) -> list[SourceConfig]:
        template_path = self.ensure_template(DEFAULT_SOURCES_TEMPLATE)
        return self._parse_sources(_read_file(template_path), template_path)

    # ------------------------------------------------------------------
    # Utility
    # ------------------------------------------------------------------
    def state_path(self) -> Path:
        global_cfg = self.load_global_config()
        return global_cfg.state.resolved_path(self.locator.project_root)

    def ensure_template(self, template_name: str) -> Path:
        """Return the template file path from the built-in templates directory."""
        templates_dir = Path(__file__).resolve().parent / "templates"
        template_path = templates_dir / template_name
        if not template_path.exists():
            raise FileNotFoundError(f"Template not found: {template_path}")
        return template_path

    @staticmethod
    def _parse_sources(payload: dict, path: Path) -> list[SourceConfig]:
        entries = payload.get("sources") or []
        if not isinstance(entries, list):
            raise ValueError(f"`sources` must be a list: {path}")
        return [SourceConfig.model_validate(entry) for entry in entries]


__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "ENV_ACCESS_TOKEN",
    "ENV_CHANNEL_SECRET",
    "ENV_HOME",
    "ENV_PORT",
    "ENV_USER_ID",
    "apply_env_overrides",
]
