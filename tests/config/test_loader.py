from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from hotel_watch.config import (
    ConfigLocator,
    ConfigRepository,
    GlobalConfig,
    ScheduleConfig,
    apply_env_overrides,
)
from hotel_watch.config.loader import _slugify


def test_config_locator_uses_env_and_creates_directories(tmp_path: Path) -> None:
    locator = ConfigLocator()
    assert locator.project_root == tmp_path.resolve()
    for path in (locator.data_dir, locator.state_dir, locator.logs_dir):
        assert path.exists()
    assert locator.global_config_path() == tmp_path.resolve() / "data" / "global_config.yaml"
    assert locator.sources_path() == tmp_path.resolve() / "data" / "sources.yaml"


def test_missing_global_config_is_written_with_defaults(
    temp_config_repository: ConfigRepository,
) -> None:
    config = temp_config_repository.load_global_config()
    assert config == GlobalConfig()
    assert temp_config_repository.locator.global_config_path().exists()


def test_global_config_roundtrip(tmp_path: Path) -> None:
    repo = ConfigRepository(ConfigLocator(project_root=tmp_path))
    config = GlobalConfig(schedule=ScheduleConfig(times=["09:30"]))
    repo.save_global_config(config)

    fresh = ConfigRepository(ConfigLocator(project_root=tmp_path))
    loaded = fresh.load_global_config()
    assert loaded.schedule.times == ["09:30"]


def test_environment_credentials_are_not_persisted(
    temp_config_repository: ConfigRepository, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("LINE_CHANNEL_ACCESS_TOKEN", "token-123")
    monkeypatch.setenv("LINE_CHANNEL_SECRET", "secret-456")
    monkeypatch.setenv("LINE_USER_ID", "U0001")
    monkeypatch.setenv("PORT", "8080")

    config = temp_config_repository.load_global_config()
    assert config.line.channel_access_token == "token-123"
    assert config.line.channel_secret == "secret-456"
    assert config.line.user_id == "U0001"
    assert config.webhook.port == 8080

    stored = yaml.safe_load(
        temp_config_repository.locator.global_config_path().read_text(encoding="utf-8")
    )
    assert stored["line"]["channel_access_token"] == ""
    assert stored["webhook"]["port"] == 3000


def test_apply_env_overrides_without_values_returns_same_config() -> None:
    config = GlobalConfig()
    assert apply_env_overrides(config, environ={}) is config


def test_apply_env_overrides_rejects_bad_port() -> None:
    with pytest.raises(ValueError):
        apply_env_overrides(GlobalConfig(), environ={"PORT": "eighty"})


def test_sources_seeded_from_template_on_first_use(
    temp_config_repository: ConfigRepository,
) -> None:
    sources = temp_config_repository.list_sources()
    names = [source.name for source in sources]
    assert len(sources) == 9
    assert names[0] == "台南晶英酒店"
    assert "康橋商旅" in names
    assert temp_config_repository.locator.sources_path().exists()


def test_save_and_reload_sources(temp_config_repository: ConfigRepository, sample_source) -> None:
    source = sample_source(name="測試飯店", location="https://test.com")
    temp_config_repository.save_sources([source])

    payload = yaml.safe_load(
        temp_config_repository.locator.sources_path().read_text(encoding="utf-8")
    )
    assert payload["sources"][0]["name"] == "測試飯店"
    assert temp_config_repository.list_sources() == [source]


def test_sources_file_must_hold_a_list(temp_config_repository: ConfigRepository) -> None:
    path = temp_config_repository.locator.sources_path()
    path.write_text("sources: not-a-list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        temp_config_repository.list_sources()


def test_state_path_lives_under_project_root(temp_config_repository: ConfigRepository) -> None:
    path = temp_config_repository.state_path()
    assert path == temp_config_repository.locator.state_dir / "observed.db"


def test_missing_template_raises(temp_config_repository: ConfigRepository) -> None:
    with pytest.raises(FileNotFoundError):
        temp_config_repository.ensure_template("missing.yaml")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Hotel One", "hotel-one"),
        ("台南晶英酒店", "台南晶英酒店"),
        ("--edge--", "edge"),
    ],
)
def test_slugify(raw: str, expected: str) -> None:
    assert _slugify(raw) == expected
