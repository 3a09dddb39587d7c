from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError

from hotel_watch.config import ExtractionRule, SourceConfig
from hotel_watch.engine import SourceRegistry


def _registry(*names: str, on_change=None) -> SourceRegistry:
    sources = [
        SourceConfig(name=name, location=f"https://{index}.example.com")
        for index, name in enumerate(names)
    ]
    return SourceRegistry(sources, on_change=on_change)


def test_add_is_idempotent_and_first_wins() -> None:
    registry = SourceRegistry()
    assert registry.add("測試飯店", "https://test.com") is True
    assert registry.add("測試飯店", "https://other.com") is False
    assert len(registry) == 1
    assert registry.get("測試飯店").location == "https://test.com"


def test_add_uses_default_rule_unless_given() -> None:
    registry = SourceRegistry()
    registry.add("A", "https://a.example.com")
    registry.add("B", "https://b.example.com", ExtractionRule(item_selector=".deal"))
    assert registry.get("A").rule == ExtractionRule()
    assert registry.get("B").rule.item_selector == ".deal"


def test_add_rejects_invalid_location() -> None:
    registry = SourceRegistry()
    with pytest.raises(ValidationError):
        registry.add("Broken", "not-a-url")
    assert len(registry) == 0


def test_initial_sources_keep_order_and_drop_duplicates() -> None:
    registry = _registry("A", "B", "A", "C")
    assert registry.names() == ["A", "B", "C"]


def test_remove_requires_exact_name() -> None:
    registry = _registry("台南晶英酒店", "台糖長榮酒店")
    assert registry.remove("晶英") is False
    assert registry.names() == ["台南晶英酒店", "台糖長榮酒店"]
    assert registry.remove("台南晶英酒店") is True
    assert registry.names() == ["台糖長榮酒店"]
    assert registry.remove("台南晶英酒店") is False


def test_suggest_matches_both_directions() -> None:
    registry = _registry("台南晶英酒店", "台糖長榮酒店", "康橋商旅")
    assert registry.suggest("晶英") == ["台南晶英酒店"]
    assert registry.suggest("台南晶英酒店 本館") == ["台南晶英酒店"]
    assert registry.suggest("酒店") == ["台南晶英酒店", "台糖長榮酒店"]
    assert registry.suggest("  ") == []


def test_on_change_receives_snapshot_for_mutations_only() -> None:
    snapshots: list[list[str]] = []
    registry = _registry("A", on_change=lambda sources: snapshots.append([s.name for s in sources]))

    registry.add("B", "https://b.example.com")
    registry.add("B", "https://b.example.com")
    registry.remove("missing")
    registry.remove("A")

    assert snapshots == [["A", "B"], ["B"]]


def test_list_returns_a_copy() -> None:
    registry = _registry("A")
    listed = registry.list()
    listed.clear()
    assert len(registry) == 1
    assert "A" in registry
    assert 42 not in registry


def test_concurrent_adds_of_same_name_register_once() -> None:
    registry = SourceRegistry()
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: registry.add("Same", "https://same.example.com"), range(32)))
    assert results.count(True) == 1
    assert len(registry) == 1


def test_slow_on_change_cannot_persist_an_older_snapshot_last() -> None:
    persisted: list[list[str]] = []
    first_saving = threading.Event()

    def save(sources: list[SourceConfig]) -> None:
        names = [source.name for source in sources]
        if names == ["A"]:
            first_saving.set()
            time.sleep(0.2)
        persisted.append(names)

    registry = SourceRegistry(on_change=save)
    worker = threading.Thread(target=registry.add, args=("A", "https://a.example.com"))
    worker.start()
    assert first_saving.wait(timeout=5)
    registry.add("B", "https://b.example.com")
    worker.join(timeout=5)

    assert registry.names() == ["A", "B"]
    assert persisted == [["A"], ["A", "B"]]
    assert persisted[-1] == registry.names()
