"""
Tests for RouteSelector: classification flow, caching, reload and fallbacks.
"""
import json
import threading

import pytest

from reasonroute.services.errors import ConfigLoadError
from reasonroute.services.routing.config import (
    BUNDLED_CONFIG_PATH,
    load_keyword_config,
)
from reasonroute.services.routing.models import KeywordConfig
from reasonroute.services.routing.selector import RouteSelector


@pytest.mark.asyncio
async def test_end_to_end_keyword_match(selector):
    """A message with only work keywords selects the work route."""
    result = await selector.select_route("I need to plan a task")

    assert result.selected_route == "work"
    assert result.confidence > 0.6
    assert result.reason == "keyword_match_success"
    assert result.fallback is False
    assert result.selected_match.route == "work"


@pytest.mark.asyncio
async def test_no_keywords_falls_back_to_default_route(selector):
    result = await selector.select_route("what a lovely day")

    assert result.selected_route == "chat"
    assert result.confidence == pytest.approx(0.1)
    assert result.reason == "no_keywords_matched"
    assert result.matches == []


@pytest.mark.asyncio
async def test_default_route_option_overrides_setting(selector):
    result = await selector.select_route("nothing relevant", options={"default_route": "work"})
    assert result.selected_route == "work"


@pytest.mark.asyncio
async def test_below_threshold_records_threshold(keyword_config):
    router = RouteSelector(config_source=lambda: keyword_config, confidence_threshold=0.99)

    result = await router.select_route("hello")

    assert result.selected_route == "chat"
    assert result.reason == "confidence_below_threshold"
    assert result.threshold == pytest.approx(0.99)
    assert result.confidence < 0.99
    assert result.matches[0].route == "chat"


@pytest.mark.asyncio
async def test_threshold_comes_from_settings_without_override(keyword_config):
    router = RouteSelector(config_source=lambda: keyword_config)
    assert router.confidence_threshold == pytest.approx(0.6)


@pytest.mark.asyncio
async def test_lazy_initialization(keyword_config):
    router = RouteSelector(config_source=lambda: keyword_config)
    assert router.is_initialized is False

    await router.select_route("plan")
    assert router.is_initialized is True


@pytest.mark.asyncio
async def test_identical_requests_hit_cache(selector):
    context = [{"role": "user", "content": "hello"}]

    first = await selector.select_route("plan a task", context)
    second = await selector.select_route("plan a task", context)

    assert second is first
    stats = selector.get_stats()
    assert stats["total_queries"] == 2
    assert stats["cache"]["hits"] == 1
    assert stats["cache"]["misses"] == 1
    assert stats["route_distribution"] == {"work": 1}


@pytest.mark.asyncio
async def test_different_context_is_a_separate_cache_entry(selector):
    await selector.select_route("and tomorrow?", [{"role": "user", "content": "plan my task"}])
    await selector.select_route("and tomorrow?", [{"role": "user", "content": "hello there"}])

    stats = selector.get_stats()
    assert stats["cache"]["misses"] == 2
    assert stats["cache"]["hits"] == 0


@pytest.mark.asyncio
async def test_context_promotes_follow_up(selector):
    context = [
        {"role": "user", "content": "help me plan my week"},
        {"role": "assistant", "content": "Which task comes first?"},
    ]
    result = await selector.select_route("the task on monday", context)

    assert result.selected_route == "work"
    assert result.matches[0].context_enhanced is True


@pytest.mark.asyncio
async def test_cache_disabled(keyword_config):
    router = RouteSelector(config_source=lambda: keyword_config, enable_cache=False)

    first = await router.select_route("plan a task")
    second = await router.select_route("plan a task")

    assert second is not first
    assert router.get_stats()["cache"]["hits"] == 0


@pytest.mark.asyncio
async def test_internal_error_degrades_to_fallback(selector, monkeypatch):
    def boom(message):
        raise RuntimeError("index corrupted")

    monkeypatch.setattr(selector.snapshot.index, "analyze", boom)

    result = await selector.select_route("plan a task")

    assert result.fallback is True
    assert result.selected_route == "chat"
    assert result.confidence == pytest.approx(0.1)
    assert result.reason == "classification_error"
    assert "index corrupted" in result.error


def test_initialize_falls_back_to_default_config():
    def failing_source():
        raise ConfigLoadError("missing", path="/nope.json")

    router = RouteSelector(config_source=failing_source)
    router.initialize()

    assert router.is_initialized
    assert list(router.snapshot.config.routes) == ["chat"]


@pytest.mark.asyncio
async def test_reload_swaps_config_and_clears_cache(keyword_config):
    configs = [
        keyword_config,
        KeywordConfig.model_validate(
            {"routes": {"ops": {"keywords": ["deploy", "release"], "weight": 1.0, "priority": 1}}}
        ),
    ]
    router = RouteSelector(config_source=lambda: configs[0])
    await router.select_route("plan a task")
    old_version = router.snapshot.version

    configs.pop(0)
    assert await router.reload_config() is True

    assert router.snapshot.version == old_version + 1
    assert router.get_stats()["cache"]["size"] == 0
    result = await router.select_route("deploy the release")
    assert result.selected_route == "ops"


@pytest.mark.asyncio
async def test_failed_reload_keeps_previous_config(keyword_config):
    calls = {"count": 0}

    def source():
        calls["count"] += 1
        if calls["count"] > 1:
            raise ConfigLoadError("broken file")
        return keyword_config

    router = RouteSelector(config_source=source)
    router.initialize()
    snapshot = router.snapshot

    assert await router.reload_config() is False
    assert router.snapshot is snapshot
    result = await router.select_route("I need to plan a task")
    assert result.selected_route == "work"


@pytest.mark.asyncio
async def test_reload_reads_source_off_the_event_loop(keyword_config):
    threads = []

    def source():
        threads.append(threading.get_ident())
        return keyword_config

    router = RouteSelector(config_source=source)
    router.initialize()

    assert await router.reload_config() is True
    assert threads[0] == threading.get_ident()
    assert threads[1] != threading.get_ident()


def test_get_stats_before_any_query(selector):
    stats = selector.get_stats()

    assert stats["total_queries"] == 0
    assert stats["cache"]["hit_rate"] == "0.00%"
    assert stats["config"]["initialized"] is True
    assert stats["config"]["routes"] == ["chat", "work"]


class TestKeywordFile:
    """Loading the keyword file from disk."""

    def test_load_from_path(self, tmp_path, config_payload):
        path = tmp_path / "keywords.json"
        path.write_text(json.dumps(config_payload), encoding="utf-8")

        config = load_keyword_config(path)
        assert set(config.routes) == {"work", "chat"}

    def test_env_var_selects_file(self, tmp_path, config_payload, monkeypatch):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps(config_payload), encoding="utf-8")
        monkeypatch.setenv("KEYWORDS_CONFIG_PATH", str(path))

        config = load_keyword_config()
        assert "work" in config.routes

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigLoadError) as exc_info:
            load_keyword_config(tmp_path / "absent.json")
        assert exc_info.value.path.endswith("absent.json")

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigLoadError):
            load_keyword_config(path)

    def test_invalid_schema_raises(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"settings": {"confidence_threshold": 3}}), encoding="utf-8")
        with pytest.raises(ConfigLoadError):
            load_keyword_config(path)

    @pytest.mark.parametrize("payload", [{"routes": ["work"]}, {"patterns": "how"}])
    def test_wrong_structure_raises(self, tmp_path, payload):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        with pytest.raises(ConfigLoadError):
            load_keyword_config(path)

    @pytest.mark.parametrize("payload", [{"routes": ["work"]}, {"patterns": "how"}])
    def test_initialize_with_wrong_structure_uses_builtin_config(self, tmp_path, payload):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(payload), encoding="utf-8")

        router = RouteSelector(config_path=path)
        router.initialize()

        assert router.is_initialized
        assert list(router.snapshot.config.routes) == ["chat"]

    @pytest.mark.asyncio
    async def test_reload_with_wrong_structure_keeps_config(self, tmp_path, config_payload):
        path = tmp_path / "keywords.json"
        path.write_text(json.dumps(config_payload), encoding="utf-8")
        router = RouteSelector(config_path=path)
        router.initialize()

        path.write_text(json.dumps({"routes": ["work"]}), encoding="utf-8")

        assert await router.reload_config() is False
        assert set(router.snapshot.config.routes) == {"work", "chat"}

    @pytest.mark.asyncio
    async def test_bundled_config(self):
        router = RouteSelector(config_path=BUNDLED_CONFIG_PATH)

        work = await router.select_route("schedule a meeting for the project")
        assert work.selected_route == "work_assistant"

        complex_result = await router.select_route("Compare option A versus option B")
        assert complex_result.selected_route == "complex_reasoning"
