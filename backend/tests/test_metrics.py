"""
Unit tests for Prometheus metrics helpers.
"""
from prometheus_client import REGISTRY

from reasonroute.core.metrics import (
    get_metrics,
    get_metrics_content_type,
    record_cache_hit,
    record_cache_miss,
    record_config_reload,
    record_http_request,
    record_llm_error,
    record_llm_request,
    record_reasoning_strategy,
    record_route_selection,
    record_router_query,
    record_self_consistency,
)


def _value(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_router_query_counter():
    before = _value("router_queries_total")
    record_router_query()
    assert _value("router_queries_total") == before + 1


def test_cache_hit_and_miss_counters():
    hits = _value("cache_hits_total", {"cache_type": "route"})
    misses = _value("cache_misses_total", {"cache_type": "route"})

    record_cache_hit("route")
    record_cache_miss("route")
    record_cache_miss("route")

    assert _value("cache_hits_total", {"cache_type": "route"}) == hits + 1
    assert _value("cache_misses_total", {"cache_type": "route"}) == misses + 2


def test_route_selection_records_confidence():
    labels = {"route": "work", "reason": "keyword_match_success"}
    before = _value("route_selections_total", labels)
    observations = _value("route_confidence_distribution_count")

    record_route_selection("work", "keyword_match_success", 0.9)

    assert _value("route_selections_total", labels) == before + 1
    assert _value("route_confidence_distribution_count") == observations + 1


def test_config_reload_status_label():
    failed = _value("router_config_reloads_total", {"status": "failed"})
    record_config_reload(False)
    assert _value("router_config_reloads_total", {"status": "failed"}) == failed + 1


def test_self_consistency_failures():
    before = _value("self_consistency_sample_failures_total")
    record_self_consistency(0.1, failed_samples=2)
    record_self_consistency(0.1, failed_samples=0)
    assert _value("self_consistency_sample_failures_total") == before + 2


def test_reasoning_strategy_counter():
    labels = {"strategy": "chain-of-thought"}
    before = _value("reasoning_strategy_total", labels)
    record_reasoning_strategy("chain-of-thought")
    assert _value("reasoning_strategy_total", labels) == before + 1


def test_llm_request_and_error():
    labels = {"model": "m1", "status": "error"}
    before = _value("llm_requests_total", labels)
    errors = _value("llm_errors_total", {"error_type": "timeout"})

    record_llm_request("m1", success=False, duration_seconds=0.2)
    record_llm_error("timeout")

    assert _value("llm_requests_total", labels) == before + 1
    assert _value("llm_errors_total", {"error_type": "timeout"}) == errors + 1


def test_http_request_recording():
    record_http_request(method="GET", endpoint="/health", status_code=200, duration_seconds=0.01)
    assert b"http_requests_total" in get_metrics()


def test_metrics_content_type():
    assert get_metrics_content_type().startswith("text/plain")
