"""
Prometheus metrics collection module.

Metrics Categories:
- RED Metrics: Rate, Errors, Duration of HTTP requests
- Routing Metrics: classification queries, cache hits/misses, route selections
- Reasoning Metrics: strategy usage, degraded answers, self-consistency samples
- LLM Metrics: upstream generation latency and errors

All metrics follow Prometheus naming conventions:
- Counters: _total suffix
- Histograms: _seconds suffix for duration, _distribution for distributions
"""
from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    REGISTRY,
    CONTENT_TYPE_LATEST,
)

registry = REGISTRY

# ============================================================================
# RED METRICS - Rate, Errors, Duration
# ============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status"],
    registry=registry,
)

http_errors_total = Counter(
    "http_errors_total",
    "Total number of HTTP errors",
    ["method", "endpoint", "status_code"],
    registry=registry,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=registry,
)

# ============================================================================
# ROUTING METRICS
# ============================================================================

router_queries_total = Counter(
    "router_queries_total",
    "Total number of route classification requests",
    registry=registry,
)

cache_hits_total = Counter(
    "cache_hits_total",
    "Total number of cache hits",
    ["cache_type"],
    registry=registry,
)

cache_misses_total = Counter(
    "cache_misses_total",
    "Total number of cache misses",
    ["cache_type"],
    registry=registry,
)

route_selections_total = Counter(
    "route_selections_total",
    "Total number of route selections",
    ["route", "reason"],
    registry=registry,
)

route_confidence_distribution = Histogram(
    "route_confidence_distribution",
    "Distribution of route classification confidence",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
    registry=registry,
)

router_config_reloads_total = Counter(
    "router_config_reloads_total",
    "Total number of keyword configuration reloads",
    ["status"],  # "success", "failed"
    registry=registry,
)

# ============================================================================
# REASONING METRICS
# ============================================================================

reasoning_strategy_total = Counter(
    "reasoning_strategy_total",
    "Total number of requests per reasoning strategy",
    ["strategy"],  # "direct", "chain-of-thought", "self-consistency"
    registry=registry,
)

reasoning_fallback_total = Counter(
    "reasoning_fallback_total",
    "Total number of reasoning failures degraded to a direct answer",
    registry=registry,
)

self_consistency_sample_failures_total = Counter(
    "self_consistency_sample_failures_total",
    "Total number of failed self-consistency samples",
    registry=registry,
)

self_consistency_latency_seconds = Histogram(
    "self_consistency_latency_seconds",
    "Wall-clock latency of a self-consistency fan-out in seconds",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=registry,
)

# ============================================================================
# LLM METRICS
# ============================================================================

llm_requests_total = Counter(
    "llm_requests_total",
    "Total number of generation requests sent upstream",
    ["model", "status"],
    registry=registry,
)

llm_request_duration_seconds = Histogram(
    "llm_request_duration_seconds",
    "Upstream generation latency in seconds",
    ["model"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=registry,
)

llm_errors_total = Counter(
    "llm_errors_total",
    "Total number of upstream generation errors",
    ["error_type"],
    registry=registry,
)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def record_http_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """
    Record HTTP request metrics (RED metrics).

    Args:
        method: HTTP method (GET, POST, etc.)
        endpoint: Request path without query string
        status_code: HTTP status code
        duration_seconds: Request duration in seconds
    """
    endpoint = endpoint.split("?")[0]

    http_requests_total.labels(
        method=method,
        endpoint=endpoint,
        status=str(status_code),
    ).inc()

    if status_code >= 400:
        http_errors_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code),
        ).inc()

    http_request_duration_seconds.labels(
        method=method,
        endpoint=endpoint,
    ).observe(duration_seconds)


def record_router_query() -> None:
    router_queries_total.inc()


def record_cache_hit(cache_type: str) -> None:
    """
    Record a cache hit.

    Args:
        cache_type: Type of cache (e.g., "route")
    """
    cache_hits_total.labels(cache_type=cache_type).inc()


def record_cache_miss(cache_type: str) -> None:
    """
    Record a cache miss.

    Args:
        cache_type: Type of cache (e.g., "route")
    """
    cache_misses_total.labels(cache_type=cache_type).inc()


def record_route_selection(route: str, reason: str, confidence: float) -> None:
    """Record a fresh (non-cached) route decision and its confidence."""
    route_selections_total.labels(route=route, reason=reason).inc()
    route_confidence_distribution.observe(confidence)


def record_config_reload(success: bool) -> None:
    router_config_reloads_total.labels(status="success" if success else "failed").inc()


def record_reasoning_strategy(strategy: str) -> None:
    reasoning_strategy_total.labels(strategy=strategy).inc()


def record_reasoning_fallback() -> None:
    reasoning_fallback_total.inc()


def record_self_consistency(duration_seconds: float, failed_samples: int) -> None:
    """Record one self-consistency fan-out: wall-clock latency and failed sample count."""
    self_consistency_latency_seconds.observe(duration_seconds)
    if failed_samples:
        self_consistency_sample_failures_total.inc(failed_samples)


def record_llm_request(model: str, success: bool, duration_seconds: float) -> None:
    llm_requests_total.labels(model=model, status="success" if success else "error").inc()
    llm_request_duration_seconds.labels(model=model).observe(duration_seconds)


def record_llm_error(error_type: str) -> None:
    llm_errors_total.labels(error_type=error_type).inc()


def get_metrics() -> bytes:
    """Get Prometheus metrics in text format."""
    return generate_latest(registry)


def get_metrics_content_type() -> str:
    """Get content type for metrics endpoint."""
    return CONTENT_TYPE_LATEST
