"""
Integration tests for the HTTP layer.
"""
import pytest
from fastapi.testclient import TestClient

from reasonroute.main import create_app
from reasonroute.services.ai.schema import GenerationResponse, ReasoningConfig


class DummyGenerator:
    """Answers every call; sample answers grow with temperature."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0

    async def generate(self, message, context=None, rag_context=None, options=None):
        self.calls += 1
        if self.fail:
            return GenerationResponse.failure("upstream error", model="dummy")
        params = (options or {}).get("model_params")
        if params:
            return GenerationResponse.ok(content="x" * int(params["temperature"] * 10), model="dummy")
        return GenerationResponse.ok(content="plain answer", model="dummy")


@pytest.fixture
def generator():
    return DummyGenerator()


@pytest.fixture
def client(selector, generator):
    app = create_app(route_selector=selector, generator=generator, reasoning_config=ReasoningConfig())
    return TestClient(app)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["router_initialized"] is True


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_request_id_is_generated(client):
    response = client.get("/health")
    assert response.headers.get("X-Request-ID")


def test_classify(client):
    response = client.post("/route/classify", json={"message": "I need to plan a task"})

    assert response.status_code == 200
    data = response.json()
    assert data["selected_route"] == "work"
    assert data["reason"] == "keyword_match_success"
    assert data["confidence"] > 0.6


def test_classify_requires_message(client):
    response = client.post("/route/classify", json={})
    assert response.status_code == 422


def test_generate_self_consistency(client):
    response = client.post(
        "/chat/generate",
        json={"message": "Which is better for a small team?", "context": [], "rag_context": []},
    )

    assert response.status_code == 200
    data = response.json()
    metadata = data["metadata"]
    assert metadata["reasoning_type"] == "self-consistency"
    assert metadata["enhanced"] is True
    assert metadata["samples_count"] == 3
    # Lengths 7, 8, 9: the middle one (sample 1) wins
    assert metadata["selected_sample"] == 1
    assert data["content"] == "x" * 8


def test_generate_chain_of_thought(client):
    response = client.post(
        "/chat/generate",
        json={
            "message": "hello there",
            "context": [{"role": "user", "content": "hi"}],
            "rag_context": [{"content": "Greeting etiquette"}],
        },
    )

    assert response.status_code == 200
    metadata = response.json()["metadata"]
    assert metadata["reasoning_type"] == "chain-of-thought"
    assert metadata["samples_count"] is None


def test_generate_blank_message(client):
    response = client.post("/chat/generate", json={"message": "   "})
    assert response.status_code == 400


def test_generate_upstream_failure(selector):
    app = create_app(
        route_selector=selector,
        generator=DummyGenerator(fail=True),
        reasoning_config=ReasoningConfig(),
    )
    client = TestClient(app)

    response = client.post("/chat/generate", json={"message": "Which is better for a small team?"})

    assert response.status_code == 502
    assert "Generation failed" in response.json()["detail"]


def test_router_stats(client):
    client.post("/route/classify", json={"message": "plan a task"})
    client.post("/route/classify", json={"message": "plan a task"})

    stats = client.get("/admin/router/stats").json()
    assert stats["total_queries"] == 2
    assert stats["cache"]["hits"] == 1
    assert stats["route_distribution"]["work"] == 1


def test_router_reload_and_cache_clear(client):
    client.post("/route/classify", json={"message": "plan a task"})

    reload_response = client.post("/admin/router/reload")
    assert reload_response.status_code == 200
    assert reload_response.json()["status"] == "reloaded"

    clear_response = client.post("/admin/router/cache/clear")
    assert clear_response.json() == {"status": "cleared"}
    assert client.get("/admin/router/stats").json()["cache"]["size"] == 0


def test_router_reload_failure(keyword_config):
    from reasonroute.services.errors import ConfigLoadError
    from reasonroute.services.routing.selector import RouteSelector

    state = {"loaded": False}

    def source():
        if state["loaded"]:
            raise ConfigLoadError("gone")
        state["loaded"] = True
        return keyword_config

    selector = RouteSelector(config_source=source)
    selector.initialize()
    client = TestClient(create_app(route_selector=selector, generator=DummyGenerator()))

    response = client.post("/admin/router/reload")

    assert response.status_code == 500
    assert "previous configuration kept" in response.json()["detail"]


def test_reasoning_config_endpoint(client):
    data = client.get("/admin/reasoning/config").json()
    assert data["self_consistency_samples"] == 3


def test_metrics_endpoint(client):
    client.post("/route/classify", json={"message": "plan a task"})

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "router_queries_total" in response.text
    assert "route_selections_total" in response.text
