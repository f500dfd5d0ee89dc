"""
Shared fixtures: small keyword configurations for router tests.
"""
from typing import Any, Dict

import pytest

from reasonroute.services.routing.models import KeywordConfig
from reasonroute.services.routing.selector import RouteSelector


def _config_payload() -> Dict[str, Any]:
    return {
        "routes": {
            "work": {"keywords": ["task", "plan"], "weight": 1.0, "priority": 1},
            "chat": {"keywords": ["hello"], "weight": 0.8, "priority": 2},
        },
        "settings": {"confidence_threshold": 0.6, "case_sensitive": False},
    }


@pytest.fixture
def config_payload() -> Dict[str, Any]:
    """Raw keyword file content: `work` {task, plan} and `chat` {hello}."""
    return _config_payload()


@pytest.fixture
def keyword_config(config_payload) -> KeywordConfig:
    return KeywordConfig.model_validate(config_payload)


@pytest.fixture
def selector(keyword_config) -> RouteSelector:
    router = RouteSelector(config_source=lambda: keyword_config)
    router.initialize()
    return router
