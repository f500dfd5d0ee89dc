"""
Keyword configuration source.

The keyword file is JSON (see reasonroute/config/keywords.json). Its path
comes from KEYWORDS_CONFIG_PATH; the bundled file is used otherwise. An
unreadable or invalid file never prevents startup: the router falls back to
a minimal configuration with only the default chat route.
"""
import json
import os
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from reasonroute.core.logging import get_logger
from reasonroute.services.errors import ConfigLoadError
from reasonroute.services.routing.models import (
    KeywordConfig,
    RouteDefinition,
    RouterSettings,
)

logger = get_logger(__name__)

BUNDLED_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "keywords.json"


def get_keywords_config_path() -> Path:
    """Get keyword file path from environment (bundled file by default)."""
    configured = os.getenv("KEYWORDS_CONFIG_PATH")
    return Path(configured) if configured else BUNDLED_CONFIG_PATH


def default_keyword_config() -> KeywordConfig:
    """Minimal built-in configuration: a single chat route."""
    return KeywordConfig(
        routes={
            "chat": RouteDefinition(
                name="chat",
                keywords=["chat", "help", "question"],
                weight=0.8,
                priority=2,
            ),
        },
        settings=RouterSettings(confidence_threshold=0.6, case_sensitive=False),
    )


def load_keyword_config(path: Optional[Union[str, Path]] = None) -> KeywordConfig:
    """
    Read and validate the keyword file.

    Raises:
        ConfigLoadError if the file is missing, unreadable, not JSON or fails validation.
    """
    config_path = Path(path) if path else get_keywords_config_path()

    try:
        raw = config_path.read_text(encoding="utf-8")
        payload = json.loads(raw)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"Cannot read keyword config: {exc}", path=str(config_path)) from exc
    except json.JSONDecodeError as exc:
        raise ConfigLoadError(f"Keyword config is not valid JSON: {exc}", path=str(config_path)) from exc

    try:
        config = KeywordConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigLoadError(f"Invalid keyword config: {exc}", path=str(config_path)) from exc

    logger.info(
        "keyword_config_loaded",
        path=str(config_path),
        routes=sorted(config.routes),
        pattern_groups=sorted(config.patterns),
    )
    return config

