"""
Pydantic models for keyword routing.

Configuration models (RouteDefinition, PatternGroup, RouterSettings,
KeywordConfig) are frozen: a configuration epoch is replaced as a whole on
reload, never edited in place.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

REASON_NO_KEYWORDS = "no_keywords_matched"
REASON_BELOW_THRESHOLD = "confidence_below_threshold"
REASON_MATCH_SUCCESS = "keyword_match_success"
REASON_ERROR = "classification_error"

# Pattern groups that bias the complex reasoning route
BIASING_PATTERN_GROUPS = frozenset({"question_words", "comparison_words", "analysis_words"})


class RouteDefinition(BaseModel):
    """A named intent category and the keywords that select it."""

    model_config = ConfigDict(frozen=True)

    name: str
    keywords: List[str] = Field(default_factory=list)
    weight: float = 1.0
    priority: int = Field(999, description="Lower value = more important")
    label: Optional[str] = None


class PatternGroup(BaseModel):
    """Trigger phrases that add a fixed bonus to a target route."""

    model_config = ConfigDict(frozen=True)

    name: str
    phrases: List[str] = Field(default_factory=list)
    target_route: Optional[str] = None  # None = settings.complex_route
    bonus: float = 0.5

    @property
    def biases_target(self) -> bool:
        return self.name in BIASING_PATTERN_GROUPS


class RouterSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    confidence_threshold: float = Field(0.6, ge=0.0, le=1.0)
    case_sensitive: bool = False
    cache_size: int = Field(1000, gt=0)
    cache_ttl_seconds: float = Field(300.0, gt=0)
    default_route: str = "chat"
    complex_route: str = "complex_reasoning"


class KeywordConfig(BaseModel):
    """
    One configuration epoch of routes, pattern groups and settings.

    Accepts the keyword file layout directly:
    {
      "routes": {"chat": {"keywords": [...], "weight": 0.8, "priority": 2}},
      "patterns": {"question_words": ["how", "why"]},
      "settings": {"confidence_threshold": 0.6, "case_sensitive": false}
    }
    """

    model_config = ConfigDict(frozen=True)

    routes: Dict[str, RouteDefinition] = Field(default_factory=dict)
    patterns: Dict[str, PatternGroup] = Field(default_factory=dict)
    settings: RouterSettings = Field(default_factory=RouterSettings)

    @model_validator(mode="before")
    @classmethod
    def _fill_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        raw_routes = data.get("routes") or {}
        if not isinstance(raw_routes, dict):
            raise ValueError("routes must be an object keyed by route name")
        routes = {}
        for name, route in raw_routes.items():
            if isinstance(route, dict):
                route = {"name": name, **route}
                # Old files carry the display name under "name"
                if route["name"] != name:
                    route["label"] = route.get("label") or route["name"]
                    route["name"] = name
            routes[name] = route
        data["routes"] = routes

        raw_patterns = data.get("patterns") or {}
        if not isinstance(raw_patterns, dict):
            raise ValueError("patterns must be an object keyed by group name")
        patterns = {}
        for name, group in raw_patterns.items():
            if isinstance(group, list):
                group = {"phrases": group}
            if isinstance(group, dict):
                group = {"name": name, **group}
            patterns[name] = group
        data["patterns"] = patterns

        # cache_ttl in milliseconds is accepted for compatibility
        settings = data.get("settings")
        if isinstance(settings, dict) and "cache_ttl" in settings:
            settings = dict(settings)
            ttl_ms = settings.pop("cache_ttl")
            settings.setdefault("cache_ttl_seconds", float(ttl_ms) / 1000.0)
            data["settings"] = settings
        return data

    @property
    def total_keywords(self) -> int:
        return sum(len(route.keywords) for route in self.routes.values())


class ClassificationMatch(BaseModel):
    """Accumulated evidence for one route."""

    route: str
    score: float = 0.0
    matched_keywords: List[str] = Field(default_factory=list)
    weight: float = 1.0
    priority: int = 999
    context_enhanced: bool = False
    context_keywords: int = 0


class ClassificationResult(BaseModel):
    """Outcome of a single select_route call."""

    selected_route: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    matches: List[ClassificationMatch] = Field(default_factory=list)
    reason: str
    fallback: bool = False
    threshold: Optional[float] = None
    selected_match: Optional[ClassificationMatch] = None
    error: Optional[str] = None


def sort_matches(matches: List[ClassificationMatch]) -> List[ClassificationMatch]:
    """Order matches by priority ascending, then score descending."""
    return sorted(matches, key=lambda m: (m.priority, -m.score))
