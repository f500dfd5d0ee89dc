"""
Keyword routing: classify a user message into a named route.

RouteSelector is the entry point; the other modules are its building blocks
(keyword index, confidence scoring, context re-scoring, result cache and the
keyword configuration source).
"""
from reasonroute.services.routing.cache import ResultCache, generate_route_cache_key
from reasonroute.services.routing.config import (
    default_keyword_config,
    load_keyword_config,
)
from reasonroute.services.routing.keywords import KeywordIndex
from reasonroute.services.routing.models import (
    ClassificationMatch,
    ClassificationResult,
    KeywordConfig,
    PatternGroup,
    RouteDefinition,
    RouterSettings,
)
from reasonroute.services.routing.selector import RouteSelector, RouterSnapshot

__all__ = [
    "ClassificationMatch",
    "ClassificationResult",
    "KeywordConfig",
    "KeywordIndex",
    "PatternGroup",
    "ResultCache",
    "RouteDefinition",
    "RouteSelector",
    "RouterSettings",
    "RouterSnapshot",
    "default_keyword_config",
    "generate_route_cache_key",
    "load_keyword_config",
]
