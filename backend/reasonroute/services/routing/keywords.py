"""
Keyword index for route classification.

Builds a keyword -> [route entry] lookup from a KeywordConfig and scans
messages against it. Matching is plain substring containment, so keywords
work the same for whitespace-delimited and unsegmented scripts.
"""
from dataclasses import dataclass
from typing import Dict, List

from reasonroute.core.logging import get_logger
from reasonroute.services.routing.models import (
    ClassificationMatch,
    KeywordConfig,
    sort_matches,
)

logger = get_logger(__name__)

# Used when the complex route is triggered only by pattern groups
# and has no definition of its own
COMPLEX_ROUTE_DEFAULT_WEIGHT = 1.2
COMPLEX_ROUTE_DEFAULT_PRIORITY = 1


@dataclass(frozen=True)
class IndexEntry:
    route: str
    weight: float
    priority: int


class KeywordIndex:
    """Immutable keyword lookup for one configuration epoch."""

    def __init__(self, config: KeywordConfig):
        self.config = config
        self.case_sensitive = config.settings.case_sensitive
        self._index: Dict[str, List[IndexEntry]] = {}

    @classmethod
    def build(cls, config: KeywordConfig) -> "KeywordIndex":
        index = cls(config)
        for route in config.routes.values():
            for keyword in route.keywords:
                key = index.normalize(keyword)
                if not key:
                    continue
                index._index.setdefault(key, []).append(
                    IndexEntry(route=route.name, weight=route.weight, priority=route.priority)
                )

        logger.info(
            "keyword_index_built",
            routes_count=len(config.routes),
            total_keywords=config.total_keywords,
            indexed_keywords=len(index._index),
            pattern_groups=len(config.patterns),
        )
        return index

    def __len__(self) -> int:
        return len(self._index)

    def normalize(self, text: str) -> str:
        return text if self.case_sensitive else text.lower()

    def route_keywords(self, route: str) -> List[str]:
        definition = self.config.routes.get(route)
        return list(definition.keywords) if definition else []

    def analyze(self, message: str) -> List[ClassificationMatch]:
        """
        Score every route whose keywords occur in the message.

        Each keyword hit adds the route weight to its score. Pattern groups
        then boost the complex reasoning route. Returns matches sorted by
        (priority asc, score desc); an empty list when nothing matched.
        """
        normalized = self.normalize(message or "")
        matches: Dict[str, ClassificationMatch] = {}

        for keyword, entries in self._index.items():
            if keyword not in normalized:
                continue
            for entry in entries:
                match = matches.get(entry.route)
                if match is None:
                    match = ClassificationMatch(
                        route=entry.route,
                        weight=entry.weight,
                        priority=entry.priority,
                    )
                    matches[entry.route] = match
                match.score += entry.weight
                match.matched_keywords.append(keyword)

        self._apply_patterns(normalized, matches)
        return sort_matches(list(matches.values()))

    def _apply_patterns(self, normalized: str, matches: Dict[str, ClassificationMatch]) -> None:
        settings = self.config.settings
        for group in self.config.patterns.values():
            if not group.biases_target:
                continue
            hits = [phrase for phrase in group.phrases if phrase and self.normalize(phrase) in normalized]
            if not hits:
                continue

            target = group.target_route or settings.complex_route
            bonus = group.bonus * len(hits)
            if target in matches:
                matches[target].score += bonus
                continue

            definition = self.config.routes.get(target)
            matches[target] = ClassificationMatch(
                route=target,
                score=bonus,
                matched_keywords=hits,
                weight=definition.weight if definition else COMPLEX_ROUTE_DEFAULT_WEIGHT,
                priority=definition.priority if definition else COMPLEX_ROUTE_DEFAULT_PRIORITY,
            )
