"""
Route selector: keyword classification with confidence threshold and caching.

Per call:
    cache hit  -> cached result, verbatim
    cache miss -> keyword analysis -> context re-scoring -> confidence
               -> threshold check -> selected route or default route

Classification never raises: any internal failure degrades to the default
route with minimum confidence and an attached error note.

The keyword index and settings live in one immutable RouterSnapshot. A
reload builds a new snapshot, rebinds the reference, then clears the cache,
so an in-flight call sees either the old or the new configuration, never a
mix of both.
"""
import asyncio
import time
from collections import Counter
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, Union

from reasonroute.core.logging import get_logger
from reasonroute.core.metrics import (
    record_cache_hit,
    record_cache_miss,
    record_config_reload,
    record_route_selection,
    record_router_query,
)
from reasonroute.services.errors import CacheError, ClassificationError, ConfigLoadError
from reasonroute.services.routing.cache import ResultCache, generate_route_cache_key
from reasonroute.services.routing.config import default_keyword_config, load_keyword_config
from reasonroute.services.routing.keywords import KeywordIndex
from reasonroute.services.routing.models import (
    REASON_BELOW_THRESHOLD,
    REASON_ERROR,
    REASON_MATCH_SUCCESS,
    REASON_NO_KEYWORDS,
    ClassificationResult,
    KeywordConfig,
)
from reasonroute.services.routing.scoring import (
    MIN_CONFIDENCE,
    calculate_confidence,
    enhance_with_context,
)

logger = get_logger(__name__)

ConfigSource = Callable[[], KeywordConfig]


@dataclass(frozen=True)
class RouterSnapshot:
    """One configuration epoch: validated config plus its keyword index."""

    config: KeywordConfig
    index: KeywordIndex
    version: int
    loaded_at: float


class RouteSelector:
    """
    Keyword-based route classifier.

    Args:
        config_source: Callable returning a KeywordConfig; raises ConfigLoadError
            when the configuration cannot be read. Defaults to the keyword file.
        config_path: Keyword file path for the default config source.
        confidence_threshold: Overrides settings.confidence_threshold when given.
        enable_cache: Cache classification results.
        cache: Pre-built cache instance (sized from settings when omitted).
    """

    def __init__(
        self,
        config_source: Optional[ConfigSource] = None,
        config_path: Optional[Union[str, Path]] = None,
        confidence_threshold: Optional[float] = None,
        enable_cache: bool = True,
        cache: Optional[ResultCache[ClassificationResult]] = None,
    ):
        self._config_source = config_source or partial(load_keyword_config, config_path)
        self._threshold_override = confidence_threshold
        self.cache_enabled = enable_cache
        self._cache = cache
        self._snapshot: Optional[RouterSnapshot] = None
        self._version = 0

        self._total_queries = 0
        self._cache_hits = 0
        self._cache_misses = 0
        self._route_selections: Counter = Counter()
        self._start_time = time.time()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._snapshot is not None

    def initialize(self) -> None:
        """Load configuration and build the keyword index (no-op once ready)."""
        if self._snapshot is not None:
            return

        try:
            config = self._config_source()
        except ConfigLoadError as exc:
            logger.warning(
                "router_config_load_failed",
                path=exc.path,
                error=str(exc),
                message="Using built-in default route configuration",
            )
            config = default_keyword_config()

        self._snapshot = self._build_snapshot(config)

        if self.cache_enabled and self._cache is None:
            settings = config.settings
            self._cache = ResultCache(
                max_size=settings.cache_size,
                ttl_seconds=settings.cache_ttl_seconds,
            )

        logger.info(
            "router_initialized",
            cache_enabled=self.cache_enabled,
            confidence_threshold=self.confidence_threshold,
            routes=sorted(config.routes),
        )

    async def reload_config(self) -> bool:
        """
        Swap in a freshly loaded configuration and clear the cache.

        The source runs in a worker thread, off the event loop.

        Returns:
            True on success. False when the source fails; the previous
            configuration then stays active.
        """
        try:
            config = await asyncio.to_thread(self._config_source)
            snapshot = self._build_snapshot(config)
        except Exception as exc:
            record_config_reload(False)
            logger.error(
                "router_config_reload_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False

        self._snapshot = snapshot
        self.clear_cache()
        record_config_reload(True)
        logger.info(
            "router_config_reloaded",
            version=snapshot.version,
            routes=sorted(config.routes),
        )
        return True

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()
            logger.info("router_cache_cleared")

    def _build_snapshot(self, config: KeywordConfig) -> RouterSnapshot:
        self._version += 1
        return RouterSnapshot(
            config=config,
            index=KeywordIndex.build(config),
            version=self._version,
            loaded_at=time.time(),
        )

    # ------------------------------------------------------------------
    # Configuration accessors
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> RouterSnapshot:
        if self._snapshot is None:
            self.initialize()
        return self._snapshot

    @property
    def confidence_threshold(self) -> float:
        if self._threshold_override is not None:
            return self._threshold_override
        return self.snapshot.config.settings.confidence_threshold

    @property
    def complex_route(self) -> str:
        return self.snapshot.config.settings.complex_route

    def _default_route(self, options: Dict[str, Any]) -> str:
        if options.get("default_route"):
            return options["default_route"]
        if self._snapshot is not None:
            return self._snapshot.config.settings.default_route
        return "chat"

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    async def select_route(
        self,
        message: str,
        context: Optional[Sequence[Dict[str, Any]]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> ClassificationResult:
        """
        Classify a message into a route.

        Args:
            message: Raw user message
            context: Recent conversation as [{"role": ..., "content": ...}]
            options: Per-call options; "default_route" overrides the configured default

        Returns:
            ClassificationResult (never raises)
        """
        options = options or {}
        message = message or ""
        self._total_queries += 1
        record_router_query()

        try:
            snapshot = self.snapshot
            cache_key = generate_route_cache_key(message, context, options)

            cached = self._cache_get(cache_key)
            if cached is not None:
                self._cache_hits += 1
                record_cache_hit("route")
                logger.debug(
                    "route_selection_cache_hit",
                    message=message[:50],
                    route=cached.selected_route,
                    confidence=cached.confidence,
                )
                return cached

            self._cache_misses += 1
            record_cache_miss("route")

            result = self._perform_analysis(snapshot, message, context, options)
            self._cache_set(cache_key, result)

            self._route_selections[result.selected_route] += 1
            record_route_selection(result.selected_route, result.reason, result.confidence)
            logger.info(
                "route_selection_completed",
                message=message[:50],
                selected_route=result.selected_route,
                confidence=round(result.confidence, 4),
                reason=result.reason,
                matches=len(result.matches),
            )
            return result

        except Exception as exc:
            logger.error(
                "route_selection_failed",
                message=message[:50],
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return ClassificationResult(
                selected_route=self._default_route(options),
                confidence=MIN_CONFIDENCE,
                matches=[],
                reason=REASON_ERROR,
                fallback=True,
                error=str(exc),
            )

    def _perform_analysis(
        self,
        snapshot: RouterSnapshot,
        message: str,
        context: Optional[Sequence[Dict[str, Any]]],
        options: Dict[str, Any],
    ) -> ClassificationResult:
        try:
            matches = snapshot.index.analyze(message)
            matches = enhance_with_context(matches, context, snapshot.index)
        except Exception as exc:
            raise ClassificationError(f"Keyword analysis failed: {exc}") from exc

        default_route = self._default_route(options)
        if not matches:
            return ClassificationResult(
                selected_route=default_route,
                confidence=MIN_CONFIDENCE,
                matches=[],
                reason=REASON_NO_KEYWORDS,
            )

        best = matches[0]
        confidence = calculate_confidence(best, len(message))
        threshold = self.confidence_threshold

        if confidence < threshold:
            return ClassificationResult(
                selected_route=default_route,
                confidence=confidence,
                matches=matches,
                reason=REASON_BELOW_THRESHOLD,
                threshold=threshold,
            )

        return ClassificationResult(
            selected_route=best.route,
            confidence=confidence,
            matches=matches,
            selected_match=best,
            reason=REASON_MATCH_SUCCESS,
        )

    def _cache_get(self, key: str) -> Optional[ClassificationResult]:
        if not self.cache_enabled or self._cache is None:
            return None
        try:
            return self._cache.get(key)
        except Exception as exc:
            logger.warning("route_cache_get_failed", key=key, error=str(exc), error_type=type(exc).__name__)
            return None

    def _cache_set(self, key: str, result: ClassificationResult) -> None:
        if not self.cache_enabled or self._cache is None:
            return
        try:
            self._cache.set(key, result)
        except CacheError as exc:
            logger.warning("route_cache_set_failed", key=key, error=str(exc))

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        uptime = time.time() - self._start_time
        hit_rate = (
            self._cache_hits / self._total_queries * 100
            if self._total_queries > 0 else 0.0
        )
        snapshot = self._snapshot
        return {
            "uptime": f"{int(uptime)}s",
            "total_queries": self._total_queries,
            "cache": {
                "enabled": self.cache_enabled,
                "hits": self._cache_hits,
                "misses": self._cache_misses,
                "hit_rate": f"{hit_rate:.2f}%",
                "size": len(self._cache) if self._cache is not None else 0,
                "stats": self._cache.stats() if self._cache is not None else None,
            },
            "route_distribution": dict(self._route_selections),
            "config": {
                "confidence_threshold": self.confidence_threshold if snapshot else self._threshold_override,
                "initialized": snapshot is not None,
                "version": snapshot.version if snapshot else 0,
                "routes": sorted(snapshot.config.routes) if snapshot else [],
            },
        }
