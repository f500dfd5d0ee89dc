"""
In-process LRU cache with per-entry TTL for classification results.

Each entry stores an absolute expiry time that is checked lazily on read,
so no timer is scheduled per key. Every mutating operation (recency bump on
read, eviction + insert on write, clear) runs under one lock.
"""
import hashlib
import json
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Generic, Optional, Sequence, Tuple, TypeVar

from reasonroute.core.logging import get_logger
from reasonroute.services.errors import CacheError

logger = get_logger(__name__)

V = TypeVar("V")

DEFAULT_CACHE_SIZE = 1000
DEFAULT_CACHE_TTL_SECONDS = 300.0

# Only the most recent turns take part in the key
CACHE_KEY_CONTEXT_MESSAGES = 4
CACHE_KEY_LENGTH = 16


class ResultCache(Generic[V]):
    """Capacity- and TTL-bounded LRU cache."""

    def __init__(
        self,
        max_size: int = DEFAULT_CACHE_SIZE,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (value, expires_at); order = recency, oldest first
        self._entries: "OrderedDict[str, Tuple[V, float]]" = OrderedDict()

    def get(self, key: str) -> Optional[V]:
        """Return the cached value and mark it most recently used, or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: V) -> None:
        """Insert or overwrite; evicts the least recently used entry when full."""
        if value is None:
            # None is the miss sentinel of get()
            raise CacheError(f"Cannot cache None for key {key}")
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            else:
                self._purge_expired()
                if len(self._entries) >= self.max_size:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("route_cache_evicted", key=evicted)
            self._entries[key] = (value, self._clock() + self.ttl_seconds)

    def has(self, key: str) -> bool:
        """True when a live entry exists. Does not touch recency."""
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._clock() < entry[1]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            self._purge_expired()
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
                "keys": list(self._entries.keys()),
            }

    def _purge_expired(self) -> None:
        # Caller holds the lock
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]


def generate_route_cache_key(
    message: str,
    context: Optional[Sequence[Dict[str, Any]]] = None,
    options: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Digest over the message, the options and the last four context messages.

    Different recent context yields a different key, so a follow-up in a new
    conversation never reuses another conversation's decision.
    """
    digest = hashlib.sha256()
    digest.update(message.encode("utf-8"))
    digest.update(json.dumps(options or {}, sort_keys=True, default=str).encode("utf-8"))

    if context:
        recent = list(context)[-CACHE_KEY_CONTEXT_MESSAGES:]
        digest.update("|".join(str(msg.get("content") or "") for msg in recent).encode("utf-8"))

    return digest.hexdigest()[:CACHE_KEY_LENGTH]
