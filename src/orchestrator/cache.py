"""In-memory response cache for the LLM gateway.

Keyed by a hash of the exact outbound message list. Process-local and
lost on restart; it only saves provider calls for repeated questions.
"""

import asyncio
import hashlib
import json
import time
from typing import Any, Callable, Optional

from shared.config import GatewaySettings
from shared.logging import get_logger
from shared.models import CacheEntry, FinalResponse

logger = get_logger(__name__)


def cache_key(messages: list[dict[str, Any]]) -> str:
    """Deterministic key for a message list."""
    serialized = json.dumps(
        messages,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


class ResponseCache:
    """
    TTL cache with oldest-insertion eviction.

    Expiry is checked lazily on lookup. When the number of entries exceeds
    ``max_entries`` the entry inserted first is dropped; lookups do not
    refresh an entry's position.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock

        # dicts keep insertion order, the first key is the oldest entry
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

        self.hits = 0
        self.misses = 0

    @classmethod
    def from_settings(cls, settings: GatewaySettings) -> "ResponseCache":
        return cls(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        )

    async def get(self, key: str) -> Optional[FinalResponse]:
        """Return a live cached response, dropping it if expired."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            if self._clock() - entry.inserted_at > self.ttl:
                del self._entries[key]
                self.misses += 1
                return None

            self.hits += 1
            return entry.response.model_copy(deep=True)

    async def set(self, key: str, response: FinalResponse) -> None:
        """Store a response, evicting the oldest entry past the ceiling."""
        async with self._lock:
            # Re-inserting moves the key to the end (newest)
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(
                response=response.model_copy(deep=True),
                inserted_at=self._clock(),
            )

            while len(self._entries) > self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                logger.debug("Cache entry evicted", key=oldest[:12])

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        return {
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl,
            "hits": self.hits,
            "misses": self.misses,
        }
