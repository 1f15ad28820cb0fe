"""Queue discovery and per-queue handle registry."""

import logging
import time
from typing import Any

from bullscope.broker.keys import DEFAULT_PREFIX, meta_pattern, queue_name_from_meta_key
from bullscope.broker.queue import BullQueue

logger = logging.getLogger(__name__)

QUEUE_NAMES_CACHE_TTL_SECONDS = 5.0
SCAN_COUNT = 1000


class QueueRegistry:
    """
    Owns one BullQueue handle per queue name.

    Handles are created on first use and live until close_all(). There is no
    eviction: cardinality equals the number of queues ever seen, which stays
    small unless queues are created and dropped continuously.
    """

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis
        *,
        prefix: str = DEFAULT_PREFIX,
        queue_names: list[str] | None = None,
        cache_ttl_seconds: float = QUEUE_NAMES_CACHE_TTL_SECONDS,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._static_names = list(queue_names) if queue_names else None
        self._cache_ttl_seconds = cache_ttl_seconds
        self._queues: dict[str, BullQueue] = {}
        self._names_cache: tuple[list[str], float] | None = None

    @property
    def client(self) -> Any:
        return self._client

    def get(self, name: str) -> BullQueue:
        """Get or create the handle for a queue."""
        queue = self._queues.get(name)
        if queue is None:
            queue = BullQueue(name, self._client, prefix=self._prefix)
            self._queues[name] = queue
        return queue

    async def discover_queue_names(self) -> list[str]:
        """
        List queue names.

        A configured static list always wins. Otherwise the key space is
        scanned for queue metadata hashes; results are cached briefly so
        back-to-back callers in one poll share a single scan.
        """
        if self._static_names:
            return list(self._static_names)

        now = time.monotonic()
        if self._names_cache is not None:
            names, cached_at = self._names_cache
            if now - cached_at < self._cache_ttl_seconds:
                return list(names)

        found: set[str] = set()
        async for key in self._client.scan_iter(
            match=meta_pattern(prefix=self._prefix), count=SCAN_COUNT
        ):
            name = queue_name_from_meta_key(
                key.decode() if isinstance(key, bytes) else str(key),
                prefix=self._prefix,
            )
            if name:
                found.add(name)

        names = sorted(found)
        self._names_cache = (names, now)
        logger.debug("Discovered %d queue(s)", len(names))
        return list(names)

    def close_all(self) -> None:
        """Drop every queue handle and the discovery cache."""
        for queue in self._queues.values():
            queue.close()
        self._queues.clear()
        self._names_cache = None
