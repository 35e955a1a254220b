"""Memoizing, request-coalescing cache in front of external metric queries.

Many dependencies live in the same umbrella repository, and unauthenticated
GitHub access allows only 60 requests an hour, so every key is queried at
most once per run:

* a key already resolved is served from memory (including a failed lookup,
  stored as ``None``);
* concurrent lookups of a key that is being fetched await the same task;
* distinct keys are fetched concurrently, bounded by a semaphore and an
  optional minimum interval between request starts.

A failed query is retried at most ``max_attempts - 1`` times after a backoff,
then the key resolves to ``None``.  Nothing here raises for a failed lookup.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Hashable, Iterable, Optional, TypeVar

from dep_inspector.errors import EnrichmentQueryFailure
from dep_inspector.models import CacheStats

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class RetryState:
    """Attempt bookkeeping for one key's query."""

    max_attempts: int
    attempt: int = 0
    next_allowed: float = 0.0

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts

    def schedule(self, now: float, delay: float) -> None:
        self.next_allowed = now + delay


class EnrichmentCache(Generic[K, V]):
    """Per-run cache of ``fetch(key)`` results."""

    def __init__(
        self,
        fetch: Callable[[K], Awaitable[V]],
        *,
        max_concurrency: int = 4,
        timeout: float = 10.0,
        max_attempts: int = 2,
        backoff: float = 1.0,
        max_backoff: float = 30.0,
        min_interval: float = 0.0,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._fetch = fetch
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.max_backoff = max_backoff
        self.min_interval = min_interval
        self.stats = CacheStats()
        self._records: dict[K, Optional[V]] = {}
        self._failures: dict[K, str] = {}
        self._inflight: dict[K, asyncio.Task] = {}
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._throttle_lock = asyncio.Lock()
        self._next_start = 0.0

    # ── Lookups ───────────────────────────────────────────────────────────

    def __contains__(self, key: K) -> bool:
        return key in self._records

    def peek(self, key: K) -> Optional[V]:
        """Return a resolved record without querying."""
        return self._records.get(key)

    @property
    def failures(self) -> dict[K, str]:
        """Keys whose lookup failed, with the last error message."""
        return dict(self._failures)

    async def get(self, key: K) -> Optional[V]:
        """Return the record for ``key``, querying it at most once."""
        if key in self._records:
            self.stats.hits += 1
            return self._records[key]
        task = self._inflight.get(key)
        if task is None:
            self.stats.misses += 1
            task = asyncio.ensure_future(self._load(key))
            self._inflight[key] = task
        else:
            self.stats.coalesced += 1
        # Shielded so one cancelled caller does not cancel the shared query.
        return await asyncio.shield(task)

    async def get_many(self, keys: Iterable[K]) -> dict[K, Optional[V]]:
        """Resolve several keys concurrently."""
        unique = list(dict.fromkeys(keys))
        results = await asyncio.gather(*(self.get(k) for k in unique))
        return dict(zip(unique, results))

    async def aclose(self) -> None:
        """Cancel queries still in flight."""
        pending = list(self._inflight.values())
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._inflight.clear()

    async def __aenter__(self) -> "EnrichmentCache[K, V]":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ── Query machinery ───────────────────────────────────────────────────

    async def _load(self, key: K) -> Optional[V]:
        try:
            record = await self._query(key)
            self._records.setdefault(key, record)
            return self._records[key]
        finally:
            self._inflight.pop(key, None)

    async def _throttle(self) -> None:
        if self.min_interval <= 0:
            return
        loop = asyncio.get_running_loop()
        async with self._throttle_lock:
            wait = self._next_start - loop.time()
            if wait > 0:
                await asyncio.sleep(wait)
            self._next_start = loop.time() + self.min_interval

    def _delay(self, state: RetryState, error: EnrichmentQueryFailure) -> float:
        delay = self.backoff * (2 ** (state.attempt - 1))
        if error.retry_after is not None:
            delay = max(delay, error.retry_after)
        return min(delay, self.max_backoff)

    async def _query(self, key: K) -> Optional[V]:
        loop = asyncio.get_running_loop()
        state = RetryState(max_attempts=self.max_attempts)
        while True:
            wait = state.next_allowed - loop.time()
            if wait > 0:
                await asyncio.sleep(wait)
            async with self._semaphore:
                await self._throttle()
                state.attempt += 1
                self.stats.queries += 1
                try:
                    return await asyncio.wait_for(self._fetch(key), timeout=self.timeout)
                except asyncio.TimeoutError:
                    error = EnrichmentQueryFailure(
                        f"query for {key} timed out after {self.timeout}s"
                    )
                except EnrichmentQueryFailure as e:
                    error = e
                except Exception as e:
                    logger.debug("unexpected error querying %s", key, exc_info=True)
                    error = EnrichmentQueryFailure(
                        f"unexpected error querying {key}: {e!r}", retryable=False
                    )

            if state.exhausted or not error.retryable:
                self.stats.failures += 1
                self._failures[key] = str(error)
                logger.warning(
                    "lookup of %s failed after %d attempt(s): %s", key, state.attempt, error
                )
                return None
            delay = self._delay(state, error)
            self.stats.retries += 1
            logger.info("lookup of %s failed (%s); retrying in %.1fs", key, error, delay)
            state.schedule(loop.time(), delay)
