"""Cached, rate-limit-aware wrapper around a quota-limited lookup."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from wandersync.exceptions import RateLimitError, StorageUnavailableError
from wandersync.models.cache import CacheEntry
from wandersync.storage import LocalStore

_logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[Any]]

_WHITESPACE = re.compile(r"\s+")


def _now_seconds() -> float:
    return time.time()


def normalize_cache_key(key: str) -> str:
    """Lowercase *key* and collapse whitespace runs to ``_``."""
    return _WHITESPACE.sub("_", key.strip().lower())


@dataclass
class CircuitBreakerState:
    """Cooldown shared by every call to one external dependency.

    The breaker is open while the clock is before ``cooldown_until``; it
    closes on its own once that time passes.
    """

    cooldown_until: float = 0.0

    def is_open(self, now: float) -> bool:
        return now < self.cooldown_until

    def trip(self, now: float, cooldown: float) -> None:
        self.cooldown_until = now + cooldown


class RateLimitedFetchGuard:
    """Protect *fetcher* with a per-key cache, backoff retries and a circuit breaker.

    Parameters
    ----------
    fetcher : callable
        ``async fetcher(key)`` returning a JSON-compatible payload, or
        ``None`` when the dependency has no answer. Raises
        :class:`RateLimitError` when throttled.
    store : LocalStore
        Where cache entries live, under ``namespace + normalized key``.
    namespace : str
        Key prefix for this dependency's cache entries.
    freshness : float
        Seconds a cache entry is served without a network call.
    cooldown : float
        Seconds the breaker stays open after a rate-limit error.
    max_retries : int
        Retries after the first attempt, only on rate-limit errors.
    initial_delay : float
        Delay before the first retry; doubled before each further retry.
    breaker : CircuitBreakerState or None
        Share one breaker between guards of the same dependency.
    cooldown_key : str or None
        Store key holding the breaker's end time (epoch milliseconds), so
        a cooldown survives a restart. ``None`` keeps it in memory only.
    clock : callable
        Current time in epoch seconds.
    sleep : callable
        Awaitable sleep, replaced in tests.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        store: LocalStore,
        *,
        namespace: str,
        freshness: float,
        cooldown: float,
        max_retries: int = 1,
        initial_delay: float = 3.0,
        breaker: CircuitBreakerState | None = None,
        cooldown_key: str | None = None,
        clock: Callable[[], float] = _now_seconds,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._namespace = namespace
        self._freshness = freshness
        self._cooldown = cooldown
        self._max_retries = max_retries
        self._initial_delay = initial_delay
        self._clock = clock
        self._sleep = sleep
        self.breaker = breaker if breaker is not None else CircuitBreakerState()
        self._cooldown_key = cooldown_key
        self._load_cooldown()

    # ------------------------------------------------------------------
    # Breaker persistence
    # ------------------------------------------------------------------

    def _load_cooldown(self) -> None:
        """Adopt a later cooldown recorded in the store by any guard or process."""
        if self._cooldown_key is None:
            return
        raw = self._store.get_item(self._cooldown_key)
        if not raw:
            return
        try:
            until = float(raw) / 1000.0
        except ValueError:
            _logger.debug("Ignoring unreadable cooldown value %r", raw)
            return
        if until > self.breaker.cooldown_until:
            self.breaker.cooldown_until = until

    def _trip(self) -> None:
        self.breaker.trip(self._clock(), self._cooldown)
        if self._cooldown_key is not None:
            self._store.set_item(self._cooldown_key, str(int(self.breaker.cooldown_until * 1000)))

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def cache_key(self, key: str) -> str:
        return f"{self._namespace}{normalize_cache_key(key)}"

    def cached(self, key: str) -> CacheEntry | None:
        """Return the cache entry for *key*, fresh or stale."""
        raw = self._store.get_item(self.cache_key(key))
        if not raw:
            return None
        try:
            return CacheEntry.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError):
            _logger.debug("Ignoring unreadable cache entry for %r", key, exc_info=True)
            return None

    def _remember(self, key: str, data: Any) -> None:
        entry = CacheEntry(data=data, timestamp=self._clock() * 1000.0)
        self._store.set_item(self.cache_key(key), entry.model_dump_json())

    async def _call_with_backoff(self, key: str) -> Any:
        delay = self._initial_delay
        for attempt in range(self._max_retries + 1):
            try:
                return await self._fetcher(key)
            except RateLimitError:
                self._trip()
                _logger.warning(
                    "Rate limited fetching %r; breaker open for %.0f min",
                    key,
                    self._cooldown / 60,
                )
                if attempt >= self._max_retries:
                    raise
                _logger.info("Retry %d/%d for %r in %.1fs", attempt + 1, self._max_retries, key, delay)
                await self._sleep(delay)
                delay *= 2
        raise AssertionError("unreachable")

    async def fetch(self, key: str) -> Any | None:
        """Return a payload for *key*: fresh cache, network, stale cache, or ``None``.

        Fetcher failures of any kind never escape; storage failures do. A
        fetcher answering ``None`` yields ``None`` and leaves the cache as is.
        """
        now = self._clock()
        entry = self.cached(key)
        self._load_cooldown()

        if self.breaker.is_open(now):
            _logger.debug("Fetch of %r skipped: circuit breaker open", key)
            return entry.data if entry is not None else None

        if entry is not None and entry.is_fresh(now * 1000.0, self._freshness):
            return entry.data

        try:
            data = await self._call_with_backoff(key)
        except StorageUnavailableError:
            raise
        except Exception as exc:
            _logger.warning("Fetch of %r failed, using %s: %r", key, "stale cache" if entry else "nothing", exc)
            return entry.data if entry is not None else None

        if data is None:
            _logger.debug("Fetch of %r returned no answer", key)
            return None
        self._remember(key, data)
        return data
