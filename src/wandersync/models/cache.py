"""Cache entry stored by the rate-limited fetch guard."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class CacheEntry(BaseModel):
    """A cached payload and the epoch-millisecond time it was fetched.

    Entries past the freshness window are not served as fresh answers but
    stay available as a stale fallback. Entries are overwritten, never
    deleted.
    """

    model_config = ConfigDict(frozen=True)

    data: Any
    timestamp: float

    def age_seconds(self, now_ms: float) -> float:
        return (now_ms - self.timestamp) / 1000.0

    def is_fresh(self, now_ms: float, freshness_seconds: float) -> bool:
        return self.age_seconds(now_ms) < freshness_seconds
