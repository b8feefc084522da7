"""
In-process token-bucket limiter used by RateLimitMiddleware.

Buckets are keyed by client (Authorization digest or IP) and route category.
Disabled unless RATE_LIMIT_ENABLED is set.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional


@dataclass(frozen=True)
class RateLimitPolicy:
    per_minute: int
    burst: int

    def scaled(self, factor: float) -> "RateLimitPolicy":
        return RateLimitPolicy(
            per_minute=max(1, int(self.per_minute * factor)),
            burst=max(1, int(self.burst * factor)),
        )


@dataclass
class RateLimitConfig:
    enabled: bool = False
    default: RateLimitPolicy = field(default_factory=lambda: RateLimitPolicy(per_minute=120, burst=30))


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int = 0


class TokenBucket:
    def __init__(self, policy: RateLimitPolicy, time_fn: Callable[[], float] = time.monotonic):
        self.capacity = max(1, policy.burst)
        self.refill_per_sec = policy.per_minute / 60.0
        self.time_fn = time_fn
        self.tokens = float(self.capacity)
        self.updated_at = time_fn()

    def _refill(self) -> None:
        now = self.time_fn()
        elapsed = now - self.updated_at
        if elapsed > 0:
            self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_per_sec)
            self.updated_at = now

    def take(self) -> RateLimitDecision:
        self._refill()
        if self.tokens >= 1:
            self.tokens -= 1
            return RateLimitDecision(allowed=True)
        missing = 1 - self.tokens
        wait = math.ceil(missing / self.refill_per_sec) if self.refill_per_sec else 60
        return RateLimitDecision(allowed=False, retry_after=max(1, wait))


class InMemoryRateLimiter:
    def __init__(self, config: RateLimitConfig, time_fn: Callable[[], float] = time.monotonic):
        self.config = config
        self.time_fn = time_fn
        self.buckets: Dict[str, TokenBucket] = {}

    def check(self, key: str, policy: Optional[RateLimitPolicy] = None) -> RateLimitDecision:
        bucket = self.buckets.get(key)
        if bucket is None:
            bucket = TokenBucket(policy or self.config.default, time_fn=self.time_fn)
            self.buckets[key] = bucket
        return bucket.take()

    def reset(self) -> None:
        self.buckets.clear()


def build_rate_limit_config(settings_obj=None) -> RateLimitConfig:
    if settings_obj is None:
        from appreciations.core.config import settings as settings_obj

    return RateLimitConfig(
        enabled=bool(settings_obj.RATE_LIMIT_ENABLED),
        default=RateLimitPolicy(
            per_minute=max(1, settings_obj.RATE_LIMIT_PER_MINUTE_DEFAULT),
            burst=max(1, settings_obj.RATE_LIMIT_BURST_DEFAULT),
        ),
    )
