import hashlib
import logging
import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from appreciations.core.errors import RateLimitError, app_error_handler
from appreciations.core.logging import get_request_id
from appreciations.core.ratelimit import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimitPolicy,
    build_rate_limit_config,
)

logger = logging.getLogger("appreciations")

UNLIMITED_PATHS = {"/api/billing/webhook", "/healthz", "/readyz"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Token-bucket rate limiting, opt-in via RATE_LIMIT_ENABLED."""

    def __init__(self, app, *, config: Optional[RateLimitConfig] = None, time_fn: Optional[Callable[[], float]] = None):
        super().__init__(app)
        self.config = config or build_rate_limit_config()
        self.limiter = InMemoryRateLimiter(self.config, time_fn=time_fn or time.monotonic)

    def policy_for(self, request: Request) -> Optional[RateLimitPolicy]:
        path = request.url.path
        if path in UNLIMITED_PATHS:
            return None
        # Generation calls a paid provider
        if path.startswith("/api/appreciations") and request.method.upper() == "POST":
            return self.config.default.scaled(0.25)
        # Code guessing
        if path.startswith("/api/promo"):
            return self.config.default.scaled(0.1)
        return self.config.default

    def client_key(self, request: Request, category: str) -> str:
        auth = request.headers.get("Authorization")
        if auth:
            digest = hashlib.sha256(auth.encode("utf-8")).hexdigest()[:16]
            return f"user:{digest}:{category}"
        ip = request.headers.get("x-forwarded-for") or (request.client.host if request.client else "unknown")
        return f"ip:{ip}:{category}"

    async def dispatch(self, request: Request, call_next):
        if not self.config.enabled:
            return await call_next(request)

        policy = self.policy_for(request)
        if policy is None:
            return await call_next(request)

        category = request.url.path.split("/")[2] if request.url.path.startswith("/api/") else "root"
        key = self.client_key(request, category)
        decision = self.limiter.check(key, policy)
        if decision.allowed:
            return await call_next(request)

        rid = getattr(request.state, "request_id", None) or get_request_id()
        logger.warning("ratelimit.blocked", extra={"event_type": "ratelimit", "path": request.url.path})
        response = await app_error_handler(
            request,
            RateLimitError("Trop de requêtes. Veuillez patienter quelques instants.", request_id=rid),
        )
        response.headers["Retry-After"] = str(decision.retry_after)
        response.headers["X-RateLimit-Limit"] = str(policy.per_minute)
        response.headers["X-RateLimit-Remaining"] = "0"
        return response
