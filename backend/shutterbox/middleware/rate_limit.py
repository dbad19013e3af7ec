"""
Shutterbox Backend — Rate Limiting Middleware
===============================================

What:  Per-IP sliding window rate limiter with per-route-group rules.
Why:   Login and registration are brute-force targets; uploads are expensive.
       Both get much tighter windows than ordinary browsing.
How:   Each rule keeps its own {ip → [timestamps]} window. A request is
       checked against every rule that matches it and rejected with 429 if
       any of them is exhausted. It is recorded only when all of them pass.

Default rules (from settings):
    global   every path              100 requests / 60s
    auth     POST /api/auth/login,    5 requests / 10 min
             POST /api/auth/register
    upload   POST /api/photos         10 requests / 15 min

Production Upgrade Path:
    The windows live in process memory, so each uvicorn worker counts on
    its own. Multi-worker deployments need a shared store (e.g. Redis).
"""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from shutterbox.config import settings
from shutterbox.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass
class RateLimitRule:
    """
    A window applied to requests whose path starts with one of `prefixes`
    (empty = all paths) and whose method is in `methods` (empty = any).
    """

    name: str
    limit: int
    window: int
    prefixes: Sequence[str] = ()
    methods: FrozenSet[str] = frozenset()
    hits: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def matches(self, method: str, path: str) -> bool:
        if self.methods and method not in self.methods:
            return False
        if self.prefixes and not any(path.startswith(p) for p in self.prefixes):
            return False
        return True

    def prune(self, client_ip: str, now: float) -> List[float]:
        window_start = now - self.window
        recent = [ts for ts in self.hits[client_ip] if ts > window_start]
        self.hits[client_ip] = recent
        return recent

    def retry_after(self, client_ip: str, now: float) -> int:
        oldest = self.hits[client_ip][0]
        return int(oldest + self.window - now) + 1


def default_rules() -> List[RateLimitRule]:
    return [
        RateLimitRule(
            name="global",
            limit=settings.rate_limit_requests,
            window=settings.rate_limit_window,
        ),
        RateLimitRule(
            name="auth",
            limit=settings.auth_rate_limit_requests,
            window=settings.auth_rate_limit_window,
            prefixes=("/api/auth/login", "/api/auth/register"),
            methods=frozenset({"POST"}),
        ),
        RateLimitRule(
            name="upload",
            limit=settings.upload_rate_limit_requests,
            window=settings.upload_rate_limit_window,
            prefixes=("/api/photos",),
            methods=frozenset({"POST"}),
        ),
    ]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Args:
        rules: Override the default rule set (tests pass tiny windows).
        clock: Time source in seconds (tests pass a fake).

    Response on rate limit:
        HTTP 429, Retry-After header, JSON error body
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    # Sweep idle IPs every this many recorded requests
    CLEANUP_INTERVAL = 1000

    def __init__(
        self,
        app,
        rules: Optional[List[RateLimitRule]] = None,
        clock: Callable[[], float] = time.time,
        **kwargs,
    ):
        super().__init__(app, **kwargs)
        self.rules = rules if rules is not None else default_rules()
        self._clock = clock
        self._recorded = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.EXCLUDED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = (
            getattr(request.client, "host", "unknown")
            if request.client
            else "unknown"
        )
        now = self._clock()
        applicable = [rule for rule in self.rules if rule.matches(request.method, path)]

        for rule in applicable:
            if len(rule.prune(client_ip, now)) >= rule.limit:
                exc = RateLimitExceededError(
                    retry_after=rule.retry_after(client_ip, now),
                    context={"rule": rule.name},
                )
                logger.warning(
                    "Rate limit '%s' exceeded for IP %s: %d requests in %ds window",
                    rule.name,
                    client_ip,
                    len(rule.hits[client_ip]),
                    rule.window,
                )
                return JSONResponse(
                    status_code=429,
                    content={
                        "error": "rate_limit_exceeded",
                        "message": exc.message,
                        "details": exc.context,
                    },
                    headers={"Retry-After": str(exc.retry_after)},
                )

        for rule in applicable:
            rule.hits[client_ip].append(now)

        self._recorded += 1
        if self._recorded % self.CLEANUP_INTERVAL == 0:
            self._cleanup_inactive_ips(now)

        return await call_next(request)

    def _cleanup_inactive_ips(self, now: float) -> None:
        """Drop IPs with no requests left in any window."""
        removed = 0
        for rule in self.rules:
            window_start = now - rule.window
            inactive = [
                ip for ip, timestamps in rule.hits.items()
                if not timestamps or timestamps[-1] <= window_start
            ]
            for ip in inactive:
                del rule.hits[ip]
            removed += len(inactive)

        if removed:
            logger.debug("Cleaned up %d inactive IP entries", removed)
