"""
Middleware throttling inbound requests per client address with fixed windows.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.api.utils.errors import error_response_from
from app.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

# How often expired windows are dropped, in seconds
_PRUNE_INTERVAL = 60.0


@dataclass(frozen=True)
class RateLimitRule:
    """
    A budget of ``limit`` requests per ``window_seconds`` for each client.

    ``paths`` are matched exactly (ignoring a trailing slash) unless ``prefix`` is set.
    """

    name: str
    limit: int
    window_seconds: int
    message: str
    paths: tuple[str, ...]
    prefix: bool = False

    def applies_to(self, path: str) -> bool:
        if self.prefix:
            return any(path.startswith(candidate) for candidate in self.paths)
        return (path.rstrip("/") or "/") in self.paths


@dataclass
class _Window:
    resets_at: float
    count: int = 0


class RateLimiter:
    """Fixed-window request counters keyed by rule name and client."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._windows: dict[tuple[str, str], _Window] = {}
        self._next_prune = 0.0

    def hit(self, rule: RateLimitRule, client: str) -> float | None:
        """
        Count one request against ``rule`` for ``client``.

        Returns:
            Seconds until the window resets when the request is over the limit, otherwise None
        """
        now = self._clock()
        self._prune(now)

        key = (rule.name, client)
        window = self._windows.get(key)
        if window is None or now >= window.resets_at:
            window = self._windows[key] = _Window(resets_at=now + rule.window_seconds)

        window.count += 1
        if window.count > rule.limit:
            return window.resets_at - now
        return None

    def _prune(self, now: float) -> None:
        if now < self._next_prune:
            return
        self._windows = {key: window for key, window in self._windows.items() if window.resets_at > now}
        self._next_prune = now + _PRUNE_INTERVAL


def rules_from_settings(rate_limit: Any) -> list[RateLimitRule]:
    """Build the API, login and email budgets from ``settings.rate_limit``."""
    return [
        RateLimitRule(
            name="api",
            limit=rate_limit.api_max_requests,
            window_seconds=rate_limit.api_window_seconds,
            message="Too many requests, please try again later",
            paths=("/api/",),
            prefix=True,
        ),
        RateLimitRule(
            name="auth",
            limit=rate_limit.auth_max_requests,
            window_seconds=rate_limit.auth_window_seconds,
            message="Too many authentication attempts, please try again later",
            paths=("/api/auth/google", "/api/auth/callback"),
        ),
        RateLimitRule(
            name="email",
            limit=rate_limit.email_max_requests,
            window_seconds=rate_limit.email_window_seconds,
            message="Too many email requests, please slow down",
            paths=("/api/emails", "/api/emails/sync", "/api/emails/search", "/api/emails/bulk"),
        ),
    ]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rejects a request with 429 once any matching rule is exhausted for the caller's address.

    Every matching rule counts the request, so a login attempt spends both the API and the login budget.
    """

    def __init__(self, app: ASGIApp, rules: list[RateLimitRule], limiter: RateLimiter | None = None) -> None:
        super().__init__(app)
        self._rules = rules
        self._limiter = limiter or RateLimiter()

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        client = request.client.host if request.client else "unknown"
        path = request.url.path

        for rule in self._rules:
            if not rule.applies_to(path):
                continue

            retry_after = self._limiter.hit(rule, client)
            if retry_after is None:
                continue

            logger.warning(f"Rate limit exceeded; rule: {rule.name}, client: {client}, path: {path}")
            response = error_response_from(RateLimitExceededError(rule.message))
            response.headers["Retry-After"] = str(math.ceil(retry_after))
            return response

        return await call_next(request)
