"""
API key check and per-client rate limiting for the comment gate.
"""

import hmac
import logging
import threading
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, NamedTuple, Optional

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from commentguard.config import settings

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name=settings.api_token_header, auto_error=False)


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "ApiKey"},
    )


async def verify_api_token(
    request: Request,
    api_key: Optional[str] = Security(api_key_header),
):
    """
    Require the configured API token in the API key header.
    Without a configured token every caller is let through.
    """
    expected = settings.api_token
    if not expected:
        if settings.is_production:
            logger.warning("API token not configured in production mode!")
        return None

    if not api_key:
        logger.warning(f"Missing API key from {_client_host(request)}")
        raise _unauthorized(f"Missing API key. Provide {settings.api_token_header} header.")

    if not hmac.compare_digest(api_key.encode(), expected.encode()):
        logger.warning(f"Invalid API key attempt from {_client_host(request)}")
        raise _unauthorized("Invalid API key.")

    return api_key


class RateDecision(NamedTuple):
    allowed: bool
    remaining: int
    retry_after: int  # seconds, 0 when allowed


class RateLimiter:
    """
    Sliding-window limiter kept in process memory.
    Each key holds the timestamps of its calls inside the window; keys with
    no call inside the window are dropped once per window.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._calls: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = clock()

    def _sweep(self, now: float, window: int):
        idle = [key for key, calls in self._calls.items() if not calls or now - calls[-1] >= window]
        for key in idle:
            del self._calls[key]
        self._last_sweep = now

    @property
    def tracked_keys(self) -> int:
        return len(self._calls)

    def hit(self, key: str, limit: int, window: int) -> RateDecision:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= window:
                self._sweep(now, window)

            calls = self._calls[key]
            while calls and now - calls[0] >= window:
                calls.popleft()

            if len(calls) >= limit:
                retry_after = max(0, int(window - (now - calls[0])))
                return RateDecision(False, 0, retry_after)

            calls.append(now)
            return RateDecision(True, limit - len(calls), 0)

    def reset(self):
        with self._lock:
            self._calls.clear()


rate_limiter = RateLimiter()


async def check_rate_limit(request: Request):
    """Limit comment-gate calls per client IP (0 requests = unlimited)."""
    limit = settings.rate_limit_requests
    if not limit:
        return

    client_ip = _client_host(request)
    decision = rate_limiter.hit(client_ip, limit, settings.rate_limit_window)

    request.state.rate_limit_limit = limit
    request.state.rate_limit_remaining = decision.remaining

    if not decision.allowed:
        logger.warning(f"Rate limit exceeded for {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded. Try again in {decision.retry_after} seconds.",
            headers={
                "Retry-After": str(decision.retry_after),
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": "0",
            },
        )
