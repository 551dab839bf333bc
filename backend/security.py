"""
Security utilities for the prompt optimizer
- Client identification
- Rate limiting
- Request validation helpers
"""
import math
import time
import logging
from typing import Callable, Optional, Tuple
from threading import Lock

from cachetools import TTLCache

from shared_settings import get_settings

logger = logging.getLogger(__name__)


# ============================================================================
# Client identification
# ============================================================================

def get_client_ip(headers, peer: Optional[str] = None) -> str:
    """
    Resolve the rate-limit key for a request.
    First hop of X-Forwarded-For, then X-Real-IP, then the socket peer.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return peer or "unknown"


# ============================================================================
# Rate Limiting
# ============================================================================

class RateLimiter:
    """
    Fixed-window in-memory rate limiter.

    The first request from a key opens a window; the window closes
    `window_seconds` later no matter how many requests arrived. Records
    are held in a TTL cache so expired windows drop out on their own.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: int = 60,
        max_clients: int = 10000,
        clock: Callable[[], float] = time.time
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self.records = TTLCache(maxsize=max_clients, ttl=window_seconds, timer=clock)
        self.lock = Lock()

    def check(self, key: str) -> Tuple[bool, int]:
        """
        Count a request against `key`.
        Returns (is_allowed, reset_time_ms)
        """
        now = self.clock()

        with self.lock:
            record = self.records.get(key)

            if record is None or now > record["reset_time"]:
                reset_time = now + self.window_seconds
                self.records[key] = {"count": 1, "reset_time": reset_time}
                return True, int(reset_time * 1000)

            if record["count"] >= self.max_requests:
                return False, int(record["reset_time"] * 1000)

            # Mutate in place so the cache keeps the original expiry
            record["count"] += 1
            return True, int(record["reset_time"] * 1000)

    def retry_after(self, reset_time_ms: int) -> int:
        """Whole seconds until a window that resets at `reset_time_ms` closes"""
        remaining = (reset_time_ms - self.clock() * 1000) / 1000
        return max(0, math.ceil(remaining))

    def reset(self):
        with self.lock:
            self.records.clear()


_rate_limiter: Optional[RateLimiter] = None
_limiter_lock = Lock()


def get_rate_limiter() -> RateLimiter:
    """Get the process-wide rate limiter, built from current settings"""
    global _rate_limiter

    with _limiter_lock:
        if _rate_limiter is None:
            settings = get_settings()
            _rate_limiter = RateLimiter(
                max_requests=settings.rate_limit_max_requests,
                window_seconds=settings.rate_limit_window_seconds,
                max_clients=settings.rate_limit_max_clients
            )
        return _rate_limiter


def reset_rate_limiter():
    """Forget the current limiter so the next call picks up new settings"""
    global _rate_limiter
    with _limiter_lock:
        _rate_limiter = None


def check_rate_limit(client_id: str) -> Tuple[bool, int]:
    """
    Check rate limit for a client
    Returns (is_allowed, reset_time_ms)
    """
    allowed, reset_time = get_rate_limiter().check(client_id)
    if not allowed:
        logger.warning(f"Rate limit exceeded for client {client_id}")
    return allowed, reset_time


# ============================================================================
# Request Validation
# ============================================================================

def sanitize_input(text: str) -> str:
    """Remove null bytes from user input"""
    if not text:
        return ""
    return text.replace("\x00", "")
