"""
Unit tests for client identification and rate limiting
"""
import pytest
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from security import (
    RateLimiter,
    check_rate_limit,
    get_client_ip,
    get_rate_limiter,
    reset_rate_limiter,
    sanitize_input
)
from shared_settings import update_settings


class TestGetClientIp:
    """Tests for get_client_ip"""

    def test_uses_first_forwarded_hop(self):
        headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1", "x-real-ip": "10.0.0.2"}
        assert get_client_ip(headers, "127.0.0.1") == "203.0.113.7"

    def test_falls_back_to_real_ip(self):
        assert get_client_ip({"x-real-ip": "198.51.100.4"}, "127.0.0.1") == "198.51.100.4"

    def test_falls_back_to_peer(self):
        assert get_client_ip({}, "127.0.0.1") == "127.0.0.1"

    def test_unknown_when_nothing_available(self):
        assert get_client_ip({}) == "unknown"


class TestRateLimiter:
    """Tests for the fixed-window RateLimiter"""

    def test_first_request_opens_window(self, fake_clock):
        limiter = RateLimiter(max_requests=3, window_seconds=60, clock=fake_clock)

        allowed, reset_time = limiter.check("1.2.3.4")

        assert allowed is True
        assert reset_time == int((fake_clock.now + 60) * 1000)

    def test_blocks_after_max_requests(self, fake_clock):
        limiter = RateLimiter(max_requests=3, window_seconds=60, clock=fake_clock)

        results = [limiter.check("1.2.3.4")[0] for _ in range(5)]

        assert results == [True, True, True, False, False]

    def test_window_does_not_slide(self, fake_clock):
        """Requests inside the window keep the original reset time"""
        limiter = RateLimiter(max_requests=3, window_seconds=60, clock=fake_clock)
        _, first_reset = limiter.check("1.2.3.4")

        fake_clock.advance(30)
        _, second_reset = limiter.check("1.2.3.4")

        assert first_reset == second_reset

    def test_denied_request_reports_existing_reset(self, fake_clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=fake_clock)
        _, reset_time = limiter.check("1.2.3.4")

        fake_clock.advance(10)
        allowed, denied_reset = limiter.check("1.2.3.4")

        assert allowed is False
        assert denied_reset == reset_time

    def test_new_window_after_expiry(self, fake_clock):
        limiter = RateLimiter(max_requests=2, window_seconds=60, clock=fake_clock)
        limiter.check("1.2.3.4")
        limiter.check("1.2.3.4")
        assert limiter.check("1.2.3.4")[0] is False

        fake_clock.advance(61)
        allowed, reset_time = limiter.check("1.2.3.4")

        assert allowed is True
        assert reset_time == int((fake_clock.now + 60) * 1000)

    def test_keys_are_independent(self, fake_clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=fake_clock)

        assert limiter.check("a")[0] is True
        assert limiter.check("a")[0] is False
        assert limiter.check("b")[0] is True

    def test_full_map_evicts_least_recently_used(self, fake_clock):
        """A third client pushes out the oldest one, which then starts over"""
        limiter = RateLimiter(max_requests=1, window_seconds=60, max_clients=2, clock=fake_clock)
        limiter.check("a")
        limiter.check("b")

        fake_clock.advance(5)
        assert limiter.check("c")[0] is True
        assert "a" not in limiter.records
        assert len(limiter.records) == 2

        # "a" would be blocked if its record had survived
        allowed, reset_time = limiter.check("a")
        assert allowed is True
        assert reset_time == int((fake_clock.now + 60) * 1000)

        # "c" keeps its window; "b" made room for "a"
        assert limiter.check("c")[0] is False
        assert "b" not in limiter.records

    def test_max_clients_follows_settings(self):
        update_settings(rate_limit_max_clients=5)
        reset_rate_limiter()

        assert get_rate_limiter().records.maxsize == 5

    def test_retry_after_rounds_up(self, fake_clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=fake_clock)
        _, reset_time = limiter.check("1.2.3.4")

        fake_clock.advance(20.5)

        assert limiter.retry_after(reset_time) == 40

    def test_retry_after_never_negative(self, fake_clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=fake_clock)
        _, reset_time = limiter.check("1.2.3.4")

        fake_clock.advance(120)

        assert limiter.retry_after(reset_time) == 0

    def test_reset_clears_records(self, fake_clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=fake_clock)
        limiter.check("1.2.3.4")
        limiter.reset()

        assert limiter.check("1.2.3.4")[0] is True


class TestCheckRateLimit:
    """Tests for the process-wide limiter"""

    def test_limiter_uses_settings(self):
        update_settings(rate_limit_max_requests=2, rate_limit_window_seconds=30)
        reset_rate_limiter()

        limiter = get_rate_limiter()

        assert limiter.max_requests == 2
        assert limiter.window_seconds == 30

    def test_check_rate_limit_blocks(self):
        update_settings(rate_limit_max_requests=2)
        reset_rate_limiter()

        assert check_rate_limit("9.9.9.9")[0] is True
        assert check_rate_limit("9.9.9.9")[0] is True
        assert check_rate_limit("9.9.9.9")[0] is False


class TestSanitizeInput:
    """Tests for sanitize_input"""

    def test_removes_null_bytes(self):
        assert sanitize_input("a\x00b") == "ab"

    def test_empty(self):
        assert sanitize_input("") == ""
