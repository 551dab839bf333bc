"""
Pytest configuration and shared fixtures
"""
import pytest
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

# Set test environment
os.environ["TESTING"] = "true"

from metrics import performance_metrics, usage_stats
from security import reset_rate_limiter
from shared_settings import reset_settings, update_settings


@pytest.fixture(autouse=True)
def clean_state():
    """Start every test with fresh settings, limits and counters"""
    reset_settings()
    update_settings(groq_api_key="test-groq-key", openai_api_key="test-openai-key")
    reset_rate_limiter()
    performance_metrics.reset()
    usage_stats.reset()
    yield
    reset_settings()
    reset_rate_limiter()
    performance_metrics.reset()
    usage_stats.reset()


class FakeClock:
    """Manually advanced clock in epoch seconds"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()
