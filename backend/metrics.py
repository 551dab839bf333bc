"""
In-memory bookkeeping for provider performance and usage statistics
"""
import math
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, Optional

KNOWN_CATEGORIES = ("creative", "coding", "business", "academic")
KNOWN_MODELS = ("groq", "openai")


def round_half_up(value: float) -> int:
    """Round halves upward, so 12.5 becomes 13"""
    return int(math.floor(value + 0.5))


@dataclass
class ModelPerformance:
    """Running counters for one provider"""
    total_requests: int = 0
    total_latency: int = 0
    success_rate: float = 0.0
    last_used: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRequests": self.total_requests,
            "totalLatency": self.total_latency,
            "lastUsed": self.last_used,
            "averageLatency": round_half_up(self.total_latency / self.total_requests) if self.total_requests else 0,
            "successRate": round_half_up(self.success_rate * 100),
        }


class PerformanceTracker:
    """Per-provider latency and success-rate table"""

    def __init__(self):
        self._models: Dict[str, ModelPerformance] = {}
        self._lock = Lock()

    def record(self, model: str, latency_ms: int, success: bool):
        """Fold one finished request into the provider's running averages"""
        with self._lock:
            current = self._models.setdefault(model, ModelPerformance())

            current.total_requests += 1
            current.total_latency += latency_ms
            n = current.total_requests
            current.success_rate = (current.success_rate * (n - 1) + (1 if success else 0)) / n
            current.last_used = int(time.time() * 1000)

    def get(self, model: str) -> Optional[ModelPerformance]:
        with self._lock:
            current = self._models.get(model)
            if current is None:
                return None
            return ModelPerformance(**vars(current))

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {model: data.to_dict() for model, data in self._models.items()}

    def reset(self):
        with self._lock:
            self._models = {}


class UsageStats:
    """Aggregate request counters, broken down by category and model"""

    def __init__(self):
        self._lock = Lock()
        self.reset()

    def record(self, category: Optional[str], model: Optional[str], success: bool):
        with self._lock:
            self.total_requests += 1

            if success:
                self.successful_requests += 1
            else:
                self.failed_requests += 1

            if isinstance(category, str) and category in self.category_breakdown:
                self.category_breakdown[category] += 1

            if isinstance(model, str) and model in self.model_usage:
                self.model_usage[model] += 1

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "totalRequests": self.total_requests,
                "successfulRequests": self.successful_requests,
                "failedRequests": self.failed_requests,
                "categoryBreakdown": dict(self.category_breakdown),
                "modelUsage": dict(self.model_usage),
            }

    def reset(self):
        with self._lock:
            self.total_requests = 0
            self.successful_requests = 0
            self.failed_requests = 0
            self.category_breakdown = {category: 0 for category in KNOWN_CATEGORIES}
            self.model_usage = {model: 0 for model in KNOWN_MODELS}


# Global instances
performance_metrics = PerformanceTracker()
usage_stats = UsageStats()
