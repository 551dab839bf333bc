"""
Response models for the prompt optimizer API
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Dict, Literal


class CamelModel(BaseModel):
    """Serializes snake_case fields as camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============= Optimization =============

class OptimizationMetadata(CamelModel):
    model: str
    category: str
    timestamp: str
    latency: int  # ms since the request arrived
    input_complexity: int
    optimization: Literal["intelligent", "manual"]
    attempts: int


class OptimizeResponse(CamelModel):
    optimized_prompt: str
    metadata: OptimizationMetadata


class ErrorResponse(BaseModel):
    error: str


# ============= Metrics =============

class ModelMetrics(CamelModel):
    total_requests: int
    total_latency: int
    last_used: int
    average_latency: int
    success_rate: int  # percent


class PerformanceReport(BaseModel):
    metrics: Dict[str, ModelMetrics]
    timestamp: str


class UsageStatsReport(CamelModel):
    total_requests: int
    successful_requests: int
    failed_requests: int
    category_breakdown: Dict[str, int]
    model_usage: Dict[str, int]


class StatsUpdateResponse(BaseModel):
    success: bool


# ============= Health =============

class HealthStatus(BaseModel):
    status: str
    timestamp: str
    services: Dict[str, str]
