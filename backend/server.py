"""
FastAPI server for the prompt optimizer
"""
import time
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from llm_client import get_llm_client
from logging_config import generate_request_id, reset_request_id, set_request_id, setup_logging
from metrics import performance_metrics, usage_stats
from models import (
    ErrorResponse,
    HealthStatus,
    OptimizationMetadata,
    OptimizeResponse,
    PerformanceReport,
    StatsUpdateResponse,
    UsageStatsReport,
)
from optimizer import (
    InvalidRequestError,
    OptimizationError,
    PromptOptimizer,
    iso_timestamp,
    validate_request,
)
from security import check_rate_limit, get_client_ip, get_rate_limiter
from shared_settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging on startup"""
    settings = get_settings()
    setup_logging(level=settings.log_level, json_format=settings.log_json, log_file=settings.log_file)

    status = settings.provider_status()
    logger.info(f"Prompt optimizer starting (groq: {status['groq']}, openai: {status['openai']})")
    if "missing" in status.values():
        logger.warning("At least one provider API key is missing; fallback will be limited")

    yield

    logger.info("Prompt optimizer stopped")


app = FastAPI(title="Prompt Optimizer API", lifespan=lifespan)

# CORS middleware - load origins from env
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize LLM client
llm_client = get_llm_client()


@app.middleware("http")
async def bind_request_id(request: Request, call_next):
    """Tag every request with an id shared by its log lines"""
    request_id = request.headers.get("x-request-id") or generate_request_id()
    token = set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        reset_request_id(token)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(OptimizationError)
async def optimization_error_handler(request: Request, exc: OptimizationError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.get("/")
async def root():
    return {"message": "Prompt Optimizer API"}


# ============================================================================
# PROMPT OPTIMIZATION
# ============================================================================

@app.post(
    "/api/optimize-prompt",
    response_model=OptimizeResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def optimize_prompt(request: Request):
    """Rewrite free-form input into a structured prompt"""
    start_time = time.time()

    client_ip = get_client_ip(request.headers, request.client.host if request.client else None)
    allowed, reset_time = check_rate_limit(client_ip)

    if not allowed:
        return JSONResponse(
            status_code=429,
            content={"error": "Rate limit exceeded. Please try again later."},
            headers={
                "X-RateLimit-Reset": str(reset_time),
                "Retry-After": str(get_rate_limiter().retry_after(reset_time)),
            },
        )

    try:
        payload = await request.json()
    except ValueError:
        raise InvalidRequestError("Request body must be valid JSON") from None

    optimize_request = validate_request(payload)

    optimizer = PromptOptimizer(llm_client=llm_client)
    result = await optimizer.optimize(optimize_request, start_time=start_time)

    return OptimizeResponse(
        optimized_prompt=result.optimized_prompt,
        metadata=OptimizationMetadata(
            model=result.model,
            category=result.category,
            timestamp=result.timestamp,
            latency=result.latency,
            input_complexity=result.input_complexity,
            optimization=result.optimization,
            attempts=result.attempts,
        ),
    )


@app.get("/api/optimize-prompt", response_model=PerformanceReport)
async def get_performance_metrics():
    """Per-provider latency and success rates"""
    return {"metrics": performance_metrics.snapshot(), "timestamp": iso_timestamp()}


# ============================================================================
# USAGE STATISTICS
# ============================================================================

@app.get("/api/stats", response_model=UsageStatsReport)
async def get_stats():
    return usage_stats.to_dict()


@app.post("/api/stats", response_model=StatsUpdateResponse, responses={500: {"model": ErrorResponse}})
async def update_stats(request: Request):
    """Record the outcome of an optimization reported by a client"""
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    if not isinstance(payload, dict):
        return JSONResponse(status_code=500, content={"error": "Failed to update stats"})

    usage_stats.record(payload.get("category"), payload.get("model"), bool(payload.get("success")))
    return {"success": True}


# ============================================================================
# HEALTH
# ============================================================================

@app.get("/api/health", response_model=HealthStatus)
async def health():
    return {
        "status": "healthy",
        "timestamp": iso_timestamp(),
        "services": get_settings().provider_status(),
    }
