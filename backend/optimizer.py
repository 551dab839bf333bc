"""
Prompt optimization: request validation, provider selection, and the
fallback loop between Groq and OpenAI
"""
import re
import time
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from category_detector import detect_category
from llm_client import (
    LLMClient,
    LLMError,
    ProviderTimeoutError,
    QuotaExceededError,
    get_llm_client,
)
from logging_config import log_with_context
from metrics import PerformanceTracker, UsageStats, performance_metrics, usage_stats
from security import sanitize_input
from shared_settings import get_settings

logger = logging.getLogger(__name__)


CATEGORY_PROMPTS = {
    "creative": (
        "You are an expert at crafting creative prompts for AI tools. Transform the user's messy input "
        "into a well-structured, detailed prompt that will generate amazing creative content. Include "
        "specific details about style, mood, composition, colors, and artistic direction. Make it clear "
        "and actionable. Focus on visual elements, creative constraints, and desired aesthetic outcomes."
    ),
    "coding": (
        "You are an expert at crafting coding prompts for AI tools. Transform the user's messy input into "
        "a clear, technical prompt that specifies the programming language, framework, functionality, "
        "requirements, and any constraints. Include details about code structure, best practices, error "
        "handling, testing requirements, and expected output format. Be specific about technical "
        "specifications."
    ),
    "business": (
        "You are an expert at crafting business prompts for AI tools. Transform the user's messy input into "
        "a professional, strategic prompt that clearly defines the business context, objectives, target "
        "audience, constraints, KPIs, and desired outcomes. Include market context, competitive "
        "considerations, and measurable success criteria. Make it actionable and results-focused."
    ),
    "academic": (
        "You are an expert at crafting academic prompts for AI tools. Transform the user's messy input into "
        "a scholarly, well-structured prompt that specifies the academic level, subject area, research "
        "methodology, citation requirements, analytical framework, and depth required. Include specific "
        "academic standards, source requirements, and evaluation criteria. Make it precise and "
        "academically rigorous."
    ),
}

AUTO = "auto"
SPECIAL_REQUIREMENTS = re.compile(r'\b(detailed|complex|comprehensive|thorough|in-depth)\b', re.IGNORECASE)


# ============================================================================
# Errors
# ============================================================================

class OptimizationError(Exception):
    """Base class for errors surfaced to the API caller"""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidRequestError(OptimizationError):
    status_code = 400


class QuotaExhaustedError(OptimizationError):
    status_code = 503

    def __init__(self, message: str = "AI service quota exceeded. Please try again later or contact support."):
        super().__init__(message)


class OptimizationFailedError(OptimizationError):
    status_code = 500

    def __init__(self, message: str = "Failed to optimize prompt after multiple attempts. Please try again."):
        super().__init__(message)


# ============================================================================
# Request handling
# ============================================================================

@dataclass
class OptimizeRequest:
    input: str
    category: str
    model: Any = AUTO
    requested_category: str = ""


def validate_request(payload: Any) -> OptimizeRequest:
    """Check an optimize-prompt body and resolve its category"""
    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    text = payload.get("input")
    if not text or not isinstance(text, str):
        raise InvalidRequestError("Valid input text is required")

    text = sanitize_input(text)
    if not text:
        raise InvalidRequestError("Valid input text is required")

    max_length = get_settings().max_input_length
    if text_length(text) > max_length:
        raise InvalidRequestError(f"Input text is too long (max {max_length} characters)")

    category = payload.get("category")
    if not isinstance(category, str) or (category != AUTO and category not in CATEGORY_PROMPTS):
        raise InvalidRequestError("Valid category is required")

    resolved = detect_category(text).value if category == AUTO else category

    # Only a missing key means auto; an explicit null is kept as given
    model = payload.get("model", AUTO)

    return OptimizeRequest(
        input=text,
        category=resolved,
        model=model,
        requested_category=category
    )


def text_length(text: str) -> int:
    """Length in UTF-16 code units, so astral characters count twice"""
    return len(text.encode("utf-16-le")) // 2


def input_complexity(text: str) -> int:
    """Word count as split on single spaces"""
    return len(text.split(" "))


def select_optimal_model(text: str, user_model: Any, category: str) -> str:
    """Pick a provider for the request"""
    # An explicit choice always wins
    if user_model in ("groq", "openai"):
        return user_model

    input_length = text_length(text)
    complexity = input_complexity(text)
    has_special_requirements = bool(SPECIAL_REQUIREMENTS.search(text))

    # Complex academic or business prompts go to OpenAI
    if category in ("academic", "business") and (complexity > 20 or has_special_requirements):
        return "openai"

    # Short creative or coding prompts go to Groq
    if category in ("creative", "coding") and complexity < 15 and input_length < 200:
        return "groq"

    return "groq"


def build_optimization_prompt(text: str, category: str) -> str:
    return f"""Transform this messy user input into a perfectly optimized {category} prompt:

"{text}"

OPTIMIZATION REQUIREMENTS:
- Make it clear, specific, and actionable
- Include all necessary context and requirements
- Structure it for maximum AI comprehension
- Add relevant constraints and success criteria
- Ensure it's 2-4 sentences but comprehensive
- Focus on {category}-specific best practices

Return ONLY the optimized prompt, nothing else."""


def next_provider(current: str, error: LLMError, attempt: int, max_attempts: int) -> Optional[str]:
    """
    Decide where the next attempt goes after a failure.
    Returns None when the loop should stop.
    """
    # OpenAI out of quota or hanging: move to Groq straight away
    if current == "openai" and isinstance(error, (QuotaExceededError, ProviderTimeoutError)):
        return "groq"

    if current == "groq" and attempt < max_attempts:
        return "openai"

    if attempt >= 2:
        return None

    return current


def is_quota_error(error: Optional[Exception]) -> bool:
    if error is None:
        return False
    message = str(error).lower()
    return "quota" in message or "billing" in message


@dataclass
class OptimizationResult:
    optimized_prompt: str
    model: str
    category: str
    timestamp: str
    latency: int
    input_complexity: int
    optimization: str
    attempts: int


def iso_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PromptOptimizer:
    """Runs one optimization request through the provider fallback loop"""

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        performance: Optional[PerformanceTracker] = None,
        usage: Optional[UsageStats] = None
    ):
        self.llm_client = llm_client or get_llm_client()
        self.performance = performance or performance_metrics
        self.usage = usage or usage_stats

    def _record(self, request: OptimizeRequest, model: str, start_time: float, success: bool) -> int:
        latency = int((time.time() - start_time) * 1000)
        self.performance.record(model, latency, success)
        self.usage.record(request.category, model, success)
        return latency

    async def optimize(self, request: OptimizeRequest, start_time: Optional[float] = None) -> OptimizationResult:
        start_time = start_time or time.time()
        max_attempts = get_settings().max_attempts
        system_prompt = CATEGORY_PROMPTS[request.category]
        selected = select_optimal_model(request.input, request.model, request.category)
        complexity = input_complexity(request.input)

        log_with_context(
            logger, "INFO",
            "Processing prompt optimization",
            category=request.category,
            requested_category=request.requested_category,
            requested_model=request.model,
            selected_model=selected,
            input_length=text_length(request.input),
            complexity=complexity
        )

        prompt = build_optimization_prompt(request.input, request.category)
        attempt = 0
        last_error: Optional[LLMError] = None

        try:
            while attempt < max_attempts:
                attempt += 1
                log_with_context(logger, "INFO", "Calling provider", provider=selected, attempt=attempt)

                try:
                    response = await self.llm_client.generate(selected, system_prompt, prompt)
                except LLMError as e:
                    last_error = e
                    log_with_context(
                        logger, "WARNING",
                        f"Provider call failed: {e.message}",
                        provider=selected,
                        attempt=attempt,
                        error_type=type(e).__name__
                    )

                    following = next_provider(selected, e, attempt, max_attempts)
                    if following is None:
                        break
                    if following != selected:
                        logger.info(f"Switching from {selected} to {following}")
                    selected = following
                    continue

                latency = self._record(request, selected, start_time, True)
                log_with_context(
                    logger, "INFO",
                    "Successfully optimized prompt",
                    output_length=len(response.output),
                    latency_ms=latency,
                    provider=selected,
                    attempt=attempt
                )

                return OptimizationResult(
                    optimized_prompt=response.output.strip(),
                    model=selected,
                    category=request.category,
                    timestamp=iso_timestamp(),
                    latency=latency,
                    input_complexity=complexity,
                    optimization="intelligent" if request.model == AUTO else "manual",
                    attempts=attempt
                )
        except Exception as e:
            # Anything outside the LLMError hierarchy is unexpected
            self._record(request, selected, start_time, False)
            logger.exception(f"Unexpected error optimizing prompt with {selected}")
            raise OptimizationError("An unexpected error occurred. Please try again.") from e

        self._record(request, selected, start_time, False)
        logger.error(
            f"Error optimizing prompt: failed after {attempt} attempts. "
            f"Last error: {last_error.message if last_error else 'none'}"
        )

        if is_quota_error(last_error):
            raise QuotaExhaustedError()
        raise OptimizationFailedError()
