"""
LLM client for the prompt optimizer
Features:
- Groq and OpenAI chat completions behind one interface
- Per-provider sampling configuration
- Provider errors normalized into a typed hierarchy
- Request/response logging
"""
import time
import logging
from typing import Optional
from dataclasses import dataclass

import groq
import openai
from groq import AsyncGroq
from openai import AsyncOpenAI

from logging_config import log_performance
from shared_settings import get_settings

logger = logging.getLogger(__name__)


SUPPORTED_PROVIDERS = ("groq", "openai")


class LLMError(Exception):
    """Base exception for LLM errors"""
    def __init__(self, message: str, provider: str):
        self.message = message
        self.provider = provider
        super().__init__(message)


class ProviderNotConfiguredError(LLMError):
    """No API key for the provider"""
    def __init__(self, provider: str):
        super().__init__(f"{provider} API key is not configured", provider)


class AuthenticationError(LLMError):
    """Invalid API key"""


class QuotaExceededError(LLMError):
    """Quota or billing limit hit"""


class RateLimitError(LLMError):
    """Provider-side rate limit"""


class ProviderTimeoutError(LLMError):
    """Request timed out"""


class EmptyResponseError(LLMError):
    """Provider answered without any text"""
    def __init__(self, provider: str):
        super().__init__(f"{provider} returned an empty response", provider)


@dataclass
class LLMResponse:
    """Standardized LLM response"""
    output: str
    model: str = ""
    provider: str = ""
    latency_ms: int = 0
    tokens_used: int = 0
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class ProviderConfig:
    """Sampling parameters used for every call to a provider"""
    model: str
    max_tokens: int
    temperature: float
    top_p: float
    frequency_penalty: float
    presence_penalty: float


def get_provider_config(provider: str) -> ProviderConfig:
    settings = get_settings()

    if provider == "groq":
        return ProviderConfig(
            model=settings.groq_model,
            max_tokens=600,
            temperature=0.7,
            top_p=0.9,
            frequency_penalty=0.1,
            presence_penalty=0.1
        )

    if provider == "openai":
        return ProviderConfig(
            model=settings.openai_model,
            max_tokens=800,
            temperature=0.6,
            top_p=0.95,
            frequency_penalty=0.2,
            presence_penalty=0.1
        )

    raise ValueError(f"Unsupported provider: {provider}")


# Error message patterns
QUOTA_ERRORS = ["quota", "billing", "exceeded"]
AUTH_ERRORS = ["401", "invalid_api_key", "invalid api key", "authentication", "unauthorized"]
TIMEOUT_ERRORS = ["timeout", "timed out"]
RATE_LIMIT_ERRORS = ["rate limit", "rate_limit", "429", "too many requests"]


def _matches(error_lower: str, patterns) -> bool:
    return any(pattern in error_lower for pattern in patterns)


def classify_error(error: Exception, provider: str) -> LLMError:
    """Map an SDK exception onto the LLMError hierarchy"""
    if isinstance(error, LLMError):
        return error

    error_msg = str(error) or error.__class__.__name__
    error_lower = error_msg.lower()

    if isinstance(error, (openai.APITimeoutError, groq.APITimeoutError)) or _matches(error_lower, TIMEOUT_ERRORS):
        return ProviderTimeoutError(error_msg, provider)

    if _matches(error_lower, QUOTA_ERRORS):
        return QuotaExceededError(error_msg, provider)

    if isinstance(error, (openai.AuthenticationError, groq.AuthenticationError)) or _matches(error_lower, AUTH_ERRORS):
        return AuthenticationError(error_msg, provider)

    if isinstance(error, (openai.RateLimitError, groq.RateLimitError)) or _matches(error_lower, RATE_LIMIT_ERRORS):
        return RateLimitError(error_msg, provider)

    return LLMError(error_msg, provider)


class LLMClient:
    """Chat completion client for the supported providers"""

    def __init__(self):
        self._clients = {}

    def _get_client(self, provider: str):
        """Get or create the SDK client for a provider"""
        settings = get_settings()

        if provider == "groq":
            api_key = settings.groq_api_key
            factory = AsyncGroq
        elif provider == "openai":
            api_key = settings.openai_api_key
            factory = AsyncOpenAI
        else:
            raise ValueError(f"Unsupported provider: {provider}")

        if not api_key:
            raise ProviderNotConfiguredError(provider)

        cache_key = (provider, api_key, settings.llm_timeout_seconds)
        client = self._clients.get(cache_key)
        if client is None:
            client = factory(api_key=api_key, timeout=settings.llm_timeout_seconds, max_retries=0)
            self._clients[cache_key] = client
        return client

    @log_performance(logger, "llm_completion")
    async def _complete(self, client, config: ProviderConfig, system_prompt: str, prompt: str):
        return await client.chat.completions.create(
            model=config.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt}
            ],
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            top_p=config.top_p,
            frequency_penalty=config.frequency_penalty,
            presence_penalty=config.presence_penalty
        )

    async def generate(
        self,
        provider: str,
        system_prompt: str,
        prompt: str
    ) -> LLMResponse:
        """
        Run one chat completion against `provider`.

        Raises an LLMError subclass on any failure.
        """
        start_time = time.time()
        config = get_provider_config(provider)
        client = self._get_client(provider)

        try:
            response = await self._complete(client, config, system_prompt, prompt)
        except Exception as e:
            raise classify_error(e, provider) from e

        choices = getattr(response, "choices", None)
        if not choices:
            raise EmptyResponseError(provider)

        output = choices[0].message.content
        if not output or not output.strip():
            raise EmptyResponseError(provider)

        usage = response.usage
        return LLMResponse(
            output=output,
            model=config.model,
            provider=provider,
            latency_ms=int((time.time() - start_time) * 1000),
            tokens_used=usage.total_tokens if usage else 0,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0
        )


_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get LLM client instance"""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client
