"""
Shared settings store - environment configuration with in-process overrides
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load .env from root directory (parent of backend/)
load_dotenv(Path(__file__).parent.parent / '.env')

# Global overrides store
settings_store = {}


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    groq_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    groq_model: str = "llama-3.3-70b-versatile"
    openai_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 30.0

    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 10
    rate_limit_max_clients: int = 10000

    max_input_length: int = 2000
    max_attempts: int = 3

    cors_origins: tuple = ("http://localhost:3000",)

    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None

    host: str = "0.0.0.0"
    port: int = 8010
    workers: int = 1
    reload: bool = False

    def provider_status(self) -> dict:
        """Which provider API keys are present"""
        return {
            "groq": "configured" if self.groq_api_key else "missing",
            "openai": "configured" if self.openai_api_key else "missing",
        }


def _from_env() -> Settings:
    cors_origins: List[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ]

    return Settings(
        groq_api_key=os.getenv("GROQ_API_KEY") or None,
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        groq_model=os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        llm_timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS", "30")),
        rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60")),
        rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "10")),
        rate_limit_max_clients=int(os.getenv("RATE_LIMIT_MAX_CLIENTS", "10000")),
        max_input_length=int(os.getenv("MAX_INPUT_LENGTH", "2000")),
        max_attempts=int(os.getenv("MAX_ATTEMPTS", "3")),
        cors_origins=tuple(cors_origins),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=_env_bool("LOG_JSON"),
        log_file=os.getenv("LOG_FILE") or None,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8010")),
        # Rate limits and metrics are per process, so one worker unless asked
        workers=int(os.getenv("WORKERS", "1")),
        reload=_env_bool("RELOAD"),
    )


def get_settings() -> Settings:
    """Get current settings with environment variable fallback"""
    settings = _from_env()
    if settings_store:
        settings = replace(settings, **settings_store)
    return settings


def update_settings(**overrides) -> dict:
    """Override individual settings for the running process"""
    known = {f.name for f in fields(Settings)}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

    settings_store.update(overrides)
    return settings_store.copy()


def reset_settings():
    """Drop all overrides"""
    settings_store.clear()
