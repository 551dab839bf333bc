"""
Logging for the prompt optimizer
Features:
- One JSON object per line for production, colored lines for development
- Request ids carried through a ContextVar
- Provider and attempt fields lifted out of each record's context
"""
import inspect
import logging
import json
import sys
import time
import uuid
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from functools import wraps
from contextvars import ContextVar, Token

request_id_var: ContextVar[str] = ContextVar('request_id', default='')

# Fields every fallback-loop line may carry; they get their own keys
TOP_LEVEL_FIELDS = ("provider", "attempt", "category", "latency_ms")

NOISY_LOGGERS = ("httpx", "httpcore", "openai", "groq", "asyncio")


def _split_context(record: logging.LogRecord):
    """Separate the well-known fields from the rest of a record's context"""
    context: Dict[str, Any] = dict(getattr(record, 'extra_data', None) or {})
    known = {key: context.pop(key) for key in TOP_LEVEL_FIELDS if key in context}
    return known, context


def _utc_timestamp(record: logging.LogRecord) -> str:
    created = datetime.fromtimestamp(record.created, timezone.utc)
    return created.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class StructuredFormatter(logging.Formatter):
    """
    JSON line formatter.

    `provider`, `attempt`, `category` and `latency_ms` are emitted as
    top-level keys so log queries can filter on them; any other context
    goes under `context`.
    """

    def format(self, record: logging.LogRecord) -> str:
        known, context = _split_context(record)

        entry: Dict[str, Any] = {
            "timestamp": _utc_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = get_request_id()
        if request_id:
            entry["request_id"] = request_id

        entry.update(known)
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """Readable single-line output, tagging fallback attempts as provider#attempt"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        known, context = _split_context(record)

        parts = [datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]]

        request_id = get_request_id()
        if request_id:
            parts.append(f"[{request_id[:8]}]")

        parts.append(f"{color}{record.levelname:8}{self.RESET}")
        parts.append(f"{record.name}:")

        if "provider" in known:
            tag = known.pop("provider")
            if "attempt" in known:
                tag = f"{tag}#{known.pop('attempt')}"
            parts.append(f"<{tag}>")

        parts.append(record.getMessage())

        fields = {**known, **context}
        if fields:
            parts.append(" ".join(f"{key}={value}" for key, value in fields.items()))

        message = " ".join(parts)
        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None
):
    """
    Route all records to stdout, and to `log_file` as JSON when given.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON lines on stdout instead of the dev format
        log_file: Optional file that always receives JSON lines
    """
    levelno = getattr(logging, level.upper(), logging.INFO)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(StructuredFormatter() if json_format else DevFormatter())
    handlers = [console]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(levelno)

    # SDK and transport chatter only at WARNING and above
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(levelno, logging.WARNING))


def generate_request_id() -> str:
    return str(uuid.uuid4())


def set_request_id(request_id: str) -> Token:
    """Bind `request_id` to the current context; pass the token to reset_request_id"""
    return request_id_var.set(request_id)


def reset_request_id(token: Token):
    request_id_var.reset(token)


def get_request_id() -> str:
    return request_id_var.get()


def log_with_context(logger: logging.Logger, level: str, message: str, **extra):
    """Log `message` with structured context attached as `extra_data`"""
    logger.log(getattr(logging, level.upper()), message, extra={"extra_data": extra}, stacklevel=2)


def log_performance(logger: logging.Logger, operation: str):
    """Decorator timing a coroutine; failures are logged and re-raised"""
    def decorator(func):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"log_performance expects a coroutine function, got {func!r}")

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                log_with_context(
                    logger, "WARNING",
                    f"{operation} failed: {e}",
                    operation=operation,
                    duration_ms=int((time.time() - start_time) * 1000),
                    error_type=type(e).__name__
                )
                raise

            log_with_context(
                logger, "DEBUG",
                f"{operation} completed",
                operation=operation,
                duration_ms=int((time.time() - start_time) * 1000)
            )
            return result

        return async_wrapper

    return decorator
