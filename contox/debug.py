"""Debug instrumentation for contox.

Provides timing and logging for V2 API calls and MCP tool calls.
Enable via CONTOX_DEBUG=1 environment variable or enable_debug() function.

Features:
- Timing for remote calls and tools with slow call warnings
- Request ID correlation so one context pack's calls can be traced together
- Truncated argument and result summaries
"""

import contextvars
import functools
import json
import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

logger = logging.getLogger("contox.debug")

# Context variable for request tracking
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)

# Module-level debug state
_debug_enabled = False

# Configurable thresholds (milliseconds)
SLOW_TOOL_THRESHOLD_MS = 2000
SLOW_REMOTE_THRESHOLD_MS = 1000

T = TypeVar("T", bound=Callable[..., Any])


def is_debug_enabled() -> bool:
    """Check if debug logging is enabled.

    Returns True if either:
    - enable_debug() was called
    - CONTOX_DEBUG env var is set to "1", "true", or "yes"
    """
    if _debug_enabled:
        return True
    env_val = os.environ.get("CONTOX_DEBUG", "").lower()
    return env_val in ("1", "true", "yes")


def enable_debug() -> None:
    """Enable debug logging programmatically."""
    global _debug_enabled
    _debug_enabled = True


def disable_debug() -> None:
    """Disable debug logging programmatically."""
    global _debug_enabled
    _debug_enabled = False


def get_request_id() -> str:
    """Get or create a request ID for the current context."""
    req_id = _request_id.get()
    if req_id is None:
        req_id = str(uuid.uuid4())[:8]
        _request_id.set(req_id)
    return req_id


def clear_request_id() -> None:
    _request_id.set(None)


@dataclass
class CallMetrics:
    """Metrics collected during a call."""

    name: str
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    success: bool = True
    error: str | None = None
    request_id: str | None = None

    @property
    def elapsed_ms(self) -> float:
        """Elapsed time in milliseconds."""
        if self.end_time is None:
            return (time.perf_counter() - self.start_time) * 1000
        return (self.end_time - self.start_time) * 1000

    def complete(self, success: bool = True, error: str | None = None) -> None:
        """Mark the call as complete."""
        self.end_time = time.perf_counter()
        self.success = success
        self.error = error


def _truncate(value: str, max_len: int = 100) -> str:
    """Truncate a string with ellipsis if too long."""
    if len(value) <= max_len:
        return value
    return value[: max_len - 3] + "..."


def _format_value(value: Any, max_len: int = 100) -> str:
    """Format a value for logging, truncating if needed."""
    if value is None:
        return "None"
    if isinstance(value, str):
        return _truncate(repr(value), max_len)
    if isinstance(value, (dict, list)):
        try:
            s = json.dumps(value, default=str)
            return _truncate(s, max_len)
        except (TypeError, ValueError):
            return _truncate(str(value), max_len)
    return _truncate(str(value), max_len)


def _format_args(args: dict[str, Any], max_len: int = 100) -> str:
    """Format function arguments for logging."""
    if not args:
        return "{}"
    parts = []
    for k, v in args.items():
        parts.append(f"{k}={_format_value(v, 50)}")
    result = "{" + ", ".join(parts) + "}"
    return _truncate(result, max_len)


def _summarize_result(result: Any) -> str:
    """Create a brief summary of a call result."""
    if result is None:
        return "None"
    if isinstance(result, str):
        return f"str({len(result)} chars)"
    if isinstance(result, dict):
        return f"dict({list(result.keys())[:5]})"
    if isinstance(result, list):
        return f"list({len(result)} items)"
    return type(result).__name__


def _timed(fn: T, name: str, kind: str, threshold_ms: float) -> T:
    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        if not is_debug_enabled():
            return await fn(*args, **kwargs)

        req_id = get_request_id()
        metrics = CallMetrics(name=name, request_id=req_id)
        logger.debug(f"{kind} [req={req_id}] {name}({_format_args(kwargs)})")

        try:
            result = await fn(*args, **kwargs)
        except Exception as e:
            metrics.complete(success=False, error=str(e))
            logger.error(
                f"{kind}_FAIL [req={req_id}] {name} failed in "
                f"{metrics.elapsed_ms:.1f}ms: {type(e).__name__}: {e}"
            )
            raise

        metrics.complete(success=True)
        elapsed = metrics.elapsed_ms
        summary = _summarize_result(result)
        if elapsed > threshold_ms:
            logger.warning(
                f"{kind}_SLOW [req={req_id}] {name} completed in {elapsed:.1f}ms "
                f"-> {summary}"
            )
        else:
            logger.debug(
                f"{kind}_DONE [req={req_id}] {name} completed in {elapsed:.1f}ms "
                f"-> {summary}"
            )
        return result

    return wrapper  # type: ignore[return-value]


def timed_tool(fn: T, *, tool_name: str | None = None) -> T:
    """Wrap an async MCP tool function with timing and logging."""
    return _timed(fn, tool_name or fn.__name__, "TOOL", SLOW_TOOL_THRESHOLD_MS)


def timed_remote_call(fn: T) -> T:
    """Wrap an async V2 API method with timing and logging.

    Uses the lower SLOW_REMOTE_THRESHOLD_MS.
    """
    return _timed(fn, fn.__name__, "REMOTE", SLOW_REMOTE_THRESHOLD_MS)


class DebugContext:
    """Context manager scoping a request ID.

    Usage:
        async with DebugContext():
            await assemble_context_pack(client, request)
    """

    def __init__(self, request_id: str | None = None):
        self.request_id = request_id or str(uuid.uuid4())[:8]
        self._token: contextvars.Token | None = None

    def __enter__(self) -> "DebugContext":
        self._token = _request_id.set(self.request_id)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token:
            _request_id.reset(self._token)

    async def __aenter__(self) -> "DebugContext":
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


def configure_debug_logging(level: int = logging.DEBUG) -> None:
    """Configure logging for debug output.

    Sets up the contox logger hierarchy with a stderr handler.

    Args:
        level: Logging level for the contox loggers
    """
    contox_logger = logging.getLogger("contox")
    contox_logger.setLevel(level)

    if not contox_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(level)
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        )
        handler.setFormatter(formatter)
        contox_logger.addHandler(handler)
