"""Monitoring helpers for structured logging and timing."""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from functools import wraps
from typing import Any, Awaitable, Callable, Iterator, TypeVar

import structlog


FuncType = TypeVar("FuncType", bound=Callable[..., Awaitable[Any]])


@contextmanager
def round_scope() -> Iterator[str]:
    """Bind a fresh ``round_id`` to every log line emitted inside the block."""
    round_id = uuid.uuid4().hex[:8]
    with structlog.contextvars.bound_contextvars(round_id=round_id):
        yield round_id


def timed(event: str) -> Callable[[FuncType], FuncType]:
    def decorator(func: FuncType) -> FuncType:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            logger = structlog.get_logger(func.__module__)
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                logger.debug(
                    f"{event}.error",
                    duration_seconds=time.perf_counter() - started,
                    error=str(exc),
                )
                raise
            logger.debug(f"{event}.complete", duration_seconds=time.perf_counter() - started)
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
