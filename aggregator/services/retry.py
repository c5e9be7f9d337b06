from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int,
    delay_seconds: float = 0,
    on_error: Callable[[Exception, int], None] | None = None,
) -> T:
    """Await ``operation`` up to ``retries`` times with a fixed delay between tries.

    The error of the final attempt is re-raised.
    """
    if retries < 1:
        raise ValueError("retries must be at least 1")

    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            if on_error is not None:
                on_error(exc, attempt)
            if attempt >= retries:
                raise
        attempt += 1
        if delay_seconds > 0:
            await asyncio.sleep(delay_seconds)


def format_exception_message(exc: Exception) -> str:
    message = str(exc).strip()
    if message:
        return f"{type(exc).__name__}: {message}"
    return f"{type(exc).__name__}: no details provided"
