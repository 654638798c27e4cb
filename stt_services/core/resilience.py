"""
Resilience patterns: timeout handling and caller cancellation
"""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from .exceptions import ProviderError, ProviderErrorKind, TranscriptionCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_timeout(
    awaitable: Awaitable[T],
    timeout_seconds: Optional[float],
    provider: str,
    operation: str = "request",
) -> T:
    """
    Await a provider call with its own deadline

    Raises:
        ProviderError: TIMEOUT kind when the deadline is exceeded
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning(f"{provider} {operation} timed out after {timeout_seconds}s")
        raise ProviderError(
            ProviderErrorKind.TIMEOUT,
            f"{operation} timed out after {timeout_seconds}s",
            provider=provider,
        )


def check_cancelled(cancel_event: Optional[asyncio.Event], step: str = "operation") -> None:
    """Raise if the caller has signalled cancellation"""
    if cancel_event is not None and cancel_event.is_set():
        raise TranscriptionCancelledError(f"{step} cancelled by caller")


async def run_cancellable(
    awaitable: Awaitable[T],
    cancel_event: Optional[asyncio.Event],
    step: str = "operation",
) -> T:
    """
    Race an awaitable against the caller's cancellation event

    The in-flight step is cancelled as soon as the event fires.

    Raises:
        TranscriptionCancelledError: If the event fires before completion
    """
    if cancel_event is None:
        return await awaitable

    if cancel_event.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise TranscriptionCancelledError(f"{step} cancelled by caller")

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())

    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        waiter.cancel()
        raise

    if task in done:
        waiter.cancel()
        return task.result()

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    logger.info(f"{step} cancelled by caller")
    raise TranscriptionCancelledError(f"{step} cancelled by caller")
