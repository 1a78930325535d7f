"""Small helpers shared by the calendar and mail collaborators."""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Any, Callable

from strategy_booking.errors import OutboundTimeoutError


def redact_pii(value: str) -> str:
    """Mask PII for logging — show first 3 and last 2 chars only."""
    if not value or len(value) <= 5:
        return "***"
    return value[:3] + "***" + value[-2:]


async def run_blocking(
    func: Callable[..., Any],
    *args: Any,
    timeout: float,
    operation: str,
    **kwargs: Any,
) -> Any:
    """Run a blocking client call in the default thread pool with a deadline.

    The Google client and smtplib are both synchronous; the event loop stays
    free while they run. A call that outlives ``timeout`` surfaces as
    OutboundTimeoutError instead of hanging the request. The worker thread
    is not interrupted: a timed-out call may still finish, and its side
    effect (an inserted event, a delivered email) may still happen.
    """
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(
            loop.run_in_executor(None, partial(func, *args, **kwargs)),
            timeout=timeout,
        )
    except asyncio.TimeoutError as exc:
        raise OutboundTimeoutError(
            f"{operation} timed out after {timeout:g}s"
        ) from exc
