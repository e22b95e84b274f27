"""
Fixed-delay retry helpers shared by the reconnect loops.

There is no attempt limit and no exponential growth: every failure waits
the same delay and tries again.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from ..errors import EventPipelineError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class FixedBackoff:
    """Constant delay between attempts.

    Attributes:
        delay: Seconds to wait between attempts
        sleep: Awaitable sleep function, replaceable in tests
    """
    delay: float = 2.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    async def wait(self) -> None:
        await self.sleep(self.delay)


async def retry_until_success(
    operation: Callable[[], Awaitable[T]],
    backoff: FixedBackoff,
    description: str,
    on_failure: Callable[[], Awaitable[None]] | None = None
) -> T:
    """
    Run an async operation until it succeeds.

    Args:
        operation: Zero-argument coroutine function to attempt
        backoff: Delay policy applied after each failure
        description: Short label used in log lines
        on_failure: Optional coroutine function awaited after the delay,
            before the next attempt (e.g. a reconnect)

    Returns:
        The operation's result

    Raises:
        EventPipelineError: Propagated immediately, never retried
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except EventPipelineError:
            raise
        except Exception as e:
            logger.warning(f"{description} failed (attempt {attempt}): {e}")
            await backoff.wait()
            if on_failure is not None:
                await on_failure()
