"""
Nonce tracking for the faucet account.

Holds the next transaction nonce so consecutive gifts can be issued
back to back without asking the chain each time, and refreshes it from
the chain when the account has gone idle.
"""

import logging
import time
from collections.abc import Callable

from .chain_connection import ChainConnection
from .utils.retry import FixedBackoff, retry_until_success

logger = logging.getLogger(__name__)


class NonceTracker:
    """
    Next-nonce counter for a single account.

    The counter is overwritten by every refresh and incremented by one for
    every submitted gift.
    """

    def __init__(
        self,
        connection: ChainConnection,
        address: str,
        backoff: FixedBackoff | None = None,
        idle_threshold: float = 60.0,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the NonceTracker.

        Args:
            connection: Shared chain connection
            address: Faucet account address
            backoff: Delay between refresh attempts (2 seconds by default)
            idle_threshold: Seconds since the last gift after which a refresh is due
            clock: Monotonic clock, replaceable in tests
        """
        self.connection = connection
        self.address = address
        self.backoff = backoff or FixedBackoff()
        self.idle_threshold = idle_threshold
        self._clock = clock

        self.nonce = 0
        self.last_gift_at: float | None = None
        self.refresh_count = 0

    async def refresh(self) -> int:
        """
        Fetch the account's transaction count and overwrite the nonce.

        Returns:
            The new nonce

        Raises:
            ChainConnectionError: If no connection is held
        """
        nonce = await self.connection.get_transaction_count(self.address)
        self.nonce = nonce
        self.refresh_count += 1
        logger.info(f"Setting nonce to {nonce}")
        return nonce

    async def ensure_fresh(self) -> int:
        """
        Refresh the nonce, reconnecting the chain connection after each failure.

        Returns:
            The new nonce
        """
        return await retry_until_success(
            self.refresh,
            self.backoff,
            description="Nonce refresh",
            on_failure=self.connection.connect_with_retry
        )

    def record_submission(self) -> None:
        """Advance the nonce after a transaction was accepted for broadcast."""
        self.nonce += 1
        self.last_gift_at = self._clock()

    def is_refresh_due(self) -> bool:
        """True once a gift was sent and the account has been idle past the threshold."""
        if self.last_gift_at is None:
            return False
        return self._clock() - self.last_gift_at > self.idle_threshold
