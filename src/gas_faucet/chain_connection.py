"""
Chain client connection for the gas faucet.

Holds a replaceable AsyncWeb3 handle over a persistent websocket provider.
The handle is either absent or live; reconnecting builds a new handle and
swaps it in whole.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from web3 import AsyncWeb3, Web3
from web3.exceptions import ProviderConnectionError, TimeExhausted
from web3.providers import WebSocketProvider
from websockets.exceptions import ConnectionClosed

from .errors import ChainConnectionError
from .models import ConnectionState
from .utils.retry import FixedBackoff, retry_until_success

logger = logging.getLogger(__name__)

# Builds a connected client for the given URL
ClientFactory = Callable[[str], Awaitable[Any]]

# Failures that mean the socket under the handle is gone
TRANSPORT_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    ConnectionClosed,
    ProviderConnectionError,
    TimeExhausted
)


def websocket_client_factory(request_timeout: float = 60.0) -> ClientFactory:
    """Create a factory opening AsyncWeb3 over a WebSocketProvider."""

    async def _open(ws_url: str) -> AsyncWeb3:
        w3 = await AsyncWeb3(WebSocketProvider(ws_url, request_timeout=request_timeout))
        if not await w3.is_connected():
            await w3.provider.disconnect()
            raise ConnectionError(f"Failed to connect to chain client at {ws_url}")
        return w3

    return _open


class ChainConnection:
    """
    Owned slot for the chain client handle.

    Offers balance, nonce and gas price lookups plus raw transaction
    submission on whatever handle is currently live.
    """

    def __init__(
        self,
        ws_url: str,
        backoff: FixedBackoff | None = None,
        client_factory: ClientFactory | None = None,
        request_timeout: float = 60.0
    ) -> None:
        """
        Initialize the ChainConnection.

        Args:
            ws_url: WebSocket RPC endpoint
            backoff: Delay between connection attempts (2 seconds by default)
            client_factory: Coroutine function returning a connected client
            request_timeout: Request timeout for the default websocket client
        """
        self.ws_url = ws_url
        self.backoff = backoff or FixedBackoff()
        self._client_factory = client_factory or websocket_client_factory(request_timeout)

        self.w3: Any | None = None
        self.connection_state = ConnectionState.DISCONNECTED

    @property
    def is_connected(self) -> bool:
        return self.w3 is not None

    async def connect(self) -> Any:
        """
        Make a single connection attempt and install the new handle.

        The previous handle, if any, stays in place until the new one is
        ready, then is discarded.

        Returns:
            The new client handle
        """
        previous = self.w3
        self.connection_state = (
            ConnectionState.RECONNECTING if previous is not None else ConnectionState.CONNECTING
        )

        try:
            client = await self._client_factory(self.ws_url)
        except Exception:
            self.connection_state = (
                ConnectionState.CONNECTED if previous is not None else ConnectionState.DISCONNECTED
            )
            raise

        self.w3 = client
        self.connection_state = ConnectionState.CONNECTED

        if previous is not None:
            await self._discard(previous)

        return client

    async def connect_with_retry(self) -> Any:
        """Connect, retrying with a fixed backoff until it succeeds."""
        client = await retry_until_success(
            self.connect,
            self.backoff,
            description=f"Connection to {self.ws_url}"
        )
        logger.info(f"Connection established to ws server: {self.ws_url}")
        return client

    def require(self) -> Any:
        """
        Return the live handle.

        Raises:
            ChainConnectionError: If no connection has been established
        """
        if self.w3 is None:
            raise ChainConnectionError(f"No live connection to {self.ws_url}")
        return self.w3

    @asynccontextmanager
    async def _guard(self) -> AsyncIterator[Any]:
        """
        Yield the live handle and drop it if a request fails at the transport level.

        RPC-level errors (a rejected transaction, a bad parameter) leave the
        handle installed. A dropped handle is rebuilt by the next
        `connect_with_retry()`.
        """
        w3 = self.require()
        try:
            yield w3
        except TRANSPORT_ERRORS as e:
            if self.w3 is w3:
                logger.warning(f"Chain connection lost: {e}")
                self.w3 = None
                self.connection_state = ConnectionState.DISCONNECTED
                await self._discard(w3)
            raise

    async def get_balance(self, address: str) -> int:
        """Balance of an account in wei."""
        async with self._guard() as w3:
            return int(await w3.eth.get_balance(Web3.to_checksum_address(address)))

    async def get_transaction_count(self, address: str) -> int:
        """Transaction count (next nonce) of an account."""
        async with self._guard() as w3:
            return int(await w3.eth.get_transaction_count(Web3.to_checksum_address(address)))

    async def get_gas_price(self) -> int:
        """Current network gas price in wei."""
        async with self._guard() as w3:
            return int(await w3.eth.gas_price)

    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        """
        Broadcast a signed transaction.

        Returns:
            The transaction hash reported by the node (0x-prefixed)
        """
        async with self._guard() as w3:
            tx_hash = await w3.eth.send_raw_transaction(raw_transaction)
        return Web3.to_hex(tx_hash)

    async def close(self) -> None:
        """Drop the current handle."""
        if self.w3 is not None:
            client, self.w3 = self.w3, None
            await self._discard(client)
        self.connection_state = ConnectionState.DISCONNECTED

    async def _discard(self, client: Any) -> None:
        """Disconnect a handle that is no longer installed."""
        try:
            await client.provider.disconnect()
        except Exception as e:
            logger.warning(f"Error during cleanup: {e}")
