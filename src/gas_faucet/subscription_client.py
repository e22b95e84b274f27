"""
Subscription client for the bridge event feed.

Keeps a websocket log subscription alive indefinitely and republishes
decoded bridge deposits on the internal event channel.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed

from .errors import EventPipelineError, FeedSubscriptionError
from .event_channel import EventChannel
from .event_processor import EventProcessor
from .models import ConnectionState, EventReport
from .utils.retry import FixedBackoff

# Opens a websocket connection to the given URL
Connector = Callable[[str], Awaitable[Any]]


class SubscriptionClient:
    """
    Client for the bridge deposit feed.

    Features:
    - eth_subscribe log subscription filtered by the deposit event topic
    - Unbounded reconnect loop with a fixed backoff
    - Idle timeout that treats a silent feed as dead
    - Ordered, single-producer publishing onto an EventChannel
    """

    def __init__(
        self,
        ws_url: str,
        contract_address: str,
        event_topic: str,
        channel: EventChannel,
        backoff: FixedBackoff | None = None,
        idle_timeout: float = 600.0,
        connector: Connector | None = None,
        processor: EventProcessor | None = None
    ) -> None:
        """
        Initialize the SubscriptionClient.

        Args:
            ws_url: WebSocket endpoint of the feed
            contract_address: Bridge contract whose logs are reported
            event_topic: Signature hash of the deposit event
            channel: Channel receiving decoded EventReports
            backoff: Delay between reconnect attempts (2 seconds by default)
            idle_timeout: Seconds without a frame before reconnecting
            connector: Coroutine function opening a websocket (websockets.connect by default)
            processor: Frame decoder (built from contract_address by default)
        """
        self.ws_url = ws_url
        self.event_topic = event_topic
        self.channel = channel
        self.backoff = backoff or FixedBackoff()
        self.idle_timeout = idle_timeout
        self.processor = processor or EventProcessor(contract_address)
        self._connector: Connector = connector or websockets.connect

        # Connection state
        self.connection_state = ConnectionState.DISCONNECTED
        self.subscription_id: str | None = None
        self.connect_attempts = 0

        # Setup logging
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def get_subscription_command(self) -> str:
        """Build the eth_subscribe command for the deposit event topic."""
        return json.dumps({
            "jsonrpc": "2.0",
            "id": 1,
            "method": "eth_subscribe",
            "params": ["logs", {"topics": [self.event_topic]}]
        })

    async def run(self) -> None:
        """
        Subscribe and poll forever, reconnecting after any connection failure.

        Raises:
            EventPipelineError: If a decoded event cannot be delivered
        """
        self.logger.info(f"Starting event subscription on {self.ws_url}")

        while True:
            try:
                ws = await self.connect_and_subscribe()
                try:
                    while True:
                        await self.poll_and_handle_events(ws)
                finally:
                    await self._close(ws)

            except EventPipelineError:
                raise
            except ConnectionClosed as e:
                self.logger.warning(f"Event watcher connection closed... reconnecting: {e}")
            except Exception as e:
                self.logger.warning(f"Event watcher error... reconnecting: {e}")

            self.connection_state = ConnectionState.RECONNECTING
            self.subscription_id = None
            await self.backoff.wait()

    async def connect_and_subscribe(self) -> Any:
        """
        Open the websocket, send the subscribe command and read the acknowledgement.

        Returns:
            The open websocket connection

        Raises:
            FeedSubscriptionError: If the feed rejects the subscription or stays silent
        """
        self.connect_attempts += 1
        self.connection_state = ConnectionState.CONNECTING
        self.logger.info(f"Connecting to WebSocket: {self.ws_url}")

        ws = await self._connector(self.ws_url)
        try:
            await ws.send(self.get_subscription_command())
            self.logger.info("Subscription message sent")

            ack = await self._receive(ws)
            if isinstance(ack, str):
                self.subscription_id = self.processor.parse_subscription_ack(ack)
                if self.subscription_id:
                    self.logger.info(f"Received subscription id: {self.subscription_id}")
        except BaseException:
            await self._close(ws)
            raise

        self.connection_state = ConnectionState.CONNECTED
        self.logger.info(f"Subscribed to bridge events (topic {self.event_topic})")
        return ws

    async def poll_and_handle_events(self, ws: Any) -> EventReport | None:
        """
        Wait for one frame and publish it if it is a bridge deposit.

        Args:
            ws: Open websocket connection

        Returns:
            The published EventReport, or None if the frame was ignored

        Raises:
            FeedSubscriptionError: On idle timeout
            ConnectionClosed: If the connection dropped
            EventPipelineError: If publishing fails
        """
        message = await self._receive(ws)

        report = self.processor.process_frame(message)
        if report is None:
            return None

        self.publish(report)
        return report

    def publish(self, report: EventReport) -> None:
        """
        Deliver a report to the orchestrator.

        Raises:
            EventPipelineError: If the channel is closed or full
        """
        try:
            self.channel.publish(report)
        except EventPipelineError as e:
            self.logger.critical(f"Report sending failed: {e}")
            raise
        self.logger.debug(f"Published {report}")

    async def _receive(self, ws: Any) -> str | bytes:
        """Receive one frame, bounded by the idle timeout."""
        try:
            return await asyncio.wait_for(ws.recv(), timeout=self.idle_timeout)
        except asyncio.TimeoutError:
            raise FeedSubscriptionError(
                f"Websocket timeout: no frame for {self.idle_timeout} seconds"
            ) from None

    async def _close(self, ws: Any) -> None:
        """Close a websocket, ignoring errors from an already broken connection."""
        try:
            await ws.close()
        except Exception as e:
            self.logger.debug(f"Error closing websocket: {e}")
        finally:
            self.connection_state = ConnectionState.DISCONNECTED

    def get_status(self) -> dict[str, Any]:
        """Get current client status."""
        return {
            "connection_state": self.connection_state.value,
            "subscription_id": self.subscription_id,
            "connect_attempts": self.connect_attempts,
            **self.processor.get_metrics()
        }
