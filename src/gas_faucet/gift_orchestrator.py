"""
Gas faucet orchestrator.

This module contains the main control loop that multiplexes bridge events
from the subscription client against the nonce housekeeping timer and
drives the gift workflow for first-seen recipients.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from .chain_connection import ChainConnection
from .config import FaucetConfig
from .errors import ChannelClosedError, EventPipelineError, InsufficientFundsError
from .event_channel import EventChannel
from .gift_sequence import GiftSequence
from .models import EventReport, GiftHistory, GiftResult, GiftStatus
from .nonce_tracker import NonceTracker
from .subscription_client import SubscriptionClient
from .utils.retry import FixedBackoff

if TYPE_CHECKING:
    from .utils.signer_utility import SignerUtility

logger = logging.getLogger(__name__)


class GiftOrchestrator:
    """
    Single coordination point of the faucet.

    All mutation of the chain connection, the nonce and the gift history
    happens on the task running `run()`; the subscription client only
    talks to it through the event channel.
    """

    def __init__(
        self,
        config: FaucetConfig,
        connection: ChainConnection,
        nonce_tracker: NonceTracker,
        gift_sequence: GiftSequence,
        subscription_client: SubscriptionClient,
        channel: EventChannel
    ):
        """
        Initialize the GiftOrchestrator.

        Args:
            config: Faucet configuration
            connection: Shared chain connection
            nonce_tracker: Nonce state of the faucet account
            gift_sequence: Gift workflow
            subscription_client: Producer of EventReports
            channel: Channel the subscription client publishes on
        """
        self.config = config
        self.connection = connection
        self.nonce_tracker = nonce_tracker
        self.gift_sequence = gift_sequence
        self.subscription_client = subscription_client
        self.channel = channel

        self.gift_history = GiftHistory()

        # Metrics tracking
        self.events_received = 0
        self.events_duplicated = 0
        self.gifts_sent = 0
        self.gifts_already_funded = 0
        self.gifts_failed = 0

        self._subscription_task: asyncio.Task | None = None

    @classmethod
    def from_config(cls, config: FaucetConfig, signer: "SignerUtility") -> "GiftOrchestrator":
        """
        Wire up all components from configuration.

        Args:
            config: Faucet configuration
            signer: Signer for the faucet account

        Returns:
            Configured GiftOrchestrator instance
        """
        backoff = FixedBackoff(delay=config.timing.reconnect_delay)
        channel = EventChannel()

        connection = ChainConnection(
            ws_url=config.server.ws_url,
            backoff=backoff,
            request_timeout=config.timing.request_timeout
        )
        nonce_tracker = NonceTracker(
            connection=connection,
            address=signer.address,
            backoff=backoff,
            idle_threshold=config.timing.nonce_idle_threshold
        )
        gift_sequence = GiftSequence(
            connection=connection,
            signer=signer,
            nonce_tracker=nonce_tracker,
            gift_amount=config.faucet.gift_amount,
            chain_id=config.server.chain_id,
            gas_limit=config.faucet.gas_limit
        )
        subscription_client = SubscriptionClient(
            ws_url=config.server.ws_url,
            contract_address=config.bridge.contract_address,
            event_topic=config.bridge.event_topic,
            channel=channel,
            backoff=backoff,
            idle_timeout=config.timing.feed_idle_timeout
        )

        logger.info(f"Faucet account: {signer.address}")
        return cls(config, connection, nonce_tracker, gift_sequence, subscription_client, channel)

    async def start(self) -> None:
        """Connect to the chain and prime the nonce. Blocks until both succeed."""
        await self.connection.connect_with_retry()
        await self.nonce_tracker.ensure_fresh()

    async def ensure_connected(self) -> None:
        """Rebuild a dropped chain connection and resync the nonce on it."""
        if self.connection.is_connected:
            return
        logger.info("Chain connection lost, reconnecting...")
        await self.start()

    async def handle_event(self, report: EventReport) -> GiftResult | None:
        """
        Handle one bridge event.

        Args:
            report: Decoded bridge deposit

        Returns:
            The GiftResult for a first-seen recipient whose gift run completed,
            None for duplicates and failed runs
        """
        self.events_received += 1
        logger.info(f"New Bridge event: {report.transaction_hash} Recipient: {report.recipient}")

        # Recorded before the attempt: a failed gift is not retried this session
        if not self.gift_history.insert(report.recipient):
            self.events_duplicated += 1
            logger.debug(f"Recipient {report.recipient} already handled, skipping")
            return None

        await self.ensure_connected()

        try:
            result = await self.gift_sequence.run(report.recipient)
        except InsufficientFundsError as e:
            self.gifts_failed += 1
            logger.error(f"Gift giving error!: {e}")
            return None
        except Exception as e:
            self.gifts_failed += 1
            logger.error(f"Gift giving error!: {e}", exc_info=True)
            return None

        match result.status:
            case GiftStatus.SENT:
                self.gifts_sent += 1
            case GiftStatus.ALREADY_FUNDED:
                self.gifts_already_funded += 1
            case GiftStatus.SUBMISSION_FAILED:
                self.gifts_failed += 1

        return result

    async def on_refresh_tick(self) -> None:
        """Periodic housekeeping: keep the chain connection and nonce fresh, then log metrics."""
        if not self.connection.is_connected:
            await self.ensure_connected()
        elif self.nonce_tracker.is_refresh_due():
            await self.nonce_tracker.ensure_fresh()
        self.log_metrics()

    def start_subscription(self) -> asyncio.Task:
        """Spawn the subscription client; its exit closes the event channel."""
        task = asyncio.create_task(self.subscription_client.run(), name="subscription-client")
        task.add_done_callback(self._on_subscription_done)
        self._subscription_task = task
        return task

    def _on_subscription_done(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.critical(f"Subscription client stopped: {task.exception()}")
        self.channel.close()

    async def run(self) -> None:
        """
        Main event loop.

        Raises:
            EventPipelineError: When the event channel closes; the caller exits
        """
        logger.info("Gas faucet starting...")
        await self.start()

        self.start_subscription()

        event_task: asyncio.Task | None = None
        tick_task: asyncio.Task | None = None
        interval = self.config.timing.nonce_check_interval

        try:
            while True:
                if event_task is None:
                    event_task = asyncio.create_task(self.channel.receive())
                if tick_task is None:
                    tick_task = asyncio.create_task(asyncio.sleep(interval))

                done, _ = await asyncio.wait(
                    {event_task, tick_task},
                    return_when=asyncio.FIRST_COMPLETED
                )

                if event_task in done:
                    try:
                        report = event_task.result()
                    except ChannelClosedError as e:
                        logger.critical(f"Event channel error: {e}")
                        raise EventPipelineError(f"Event channel error: {e}") from e
                    finally:
                        event_task = None
                    await self.handle_event(report)

                if tick_task in done:
                    tick_task = None
                    await self.on_refresh_tick()

        finally:
            await self._cleanup([event_task, tick_task, self._subscription_task])
            logger.info("Gas faucet stopped")

    async def _cleanup(self, tasks: list[asyncio.Task | None]) -> None:
        """Cancel outstanding tasks and drop the chain connection."""
        for task in tasks:
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass  # Expected when cancelling
        await self.connection.close()

    def get_metrics(self) -> dict[str, int]:
        """Get current gift metrics."""
        return {
            "events_received": self.events_received,
            "events_duplicated": self.events_duplicated,
            "recipients_seen": len(self.gift_history),
            "gifts_sent": self.gifts_sent,
            "gifts_already_funded": self.gifts_already_funded,
            "gifts_failed": self.gifts_failed,
            "nonce": self.nonce_tracker.nonce,
            "nonce_refreshes": self.nonce_tracker.refresh_count
        }

    def log_metrics(self) -> None:
        """Log current gift and feed metrics."""
        metrics = self.get_metrics()
        logger.info(
            f"Faucet Metrics: "
            f"Events={metrics['events_received']}, "
            f"Duplicates={metrics['events_duplicated']}, "
            f"Sent={metrics['gifts_sent']}, "
            f"Funded={metrics['gifts_already_funded']}, "
            f"Failed={metrics['gifts_failed']}, "
            f"Nonce={metrics['nonce']}, "
            f"Refreshes={metrics['nonce_refreshes']}"
        )
        self.subscription_client.processor.log_metrics()
