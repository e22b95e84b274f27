#!/usr/bin/env python3
"""Event processing module for the gas faucet.

This module decodes raw JSON-RPC frames received on the feed websocket:
the one-time subscription acknowledgement and the stream of log push
notifications, turning matching bridge logs into EventReports.
"""

import json
import logging
from typing import Any

from web3 import Web3

from .errors import FeedSubscriptionError
from .models import EventReport

# Get logger for this module
logger = logging.getLogger(__name__)

# Indexed topics are 32-byte words; addresses sit in the low 20 bytes
TOPIC_SIZE = 32
ADDRESS_OFFSET = 12
RECIPIENT_TOPIC_INDEX = 2


def topic_to_bytes(topic: Any) -> bytes:
    """
    Convert a log topic (bytes or hex string) to raw bytes.

    :param topic: The topic to convert
    :return: Raw topic bytes
    :raises ValueError: If the topic is neither bytes nor valid hex
    """
    if isinstance(topic, (bytes, bytearray)):
        return bytes(topic)
    if isinstance(topic, str):
        return Web3.to_bytes(hexstr=topic)
    raise ValueError(f"Unsupported topic type: {type(topic).__name__}")


class EventProcessor:
    """Decodes feed frames into EventReports.

    This class is responsible for:
    - Reading the subscription id out of the acknowledgement frame
    - Recognising log push notifications
    - Filtering logs by the bridge contract address
    - Extracting the recipient from the third topic
    - Maintaining metrics on received frames
    """

    def __init__(self, contract_address: str) -> None:
        """Initialize the EventProcessor.

        Args:
            contract_address: Bridge contract whose logs are reported
        """
        self.contract_address = Web3.to_checksum_address(contract_address)

        # Metrics tracking
        self.frames_received = 0
        self.events_reported = 0
        self.frames_ignored = 0
        self.events_filtered = 0
        self.events_invalid = 0

    def parse_subscription_ack(self, text: str) -> str | None:
        """Read the subscription id from the acknowledgement frame.

        Args:
            text: Raw frame text

        Returns:
            The subscription id, or None if the frame does not carry one

        Raises:
            FeedSubscriptionError: If the feed answered with an error
        """
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            logger.warning(f"Unparseable subscription response: {text[:100]}")
            return None

        match payload:
            case {"error": error}:
                raise FeedSubscriptionError(f"Subscription rejected: {error}")
            case {"result": str(subscription_id)}:
                return subscription_id
            case _:
                return None

    def process_frame(self, text: str | bytes) -> EventReport | None:
        """Decode a single frame.

        Frames that are not log push notifications, logs from other
        contracts and malformed logs all yield None.

        Args:
            text: Raw frame payload

        Returns:
            EventReport for a matching bridge log, None otherwise
        """
        self.frames_received += 1

        if not isinstance(text, str):
            self.frames_ignored += 1
            return None

        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            self.events_invalid += 1
            logger.debug(f"Ignoring non-JSON frame: {text[:100]}")
            return None

        match payload:
            case {"params": {"result": dict(log)}}:
                return self._process_log(log)
            case _:
                self.frames_ignored += 1
                return None

    def _process_log(self, log: dict[str, Any]) -> EventReport | None:
        """Turn a pushed log object into an EventReport.

        Args:
            log: The `params.result` member of a push notification

        Returns:
            EventReport or None if filtered or malformed
        """
        address = log.get('address')
        if not isinstance(address, str) or not Web3.is_address(address):
            self.events_invalid += 1
            logger.debug(f"Log without a valid address: {address!r}")
            return None

        if Web3.to_checksum_address(address) != self.contract_address:
            self.events_filtered += 1
            return None

        tx_hash = self._normalize_hash(log.get('transactionHash'))
        if tx_hash is None:
            self.events_invalid += 1
            logger.warning("Bridge log without a valid transaction hash")
            return None

        recipient = self._extract_recipient(log.get('topics'))
        if recipient is None:
            self.events_invalid += 1
            logger.warning(f"Bridge log {tx_hash} has no recipient topic")
            return None

        self.events_reported += 1
        return EventReport(transaction_hash=tx_hash, recipient=recipient)

    def _extract_recipient(self, topics: Any) -> str | None:
        """Extract the recipient address from the third indexed topic.

        Args:
            topics: The log's topic list

        Returns:
            Checksummed recipient address, or None if absent or malformed
        """
        if not isinstance(topics, list) or len(topics) <= RECIPIENT_TOPIC_INDEX:
            return None

        try:
            raw = topic_to_bytes(topics[RECIPIENT_TOPIC_INDEX])
        except ValueError as e:
            logger.debug(f"Undecodable recipient topic: {e}")
            return None

        if len(raw) != TOPIC_SIZE:
            return None

        return Web3.to_checksum_address(raw[ADDRESS_OFFSET:])

    @staticmethod
    def _normalize_hash(value: Any) -> str | None:
        """Normalize a 32-byte hash to a lowercase 0x-prefixed string."""
        try:
            raw = topic_to_bytes(value)
        except ValueError:
            return None
        if len(raw) != TOPIC_SIZE:
            return None
        return '0x' + raw.hex()

    def get_metrics(self) -> dict[str, int]:
        """Get current processing metrics.

        Returns:
            Dictionary of metric names to values
        """
        return {
            "frames_received": self.frames_received,
            "events_reported": self.events_reported,
            "frames_ignored": self.frames_ignored,
            "events_filtered": self.events_filtered,
            "events_invalid": self.events_invalid
        }

    def log_metrics(self) -> None:
        """Log current processing metrics."""
        metrics = self.get_metrics()
        logger.info(
            f"EventProcessor Metrics: "
            f"Frames={metrics['frames_received']}, "
            f"Reported={metrics['events_reported']}, "
            f"Ignored={metrics['frames_ignored']}, "
            f"Filtered={metrics['events_filtered']}, "
            f"Invalid={metrics['events_invalid']}"
        )
