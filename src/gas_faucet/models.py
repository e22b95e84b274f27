#!/usr/bin/env python3
"""Data models for the gas faucet.

This module provides the immutable event and result types passed between
the subscription client, the orchestrator and the gift workflow, plus the
in-memory gift history.
"""

from dataclasses import dataclass
from enum import Enum

from web3 import Web3


class ConnectionState(Enum):
    """Connection state for the feed and the chain client."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass(frozen=True, slots=True)
class EventReport:
    """A bridge deposit observed on the feed.

    Attributes:
        transaction_hash: Hash of the transaction that emitted the log (0x-prefixed)
        recipient: Checksummed address of the deposit recipient
    """

    transaction_hash: str
    recipient: str

    def __str__(self) -> str:
        """Human-readable string representation."""
        return (
            f"EventReport(tx={self.transaction_hash[:10]}..., "
            f"recipient={self.recipient})"
        )


class GiftStatus(Enum):
    """Outcome of a gift run that did not raise."""
    SENT = "sent"
    ALREADY_FUNDED = "already_funded"
    SUBMISSION_FAILED = "submission_failed"


@dataclass(frozen=True, slots=True)
class GiftResult:
    """Result of a single gift run.

    Attributes:
        recipient: Checksummed recipient address
        status: What happened
        amount: Value transferred (or attempted) in wei, 0 when already funded
        nonce: Nonce the transaction was stamped with, if one was built
        transaction_hash: Hash of the signed transaction, if one was built
        error: Submission error message for SUBMISSION_FAILED
    """

    recipient: str
    status: GiftStatus
    amount: int = 0
    nonce: int | None = None
    transaction_hash: str | None = None
    error: str | None = None


class GiftHistory:
    """Recipients already handled during this process lifetime.

    Grows monotonically and is never persisted. Addresses are compared
    in checksummed form so differently cased inputs collapse together.
    """

    def __init__(self) -> None:
        self._recipients: set[str] = set()

    def insert(self, address: str) -> bool:
        """Record an address.

        Returns:
            True if this is the first sighting, False if already recorded
        """
        key = Web3.to_checksum_address(address)
        if key in self._recipients:
            return False
        self._recipients.add(key)
        return True

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, str) or not Web3.is_address(address):
            return False
        return Web3.to_checksum_address(address) in self._recipients

    def __len__(self) -> int:
        return len(self._recipients)
