#!/usr/bin/env python3
"""Gift transaction handling for the gas faucet.

This module tops up a recipient's native balance to the configured gift
floor: it checks both balances, builds a nonce-stamped legacy transfer,
signs it and broadcasts it without waiting for inclusion.
"""

import logging
from typing import TYPE_CHECKING

from web3 import Web3
from web3.types import TxParams, Wei

from .errors import InsufficientFundsError
from .models import GiftResult, GiftStatus

if TYPE_CHECKING:
    from .chain_connection import ChainConnection
    from .nonce_tracker import NonceTracker
    from .utils.signer_utility import SignerUtility

logger = logging.getLogger(__name__)


def compute_top_up(gift_floor: int, recipient_balance: int) -> int:
    """Amount needed to lift a balance to the gift floor (0 if already there)."""
    return max(gift_floor - recipient_balance, 0)


class GiftSequence:
    """Runs the balance-check-and-transfer workflow for one recipient."""

    def __init__(
        self,
        connection: "ChainConnection",
        signer: "SignerUtility",
        nonce_tracker: "NonceTracker",
        gift_amount: int,
        chain_id: int,
        gas_limit: int = 25000
    ) -> None:
        """
        Initialize the GiftSequence.

        Args:
            connection: Shared chain connection
            signer: Signer for the faucet account
            nonce_tracker: Source of the next nonce
            gift_amount: Gift floor in whole tokens
            chain_id: Chain ID stamped into transactions
            gas_limit: Gas limit for the plain transfer
        """
        self.connection = connection
        self.signer = signer
        self.nonce_tracker = nonce_tracker
        self.gift_amount = gift_amount
        self.chain_id = chain_id
        self.gas_limit = gas_limit

    @property
    def gift_amount_wei(self) -> int:
        """Gift floor in wei."""
        return Web3.to_wei(self.gift_amount, 'ether')

    def build_transaction(self, recipient: str, value: int, gas_price: int) -> TxParams:
        """
        Build an unsigned legacy transfer stamped with the tracked nonce.

        Args:
            recipient: Checksummed recipient address
            value: Amount to transfer in wei
            gas_price: Gas price in wei

        Returns:
            Transaction parameters ready for signing
        """
        return {
            'chainId': self.chain_id,
            'to': Web3.to_checksum_address(recipient),
            'value': Wei(value),
            'gas': self.gas_limit,
            'gasPrice': Wei(gas_price),
            'nonce': self.nonce_tracker.nonce
        }

    async def run(self, recipient: str) -> GiftResult:
        """
        Top up a recipient to the gift floor.

        Args:
            recipient: Address of the bridge deposit recipient

        Returns:
            GiftResult describing what happened

        Raises:
            ChainConnectionError: If no chain connection is held
            InsufficientFundsError: If the faucet cannot cover the gift floor
        """
        recipient = Web3.to_checksum_address(recipient)
        gift_amount = self.gift_amount_wei

        self.connection.require()

        bot_balance = await self.connection.get_balance(self.signer.address)
        if bot_balance < gift_amount:
            raise InsufficientFundsError(balance=bot_balance, required=gift_amount)

        recipient_balance = await self.connection.get_balance(recipient)
        actual_gift = compute_top_up(gift_amount, recipient_balance)
        if actual_gift == 0:
            logger.info(f"The user {recipient} has sufficient gas ({recipient_balance} wei)")
            return GiftResult(recipient=recipient, status=GiftStatus.ALREADY_FUNDED)

        gas_price = await self.connection.get_gas_price()

        tx = self.build_transaction(recipient, actual_gift, gas_price)
        signed = self.signer.sign_transaction(tx)

        logger.debug(
            f"Submitting gift of {actual_gift} wei to {recipient} "
            f"(nonce={tx['nonce']}, gasPrice={gas_price})"
        )

        try:
            await self.connection.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            logger.error(f"✗ Sent tx error: {e}")
            return GiftResult(
                recipient=recipient,
                status=GiftStatus.SUBMISSION_FAILED,
                amount=actual_gift,
                nonce=tx['nonce'],
                transaction_hash=signed.transaction_hash,
                error=str(e)
            )

        self.nonce_tracker.record_submission()
        logger.info(f"✓ Gift transaction sent: {signed.transaction_hash}")

        return GiftResult(
            recipient=recipient,
            status=GiftStatus.SENT,
            amount=actual_gift,
            nonce=tx['nonce'],
            transaction_hash=signed.transaction_hash
        )
