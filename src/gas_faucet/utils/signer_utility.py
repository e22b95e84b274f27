from dataclasses import dataclass

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.types import TxParams


@dataclass(frozen=True, slots=True)
class SignedGift:
    """A signed transaction ready for broadcast.

    Attributes:
        raw_transaction: RLP-encoded signed transaction bytes
        transaction_hash: Keccak hash of the raw bytes (0x-prefixed)
    """
    raw_transaction: bytes
    transaction_hash: str


class SignerUtility:
    """
    Signer capability for the faucet account.

    Bound to a single private key and chain ID; every transaction it signs
    is stamped with that chain ID.
    """

    def __init__(self, secret: str, chain_id: int) -> None:
        """
        Initialize the SignerUtility.

        Args:
            secret: Private key of the faucet account
            chain_id: Chain ID to sign for
        """
        if not secret:
            raise ValueError("Private key is required for signing transactions")

        self.account: LocalAccount = Account.from_key(secret)
        self.chain_id = chain_id

    @property
    def address(self) -> str:
        """Checksummed address of the faucet account."""
        return self.account.address

    def sign_transaction(self, tx: TxParams) -> SignedGift:
        """Sign a transaction and compute its hash from the signed payload.

        Args:
            tx: Unsigned transaction parameters

        Returns:
            SignedGift with raw bytes and hash

        Raises:
            ValueError: If the transaction targets another chain
        """
        if tx.get('chainId', self.chain_id) != self.chain_id:
            raise ValueError(
                f"Transaction chain ID {tx['chainId']} does not match signer chain ID {self.chain_id}"
            )

        signed = self.account.sign_transaction({**tx, 'chainId': self.chain_id})
        raw = bytes(signed.raw_transaction)
        return SignedGift(
            raw_transaction=raw,
            transaction_hash=Web3.to_hex(Web3.keccak(raw))
        )
