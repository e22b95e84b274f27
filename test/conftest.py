"""Shared fixtures: an in-memory chain client standing in for AsyncWeb3."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from web3 import Web3

from gas_faucet.chain_connection import ChainConnection
from gas_faucet.utils.retry import FixedBackoff
from gas_faucet.utils.signer_utility import SignerUtility

TEST_PRIVATE_KEY = "0x" + "1" * 64
CHAIN_ID = 100
WS_URL = "wss://rpc.test/ws"


class FakeEth:
    """Subset of AsyncEth backed by dictionaries."""

    def __init__(self, balances=None, nonce=0, gas_price=10**9):
        self.balances = {Web3.to_checksum_address(k): v for k, v in (balances or {}).items()}
        self.nonce = nonce
        self.price = gas_price
        self.sent = []

        self.get_balance = AsyncMock(side_effect=lambda address: self.balances.get(address, 0))
        self.get_transaction_count = AsyncMock(side_effect=lambda address: self.nonce)
        self.send_raw_transaction = AsyncMock(side_effect=self._send)

    def _send(self, raw):
        self.sent.append(raw)
        return Web3.keccak(raw)

    @property
    def gas_price(self):
        return self._gas_price()

    async def _gas_price(self):
        return self.price


class FakeChainClient:
    """Stand-in for a connected AsyncWeb3 instance."""

    def __init__(self, **eth_kwargs):
        self.eth = FakeEth(**eth_kwargs)
        self.provider = MagicMock()
        self.provider.disconnect = AsyncMock()


class FakeClientFactory:
    """Client factory returning scripted outcomes; exceptions are raised."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self, url):
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def signer():
    """Signer for a deterministic test account."""
    return SignerUtility(TEST_PRIVATE_KEY, CHAIN_ID)


@pytest.fixture
def zero_backoff():
    return FixedBackoff(delay=0)


@pytest.fixture
def make_connection(zero_backoff):
    """Build a ChainConnection over scripted client outcomes."""

    def _make(*outcomes):
        factory = FakeClientFactory(outcomes)
        connection = ChainConnection(WS_URL, backoff=zero_backoff, client_factory=factory)
        return connection, factory

    return _make


@pytest.fixture
def fake_client():
    """Build FakeChainClient instances."""
    return FakeChainClient
