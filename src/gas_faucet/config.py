#!/usr/bin/env python3
"""Configuration management for the bridge gas faucet.

This module provides type-safe configuration dataclasses with validation
for the faucet. Configuration is loaded from environment variables
with sensible defaults where appropriate.
"""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from web3 import Web3

# Get logger for this module
logger = logging.getLogger(__name__)

# TokensBridged(address indexed token, address indexed recipient, uint256 value, bytes32 indexed messageId)
TOKENS_BRIDGED_TOPIC = "0x9afd47907e25028cdaca89d193518c302bbb128617d5a992c5abd45815526593"


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Configuration for the websocket endpoint shared by feed and chain client.

    Attributes:
        ws_url: WebSocket RPC endpoint (ws:// or wss://)
        chain_id: Chain ID stamped into every gift transaction
    """

    ws_url: str
    chain_id: int

    def __post_init__(self) -> None:
        """Validate server configuration."""
        if not self.ws_url:
            raise ValueError("WebSocket server URL is required (WS_SERVER_URL)")

        parsed = urlparse(self.ws_url)
        if parsed.scheme not in ('ws', 'wss'):
            raise ValueError(
                f"Invalid WebSocket URL scheme: {parsed.scheme}. "
                "Expected ws or wss"
            )

        if self.chain_id <= 0:
            raise ValueError(f"Chain ID must be positive, got {self.chain_id}")


@dataclass(frozen=True, slots=True)
class BridgeConfig:
    """Configuration for the watched bridge contract.

    Attributes:
        contract_address: Checksummed address of the bridge contract
        event_topic: Signature hash of the deposit event to subscribe to
    """

    contract_address: str
    event_topic: str = TOKENS_BRIDGED_TOPIC

    def __post_init__(self) -> None:
        """Validate bridge configuration."""
        if not self.contract_address:
            raise ValueError(
                "Bridge contract address is required (BRIDGE_CONTRACT_ADDRESS)"
            )

        if not Web3.is_address(self.contract_address):
            raise ValueError(
                f"Invalid bridge contract address: {self.contract_address}"
            )

        # Convert to checksum address
        checksummed = Web3.to_checksum_address(self.contract_address)
        if checksummed != self.contract_address:
            # Use object.__setattr__ since dataclass is frozen
            object.__setattr__(self, 'contract_address', checksummed)

        topic = self.event_topic.removeprefix('0x')
        if len(topic) != 64:
            raise ValueError(
                f"Invalid event topic length. Expected 64 hex characters, got {len(topic)}"
            )
        try:
            int(topic, 16)
        except ValueError:
            raise ValueError("Invalid event topic format. Must be hexadecimal") from None

        object.__setattr__(self, 'event_topic', '0x' + topic.lower())


@dataclass(frozen=True, slots=True)
class FaucetSettings:
    """Gift sizing.

    Attributes:
        gift_amount: Target balance for recipients, in whole native tokens
        gas_limit: Gas limit for the plain value transfer
    """

    gift_amount: int
    gas_limit: int = 25000

    def __post_init__(self) -> None:
        """Validate faucet settings."""
        if self.gift_amount <= 0:
            raise ValueError(f"Gift amount must be positive, got {self.gift_amount}")
        if self.gas_limit < 21000:
            raise ValueError(f"Gas limit below the transfer minimum (21000), got {self.gas_limit}")


@dataclass(frozen=True, slots=True)
class TimingConfig:
    """Retry, timeout and housekeeping intervals (seconds)."""
    reconnect_delay: float = 2.0  # fixed backoff between reconnect attempts
    feed_idle_timeout: float = 600.0  # feed silence before forcing a reconnect
    nonce_check_interval: float = 120.0  # housekeeping timer period
    nonce_idle_threshold: float = 60.0  # idle time after a gift before refreshing the nonce
    request_timeout: float = 60.0  # chain client request timeout

    def __post_init__(self) -> None:
        """Validate timing configuration."""
        if self.reconnect_delay < 0:
            raise ValueError(f"Reconnect delay must be non-negative, got {self.reconnect_delay}")
        if self.reconnect_delay > 60:
            raise ValueError(f"Reconnect delay too long (max 60s), got {self.reconnect_delay}")

        if self.feed_idle_timeout <= 0:
            raise ValueError(f"Feed idle timeout must be positive, got {self.feed_idle_timeout}")

        if self.nonce_check_interval <= 0:
            raise ValueError(
                f"Nonce check interval must be positive, got {self.nonce_check_interval}"
            )

        if self.nonce_idle_threshold < 0:
            raise ValueError(
                f"Nonce idle threshold must be non-negative, got {self.nonce_idle_threshold}"
            )

        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")


@dataclass(frozen=True, slots=True)
class FaucetConfig:
    """Main configuration for the gas faucet.

    Attributes:
        server: Websocket endpoint and chain ID
        bridge: Watched bridge contract
        faucet: Gift sizing
        timing: Retry and housekeeping intervals
        local_mode: Whether running in local mode (key from environment)
        private_key: Private key for local mode (optional)
    """

    server: ServerConfig
    bridge: BridgeConfig
    faucet: FaucetSettings
    timing: TimingConfig = field(default_factory=TimingConfig)
    local_mode: bool = False
    private_key: str | None = None

    def __post_init__(self) -> None:
        """Validate faucet configuration."""
        if self.local_mode and not self.private_key:
            raise ValueError(
                "Local mode requires PRIVATE_KEY environment variable"
            )

        if self.private_key:
            # Basic private key validation (should be 64 hex chars, optionally with 0x prefix)
            key = self.private_key.removeprefix('0x')

            if len(key) != 64:
                raise ValueError(
                    f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
                )

            try:
                int(key, 16)
            except ValueError:
                raise ValueError(
                    "Invalid private key format. Must be hexadecimal"
                ) from None

    @classmethod
    def from_env(cls, local_mode: bool = False) -> "FaucetConfig":
        """Load configuration from environment variables.

        Args:
            local_mode: Whether to run in local mode (key from PRIVATE_KEY)

        Returns:
            FaucetConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        ws_url = os.environ.get("WS_SERVER_URL", "")
        if not ws_url:
            raise ValueError(
                "WS_SERVER_URL environment variable is required. "
                "Example: wss://rpc.example.org/ws"
            )

        chain_id = os.environ.get("CHAIN_ID", "")
        if not chain_id:
            raise ValueError("CHAIN_ID environment variable is required.")

        server_config = ServerConfig(ws_url=ws_url, chain_id=int(chain_id))

        contract_address = os.environ.get("BRIDGE_CONTRACT_ADDRESS", "")
        if not contract_address:
            raise ValueError(
                "BRIDGE_CONTRACT_ADDRESS environment variable is required. "
                "This should be the bridge contract emitting deposit events."
            )

        bridge_config = BridgeConfig(
            contract_address=contract_address,
            event_topic=os.environ.get("BRIDGE_EVENT_TOPIC", TOKENS_BRIDGED_TOPIC)
        )

        gift_amount = os.environ.get("GIFT_AMOUNT", "")
        if not gift_amount:
            raise ValueError(
                "GIFT_AMOUNT environment variable is required. "
                "This is the recipient balance floor in whole tokens."
            )

        faucet_settings = FaucetSettings(gift_amount=int(gift_amount))

        timing_config = TimingConfig(
            reconnect_delay=float(os.environ.get("RECONNECT_DELAY", "2")),
            feed_idle_timeout=float(os.environ.get("FEED_IDLE_TIMEOUT", "600")),
            nonce_check_interval=float(os.environ.get("NONCE_CHECK_INTERVAL", "120")),
            nonce_idle_threshold=float(os.environ.get("NONCE_IDLE_THRESHOLD", "60")),
            request_timeout=float(os.environ.get("REQUEST_TIMEOUT", "60"))
        )

        private_key = os.environ.get("PRIVATE_KEY") if local_mode else None

        return cls(
            server=server_config,
            bridge=bridge_config,
            faucet=faucet_settings,
            timing=timing_config,
            local_mode=local_mode,
            private_key=private_key
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Gas Faucet Configuration")
        logger.info("=" * 60)

        logger.info("Server:")
        logger.info(f"  WebSocket URL: {self.server.ws_url}")
        logger.info(f"  Chain ID: {self.server.chain_id}")

        logger.info("Bridge:")
        logger.info(f"  Contract: {self.bridge.contract_address}")
        logger.info(f"  Event Topic: {self.bridge.event_topic}")

        logger.info("Faucet:")
        logger.info(f"  Gift Amount: {self.faucet.gift_amount} (whole tokens)")
        logger.info(f"  Gas Limit: {self.faucet.gas_limit}")

        logger.info("Timing:")
        logger.info(f"  Reconnect Delay: {self.timing.reconnect_delay} seconds")
        logger.info(f"  Feed Idle Timeout: {self.timing.feed_idle_timeout} seconds")
        logger.info(f"  Nonce Check Interval: {self.timing.nonce_check_interval} seconds")
        logger.info(f"  Nonce Idle Threshold: {self.timing.nonce_idle_threshold} seconds")

        logger.info(f"Mode: {'LOCAL' if self.local_mode else 'PRODUCTION'}")
        if self.local_mode:
            logger.info("  Local Key: [CONFIGURED]")

        logger.info("=" * 60)
