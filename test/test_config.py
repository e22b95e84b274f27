#!/usr/bin/env python3
"""Tests for the configuration module."""

import os
from unittest.mock import patch

import pytest

from gas_faucet.config import (
    TOKENS_BRIDGED_TOPIC,
    BridgeConfig,
    FaucetConfig,
    FaucetSettings,
    ServerConfig,
    TimingConfig
)

CONTRACT = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
TEST_KEY = "0x" + "1" * 64


def make_config(**overrides):
    """Build a valid FaucetConfig with optional overrides."""
    values = {
        "server": ServerConfig(ws_url="wss://rpc.test/ws", chain_id=100),
        "bridge": BridgeConfig(contract_address=CONTRACT),
        "faucet": FaucetSettings(gift_amount=1),
    }
    values.update(overrides)
    return FaucetConfig(**values)


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_valid_server_config(self):
        """Test creating a valid server configuration."""
        config = ServerConfig(ws_url="ws://localhost:8546", chain_id=1)

        assert config.ws_url == "ws://localhost:8546"
        assert config.chain_id == 1

    def test_http_url_rejected(self):
        """Test that non-websocket schemes are rejected."""
        with pytest.raises(ValueError, match="Invalid WebSocket URL scheme"):
            ServerConfig(ws_url="https://rpc.test", chain_id=1)

    def test_missing_url(self):
        """Test that a missing URL raises an error."""
        with pytest.raises(ValueError, match="WebSocket server URL is required"):
            ServerConfig(ws_url="", chain_id=1)

    def test_non_positive_chain_id(self):
        """Test that chain ID must be positive."""
        with pytest.raises(ValueError, match="Chain ID must be positive"):
            ServerConfig(ws_url="wss://rpc.test", chain_id=0)


class TestBridgeConfig:
    """Tests for BridgeConfig."""

    def test_checksum_address_conversion(self):
        """Test that addresses are converted to checksum format."""
        config = BridgeConfig(contract_address=CONTRACT.lower())

        assert config.contract_address == CONTRACT

    def test_default_topic(self):
        """Test the default deposit event topic."""
        config = BridgeConfig(contract_address=CONTRACT)

        assert config.event_topic == TOKENS_BRIDGED_TOPIC

    def test_topic_normalized(self):
        """Test that topics are lowercased and 0x-prefixed."""
        config = BridgeConfig(contract_address=CONTRACT, event_topic="AB" * 32)

        assert config.event_topic == "0x" + "ab" * 32

    def test_invalid_topic_length(self):
        """Test that short topics are rejected."""
        with pytest.raises(ValueError, match="Invalid event topic length"):
            BridgeConfig(contract_address=CONTRACT, event_topic="0x1234")

    def test_invalid_topic_hex(self):
        """Test that non-hex topics are rejected."""
        with pytest.raises(ValueError, match="Must be hexadecimal"):
            BridgeConfig(contract_address=CONTRACT, event_topic="0x" + "zz" * 32)

    def test_invalid_contract_address(self):
        """Test that an invalid contract address raises an error."""
        with pytest.raises(ValueError, match="Invalid bridge contract address"):
            BridgeConfig(contract_address="invalid-address")

    def test_missing_contract_address(self):
        """Test that a missing contract address raises an error."""
        with pytest.raises(ValueError, match="Bridge contract address is required"):
            BridgeConfig(contract_address="")


class TestFaucetSettings:
    """Tests for FaucetSettings."""

    def test_large_gift_amount_accepted(self):
        """Test that any positive whole-token amount is accepted."""
        settings = FaucetSettings(gift_amount=2**64 - 1)

        assert settings.gift_amount == 2**64 - 1

    def test_non_positive_gift(self):
        with pytest.raises(ValueError, match="Gift amount must be positive"):
            FaucetSettings(gift_amount=0)

    def test_gas_limit_floor(self):
        with pytest.raises(ValueError, match="Gas limit below"):
            FaucetSettings(gift_amount=1, gas_limit=20000)


class TestTimingConfig:
    """Tests for TimingConfig."""

    def test_defaults(self):
        """Test default timing values."""
        timing = TimingConfig()

        assert timing.reconnect_delay == 2.0
        assert timing.feed_idle_timeout == 600.0
        assert timing.nonce_check_interval == 120.0
        assert timing.nonce_idle_threshold == 60.0

    def test_zero_delay_allowed(self):
        """Test that a zero reconnect delay is accepted."""
        assert TimingConfig(reconnect_delay=0).reconnect_delay == 0

    def test_negative_delay(self):
        with pytest.raises(ValueError, match="Reconnect delay must be non-negative"):
            TimingConfig(reconnect_delay=-1)

    def test_idle_timeout_positive(self):
        with pytest.raises(ValueError, match="Feed idle timeout must be positive"):
            TimingConfig(feed_idle_timeout=0)


class TestFaucetConfig:
    """Tests for FaucetConfig."""

    def test_valid_config(self):
        """Test creating a valid faucet configuration."""
        config = make_config()

        assert config.local_mode is False
        assert config.private_key is None
        assert config.timing == TimingConfig()

    def test_local_mode_requires_key(self):
        """Test that local mode requires a private key."""
        with pytest.raises(ValueError, match="Local mode requires PRIVATE_KEY"):
            make_config(local_mode=True)

    def test_invalid_key_length(self):
        with pytest.raises(ValueError, match="Invalid private key length"):
            make_config(local_mode=True, private_key="0x1234")

    def test_invalid_key_format(self):
        with pytest.raises(ValueError, match="Must be hexadecimal"):
            make_config(local_mode=True, private_key="0x" + "g" * 64)

    def test_config_is_frozen(self):
        """Test that configuration cannot be mutated."""
        config = make_config()

        with pytest.raises(AttributeError):
            config.local_mode = True

    def test_from_env(self):
        """Test loading configuration from environment variables."""
        env = {
            "WS_SERVER_URL": "wss://rpc.test/ws",
            "CHAIN_ID": "100",
            "BRIDGE_CONTRACT_ADDRESS": CONTRACT.lower(),
            "GIFT_AMOUNT": "2",
            "RECONNECT_DELAY": "5",
            "PRIVATE_KEY": TEST_KEY,
        }
        with patch.dict(os.environ, env, clear=True):
            config = FaucetConfig.from_env(local_mode=True)

        assert config.server.ws_url == "wss://rpc.test/ws"
        assert config.server.chain_id == 100
        assert config.bridge.contract_address == CONTRACT
        assert config.faucet.gift_amount == 2
        assert config.timing.reconnect_delay == 5.0
        assert config.private_key == TEST_KEY

    def test_from_env_ignores_key_outside_local_mode(self):
        """Test that PRIVATE_KEY is only read in local mode."""
        env = {
            "WS_SERVER_URL": "wss://rpc.test/ws",
            "CHAIN_ID": "100",
            "BRIDGE_CONTRACT_ADDRESS": CONTRACT,
            "GIFT_AMOUNT": "1",
            "PRIVATE_KEY": TEST_KEY,
        }
        with patch.dict(os.environ, env, clear=True):
            config = FaucetConfig.from_env()

        assert config.private_key is None

    @pytest.mark.parametrize("missing", [
        "WS_SERVER_URL", "CHAIN_ID", "BRIDGE_CONTRACT_ADDRESS", "GIFT_AMOUNT"
    ])
    def test_from_env_missing_required(self, missing):
        """Test that each required variable is enforced."""
        env = {
            "WS_SERVER_URL": "wss://rpc.test/ws",
            "CHAIN_ID": "100",
            "BRIDGE_CONTRACT_ADDRESS": CONTRACT,
            "GIFT_AMOUNT": "1",
        }
        del env[missing]
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValueError, match=missing):
                FaucetConfig.from_env()

    def test_log_config_masks_key(self, caplog):
        """Test that the private key never appears in logs."""
        config = make_config(local_mode=True, private_key=TEST_KEY)

        with caplog.at_level("INFO"):
            config.log_config()

        assert "Gas Faucet Configuration" in caplog.text
        assert TEST_KEY not in caplog.text
        assert "[CONFIGURED]" in caplog.text
