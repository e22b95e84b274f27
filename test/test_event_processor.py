#!/usr/bin/env python3
"""Unit tests for the EventProcessor module."""

import json

import pytest
from web3 import Web3

from gas_faucet.errors import FeedSubscriptionError
from gas_faucet.event_processor import EventProcessor, topic_to_bytes

BRIDGE_ADDRESS = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
OTHER_ADDRESS = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb7"
EVENT_TOPIC = "0x9afd47907e25028cdaca89d193518c302bbb128617d5a992c5abd45815526593"
TX_HASH = "0xabcdef1234567890123456789012345678901234567890123456789012345678"
RECIPIENT_TOPIC = "0x" + "00" * 12 + "aa" * 20


@pytest.fixture
def processor():
    """Create an EventProcessor instance for testing."""
    return EventProcessor(contract_address=BRIDGE_ADDRESS)


def make_push_frame(address=BRIDGE_ADDRESS, topics=None, tx_hash=TX_HASH):
    """Build a log push notification frame."""
    if topics is None:
        topics = [
            EVENT_TOPIC,
            "0x" + "00" * 12 + "11" * 20,  # token
            RECIPIENT_TOPIC,  # recipient
            "0x" + "22" * 32  # messageId
        ]
    return json.dumps({
        "jsonrpc": "2.0",
        "method": "eth_subscription",
        "params": {
            "subscription": "0x9cef478923ff08bf67fde6c64013158d",
            "result": {
                "address": address,
                "topics": topics,
                "data": "0x" + "00" * 31 + "01",
                "transactionHash": tx_hash
            }
        }
    })


class TestEventProcessor:
    """Test suite for EventProcessor frame decoding."""

    def test_extracts_recipient_from_third_topic(self, processor):
        """Test that the recipient is the low 20 bytes of the third topic."""
        report = processor.process_frame(make_push_frame())

        assert report is not None
        assert report.recipient == Web3.to_checksum_address("0x" + "aa" * 20)
        assert report.transaction_hash == TX_HASH
        assert processor.events_reported == 1

    def test_fewer_than_three_topics_yields_no_event(self, processor):
        """Test that a log without the recipient topic is dropped."""
        frame = make_push_frame(topics=[EVENT_TOPIC, "0x" + "00" * 12 + "11" * 20])

        assert processor.process_frame(frame) is None
        assert processor.events_invalid == 1
        assert processor.events_reported == 0

    def test_exactly_three_topics(self, processor):
        """Test that three topics are enough to extract a recipient."""
        frame = make_push_frame(topics=[EVENT_TOPIC, "0x" + "00" * 32, RECIPIENT_TOPIC])

        report = processor.process_frame(frame)

        assert report is not None
        assert report.recipient == Web3.to_checksum_address("0x" + "aa" * 20)

    def test_short_recipient_topic_is_invalid(self, processor):
        """Test that a recipient topic shorter than 32 bytes is rejected."""
        frame = make_push_frame(topics=[EVENT_TOPIC, "0x" + "00" * 32, "0x" + "aa" * 20])

        assert processor.process_frame(frame) is None
        assert processor.events_invalid == 1

    def test_other_contract_is_filtered(self, processor):
        """Test that logs from another contract are ignored."""
        report = processor.process_frame(make_push_frame(address=OTHER_ADDRESS))

        assert report is None
        assert processor.events_filtered == 1

    def test_address_match_is_case_insensitive(self, processor):
        """Test that a lowercase log address still matches the bridge."""
        report = processor.process_frame(make_push_frame(address=BRIDGE_ADDRESS.lower()))

        assert report is not None

    def test_non_push_frame_is_ignored(self, processor):
        """Test that frames without params.result are ignored."""
        frame = json.dumps({"jsonrpc": "2.0", "id": 7, "result": True})

        assert processor.process_frame(frame) is None
        assert processor.frames_ignored == 1

    def test_invalid_json_is_ignored(self, processor):
        """Test that malformed frames do not raise."""
        assert processor.process_frame("{not json") is None
        assert processor.events_invalid == 1

    def test_binary_frame_is_ignored(self, processor):
        """Test that binary frames are ignored."""
        assert processor.process_frame(b"\x00\x01") is None
        assert processor.frames_ignored == 1

    def test_missing_transaction_hash_is_invalid(self, processor):
        """Test that a bridge log without a transaction hash is rejected."""
        assert processor.process_frame(make_push_frame(tx_hash=None)) is None
        assert processor.events_invalid == 1

    def test_metrics(self, processor):
        """Test metric collection across frame kinds."""
        processor.process_frame(make_push_frame())
        processor.process_frame(make_push_frame(address=OTHER_ADDRESS))
        processor.process_frame("garbage")

        metrics = processor.get_metrics()

        assert metrics["frames_received"] == 3
        assert metrics["events_reported"] == 1
        assert metrics["events_filtered"] == 1
        assert metrics["events_invalid"] == 1


class TestSubscriptionAck:
    """Tests for subscription acknowledgement parsing."""

    def test_subscription_id(self, processor):
        """Test reading the subscription id."""
        ack = json.dumps({"jsonrpc": "2.0", "id": 1, "result": "0xcd0c3e8af590364c09d0fa6a1210faf5"})

        assert processor.parse_subscription_ack(ack) == "0xcd0c3e8af590364c09d0fa6a1210faf5"

    def test_error_response_raises(self, processor):
        """Test that a rejected subscription raises FeedSubscriptionError."""
        ack = json.dumps({"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "nope"}})

        with pytest.raises(FeedSubscriptionError, match="Subscription rejected"):
            processor.parse_subscription_ack(ack)

    def test_unrecognised_ack(self, processor):
        """Test that an unexpected ack shape yields None."""
        assert processor.parse_subscription_ack("not json") is None
        assert processor.parse_subscription_ack(json.dumps({"id": 1})) is None


class TestTopicToBytes:
    """Tests for topic conversion."""

    def test_hex_string(self):
        assert topic_to_bytes("0x" + "00" * 31 + "2a") == b"\x00" * 31 + b"\x2a"

    def test_bytes(self):
        assert topic_to_bytes(b"\x01\x02") == b"\x01\x02"

    def test_unsupported_type(self):
        with pytest.raises(ValueError):
            topic_to_bytes(42)
