"""
Bridge gas faucet package.

Watches a bridge contract for deposit events and tops up each new
recipient's native balance so they can pay transaction fees.
"""

from .config import FaucetConfig
from .event_channel import EventChannel
from .event_processor import EventProcessor
from .gift_orchestrator import GiftOrchestrator
from .gift_sequence import GiftSequence
from .models import EventReport, GiftHistory, GiftResult, GiftStatus
from .nonce_tracker import NonceTracker
from .subscription_client import SubscriptionClient

__all__ = [
    "FaucetConfig",
    "EventChannel",
    "EventProcessor",
    "EventReport",
    "GiftHistory",
    "GiftOrchestrator",
    "GiftResult",
    "GiftSequence",
    "GiftStatus",
    "NonceTracker",
    "SubscriptionClient",
]
__version__ = "0.1.0"
