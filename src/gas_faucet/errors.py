"""Exception types raised by the gas faucet."""


class FaucetError(Exception):
    """Base class for all faucet errors."""


class ChainConnectionError(FaucetError):
    """No live chain client connection is held."""


class FeedSubscriptionError(FaucetError):
    """The event feed rejected the subscription or stopped delivering frames."""


class InsufficientFundsError(FaucetError):
    """The faucet account cannot cover the gift floor."""

    def __init__(self, balance: int, required: int) -> None:
        self.balance = balance
        self.required = required
        super().__init__(
            f"Insufficient balance to give a gift: have {balance} wei, need {required} wei"
        )


class EventPipelineError(FaucetError):
    """The internal event pipeline is broken; the process must exit."""


class ChannelClosedError(EventPipelineError):
    """The event channel was closed."""
