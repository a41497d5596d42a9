"""Review consumer module exports."""

from .worker import (
    ConsumeResult,
    ReviewConsumerSettings,
    consume_once,
    handle_message,
    load_settings,
    run_forever,
)

__all__ = [
    "ConsumeResult",
    "ReviewConsumerSettings",
    "consume_once",
    "handle_message",
    "load_settings",
    "run_forever",
]
