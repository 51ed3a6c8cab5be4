"""Test helper utilities for Order Notification Dispatch tests."""

from .fake_senders import (
    BlockingSender,
    ConcurrencyProbeSender,
    RaisingSender,
    RecordingSender,
    ScriptedSender,
)
from .orders import make_job, make_order

__all__ = [
    "BlockingSender",
    "ConcurrencyProbeSender",
    "RaisingSender",
    "RecordingSender",
    "ScriptedSender",
    "make_job",
    "make_order",
]
