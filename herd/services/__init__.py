"""Services for herd."""

from herd.services.aggregator import (
    Aggregator,
    JsonPrettyAggregator,
    JsonStreamAggregator,
    TextAggregator,
    create_aggregator,
)
from herd.services.connection import Session, establish
from herd.services.dispatcher import Dispatcher
from herd.services.executors import run_command
from herd.services.retry import RetryPolicy

__all__ = [
    "Aggregator",
    "Dispatcher",
    "JsonPrettyAggregator",
    "JsonStreamAggregator",
    "RetryPolicy",
    "Session",
    "TextAggregator",
    "create_aggregator",
    "establish",
    "run_command",
]
