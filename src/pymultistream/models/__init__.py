"""Data models for pymultistream."""

from pymultistream.models.events import (
    DebugEvent,
    DeleteEvent,
    ErrorEvent,
    EventKind,
    InteractionEvent,
    RecycleEvent,
    StreamEvent,
    SuccessEvent,
    TickEvent,
    UnknownEvent,
    WarningEvent,
)
from pymultistream.models.records import RecordKind, StatusKind, StatusRecord, classify_record
from pymultistream.models.stream_hash import StreamHash, parse_hash, validate_hash
from pymultistream.models.subscription import Subscription, SubscriptionState

__all__ = [
    "DebugEvent",
    "DeleteEvent",
    "ErrorEvent",
    "EventKind",
    "InteractionEvent",
    "RecordKind",
    "RecycleEvent",
    "StatusKind",
    "StatusRecord",
    "StreamEvent",
    "StreamHash",
    "Subscription",
    "SubscriptionState",
    "SuccessEvent",
    "TickEvent",
    "UnknownEvent",
    "WarningEvent",
    "classify_record",
    "parse_hash",
    "validate_hash",
]
