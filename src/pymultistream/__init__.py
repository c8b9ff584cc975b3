"""pymultistream - Async consumer for multiplexed newline-delimited JSON streams."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pymultistream")
except PackageNotFoundError:
    __version__ = "0+local"
from pymultistream._transport import HttpStreamTransport, StreamTransport
from pymultistream.config import StreamConfig
from pymultistream.consumer import StreamConsumer
from pymultistream.exceptions import (
    InvalidIdentifierError,
    MultiStreamError,
    RecycleError,
    ServerFailureError,
    StreamConfigError,
    StreamTransportError,
    SubscriptionRejectedError,
    UnknownIdentifierError,
)
from pymultistream.models import (
    DebugEvent,
    DeleteEvent,
    ErrorEvent,
    EventKind,
    InteractionEvent,
    RecycleEvent,
    StreamEvent,
    StreamHash,
    Subscription,
    SubscriptionState,
    SuccessEvent,
    TickEvent,
    UnknownEvent,
    WarningEvent,
    parse_hash,
    validate_hash,
)

__all__ = [
    "__version__",
    "DebugEvent",
    "DeleteEvent",
    "ErrorEvent",
    "EventKind",
    "HttpStreamTransport",
    "InteractionEvent",
    "InvalidIdentifierError",
    "MultiStreamError",
    "RecycleError",
    "RecycleEvent",
    "ServerFailureError",
    "StreamConfig",
    "StreamConfigError",
    "StreamConsumer",
    "StreamEvent",
    "StreamHash",
    "StreamTransport",
    "StreamTransportError",
    "Subscription",
    "SubscriptionRejectedError",
    "SubscriptionState",
    "SuccessEvent",
    "TickEvent",
    "UnknownEvent",
    "UnknownIdentifierError",
    "WarningEvent",
    "parse_hash",
    "validate_hash",
]
