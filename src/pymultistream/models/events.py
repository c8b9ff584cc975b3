"""Outward events emitted by :class:`~pymultistream.consumer.StreamConsumer`.

Every event is a frozen dataclass tagged with an :class:`EventKind`.
``StreamEvent`` is the closed union of all of them, so consumers can
``match`` on the concrete type instead of registering string-keyed
handlers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar


class EventKind(StrEnum):
    ERROR = "error"
    SUCCESS = "success"
    WARNING = "warning"
    DELETE = "delete"
    TICK = "tick"
    INTERACTION = "interaction"
    UNKNOWN = "unknownEvent"
    DEBUG = "debug"
    RECYCLE = "recycle"


@dataclass(frozen=True)
class ErrorEvent:
    """A failure record, or a failed connection recycle."""

    kind: ClassVar[EventKind] = EventKind.ERROR

    error: Exception
    record: dict[str, Any] | None = None

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass(frozen=True)
class SuccessEvent:
    kind: ClassVar[EventKind] = EventKind.SUCCESS

    message: str
    record: dict[str, Any]


@dataclass(frozen=True)
class WarningEvent:
    """A warning record, an undecodable line, or an end of stream.

    ``record`` is ``None`` when the warning did not come from the server.
    """

    kind: ClassVar[EventKind] = EventKind.WARNING

    message: str
    record: dict[str, Any] | None = None


@dataclass(frozen=True)
class DeleteEvent:
    kind: ClassVar[EventKind] = EventKind.DELETE

    record: dict[str, Any]


@dataclass(frozen=True)
class TickEvent:
    kind: ClassVar[EventKind] = EventKind.TICK

    record: dict[str, Any]


@dataclass(frozen=True)
class InteractionEvent:
    kind: ClassVar[EventKind] = EventKind.INTERACTION

    record: dict[str, Any]

    @property
    def stream_hash(self) -> str | None:
        value = self.record.get("hash")
        return value if isinstance(value, str) else None

    @property
    def interaction(self) -> dict[str, Any]:
        data = self.record.get("data")
        if isinstance(data, dict) and isinstance(data.get("interaction"), dict):
            return data["interaction"]
        return {}


@dataclass(frozen=True)
class UnknownEvent:
    kind: ClassVar[EventKind] = EventKind.UNKNOWN

    record: Any


@dataclass(frozen=True)
class DebugEvent:
    kind: ClassVar[EventKind] = EventKind.DEBUG

    message: str


@dataclass(frozen=True)
class RecycleEvent:
    kind: ClassVar[EventKind] = EventKind.RECYCLE

    hashes: tuple[str, ...] = field(default=())


StreamEvent = (
    ErrorEvent
    | SuccessEvent
    | WarningEvent
    | DeleteEvent
    | TickEvent
    | InteractionEvent
    | UnknownEvent
    | DebugEvent
    | RecycleEvent
)
