"""Route decoded stream records to registry transitions and outward events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from pymultistream._constants import MISSING_HASH_PATTERN, STOP_ACKNOWLEDGMENT, SUBSCRIBED_PATTERN
from pymultistream._registry import SubscriptionRegistry
from pymultistream.exceptions import ServerFailureError
from pymultistream.models.events import (
    DeleteEvent,
    ErrorEvent,
    InteractionEvent,
    StreamEvent,
    SuccessEvent,
    TickEvent,
    UnknownEvent,
    WarningEvent,
)
from pymultistream.models.records import RecordKind, StatusRecord, classify_record

_logger = logging.getLogger(__name__)


class EventRouter:
    """Apply one record at a time.

    ``rearm`` is called for every record that proves the stream is alive
    (interaction, delete, tick).  ``on_failure`` is called for failure
    records other than the acknowledgment of our own stop message.
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        *,
        emit: Callable[[StreamEvent], None],
        rearm: Callable[[], None],
        on_failure: Callable[[ServerFailureError], None],
    ) -> None:
        self._registry = registry
        self._emit = emit
        self._rearm = rearm
        self._on_failure = on_failure

    def route(self, record: Any) -> RecordKind:
        kind = classify_record(record)

        if kind in (RecordKind.FAILURE, RecordKind.SUCCESS, RecordKind.WARNING):
            try:
                status = StatusRecord.from_record(record)
            except ValidationError:
                _logger.debug("Malformed status record: %s", record, exc_info=True)
                self._emit(UnknownEvent(record=record))
                return RecordKind.UNKNOWN

            if kind is RecordKind.FAILURE:
                self._handle_failure(status)
            elif kind is RecordKind.SUCCESS:
                self._handle_success(status)
            else:
                self._handle_warning(status)
            return kind

        if kind is RecordKind.DELETE:
            self._rearm()
            self._emit(DeleteEvent(record=record))
        elif kind is RecordKind.TICK:
            self._rearm()
            self._emit(TickEvent(record=record))
        elif kind is RecordKind.INTERACTION:
            self._rearm()
            self._emit(InteractionEvent(record=record))
        else:
            self._emit(UnknownEvent(record=record))
        return kind

    def _handle_failure(self, status: StatusRecord) -> None:
        error = ServerFailureError(status.message, record=status.raw)
        self._emit(ErrorEvent(error=error, record=status.raw))
        if status.message != STOP_ACKNOWLEDGMENT:
            _logger.warning("Stream failure: %s", status.message)
            self._on_failure(error)

    def _handle_success(self, status: StatusRecord) -> None:
        match = SUBSCRIBED_PATTERN.search(status.message)
        if match:
            sub = self._registry.mark_subscribed(match.group(1), status.raw)
            if sub is not None:
                _logger.debug("Subscribed to %s", sub.hash)
        self._emit(SuccessEvent(message=status.message, record=status.raw))

    def _handle_warning(self, status: StatusRecord) -> None:
        match = MISSING_HASH_PATTERN.search(status.message)
        if match:
            sub = self._registry.reject(match.group(1), status.message)
            if sub is not None:
                _logger.debug("Subscription to %s rejected", sub.hash)
        self._emit(WarningEvent(message=status.message, record=status.raw))
