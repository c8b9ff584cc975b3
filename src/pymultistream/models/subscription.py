"""Subscription state tracked by the registry."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pymultistream.models.stream_hash import StreamHash


class SubscriptionState(StrEnum):
    PENDING = "pending"
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"


@dataclass(eq=False)
class Subscription:
    """One logical stream subscription.

    ``future`` completes exactly once: with this object when the server
    confirms the subscription, with an exception when it is rejected,
    or it is cancelled when the subscription is dropped first.
    :meth:`resolve`, :meth:`fail` and :meth:`cancel` are no-ops once the
    future is done.

    ``sent`` is set once a subscribe for this hash has reached the
    connection, either as a control message or in the connect path.
    """

    hash: StreamHash
    future: asyncio.Future[Subscription]
    state: SubscriptionState = SubscriptionState.PENDING
    sent: bool = False
    record: dict[str, Any] | None = field(default=None, repr=False)

    def resolve(self, record: dict[str, Any] | None = None) -> bool:
        if self.future.done():
            return False
        self.state = SubscriptionState.SUBSCRIBED
        self.record = record
        self.future.set_result(self)
        return True

    def fail(self, exc: BaseException) -> bool:
        if self.future.done():
            return False
        self.future.set_exception(exc)
        return True

    def cancel(self) -> bool:
        return self.future.cancel()
