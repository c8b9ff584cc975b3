"""Subscription registry.

Owns the hash -> :class:`Subscription` map and writes the subscribe /
unsubscribe control messages.  All methods are synchronous and must be
called from the event loop thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from pymultistream.exceptions import (
    InvalidIdentifierError,
    SubscriptionRejectedError,
    UnknownIdentifierError,
)
from pymultistream.models.stream_hash import StreamHash, parse_hash, validate_hash
from pymultistream.models.subscription import Subscription, SubscriptionState

_logger = logging.getLogger(__name__)


def control_message(action: str, stream_hash: str | None = None) -> str:
    """Build a compact single-line control message."""
    body: dict[str, str] = {"action": action}
    if stream_hash is not None:
        body["hash"] = stream_hash
    return json.dumps(body, separators=(",", ":"))


def _ordered_unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


class SubscriptionRegistry:
    """At most one :class:`Subscription` per hash.

    ``write`` sends a control message through the transport and is only
    called while ``is_started()`` reports ``True``.
    """

    def __init__(
        self,
        *,
        write: Callable[[str], None],
        is_started: Callable[[], bool],
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._write = write
        self._is_started = is_started
        self._loop = loop
        self._streams: dict[StreamHash, Subscription] = {}

    def __contains__(self, stream_hash: object) -> bool:
        return isinstance(stream_hash, str) and stream_hash.lower() in self._streams

    def __len__(self) -> int:
        return len(self._streams)

    def __iter__(self) -> Iterator[StreamHash]:
        return iter(list(self._streams))

    def hashes(self) -> list[StreamHash]:
        return list(self._streams)

    def pending_hashes(self) -> list[StreamHash]:
        return [h for h, sub in self._streams.items() if sub.state is SubscriptionState.PENDING]

    def get(self, stream_hash: str) -> Subscription | None:
        return self._streams.get(StreamHash(stream_hash.lower()))

    def _create_future(self) -> asyncio.Future[Subscription]:
        loop = self._loop or asyncio.get_running_loop()
        return loop.create_future()

    def _send(self, action: str, stream_hash: str | None = None) -> bool:
        if not self._is_started():
            _logger.debug("Transport not started, deferring %s %s", action, stream_hash or "")
            return False
        message = control_message(action, stream_hash)
        _logger.debug("Writing control message %s", message)
        self._write(message)
        return True

    # ------------------------------------------------------------------
    # Caller operations
    # ------------------------------------------------------------------

    def subscribe(self, stream_hash: str) -> asyncio.Future[Subscription]:
        """Track *stream_hash* and return its completion future.

        Raises :class:`InvalidIdentifierError` for a malformed hash.
        A hash that is already tracked returns the existing future and
        writes nothing.
        """
        key = parse_hash(stream_hash)

        existing = self._streams.get(key)
        if existing is not None:
            return existing.future

        sub = Subscription(hash=key, future=self._create_future())
        self._streams[key] = sub
        sub.sent = self._send("subscribe", key)
        return sub.future

    def unsubscribe(self, stream_hash: str) -> asyncio.Future[Subscription]:
        """Stop tracking *stream_hash*.

        Does not wait for the server: the returned future is already
        resolved with the removed subscription.  Raises
        :class:`UnknownIdentifierError` when the hash is not tracked.
        """
        sub = self.get(stream_hash) if isinstance(stream_hash, str) else None
        if sub is None:
            raise UnknownIdentifierError(stream_hash)

        self._send("unsubscribe", sub.hash)
        sub.state = SubscriptionState.UNSUBSCRIBED
        del self._streams[sub.hash]
        sub.cancel()

        done: asyncio.Future[Subscription] = self._create_future()
        done.set_result(sub)
        return done

    def reconcile(self, desired: Iterable[str]) -> list[asyncio.Future[Subscription]]:
        """Subscribe/unsubscribe so the tracked hashes equal *desired*.

        Returns the subscribe futures followed by the unsubscribe
        futures.  A malformed hash yields an already-failed future.
        """
        wanted = _ordered_unique(desired)
        wanted_keys = {h.lower() for h in wanted if validate_hash(h)}
        current = self.hashes()

        to_subscribe = [h for h in wanted if not (validate_hash(h) and h.lower() in self._streams)]
        to_unsubscribe = [h for h in current if h not in wanted_keys]

        unsubscribed = [self.unsubscribe(h) for h in to_unsubscribe]

        subscribed: list[asyncio.Future[Subscription]] = []
        for h in to_subscribe:
            try:
                subscribed.append(self.subscribe(h))
            except InvalidIdentifierError as exc:
                failed: asyncio.Future[Subscription] = self._create_future()
                failed.set_exception(exc)
                subscribed.append(failed)

        return subscribed + unsubscribed

    # ------------------------------------------------------------------
    # Router transitions
    # ------------------------------------------------------------------

    def mark_subscribed(self, stream_hash: str, record: dict[str, Any] | None = None) -> Subscription | None:
        sub = self.get(stream_hash)
        if sub is None:
            return None
        sub.state = SubscriptionState.SUBSCRIBED
        sub.resolve(record)
        return sub

    def reject(self, stream_hash: str, message: str) -> Subscription | None:
        sub = self.get(stream_hash)
        if sub is None:
            return None
        del self._streams[sub.hash]
        sub.fail(SubscriptionRejectedError(message, hash=sub.hash))
        return sub

    def resubscribe_all(self) -> list[StreamHash]:
        """Re-send subscribe for every tracked hash, whatever its state."""
        sent = [h for h in self.hashes() if self._send("subscribe", h)]
        for h in sent:
            self._streams[h].sent = True
        if sent:
            _logger.debug("Resubscribed %d stream(s)", len(sent))
        return sent

    def mark_sent(self, stream_hashes: Iterable[str]) -> None:
        """Record that *stream_hashes* rode along in a connect path."""
        for h in stream_hashes:
            sub = self.get(h)
            if sub is not None:
                sub.sent = True

    def flush_unsent(self) -> list[StreamHash]:
        """Send subscribe for pending hashes that never reached the connection."""
        flushed = [
            h
            for h, sub in list(self._streams.items())
            if sub.state is SubscriptionState.PENDING and not sub.sent and self._send("subscribe", h)
        ]
        for h in flushed:
            self._streams[h].sent = True
        return flushed

    def fail_pending(self, exc: BaseException) -> list[StreamHash]:
        """Fail and drop every subscription still awaiting confirmation."""
        dropped = self.pending_hashes()
        for h in dropped:
            self._streams.pop(h).fail(exc)
        return dropped

    def clear(self) -> None:
        """Drop every subscription without writing control messages."""
        streams = list(self._streams.values())
        self._streams.clear()
        for sub in streams:
            sub.cancel()
