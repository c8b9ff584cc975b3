"""High-level async consumer for a multiplexed subscription stream."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Coroutine, Iterable
from typing import Any

import aiohttp

from pymultistream._framing import LineFramer
from pymultistream._registry import SubscriptionRegistry, control_message
from pymultistream._router import EventRouter
from pymultistream._transport import HttpStreamTransport, StreamTransport
from pymultistream._watchdog import RecycleWatchdog
from pymultistream.config import StreamConfig
from pymultistream.exceptions import (
    MultiStreamError,
    RecycleError,
    ServerFailureError,
    StreamTransportError,
)
from pymultistream.models.events import (
    DebugEvent,
    ErrorEvent,
    RecycleEvent,
    StreamEvent,
    WarningEvent,
)
from pymultistream.models.stream_hash import StreamHash
from pymultistream.models.subscription import Subscription

_logger = logging.getLogger(__name__)


class StreamConsumer:
    """Subscribe to many streams over one long-lived HTTP connection.

    Usage::

        async with StreamConsumer(config, on_event=handle) as consumer:
            sub = await consumer.subscribe("69ec6f20f05f513e3b144b90fecc2e3f")

    ``subscribe``, ``unsubscribe`` and ``set_subscriptions`` are plain
    methods returning futures so they can be called from any callback on
    the loop.  Events are delivered to ``on_event`` one at a time in
    stream order.
    """

    def __init__(
        self,
        config: StreamConfig | None = None,
        *,
        transport: StreamTransport | None = None,
        session: aiohttp.ClientSession | None = None,
        on_event: Callable[[StreamEvent], None] | None = None,
    ) -> None:
        self._config = config or StreamConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._on_event_cb = on_event

        self._listeners_attached = False
        self._tasks: set[asyncio.Task[Any]] = set()
        self._start_task: asyncio.Task[None] | None = None
        self._recovery_task: asyncio.Task[None] | None = None

        self._framer = LineFramer(on_decode_error=self._on_decode_error)
        self._registry = SubscriptionRegistry(write=self._write, is_started=self._is_started)
        self._watchdog = RecycleWatchdog(self._config.interaction_timeout, self._on_watchdog_expired)
        self._router = EventRouter(
            self._registry,
            emit=self._emit,
            rearm=self._watchdog.rearm,
            on_failure=self._on_server_failure,
        )

        if self._transport is None and session is not None:
            self._transport = self._build_transport(session)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> StreamConsumer:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = self._build_transport(self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.shutdown()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _build_transport(self, session: aiohttp.ClientSession) -> HttpStreamTransport:
        return HttpStreamTransport(self._config, self.connect_path, session)

    def _require_transport(self) -> StreamTransport:
        if self._transport is None:
            raise MultiStreamError("Consumer not initialized. Use 'async with StreamConsumer(...) as consumer:'")
        return self._transport

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def config(self) -> StreamConfig:
        return self._config

    @property
    def started(self) -> bool:
        return self._is_started()

    def hashes(self) -> list[StreamHash]:
        """Hashes currently tracked (pending or subscribed)."""
        return self._registry.hashes()

    def get_subscription(self, stream_hash: str) -> Subscription | None:
        return self._registry.get(stream_hash)

    def connect_path(self) -> str:
        """Request path for a new connection.

        Known hashes ride along in the path so a reconnect resubscribes
        them without control messages.
        """
        hashes = self._registry.hashes()
        self._registry.mark_sent(hashes)
        path = f"{self._config.base_path}?statuses=true"
        if hashes:
            path += "&hashes=" + ",".join(hashes)
        return path

    async def start(self) -> None:
        """Attach transport handlers (once) and start the transport.

        Safe to call repeatedly.  Raises whatever the transport raises
        when it cannot connect.
        """
        transport = self._require_transport()
        if not self._listeners_attached:
            transport.set_handlers(
                on_data=self._on_data,
                on_end=self._on_end,
                on_recovered=self._on_recovered,
            )
            self._listeners_attached = True

        await transport.start()
        self._flush_pending()

    def subscribe(self, stream_hash: str) -> asyncio.Future[Subscription]:
        """Subscribe to *stream_hash*.

        Raises :class:`~pymultistream.exceptions.InvalidIdentifierError`
        immediately for a malformed hash.  The returned future resolves
        once the server confirms the subscription, and fails with
        :class:`~pymultistream.exceptions.SubscriptionRejectedError` when
        the server reports the hash doesn't exist.  Calling again before
        that returns the same future.
        """
        self._require_transport()
        future = self._registry.subscribe(stream_hash)
        if not self.started:
            self._ensure_started()
        return future

    def unsubscribe(self, stream_hash: str) -> asyncio.Future[Subscription]:
        """Unsubscribe from *stream_hash* without waiting for the server.

        Raises :class:`~pymultistream.exceptions.UnknownIdentifierError`
        when the hash is not tracked.
        """
        return self._registry.unsubscribe(stream_hash)

    def set_subscriptions(self, stream_hashes: Iterable[str] | None = None) -> list[asyncio.Future[Subscription]]:
        """Make the tracked subscriptions equal *stream_hashes*.

        Returns the futures of the new subscriptions followed by the
        futures of the removed ones.  Starts the consumer if needed.
        """
        self._require_transport()
        self._watchdog.rearm()
        futures = self._registry.reconcile(stream_hashes or ())
        if not self.started:
            self._ensure_started()
        return futures

    async def shutdown(self) -> None:
        """Drop all subscriptions and close the connection.

        Subscriptions are not unsubscribed one by one; the stop control
        message ends them all.  A later subscribe opens a new connection.
        """
        self._listeners_attached = False
        self._registry.clear()
        self._watchdog.cancel()
        self._framer.reset()

        for task in list(self._tasks):
            if task is not asyncio.current_task():
                task.cancel()

        transport = self._transport
        if transport is None:
            return
        if transport.started:
            transport.write(control_message("stop"))
        await transport.stop()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _is_started(self) -> bool:
        return self._transport is not None and self._transport.started

    def _write(self, message: str) -> None:
        self._require_transport().write(message)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _emit(self, event: StreamEvent) -> None:
        _logger.debug("Emitting %s event", event.kind)
        if self._on_event_cb is None:
            return
        try:
            self._on_event_cb(event)
        except Exception:
            _logger.debug("on_event callback failed", exc_info=True)

    def _flush_pending(self) -> None:
        # Hashes already in the connect path or written earlier are skipped.
        flushed = self._registry.flush_unsent()
        if flushed:
            _logger.debug("Flushed %d pending subscription(s)", len(flushed))

    def _ensure_started(self) -> None:
        if self._start_task is not None and not self._start_task.done():
            return
        self._start_task = self._spawn(self._start_in_background())

    async def _start_in_background(self) -> None:
        try:
            await self.start()
        except Exception as exc:
            _logger.warning("Stream start failed: %s", exc)
            error = exc if isinstance(exc, MultiStreamError) else StreamTransportError(f"failed to start: {exc}")
            if error is not exc:
                error.__cause__ = exc
            self._registry.fail_pending(error)
            self._emit(ErrorEvent(error=error))

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def _on_data(self, chunk: str, status_code: int) -> None:
        for record in self._framer.feed(chunk):
            self._router.route(record)

    def _on_end(self, status_code: int | None) -> None:
        self._emit(WarningEvent(message=f"end event received with status code {status_code}"))
        # The transport reconnects on its own; drop the partial line.
        self._framer.reset()

    def _on_recovered(self, reason: str) -> None:
        self._emit(DebugEvent(message=f"recovered from {reason}"))

    def _on_decode_error(self, line: str, exc: json.JSONDecodeError) -> None:
        self._emit(WarningEvent(message=f"could not parse into JSON: {line} with error: {exc}"))

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def _on_server_failure(self, error: ServerFailureError) -> None:
        if self._recovery_task is not None and not self._recovery_task.done():
            return
        self._recovery_task = self._spawn(self._recover_and_resubscribe())

    async def _recover_and_resubscribe(self) -> None:
        transport = self._require_transport()
        try:
            await transport.recover()
        except Exception as exc:
            _logger.debug("Recovery after failure record failed", exc_info=True)
            error = exc if isinstance(exc, MultiStreamError) else StreamTransportError(f"failed to recover: {exc}")
            self._emit(ErrorEvent(error=error))
            return
        self._registry.resubscribe_all()

    def _on_watchdog_expired(self) -> None:
        if self._recovery_task is not None and not self._recovery_task.done():
            return
        self._recovery_task = self._spawn(self._recycle())

    async def _recycle(self) -> None:
        """Force a fresh connection and resubscribe every known hash."""
        transport = self._require_transport()
        self._emit(DebugEvent(message="recycling connection"))
        try:
            await transport.stop()
            await transport.recover()
        except Exception as exc:
            _logger.debug("Connection recycle failed", exc_info=True)
            error = RecycleError(f"failed to reconnect: {exc}")
            error.__cause__ = exc
            self._emit(ErrorEvent(error=error))
            return
        self._registry.resubscribe_all()
        self._emit(RecycleEvent(hashes=tuple(self._registry.hashes())))
