"""Long-lived chunked HTTP transport.

The stream is a single POST whose request body stays open for control
messages while the response body delivers newline-delimited records.
"""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from typing import Protocol

import aiohttp

from pymultistream.config import StreamConfig
from pymultistream.exceptions import StreamTransportError

_logger = logging.getLogger(__name__)

DataHandler = Callable[[str, int], None]
EndHandler = Callable[[int | None], None]
RecoveredHandler = Callable[[str], None]

_SENSITIVE_HEADERS: frozenset[str] = frozenset({"auth", "authorization", "cookie", "x-api-key"})


def _redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {k: "<redacted>" if k.lower() in _SENSITIVE_HEADERS else v for k, v in headers.items()}


class StreamTransport(Protocol):
    """Structural transport interface used by the consumer.

    Implementations reconnect on their own after a dropped connection
    and report it through ``on_end`` followed by ``on_recovered``.
    ``start`` must be idempotent.
    """

    @property
    def started(self) -> bool:
        ...

    def set_handlers(
        self,
        *,
        on_data: DataHandler,
        on_end: EndHandler,
        on_recovered: RecoveredHandler | None = None,
    ) -> None:
        ...

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    async def recover(self) -> None:
        ...

    def write(self, text: str) -> None:
        ...


async def _request_body(outbox: asyncio.Queue[bytes | None]) -> AsyncIterator[bytes]:
    while True:
        item = await outbox.get()
        if item is None:
            return
        yield item


class HttpStreamTransport:
    """aiohttp implementation of :class:`StreamTransport`.

    ``path_factory`` is called on every (re)connect so the request path
    can carry the currently known subscriptions.
    """

    def __init__(
        self,
        config: StreamConfig,
        path_factory: Callable[[], str],
        http_session: aiohttp.ClientSession,
    ) -> None:
        self._config = config
        self._path_factory = path_factory
        self._http = http_session
        self._on_data: DataHandler | None = None
        self._on_end: EndHandler | None = None
        self._on_recovered: RecoveredHandler | None = None
        self._response: aiohttp.ClientResponse | None = None
        self._outbox: asyncio.Queue[bytes | None] | None = None
        self._reader: asyncio.Task[None] | None = None
        self._connect_lock = asyncio.Lock()
        self._started = False
        self._stopping = False
        self._backoff_idx = 0

    @property
    def started(self) -> bool:
        return self._started

    def set_handlers(
        self,
        *,
        on_data: DataHandler,
        on_end: EndHandler,
        on_recovered: RecoveredHandler | None = None,
    ) -> None:
        self._on_data = on_data
        self._on_end = on_end
        self._on_recovered = on_recovered

    async def start(self) -> None:
        if self._started:
            return
        self._stopping = False
        await self._connect()

    async def stop(self) -> None:
        self._stopping = True
        await self._teardown()
        _logger.debug("Stream transport stopped")

    async def recover(self) -> None:
        """Drop the current connection (if any) and reconnect.

        Raises :class:`StreamTransportError` when the configured number
        of attempts is exhausted or the transport is stopped meanwhile.
        """
        self._stopping = False
        await self._teardown()
        await self._reconnect("recover requested", immediate=True)

    def write(self, text: str) -> None:
        outbox = self._outbox
        if not self._started or outbox is None:
            raise StreamTransportError("cannot write: stream is not connected")
        outbox.put_nowait(text.encode("utf-8"))

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    async def _open(self, url: str, body: AsyncIterator[bytes], headers: dict[str, str]) -> aiohttp.ClientResponse:
        return await self._http.post(
            url,
            data=body,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=None, sock_read=None),
        )

    async def _connect(self) -> None:
        async with self._connect_lock:
            if self._started:
                return

            path = self._path_factory()
            url = f"{self._config.base_url}{path}"
            headers: dict[str, str] = {
                "content-type": "application/json",
                "user-agent": self._config.user_agent,
                **self._config.headers,
            }
            outbox: asyncio.Queue[bytes | None] = asyncio.Queue()
            outbox.put_nowait(b"\n")

            _logger.debug("POST %s headers=%s", url, _redact_headers(headers))

            timeout = self._config.connect_timeout or None
            try:
                response = await asyncio.wait_for(self._open(url, _request_body(outbox), headers), timeout)
            except TimeoutError as exc:
                outbox.put_nowait(None)
                raise StreamTransportError(f"Timed out connecting to {path}", path=path) from exc
            except aiohttp.ClientError as exc:
                outbox.put_nowait(None)
                raise StreamTransportError(f"Connection to {path} failed: {exc}", path=path) from exc

            if response.status != 200:
                outbox.put_nowait(None)
                try:
                    text = await response.text()
                except aiohttp.ClientError:
                    text = ""
                finally:
                    response.release()
                raise StreamTransportError(
                    f"HTTP {response.status} from {path}: {text[:200]}",
                    status_code=response.status,
                    path=path,
                )

            self._response = response
            self._outbox = outbox
            self._started = True
            self._backoff_idx = 0
            self._reader = asyncio.create_task(self._read(response))
            _logger.debug("Stream connected status=%s", response.status)

    async def _teardown(self) -> None:
        self._started = False
        response, self._response = self._response, None
        outbox, self._outbox = self._outbox, None
        reader, self._reader = self._reader, None

        if outbox is not None:
            outbox.put_nowait(None)
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader
        if response is not None:
            response.close()

    async def _read(self, response: aiohttp.ClientResponse) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        reason = "end of stream"
        try:
            async for chunk in response.content.iter_any():
                text = decoder.decode(chunk)
                if text and self._on_data is not None:
                    self._on_data(text, response.status)
            tail = decoder.decode(b"", final=True)
            if tail and self._on_data is not None:
                self._on_data(tail, response.status)
        except aiohttp.ClientError as exc:
            reason = f"connection error: {exc}"
            _logger.debug("Stream read failed: %s", exc)

        if self._response is not response:
            # Replaced by stop() or recover() while we were reading.
            return

        await self._teardown()
        if self._on_end is not None:
            self._on_end(response.status)
        if not self._stopping:
            # Stay cancellable by stop() while backing off.
            self._reader = asyncio.current_task()  # type: ignore[assignment]
            with contextlib.suppress(StreamTransportError):
                await self._reconnect(reason)

    async def _reconnect(self, reason: str, *, immediate: bool = False) -> None:
        backoff = self._config.reconnect_backoff
        limit = self._config.reconnect_attempts
        attempt = 0
        while not self._stopping:
            if attempt or not immediate:
                delay = backoff[min(self._backoff_idx, len(backoff) - 1)]
                self._backoff_idx = min(self._backoff_idx + 1, len(backoff) - 1)
                _logger.debug("Reconnecting in %.1fs (%s)", delay, reason)
                await asyncio.sleep(delay)
                if self._stopping:
                    break
            attempt += 1
            try:
                await self._connect()
            except StreamTransportError as exc:
                _logger.debug("Reconnect attempt %d failed: %s", attempt, exc)
                if limit and attempt >= limit:
                    raise StreamTransportError(f"Giving up after {attempt} reconnect attempts: {exc}") from exc
                continue
            if self._on_recovered is not None:
                self._on_recovered(reason)
            return
        raise StreamTransportError("Transport stopped while reconnecting")
