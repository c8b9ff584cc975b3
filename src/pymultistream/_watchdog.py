"""Single-shot liveness timer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

_logger = logging.getLogger(__name__)


class RecycleWatchdog:
    """Call *on_expire* once when :meth:`rearm` isn't called for *timeout* seconds.

    Every :meth:`rearm` replaces the pending deadline.  A timeout of ``0``
    or less disables the watchdog.
    """

    def __init__(
        self,
        timeout: float,
        on_expire: Callable[[], None],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._timeout = timeout
        self._on_expire = on_expire
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def rearm(self) -> None:
        self.cancel()
        if self._timeout <= 0:
            return
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self._timeout, self._fire)

    def cancel(self) -> None:
        handle = self._handle
        self._handle = None
        if handle is not None:
            handle.cancel()

    def _fire(self) -> None:
        self._handle = None
        _logger.debug("No significant record for %.1fs", self._timeout)
        self._on_expire()
