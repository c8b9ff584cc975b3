from __future__ import annotations

import asyncio

import pytest

from pymultistream._watchdog import RecycleWatchdog


@pytest.mark.asyncio
async def test_expires_once_without_rearm() -> None:
    fired: list[float] = []
    watchdog = RecycleWatchdog(0.02, lambda: fired.append(1.0))

    watchdog.rearm()
    assert watchdog.armed
    await asyncio.sleep(0.1)

    assert fired == [1.0]
    assert not watchdog.armed


@pytest.mark.asyncio
async def test_rearm_postpones_expiry() -> None:
    fired: list[int] = []
    watchdog = RecycleWatchdog(0.05, lambda: fired.append(1))

    watchdog.rearm()
    for _ in range(5):
        await asyncio.sleep(0.02)
        watchdog.rearm()

    assert fired == []
    watchdog.cancel()


@pytest.mark.asyncio
async def test_cancel_prevents_expiry() -> None:
    fired: list[int] = []
    watchdog = RecycleWatchdog(0.02, lambda: fired.append(1))

    watchdog.rearm()
    watchdog.cancel()
    await asyncio.sleep(0.05)

    assert fired == []


@pytest.mark.asyncio
async def test_zero_timeout_disables_watchdog() -> None:
    watchdog = RecycleWatchdog(0, lambda: None)

    watchdog.rearm()

    assert not watchdog.armed
