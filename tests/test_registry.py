from __future__ import annotations

import json

import pytest

from pymultistream._registry import SubscriptionRegistry, control_message
from pymultistream.exceptions import (
    InvalidIdentifierError,
    SubscriptionRejectedError,
    UnknownIdentifierError,
)
from pymultistream.models.subscription import SubscriptionState

HASH_A = "69ec6f20f05f513e3b144b90fecc2e3f"
HASH_B = "0123456789abcdef0123456789abcdef"
HASH_C = "fedcba9876543210fedcba9876543210"


class _Wire:
    def __init__(self, started: bool = True) -> None:
        self.started = started
        self.messages: list[dict[str, str]] = []

    def write(self, text: str) -> None:
        self.messages.append(json.loads(text))

    def registry(self) -> SubscriptionRegistry:
        return SubscriptionRegistry(write=self.write, is_started=lambda: self.started)


def test_control_message_is_compact_json() -> None:
    assert control_message("subscribe", HASH_A) == f'{{"action":"subscribe","hash":"{HASH_A}"}}'
    assert control_message("stop") == '{"action":"stop"}'


@pytest.mark.asyncio
async def test_subscribe_twice_returns_same_future_and_writes_once() -> None:
    wire = _Wire()
    registry = wire.registry()

    first = registry.subscribe(HASH_A)
    second = registry.subscribe(HASH_A)

    assert first is second
    assert not first.done()
    assert wire.messages == [{"action": "subscribe", "hash": HASH_A}]
    assert registry.get(HASH_A).state is SubscriptionState.PENDING


@pytest.mark.asyncio
async def test_subscribe_is_case_insensitive() -> None:
    wire = _Wire()
    registry = wire.registry()

    assert registry.subscribe(HASH_A) is registry.subscribe(HASH_A.upper())
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_subscribe_invalid_hash_raises_without_writing() -> None:
    wire = _Wire()
    registry = wire.registry()

    with pytest.raises(InvalidIdentifierError):
        registry.subscribe("not-a-hash")

    assert wire.messages == []
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_subscribe_before_start_tracks_without_writing() -> None:
    wire = _Wire(started=False)
    registry = wire.registry()

    registry.subscribe(HASH_A)

    assert wire.messages == []
    assert registry.pending_hashes() == [HASH_A]


@pytest.mark.asyncio
async def test_unsubscribe_resolves_immediately_and_removes_entry() -> None:
    wire = _Wire()
    registry = wire.registry()
    pending = registry.subscribe(HASH_A)

    result = registry.unsubscribe(HASH_A)

    assert result.done()
    sub = result.result()
    assert sub.hash == HASH_A
    assert sub.state is SubscriptionState.UNSUBSCRIBED
    assert HASH_A not in registry
    assert pending.cancelled()
    assert wire.messages[-1] == {"action": "unsubscribe", "hash": HASH_A}


@pytest.mark.asyncio
async def test_unsubscribe_unknown_hash_raises() -> None:
    registry = _Wire().registry()

    with pytest.raises(UnknownIdentifierError):
        registry.unsubscribe(HASH_A)


@pytest.mark.asyncio
async def test_unsubscribe_while_stopped_skips_the_write() -> None:
    wire = _Wire(started=False)
    registry = wire.registry()
    registry.subscribe(HASH_A)

    registry.unsubscribe(HASH_A)

    assert wire.messages == []
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_reconcile_to_empty_unsubscribes_everything() -> None:
    wire = _Wire()
    registry = wire.registry()
    registry.subscribe(HASH_A)
    registry.subscribe(HASH_B)

    futures = registry.reconcile([])

    assert len(futures) == 2
    assert {f.result().hash for f in futures} == {HASH_A, HASH_B}
    assert all(f.result().state is SubscriptionState.UNSUBSCRIBED for f in futures)
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_reconcile_applies_the_difference() -> None:
    wire = _Wire()
    registry = wire.registry()
    kept = registry.subscribe(HASH_A)
    registry.subscribe(HASH_B)
    wire.messages.clear()

    futures = registry.reconcile([HASH_A, HASH_C, HASH_C])

    assert len(futures) == 2
    subscribe_future, unsubscribe_future = futures
    assert registry.get(HASH_C).future is subscribe_future
    assert unsubscribe_future.result().hash == HASH_B
    assert registry.hashes() == [HASH_A, HASH_C]
    assert registry.get(HASH_A).future is kept
    assert wire.messages == [
        {"action": "unsubscribe", "hash": HASH_B},
        {"action": "subscribe", "hash": HASH_C},
    ]


@pytest.mark.asyncio
async def test_reconcile_turns_invalid_hashes_into_failed_futures() -> None:
    registry = _Wire().registry()

    futures = registry.reconcile(["bogus", HASH_A])

    assert len(futures) == 2
    assert isinstance(futures[0].exception(), InvalidIdentifierError)
    assert not futures[1].done()
    assert registry.hashes() == [HASH_A]


@pytest.mark.asyncio
async def test_mark_subscribed_resolves_with_subscription() -> None:
    registry = _Wire().registry()
    future = registry.subscribe(HASH_A)
    record = {"status": "success", "message": f"Successfully subscribed to hash {HASH_A}"}

    sub = registry.mark_subscribed(HASH_A, record)

    assert sub is not None
    assert future.result() is sub
    assert sub.state is SubscriptionState.SUBSCRIBED
    assert sub.record == record


@pytest.mark.asyncio
async def test_reject_fails_future_and_removes_entry() -> None:
    registry = _Wire().registry()
    future = registry.subscribe(HASH_A)

    registry.reject(HASH_A, "The hash doesn't exist")

    exc = future.exception()
    assert isinstance(exc, SubscriptionRejectedError)
    assert exc.hash == HASH_A
    assert HASH_A not in registry


@pytest.mark.asyncio
async def test_resubscribe_all_writes_every_known_hash() -> None:
    wire = _Wire()
    registry = wire.registry()
    registry.subscribe(HASH_A)
    registry.subscribe(HASH_B)
    registry.mark_subscribed(HASH_A)
    wire.messages.clear()

    sent = registry.resubscribe_all()

    assert sent == [HASH_A, HASH_B]
    assert wire.messages == [
        {"action": "subscribe", "hash": HASH_A},
        {"action": "subscribe", "hash": HASH_B},
    ]


@pytest.mark.asyncio
async def test_flush_unsent_skips_hashes_already_written() -> None:
    wire = _Wire()
    registry = wire.registry()
    registry.subscribe(HASH_A)
    wire.started = False
    registry.subscribe(HASH_B)
    wire.started = True

    flushed = registry.flush_unsent()

    assert flushed == [HASH_B]
    assert wire.messages == [
        {"action": "subscribe", "hash": HASH_A},
        {"action": "subscribe", "hash": HASH_B},
    ]
    assert registry.flush_unsent() == []


@pytest.mark.asyncio
async def test_mark_sent_covers_hashes_in_connect_path() -> None:
    wire = _Wire(started=False)
    registry = wire.registry()
    registry.subscribe(HASH_A)
    registry.subscribe(HASH_B)

    registry.mark_sent([HASH_A.upper()])
    wire.started = True

    assert registry.flush_unsent() == [HASH_B]
    assert wire.messages == [{"action": "subscribe", "hash": HASH_B}]


@pytest.mark.asyncio
async def test_clear_cancels_pending_without_writing() -> None:
    wire = _Wire()
    registry = wire.registry()
    future = registry.subscribe(HASH_A)
    wire.messages.clear()

    registry.clear()

    assert len(registry) == 0
    assert future.cancelled()
    assert wire.messages == []


@pytest.mark.asyncio
async def test_fail_pending_leaves_confirmed_subscriptions() -> None:
    registry = _Wire().registry()
    registry.subscribe(HASH_A)
    pending = registry.subscribe(HASH_B)
    registry.mark_subscribed(HASH_A)

    dropped = registry.fail_pending(RuntimeError("boom"))

    assert dropped == [HASH_B]
    assert isinstance(pending.exception(), RuntimeError)
    assert registry.hashes() == [HASH_A]
