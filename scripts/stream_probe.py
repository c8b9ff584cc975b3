#!/usr/bin/env python3
"""Passive probe for a multiplexed subscription stream.

Connects with settings from ``MULTISTREAM_*`` environment variables,
subscribes to the given hashes and prints every event as it arrives.

Use this to check stream health: tick cadence, recycles and rejected
hashes.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pymultistream import (  # noqa: E402
    ErrorEvent,
    InteractionEvent,
    MultiStreamError,
    RecycleEvent,
    StreamConfig,
    StreamConsumer,
    StreamEvent,
    TickEvent,
)

_LOG = logging.getLogger("stream_probe")


@dataclass
class ProbeStats:
    started_at: float
    counts: dict[str, int] = field(default_factory=dict)
    last_event_at: float | None = None

    def on_event(self, event: StreamEvent, now: float) -> float | None:
        previous = self.last_event_at
        self.counts[event.kind] = self.counts.get(event.kind, 0) + 1
        self.last_event_at = now
        return None if previous is None else now - previous


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Passive probe for a multiplexed subscription stream.",
    )
    parser.add_argument("hashes", nargs="+", help="Stream hashes to subscribe to.")
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--interaction-timeout",
        type=float,
        default=None,
        help="Recycle the connection after N seconds without ticks or interactions.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Pretty-print interaction payloads.",
    )
    parser.add_argument(
        "--quiet-ticks",
        action="store_true",
        help="Count ticks without printing them.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_summary(stats: ProbeStats) -> None:
    runtime = time.time() - stats.started_at
    print("[probe] Summary")
    print(f"[probe]   runtime_s : {runtime:.1f}")
    for kind, count in sorted(stats.counts.items()):
        print(f"[probe]   {kind:<12}: {count}")


def _describe(event: StreamEvent, pretty: bool) -> str:
    if isinstance(event, InteractionEvent):
        indent = 2 if pretty else None
        return f"hash={event.stream_hash} {json.dumps(event.interaction, indent=indent, ensure_ascii=False)}"
    if isinstance(event, ErrorEvent):
        return f"{type(event.error).__name__}: {event.message}"
    if isinstance(event, RecycleEvent):
        return f"resubscribed {len(event.hashes)} hash(es)"
    message = getattr(event, "message", None)
    if message is not None:
        return str(message)
    return json.dumps(getattr(event, "record", None), ensure_ascii=False, default=str)


async def _run(args: argparse.Namespace, config: StreamConfig, stats: ProbeStats) -> None:
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    def on_event(event: StreamEvent) -> None:
        now = time.time()
        gap = stats.on_event(event, now)
        if args.quiet_ticks and isinstance(event, TickEvent):
            return
        ts_text = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(now))
        gap_text = "first" if gap is None else f"{gap:.1f}s"
        print(f"[probe] {event.kind} at {ts_text} gap={gap_text} {_describe(event, args.json)}")

    async with StreamConsumer(config, on_event=on_event) as consumer:
        futures = consumer.set_subscriptions(args.hashes)
        results = await asyncio.gather(*futures, return_exceptions=True)
        for stream_hash, result in zip(args.hashes, results):
            if isinstance(result, BaseException):
                print(f"[probe] {stream_hash}: {result}", file=sys.stderr)
            else:
                print(f"[probe] {stream_hash}: {result.state}")

        try:
            timeout = args.duration if args.duration > 0 else None
            await asyncio.wait_for(stop.wait(), timeout)
        except TimeoutError:
            print(f"[probe] Reached --duration={args.duration}s, stopping.")


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, float] = {}
    if args.interaction_timeout is not None:
        overrides["interaction_timeout"] = args.interaction_timeout
    try:
        config = StreamConfig.from_env(**overrides)
    except MultiStreamError as exc:
        print(f"[probe] Invalid configuration: {exc}", file=sys.stderr)
        return 2

    _LOG.debug("Connecting to %s%s", config.base_url, config.base_path)
    stats = ProbeStats(started_at=time.time())
    try:
        asyncio.run(_run(args, config, stats))
    except MultiStreamError as exc:  # pragma: no cover - network interaction
        print(f"[probe] Stream failed: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
