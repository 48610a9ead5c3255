"""Measure lost reaction updates under concurrent load against a relay server.

Each worker opens its own chat websocket and fires reactions at one shared
message as fast as the server accepts them. The summary compares the final
count announced by the server with the number of reactions sent.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from dataclasses import dataclass, field
from typing import Any

import websockets

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WorkerResult:
    """Observed reaction traffic for a single worker connection."""

    sent: int = 0
    counts_seen: list[int] = field(default_factory=list)
    error: str | None = None


async def _receive_until(websocket: Any, event_type: str, timeout: float) -> dict[str, Any]:
    deadline = time.monotonic() + timeout
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise asyncio.TimeoutError(f"no {event_type!r} event within {timeout}s")
        payload = json.loads(await asyncio.wait_for(websocket.recv(), timeout=remaining))
        if payload.get("type") == event_type:
            return payload


async def _post_target(url: str, timeout: float) -> str:
    async with websockets.connect(url, open_timeout=timeout) as websocket:
        await _receive_until(websocket, "recent", timeout)
        await websocket.send(json.dumps({"type": "submit-message", "text": "reaction race meter", "nick": "meter"}))
        event = await _receive_until(websocket, "msg", timeout)
        return event["message"]["id"]


async def _worker(
    index: int,
    url: str,
    *,
    message_id: str,
    emoji: str,
    reactions: int,
    settle: float,
    timeout: float,
) -> WorkerResult:
    result = WorkerResult()
    try:
        async with websockets.connect(url, open_timeout=timeout) as websocket:
            await _receive_until(websocket, "recent", timeout)
            frame = json.dumps({"type": "submit-reaction", "messageId": message_id, "emoji": emoji})
            for _ in range(reactions):
                await websocket.send(frame)
                result.sent += 1

            deadline = time.monotonic() + settle
            while time.monotonic() < deadline:
                try:
                    raw = await asyncio.wait_for(websocket.recv(), timeout=deadline - time.monotonic())
                except asyncio.TimeoutError:
                    break
                payload = json.loads(raw)
                if payload.get("type") == "reaction" and payload.get("messageId") == message_id:
                    result.counts_seen.append(int(payload["newCount"]))
    except asyncio.CancelledError:
        raise
    except Exception as exc:  # pragma: no cover - network failures are non-deterministic
        result.error = f"{type(exc).__name__}: {exc}"
        logger.warning("worker %s failed: %s", index, result.error)
    return result


def summarize(results: list[WorkerResult], *, max_count: int = 99) -> dict[str, Any]:
    """Compare the highest announced count with what a lossless counter would show."""

    sent = sum(item.sent for item in results)
    final = max((count for item in results for count in item.counts_seen), default=0)
    expected = min(sent, max_count)
    return {
        "workers": len(results),
        "failed_workers": sum(1 for item in results if item.error),
        "reactions_sent": sent,
        "final_count": final,
        "expected_without_races": expected,
        "lost_updates": max(expected - final, 0),
    }


async def run_meter(args: argparse.Namespace) -> dict[str, Any]:
    message_id = args.message_id or await _post_target(args.url, args.timeout)
    logger.info("probing message %s with %s workers", message_id, args.workers)
    results = await asyncio.gather(
        *(
            _worker(
                index,
                args.url,
                message_id=message_id,
                emoji=args.emoji,
                reactions=args.reactions,
                settle=args.settle,
                timeout=args.timeout,
            )
            for index in range(args.workers)
        )
    )
    return summarize(list(results), max_count=args.max_count)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("url", help="Websocket URL, e.g. ws://localhost:8000/ws/chat")
    parser.add_argument("--workers", type=int, default=5, help="Concurrent websocket connections")
    parser.add_argument("--reactions", type=int, default=10, help="Reactions sent per worker")
    parser.add_argument("--emoji", default="👍", help="Emoji used for every reaction")
    parser.add_argument("--message-id", default=None, help="React to an existing message instead of posting one")
    parser.add_argument("--max-count", type=int, default=99, help="Server side reaction clamp")
    parser.add_argument("--settle", type=float, default=3.0, help="Seconds to keep listening after sending")
    parser.add_argument("--timeout", type=float, default=10.0, help="Connect and reply timeout (seconds)")
    parser.add_argument("--json", action="store_true", help="Emit the summary as JSON")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log verbosity level",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    try:
        summary = asyncio.run(run_meter(args))
    except KeyboardInterrupt:  # pragma: no cover - manual interruption
        logger.warning("interrupted by user")
        return 130

    if args.json:
        print(json.dumps(summary, indent=2, sort_keys=True))
    else:
        print("\n=== Reaction Race Summary ===")
        for key, value in summary.items():
            print(f"{key}: {value}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
