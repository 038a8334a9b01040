#!/usr/bin/env python3
"""Replay demo orders through the tracking engine on a virtual clock.

Creates a demo-account engine driven by a :class:`ManualClock`, tracks a
handful of sample orders and prints every published view, so the step
progression and the simulated rider can be inspected without a backend.

Usage
-----
::

    python scripts/simulate_orders.py
    python scripts/simulate_orders.py --ticks 90 --every 5
    python scripts/simulate_orders.py --json --output views.jsonl

Options::

    --ticks N           Number of clock ticks to simulate (default: 60)
    --every N           Only print positions every N ticks (default: 10)
    --account ID        Viewing account id (default: demo-account)
    --loop-duration N   Simulated rider loop length in ticks
    --status-interval N Ticks between demo status advances
    --json              Output one JSON object per view
    --output FILE       Write output to FILE instead of stdout
    --verbose / -v      Enable debug logging
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, TextIO

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from grocetrack import InMemoryOrderHub, ManualClock, OrderView, TrackingConfig, TrackingEngine  # noqa: E402

_SAMPLE_ORDERS: list[dict[str, Any]] = [
    {
        "id": "abc123",
        "mode": "DELIVERY",
        "status": "ON_THE_WAY",
        "storeLocation": {"lat": 12.9716, "lng": 77.6410},
        "userLocation": {"lat": 12.9780, "lng": 77.6450},
    },
    {
        "id": "ord-20001",
        "mode": "delivery",
        "status": "placed",
        "stores": {"name": "Indiranagar Fresh", "lat": 12.9784, "lng": 77.6408},
    },
    {
        "id": "pk-7",
        "mode": "pickup",
        "status": "packing",
        "store_lat": 12.9352,
        "store_lng": 77.6245,
    },
]


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _format_view(tick: int, view: OrderView) -> str:
    position = view.driver_position
    where = f"{position.lat:.5f},{position.lng:.5f}" if position is not None else "-"
    step = view.steps[view.current_index].label if view.current_index >= 0 else "?"
    state = "live" if view.tracking_active else "ended"
    return (
        f"  t={tick:<4d} {view.order_id:<10} {view.status.value:<11} {step:<10} "
        f"{view.progress_percent:5.1f}%  rider={where:<22} src={view.position_source or '-'}  [{state}]"
    )


def _view_record(tick: int, view: OrderView) -> dict[str, Any]:
    record = view.model_dump(mode="json", exclude={"steps"})
    record["tick"] = tick
    return record


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Simulate demo orders through the grocetrack engine on a virtual clock.",
    )
    parser.add_argument("--ticks", type=int, default=60, help="Number of clock ticks to simulate")
    parser.add_argument("--every", type=int, default=10, help="Only print rider positions every N ticks")
    parser.add_argument("--account", default="demo-account", help="Viewing account id")
    parser.add_argument("--loop-duration", type=int, help="Simulated rider loop length in ticks")
    parser.add_argument("--status-interval", type=int, help="Ticks between demo status advances")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output one JSON object per view")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.loop_duration is not None:
        overrides["loop_duration"] = args.loop_duration
    if args.status_interval is not None:
        overrides["demo_status_interval"] = args.status_interval
    config = TrackingConfig.from_env(**overrides)

    stream: TextIO = open(args.output, "w", encoding="utf-8") if args.output else sys.stdout  # noqa: SIM115
    clock = ManualClock()
    hub = InMemoryOrderHub()
    every = max(1, args.every)
    last_status: dict[str, Any] = {}

    def _emit(view: OrderView) -> None:
        tick = clock.tick
        # Status changes and final views always print; rider moves are sampled.
        if view.driver_position is not None and view.tracking_active and tick % every:
            previous = last_status.get(view.order_id)
            if previous == view.status:
                return
        last_status[view.order_id] = view.status
        if args.json_mode:
            stream.write(json.dumps(_view_record(tick, view)) + "\n")
        else:
            stream.write(_format_view(tick, view) + "\n")

    try:
        if not args.json_mode:
            stream.write(_section(f"grocetrack simulation  account={args.account}  ticks={args.ticks}") + "\n")
        with TrackingEngine(hub=hub, clock=clock, config=config, account_id=args.account, command_sink=hub) as engine:
            for record in _SAMPLE_ORDERS:
                session = engine.track(record)
                if session is None:
                    stream.write(f"  skipped {record['id']}: nothing to track\n")
                    continue
                engine.observe_order(session.order_id, _emit)

            for _ in range(args.ticks):
                clock.advance()
                if not engine.sessions:
                    break

            if not args.json_mode:
                stream.write(_section(f"finished at tick {clock.tick}, {len(engine.sessions)} order(s) still live") + "\n")
    finally:
        if stream is not sys.stdout:
            stream.close()


if __name__ == "__main__":
    main()
