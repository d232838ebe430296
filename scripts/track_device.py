#!/usr/bin/env python3
"""Watch a tracked device from the terminal.

Reconciles with the service, optionally starts or stops tracking, then
prints the current samples every time the controller reports a change.

Usage
-----
Set environment variables and run::

    export MITR_API_KEY="..."
    python scripts/track_device.py --start --duration 60

Options::

    --device ID          Device to track (default: MITR_DEVICE_ID or device_1)
    --start              Send a start-trigger command after reconciling
    --stop               Send a stop-trigger command after reconciling
    --duration SECONDS   How long to watch (default: 30)
    --interval SECONDS   Poll interval (default: MITR_POLL_INTERVAL or 5)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pymitr import (  # noqa: E402
    DeviceGateway,
    MitrConfig,
    MitrError,
    SessionSnapshot,
    TriggerSyncController,
)
from pymitr.view import format_timestamp, map_center, sample_rows  # noqa: E402


def _print_snapshot(snapshot: SessionSnapshot) -> None:
    state = "ON" if snapshot.triggered else "OFF"
    print(f"\n== tracking {state} ==")
    if snapshot.last_successful_poll_at is not None:
        print(f"Last updated: {format_timestamp(snapshot.last_successful_poll_at)}")
    if snapshot.last_error is not None:
        print(f"Error: {snapshot.last_error.message}")
    if not snapshot.samples:
        return
    lat, lng = map_center(snapshot.samples)
    print(f"Center: {lat:.6f}, {lng:.6f}")
    print(f"{'Device ID':<16}{'Latitude':>14}{'Longitude':>14}  Timestamp")
    for device_id, latitude, longitude, timestamp in sample_rows(snapshot.samples):
        print(f"{device_id:<16}{latitude:>14}{longitude:>14}  {timestamp}")


async def main() -> int:
    parser = argparse.ArgumentParser(description="Watch a Mitr tracked device.")
    parser.add_argument("--device", help="Device id (default: MITR_DEVICE_ID or device_1)")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--start", action="store_true", help="Start tracking after reconciling")
    group.add_argument("--stop", action="store_true", help="Stop tracking after reconciling")
    parser.add_argument("--duration", type=float, default=30.0, help="Seconds to watch (default: 30)")
    parser.add_argument("--interval", type=float, help="Poll interval in seconds")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    overrides: dict[str, Any] = {}
    if args.device:
        overrides["device_id"] = args.device
    if args.interval is not None:
        overrides["poll_interval"] = args.interval

    try:
        config = MitrConfig.from_env(**overrides)
    except MitrError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    async with DeviceGateway(config) as gateway:
        controller = TriggerSyncController(
            gateway,
            poll_interval=config.poll_interval,
            on_change=_print_snapshot,
        )
        async with controller:
            try:
                if args.start:
                    await controller.start_tracking()
                elif args.stop:
                    await controller.stop_tracking()
            except MitrError as exc:
                print(f"Command failed: {exc}", file=sys.stderr)
                return 1
            await asyncio.sleep(args.duration)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
