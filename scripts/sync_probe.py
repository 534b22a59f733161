#!/usr/bin/env python3
"""Live sync probe for a wandersync deployment.

Reads ``WANDERSYNC_*`` configuration from the environment and:
1) loads the local store (``WANDERSYNC_STORAGE_PATH``),
2) opens the configured remote channel (http or mqtt),
3) runs startup reconciliation and prints the resulting sync status,
4) optionally watches for remote snapshots and looks up weather.

Nothing is edited; a push only happens when the local copy is pending or
newer than the remote one, exactly as in the app.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import aiohttp  # noqa: E402

from wandersync import (  # noqa: E402
    JsonFileStore,
    Reconciler,
    SyncConfig,
    TripDocument,
    WanderSyncError,
    WeatherService,
    build_channel,
)
from wandersync._redact import redact_for_log  # noqa: E402

_LOG = logging.getLogger("sync_probe")


def _summary(doc: TripDocument) -> dict[str, Any]:
    return {
        "id": doc.id,
        "name": doc.name,
        "destination": doc.destination,
        "dates": f"{doc.start_date or '?'} .. {doc.end_date or '?'}",
        "events": len(doc.events),
        "expenses": len(doc.expenses),
        "totalSpent": round(doc.total_spent, 2),
        "lastSynced": doc.last_synced,
    }


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one wandersync reconciliation and report the outcome.")
    parser.add_argument(
        "--watch",
        type=float,
        default=0.0,
        help="Keep the channel open for N seconds and print every remote snapshot.",
    )
    parser.add_argument("--weather", metavar="CITY", help="Also look up current weather for CITY.")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Print the full document as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args()


async def _probe(args: argparse.Namespace) -> int:
    config = SyncConfig.from_env()
    store = JsonFileStore(config.storage_path)
    channel = build_channel(config)
    print(f"transport={config.transport} document={config.document_id} store={store.path}")

    async with Reconciler(config, store, channel) as reconciler:
        doc = reconciler.document
        print(f"status: {reconciler.status}")
        if args.json_mode:
            print(json.dumps(redact_for_log(doc.to_wire()), indent=2, ensure_ascii=False))
        else:
            for key, value in _summary(doc).items():
                print(f"  {key}: {value}")

        if args.watch > 0:
            remove = reconciler.add_listener(
                lambda updated: print(f"snapshot: lastSynced={updated.last_synced} status={reconciler.status}")
            )
            print(f"watching for {args.watch:.0f}s ...")
            await asyncio.sleep(args.watch)
            remove()

        if args.weather:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=config.request_timeout)) as http:
                weather = WeatherService(config, store, http)
                report = await weather.get_city_weather(args.weather)
            if report is None:
                print(f"weather[{args.weather}]: unavailable")
            else:
                print(f"weather[{args.weather}]: {report.temp:.1f}C {report.condition}")

        return 0 if not reconciler.state.pending_sync else 2


def main() -> None:
    args = _parse_args()
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        code = asyncio.run(_probe(args))
    except WanderSyncError as exc:
        _LOG.error("Probe failed: %s", exc)
        code = 1
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
