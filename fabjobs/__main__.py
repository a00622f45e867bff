"""
Command line entry point.

    python -m fabjobs serve      run the registry and engine until SIGINT/SIGTERM
    python -m fabjobs devices    print the device snapshot as JSON
    python -m fabjobs jobs       print stored job records as JSON
"""

import argparse
import asyncio
import json
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .infra.logging_config import setup_logging
from .infra.settings import load_settings
from .service import FabService


DISCOVERY_WAIT_SECONDS = 5.0


async def run_serve(service: FabService) -> None:
    logger = setup_logging(service.settings.log_level, service.settings.log_dir)
    stop_requested = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop_requested.set)

    await service.start()
    logger.info(f"Serving {len(service.registry)} devices, database {service.settings.db_path}")

    await stop_requested.wait()
    logger.info("Shutdown requested")
    await service.stop()


async def run_devices(service: FabService, wait: float) -> None:
    setup_logging("WARNING", service.settings.log_dir)
    await service.start()
    try:
        await asyncio.wait_for(service.registry.wait_for_discovery(), timeout=wait)
    except asyncio.TimeoutError:
        pass
    print(json.dumps(dict(service.registry.get_devices()), indent=2))
    await service.stop()


async def run_jobs(service: FabService, device_id: Optional[str]) -> None:
    setup_logging("WARNING", service.settings.log_dir)
    records = await asyncio.to_thread(service.store.list_job_records, device_id)
    print(json.dumps(records, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fabjobs",
        description="Fabrication job engine and device registry",
    )
    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="SQLite database path (overrides FABJOBS_DB_PATH)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("serve", help="Run until interrupted")

    devices_parser = subparsers.add_parser("devices", help="Print registered devices as JSON")
    devices_parser.add_argument(
        "--wait",
        type=float,
        default=DISCOVERY_WAIT_SECONDS,
        help="Seconds to wait for discovery before printing",
    )

    jobs_parser = subparsers.add_parser("jobs", help="Print stored job records as JSON")
    jobs_parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="Only jobs for this device id",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    settings = load_settings()
    if args.db_path:
        settings = replace(settings, db_path=Path(args.db_path))

    service = FabService.create(settings)

    if args.command == "serve":
        asyncio.run(run_serve(service))
    elif args.command == "jobs":
        asyncio.run(run_jobs(service, args.device))
    else:
        asyncio.run(run_devices(service, args.wait))
    return 0


if __name__ == "__main__":
    sys.exit(main())
