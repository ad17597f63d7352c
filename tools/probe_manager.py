#!/usr/bin/env python3
"""
Probe every configured transport once and print the verdict table.

Runs against the loopback environment described in config/environment.yml.
"""

import argparse
import asyncio
import logging
import sys

from transport_probe.config.config_loader import ConfigError
from transport_probe.manager import AsyncProbeManager
from transport_probe.output.output_log import render_verdicts
from transport_probe.probing.verdict import Verdict


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--config-dir", default="config", help="Directory of *.yml files")
    parser.add_argument(
        "--transports",
        help="Comma-separated subset of transports to probe (default: all)",
    )
    parser.add_argument("--timeout", type=float, help="Per-probe timeout in seconds")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    return parser.parse_args(argv)


async def run(args) -> int:
    try:
        manager = AsyncProbeManager(config_dir=args.config_dir)
    except ConfigError as e:
        print(f"[ERROR] Invalid configuration: {e}")
        return 2

    if args.timeout is not None:
        manager.prober.timeout = args.timeout

    transports = manager.registry.names
    if args.transports:
        transports = [t.strip() for t in args.transports.split(",") if t.strip()]

    def show(snapshot):
        settled = sum(1 for v in snapshot.values() if v.is_terminal)
        print(f"[INFO] {settled}/{len(snapshot)} verdicts")
        for line in render_verdicts(snapshot):
            print(f"    {line}")

    manager.aggregator.subscribe(show)

    print(f"[INFO] Probing {len(transports)} transport(s) on {manager.prober.endpoint}")
    try:
        verdicts = await manager.prober.probe_all(transports)
    finally:
        await manager.shutdown()

    usable = [name for name, v in verdicts.items() if v is Verdict.SUCCEEDED]
    if usable:
        print(f"[INFO] Usable transports: {', '.join(usable)}")
        return 0

    print("[WARN] No usable transport found")
    return 1


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose > 1 else logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
