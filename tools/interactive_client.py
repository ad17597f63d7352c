#!/usr/bin/env python3
"""
Interactive echo session over the enabled transports.

Commands:
  enable <transport>     allow a transport for the next restart
  disable <transport>    forbid a transport for the next restart
  send <text>            send text over the live connection
  close                  close the live connection
  restart                (re)open the session
  clear                  clear the output
  retest                 probe every transport again
  status                 show enabled transports and verdicts
  quit                   exit
"""

import argparse
import asyncio
import logging
import sys
import threading

from transport_probe.config.config_loader import ConfigError
from transport_probe.manager import AsyncProbeManager
from transport_probe.output.output_log import render_verdicts


async def handle_command(manager: AsyncProbeManager, line: str) -> bool:
    """Run one operator command. Returns False when the client should exit."""
    command, _, arg = line.strip().partition(" ")
    command = command.lower()

    if not command:
        return True

    if command in ("quit", "exit"):
        return False

    if command in ("enable", "disable"):
        try:
            manager.session.set_enabled(arg.strip(), command == "enable")
        except KeyError as e:
            print(f"[ERROR] {e.args[0]}")
        else:
            print(f"[INFO] Enabled: {', '.join(manager.session.enabled_transports) or '-'}")
    elif command == "send":
        if not manager.session.is_live:
            print("[WARN] No live session, use 'restart'")
        manager.session.send(arg)
    elif command == "close":
        await manager.session.close()
    elif command in ("restart", "open"):
        await manager.session.restart()
    elif command == "clear":
        manager.output.clear()
    elif command == "retest":
        manager.retest()
    elif command == "status":
        print(f"[INFO] Session: {manager.session.state.value}")
        print(f"[INFO] Enabled: {', '.join(manager.session.enabled_transports) or '-'}")
        for rendered in render_verdicts(manager.aggregator.snapshot()):
            print(f"    {rendered}")
    else:
        print(f"[WARN] Unknown command '{command}'")

    return True


def start_reader(stream, loop: asyncio.AbstractEventLoop) -> asyncio.Queue:
    """
    Feed lines from a blocking stream into a queue, with None at EOF.

    Runs in a daemon thread: a read still pending at Ctrl-C does not block
    interpreter exit.
    """
    queue: asyncio.Queue = asyncio.Queue()

    def put(item):
        try:
            loop.call_soon_threadsafe(queue.put_nowait, item)
        except RuntimeError:
            # loop already closed
            return False
        return True

    def pump():
        for line in iter(stream.readline, ""):
            if not put(line.rstrip("\n")):
                return
        put(None)

    threading.Thread(target=pump, name="stdin-reader", daemon=True).start()
    return queue


def attach_printers(manager: AsyncProbeManager) -> None:
    manager.output.subscribe(lambda line: print(f"> {line}"))
    manager.output.subscribe_clear(on_clear)
    manager.aggregator.subscribe(
        lambda snapshot: print(
            "[INFO] Verdicts: "
            + ", ".join(f"{name}={v.label}" for name, v in snapshot.items())
        )
    )


def on_clear() -> None:
    if sys.stdout.isatty():
        print("\033[2J\033[H", end="")
    print("[INFO] Output cleared")


async def run(config_dir: str) -> int:
    try:
        manager = AsyncProbeManager(config_dir=config_dir)
    except ConfigError as e:
        print(f"[ERROR] Invalid configuration: {e}")
        return 2

    attach_printers(manager)
    lines = start_reader(sys.stdin, asyncio.get_running_loop())
    manager.retest()
    await manager.session.open()

    try:
        while True:
            line = await lines.get()
            if line is None:
                break
            if not await handle_command(manager, line):
                break
    except KeyboardInterrupt:
        print("[INFO] KeyboardInterrupt received, shutting down...")
    finally:
        await manager.shutdown()

    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description=__doc__.strip().splitlines()[0],
        epilog=__doc__.split("\n\n", 1)[1],
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config-dir", default="config")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args.config_dir))
    except KeyboardInterrupt:
        print("[INFO] Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
