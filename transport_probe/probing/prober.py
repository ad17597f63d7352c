"""
Concurrent transport prober.

Owns:
- one ProbeRun per "test all transports" request
- one ProbeAttempt (and one connection) per transport in a run
- per-attempt timeouts

Delegates transport negotiation to the connection factory.
"""

import asyncio
import itertools
import logging
from collections.abc import Iterable

from transport_probe.connection.base_connection import (
    CLOSE_PROBE_SUPERSEDED,
    CLOSE_PROBE_TIMEOUT,
    CLOSE_REASONS,
    ConnectionFactory,
)
from transport_probe.probing.verdict import PROBE_PAYLOAD, ProbeAttempt, Verdict
from transport_probe.probing.verdict_aggregator import VerdictAggregator

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "/echo"
DEFAULT_TIMEOUT = 10.0


class ProbeRun:
    def __init__(self, run_id: int, attempts: Iterable[ProbeAttempt]):
        self.run_id = run_id
        self.attempts: dict[str, ProbeAttempt] = {a.transport: a for a in attempts}
        self.superseded = False

        self._timers: dict[str, asyncio.TimerHandle] = {}

    def __repr__(self) -> str:
        return f"ProbeRun(run_id={self.run_id}, transports={list(self.attempts)})"

    # ------------------------------------------------------------------

    @property
    def transports(self) -> list[str]:
        return list(self.attempts)

    def verdicts(self) -> dict[str, Verdict]:
        return {name: a.verdict for name, a in self.attempts.items()}

    def pending(self) -> list[str]:
        return [name for name, a in self.attempts.items() if not a.verdict.is_terminal]

    @property
    def complete(self) -> bool:
        return not self.pending()

    async def wait(self) -> dict[str, Verdict]:
        """Wait until every attempt in the run has a terminal verdict."""
        await asyncio.gather(*(a.wait() for a in self.attempts.values()))
        return self.verdicts()

    # ------------------------------------------------------------------

    def discard(self) -> None:
        """Close every still-open connection of a superseded run."""
        self.superseded = True
        for attempt in self.attempts.values():
            if not attempt.verdict.is_terminal:
                logger.warning(
                    "[%s] discarding in-flight attempt of run %s",
                    attempt.transport,
                    self.run_id,
                )
                attempt.cancel(
                    CLOSE_PROBE_SUPERSEDED, CLOSE_REASONS[CLOSE_PROBE_SUPERSEDED]
                )
        self._cancel_timers()

    def _cancel_timers(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()


# ======================================================================


class Prober:
    def __init__(
        self,
        connection_factory: ConnectionFactory,
        aggregator: VerdictAggregator | None = None,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        payload: str = PROBE_PAYLOAD,
        timeout: float | None = DEFAULT_TIMEOUT,
    ):
        if timeout is not None and timeout <= 0:
            raise ValueError(f"Probe timeout must be positive, got {timeout}")

        self.connection_factory = connection_factory
        self.aggregator = aggregator
        self.endpoint = endpoint
        self.payload = payload
        self.timeout = timeout

        self.current_run: ProbeRun | None = None
        self._run_ids = itertools.count(1)

    # ------------------------------------------------------------------

    def run_probe(self, transports: Iterable[str]) -> ProbeRun:
        """
        Start one probe per transport and return immediately.

        Must be called from a running event loop. Any previous run is
        superseded: its open connections are closed and it can no longer
        write verdicts.
        """
        loop = asyncio.get_running_loop()

        ordered = _unique(transports)
        run_id = next(self._run_ids)

        previous = self.current_run
        if previous is not None and not previous.superseded:
            previous.discard()

        attempts = [
            ProbeAttempt(transport=name, payload=self.payload) for name in ordered
        ]
        run = ProbeRun(run_id, attempts)
        self.current_run = run

        if self.aggregator is not None:
            self.aggregator.begin_run(run_id, ordered)

        logger.info("Probe run %s: testing %s", run_id, ", ".join(ordered) or "nothing")

        for attempt in attempts:
            attempt.on_verdict = lambda a, run=run: self._on_verdict(run, a)
            connection = self.connection_factory(
                self.endpoint, [attempt.transport], attempt
            )
            if attempt.verdict.is_terminal:
                continue

            attempt.connection = connection
            if self.timeout is not None:
                run._timers[attempt.transport] = loop.call_later(
                    self.timeout, self._on_timeout, run, attempt
                )

        return run

    async def probe_all(self, transports: Iterable[str]) -> dict[str, Verdict]:
        """Run a probe and wait for every verdict."""
        run = self.run_probe(transports)
        return await run.wait()

    # ------------------------------------------------------------------

    def _on_verdict(self, run: ProbeRun, attempt: ProbeAttempt) -> None:
        timer = run._timers.pop(attempt.transport, None)
        if timer is not None:
            timer.cancel()

        if run.superseded:
            return

        if self.aggregator is not None:
            self.aggregator.record(run.run_id, attempt.transport, attempt.verdict)

    def _on_timeout(self, run: ProbeRun, attempt: ProbeAttempt) -> None:
        run._timers.pop(attempt.transport, None)
        if attempt.verdict.is_terminal:
            return

        logger.warning(
            "[%s] no verdict after %.1fs, cancelling", attempt.transport, self.timeout
        )
        attempt.cancel(CLOSE_PROBE_TIMEOUT, CLOSE_REASONS[CLOSE_PROBE_TIMEOUT])


def _unique(transports: Iterable[str]) -> list[str]:
    ordered: list[str] = []
    for name in transports:
        if name in ordered:
            logger.warning("Transport %s listed twice, probing it once", name)
            continue
        ordered.append(name)
    return ordered
