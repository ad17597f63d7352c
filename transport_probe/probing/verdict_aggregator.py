# transport_probe/probing/verdict_aggregator.py
"""
Result surface for probe verdicts.

Tracks the latest verdict per registered transport for the most recent
probe run. Listeners always receive the full table.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from transport_probe.probing.verdict import Verdict
from transport_probe.registry.protocol_registry import ProtocolRegistry

logger = logging.getLogger(__name__)

VerdictListener = Callable[[dict[str, Verdict]], None]


class VerdictAggregator:
    """
    Per-transport verdict table for the current probe run.

    Records from any run other than the current one are ignored.
    """

    def __init__(self, registry: ProtocolRegistry):
        self.registry = registry
        self.run_id: int | None = None
        self.started_at: datetime | None = None
        self.updated_at: datetime | None = None

        self._verdicts: dict[str, Verdict] = {name: Verdict.PENDING for name in registry}
        self._listeners: list[VerdictListener] = []

    # ----------------------------------------------------------------
    # Run lifecycle
    # ----------------------------------------------------------------

    def begin_run(self, run_id: int, transports: list[str] | None = None) -> None:
        """Discard every previous verdict and start a fresh table."""
        self.run_id = run_id
        self.started_at = datetime.now()
        self.updated_at = self.started_at

        self._verdicts = {name: Verdict.PENDING for name in self.registry}
        for name in transports or []:
            self._verdicts.setdefault(name, Verdict.PENDING)

        self._notify()

    def record(self, run_id: int, transport: str, verdict: Verdict) -> bool:
        """Store a verdict. Returns False when the record is stale."""
        if run_id != self.run_id:
            logger.debug(
                "Ignoring verdict for %s from superseded run %s", transport, run_id
            )
            return False

        if self._verdicts.get(transport) is verdict:
            return True

        self._verdicts[transport] = verdict
        self.updated_at = datetime.now()
        self._notify()
        return True

    # ----------------------------------------------------------------
    # Queries
    # ----------------------------------------------------------------

    def verdict(self, transport: str) -> Verdict:
        return self._verdicts.get(transport, Verdict.PENDING)

    def snapshot(self) -> dict[str, Verdict]:
        """Current table: registry order first, then any extra transports."""
        return dict(self._verdicts)

    def pending(self) -> list[str]:
        return [name for name, v in self._verdicts.items() if not v.is_terminal]

    def summary(self) -> dict[str, Any]:
        counts = {v.value: 0 for v in Verdict}
        for verdict in self._verdicts.values():
            counts[verdict.value] += 1

        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "total": len(self._verdicts),
            "counts": counts,
            "usable": [n for n, v in self._verdicts.items() if v is Verdict.SUCCEEDED],
        }

    # ----------------------------------------------------------------
    # Listeners
    # ----------------------------------------------------------------

    def subscribe(self, listener: VerdictListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
