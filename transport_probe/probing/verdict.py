"""
Probe verdict model.

One ProbeAttempt per transport. The attempt is the listener of its own
connection and carries all handler state as fields.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from transport_probe.connection.base_connection import (
    CLOSE_NORMAL,
    BaseConnection,
)

logger = logging.getLogger(__name__)

PROBE_PAYLOAD = "Ohai! This is a transport probe."


class Verdict(Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    OPENED_WRONG_TEXT = "opened_wrong_text"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not Verdict.PENDING

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    Verdict.PENDING: "indeterminate",
    Verdict.SUCCEEDED: "succeeded",
    Verdict.OPENED_WRONG_TEXT: "opened, wrong text",
    Verdict.FAILED: "failed",
}


def classify(opened: bool, echo_received: bool) -> Verdict:
    """Map the observed flags of a finished attempt to its verdict."""
    if not opened:
        return Verdict.FAILED
    if echo_received:
        return Verdict.SUCCEEDED
    return Verdict.OPENED_WRONG_TEXT


@dataclass(eq=False)
class ProbeAttempt:
    """State of one probe: one transport, one connection, one verdict."""

    transport: str
    payload: str = PROBE_PAYLOAD
    connection: BaseConnection | None = None
    opened: bool = False
    echo_received: bool = False
    verdict: Verdict = Verdict.PENDING
    close_code: int | None = None
    close_reason: str | None = None
    on_verdict: Callable[["ProbeAttempt"], None] | None = field(
        default=None, repr=False
    )
    _done: asyncio.Future | None = field(default=None, init=False, repr=False)

    # ----------------------------------------------------------------
    # connection notifications
    # ----------------------------------------------------------------

    def on_open(self, connection: BaseConnection) -> None:
        if self.verdict.is_terminal:
            return

        self.opened = True
        logger.debug("[%s] opened, sending probe payload", self.transport)
        connection.send(self.payload)

    def on_message(self, connection: BaseConnection, data: str) -> None:
        if self.verdict.is_terminal or not self.opened or self.echo_received:
            return

        if data != self.payload:
            logger.debug("[%s] unexpected echo: %r", self.transport, data)
            return

        self.echo_received = True
        logger.debug("[%s] echo confirmed, closing", self.transport)
        connection.close(CLOSE_NORMAL)

    def on_close(self, connection: BaseConnection, code: int, reason: str) -> None:
        if self.close_code is None:
            self.close_code = code
            self.close_reason = reason
        self.finalize()

    # ----------------------------------------------------------------
    # finalisation
    # ----------------------------------------------------------------

    def finalize(self) -> Verdict:
        """
        Settle the verdict from the observed flags.

        Runs once; repeated calls return the settled verdict unchanged.
        """
        if self.verdict.is_terminal:
            return self.verdict

        self.verdict = classify(self.opened, self.echo_received)
        self.connection = None

        logger.info(
            "[%s] verdict: %s (close %s, %s)",
            self.transport,
            self.verdict.label,
            self.close_code,
            self.close_reason,
        )

        if self._done is not None and not self._done.done():
            self._done.set_result(self.verdict)

        if self.on_verdict is not None:
            self.on_verdict(self)

        return self.verdict

    def cancel(self, code: int, reason: str | None = None) -> Verdict:
        """Close the connection and settle now, without waiting for the close."""
        if self.verdict.is_terminal:
            return self.verdict

        connection = self.connection
        if connection is not None:
            connection.close(code, reason)

        if self.close_code is None:
            self.close_code = code
            self.close_reason = reason
        return self.finalize()

    # ----------------------------------------------------------------
    # waiting
    # ----------------------------------------------------------------

    @property
    def done(self) -> asyncio.Future:
        if self._done is None:
            self._done = asyncio.get_running_loop().create_future()
            if self.verdict.is_terminal:
                self._done.set_result(self.verdict)
        return self._done

    async def wait(self) -> Verdict:
        return await self.done
