"""
Base connection abstraction.

Async-only, transport-agnostic.
A connection is one attempt to reach an echo endpoint through one transport
chosen from a whitelist. It reports what happened through three
notifications: open, message, close.
"""

import asyncio
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Protocol

# Close codes
CLOSE_NORMAL = 1000
CLOSE_INTERRUPTED = 1002
CLOSE_ALL_TRANSPORTS_FAILED = 2000
CLOSE_GO_AWAY = 3000
CLOSE_PROBE_TIMEOUT = 4000
CLOSE_PROBE_SUPERSEDED = 4001

CLOSE_REASONS = {
    CLOSE_NORMAL: "Normal closure",
    CLOSE_INTERRUPTED: "Connection interrupted",
    CLOSE_ALL_TRANSPORTS_FAILED: "All transports failed",
    CLOSE_GO_AWAY: "Go away!",
    CLOSE_PROBE_TIMEOUT: "Probe timed out",
    CLOSE_PROBE_SUPERSEDED: "Probe run superseded",
}


class ConnectionState(Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class ConnectionListener(Protocol):
    """Receiver of connection notifications."""

    def on_open(self, connection: "BaseConnection") -> None: ...

    def on_message(self, connection: "BaseConnection", data: str) -> None: ...

    def on_close(self, connection: "BaseConnection", code: int, reason: str) -> None: ...


class BaseConnection:
    def __init__(
        self,
        endpoint: str,
        whitelist: Sequence[str],
        listener: ConnectionListener,
    ):
        self.endpoint = endpoint
        self.whitelist: tuple[str, ...] = tuple(whitelist)
        self.listener = listener

        self.protocol: str | None = None
        self.state = ConnectionState.CONNECTING
        self.close_code: int | None = None
        self.close_reason: str | None = None

        self._closed = asyncio.Event()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(endpoint={self.endpoint!r}, "
            f"protocol={self.protocol!r}, state={self.state.value})"
        )

    # ------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------

    async def start(self) -> None:
        """
        Negotiate a transport from the whitelist.

        Must end in exactly one of: an open notification, or a close
        notification without a preceding open.
        """
        raise NotImplementedError

    def send(self, payload: str) -> None:
        """
        Queue a payload for the peer.

        Ignored unless the connection is open.
        """
        raise NotImplementedError

    def close(self, code: int = CLOSE_NORMAL, reason: str | None = None) -> None:
        """
        Request the connection to close.

        The close notification follows asynchronously.
        """
        raise NotImplementedError

    async def wait_closed(self) -> None:
        await self._closed.wait()

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    # ------------------------------------------------------------
    # notification dispatch
    # ------------------------------------------------------------

    def _dispatch_open(self, protocol: str) -> None:
        if self.state is not ConnectionState.CONNECTING:
            return
        self.protocol = protocol
        self.state = ConnectionState.OPEN
        self.listener.on_open(self)

    def _dispatch_message(self, data: str) -> None:
        # Messages only flow between open and close
        if self.state not in (ConnectionState.OPEN, ConnectionState.CLOSING):
            return
        self.listener.on_message(self, data)

    def _dispatch_close(self, code: int, reason: str | None = None) -> None:
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        self.close_code = code
        self.close_reason = reason if reason is not None else CLOSE_REASONS.get(code, "")
        self._closed.set()
        self.listener.on_close(self, self.close_code, self.close_reason)


ConnectionFactory = Callable[[str, Sequence[str], ConnectionListener], BaseConnection]
