"""
Interactive session controller.

Owns the operator-enabled transport set and at most one live connection.
Operator actions are serialized; the controller never reconnects on its own.
"""

import asyncio
import logging
from collections.abc import Iterable
from enum import Enum

from transport_probe.connection.base_connection import (
    CLOSE_NORMAL,
    BaseConnection,
    ConnectionFactory,
)
from transport_probe.output.output_log import OutputLog
from transport_probe.registry.protocol_registry import ProtocolRegistry

logger = logging.getLogger(__name__)

DEFAULT_ENABLED = ("xhr-streaming", "xhr-polling")
DEFAULT_GREETINGS = ("Ohai!", "Second send")


class SessionState(Enum):
    NO_SESSION = "no_session"
    LIVE = "live"


class SessionController:
    def __init__(
        self,
        registry: ProtocolRegistry,
        connection_factory: ConnectionFactory,
        output: OutputLog,
        *,
        endpoint: str = "/echo",
        enabled: Iterable[str] | None = None,
        greetings: Iterable[str] = DEFAULT_GREETINGS,
        close_timeout: float = 2.0,
    ):
        self.registry = registry
        self.connection_factory = connection_factory
        self.output = output
        self.endpoint = endpoint
        self.greetings = tuple(greetings)
        self.close_timeout = close_timeout

        if enabled is None:
            enabled = [name for name in DEFAULT_ENABLED if name in registry]
        self._enabled: set[str] = set()
        for name in enabled:
            self.set_enabled(name, True)

        self._connection: BaseConnection | None = None
        self._opening = False

    # ------------------------------------------------------------
    # enabled set
    # ------------------------------------------------------------

    def set_enabled(self, transport: str, enabled: bool) -> None:
        """Takes effect on the next open(), never on the live connection."""
        if transport not in self.registry:
            raise KeyError(f"Unknown transport '{transport}'")

        if enabled:
            self._enabled.add(transport)
        else:
            self._enabled.discard(transport)

    def is_enabled(self, transport: str) -> bool:
        return transport in self._enabled

    @property
    def enabled_transports(self) -> list[str]:
        return self.registry.filter(self._enabled)

    # ------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------

    @property
    def connection(self) -> BaseConnection | None:
        return self._connection

    @property
    def state(self) -> SessionState:
        return SessionState.LIVE if self._connection is not None else SessionState.NO_SESSION

    @property
    def is_live(self) -> bool:
        return self._connection is not None

    async def open(self) -> BaseConnection:
        """
        Replace the live connection with a new one.

        The old connection is closed, and its close reported, before the
        new one is created.
        """
        if self._connection is not None:
            await self.close()

        whitelist = self.enabled_transports
        logger.info("Opening session on %s via %s", self.endpoint, whitelist)

        # A factory may dispatch open, or even close, before it returns
        self._opening = True
        try:
            connection = self.connection_factory(self.endpoint, whitelist, self)
        finally:
            self._opening = False

        if not connection.closed:
            self._connection = connection
        return connection

    restart = open

    def send(self, text: str) -> None:
        if self._connection is None:
            return
        self._connection.send(text)

    async def close(self) -> None:
        connection = self._connection
        if connection is None:
            return

        self._connection = None
        connection.close(CLOSE_NORMAL)

        try:
            await asyncio.wait_for(connection.wait_closed(), self.close_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "%r did not report close within %.1fs", connection, self.close_timeout
            )

    # ------------------------------------------------------------
    # connection notifications
    # ------------------------------------------------------------

    def on_open(self, connection: BaseConnection) -> None:
        if self._opening and self._connection is None:
            self._connection = connection

        if connection is not self._connection:
            # Opened after being replaced
            connection.close(CLOSE_NORMAL)
            return

        self.output.append(f"Opened connection with transport {connection.protocol}")
        for greeting in self.greetings:
            connection.send(greeting)

    def on_message(self, connection: BaseConnection, data: str) -> None:
        self.output.append(data)

    def on_close(self, connection: BaseConnection, code: int, reason: str) -> None:
        self.output.append(f"Closed: {code}, {reason}")
        if connection is self._connection:
            self._connection = None
