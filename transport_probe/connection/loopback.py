"""
Async loopback transport environment.

Source of truth:
- environment section of the YAML config
- per-transport behaviour
- per-endpoint profile

Stands in for the network and the echo server so probes and sessions can
run without a real transport stack.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml

from transport_probe.connection.base_connection import (
    CLOSE_ALL_TRANSPORTS_FAILED,
    CLOSE_GO_AWAY,
    CLOSE_INTERRUPTED,
    CLOSE_NORMAL,
    BaseConnection,
    ConnectionListener,
    ConnectionState,
)

logger = logging.getLogger(__name__)


class TransportBehaviour(Enum):
    ECHO = "echo"
    GARBLE = "garble"
    REFUSE = "refuse"
    SILENT = "silent"
    BLACKHOLE = "blackhole"
    DROP = "drop"

    @property
    def can_open(self) -> bool:
        return self not in (TransportBehaviour.REFUSE, TransportBehaviour.BLACKHOLE)


class EndpointMode(Enum):
    ECHO = "echo"
    CLOSE = "close"


@dataclass
class TransportProfile:
    """Simulated network conditions for one transport."""

    behaviour: TransportBehaviour = TransportBehaviour.ECHO
    open_delay: float = 0.0
    echo_delay: float = 0.0


@dataclass
class EndpointProfile:
    """Simulated server-side settings for one endpoint path."""

    path: str
    mode: EndpointMode = EndpointMode.ECHO
    disabled_transports: set[str] = field(default_factory=set)


def garble(payload: str) -> str:
    """Return a corrupted copy of payload that never equals it."""
    if not payload:
        return "?"
    reversed_payload = payload[::-1]
    return reversed_payload if reversed_payload != payload else payload + "?"


class LoopbackEnvironment:
    def __init__(
        self,
        transports: dict[str, TransportProfile] | None = None,
        endpoints: dict[str, EndpointProfile] | None = None,
        default: TransportProfile | None = None,
    ):
        self.transports: dict[str, TransportProfile] = dict(transports or {})
        self.endpoints: dict[str, EndpointProfile] = dict(endpoints or {})
        self.default = default or TransportProfile()

        self.connections: set["LoopbackConnection"] = set()
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: dict) -> "LoopbackEnvironment":
        default = _transport_profile(config.get("default") or {})

        transports = {
            name: _transport_profile(entry or {}, base=default)
            for name, entry in (config.get("transports") or {}).items()
        }

        endpoints = {}
        for path, entry in (config.get("endpoints") or {}).items():
            entry = entry or {}
            endpoints[path] = EndpointProfile(
                path=path,
                mode=EndpointMode(entry.get("mode", "echo")),
                disabled_transports=set(entry.get("disabled_transports", [])),
            )

        return cls(transports=transports, endpoints=endpoints, default=default)

    @classmethod
    def load(cls, config_path: str | Path) -> "LoopbackEnvironment":
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_config(data.get("environment", data))

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def profile_for(self, transport: str) -> TransportProfile:
        return self.transports.get(transport, self.default)

    def behaviour_for(self, transport: str) -> TransportBehaviour:
        return self.profile_for(transport).behaviour

    def endpoint_profile(self, endpoint: str) -> EndpointProfile:
        return self.endpoints.get(endpoint) or EndpointProfile(path=endpoint)

    def can_open(self, endpoint: str, transport: str) -> bool:
        if transport in self.endpoint_profile(endpoint).disabled_transports:
            return False
        return self.behaviour_for(transport).can_open

    # ------------------------------------------------------------------
    # connection factory
    # ------------------------------------------------------------------

    def open_connection(
        self,
        endpoint: str,
        whitelist: Sequence[str],
        listener: ConnectionListener,
    ) -> "LoopbackConnection":
        connection = LoopbackConnection(self, endpoint, whitelist, listener)
        self.connections.add(connection)

        task = asyncio.get_running_loop().create_task(connection.start())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return connection

    def spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _forget(self, connection: "LoopbackConnection") -> None:
        self.connections.discard(connection)

    async def aclose(self) -> None:
        """Close every connection still tracked and let pending tasks settle."""
        connections = list(self.connections)
        for connection in connections:
            connection.close()

        if connections:
            await asyncio.gather(*(c.wait_closed() for c in connections))

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


# ======================================================================


class LoopbackConnection(BaseConnection):
    def __init__(
        self,
        environment: LoopbackEnvironment,
        endpoint: str,
        whitelist: Sequence[str],
        listener: ConnectionListener,
    ):
        super().__init__(endpoint, whitelist, listener)
        self.environment = environment
        self.profile: TransportProfile | None = None
        self.sent: list[str] = []

    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self.state is not ConnectionState.CONNECTING:
            return

        chosen = next(
            (t for t in self.whitelist if self.environment.can_open(self.endpoint, t)),
            None,
        )

        if chosen is None:
            # Blackholed transports hold the attempt open forever
            if any(
                self.environment.behaviour_for(t) is TransportBehaviour.BLACKHOLE
                for t in self.whitelist
            ):
                logger.debug("%r: whitelist %s blackholed", self, self.whitelist)
                return

            if len(self.whitelist) == 1:
                self._finish(CLOSE_INTERRUPTED)
            else:
                self._finish(CLOSE_ALL_TRANSPORTS_FAILED)
            return

        self.profile = self.environment.profile_for(chosen)
        if self.profile.open_delay:
            await asyncio.sleep(self.profile.open_delay)

        if self.state is not ConnectionState.CONNECTING:
            return

        self._dispatch_open(chosen)

        if self.state is not ConnectionState.OPEN:
            return

        if self.environment.endpoint_profile(self.endpoint).mode is EndpointMode.CLOSE:
            self._finish(CLOSE_GO_AWAY)
        elif self.profile.behaviour is TransportBehaviour.DROP:
            self._finish(CLOSE_INTERRUPTED)

    def send(self, payload: str) -> None:
        if self.state is not ConnectionState.OPEN:
            return

        self.sent.append(payload)
        behaviour = self.profile.behaviour

        if behaviour is TransportBehaviour.ECHO:
            self.environment.spawn(self._deliver(payload))
        elif behaviour is TransportBehaviour.GARBLE:
            self.environment.spawn(self._deliver(garble(payload)))

    def close(self, code: int = CLOSE_NORMAL, reason: str | None = None) -> None:
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return

        self.state = ConnectionState.CLOSING
        asyncio.get_running_loop().call_soon(self._finish, code, reason)

    # ------------------------------------------------------------------

    async def _deliver(self, data: str) -> None:
        if self.profile.echo_delay:
            await asyncio.sleep(self.profile.echo_delay)
        self._dispatch_message(data)

    def _finish(self, code: int, reason: str | None = None) -> None:
        self.environment._forget(self)
        self._dispatch_close(code, reason)


# ======================================================================


def _transport_profile(
    entry: dict, base: TransportProfile | None = None
) -> TransportProfile:
    base = base or TransportProfile()
    return TransportProfile(
        behaviour=TransportBehaviour(entry.get("behaviour", base.behaviour.value)),
        open_delay=float(entry.get("open_delay", base.open_delay)),
        echo_delay=float(entry.get("echo_delay", base.echo_delay)),
    )
