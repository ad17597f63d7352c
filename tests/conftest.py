# tests/conftest.py
import pytest

from transport_probe.connection.base_connection import (
    CLOSE_NORMAL,
    BaseConnection,
    ConnectionState,
)
from transport_probe.output.output_log import OutputLog
from transport_probe.registry.protocol_registry import ProtocolRegistry


class FakeConnection(BaseConnection):
    """
    Hand-driven connection.

    Tests fire notifications explicitly with open()/deliver()/peer_close().
    """

    def __init__(self, endpoint, whitelist, listener):
        super().__init__(endpoint, whitelist, listener)
        self.sent: list[str] = []
        self.close_calls: list[tuple[int, str | None]] = []
        self.auto_close = True

    async def start(self) -> None:
        pass

    def send(self, payload: str) -> None:
        if self.state is ConnectionState.OPEN:
            self.sent.append(payload)

    def close(self, code: int = CLOSE_NORMAL, reason: str | None = None) -> None:
        self.close_calls.append((code, reason))
        if self.auto_close:
            self._dispatch_close(code, reason)

    # driving helpers
    def open(self, protocol: str | None = None) -> None:
        self._dispatch_open(protocol or self.whitelist[0])

    def deliver(self, data: str) -> None:
        self._dispatch_message(data)

    def peer_close(self, code: int, reason: str | None = None) -> None:
        self._dispatch_close(code, reason)


class FakeConnectionFactory:
    def __init__(self):
        self.connections: list[FakeConnection] = []

    def __call__(self, endpoint, whitelist, listener) -> FakeConnection:
        connection = FakeConnection(endpoint, whitelist, listener)
        self.connections.append(connection)
        return connection

    def for_transport(self, transport: str) -> FakeConnection:
        return next(c for c in self.connections if c.whitelist == (transport,))


@pytest.fixture
def factory():
    return FakeConnectionFactory()


@pytest.fixture
def registry():
    return ProtocolRegistry(["websocket", "xhr-streaming", "xhr-polling"])


@pytest.fixture
def output():
    return OutputLog()
