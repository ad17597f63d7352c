# tests/unit/session/test_session_controller.py
"""
Unit tests for SessionController.

Covers the enabled set, the one-live-connection rule, and what reaches the
output log.
"""

import pytest

from transport_probe.connection.base_connection import CLOSE_GO_AWAY, CLOSE_NORMAL
from transport_probe.session.session_controller import SessionController, SessionState


# ================================================================
# FIXTURES
# ================================================================
def eager(factory, close_code=None):
    """Wrap a factory so each connection opens, and maybe closes, before it returns."""

    def make(endpoint, whitelist, listener):
        connection = factory(endpoint, whitelist, listener)
        connection.open()
        if close_code is not None:
            connection.peer_close(close_code)
        return connection

    return make


@pytest.fixture
def session(registry, factory, output):
    return SessionController(registry, factory, output, close_timeout=0.1)


# ================================================================
# ENABLED SET TESTS
# ================================================================
class TestEnabledSet:
    def test_default_enabled(self, session):
        assert session.enabled_transports == ["xhr-streaming", "xhr-polling"]

    def test_explicit_enabled(self, registry, factory, output):
        session = SessionController(registry, factory, output, enabled=["websocket"])
        assert session.enabled_transports == ["websocket"]

    def test_registry_order(self, session):
        """WHY: The whitelist follows registry order, not toggle order."""
        session.set_enabled("xhr-streaming", False)
        session.set_enabled("websocket", True)
        session.set_enabled("xhr-streaming", True)

        assert session.enabled_transports == ["websocket", "xhr-streaming", "xhr-polling"]

    def test_disable_twice(self, session):
        session.set_enabled("xhr-polling", False)
        session.set_enabled("xhr-polling", False)

        assert not session.is_enabled("xhr-polling")
        assert session.enabled_transports == ["xhr-streaming"]

    def test_unknown_transport(self, session):
        with pytest.raises(KeyError):
            session.set_enabled("carrier-pigeon", True)

    @pytest.mark.asyncio
    async def test_toggle_does_not_touch_live_connection(self, session, factory):
        """WHY: Changes apply on the next open only."""
        await session.open()
        session.set_enabled("websocket", True)

        assert factory.connections[0].whitelist == ("xhr-streaming", "xhr-polling")

        await session.restart()
        assert factory.connections[1].whitelist == (
            "websocket",
            "xhr-streaming",
            "xhr-polling",
        )


# ================================================================
# LIFECYCLE TESTS
# ================================================================
class TestSessionLifecycle:
    def test_initial_state(self, session):
        assert session.state is SessionState.NO_SESSION
        assert session.connection is None

    @pytest.mark.asyncio
    async def test_open_sends_greetings_in_order(self, session, factory, output):
        await session.open()
        conn = factory.connections[0]
        assert session.state is SessionState.LIVE

        conn.open("xhr-polling")

        assert conn.sent == ["Ohai!", "Second send"]
        assert output.lines == ["Opened connection with transport xhr-polling"]

    @pytest.mark.asyncio
    async def test_echo_reaches_output(self, session, factory, output):
        await session.open()
        conn = factory.connections[0]
        conn.open()

        conn.deliver("Ohai!")
        conn.deliver("Second send")

        assert output.lines[1:] == ["Ohai!", "Second send"]

    @pytest.mark.asyncio
    async def test_send_verbatim(self, session, factory):
        await session.open()
        conn = factory.connections[0]
        conn.open()

        session.send("  Boo! ")
        assert conn.sent[-1] == "  Boo! "

    def test_send_without_session_is_noop(self, session, factory):
        session.send("Boo!")
        assert factory.connections == []

    @pytest.mark.asyncio
    async def test_close(self, session, factory, output):
        await session.open()
        conn = factory.connections[0]
        conn.open()

        await session.close()

        assert session.state is SessionState.NO_SESSION
        assert conn.close_calls == [(CLOSE_NORMAL, None)]
        assert output.lines[-1] == "Closed: 1000, Normal closure"

    @pytest.mark.asyncio
    async def test_close_without_session_is_noop(self, session, output):
        await session.close()
        assert output.lines == []

    @pytest.mark.asyncio
    async def test_close_timeout_still_drops_reference(self, session, factory):
        await session.open()
        conn = factory.connections[0]
        conn.auto_close = False

        await session.close()

        assert session.connection is None
        assert conn.close_calls == [(CLOSE_NORMAL, None)]

    @pytest.mark.asyncio
    async def test_peer_close_reported_without_reconnect(self, session, factory, output):
        """WHY: The controller never reconnects on its own."""
        await session.open()
        conn = factory.connections[0]
        conn.open()

        conn.peer_close(CLOSE_GO_AWAY)

        assert output.lines[-1] == "Closed: 3000, Go away!"
        assert session.state is SessionState.NO_SESSION
        assert len(factory.connections) == 1

    @pytest.mark.asyncio
    async def test_close_reason_verbatim(self, session, factory, output):
        await session.open()
        factory.connections[0].peer_close(4321, "custom reason, with comma")

        assert output.lines == ["Closed: 4321, custom reason, with comma"]

    @pytest.mark.asyncio
    async def test_open_with_nothing_enabled(self, session, factory):
        session.set_enabled("xhr-streaming", False)
        session.set_enabled("xhr-polling", False)

        await session.open()
        assert factory.connections[0].whitelist == ()

    @pytest.mark.asyncio
    async def test_factory_that_opens_synchronously(self, registry, factory, output):
        """
        WHY: A factory may fire open before it returns. That connection is
        the live one, not a stale leftover to be closed.
        """
        session = SessionController(registry, eager(factory), output)

        conn = await session.open()

        assert session.connection is conn
        assert conn.close_calls == []
        assert conn.sent == ["Ohai!", "Second send"]
        assert output.lines == ["Opened connection with transport xhr-streaming"]

    @pytest.mark.asyncio
    async def test_factory_that_opens_and_closes_synchronously(self, registry, factory, output):
        session = SessionController(registry, eager(factory, CLOSE_GO_AWAY), output)

        await session.open()

        assert session.state is SessionState.NO_SESSION
        assert output.lines == [
            "Opened connection with transport xhr-streaming",
            "Closed: 3000, Go away!",
        ]


# ================================================================
# RESTART TESTS
# ================================================================
class TestSessionRestart:
    @pytest.mark.asyncio
    async def test_open_twice_closes_first_before_second_opens(
        self, session, factory, output
    ):
        await session.open()
        first = factory.connections[0]
        first.open("xhr-streaming")

        await session.open()
        second = factory.connections[1]
        second.open("xhr-polling")

        assert first.close_calls == [(CLOSE_NORMAL, None)]
        assert output.lines == [
            "Opened connection with transport xhr-streaming",
            "Closed: 1000, Normal closure",
            "Opened connection with transport xhr-polling",
        ]
        assert session.connection is second

    @pytest.mark.asyncio
    async def test_late_open_of_replaced_connection_is_closed(
        self, session, factory, output
    ):
        await session.open()
        first = factory.connections[0]
        first.auto_close = False

        await session.restart()
        first.open()

        assert first.sent == []
        assert len(first.close_calls) == 2
        assert "Opened" not in " ".join(output.lines)

    @pytest.mark.asyncio
    async def test_old_close_does_not_drop_new_connection(self, session, factory):
        await session.open()
        first = factory.connections[0]
        first.auto_close = False

        await session.restart()
        second = factory.connections[1]

        first.peer_close(CLOSE_NORMAL)
        assert session.connection is second
