"""Connection contract and the loopback transport environment."""

from transport_probe.connection.base_connection import (
    CLOSE_ALL_TRANSPORTS_FAILED,
    CLOSE_GO_AWAY,
    CLOSE_INTERRUPTED,
    CLOSE_NORMAL,
    CLOSE_PROBE_SUPERSEDED,
    CLOSE_PROBE_TIMEOUT,
    BaseConnection,
    ConnectionFactory,
    ConnectionListener,
    ConnectionState,
)
from transport_probe.connection.loopback import (
    LoopbackConnection,
    LoopbackEnvironment,
    TransportBehaviour,
)

__all__ = [
    "BaseConnection",
    "ConnectionFactory",
    "ConnectionListener",
    "ConnectionState",
    "LoopbackConnection",
    "LoopbackEnvironment",
    "TransportBehaviour",
    "CLOSE_NORMAL",
    "CLOSE_INTERRUPTED",
    "CLOSE_ALL_TRANSPORTS_FAILED",
    "CLOSE_GO_AWAY",
    "CLOSE_PROBE_TIMEOUT",
    "CLOSE_PROBE_SUPERSEDED",
]
