from transport_probe.registry.protocol_registry import DEFAULT_TRANSPORTS, ProtocolRegistry

__all__ = ["DEFAULT_TRANSPORTS", "ProtocolRegistry"]
