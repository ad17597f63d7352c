# tests/unit/registry/test_protocol_registry.py

import pytest

from transport_probe.registry.protocol_registry import DEFAULT_TRANSPORTS, ProtocolRegistry


class TestProtocolRegistry:
    def test_default_transports(self):
        registry = ProtocolRegistry()

        assert registry.names == list(DEFAULT_TRANSPORTS)
        assert len(registry) == 9
        assert "xhr-streaming" in registry

    def test_preserves_order(self):
        registry = ProtocolRegistry(["xhr-polling", "websocket"])
        assert list(registry) == ["xhr-polling", "websocket"]

    def test_duplicate_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            ProtocolRegistry(["websocket", "websocket"])

    @pytest.mark.parametrize("bad", ["", None, 3])
    def test_invalid_name_rejected(self, bad):
        with pytest.raises(ValueError):
            ProtocolRegistry(["websocket", bad])

    def test_filter_uses_registry_order(self, registry):
        assert registry.filter({"xhr-polling", "websocket", "unknown"}) == [
            "websocket",
            "xhr-polling",
        ]

    def test_names_is_a_copy(self, registry):
        names = registry.names
        names.append("extra")
        assert "extra" not in registry
