"""
Async probe manager.

Wires the registry, loopback environment, prober, verdict table, output log
and session controller together from configuration.
"""

import logging
from pathlib import Path
from typing import Any

from transport_probe.config.config_loader import ConfigLoader, validate
from transport_probe.connection.base_connection import ConnectionFactory
from transport_probe.connection.loopback import LoopbackEnvironment
from transport_probe.output.output_log import OutputLog
from transport_probe.probing.prober import Prober, ProbeRun
from transport_probe.probing.verdict import Verdict
from transport_probe.probing.verdict_aggregator import VerdictAggregator
from transport_probe.registry.protocol_registry import ProtocolRegistry
from transport_probe.session.session_controller import SessionController

logger = logging.getLogger(__name__)


class AsyncProbeManager:
    """Owns every component for one process lifetime."""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        config_dir: str | Path = "config",
        connection_factory: ConnectionFactory | None = None,
    ):
        if config is None:
            config = ConfigLoader(config_dir).load_all()
        else:
            validate(config)
        self.config = config

        self.environment: LoopbackEnvironment | None = None
        if connection_factory is None:
            self.environment = LoopbackEnvironment.from_config(
                self.config.get("environment", {})
            )
            connection_factory = self.environment.open_connection

        probe_cfg = self.config.get("probe", {})
        session_cfg = self.config.get("session", {})
        endpoint = self.config.get("endpoint", "/echo")

        self.registry = ProtocolRegistry(self.config["transports"])
        self.output = OutputLog()
        self.aggregator = VerdictAggregator(self.registry)

        prober_kwargs = {"endpoint": endpoint, "timeout": probe_cfg.get("timeout")}
        if probe_cfg.get("payload") is not None:
            prober_kwargs["payload"] = probe_cfg["payload"]
        self.prober = Prober(connection_factory, self.aggregator, **prober_kwargs)

        session_kwargs = {
            "endpoint": endpoint,
            "enabled": session_cfg.get("enabled"),
            "close_timeout": session_cfg.get("close_timeout", 2.0),
        }
        if session_cfg.get("greetings") is not None:
            session_kwargs["greetings"] = session_cfg["greetings"]
        self.session = SessionController(
            self.registry, connection_factory, self.output, **session_kwargs
        )

    # ------------------------------------------------------------------

    def retest(self) -> ProbeRun:
        """Start a fresh probe run over the whole registry."""
        return self.prober.run_probe(self.registry)

    async def probe_all(self) -> dict[str, Verdict]:
        return await self.retest().wait()

    async def shutdown(self) -> None:
        await self.session.close()

        run = self.prober.current_run
        if run is not None and not run.complete:
            run.discard()

        if self.environment is not None:
            await self.environment.aclose()

        logger.info("Probe manager stopped")
