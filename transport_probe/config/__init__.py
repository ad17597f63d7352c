from transport_probe.config.config_loader import ConfigError, ConfigLoader

__all__ = ["ConfigError", "ConfigLoader"]
