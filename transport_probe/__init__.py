"""Transport capability prober for echo endpoints."""

__version__ = "0.1.0"
