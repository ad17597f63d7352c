"""Probe attempts, runs, and the verdict table."""

from transport_probe.probing.prober import Prober, ProbeRun
from transport_probe.probing.verdict import PROBE_PAYLOAD, ProbeAttempt, Verdict, classify
from transport_probe.probing.verdict_aggregator import VerdictAggregator

__all__ = [
    "PROBE_PAYLOAD",
    "Prober",
    "ProbeAttempt",
    "ProbeRun",
    "Verdict",
    "VerdictAggregator",
    "classify",
]
