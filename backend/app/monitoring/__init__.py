"""Prometheus-style counters and gauges for the relay backend."""

from . import metrics, registry
from .registry import MetricsRegistry

__all__ = ["MetricsRegistry", "metrics", "registry"]
