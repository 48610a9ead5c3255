"""Metric definitions for the realtime relay."""

from __future__ import annotations

from .registry import registry


realtime_connections = registry.gauge(
    "realtime_active_connections",
    "Number of websocket sessions registered with the broadcaster.",
)

realtime_events_total = registry.counter(
    "realtime_events_total",
    "Count of realtime events processed by the relay.",
    label_names=("kind", "direction"),
)

store_failures_total = registry.counter(
    "store_failures_total",
    "Message store operations that failed because the database was unavailable.",
    label_names=("operation",),
)

retention_purged_total = registry.counter(
    "retention_purged_messages_total",
    "Messages removed by the retention sweeper.",
)
