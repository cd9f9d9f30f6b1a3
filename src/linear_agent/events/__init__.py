"""Dispatch event emission and metrics.

Event Emitters:
- EventEmitter: Abstract base class for event emission
- LoggingEventEmitter: Emits events as structured log entries
- CompositeEventEmitter: Emits to multiple sinks simultaneously
- MetricsEventEmitter: Emits events as Prometheus metrics
- NullEventEmitter: Discards events (for testing)

Metrics:
- AgentMetrics: Container for all Prometheus metrics
- get_metrics: Get or create the metrics instance
- generate_metrics_output: Generate Prometheus format output for /metrics
"""

from src.linear_agent.events.emitter import (
    CompositeEventEmitter,
    EventEmitter,
    LoggingEventEmitter,
    NullEventEmitter,
)
from src.linear_agent.events.metrics import (
    AgentMetrics,
    MetricsEventEmitter,
    generate_metrics_output,
    get_metrics,
)
from src.linear_agent.events.models import DispatchEvent, EventType

__all__ = [
    # Event models
    "DispatchEvent",
    "EventType",
    # Event emitters
    "EventEmitter",
    "LoggingEventEmitter",
    "CompositeEventEmitter",
    "MetricsEventEmitter",
    "NullEventEmitter",
    # Metrics
    "AgentMetrics",
    "get_metrics",
    "generate_metrics_output",
]
