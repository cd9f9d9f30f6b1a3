"""Prometheus metrics for webhook ingestion and dispatch.

Metrics Defined:
- linear_agent_webhooks_total: Counter of webhook deliveries by outcome
- linear_agent_dispatches_total: Counter of finished dispatches by result
- linear_agent_dispatch_duration_seconds: Histogram of time spent in the agent
- linear_agent_dispatches_in_progress: Gauge of running dispatches

Metrics are exposed at the ``/metrics`` endpoint in Prometheus format.
"""

import logging
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from src.linear_agent.events.emitter import EventEmitter
from src.linear_agent.events.models import DispatchEvent, EventType

logger = logging.getLogger(__name__)


# Agent calls range from a couple of seconds to several minutes
DEFAULT_DURATION_BUCKETS = (
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
    120.0,
    300.0,
    600.0,
)

# Outcomes reported by the webhook endpoint
WEBHOOK_OUTCOMES = (
    "handled",
    "ignored",
    "not_configured",
    "rejected",
    "credential_not_found",
    "error",
)


class AgentMetrics:
    """Container for all service Prometheus metrics.

    Pass a custom registry for testing; the default registry only allows
    each metric name to be registered once per process.

    Example:
        >>> metrics = AgentMetrics(registry=CollectorRegistry())
        >>> metrics.record_webhook("handled")
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.webhooks_total = Counter(
            "linear_agent_webhooks_total",
            "Webhook deliveries received, by outcome",
            labelnames=["outcome"],
            registry=self.registry,
        )

        self.dispatches_total = Counter(
            "linear_agent_dispatches_total",
            "Background agent dispatches finished, by result",
            labelnames=["result"],
            registry=self.registry,
        )

        self.dispatch_duration_seconds = Histogram(
            "linear_agent_dispatch_duration_seconds",
            "Time spent in the agent per dispatch in seconds",
            buckets=DEFAULT_DURATION_BUCKETS,
            registry=self.registry,
        )

        self.dispatches_in_progress = Gauge(
            "linear_agent_dispatches_in_progress",
            "Background agent dispatches currently running",
            registry=self.registry,
        )

        for outcome in WEBHOOK_OUTCOMES:
            self.webhooks_total.labels(outcome=outcome)

    def record_webhook(self, outcome: str) -> None:
        self.webhooks_total.labels(outcome=outcome).inc()

    def record_dispatch_started(self) -> None:
        self.dispatches_in_progress.inc()

    def record_dispatch_finished(self, success: bool, duration_seconds: Optional[float]) -> None:
        self.dispatches_in_progress.dec()
        self.dispatches_total.labels(result="success" if success else "failure").inc()
        if duration_seconds is not None:
            self.dispatch_duration_seconds.observe(duration_seconds)


_default_metrics: Optional[AgentMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> AgentMetrics:
    """Get the global metrics instance, or a new one for a custom registry."""
    global _default_metrics

    if registry is not None:
        return AgentMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = AgentMetrics()

    return _default_metrics


def generate_metrics_output(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Generate Prometheus text output for the /metrics endpoint."""
    return generate_latest(registry or REGISTRY)


class MetricsEventEmitter(EventEmitter):
    """Event emitter that updates Prometheus dispatch metrics."""

    def __init__(
        self,
        metrics: Optional[AgentMetrics] = None,
        registry: Optional[CollectorRegistry] = None,
    ):
        if metrics is not None:
            self._metrics = metrics
        else:
            self._metrics = get_metrics(registry)

    @property
    def metrics(self) -> AgentMetrics:
        return self._metrics

    async def emit(self, event: DispatchEvent) -> None:
        try:
            if event.event_type == EventType.DISPATCH_STARTED:
                self._metrics.record_dispatch_started()
            elif event.event_type in (
                EventType.DISPATCH_SUCCEEDED,
                EventType.DISPATCH_FAILED,
            ):
                self._metrics.record_dispatch_finished(
                    success=event.event_type == EventType.DISPATCH_SUCCEEDED,
                    duration_seconds=event.details.get("duration_seconds"),
                )
        except Exception as e:
            logger.error(
                "Failed to update metrics for event %s: %s",
                event.event_type.value,
                str(e),
                extra={"session_id": event.session_id},
            )
