"""Prometheus metrics for pipeline observability.

Metrics Defined:
- changelog_webhooks_total: Counter of deliveries by terminal outcome
- changelog_failures_total: Counter of failures by stage
- changelog_dispatches_total: Counter of dispatched tasks by repository

The MetricsEventEmitter updates these from pipeline events. Metrics are
exposed at the `/metrics` endpoint in Prometheus format.

Source:
- src/changelog/events/models.py (PipelineEvent, EventType)
"""

import logging
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    generate_latest,
)

from src.changelog.events.emitter import EventEmitter
from src.changelog.events.models import EventType, PipelineEvent


logger = logging.getLogger(__name__)


# Terminal outcomes, matching the caller-facing response statuses
OUTCOMES = ("success", "ignored", "already_processed", "error")


class PipelineMetrics:
    """Container for all pipeline Prometheus metrics.

    Pass a custom registry in tests to avoid duplicate registration
    against the global REGISTRY.

    Attributes:
        registry: The Prometheus registry for these metrics.
        webhooks_total: Deliveries by outcome.
        failures_total: Failures by stage.
        dispatches_total: Dispatched tasks by repository.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.webhooks_total = Counter(
            "changelog_webhooks_total",
            "Webhook deliveries by terminal outcome",
            labelnames=["outcome"],
            registry=self.registry,
        )

        self.failures_total = Counter(
            "changelog_failures_total",
            "Pipeline failures by stage",
            labelnames=["stage"],
            registry=self.registry,
        )

        self.dispatches_total = Counter(
            "changelog_dispatches_total",
            "Changelog tasks dispatched by repository",
            labelnames=["repository"],
            registry=self.registry,
        )

        for outcome in OUTCOMES:
            self.webhooks_total.labels(outcome=outcome)

    def record_outcome(self, outcome: str) -> None:
        self.webhooks_total.labels(outcome=outcome).inc()

    def record_failure(self, stage: str) -> None:
        self.failures_total.labels(stage=stage).inc()

    def record_dispatch(self, repository: str) -> None:
        self.dispatches_total.labels(repository=repository).inc()

    def generate_metrics(self) -> bytes:
        """Generate Prometheus text format output for this registry."""
        return generate_latest(self.registry)


class MetricsEventEmitter(EventEmitter):
    """Event emitter that updates Prometheus metrics.

    Mapping:
        COMPLETION: outcome=success, dispatch for repository
        IGNORED: outcome=ignored
        DUPLICATE: outcome=already_processed
        ERROR: outcome=error, failure for stage
        STATE_TRANSITION: no metric

    Attributes:
        metrics: The PipelineMetrics instance being updated.
    """

    def __init__(
        self,
        metrics: Optional[PipelineMetrics] = None,
        registry: Optional[CollectorRegistry] = None,
    ):
        if metrics is not None:
            self.metrics = metrics
        else:
            self.metrics = PipelineMetrics(registry=registry)

    async def emit(self, event: PipelineEvent) -> None:
        try:
            if event.event_type == EventType.COMPLETION:
                self.metrics.record_outcome("success")
                self.metrics.record_dispatch(event.repository)
            elif event.event_type == EventType.IGNORED:
                self.metrics.record_outcome("ignored")
            elif event.event_type == EventType.DUPLICATE:
                self.metrics.record_outcome("already_processed")
            elif event.event_type == EventType.ERROR:
                self.metrics.record_outcome("error")
                self.metrics.record_failure(
                    str(event.details.get("stage", "unknown"))
                )
        except Exception as e:
            logger.error(
                "Failed to update metrics for event: %s",
                str(e),
                extra={
                    "event_type": event.event_type.value,
                    "run_id": event.run_id,
                },
            )
