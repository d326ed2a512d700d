"""Unit tests for pipeline event emitters and Prometheus metrics."""

import logging
from unittest.mock import AsyncMock

from prometheus_client import CollectorRegistry

from src.changelog.events import (
    CompositeEventEmitter,
    EventSinkType,
    EventType,
    LoggingEventEmitter,
    PipelineEvent,
    create_event_emitter,
)
from src.changelog.events.metrics import MetricsEventEmitter, PipelineMetrics
from tests.changelog.helpers import run_async


def _event(event_type: EventType, **details) -> PipelineEvent:
    return PipelineEvent(
        event_type=event_type,
        run_id="run-1",
        repository="sdk-js",
        details=details,
    )


def _sample(registry, name, labels):
    return registry.get_sample_value(name, labels) or 0.0


def test_completion_counts_success_and_dispatch():
    registry = CollectorRegistry()
    emitter = MetricsEventEmitter(registry=registry)

    run_async(emitter.emit(_event(EventType.COMPLETION, session_id="devin-1")))

    assert _sample(registry, "changelog_webhooks_total", {"outcome": "success"}) == 1.0
    assert (
        _sample(registry, "changelog_dispatches_total", {"repository": "sdk-js"}) == 1.0
    )


def test_error_counts_failure_stage():
    registry = CollectorRegistry()
    emitter = MetricsEventEmitter(registry=registry)

    run_async(emitter.emit(_event(EventType.ERROR, stage="dispatch")))

    assert _sample(registry, "changelog_webhooks_total", {"outcome": "error"}) == 1.0
    assert _sample(registry, "changelog_failures_total", {"stage": "dispatch"}) == 1.0


def test_ignored_and_duplicate_outcomes():
    registry = CollectorRegistry()
    emitter = MetricsEventEmitter(registry=registry)

    async def scenario():
        await emitter.emit(_event(EventType.IGNORED, reason="pre-release"))
        await emitter.emit(_event(EventType.DUPLICATE, reason="seen"))
        await emitter.emit(_event(EventType.STATE_TRANSITION))

    run_async(scenario())

    assert _sample(registry, "changelog_webhooks_total", {"outcome": "ignored"}) == 1.0
    assert (
        _sample(registry, "changelog_webhooks_total", {"outcome": "already_processed"})
        == 1.0
    )
    assert _sample(registry, "changelog_webhooks_total", {"outcome": "success"}) == 0.0


def test_generate_metrics_exposes_counters():
    metrics = PipelineMetrics(registry=CollectorRegistry())
    metrics.record_outcome("success")

    output = metrics.generate_metrics().decode("utf-8")

    assert 'changelog_webhooks_total{outcome="success"} 1.0' in output


def test_logging_emitter_uses_event_level(caplog):
    emitter = LoggingEventEmitter(logger_name="changelog.test")

    with caplog.at_level(logging.DEBUG, logger="changelog.test"):
        run_async(emitter.emit(_event(EventType.ERROR, stage="classification")))
        run_async(emitter.emit(_event(EventType.STATE_TRANSITION, to_stage="verified")))

    levels = [record.levelno for record in caplog.records]
    assert levels == [logging.ERROR, logging.DEBUG]
    assert caplog.records[0].stage == "classification"


def test_composite_isolates_failing_emitter():
    failing = AsyncMock()
    failing.emit.side_effect = RuntimeError("sink down")
    healthy = AsyncMock()
    composite = CompositeEventEmitter([failing, healthy])

    run_async(composite.emit(_event(EventType.COMPLETION)))

    healthy.emit.assert_awaited_once()


def test_create_event_emitter_defaults_to_logging():
    assert isinstance(create_event_emitter(), LoggingEventEmitter)
    assert isinstance(
        create_event_emitter([EventSinkType.LOGGING]), LoggingEventEmitter
    )


def test_log_dict_flattens_details():
    event = _event(EventType.DUPLICATE, event_key="changelog-event:cli:v1:tag")

    log_dict = event.to_log_dict()

    assert log_dict["event_type"] == "duplicate"
    assert log_dict["event_key"] == "changelog-event:cli:v1:tag"
    assert log_dict["repository"] == "sdk-js"


def test_create_event_emitter_shares_given_metrics():
    metrics = PipelineMetrics(registry=CollectorRegistry())
    emitter = create_event_emitter(
        [EventSinkType.LOGGING, EventSinkType.METRICS], metrics=metrics
    )

    run_async(emitter.emit(_event(EventType.IGNORED, reason="pre-release")))

    assert isinstance(emitter, CompositeEventEmitter)
    assert (
        _sample(metrics.registry, "changelog_webhooks_total", {"outcome": "ignored"})
        == 1.0
    )
